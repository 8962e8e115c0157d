"""RuleDatabase — editable regulation rule set kept in SQLite.

One row per rule, keyed by its regulation-scoped id (e.g. ``SCIE-54-01``).
The value spec and scope are JSON columns validated back through
:class:`Rule`, so a row that no longer validates never reaches the
evaluator.  Descriptions and articles are indexed for full-text search.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from normacheck.config import DEFAULT_RULE_DB
from normacheck.rules.models import Rule

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS rules (
    pk INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    specialty TEXT NOT NULL,
    regulation TEXT NOT NULL,
    article TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL,
    kind TEXT NOT NULL,
    value_spec TEXT NOT NULL DEFAULT '{}',
    scope TEXT NOT NULL DEFAULT '{}',
    tier TEXT NOT NULL DEFAULT 'mandatory',
    fail_severity TEXT,
    remediation TEXT NOT NULL DEFAULT '',
    enabled INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_rules_specialty ON rules(specialty);
CREATE INDEX IF NOT EXISTS idx_rules_regulation ON rules(regulation);
"""

_FTS_SQL = """\
CREATE VIRTUAL TABLE IF NOT EXISTS rules_fts USING fts5(
    description, article, content=rules, content_rowid=pk
);
"""

_FTS_TRIGGER_SQL = """\
CREATE TRIGGER IF NOT EXISTS rules_ai AFTER INSERT ON rules BEGIN
    INSERT INTO rules_fts(rowid, description, article)
    VALUES (new.pk, new.description, new.article);
END;

CREATE TRIGGER IF NOT EXISTS rules_ad AFTER DELETE ON rules BEGIN
    INSERT INTO rules_fts(rules_fts, rowid, description, article)
    VALUES ('delete', old.pk, old.description, old.article);
END;

CREATE TRIGGER IF NOT EXISTS rules_au AFTER UPDATE ON rules BEGIN
    INSERT INTO rules_fts(rules_fts, rowid, description, article)
    VALUES ('delete', old.pk, old.description, old.article);
    INSERT INTO rules_fts(rowid, description, article)
    VALUES (new.pk, new.description, new.article);
END;
"""

_COLUMNS = (
    "id", "specialty", "regulation", "article", "category", "description",
    "kind", "value_spec", "scope", "tier", "fail_severity", "remediation", "enabled",
)


class RuleDatabase:
    """Rule source backed by SQLite, seeded with the built-in regulation rules.

    Rows come back in insertion order, so a specialty's findings keep the
    order its rules were added in.  Updates go through :class:`Rule`
    validation before they are written.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Use ``':memory:'`` for
        in-memory databases (useful for testing).
    auto_seed:
        If *True* (default), seed the database with the built-in rules on
        first access if the rules table is empty.
    """

    def __init__(self, db_path: str | Path = DEFAULT_RULE_DB, *, auto_seed: bool = True) -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._auto_seed = auto_seed

    @property
    def conn(self) -> sqlite3.Connection:
        """Lazy-initialise and return the database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._init_schema()
            if self._auto_seed and self._is_empty():
                self._seed()
        return self._conn

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        self.conn.executescript(_SCHEMA_SQL)
        try:
            self.conn.executescript(_FTS_SQL)
            self.conn.executescript(_FTS_TRIGGER_SQL)
        except sqlite3.OperationalError:
            # FTS5 may not be available on all builds
            logger.debug("FTS5 not available; full-text search disabled.")
        self.conn.commit()

    def _is_empty(self) -> bool:
        return self.count() == 0

    def _seed(self) -> None:
        """Seed with the built-in rule set."""
        from normacheck.rules.seed_data import SEED_RULES

        for rule in SEED_RULES:
            self.add_rule(rule)
        logger.info("Seeded %d compliance rules.", len(SEED_RULES))

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -- CRUD ----------------------------------------------------------------

    def add_rule(self, rule: Rule) -> str:
        """Insert a rule and return its id.

        Raises ``sqlite3.IntegrityError`` if the id is already taken.
        """
        row = _rule_to_row(rule)
        placeholders = ", ".join("?" for _ in _COLUMNS)
        self.conn.execute(
            f"INSERT INTO rules ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            [row[c] for c in _COLUMNS],
        )
        self.conn.commit()
        return rule.id

    def update_rule(self, rule_id: str, updates: dict[str, Any]) -> Rule | None:
        """Update fields of a rule.

        The merged rule is re-validated before it is written, so an update
        can never leave an invalid rule in the table.  Returns the updated
        rule, or *None* if no rule has that id.
        """
        current = self.get_rule(rule_id)
        if current is None:
            return None
        updates = {k: v for k, v in updates.items() if k in _COLUMNS and k != "id"}
        if not updates:
            return current

        merged = Rule.model_validate({**current.model_dump(), **updates})
        row = _rule_to_row(merged)
        sets = ", ".join(f"{key} = ?" for key in updates)
        self.conn.execute(
            f"UPDATE rules SET {sets} WHERE id = ?",
            [row[key] for key in updates] + [rule_id],
        )
        self.conn.commit()
        return merged

    def delete_rule(self, rule_id: str) -> bool:
        """Delete a rule by id. Returns True if a row was deleted."""
        cur = self.conn.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def get_rule(self, rule_id: str) -> Rule | None:
        """Fetch a single rule by id."""
        cur = self.conn.execute("SELECT * FROM rules WHERE id = ?", (rule_id,))
        row = cur.fetchone()
        if row is None:
            return None
        return self._row_to_rule(row)

    # -- Queries -------------------------------------------------------------

    def get_rules(
        self,
        specialty: str | None = None,
        *,
        regulation: str | None = None,
        enabled_only: bool = False,
    ) -> list[Rule]:
        """Query rules with optional filters, in insertion order.

        Parameters
        ----------
        specialty:
            Filter to one specialty (e.g. 'fire_safety').
        regulation:
            Filter to a specific regulation code (e.g. 'RT-SCIE').
        enabled_only:
            Leave out disabled rules.
        """
        clauses: list[str] = []
        params: list[Any] = []

        if specialty:
            clauses.append("specialty = ?")
            params.append(specialty)

        if regulation:
            clauses.append("regulation = ?")
            params.append(regulation)

        if enabled_only:
            clauses.append("enabled = 1")

        where = " AND ".join(clauses) if clauses else "1=1"
        cur = self.conn.execute(f"SELECT * FROM rules WHERE {where} ORDER BY pk", params)
        return [self._row_to_rule(row) for row in cur.fetchall()]

    def search_rules(self, query: str) -> list[Rule]:
        """Full-text search on rule description and article.

        Falls back to LIKE search if FTS5 is unavailable.
        """
        try:
            cur = self.conn.execute(
                """\
                SELECT rules.* FROM rules_fts
                JOIN rules ON rules_fts.rowid = rules.pk
                WHERE rules_fts MATCH ?
                """,
                (query,),
            )
            return [self._row_to_rule(row) for row in cur.fetchall()]
        except sqlite3.OperationalError:
            # FTS not available, or the query is not valid FTS syntax
            like = f"%{query}%"
            cur = self.conn.execute(
                "SELECT * FROM rules WHERE description LIKE ? OR article LIKE ? ORDER BY pk",
                (like, like),
            )
            return [self._row_to_rule(row) for row in cur.fetchall()]

    def count(self, specialty: str | None = None) -> int:
        """Return the number of rules, optionally for one specialty."""
        if specialty:
            cur = self.conn.execute("SELECT COUNT(*) FROM rules WHERE specialty = ?", (specialty,))
        else:
            cur = self.conn.execute("SELECT COUNT(*) FROM rules")
        return cur.fetchone()[0]

    # -- Internal ------------------------------------------------------------

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> Rule:
        """Convert a database row to a Rule model."""
        return Rule(
            id=row["id"],
            specialty=row["specialty"],
            regulation=row["regulation"],
            article=row["article"],
            category=row["category"],
            description=row["description"],
            kind=row["kind"],
            value_spec=json.loads(row["value_spec"]),
            scope=json.loads(row["scope"]),
            tier=row["tier"],
            fail_severity=row["fail_severity"],
            remediation=row["remediation"],
            enabled=bool(row["enabled"]),
        )


def _rule_to_row(rule: Rule) -> dict[str, Any]:
    data = rule.model_dump(mode="json")
    return {
        "id": data["id"],
        "specialty": data["specialty"],
        "regulation": data["regulation"],
        "article": data["article"],
        "category": data["category"],
        "description": data["description"],
        "kind": data["kind"],
        "value_spec": json.dumps(data["value_spec"], ensure_ascii=False),
        "scope": json.dumps(data["scope"], ensure_ascii=False),
        "tier": data["tier"],
        "fail_severity": data["fail_severity"],
        "remediation": data["remediation"],
        "enabled": 1 if data["enabled"] else 0,
    }
