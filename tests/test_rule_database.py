"""Tests for the seed rule set and the SQLite rule database.

All tests use an in-memory SQLite database.
"""

from __future__ import annotations

import sqlite3

import pytest

from normacheck.rules.database import RuleDatabase
from normacheck.rules.models import Rule, ValidationKind
from normacheck.rules.seed_data import SEED_RULES
from normacheck.rules.source import RuleSource, StaticRuleSource


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> RuleDatabase:
    """Rule database for direct testing."""
    database = RuleDatabase(":memory:", auto_seed=True)
    yield database
    database.close()


@pytest.fixture
def new_rule() -> Rule:
    return Rule(
        id="RGSP-TEST-01",
        specialty="water",
        regulation="RGSPPDADAR",
        article="Art. 200.º",
        description="Grease trap on commercial kitchens",
        kind="formula",
        value_spec={"formula": "default(water_drainage.has_grease_trap, false) == true"},
        scope={"building_types": ["commercial"]},
        tier="recommended",
    )


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


class TestSeedData:
    def test_ids_are_unique(self) -> None:
        ids = [r.id for r in SEED_RULES]
        assert len(ids) == len(set(ids))

    def test_every_specialty_has_rules(self) -> None:
        assert StaticRuleSource().specialties() == ["fire_safety", "energy", "electrical", "water"]

    def test_rules_cite_an_article(self) -> None:
        for rule in SEED_RULES:
            assert rule.article, rule.id
            assert rule.regulation, rule.id

    def test_conditional_rules_have_guard_and_check(self) -> None:
        for rule in SEED_RULES:
            if rule.kind is ValidationKind.CONDITIONAL:
                assert rule.value_spec.condition and rule.value_spec.formula, rule.id

    def test_threshold_rules_have_a_target(self) -> None:
        for rule in SEED_RULES:
            if rule.kind is ValidationKind.THRESHOLD:
                spec = rule.value_spec
                assert spec.field and (spec.reference or spec.value is not None), rule.id


class TestStaticRuleSource:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(StaticRuleSource(), RuleSource)
        assert isinstance(RuleDatabase(":memory:"), RuleSource)

    def test_filters_by_specialty(self) -> None:
        source = StaticRuleSource()
        assert all(r.specialty == "energy" for r in source.get_rules("energy"))
        assert source.get_rules("gas") == []
        assert len(source) == len(SEED_RULES)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class TestRuleDatabase:
    def test_auto_seed_on_first_access(self, db: RuleDatabase) -> None:
        assert db.count() == len(SEED_RULES)

    def test_no_seed(self) -> None:
        assert RuleDatabase(":memory:", auto_seed=False).count() == 0

    def test_round_trip_preserves_rule(self, db: RuleDatabase) -> None:
        original = next(r for r in SEED_RULES if r.kind is ValidationKind.LOOKUP)
        assert db.get_rule(original.id) == original

    def test_insertion_order(self, db: RuleDatabase) -> None:
        expected = [r.id for r in SEED_RULES if r.specialty == "fire_safety"]
        assert [r.id for r in db.get_rules("fire_safety")] == expected

    def test_count_per_specialty(self, db: RuleDatabase) -> None:
        assert db.count("water") == len([r for r in SEED_RULES if r.specialty == "water"])

    def test_add_rule(self, db: RuleDatabase, new_rule: Rule) -> None:
        initial = db.count()
        assert db.add_rule(new_rule) == "RGSP-TEST-01"
        assert db.count() == initial + 1
        assert db.get_rule("RGSP-TEST-01") == new_rule

    def test_duplicate_id_rejected(self, db: RuleDatabase, new_rule: Rule) -> None:
        db.add_rule(new_rule)
        with pytest.raises(sqlite3.IntegrityError):
            db.add_rule(new_rule)

    def test_filter_by_regulation(self, db: RuleDatabase) -> None:
        rules = db.get_rules(regulation="REH")
        assert rules
        assert all(r.regulation == "REH" for r in rules)

    def test_update_rule(self, db: RuleDatabase) -> None:
        updated = db.update_rule("SCIE-54-01", {"description": "Minimum number of exits", "enabled": False})
        assert updated is not None
        stored = db.get_rule("SCIE-54-01")
        assert stored.description == "Minimum number of exits"
        assert stored.enabled is False
        assert "SCIE-54-01" not in [r.id for r in db.get_rules("fire_safety", enabled_only=True)]

    def test_update_is_validated(self, db: RuleDatabase) -> None:
        with pytest.raises(ValueError):
            db.update_rule("SCIE-54-01", {"kind": "guesswork"})
        assert db.get_rule("SCIE-54-01").kind is ValidationKind.THRESHOLD

    def test_update_missing_rule(self, db: RuleDatabase) -> None:
        assert db.update_rule("NOPE", {"description": "x"}) is None

    def test_delete_rule(self, db: RuleDatabase) -> None:
        initial = db.count()
        assert db.delete_rule("SCIE-54-01") is True
        assert db.count() == initial - 1
        assert db.get_rule("SCIE-54-01") is None

    def test_delete_nonexistent_rule(self, db: RuleDatabase) -> None:
        assert db.delete_rule("NOPE") is False

    def test_search_rules(self, db: RuleDatabase) -> None:
        results = db.search_rules("sprinkler")
        assert [r.id for r in results] == ["SCIE-173-01"]

    def test_search_after_update(self, db: RuleDatabase) -> None:
        db.update_rule("SCIE-54-01", {"description": "Staircase pressurisation"})
        assert [r.id for r in db.search_rules("pressurisation")] == ["SCIE-54-01"]

    def test_file_database_persists(self, tmp_path, new_rule: Rule) -> None:
        path = tmp_path / "rules.db"
        first = RuleDatabase(path)
        first.add_rule(new_rule)
        first.close()

        second = RuleDatabase(path)
        assert second.get_rule("RGSP-TEST-01") == new_rule
        assert second.count() == len(SEED_RULES) + 1
        second.close()
