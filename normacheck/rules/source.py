"""Rule sources: anything that hands out an immutable rule set per specialty."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from normacheck.rules.models import Rule


@runtime_checkable
class RuleSource(Protocol):
    """Supplies the rules of one specialty."""

    def get_rules(self, specialty: str) -> list[Rule]: ...


class StaticRuleSource:
    """In-memory rule source.

    Parameters
    ----------
    rules:
        Rules to serve.  Defaults to the built-in seed set.
    """

    def __init__(self, rules: Iterable[Rule] | None = None) -> None:
        if rules is None:
            from normacheck.rules.seed_data import SEED_RULES

            rules = SEED_RULES
        self._rules: tuple[Rule, ...] = tuple(rules)

    def get_rules(self, specialty: str) -> list[Rule]:
        return [r for r in self._rules if r.specialty == specialty]

    def specialties(self) -> list[str]:
        """Specialty names that have at least one rule, in first-seen order."""
        return list(dict.fromkeys(r.specialty for r in self._rules))

    def __len__(self) -> int:
        return len(self._rules)
