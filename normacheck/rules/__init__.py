"""Rule taxonomy, expression language, evaluator and rule sources."""

from normacheck.rules.database import RuleDatabase
from normacheck.rules.evaluator import evaluate_rule, evaluate_rules
from normacheck.rules.models import Rule, RuleScope, SeverityTier, ValidationKind, ValueSpec
from normacheck.rules.source import RuleSource, StaticRuleSource

__all__ = [
    "Rule",
    "RuleDatabase",
    "RuleScope",
    "RuleSource",
    "SeverityTier",
    "StaticRuleSource",
    "ValidationKind",
    "ValueSpec",
    "evaluate_rule",
    "evaluate_rules",
]
