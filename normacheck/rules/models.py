"""Rule model: the immutable, declarative description of one regulation check."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from normacheck.models.findings import Severity


class ValidationKind(str, Enum):
    """How a rule decides pass/fail."""

    RANGE = "range"
    THRESHOLD = "threshold"
    FORMULA = "formula"
    LOOKUP = "lookup"
    CONDITIONAL = "conditional"


class SeverityTier(str, Enum):
    """Legal weight of a rule."""

    MANDATORY = "mandatory"
    RECOMMENDED = "recommended"
    INFORMATIVE = "informative"


THRESHOLD_OPERATORS = (">=", "<=", ">", "<", "==", "!=")


class ValueSpec(BaseModel):
    """Values a rule compares against, interpreted per :class:`ValidationKind`."""

    model_config = ConfigDict(frozen=True)

    field: str = ""
    """Dot path of the actual value (range, threshold, lookup)."""

    min: float | None = None
    max: float | None = None
    unit: str = ""

    operator: str = ">="
    """Threshold polarity: actual <operator> required."""

    value: Any = None
    """Literal threshold."""

    reference: str | None = None
    """Dot path of the threshold, e.g. 'computed.required_resistance'."""

    formula: str | None = None
    """Boolean expression (formula kind, and the check of conditional rules)."""

    table: dict[str, list[Any]] | None = None
    """Lookup: key value -> allowed values.  A '*' row is the default."""

    key_field: str | None = None
    """Lookup: dot path whose value selects the table row."""

    condition: str | None = None
    """Guard expression; the rule emits nothing when it is false.

    Required for conditional rules, optional for every other kind.
    """


class RuleScope(BaseModel):
    """Applicability of a rule.  Empty lists mean universal."""

    model_config = ConfigDict(frozen=True)

    building_types: list[str] = Field(default_factory=list)
    usage_types: list[str] = Field(default_factory=list)


class Rule(BaseModel):
    """A single building-code rule."""

    model_config = ConfigDict(frozen=True)

    id: str
    """Rule identifier, e.g. 'SCIE-15-01'."""

    specialty: str
    """Specialty the rule belongs to: 'fire_safety', 'energy', ..."""

    regulation: str
    """Regulation code: 'RT-SCIE', 'REH', 'RTIEBT', 'RGSPPDADAR'."""

    article: str
    """Article reference: 'Art. 15.º'."""

    category: str = ""
    description: str
    kind: ValidationKind
    value_spec: ValueSpec = Field(default_factory=ValueSpec)
    scope: RuleScope = Field(default_factory=RuleScope)
    tier: SeverityTier = SeverityTier.MANDATORY
    fail_severity: Severity | None = None
    """Overrides the severity of a failing recommended rule."""

    remediation: str = ""
    enabled: bool = True

    @model_validator(mode="after")
    def _check_operator(self) -> Rule:
        if self.kind is ValidationKind.THRESHOLD and self.value_spec.operator not in THRESHOLD_OPERATORS:
            raise ValueError(f"unsupported threshold operator: {self.value_spec.operator!r}")
        return self

    def failure_severity(self) -> Severity:
        """Severity a failing evaluation of this rule produces."""
        if self.tier is SeverityTier.INFORMATIVE:
            return Severity.INFORMATIVE
        if self.tier is SeverityTier.MANDATORY:
            return Severity.CRITICAL
        return self.fail_severity or Severity.WARNING
