"""Finding and AnalysisStatistics models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    """Outcome severity of one evaluated rule."""

    PASS = "pass"
    INFORMATIVE = "informative"
    WARNING = "warning"
    CRITICAL = "critical"


class Finding(BaseModel):
    """One evaluated-rule outcome with severity and citation."""

    model_config = ConfigDict(frozen=True)

    id: str
    """Namespaced id: '<specialty>:<rule id>'."""

    rule_id: str
    specialty: str
    regulation: str = ""
    article: str = ""
    """Article citation, copied verbatim from the rule."""

    severity: Severity
    description: str = ""
    actual_value: Any = None
    required_value: Any = None
    remediation: str = ""

    @property
    def is_failure(self) -> bool:
        return self.severity in (Severity.WARNING, Severity.CRITICAL)


class AnalysisStatistics(BaseModel):
    """Tallies derived from a finding sequence.

    ``passed``, ``warnings`` and ``critical`` partition ``checks_performed``.
    ``informative`` counts the non-failing findings that carry a note rather
    than a clean pass; it is a subset of ``passed``.
    """

    model_config = ConfigDict(frozen=True)

    checks_performed: int = 0
    passed: int = 0
    warnings: int = 0
    critical: int = 0
    informative: int = 0

    @property
    def failed(self) -> int:
        return self.warnings + self.critical
