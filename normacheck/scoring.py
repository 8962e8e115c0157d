"""Finding statistics, per-specialty score and the cross-specialty reducer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from normacheck.config import EMPTY_SCORE
from normacheck.models.findings import AnalysisStatistics, Finding, Severity
from normacheck.settings import ScoringPolicy

if TYPE_CHECKING:
    from normacheck.report import AnalysisResult


def compute_statistics(findings: Iterable[Finding]) -> AnalysisStatistics:
    """Tally findings.  Informative findings count as passed."""
    checks = passed = warnings = critical = informative = 0
    for finding in findings:
        checks += 1
        if finding.severity is Severity.CRITICAL:
            critical += 1
        elif finding.severity is Severity.WARNING:
            warnings += 1
        else:
            passed += 1
            if finding.severity is Severity.INFORMATIVE:
                informative += 1
    return AnalysisStatistics(
        checks_performed=checks,
        passed=passed,
        warnings=warnings,
        critical=critical,
        informative=informative,
    )


def compute_score(stats: AnalysisStatistics, policy: ScoringPolicy | None = None) -> float:
    """Score in [0, 100]: each failure costs its weight times one check's share."""
    if stats.checks_performed == 0:
        return EMPTY_SCORE
    policy = policy or ScoringPolicy()
    penalty = stats.critical * policy.critical_weight + stats.warnings * policy.warning_weight
    score = 100.0 - penalty * 100.0 / stats.checks_performed
    return round(min(100.0, max(0.0, score)), 1)


def combine_scores(results: Iterable[AnalysisResult], policy: ScoringPolicy | None = None) -> float:
    """Weighted mean of analysed specialties' scores.

    Skipped and failed specialties do not contribute.  Returns
    :data:`EMPTY_SCORE` when nothing was analysed.
    """
    policy = policy or ScoringPolicy()
    total = weight_sum = 0.0
    for result in results:
        if result.status != "analyzed":
            continue
        weight = policy.weight_for(result.specialty)
        if weight <= 0:
            continue
        total += result.overall_score * weight
        weight_sum += weight
    if weight_sum == 0:
        return EMPTY_SCORE
    return round(total / weight_sum, 1)
