"""AnalysisResult / ProjectAnalysis models and Markdown report generation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, SerializeAsAny

from normacheck.config import EMPTY_SCORE
from normacheck.enrichment import EnrichmentPatch
from normacheck.models.findings import AnalysisStatistics, Finding, Severity
from normacheck.readiness import EngineReadiness
from normacheck.scoring import compute_statistics

AnalysisStatus = Literal["analyzed", "skipped", "failed"]


class AnalysisResult(BaseModel):
    """Outcome of one specialty."""

    specialty: str
    status: AnalysisStatus = "analyzed"
    findings: list[Finding] = Field(default_factory=list)
    computed: SerializeAsAny[BaseModel] | None = None
    """The specialty's computed values; None unless analysed."""

    statistics: AnalysisStatistics = Field(default_factory=AnalysisStatistics)
    overall_score: float = Field(default=EMPTY_SCORE, ge=0, le=100)
    missing_fields: list[str] = Field(default_factory=list)
    """What the readiness gate is missing (status 'skipped')."""

    error: str = ""
    """Shape-check message (status 'failed')."""

    @property
    def failures(self) -> list[Finding]:
        return [f for f in self.findings if f.is_failure]


class ProjectAnalysis(BaseModel):
    """Full compliance analysis of one building project."""

    project_name: str = ""
    results: dict[str, AnalysisResult] = Field(default_factory=dict)
    """Specialty name -> result, in analysis order."""

    overall_score: float = Field(default=EMPTY_SCORE, ge=0, le=100)
    patches: list[EnrichmentPatch] = Field(default_factory=list)
    readiness: list[EngineReadiness] = Field(default_factory=list)
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def findings(self) -> list[Finding]:
        """All findings, grouped by specialty in analysis order."""
        return [f for result in self.results.values() for f in result.findings]

    @property
    def statistics(self) -> AnalysisStatistics:
        return compute_statistics(self.findings)

    def result(self, specialty: str) -> AnalysisResult | None:
        return self.results.get(specialty)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dict of the whole analysis."""
        data = self.model_dump(mode="json")
        data["statistics"] = self.statistics.model_dump()
        return data

    def to_markdown(self) -> str:
        """Render the analysis as a Markdown document."""
        lines: list[str] = []
        stats = self.statistics

        lines.append(f"# Compliance Report: {self.project_name or 'Unnamed project'}")
        lines.append("")
        lines.append(f"**Overall score:** {self.overall_score:.1f} / 100")
        lines.append(f"**Analysed:** {self.analyzed_at.strftime('%Y-%m-%d %H:%M UTC')}")
        lines.append(
            f"**Results:** {stats.passed} passed, {stats.warnings} warnings, "
            f"{stats.critical} critical ({stats.checks_performed} checks)"
        )
        lines.append("")

        if self.results:
            lines.append("## Specialties")
            lines.append("")
            lines.append("| Specialty | Status | Score | Checks | Critical | Warnings |")
            lines.append("|-----------|--------|-------|--------|----------|----------|")
            for name, r in self.results.items():
                score = f"{r.overall_score:.1f}" if r.status == "analyzed" else "-"
                s = r.statistics
                lines.append(
                    f"| {name} | {r.status.upper()} | {score} | {s.checks_performed} | {s.critical} | {s.warnings} |"
                )
            lines.append("")

        findings = self.findings
        if findings:
            lines.append("## Rule Results")
            lines.append("")
            lines.append("| Status | Regulation | Article | Detail |")
            lines.append("|--------|------------|---------|--------|")
            for f in findings:
                detail = f.description.replace("|", "\\|")
                lines.append(f"| {_status_icon(f.severity)} | {f.regulation} | {f.article} | {detail} |")
            lines.append("")

        failures = [f for f in findings if f.is_failure]
        if failures:
            lines.append("## Violations")
            lines.append("")
            for f in failures:
                lines.append(f"- **{f.regulation} {f.article}** ({f.severity.value}): {f.description}")
                if f.remediation:
                    lines.append(f"  *Fix:* {f.remediation}")
            lines.append("")

        not_analyzed = [r for r in self.results.values() if r.status != "analyzed"]
        if not_analyzed:
            lines.append("## Not Analysed")
            lines.append("")
            for r in not_analyzed:
                if r.status == "skipped":
                    lines.append(f"- **{r.specialty}**: skipped, provide one of {', '.join(r.missing_fields)}")
                else:
                    lines.append(f"- **{r.specialty}**: failed, {r.error}")
            lines.append("")

        return "\n".join(lines)


def _status_icon(severity: Severity) -> str:
    """Return a text icon for a finding severity."""
    return {
        Severity.PASS: "PASS",
        Severity.INFORMATIVE: "INFO",
        Severity.WARNING: "WARN",
        Severity.CRITICAL: "FAIL",
    }.get(severity, severity.value)
