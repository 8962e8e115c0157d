"""ComplianceEngine — main entry point for specialty compliance analysis.

Usage::

    from normacheck import BuildingProject, ComplianceEngine

    engine = ComplianceEngine()
    analysis = engine.analyze(BuildingProject.from_dict(data))
    print(analysis.to_markdown())
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from normacheck.enrichment import apply_enrichment, build_enrichment_patch
from normacheck.errors import InvalidProjectShape, NormacheckError
from normacheck.models.findings import Finding, Severity
from normacheck.models.project import BuildingProject
from normacheck.readiness import compute_engine_readiness, missing_fields
from normacheck.report import AnalysisResult, ProjectAnalysis
from normacheck.rules.database import RuleDatabase
from normacheck.rules.evaluator import evaluate_rules
from normacheck.rules.models import Rule
from normacheck.rules.source import RuleSource, StaticRuleSource
from normacheck.scoring import combine_scores, compute_score, compute_statistics
from normacheck.settings import EngineSettings, ScoringPolicy, configure_logging, load_settings
from normacheck.specialties.registry import SpecialtyRegistry, default_registry

logger = logging.getLogger(__name__)


class ComplianceEngine:
    """Gate, compute, evaluate and score building projects per specialty.

    Parameters
    ----------
    rule_source:
        Where rules come from.  Defaults to the built-in rule set.
    registry:
        Specialty analyzers to run.  Defaults to the four built-ins.
    settings:
        Scoring weights and other engine settings.
    tables:
        Specialty name -> regulation tables overriding that specialty's
        defaults.
    """

    def __init__(
        self,
        rule_source: RuleSource | None = None,
        registry: SpecialtyRegistry | None = None,
        *,
        settings: EngineSettings | None = None,
        tables: dict[str, BaseModel] | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.rule_source: RuleSource = rule_source if rule_source is not None else StaticRuleSource()
        self.registry = registry or default_registry()
        self.tables: dict[str, BaseModel] = dict(tables or {})

    @classmethod
    def from_settings(cls, project_path: str | Path = ".") -> ComplianceEngine:
        """Engine backed by a :class:`RuleDatabase`, configured from *project_path*."""
        settings = load_settings(project_path)
        configure_logging(settings)
        return cls(RuleDatabase(settings.rule_db), settings=settings)

    @property
    def policy(self) -> ScoringPolicy:
        return self.settings.scoring

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_specialty(self, project: BuildingProject, specialty: str) -> AnalysisResult:
        """Analyse one specialty.

        Returns a 'skipped' result when the readiness gate fails.  Raises
        :class:`InvalidProjectShape` when the project cannot be computed and
        :class:`UnknownSpecialtyError` for an unregistered name.
        """
        analyzer = self.registry.require(specialty)

        missing = missing_fields(project, specialty)
        if missing:
            logger.debug("Skipping %s: gate needs one of %s", specialty, missing)
            return AnalysisResult(specialty=specialty, status="skipped", missing_fields=missing)

        analyzer.validate_shape(project)
        computed = analyzer.compute(project, self.tables.get(specialty))

        findings = evaluate_rules(project, computed, self.rule_source.get_rules(specialty), specialty)
        stats = compute_statistics(findings)
        return AnalysisResult(
            specialty=specialty,
            findings=findings,
            computed=computed,
            statistics=stats,
            overall_score=compute_score(stats, self.policy),
        )

    def analyze(
        self,
        project: BuildingProject,
        specialties: list[str] | None = None,
        *,
        enrich: bool = False,
    ) -> ProjectAnalysis:
        """Analyse every requested specialty and combine the scores.

        A specialty whose project shape is invalid is reported as 'failed'
        with one diagnostic finding; the others still run.  With
        ``enrich=True`` the computed values are merged into *project* in
        place; otherwise the patches are only returned.
        """
        names = specialties if specialties is not None else self.registry.names()
        readiness = compute_engine_readiness(project)

        results: dict[str, AnalysisResult] = {}
        patches = []
        for name in names:
            analyzer = self.registry.require(name)
            try:
                result = self.analyze_specialty(project, name)
            except InvalidProjectShape as exc:
                logger.warning("Specialty %s not analysed: %s", name, exc.message)
                result = _failed_result(name, analyzer.regulation, exc)
            results[name] = result

            patch = build_enrichment_patch(result, analyzer)
            if not patch.is_empty:
                patches.append(patch)
                if enrich:
                    apply_enrichment(project, patch)

        overall = combine_scores(results.values(), self.policy)
        logger.debug("Project %r scored %.1f over %d specialties", project.name, overall, len(results))
        return ProjectAnalysis(
            project_name=project.name,
            results=results,
            overall_score=overall,
            patches=patches,
            readiness=readiness,
        )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def add_rule(self, rule: Rule) -> str:
        """Add a rule to the database. Returns the rule id."""
        return self._database().add_rule(rule)

    def get_rules(self, specialty: str | None = None, **kwargs: Any) -> list[Rule]:
        """Rules of *specialty*, or of every registered specialty."""
        if isinstance(self.rule_source, RuleDatabase):
            return self.rule_source.get_rules(specialty, **kwargs)
        names = [specialty] if specialty is not None else self.registry.names()
        return [rule for name in names for rule in self.rule_source.get_rules(name)]

    def search_rules(self, query: str) -> list[Rule]:
        """Full-text search on rules."""
        return self._database().search_rules(query)

    def _database(self) -> RuleDatabase:
        if not isinstance(self.rule_source, RuleDatabase):
            raise NormacheckError(f"{type(self.rule_source).__name__} does not support rule editing or search")
        return self.rule_source


def _failed_result(specialty: str, regulation: str, exc: InvalidProjectShape) -> AnalysisResult:
    finding = Finding(
        id=f"{specialty}:shape",
        rule_id="shape",
        specialty=specialty,
        regulation=regulation,
        severity=Severity.INFORMATIVE,
        description=f"Project data cannot be analysed: {exc.message}",
        remediation="Correct the project data and run the analysis again.",
    )
    findings = [finding]
    return AnalysisResult(
        specialty=specialty,
        status="failed",
        findings=findings,
        statistics=compute_statistics(findings),
        error=exc.message,
    )
