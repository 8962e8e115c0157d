"""normacheck — declarative building-regulation compliance engine."""

__version__ = "1.0.0"

from normacheck.engine import ComplianceEngine
from normacheck.enrichment import EnrichmentPatch, apply_enrichment, build_enrichment_patch, enriched_copy
from normacheck.errors import (
    ExpressionSyntaxError,
    ExpressionTypeError,
    InvalidProjectShape,
    NormacheckError,
    RuleEvaluationError,
    UndefinedFieldError,
    UnknownSpecialtyError,
)
from normacheck.models.findings import AnalysisStatistics, Finding, Severity
from normacheck.models.project import BuildingProject
from normacheck.readiness import (
    SPECIALTY_SIGNALS,
    calculate_section_completion,
    can_analyze,
    compute_engine_readiness,
    missing_fields,
)
from normacheck.report import AnalysisResult, ProjectAnalysis
from normacheck.rules.database import RuleDatabase
from normacheck.rules.evaluator import evaluate_rules
from normacheck.rules.models import Rule, RuleScope, SeverityTier, ValidationKind, ValueSpec
from normacheck.rules.source import RuleSource, StaticRuleSource
from normacheck.scoring import combine_scores, compute_score, compute_statistics
from normacheck.settings import EngineSettings, ScoringPolicy, load_settings
from normacheck.specialties.base import SpecialtyAnalyzer
from normacheck.specialties.registry import SpecialtyRegistry, default_registry

__all__ = [
    "AnalysisResult",
    "AnalysisStatistics",
    "BuildingProject",
    "ComplianceEngine",
    "EngineSettings",
    "EnrichmentPatch",
    "ExpressionSyntaxError",
    "ExpressionTypeError",
    "Finding",
    "InvalidProjectShape",
    "NormacheckError",
    "ProjectAnalysis",
    "Rule",
    "RuleDatabase",
    "RuleEvaluationError",
    "RuleScope",
    "RuleSource",
    "SPECIALTY_SIGNALS",
    "ScoringPolicy",
    "Severity",
    "SeverityTier",
    "SpecialtyAnalyzer",
    "SpecialtyRegistry",
    "StaticRuleSource",
    "UndefinedFieldError",
    "UnknownSpecialtyError",
    "ValidationKind",
    "ValueSpec",
    "__version__",
    "apply_enrichment",
    "build_enrichment_patch",
    "calculate_section_completion",
    "can_analyze",
    "combine_scores",
    "compute_engine_readiness",
    "compute_score",
    "compute_statistics",
    "default_registry",
    "enriched_copy",
    "evaluate_rules",
    "load_settings",
    "missing_fields",
]
