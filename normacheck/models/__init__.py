"""Data model: projects, findings and statistics."""

from normacheck.models.findings import AnalysisStatistics, Finding, Severity
from normacheck.models.project import BuildingProject

__all__ = ["AnalysisStatistics", "BuildingProject", "Finding", "Severity"]
