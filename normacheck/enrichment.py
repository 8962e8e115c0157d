"""Enrichment writer: computed values written back onto the project.

Enrichment is split into a pure step that builds an :class:`EnrichmentPatch`
from an analysis result and an explicit step that merges it.  Merging never
removes a field.  ``computed_<field>`` keys are always overwritten with the
latest value; aliases are written only where the section has no value yet.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from normacheck.config import COMPUTED_PREFIX
from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject

if TYPE_CHECKING:
    from normacheck.report import AnalysisResult
    from normacheck.specialties.base import SpecialtyAnalyzer

logger = logging.getLogger(__name__)


class EnrichmentPatch(BaseModel):
    """Keys to merge into one project section."""

    model_config = ConfigDict(frozen=True)

    specialty: str
    section: str
    values: dict[str, Any] = Field(default_factory=dict)
    """``computed_<field>`` keys; always overwritten."""

    aliases: dict[str, Any] = Field(default_factory=dict)
    """Canonical keys; written only when absent."""

    @property
    def is_empty(self) -> bool:
        return not self.values and not self.aliases


def build_enrichment_patch(result: AnalysisResult, analyzer: SpecialtyAnalyzer) -> EnrichmentPatch:
    """Patch for an analysed specialty; empty when it was skipped or failed."""
    if result.status != "analyzed" or result.computed is None:
        return EnrichmentPatch(specialty=result.specialty, section=analyzer.section)

    dumped = result.computed.model_dump(mode="json")
    values = {f"{COMPUTED_PREFIX}{key}": value for key, value in dumped.items()}
    return EnrichmentPatch(
        specialty=result.specialty,
        section=analyzer.section,
        values=values,
        aliases=analyzer.aliases(result.computed),
    )


def apply_enrichment(project: BuildingProject, patch: EnrichmentPatch) -> BuildingProject:
    """Merge *patch* into *project* in place and return it.

    Applying the same patch twice leaves the project as applying it once.
    """
    if patch.is_empty:
        return project

    section = project.sections.get(patch.section)
    if section is None:
        section = project.sections[patch.section] = {}
    elif not isinstance(section, dict):
        raise InvalidProjectShape(patch.specialty, f"section '{patch.section}' must be a mapping")

    section.update(patch.values)
    written = 0
    for key, value in patch.aliases.items():
        if section.get(key) is None:
            section[key] = value
            written += 1

    logger.debug(
        "Enriched section %s with %d computed keys and %d aliases",
        patch.section, len(patch.values), written,
    )
    return project


def enriched_copy(project: BuildingProject, patches: EnrichmentPatch | Iterable[EnrichmentPatch]) -> BuildingProject:
    """Return a deep copy of *project* with *patches* applied; the original is untouched."""
    if isinstance(patches, EnrichmentPatch):
        patches = [patches]
    copy = project.model_copy(deep=True)
    for patch in patches:
        apply_enrichment(copy, patch)
    return copy
