"""Readiness gate and section-completion reporting.

Both read the same :data:`SPECIALTY_SIGNALS` table so "can analyze" and
"percent complete" never disagree about which fields a specialty needs.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict

from normacheck.errors import UnknownSpecialtyError
from normacheck.models.project import BuildingProject, as_number, has_value

logger = logging.getLogger(__name__)

CompletionStatus = Literal["complete", "partial", "empty"]

# General dimensions; any one non-zero plus a building type opens every gate
DIMENSION_FIELDS = ("gross_floor_area", "usable_floor_area", "building_height", "number_of_floors")


class SpecialtySignals(BaseModel):
    """Input signals of one specialty."""

    model_config = ConfigDict(frozen=True)

    label: str
    section: str
    """Project section holding the specialty's inputs."""

    discriminants: tuple[str, ...]
    """Dot paths; any one of them present opens the gate."""


SPECIALTY_SIGNALS: dict[str, SpecialtySignals] = {
    "fire_safety": SpecialtySignals(
        label="SCIE (Fire safety)",
        section="fire_safety",
        discriminants=("fire_safety.usage_type",),
    ),
    "energy": SpecialtySignals(
        label="SCE (Energy)",
        section="envelope",
        discriminants=("envelope.external_wall_u_value",),
    ),
    "electrical": SpecialtySignals(
        label="RTIEBT (Electrical)",
        section="electrical",
        discriminants=(
            "electrical.total_power",
            "electrical.number_of_circuits",
            "electrical.earthing_system",
            "electrical.voltage",
        ),
    ),
    "water": SpecialtySignals(
        label="RGSPPDADAR (Water)",
        section="water_drainage",
        discriminants=(
            "water_drainage.supply_pressure",
            "water_drainage.number_of_bathrooms",
            "water_drainage.roof_area",
        ),
    ),
}

# Fields counted by the completion reporter, per section.  Discriminants of
# the specialty owning a section are merged in by :func:`section_fields`.
_SECTION_FIELDS: dict[str, tuple[str, ...]] = {
    "context": ("description", "specific_concerns", "questions"),
    "general": (
        "name", "building_type", "gross_floor_area", "usable_floor_area",
        "number_of_floors", "building_height", "location.district", "location.municipality",
    ),
    "architecture": (
        "has_building_permit_design", "meets_rgeu", "has_natural_light",
        "has_cross_ventilation", "has_civil_code_compliance", "ceiling_height",
    ),
    "structural": (
        "has_structural_project", "structural_system", "has_geotechnical_study",
        "has_seismic_design", "soil_type",
    ),
    "fire_safety": (
        "risk_category", "fire_resistance", "has_fire_detection", "has_fire_alarm",
        "has_emergency_lighting", "has_fire_extinguishers", "number_of_exits", "evacuation_distance",
    ),
    "avac": ("ventilation_type", "has_kitchen_extraction", "has_bathroom_extraction", "has_maintenance_plan"),
    "water_drainage": ("has_separate_drainage", "has_water_meter", "has_water_treatment", "has_storage_tank"),
    "gas": ("has_gas_installation", "gas_type"),
    "electrical": (
        "supply_type", "contracted_power", "has_main_circuit_breaker",
        "has_residual_current_device",
    ),
    "telecommunications": ("ited_edition", "has_ate", "has_ati", "has_fiber_optic"),
    "envelope": ("roof_u_value", "window_u_value", "window_solar_factor", "air_changes_per_hour"),
    "systems": ("heating_system", "cooling_system", "dhw_system"),
    "acoustic": ("building_location", "has_acoustic_project", "has_airborne_insulation"),
    "accessibility": ("has_accessible_entrance", "door_widths", "corridor_widths"),
    "elevators": ("has_elevator", "number_of_elevators"),
    "licensing": ("project_phase", "has_architectural_project"),
    "waste": ("has_waste_management_plan", "estimated_waste_volume"),
    "drawings": (
        "architecture_scale", "has_standard_symbols", "has_north_arrow",
        "has_sheet_title_block", "has_consistent_line_weights",
    ),
    "local": ("municipality", "notes"),
}


class SectionCompletion(BaseModel):
    id: str
    filled: int
    total: int
    percentage: int
    status: CompletionStatus


class EngineReadiness(BaseModel):
    specialty: str
    label: str
    ready: bool
    section: str
    missing_fields: list[str]


def _signals(specialty: str) -> SpecialtySignals:
    try:
        return SPECIALTY_SIGNALS[specialty]
    except KeyError:
        raise UnknownSpecialtyError(f"unknown specialty: {specialty!r}") from None


def _has_dimensions(project: BuildingProject) -> bool:
    return any((as_number(getattr(project, name)) or 0) > 0 for name in DIMENSION_FIELDS)


def can_analyze(project: BuildingProject, specialty: str) -> bool:
    """True when the specialty has enough input to run.

    Either one of its discriminant fields is present, or the building type
    is known together with a non-zero area, height or floor count.
    """
    signals = _signals(specialty)
    if any(has_value(project.get_field(path)) for path in signals.discriminants):
        return True
    return has_value(project.building_type) and _has_dimensions(project)


def missing_fields(project: BuildingProject, specialty: str) -> list[str]:
    """What the user must fill in for the gate to open; empty when it is open.

    Any one discriminant suffices; otherwise the building type and one
    dimension are needed.
    """
    if can_analyze(project, specialty):
        return []
    missing = list(_signals(specialty).discriminants)
    if not has_value(project.building_type):
        missing.append("building_type")
    if not _has_dimensions(project):
        missing.extend(DIMENSION_FIELDS)
    return missing


def section_fields(section: str) -> tuple[str, ...]:
    """Fields counted for *section*, including its specialty's discriminants."""
    fields = list(_SECTION_FIELDS.get(section, ()))
    for signals in SPECIALTY_SIGNALS.values():
        if signals.section != section:
            continue
        for path in signals.discriminants:
            name = path.split(".", 1)[1]
            if name not in fields:
                fields.insert(0, name)
    return tuple(fields)


def _status(pct: float) -> CompletionStatus:
    if pct >= 80:
        return "complete"
    if pct > 0:
        return "partial"
    return "empty"


def _completion(section_id: str, values: dict, keys: tuple[str, ...]) -> SectionCompletion:
    filled = sum(1 for key in keys if has_value(values.get(key)))
    total = len(keys)
    pct = filled / total * 100 if total else 0.0
    return SectionCompletion(id=section_id, filled=filled, total=total, percentage=round(pct), status=_status(pct))


def calculate_section_completion(project: BuildingProject) -> dict[str, SectionCompletion]:
    """Fill percentage per section, for progress display."""
    result: dict[str, SectionCompletion] = {}

    general_keys = section_fields("general")
    general = {key: project.get_field(key) for key in general_keys}
    result["general"] = _completion("general", general, general_keys)

    for section in _SECTION_FIELDS:
        if section == "general":
            continue
        keys = section_fields(section)
        result[section] = _completion(section, project.section(section), keys)

    return result


def compute_engine_readiness(project: BuildingProject) -> list[EngineReadiness]:
    """Gate status of every specialty, in :data:`SPECIALTY_SIGNALS` order."""
    readiness = []
    for name, signals in SPECIALTY_SIGNALS.items():
        missing = missing_fields(project, name)
        readiness.append(
            EngineReadiness(
                specialty=name,
                label=signals.label,
                ready=not missing,
                section=signals.section,
                missing_fields=missing,
            )
        )
    logger.debug("Engine readiness: %s", {r.specialty: r.ready for r in readiness})
    return readiness
