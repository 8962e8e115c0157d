"""FireSafetyAnalyzer — RT-SCIE occupancy, risk category and derived requirements."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from normacheck.config import (
    DEFAULT_STOREY_HEIGHT,
    DETECTION_CATEGORY_THRESHOLD,
    SPRINKLER_CATEGORY_THRESHOLD,
)
from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject, as_number
from normacheck.specialties.base import SpecialtyAnalyzer, floor_area


class CategoryBounds(BaseModel):
    """Upper bounds of one risk category.  ``None`` means unbounded."""

    model_config = ConfigDict(frozen=True)

    max_height: float | None = None
    max_occupancy: float | None = None
    max_area: float | None = None

    def admits(self, height: float, occupancy: float, area: float) -> bool:
        return (
            (self.max_height is None or height <= self.max_height)
            and (self.max_occupancy is None or occupancy <= self.max_occupancy)
            and (self.max_area is None or area <= self.max_area)
        )


def _bounds(*rows: dict[str, float]) -> tuple[CategoryBounds, ...]:
    return tuple(CategoryBounds(**row) for row in rows) + (CategoryBounds(),)


_HEIGHT_OCCUPANCY = _bounds(
    {"max_height": 9, "max_occupancy": 100},
    {"max_height": 28, "max_occupancy": 500},
    {"max_height": 50, "max_occupancy": 1500},
)


def _default_risk_bounds() -> dict[str, tuple[CategoryBounds, ...]]:
    bounds = {ut: _HEIGHT_OCCUPANCY for ut in ("I", "III", "IV", "V", "VI", "VII", "X", "XI")}
    bounds["II"] = _bounds({"max_area": 3200}, {"max_area": 9600}, {"max_area": 32000})
    bounds["VIII"] = _bounds(
        {"max_height": 9, "max_area": 800, "max_occupancy": 100},
        {"max_height": 28, "max_area": 3200, "max_occupancy": 500},
        {"max_height": 50, "max_area": 10000, "max_occupancy": 1500},
    )
    bounds["IX"] = _bounds(
        {"max_height": 9, "max_occupancy": 100},
        {"max_height": 28, "max_occupancy": 500},
        {"max_height": 50, "max_occupancy": 5000},
    )
    bounds["XII"] = _bounds(
        {"max_area": 3200, "max_occupancy": 100},
        {"max_area": 9600, "max_occupancy": 500},
        {"max_area": 32000, "max_occupancy": 1500},
    )
    return bounds


class FireSafetyTables(BaseModel):
    """Regulation tables for the fire-safety cascade.

    Every per-category tuple is indexed by ``risk_category - 1``.
    """

    model_config = ConfigDict(frozen=True)

    occupancy_density: dict[str, float] = Field(default_factory=lambda: {
        "I": 0.04, "II": 0.033, "III": 0.10, "IV": 0.10, "V": 0.167, "VI": 0.10,
        "VII": 0.25, "VIII": 0.20, "IX": 0.033, "X": 0.05, "XI": 0.033, "XII": 0.033,
    })
    """Persons per m² by usage type."""

    building_type_usage: dict[str, str] = Field(default_factory=lambda: {
        "residential": "I", "commercial": "VIII", "mixed": "VIII", "industrial": "XII",
    })
    default_usage_type: str = "I"
    risk_bounds: dict[str, tuple[CategoryBounds, ...]] = Field(default_factory=_default_risk_bounds)

    resistance: dict[str, tuple[int, ...]] = Field(default_factory=lambda: {
        "*": (30, 60, 90, 120),
        "II": (60, 90, 120, 180),
        "XI": (60, 90, 120, 180),
        "XII": (60, 90, 120, 180),
    })
    """Required structural fire resistance (min) by usage class; '*' is the default row."""

    compartment_area: tuple[float, ...] = (1600, 800, 800, 800)
    sprinkler_compartment_factor: float = 1.5
    compartment_ei: tuple[int, ...] = (60, 90, 120, 120)

    exit_steps: tuple[tuple[int, int], ...] = ((50, 1), (500, 2), (1500, 3))
    max_exits: int = 4

    occupants_per_unit: int = 100
    unit_widths: tuple[float, ...] = (0.90, 1.40)
    """Evacuation width for 1 and 2 units of passage (m)."""

    unit_width_base: float = 0.80
    unit_width_step: float = 0.60

    evacuation_distance_multi_exit: float = 30.0
    evacuation_distance_single_exit: float = 15.0
    dead_end_distance: float = 15.0
    sprinkler_distance_factor: float = 1.5

    area_per_extinguisher: float = 200.0
    min_extinguishers: int = 2

    high_rise_height: float = 28.0


class FireSafetyComputed(BaseModel):
    """Derived fire-safety quantities."""

    model_config = ConfigDict(frozen=True)

    usage_type: str
    height: float
    area: float
    occupant_load: int
    risk_category: int
    required_resistance: int
    max_compartment_area: float
    required_compartment_ei: int
    min_exits_required: int
    required_evacuation_units: int
    required_evacuation_width: float
    max_evacuation_distance: float
    max_dead_end_distance: float
    required_extinguishers: int
    sprinklers_required: bool
    detection_required: bool
    ria_required: bool
    dry_riser_required: bool
    firefighter_elevator_required: bool


def resolve_usage_type(project: BuildingProject, tables: FireSafetyTables) -> str:
    """Declared usage type, else the building type's default, else 'I'."""
    declared = project.section("fire_safety").get("usage_type")
    if isinstance(declared, str) and declared.strip():
        return declared.strip().upper()
    return tables.building_type_usage.get(project.building_type or "", tables.default_usage_type)


def effective_height(project: BuildingProject) -> float:
    """Building height, else floors x default storey height, else 0."""
    height = as_number(project.building_height)
    if height:
        return height
    floors = as_number(project.number_of_floors)
    return floors * DEFAULT_STOREY_HEIGHT if floors else 0.0


def risk_category(
    tables: FireSafetyTables, usage_type: str, height: float, occupancy: float, area: float
) -> int:
    """Smallest category whose bounds all admit the inputs; the highest if none does."""
    bounds = tables.risk_bounds.get(usage_type) or tables.risk_bounds[tables.default_usage_type]
    for index, category in enumerate(bounds):
        if category.admits(height, occupancy, area):
            return index + 1
    return len(bounds)


def required_resistance(tables: FireSafetyTables, usage_type: str, category: int) -> int:
    row = tables.resistance.get(usage_type) or tables.resistance["*"]
    return row[min(category, len(row)) - 1]


def _per_category(values: tuple[Any, ...], category: int) -> Any:
    return values[min(category, len(values)) - 1]


class FireSafetyAnalyzer(SpecialtyAnalyzer):
    """Fire safety in buildings (RT-SCIE, DL 220/2008)."""

    @property
    def name(self) -> str:
        return "fire_safety"

    @property
    def description(self) -> str:
        return "Fire safety: occupancy, risk category, resistance, evacuation and equipment."

    @property
    def regulation(self) -> str:
        return "RT-SCIE"

    @property
    def section(self) -> str:
        return "fire_safety"

    @property
    def numeric_fields(self) -> tuple[str, ...]:
        return ("occupant_load", "occupancy_index")

    def default_tables(self) -> FireSafetyTables:
        return FireSafetyTables()

    def validate_shape(self, project: BuildingProject) -> None:
        super().validate_shape(project)
        section = project.section(self.section)
        if not (
            floor_area(project)
            or effective_height(project)
            or as_number(section.get("occupant_load"))
        ):
            raise InvalidProjectShape(
                self.name, "needs a floor area, a height, a floor count or a declared occupant load"
            )

    def compute(self, project: BuildingProject, tables: BaseModel | None = None) -> FireSafetyComputed:
        t = tables if isinstance(tables, FireSafetyTables) else self.default_tables()
        section = project.section(self.section)

        usage_type = resolve_usage_type(project, t)
        area = floor_area(project)
        height = effective_height(project)
        has_sprinklers = section.get("has_sprinklers") is True

        # 1. Occupant load; a declared value wins
        manual = as_number(section.get("occupant_load"))
        if manual is not None and manual > 0:
            occupants = math.ceil(manual)
        else:
            density = as_number(section.get("occupancy_index")) or t.occupancy_density.get(usage_type, 0.04)
            # 150 * 0.04 is 6.000000000000001 in binary floating point
            occupants = math.ceil(round(area * density, 9))

        # 2. Risk category
        category = risk_category(t, usage_type, height, occupants, area)

        # 3. Structural resistance
        resistance = required_resistance(t, usage_type, category)

        # 4. Compartments, exits, evacuation
        compartment = _per_category(t.compartment_area, category)
        if has_sprinklers:
            compartment = math.floor(compartment * t.sprinkler_compartment_factor)

        exits = t.max_exits
        for limit, count in t.exit_steps:
            if occupants <= limit:
                exits = count
                break

        units = max(1, math.ceil(occupants / t.occupants_per_unit))
        if units <= len(t.unit_widths):
            width = t.unit_widths[units - 1]
        else:
            width = round(t.unit_width_base + units * t.unit_width_step, 2)

        distance = t.evacuation_distance_multi_exit if exits >= 2 else t.evacuation_distance_single_exit
        dead_end = t.dead_end_distance
        if has_sprinklers:
            distance *= t.sprinkler_distance_factor
            dead_end *= t.sprinkler_distance_factor

        extinguishers = max(t.min_extinguishers, math.ceil(area / t.area_per_extinguisher))

        # 5. Equipment
        high_rise = height > t.high_rise_height
        return FireSafetyComputed(
            usage_type=usage_type,
            height=height,
            area=area,
            occupant_load=occupants,
            risk_category=category,
            required_resistance=resistance,
            max_compartment_area=compartment,
            required_compartment_ei=_per_category(t.compartment_ei, category),
            min_exits_required=exits,
            required_evacuation_units=units,
            required_evacuation_width=width,
            max_evacuation_distance=distance,
            max_dead_end_distance=dead_end,
            required_extinguishers=extinguishers,
            sprinklers_required=category >= SPRINKLER_CATEGORY_THRESHOLD,
            detection_required=category >= DETECTION_CATEGORY_THRESHOLD,
            ria_required=category >= (3 if usage_type == "I" else 2),
            dry_riser_required=category >= 2 and high_rise,
            firefighter_elevator_required=high_rise,
        )

    def aliases(self, computed: BaseModel) -> dict[str, Any]:
        if not isinstance(computed, FireSafetyComputed):
            return {}
        return {"risk_category": computed.risk_category, "occupant_load": computed.occupant_load}
