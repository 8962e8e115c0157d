"""WaterAnalyzer — RGSPPDADAR supply sizing and drainage."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject, as_number
from normacheck.specialties.base import SpecialtyAnalyzer, first_at_least, usable_area


class FixtureType(BaseModel):
    model_config = ConfigDict(frozen=True)

    flow: float
    """Design flow (L/s)."""

    per_dwelling: float


class WaterTables(BaseModel):
    model_config = ConfigDict(frozen=True)

    fixtures: dict[str, FixtureType] = Field(default_factory=lambda: {
        "basin": FixtureType(flow=0.10, per_dwelling=2),
        "toilet": FixtureType(flow=0.10, per_dwelling=2),
        "shower": FixtureType(flow=0.15, per_dwelling=1),
        "bathtub": FixtureType(flow=0.25, per_dwelling=0.5),
        "kitchen_sink": FixtureType(flow=0.20, per_dwelling=1),
        "dishwasher": FixtureType(flow=0.15, per_dwelling=1),
        "washing_machine": FixtureType(flow=0.20, per_dwelling=1),
    })
    simultaneity_coefficient: float = 0.8
    design_velocity: float = 1.5
    """m/s."""

    standard_diameters: tuple[int, ...] = (16, 20, 25, 32, 40, 50, 63, 75, 90, 110)
    hot_water_ratio: float = 0.8
    small_drainage_diameter: int = 90
    large_drainage_diameter: int = 110
    large_building_dwellings: int = 4
    """Above this many dwellings: larger drain and a storage tank."""

    persons_per_dwelling: float = 2.5
    area_per_person_other: float = 15.0
    daily_per_person_residential: float = 150.0
    daily_per_person_other: float = 50.0
    storage_share: float = 0.3


class WaterComputed(BaseModel):
    model_config = ConfigDict(frozen=True)

    simultaneous_flow: float
    """L/s."""

    main_pipe_diameter: int
    hot_water_pipe_diameter: int
    drainage_pipe_diameter: int
    daily_consumption: int
    """L/day."""

    storage_tank_required: bool
    storage_tank_size: int
    """L; 0 when no tank is required."""


def simultaneity_factor(fixtures: float, coefficient: float) -> float:
    if fixtures <= 1:
        return 1.0
    return coefficient / math.sqrt(fixtures - 1)


class WaterAnalyzer(SpecialtyAnalyzer):
    """Water supply and wastewater drainage (RGSPPDADAR)."""

    @property
    def name(self) -> str:
        return "water"

    @property
    def description(self) -> str:
        return "Water: simultaneous flow, pipe diameters, drainage and storage."

    @property
    def regulation(self) -> str:
        return "RGSPPDADAR"

    @property
    def section(self) -> str:
        return "water_drainage"

    @property
    def numeric_fields(self) -> tuple[str, ...]:
        return (
            "supply_pressure", "flow_velocity", "main_pipe_diameter", "hot_water_pipe_diameter",
            "drainage_pipe_diameter", "storage_tank_capacity", "number_of_bathrooms", "roof_area",
        )

    def default_tables(self) -> WaterTables:
        return WaterTables()

    def validate_shape(self, project: BuildingProject) -> None:
        super().validate_shape(project)
        if not usable_area(project) and not as_number(project.number_of_dwellings):
            raise InvalidProjectShape(self.name, "needs a floor area or a number of dwellings")

    def compute(self, project: BuildingProject, tables: BaseModel | None = None) -> WaterComputed:
        t = tables if isinstance(tables, WaterTables) else self.default_tables()
        residential = project.building_type == "residential"
        dwellings = as_number(project.number_of_dwellings) or 1.0
        area = usable_area(project)

        installed = sum(f.flow * f.per_dwelling * dwellings for f in t.fixtures.values())
        count = sum(f.per_dwelling * dwellings for f in t.fixtures.values())
        flow = installed * simultaneity_factor(count, t.simultaneity_coefficient)

        # Velocity method: section = Q / v
        diameter = math.sqrt(4 * (flow / 1000 / t.design_velocity) / math.pi) * 1000
        main = int(first_at_least(t.standard_diameters, diameter, t.standard_diameters[-1]))
        hot = int(first_at_least(t.standard_diameters, diameter * t.hot_water_ratio, t.standard_diameters[-1]))

        large = dwellings > t.large_building_dwellings
        drainage = t.large_drainage_diameter if large else t.small_drainage_diameter

        if residential:
            daily = dwellings * t.persons_per_dwelling * t.daily_per_person_residential
        else:
            daily = area / t.area_per_person_other * t.daily_per_person_other
        daily = round(daily)

        return WaterComputed(
            simultaneous_flow=round(flow, 2),
            main_pipe_diameter=main,
            hot_water_pipe_diameter=hot,
            drainage_pipe_diameter=drainage,
            daily_consumption=daily,
            storage_tank_required=large,
            storage_tank_size=round(daily * t.storage_share) if large else 0,
        )

    def aliases(self, computed: BaseModel) -> dict[str, Any]:
        if not isinstance(computed, WaterComputed):
            return {}
        return {"daily_consumption": computed.daily_consumption}
