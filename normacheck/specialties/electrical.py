"""ElectricalAnalyzer — RTIEBT load estimate and installation sizing."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject, as_number
from normacheck.specialties.base import SpecialtyAnalyzer, first_at_least, usable_area


class ElectricalTables(BaseModel):
    model_config = ConfigDict(frozen=True)

    power_density_residential: float = 25.0
    power_density_other: float = 40.0
    """W/m²."""

    residential_fixed_loads: float = 6.5
    """Kitchen, laundry and hot water (kVA)."""

    commercial_fixed_loads: float = 8.0
    ev_charger_residential: float = 7.4
    ev_charger_commercial: float = 22.0
    heat_pump_load: float = 2.5
    cooling_load: float = 2.0
    diversity_residential: float = 0.6
    diversity_other: float = 0.7

    three_phase_above: float = 13.8
    standard_powers: tuple[float, ...] = (3.45, 4.6, 5.75, 6.9, 10.35, 13.8, 17.25, 20.7, 27.6, 34.5, 41.4)
    approval_above: float = 41.4
    breaker_ratings: tuple[int, ...] = (16, 20, 25, 32, 40, 50, 63, 80, 100)
    cable_sections: tuple[tuple[int, float], ...] = Field(
        default=((25, 6), (32, 10), (40, 10), (50, 16), (63, 16), (80, 25), (100, 35))
    )
    """(breaker amps, cable mm²)."""

    commercial_area_per_circuit: float = 50.0
    circuits_per_rcd: int = 4
    min_rcds: int = 2


class ElectricalComputed(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimated_load: float
    """kVA after diversity."""

    recommended_supply: str
    recommended_power: float
    main_breaker_rating: int
    min_circuits: int
    min_rcd_count: int
    main_cable_section: float
    needs_approval: bool


class ElectricalAnalyzer(SpecialtyAnalyzer):
    """Low-voltage electrical installations (RTIEBT)."""

    @property
    def name(self) -> str:
        return "electrical"

    @property
    def description(self) -> str:
        return "Electrical: load estimate, contracted power, protection and circuits."

    @property
    def regulation(self) -> str:
        return "RTIEBT"

    @property
    def section(self) -> str:
        return "electrical"

    @property
    def numeric_fields(self) -> tuple[str, ...]:
        return (
            "contracted_power", "number_of_circuits", "number_of_rcds", "rcd_sensitivity_ma",
            "earthing_resistance", "main_cable_section", "voltage", "total_power",
        )

    def default_tables(self) -> ElectricalTables:
        return ElectricalTables()

    def validate_shape(self, project: BuildingProject) -> None:
        super().validate_shape(project)
        if not usable_area(project):
            raise InvalidProjectShape(self.name, "needs a usable or gross floor area")

    def compute(self, project: BuildingProject, tables: BaseModel | None = None) -> ElectricalComputed:
        t = tables if isinstance(tables, ElectricalTables) else self.default_tables()
        section = project.section(self.section)
        systems = project.section("systems")
        area = usable_area(project)
        residential = project.building_type == "residential"
        ev = section.get("has_ev_charging") is True

        if residential:
            load = t.power_density_residential * area / 1000 + t.residential_fixed_loads
            if ev:
                load += t.ev_charger_residential
            if systems.get("heating_system") == "heat_pump":
                load += t.heat_pump_load
            if systems.get("cooling_system") not in (None, "", "none"):
                load += t.cooling_load
            load *= t.diversity_residential
        else:
            load = t.power_density_other * area / 1000 + t.commercial_fixed_loads
            if ev:
                load += t.ev_charger_commercial
            load *= t.diversity_other

        # A declared installed power takes precedence over the estimate
        declared = as_number(section.get("total_power"))
        if declared:
            load = declared

        supply = "three_phase" if load > t.three_phase_above else "single_phase"
        power = first_at_least(t.standard_powers, load, t.standard_powers[-1])

        voltage, phases = (400, 3) if supply == "three_phase" else (230, 1)
        amps = math.ceil(power * 1000 / (voltage * (math.sqrt(3) if phases == 3 else 1)))
        breaker = int(first_at_least(t.breaker_ratings, amps, t.breaker_ratings[-1]))

        if residential:
            circuits = 4
            if area > 100:
                circuits += 1
            if ev:
                circuits += 1
            if systems.get("heating_system") not in (None, "", "none"):
                circuits += 1
        else:
            circuits = math.ceil(area / t.commercial_area_per_circuit) + 3

        cable = t.cable_sections[-1][1]
        for rating, size in t.cable_sections:
            if rating >= breaker:
                cable = size
                break

        return ElectricalComputed(
            estimated_load=round(load, 1),
            recommended_supply=supply,
            recommended_power=power,
            main_breaker_rating=breaker,
            min_circuits=circuits,
            min_rcd_count=max(t.min_rcds, math.ceil(circuits / t.circuits_per_rcd)),
            main_cable_section=cable,
            needs_approval=load > t.approval_above,
        )
