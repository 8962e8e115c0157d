"""EnergyAnalyzer — REH seasonal thermal balance and SCE energy class."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject, as_number
from normacheck.specialties.base import SpecialtyAnalyzer, usable_area

# Hours in one month of the seasonal method
_MONTH_HOURS = 30.4 * 24


class EnergyTables(BaseModel):
    """Climate and reference tables for the simplified seasonal method."""

    model_config = ConfigDict(frozen=True)

    degree_days: dict[str, float] = Field(default_factory=lambda: {"I1": 1000, "I2": 1500, "I3": 2000})
    heating_season_months: dict[str, float] = Field(default_factory=lambda: {"I1": 5.3, "I2": 6.3, "I3": 7.3})
    cooling_reference_temperature: dict[str, float] = Field(default_factory=lambda: {"V1": 20, "V2": 22, "V3": 25})
    solar_irradiation: dict[str, float] = Field(default_factory=lambda: {"V1": 420, "V2": 490, "V3": 550})
    """Seasonal irradiation on south glazing (kWh/m²)."""

    base_heating_needs: dict[str, float] = Field(default_factory=lambda: {"I1": 40, "I2": 55, "I3": 75})
    min_cooling_limit: dict[str, float] = Field(default_factory=lambda: {"V1": 10, "V2": 14, "V3": 18})
    """Floor of the cooling-needs limit (kWh/m².year)."""

    max_wall_u: dict[str, float] = Field(default_factory=lambda: {"I1": 0.50, "I2": 0.40, "I3": 0.35})
    max_roof_u: dict[str, float] = Field(default_factory=lambda: {"I1": 0.40, "I2": 0.35, "I3": 0.30})
    max_window_u: dict[str, float] = Field(default_factory=lambda: {"I1": 2.80, "I2": 2.40, "I3": 2.20})
    max_solar_factor: dict[str, float] = Field(default_factory=lambda: {"V1": 0.56, "V2": 0.56, "V3": 0.50})

    system_efficiency: dict[str, float] = Field(default_factory=lambda: {
        "heat_pump": 3.0, "gas_boiler": 0.87, "electric_radiator": 1.0, "biomass": 0.80,
        "split_ac": 3.0, "central_ac": 3.5, "electric": 0.95, "solar_thermal": 0.80,
        "thermodynamic": 2.5, "none": 1.0,
    })

    # (upper ratio bound, class), checked in order
    energy_classes: tuple[tuple[float, str], ...] = (
        (0.25, "A+"), (0.50, "A"), (0.75, "B"), (1.00, "B-"),
        (1.50, "C"), (2.00, "D"), (2.50, "E"),
    )
    worst_class: str = "F"

    reference_height: float = 2.7
    ventilation_coefficient: float = 0.34
    internal_gains: float = 4.0
    """W/m²."""

    utilization_time_constant: float = 2.5
    shading_factor: float = 0.9
    framing_factor: float = 0.7
    winter_solar_share: float = 0.6
    cooling_months: float = 4.0
    default_air_changes: float = 0.6
    default_solar_factor: float = 0.6
    dhw_litres_per_person: float = 40.0
    electricity_primary_factor: float = 2.5
    fuel_primary_factor: float = 1.0
    pv_yield: float = 1400.0
    """kWh per installed kWp and year."""

    solar_thermal_yield: float = 500.0
    """kWh per m² of collector and year."""


class EnergyComputed(BaseModel):
    """Derived energy quantities (per m² of usable area unless noted)."""

    model_config = ConfigDict(frozen=True)

    winter_zone: str
    summer_zone: str
    transmission_loss: float
    """W/°C."""

    ventilation_loss: float
    total_heat_loss: float
    solar_gains: float
    """kWh/season."""

    heating_needs: float
    max_heating_needs: float
    cooling_needs: float
    max_cooling_needs: float
    dhw_needs: float
    primary_energy: float
    reference_primary_energy: float
    energy_ratio: float
    energy_class: str
    max_wall_u_value: float
    max_roof_u_value: float
    max_window_u_value: float
    max_solar_factor: float


def utilization_factor(gains: float, losses: float, a: float) -> float:
    """Gain utilization factor of the seasonal method."""
    if losses == 0:
        return 0.0
    gamma = gains / losses
    if gamma <= 0:
        return 1.0
    if gamma == 1:
        return 0.8
    return (1 - gamma**a) / (1 - gamma ** (a + 1))


def energy_class(ratio: float, tables: EnergyTables) -> str:
    for limit, label in tables.energy_classes:
        if ratio <= limit:
            return label
    return tables.worst_class


def _zone(value: Any, known: dict[str, float], fallback: str) -> str:
    zone = str(value).strip().upper() if value else fallback
    return zone if zone in known else fallback


class EnergyAnalyzer(SpecialtyAnalyzer):
    """Thermal behaviour and energy efficiency (REH, SCE)."""

    _ENVELOPE_FIELDS = (
        "external_wall_u_value", "external_wall_area", "roof_u_value", "roof_area",
        "floor_u_value", "floor_area", "window_u_value", "window_area",
        "window_solar_factor", "linear_thermal_bridges", "air_changes_per_hour", "hrv_efficiency",
    )

    @property
    def name(self) -> str:
        return "energy"

    @property
    def description(self) -> str:
        return "Energy: heat-loss balance, heating and cooling needs, energy class."

    @property
    def regulation(self) -> str:
        return "REH"

    @property
    def section(self) -> str:
        return "envelope"

    @property
    def numeric_fields(self) -> tuple[str, ...]:
        return self._ENVELOPE_FIELDS

    def default_tables(self) -> EnergyTables:
        return EnergyTables()

    def validate_shape(self, project: BuildingProject) -> None:
        super().validate_shape(project)
        for name in ("location", "systems"):
            raw = project.sections.get(name)
            if raw is not None and not isinstance(raw, dict):
                raise InvalidProjectShape(self.name, f"section '{name}' must be a mapping")
        if not usable_area(project):
            raise InvalidProjectShape(self.name, "needs a usable or gross floor area")

    def compute(self, project: BuildingProject, tables: BaseModel | None = None) -> EnergyComputed:
        t = tables if isinstance(tables, EnergyTables) else self.default_tables()
        env = project.section("envelope")
        loc = project.section("location")
        systems = project.section("systems")

        def num(section: dict[str, Any], key: str, default: float = 0.0) -> float:
            value = as_number(section.get(key))
            return default if value is None else value

        ap = usable_area(project) or 1.0
        winter = _zone(loc.get("climate_zone_winter"), t.degree_days, "I1")
        summer = _zone(loc.get("climate_zone_summer"), t.solar_irradiation, "V1")

        # Transmission and ventilation heat-loss coefficient (W/°C)
        wall_area = num(env, "external_wall_area")
        window_area = num(env, "window_area")
        roof_area = num(env, "roof_area")
        transmission = (
            num(env, "external_wall_u_value") * wall_area
            + num(env, "roof_u_value") * roof_area
            + num(env, "floor_u_value") * num(env, "floor_area") * 0.5
            + num(env, "window_u_value") * window_area
            + num(env, "linear_thermal_bridges") * (2 * math.sqrt(max(wall_area, 0.0)) + window_area * 4)
        )
        volume = ap * t.reference_height
        ventilation = t.ventilation_coefficient * num(env, "air_changes_per_hour", t.default_air_changes) * volume
        if env.get("has_hrv") is True:
            ventilation *= 1 - num(env, "hrv_efficiency", 70) / 100
        heat_loss = transmission + ventilation

        solar = (
            t.solar_irradiation[summer]
            * window_area
            * num(env, "window_solar_factor", t.default_solar_factor)
            * t.shading_factor
            * t.framing_factor
        )

        # Heating needs
        season = t.heating_season_months[winter]
        loss_energy = heat_loss * t.degree_days[winter] * 24 / 1000
        internal = t.internal_gains * ap * season * _MONTH_HOURS / 1000
        gains = internal + solar * t.winter_solar_share
        usable_gains = gains * utilization_factor(gains, loss_energy, t.utilization_time_constant)
        heating = max(0.0, (loss_energy - usable_gains) / ap)
        form_factor = (wall_area + roof_area) / ap
        max_heating = t.base_heating_needs[winter] * (0.5 + form_factor * 0.5)

        # Cooling needs
        cooling_hours = t.cooling_months * _MONTH_HOURS
        cooling_gains = solar + t.internal_gains * ap * cooling_hours / 1000
        cooling_loss = heat_loss * (t.cooling_reference_temperature[summer] - 20) * cooling_hours / 1000
        cooling = max(0.0, (cooling_gains - cooling_loss) / ap)
        max_cooling = max(cooling * 1.2, t.min_cooling_limit[summer])

        # Domestic hot water
        dwellings = as_number(project.number_of_dwellings)
        occupants = dwellings * 2.5 if dwellings else ap / 30
        dhw = (4187 * t.dhw_litres_per_person * occupants * 35 * 365) / (3.6e6 * ap)

        # Primary energy
        heating_system = str(systems.get("heating_system") or "none")
        cooling_system = str(systems.get("cooling_system") or "none")
        dhw_system = str(systems.get("dhw_system") or "none")
        elec, fuel = t.electricity_primary_factor, t.fuel_primary_factor
        heating_fpu = elec if heating_system in ("heat_pump", "electric_radiator") else fuel
        if dhw_system in ("heat_pump", "electric", "thermodynamic"):
            dhw_fpu = elec
        elif dhw_system == "solar_thermal":
            dhw_fpu = 0.0
        else:
            dhw_fpu = fuel

        primary = (
            heating / self._efficiency(t, heating_system, systems.get("heating_efficiency")) * heating_fpu
            + cooling / self._efficiency(t, cooling_system, systems.get("cooling_efficiency")) * elec
            + dhw / self._efficiency(t, dhw_system, systems.get("dhw_efficiency")) * dhw_fpu
        )
        if systems.get("has_solar_pv") is True:
            primary -= num(systems, "solar_pv_capacity") * t.pv_yield / ap * elec
        if systems.get("has_solar_thermal") is True:
            primary -= num(systems, "solar_thermal_area") * t.solar_thermal_yield / ap
        primary = max(0.0, primary)

        reference = (max_heating / 3.0) * elec + (max_cooling / 3.0) * elec + (dhw / 0.95) * fuel
        ratio = primary / reference if reference > 0 else 1.0

        return EnergyComputed(
            winter_zone=winter,
            summer_zone=summer,
            transmission_loss=round(transmission, 2),
            ventilation_loss=round(ventilation, 2),
            total_heat_loss=round(heat_loss, 2),
            solar_gains=round(solar, 1),
            heating_needs=round(heating, 2),
            max_heating_needs=round(max_heating, 2),
            cooling_needs=round(cooling, 2),
            max_cooling_needs=round(max_cooling, 2),
            dhw_needs=round(dhw, 2),
            primary_energy=round(primary, 2),
            reference_primary_energy=round(reference, 2),
            energy_ratio=round(ratio, 3),
            energy_class=energy_class(ratio, t),
            max_wall_u_value=t.max_wall_u[winter],
            max_roof_u_value=t.max_roof_u[winter],
            max_window_u_value=t.max_window_u[winter],
            max_solar_factor=t.max_solar_factor[summer],
        )

    @staticmethod
    def _efficiency(tables: EnergyTables, system: str, declared: Any) -> float:
        value = as_number(declared)
        if value is not None and value > 0:
            return value
        return tables.system_efficiency.get(system, 1.0)

    def aliases(self, computed: BaseModel) -> dict[str, Any]:
        if not isinstance(computed, EnergyComputed):
            return {}
        return {"energy_class": computed.energy_class}
