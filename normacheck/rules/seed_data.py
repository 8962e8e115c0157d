"""Built-in rule set for the four supported specialties.

Paths prefixed with ``computed.`` refer to the values derived by the
specialty's cascade.  Numeric checks on project fields carry a guard so a
field the user has not filled in yet produces no finding rather than a
spurious failure.
"""

from __future__ import annotations

from typing import Any

from normacheck.rules.models import Rule

_FIRE = "fire_safety"
_ENERGY = "energy"
_ELECTRICAL = "electrical"
_WATER = "water"


def _provided(path: str) -> str:
    """Guard that holds once a numeric field has a non-zero value."""
    return f"default({path}, 0) > 0"


def _declared(path: str) -> str:
    """Guard that holds once a field has any value."""
    return f"default({path}, null) != null"


_NEW_RESIDENTIAL = "is_rehabilitation == false and default(building_type, '') in ['residential', 'mixed']"


FIRE_SAFETY_RULES: list[dict[str, Any]] = [
    {
        "id": "SCIE-12-01",
        "regulation": "DL 220/2008",
        "article": "Art. 12.º + Anexo II",
        "category": "risk",
        "description": "Risk category determined",
        "kind": "formula",
        "value_spec": {"formula": "computed.risk_category >= 1"},
        "tier": "informative",
    },
    {
        "id": "SCIE-15-01",
        "regulation": "RT-SCIE",
        "article": "Art. 15.º",
        "category": "structure",
        "description": "Fire resistance of the load-bearing structure",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.fire_resistance",
            "operator": ">=",
            "reference": "computed.required_resistance",
            "unit": "min",
            "condition": _provided("fire_safety.fire_resistance"),
        },
        "remediation": "Increase the structural fire resistance, e.g. with passive protection boards or sprayed concrete, or re-check the structural design.",
    },
    {
        "id": "SCIE-18-01",
        "regulation": "RT-SCIE",
        "article": "Art. 18.º",
        "category": "compartments",
        "description": "Fire compartment area",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.compartment_area",
            "operator": "<=",
            "reference": "computed.max_compartment_area",
            "unit": "m²",
            "condition": _provided("fire_safety.compartment_area"),
        },
        "remediation": "Split the space into smaller compartments with fire-rated walls and fire doors.",
    },
    {
        "id": "SCIE-18-02",
        "regulation": "RT-SCIE",
        "article": "Art. 18.º",
        "category": "compartments",
        "description": "Fire rating of compartment walls",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.compartment_wall_ei",
            "operator": ">=",
            "reference": "computed.required_compartment_ei",
            "unit": "min",
            "condition": _provided("fire_safety.compartment_wall_ei"),
        },
    },
    {
        "id": "SCIE-54-01",
        "regulation": "RT-SCIE",
        "article": "Art. 54.º",
        "category": "evacuation",
        "description": "Number of exits",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.number_of_exits",
            "operator": ">=",
            "reference": "computed.min_exits_required",
            "condition": _provided("fire_safety.number_of_exits"),
        },
        "remediation": "Add exits, distributed so as to minimise the evacuation distance.",
    },
    {
        "id": "SCIE-58-01",
        "regulation": "RT-SCIE",
        "article": "Art. 58.º",
        "category": "evacuation",
        "description": "Width of evacuation paths",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.evacuation_width",
            "operator": ">=",
            "reference": "computed.required_evacuation_width",
            "unit": "m",
            "condition": _provided("fire_safety.evacuation_width"),
        },
        "remediation": "Widen the evacuation paths: one unit of passage is 0.60 m, with 0.90 m minimum for a single unit.",
    },
    {
        "id": "SCIE-56-01",
        "regulation": "RT-SCIE",
        "article": "Art. 56.º",
        "category": "evacuation",
        "description": "Maximum evacuation distance",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.evacuation_distance",
            "operator": "<=",
            "reference": "computed.max_evacuation_distance",
            "unit": "m",
            "condition": _provided("fire_safety.evacuation_distance"),
        },
        "remediation": "Add alternative exits or install sprinklers, which allow a 50% longer distance.",
    },
    {
        "id": "SCIE-56-02",
        "regulation": "RT-SCIE",
        "article": "Art. 56.º",
        "category": "evacuation",
        "description": "Dead-end distance",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.dead_end_distance",
            "operator": "<=",
            "reference": "computed.max_dead_end_distance",
            "unit": "m",
            "condition": _provided("fire_safety.dead_end_distance"),
        },
    },
    {
        "id": "SCIE-41-01",
        "regulation": "RT-SCIE",
        "article": "Art. 41.º",
        "category": "materials",
        "description": "Reaction to fire of escape-route linings",
        "kind": "lookup",
        "value_spec": {
            "field": "fire_safety.escape_route_reaction_class",
            "key_field": "computed.risk_category",
            "table": {
                "1": ["A1", "A2", "B", "C"],
                "2": ["A1", "A2", "B"],
                "3": ["A1", "A2"],
                "4": ["A1", "A2"],
            },
            "condition": _declared("fire_safety.escape_route_reaction_class"),
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-173-01",
        "regulation": "RT-SCIE",
        "article": "Art. 173.º",
        "category": "equipment",
        "description": "Automatic sprinkler system",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.sprinklers_required == true",
            "formula": "default(fire_safety.has_sprinklers, false) == true",
        },
        "remediation": "Install a fixed automatic water extinguishing system with pumping station and fire water reserve.",
    },
    {
        "id": "SCIE-125-01",
        "regulation": "RT-SCIE",
        "article": "Art. 125.º",
        "category": "equipment",
        "description": "Automatic fire detection system",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.detection_required == true",
            "formula": "default(fire_safety.has_fire_detection, false) == true",
        },
        "remediation": "Install an automatic fire detection system with control panel, detectors, manual call points and sounders.",
    },
    {
        "id": "SCIE-164-01",
        "regulation": "RT-SCIE",
        "article": "Art. 164.º",
        "category": "equipment",
        "description": "Armed fire hose network",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.ria_required == true",
            "formula": "default(fire_safety.has_ria, false) == true",
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-169-01",
        "regulation": "RT-SCIE",
        "article": "Art. 169.º",
        "category": "equipment",
        "description": "Dry riser",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.dry_riser_required == true",
            "formula": "default(fire_safety.has_dry_riser, false) == true",
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-100-01",
        "regulation": "RT-SCIE",
        "article": "Art. 100.º",
        "category": "equipment",
        "description": "Firefighter elevator",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.firefighter_elevator_required == true",
            "formula": "default(fire_safety.has_firefighter_elevator, false) == true",
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-113-01",
        "regulation": "RT-SCIE",
        "article": "Art. 113.º",
        "category": "equipment",
        "description": "Emergency lighting",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.detection_required == true",
            "formula": "default(fire_safety.has_emergency_lighting, false) == true",
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-163-01",
        "regulation": "RT-SCIE",
        "article": "Art. 163.º",
        "category": "equipment",
        "description": "Portable fire extinguishers",
        "kind": "formula",
        "value_spec": {"formula": "default(fire_safety.has_fire_extinguishers, false) == true"},
        "remediation": "Install 6 kg ABC powder extinguishers, one per 200 m² and at least two, within 15 m walking distance.",
    },
    {
        "id": "SCIE-163-02",
        "regulation": "RT-SCIE",
        "article": "Art. 163.º",
        "category": "equipment",
        "description": "Number of portable fire extinguishers",
        "kind": "threshold",
        "value_spec": {
            "field": "fire_safety.number_of_extinguishers",
            "operator": ">=",
            "reference": "computed.required_extinguishers",
            "condition": _provided("fire_safety.number_of_extinguishers"),
        },
    },
    {
        "id": "SCIE-194-01",
        "regulation": "RT-SCIE",
        "article": "Art. 194.º",
        "category": "management",
        "description": "Fire safety delegate",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.risk_category >= 2",
            "formula": "default(fire_safety.has_security_delegate, false) == true",
        },
        "tier": "recommended",
    },
    {
        "id": "SCIE-196-01",
        "regulation": "RT-SCIE",
        "article": "Art. 196.º",
        "category": "management",
        "description": "Internal safety plan",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.risk_category >= 3",
            "formula": "default(fire_safety.has_security_plan, false) == true",
        },
        "tier": "recommended",
    },
]


ENERGY_RULES: list[dict[str, Any]] = [
    {
        "id": "REH-UW-01",
        "regulation": "REH",
        "article": "Portaria 349-B/2013",
        "category": "envelope",
        "description": "Thermal transmittance of external walls",
        "kind": "threshold",
        "value_spec": {
            "field": "envelope.external_wall_u_value",
            "operator": "<=",
            "reference": "computed.max_wall_u_value",
            "unit": "W/m².K",
            "condition": _provided("envelope.external_wall_u_value"),
        },
        "remediation": "Add or thicken the external wall insulation.",
    },
    {
        "id": "REH-UR-01",
        "regulation": "REH",
        "article": "Portaria 349-B/2013",
        "category": "envelope",
        "description": "Thermal transmittance of roofs",
        "kind": "threshold",
        "value_spec": {
            "field": "envelope.roof_u_value",
            "operator": "<=",
            "reference": "computed.max_roof_u_value",
            "unit": "W/m².K",
            "condition": _provided("envelope.roof_u_value"),
        },
    },
    {
        "id": "REH-UJ-01",
        "regulation": "REH",
        "article": "Portaria 349-B/2013",
        "category": "envelope",
        "description": "Thermal transmittance of windows",
        "kind": "threshold",
        "value_spec": {
            "field": "envelope.window_u_value",
            "operator": "<=",
            "reference": "computed.max_window_u_value",
            "unit": "W/m².K",
            "condition": _provided("envelope.window_u_value"),
        },
    },
    {
        "id": "REH-GV-01",
        "regulation": "REH",
        "article": "Portaria 349-B/2013",
        "category": "envelope",
        "description": "Solar factor of glazing",
        "kind": "threshold",
        "value_spec": {
            "field": "envelope.window_solar_factor",
            "operator": "<=",
            "reference": "computed.max_solar_factor",
            "condition": _provided("envelope.window_solar_factor"),
        },
        "tier": "recommended",
    },
    {
        "id": "REH-26-01",
        "regulation": "REH",
        "article": "Art. 26.º",
        "category": "thermal",
        "description": "Heating energy needs",
        "kind": "formula",
        "value_spec": {"formula": "computed.heating_needs <= computed.max_heating_needs", "unit": "kWh/m².year"},
        "remediation": "Improve envelope insulation, reduce thermal bridges or add heat recovery to the ventilation.",
    },
    {
        "id": "REH-26-02",
        "regulation": "REH",
        "article": "Art. 26.º",
        "category": "thermal",
        "description": "Cooling energy needs",
        "kind": "formula",
        "value_spec": {"formula": "computed.cooling_needs <= computed.max_cooling_needs", "unit": "kWh/m².year"},
        "tier": "recommended",
    },
    {
        "id": "SCE-30-01",
        "regulation": "SCE",
        "article": "Art. 30.º",
        "category": "certification",
        "description": "Minimum energy class B- for new residential buildings",
        "kind": "conditional",
        "value_spec": {"condition": _NEW_RESIDENTIAL, "formula": "computed.energy_ratio <= 1.0"},
        "remediation": "Improve the envelope, install more efficient systems or add renewable sources.",
    },
    {
        "id": "SCE-28-01",
        "regulation": "SCE",
        "article": "Art. 28.º",
        "category": "certification",
        "description": "Primary energy against the reference building",
        "kind": "conditional",
        "value_spec": {"condition": "is_rehabilitation == false", "formula": "computed.primary_energy <= computed.reference_primary_energy"},
    },
    {
        "id": "SCE-28-02",
        "regulation": "SCE",
        "article": "Art. 28.º",
        "category": "certification",
        "description": "Primary energy against the reference building (rehabilitation)",
        "kind": "conditional",
        "value_spec": {"condition": "is_rehabilitation == true", "formula": "computed.primary_energy <= computed.reference_primary_energy"},
        "tier": "recommended",
    },
    {
        "id": "REH-27-01",
        "regulation": "REH",
        "article": "Art. 27.º, n.º 4",
        "category": "renewables",
        "description": "Solar collectors in new residential buildings",
        "kind": "conditional",
        "value_spec": {
            "condition": _NEW_RESIDENTIAL,
            "formula": "default(systems.has_solar_thermal, false) or default(systems.has_solar_pv, false)",
        },
        "remediation": "Install south-facing solar thermal collectors, or a photovoltaic system or dedicated heat pump for hot water.",
    },
    {
        "id": "SCE-16-01",
        "regulation": "SCE",
        "article": "Art. 16.º",
        "category": "renewables",
        "description": "Nearly zero-energy building (new buildings from 2021)",
        "kind": "conditional",
        "value_spec": {
            "condition": "is_rehabilitation == false and default(year_built, 0) >= 2021",
            "formula": "default(systems.has_solar_thermal, false) or default(systems.has_solar_pv, false)",
        },
        "tier": "recommended",
    },
]


ELECTRICAL_RULES: list[dict[str, Any]] = [
    {
        "id": "RTIEBT-PC-01",
        "regulation": "RTIEBT",
        "article": "Secção 311",
        "category": "supply",
        "description": "Contracted power",
        "kind": "threshold",
        "value_spec": {
            "field": "electrical.contracted_power",
            "operator": ">=",
            "reference": "computed.recommended_power",
            "unit": "kVA",
            "condition": _provided("electrical.contracted_power"),
        },
        "tier": "recommended",
    },
    {
        "id": "RTIEBT-SUP-01",
        "regulation": "RTIEBT",
        "article": "Secção 312",
        "category": "supply",
        "description": "Supply type",
        "kind": "conditional",
        "value_spec": {
            "condition": _declared("electrical.supply_type"),
            "formula": "electrical.supply_type == computed.recommended_supply",
        },
        "tier": "recommended",
    },
    {
        "id": "RTIEBT-V-01",
        "regulation": "RTIEBT",
        "article": "Secção 312",
        "category": "supply",
        "description": "Nominal voltage for the supply type",
        "kind": "lookup",
        "value_spec": {
            "field": "electrical.voltage",
            "key_field": "electrical.supply_type",
            "table": {"single_phase": [230], "three_phase": [400]},
            "condition": f"{_declared('electrical.supply_type')} and {_provided('electrical.voltage')}",
        },
    },
    {
        "id": "RTIEBT-801-01",
        "regulation": "RTIEBT",
        "article": "Secção 801.2.1",
        "category": "circuits",
        "description": "Minimum number of final circuits",
        "kind": "threshold",
        "value_spec": {
            "field": "electrical.number_of_circuits",
            "operator": ">=",
            "reference": "computed.min_circuits",
            "condition": _provided("electrical.number_of_circuits"),
        },
    },
    {
        "id": "RTIEBT-531-01",
        "regulation": "RTIEBT",
        "article": "Secção 531.2",
        "category": "protection",
        "description": "Number of residual-current devices",
        "kind": "threshold",
        "value_spec": {
            "field": "electrical.number_of_rcds",
            "operator": ">=",
            "reference": "computed.min_rcd_count",
            "condition": _provided("electrical.number_of_rcds"),
        },
    },
    {
        "id": "RTIEBT-531-02",
        "regulation": "RTIEBT",
        "article": "Secção 531.2",
        "category": "protection",
        "description": "Residual-current device sensitivity",
        "kind": "range",
        "value_spec": {
            "field": "electrical.rcd_sensitivity_ma",
            "max": 30,
            "unit": "mA",
            "condition": _provided("electrical.rcd_sensitivity_ma"),
        },
    },
    {
        "id": "RTIEBT-542-01",
        "regulation": "RTIEBT",
        "article": "Secção 542",
        "category": "earthing",
        "description": "Earthing electrode resistance",
        "kind": "range",
        "value_spec": {
            "field": "electrical.earthing_resistance",
            "max": 100,
            "unit": "Ω",
            "condition": _provided("electrical.earthing_resistance"),
        },
        "tier": "recommended",
    },
    {
        "id": "RTIEBT-523-01",
        "regulation": "RTIEBT",
        "article": "Secção 523",
        "category": "cables",
        "description": "Cross-section of the main supply cable",
        "kind": "threshold",
        "value_spec": {
            "field": "electrical.main_cable_section",
            "operator": ">=",
            "reference": "computed.main_cable_section",
            "unit": "mm²",
            "condition": _provided("electrical.main_cable_section"),
        },
    },
    {
        "id": "RTIEBT-LIC-01",
        "regulation": "RTIEBT",
        "article": "DL 96/2017",
        "category": "licensing",
        "description": "Installations above 41.4 kVA need a licensed project and inspection",
        "kind": "formula",
        "value_spec": {"formula": "computed.needs_approval == false"},
        "tier": "informative",
    },
]


WATER_RULES: list[dict[str, Any]] = [
    {
        "id": "RGSP-87-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 87.º",
        "category": "supply",
        "description": "Service pressure at the supply point",
        "kind": "range",
        "value_spec": {
            "field": "water_drainage.supply_pressure",
            "min": 100,
            "max": 600,
            "unit": "kPa",
            "condition": _provided("water_drainage.supply_pressure"),
        },
    },
    {
        "id": "RGSP-94-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 94.º",
        "category": "supply",
        "description": "Flow velocity in supply pipes",
        "kind": "range",
        "value_spec": {
            "field": "water_drainage.flow_velocity",
            "min": 0.5,
            "max": 2.0,
            "unit": "m/s",
            "condition": _provided("water_drainage.flow_velocity"),
        },
        "tier": "recommended",
    },
    {
        "id": "RGSP-95-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 95.º",
        "category": "supply",
        "description": "Diameter of the main supply pipe",
        "kind": "threshold",
        "value_spec": {
            "field": "water_drainage.main_pipe_diameter",
            "operator": ">=",
            "reference": "computed.main_pipe_diameter",
            "unit": "mm",
            "condition": _provided("water_drainage.main_pipe_diameter"),
        },
    },
    {
        "id": "RGSP-95-02",
        "regulation": "RGSPPDADAR",
        "article": "Art. 95.º",
        "category": "supply",
        "description": "Diameter of the hot water pipe",
        "kind": "threshold",
        "value_spec": {
            "field": "water_drainage.hot_water_pipe_diameter",
            "operator": ">=",
            "reference": "computed.hot_water_pipe_diameter",
            "unit": "mm",
            "condition": _provided("water_drainage.hot_water_pipe_diameter"),
        },
        "tier": "recommended",
    },
    {
        "id": "RGSP-218-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 218.º",
        "category": "drainage",
        "description": "Diameter of the main drainage pipe",
        "kind": "threshold",
        "value_spec": {
            "field": "water_drainage.drainage_pipe_diameter",
            "operator": ">=",
            "reference": "computed.drainage_pipe_diameter",
            "unit": "mm",
            "condition": _provided("water_drainage.drainage_pipe_diameter"),
        },
    },
    {
        "id": "RGSP-116-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 116.º",
        "category": "drainage",
        "description": "Separate domestic and rainwater drainage",
        "kind": "formula",
        "value_spec": {"formula": "default(water_drainage.has_separate_drainage, false) == true"},
        "tier": "recommended",
    },
    {
        "id": "RGSP-ST-01",
        "regulation": "RGSPPDADAR",
        "article": "Art. 98.º",
        "category": "storage",
        "description": "Storage tank for multi-dwelling buildings",
        "kind": "conditional",
        "value_spec": {
            "condition": "computed.storage_tank_required == true",
            "formula": "default(water_drainage.storage_tank_capacity, 0) >= computed.storage_tank_size",
            "unit": "L",
        },
        "tier": "recommended",
    },
]


def _build(specialty: str, entries: list[dict[str, Any]]) -> list[Rule]:
    return [Rule.model_validate({**entry, "specialty": specialty}) for entry in entries]


SEED_RULES: list[Rule] = (
    _build(_FIRE, FIRE_SAFETY_RULES)
    + _build(_ENERGY, ENERGY_RULES)
    + _build(_ELECTRICAL, ELECTRICAL_RULES)
    + _build(_WATER, WATER_RULES)
)
