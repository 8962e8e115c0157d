"""Tests for the readiness gate and the section-completion reporter."""

from __future__ import annotations

import pytest

from normacheck.errors import UnknownSpecialtyError
from normacheck.models.project import BuildingProject
from normacheck.readiness import (
    SPECIALTY_SIGNALS,
    calculate_section_completion,
    can_analyze,
    compute_engine_readiness,
    missing_fields,
    section_fields,
)

SPECIALTIES = list(SPECIALTY_SIGNALS)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def empty() -> BuildingProject:
    return BuildingProject()


@pytest.fixture
def sized() -> BuildingProject:
    return BuildingProject.from_dict({"building_type": "residential", "gross_floor_area": 120})


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


class TestCanAnalyze:
    @pytest.mark.parametrize("specialty", SPECIALTIES)
    def test_empty_project_is_not_ready(self, empty, specialty) -> None:
        assert can_analyze(empty, specialty) is False

    @pytest.mark.parametrize("specialty", SPECIALTIES)
    def test_zero_dimensions_are_absent(self, specialty) -> None:
        project = BuildingProject.from_dict({
            "gross_floor_area": 0,
            "building_height": 0,
            "number_of_floors": 0,
            "fire_safety": {"usage_type": ""},
        })
        assert can_analyze(project, specialty) is False

    @pytest.mark.parametrize("specialty", SPECIALTIES)
    def test_building_type_and_dimension(self, sized, specialty) -> None:
        assert can_analyze(sized, specialty) is True

    @pytest.mark.parametrize("dimension", ["gross_floor_area", "usable_floor_area", "building_height", "number_of_floors"])
    def test_any_dimension_counts(self, dimension) -> None:
        project = BuildingProject.from_dict({"building_type": "commercial", dimension: 3})
        assert can_analyze(project, "energy") is True

    def test_building_type_alone_is_not_enough(self) -> None:
        assert can_analyze(BuildingProject(building_type="residential"), "fire_safety") is False

    def test_dimension_alone_is_not_enough(self) -> None:
        assert can_analyze(BuildingProject(gross_floor_area=100), "fire_safety") is False

    @pytest.mark.parametrize(
        ("specialty", "section", "field", "value"),
        [
            ("fire_safety", "fire_safety", "usage_type", "I"),
            ("energy", "envelope", "external_wall_u_value", 0.4),
            ("electrical", "electrical", "earthing_system", "TT"),
            ("electrical", "electrical", "voltage", 230),
            ("water", "water_drainage", "number_of_bathrooms", 2),
        ],
    )
    def test_discriminant_opens_only_its_gate(self, specialty, section, field, value) -> None:
        project = BuildingProject.from_dict({section: {field: value}})
        assert can_analyze(project, specialty) is True
        others = [name for name in SPECIALTIES if SPECIALTY_SIGNALS[name].section != section]
        assert not any(can_analyze(project, name) for name in others)

    def test_unknown_specialty(self, empty) -> None:
        with pytest.raises(UnknownSpecialtyError):
            can_analyze(empty, "acoustics")


class TestMissingFields:
    def test_ready_project_misses_nothing(self, sized) -> None:
        assert missing_fields(sized, "water") == []

    def test_empty_project_lists_every_alternative(self, empty) -> None:
        missing = missing_fields(empty, "electrical")
        assert "electrical.total_power" in missing
        assert "building_type" in missing
        assert "gross_floor_area" in missing
        assert "number_of_floors" in missing

    def test_only_dimension_missing(self) -> None:
        missing = missing_fields(BuildingProject(building_type="residential"), "fire_safety")
        assert "building_type" not in missing
        assert "building_height" in missing


# ---------------------------------------------------------------------------
# Completion reporter
# ---------------------------------------------------------------------------


class TestSectionCompletion:
    def test_empty_project(self, empty) -> None:
        completion = calculate_section_completion(empty)
        assert completion["general"].total == 8
        assert all(c.status == "empty" and c.percentage == 0 for c in completion.values())

    def test_general_section_partial(self) -> None:
        project = BuildingProject.from_dict({
            "name": "Casa",
            "building_type": "residential",
            "gross_floor_area": 150,
            "location": {"district": "Lisboa"},
        })
        general = calculate_section_completion(project)["general"]
        assert general.filled == 4
        assert general.percentage == 50
        assert general.status == "partial"

    def test_complete_section(self) -> None:
        project = BuildingProject.from_dict({
            "systems": {"heating_system": "heat_pump", "cooling_system": "none", "dhw_system": "solar_thermal"},
        })
        systems = calculate_section_completion(project)["systems"]
        assert systems.percentage == 100
        assert systems.status == "complete"

    def test_explicit_false_counts_as_filled(self) -> None:
        project = BuildingProject.from_dict({"gas": {"has_gas_installation": False}})
        assert calculate_section_completion(project)["gas"].filled == 1

    def test_discriminants_are_counted(self) -> None:
        for signals in SPECIALTY_SIGNALS.values():
            fields = section_fields(signals.section)
            for path in signals.discriminants:
                assert path.split(".", 1)[1] in fields

    def test_malformed_section_counts_as_empty(self) -> None:
        project = BuildingProject(sections={"electrical": "n/a"})
        assert calculate_section_completion(project)["electrical"].filled == 0


class TestEngineReadiness:
    def test_one_entry_per_specialty(self, sized) -> None:
        readiness = compute_engine_readiness(sized)
        assert [r.specialty for r in readiness] == SPECIALTIES
        assert all(r.ready for r in readiness)

    def test_not_ready_lists_missing(self, empty) -> None:
        readiness = {r.specialty: r for r in compute_engine_readiness(empty)}
        assert readiness["water"].ready is False
        assert readiness["water"].section == "water_drainage"
        assert "water_drainage.supply_pressure" in readiness["water"].missing_fields
