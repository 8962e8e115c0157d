"""Tests for ComplianceEngine orchestration and the ProjectAnalysis report."""

from __future__ import annotations

from typing import Any

import pytest

from normacheck import ComplianceEngine
from normacheck.errors import InvalidProjectShape, NormacheckError, UnknownSpecialtyError
from normacheck.models.findings import Severity
from normacheck.models.project import BuildingProject
from normacheck.rules.database import RuleDatabase
from normacheck.rules.models import Rule
from normacheck.rules.source import StaticRuleSource
from normacheck.settings import EngineSettings, ScoringPolicy
from normacheck.specialties import FireSafetyTables


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> ComplianceEngine:
    return ComplianceEngine()


@pytest.fixture
def project_data() -> dict[str, Any]:
    return {
        "name": "Edifício Aurora",
        "building_type": "residential",
        "gross_floor_area": 480,
        "usable_floor_area": 400,
        "building_height": 12,
        "number_of_floors": 4,
        "number_of_dwellings": 4,
        "location": {"district": "Porto", "climate_zone_winter": "I2", "climate_zone_summer": "V2"},
        "fire_safety": {"usage_type": "I", "fire_resistance": 30, "has_fire_extinguishers": True},
        "envelope": {"external_wall_u_value": 0.45, "external_wall_area": 320, "window_area": 60},
        "systems": {"heating_system": "heat_pump", "dhw_system": "heat_pump"},
        "electrical": {"number_of_circuits": 3, "rcd_sensitivity_ma": 30},
        "water_drainage": {"supply_pressure": 350, "has_separate_drainage": True},
    }


@pytest.fixture
def project(project_data) -> BuildingProject:
    return BuildingProject.from_dict(project_data)


# ---------------------------------------------------------------------------
# Single specialty
# ---------------------------------------------------------------------------


class TestAnalyzeSpecialty:
    def test_analyzed_result(self, engine, project) -> None:
        result = engine.analyze_specialty(project, "fire_safety")
        assert result.status == "analyzed"
        assert result.computed is not None
        assert result.statistics.checks_performed == len(result.findings)
        assert 0 <= result.overall_score <= 100

    def test_skipped_when_gate_fails(self, engine) -> None:
        result = engine.analyze_specialty(BuildingProject(), "energy")
        assert result.status == "skipped"
        assert result.findings == []
        assert result.computed is None
        assert "envelope.external_wall_u_value" in result.missing_fields

    def test_invalid_shape_raises(self, engine) -> None:
        project = BuildingProject.from_dict({"fire_safety": {"usage_type": "I", "occupant_load": "many"}, "gross_floor_area": 100})
        with pytest.raises(InvalidProjectShape):
            engine.analyze_specialty(project, "fire_safety")

    def test_unknown_specialty(self, engine, project) -> None:
        with pytest.raises(UnknownSpecialtyError):
            engine.analyze_specialty(project, "gas")

    def test_custom_rule_source(self, project) -> None:
        rule = Rule(
            id="X-1",
            specialty="fire_safety",
            regulation="RT-SCIE",
            article="Art. 2.º",
            description="Always true",
            kind="formula",
            value_spec={"formula": "computed.occupant_load >= 0"},
        )
        engine = ComplianceEngine(StaticRuleSource([rule]))
        result = engine.analyze_specialty(project, "fire_safety")
        assert [f.rule_id for f in result.findings] == ["X-1"]
        assert result.overall_score == 100.0

    def test_injected_tables(self, project) -> None:
        engine = ComplianceEngine(tables={"fire_safety": FireSafetyTables(resistance={"*": (30, 45, 90, 120)})})
        result = engine.analyze_specialty(project, "fire_safety")
        assert result.computed.required_resistance == 45


# ---------------------------------------------------------------------------
# Whole project
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_all_specialties_analyzed(self, engine, project) -> None:
        analysis = engine.analyze(project)
        assert list(analysis.results) == ["fire_safety", "energy", "electrical", "water"]
        assert all(r.status == "analyzed" for r in analysis.results.values())
        assert 0 <= analysis.overall_score <= 100
        assert len(analysis.patches) == 4

    def test_failing_circuits_lower_the_score(self, engine, project) -> None:
        electrical = engine.analyze(project).result("electrical")
        assert electrical is not None
        assert any(f.rule_id == "RTIEBT-801-01" and f.severity is Severity.CRITICAL for f in electrical.findings)
        assert electrical.overall_score < 100

    def test_subset_of_specialties(self, engine, project) -> None:
        analysis = engine.analyze(project, ["water"])
        assert list(analysis.results) == ["water"]

    def test_invalid_shape_is_isolated(self, engine, project_data) -> None:
        project_data["fire_safety"] = {"usage_type": "I", "occupant_load": "many"}
        analysis = engine.analyze(BuildingProject.from_dict(project_data))

        fire = analysis.result("fire_safety")
        assert fire.status == "failed"
        assert "occupant_load" in fire.error
        assert len(fire.findings) == 1
        assert fire.findings[0].severity is Severity.INFORMATIVE
        assert all(analysis.results[name].status == "analyzed" for name in ("energy", "electrical", "water"))

    def test_negative_u_value_fails_energy_only(self, engine, project_data) -> None:
        project_data["envelope"]["external_wall_u_value"] = -5
        analysis = engine.analyze(BuildingProject.from_dict(project_data), ["energy", "water"])
        assert analysis.result("energy").status == "failed"
        assert "external_wall_u_value" in analysis.result("energy").error
        assert analysis.result("water").status == "analyzed"

    def test_negative_area_is_not_analysed(self, engine) -> None:
        project = BuildingProject.from_dict({"gross_floor_area": -150, "fire_safety": {"usage_type": "I"}})
        result = engine.analyze(project, ["fire_safety"]).result("fire_safety")
        assert result.status == "failed"
        assert result.computed is None

    def test_skipped_specialties_do_not_count(self, engine) -> None:
        project = BuildingProject.from_dict({"water_drainage": {"supply_pressure": 50, "number_of_bathrooms": 1}, "number_of_dwellings": 1})
        analysis = engine.analyze(project)
        assert analysis.result("water").status == "analyzed"
        assert analysis.result("fire_safety").status == "skipped"
        assert analysis.overall_score == analysis.result("water").overall_score

    def test_empty_project(self, engine) -> None:
        analysis = engine.analyze(BuildingProject())
        assert all(r.status == "skipped" for r in analysis.results.values())
        assert analysis.overall_score == 100.0
        assert analysis.patches == []

    def test_project_untouched_without_enrich(self, engine, project) -> None:
        before = project.model_dump()
        engine.analyze(project)
        assert project.model_dump() == before

    def test_enrich_in_place(self, engine, project) -> None:
        engine.analyze(project, enrich=True)
        assert "computed_risk_category" in project.section("fire_safety")
        assert "computed_energy_class" in project.section("envelope")
        assert "computed_min_circuits" in project.section("electrical")
        assert "computed_daily_consumption" in project.section("water_drainage")

    def test_enrich_twice_is_idempotent(self, engine, project) -> None:
        engine.analyze(project, enrich=True)
        once = project.model_dump()
        engine.analyze(project, enrich=True)
        assert project.model_dump() == once

    def test_readiness_reported(self, engine, project) -> None:
        analysis = engine.analyze(project)
        assert [r.specialty for r in analysis.readiness] == ["fire_safety", "energy", "electrical", "water"]

    def test_specialty_weights_from_settings(self, project) -> None:
        settings = EngineSettings(scoring=ScoringPolicy(specialty_weights={"energy": 0, "fire_safety": 0, "water": 0}))
        analysis = ComplianceEngine(settings=settings).analyze(project)
        assert analysis.overall_score == analysis.result("electrical").overall_score


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class TestReport:
    def test_markdown(self, engine, project) -> None:
        md = engine.analyze(project).to_markdown()
        assert md.startswith("# Compliance Report: Edifício Aurora")
        assert "## Specialties" in md
        assert "## Violations" in md
        assert "RTIEBT" in md

    def test_markdown_lists_skipped(self, engine) -> None:
        md = engine.analyze(BuildingProject()).to_markdown()
        assert "## Not Analysed" in md
        assert "skipped" in md

    def test_to_dict_is_json_compatible(self, engine, project) -> None:
        data = engine.analyze(project).to_dict()
        assert data["project_name"] == "Edifício Aurora"
        fire = data["results"]["fire_safety"]
        assert fire["computed"]["risk_category"] == 2
        assert fire["findings"][0]["severity"] in {"pass", "informative", "warning", "critical"}
        assert data["statistics"]["checks_performed"] == sum(
            r["statistics"]["checks_performed"] for r in data["results"].values()
        )

    def test_merged_findings(self, engine, project) -> None:
        analysis = engine.analyze(project)
        assert len(analysis.findings) == sum(len(r.findings) for r in analysis.results.values())


# ---------------------------------------------------------------------------
# Rule management
# ---------------------------------------------------------------------------


class TestRuleManagement:
    def test_database_backed_engine_matches_static(self, project) -> None:
        static = ComplianceEngine().analyze(project)
        db = ComplianceEngine(RuleDatabase(":memory:")).analyze(project)
        assert [f.id for f in db.findings] == [f.id for f in static.findings]

    def test_add_and_search_rules(self) -> None:
        engine = ComplianceEngine(RuleDatabase(":memory:"))
        engine.add_rule(Rule(
            id="SCIE-TEST-01",
            specialty="fire_safety",
            regulation="RT-SCIE",
            article="Art. 99.º",
            description="Smoke curtain in atrium",
            kind="formula",
            value_spec={"formula": "1 == 1"},
        ))
        assert any(r.id == "SCIE-TEST-01" for r in engine.get_rules("fire_safety"))
        assert [r.id for r in engine.search_rules("curtain")] == ["SCIE-TEST-01"]

    def test_static_source_rejects_editing(self, engine) -> None:
        with pytest.raises(NormacheckError):
            engine.search_rules("fire")

    def test_get_rules_from_static_source(self, engine) -> None:
        rules = engine.get_rules()
        assert {r.specialty for r in rules} == {"fire_safety", "energy", "electrical", "water"}
        assert all(r.specialty == "water" for r in engine.get_rules("water"))
