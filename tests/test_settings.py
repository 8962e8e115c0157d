"""Tests for layered configuration and logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from normacheck.settings import (
    EngineSettings,
    ScoringPolicy,
    configure_logging,
    generate_env_template,
    load_config,
    load_settings,
)

_KEYS = (
    "NORMACHECK_ENV",
    "NORMACHECK_LOG_LEVEL",
    "NORMACHECK_RULE_DB",
    "NORMACHECK_CRITICAL_WEIGHT",
    "NORMACHECK_WARNING_WEIGHT",
    "NORMACHECK_SPECIALTY_WEIGHTS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadConfig:
    def test_defaults(self, tmp_path) -> None:
        settings = load_settings(tmp_path)
        assert settings.env == "development"
        assert settings.log_level == "DEBUG"
        assert settings.rule_db == ":memory:"
        assert settings.scoring == ScoringPolicy()

    def test_profile(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("NORMACHECK_ENV", "production")
        assert load_settings(tmp_path).log_level == "WARNING"

    def test_config_json(self, tmp_path) -> None:
        (tmp_path / ".normacheck").mkdir()
        (tmp_path / ".normacheck" / "config.json").write_text(
            json.dumps({"NORMACHECK_CRITICAL_WEIGHT": 2.0}), encoding="utf-8"
        )
        assert load_settings(tmp_path).scoring.critical_weight == 2.0

    def test_env_file_overrides_config_json(self, tmp_path) -> None:
        (tmp_path / ".normacheck").mkdir()
        (tmp_path / ".normacheck" / "config.json").write_text(
            json.dumps({"NORMACHECK_RULE_DB": "a.db"}), encoding="utf-8"
        )
        (tmp_path / ".env").write_text("# comment\nNORMACHECK_RULE_DB = b.db\n", encoding="utf-8")
        assert load_config(tmp_path)["NORMACHECK_RULE_DB"] == "b.db"

    def test_environment_wins(self, tmp_path, monkeypatch) -> None:
        (tmp_path / ".env").write_text("NORMACHECK_WARNING_WEIGHT=0.5\n", encoding="utf-8")
        monkeypatch.setenv("NORMACHECK_WARNING_WEIGHT", "0.25")
        assert load_settings(tmp_path).scoring.warning_weight == 0.25

    def test_broken_config_json_is_ignored(self, tmp_path) -> None:
        (tmp_path / ".normacheck").mkdir()
        (tmp_path / ".normacheck" / "config.json").write_text("{not json", encoding="utf-8")
        assert load_settings(tmp_path).env == "development"

    def test_specialty_weights(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("NORMACHECK_SPECIALTY_WEIGHTS", "fire_safety=2, energy=0.5, bogus, water=x")
        policy = load_settings(tmp_path).scoring
        assert policy.specialty_weights == {"fire_safety": 2.0, "energy": 0.5}
        assert policy.weight_for("electrical") == 1.0


class TestScoringPolicy:
    def test_weights_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ScoringPolicy(critical_weight=0)

    @pytest.mark.parametrize(("critical", "warning"), [(0.5, 2.0), (1.0, 1.0)])
    def test_critical_must_outweigh_warning(self, critical, warning) -> None:
        with pytest.raises(ValueError, match="must exceed warning_weight"):
            ScoringPolicy(critical_weight=critical, warning_weight=warning)

    def test_inverted_weights_from_environment_rejected(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("NORMACHECK_WARNING_WEIGHT", "2.0")
        with pytest.raises(ValueError):
            load_settings(tmp_path)


class TestEnvTemplate:
    def test_lists_every_key(self, tmp_path) -> None:
        path = generate_env_template(tmp_path)
        text = path.read_text(encoding="utf-8")
        for key in _KEYS:
            assert f"{key}=" in text


class TestConfigureLogging:
    def test_sets_package_level(self) -> None:
        configure_logging(EngineSettings(log_level="WARNING"))
        assert logging.getLogger("normacheck").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(EngineSettings(log_level="CHATTY"))
        assert logging.getLogger("normacheck").level == logging.INFO
