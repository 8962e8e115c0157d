"""EngineSettings — environment profiles and layered configuration.

Settings are merged in this order, later sources winning:
defaults -> profile -> ``.normacheck/config.json`` -> ``.env`` -> environment.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from normacheck.config import CRITICAL_WEIGHT, DEFAULT_RULE_DB, WARNING_WEIGHT

logger = logging.getLogger(__name__)

# All known configuration keys with defaults
_CONFIG_KEYS: dict[str, dict[str, Any]] = {
    "NORMACHECK_ENV": {"default": "development", "description": "Environment profile"},
    "NORMACHECK_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "NORMACHECK_RULE_DB": {"default": DEFAULT_RULE_DB, "description": "Rule database path"},
    "NORMACHECK_CRITICAL_WEIGHT": {"default": CRITICAL_WEIGHT, "description": "Score penalty per critical finding"},
    "NORMACHECK_WARNING_WEIGHT": {"default": WARNING_WEIGHT, "description": "Score penalty per warning"},
    "NORMACHECK_SPECIALTY_WEIGHTS": {"default": "", "description": "Cross-specialty weights, e.g. fire_safety=2,energy=1"},
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "NORMACHECK_ENV": "development",
        "NORMACHECK_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "NORMACHECK_ENV": "production",
        "NORMACHECK_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "NORMACHECK_ENV": "testing",
        "NORMACHECK_LOG_LEVEL": "DEBUG",
        "NORMACHECK_RULE_DB": ":memory:",
    },
}


class ScoringPolicy(BaseModel):
    """Penalty weights used to turn finding counts into a 0-100 score."""

    model_config = ConfigDict(frozen=True)

    critical_weight: float = Field(default=CRITICAL_WEIGHT, gt=0)
    warning_weight: float = Field(default=WARNING_WEIGHT, gt=0)
    specialty_weights: dict[str, float] = Field(default_factory=dict)
    """Per-specialty weight for the project-level score (default 1.0)."""

    @model_validator(mode="after")
    def _critical_outweighs_warning(self) -> ScoringPolicy:
        if self.critical_weight <= self.warning_weight:
            raise ValueError(
                f"critical_weight ({self.critical_weight}) must exceed warning_weight ({self.warning_weight})"
            )
        return self

    def weight_for(self, specialty: str) -> float:
        return self.specialty_weights.get(specialty, 1.0)


class EngineSettings(BaseModel):
    """Resolved engine configuration."""

    env: str = "development"
    log_level: str = "INFO"
    rule_db: str = DEFAULT_RULE_DB
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)


def generate_env_template(project_path: str | Path) -> Path:
    """Create .env.example with all config keys.

    Returns the path to the generated file.
    """
    root = Path(project_path)
    env_path = root / ".env.example"

    lines = ["# normacheck configuration template", "# Copy to .env and fill in values", ""]
    for key, info in _CONFIG_KEYS.items():
        lines.append(f"# {info['description']}")
        lines.append(f"{key}={info['default']}")
        lines.append("")

    env_path.write_text("\n".join(lines), encoding="utf-8")
    return env_path


def load_config(project_path: str | Path = ".") -> dict[str, str]:
    """Load the merged flat configuration dict."""
    root = Path(project_path)
    config: dict[str, str] = {}

    # 1. Defaults
    for key, info in _CONFIG_KEYS.items():
        config[key] = str(info["default"])

    # 2. Profile overrides
    env_name = os.environ.get("NORMACHECK_ENV", config["NORMACHECK_ENV"])
    config.update(_PROFILES.get(env_name, {}))

    # 3. .normacheck/config.json
    config_json = root / ".normacheck" / "config.json"
    if config_json.is_file():
        try:
            data = json.loads(config_json.read_text(encoding="utf-8"))
            for k, v in data.items():
                config[k] = str(v)
        except (json.JSONDecodeError, OSError):
            logger.debug("Could not read config.json", exc_info=True)

    # 4. .env file
    env_file = root / ".env"
    if env_file.is_file():
        try:
            for line in env_file.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" in line:
                    k, v = line.split("=", 1)
                    config[k.strip()] = v.strip()
        except OSError:
            logger.debug("Could not read .env", exc_info=True)

    # 5. Environment variables override all
    for key in _CONFIG_KEYS:
        env_val = os.environ.get(key)
        if env_val is not None:
            config[key] = env_val

    return config


def load_settings(project_path: str | Path = ".") -> EngineSettings:
    """Resolve :class:`EngineSettings` from the layered configuration."""
    config = load_config(project_path)
    scoring = ScoringPolicy(
        critical_weight=float(config["NORMACHECK_CRITICAL_WEIGHT"]),
        warning_weight=float(config["NORMACHECK_WARNING_WEIGHT"]),
        specialty_weights=_parse_weights(config["NORMACHECK_SPECIALTY_WEIGHTS"]),
    )
    return EngineSettings(
        env=config["NORMACHECK_ENV"],
        log_level=config["NORMACHECK_LOG_LEVEL"].upper(),
        rule_db=config["NORMACHECK_RULE_DB"],
        scoring=scoring,
    )


def configure_logging(settings: EngineSettings) -> None:
    """Apply the configured log level to the package logger."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("normacheck").setLevel(level)


def _parse_weights(raw: str) -> dict[str, float]:
    """Parse ``name=weight`` pairs separated by commas."""
    weights: dict[str, float] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part or "=" not in part:
            continue
        name, value = part.split("=", 1)
        try:
            weights[name.strip()] = float(value)
        except ValueError:
            logger.warning("Ignoring invalid specialty weight %r", part)
    return weights
