"""Abstract SpecialtyAnalyzer interface.

Every specialty implements this interface so the engine can gate, shape
check, compute and enrich it without knowing its regulation.
"""

from __future__ import annotations

import abc
import math
from typing import Any

from pydantic import BaseModel

from normacheck.errors import InvalidProjectShape
from normacheck.models.project import BuildingProject, as_number


class SpecialtyAnalyzer(abc.ABC):
    """Base class for all specialty analyzers."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short specialty identifier (e.g. 'fire_safety', 'energy')."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Human-readable description of the specialty."""

    @property
    @abc.abstractmethod
    def regulation(self) -> str:
        """Main regulation the specialty checks against."""

    @property
    @abc.abstractmethod
    def section(self) -> str:
        """Project section holding the specialty's own inputs."""

    @property
    def numeric_fields(self) -> tuple[str, ...]:
        """Section fields that must be numeric when present."""
        return ()

    @abc.abstractmethod
    def default_tables(self) -> BaseModel:
        """Return the regulation tables used when none are injected."""

    @abc.abstractmethod
    def compute(self, project: BuildingProject, tables: BaseModel | None = None) -> BaseModel:
        """Derive the specialty's computed values.

        Pure and deterministic.  Missing optional inputs take documented
        defaults; this method never raises for a project that passed
        :meth:`validate_shape`.
        """

    def aliases(self, computed: BaseModel) -> dict[str, Any]:
        """Canonical alias keys the enrichment writer adds when absent."""
        return {}

    def validate_shape(self, project: BuildingProject) -> None:
        """Raise :class:`InvalidProjectShape` when the project cannot be computed.

        The default checks that the specialty's section is a mapping and
        that its numeric fields and the general dimensions hold
        non-negative numbers.  Subclasses add the primitives they cannot default.
        """
        raw = project.sections.get(self.section)
        if raw is not None and not isinstance(raw, dict):
            raise InvalidProjectShape(self.name, f"section '{self.section}' must be a mapping, got {type(raw).__name__}")

        for field in ("gross_floor_area", "usable_floor_area", "building_height", "number_of_floors", "number_of_dwellings"):
            _check_numeric(self.name, field, getattr(project, field))

        section = project.section(self.section)
        for field in self.numeric_fields:
            _check_numeric(self.name, f"{self.section}.{field}", section.get(field))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def _check_numeric(specialty: str, path: str, value: Any) -> None:
    if value is None or value == "":
        return
    number = as_number(value)
    if number is None:
        raise InvalidProjectShape(specialty, f"'{path}' must be numeric, got {value!r}")
    if not math.isfinite(number):
        raise InvalidProjectShape(specialty, f"'{path}' must be a finite number, got {value!r}")
    if number < 0:
        raise InvalidProjectShape(specialty, f"'{path}' must not be negative, got {value!r}")


def floor_area(project: BuildingProject) -> float:
    """Gross floor area, falling back to the usable area, else 0."""
    return as_number(project.gross_floor_area) or as_number(project.usable_floor_area) or 0.0


def usable_area(project: BuildingProject) -> float:
    """Usable floor area, falling back to the gross area, else 0."""
    return as_number(project.usable_floor_area) or as_number(project.gross_floor_area) or 0.0


def first_at_least(values: list[float] | tuple[float, ...], target: float, fallback: float) -> float:
    """Smallest standard value that is >= *target*, else *fallback*."""
    for value in values:
        if value >= target:
            return value
    return fallback
