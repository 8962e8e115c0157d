"""BuildingProject — the root aggregate handed to the engine.

A project carries a handful of general fields plus one flat mapping per
named section (``fire_safety``, ``envelope``, ``electrical``, ...).  Rules
and readiness checks address values with dot paths such as
``fire_safety.number_of_exits`` or ``gross_floor_area``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Fields that live directly on the project rather than inside a section
GENERAL_FIELDS = (
    "name",
    "building_type",
    "gross_floor_area",
    "usable_floor_area",
    "building_height",
    "number_of_floors",
    "number_of_dwellings",
    "is_rehabilitation",
    "year_built",
)

# Named sections of a complete project description
SECTION_NAMES = (
    "context",
    "location",
    "architecture",
    "structural",
    "fire_safety",
    "avac",
    "water_drainage",
    "gas",
    "electrical",
    "telecommunications",
    "envelope",
    "systems",
    "acoustic",
    "accessibility",
    "elevators",
    "licensing",
    "waste",
    "drawings",
    "local",
)


class BuildingProject(BaseModel):
    """A building-project description, owned by the caller."""

    name: str = ""
    building_type: str | None = None
    """'residential', 'commercial', 'mixed', 'industrial'."""

    gross_floor_area: Any = None
    usable_floor_area: Any = None
    building_height: Any = None
    number_of_floors: Any = None
    number_of_dwellings: Any = None
    is_rehabilitation: bool = False
    year_built: Any = None

    sections: dict[str, Any] = Field(default_factory=dict)
    """Section name -> flat mapping of field name to value."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildingProject:
        """Build a project from a nested mapping.

        Known general fields are taken from the top level; any other
        top-level entry is treated as a section.  An explicit ``sections``
        entry is merged in as well.
        """
        general = {k: data[k] for k in GENERAL_FIELDS if k in data}
        sections: dict[str, Any] = {}
        for key, value in data.items():
            if key in GENERAL_FIELDS or key == "sections":
                continue
            sections[key] = value
        explicit = data.get("sections")
        if isinstance(explicit, dict):
            sections.update(explicit)
        return cls(**general, sections=sections)

    def section(self, name: str) -> dict[str, Any]:
        """Return the named section, or an empty dict if absent or malformed."""
        value = self.sections.get(name)
        return value if isinstance(value, dict) else {}

    def to_context(self) -> dict[str, Any]:
        """Flatten into the mapping that field paths resolve against."""
        context: dict[str, Any] = {k: getattr(self, k) for k in GENERAL_FIELDS}
        for name, values in self.sections.items():
            context[name] = values
        return context

    def get_field(self, path: str) -> Any:
        """Resolve a dot path; returns None when any segment is missing."""
        return resolve_path(self.to_context(), path)


_MISSING = object()


def resolve_path(data: dict[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dot-notation path against a nested dict.

    Example: ``resolve_path({"fire_safety": {"usage_type": "I"}}, "fire_safety.usage_type")``
    returns ``"I"``.
    """
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING or current is None:
            return default
    return current


def has_value(value: Any) -> bool:
    """True when a field counts as filled in (not None, empty, zero or blank).

    Booleans always count as filled: an explicit ``False`` is an answer.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def as_number(value: Any) -> float | None:
    """Coerce a field value to float, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
