"""SpecialtyRegistry — discover, register, and query specialty analyzers."""

from __future__ import annotations

import logging

from normacheck.errors import UnknownSpecialtyError
from normacheck.specialties.base import SpecialtyAnalyzer

logger = logging.getLogger(__name__)


class SpecialtyRegistry:
    """Central registry of specialty analyzers, in registration order."""

    def __init__(self) -> None:
        self._specialties: dict[str, SpecialtyAnalyzer] = {}

    def register(self, specialty: SpecialtyAnalyzer) -> None:
        """Add a specialty to the registry, replacing one of the same name."""
        self._specialties[specialty.name] = specialty
        logger.info("Registered specialty: %s", specialty.name)

    def auto_discover(self) -> None:
        """Load all built-in specialties."""
        from normacheck.specialties.electrical import ElectricalAnalyzer
        from normacheck.specialties.energy import EnergyAnalyzer
        from normacheck.specialties.fire_safety import FireSafetyAnalyzer
        from normacheck.specialties.water import WaterAnalyzer

        for specialty_cls in [
            FireSafetyAnalyzer,
            EnergyAnalyzer,
            ElectricalAnalyzer,
            WaterAnalyzer,
        ]:
            self.register(specialty_cls())

    def get_specialty(self, name: str) -> SpecialtyAnalyzer | None:
        """Get a specialty by name."""
        return self._specialties.get(name)

    def require(self, name: str) -> SpecialtyAnalyzer:
        """Get a specialty by name or raise :class:`UnknownSpecialtyError`."""
        specialty = self._specialties.get(name)
        if specialty is None:
            raise UnknownSpecialtyError(f"unknown specialty: {name!r}")
        return specialty

    def list_specialties(self) -> list[SpecialtyAnalyzer]:
        """Return all registered specialties."""
        return list(self._specialties.values())

    def names(self) -> list[str]:
        return list(self._specialties)

    def __contains__(self, name: object) -> bool:
        return name in self._specialties

    def __len__(self) -> int:
        return len(self._specialties)


def default_registry() -> SpecialtyRegistry:
    """A registry holding the four built-in specialties."""
    registry = SpecialtyRegistry()
    registry.auto_discover()
    return registry
