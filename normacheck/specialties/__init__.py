"""Specialty analyzers: one computed-value cascade per regulation."""

from normacheck.specialties.base import SpecialtyAnalyzer
from normacheck.specialties.electrical import ElectricalAnalyzer, ElectricalComputed, ElectricalTables
from normacheck.specialties.energy import EnergyAnalyzer, EnergyComputed, EnergyTables
from normacheck.specialties.fire_safety import FireSafetyAnalyzer, FireSafetyComputed, FireSafetyTables
from normacheck.specialties.registry import SpecialtyRegistry, default_registry
from normacheck.specialties.water import WaterAnalyzer, WaterComputed, WaterTables

__all__ = [
    "ElectricalAnalyzer",
    "ElectricalComputed",
    "ElectricalTables",
    "EnergyAnalyzer",
    "EnergyComputed",
    "EnergyTables",
    "FireSafetyAnalyzer",
    "FireSafetyComputed",
    "FireSafetyTables",
    "SpecialtyAnalyzer",
    "SpecialtyRegistry",
    "WaterAnalyzer",
    "WaterComputed",
    "WaterTables",
    "default_registry",
]
