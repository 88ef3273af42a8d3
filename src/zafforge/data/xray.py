"""
Memoized wrappers over the xraylib reference tables.

All values are returned in the units xraylib publishes (keV, cm^2/g,
dimensionless). Missing data is reported as DomainError so callers can
identify the offending element and shell.

Reference: Schoonjans et al., Spectrochim. Acta B 66 (2011) 776-784
"""

from __future__ import annotations

import math
from functools import lru_cache

import xraylib

from zafforge.core.errors import DomainError


@lru_cache(maxsize=None)
def edge_energy_kev(z: int, shell: int) -> float:
    try:
        value = xraylib.EdgeEnergy(z, shell)
    except ValueError as exc:
        raise DomainError(f"No edge energy for Z={z}, shell code {shell}") from exc
    if value <= 0.0:
        raise DomainError(f"No edge energy for Z={z}, shell code {shell}")
    return float(value)


def optional_edge_energy_kev(z: int, shell: int) -> float:
    """Edge energy in keV, or NaN when the shell is not occupied."""
    try:
        return edge_energy_kev(z, shell)
    except DomainError:
        return math.nan


@lru_cache(maxsize=None)
def line_energy_kev(z: int, line: int) -> float:
    try:
        value = xraylib.LineEnergy(z, line)
    except ValueError as exc:
        raise DomainError(f"No line energy for Z={z}, line code {line}") from exc
    if value <= 0.0:
        raise DomainError(f"No line energy for Z={z}, line code {line}")
    return float(value)


@lru_cache(maxsize=None)
def radiative_rate(z: int, line: int) -> float:
    try:
        return float(xraylib.RadRate(z, line))
    except ValueError as exc:
        raise DomainError(f"No radiative rate for Z={z}, line code {line}") from exc


@lru_cache(maxsize=None)
def fluorescence_yield(z: int, shell: int) -> float:
    try:
        return float(xraylib.FluorYield(z, shell))
    except ValueError as exc:
        raise DomainError(f"No fluorescence yield for Z={z}, shell code {shell}") from exc


@lru_cache(maxsize=None)
def jump_ratio(z: int, shell: int) -> float:
    try:
        return float(xraylib.JumpFactor(z, shell))
    except ValueError as exc:
        raise DomainError(f"No jump ratio for Z={z}, shell code {shell}") from exc


@lru_cache(maxsize=4096)
def total_cross_section(z: int, energy_kev: float) -> float:
    """Total attenuation cross section in cm^2/g."""
    try:
        return float(xraylib.CS_Total(z, energy_kev))
    except ValueError as exc:
        raise DomainError(f"No attenuation data for Z={z} at {energy_kev:.4f} keV") from exc
