"""
Element symbols, atomic numbers and standard atomic weights.

Lookups go through xraylib so the package carries no element table of its
own.
"""

from __future__ import annotations

from functools import lru_cache

import xraylib

from zafforge.core.errors import DomainError

MAX_Z = 99


@lru_cache(maxsize=None)
def symbol_from_z(z: int) -> str:
    if not 1 <= z <= MAX_Z:
        raise DomainError(f"Atomic number out of range: {z}")
    return xraylib.AtomicNumberToSymbol(z)


@lru_cache(maxsize=None)
def z_from_symbol(symbol: str) -> int:
    try:
        return int(xraylib.SymbolToAtomicNumber(symbol.strip().capitalize()))
    except ValueError as exc:
        raise DomainError(f"Unknown element symbol: {symbol!r}") from exc


@lru_cache(maxsize=None)
def atomic_weight(z: int) -> float:
    """Standard atomic weight in g/mol."""
    try:
        return float(xraylib.AtomicWeight(z))
    except ValueError as exc:
        raise DomainError(f"No atomic weight for Z={z}") from exc
