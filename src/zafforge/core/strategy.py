"""
Algorithm registry and strategy resolution.

Every physical sub-model (mass absorption, backscatter, stopping power, ...)
belongs to an AlgorithmFamily. A Strategy is an immutable family ->
implementation mapping. A Resolver looks implementations up with three-tier
precedence, evaluated on every call:

1. the process-wide override (compatibility shim, normally unset)
2. the resolver's own strategy, passed in at construction
3. the compiled defaults

Sub-models receive the resolver as their first argument and resolve their
own dependencies through it, so nothing is materialized eagerly.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, Iterator, List, Optional, Tuple

from zafforge.core.errors import DomainError, FatalError

logger = logging.getLogger(__name__)


class AlgorithmFamily(Enum):
    """Interchangeable physical sub-model families."""

    MASS_ABSORPTION = "mac"
    BACKSCATTER_COEFFICIENT = "bsc"
    BACKSCATTER_FACTOR = "bf"
    STOPPING_POWER = "sp"
    IONIZATION_CROSS_SECTION = "icx"
    SURFACE_IONIZATION = "si"
    ELECTRON_RANGE = "range"
    MEAN_IONIZATION_POTENTIAL = "mip"
    FLUORESCENCE = "fluor"

    @classmethod
    def from_key(cls, key: str) -> "AlgorithmFamily":
        key = key.strip().lower()
        for family in cls:
            if key == family.value or key == family.name.lower():
                return family
        raise DomainError(f"Unknown algorithm family: {key!r}")


class Algorithm:
    """
    Base class for every sub-model implementation.

    Subclasses set the class attribute ``family``. Instances are immutable
    and compare equal when they are of the same type with the same state.
    """

    family: AlgorithmFamily

    def __init__(self, name: str, reference: str = ""):
        self.name = name
        self.reference = reference

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Strategy:
    """Immutable mapping from algorithm family to implementation."""

    entries: Tuple[Tuple[AlgorithmFamily, Algorithm], ...] = ()

    @classmethod
    def of(cls, *algorithms: Algorithm) -> "Strategy":
        strategy = cls()
        for alg in algorithms:
            strategy = strategy.with_algorithm(alg)
        return strategy

    def get(self, family: AlgorithmFamily) -> Optional[Algorithm]:
        for fam, alg in self.entries:
            if fam is family:
                return alg
        return None

    def with_algorithm(self, algorithm: Algorithm) -> "Strategy":
        family = algorithm.family
        kept = tuple((fam, alg) for fam, alg in self.entries if fam is not family)
        return Strategy(kept + ((family, algorithm),))

    def apply(self, other: "Strategy") -> "Strategy":
        """Combine two strategies; entries in ``other`` win."""
        result = self
        for _, alg in other.entries:
            result = result.with_algorithm(alg)
        return result

    def families(self) -> List[AlgorithmFamily]:
        return [fam for fam, _ in self.entries]

    def __contains__(self, family: AlgorithmFamily) -> bool:
        return self.get(family) is not None

    def __iter__(self) -> Iterator[Tuple[AlgorithmFamily, Algorithm]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def describe(self) -> Dict[str, str]:
        return {fam.name: alg.name for fam, alg in self.entries}


# ---------------------------------------------------------------------------
# Process-wide override
# ---------------------------------------------------------------------------

_global_lock = threading.Lock()
_global_override: Optional[Strategy] = None


def apply_global_override(strategy: Strategy) -> None:
    """Install a process-wide override consulted before any local strategy."""
    global _global_override
    with _global_lock:
        _global_override = strategy
    logger.debug("Global algorithm override set: %s", strategy.describe())


def clear_global_override() -> None:
    global _global_override
    with _global_lock:
        _global_override = None


def global_override() -> Optional[Strategy]:
    with _global_lock:
        return _global_override


# ---------------------------------------------------------------------------
# Compiled defaults and catalogue
# ---------------------------------------------------------------------------

@lru_cache(maxsize=None)
def implementations() -> Dict[AlgorithmFamily, Dict[str, Algorithm]]:
    """Catalogue of every available implementation, keyed by family and name."""
    from zafforge.physics import (
        absorption,
        backscatter,
        electron_range,
        fluorescence,
        ionization,
        stopping_power,
        surface_ionization,
    )

    catalogue: Dict[AlgorithmFamily, Dict[str, Algorithm]] = {fam: {} for fam in AlgorithmFamily}
    for module in (absorption, backscatter, electron_range, fluorescence,
                   ionization, stopping_power, surface_ionization):
        for alg in module.IMPLEMENTATIONS:
            catalogue[alg.family][alg.name] = alg
    return catalogue


@lru_cache(maxsize=None)
def compiled_defaults() -> Strategy:
    """The default implementation of every family."""
    from zafforge.physics import (
        absorption,
        backscatter,
        electron_range,
        fluorescence,
        ionization,
        stopping_power,
        surface_ionization,
    )

    return Strategy.of(
        absorption.XRAYLIB,
        backscatter.POUCHOU_PICHOIR_1991,
        backscatter.POUCHOU_1991,
        stopping_power.POUCHOU_1991,
        ionization.POUCHOU_86,
        surface_ionization.POUCHOU_1991,
        electron_range.POUCHOU_1991,
        ionization.ZELLER_75,
        fluorescence.NULL,
    )


def lookup(family: AlgorithmFamily, name: str) -> Algorithm:
    """Find an implementation by name (case-insensitive)."""
    available = implementations()[family]
    key = name.strip().lower()
    for alg in available.values():
        if key in (alg.name.lower(), type(alg).__name__.lower()):
            return alg
    raise DomainError(
        f"No {family.name} implementation named {name!r}; "
        f"available: {', '.join(sorted(available))}"
    )


class Resolver:
    """
    Resolves algorithm families with override > local > default precedence.

    Args:
        strategy: This resolver's preferred implementations
        defaults: Fallback strategy; the compiled defaults when omitted
    """

    def __init__(self, strategy: Optional[Strategy] = None, defaults: Optional[Strategy] = None):
        self._strategy = strategy if strategy is not None else Strategy()
        self._defaults = defaults

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    def defaults(self) -> Strategy:
        return compiled_defaults() if self._defaults is None else self._defaults

    def resolve(self, family: AlgorithmFamily) -> Algorithm:
        override = global_override()
        if override is not None:
            alg = override.get(family)
            if alg is not None:
                return alg
        alg = self._strategy.get(family)
        if alg is not None:
            return alg
        alg = self.defaults().get(family)
        if alg is None:
            raise FatalError(f"No implementation available for algorithm family {family.name}")
        return alg

    def active_strategy(self) -> Strategy:
        """Snapshot of the implementation currently resolved for every family."""
        resolved = []
        for family in AlgorithmFamily:
            try:
                resolved.append(self.resolve(family))
            except FatalError:
                continue
        return Strategy.of(*resolved)
