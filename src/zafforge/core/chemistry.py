"""
Chemistry context: elements, compositions, atomic shells and X-ray lines.

All types are immutable and compare by value, so a correction algorithm can
detect an unchanged (composition, shell, properties) triple cheaply.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Tuple, Union

import numpy as np
import xraylib

from zafforge.core.errors import DomainError
from zafforge.core.units import kev_to_joules
from zafforge.data import elements as element_data
from zafforge.data import xray


@dataclass(frozen=True, order=True)
class Element:
    """A chemical element identified by atomic number."""

    z: int

    def __post_init__(self):
        if not 1 <= self.z <= element_data.MAX_Z:
            raise DomainError(f"Atomic number out of range: {self.z}")

    @classmethod
    def from_symbol(cls, symbol: str) -> "Element":
        return cls(element_data.z_from_symbol(symbol))

    @classmethod
    def of(cls, value: Union["Element", int, str]) -> "Element":
        if isinstance(value, Element):
            return value
        if isinstance(value, str):
            return cls.from_symbol(value)
        return cls(int(value))

    @property
    def symbol(self) -> str:
        return element_data.symbol_from_z(self.z)

    @property
    def atomic_weight(self) -> float:
        """Atomic weight in g/mol."""
        return element_data.atomic_weight(self.z)

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class Composition:
    """
    Immutable element -> mass fraction mapping.

    Fractions are stored as given; they may sum to less (or slightly more)
    than one. ``normalize`` returns the rescaled composition.

    Attributes:
        fractions: Tuple of (element, mass fraction) pairs ordered by Z
        name: Optional label used in messages
    """

    fractions: Tuple[Tuple[Element, float], ...]
    name: str = field(default="", compare=False)

    def __post_init__(self):
        merged: Dict[Element, float] = {}
        for el, w in self.fractions:
            el = Element.of(el)
            if w < 0.0 or not math.isfinite(w):
                raise DomainError(f"Invalid mass fraction {w} for {el}")
            merged[el] = merged.get(el, 0.0) + float(w)
        ordered = tuple(sorted(merged.items(), key=lambda item: item[0].z))
        object.__setattr__(self, "fractions", ordered)

    @classmethod
    def from_mapping(cls, mapping: Mapping[Union[Element, int, str], float], name: str = "") -> "Composition":
        return cls(tuple((Element.of(k), float(v)) for k, v in mapping.items()), name)

    @classmethod
    def pure(cls, element: Union[Element, int, str]) -> "Composition":
        el = Element.of(element)
        return cls(((el, 1.0),), f"Pure {el.symbol}")

    @classmethod
    def parse(cls, text: str, name: str = "") -> "Composition":
        """Parse 'Fe=0.5,Ni=0.5'. A bare symbol is a pure element."""
        text = text.strip()
        if "=" not in text:
            return cls.pure(text)
        mapping: Dict[Element, float] = {}
        for item in text.split(","):
            item = item.strip()
            if not item:
                continue
            try:
                symbol, value = item.split("=")
                mapping[Element.from_symbol(symbol)] = float(value)
            except ValueError as exc:
                raise DomainError(f"Cannot parse composition item {item!r}") from exc
        if not mapping:
            raise DomainError(f"Empty composition: {text!r}")
        return cls.from_mapping(mapping, name)

    @property
    def elements(self) -> List[Element]:
        return [el for el, _ in self.fractions]

    def as_dict(self) -> Dict[Element, float]:
        return dict(self.fractions)

    def contains(self, element: Element) -> bool:
        return any(el == element and w > 0.0 for el, w in self.fractions)

    def sum_weight_fraction(self) -> float:
        return sum(w for _, w in self.fractions)

    def weight_fraction(self, element: Element, normalized: bool = False) -> float:
        w = self.as_dict().get(element, 0.0)
        if normalized:
            total = self.sum_weight_fraction()
            return w / total if total > 0.0 else 0.0
        return w

    def normalize(self) -> "Composition":
        total = self.sum_weight_fraction()
        if total <= 0.0:
            raise DomainError("Cannot normalize a composition with zero total", composition=self)
        if total == 1.0:
            return self
        return Composition(tuple((el, w / total) for el, w in self.fractions), self.name)

    def normalized_fractions(self) -> Iterator[Tuple[Element, float]]:
        total = self.sum_weight_fraction()
        for el, w in self.fractions:
            yield el, w / total

    def mean_atomic_number(self) -> float:
        """Mass-fraction weighted mean Z."""
        return sum(w * el.z for el, w in self.normalized_fractions())

    def mean_atomic_weight(self) -> float:
        return sum(w * el.atomic_weight for el, w in self.normalized_fractions())

    def __str__(self) -> str:
        if self.name:
            return self.name
        return ",".join(f"{el.symbol}={w:.4f}" for el, w in self.fractions)


class Shell(Enum):
    """Atomic sub-shells with their xraylib shell codes."""

    K = ("K", xraylib.K_SHELL, "K")
    L1 = ("L1", xraylib.L1_SHELL, "L")
    L2 = ("L2", xraylib.L2_SHELL, "L")
    L3 = ("L3", xraylib.L3_SHELL, "L")
    M1 = ("M1", xraylib.M1_SHELL, "M")
    M2 = ("M2", xraylib.M2_SHELL, "M")
    M3 = ("M3", xraylib.M3_SHELL, "M")
    M4 = ("M4", xraylib.M4_SHELL, "M")
    M5 = ("M5", xraylib.M5_SHELL, "M")
    N1 = ("N1", xraylib.N1_SHELL, "N")

    def __init__(self, label: str, code: int, family: str):
        self.label = label
        self.code = code
        self.family = family


@dataclass(frozen=True)
class AtomicShell:
    """An ionizable shell of a specific element."""

    element: Element
    shell: Shell

    @property
    def family(self) -> str:
        return self.shell.family

    @property
    def edge_energy_kev(self) -> float:
        return xray.edge_energy_kev(self.element.z, self.shell.code)

    @property
    def edge_energy(self) -> float:
        """Ionization edge energy in joules."""
        return kev_to_joules(self.edge_energy_kev)

    def exists(self) -> bool:
        return not math.isnan(xray.optional_edge_energy_kev(self.element.z, self.shell.code))

    def fluorescence_yield(self) -> float:
        return xray.fluorescence_yield(self.element.z, self.shell.code)

    def jump_ratio(self) -> float:
        return xray.jump_ratio(self.element.z, self.shell.code)

    def __str__(self) -> str:
        return f"{self.element.symbol} {self.shell.label}"


class Line(Enum):
    """Principal characteristic lines (IUPAC label, xraylib code, ionized shell)."""

    KA1 = ("KL3", xraylib.KL3_LINE, Shell.K)
    KA2 = ("KL2", xraylib.KL2_LINE, Shell.K)
    KB1 = ("KM3", xraylib.KM3_LINE, Shell.K)
    KB3 = ("KM2", xraylib.KM2_LINE, Shell.K)
    LA1 = ("L3M5", xraylib.L3M5_LINE, Shell.L3)
    LA2 = ("L3M4", xraylib.L3M4_LINE, Shell.L3)
    LB1 = ("L2M4", xraylib.L2M4_LINE, Shell.L2)
    LB2 = ("L3N5", xraylib.L3N5_LINE, Shell.L3)
    LG1 = ("L2N4", xraylib.L2N4_LINE, Shell.L2)
    LL = ("L3M1", xraylib.L3M1_LINE, Shell.L3)
    MA1 = ("M5N7", xraylib.M5N7_LINE, Shell.M5)
    MA2 = ("M5N6", xraylib.M5N6_LINE, Shell.M5)
    MB = ("M4N6", xraylib.M4N6_LINE, Shell.M4)

    def __init__(self, iupac: str, code: int, shell: Shell):
        self.iupac = iupac
        self.code = code
        self.shell = shell

    @property
    def family(self) -> str:
        return self.shell.family

    @classmethod
    def from_name(cls, name: str) -> "Line":
        key = name.strip().upper()
        for line in cls:
            if key == line.name or key == line.iupac.upper():
                return line
        raise DomainError(f"Unknown X-ray line: {name!r}")


@dataclass(frozen=True)
class XRayTransition:
    """A characteristic line of a specific element."""

    element: Element
    line: Line

    @classmethod
    def parse(cls, text: str) -> "XRayTransition":
        """Parse 'Fe:KA1' or 'Fe KL3'."""
        parts = text.replace(":", " ").split()
        if len(parts) != 2:
            raise DomainError(f"Cannot parse X-ray transition {text!r}")
        return cls(Element.from_symbol(parts[0]), Line.from_name(parts[1]))

    @property
    def shell(self) -> AtomicShell:
        """The shell whose vacancy produces this line."""
        return AtomicShell(self.element, self.line.shell)

    @property
    def family(self) -> str:
        return self.line.family

    @property
    def energy_kev(self) -> float:
        return xray.line_energy_kev(self.element.z, self.line.code)

    @property
    def energy(self) -> float:
        """Line energy in joules."""
        return kev_to_joules(self.energy_kev)

    @property
    def edge_energy(self) -> float:
        return self.shell.edge_energy

    @property
    def weight(self) -> float:
        """Radiative rate of the line within its shell."""
        return xray.radiative_rate(self.element.z, self.line.code)

    def exists(self) -> bool:
        try:
            return self.energy_kev > 0.0 and self.weight > 0.0
        except DomainError:
            return False

    def __str__(self) -> str:
        return f"{self.element.symbol} {self.line.iupac}"


@dataclass(frozen=True)
class XRayTransitionSet:
    """
    Ordered set of lines of one element, combined with intensity weights.

    Attributes:
        transitions: Member transitions, all of the same element
    """

    transitions: Tuple[XRayTransition, ...]

    def __post_init__(self):
        if not self.transitions:
            raise DomainError("An X-ray transition set needs at least one transition")
        elements = {xrt.element for xrt in self.transitions}
        if len(elements) != 1:
            raise DomainError("All transitions in a set must belong to one element")

    @classmethod
    def family(cls, element: Union[Element, str], family: str) -> "XRayTransitionSet":
        """All principal lines of ``family`` ('K', 'L' or 'M') that exist for ``element``."""
        el = Element.of(element)
        members = tuple(
            XRayTransition(el, line)
            for line in Line
            if line.family == family.upper() and XRayTransition(el, line).exists()
        )
        if not members:
            raise DomainError(f"{el.symbol} has no {family} lines")
        return cls(members)

    @property
    def element(self) -> Element:
        return self.transitions[0].element

    def weights(self) -> np.ndarray:
        """Normalized intensity weights, one per transition."""
        w = np.array([xrt.weight for xrt in self.transitions], dtype=float)
        total = w.sum()
        if total <= 0.0:
            return np.full(len(w), 1.0 / len(w))
        return w / total

    def weighted_average(self, values) -> float:
        return float(np.average(np.asarray(values, dtype=float), weights=self.weights()))

    def __iter__(self) -> Iterator[XRayTransition]:
        return iter(self.transitions)

    def __len__(self) -> int:
        return len(self.transitions)

    def __str__(self) -> str:
        return "{" + ", ".join(str(xrt) for xrt in self.transitions) + "}"


def pap_mean_z(composition: Composition) -> float:
    """Pouchou & Pichoir mean atomic number (sum of c*sqrt(Z)) squared."""
    zb = sum(w * math.sqrt(el.z) for el, w in composition.normalized_fractions())
    return zb * zb


def log_mean_z(composition: Composition) -> float:
    """exp(sum of c*ln(Z))."""
    return math.exp(sum(w * math.log(el.z) for el, w in composition.normalized_fractions()))
