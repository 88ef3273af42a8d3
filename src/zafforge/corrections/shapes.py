"""
Particle and thin-specimen shapes and their x-ray escape fractions.

P(rho z) is the fraction of the photons generated at mass depth rho z
(measured down from the local top surface) that leave the specimen toward
the detector, averaged over the beam footprint. Prisms and the pyramid have
closed forms; cylinders and spheres are integrated numerically along the
exit chord.

All mass depths in this module are in g/cm^2 and absorption coefficients in
cm^2/g; shape dimensions are in metres.

Reference: Armstrong JT, in Microbeam Analysis (1982) 175-180;
           Armstrong JT, Buseck PR, Anal. Chem. 47 (1975) 2178
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Type

from zafforge.core.errors import DomainError
from zafforge.core.mathutil import integrate_bounded

__all__ = [
    "SampleShape",
    "Bulk",
    "RightRectangularPrism",
    "TetragonalPrism",
    "TriangularPrism",
    "SquarePyramid",
    "VerticalCylinder",
    "HorizontalCylinder",
    "Sphere",
    "Hemisphere",
    "AbsorptionGeometry",
    "escape_fraction",
    "parse_shape",
    "SHAPES",
]

# Looser tolerance for the nested shape integrals
SHAPE_EPSREL = 1.0e-5
SHAPE_LIMIT = 100


class SampleShape:
    """Base class of the specimen shape descriptors."""

    kind = "shape"

    @property
    def thickness(self) -> float:
        """Extent along the beam in metres."""
        raise NotImplementedError

    @property
    def diameter(self) -> float:
        """Extent along the detector direction in metres."""
        raise NotImplementedError

    def is_bulk(self) -> bool:
        return False


@dataclass(frozen=True)
class Bulk(SampleShape):
    """Semi-infinite flat specimen."""

    kind = "bulk"

    @property
    def thickness(self) -> float:
        return math.inf

    @property
    def diameter(self) -> float:
        return math.inf

    def is_bulk(self) -> bool:
        return True

    def __str__(self) -> str:
        return "Bulk"


@dataclass(frozen=True)
class RightRectangularPrism(SampleShape):
    """Rectangular block; ``depth`` runs toward the detector."""

    thickness_m: float
    depth_m: float
    kind = "rrp"

    @property
    def thickness(self) -> float:
        return self.thickness_m

    @property
    def diameter(self) -> float:
        return self.depth_m


@dataclass(frozen=True)
class TetragonalPrism(SampleShape):
    """Square prism with a base diagonal pointing at the detector."""

    diagonal_m: float
    thickness_m: float
    kind = "tetragonal-prism"

    @property
    def thickness(self) -> float:
        return self.thickness_m

    @property
    def diameter(self) -> float:
        return self.diagonal_m


@dataclass(frozen=True)
class TriangularPrism(SampleShape):
    """Prism with an isosceles right-triangle cross section, ridge up."""

    height_m: float
    kind = "triangular-prism"

    @property
    def thickness(self) -> float:
        return self.height_m

    @property
    def diameter(self) -> float:
        return 2.0 * self.height_m


@dataclass(frozen=True)
class SquarePyramid(SampleShape):
    base_length_m: float
    kind = "square-pyramid"

    @property
    def thickness(self) -> float:
        return 0.5 * self.base_length_m

    @property
    def diameter(self) -> float:
        return self.base_length_m


@dataclass(frozen=True)
class VerticalCylinder(SampleShape):
    """Cylinder standing on its base."""

    diameter_m: float
    thickness_m: float
    kind = "vertical-cylinder"

    @property
    def thickness(self) -> float:
        return self.thickness_m

    @property
    def diameter(self) -> float:
        return self.diameter_m


@dataclass(frozen=True)
class HorizontalCylinder(SampleShape):
    """Fiber lying with its axis perpendicular to the detector direction."""

    diameter_m: float
    kind = "horizontal-cylinder"

    @property
    def thickness(self) -> float:
        return self.diameter_m

    @property
    def diameter(self) -> float:
        return self.diameter_m


@dataclass(frozen=True)
class Sphere(SampleShape):
    diameter_m: float
    kind = "sphere"

    @property
    def thickness(self) -> float:
        return self.diameter_m

    @property
    def diameter(self) -> float:
        return self.diameter_m


@dataclass(frozen=True)
class Hemisphere(SampleShape):
    """Hemisphere resting on its flat face."""

    diameter_m: float
    kind = "hemisphere"

    @property
    def thickness(self) -> float:
        return 0.5 * self.diameter_m

    @property
    def diameter(self) -> float:
        return self.diameter_m


SHAPES: Dict[str, Type[SampleShape]] = {
    cls.kind: cls
    for cls in (Bulk, RightRectangularPrism, TetragonalPrism, TriangularPrism, SquarePyramid,
                VerticalCylinder, HorizontalCylinder, Sphere, Hemisphere)
}


def parse_shape(text: str) -> SampleShape:
    """
    Build a shape from ``"kind:field=value,..."``, e.g.
    ``"sphere:diameter_m=2e-6"`` or ``"rrp:thickness_m=1e-6,depth_m=2e-6"``.
    """
    kind, _, rest = text.strip().partition(":")
    cls = SHAPES.get(kind.strip().lower())
    if cls is None:
        raise DomainError(f"Unknown sample shape '{kind}' (expected one of {', '.join(SHAPES)})")
    kwargs = {}
    for item in filter(None, (p.strip() for p in rest.split(","))):
        key, sep, value = item.partition("=")
        if not sep:
            raise DomainError(f"Malformed shape dimension '{item}'")
        kwargs[key.strip()] = float(value)
    try:
        shape = cls(**kwargs)
    except TypeError as exc:
        raise DomainError(f"Bad dimensions for {kind}: {exc}") from exc
    if any(v <= 0.0 for v in kwargs.values()):
        raise DomainError(f"Shape dimensions must be positive: {text}")
    return shape


@dataclass(frozen=True)
class AbsorptionGeometry:
    """
    Per-line absorption scalars used by the escape-fraction expressions.

    Attributes:
        mu: Mass absorption coefficient (cm^2/g)
        psi: Exit angle (radians)
        rho_d: Density times the shape diameter (g/cm^2)
    """

    mu: float
    psi: float
    rho_d: float

    @property
    def chi(self) -> float:
        return self.mu / math.sin(self.psi)

    @property
    def alpha(self) -> float:
        return self.mu / math.cos(self.psi)

    @property
    def gamma(self) -> float:
        return self.alpha / (1.0 + math.tan(self.psi))

    def lateral(self, rho_z: float) -> float:
        """Horizontal distance a photon from ``rho_z`` travels before reaching the top surface."""
        return rho_z / math.tan(self.psi)


def _bulk(g: AbsorptionGeometry, rz: float) -> float:
    return math.exp(-g.chi * rz)


def _right_rectangular_prism(g: AbsorptionGeometry, rz: float) -> float:
    # Deeper than rho_d * tan(psi) every photon leaves through the side
    beta = min(g.lateral(rz), g.rho_d)
    exp_neg = math.exp(-g.alpha * beta)
    return ((g.rho_d - beta) * exp_neg + (1.0 - exp_neg) / g.alpha) / g.rho_d


def _tetragonal_prism(g: AbsorptionGeometry, rz: float) -> float:
    beta = min(g.lateral(rz), g.rho_d)
    lam = g.rho_d - beta
    exp_neg = math.exp(-g.alpha * beta)
    a = g.alpha
    return (4.0 / (g.rho_d * g.rho_d)) * (
        0.5 * (exp_neg - 1.0) / (a * a)
        + 0.5 * beta / a
        + (0.5 * lam) ** 2 * exp_neg
        + (0.5 * lam / a) * (1.0 - exp_neg)
    )


def _triangular_prism(g: AbsorptionGeometry, rz: float) -> float:
    if rz >= 0.5 * g.rho_d:
        return 0.0
    egrz = math.exp(-g.gamma * rz)
    return (0.5 * (egrz - math.exp(-g.gamma * (g.rho_d - rz))) / g.gamma + (0.5 * g.rho_d - rz) * egrz) / g.rho_d


def _square_pyramid(g: AbsorptionGeometry, rz: float) -> float:
    if rz >= 0.5 * g.rho_d:
        return 0.0
    zeta = g.rho_d - 2.0 * rz
    xi = (g.rho_d - rz) * g.gamma
    egrz = math.exp(-g.gamma * rz)
    return ((zeta / g.gamma + 0.5 * zeta * zeta) * egrz + (math.exp(-xi) - egrz) / (g.gamma * g.gamma)) / (g.rho_d * g.rho_d)


def _exit_chord(radius: float, x: float, y: float, z: float, psi: float) -> float:
    """Path length from (x, y, z) to a sphere (or circle when y = 0) of ``radius`` toward the detector."""
    b = x * math.cos(psi) + z * math.sin(psi)
    c = x * x + y * y + z * z - radius * radius
    return max(0.0, -b + math.sqrt(max(0.0, b * b - c)))


def _integrate(func: Callable[[float], float], lower: float, upper: float) -> float:
    return integrate_bounded(func, lower, upper, epsrel=SHAPE_EPSREL, limit=SHAPE_LIMIT)


def _vertical_cylinder(g: AbsorptionGeometry, rz: float) -> float:
    r = 0.5 * g.rho_d
    cos_psi, sin_psi = math.cos(g.psi), math.sin(g.psi)
    top = rz / sin_psi

    def row(ry: float) -> float:
        half = math.sqrt(max(0.0, r * r - ry * ry))
        return _integrate(lambda rx: math.exp(-g.mu * min((half - rx) / cos_psi, top)), -half, half)

    return _integrate(row, -r, r) / (math.pi * r * r)


def _horizontal_cylinder(g: AbsorptionGeometry, rz: float) -> float:
    r = 0.5 * g.rho_d
    reach = r * r - 0.25 * rz * rz
    if reach <= 0.0:
        return 0.0
    half = math.sqrt(reach)

    def column(rx: float) -> float:
        z = math.sqrt(max(0.0, r * r - rx * rx)) - rz
        return math.exp(-g.mu * _exit_chord(r, rx, 0.0, z, g.psi))

    return _integrate(column, -half, half) / g.rho_d


def _spherical(g: AbsorptionGeometry, rz: float, hemisphere: bool) -> float:
    r = 0.5 * g.rho_d
    # Lateral extent of the points rz below the local top surface
    reach = r * r - (rz * rz if hemisphere else 0.25 * rz * rz)
    if reach <= 0.0:
        return 0.0
    outer = math.sqrt(reach)

    def row(ry: float) -> float:
        inner = math.sqrt(max(0.0, reach - ry * ry))

        def point(rx: float) -> float:
            z = math.sqrt(max(0.0, r * r - rx * rx - ry * ry)) - rz
            return math.exp(-g.mu * _exit_chord(r, rx, ry, z, g.psi))

        return _integrate(point, -inner, inner) if inner > 0.0 else 0.0

    return _integrate(row, -outer, outer) / (math.pi * r * r)


_ESCAPE: Dict[Type[SampleShape], Callable[[AbsorptionGeometry, float], float]] = {
    Bulk: _bulk,
    RightRectangularPrism: _right_rectangular_prism,
    TetragonalPrism: _tetragonal_prism,
    TriangularPrism: _triangular_prism,
    SquarePyramid: _square_pyramid,
    VerticalCylinder: _vertical_cylinder,
    HorizontalCylinder: _horizontal_cylinder,
    Sphere: lambda g, rz: _spherical(g, rz, hemisphere=False),
    Hemisphere: lambda g, rz: _spherical(g, rz, hemisphere=True),
}


def escape_fraction(shape: SampleShape, geometry: AbsorptionGeometry, rho_z: float) -> float:
    """
    Fraction of photons generated at ``rho_z`` (g/cm^2) that escape toward
    the detector.

    Raises:
        DomainError: the shape has no escape expression
    """
    func = _ESCAPE.get(type(shape))
    if func is None:
        raise DomainError(f"The particle correction does not support shape {type(shape).__name__}")
    if rho_z < 0.0:
        return 0.0
    return func(geometry, rho_z)
