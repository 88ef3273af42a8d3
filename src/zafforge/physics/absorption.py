"""
Mass-absorption coefficients (MACs).

Provides the MASS_ABSORPTION algorithm family:
- xraylib tabulated total attenuation (default)
- Heinrich's IXCOM-11 parametrization over absorption-edge energies
- Pouchou & Pichoir (1991): Heinrich plus measured special cases for soft
  and overlapping lines

All values are returned in m^2/kg. The coefficient of a composition is the
mass-fraction weighted sum over its (normalized) elements.

Every model also carries an uncertainty estimate that depends only on the
photon energy and on how close it sits to the absorber's edges (after
Chantler's FFAST error table).

Reference: Heinrich KFJ, Proc. 11th ICXOM (1986) 67;
           Pouchou & Pichoir, Electron Probe Quantitation (1991);
           Chantler CT, J. Phys. Chem. Ref. Data 29 (2000) 597
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple, Union

import xraylib

from zafforge.core.chemistry import Composition, Element, Line, Shell, XRayTransition
from zafforge.core.strategy import Algorithm, AlgorithmFamily
from zafforge.core.units import joules_to_ev, joules_to_kev, mac_to_si
from zafforge.data import xray

Target = Union[XRayTransition, float]
Absorber = Union[Element, Composition]

# (label, xraylib shell code, family, edge-proximity limit, near-edge error, above-edge error)
_EDGE_ERRORS = (
    ("K", xraylib.K_SHELL, "K", 0.1, 0.06, 0.01),
    ("L1", xraylib.L1_SHELL, "L", 0.15, 0.225, 0.04),
    ("L2", xraylib.L2_SHELL, "L", 0.15, 0.30, 0.10),
    ("L3", xraylib.L3_SHELL, "L", 0.15, 0.30, 0.10),
    ("M1", xraylib.M1_SHELL, "M", 0.15, 0.225, 0.04),
    ("M2", xraylib.M2_SHELL, "M", 0.15, 0.225, 0.04),
    ("M3", xraylib.M3_SHELL, "M", 0.15, 0.225, 0.04),
    ("M4", xraylib.M4_SHELL, "M", 0.15, 0.30, 0.10),
    ("M5", xraylib.M5_SHELL, "M", 0.15, 0.30, 0.10),
    ("N1", xraylib.N1_SHELL, "N", 0.15, 0.225, 0.04),
    ("N2", xraylib.N2_SHELL, "N", 0.0, 0.0, 0.0),
    ("N3", xraylib.N3_SHELL, "N", 0.15, 0.225, 0.04),
    ("N4", xraylib.N4_SHELL, "N", 0.15, 0.225, 0.04),
    ("N5", xraylib.N5_SHELL, "N", 0.15, 0.225, 0.04),
    ("N6", xraylib.N6_SHELL, "N", 0.15, 0.30, 0.10),
    ("N7", xraylib.N7_SHELL, "N", 0.15, 0.30, 0.10),
)
ON_EDGE_ERROR = 0.8
EDGE_WARNING_EV = 200.0


def decay(e: float, e0: float, ve0: float, e1: float, ve1: float) -> float:
    """Exponential interpolation from ``ve0`` at ``e0`` to ``ve1`` at ``e1``."""
    t = (min(max(e, e0), e1) - e0) / (e1 - e0)
    return ve0 * math.exp(t * math.log(ve1 / ve0))


def element_fractional_uncertainty(element: Element, energy: float) -> float:
    """
    Fractional uncertainty of any tabulated MAC of ``element`` at ``energy`` (J).

    Soft x-rays get a baseline that decays from 100% at 0 eV to 5% at 1 keV.
    On top of that, every occupied edge can raise the estimate: within 0.1%
    of an edge (or 5 eV of an L or M edge) to 80%, and just above an edge to
    6% (K) or 22.5-30% (L, M and N), with 1-10% further above.
    """
    ev = joules_to_ev(energy)
    err = 0.0
    if ev < 200.0:
        err = decay(ev, 0.0, 1.0, 200.0, 0.6)
    elif ev < 500.0:
        err = decay(ev, 200.0, 0.6, 500.0, 0.2)
    elif ev < 1000.0:
        err = decay(ev, 500.0, 0.2, 1000.0, 0.05)
    for _, code, family, limit, near, above in _EDGE_ERRORS:
        ee = 1.0e3 * xray.optional_edge_energy_kev(element.z, code)
        if math.isnan(ee):
            continue
        delta = abs((ev - ee) / ev)
        if delta < 0.001 or (abs(ev - ee) < 5.0 and family in ("L", "M")):
            err = max(err, ON_EDGE_ERROR)
        elif ee <= ev:
            err = max(err, near if delta < limit else above)
    return err


class MassAbsorptionCoefficient(Algorithm):
    """Base class for MAC models. Energies in joules, results in m^2/kg."""

    family = AlgorithmFamily.MASS_ABSORPTION

    def compute_energy(self, element: Element, energy: float) -> float:
        raise NotImplementedError

    def compute_transition(self, element: Element, xrt: XRayTransition) -> float:
        return self.compute_energy(element, xrt.energy)

    def compute_element(self, element: Element, target: Target) -> float:
        if isinstance(target, XRayTransition):
            return self.compute_transition(element, target)
        return self.compute_energy(element, float(target))

    def compute(self, composition: Composition, target: Target) -> float:
        """MAC of ``composition`` for a transition or a photon energy (J)."""
        return sum(w * self.compute_element(el, target) for el, w in composition.normalized_fractions())

    def fractional_uncertainty(self, absorber: Absorber, target: Target) -> float:
        """
        Relative one-sigma uncertainty of the MAC of an element or composition.

        The element estimates are combined in quadrature, weighted by each
        element's contribution to the composition's MAC.
        """
        energy = target.energy if isinstance(target, XRayTransition) else float(target)
        if isinstance(absorber, Element):
            return element_fractional_uncertainty(absorber, energy)
        err2 = total = 0.0
        for el, w in absorber.normalized_fractions():
            mac = w * self.compute_element(el, target)
            err2 += (mac * element_fractional_uncertainty(el, energy)) ** 2
            total += mac
        return math.sqrt(err2) / total

    def compute_with_uncertainty(self, absorber: Absorber, target: Target) -> Tuple[float, float]:
        """(MAC, one-sigma uncertainty), both in m^2/kg."""
        if isinstance(absorber, Element):
            value = self.compute_element(absorber, target)
        else:
            value = self.compute(absorber, target)
        return value, value * self.fractional_uncertainty(absorber, target)

    def caveats(self, absorber: Absorber, target: Target) -> List[str]:
        """Warnings for photon energies within EDGE_WARNING_EV of an absorber edge."""
        energy_ev = joules_to_ev(target.energy if isinstance(target, XRayTransition) else float(target))
        elements = [absorber] if isinstance(absorber, Element) else absorber.elements
        notes = []
        for el in elements:
            for label, code, *_ in _EDGE_ERRORS:
                ee = 1.0e3 * xray.optional_edge_energy_kev(el.z, code)
                if abs(ee - energy_ev) < EDGE_WARNING_EV:
                    notes.append(f"The line at {energy_ev:.1f} eV is close to the {el.symbol} {label} "
                                 f"edge at {ee:.1f} eV.")
        return notes


class XraylibMAC(MassAbsorptionCoefficient):
    """Total attenuation from the xraylib tables."""

    def __init__(self):
        super().__init__("xraylib", "Schoonjans et al., Spectrochim. Acta B 66 (2011) 776")

    def compute_energy(self, element: Element, energy: float) -> float:
        return mac_to_si(xray.total_cross_section(element.z, round(joules_to_kev(energy), 9)))


def _edge_ev(z: int, shell: Shell) -> float:
    return 1.0e3 * xray.optional_edge_energy_kev(z, shell.code)


class Heinrich86MAC(MassAbsorptionCoefficient):
    """Heinrich's IXCOM-11 parametrization as implemented by Myklebust."""

    def __init__(self):
        super().__init__("Heinrich IXCOM 11",
                         "Heinrich KFJ, Proc. 11th Int. Congr. X-ray Optics & Microanalysis (1986) 67")

    @staticmethod
    def _cutoff(z: float) -> float:
        return ((0.252 * z) - 31.1812) * z + 1042.0

    def compute_energy(self, element: Element, energy: float) -> float:
        e = joules_to_ev(energy)
        z = float(element.z)
        zi = element.z
        if e <= 10.0:
            return mac_to_si(1.0e6)
        if zi < 3 or zi > 95:
            return mac_to_si(0.001)

        nm = cc = az = bias = 0.0
        ee_k = _edge_ev(zi, Shell.K)
        ee_n1 = _edge_ev(zi, Shell.N1)
        # Comparisons against a missing (NaN) edge are false, which routes
        # light elements into the outermost branch.
        if e > ee_k:
            if zi < 6:
                cc = 1.808599e-3 * z - 2.87536e-4
                az = ((-14.15422 * z) + 155.6055) * z + 24.4545
                bias = 18.2 * z - 103.0
                nm = ((-0.01273815 * z) + 0.02652873) * z + 3.34745
            else:
                cc = 5.253e-3 + z * (1.33257e-3 + z * (-7.5937e-5 + z * (1.69357e-6 + (-1.3975e-8 * z))))
                az = (((-0.152624 * z) + 6.52) * z + 47.0) * z
                nm = 3.112 - 0.0121 * z
        else:
            ee_l3 = _edge_ev(zi, Shell.L3)
            if e > ee_l3:
                cc = -0.0924e-3 + z * (0.141478e-3 + z * (-0.00524999e-3 + z * (
                    9.85296e-8 + z * (-9.07306e-10 + z * 3.19245e-12))))
                az = (((((-1.16286e-4 * z) + 0.01253775) * z + 0.067429) * z) + 17.8096) * z
                nm = ((-4.982e-5 * z) + 1.889e-3) * z + 2.7575
                ee_l2 = _edge_ev(zi, Shell.L2)
                if e < _edge_ev(zi, Shell.L1) and e >= ee_l2:
                    cc *= 0.858
                if e < ee_l2:
                    cc *= 0.8933 + z * (-8.29e-3 + 6.38e-5 * z)
            else:
                ee_m1 = _edge_ev(zi, Shell.M1)
                if e <= ee_l3 and e > ee_m1:
                    nm = ((((4.4509e-6 * z) - 1.08246e-3) * z + 0.084597) * z) + 0.5385
                    if zi < 30:
                        cc = ((((((7.2773258e-9 * z) - 1.1641145e-6) * z + 6.9602789e-5) * z)
                               - 1.8517159e-3) * z) + 1.889757e-2
                    else:
                        cc = ((((((1.497763e-10 * z) - 4.0585911e-8) * z + 4.0424792e-6) * z)
                               - 1.73663566e-4) * z) + 3.0039e-3
                    az = (((((-1.8641019e-4 * z) + 2.63199611e-2) * z - 0.822863477) * z) + 10.2575657) * z
                    if zi < 61:
                        bias = (((((-1.683474e-4 * z) + 0.018972278) * z - 0.536839169) * z) + 5.654) * z
                    else:
                        bias = (((((3.1779619e-3 * z) - 0.699473097) * z + 51.114164) * z) - 1232.4022) * z
                else:
                    ee_m5 = _edge_ev(zi, Shell.M5)
                    if e >= ee_m5:
                        ee_m4 = _edge_ev(zi, Shell.M4)
                        az = (4.62 - 0.04 * z) * z
                        cc = ((((-1.29086e-9 * z) + 2.209365e-7) * z - 7.83544e-6) * z) + 7.7708e-5
                        cc *= ((((4.865e-6 * z) - 0.0006561) * z + 0.0162) * z) + 1.406
                        bias = (((3.78e-4 * z) - 0.052) * z + 2.51) * ee_m4
                        nm = 3.0 - 0.004 * z
                        if e >= _edge_ev(zi, Shell.M2):
                            cc *= ((-0.0001285 * z) + 0.01955) * z + 0.584
                        elif e >= _edge_ev(zi, Shell.M3):
                            cc *= 0.001366 * z + 1.082
                        elif e >= ee_m4:
                            cc *= 0.95
                        else:
                            cc *= ((4.0664e-4 * z) - 4.8e-2) * z + 1.6442
                    else:
                        cc = 1.08 * (((((-6.69827e-9 * z) + 1.707073e-6) * z - 1.4653e-4) * z) + 4.3156e-3)
                        az = (((5.39309e-3 * z) - 0.61239) * z + 19.64) * z
                        bias = 4.5 * z - 113.0
                        nm = 0.3736 + 0.02401 * z

        base = cc * math.pow(12397.0 / e, nm) * z ** 4 / element.atomic_weight
        if e > ee_n1 or math.isnan(ee_n1):
            mu = base * (1.0 - math.exp((bias - e) / az))
        else:
            mu = base * (1.0 - math.exp((bias - ee_n1) / az))
            cutoff = self._cutoff(z)
            if e > cutoff:
                mu = 1.02 * mu * (e - cutoff) / (ee_n1 - cutoff)
        return mac_to_si(mu)


def _table(symbols: str, values: List[float]) -> Dict[int, float]:
    return {Element.from_symbol(s).z: v for s, v in zip(symbols.split(), values)}


class Pouchou1991MAC(MassAbsorptionCoefficient):
    """Heinrich IXCOM-11 with the Pouchou & Pichoir measured exceptions (cm^2/g)."""

    _KA = (Line.KA1, Line.KA2)
    _LA = (Line.LA1, Line.LA2)
    _LB = (Line.LB1, Line.LB2)

    # (emitter, absorber, lines) -> MAC
    _SINGLE = (
        ("Si", "Ta", _KA, 1490.0),
        ("S", "Au", _KA, 2200.0),
        ("Cu", "Cu", _LB, 6750.0),
        ("Cu", "Cu", _LA, 1755.0),
        ("As", "Ga", _LA, 7000.0),
        ("Mo", "Au", _LA, 2200.0),
        ("Gd", "Gd", (Line.MB,), 4700.0),
        ("Hf", "Hf", (Line.MB,), 3000.0),
        ("Ta", "Ta", (Line.MB,), 2500.0),
        ("W", "W", (Line.MB,), 2080.0),
        ("Au", "Pt", (Line.MB,), 2250.0),
        ("Hg", "Au", (Line.MB,), 2170.0),
        ("Sc", "Sc", _LA, 4750.0),
        ("Ti", "Ti", _LA, 4550.0),
        ("V", "V", _LA, 4370.0),
        ("Cr", "Cr", _LA, 3850.0),
        ("Mn", "Mn", _LA, 3340.0),
        ("Fe", "Fe", _LA, 3350.0),
        ("Co", "Co", _LA, 3260.0),
        ("Ni", "Ni", _LA, 3560.0),
    )

    def __init__(self, fallback: Optional[MassAbsorptionCoefficient] = None):
        super().__init__("Pouchou & Pichoir 1991",
                         "Pouchou & Pichoir in Electron Probe Quantitation, Eds Heinrich and Newbury (1991)")
        self._fallback = fallback if fallback is not None else Heinrich86MAC()
        self._light = {
            5: _table("B C N O Al Si Ti V Cr Fe Co Ni Zr Nb Mo La Ta W U",
                      [3500.0, 6750.0, 11000.0, 16500.0, 64000.0, 80000.0, 15000.0, 18000.0, 20700.0,
                       27800.0, 32000.0, 37000.0, 4400.0, 4500.0, 4600.0, 2500.0, 23000.0, 21000.0, 7400.0]),
            6: _table("B C Si Ti V Cr Fe Zr Nb Mo Hf Ta W",
                      [39000.0, 2170.0, 35000.0, 8100.0, 8850.0, 10700.0, 13500.0, 25000.0, 24000.0,
                       20500.0, 18000.0, 17000.0, 18000.0]),
            7: _table("B N Al Si Ti V Cr Fe Zr Nb Mo Hf Ta",
                      [15800.0, 1640.0, 13800.0, 17000.0, 4270.0, 4950.0, 5650.0, 7190.0, 24000.0,
                       25000.0, 25800.0, 14000.0, 15500.0]),
        }

    def special_case(self, absorber: Element, xrt: XRayTransition) -> Optional[float]:
        """Tabulated MAC in cm^2/g, or None when no measurement applies."""
        emitter = xrt.element.z
        if xrt.family == "K" and emitter in self._light:
            value = self._light[emitter].get(absorber.z)
            if value is not None:
                return value
        for em, ab, lines, value in self._SINGLE:
            if (emitter == Element.from_symbol(em).z and absorber.z == Element.from_symbol(ab).z
                    and xrt.line in lines):
                return value
        return None

    def compute_energy(self, element: Element, energy: float) -> float:
        return self._fallback.compute_energy(element, energy)

    def compute_transition(self, element: Element, xrt: XRayTransition) -> float:
        special = self.special_case(element, xrt)
        if special is None:
            return self._fallback.compute_transition(element, xrt)
        return mac_to_si(special)

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self).__name__)


XRAYLIB = XraylibMAC()
HEINRICH_86 = Heinrich86MAC()
POUCHOU_1991 = Pouchou1991MAC()

IMPLEMENTATIONS = [XRAYLIB, HEINRICH_86, POUCHOU_1991]
