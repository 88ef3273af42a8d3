"""
Inverse electron stopping power integrated over the ionizing energy range.

``compute_inv`` returns (1/S) in g/(keV cm^2) for the Pouchou & Pichoir and
PROZA96 models, which enter the absolute phi(rho z) area. The Thomas and
Love/Scott forms are only meaningful as ratios between specimens.

Reference: Pouchou & Pichoir, Electron Probe Quantitation (1991);
           Love G, Scott VD, J. Phys. D 11 (1978) 1369
"""

from __future__ import annotations

import math

from zafforge.core.chemistry import AtomicShell, Composition
from zafforge.core.strategy import Algorithm, AlgorithmFamily, Resolver
from zafforge.core.units import joules_to_kev
from zafforge.physics.ionization import POUCHOU_86, PROZA_96 as PROZA_96_ICX, ProportionalIonizationCrossSection


def z_over_a(composition: Composition) -> float:
    """sum(c Z / A) over the normalized composition."""
    return sum(w * el.z / el.atomic_weight for el, w in composition.normalized_fractions())


class StoppingPower(Algorithm):
    family = AlgorithmFamily.STOPPING_POWER

    def compute_inv(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        raise NotImplementedError

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        return 1.0 / self.compute_inv(resolver, composition, shell, e0)

    def compute_relative(self, resolver: Resolver, unknown: Composition, standard: Composition,
                         shell: AtomicShell, e0: float) -> float:
        return self.compute_inv(resolver, standard, shell, e0) / self.compute_inv(resolver, unknown, shell, e0)


class _PapStoppingPower(StoppingPower):
    """Three-term power-law deceleration law of Pouchou & Pichoir."""

    def __init__(self, name: str, reference: str, icx: ProportionalIonizationCrossSection):
        super().__init__(name, reference)
        self._icx = icx

    def compute_inv(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        mip = resolver.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        big_m = z_over_a(composition)
        j = joules_to_kev(mip.compute_ln(composition))
        v0 = joules_to_kev(e0) / j
        d = (6.6e-6, 1.12e-5 * (1.35 - 0.45 * j * j), 2.2e-6 / j)
        p = (0.78, 0.1, 0.25 * (j - 2.0))
        m = self._icx.exponent(shell)
        u0 = e0 / shell.edge_energy
        log_u0 = math.log(u0)
        tmp = 0.0
        for dk, pk in zip(d, p):
            tk = 1.0 + pk - m
            u_tk = math.pow(u0, tk)
            tmp += dk * math.pow(v0 / u0, pk) * (tk * u_tk * log_u0 - u_tk + 1.0) / (tk * tk)
        return (u0 / (v0 * big_m)) * tmp


class Thomas1963(StoppingPower):
    def __init__(self):
        super().__init__("Thomas 1963", "Thomas PM, UKAEA Report AERE-R 4593 (1963)")

    def compute_inv(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        mip = resolver.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        ec = shell.edge_energy
        s = 0.0
        for el, w in composition.normalized_fractions():
            j = mip.compute(el)
            s += w * (el.z / el.atomic_weight) * math.log((1.116 / 2.0) * (e0 + ec) / j)
        return 1.0 / s


class LoveScottCITZAF(StoppingPower):
    def __init__(self):
        super().__init__("Love/Scott (CITZAF)", "Love/Scott as implemented in CITZAF")

    def compute_inv(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        mip = resolver.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        ec = shell.edge_energy
        u0 = e0 / ec
        j_bar = mip.compute_ln(composition)
        # Limit of (sqrt(u0)-1)/(u0-1) as u0 -> 1
        ratio = 0.5 if u0 == 1.0 else (math.sqrt(u0) - 1.0) / (u0 - 1.0)
        return (1.0 + 16.05 * math.sqrt(j_bar / ec) * math.pow(ratio, 1.07)) / z_over_a(composition)


POUCHOU_1991 = _PapStoppingPower("Pouchou & Pichoir 1991", "Pouchou & Pichoir, Electron Probe Quantitation (1991)",
                                 POUCHOU_86)
PROZA_96 = _PapStoppingPower("Proza96", "Bastin GF et al., X-Ray Spectrom. 27 (1998) 3", PROZA_96_ICX)
THOMAS_1963 = Thomas1963()
LOVE_SCOTT_CITZAF = LoveScottCITZAF()

IMPLEMENTATIONS = [POUCHOU_1991, PROZA_96, THOMAS_1963, LOVE_SCOTT_CITZAF]
