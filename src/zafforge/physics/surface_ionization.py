"""
Surface ionization phi(0): ionization at zero mass depth relative to a thin
free-standing film.

Reference: Pouchou & Pichoir, Electron Probe Quantitation (1991);
           Love G, Cox MGC, Scott VD, J. Phys. D 11 (1978) 23;
           Bastin GF, Dijkstra JM, Heijligers HJM, X-Ray Spectrom. 27 (1998) 3
"""

from __future__ import annotations

import math

from zafforge.core.chemistry import AtomicShell, Composition
from zafforge.core.strategy import Algorithm, AlgorithmFamily, Resolver
from zafforge.physics.backscatter import POUCHOU_PICHOIR_1991 as PAP_ETA


class SurfaceIonization(Algorithm):
    family = AlgorithmFamily.SURFACE_IONIZATION

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        raise NotImplementedError


class Pouchou1991(SurfaceIonization):
    def __init__(self):
        super().__init__("Pouchou & Pichoir 1991", "Pouchou & Pichoir, Electron Probe Quantitation (1991)")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        eta = resolver.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT).compute(composition, e0)
        u0 = e0 / shell.edge_energy
        r = 2.0 - 2.3 * eta
        return 1.0 + 3.3 * (1.0 - math.pow(u0, -r)) * math.pow(eta, 1.2)


class Bastin1998(SurfaceIonization):
    """PROZA96 surface ionization, a function of mean Z and u0 only."""

    def __init__(self):
        super().__init__("Bastin, Dijkstra & Heijligers 1998 (Proza96)",
                         "Bastin GF, Dijkstra JM, Heijligers HJM, X-Ray Spectrom. 27 (1998) 3")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        u0 = e0 / shell.edge_energy
        mean_z = composition.mean_atomic_number()
        a = 0.61747243 + 1.0991805e-3 * mean_z + 1.224221 / math.sqrt(mean_z)
        b = -0.21964478 + (0.11332964 - 2.0638629e-2 * math.log(mean_z)) * mean_z
        return 1.0 + b * math.pow(1.0 - 1.0 / math.sqrt(u0), a)


class Reuter1972(SurfaceIonization):
    def __init__(self):
        super().__init__("Reuter 1972", "Reuter W, Proc. 6th ICXOM, Univ. Tokyo Press (1972) 121")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        u0 = e0 / shell.edge_energy
        eta = PAP_ETA.compute(composition, e0)
        return 1.0 + 2.8 * (1.0 - 0.9 / u0) * eta


def _love_phi0(eta: float, u0_inv: float) -> float:
    jpu = 3.43378 + u0_inv * (-10.7872 + u0_inv * (10.97628 - 3.62286 * u0_inv))
    gpu = -0.59299 + u0_inv * (21.55329 + u0_inv * (-30.55428 + 9.59218 * u0_inv))
    return 1.0 + (eta / (1.0 + eta)) * (jpu + gpu * math.log(1.0 + eta))


class Love1978(SurfaceIonization):
    """Love's Monte Carlo fit, always with the Pouchou & Pichoir eta."""

    def __init__(self):
        super().__init__("Love 1978", "Love G, J. Phys. D (1978)")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        return _love_phi0(PAP_ETA.compute(composition, e0), shell.edge_energy / e0)


class Love1978Citzaf(SurfaceIonization):
    """Love's fit as in CITZAF 3.06, with the resolved backscatter coefficient."""

    def __init__(self):
        super().__init__("Love 1978 (CITZAF)", "Love G, J. Phys. D (1978) as in CITZAF 3.06")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        eta = resolver.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT).compute(composition, e0)
        return _love_phi0(eta, shell.edge_energy / e0)


POUCHOU_1991 = Pouchou1991()
BASTIN_1998 = Bastin1998()
REUTER_1972 = Reuter1972()
LOVE_1978 = Love1978()
LOVE_1978_CITZAF = Love1978Citzaf()

IMPLEMENTATIONS = [POUCHOU_1991, BASTIN_1998, REUTER_1972, LOVE_1978, LOVE_1978_CITZAF]
