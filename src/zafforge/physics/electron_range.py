"""
Electron ranges as mass depth (kg/m^2).

Reference: Pouchou & Pichoir, Electron Probe Quantitation (1991);
           Kanaya K, Okayama S, J. Phys. D 5 (1972) 43
"""

from __future__ import annotations

import math

from zafforge.core.chemistry import AtomicShell, Composition, Element
from zafforge.core.strategy import Algorithm, AlgorithmFamily, Resolver
from zafforge.core.units import joules_to_kev, mass_depth_to_si
from zafforge.physics.stopping_power import z_over_a


class ElectronRange(Algorithm):
    family = AlgorithmFamily.ELECTRON_RANGE

    def compute(self, resolver: Resolver, composition: Composition, e0: float) -> float:
        """Range of an electron of energy ``e0`` (J) in kg/m^2."""
        raise NotImplementedError

    def compute_shell(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        """Depth over which the electron can still ionize ``shell``."""
        return self.compute(resolver, composition, e0) - self.compute(resolver, composition, shell.edge_energy)


class Pouchou1991(ElectronRange):
    def __init__(self):
        super().__init__("Pouchou & Pichoir 1991", "Pouchou & Pichoir, Electron Probe Quantitation (1991)")

    def compute(self, resolver: Resolver, composition: Composition, e0: float) -> float:
        mip = resolver.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        big_m = z_over_a(composition)
        j = joules_to_kev(mip.compute_ln(composition))
        d = (6.6e-6, 1.12e-5 * (1.35 - 0.45 * j * j), 2.2e-6 / j)
        p = (0.78, 0.1, -(0.5 - 0.25 * j))
        e0_kev = joules_to_kev(e0)
        tmp = sum(math.pow(j, 1.0 - pk) * dk * math.pow(e0_kev, 1.0 + pk) / (1.0 + pk) for dk, pk in zip(d, p))
        return mass_depth_to_si(tmp / big_m)


class LoveEtAl1978(ElectronRange):
    def __init__(self):
        super().__init__("Love et al 1978", "Love et al as quoted in Reed, Electron Microprobe Analysis 2nd ed.")

    def compute(self, resolver: Resolver, composition: Composition, e0: float) -> float:
        mip = resolver.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        a = composition.mean_atomic_weight()
        z = composition.mean_atomic_number()
        j = joules_to_kev(mip.compute_ln(composition))
        e0_kev = joules_to_kev(e0)
        return mass_depth_to_si((a / z) * (7.73e-6 * math.sqrt(j) * math.pow(e0_kev, 1.5) + 7.35e-7 * e0_kev * e0_kev))


class KanayaOkayama1972(ElectronRange):
    def __init__(self):
        super().__init__("Kanaya & Okayama 1972", "Kanaya K, Okayama S, J. Phys. D 5 (1972) 43")

    @staticmethod
    def compute_element(element: Element, e0: float) -> float:
        rng = 1.0e-4 * 0.0276 * element.atomic_weight * math.pow(joules_to_kev(e0), 1.67) / math.pow(element.z, 0.89)
        return mass_depth_to_si(rng)

    def compute(self, resolver: Resolver, composition: Composition, e0: float) -> float:
        return 1.0 / sum(w / self.compute_element(el, e0) for el, w in composition.normalized_fractions())


POUCHOU_1991 = Pouchou1991()
LOVE_ET_AL_1978 = LoveEtAl1978()
KANAYA_OKAYAMA_1972 = KanayaOkayama1972()

IMPLEMENTATIONS = [POUCHOU_1991, LOVE_ET_AL_1978, KANAYA_OKAYAMA_1972]
