"""
Electron backscatter coefficients and backscatter (R) factors.

The backscatter coefficient eta is the fraction of incident electrons that
leave the specimen. The backscatter factor R is the fraction of ionization
retained in the specimen despite backscatter losses.

Reference: Pouchou & Pichoir, Electron Probe Quantitation (1991) 31-75;
           Love, Cox & Scott, J. Phys. D 11 (1978) 7
"""

from __future__ import annotations

import math

from zafforge.core.chemistry import AtomicShell, Composition, Element, pap_mean_z
from zafforge.core.strategy import Algorithm, AlgorithmFamily, Resolver
from zafforge.core.units import joules_to_kev


class BackscatterCoefficient(Algorithm):
    """Fraction of beam electrons backscattered, on [0, 1]."""

    family = AlgorithmFamily.BACKSCATTER_COEFFICIENT

    def compute_element(self, element: Element, e0: float) -> float:
        raise NotImplementedError

    def compute(self, composition: Composition, e0: float) -> float:
        return sum(w * self.compute_element(el, e0) for el, w in composition.normalized_fractions())


class Heinrich1981Coefficient(BackscatterCoefficient):
    def __init__(self):
        super().__init__("Heinrich 1981", "Heinrich KFJ, Electron Beam X-ray Microanalysis (1981) 215")

    def compute_element(self, element: Element, e0: float) -> float:
        z = element.z
        return 0.5 - 0.228e-4 * (80.0 - z) * math.pow(abs(80.0 - z), 1.3)


class PouchouPichoir1991Coefficient(BackscatterCoefficient):
    """Evaluated at an effective Z from the sqrt(Z) average of the composition."""

    def __init__(self):
        super().__init__("Pouchou & Pichoir 1991", "Pouchou & Pichoir, Electron Probe Quantitation (1991)")

    @staticmethod
    def _from_z(zp: float) -> float:
        return 1.75e-3 * zp + 0.37 * (1.0 - math.exp(-0.015 * math.pow(zp, 1.3)))

    def compute_element(self, element: Element, e0: float) -> float:
        return self._from_z(element.z)

    def compute(self, composition: Composition, e0: float) -> float:
        total = min(1.1, composition.sum_weight_fraction())
        zp = sum((w / total) * math.sqrt(el.z) for el, w in composition.fractions)
        return self._from_z(zp * zp)


class Love1978Coefficient(BackscatterCoefficient):
    """Energy-dependent fit of Love, Cox & Scott."""

    def __init__(self):
        super().__init__("Love & Scott 1978", "Love G, Cox MGC, Scott VD, J. Phys. D 11 (1978) 7")

    def compute_element(self, element: Element, e0: float) -> float:
        z = float(element.z)
        e0_kev = joules_to_kev(e0)
        eta20 = -52.3791e-4 + z * (150.48371e-4 + z * (-1.67373e-4 + z * 0.00716e-4))
        h = -1112.8e-4 + z * (30.289e-4 - z * 0.15498e-4)
        return eta20 * (1.0 + h * math.log(e0_kev / 20.0))


class BackscatterFactor(Algorithm):
    """Fraction of ionization retained despite backscatter, on (0, 1]."""

    family = AlgorithmFamily.BACKSCATTER_FACTOR

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        raise NotImplementedError


def _pouchou_factor(eta: float, w: float, u0: float) -> float:
    ju = 1.0 + u0 * (math.log(u0) - 1.0)
    q = (2.0 * w - 1.0) / (1.0 - w)
    gu = (u0 - 1.0 - (1.0 - math.pow(u0, -(1.0 + q))) / (1.0 + q)) / ((2.0 + q) * ju)
    return 1.0 - eta * w * (1.0 - gu)


class Pouchou1991Factor(BackscatterFactor):
    def __init__(self):
        super().__init__("Pouchou & Pichoir 1991", "Pouchou & Pichoir, Electron Probe Quantitation (1991)")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        eta = resolver.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT).compute(composition, e0)
        u0 = e0 / shell.edge_energy
        w = 0.595 + eta / 3.7 + math.pow(eta, 4.55)
        return _pouchou_factor(eta, w, u0)


class Love1978Factor(BackscatterFactor):
    def __init__(self):
        super().__init__("Love & Scott 1978", "Love G, Cox MGC, Scott VD, J. Phys. D 11 (1978) 7")

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        eta = resolver.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT).compute(composition, e0)
        u = e0 / shell.edge_energy
        v = math.log(u)
        g_u = v * (2.87898 + v * (-1.51307 + v * (0.81313 - 0.08241 * v))) / u
        i_u = v * (0.33148 + v * (0.05596 + v * (-0.06339 + 0.00947 * v)))
        return 1.0 - eta * math.pow(i_u + eta * g_u, 1.67)


class XPPTiltBackscatterFactor(BackscatterFactor):
    """
    Backscatter factor for a specimen tilted by ``tilt`` radians.

    eta and the mean backscattered energy w are raised to powers of cos(tilt)
    before entering the Pouchou & Pichoir expression.
    """

    def __init__(self, tilt: float = 0.0):
        super().__init__("XPP Tilted", "Pouchou & Pichoir, Proc. 12th ICXOM (1989) 52")
        self.tilt = tilt

    def compute(self, resolver: Resolver, composition: Composition, shell: AtomicShell, e0: float) -> float:
        eta0 = resolver.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT).compute(composition, e0)
        cos_beta = math.cos(self.tilt)
        u0 = e0 / shell.edge_energy
        zb = pap_mean_z(composition)
        eta_tilt = math.pow(eta0, math.pow(cos_beta, 1.14 - 0.4 * (1.0 - math.exp(-zb / 25.0))))
        w0 = 0.595 + eta0 / 3.7 + math.pow(eta0, 4.55)
        w_tilt = math.pow(w0, math.pow(cos_beta, 0.69 - 0.21 * (1.0 - math.exp(-zb / 17.0))))
        return _pouchou_factor(eta_tilt, w_tilt, u0)


HEINRICH_1981 = Heinrich1981Coefficient()
POUCHOU_PICHOIR_1991 = PouchouPichoir1991Coefficient()
LOVE_1978 = Love1978Coefficient()
POUCHOU_1991 = Pouchou1991Factor()
LOVE_1978_FACTOR = Love1978Factor()

IMPLEMENTATIONS = [HEINRICH_1981, POUCHOU_PICHOIR_1991, LOVE_1978, POUCHOU_1991, LOVE_1978_FACTOR]
