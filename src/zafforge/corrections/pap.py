"""
PAP (Pouchou & Pichoir 1991) double-parabola phi(rho z) model.

The depth distribution is two parabolas joined at Rc: the first rises from
phi(0) to a maximum at Rm, the second falls to zero at the ionization range
Rx. Given the curve area F, phi(0), Rm and Rx, the join depth Rc follows
from a quadratic. All depths here are in g/cm^2 and chi in cm^2/g; the
correction class converts at its boundary.

Reference: Pouchou & Pichoir, in Electron Probe Quantitation, Heinrich &
           Newbury (eds), Plenum (1991) 31-75
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from zafforge.core.chemistry import Composition, XRayTransition, log_mean_z, pap_mean_z
from zafforge.core.errors import DomainError
from zafforge.core.strategy import AlgorithmFamily, Strategy
from zafforge.core.units import mass_depth_from_si, mass_depth_to_si
from zafforge.corrections.algorithm import PhiRhoZAlgorithm
from zafforge.physics import absorption, backscatter, electron_range, ionization, stopping_power
from zafforge.physics import surface_ionization

logger = logging.getLogger(__name__)

__all__ = [
    "PAPParameters",
    "PAP1991",
    "solve_pap",
    "pap_curve",
    "pap_emitted",
    "pap_mean_z",
    "log_mean_z",
]


@dataclass(frozen=True)
class PAPParameters:
    """
    Solved double-parabola parameters (depths in g/cm^2).

    Attributes:
        f: Area under the curve
        phi0: Surface ionization
        rm: Depth of the maximum of the first parabola
        rc: Join depth
        rx: Ionization range
        a1: First parabola amplitude
        a2: Second parabola amplitude
        fallback: True when Rm was recomputed because the quadratic for Rc
            had no positive discriminant or no feasible root
    """

    f: float
    phi0: float
    rm: float
    rc: float
    rx: float
    a1: float
    a2: float
    fallback: bool = False


def _feasible(rm: float, rc: float, rx: float) -> bool:
    return math.isfinite(rm) and math.isfinite(rc) and 0.0 <= rm <= rx and rc > 0.0


def solve_pap(f: float, phi0: float, rm: float, rx: float) -> PAPParameters:
    """
    Solve for Rc and the parabola amplitudes.

    When the discriminant is not positive, or its root violates
    0 <= Rm <= Rx, Rc > 0, Rm and Rc are recomputed from F, phi0 and Rx
    alone. Both routes need F > phi0 Rx / 3; below that the overvoltage is
    too small for the model.

    Raises:
        DomainError: neither route gives a feasible parameter set
    """
    tt = f - phi0 * rx / 3.0
    dr = rx - rm
    d = dr * tt * (dr * f - phi0 * rx * (rm + rx / 3.0))
    rc = math.nan
    if d > 0.0:
        rc = 1.5 * (tt / phi0 - math.sqrt(d) / (phi0 * dr))
    fallback = not _feasible(rm, rc, rx)
    if fallback:
        fb_rm = rx * tt / (f + phi0 * rx)
        fb_rc = 3.0 * fb_rm * (f + phi0 * rx) / (2.0 * phi0 * rx)
        if not _feasible(fb_rm, fb_rc, rx):
            raise DomainError(f"Too small an overvoltage for this algorithm (Rm={fb_rm:.4g}, Rc={fb_rc:.4g}, "
                              f"Rx={rx:.4g}, F - phi0 Rx/3={tt:.4g})")
        logger.warning("PAP quadratic (D=%.3g) gave Rm=%.4g, Rc=%.4g; using fallback Rm=%.4g, Rc=%.4g",
                       d, rm, rc, fb_rm, fb_rc)
        rm, rc = fb_rm, fb_rc
    a1 = phi0 / (rm * (rc + rx) - rx * rc)
    a2 = a1 * (rc - rm) / (rc - rx)
    if not (math.isfinite(a1) and math.isfinite(a2)):
        raise DomainError(f"Too small an overvoltage for this algorithm (A1={a1:.4g}, A2={a2:.4g})")
    return PAPParameters(f=f, phi0=phi0, rm=rm, rc=rc, rx=rx, a1=a1, a2=a2, fallback=fallback)


def pap_curve(params: PAPParameters, rho_z):
    """phi at mass depth ``rho_z`` (g/cm^2, >= 0)."""
    rz = np.asarray(rho_z, dtype=float)
    p = params
    first = p.a1 * (rz - p.rm) ** 2 + p.phi0 - p.a1 * p.rm * p.rm
    second = p.a2 * (rz - p.rx) ** 2
    return np.where(rz < p.rc, first, np.where(rz < p.rx, second, 0.0))


def pap_emitted(params: PAPParameters, chi: float) -> float:
    """Integral of phi(rho z) exp(-chi rho z); chi in cm^2/g, result in g/cm^2."""
    p = params
    if chi <= 0.0:
        return p.f
    chi2 = chi * chi
    f1 = (p.a1 / chi) * (
        (((p.rc - p.rm) * (p.rx - p.rc - 2.0 / chi) - 2.0 / chi2) * math.exp(-chi * p.rc))
        - (p.rc - p.rm) * p.rx
        + p.rm * (p.rc - 2.0 / chi)
        + 2.0 / chi2
    )
    f2 = (p.a2 / chi) * (
        ((p.rx - p.rc) * (p.rx - p.rc - 2.0 / chi) + 2.0 / chi2) * math.exp(-chi * p.rc)
        - (2.0 / chi2) * math.exp(-chi * p.rx)
    )
    return f1 + f2


def pap_depths(composition: Composition, u0: float, range_g_cm2: float):
    """Rm and Rx (g/cm^2) from the empirical PAP expressions."""
    z_bar = composition.mean_atomic_number()
    z_bar_n = log_mean_z(composition)
    beta = 40.0 / z_bar
    q0 = 1.0 - 0.535 * math.exp(-math.pow(21.0 / z_bar_n, 1.2)) - 2.5e-4 * math.pow(z_bar_n / 20.0, 3.5)
    q = q0 + (1.0 - q0) * math.exp((1.0 - u0) / beta)
    d = 1.0 + 1.0 / math.pow(u0, math.pow(z_bar, 0.45))
    rx = q * d * range_g_cm2
    g1 = 0.11 + 0.41 * math.exp(-math.pow(z_bar / 12.75, 0.75))
    g2 = 1.0 - math.exp(-math.pow(u0 - 1.0, 0.35) / 1.19)
    g3 = 1.0 - math.exp((0.5 - u0) * math.pow(z_bar, 0.4) / 4.0)
    return g1 * g2 * g3 * rx, rx


class PAP1991(PhiRhoZAlgorithm):
    """Pouchou & Pichoir's full (double parabola) phi(rho z) correction."""

    name = "PAP - Pouchou & Pichoir 1991"
    reference = "Pouchou & Pichoir, Electron Probe Quantitation (1991) 31-75"
    limitations = ("Flat bulk specimen. Needs F > phi0 Rx / 3, which fails close to the edge "
                   "(typically at overvoltages of 1.2 or less); such shells raise DomainError.")

    def __init__(self, strategy=None, defaults=None):
        super().__init__(strategy, defaults)
        self.params = None

    @classmethod
    def local_strategy(cls) -> Strategy:
        return Strategy.of(
            absorption.POUCHOU_1991,
            backscatter.POUCHOU_1991,
            ionization.POUCHOU_86,
            surface_ionization.POUCHOU_1991,
            stopping_power.POUCHOU_1991,
            electron_range.POUCHOU_1991,
            ionization.ZELLER_75,
        )

    def area(self) -> float:
        """F = R (1/S) / Q(E0), in g/cm^2."""
        bf = self.resolve(AlgorithmFamily.BACKSCATTER_FACTOR)
        sp = self.resolve(AlgorithmFamily.STOPPING_POWER)
        icx = self.resolve(AlgorithmFamily.IONIZATION_CROSS_SECTION)
        r = bf.compute(self, self.composition, self.shell, self.beam_energy)
        inv_s = sp.compute_inv(self, self.composition, self.shell, self.beam_energy)
        return r * inv_s / icx.compute_family(self.shell, self.beam_energy)

    def surface_ionization(self) -> float:
        si = self.resolve(AlgorithmFamily.SURFACE_IONIZATION)
        return si.compute(self, self.composition, self.shell, self.beam_energy)

    def _setup(self) -> None:
        er = self.resolve(AlgorithmFamily.ELECTRON_RANGE)
        u0 = self.beam_energy / self.shell.edge_energy
        rng = mass_depth_from_si(er.compute_shell(self, self.composition, self.shell, self.beam_energy))
        rm, rx = pap_depths(self.composition, u0, rng)
        f = self.area()
        phi0 = self.surface_ionization()
        try:
            self.params = solve_pap(f, phi0, rm, rx)
        except DomainError as exc:
            raise DomainError(str(exc), composition=self.composition, shell=self.shell) from exc
        logger.debug("PAP parameters for %s: %s", self.shell, self.params)

    def _emitted(self, chi_cm2_g: float) -> float:
        return pap_emitted(self.params, chi_cm2_g)

    def _compute_za(self, xrt: XRayTransition) -> float:
        return self.emitted(self.chi(xrt))

    def _generated(self, xrt: XRayTransition) -> float:
        return mass_depth_to_si(self.params.f)

    def _curve(self, rho_z_g_cm2):
        return pap_curve(self.params, rho_z_g_cm2)

    def max_depth(self) -> float:
        self._require()
        return mass_depth_to_si(self.params.rx)
