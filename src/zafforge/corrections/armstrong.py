"""
Armstrong (1982) Gaussian phi(rho z) model as implemented in CITZAF, and
its particle extension.

    phi(rho z) = gamma0 exp(-(alpha rho z)^2) (1 - Q exp(-beta rho z))

The particle correction integrates the escape fraction of the specimen
shape against the bulk curve.

Reference: Armstrong JT, in Microbeam Analysis (1982) 175-180;
           Armstrong JT, in Electron Probe Quantitation (1991) 261-315
"""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.special import erfcx

from zafforge.core.chemistry import Composition, XRayTransition
from zafforge.core.errors import DomainError
from zafforge.core.mathutil import erfcx_series, integrate_bounded
from zafforge.core.strategy import AlgorithmFamily, Strategy
from zafforge.core.units import joules_to_kev, mac_from_si, mass_depth_from_si, mass_depth_to_si
from zafforge.corrections.algorithm import PhiRhoZAlgorithm
from zafforge.corrections.shapes import AbsorptionGeometry, escape_fraction
from zafforge.physics import backscatter, electron_range, ionization, stopping_power, surface_ionization

logger = logging.getLogger(__name__)

SQRT_PI = math.sqrt(math.pi)


def armstrong_means(composition: Composition):
    """(Zbar, Abar) with the 1/A weighting Armstrong uses."""
    top = bottom = total = 0.0
    for el, c in composition.normalized_fractions():
        top += c * el.z / el.atomic_weight
        bottom += c / el.atomic_weight
        total += c
    return top / bottom, total / bottom


class Armstrong1982(PhiRhoZAlgorithm):
    """
    Armstrong's bulk correction (CITZAF).

    Args:
        use_series: Evaluate exp(x^2) erfc(x) with the five-term series used
            by CITZAF instead of scipy.special.erfcx
    """

    name = "Armstrong CITZAF"
    reference = "Armstrong JT, Microbeam Analysis (1982) 175-180"
    limitations = "Flat bulk specimen at normal incidence; a beam tilt is ignored."

    def __init__(self, strategy=None, defaults=None, use_series: bool = False):
        super().__init__(strategy, defaults)
        self.use_series = use_series
        self.gamma0 = self.alpha = self.beta = self.q = 0.0

    @classmethod
    def local_strategy(cls) -> Strategy:
        return Strategy.of(
            surface_ionization.LOVE_1978_CITZAF,
            ionization.BERGER_SELTZER_CITZAF,
            backscatter.LOVE_1978_FACTOR,
            backscatter.LOVE_1978,
            stopping_power.LOVE_SCOTT_CITZAF,
            electron_range.KANAYA_OKAYAMA_1972,
        )

    def _erfcx(self, x: float) -> float:
        return erfcx_series(x) if self.use_series else float(erfcx(x))

    def _setup(self) -> None:
        comp = self.composition
        e0 = joules_to_kev(self.beam_energy)
        ec = self.shell.edge_energy_kev
        u0 = e0 / ec
        z_bar, a_bar = armstrong_means(comp)
        log_u0 = math.log(u0)
        mip = self.resolve(AlgorithmFamily.MEAN_IONIZATION_POTENTIAL)
        j = joules_to_kev(mip.compute_ln(comp))
        si = self.resolve(AlgorithmFamily.SURFACE_IONIZATION)

        self.gamma0 = (5.0 * math.pi * u0 / (log_u0 * (u0 - 1.0))) * (log_u0 - 5.0 + 5.0 * math.pow(u0, -0.2))
        self.alpha = (2.97e5 * math.pow(z_bar, 1.05) / (a_bar * math.pow(e0, 1.25))) * math.sqrt(
            math.log(1.166 * e0 / j) / (e0 - ec))
        self.beta = 8.5e5 * z_bar * z_bar / (a_bar * e0 * e0 * (self.gamma0 - 1.0))
        phi0 = si.compute(self, comp, self.shell, self.beam_energy)
        self.q = (self.gamma0 - phi0) / self.gamma0
        if not all(math.isfinite(v) and v > 0.0 for v in (self.gamma0, self.alpha, self.beta)):
            raise DomainError(
                f"Armstrong parameters are not physical (gamma0={self.gamma0:.4g}, alpha={self.alpha:.4g}, "
                f"beta={self.beta:.4g})", composition=comp, shell=self.shell)
        logger.debug("Armstrong parameters for %s: gamma0=%.4g alpha=%.4g beta=%.4g Q=%.4g",
                     self.shell, self.gamma0, self.alpha, self.beta, self.q)

    def z_factor(self) -> float:
        """R / S for the current shell (relative units)."""
        bf = self.resolve(AlgorithmFamily.BACKSCATTER_FACTOR)
        sp = self.resolve(AlgorithmFamily.STOPPING_POWER)
        r = bf.compute(self, self.composition, self.shell, self.beam_energy)
        return r * sp.compute_inv(self, self.composition, self.shell, self.beam_energy)

    def _generated_cgs(self) -> float:
        zz = 0.5 * self.beta / self.alpha
        return SQRT_PI * self.gamma0 * 0.5 * (1.0 - self._erfcx(zz) * self.q) / self.alpha

    def _emitted_cgs(self, chi: float) -> float:
        xx = 0.5 * chi / self.alpha
        yy = 0.5 * (self.beta + chi) / self.alpha
        return SQRT_PI * self.gamma0 * 0.5 * (self._erfcx(xx) - self.q * self._erfcx(yy)) / self.alpha

    def _generated(self, xrt: XRayTransition) -> float:
        return mass_depth_to_si(self._generated_cgs())

    def _emitted(self, chi_cm2_g: float) -> float:
        return self._emitted_cgs(chi_cm2_g)

    def _compute_za(self, xrt: XRayTransition) -> float:
        return self.z_factor() * self.emitted(self.chi(xrt)) / self.generated(xrt)

    def _curve(self, rho_z_g_cm2):
        rz = np.asarray(rho_z_g_cm2, dtype=float)
        return self.gamma0 * np.exp(-np.square(self.alpha * rz)) * (1.0 - self.q * np.exp(-self.beta * rz))

    def max_depth(self) -> float:
        """Depth at which the Gaussian has decayed by e^-30."""
        self._require()
        return mass_depth_to_si(math.sqrt(30.0) / self.alpha)


class Armstrong1982Particle(Armstrong1982):
    """
    Armstrong's correction for particles and shaped specimens.

    Bulk specimens (no shape or ``Bulk``) use the analytical bulk result.
    Otherwise the escape fraction of the shape is integrated against the
    bulk curve from the surface to the smaller of the particle diameter
    and 1.5 Kanaya-Okayama ranges.
    """

    name = "Armstrong CITZAF - Particle"
    limitations = ("Idealized shapes of uniform density with the beam on the shape axis. Curved tops "
                   "(sphere, hemisphere, horizontal cylinder) lose some surface intensity to rim re-entry.")

    def _setup(self) -> None:
        props = self.properties
        if not props.is_bulk() and props.density_g_cc is None:
            raise DomainError("The particle correction requires a specimen density",
                              composition=self.composition, shell=self.shell)
        super()._setup()

    def geometry(self, xrt: XRayTransition) -> AbsorptionGeometry:
        """Absorption geometry of ``xrt`` in the current shape."""
        self._require(xrt)
        mac = self.resolve(AlgorithmFamily.MASS_ABSORPTION)
        mu = mac_from_si(mac.compute(self.composition, xrt))
        # diameter in m -> cm
        rho_d = self.properties.density_g_cc * self.properties.sample_shape.diameter * 100.0
        return AbsorptionGeometry(mu=mu, psi=self.exit_angle, rho_d=rho_d)

    def particle_factor(self, xrt: XRayTransition) -> float:
        """Emitted / generated intensity for the shaped specimen."""
        shape = self.properties.sample_shape
        geom = self.geometry(xrt)
        ko = electron_range.KANAYA_OKAYAMA_1972.compute(self, self.composition, self.beam_energy)
        upper = min(geom.rho_d, 1.5 * mass_depth_from_si(ko))
        emitted = integrate_bounded(
            lambda rz: escape_fraction(shape, geom, rz) * float(self._curve(rz)), 0.0, upper)
        logger.debug("%s particle integral over [0, %.4g] g/cm^2: %.4g", xrt, upper, emitted)
        return mass_depth_to_si(emitted) / self.generated(xrt)

    def _compute_za(self, xrt: XRayTransition) -> float:
        if self.properties.is_bulk():
            return super()._compute_za(xrt)
        pc = self.particle_factor(xrt)
        return self.z_factor() * (pc if pc != 0.0 else 1.0)
