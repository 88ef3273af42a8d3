"""
XPP (Pouchou & Pichoir simplified) double-exponential phi(rho z) models.

    phi(rho z) = A exp(-a rho z) + (B rho z + phi0 - A) exp(-b rho z)

The four unknowns A, B, a, b follow from phi(0), the area F, the initial
slope p and the mean depth rBar. XPP1989Ext extends the model to a beam
incident at a tilt from the surface normal.

XPP1991 also predicts k-ratios with an uncertainty budget: the MAC,
backscatter (eta) and standard-composition terms of Ritchie & Newbury.

Reference: Pouchou & Pichoir, in Electron Probe Quantitation (1991) 31-75;
           Pouchou & Pichoir, Proc. 12th ICXOM, Cracow (1989) 52;
           Ritchie & Newbury, Anal. Chem. 84 (2012) 9956
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from zafforge.core.chemistry import Composition, XRayTransition, pap_mean_z
from zafforge.core.errors import DomainError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import AlgorithmFamily, Strategy
from zafforge.core.units import mac_from_si, mass_depth_from_si, mass_depth_to_si
from zafforge.corrections.algorithm import PhiRhoZAlgorithm, Target
from zafforge.physics import backscatter, ionization, stopping_power, surface_ionization
from zafforge.physics.backscatter import XPPTiltBackscatterFactor

logger = logging.getLogger(__name__)

TINY = 1.0e-6
SQRT_TWO = math.sqrt(2.0)
# Tilts at or below this (radians) use the normal-incidence model
MIN_TILT = math.radians(1.0)
# Absolute one-sigma uncertainty of the backscatter coefficient
ETA_UNCERTAINTY = 0.01


@dataclass(frozen=True)
class XPPParameters:
    """Solved double-exponential parameters (mass depth in g/cm^2)."""

    f: float
    phi0: float
    big_a: float
    big_b: float
    a: float
    b: float
    eps: float


def solve_xpp(f: float, phi0: float, r_bar: float, p: float, b: float) -> XPPParameters:
    """
    Solve for A, B and a given F, phi(0), rBar, slope p and b.

    |eps| = |a - b| / b is held at or above TINY with its sign preserved
    (an exact zero becomes +TINY), and a is recomputed from the guarded eps.
    """
    a = (p + b * (2.0 * phi0 - b * f)) / (b * f * (2.0 - b * r_bar) - phi0)
    eps = (a - b) / b
    if abs(eps) < TINY:
        eps = math.copysign(TINY, eps) if eps != 0.0 else TINY
        a = b * (1.0 + eps)
        logger.debug("XPP eps guard engaged: eps=%g", eps)
    big_b = (b * b * f * (1.0 + eps) - p - phi0 * b * (2.0 + eps)) / eps
    big_a = ((big_b / b + phi0 - b * f) * (1.0 + eps)) / eps
    return XPPParameters(f=f, phi0=phi0, big_a=big_a, big_b=big_b, a=a, b=b, eps=eps)


def xpp_curve(params: XPPParameters, rho_z):
    rz = np.asarray(rho_z, dtype=float)
    p = params
    return p.big_a * np.exp(-p.a * rz) + (p.big_b * rz + p.phi0 - p.big_a) * np.exp(-p.b * rz)


def xpp_emitted(params: XPPParameters, chi: float) -> float:
    """Integral of phi(rho z) exp(-chi rho z); chi in cm^2/g."""
    p = params
    return ((p.phi0 + p.big_b / (p.b + chi)) - p.big_a * p.b * p.eps / (p.b * (1.0 + p.eps) + chi)) / (p.b + chi)


def mean_depth(f: float, phi0: float, zb: float, u0: float) -> float:
    """Mean ionization depth rBar, limited so that F / rBar >= phi0."""
    x = 1.0 + 1.3 * math.log(zb)
    y = 0.2 + zb / 200.0
    r_bar = f / (1.0 + x * math.log(1.0 + y * (1.0 - math.pow(u0, -0.42))) / math.log(1.0 + y))
    if f / r_bar < phi0:
        r_bar = f / phi0
    return r_bar


def slope_factor(zb: float, u0: float) -> float:
    """g * h^4 of the initial-slope expression."""
    g = 0.22 * math.log(4.0 * zb) * (1.0 - 2.0 * math.exp(zb * (1.0 - u0) / 15.0))
    h = 1.0 - 10.0 * (1.0 - 1.0 / (1.0 + u0 / 10.0)) / (zb * zb)
    return g * (h * h) * (h * h)


@dataclass(frozen=True)
class KRatioUncertainty:
    """A predicted k-ratio and its one-sigma uncertainty components."""

    k: float
    mac: float
    eta: float
    composition: float

    @property
    def sigma(self) -> float:
        """Components combined in quadrature."""
        return math.sqrt(self.mac ** 2 + self.eta ** 2 + self.composition ** 2)

    def to_dict(self) -> dict:
        return {"k": self.k, "sigma": self.sigma, "u_mac": self.mac, "u_eta": self.eta,
                "u_composition": self.composition}


def eta_uncertainty(std: "XPP1991", unk: "XPP1991", xrt: XRayTransition) -> float:
    """
    Mass-fraction uncertainty of the unknown from the backscatter
    coefficient, for an absolute uncertainty ETA_UNCERTAINTY in eta.
    """
    sp = std.resolve(AlgorithmFamily.STOPPING_POWER)

    def d_intensity(alg: "XPP1991") -> float:
        inv_s = sp.compute_inv(alg, alg.composition, alg.shell, alg.beam_energy)
        return inv_s * alg.compute_za(xrt) / alg.generated(xrt) * alg.backscatter_sensitivity()

    std_za = std.compute_za(xrt)
    unk_za = unk.compute_za(xrt)
    c = unk.composition.weight_fraction(xrt.element)
    spread = math.hypot(d_intensity(std) / std_za, std_za * d_intensity(unk) / (unk_za * unk_za))
    return c * (unk_za / std_za) * spread * ETA_UNCERTAINTY


def mac_uncertainty(std: "XPP1991", unk: "XPP1991", xrt: XRayTransition) -> float:
    """Mass-fraction uncertainty of the unknown from the MAC of every element present."""
    csc = 1.0 / math.sin(unk.exit_angle)
    std_x = std.emitted_slope(xrt)
    unk_x = unk.emitted_slope(xrt)
    std_za = mass_depth_from_si(std.compute_za(xrt))
    unk_za = mass_depth_from_si(unk.compute_za(xrt))
    mac = unk.resolve(AlgorithmFamily.MASS_ABSORPTION)
    sum_sqr = 0.0
    for el in set(std.composition.elements) | set(unk.composition.elements):
        d_std = std_x * std.composition.weight_fraction(el) * csc
        d_unk = unk_x * unk.composition.weight_fraction(el) * csc
        d_rel = (d_std - std_za * d_unk / unk_za) / unk_za
        _, sigma = mac.compute_with_uncertainty(el, xrt)
        sum_sqr += (d_rel * mac_from_si(sigma)) ** 2
    c = unk.composition.weight_fraction(xrt.element)
    return c * (unk_za / std_za) * math.sqrt(sum_sqr)


class XPP1991(PhiRhoZAlgorithm):
    """Pouchou & Pichoir's simplified model (XPP)."""

    name = "XPP - Pouchou & Pichoir Simplified"
    reference = "Pouchou & Pichoir, Electron Probe Quantitation (1991)"
    limitations = "Flat bulk specimen at normal beam incidence."

    def __init__(self, strategy=None, defaults=None):
        super().__init__(strategy, defaults)
        self.params = None

    @classmethod
    def local_strategy(cls) -> Strategy:
        return Strategy.of(
            backscatter.POUCHOU_1991,
            surface_ionization.POUCHOU_1991,
            stopping_power.POUCHOU_1991,
            ionization.POUCHOU_86,
        )

    def _area(self, bf) -> float:
        sp = self.resolve(AlgorithmFamily.STOPPING_POWER)
        icx = self.resolve(AlgorithmFamily.IONIZATION_CROSS_SECTION)
        r = bf.compute(self, self.composition, self.shell, self.beam_energy)
        inv_s = sp.compute_inv(self, self.composition, self.shell, self.beam_energy)
        return r * inv_s / icx.compute_family(self.shell, self.beam_energy)

    def _setup(self) -> None:
        f = self._area(self.resolve(AlgorithmFamily.BACKSCATTER_FACTOR))
        si = self.resolve(AlgorithmFamily.SURFACE_IONIZATION)
        phi0 = si.compute(self, self.composition, self.shell, self.beam_energy)
        zb = pap_mean_z(self.composition)
        u0 = self.beam_energy / self.shell.edge_energy
        r_bar = mean_depth(f, phi0, zb, u0)
        gh4 = slope_factor(zb, u0)
        b = SQRT_TWO * (1.0 + math.sqrt(1.0 - r_bar * phi0 / f)) / r_bar
        limit = 0.9 * b * r_bar * r_bar * (b - 2.0 * phi0 / f)
        gh4 = min(gh4, limit)
        p = gh4 * f / (r_bar * r_bar)
        self.params = solve_xpp(f, phi0, r_bar, p, b)
        logger.debug("XPP parameters for %s: %s", self.shell, self.params)

    def _emitted(self, chi_cm2_g: float) -> float:
        return xpp_emitted(self.params, chi_cm2_g)

    def _compute_za(self, xrt: XRayTransition) -> float:
        return self.emitted(self.chi(xrt))

    # ------------------------------------------------------------------
    # Uncertainty budget
    # ------------------------------------------------------------------

    def emitted_slope(self, xrt: XRayTransition) -> float:
        """d(emitted)/d(chi) at the chi of ``xrt``, in g^2/cm^4."""
        self._require(xrt)
        p = self.params
        chi = mac_from_si(self.chi(xrt))
        lbx = p.b + chi
        return (p.big_a * (1.0 / (lbx * lbx) - 1.0 / (p.a + chi) ** 2)
                - (2.0 * p.big_b + p.phi0 * lbx) / lbx ** 3)

    def backscatter_sensitivity(self) -> float:
        """
        d(R)/d(eta) of the backscatter loss factor at the current overvoltage.

        Uses the weight-averaged mean Z of the XPP appendix.
        """
        self._require()
        zb = sum(math.sqrt(el.z) * w for el, w in self.composition.normalized_fractions()) ** 2
        eta = 1.75e-3 * zb + 0.37 * (1.0 - math.exp(-0.015 * math.pow(zb, 1.3)))
        d_wb = 0.27027 + 4.55 * math.pow(eta, 3.55)
        wb = 0.595 + eta / 3.7 + math.pow(eta, 4.55)
        dq = d_wb / (wb - 1.0) ** 2
        q = (2.0 * wb - 1.0) / (1.0 - wb)
        opq = 1.0 + q
        tpq = 2.0 + q
        u0 = self.beam_energy / self.shell.edge_energy
        up = math.pow(u0, -opq)
        ju = 1.0 + u0 * (math.log(u0) - 1.0)
        dg = (((1.0 - u0) + (1.0 - up) / opq) / (ju * tpq * tpq)
              + ((1.0 - up) / (opq * opq) - up * math.log(u0) / opq) / (ju * tpq)) * dq
        g = (u0 - 1.0 - (1.0 - up) / opq) / (tpq * ju)
        return eta * wb * dg - (1.0 - g) * (wb + eta * d_wb)

    def _twin(self) -> "XPP1991":
        return type(self)(self.strategy, self._defaults)

    def k_ratio_uncertainty(self, unknown: Composition, standard: Composition, target: Target,
                            properties: ProbeProperties,
                            standard_uncertainty: float = 0.0) -> "KRatioUncertainty":
        """
        Predicted k-ratio with its one-sigma uncertainty budget.

        Args:
            standard_uncertainty: Fractional uncertainty of the standard's
                certified mass fraction of the analyte
        """
        element = target.element
        w_std = standard.weight_fraction(element)
        if w_std <= 0.0:
            raise DomainError(f"{element} is not present in the standard", composition=standard)
        lines = [target] if isinstance(target, XRayTransition) else list(target)
        weights = [1.0] if isinstance(target, XRayTransition) else list(target.weights())
        unk_alg, std_alg = self, self._twin()
        w_unk = unknown.weight_fraction(element)
        u_comp = w_unk * standard_uncertainty
        k = u_mac = u_eta = u_c = 0.0
        for xrt, w in zip(lines, weights):
            unk_alg.initialize(unknown, xrt.shell, properties)
            std_alg.initialize(standard, xrt.shell, properties.without_shape())
            corr = unk_alg.compute_zaf(xrt) / (std_alg.compute_zaf(xrt) * w_std)
            k += w * corr * w_unk
            u_mac += w * corr * mac_uncertainty(std_alg, unk_alg, xrt)
            u_eta += w * corr * eta_uncertainty(std_alg, unk_alg, xrt)
            u_c += w * corr * u_comp
        total = float(sum(weights))
        return KRatioUncertainty(k=k / total, mac=u_mac / total, eta=u_eta / total, composition=u_c / total)

    def _generated(self, xrt: XRayTransition) -> float:
        return mass_depth_to_si(self.params.f)

    def _curve(self, rho_z_g_cm2):
        return xpp_curve(self.params, rho_z_g_cm2)

    def max_depth(self) -> float:
        """Depth at which the slower exponential has decayed by e^-30."""
        self._require()
        return mass_depth_to_si(30.0 / min(self.params.a, self.params.b))


class XPP1989Ext(XPP1991):
    """XPP for a beam incident at ``tilt_deg`` from the surface normal."""

    name = "XPP - Pouchou & Pichoir Simplified (Non-normal)"
    reference = "Pouchou & Pichoir, Proc. 12th ICXOM (1989) 52"
    limitations = "Flat bulk specimen; the beam may be tilted from the surface normal."

    def _setup(self) -> None:
        super()._setup()
        beta = self.properties.tilt
        if beta <= MIN_TILT:
            return
        cos_beta = math.cos(beta)
        u0 = self.beam_energy / self.shell.edge_energy
        f = cos_beta * self._area(XPPTiltBackscatterFactor(beta))
        z_bar = self.composition.mean_atomic_number()
        zb = pap_mean_z(self.composition)

        # Tilt-modified surface ionization
        h = 0.2 + 2.3 / math.sqrt(z_bar)
        q = 1.0 + h * (1.0 - math.exp(-math.pow(u0 - 1.0, 0.3)))
        phi0 = q * math.pow(self.params.phi0 / q, math.pow(cos_beta, 0.7))

        r_bar = mean_depth(f, phi0, zb, u0)
        gh4 = slope_factor(zb, u0)
        b = SQRT_TWO * (1.0 + math.sqrt(1.0 - r_bar * phi0 / f)) / (r_bar * cos_beta)
        limit = 0.9 * b * r_bar * r_bar * (b - 2.0 * phi0 / f)
        gh4 = min(gh4, limit)
        p0 = gh4 * f / (r_bar * r_bar)
        t_deg = math.degrees(beta)
        u = 8.0e-3 * math.exp(-math.pow(z_bar, 0.3))
        p_tilt = p0 * (1.0 + u * math.pow(t_deg, 1.7) - 27.0 * math.exp(-(90.0 - t_deg) / 7.0))
        self.params = solve_xpp(f, phi0, r_bar, p_tilt, b)
        logger.debug("XPP tilted (%.1f deg) parameters for %s: %s", t_deg, self.shell, self.params)
