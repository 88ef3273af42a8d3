"""
Correction protocol: the Z.A.F decomposition contract.

A CorrectionAlgorithm is initialized for one (composition, shell,
properties) triple, solves its model parameters once, and then answers
ZA / generated / ZAF queries for lines of that shell. k-ratios and relative
factors re-initialize for the unknown and the standard in turn.

Reference: Pouchou & Pichoir, Electron Probe Quantitation (1991);
           Ritchie NWM, DTSA-II / EPQ library
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from zafforge.core.chemistry import AtomicShell, Composition, XRayTransition, XRayTransitionSet
from zafforge.core.errors import DomainError, UninitializedError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import AlgorithmFamily, Resolver, Strategy
from zafforge.core.units import mac_from_si, mass_depth_from_si, mass_depth_to_si

logger = logging.getLogger(__name__)

MAX_EXIT_ANGLE_DEG = 89.99

Target = Union[XRayTransition, XRayTransitionSet]


@dataclass(frozen=True)
class ZAFFactors:
    """Multiplicative correction factors of an unknown relative to a standard."""

    z: float
    a: float
    f: float
    zaf: float

    def to_dict(self) -> dict:
        return {"Z": self.z, "A": self.a, "F": self.f, "ZAF": self.zaf}


@dataclass(frozen=True)
class _Intensities:
    za: float
    generated: float
    zaf: float


class CorrectionAlgorithm(Resolver):
    """
    Base class of all matrix-correction algorithms.

    Args:
        strategy: Sub-model choices that override this algorithm's own
            preferences (which in turn override the compiled defaults)
        defaults: Replacement for the compiled defaults (mainly for tests)
    """

    name = "Correction"
    reference = ""
    limitations = ""

    def __init__(self, strategy: Optional[Strategy] = None, defaults: Optional[Strategy] = None):
        local = self.local_strategy()
        if strategy is not None:
            local = local.apply(strategy)
        super().__init__(local, defaults)
        self._key: Optional[Tuple] = None
        self.composition: Optional[Composition] = None
        self.shell: Optional[AtomicShell] = None
        self.properties: Optional[ProbeProperties] = None
        self.beam_energy = 0.0
        self.exit_angle = 0.0

    @classmethod
    def local_strategy(cls) -> Strategy:
        """Sub-models this algorithm prefers over the compiled defaults."""
        return Strategy()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._key is not None

    def initialize(self, composition: Composition, shell: AtomicShell, properties: ProbeProperties) -> bool:
        """
        Prepare the algorithm for ``shell`` in ``composition``.

        Returns:
            False when the (composition, shell, properties) triple and the
            resolved sub-models are unchanged, True after a fresh solve.

        Raises:
            DomainError: element absent, edge at or above the beam energy,
                exit angle out of range, or no feasible model parameters
        """
        composition = composition.normalize()
        key = (composition, shell, properties, self.active_strategy())
        if key == self._key:
            return False
        if not composition.contains(shell.element):
            raise DomainError(f"{shell.element} is not present", composition=composition, shell=shell)
        e0 = properties.beam_energy
        if shell.edge_energy >= e0:
            raise DomainError(
                f"Edge energy {shell.edge_energy_kev:.3f} keV is not below the beam energy "
                f"{properties.beam_energy_kev:.3f} keV", composition=composition, shell=shell)
        for label, deg in (("take-off", properties.take_off_deg), ("exit", math.degrees(properties.exit_angle))):
            if abs(deg) > MAX_EXIT_ANGLE_DEG:
                raise DomainError(f"The {label} angle {deg:.2f} deg is outside (-89.99, 89.99)",
                                  composition=composition, shell=shell)

        self._key = None
        self.composition = composition
        self.shell = shell
        self.properties = properties
        self.beam_energy = e0
        self.exit_angle = properties.exit_angle
        try:
            self._setup()
        except DomainError:
            self.composition = self.shell = self.properties = None
            raise
        self._key = key
        logger.debug("%s initialized for %s in %s at %.2f keV", self.name, shell, composition,
                     properties.beam_energy_kev)
        return True

    def _setup(self) -> None:
        """Derive model parameters from the current state."""

    def caveat(self, xrt: Optional[XRayTransition] = None) -> str:
        """
        Known limits of applicability; empty when there are none.

        With ``xrt`` the initialized composition is also checked for
        absorption edges close to the line.
        """
        notes = [self.limitations] if self.limitations else []
        if xrt is not None:
            self._require(xrt)
            mac = self.resolve(AlgorithmFamily.MASS_ABSORPTION)
            notes.extend(mac.caveats(self.composition, xrt))
        return " ".join(notes)

    def _require(self, xrt: Optional[XRayTransition] = None) -> None:
        if self._key is None:
            raise UninitializedError(f"{self.name} used before initialize()")
        if xrt is not None and xrt.shell != self.shell:
            raise DomainError(f"{xrt} does not originate from the initialized shell {self.shell}",
                              composition=self.composition, shell=self.shell)

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def compute_za(self, xrt: XRayTransition) -> float:
        """Combined atomic-number and absorption intensity."""
        self._require(xrt)
        return self._compute_za(xrt)

    def generated(self, xrt: XRayTransition) -> float:
        """Depth-integrated intensity without absorption."""
        self._require(xrt)
        return self._generated(xrt)

    def _compute_za(self, xrt: XRayTransition) -> float:
        raise NotImplementedError

    def _generated(self, xrt: XRayTransition) -> float:
        raise NotImplementedError

    def fluorescence(self, xrt: XRayTransition) -> float:
        """Fluorescence multiplier from the resolved fluorescence model."""
        self._require(xrt)
        model = self.resolve(AlgorithmFamily.FLUORESCENCE)
        return model.compute(self, self.composition, xrt, self.beam_energy, self.exit_angle)

    def compute_zaf(self, xrt: XRayTransition) -> float:
        return self.fluorescence(xrt) * self.compute_za(xrt)

    def chi(self, xrt: XRayTransition) -> float:
        """Mass absorption coefficient divided by sin(exit angle), m^2/kg."""
        self._require()
        if abs(math.degrees(self.exit_angle)) > MAX_EXIT_ANGLE_DEG:
            raise DomainError(f"Exit angle {math.degrees(self.exit_angle):.2f} deg is out of range",
                              composition=self.composition, shell=self.shell)
        mac = self.resolve(AlgorithmFamily.MASS_ABSORPTION)
        return mac.compute(self.composition, xrt) / math.sin(self.exit_angle)

    # ------------------------------------------------------------------
    # k-ratios
    # ------------------------------------------------------------------

    def _intensities(self, composition: Composition, xrt: XRayTransition,
                     properties: ProbeProperties) -> _Intensities:
        self.initialize(composition, xrt.shell, properties)
        za = self.compute_za(xrt)
        return _Intensities(za=za, generated=self.generated(xrt), zaf=za * self.fluorescence(xrt))

    def _set_intensities(self, composition: Composition, target: Target,
                         properties: ProbeProperties) -> _Intensities:
        if isinstance(target, XRayTransition):
            return self._intensities(composition, target, properties)
        parts = [self._intensities(composition, xrt, properties) for xrt in target]
        w = target.weights()
        return _Intensities(
            za=float(np.dot(w, [p.za for p in parts])),
            generated=float(np.dot(w, [p.generated for p in parts])),
            zaf=float(np.dot(w, [p.zaf for p in parts])),
        )

    def relative_zaf(self, composition: Composition, target: Target, properties: ProbeProperties,
                     standard: Optional[Composition] = None) -> ZAFFactors:
        """
        Decompose the correction of ``composition`` relative to ``standard``.

        The standard defaults to the pure element and is always evaluated as
        a bulk specimen. For a transition set the intensities are combined
        with the set's line weights before forming the ratios, so
        Z * A * F == ZAF holds exactly. The per-line factors are not
        averaged, so for a set each factor can differ slightly from the
        weighted mean of the single-line factors.
        """
        element = target.element
        std = standard if standard is not None else Composition.pure(element)
        unk = self._set_intensities(composition, target, properties)
        ref = self._set_intensities(std, target, properties.without_shape())
        z = unk.generated / ref.generated
        a = (unk.za * ref.generated) / (ref.za * unk.generated)
        f = (unk.zaf / unk.za) / (ref.zaf / ref.za)
        zaf = unk.zaf / ref.zaf
        return ZAFFactors(z=z, a=a, f=f, zaf=zaf)

    def relative_z(self, composition: Composition, target: Target, properties: ProbeProperties,
                   standard: Optional[Composition] = None) -> float:
        return self.relative_zaf(composition, target, properties, standard).z

    def relative_a(self, composition: Composition, target: Target, properties: ProbeProperties,
                   standard: Optional[Composition] = None) -> float:
        return self.relative_zaf(composition, target, properties, standard).a

    def k_ratio(self, unknown: Composition, standard: Composition, target: Target,
                properties: ProbeProperties) -> float:
        """
        Predicted k-ratio of ``unknown`` against ``standard``.

        (ZAF_unk * w_unk) / (ZAF_std * w_std) with un-normalized mass
        fractions. The standard is measured as a bulk specimen.
        """
        element = target.element
        w_unk = unknown.weight_fraction(element)
        w_std = standard.weight_fraction(element)
        if w_std <= 0.0:
            raise DomainError(f"{element} is not present in the standard", composition=standard)
        if isinstance(target, XRayTransition):
            zaf_unk = self._intensities(unknown, target, properties).zaf
            zaf_std = self._intensities(standard, target, properties.without_shape()).zaf
            return (zaf_unk * w_unk) / (zaf_std * w_std)
        return (w_unk / w_std) * self.relative_zaf(unknown, target, properties, standard).zaf

    def k_ratio_pure(self, composition: Composition, target: Target, properties: ProbeProperties) -> float:
        """k-ratio against the pure element."""
        return self.k_ratio(composition, Composition.pure(target.element), target, properties)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NullCorrection(CorrectionAlgorithm):
    """No matrix correction: ZA and generated are both 1."""

    name = "No matrix correction"

    def _compute_za(self, xrt: XRayTransition) -> float:
        return 1.0

    def _generated(self, xrt: XRayTransition) -> float:
        return 1.0

    def fluorescence(self, xrt: XRayTransition) -> float:
        self._require(xrt)
        return 1.0


class PhiRhoZAlgorithm(CorrectionAlgorithm):
    """A correction built on an explicit depth distribution phi(rho z)."""

    def compute_curve(self, rho_z):
        """
        phi at mass depth ``rho_z`` (kg/m^2, scalar or array); 0 for rho_z < 0.
        """
        self._require()
        rz = np.asarray(rho_z, dtype=float)
        rz_cgs = mass_depth_from_si(rz)
        phi = np.where(rz >= 0.0, self._curve(np.maximum(rz_cgs, 0.0)), 0.0)
        return float(phi) if phi.ndim == 0 else phi

    def compute_absorbed_curve(self, xrt: XRayTransition, rho_z):
        """phi(rho z) * exp(-chi * rho z)."""
        chi = self.chi(xrt)
        rz = np.asarray(rho_z, dtype=float)
        phi = self.compute_curve(rz) * np.exp(-chi * np.maximum(rz, 0.0))
        return float(phi) if np.ndim(phi) == 0 else phi

    def emitted(self, chi: float) -> float:
        """
        Integral of phi(rho z) exp(-chi rho z) over the whole depth.

        ``chi`` in m^2/kg, result in kg/m^2. At chi = 0 this is the
        generated intensity.
        """
        self._require()
        return mass_depth_to_si(self._emitted(mac_from_si(chi)))

    def _emitted(self, chi_cm2_g: float) -> float:
        """Emitted intensity in g/cm^2 for chi in cm^2/g."""
        raise NotImplementedError

    def _curve(self, rho_z_g_cm2: np.ndarray) -> np.ndarray:
        """phi at non-negative mass depths in g/cm^2."""
        raise NotImplementedError

    def max_depth(self) -> float:
        """Mass depth (kg/m^2) beyond which the curve is negligible."""
        raise NotImplementedError
