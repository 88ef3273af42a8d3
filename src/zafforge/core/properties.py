"""Probe and specimen configuration shared by all correction algorithms."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, Optional

from zafforge.core.errors import DomainError
from zafforge.core.units import kev_to_joules

if TYPE_CHECKING:
    from zafforge.corrections.shapes import SampleShape


@dataclass(frozen=True)
class ProbeProperties:
    """
    Measurement conditions for one k-ratio.

    Attributes:
        beam_energy_kev: Incident electron energy
        take_off_deg: Detector take-off angle above the sample surface
        exit_angle_deg: Photon exit angle; defaults to the take-off angle
        tilt_deg: Angle between the beam and the surface normal
        sample_shape: Particle/film shape descriptor; None means bulk
        density_g_cc: Specimen density, required for non-bulk shapes
    """

    beam_energy_kev: float
    take_off_deg: float
    exit_angle_deg: Optional[float] = None
    tilt_deg: float = 0.0
    sample_shape: Optional["SampleShape"] = None
    density_g_cc: Optional[float] = None

    def __post_init__(self):
        if not (self.beam_energy_kev > 0.0 and math.isfinite(self.beam_energy_kev)):
            raise DomainError(f"Beam energy must be positive, got {self.beam_energy_kev} keV")
        if self.density_g_cc is not None and self.density_g_cc <= 0.0:
            raise DomainError(f"Density must be positive, got {self.density_g_cc} g/cm^3")

    @property
    def beam_energy(self) -> float:
        """Beam energy in joules."""
        return kev_to_joules(self.beam_energy_kev)

    @property
    def take_off_angle(self) -> float:
        return math.radians(self.take_off_deg)

    @property
    def exit_angle(self) -> float:
        deg = self.take_off_deg if self.exit_angle_deg is None else self.exit_angle_deg
        return math.radians(deg)

    @property
    def tilt(self) -> float:
        return math.radians(self.tilt_deg)

    def is_bulk(self) -> bool:
        return self.sample_shape is None or self.sample_shape.is_bulk()

    def without_shape(self) -> "ProbeProperties":
        """The same conditions for a bulk specimen, as used for standards."""
        if self.sample_shape is None:
            return self
        return replace(self, sample_shape=None)

    def with_beam_energy(self, beam_energy_kev: float) -> "ProbeProperties":
        return replace(self, beam_energy_kev=beam_energy_kev)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "beam_energy_kev": self.beam_energy_kev,
            "take_off_deg": self.take_off_deg,
            "exit_angle_deg": self.exit_angle_deg,
            "tilt_deg": self.tilt_deg,
            "sample_shape": None if self.sample_shape is None else str(self.sample_shape),
            "density_g_cc": self.density_g_cc,
        }
