"""
Unit conversions used at the package boundary.

Internally energies are in joules, angles in radians, mass depth in kg/m^2
and mass-absorption coefficients in m^2/kg. Most empirical formulas are
published in keV, g/cm^2 and cm^2/g, so the helpers below translate.
"""

from __future__ import annotations

import math

KEV_TO_JOULES = 1.602176634e-16

# g/cm^2 -> kg/m^2
MASS_DEPTH_TO_SI = 10.0
# cm^2/g -> m^2/kg
MAC_TO_SI = 0.1


def kev_to_joules(e_kev: float) -> float:
    return e_kev * KEV_TO_JOULES


def joules_to_kev(e_j: float) -> float:
    return e_j / KEV_TO_JOULES


def ev_to_joules(e_ev: float) -> float:
    return e_ev * 1.0e-3 * KEV_TO_JOULES


def joules_to_ev(e_j: float) -> float:
    return 1.0e3 * e_j / KEV_TO_JOULES


def mass_depth_to_si(rho_z_g_cm2: float) -> float:
    """Convert mass depth from g/cm^2 to kg/m^2."""
    return rho_z_g_cm2 * MASS_DEPTH_TO_SI


def mass_depth_from_si(rho_z_kg_m2: float) -> float:
    """Convert mass depth from kg/m^2 to g/cm^2."""
    return rho_z_kg_m2 / MASS_DEPTH_TO_SI


def mac_to_si(mac_cm2_g: float) -> float:
    """Convert a mass-absorption coefficient from cm^2/g to m^2/kg."""
    return mac_cm2_g * MAC_TO_SI


def mac_from_si(mac_m2_kg: float) -> float:
    """Convert a mass-absorption coefficient from m^2/kg to cm^2/g."""
    return mac_m2_kg / MAC_TO_SI


def density_to_si(rho_g_cm3: float) -> float:
    """Convert density from g/cm^3 to kg/m^3."""
    return rho_g_cm3 * 1.0e3


def radians(deg: float) -> float:
    return math.radians(deg)


def degrees(rad: float) -> float:
    return math.degrees(rad)
