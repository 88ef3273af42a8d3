"""
Tests for the physical sub-models: absorption, backscatter, ionization,
stopping power, surface ionization, electron range and fluorescence.
"""

import math

import pytest

from zafforge.core.chemistry import AtomicShell, Composition, Element, Line, Shell, XRayTransition
from zafforge.core.errors import DomainError
from zafforge.core.strategy import Resolver
from zafforge.core.units import joules_to_ev, kev_to_joules, mac_from_si, mass_depth_from_si
from zafforge.physics import (
    absorption,
    backscatter,
    electron_range,
    fluorescence,
    ionization,
    stopping_power,
    surface_ionization,
)

CU = Composition.pure("Cu")
FENI = Composition.parse("Fe=0.5,Ni=0.5")
CU_K = AtomicShell(Element(29), Shell.K)
CU_KA = XRayTransition(Element(29), Line.KA1)
FE_KA = XRayTransition(Element(26), Line.KA1)
E20 = kev_to_joules(20.0)
E15 = kev_to_joules(15.0)


@pytest.fixture
def resolver():
    return Resolver()


# ============================================================================
# Mass absorption
# ============================================================================

class TestMassAbsorption:
    """MAC models in m^2/kg."""

    def test_xraylib_cu_ka_in_cu(self):
        assert mac_from_si(absorption.XRAYLIB.compute(CU, CU_KA)) == pytest.approx(52.0, rel=0.1)

    def test_heinrich_close_to_tables(self):
        h = absorption.HEINRICH_86.compute(CU, CU_KA)
        x = absorption.XRAYLIB.compute(CU, CU_KA)
        assert h == pytest.approx(x, rel=0.1)

    def test_composition_is_weighted_sum(self):
        fe = absorption.XRAYLIB.compute_element(Element(26), FE_KA)
        ni = absorption.XRAYLIB.compute_element(Element(28), FE_KA)
        assert absorption.XRAYLIB.compute(FENI, FE_KA) == pytest.approx(0.5 * (fe + ni))

    def test_energy_and_transition_agree(self):
        by_line = absorption.XRAYLIB.compute_element(Element(28), FE_KA)
        by_energy = absorption.XRAYLIB.compute_element(Element(28), FE_KA.energy)
        assert by_line == pytest.approx(by_energy)

    def test_pouchou_special_case(self):
        c_ka = XRayTransition(Element(6), Line.KA1)
        assert absorption.POUCHOU_1991.special_case(Element(26), c_ka) == 13500.0
        assert mac_from_si(absorption.POUCHOU_1991.compute_element(Element(26), c_ka)) == pytest.approx(13500.0)

    def test_pouchou_falls_back_to_heinrich(self):
        assert absorption.POUCHOU_1991.special_case(Element(29), CU_KA) is None
        assert absorption.POUCHOU_1991.compute(CU, CU_KA) == pytest.approx(absorption.HEINRICH_86.compute(CU, CU_KA))

    def test_edge_jump(self):
        """Absorption jumps upward across the absorber's K edge."""
        edge = AtomicShell(Element(26), Shell.K).edge_energy
        below = absorption.XRAYLIB.compute_energy(Element(26), 0.98 * edge)
        above = absorption.XRAYLIB.compute_energy(Element(26), 1.02 * edge)
        assert above > 3.0 * below


class TestMacUncertainty:
    """Edge-proximity and soft x-ray uncertainty estimates."""

    def test_decay(self):
        assert absorption.decay(0.0, 0.0, 1.0, 200.0, 0.6) == pytest.approx(1.0)
        assert absorption.decay(100.0, 0.0, 1.0, 200.0, 0.6) == pytest.approx(math.sqrt(0.6))
        assert absorption.decay(300.0, 0.0, 1.0, 200.0, 0.6) == pytest.approx(0.6)

    def test_far_above_l_edges(self):
        """Cu Ka in Cu: the L2/L3 edges set 10%."""
        assert absorption.XRAYLIB.fractional_uncertainty(Element(29), CU_KA) == pytest.approx(0.10)

    def test_just_above_l3_edge(self):
        energy = 1.1 * AtomicShell(Element(29), Shell.L3).edge_energy
        assert absorption.XRAYLIB.fractional_uncertainty(Element(29), energy) == pytest.approx(0.30)

    def test_on_edge(self):
        energy = 1.0005 * AtomicShell(Element(26), Shell.K).edge_energy
        assert absorption.XRAYLIB.fractional_uncertainty(Element(26), energy) == pytest.approx(0.8)

    def test_soft_xrays(self):
        u = absorption.XRAYLIB.fractional_uncertainty(Element(29), kev_to_joules(0.15))
        assert 0.6 <= u <= 1.0

    def test_composition_combines_in_quadrature(self):
        u = absorption.XRAYLIB.fractional_uncertainty(FENI, FE_KA)
        assert 0.1 / math.sqrt(2.0) <= u <= 0.1 + 1e-12
        assert absorption.XRAYLIB.fractional_uncertainty(CU, CU_KA) == pytest.approx(0.10)

    @pytest.mark.parametrize("mac", absorption.IMPLEMENTATIONS, ids=lambda m: m.name)
    def test_compute_with_uncertainty(self, mac):
        value, sigma = mac.compute_with_uncertainty(Element(29), CU_KA)
        assert value == pytest.approx(mac.compute_element(Element(29), CU_KA))
        assert sigma == pytest.approx(0.10 * value)
        value, sigma = mac.compute_with_uncertainty(FENI, FE_KA)
        assert value == pytest.approx(mac.compute(FENI, FE_KA))
        assert 0.0 < sigma < 0.1 * value + 1e-12

    def test_caveats(self):
        cu_la = XRayTransition(Element(29), Line.LA1)
        assert any("Cu L3 edge" in note for note in absorption.XRAYLIB.caveats(CU, cu_la))
        assert absorption.XRAYLIB.caveats(CU, CU_KA) == []


# ============================================================================
# Backscatter
# ============================================================================

class TestBackscatter:
    """Coefficients and R factors."""

    @pytest.mark.parametrize("model", [
        backscatter.POUCHOU_PICHOIR_1991, backscatter.HEINRICH_1981, backscatter.LOVE_1978,
    ])
    def test_cu_coefficient(self, model):
        assert 0.25 < model.compute(CU, E20) < 0.35

    def test_coefficient_increases_with_z(self):
        al = backscatter.POUCHOU_PICHOIR_1991.compute(Composition.pure("Al"), E20)
        au = backscatter.POUCHOU_PICHOIR_1991.compute(Composition.pure("Au"), E20)
        assert au > al

    @pytest.mark.parametrize("model", [backscatter.POUCHOU_1991, backscatter.LOVE_1978_FACTOR])
    def test_factor_range(self, resolver, model):
        r = model.compute(resolver, CU, CU_K, E20)
        assert 0.7 < r < 1.0

    def test_tilt_factor_matches_normal_at_zero(self, resolver):
        tilted = backscatter.XPPTiltBackscatterFactor(0.0).compute(resolver, CU, CU_K, E20)
        normal = backscatter.POUCHOU_1991.compute(resolver, CU, CU_K, E20)
        assert tilted == pytest.approx(normal)

    def test_tilt_lowers_factor(self, resolver):
        flat = backscatter.XPPTiltBackscatterFactor(0.0).compute(resolver, CU, CU_K, E20)
        tilted = backscatter.XPPTiltBackscatterFactor(math.radians(45.0)).compute(resolver, CU, CU_K, E20)
        assert tilted < flat


# ============================================================================
# Ionization
# ============================================================================

class TestIonization:
    """Mean ionization potential and cross sections."""

    def test_zeller_cu(self):
        assert joules_to_ev(ionization.ZELLER_75.compute(Element(29))) == pytest.approx(309.2, rel=1e-2)

    def test_compute_ln_pure_element(self):
        j = ionization.BERGER_SELTZER_CITZAF.compute(Element(29))
        assert ionization.BERGER_SELTZER_CITZAF.compute_ln(CU) == pytest.approx(j)

    def test_compute_ln_between_constituents(self):
        j = ionization.ZELLER_75.compute_ln(FENI)
        assert ionization.ZELLER_75.compute(Element(26)) < j < ionization.ZELLER_75.compute(Element(28))

    def test_cross_section_zero_below_edge(self):
        assert ionization.POUCHOU_86.compute_family(CU_K, 0.9 * CU_K.edge_energy) == 0.0
        assert ionization.POUCHOU_86.compute_family(CU_K, E20) > 0.0

    def test_k_exponent(self):
        assert ionization.POUCHOU_86.exponent(CU_K) == pytest.approx(0.86, abs=1e-6)
        assert ionization.PROZA_96.exponent(AtomicShell(Element(6), Shell.K)) == 0.888

    def test_n_shell_unsupported(self):
        with pytest.raises(DomainError):
            ionization.POUCHOU_86.exponent(AtomicShell(Element(79), Shell.N1))


# ============================================================================
# Stopping power
# ============================================================================

class TestStoppingPower:
    """Inverse stopping powers."""

    @pytest.mark.parametrize("model", stopping_power.IMPLEMENTATIONS)
    def test_positive(self, resolver, model):
        assert model.compute_inv(resolver, CU, CU_K, E20) > 0.0

    def test_relative_to_itself(self, resolver):
        assert stopping_power.THOMAS_1963.compute_relative(resolver, CU, CU, CU_K, E20) == pytest.approx(1.0)

    def test_pap_grows_with_energy(self, resolver):
        low = stopping_power.POUCHOU_1991.compute_inv(resolver, CU, CU_K, E15)
        high = stopping_power.POUCHOU_1991.compute_inv(resolver, CU, CU_K, E20)
        assert high > low

    def test_compute_is_reciprocal(self, resolver):
        inv = stopping_power.LOVE_SCOTT_CITZAF.compute_inv(resolver, CU, CU_K, E20)
        assert stopping_power.LOVE_SCOTT_CITZAF.compute(resolver, CU, CU_K, E20) == pytest.approx(1.0 / inv)


# ============================================================================
# Surface ionization
# ============================================================================

class TestSurfaceIonization:
    """phi(0) models."""

    @pytest.mark.parametrize("model", surface_ionization.IMPLEMENTATIONS)
    def test_cu_phi0(self, resolver, model):
        assert 1.0 < model.compute(resolver, CU, CU_K, E20) < 2.5

    def test_tends_to_one_at_edge(self, resolver):
        phi0 = surface_ionization.POUCHOU_1991.compute(resolver, CU, CU_K, 1.0001 * CU_K.edge_energy)
        assert phi0 == pytest.approx(1.0, abs=1e-3)


# ============================================================================
# Electron range
# ============================================================================

class TestElectronRange:
    """Ranges in kg/m^2."""

    def test_kanaya_okayama_cu(self, resolver):
        rng = electron_range.KANAYA_OKAYAMA_1972.compute(resolver, CU, E20)
        assert mass_depth_from_si(rng) == pytest.approx(1.31e-3, rel=2e-2)

    @pytest.mark.parametrize("model", electron_range.IMPLEMENTATIONS)
    def test_shell_range_shorter(self, resolver, model):
        full = model.compute(resolver, CU, E20)
        shell = model.compute_shell(resolver, CU, CU_K, E20)
        assert 0.0 < shell < full

    def test_same_order_of_magnitude(self, resolver):
        ko = electron_range.KANAYA_OKAYAMA_1972.compute(resolver, CU, E20)
        pap = electron_range.POUCHOU_1991.compute(resolver, CU, E20)
        assert 0.3 < pap / ko < 3.0


# ============================================================================
# Fluorescence
# ============================================================================

class TestFluorescence:
    """Characteristic secondary fluorescence."""

    def test_null_is_one(self, resolver):
        assert fluorescence.NULL.compute(resolver, FENI, FE_KA, E15, math.radians(35.0)) == 1.0

    def test_primary_exciting_line(self):
        edge = AtomicShell(Element(26), Shell.K).edge_energy
        primary = fluorescence.primary_exciting_line(Element(28), edge)
        assert primary == XRayTransition(Element(28), Line.KA1)

    def test_no_exciting_line(self):
        assert fluorescence.primary_exciting_line(Element(29), CU_K.edge_energy) is None

    def test_ni_fluoresces_fe(self, resolver):
        f = fluorescence.REED_1990.compute(resolver, FENI, FE_KA, E15, math.radians(35.0))
        assert 1.0 < f < 1.5

    def test_pure_element_not_fluoresced(self, resolver):
        assert fluorescence.REED_1990.compute(resolver, CU, CU_KA, E20, math.radians(40.0)) == 1.0

    def test_pair_zero_when_primary_too_soft(self, resolver):
        ni_ka = XRayTransition(Element(28), Line.KA1)
        assert fluorescence.REED_1990.compute_pair(resolver, FENI, FE_KA, ni_ka, E15, math.radians(35.0)) == 0.0
