"""
Tests for the correction protocol: initialization, error conditions,
relative ZAF factors and k-ratios across the algorithms.
"""

import pytest

from zafforge.core.chemistry import Composition, XRayTransition, XRayTransitionSet
from zafforge.core.errors import DomainError, UninitializedError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import Strategy
from zafforge.corrections import (
    ALGORITHMS,
    Armstrong1982,
    NullCorrection,
    PAP1991,
    XPP1991,
    ZAFFactors,
    algorithm_class,
)
from zafforge.physics import fluorescence

CU = Composition.pure("Cu")
FENI = Composition.parse("Fe=0.5,Ni=0.5")
CU_KA = XRayTransition.parse("Cu:KA1")
FE_KA = XRayTransition.parse("Fe:KA1")
PROPS = ProbeProperties(20.0, 40.0)


# ============================================================================
# Initialization
# ============================================================================

class TestInitialize:
    """State handling and validation."""

    def test_uninitialized(self):
        with pytest.raises(UninitializedError):
            PAP1991().compute_za(CU_KA)

    def test_returns_true_then_false(self):
        pap = PAP1991()
        assert pap.initialize(CU, CU_KA.shell, PROPS)
        assert not pap.initialize(CU, CU_KA.shell, PROPS)
        assert pap.initialize(CU, CU_KA.shell, PROPS.with_beam_energy(15.0))

    def test_unnormalized_composition_is_same_key(self):
        pap = PAP1991()
        pap.initialize(FENI, FE_KA.shell, PROPS)
        assert not pap.initialize(Composition.parse("Fe=1.0,Ni=1.0"), FE_KA.shell, PROPS)

    def test_wrong_shell(self):
        pap = PAP1991()
        pap.initialize(CU, CU_KA.shell, PROPS)
        with pytest.raises(DomainError):
            pap.compute_za(XRayTransition.parse("Cu:LA1"))

    def test_element_absent(self):
        with pytest.raises(DomainError):
            PAP1991().initialize(Composition.pure("Fe"), CU_KA.shell, PROPS)

    def test_edge_above_beam(self):
        with pytest.raises(DomainError):
            PAP1991().initialize(CU, CU_KA.shell, ProbeProperties(8.0, 40.0))

    def test_exit_angle_out_of_range(self):
        with pytest.raises(DomainError):
            PAP1991().initialize(CU, CU_KA.shell, ProbeProperties(20.0, 90.0))

    def test_chi_positive(self):
        pap = PAP1991()
        pap.initialize(CU, CU_KA.shell, PROPS)
        assert pap.chi(CU_KA) > 0.0


# ============================================================================
# Overvoltage sweep
# ============================================================================

def _props_at(u0, xrt=CU_KA):
    return ProbeProperties(u0 * xrt.shell.edge_energy_kev, 40.0)


class TestOvervoltage:
    """Behaviour from just above the edge to high overvoltage."""

    @pytest.mark.parametrize("u0", [1.5, 2.0, 3.0, 5.0, 10.0])
    def test_pap_parameters_feasible(self, u0):
        pap = PAP1991()
        pap.initialize(CU, CU_KA.shell, _props_at(u0))
        p = pap.params
        assert 0.0 <= p.rm <= p.rx
        assert p.rc > 0.0
        assert pap.compute_curve(0.0) == pytest.approx(p.phi0)
        assert 0.0 < pap.compute_za(CU_KA) < pap.generated(CU_KA)

    @pytest.mark.parametrize("xrt", [CU_KA, FE_KA], ids=str)
    def test_pap_too_close_to_edge(self, xrt):
        """F < phi0 Rx / 3 here, so neither the quadratic nor the fallback applies."""
        pap = PAP1991()
        with pytest.raises(DomainError):
            pap.initialize(Composition.pure(xrt.element), xrt.shell, _props_at(1.1, xrt))
        assert not pap.initialized

    @pytest.mark.parametrize("u0", [1.5, 2.0, 3.0, 5.0, 10.0])
    def test_xpp_emitted_fraction(self, u0):
        xpp = XPP1991()
        xpp.initialize(CU, CU_KA.shell, _props_at(u0))
        assert xpp.compute_curve(0.0) == pytest.approx(xpp.params.phi0)
        assert 0.0 < xpp.compute_za(CU_KA) < xpp.generated(CU_KA)


# ============================================================================
# Caveats
# ============================================================================

class TestCaveat:
    """Applicability notes."""

    def test_pap_mentions_overvoltage(self):
        assert "overvoltage" in PAP1991().caveat()

    def test_particle_mentions_shapes(self):
        assert "sphere" in ALGORITHMS["armstrong-particle"]().caveat()

    def test_null_has_none(self):
        assert NullCorrection().caveat() == ""

    def test_line_near_edge(self):
        """Cu La sits a few eV below the Cu L3 edge."""
        cu_la = XRayTransition.parse("Cu:LA1")
        alg = NullCorrection()
        alg.initialize(CU, cu_la.shell, PROPS)
        assert "Cu L3 edge" in alg.caveat(cu_la)

    def test_lines_clear_of_edges(self):
        alg = NullCorrection()
        alg.initialize(CU, CU_KA.shell, PROPS)
        assert alg.caveat(CU_KA) == ""
        alg.initialize(FENI, FE_KA.shell, PROPS)
        assert alg.caveat(FE_KA) == ""

    def test_limitations_come_first(self):
        pap = PAP1991()
        pap.initialize(CU, CU_KA.shell, PROPS)
        assert pap.caveat(CU_KA) == PAP1991.limitations

    def test_caveat_needs_initialization(self):
        with pytest.raises(UninitializedError):
            PAP1991().caveat(CU_KA)


# ============================================================================
# Registry
# ============================================================================

class TestAlgorithmRegistry:
    """Short names for the correction classes."""

    def test_lookup(self):
        assert algorithm_class("PAP") is PAP1991
        assert algorithm_class(" armstrong ") is Armstrong1982

    def test_unknown(self):
        with pytest.raises(DomainError):
            algorithm_class("zaf-magic")

    def test_every_algorithm_constructs(self):
        for cls in ALGORITHMS.values():
            assert cls().name


# ============================================================================
# k-ratios
# ============================================================================

class TestKRatio:
    """Predicted k-ratios."""

    @pytest.mark.parametrize("cls", [PAP1991, XPP1991, Armstrong1982])
    def test_pure_against_itself(self, cls):
        assert cls().k_ratio(CU, CU, CU_KA, PROPS) == pytest.approx(1.0)

    @pytest.mark.parametrize("cls", [PAP1991, XPP1991, Armstrong1982])
    def test_feni_plausible(self, cls):
        k = cls().k_ratio_pure(FENI, FE_KA, PROPS)
        assert 0.4 < k < 0.6

    def test_null_correction_is_mass_fraction(self):
        assert NullCorrection().k_ratio_pure(FENI, FE_KA, PROPS) == pytest.approx(0.5)

    def test_unnormalized_fractions_scale(self):
        pap = PAP1991()
        k1 = pap.k_ratio_pure(FENI, FE_KA, PROPS)
        k2 = pap.k_ratio_pure(Composition.parse("Fe=0.55,Ni=0.55"), FE_KA, PROPS)
        assert k2 == pytest.approx(1.1 * k1)

    def test_standard_without_element(self):
        with pytest.raises(DomainError):
            PAP1991().k_ratio(FENI, Composition.pure("Ni"), FE_KA, PROPS)

    def test_family_set(self):
        family = XRayTransitionSet.family("Fe", "K")
        k = PAP1991().k_ratio_pure(FENI, family, PROPS)
        assert 0.4 < k < 0.6


# ============================================================================
# Relative ZAF
# ============================================================================

class TestRelativeZAF:
    """Z, A and F of an unknown relative to a standard."""

    def test_factors_multiply(self):
        factors = PAP1991().relative_zaf(FENI, FE_KA, PROPS)
        assert isinstance(factors, ZAFFactors)
        assert factors.z * factors.a * factors.f == pytest.approx(factors.zaf)
        assert factors.f == pytest.approx(1.0)

    def test_family_factors_multiply(self):
        factors = XPP1991().relative_zaf(FENI, XRayTransitionSet.family("Fe", "K"), PROPS)
        assert factors.z * factors.a * factors.f == pytest.approx(factors.zaf)

    def test_pap_and_xpp_agree(self):
        props = ProbeProperties(15.0, 35.0)
        pap = PAP1991().relative_zaf(FENI, FE_KA, props)
        xpp = XPP1991().relative_zaf(FENI, FE_KA, props)
        assert 0.5 < pap.zaf < 1.5
        assert xpp.zaf == pytest.approx(pap.zaf, rel=0.05)

    def test_self_is_unity(self):
        factors = PAP1991().relative_zaf(CU, CU_KA, PROPS)
        assert factors.to_dict() == pytest.approx({"Z": 1.0, "A": 1.0, "F": 1.0, "ZAF": 1.0})

    def test_explicit_standard(self):
        factors = PAP1991().relative_zaf(FENI, FE_KA, PROPS, standard=FENI)
        assert factors.zaf == pytest.approx(1.0)

    def test_reed_fluorescence(self):
        """Ni K radiation fluoresces Fe K in FeNi."""
        pap = PAP1991(strategy=Strategy.of(fluorescence.REED_1990))
        factors = pap.relative_zaf(FENI, FE_KA, PROPS)
        assert factors.f > 1.0
        assert factors.z * factors.a * factors.f == pytest.approx(factors.zaf)

    def test_single_factor_accessors(self):
        pap = PAP1991()
        factors = pap.relative_zaf(FENI, FE_KA, PROPS)
        assert pap.relative_z(FENI, FE_KA, PROPS) == pytest.approx(factors.z)
        assert pap.relative_a(FENI, FE_KA, PROPS) == pytest.approx(factors.a)
