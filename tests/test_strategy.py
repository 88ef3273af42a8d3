"""
Tests for the algorithm registry: strategies, resolution precedence and the
global override.
"""

import pytest

from zafforge.core.chemistry import Composition, XRayTransition
from zafforge.core.errors import DomainError, FatalError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import (
    AlgorithmFamily,
    Resolver,
    Strategy,
    apply_global_override,
    clear_global_override,
    compiled_defaults,
    global_override,
    implementations,
    lookup,
)
from zafforge.corrections import PAP1991
from zafforge.physics import absorption, backscatter, fluorescence, stopping_power


@pytest.fixture(autouse=True)
def _no_override():
    clear_global_override()
    yield
    clear_global_override()


# ============================================================================
# Strategy
# ============================================================================

class TestStrategy:
    """Immutable family -> implementation mappings."""

    def test_of_and_get(self):
        s = Strategy.of(absorption.HEINRICH_86)
        assert s.get(AlgorithmFamily.MASS_ABSORPTION) is absorption.HEINRICH_86
        assert s.get(AlgorithmFamily.STOPPING_POWER) is None
        assert AlgorithmFamily.MASS_ABSORPTION in s
        assert len(s) == 1

    def test_with_algorithm_replaces(self):
        s = Strategy.of(absorption.HEINRICH_86).with_algorithm(absorption.XRAYLIB)
        assert len(s) == 1
        assert s.get(AlgorithmFamily.MASS_ABSORPTION) is absorption.XRAYLIB

    def test_apply_other_wins(self):
        base = Strategy.of(absorption.HEINRICH_86, stopping_power.THOMAS_1963)
        merged = base.apply(Strategy.of(absorption.XRAYLIB))
        assert merged.get(AlgorithmFamily.MASS_ABSORPTION) is absorption.XRAYLIB
        assert merged.get(AlgorithmFamily.STOPPING_POWER) is stopping_power.THOMAS_1963

    def test_equality(self):
        assert Strategy.of(absorption.XRAYLIB) == Strategy.of(absorption.XRAYLIB)
        assert Strategy.of(absorption.XRAYLIB) != Strategy.of(absorption.HEINRICH_86)

    def test_describe(self):
        assert Strategy.of(absorption.XRAYLIB).describe() == {"MASS_ABSORPTION": "xraylib"}


# ============================================================================
# Catalogue
# ============================================================================

class TestCatalogue:
    """Compiled defaults and name lookup."""

    def test_every_family_has_a_default(self):
        defaults = compiled_defaults()
        for family in AlgorithmFamily:
            assert defaults.get(family) is not None, family

    def test_null_fluorescence_by_default(self):
        assert compiled_defaults().get(AlgorithmFamily.FLUORESCENCE) is fluorescence.NULL

    def test_defaults_are_cached(self):
        assert compiled_defaults() is compiled_defaults()

    def test_catalogue_membership(self):
        assert "Reed 1990" in implementations()[AlgorithmFamily.FLUORESCENCE]

    def test_lookup_by_class_name(self):
        assert lookup(AlgorithmFamily.MASS_ABSORPTION, "heinrich86mac") is absorption.HEINRICH_86

    def test_lookup_by_display_name(self):
        assert lookup(AlgorithmFamily.FLUORESCENCE, "Reed 1990") is fluorescence.REED_1990

    def test_lookup_unknown(self):
        with pytest.raises(DomainError):
            lookup(AlgorithmFamily.MASS_ABSORPTION, "nope")

    def test_family_keys(self):
        assert AlgorithmFamily.from_key("mac") is AlgorithmFamily.MASS_ABSORPTION
        assert AlgorithmFamily.from_key("stopping_power") is AlgorithmFamily.STOPPING_POWER
        with pytest.raises(DomainError):
            AlgorithmFamily.from_key("colour")


# ============================================================================
# Resolution precedence
# ============================================================================

class TestResolver:
    """override > local > defaults."""

    def test_defaults_used(self):
        assert Resolver().resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.XRAYLIB

    def test_local_beats_default(self):
        r = Resolver(Strategy.of(absorption.HEINRICH_86))
        assert r.resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.HEINRICH_86

    def test_override_beats_local(self):
        r = Resolver(Strategy.of(absorption.HEINRICH_86))
        apply_global_override(Strategy.of(absorption.POUCHOU_1991))
        assert global_override() is not None
        assert r.resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.POUCHOU_1991
        clear_global_override()
        assert r.resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.HEINRICH_86

    def test_injected_defaults(self):
        r = Resolver(defaults=Strategy.of(backscatter.HEINRICH_1981))
        assert r.resolve(AlgorithmFamily.BACKSCATTER_COEFFICIENT) is backscatter.HEINRICH_1981

    def test_missing_default_is_fatal(self):
        r = Resolver(defaults=Strategy())
        with pytest.raises(FatalError):
            r.resolve(AlgorithmFamily.STOPPING_POWER)

    def test_active_strategy_skips_missing(self):
        r = Resolver(Strategy.of(absorption.XRAYLIB), defaults=Strategy())
        assert r.active_strategy() == Strategy.of(absorption.XRAYLIB)

    def test_algorithm_local_strategy(self):
        """A correction's own preferences sit between the caller's strategy and the defaults."""
        pap = PAP1991()
        assert pap.resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.POUCHOU_1991
        custom = PAP1991(strategy=Strategy.of(absorption.XRAYLIB))
        assert custom.resolve(AlgorithmFamily.MASS_ABSORPTION) is absorption.XRAYLIB

    def test_correction_with_missing_default_is_fatal(self):
        pap = PAP1991(defaults=Strategy())
        xrt = XRayTransition.parse("Cu:KA1")
        with pytest.raises(FatalError):
            pap.initialize(Composition.pure("Cu"), xrt.shell, ProbeProperties(20.0, 40.0))

    def test_override_forces_new_solve(self):
        pap = PAP1991()
        xrt = XRayTransition.parse("Cu:KA1")
        props = ProbeProperties(20.0, 40.0)
        assert pap.initialize(Composition.pure("Cu"), xrt.shell, props)
        assert not pap.initialize(Composition.pure("Cu"), xrt.shell, props)
        apply_global_override(Strategy.of(stopping_power.PROZA_96))
        assert pap.initialize(Composition.pure("Cu"), xrt.shell, props)
