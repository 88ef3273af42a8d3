"""
Mean ionization potentials and proportional ionization cross sections.

Mean ionization potentials J are returned in joules. Proportional cross
sections are returned in keV^-2 (they only ever enter ratios).

Reference: Pouchou & Pichoir, Proc. 11th ICXOM (1986);
           Berger & Seltzer, NBS Pub. 1133 (1964)
"""

from __future__ import annotations

import math

from zafforge.core.chemistry import AtomicShell, Composition, Element
from zafforge.core.errors import DomainError
from zafforge.core.strategy import Algorithm, AlgorithmFamily
from zafforge.core.units import ev_to_joules, joules_to_kev, kev_to_joules


class MeanIonizationPotential(Algorithm):
    family = AlgorithmFamily.MEAN_IONIZATION_POTENTIAL

    def compute_ev(self, element: Element) -> float:
        raise NotImplementedError

    def compute(self, element: Element) -> float:
        """Mean ionization potential in joules."""
        return ev_to_joules(self.compute_ev(element))

    def compute_ln(self, composition: Composition) -> float:
        """
        Composition average J, in joules.

        ln J = sum(c Z/A ln J_i) / sum(c Z/A)
        """
        m = 0.0
        ln_j = 0.0
        for el, w in composition.normalized_fractions():
            cza = w * el.z / el.atomic_weight
            m += cza
            ln_j += cza * math.log(joules_to_kev(self.compute(el)))
        return kev_to_joules(math.exp(ln_j / m))


class _FormulaMIP(MeanIonizationPotential):
    """MIP given by a closed-form expression in Z (eV)."""

    def __init__(self, name: str, reference: str, formula):
        super().__init__(name, reference)
        self._formula = formula

    def compute_ev(self, element: Element) -> float:
        return self._formula(float(element.z))

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


ZELLER_75 = _FormulaMIP(
    "Zeller 1975", "Zeller C in Ruste J, Gantois M, J. Phys. D 8 (1975) 872",
    lambda z: (10.04 + 8.25 * math.exp(-z / 11.22)) * z)
BERGER_SELTZER_CITZAF = _FormulaMIP(
    "Berger & Seltzer as implemented by CITZAF 3.06", "Berger MJ, Seltzer S, NBS Pub 1133 (1964)",
    lambda z: 9.76 * z + 58.5 * math.pow(z, -0.19))
STERNHEIMER_64 = _FormulaMIP(
    "Sternheimer 1964", "Sternheimer quoted in Berger MJ, Seltzer S, NBS Pub 1133 (1964)",
    lambda z: 9.76 * z + 58.8 * math.pow(z, -0.19))
BLOCH_33 = _FormulaMIP("Bloch 1933", "Bloch F, Z. Phys. 81 (1933) 363", lambda z: 13.5 * z)
WILSON_41 = _FormulaMIP("Wilson 1941", "Wilson RR, Phys Rev 60 (1941) 749", lambda z: 11.5 * z)
SPRINGER_67 = _FormulaMIP(
    "Springer 1967", "Springer G, Neues Jahrbuch Fuer Mineralogie (1967) 304",
    lambda z: z * (9.0 * (1.0 + math.pow(z, -0.67)) + 0.03 * z))
HEINRICH_70 = _FormulaMIP(
    "Heinrich & Yakowitz 1970", "Heinrich KFJ, Yakowitz H, Mikrochim Acta (1970) 123",
    lambda z: z * (12.4 + 0.027 * z))
DUNCUMB_69 = _FormulaMIP(
    "Duncumb & DeCasa 1969", "Duncumb P, Shields-Mason PK, DeCasa C, Proc. 5th ICXOM (1969) 146",
    lambda z: ((14.0 * (1.0 - math.exp(-0.1 * z)) + 75.5 / math.pow(z, z / 7.5)) - z / (100.0 + z)) * z)


class ProportionalIonizationCrossSection(Algorithm):
    """Ionization cross section up to a family-wide constant."""

    family = AlgorithmFamily.IONIZATION_CROSS_SECTION

    def exponent(self, shell: AtomicShell) -> float:
        raise NotImplementedError

    def compute_family(self, shell: AtomicShell, e0: float) -> float:
        """ln(u) / (Ec^2 u^m) with Ec in keV; zero at or below the edge."""
        e_crit = shell.edge_energy_kev
        u = joules_to_kev(e0) / e_crit
        if u <= 1.0:
            return 0.0
        return math.log(u) / (e_crit * e_crit * math.pow(u, self.exponent(shell)))


class Pouchou86(ProportionalIonizationCrossSection):
    def __init__(self):
        super().__init__("Pouchou & Pichoir 1986", "Pouchou & Pichoir, Proc. 11th ICXOM (1986)")

    def exponent(self, shell: AtomicShell) -> float:
        z = shell.element.z
        if shell.family == "K":
            return 0.86 + 0.12 * math.exp(-(z * z) / 25.0)
        if shell.family == "L":
            return 0.82
        if shell.family == "M":
            return 0.78
        raise DomainError(f"{self.name} does not support the {shell.family} family", shell=shell)


class Proza96(ProportionalIonizationCrossSection):
    _K_SPECIAL = {6: 0.888, 7: 0.86, 8: 0.89}

    def __init__(self):
        super().__init__("Proza 1996", "Bastin GF, Dijkstra JM, Heijligers HJM, X-Ray Spectrom. 27 (1998) 3")

    def exponent(self, shell: AtomicShell) -> float:
        if shell.family == "K":
            return self._K_SPECIAL.get(shell.element.z, 0.90)
        if shell.family == "L":
            return 0.82
        if shell.family == "M":
            return 0.78
        raise DomainError(f"{self.name} does not support the {shell.family} family", shell=shell)


POUCHOU_86 = Pouchou86()
PROZA_96 = Proza96()

IMPLEMENTATIONS = [
    ZELLER_75, BERGER_SELTZER_CITZAF, STERNHEIMER_64, BLOCH_33, WILSON_41,
    SPRINGER_67, HEINRICH_70, DUNCUMB_69, POUCHOU_86, PROZA_96,
]
