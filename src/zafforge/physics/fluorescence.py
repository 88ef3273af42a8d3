"""
Characteristic secondary fluorescence corrections.

The fluorescence multiplier is 1 + sum over exciting lines of the extra
intensity they induce in the measured line, relative to the primary
(electron-excited) intensity.

Reference: Reed SJB, in Electron Probe Quantitation, Heinrich & Newbury (eds),
           Plenum (1991) 93
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from zafforge.core.chemistry import Composition, Element, Line, XRayTransition, XRayTransitionSet
from zafforge.core.errors import DomainError
from zafforge.core.strategy import Algorithm, AlgorithmFamily, Resolver
from zafforge.core.units import joules_to_kev, kev_to_joules, mac_from_si

logger = logging.getLogger(__name__)

_FAMILY_ORDER = {"K": 0, "L": 1, "M": 2, "N": 3}


class Fluorescence(Algorithm):
    family = AlgorithmFamily.FLUORESCENCE

    def compute_pair(self, resolver: Resolver, composition: Composition, primary: XRayTransition,
                     secondary: XRayTransition, e0: float, exit_angle: float) -> float:
        """Extra intensity in ``secondary`` excited by ``primary`` photons."""
        raise NotImplementedError

    def compute(self, resolver: Resolver, composition: Composition, secondary: XRayTransition,
                e0: float, exit_angle: float) -> float:
        """Fluorescence multiplier (>= 1) for ``secondary``."""
        edge = secondary.edge_energy
        delta = kev_to_joules(5.0 if secondary.family == "K" else 3.5)
        f_sum = 0.0
        for el in composition.elements:
            primary = primary_exciting_line(el, edge)
            if primary is None:
                continue
            if primary.edge_energy >= e0 or primary.energy >= edge + delta:
                continue
            w = 0.0
            weights = XRayTransitionSet.family(el, primary.family)
            for xrt, wt in zip(weights, weights.weights()):
                if xrt.energy >= edge and xrt.edge_energy < e0:
                    w += wt
            if w > 0.0:
                term = self.compute_pair(resolver, composition, primary, secondary, e0, exit_angle)
                logger.debug("%s fluoresced by %s: %.4g (w=%.3f)", secondary, primary, term, w)
                f_sum += term * w
        return 1.0 + f_sum


def primary_exciting_line(element: Element, edge_energy: float) -> Optional[XRayTransition]:
    """
    Strongest line of ``element`` above ``edge_energy``.

    Lines of a higher family (L over K, M over L) take precedence.
    """
    best = None
    best_weight = 0.0
    best_family = -1
    for line in Line:
        xrt = XRayTransition(element, line)
        if not xrt.exists():
            continue
        fam = _FAMILY_ORDER[xrt.family]
        if xrt.energy > edge_energy and fam >= best_family:
            w = xrt.weight
            if fam > best_family or w > best_weight:
                best, best_weight, best_family = xrt, w, fam
    return best


class NullFluorescence(Fluorescence):
    """No fluorescence: the multiplier is exactly 1."""

    def __init__(self):
        super().__init__("Null", "None")

    def compute_pair(self, resolver, composition, primary, secondary, e0, exit_angle) -> float:
        return 0.0

    def compute(self, resolver, composition, secondary, e0, exit_angle) -> float:
        return 1.0


class Reed1990(Fluorescence):
    """Reed's characteristic fluorescence expression (Love, Scott & Reed)."""

    def __init__(self):
        super().__init__("Reed 1990", "Reed SJB, in Electron Probe Quantitation (1991) 93")

    def compute_pair(self, resolver: Resolver, composition: Composition, primary: XRayTransition,
                     secondary: XRayTransition, e0: float, exit_angle: float) -> float:
        edge_a = secondary.edge_energy
        if primary.energy < edge_a:
            return 0.0
        mac = resolver.resolve(AlgorithmFamily.MASS_ABSORPTION)
        el_a = secondary.element
        el_b = primary.element
        shell_a = secondary.shell
        try:
            r = shell_a.jump_ratio()
            omega = shell_a.fluorescence_yield()
        except DomainError:
            logger.warning("No fluorescence data for %s; ignoring excitation by %s", shell_a, primary)
            return 0.0
        jump = (r - 1.0) / r if r > 0.0 else 0.0
        mu_prim = mac.compute(composition, primary)
        mm = composition.weight_fraction(el_a) * mac.compute_element(el_a, primary) / mu_prim
        u_a = edge_a / e0
        u_b = primary.edge_energy / e0
        uu = ((el_a.atomic_weight / el_b.atomic_weight) * (u_b * math.log(u_b) - u_b + 1.0)
              / (u_a * math.log(u_a) - u_a + 1.0))
        u = mac.compute(composition, secondary) / (math.sin(exit_angle) * mu_prim)
        sigma = 4.5e5 / (math.pow(joules_to_kev(e0), 1.65) - math.pow(joules_to_kev(edge_a), 1.65))
        v = sigma / mac_from_si(mu_prim)
        return 0.5 * mm * jump * omega * uu * (math.log(1.0 + u) / u + math.log(1.0 + v) / v)


NULL = NullFluorescence()
REED_1990 = Reed1990()

IMPLEMENTATIONS = [NULL, REED_1990]
