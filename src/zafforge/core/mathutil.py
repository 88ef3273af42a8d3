"""
Small numerical helpers shared by the curve models.

Includes the five-term rational series for the scaled complementary error
function used by Armstrong (1982), a real quadratic solver and a bounded
adaptive quadrature wrapper.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Callable, Optional, Tuple

from scipy import integrate
from scipy.integrate import IntegrationWarning

logger = logging.getLogger(__name__)

_ERFCX_P = 0.3275911
_ERFCX_A = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)

# Relative tolerance and subdivision limit for all adaptive quadrature
QUAD_EPSREL = 1.0e-6
QUAD_LIMIT = 200


def erfcx_series(x: float) -> float:
    """
    Approximate exp(x^2) * erfc(x) for x >= 0.

    Abramowitz & Stegun 7.1.26 as used by Armstrong (1982). Absolute error
    below 1.5e-7 after multiplication by exp(-x^2).
    """
    t = 1.0 / (1.0 + _ERFCX_P * x)
    res = 0.0
    tn = t
    for a in _ERFCX_A:
        res += a * tn
        tn *= t
    return res


def quadratic_roots(a: float, b: float, c: float) -> Optional[Tuple[float, float]]:
    """
    Real roots of a*x^2 + b*x + c = 0, largest first.

    Returns None when the roots are complex. A zero leading coefficient
    degenerates to the linear solution returned twice.
    """
    if a == 0.0:
        if b == 0.0:
            return None
        r = -c / b
        return r, r
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        return None
    sq = math.sqrt(disc)
    # Numerically stable form
    q = -0.5 * (b + math.copysign(sq, b))
    r1 = q / a
    r2 = c / q if q != 0.0 else r1
    return (r1, r2) if r1 >= r2 else (r2, r1)


def integrate_bounded(
    func: Callable[[float], float],
    lower: float,
    upper: float,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
) -> float:
    """
    Adaptive quadrature of ``func`` over [lower, upper].

    Wraps scipy.integrate.quad with a bounded number of subdivisions so the
    integration terminates even for badly behaved integrands. Convergence
    warnings are logged rather than raised.
    """
    if upper <= lower:
        return 0.0
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", IntegrationWarning)
        value, abserr = integrate.quad(func, lower, upper, epsrel=epsrel, epsabs=0.0, limit=limit)
    for w in caught:
        logger.warning("Quadrature over [%g, %g] did not fully converge (err=%g): %s",
                       lower, upper, abserr, w.message)
    return value
