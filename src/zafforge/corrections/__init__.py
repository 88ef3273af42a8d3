"""
Matrix-correction algorithms.

Each algorithm resolves its physical sub-models through a strategy,
solves its phi(rho z) parameters for one (composition, shell, probe)
triple and answers ZA / generated / ZAF queries.
"""

from typing import Dict, Type

from zafforge.corrections.algorithm import (
    CorrectionAlgorithm,
    NullCorrection,
    PhiRhoZAlgorithm,
    ZAFFactors,
)
from zafforge.corrections.armstrong import Armstrong1982, Armstrong1982Particle
from zafforge.corrections.pap import PAP1991
from zafforge.corrections.shapes import SampleShape, escape_fraction, parse_shape
from zafforge.corrections.xpp import XPP1989Ext, XPP1991

from zafforge.core.errors import DomainError

# Short names accepted on the command line
ALGORITHMS: Dict[str, Type[CorrectionAlgorithm]] = {
    "pap": PAP1991,
    "xpp": XPP1991,
    "xpp-ext": XPP1989Ext,
    "armstrong": Armstrong1982,
    "armstrong-particle": Armstrong1982Particle,
    "null": NullCorrection,
}


def algorithm_class(name: str) -> Type[CorrectionAlgorithm]:
    try:
        return ALGORITHMS[name.strip().lower()]
    except KeyError:
        raise DomainError(f"Unknown correction algorithm '{name}' (expected one of {', '.join(ALGORITHMS)})") from None


__all__ = [
    "ALGORITHMS",
    "Armstrong1982",
    "Armstrong1982Particle",
    "CorrectionAlgorithm",
    "NullCorrection",
    "PAP1991",
    "PhiRhoZAlgorithm",
    "SampleShape",
    "XPP1989Ext",
    "XPP1991",
    "ZAFFactors",
    "algorithm_class",
    "escape_fraction",
    "parse_shape",
]
