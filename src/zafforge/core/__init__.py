"""Core data structures and utilities."""

from zafforge.core.chemistry import (
    AtomicShell,
    Composition,
    Element,
    Line,
    Shell,
    XRayTransition,
    XRayTransitionSet,
)
from zafforge.core.errors import DomainError, FatalError, UninitializedError, ZAFError
from zafforge.core.properties import ProbeProperties
from zafforge.core.strategy import (
    Algorithm,
    AlgorithmFamily,
    Resolver,
    Strategy,
    apply_global_override,
    clear_global_override,
)

__all__ = [
    "AtomicShell",
    "Composition",
    "Element",
    "Line",
    "Shell",
    "XRayTransition",
    "XRayTransitionSet",
    "ProbeProperties",
    # Errors
    "ZAFError",
    "DomainError",
    "FatalError",
    "UninitializedError",
    # Strategy
    "Algorithm",
    "AlgorithmFamily",
    "Resolver",
    "Strategy",
    "apply_global_override",
    "clear_global_override",
]
