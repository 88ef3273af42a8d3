"""Exception types raised by the correction engine."""

from __future__ import annotations

from typing import Any, Optional


class ZAFError(Exception):
    """Base class for all correction-engine errors."""
    pass


class DomainError(ZAFError, ValueError):
    """Invalid input combination for a correction or sub-model.

    Raised for conditions the caller can recover from: an element missing
    from the composition, a beam energy below the edge, an exit angle out of
    range, an unsupported sample shape, or an overvoltage too small for a
    curve model to find feasible parameters.
    """

    def __init__(self, message: str, composition: Optional[Any] = None, shell: Optional[Any] = None):
        self.composition = composition
        self.shell = shell
        context = []
        if shell is not None:
            context.append(f"shell={shell}")
        if composition is not None:
            context.append(f"composition={composition}")
        if context:
            message = f"{message} [{', '.join(context)}]"
        super().__init__(message)


class FatalError(ZAFError, RuntimeError):
    """Missing reference data or a broken internal invariant."""
    pass


class UninitializedError(FatalError):
    """A correction was evaluated before ``initialize`` succeeded."""
    pass
