"""
Error Types for the Titration Engine
====================================

Every failure the engine reports is one of these. They are raised
synchronously to the caller of the violating operation and never retried
internally; the previous state is always left intact.

Numeric edge cases (vanishing concentrations near the equivalence point)
are NOT errors: they are clamped by the pH calculator so that a pH can
always be displayed.

License: MIT
"""

from typing import Optional


class TitrationError(Exception):
    """Base class for all titration engine errors."""


class InvalidConfigError(TitrationError, ValueError):
    """
    Solute/titrant description is unusable.

    Raised for non-positive or non-finite numeric fields, a missing
    dissociation constant on a weak species (or one supplied for a strong
    species), and for malformed serialized configurations.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidStateError(TitrationError, RuntimeError):
    """A run transition was attempted from a state that does not permit it."""

    def __init__(self, action: str, state):
        state_name = getattr(state, "value", state)
        super().__init__(f"Cannot {action} while run is {state_name}")
        self.action = action
        self.state = state


class NonMonotonicVolumeError(TitrationError, ValueError):
    """A curve sample would move backwards in titrant volume."""

    def __init__(self, previous: float, attempted: float):
        super().__init__(
            f"Titrant volume must be non-decreasing: "
            f"{attempted:.6g} mL < {previous:.6g} mL"
        )
        self.previous = previous
        self.attempted = attempted
