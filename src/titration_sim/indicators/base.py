"""
Acid-Base Indicator Model
=========================

An indicator dye changes colour over a narrow pH interval (its transition
range). Below the range it shows its acid colour, above it the base colour,
and inside it the colour is interpolated linearly:

    t = (pH - low) / (high - low)
    c = c_acid + t · (c_base - c_acid)      for each of r, g, b, a

Colour components are in [0, 1]; alpha expresses how strongly the solution
is tinted (a nearly colourless solution has low alpha).

The model is a pure function of pH: it keeps no visual state and knows
nothing about the renderer that uses it.

License: MIT
"""

from abc import ABC
from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class IndicatorColour:
    """RGBA colour, components in [0, 1]."""

    r: float
    g: float
    b: float
    a: float = 1.0

    def __post_init__(self):
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Colour component {name} must lie in [0, 1], got {value}")

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.r, self.g, self.b, self.a)

    def hex(self) -> str:
        """#rrggbb (alpha dropped)."""
        return "#" + "".join(f"{int(round(c * 255)):02x}" for c in (self.r, self.g, self.b))

    def blend(self, other: "IndicatorColour", t: float) -> "IndicatorColour":
        """Linear interpolation towards other; t is clipped to [0, 1]."""
        t = float(np.clip(t, 0.0, 1.0))
        start = np.array(self.as_tuple())
        end = np.array(other.as_tuple())
        mixed = np.clip(start + t * (end - start), 0.0, 1.0)
        return IndicatorColour(*(float(c) for c in mixed))


class Indicator(ABC):
    """
    Base class for two-colour acid-base indicators.

    Subclasses define the class attributes; colour() does the rest.
    """

    name: str = ""
    display_name: str = ""
    low: float = 0.0  # start of transition range [pH]
    high: float = 14.0  # end of transition range [pH]
    acid_colour: IndicatorColour = IndicatorColour(1.0, 1.0, 1.0, 0.0)
    base_colour: IndicatorColour = IndicatorColour(1.0, 1.0, 1.0, 0.0)
    colour_description: str = ""

    @property
    def transition_range(self) -> Tuple[float, float]:
        return (self.low, self.high)

    def fraction(self, pH: float) -> float:
        """Progress through the transition range, 0 (acid) to 1 (base)."""
        if not np.isfinite(pH):
            raise ValueError(f"pH must be finite, got {pH}")
        return float(np.clip((pH - self.low) / (self.high - self.low), 0.0, 1.0))

    def colour(self, pH: float) -> IndicatorColour:
        """Colour of the indicator in a solution of the given pH."""
        t = self.fraction(pH)
        if t <= 0.0:
            return self.acid_colour
        if t >= 1.0:
            return self.base_colour
        return self.acid_colour.blend(self.base_colour, t)

    def __repr__(self):
        return f"{type(self).__name__}(range={self.low}-{self.high})"
