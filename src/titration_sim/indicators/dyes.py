"""
Common acid-base indicator dyes.

Transition ranges (25°C):
- Phenolphthalein:  8.2 - 10.0  colourless → pink
- Methyl orange:    3.1 - 4.4   red → yellow
- Bromothymol blue: 6.0 - 7.6   yellow → blue

Choice of indicator follows the equivalence pH: phenolphthalein for weak
acid / strong base, methyl orange for weak base / strong acid, bromothymol
blue for strong / strong.

License: MIT
"""

from .base import Indicator, IndicatorColour

_YELLOW = IndicatorColour(1.0, 1.0, 0.2, 0.8)


class Phenolphthalein(Indicator):
    name = "phenolphthalein"
    display_name = "Phenolphthalein"
    low, high = 8.2, 10.0
    acid_colour = IndicatorColour(1.0, 1.0, 1.0, 0.2)  # colourless
    base_colour = IndicatorColour(1.0, 0.2, 0.6, 0.8)  # pink
    colour_description = "Colourless to Pink"


class MethylOrange(Indicator):
    name = "methyl_orange"
    display_name = "Methyl Orange"
    low, high = 3.1, 4.4
    acid_colour = IndicatorColour(1.0, 0.2, 0.2, 0.8)  # red
    base_colour = _YELLOW
    colour_description = "Red to Yellow"


class BromothymolBlue(Indicator):
    name = "bromothymol_blue"
    display_name = "Bromothymol Blue"
    low, high = 6.0, 7.6
    acid_colour = _YELLOW
    base_colour = IndicatorColour(0.2, 0.4, 1.0, 0.8)  # blue
    colour_description = "Yellow to Blue"
