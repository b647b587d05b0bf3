"""
Indicators Package
==================

Colour of an acid-base indicator as a function of pH, for renderers.

Available indicators:
- Phenolphthalein (default)
- MethylOrange
- BromothymolBlue

License: MIT
"""

import logging
from typing import Dict, List, Optional

from .base import Indicator, IndicatorColour
from .dyes import BromothymolBlue, MethylOrange, Phenolphthalein

logger = logging.getLogger(__name__)

DEFAULT_INDICATOR = "phenolphthalein"

_INDICATORS: Dict[str, Indicator] = {
    ind.name: ind for ind in (Phenolphthalein(), MethylOrange(), BromothymolBlue())
}


def _normalise(name: str) -> str:
    # "methylOrange", "Methyl Orange" and "methyl-orange" all map to methyl_orange
    out = []
    name = str(name).strip()
    for i, ch in enumerate(name):
        if ch in " -_":
            out.append("_")
        elif ch.isupper() and i > 0 and name[i - 1].islower():
            out.extend(("_", ch.lower()))
        else:
            out.append(ch.lower())
    return "".join(out)


def get_indicator(name: Optional[str] = None) -> Indicator:
    """
    Indicator by name; unknown names fall back to phenolphthalein.

    Args:
        name: Indicator key, case and separator insensitive
    """
    if name is None:
        return _INDICATORS[DEFAULT_INDICATOR]
    key = _normalise(name)
    indicator = _INDICATORS.get(key)
    if indicator is None:
        logger.warning(f"Unknown indicator {name!r}, using {DEFAULT_INDICATOR}")
        return _INDICATORS[DEFAULT_INDICATOR]
    return indicator


def available_indicators() -> List[str]:
    return list(_INDICATORS)


__all__ = [
    "Indicator",
    "IndicatorColour",
    "Phenolphthalein",
    "MethylOrange",
    "BromothymolBlue",
    "DEFAULT_INDICATOR",
    "get_indicator",
    "available_indicators",
]
