"""
Solution Model
==============

Immutable descriptions of the two solutions taking part in a titration:

- Analyte: the solution in the flask (fixed volume, known concentration)
- Titrant: the reagent delivered from the burette at a constant rate

UNITS
=====

- Concentration: mol/L
- Volume: mL
- Amount of substance: mmol (mol/L × mL)
- Delivery rate: mL per simulated time unit

DISSOCIATION CONSTANTS
======================

A weak species carries its dissociation constant itself (Ka for a weak acid,
Kb for a weak base), NOT its negative logarithm. Passing a pKa where a Ka is
expected is a caller error that cannot be detected here: pKa = 4.76 would be
read as an absurdly strong "weak" acid.

A strong species must not carry a constant.

License: MIT
"""

import math
from dataclasses import MISSING, dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .errors import InvalidConfigError


class SpeciesKind(Enum):
    """Whether a solute donates or accepts protons."""

    ACID = "acid"
    BASE = "base"

    @property
    def opposite(self) -> "SpeciesKind":
        return SpeciesKind.BASE if self is SpeciesKind.ACID else SpeciesKind.ACID


class Strength(Enum):
    """Degree of dissociation in water."""

    STRONG = "strong"
    WEAK = "weak"


# Reagents offered by the apparatus: name -> (kind, strength, K)
REAGENTS: Dict[str, Tuple[SpeciesKind, Strength, Optional[float]]] = {
    "HCl": (SpeciesKind.ACID, Strength.STRONG, None),
    "NaOH": (SpeciesKind.BASE, Strength.STRONG, None),
    "CH3COOH": (SpeciesKind.ACID, Strength.WEAK, 1.8e-5),  # acetic acid, Ka
    "NH3": (SpeciesKind.BASE, Strength.WEAK, 1.8e-5),  # ammonia, Kb
}

_REAGENT_ALIASES = {
    "hcl": "HCl",
    "naoh": "NaOH",
    "ch3cooh": "CH3COOH",
    "acetic": "CH3COOH",
    "nh3": "NH3",
    "ammonia": "NH3",
}


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def _require_positive_finite(value: Any, field: str) -> None:
    """Raise InvalidConfigError unless value is a finite number > 0."""
    if not _is_number(value):
        raise InvalidConfigError(
            f"{field} must be a number, got {type(value).__name__}", field
        )
    if not math.isfinite(value):
        raise InvalidConfigError(f"{field} must be finite, got {value}", field)
    if value <= 0:
        raise InvalidConfigError(f"{field} must be positive, got {value}", field)


def _parse_enum(enum_cls, raw: Any, field: str):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidConfigError(
            f"{field} must be one of [{allowed}], got {raw!r}", field
        ) from None


def resolve_reagent(name: str) -> str:
    """Return the canonical reagent name for a (case-insensitive) alias."""
    key = _REAGENT_ALIASES.get(str(name).lower())
    if key is None:
        raise InvalidConfigError(
            f"Unknown reagent {name!r}; available: {', '.join(REAGENTS)}",
            "reagent",
        )
    return key


@dataclass(frozen=True)
class SoluteSpec:
    """
    One solution taking part in the titration.

    Attributes:
        kind: Acid or base
        strength: Strong (fully dissociated) or weak
        concentration: Formal concentration [mol/L]
        volume: Volume [mL]
        dissociation_constant: Ka (weak acid) or Kb (weak base); None if strong
    """

    kind: SpeciesKind
    strength: Strength
    concentration: float  # [mol/L]
    volume: float  # [mL]
    dissociation_constant: Optional[float] = None

    def validate(self, prefix: str = "") -> None:
        """Check the invariants; raise InvalidConfigError on the first violation."""
        if not isinstance(self.kind, SpeciesKind):
            raise InvalidConfigError(
                f"{prefix}kind must be a SpeciesKind, got {self.kind!r}",
                f"{prefix}kind",
            )
        if not isinstance(self.strength, Strength):
            raise InvalidConfigError(
                f"{prefix}strength must be a Strength, got {self.strength!r}",
                f"{prefix}strength",
            )

        _require_positive_finite(self.concentration, f"{prefix}concentration")
        _require_positive_finite(self.volume, f"{prefix}volume")

        if self.strength is Strength.WEAK:
            if self.dissociation_constant is None:
                raise InvalidConfigError(
                    f"{prefix}dissociation_constant is required for a weak "
                    f"{self.kind.value}",
                    f"{prefix}dissociation_constant",
                )
            _require_positive_finite(
                self.dissociation_constant, f"{prefix}dissociation_constant"
            )
        elif self.dissociation_constant is not None:
            raise InvalidConfigError(
                f"{prefix}dissociation_constant must be omitted for a strong "
                f"{self.kind.value}",
                f"{prefix}dissociation_constant",
            )

    @property
    def moles(self) -> float:
        """Amount of solute [mmol]."""
        return self.concentration * self.volume

    @property
    def pK(self) -> Optional[float]:
        """-log10 of the dissociation constant (None for strong species)."""
        if self.dissociation_constant is None:
            return None
        return -math.log10(self.dissociation_constant)

    @property
    def is_weak(self) -> bool:
        return self.strength is Strength.WEAK

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["strength"] = self.strength.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], prefix: str = ""):
        """Build (without validating numeric ranges) from a plain dict."""
        if not isinstance(data, dict):
            raise InvalidConfigError(
                f"{prefix or 'solution'} must be a mapping, got {type(data).__name__}",
                prefix.rstrip(".") or None,
            )
        known = {f.name: f for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name, f in known.items():
            if f.default is MISSING and name not in kwargs:
                raise InvalidConfigError(
                    f"{prefix}{name} is missing", f"{prefix}{name}"
                )
        kwargs["kind"] = _parse_enum(SpeciesKind, kwargs["kind"], f"{prefix}kind")
        kwargs["strength"] = _parse_enum(
            Strength, kwargs["strength"], f"{prefix}strength"
        )
        return cls(**kwargs)

    @classmethod
    def preset(
        cls,
        reagent: str,
        concentration: float,
        volume: Optional[float] = None,
        **kwargs,
    ):
        """
        Build a spec for one of the named REAGENTS.

        volume may be omitted only where the class defines a default
        (TitrantSpec: the burette fill).
        """
        kind, strength, constant = REAGENTS[resolve_reagent(reagent)]
        if volume is not None:
            kwargs["volume"] = volume
        elif "volume" not in {f.name for f in fields(cls) if f.default is not MISSING}:
            raise InvalidConfigError(f"volume is required for {reagent}", "volume")
        return cls(
            kind=kind,
            strength=strength,
            concentration=concentration,
            dissociation_constant=constant,
            **kwargs,
        )


@dataclass(frozen=True)
class TitrantSpec(SoluteSpec):
    """
    The reagent added from the burette.

    Attributes:
        volume: Reagent available in the burette [mL] (informational)
        delivery_rate: Titrant delivered per simulated time unit [mL/unit]
    """

    volume: float = 50.0  # [mL]
    delivery_rate: float = 1.0  # [mL/unit]

    def validate(self, prefix: str = "") -> None:
        super().validate(prefix)
        _require_positive_finite(self.delivery_rate, f"{prefix}delivery_rate")


@dataclass(frozen=True)
class ExperimentConfig:
    """
    Complete chemical description of one titration.

    Analyte and titrant may be of the same kind (self-titration); the
    calculator then simply mixes them.
    """

    analyte: SoluteSpec
    titrant: TitrantSpec

    def validate(self) -> None:
        """Validate both solutions; raises InvalidConfigError."""
        if not isinstance(self.analyte, SoluteSpec):
            raise InvalidConfigError("analyte must be a SoluteSpec", "analyte")
        if not isinstance(self.titrant, TitrantSpec):
            raise InvalidConfigError("titrant must be a TitrantSpec", "titrant")
        self.analyte.validate("analyte.")
        self.titrant.validate("titrant.")

    @property
    def is_neutralisation(self) -> bool:
        """True when analyte and titrant react with each other."""
        return self.analyte.kind is not self.titrant.kind

    def to_dict(self) -> Dict[str, Any]:
        return {"analyte": self.analyte.to_dict(), "titrant": self.titrant.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperimentConfig":
        if not isinstance(data, dict):
            raise InvalidConfigError("experiment config must be a mapping")
        for name in ("analyte", "titrant"):
            if name not in data:
                raise InvalidConfigError(f"{name} is missing", name)
        return cls(
            analyte=SoluteSpec.from_dict(data["analyte"], "analyte."),
            titrant=TitrantSpec.from_dict(data["titrant"], "titrant."),
        )


def validate_config(config: ExperimentConfig) -> None:
    """Validate an experiment configuration (raises InvalidConfigError)."""
    if not isinstance(config, ExperimentConfig):
        raise InvalidConfigError(
            f"Expected ExperimentConfig, got {type(config).__name__}"
        )
    config.validate()
