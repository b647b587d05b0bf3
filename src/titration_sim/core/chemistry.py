"""
Titration Chemistry Module
==========================

Computes the pH of an analyte after a given volume of titrant has been
delivered. Pure arithmetic, deterministic, cheap enough to evaluate on every
animation frame.

THEORETICAL FOUNDATION
=====================

Amounts are tracked in mmol (mol/L × mL). For an analyte (Ca, Va) and a
titrant of concentration Ct after Vt mL have been added:

    n_a = Ca * Va          n_t = Ct * Vt          V = Va + Vt

Equivalence (1:1 stoichiometry):

    V_eq = n_a / Ct

1. Strong acid / strong base:
   The species in excess sets the pH.
   [H⁺] = (n_a - n_t) / V   →  pH = -log10[H⁺]
   [OH⁻] = (n_t - n_a) / V  →  pH = 14 + log10[OH⁻]
   At equivalence pH = 7 exactly (water self-ionization is not modelled
   beyond this neutral point).

2. Weak species + strong species (either one may be the analyte):
   Buffer region (weak species in excess), Henderson-Hasselbalch:
       pH  = pKa + log10([A⁻]/[HA])      (weak acid)
       pOH = pKb + log10([BH⁺]/[B])      (weak base)
   Equivalence, hydrolysis of the conjugate at the diluted volume:
       pH = 7 + ½(pKa + log10 C')        (weak acid)
       pH = 7 - ½(pKb + log10 C')        (weak base)
   Note the sign: this is the textbook hydrolysis result (pH ≈ 8.72 for
   0.05 M acetate). The form 7 + ½(pKa - log10 C') that appears in some
   design notes is NOT used; it gives pH > 10 for the same solution.
   Strong species in excess: the strong excess formula above.

3. Weak acid / weak base:
   Both are treated as fully dissociated and the strong/strong branch is
   used. This produces a continuous curve but is NOT a rigorous equilibrium
   solution. Known limitation, kept deliberately.

4. Same kind (acid into acid, base into base):
   Nothing is neutralised; the formal concentrations are mixed. A single
   weak species is combined with the strong one through the common-ion
   quadratic:
       x² + (Cs + K)x - K·Cw = 0,   [H⁺] = Cs + x

CONTINUITY AND MONOTONICITY
==========================

Henderson-Hasselbalch diverges at both ends of the buffer region (no
conjugate at Vt = 0, no weak species left at equivalence). The buffer value
is therefore bounded:
- above by the equivalence hydrolysis value, so the curve meets the
  equivalence point without a jump;
- below by the undissociated weak-species value ½(pK - log10 C_formal),
  which is the initial pH of a pure weak analyte (the upper bound wins
  where the two cross, in very dilute systems).
Past the buffer region the strong excess formula is bounded by the same
hydrolysis value, and a strong excess never crosses pH 7.
All bounds move in the same direction as the titration, so the curve is
monotonic on each side of the equivalence point.

NUMERICAL GUARDS
================

- Concentrations are floored at 1e-14 mol/L before taking a logarithm
- Final pH is clipped to [0, 14]

References:
- Harris "Quantitative Chemical Analysis" (9th ed.), ch. 10-11
- Skoog, West & Holler "Fundamentals of Analytical Chemistry" (9th ed.)

License: MIT
"""

import math
import warnings
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .solution import ExperimentConfig, SpeciesKind, SoluteSpec, validate_config


# Physical constants (25°C)
PKW = 14.0  # -log10(Kw)
NEUTRAL_PH = 7.0

# Numerical guards
CONCENTRATION_FLOOR = 1e-14  # [mol/L] floor before any logarithm
EQUIVALENCE_RTOL = 1e-9  # relative tolerance on the mole balance
PH_MIN = 0.0
PH_MAX = 14.0


@dataclass(frozen=True)
class EquivalencePoint:
    """Titrant volume [mL] at which the mole balance closes, and the pH there."""

    volume_added: float
    pH: float

    def to_dict(self):
        return {"volume_added": self.volume_added, "pH": self.pH}


def _p(concentration: float) -> float:
    """-log10 of a concentration, floored to stay finite."""
    return float(-np.log10(max(concentration, CONCENTRATION_FLOOR)))


def _to_pH(p_own: float, kind: SpeciesKind) -> float:
    """Convert a value on a species' own scale (pH for acids, pOH for bases)."""
    return p_own if kind is SpeciesKind.ACID else PKW - p_own


class TitrationChemistry:
    """
    pH calculator bound to one experiment configuration.

    Derived constants (amount of analyte, equivalence volume, hydrolysis
    value at equivalence) are computed once; pH_at() is then pure
    arithmetic.

    Example:
        >>> from titration_sim.core import SoluteSpec, TitrantSpec, ExperimentConfig
        >>> config = ExperimentConfig(
        ...     analyte=SoluteSpec.preset("HCl", 0.1, 25.0),
        ...     titrant=TitrantSpec.preset("NaOH", 0.1),
        ... )
        >>> chem = TitrationChemistry(config)
        >>> chem.equivalence_volume
        25.0
        >>> chem.pH_at(25.0)
        7.0
    """

    def __init__(self, config: ExperimentConfig):
        validate_config(config)
        self.config = config
        self.analyte = config.analyte
        self.titrant = config.titrant

        self.n_analyte = self.analyte.moles  # [mmol]
        self.equivalence_volume = self.n_analyte / self.titrant.concentration  # [mL]

        self.weak = self._single_weak_species()
        if self.analyte.is_weak and self.titrant.is_weak:
            warnings.warn(
                "Weak/weak titration: both species treated as fully dissociated; "
                "the resulting curve is an approximation",
                UserWarning,
                stacklevel=3,
            )

        self._hydrolysis_p = None
        if self.weak is not None and config.is_neutralisation:
            # Conjugate formed at equivalence, diluted to V_a + V_eq; a conjugate
            # never pushes the solution past neutral towards its parent
            c_conj = self.n_analyte / (self.analyte.volume + self.equivalence_volume)
            self._hydrolysis_p = max(
                NEUTRAL_PH + 0.5 * (self.weak.pK + math.log10(c_conj)), NEUTRAL_PH
            )

    def _single_weak_species(self):
        """The weak species when exactly one of the two is weak, else None."""
        if self.analyte.is_weak and not self.titrant.is_weak:
            return self.analyte
        if self.titrant.is_weak and not self.analyte.is_weak:
            return self.titrant
        return None

    def at_equivalence(self, n_analyte: float, n_titrant: float) -> bool:
        """Mole balance closed within EQUIVALENCE_RTOL."""
        scale = max(n_analyte, n_titrant)
        return abs(n_analyte - n_titrant) <= EQUIVALENCE_RTOL * scale

    def pH_at(self, volume_added: float) -> float:
        """
        pH after volume_added mL of titrant.

        Args:
            volume_added: Cumulative titrant volume [mL], finite and >= 0

        Returns:
            pH in [0, 14]

        Raises:
            ValueError: If volume_added is negative or not finite
        """
        if not math.isfinite(volume_added) or volume_added < 0:
            raise ValueError(
                f"volume_added must be finite and non-negative, got {volume_added}"
            )

        n_a = self.n_analyte
        n_t = self.titrant.concentration * volume_added
        total_volume = self.analyte.volume + volume_added

        if not self.config.is_neutralisation:
            pH = self._mixture_pH(n_a, n_t, total_volume)
        elif self.weak is not None:
            pH = self._weak_strong_pH(n_a, n_t, total_volume)
        else:
            # strong/strong, and the weak/weak fallback
            pH = self._strong_strong_pH(n_a, n_t, total_volume)

        return float(np.clip(pH, PH_MIN, PH_MAX))

    def _strong_strong_pH(self, n_a: float, n_t: float, volume: float) -> float:
        if self.at_equivalence(n_a, n_t):
            return NEUTRAL_PH

        if n_a > n_t:
            kind, excess = self.analyte.kind, n_a - n_t
        else:
            kind, excess = self.titrant.kind, n_t - n_a

        # A strong excess never crosses the neutral point
        p_own = min(_p(excess / volume), NEUTRAL_PH)
        return _to_pH(p_own, kind)

    def _weak_strong_pH(self, n_a: float, n_t: float, volume: float) -> float:
        weak = self.weak
        if weak is self.analyte:
            n_weak, n_strong = n_a, n_t
        else:
            n_weak, n_strong = n_t, n_a

        pK = weak.pK
        p_hydrolysis = self._hydrolysis_p

        if self.at_equivalence(n_a, n_t):
            p_own = p_hydrolysis
        elif n_weak > n_strong:
            # Buffer region: weak species left over, conjugate = strong consumed
            p_hh = pK + math.log10(
                max(n_strong, CONCENTRATION_FLOOR)
                / max(n_weak - n_strong, CONCENTRATION_FLOOR)
            )
            # Pure weak species never crosses neutral, same as initial_pH
            p_undissociated = min(
                0.5 * (pK - math.log10(max(n_weak / volume, CONCENTRATION_FLOOR))),
                NEUTRAL_PH,
            )
            p_own = min(max(p_hh, p_undissociated), p_hydrolysis)
        else:
            # Strong species in excess, expressed on the weak species' scale
            p_strong = _p((n_strong - n_weak) / volume)
            p_own = max(PKW - p_strong, p_hydrolysis)

        return _to_pH(p_own, weak.kind)

    def _mixture_pH(self, n_a: float, n_t: float, volume: float) -> float:
        kind = self.analyte.kind
        species = ((self.analyte, n_a), (self.titrant, n_t))

        if self.weak is None:
            # Both strong, or both weak treated as fully dissociated
            concentration = (n_a + n_t) / volume
        else:
            c_strong = sum(n for s, n in species if s is not self.weak) / volume
            c_weak = sum(n for s, n in species if s is self.weak) / volume
            k = self.weak.dissociation_constant
            b = c_strong + k
            # Stable root of x² + (Cs + K)x - K·Cw = 0
            x = 2.0 * k * c_weak / (b + math.sqrt(b * b + 4.0 * k * c_weak))
            concentration = c_strong + x

        p_own = min(_p(concentration), NEUTRAL_PH)
        return _to_pH(p_own, kind)

    @property
    def equivalence_point(self) -> EquivalencePoint:
        return EquivalencePoint(
            volume_added=self.equivalence_volume,
            pH=self.pH_at(self.equivalence_volume),
        )

    def curve(self, volumes: Iterable[float]) -> np.ndarray:
        """Theoretical pH for each volume, as a numpy array."""
        return np.array([self.pH_at(float(v)) for v in volumes], dtype=float)


def compute_pH(config: ExperimentConfig, volume_added: float) -> float:
    """
    pH of the analyte after volume_added mL of titrant (pure function).

    Raises:
        InvalidConfigError: If config does not validate
        ValueError: If volume_added is negative or not finite
    """
    return TitrationChemistry(config).pH_at(volume_added)


def equivalence_volume(config: ExperimentConfig) -> float:
    """Titrant volume [mL] for which moles titrant = moles analyte."""
    validate_config(config)
    return config.analyte.moles / config.titrant.concentration


def equivalence_point(config: ExperimentConfig) -> EquivalencePoint:
    """Equivalence point derived from configuration alone."""
    return TitrationChemistry(config).equivalence_point


def initial_pH(spec: SoluteSpec) -> float:
    """pH of a solution on its own, before any titrant is added."""
    c = spec.concentration
    if spec.is_weak:
        p_own = 0.5 * (spec.pK - math.log10(c))
    else:
        p_own = _p(c)
    return float(np.clip(_to_pH(min(p_own, NEUTRAL_PH), spec.kind), PH_MIN, PH_MAX))


def validate_chemistry() -> None:
    """
    Validation of the pH calculator against textbook values.

    Tests:
    1. Strong/strong neutral point is pH 7
    2. Strong acid at half-equivalence (excess [H⁺] = 0.0333 M)
    3. Weak acid initial pH (0.1 M acetic acid ≈ 2.87)
    4. Weak acid half-equivalence pH = pKa
    5. Weak acid equivalence pH from conjugate hydrolysis
    6. Output always within [0, 14]
    """
    from .solution import SoluteSpec as Solute, TitrantSpec

    strong = ExperimentConfig(
        analyte=Solute.preset("HCl", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1),
    )
    chem = TitrationChemistry(strong)

    # Test 1: neutral point
    if abs(chem.pH_at(25.0) - 7.0) > 1e-9:
        raise RuntimeError("Strong/strong equivalence must be pH 7")

    # Test 2: half-equivalence
    expected = -math.log10((2.5 - 1.25) / 37.5)
    if abs(chem.pH_at(12.5) - expected) > 1e-9:
        raise RuntimeError(f"Half-equivalence pH {chem.pH_at(12.5)} != {expected}")

    weak = ExperimentConfig(
        analyte=Solute.preset("CH3COOH", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1),
    )
    chem = TitrationChemistry(weak)
    pKa = weak.analyte.pK

    # Test 3: initial pH
    if abs(chem.pH_at(0.0) - 2.87) > 0.01:
        raise RuntimeError(f"Acetic acid initial pH {chem.pH_at(0.0):.3f} != 2.87")

    # Test 4: half-equivalence = pKa
    if abs(chem.pH_at(12.5) - pKa) > 1e-6:
        raise RuntimeError("Half-equivalence pH must equal pKa")

    # Test 5: equivalence from hydrolysis of acetate (0.05 M)
    expected = 7.0 + 0.5 * (pKa + math.log10(0.05))
    if abs(chem.pH_at(25.0) - expected) > 1e-9:
        raise RuntimeError("Equivalence pH must follow conjugate hydrolysis")

    # Test 6: bounds
    values = chem.curve(np.linspace(0.0, 100.0, 201))
    if values.min() < PH_MIN or values.max() > PH_MAX:
        raise RuntimeError("pH escaped [0, 14]")

    print("✓ All chemistry validations passed")


if __name__ == "__main__":
    """
    Demonstration: acetic acid titrated with sodium hydroxide.
    """
    from .solution import TitrantSpec

    config = ExperimentConfig(
        analyte=SoluteSpec.preset("CH3COOH", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1),
    )
    chem = TitrationChemistry(config)

    print("Weak Acid Titration Demonstration")
    print("=" * 60)
    print(f"Analyte: 0.1 M acetic acid, 25 mL (pKa = {config.analyte.pK:.2f})")
    print("Titrant: 0.1 M NaOH")
    print(f"Equivalence volume: {chem.equivalence_volume:.2f} mL")
    print()
    print(f"{'V (mL)':<10} {'pH':<8}")
    print("-" * 20)
    for v in np.arange(0.0, 50.5, 2.5):
        print(f"{v:<10.1f} {chem.pH_at(v):<8.3f}")
    print()

    validate_chemistry()
