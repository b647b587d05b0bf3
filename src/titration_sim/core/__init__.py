"""
Titration Engine Core Package
=============================

Acid-base titration chemistry and the run state machine that drives it.

This package provides:
- Solution: analyte/titrant descriptions, validation, reagent presets
- Chemistry: pH after a given titrant volume, equivalence point
- Curve: ordered (volume, pH) samples plus curve analytics
- Run: IDLE / RUNNING / PAUSED / COMPLETE state machine driven by ticks
- Snapshot: the persisted form of a session

USAGE EXAMPLE
============

```python
from titration_sim.core import (
    ExperimentConfig, RunLimits, RunState, SoluteSpec, TitrantSpec, TitrationRun,
)

config = ExperimentConfig(
    analyte=SoluteSpec.preset("CH3COOH", 0.1, 25.0),
    titrant=TitrantSpec.preset("NaOH", 0.1, delivery_rate=0.5),
)

run = TitrationRun(config, RunLimits(equivalence_multiplier=2.0))
run.start()
while run.state is RunState.RUNNING:
    sample = run.tick(dt=1.0)

print(run.equivalence_point())
```

WHAT THIS PACKAGE DOES NOT DO:
- NO rendering (flask, burette, droplets, chart)
- NO wall-clock timing; the caller owns the tick source
- NO general equilibrium solver (single-protic, 25°C, ideal solutions)

Run validation: `python -m titration_sim.core` or call `run_all_validations()`

License: MIT
"""

__version__ = "1.0.0"

from .errors import (
    TitrationError,
    InvalidConfigError,
    InvalidStateError,
    NonMonotonicVolumeError,
)

from .solution import (
    SpeciesKind,
    Strength,
    SoluteSpec,
    TitrantSpec,
    ExperimentConfig,
    REAGENTS,
    resolve_reagent,
    validate_config,
)

from .chemistry import (
    TitrationChemistry,
    EquivalencePoint,
    compute_pH,
    equivalence_volume,
    equivalence_point,
    initial_pH,
    validate_chemistry,
)

from .curve import CurveSample, TitrationCurve

from .snapshot import SessionSnapshot, SNAPSHOT_VERSION

from .run import RunState, RunLimits, TitrationRun, validate_run

__all__ = [
    # Errors
    "TitrationError",
    "InvalidConfigError",
    "InvalidStateError",
    "NonMonotonicVolumeError",
    # Solution model
    "SpeciesKind",
    "Strength",
    "SoluteSpec",
    "TitrantSpec",
    "ExperimentConfig",
    "REAGENTS",
    "resolve_reagent",
    "validate_config",
    # Chemistry
    "TitrationChemistry",
    "EquivalencePoint",
    "compute_pH",
    "equivalence_volume",
    "equivalence_point",
    "initial_pH",
    # Curve
    "CurveSample",
    "TitrationCurve",
    # Run
    "RunState",
    "RunLimits",
    "TitrationRun",
    "SessionSnapshot",
    "SNAPSHOT_VERSION",
    # Validation functions
    "validate_chemistry",
    "validate_run",
]


def run_all_validations():
    """
    Run the chemistry and state machine self checks.

    Raises RuntimeError on the first failed check.
    """
    print("Running Titration Engine Validation Suite")
    print("=" * 70)

    print("\n1. Chemistry...")
    validate_chemistry()

    print("\n2. Run state machine...")
    validate_run()

    print("\n" + "=" * 70)
    print("ALL VALIDATIONS PASSED ✓")
    print("=" * 70)


if __name__ == "__main__":
    run_all_validations()
