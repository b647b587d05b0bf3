"""
Titration Simulator
===================

Acid-base titration engine: pH chemistry, titration curve, run state
machine, session persistence and indicator colours.

Packages:
- core: chemistry and run state machine
- storage: experiment stores (memory, JSON files)
- indicators: indicator colour as a function of pH

Run a headless titration with `python -m titration_sim --help`.

License: MIT
"""

__version__ = "1.0.0"

from .core import (
    ExperimentConfig,
    InvalidConfigError,
    InvalidStateError,
    NonMonotonicVolumeError,
    RunLimits,
    RunState,
    SoluteSpec,
    SpeciesKind,
    Strength,
    TitrantSpec,
    TitrationError,
    TitrationRun,
    compute_pH,
    equivalence_point,
)

__all__ = [
    "ExperimentConfig",
    "InvalidConfigError",
    "InvalidStateError",
    "NonMonotonicVolumeError",
    "RunLimits",
    "RunState",
    "SoluteSpec",
    "SpeciesKind",
    "Strength",
    "TitrantSpec",
    "TitrationError",
    "TitrationRun",
    "compute_pH",
    "equivalence_point",
]
