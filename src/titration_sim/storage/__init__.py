"""
Storage Package
===============

Persistence adapters for titration sessions.

Available stores:
- MemoryExperimentStore: dict-backed, process lifetime
- JsonFileExperimentStore: one JSON file per experiment in a directory

License: MIT
"""

from .base import (
    ExperimentStore,
    ExperimentRecord,
    ExperimentNotFoundError,
    new_experiment_id,
)
from .memory import MemoryExperimentStore
from .json_store import JsonFileExperimentStore

__all__ = [
    "ExperimentStore",
    "ExperimentRecord",
    "ExperimentNotFoundError",
    "new_experiment_id",
    "MemoryExperimentStore",
    "JsonFileExperimentStore",
]
