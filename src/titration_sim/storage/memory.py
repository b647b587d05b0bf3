"""
In-memory experiment store, for tests and short-lived sessions.

License: MIT
"""

import copy
import threading
from typing import Any, Dict, List

from .base import ExperimentNotFoundError, ExperimentRecord, ExperimentStore


class MemoryExperimentStore(ExperimentStore):
    """Experiments and settings held in dicts; lost when the process exits."""

    def __init__(self):
        self._experiments: Dict[str, ExperimentRecord] = {}
        self._settings: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def _write(self, record: ExperimentRecord) -> None:
        with self._lock:
            self._experiments[record.id] = record

    def get(self, experiment_id: str) -> ExperimentRecord:
        with self._lock:
            try:
                return self._experiments[experiment_id]
            except KeyError:
                raise ExperimentNotFoundError(experiment_id) from None

    def _records(self) -> List[ExperimentRecord]:
        with self._lock:
            return list(self._experiments.values())

    def delete(self, experiment_id: str) -> None:
        with self._lock:
            if self._experiments.pop(experiment_id, None) is None:
                raise ExperimentNotFoundError(experiment_id)

    def save_setting(self, key: str, value: Any) -> None:
        with self._lock:
            self._settings[key] = copy.deepcopy(value)

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._settings.get(key, default))

    def clear(self) -> None:
        with self._lock:
            self._experiments.clear()
            self._settings.clear()
