"""
JSON File Experiment Store
==========================

Directory-backed store:

    <root>/
        <id>.json         one ExperimentRecord per file
        settings.json     {key: value} preferences

Writes go to a temporary file in the same directory and are moved into
place with os.replace, so a crash never leaves a half-written experiment.
File access is serialised with a re-entrant lock; one store instance may be
shared by several sessions in the same process.

License: MIT
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Union

from ..core.errors import InvalidConfigError
from .base import (
    ExperimentNotFoundError,
    ExperimentRecord,
    ExperimentStore,
    check_experiment_id,
)

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"


class JsonFileExperimentStore(ExperimentStore):
    """Experiment store persisting JSON files under one directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _path(self, experiment_id: str) -> Path:
        try:
            check_experiment_id(experiment_id)
        except InvalidConfigError:
            raise ExperimentNotFoundError(experiment_id) from None
        return self.root / f"{experiment_id}.json"

    def _dump(self, path: Path, data: Any) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, path)
        except BaseException:
            os.unlink(tmp)
            raise

    def _read_settings(self) -> Dict[str, Any]:
        path = self.root / SETTINGS_FILE
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    # ------------------------------------------------------------------
    # ExperimentStore primitives
    # ------------------------------------------------------------------

    def _write(self, record: ExperimentRecord) -> None:
        with self._lock:
            self._dump(self._path(record.id), record.to_dict())
        logger.debug(f"Saved experiment {record.id} to {self.root}")

    def get(self, experiment_id: str) -> ExperimentRecord:
        path = self._path(experiment_id)
        with self._lock:
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
            except FileNotFoundError:
                raise ExperimentNotFoundError(experiment_id) from None
            except ValueError as e:
                raise InvalidConfigError(
                    f"Corrupt experiment file {path.name}: {e}"
                ) from e
        return ExperimentRecord.from_dict(data)

    def _records(self) -> List[ExperimentRecord]:
        records = []
        with self._lock:
            for path in sorted(self.root.glob("*.json")):
                if path.name == SETTINGS_FILE or path.name.startswith("."):
                    continue
                try:
                    records.append(self.get(path.stem))
                except (ValueError, ExperimentNotFoundError) as e:
                    # InvalidConfigError and JSONDecodeError are ValueErrors
                    logger.warning(f"Skipping unreadable experiment {path.name}: {e}")
        return records

    def delete(self, experiment_id: str) -> None:
        path = self._path(experiment_id)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                raise ExperimentNotFoundError(experiment_id) from None
        logger.debug(f"Deleted experiment {experiment_id}")

    def save_setting(self, key: str, value: Any) -> None:
        with self._lock:
            settings = self._read_settings()
            settings[str(key)] = value
            self._dump(self.root / SETTINGS_FILE, settings)

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read_settings().get(str(key), default)

    def clear(self) -> None:
        with self._lock:
            for path in self.root.glob("*.json"):
                path.unlink()
        logger.info(f"Cleared experiment store {self.root}")
