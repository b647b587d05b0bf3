"""
Experiment Store Contract
=========================

Storage-technology independent persistence for titration sessions.

An experiment is a named, timestamped SessionSnapshot. Backends implement a
handful of primitives (write, get, list, delete, settings, clear); saving,
loading and JSON export/import are shared here so every backend accepts and
produces the same payloads.

Export format (one experiment):

    {
      "id": "3f9c2a...",
      "name": "Acetic acid vs NaOH",
      "timestamp": 1760781600.0,
      "snapshot": { ...SessionSnapshot.to_dict()... }
    }

Importing always assigns a fresh id and timestamp, so an exported file can
be imported repeatedly without clobbering the original.

License: MIT
"""

import json
import re
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.errors import InvalidConfigError, TitrationError
from ..core.snapshot import SessionSnapshot

# Ids double as file names in file-backed stores
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ExperimentNotFoundError(TitrationError, KeyError):
    """No experiment is stored under the requested id."""

    def __init__(self, experiment_id: str):
        self.experiment_id = experiment_id
        super().__init__(f"Experiment not found: {experiment_id!r}")

    def __str__(self):
        # KeyError would otherwise quote the message
        return self.args[0]


def new_experiment_id() -> str:
    return secrets.token_hex(8)


def check_experiment_id(experiment_id: Any) -> str:
    """Return experiment_id if it is a usable id, else raise InvalidConfigError."""
    if not isinstance(experiment_id, str) or not _ID_PATTERN.match(experiment_id):
        raise InvalidConfigError(
            f"Invalid experiment id: {experiment_id!r}", "experiment_id"
        )
    return experiment_id


@dataclass(frozen=True)
class ExperimentRecord:
    """One stored experiment."""

    id: str
    name: str
    timestamp: float  # seconds since the epoch
    snapshot: SessionSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperimentRecord":
        """
        Raises:
            InvalidConfigError: If the payload is not a valid record
        """
        if not isinstance(data, dict) or "snapshot" not in data:
            raise InvalidConfigError("experiment record requires a 'snapshot'")
        try:
            timestamp = float(data.get("timestamp", 0.0))
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"Invalid timestamp: {e}", "timestamp") from e
        return cls(
            id=check_experiment_id(data.get("id")),
            name=str(data.get("name", "")),
            timestamp=timestamp,
            snapshot=SessionSnapshot.from_dict(data["snapshot"]),
        )


class ExperimentStore(ABC):
    """
    Abstract experiment store.

    Subclasses implement the storage primitives; save/load/export/import
    are provided on top of them.
    """

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _write(self, record: ExperimentRecord) -> None:
        """Insert or replace record (keyed by record.id)."""

    @abstractmethod
    def get(self, experiment_id: str) -> ExperimentRecord:
        """Stored record; raises ExperimentNotFoundError."""

    @abstractmethod
    def _records(self) -> List[ExperimentRecord]:
        """All stored records, in any order."""

    @abstractmethod
    def delete(self, experiment_id: str) -> None:
        """Remove a record; raises ExperimentNotFoundError."""

    @abstractmethod
    def save_setting(self, key: str, value: Any) -> None:
        """Store a small JSON-serialisable preference."""

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every experiment and setting."""

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def save(
        self,
        snapshot: SessionSnapshot,
        name: Optional[str] = None,
        experiment_id: Optional[str] = None,
    ) -> str:
        """
        Store snapshot and return its id.

        Args:
            snapshot: Session to store
            name: Display name (defaults to a timestamped one)
            experiment_id: Overwrite this id instead of creating a new one
        """
        if not isinstance(snapshot, SessionSnapshot):
            raise InvalidConfigError(
                f"Expected SessionSnapshot, got {type(snapshot).__name__}"
            )
        timestamp = time.time()
        if experiment_id is None:
            experiment_id = new_experiment_id()
        check_experiment_id(experiment_id)
        if name is None:
            name = "Experiment " + time.strftime(
                "%Y-%m-%d %H:%M:%S", time.localtime(timestamp)
            )
        self._write(ExperimentRecord(experiment_id, name, timestamp, snapshot))
        return experiment_id

    def load(self, experiment_id: str) -> SessionSnapshot:
        return self.get(experiment_id).snapshot

    def list(self) -> List[ExperimentRecord]:
        """All experiments, newest first."""
        return sorted(self._records(), key=lambda r: r.timestamp, reverse=True)

    def __contains__(self, experiment_id: str) -> bool:
        try:
            self.get(experiment_id)
        except ExperimentNotFoundError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._records())

    def export_json(self, experiment_id: str) -> str:
        return json.dumps(self.get(experiment_id).to_dict(), indent=2)

    def import_json(self, text: str) -> str:
        """
        Import an exported experiment under a fresh id and timestamp.

        A bare snapshot payload (without the record envelope) is accepted too.

        Raises:
            ValueError: If text is not JSON
            InvalidConfigError: If the payload is not a valid experiment
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise InvalidConfigError("imported experiment must be a JSON object")

        if "snapshot" in data:
            snapshot_data, name = data["snapshot"], data.get("name")
        else:
            snapshot_data, name = data, None
        snapshot = SessionSnapshot.from_dict(snapshot_data)

        return self.save(snapshot, name=None if name is None else str(name))
