"""
Session Snapshot
================

The persisted form of one titration session: configuration, run state tag,
cumulative volume and the recorded curve. Produced by TitrationRun.snapshot()
and consumed by TitrationRun.restore(); storage backends only move these
around as JSON-compatible dicts.

License: MIT
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .curve import CurveSample
from .errors import InvalidConfigError
from .solution import ExperimentConfig

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything needed to rebuild a run without recomputing history."""

    config: ExperimentConfig
    state: str  # RunState value
    volume_added: float = 0.0  # [mL]
    clock: float = 0.0  # simulated time units
    stirring: bool = False
    samples: Tuple[CurveSample, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "config": self.config.to_dict(),
            "state": self.state,
            "volume_added": self.volume_added,
            "clock": self.clock,
            "stirring": self.stirring,
            "samples": [s.to_dict() for s in self.samples],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionSnapshot":
        """
        Parse a snapshot dict.

        Raises:
            InvalidConfigError: If the payload is malformed
        """
        if not isinstance(data, dict):
            raise InvalidConfigError("snapshot must be a mapping")

        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise InvalidConfigError(f"Unsupported snapshot version: {version}")

        if "config" not in data or "state" not in data:
            raise InvalidConfigError("snapshot requires 'config' and 'state'")

        try:
            volume = float(data.get("volume_added", 0.0))
            clock = float(data.get("clock", 0.0))
            samples = tuple(CurveSample.from_dict(s) for s in data.get("samples", []))
        except (TypeError, KeyError, ValueError) as e:
            raise InvalidConfigError(f"Malformed snapshot: {e}") from e

        if not math.isfinite(volume) or volume < 0:
            raise InvalidConfigError(f"Invalid volume_added in snapshot: {volume}")
        if not math.isfinite(clock) or clock < 0:
            raise InvalidConfigError(f"Invalid clock in snapshot: {clock}")

        return cls(
            config=ExperimentConfig.from_dict(data["config"]),
            state=str(data["state"]),
            volume_added=volume,
            clock=clock,
            stirring=bool(data.get("stirring", False)),
            samples=samples,
        )
