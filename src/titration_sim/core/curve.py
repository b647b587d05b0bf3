"""
Titration Curve Store
=====================

Append-only record of (titrant volume, pH) samples for one run, ordered
left to right in volume. Chart and analytics consumers rely on this order.

Ordering rule:
- A sample below the last stored volume is rejected (NonMonotonicVolumeError)
- A sample AT the last stored volume replaces the last sample (a pause or a
  zero-length tick adds no titrant, so there is nothing new to plot)

The stored sequence is therefore strictly increasing in volume.

License: MIT
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .chemistry import EquivalencePoint, PH_MAX, PH_MIN, equivalence_point
from .errors import NonMonotonicVolumeError
from .solution import ExperimentConfig


@dataclass(frozen=True)
class CurveSample:
    """One point of the titration curve."""

    volume_added: float  # [mL]
    pH: float

    def __post_init__(self):
        """Validate sample values - explicit checks, not assert."""
        if not math.isfinite(self.volume_added) or self.volume_added < 0:
            raise ValueError(
                f"volume_added must be finite and non-negative, got {self.volume_added}"
            )
        if not math.isfinite(self.pH) or not PH_MIN <= self.pH <= PH_MAX:
            raise ValueError(f"pH must lie in [0, 14], got {self.pH}")

    def to_dict(self):
        return {"volume_added": self.volume_added, "pH": self.pH}

    @classmethod
    def from_dict(cls, data) -> "CurveSample":
        return cls(volume_added=float(data["volume_added"]), pH=float(data["pH"]))


class TitrationCurve:
    """
    Ordered sequence of CurveSample for one experiment.

    Owned by exactly one TitrationRun; consumers read samples() and must
    re-read after every tick.
    """

    def __init__(self):
        self._samples: List[CurveSample] = []

    def append(self, sample: CurveSample) -> None:
        """
        Add a sample at the right end of the curve.

        Raises:
            NonMonotonicVolumeError: If sample.volume_added is below the
                last stored volume
        """
        if self._samples:
            last = self._samples[-1]
            if sample.volume_added < last.volume_added:
                raise NonMonotonicVolumeError(last.volume_added, sample.volume_added)
            if sample.volume_added == last.volume_added:
                self._samples[-1] = sample
                return
        self._samples.append(sample)

    def samples(self) -> Tuple[CurveSample, ...]:
        """Snapshot of the stored samples, in volume order."""
        return tuple(self._samples)

    @property
    def latest(self) -> Optional[CurveSample]:
        return self._samples[-1] if self._samples else None

    def reset(self) -> None:
        self._samples.clear()

    def equivalence_point(self, config: ExperimentConfig) -> EquivalencePoint:
        """Equivalence point of config; independent of the stored samples."""
        return equivalence_point(config)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[CurveSample]:
        return iter(tuple(self._samples))

    # ------------------------------------------------------------------
    # Analytics helpers
    # ------------------------------------------------------------------

    def volumes(self) -> np.ndarray:
        return np.array([s.volume_added for s in self._samples], dtype=float)

    def pH_values(self) -> np.ndarray:
        return np.array([s.pH for s in self._samples], dtype=float)

    def pH_at(self, volume: float) -> float:
        """
        pH at an arbitrary volume by linear interpolation on the stored curve.

        Volumes outside the sampled range return the nearest end value.

        Raises:
            ValueError: If the curve is empty
        """
        if not self._samples:
            raise ValueError("Cannot interpolate an empty curve")
        return float(np.interp(volume, self.volumes(), self.pH_values()))

    def estimate_equivalence(self) -> Optional[EquivalencePoint]:
        """
        Estimate the equivalence point from the samples alone.

        Uses the point of steepest slope |dpH/dV| (first derivative method).
        Returns None with fewer than three samples.
        """
        if len(self._samples) < 3:
            return None

        volumes = self.volumes()
        pH = self.pH_values()
        slope = np.abs(np.gradient(pH, volumes))
        idx = int(np.argmax(slope))

        return EquivalencePoint(volume_added=float(volumes[idx]), pH=float(pH[idx]))

    def to_rows(self) -> List[Tuple[float, float]]:
        """(volume, pH) rows for CSV export."""
        return [(s.volume_added, s.pH) for s in self._samples]
