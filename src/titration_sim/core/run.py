"""
Titration Run State Machine
===========================

Drives one titration experiment through time. An external, periodic tick
source (animation loop, timer, CLI loop) calls tick(dt); each tick delivers
titrant at the configured rate, evaluates the pH and appends a sample to the
curve.

STATES
======

    IDLE ──start──▶ RUNNING ◀──resume── PAUSED
                      │  └──────pause─────▲
                      │
                      └──tick reaches max volume──▶ COMPLETE

    reset: any state ──▶ IDLE

- IDLE: configuration may be replaced; no curve
- RUNNING: tick() advances volume; stir() toggles the stirring flag
- PAUSED: volume frozen; stir() allowed; tick() rejected
- COMPLETE: terminal for volume; only reset() leaves it

Every call either performs its transition (with its side effect) or raises;
nothing is silently dropped and a rejected call leaves the run unchanged.

The stirring flag is cosmetic: it never changes the pH.

CONCURRENCY
===========

Single-threaded and cooperative. One TitrationRun belongs to one session;
independent sessions use independent instances.

License: MIT
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .chemistry import EquivalencePoint, TitrationChemistry
from .curve import CurveSample, TitrationCurve
from .errors import InvalidConfigError, InvalidStateError
from .snapshot import SessionSnapshot
from .solution import ExperimentConfig, validate_config

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle state of a titration run."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"


@dataclass
class RunLimits:
    """
    How far a run may deliver titrant.

    Attributes:
        max_volume: Explicit titrant limit [mL]; overrides the multiplier
        equivalence_multiplier: Limit as a multiple of the equivalence volume
        burette_capacity: Physical burette size [mL]; None = unlimited
    """

    max_volume: Optional[float] = None
    equivalence_multiplier: float = 2.0
    burette_capacity: Optional[float] = 50.0  # [mL]

    def validate(self) -> None:
        for name in ("max_volume", "burette_capacity"):
            value = getattr(self, name)
            if value is not None and not (math.isfinite(value) and value > 0):
                raise InvalidConfigError(f"{name} must be positive, got {value}", name)
        m = self.equivalence_multiplier
        if not (math.isfinite(m) and m > 0):
            raise InvalidConfigError(
                f"equivalence_multiplier must be positive, got {m}",
                "equivalence_multiplier",
            )

    def resolve(self, equivalence_volume: float) -> float:
        """Effective maximum titrant volume [mL] for a given equivalence volume."""
        if self.max_volume is not None:
            limit = self.max_volume
        else:
            limit = self.equivalence_multiplier * equivalence_volume
        if self.burette_capacity is not None:
            limit = min(limit, self.burette_capacity)
        return limit


class TitrationRun:
    """
    Explicit state machine for one titration experiment.

    Owns the run state, the cumulative titrant volume, the simulated clock,
    the stirring flag and the titration curve. Reset discards all of them;
    the experiment configuration is kept unless a new one is supplied.

    Example:
        >>> run = TitrationRun(config, RunLimits(max_volume=25.0))
        >>> run.start()
        >>> for _ in range(25):
        ...     run.tick(1.0)
        >>> run.state
        <RunState.COMPLETE: 'complete'>
    """

    # Relative tolerance for "volume has reached the maximum"
    VOLUME_RTOL = 1e-9

    def __init__(
        self,
        config: Optional[ExperimentConfig] = None,
        limits: Optional[RunLimits] = None,
    ):
        self.limits = limits or RunLimits()
        self.limits.validate()

        self._config = config
        self._chemistry: Optional[TitrationChemistry] = None
        self._max_volume: Optional[float] = None

        self._state = RunState.IDLE
        self._volume = 0.0  # [mL] cumulative titrant
        self._clock = 0.0  # simulated time units
        self._stirring = False
        self._curve = TitrationCurve()

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def config(self) -> Optional[ExperimentConfig]:
        return self._config

    @property
    def volume_added(self) -> float:
        return self._volume

    @property
    def clock(self) -> float:
        return self._clock

    @property
    def stirring(self) -> bool:
        return self._stirring

    @property
    def max_volume(self) -> Optional[float]:
        """Effective titrant limit of the current configuration [mL]."""
        return self._max_volume

    @property
    def curve(self) -> TitrationCurve:
        return self._curve

    @property
    def latest(self) -> Optional[CurveSample]:
        return self._curve.latest

    @property
    def current_pH(self) -> Optional[float]:
        """pH at the current volume; computed on demand, never stored."""
        if self._chemistry is None:
            return None
        return self._chemistry.pH_at(self._volume)

    def samples(self) -> Tuple[CurveSample, ...]:
        return self._curve.samples()

    def equivalence_point(self) -> EquivalencePoint:
        """Equivalence point of the configured experiment."""
        if self._chemistry is not None:
            return self._chemistry.equivalence_point
        if self._config is None:
            raise InvalidConfigError("No experiment configuration supplied")
        return self._curve.equivalence_point(self._config)

    def status(self) -> Dict[str, Any]:
        """Minimal numeric state for renderers and logs."""
        latest = self._curve.latest
        return {
            "state": self._state.value,
            "volume_added": self._volume,
            "clock": self._clock,
            "pH": self.current_pH,
            "stirring": self._stirring,
            "samples": len(self._curve),
            "latest": latest.to_dict() if latest else None,
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _prepare(self, config: ExperimentConfig) -> Tuple[TitrationChemistry, float]:
        """Validate config and derive its chemistry and volume limit."""
        validate_config(config)
        chemistry = TitrationChemistry(config)
        return chemistry, self.limits.resolve(chemistry.equivalence_volume)

    def start(self, config: Optional[ExperimentConfig] = None) -> CurveSample:
        """
        IDLE → RUNNING.

        Args:
            config: Replaces the retained configuration if given (and valid)

        Returns:
            The initial sample (volume 0)

        Raises:
            InvalidStateError: If not IDLE
            InvalidConfigError: If the configuration is missing or invalid;
                the run stays IDLE
        """
        if self._state is not RunState.IDLE:
            raise InvalidStateError("start", self._state)

        candidate = config if config is not None else self._config
        if candidate is None:
            raise InvalidConfigError("No experiment configuration supplied")

        chemistry, max_volume = self._prepare(candidate)
        sample = CurveSample(volume_added=0.0, pH=chemistry.pH_at(0.0))

        self._config = candidate
        self._chemistry = chemistry
        self._max_volume = max_volume
        self._volume = 0.0
        self._clock = 0.0
        self._curve = TitrationCurve()
        self._curve.append(sample)
        self._state = RunState.RUNNING

        logger.info(
            f"Titration started: V_eq={chemistry.equivalence_volume:.3f} mL, "
            f"limit={max_volume:.3f} mL, pH0={sample.pH:.3f}"
        )
        return sample

    def tick(self, dt: float) -> CurveSample:
        """
        Advance simulated time by dt while RUNNING.

        Delivers delivery_rate × dt mL of titrant. When the limit is reached
        the volume is clamped to it, the final sample is recorded and the
        run becomes COMPLETE.

        Returns:
            The sample recorded for this tick

        Raises:
            InvalidStateError: If not RUNNING (including PAUSED and COMPLETE)
            ValueError: If dt is negative or not finite
        """
        if self._state is not RunState.RUNNING:
            raise InvalidStateError("tick", self._state)
        if not math.isfinite(dt) or dt < 0:
            raise ValueError(f"dt must be finite and non-negative, got {dt}")

        target = self._volume + self._config.titrant.delivery_rate * dt
        limit = self._max_volume
        completed = target >= limit * (1.0 - self.VOLUME_RTOL)
        if completed:
            overshoot = target - limit
            target = limit

        sample = CurveSample(volume_added=target, pH=self._chemistry.pH_at(target))
        self._curve.append(sample)
        self._volume = target
        self._clock += dt

        if completed:
            self._state = RunState.COMPLETE
            logger.info(
                f"Titration complete at {target:.3f} mL "
                f"(clamped {max(overshoot, 0.0):.3g} mL), pH={sample.pH:.3f}"
            )
        else:
            logger.debug(f"t={self._clock:.3f} V={target:.3f} mL pH={sample.pH:.3f}")

        return sample

    def pause(self) -> None:
        """RUNNING → PAUSED. No sample is added."""
        if self._state is not RunState.RUNNING:
            raise InvalidStateError("pause", self._state)
        self._state = RunState.PAUSED
        logger.info(f"Titration paused at {self._volume:.3f} mL")

    def resume(self) -> None:
        """PAUSED → RUNNING. No sample is added."""
        if self._state is not RunState.PAUSED:
            raise InvalidStateError("resume", self._state)
        self._state = RunState.RUNNING
        logger.info(f"Titration resumed at {self._volume:.3f} mL")

    def stir(self, enabled: Optional[bool] = None) -> bool:
        """
        Toggle (or set) the stirring flag while RUNNING or PAUSED.

        Returns:
            The new flag value
        """
        if self._state not in (RunState.RUNNING, RunState.PAUSED):
            raise InvalidStateError("stir", self._state)
        self._stirring = (not self._stirring) if enabled is None else bool(enabled)
        logger.debug(f"Stirring {'on' if self._stirring else 'off'}")
        return self._stirring

    def reset(self, config: Optional[ExperimentConfig] = None) -> None:
        """
        Any state → IDLE, discarding volume, clock, curve and stirring.

        Args:
            config: New configuration; validated before anything is discarded

        Raises:
            InvalidConfigError: If config is given and invalid (run unchanged)
        """
        if config is not None:
            chemistry, max_volume = self._prepare(config)
            self._config = config
            self._chemistry = chemistry
            self._max_volume = max_volume

        previous = self._state
        self._state = RunState.IDLE
        self._volume = 0.0
        self._clock = 0.0
        self._stirring = False
        self._curve = TitrationCurve()

        logger.info(f"Titration reset (was {previous.value})")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        """Capture the run for a persistence adapter."""
        if self._config is None:
            raise InvalidStateError("snapshot without configuration", self._state)
        return SessionSnapshot(
            config=self._config,
            state=self._state.value,
            volume_added=self._volume,
            clock=self._clock,
            stirring=self._stirring,
            samples=self._curve.samples(),
        )

    @classmethod
    def restore(
        cls, snapshot: SessionSnapshot, limits: Optional[RunLimits] = None
    ) -> "TitrationRun":
        """
        Rebuild a run directly in its saved state (start() is bypassed).

        The configuration is re-validated and the saved samples are copied as
        they are; no historical pH is recomputed.

        Raises:
            InvalidConfigError: If the configuration, state tag, volume or
                samples are inconsistent
            NonMonotonicVolumeError: If the saved samples are out of order
        """
        try:
            state = RunState(snapshot.state)
        except ValueError:
            raise InvalidConfigError(
                f"Unknown run state in snapshot: {snapshot.state!r}"
            ) from None

        run = cls(snapshot.config, limits)
        chemistry, max_volume = run._prepare(snapshot.config)

        if state is RunState.IDLE and (snapshot.samples or snapshot.volume_added):
            raise InvalidConfigError("An idle snapshot cannot carry titration data")
        if state is RunState.IDLE and snapshot.stirring:
            raise InvalidConfigError("An idle snapshot cannot have stirring on")
        if state in (RunState.RUNNING, RunState.PAUSED):
            if snapshot.volume_added > max_volume * (1.0 + cls.VOLUME_RTOL):
                raise InvalidConfigError(
                    f"Saved volume {snapshot.volume_added:.3f} mL exceeds the "
                    f"run limit {max_volume:.3f} mL"
                )

        if snapshot.samples:
            last = snapshot.samples[-1].volume_added
            if abs(last - snapshot.volume_added) > cls.VOLUME_RTOL * max(last, 1.0):
                raise InvalidConfigError(
                    f"Saved volume {snapshot.volume_added:.3f} mL does not match "
                    f"the last sample at {last:.3f} mL"
                )

        for sample in snapshot.samples:
            run._curve.append(sample)

        run._chemistry = chemistry
        run._max_volume = max_volume
        run._volume = snapshot.volume_added
        run._clock = snapshot.clock
        run._stirring = snapshot.stirring
        run._state = state

        logger.info(
            f"Titration restored: {state.value}, {snapshot.volume_added:.3f} mL, "
            f"{len(run._curve)} samples"
        )
        return run


def validate_run() -> None:
    """
    Validation of the run state machine.

    Tests:
    1. Strong acid/strong base run completes exactly at its limit, pH ≈ 7
    2. Ticks are rejected outside RUNNING
    3. Reset returns to an empty IDLE run
    4. Snapshot/restore reproduces state, volume and samples
    """
    from .solution import SoluteSpec, TitrantSpec

    config = ExperimentConfig(
        analyte=SoluteSpec.preset("HCl", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1, 50.0, delivery_rate=1.0),
    )
    run = TitrationRun(config, RunLimits(max_volume=25.0))

    # Test 1: completion at the limit
    run.start()
    for i in range(25):
        if run.state is not RunState.RUNNING:
            raise RuntimeError(f"Run left RUNNING early at tick {i}")
        run.tick(1.0)
    if run.state is not RunState.COMPLETE or run.volume_added != 25.0:
        raise RuntimeError("Run must complete exactly at 25 mL")
    if abs(run.current_pH - 7.0) > 1e-9:
        raise RuntimeError("Equivalence pH must be 7")

    # Test 2: tick guard
    try:
        run.tick(1.0)
    except InvalidStateError:
        pass
    else:
        raise RuntimeError("Tick in COMPLETE must be rejected")

    # Test 4 (before reset): persistence round trip
    restored = TitrationRun.restore(run.snapshot(), run.limits)
    if restored.samples() != run.samples() or restored.state is not run.state:
        raise RuntimeError("Snapshot round trip changed the run")

    # Test 3: reset
    run.reset()
    if run.state is not RunState.IDLE or run.samples() or run.volume_added != 0.0:
        raise RuntimeError("Reset must leave an empty IDLE run")

    print("✓ All run state machine validations passed")
