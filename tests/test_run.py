import logging
from dataclasses import replace

import pytest

from titration_sim.core import (
    InvalidConfigError,
    InvalidStateError,
    NonMonotonicVolumeError,
    RunLimits,
    RunState,
    SessionSnapshot,
    TitrationRun,
    run_all_validations,
    validate_run,
)


def _bad(config):
    return replace(config, analyte=replace(config.analyte, concentration=0.0))


def test_module_self_check():
    validate_run()


def test_package_self_checks(capsys):
    run_all_validations()
    assert "ALL VALIDATIONS PASSED" in capsys.readouterr().out


def test_scenario_strong_acid_completes_at_equivalence(strong_config):
    run = TitrationRun(strong_config, RunLimits(max_volume=25.0))
    initial = run.start()
    assert initial.volume_added == 0.0
    assert initial.pH == pytest.approx(1.0)
    assert run.state is RunState.RUNNING

    for i in range(25):
        assert run.state is RunState.RUNNING, f"completed early at tick {i}"
        run.tick(1.0)

    assert run.state is RunState.COMPLETE
    assert run.volume_added == pytest.approx(25.0)
    assert run.current_pH == pytest.approx(7.0, abs=1e-9)
    assert len(run.samples()) == 26


def test_scenario_half_equivalence_is_acidic(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    for _ in range(25):
        sample = run.tick(0.5)
    assert sample.volume_added == pytest.approx(12.5)
    assert sample.pH < 3
    assert sample.pH == pytest.approx(1.48, abs=0.01)
    assert run.state is RunState.RUNNING


def test_scenario_weak_acid_half_equivalence(weak_acid_config):
    run = TitrationRun(weak_acid_config)
    run.start()
    sample = run.tick(12.5)
    assert sample.pH == pytest.approx(weak_acid_config.analyte.pK, abs=1e-6)


def test_tick_rejected_when_idle_or_complete(strong_config):
    run = TitrationRun(strong_config, RunLimits(max_volume=1.0))
    with pytest.raises(InvalidStateError):
        run.tick(1.0)

    run.start()
    run.tick(5.0)
    assert run.state is RunState.COMPLETE
    with pytest.raises(InvalidStateError) as exc:
        run.tick(1.0)
    assert exc.value.state is RunState.COMPLETE
    assert exc.value.action == "tick"


def test_tick_rejected_when_paused(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    run.tick(1.0)
    run.pause()
    with pytest.raises(InvalidStateError):
        run.tick(1.0)
    assert run.volume_added == pytest.approx(1.0)
    run.resume()
    run.tick(1.0)
    assert run.volume_added == pytest.approx(2.0)


def test_tick_overshoot_is_clamped(strong_config, caplog):
    run = TitrationRun(strong_config, RunLimits(max_volume=10.0))
    run.start()
    run.tick(7.0)
    with caplog.at_level(logging.INFO, logger="titration_sim.core.run"):
        sample = run.tick(7.0)
    assert sample.volume_added == 10.0
    assert run.volume_added == 10.0
    assert run.clock == pytest.approx(14.0)
    assert run.state is RunState.COMPLETE
    assert "complete" in caplog.text


def test_tick_rejects_negative_dt(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    with pytest.raises(ValueError):
        run.tick(-0.1)
    assert run.volume_added == 0.0


def test_zero_dt_replaces_last_sample(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    run.tick(1.0)
    run.tick(0.0)
    assert len(run.samples()) == 2


def test_start_with_invalid_config_stays_idle(strong_config):
    run = TitrationRun(_bad(strong_config))
    with pytest.raises(InvalidConfigError):
        run.start()
    assert run.state is RunState.IDLE
    assert run.samples() == ()

    run.start(strong_config)
    assert run.config == strong_config


def test_start_without_config():
    with pytest.raises(InvalidConfigError):
        TitrationRun().start()


def test_start_twice_rejected(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    with pytest.raises(InvalidStateError):
        run.start()


@pytest.mark.parametrize("action", ["pause", "resume", "stir"])
def test_transitions_rejected_when_idle(strong_config, action):
    run = TitrationRun(strong_config)
    with pytest.raises(InvalidStateError):
        getattr(run, action)()
    assert run.state is RunState.IDLE


def test_pause_resume_rules(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    with pytest.raises(InvalidStateError):
        run.resume()
    run.pause()
    with pytest.raises(InvalidStateError):
        run.pause()
    n = len(run.samples())
    run.resume()
    assert len(run.samples()) == n


def test_stirring_is_cosmetic(weak_acid_config):
    run = TitrationRun(weak_acid_config)
    run.start()
    run.tick(5.0)
    before = run.current_pH
    assert run.stir() is True
    run.pause()
    assert run.stir() is False
    assert run.stir(True) is True
    assert run.current_pH == before

    run.resume()
    run.tick(100.0)
    assert run.state is RunState.COMPLETE
    with pytest.raises(InvalidStateError):
        run.stir()


def test_reset_after_complete(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    while run.state is RunState.RUNNING:
        run.tick(3.0)
    run.reset()
    assert run.state is RunState.IDLE
    assert run.samples() == ()
    assert run.volume_added == 0.0
    assert run.clock == 0.0
    assert run.stirring is False
    assert run.config == strong_config


def test_reset_with_invalid_config_leaves_run_untouched(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    run.tick(2.0)
    with pytest.raises(InvalidConfigError):
        run.reset(_bad(strong_config))
    assert run.state is RunState.RUNNING
    assert run.volume_added == pytest.approx(2.0)
    assert run.config == strong_config


def test_reset_with_new_config(strong_config, weak_acid_config):
    run = TitrationRun(strong_config)
    run.start()
    run.reset(weak_acid_config)
    assert run.config == weak_acid_config
    run.start()
    assert run.current_pH == pytest.approx(2.87, abs=0.01)


def test_max_volume_resolution(strong_config):
    # 2 × 25 mL equivalence volume, within the 50 mL burette
    run = TitrationRun(strong_config)
    run.start()
    assert run.max_volume == pytest.approx(50.0)

    run = TitrationRun(strong_config, RunLimits(equivalence_multiplier=3.0))
    run.start()
    assert run.max_volume == pytest.approx(50.0)

    run = TitrationRun(
        strong_config, RunLimits(equivalence_multiplier=3.0, burette_capacity=None)
    )
    run.start()
    assert run.max_volume == pytest.approx(75.0)


@pytest.mark.parametrize(
    "limits",
    [
        RunLimits(max_volume=0.0),
        RunLimits(equivalence_multiplier=-1.0),
        RunLimits(burette_capacity=float("nan")),
    ],
)
def test_invalid_limits(limits):
    with pytest.raises(InvalidConfigError):
        TitrationRun(limits=limits)


def test_current_pH_does_not_touch_curve(strong_config):
    run = TitrationRun(strong_config)
    assert run.current_pH is None
    run.start()
    run.tick(1.0)
    samples = run.samples()
    for _ in range(3):
        run.current_pH
    assert run.samples() == samples


def test_status(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    run.tick(1.0)
    status = run.status()
    assert status["state"] == "running"
    assert status["samples"] == 2
    assert status["latest"]["volume_added"] == pytest.approx(1.0)


@pytest.mark.parametrize("final_state", ["running", "paused", "complete"])
def test_snapshot_restore_roundtrip(weak_acid_config, final_state):
    run = TitrationRun(weak_acid_config)
    run.start()
    for _ in range(7):
        run.tick(1.5)
    run.stir(True)
    if final_state == "paused":
        run.pause()
    elif final_state == "complete":
        run.tick(1000.0)

    snapshot = SessionSnapshot.from_dict(run.snapshot().to_dict())
    restored = TitrationRun.restore(snapshot)

    assert restored.state is run.state
    assert restored.volume_added == run.volume_added
    assert restored.clock == run.clock
    assert restored.stirring is True
    assert restored.samples() == run.samples()

    if restored.state is RunState.PAUSED:
        restored.resume()
    if restored.state is RunState.RUNNING:
        restored.tick(1.0)
        assert restored.volume_added == pytest.approx(run.volume_added + 1.0)


def test_restore_rejects_inconsistent_snapshots(strong_config):
    run = TitrationRun(strong_config)
    run.start()
    run.tick(2.0)
    snapshot = run.snapshot()

    with pytest.raises(InvalidConfigError):
        TitrationRun.restore(replace(snapshot, state="exploded"))
    with pytest.raises(InvalidConfigError):
        TitrationRun.restore(replace(snapshot, state="idle"))
    with pytest.raises(InvalidConfigError):
        TitrationRun.restore(
            replace(snapshot, state="idle", samples=(), volume_added=0.0, clock=0.0,
                    stirring=True)
        )
    with pytest.raises(InvalidConfigError):
        TitrationRun.restore(replace(snapshot, volume_added=1.0))
    with pytest.raises(InvalidConfigError):
        TitrationRun.restore(replace(snapshot, config=_bad(strong_config)))
    with pytest.raises(NonMonotonicVolumeError):
        TitrationRun.restore(
            replace(
                snapshot,
                samples=tuple(reversed(snapshot.samples)),
                volume_added=0.0,
            )
        )


def test_snapshot_requires_config():
    with pytest.raises(InvalidStateError):
        TitrationRun().snapshot()
