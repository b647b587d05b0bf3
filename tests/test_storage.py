import itertools
import json

import pytest

from titration_sim.core import InvalidConfigError, TitrationRun
from titration_sim.storage import (
    ExperimentNotFoundError,
    JsonFileExperimentStore,
    MemoryExperimentStore,
)
from titration_sim.storage import base


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryExperimentStore()
    return JsonFileExperimentStore(tmp_path / "experiments")


@pytest.fixture
def paused_run(weak_acid_config):
    run = TitrationRun(weak_acid_config)
    run.start()
    for _ in range(10):
        run.tick(1.25)
    run.stir(True)
    run.pause()
    return run


@pytest.fixture
def ticking_clock(monkeypatch):
    counter = itertools.count(1_700_000_000.0)
    monkeypatch.setattr(base.time, "time", lambda: next(counter))


def test_save_load_roundtrip(store, paused_run):
    experiment_id = store.save(paused_run.snapshot(), name="acetic")
    restored = TitrationRun.restore(store.load(experiment_id))

    assert restored.state is paused_run.state
    assert restored.volume_added == paused_run.volume_added
    assert restored.samples() == paused_run.samples()
    assert restored.stirring is True
    assert store.get(experiment_id).name == "acetic"
    assert experiment_id in store


def test_save_overwrites_given_id(store, paused_run):
    experiment_id = store.save(paused_run.snapshot(), name="first")
    paused_run.resume()
    paused_run.tick(1.0)
    assert store.save(paused_run.snapshot(), experiment_id=experiment_id) == experiment_id

    assert len(store) == 1
    assert store.load(experiment_id).volume_added == pytest.approx(13.5)


def test_default_name_is_timestamped(store, paused_run):
    record = store.get(store.save(paused_run.snapshot()))
    assert record.name.startswith("Experiment ")


def test_list_newest_first(store, paused_run, ticking_clock):
    first = store.save(paused_run.snapshot(), name="a")
    second = store.save(paused_run.snapshot(), name="b")
    assert [r.id for r in store.list()] == [second, first]


def test_unknown_ids(store):
    with pytest.raises(ExperimentNotFoundError):
        store.load("does-not-exist")
    with pytest.raises(KeyError):
        store.delete("does-not-exist")
    with pytest.raises(ExperimentNotFoundError):
        store.export_json("../etc/passwd")
    assert "nothing" not in store


def test_invalid_id_on_save(store, paused_run):
    with pytest.raises(InvalidConfigError):
        store.save(paused_run.snapshot(), experiment_id="../escape")


def test_delete(store, paused_run):
    experiment_id = store.save(paused_run.snapshot())
    store.delete(experiment_id)
    assert experiment_id not in store
    assert store.list() == []


def test_export_import_assigns_new_id(store, paused_run, ticking_clock):
    experiment_id = store.save(paused_run.snapshot(), name="original")
    exported = store.export_json(experiment_id)
    assert json.loads(exported)["snapshot"]["state"] == "paused"

    imported = store.import_json(exported)
    assert imported != experiment_id
    assert store.get(imported).name == "original"
    assert store.get(imported).timestamp > store.get(experiment_id).timestamp
    assert store.load(imported) == store.load(experiment_id)


def test_import_bare_snapshot(store, paused_run):
    text = json.dumps(paused_run.snapshot().to_dict())
    assert store.load(store.import_json(text)).volume_added == pytest.approx(12.5)


@pytest.mark.parametrize(
    "text", ["not json", "[1, 2]", '{"state": "paused"}', '{"snapshot": {"version": 99}}']
)
def test_import_rejects_malformed(store, text):
    with pytest.raises(ValueError):
        store.import_json(text)
    assert len(store) == 0


def test_settings_and_clear(store, paused_run):
    assert store.get_setting("indicator") is None
    assert store.get_setting("indicator", "phenolphthalein") == "phenolphthalein"
    store.save_setting("indicator", "methyl_orange")
    store.save_setting("speed", {"delivery_rate": 0.5})
    assert store.get_setting("indicator") == "methyl_orange"
    assert store.get_setting("speed") == {"delivery_rate": 0.5}

    store.save(paused_run.snapshot())
    store.clear()
    assert len(store) == 0
    assert store.get_setting("indicator") is None


def test_json_store_persists_across_instances(tmp_path, paused_run):
    root = tmp_path / "runs"
    experiment_id = JsonFileExperimentStore(root).save(paused_run.snapshot())
    JsonFileExperimentStore(root).save_setting("indicator", "bromothymol_blue")

    reopened = JsonFileExperimentStore(root)
    assert reopened.load(experiment_id).samples == paused_run.snapshot().samples
    assert reopened.get_setting("indicator") == "bromothymol_blue"
    assert (root / f"{experiment_id}.json").exists()
    assert not list(root.glob(".tmp-*"))


def test_json_store_skips_corrupt_files(tmp_path, paused_run):
    store = JsonFileExperimentStore(tmp_path)
    experiment_id = store.save(paused_run.snapshot())
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    assert [r.id for r in store.list()] == [experiment_id]


def test_json_store_get_reports_corrupt_file(tmp_path):
    store = JsonFileExperimentStore(tmp_path)
    (tmp_path / "deadbeef.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidConfigError, match="deadbeef.json"):
        store.get("deadbeef")
    with pytest.raises(InvalidConfigError):
        store.load("deadbeef")
    assert store.list() == []
