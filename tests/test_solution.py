import math
from dataclasses import replace

import pytest

from titration_sim.core import (
    ExperimentConfig,
    InvalidConfigError,
    REAGENTS,
    SoluteSpec,
    SpeciesKind,
    Strength,
    TitrantSpec,
    resolve_reagent,
    validate_config,
)


def test_valid_config_passes(strong_config, weak_acid_config):
    validate_config(strong_config)
    validate_config(weak_acid_config)


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"concentration": 0.0}, "analyte.concentration"),
        ({"concentration": -0.1}, "analyte.concentration"),
        ({"concentration": float("nan")}, "analyte.concentration"),
        ({"concentration": float("inf")}, "analyte.concentration"),
        ({"concentration": True}, "analyte.concentration"),
        ({"concentration": "0.1"}, "analyte.concentration"),
        ({"volume": 0.0}, "analyte.volume"),
        ({"strength": Strength.WEAK}, "analyte.dissociation_constant"),
        ({"dissociation_constant": 1e-5}, "analyte.dissociation_constant"),
        ({"kind": "acid"}, "analyte.kind"),
    ],
)
def test_invalid_analyte_rejected(strong_config, changes, field):
    config = replace(strong_config, analyte=replace(strong_config.analyte, **changes))
    with pytest.raises(InvalidConfigError) as exc:
        validate_config(config)
    assert exc.value.field == field


@pytest.mark.parametrize("k", [0.0, -1.8e-5, float("nan")])
def test_weak_constant_must_be_positive(weak_acid_config, k):
    analyte = replace(weak_acid_config.analyte, dissociation_constant=k)
    with pytest.raises(InvalidConfigError):
        replace(weak_acid_config, analyte=analyte).validate()


def test_titrant_delivery_rate_validated(strong_config):
    titrant = replace(strong_config.titrant, delivery_rate=0.0)
    with pytest.raises(InvalidConfigError) as exc:
        replace(strong_config, titrant=titrant).validate()
    assert exc.value.field == "titrant.delivery_rate"


def test_invalid_config_error_is_value_error():
    with pytest.raises(ValueError):
        validate_config("not a config")


def test_presets_match_reagent_table():
    acetic = SoluteSpec.preset("acetic", 0.1, 25.0)
    assert acetic.kind is SpeciesKind.ACID
    assert acetic.strength is Strength.WEAK
    assert acetic.dissociation_constant == 1.8e-5
    assert acetic.pK == pytest.approx(4.7447, abs=1e-4)

    ammonia = TitrantSpec.preset("NH3", 0.2)
    assert ammonia.kind is SpeciesKind.BASE
    assert ammonia.volume == 50.0
    assert ammonia.delivery_rate == 1.0

    assert set(REAGENTS) == {"HCl", "NaOH", "CH3COOH", "NH3"}
    assert resolve_reagent("hcl") == "HCl"


def test_preset_errors():
    with pytest.raises(InvalidConfigError):
        resolve_reagent("H2SO4")
    with pytest.raises(InvalidConfigError):
        SoluteSpec.preset("HCl", 0.1)  # analyte volume has no default


def test_derived_properties(strong_config):
    assert strong_config.analyte.moles == pytest.approx(2.5)
    assert strong_config.analyte.pK is None
    assert not strong_config.analyte.is_weak
    assert strong_config.is_neutralisation


def test_same_kind_config_is_valid():
    config = ExperimentConfig(
        analyte=SoluteSpec.preset("HCl", 0.1, 25.0),
        titrant=TitrantSpec.preset("HCl", 0.05),
    )
    config.validate()
    assert not config.is_neutralisation


def test_config_dict_roundtrip(weak_acid_config):
    data = weak_acid_config.to_dict()
    assert data["analyte"]["kind"] == "acid"
    assert data["analyte"]["strength"] == "weak"
    assert data["titrant"]["delivery_rate"] == 1.0
    assert ExperimentConfig.from_dict(data) == weak_acid_config


def test_from_dict_defaults_and_case():
    config = ExperimentConfig.from_dict(
        {
            "analyte": {
                "kind": "ACID",
                "strength": "Strong",
                "concentration": 0.1,
                "volume": 20,
            },
            "titrant": {"kind": "base", "strength": "strong", "concentration": 0.1},
        }
    )
    assert config.titrant.volume == 50.0
    assert config.titrant.delivery_rate == 1.0
    assert config.analyte.dissociation_constant is None
    assert math.isclose(config.analyte.moles, 2.0)


@pytest.mark.parametrize(
    "data, field",
    [
        ({"titrant": {}}, "analyte"),
        (
            {
                "analyte": {"kind": "acid", "strength": "strong", "volume": 1},
                "titrant": {"kind": "base", "strength": "strong", "concentration": 1},
            },
            "analyte.concentration",
        ),
        (
            {
                "analyte": {
                    "kind": "salt",
                    "strength": "strong",
                    "concentration": 1,
                    "volume": 1,
                },
                "titrant": {"kind": "base", "strength": "strong", "concentration": 1},
            },
            "analyte.kind",
        ),
    ],
)
def test_from_dict_rejects_malformed(data, field):
    with pytest.raises(InvalidConfigError) as exc:
        ExperimentConfig.from_dict(data)
    assert exc.value.field == field
