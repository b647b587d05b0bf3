import pytest

from titration_sim.core import ExperimentConfig, SoluteSpec, TitrantSpec


@pytest.fixture
def strong_config():
    """0.1 M HCl (25 mL) titrated with 0.1 M NaOH at 1 mL per time unit."""
    return ExperimentConfig(
        analyte=SoluteSpec.preset("HCl", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1, delivery_rate=1.0),
    )


@pytest.fixture
def weak_acid_config():
    """0.1 M acetic acid (Ka 1.8e-5, 25 mL) titrated with 0.1 M NaOH."""
    return ExperimentConfig(
        analyte=SoluteSpec.preset("CH3COOH", 0.1, 25.0),
        titrant=TitrantSpec.preset("NaOH", 0.1, delivery_rate=1.0),
    )


@pytest.fixture
def weak_base_config():
    """0.1 M ammonia (Kb 1.8e-5, 25 mL) titrated with 0.1 M HCl."""
    return ExperimentConfig(
        analyte=SoluteSpec.preset("NH3", 0.1, 25.0),
        titrant=TitrantSpec.preset("HCl", 0.1, delivery_rate=1.0),
    )
