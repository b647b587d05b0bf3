"""Run the engine self checks: python -m titration_sim.core"""

from . import run_all_validations

run_all_validations()
