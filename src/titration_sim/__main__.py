"""
Headless Titration Driver
=========================

Runs one titration from the command line: builds the experiment, ticks the
run state machine at a fixed simulated step until it completes (or until
--duration elapses or the process is interrupted), then exports the curve.

Examples:
    python -m titration_sim --preset CH3COOH NaOH --csv curve.csv
    python -m titration_sim --config experiment.json --store runs --save "Lab 1"
    python -m titration_sim --store runs --load 3f9c2a1b0d4e5f60

Exit status: 0 on success, 1 on configuration or storage errors.

License: MIT
"""

import argparse
import csv
import json
import logging
import math
import signal
import sys
import time
from typing import List, Optional

from .core import (
    ExperimentConfig,
    InvalidConfigError,
    RunLimits,
    RunState,
    SoluteSpec,
    SpeciesKind,
    Strength,
    TitrantSpec,
    TitrationError,
    TitrationRun,
)
from .indicators import available_indicators, get_indicator
from .storage import JsonFileExperimentStore

logger = logging.getLogger(__name__)

# Cleared by SIGINT/SIGTERM; the tick loop pauses the run and stops
running = True


def signal_handler(sig, frame):
    """Handle Ctrl+C for clean shutdown."""
    global running
    logger.info("Shutdown signal received. Pausing titration...")
    running = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="titration-sim", description="Acid-base titration simulation"
    )

    exp = parser.add_argument_group("experiment")
    exp.add_argument(
        "--preset",
        nargs=2,
        metavar=("ANALYTE", "TITRANT"),
        help="Reagent names, e.g. CH3COOH NaOH (HCl, NaOH, CH3COOH, NH3)",
    )
    exp.add_argument("--config", help="ExperimentConfig JSON file")
    for role, kind, volume in (("analyte", "acid", 25.0), ("titrant", "base", 50.0)):
        exp.add_argument(
            f"--{role}-kind", choices=[k.value for k in SpeciesKind], default=kind
        )
        exp.add_argument(
            f"--{role}-strength",
            choices=[s.value for s in Strength],
            default="strong",
        )
        exp.add_argument(
            f"--{role}-concentration", type=float, default=0.1, help="[mol/L]"
        )
        exp.add_argument(f"--{role}-volume", type=float, default=volume, help="[mL]")
        exp.add_argument(
            f"--{role}-k",
            type=float,
            default=None,
            help="Ka/Kb of a weak species (the constant, not pKa)",
        )
    exp.add_argument(
        "--delivery-rate", type=float, default=1.0, help="Titrant [mL per time unit]"
    )

    sim = parser.add_argument_group("simulation")
    sim.add_argument("--dt", type=float, default=0.5, help="Simulated time step")
    sim.add_argument(
        "--duration",
        type=float,
        default=float("inf"),
        help="Stop (paused) after this much simulated time",
    )
    sim.add_argument("--max-volume", type=float, default=None, help="Titrant limit [mL]")
    sim.add_argument(
        "--multiplier",
        type=float,
        default=2.0,
        help="Titrant limit as a multiple of the equivalence volume",
    )
    sim.add_argument(
        "--realtime", action="store_true", help="Pace ticks at dt seconds each"
    )
    sim.add_argument(
        "--indicator",
        default=None,
        help=f"Indicator dye ({', '.join(available_indicators())})",
    )

    out = parser.add_argument_group("output")
    out.add_argument("--csv", help="Write the curve as volume_mL,pH")
    out.add_argument("--plot", help="Render the curve to an image (needs matplotlib)")
    out.add_argument("--store", help="Experiment store directory")
    out.add_argument("--save", metavar="NAME", help="Save the session to --store")
    out.add_argument("--load", metavar="ID", help="Continue a session from --store")
    out.add_argument("--list", action="store_true", help="List stored experiments")
    out.add_argument("--verbose", action="store_true", help="Log every tick")
    return parser


def build_config(args) -> ExperimentConfig:
    """ExperimentConfig from --config, --preset or the individual options."""
    if args.config:
        with open(args.config, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise InvalidConfigError(f"{args.config}: {e}") from e
        return ExperimentConfig.from_dict(data)

    if args.preset:
        analyte_name, titrant_name = args.preset
        return ExperimentConfig(
            analyte=SoluteSpec.preset(
                analyte_name, args.analyte_concentration, args.analyte_volume
            ),
            titrant=TitrantSpec.preset(
                titrant_name,
                args.titrant_concentration,
                args.titrant_volume,
                delivery_rate=args.delivery_rate,
            ),
        )

    return ExperimentConfig(
        analyte=SoluteSpec(
            kind=SpeciesKind(args.analyte_kind),
            strength=Strength(args.analyte_strength),
            concentration=args.analyte_concentration,
            volume=args.analyte_volume,
            dissociation_constant=args.analyte_k,
        ),
        titrant=TitrantSpec(
            kind=SpeciesKind(args.titrant_kind),
            strength=Strength(args.titrant_strength),
            concentration=args.titrant_concentration,
            volume=args.titrant_volume,
            dissociation_constant=args.titrant_k,
            delivery_rate=args.delivery_rate,
        ),
    )


def drive(run: TitrationRun, dt: float, duration: float, realtime: bool) -> None:
    """Tick run until it completes, duration elapses or a signal arrives."""
    if not math.isfinite(dt) or dt <= 0:
        raise InvalidConfigError(f"dt must be positive, got {dt}", "dt")

    if run.state is RunState.IDLE:
        run.start()
    elif run.state is RunState.PAUSED:
        run.resume()

    elapsed = 0.0
    while running and run.state is RunState.RUNNING and elapsed < duration:
        step_start = time.monotonic()
        run.tick(dt)
        elapsed += dt

        if realtime:
            sleep_time = max(0.0, dt - (time.monotonic() - step_start))
            if sleep_time > 0:
                time.sleep(sleep_time)

    if run.state is RunState.RUNNING:
        run.pause()


def write_csv(run: TitrationRun, path: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["volume_mL", "pH"])
        writer.writerows(run.curve.to_rows())
    logger.info(f"✓ Wrote {len(run.curve)} samples to {path}")


def plot_curve(run: TitrationRun, path: str) -> None:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    eq = run.equivalence_point()
    plt.figure(figsize=(8, 5))
    plt.plot(run.curve.volumes(), run.curve.pH_values(), linewidth=1.5, label="pH")
    plt.axvline(eq.volume_added, color="k", linestyle="--", linewidth=1)
    plt.plot([eq.volume_added], [eq.pH], "ro", label=f"Equivalence (pH {eq.pH:.2f})")
    plt.xlabel("Titrant added (mL)")
    plt.ylabel("pH")
    plt.ylim(0, 14)
    plt.title("Titration Curve")
    plt.legend()
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    logger.info(f"✓ Plotted curve to {path}")


def list_experiments(store: JsonFileExperimentStore) -> None:
    records = store.list()
    if not records:
        print("No stored experiments")
        return
    for record in records:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.timestamp))
        snap = record.snapshot
        print(
            f"{record.id}  {stamp}  {snap.state:<8} "
            f"{snap.volume_added:8.2f} mL  {record.name}"
        )


def main(argv: Optional[List[str]] = None) -> int:
    global running

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if (args.save or args.load or args.list) and not args.store:
        parser.error("--save, --load and --list require --store")

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    running = True

    try:
        store = JsonFileExperimentStore(args.store) if args.store else None

        if args.list:
            list_experiments(store)
            return 0

        limits = RunLimits(
            max_volume=args.max_volume, equivalence_multiplier=args.multiplier
        )
        if args.load:
            run = TitrationRun.restore(store.load(args.load), limits)
            logger.info(f"✓ Loaded experiment {args.load}")
        else:
            run = TitrationRun(build_config(args), limits)

        if run.state is not RunState.COMPLETE:
            drive(run, args.dt, args.duration, args.realtime)

        eq = run.equivalence_point()
        logger.info(
            f"Run {run.state.value}: {run.volume_added:.2f} mL added, "
            f"pH={run.current_pH:.3f}"
        )
        logger.info(f"Equivalence point: {eq.volume_added:.2f} mL, pH={eq.pH:.3f}")
        estimate = run.curve.estimate_equivalence()
        if estimate is not None:
            logger.info(f"Steepest sampled slope at {estimate.volume_added:.2f} mL")

        indicator_name = args.indicator
        if indicator_name is None and store is not None:
            indicator_name = store.get_setting("indicator")
        indicator = get_indicator(indicator_name)
        colour = indicator.colour(run.current_pH)
        logger.info(f"{indicator.display_name}: {colour.hex()} (alpha {colour.a:.2f})")

        if args.csv:
            write_csv(run, args.csv)
        if args.plot:
            plot_curve(run, args.plot)

        if store is not None:
            store.save_setting("indicator", indicator.name)
            if args.save:
                experiment_id = store.save(run.snapshot(), name=args.save)
                logger.info(f"✓ Saved experiment {experiment_id}")
                print(experiment_id)

    except (TitrationError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except ImportError as e:
        logger.error(f"Plotting unavailable ({e}); install the 'plot' extra")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
