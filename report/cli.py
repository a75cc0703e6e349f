"""Batch runner that reproduces the exhaled-breath figure for one configuration."""

import argparse
import logging
from pathlib import Path
import sys

from vabnsim import (
    ConfigurationError,
    IntegrationError,
    SimulationInputs,
    export_breath_series,
    export_csv,
    export_metadata_json,
    hand_off,
    simulate,
)
from vabnsim.params import REPORTERS, SOLVER_METHODS, SPECIES

from .chart import save_breath_chart

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="VABNSim - exhaled volatile reporter simulation")
    parser.add_argument("--species", choices=SPECIES, default="mouse")
    parser.add_argument("--reporter", choices=REPORTERS, default="PFC1")
    parser.add_argument("--healthy", action="store_true", help="Healthy control without neutrophil elastase")
    parser.add_argument("--dose", type=float, default=None, help="Lumen vABN dose in uM (default: species dose)")
    parser.add_argument("--t-end", type=float, default=120.0, help="End time in minutes")
    parser.add_argument("--dt", type=float, default=0.1, help="Sampling interval in minutes")
    parser.add_argument("--method", choices=SOLVER_METHODS, default="BDF")
    parser.add_argument("--out-dir", type=Path, default=Path("results"))
    parser.add_argument("--log-level", default="INFO")
    return parser


def run(args: argparse.Namespace) -> int:
    inputs = SimulationInputs(
        species=args.species,
        reporter=args.reporter,
        infected=not args.healthy,
        dose_um=args.dose,
        t_end_min=args.t_end,
        dt_min=args.dt,
        method=args.method,
    )
    try:
        outputs = simulate(inputs)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    except IntegrationError as exc:
        logger.error("Integration failed: %s", exc)
        return 1

    out_dir: Path = args.out_dir
    stem = f"{outputs.params.species}_{outputs.params.reporter}"
    title = f"{outputs.params.species} / {outputs.params.reporter}"
    hand_off(
        outputs.signal,
        lambda signal: save_breath_chart(signal, out_dir / f"{stem}_breath.html", title=title),
    )
    export_breath_series(outputs, out_dir)
    export_csv(outputs, out_dir / f"{stem}_timeseries.csv")
    export_metadata_json(inputs, outputs, out_dir / f"{stem}_metadata.json")

    print(
        f"Peak exhaled reporter: {outputs.signal.peak_ppb:.6g} ppb "
        f"at {outputs.signal.peak_time_min:.1f} min"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
