"""Command-line interface for the deer population / fund Monte Carlo sweep."""

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from deerpop.config import Settings, logger
from deerpop.exceptions import DeerPopError

# Command-line flag -> Settings field
RUN_OVERRIDES = {
    "p_min": "P_MIN",
    "p_max": "P_MAX",
    "num_p": "NUM_P",
    "alpha_min": "ALPHA_MIN",
    "alpha_max": "ALPHA_MAX",
    "num_alpha": "NUM_ALPHA",
    "iters": "NUMBER_ITERS",
    "steps": "NUMBER_TIME_STEPS",
    "final_time": "FINAL_TIME",
    "workers": "MAX_WORKERS",
    "policy": "POOL_POLICY",
    "seed": "RANDOM_STATE",
    "format": "OUTPUT_FORMAT",
    "prefix": "OUTPUT_PREFIX",
    "output_dir": "RESULTS_DIR",
    "output_file": "DEFAULT_FILE",
    "verbosity": "VERBOSITY",
}


def settings_from_args(args) -> Settings:
    """Settings from the environment, overridden by any flags given."""
    overrides = {
        field: getattr(args, name)
        for name, field in RUN_OVERRIDES.items()
        if getattr(args, name, None) is not None
    }
    if getattr(args, "check_finite", False):
        overrides["CHECK_FINITE"] = True
    return Settings(**overrides)


def run_cmd(args):
    """Run the parameter sweep."""
    from deerpop.parallel.process_group import make_process_group
    from deerpop.sim.sweep import run_sweep
    
    config = settings_from_args(args)
    
    with make_process_group(args.mpi) as group:
        if group.is_coordinator:
            logger.info("=" * 70)
            logger.info("Running Monte Carlo Parameter Sweep")
            logger.info("=" * 70)
        result = run_sweep(config, group)
    
    logger.info(f"Records written to: {result.output}")


def summarize_cmd(args):
    """Summarize result files into per-pair mean/std estimates."""
    from deerpop.output.summary import load_records, summarize_records
    
    summary = summarize_records(load_records(args.files))
    
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out, index=False)
        logger.info(f"Summary saved to: {out}")
    else:
        cols = ["time", "P", "alpha", "N", "mean_x", "std_x", "mean_m", "std_m"]
        print(summary[cols].to_string(index=False))


def plots_cmd(args):
    """Generate heat maps from result files."""
    from deerpop.output.summary import load_records, summarize_records
    from deerpop.viz.plots import plot_moment_surface
    
    summary = summarize_records(load_records(args.files))
    output_dir = Path(args.output_dir)
    
    plots_generated = []
    for column in args.columns:
        outpath = output_dir / f"{column}_surface.png"
        plot_moment_surface(summary, column, outpath)
        plots_generated.append(outpath)
    
    logger.info("=" * 70)
    logger.info(f"Generated {len(plots_generated)} plots:")
    for plot_path in plots_generated:
        logger.info(f"  ✓ {plot_path}")
    logger.info("=" * 70)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monte Carlo sweep of a deer population and its insurance fund",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    
    # run subcommand
    run_parser = subparsers.add_parser(
        "run",
        help="Run the (P, alpha) sweep",
    )
    run_parser.add_argument("--p-min", type=float, default=None, help="Smallest P")
    run_parser.add_argument("--p-max", type=float, default=None, help="Largest P")
    run_parser.add_argument("--num-p", type=int, default=None, help="Number of P intervals")
    run_parser.add_argument("--alpha-min", type=float, default=None, help="Smallest alpha")
    run_parser.add_argument("--alpha-max", type=float, default=None, help="Largest alpha")
    run_parser.add_argument("--num-alpha", type=int, default=None, help="Number of alpha intervals")
    run_parser.add_argument("--iters", type=int, default=None, help="Replications per (P, alpha)")
    run_parser.add_argument("--steps", type=int, default=None, help="Time steps per replication")
    run_parser.add_argument("--final-time", type=float, default=None, help="Simulated horizon")
    run_parser.add_argument("--workers", type=int, default=None, help="Maximum concurrent workers")
    run_parser.add_argument("--policy", choices=["steady", "batch"], default=None,
                            help="Pool admission policy")
    run_parser.add_argument("--seed", type=int, default=None, help="Run-level random seed")
    run_parser.add_argument("--format", choices=["csv", "binary"], default=None,
                            help="Output record format")
    run_parser.add_argument("--prefix", default=None, help="Output prefix for multi-process runs")
    run_parser.add_argument("--output-dir", default=None, help="Output directory")
    run_parser.add_argument("--output-file", default=None, help="Output file for single-process runs")
    run_parser.add_argument("--mpi", action="store_true", help="Split the P axis across MPI ranks")
    run_parser.add_argument("--check-finite", action="store_true",
                            help="Fail on degenerate parameters instead of writing NaN/Inf")
    run_parser.add_argument("-v", "--verbosity", type=int, choices=[0, 1, 2], default=None,
                            help="0 quiet, 1 progress, 2 per-pair debug")
    run_parser.set_defaults(func=run_cmd)
    
    # summarize subcommand
    summarize_parser = subparsers.add_parser(
        "summarize",
        help="Per-pair mean/std estimates from result files",
    )
    summarize_parser.add_argument("files", nargs="+", help="Result files (.csv, .dat)")
    summarize_parser.add_argument("--out", default=None, help="Write the summary to this CSV")
    summarize_parser.set_defaults(func=summarize_cmd)
    
    # plots subcommand
    plots_parser = subparsers.add_parser(
        "plots",
        help="Heat maps of summary columns over (P, alpha)",
    )
    plots_parser.add_argument("files", nargs="+", help="Result files (.csv, .dat)")
    plots_parser.add_argument("--columns", nargs="+", default=["mean_x", "mean_m", "std_m"],
                              choices=["mean_x", "std_x", "mean_m", "std_m"],
                              help="Summary columns to plot")
    plots_parser.add_argument("--output-dir", default="results", help="Output directory")
    plots_parser.set_defaults(func=plots_cmd)
    
    return parser


def main(argv=None) -> int:
    """Main CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if args.command is None:
        parser.print_help()
        return 0
    
    try:
        args.func(args)
    except ValidationError as e:
        logger.error(f"❌ Invalid settings: {e}")
        return 1
    except DeerPopError as e:
        logger.error(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
