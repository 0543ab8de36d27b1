"""Command-line interface for RadCalNet.

Provides database creation, recovery and inspection, model training and
configuration management.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import numpy as np

from .config import RadcalConfig
from .database import (
    DatabaseBuilder,
    RadcalRunner,
    aggregate_database,
    load_database,
    recover_raw_file,
    sample_database,
)
from .exceptions import ConfigurationError, RadcalError
from .logging import log_error, setup_logging


def _add_global_cli_options(parser: argparse.ArgumentParser) -> None:
    """Add global CLI options shared by main and script entrypoints."""
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file (YAML)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        description="RadCalNet: RadCal database generation and surrogate modeling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a database with the default sample space
  radcalnet-create --config config/database.yaml --repeats 10 --samplesize 1000

  # Aggregate the blocks of an interrupted run
  radcalnet aggregate tmp/run-20240101-120000-1a2b3c4d --saveas database.h5

  # Train the model on a database
  radcalnet-train database.h5 --output-dir model/
        """
    )

    _add_global_cli_options(parser)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Create command
    create_parser_ = subparsers.add_parser("create", help="Create a database by running RadCal")
    create_parser_.add_argument("--repeats", type=int, help="Number of blocks")
    create_parser_.add_argument("--samplesize", type=int, help="Samples per block")
    create_parser_.add_argument("--saveas", type=Path, help="Database file (HDF5)")
    create_parser_.add_argument("--override", action="store_true", help="Replace an existing database")
    create_parser_.add_argument("--cleanup", action="store_true", help="Remove intermediate files")
    create_parser_.add_argument("--sampler", type=str, help="Sampler name")
    create_parser_.add_argument("--executable", type=str, help="RadCal executable")
    create_parser_.add_argument("--timeout", type=float, help="Wall-clock budget of one RadCal run (s)")
    create_parser_.add_argument(
        "--on-failure",
        choices=["skip", "zero"],
        help="What to emit for failed samples"
    )

    # Sample command
    sample_parser = subparsers.add_parser("sample", help="Create and print a 3x3 sample database")
    sample_parser.add_argument("--executable", type=str, help="RadCal executable")

    # Aggregate command
    aggregate_parser = subparsers.add_parser("aggregate", help="Aggregate the blocks of a run directory")
    aggregate_parser.add_argument("run_dir", type=Path, help="Run directory holding block files")
    aggregate_parser.add_argument("--saveas", type=Path, help="Database file (HDF5)")
    aggregate_parser.add_argument("--override", action="store_true", help="Replace an existing database")
    aggregate_parser.add_argument(
        "--keep-duplicates",
        action="store_true",
        help="Do not drop repeated rows"
    )

    # Show command
    show_parser = subparsers.add_parser("show", help="Summarize a database")
    show_parser.add_argument("database", type=Path, help="Database file (HDF5)")
    show_parser.add_argument("--rows", type=int, default=5, help="Number of rows to print")

    # Train command
    train_parser = subparsers.add_parser("train", help="Train the model on a database")
    train_parser.add_argument("database", type=Path, help="Database file (HDF5)")
    train_parser.add_argument("--output-dir", type=Path, help="Directory for scaler, model and plots")
    train_parser.add_argument("--epochs", type=int, help="Epochs per training round")
    train_parser.add_argument("--num", type=int, help="Rows drawn per training round")
    train_parser.add_argument("--plots", action="store_true", help="Save loss and parity plots")

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "action",
        choices=["show", "validate", "template"],
        help="Configuration action"
    )
    config_parser.add_argument(
        "--output",
        type=Path,
        help="Output file for template"
    )

    return parser


def load_configuration(args: argparse.Namespace) -> RadcalConfig:
    """Load and configure the system."""
    if args.config:
        if not args.config.exists():
            raise ConfigurationError(f"Configuration file not found: {args.config}")
        try:
            config = RadcalConfig.from_yaml(args.config)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load config from {args.config}: {e}")
    else:
        config = RadcalConfig()

    # Apply command-line overrides
    if args.seed is not None:
        config.seed = args.seed
    if args.verbose or args.debug:
        config.logging.level = "DEBUG" if args.debug else "INFO"

    return config


def _run_guarded(handler, args: argparse.Namespace) -> int:
    try:
        return handler(args)
    except RadcalError as e:
        log_error(e)
        print(f"RadCalNet Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        error = RadcalError(f"Unexpected error: {e}")
        log_error(error)
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


def _create(args: argparse.Namespace) -> int:
    config = load_configuration(args)

    if args.repeats is not None:
        config.database.repeats = args.repeats
    if args.samplesize is not None:
        config.database.samplesize = args.samplesize
    if args.saveas:
        config.database.saveas = args.saveas
    if args.override:
        config.database.override = True
    if args.cleanup:
        config.database.cleanup = True
    if args.sampler:
        config.sampler.name = args.sampler
    if args.executable:
        config.oracle.executable = args.executable
    if args.timeout is not None:
        config.oracle.timeout = args.timeout
    if args.on_failure:
        config.database.on_failure = args.on_failure

    setup_logging(config)

    builder = DatabaseBuilder.from_config(config)
    report = builder.build()

    if report is None:
        print(f"Database {config.database.saveas} already exists, nothing done")
        return 0

    print(f"Database saved to: {report.saveas}")
    print(f"  Rows: {report.rows}")
    print(f"  Samples: {report.attempted} ({report.failed} failed, {report.timed_out} timed out)")
    print(f"  Intermediate files: {report.run_dir}")
    return 0


def main_create(args: argparse.Namespace) -> int:
    """Run database creation command."""
    return _run_guarded(_create, args)


def _sample(args: argparse.Namespace) -> int:
    config = load_configuration(args)
    if args.executable:
        config.oracle.executable = args.executable
    setup_logging(config)

    runner = RadcalRunner.from_config(config.oracle)
    seed = config.seed if config.seed is not None else 42
    A = sample_database(runner=runner, seed=seed, tmp_dir=config.database.tmp_dir)

    with np.printoptions(precision=6, suppress=True, linewidth=160):
        print(f"{A.shape[0]}x{A.shape[1]} table:")
        print(A)
    return 0


def main_sample(args: argparse.Namespace) -> int:
    """Run sample database command."""
    return _run_guarded(_sample, args)


def _aggregate(args: argparse.Namespace) -> int:
    config = load_configuration(args)
    setup_logging(config)

    saveas = args.saveas or config.database.saveas
    if saveas.exists() and not (args.override or config.database.override):
        print(f"Database {saveas} already exists, nothing done")
        return 0

    raw_path = recover_raw_file(args.run_dir)
    table = aggregate_database(raw_path, saveas, deduplicate=not args.keep_duplicates)
    print(f"Aggregated {len(table)} rows into {saveas}")
    return 0


def main_aggregate(args: argparse.Namespace) -> int:
    """Run block aggregation command."""
    return _run_guarded(_aggregate, args)


def _show(args: argparse.Namespace) -> int:
    from .database.scenario import COLUMNS

    table = load_database(args.database)
    print(f"Database: {args.database}")
    print(f"  Shape: {table.shape}")
    if len(table):
        zero_rows = int(np.sum(~np.any(table != 0, axis=1)))
        print(f"  All-zero rows: {zero_rows}")
        for name, lo, hi in zip(COLUMNS, table.min(axis=0), table.max(axis=0)):
            print(f"  {name:<24} [{lo:.6g}, {hi:.6g}]")
        with np.printoptions(precision=6, suppress=True, linewidth=160):
            print(table[:args.rows])
    return 0


def main_show(args: argparse.Namespace) -> int:
    """Run database summary command."""
    return _run_guarded(_show, args)


def _train(args: argparse.Namespace) -> int:
    from .modeling import ModelData, ModelTrainer, default_model, dump_model, dump_scaler

    config = load_configuration(args)
    if args.output_dir:
        config.training.output_dir = args.output_dir
    if args.epochs:
        config.training.epochs = args.epochs
    if args.num:
        config.training.num = args.num
        config.training.schedule = [(lr, args.num) for lr, _ in config.training.schedule]
    setup_logging(config)

    training = config.training
    training.output_dir.mkdir(parents=True, exist_ok=True)

    data = ModelData(args.database, f_train=training.f_train)
    dump_scaler(data.scaler, training.output_dir / "scaler.yaml")

    trainer = ModelTrainer(
        data,
        default_model(bn=training.batch_norm),
        batch=training.batch,
        epochs=training.epochs,
        lr=training.schedule[0][0],
        seed=config.seed,
    )
    trainer.train_schedule(training.schedule)
    error = trainer.evaluate(num=training.num)
    dump_model(trainer, training.output_dir / "model.pt")

    if args.plots:
        from .modeling.plots import plot_losses, plot_tests

        plot_losses(trainer.losses).savefig(training.output_dir / "losses.png")
        plot_tests(trainer, num=training.num).savefig(training.output_dir / "tests.png")

    print(f"Model saved to: {training.output_dir}")
    print(f"  Test MAE: {error:.6f}")
    return 0


def main_train(args: argparse.Namespace) -> int:
    """Run training command."""
    return _run_guarded(_train, args)


def main_config(args: argparse.Namespace) -> int:
    """Run configuration management command."""
    try:
        if args.action == "show":
            config = load_configuration(args)
            print("Current Configuration:")
            print("=" * 50)
            for section_name, section in config.model_dump(mode="json").items():
                print(f"\n{section_name.upper()}:")
                if isinstance(section, dict):
                    for key, value in section.items():
                        print(f"  {key}: {value}")
                else:
                    print(f"  {section}")

        elif args.action == "validate":
            load_configuration(args)
            print("Configuration is valid")

        elif args.action == "template":
            template_config = RadcalConfig()
            output_path = args.output or Path("config_template.yaml")
            template_config.to_yaml(output_path)
            print(f"Template configuration saved to: {output_path}")

        return 0

    except RadcalError as e:
        print(f"RadCalNet Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


def _dispatch_command(args: argparse.Namespace) -> int:
    """Route parsed arguments to the corresponding command handler."""
    command_handlers = {
        "create": main_create,
        "sample": main_sample,
        "aggregate": main_aggregate,
        "show": main_show,
        "train": main_train,
        "config": main_config,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


def _main_with_argv(argv: Optional[list] = None) -> int:
    """Main CLI execution path with optional argv override for script wrappers."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return _dispatch_command(args)


def _parse_entrypoint_args(command: str, raw_argv: Optional[list] = None) -> argparse.Namespace:
    """Parse script-entrypoint args while allowing global options anywhere."""
    argv = list(sys.argv[1:] if raw_argv is None else raw_argv)

    global_parser = argparse.ArgumentParser(add_help=False)
    _add_global_cli_options(global_parser)
    global_args, remaining = global_parser.parse_known_args(argv)

    parser = create_parser()
    args = parser.parse_args([command, *remaining])

    for field_name in ("config", "seed", "verbose", "debug"):
        value = getattr(global_args, field_name)
        if value != global_parser.get_default(field_name):
            setattr(args, field_name, value)

    return args


def main() -> int:
    """Main CLI entry point."""
    return _main_with_argv()


def main_create_entry() -> int:
    """Console-script entry point for radcalnet-create."""
    return _dispatch_command(_parse_entrypoint_args("create"))


def main_train_entry() -> int:
    """Console-script entry point for radcalnet-train."""
    return _dispatch_command(_parse_entrypoint_args("train"))


if __name__ == "__main__":
    sys.exit(main())
