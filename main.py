#!/usr/bin/env python
"""
fastbackward - Main Entry Point
Runs bounded backward elimination by AIC/BIC on a model described in a JSON configuration.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path

import numpy as np
import pandas as pd

from fastbackward.config_manager import ConfigurationManager
from fastbackward.elimination import EliminationController, SelectionResult
from fastbackward.logging_config import LoggingConfigurator
from fastbackward.models import ModelFactory, SelectableModel
from fastbackward.reporting import PathReporter, TraceRenderer, render_path
from fastbackward.utils.error_handling import handle_engine_errors
from fastbackward.utils.exceptions import FastBackwardException
from fastbackward.utils.file_io import read_dataframe
from fastbackward.utils import constants


def non_negative_int(value: str) -> int:
    """argparse type for counts that must be >= 0."""
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Bounded backward elimination by AIC/BIC",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--trace",
        type=non_negative_int,
        default=None,
        help="Override selection.trace (0 silent, 1 steps, 2 also pruning decisions)"
    )

    parser.add_argument(
        "--steps",
        type=non_negative_int,
        default=None,
        help="Override selection.steps"
    )

    parser.add_argument(
        "--criterion",
        choices=["aic", "bic"],
        default=None,
        help="Override selection.criterion"
    )

    parser.add_argument(
        "--compare",
        action="store_true",
        help="Also run the exhaustive search and check that both take the same path"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and data without running the search"
    )

    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> None:
    """Write CLI overrides into the loaded configuration."""
    selection = config['selection']
    if args.trace is not None:
        selection['trace'] = args.trace
    if args.steps is not None:
        selection['steps'] = args.steps
    if args.criterion is not None:
        selection['criterion'] = args.criterion
        # An explicit k would silently win over the requested criterion.
        selection.pop('k', None)
    if args.verbose:
        config['logging']['level'] = 'DEBUG'


@handle_engine_errors("Data loading")
def load_data(config: dict) -> pd.DataFrame:
    return read_dataframe(Path(config['data']['file_path']))


@handle_engine_errors("Model fitting")
def fit_starting_model(config: dict, data: pd.DataFrame) -> SelectableModel:
    data_cfg = config['data']
    return ModelFactory.create(
        data_cfg['formula'],
        data,
        family=data_cfg.get('family', 'ols'),
        weights=data_cfg.get('weights'),
        fit_params=data_cfg.get('fit_params'),
    )


def paths_match(bounded: SelectionResult, exhaustive: SelectionResult, tol: float = 1e-6) -> bool:
    """True when both searches accepted the same changes with the same criterion values."""
    a, b = bounded.anova, exhaustive.anova
    if list(a['Step']) != list(b['Step']):
        return False
    numeric_a = a.drop(columns='Step').to_numpy(dtype=float)
    numeric_b = b.drop(columns='Step').to_numpy(dtype=float)
    return bool(np.allclose(numeric_a, numeric_b, atol=tol, rtol=0.0, equal_nan=True))


def run_comparison(config: dict, model: SelectableModel, bounded: SelectionResult,
                   logger: logging.Logger) -> SelectionResult:
    """Re-run without pruning and verify the bounded search took the same path."""
    exhaustive_cfg = dict(config)
    exhaustive_cfg['selection'] = {**config['selection'], 'bounding': False, 'trace': 0}
    exhaustive = EliminationController(exhaustive_cfg, logger).run(model)

    if not paths_match(bounded, exhaustive):
        raise FastBackwardException(
            "Bounded and exhaustive searches took different paths:\n"
            f"{render_path(bounded)}\n{render_path(exhaustive)}"
        )
    logger.info(
        f"Exhaustive search agrees: {exhaustive.n_evaluated} single-term fits versus "
        f"{bounded.n_evaluated} with bounding ({bounded.n_skipped} skipped)"
    )
    return exhaustive


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger = None) -> Path:
    base_results_dir = config.get('outputs', {}).get('base_results_dir', 'results')
    run_dir = (Path(base_results_dir) / run_id).absolute()
    run_dir.mkdir(parents=True, exist_ok=True)
    for folder in constants.TOP_LEVEL_RESULT_DIRS:
        (run_dir / folder).mkdir(parents=True, exist_ok=True)
    if logger:
        logger.info(f"Created run directory: {run_dir}")
    return run_dir


def main(argv=None):
    """
    Load configuration, fit the starting model, run the search and save its outputs.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 when interrupted)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()
        apply_overrides(config, args)

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('fastbackward')

        logger.info(f"Configuration loaded from: {args.config}")

        run_id = args.run_id or config_manager.generate_run_id()
        config_manager.run_id = run_id

        # ---------------------------------------------------------------
        # PHASE 1: DATA & STARTING MODEL
        # ---------------------------------------------------------------
        data = load_data(config)
        logger.info(f"Data loaded: {len(data)} rows, {data.shape[1]} columns")

        model = fit_starting_model(config, data)
        logger.info(f"Starting model fitted on {model.nobs} rows: {model.formula}")

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running the search.")
            print("\n[SUCCESS] Configuration, data and starting model validated successfully.")
            return 0

        run_dir = setup_run_directory(config, run_id, logger)
        config['outputs']['base_results_dir'] = str(run_dir)
        config_manager.save_artifacts(str(run_dir))

        # ---------------------------------------------------------------
        # PHASE 2: BOUNDED BACKWARD ELIMINATION
        # ---------------------------------------------------------------
        controller = EliminationController(config, logger, sink=TraceRenderer(sys.stdout))
        result = controller.run(model)

        if args.compare:
            run_comparison(config, model, result, logger)

        # ---------------------------------------------------------------
        # PHASE 3: OUTPUTS
        # ---------------------------------------------------------------
        PathReporter(config, logger).save(result)
        print(render_path(result))

        logger.info(f"Selected model: {result.formula}")
        logger.info(f"Output Directory: {run_dir}")
        return 0

    except FastBackwardException as e:
        msg = f"Selection Error: {str(e)}"
        print(f"\n[ERROR] {msg}", file=sys.stderr)
        if logger:
            logger.critical(msg, exc_info=True)
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Selection interrupted by user.", file=sys.stderr)
        if logger:
            logger.warning("Selection interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}", file=sys.stderr)
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
