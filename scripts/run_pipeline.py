#!/usr/bin/env python3
"""
Run Pipeline Script

Main entry point for the loan default pipeline: reads the train and test
tables, runs every stage and writes id,P_default for the test rows.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loan_default.config.loader import list_profiles, load_config, load_profile
from loan_default.core.exceptions import PipelineException
from loan_default.core.logger import get_logger, setup_logging
from loan_default.pipeline.orchestrator import PipelineOrchestrator


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Loan Default Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Baseline profile (top-20 features, no outlier flags)
  python scripts/run_pipeline.py --train data/train.csv --test data/test.csv

  # Outlier-flagged profile (top-10 features)
  python scripts/run_pipeline.py --profile outlier_flagged --train data/train.csv --test data/test.csv

  # Custom YAML config with a different top-N
  python scripts/run_pipeline.py --config my_config.yaml --top-n 15
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to a YAML config file (overrides --profile)'
    )

    parser.add_argument(
        '--profile', '-p',
        type=str,
        default='baseline',
        choices=list_profiles(),
        help='Bundled configuration profile (default: baseline)'
    )

    parser.add_argument('--train', type=str, default=None, help='Training CSV path')
    parser.add_argument('--test', type=str, default=None, help='Test CSV path')

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Predictions CSV path (id,P_default)'
    )

    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default=None,
        help='Base directory for run artifacts'
    )

    parser.add_argument(
        '--top-n',
        type=int,
        default=None,
        help='Number of top-ranked features to keep'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    cli_overrides = {
        "data.train_path": args.train,
        "data.test_path": args.test,
        "output.predictions_path": args.output,
        "output.base_dir": args.output_dir,
        "selection.top_n": args.top_n,
    }
    if args.verbose:
        cli_overrides["reproducibility.log_level"] = "DEBUG"

    try:
        if args.config:
            config = load_config(args.config, cli_overrides)
        else:
            config = load_profile(args.profile, cli_overrides)
    except (PipelineException, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(log_level=config.reproducibility.log_level)
    logger = get_logger('run_pipeline')
    logger.info(f"Starting pipeline with profile '{config.profile}'")

    try:
        orchestrator = PipelineOrchestrator(config)
        result = orchestrator.run()
    except PipelineException as e:
        logger.error(f"Pipeline failed: {e}")
        return 1

    logger.info("Pipeline completed successfully!")
    logger.info(f"Predictions saved to: {result.predictions_path}")
    logger.info(f"Run artifacts in: {result.run_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
