#!/usr/bin/env python3
"""
Main Runner - Balance Optimization Demo
=======================================

Thin entry point that optimizes the formula-based BalanceSimulator over its
default parameter space, starting from the midpoint, and prints the JSON
balance report.

Usage:
    python -m autobalance.main_runner --trials 20 --seed 42
    autobalance --parallel 4 --strategy evolution --bonds --output report.json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .analytics.report import BalanceReportBuilder
from .config.optimizer_config import SEARCH_STRATEGIES, get_optimization_config
from .optimization.engine import OptimizationEngine
from .simulation.simulator import BalanceSimulator
from .utils.exceptions import ConfigurationError
from .utils.logger import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='autobalance',
        description='Optimize game-balance coefficients against the built-in balance simulator')
    parser.add_argument('--trials', type=int, help='Outer trials (max_trials)')
    parser.add_argument('--iterations', type=int, help='Inner steps per trial')
    parser.add_argument('--parallel', type=int, help='Candidates evaluated concurrently per step')
    parser.add_argument('--seed', type=int, help='Random seed for the search and the simulator')
    parser.add_argument('--strategy', choices=SEARCH_STRATEGIES, help='Search strategy')
    parser.add_argument('--exploration', type=float, help='Exploration weight in [0, 1]')
    parser.add_argument('--bonds', action='store_true', help='Simulate bond (synergy) effects')
    parser.add_argument('--output', help='Also write the JSON report to this file')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument('--log-dir', help='Write rotating log files to this directory')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point - run one optimization and emit the report"""
    args = build_parser().parse_args(argv)

    setup_logging(log_dir=args.log_dir or 'logs', level=args.log_level,
                  console=True, files=args.log_dir is not None)

    try:
        overrides = {
            'max_trials': args.trials,
            'iterations_per_trial': args.iterations,
            'parallel_trials': args.parallel,
            'random_seed': args.seed,
            'search_strategy': args.strategy,
            'exploration_weight': args.exploration,
        }
        config = get_optimization_config(**{k: v for k, v in overrides.items() if v is not None})

        if config.debug_mode and args.log_level != 'DEBUG':
            setup_logging(log_dir=args.log_dir or 'logs', level='DEBUG',
                          console=True, files=args.log_dir is not None)
            logger.debug(f"Debug mode enabled, configuration: {config.to_dict()}")

        simulator = BalanceSimulator(seed=args.seed, enable_bonds=args.bonds)
        engine = OptimizationEngine(config)

        result = engine.run(simulator.bounds.midpoint(), simulator.bounds, simulator.evaluate)
        if not result['success']:
            logger.error(f"Optimization failed: {result['error']}")
            return 1

        report = BalanceReportBuilder().from_engine(engine)
        output = report.to_json()
        print(output)

        if args.output:
            Path(args.output).write_text(output, encoding='utf-8')
            logger.info(f"Report written to {args.output}")

        return 0
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        return 1
    except (OSError, ValueError) as e:
        logger.error("Main runner failed: %s", e, exc_info=True)
        return 1
    except Exception as e:
        logger.critical("Unexpected error in main runner: %s", e, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
