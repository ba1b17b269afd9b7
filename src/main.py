#!/usr/bin/env python3
"""
Funding Arbitrage Engine - Entry Point

Runs analysis ticks and statistics reports at the configured cadence until
interrupted. All thresholds come from config.yaml (see config.example.yaml).

Usage:
    PYTHONPATH=src python src/main.py
    PYTHONPATH=src python src/main.py --config deploy/config.yaml
    PYTHONPATH=src python src/main.py --once
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from config import FundingArbitrageConfig, load_config
from funding_arbitrage import LoggingReporter, StrategyEngine
from infrastructure.exceptions import ConfigurationError
from infrastructure.logging import HFTLogger, configure_logging, get_logger
from utils.task_utils import TaskManager, run_periodic


class FundingArbitrageCLI:
    """Process runner for the strategy engine."""

    def __init__(self, config: FundingArbitrageConfig):
        self.config = config
        self.engine: Optional[StrategyEngine] = None
        self.logger = get_logger(__name__)
        self._shutdown_event = asyncio.Event()
        self._tasks = TaskManager("funding_arbitrage")

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def _start_loop(self, name: str, interval: float, action) -> None:
        self._tasks.create_task(
            run_periodic(name, interval, action, self._shutdown_event, self.logger),
            name=name.lower().replace(" ", "_"))

    async def run(self, once: bool = False) -> None:
        self.engine = StrategyEngine.from_config(self.config, reporter=LoggingReporter())
        engine_config = self.config.engine

        self.logger.info("Starting funding arbitrage engine",
                         environment=self.config.environment,
                         analysis_interval=engine_config.analysis_interval_seconds,
                         statistics_interval=engine_config.statistics_interval_seconds,
                         notional_per_leg=self.config.allocator.notional_per_leg)
        try:
            if once:
                await self.engine.run_tick()
                await self.engine.report_statistics()
                return

            self._start_loop("Analysis tick", engine_config.analysis_interval_seconds,
                             self.engine.run_tick)
            self._start_loop("Statistics report", engine_config.statistics_interval_seconds,
                             self.engine.report_statistics)

            await self._shutdown_event.wait()
        finally:
            await self._tasks.shutdown(timeout=5.0, logger=self.logger)
            await self.engine.shutdown()
            self.logger.info("Funding arbitrage engine shutdown complete")
            await HFTLogger.shutdown_all()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cross-venue funding rate arbitrage engine")
    parser.add_argument("--config", help="Path to config.yaml (default: FUNDING_ARB_CONFIG or project root)")
    parser.add_argument("--once", action="store_true", help="Run a single analysis tick and exit")
    return parser.parse_args(argv)


async def main(argv=None) -> None:
    args = parse_args(argv)
    config = load_config(args.config)
    if config.logging is not None:
        configure_logging(config.logging)

    cli = FundingArbitrageCLI(config)
    cli.setup_signal_handlers()
    await cli.run(once=args.once)


def run() -> None:
    try:
        asyncio.run(main())
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nKeyboard interrupt - exiting...")


if __name__ == "__main__":
    run()
