#!/usr/bin/env python3
"""
Main entry point for the signal bots.

Runs a registered bot once or on a fixed interval, resolves pending trades
in the ledgers, and drives the smart entry simulator.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from signalbots import __version__
from signalbots.config import Config
from signalbots.controllers.cycle_controller import CycleController
from signalbots.data_fetchers.market_data_fetcher import MarketDataFetcher
from signalbots.errors import ConfigurationError, LedgerCorruptError
from signalbots.exchange_adapters.exchange_adapter import ExchangeAdapter
from signalbots.ledger.order_store import SMART_ENTRY_ORDERS_FILE, SmartEntryOrderStore
from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.monitors.trade_monitor import TradeMonitor
from signalbots.pipeline.bot_pipeline import ERROR
from signalbots.pipeline.registry import build_bot, describe_bot, list_bots
from signalbots.pipeline.smart_entry_cycle import SmartEntryCycle


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(verbose: bool = False, json_logs: bool = False, logs_dir: str = "logs") -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG, otherwise INFO
        json_logs: If True, enable JSON structured logging
        logs_dir: Directory for the log files
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    Path(logs_dir).mkdir(parents=True, exist_ok=True)

    if json_logs:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", "%Y-%m-%d %H:%M:%S")

    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(Path(logs_dir) / "signalbots.log"), mode="a")
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    if json_logs:
        json_handler = logging.FileHandler(str(Path(logs_dir) / "signalbots.json"), mode="a")
        json_handler.setFormatter(formatter)
        logging.root.addHandler(json_handler)

    # Reduce noisy third-party loggers
    logging.getLogger("ccxt").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai._base_client").setLevel(logging.WARNING)


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Signal bots - Binance technical and LLM trade signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py bots                             # List registered bots
  python main.py run ema-simulator                # One cycle
  python main.py run deepseek-simulator --every 5 # Every 5 minutes
  python main.py monitor                          # Resolve pending trades in trades/
  python main.py smart-entry --every 1

Environment Variables:
  See .env.example for configuration variables.
        """
    )
    parser.add_argument("--env", type=str, default=None, help="Path to environment file (default: .env)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--json-logs", action="store_true",
                        help="Enable JSON structured logging (outputs to logs/signalbots.json)")
    parser.add_argument("--version", action="version", version=f"signalbots v{__version__}")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("bots", help="List registered bots")

    run = commands.add_parser("run", help="Run a bot")
    run.add_argument("bot", choices=list_bots())
    run.add_argument("--every", type=float, metavar="MINUTES", help="Repeat every MINUTES until stopped")
    run.add_argument("--loop", action="store_true", help="Repeat every LOOP_INTERVAL_MINUTES until stopped")

    monitor = commands.add_parser("monitor", help="Resolve pending trades against recent candles")
    target = monitor.add_mutually_exclusive_group()
    target.add_argument("--dir", help="Ledger directory (default: TRADES_DIR)")
    target.add_argument("--file", help="Single ledger file")
    monitor.add_argument("--every", type=float, metavar="MINUTES", help="Repeat every MINUTES until stopped")
    monitor.add_argument("--loop", action="store_true", help="Repeat every LOOP_INTERVAL_MINUTES until stopped")

    smart = commands.add_parser("smart-entry", help="Advance and place smart entry orders")
    smart.add_argument("--every", type=float, metavar="MINUTES", help="Repeat every MINUTES until stopped")
    smart.add_argument("--loop", action="store_true", help="Repeat every LOOP_INTERVAL_MINUTES until stopped")

    return parser.parse_args(argv)


def _interval(args, config: Config):
    if args.every is not None:
        return args.every
    return config.loop_interval_minutes if args.loop else None


def _repeat(name: str, job, every) -> None:
    if every is None:
        job()
        return
    CycleController(name, job, every * 60).run()


def run_bot(args, config: Config) -> int:
    pipeline = build_bot(args.bot, config)
    results = []

    def job():
        results.append(pipeline.run_cycle())

    _repeat(args.bot, job, _interval(args, config))
    return 1 if _interval(args, config) is None and results and results[-1].status == ERROR else 0


def run_monitor(args, config: Config) -> int:
    monitor = TradeMonitor(MarketDataFetcher(ExchangeAdapter(config), config),
                           config.monitor_interval, config.monitor_lookback)

    def job():
        if args.file:
            reports = {Path(args.file).name: monitor.check_ledger(TradeLedger(args.file))}
        else:
            reports = monitor.check_directory(args.dir or config.trades_dir, exclude=[SMART_ENTRY_ORDERS_FILE])
        for name, report in reports.items():
            logging.getLogger(__name__).info(
                f"{name}: checked {report.checked}, wins {report.wins}, losses {report.losses}, "
                f"pending {report.still_pending}, errors {len(report.errors)}"
            )

    _repeat("trade monitor", job, _interval(args, config))
    return 0


def run_smart_entry(args, config: Config) -> int:
    fetcher = MarketDataFetcher(ExchangeAdapter(config), config)
    cycle = SmartEntryCycle(config, fetcher, SmartEntryOrderStore(config.ledger_path(SMART_ENTRY_ORDERS_FILE)))
    _repeat("smart entry", cycle.run_cycle, _interval(args, config))
    return 0


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = parse_arguments(argv)
    setup_logging(verbose=args.verbose, json_logs=args.json_logs)
    logger = logging.getLogger(__name__)

    if args.command == "bots":
        for name in list_bots():
            print(f"{name:<30} {describe_bot(name)}")
        return 0

    try:
        if args.env and not Path(args.env).exists():
            logger.error(f"Environment file not found: {args.env}")
            return 1
        config = Config.from_env(args.env)
        logger.info("[OK] Configuration loaded successfully")

        if args.command == "run":
            return run_bot(args, config)
        if args.command == "monitor":
            return run_monitor(args, config)
        return run_smart_entry(args, config)

    except ConfigurationError as e:
        logger.error(f"[ERROR] Configuration error: {e}")
        logger.error("See .env.example for reference.")
        return 1
    except LedgerCorruptError as e:
        logger.error(f"[ERROR] {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 0


if __name__ == "__main__":
    sys.exit(main())
