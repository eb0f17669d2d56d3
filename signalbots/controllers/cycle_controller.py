"""Cycle controller: runs a job on a fixed interval until stopped."""

import logging
import signal
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CycleController:
    """Single-threaded scheduler.

    Cycles never overlap: the next one starts only after the previous one
    returned. A cycle that outlasts the interval is followed immediately by
    the next and logged as a warning. SIGINT/SIGTERM let the cycle in
    progress finish, so a ledger is never left half written, and cut the
    sleep short.
    """

    def __init__(self, name: str, job: Callable[[], object], interval_seconds: float,
                 max_cycles: Optional[int] = None):
        """
        Initialize cycle controller.

        Args:
            name: Label used in log lines (bot or job name)
            job: Callable executed once per cycle
            interval_seconds: Target time between cycle starts
            max_cycles: Stop after this many cycles (None runs until stopped)
        """
        self.name = name
        self.job = job
        self.interval_seconds = interval_seconds
        self.max_cycles = max_cycles
        self.running = True
        self.cycle_count = 0
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()

    def _handle_signal(self, signum, frame) -> None:
        logger.info(f"{signal.Signals(signum).name} received, stopping {self.name} after cycle {self.cycle_count}")
        self.stop()

    def run(self, register_signals: bool = True) -> None:
        """
        Execute cycles in a loop.

        Errors escaping the job are logged and the loop continues with the next cycle.
        """
        if register_signals:
            signal.signal(signal.SIGINT, self._handle_signal)
            signal.signal(signal.SIGTERM, self._handle_signal)
        logger.info(f"Starting {self.name} every {self.interval_seconds:.0f}s")

        while self.running:
            self.cycle_count += 1
            cycle_start_time = time.time()
            logger.info(f"CYCLE {self.cycle_count} - {self.name} - {datetime.now(timezone.utc).strftime('%H:%M:%S')}")

            try:
                self.job()
            except Exception as e:
                logger.error(f"Cycle {self.cycle_count} failed: {e}", exc_info=True)
                logger.info("Continuing to next cycle...")

            if self.max_cycles is not None and self.cycle_count >= self.max_cycles:
                break
            self._sleep_until_next_cycle(cycle_start_time)

        logger.info(f"{self.name} stopped after {self.cycle_count} cycle(s)")

    def _sleep_until_next_cycle(self, cycle_start_time: float) -> None:
        """Sleep until the next cycle based on configured interval."""
        cycle_duration = time.time() - cycle_start_time
        sleep_time = max(0, self.interval_seconds - cycle_duration)

        if sleep_time > 0:
            logger.debug(f"Sleeping for {sleep_time:.1f} seconds until next cycle")
            self._stop_event.wait(sleep_time)
        else:
            logger.warning(f"Cycle took {cycle_duration:.1f}s, longer than interval {self.interval_seconds:.0f}s")
