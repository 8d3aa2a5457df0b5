#!/usr/bin/env python3
"""
Periodic scoring scheduler.

Runs a scoring batch every WORKER_INTERVAL_SEC (and once on start when
WORKER_RUN_ON_START=true). A failed cycle is logged and the next cycle starts a
fresh run; runs themselves are never retried. Stops on SIGINT / SIGTERM.
"""
import sys
import os
import signal
import logging
import threading
from datetime import datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ratings.config import (
    WORKER_INTERVAL_SEC, WORKER_RUN_ON_START, WORKER_INITIATED_BY,
    SCORING_FORMULA_VERSION, SCOREJOB_TIMEOUT_SEC,
)
from ratings.logging_config import configure_logging
from ratings.scoring.runner import RunOptions, ScoringRunError, run_batch

logger = logging.getLogger('scripts.worker')


def run_cycle():
    """One scheduler tick. Returns the run id, or None if the batch failed."""
    logger.info("worker cycle started")
    label = f"worker-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
    try:
        run_id = run_batch(
            RunOptions(run_label=label, formula_version=SCORING_FORMULA_VERSION, initiated_by=WORKER_INITIATED_BY),
            timeout=SCOREJOB_TIMEOUT_SEC,
        )
    except ScoringRunError as e:
        logger.error("score batch failed (run_id=%s): %s", e.run_id, e)
        return None
    logger.info("score batch completed: run_id=%d", run_id)
    return run_id


def main():
    configure_logging()
    stop = threading.Event()

    def _shutdown(signum, frame):
        logger.info("worker shutting down (signal %d)", signum)
        stop.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    if WORKER_RUN_ON_START:
        run_cycle()

    logger.info("worker scheduler running interval=%ds", WORKER_INTERVAL_SEC)
    while not stop.wait(WORKER_INTERVAL_SEC):
        run_cycle()


if __name__ == '__main__':
    main()
