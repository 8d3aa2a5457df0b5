#!/usr/bin/env python3
"""
Run one scoring batch against DATABASE_URL.

Usage:
    python scripts/scorejob.py                          # label/formula/initiator from env
    python scripts/scorejob.py --label nightly --formula-version v1
    python scripts/scorejob.py --enqueue                # hand off to the RQ 'scoring' queue
    python scripts/scorejob.py --create-tables          # SQLite local dev: create schema first

Exit status is 0 when the run completed, 1 when it failed.
"""
import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ratings.config import (
    SCORING_RUN_LABEL, SCORING_FORMULA_VERSION, SCORING_INITIATED_BY, SCOREJOB_TIMEOUT_SEC,
)
from ratings.database import engine, init_models
from ratings.logging_config import configure_logging
from ratings.scoring.runner import RunOptions, ScoringRunError, run_batch

logger = logging.getLogger('scripts.scorejob')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Run one flashlight scoring batch')
    parser.add_argument('--label', default=SCORING_RUN_LABEL, help='Run label (default: batch-<UTC timestamp>)')
    parser.add_argument('--formula-version', default=SCORING_FORMULA_VERSION, help='Formula version (default: v1)')
    parser.add_argument('--initiated-by', default=SCORING_INITIATED_BY, help='Initiator recorded on the run')
    parser.add_argument('--timeout', type=float, default=SCOREJOB_TIMEOUT_SEC, help='Seconds before the batch aborts')
    parser.add_argument('--enqueue', action='store_true', help='Enqueue on RQ instead of running inline')
    parser.add_argument('--create-tables', action='store_true', help='Create missing tables first (local dev)')
    args = parser.parse_args(argv)

    configure_logging()

    options = RunOptions(
        run_label=args.label,
        formula_version=args.formula_version,
        initiated_by=args.initiated_by,
    )

    if args.create_tables:
        init_models().create_all(engine)

    if args.enqueue:
        from ratings.scoring.jobs import enqueue_batch
        job = enqueue_batch(options)
        print(f'scoring batch enqueued: job_id={job.id}')
        return 0

    try:
        run_id = run_batch(options, timeout=args.timeout)
    except ScoringRunError as e:
        logger.error("scoring run failed (run_id=%s): %s", e.run_id, e)
        return 1

    print(f'scoring run completed: run_id={run_id}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
