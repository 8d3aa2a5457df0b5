"""
Background dispatch — enqueue scoring batches on RQ.

The RQ worker process runs run_batch_job(); the batch itself enforces
SCOREJOB_TIMEOUT_SEC so it can roll back and mark the run failed before RQ's
own job timeout would kill the process.
"""
import logging

from ratings.config import SCOREJOB_TIMEOUT_SEC
from ratings.scoring.runner import RunOptions, run_batch

logger = logging.getLogger('scoring.jobs')

# Headroom between the in-batch deadline and RQ's hard kill
JOB_TIMEOUT_MARGIN_SEC = 30


# ── Lazy RQ queue (avoids import-time Redis connection) ──────────────────────

_queue = None


def _get_queue():
    global _queue
    if _queue is None:
        from ratings.extensions import redis_client
        from rq import Queue
        _queue = Queue('scoring', connection=redis_client)
    return _queue


def enqueue_batch(options: RunOptions = None):
    """Enqueue one scoring batch. Returns the RQ job."""
    opts = options or RunOptions()
    job = _get_queue().enqueue(
        run_batch_job,
        opts.run_label,
        opts.formula_version,
        opts.initiated_by,
        job_timeout=SCOREJOB_TIMEOUT_SEC + JOB_TIMEOUT_MARGIN_SEC,
    )
    logger.info("Enqueued scoring batch job %s", job.id)
    return job


def run_batch_job(run_label: str = '', formula_version: str = '', initiated_by: str = '') -> int:
    """RQ entry point. Returns the completed run id; failures raise so RQ marks the job failed."""
    return run_batch(
        RunOptions(run_label=run_label, formula_version=formula_version, initiated_by=initiated_by),
        timeout=SCOREJOB_TIMEOUT_SEC,
    )
