"""
Run orchestrator — one batch scoring run, start to finish.

    start run (own commit) → [unit of work: ensure profiles → load specs →
    score + upsert every item → dense-rank → mark completed] → commit

Scoring and ranking share a single unit of work: either every score of the run
lands together with status=completed, or nothing does. On failure the run row
is marked failed through a separate session (it was committed up front), so
failed runs stay observable. No retries here; the scheduler decides.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ratings.config import PROFILE_SLUGS, DEFAULT_FORMULA_VERSION, DEFAULT_INITIATED_BY
from ratings.database import get_session, unit_of_work
from ratings.logging_config import run_context
from ratings.scoring.engine import compute_scores
from ratings.scoring.ranker import rank_run
from ratings.scoring.store import (
    start_run, complete_run, fail_run,
    ensure_profiles, upsert_score, load_specs, set_statement_timeout,
)
from ratings.services.notifications import notify_run_complete, notify_run_failed

logger = logging.getLogger('scoring.runner')


class ScoringRunError(Exception):
    """A batch failed. `run_id` is the allocated run (None if it never started)."""

    def __init__(self, run_id: Optional[int], message: str):
        super().__init__(message)
        self.run_id = run_id


class BatchTimeout(Exception):
    """The batch ran past its deadline."""


@dataclass
class RunOptions:
    run_label: str = ''
    formula_version: str = ''
    initiated_by: str = ''

    def with_defaults(self) -> 'RunOptions':
        """Fill blank / whitespace-only fields with their defaults."""
        label = (self.run_label or '').strip()
        if not label:
            label = f"batch-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        return RunOptions(
            run_label=label,
            formula_version=(self.formula_version or '').strip() or DEFAULT_FORMULA_VERSION,
            initiated_by=(self.initiated_by or '').strip() or DEFAULT_INITIATED_BY,
        )


def _check_deadline(deadline: Optional[float], where: str):
    if deadline is not None and time.monotonic() > deadline:
        raise BatchTimeout(f"deadline exceeded {where}")


def run_batch(options: RunOptions = None, session_factory=None, timeout: float = None) -> int:
    """
    Score every active flashlight under a new run. Returns the run id.

    Args:
        options:         label / formula version / initiator (blanks defaulted).
        session_factory: callable returning a new Session (default: get_session).
        timeout:         seconds before the batch aborts and rolls back. Checked
                         between flashlights; on Postgres it also caps each
                         statement (statement_timeout), so a hung query fails
                         the run instead of blocking it. Other dialects only
                         get the between-item check.

    Raises:
        ScoringRunError: on any failure; the run (if allocated) is marked failed.
        KeyboardInterrupt, SystemExit: re-raised unchanged after the run is
            marked failed.
    """
    opts = (options or RunOptions()).with_defaults()
    factory = session_factory or get_session
    deadline = time.monotonic() + timeout if timeout else None

    try:
        run_id = start_run(factory, opts.run_label, opts.formula_version, opts.initiated_by)
    except Exception as e:
        logger.error("Could not start scoring run '%s': %s", opts.run_label, e, exc_info=True)
        raise ScoringRunError(None, f"start run: {e}") from e

    with run_context(run_id):
        items = _score_run(factory, run_id, opts, deadline, timeout)

        logger.info("Run %d completed: %d flashlights, %d scores",
                    run_id, items, items * len(PROFILE_SLUGS))
        notify_run_complete(run_id, opts, items)
    return run_id


def _score_run(factory, run_id: int, opts: RunOptions, deadline: Optional[float], timeout) -> int:
    """Score, rank and complete `run_id` in one unit of work. Returns items scored."""
    items = 0
    try:
        with unit_of_work(factory) as session:
            if timeout:
                set_statement_timeout(session, timeout)
            profile_ids = ensure_profiles(session, PROFILE_SLUGS)
            rows = load_specs(session)
            logger.info("Run %d: scoring %d flashlights", run_id, len(rows))

            for row in rows:
                _check_deadline(deadline, f"before flashlight {row.flashlight_id}")
                scores, breakdown = compute_scores(row, opts.formula_version)
                for slug in PROFILE_SLUGS:
                    upsert_score(session, run_id, row.flashlight_id, profile_ids[slug],
                                 scores.get(slug), breakdown)
                items += 1

            _check_deadline(deadline, "before ranking")
            rank_run(session, run_id)
            complete_run(session, run_id)
    except BaseException as e:
        logger.error("Run %d FAILED after %d items: %r", run_id, items, e, exc_info=True)
        try:
            fail_run(factory, run_id, e)
        except Exception:
            logger.error("Could not record failure on run %d", run_id, exc_info=True)
        notify_run_failed(run_id, opts, str(e) or type(e).__name__)
        if not isinstance(e, Exception):
            # cancellation (KeyboardInterrupt, SystemExit) propagates as-is
            raise
        raise ScoringRunError(run_id, f"run {run_id} failed: {e}") from e
    return items
