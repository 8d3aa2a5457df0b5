"""Tests for ratings.scoring.runner — end-to-end batch runs against SQLite."""
import itertools
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from ratings.models.flashlight_score import FlashlightScore
from ratings.models.scoring_profile import ScoringProfile
from ratings.models.scoring_run import ScoringRun
from ratings.scoring.runner import (
    BatchTimeout,
    RunOptions,
    ScoringRunError,
    run_batch,
)


def _scores(session, run_id):
    return session.execute(
        select(FlashlightScore, ScoringProfile.slug)
        .join(ScoringProfile, ScoringProfile.id == FlashlightScore.profile_id)
        .where(FlashlightScore.run_id == run_id)
    ).all()


def _score_count(session, run_id=None):
    stmt = select(func.count()).select_from(FlashlightScore)
    if run_id is not None:
        stmt = stmt.where(FlashlightScore.run_id == run_id)
    return session.execute(stmt).scalar_one()


# ---------------------------------------------------------------------------
# RunOptions
# ---------------------------------------------------------------------------

class TestRunOptions:

    def test_blank_fields_get_defaults(self):
        opts = RunOptions(run_label='  ', formula_version='', initiated_by=None).with_defaults()
        assert opts.run_label.startswith('batch-')
        assert opts.formula_version == 'v1'
        assert opts.initiated_by == 'scorejob'

    def test_given_fields_are_trimmed_and_kept(self):
        opts = RunOptions(run_label=' nightly ', formula_version='v2', initiated_by='cron').with_defaults()
        assert opts == RunOptions(run_label='nightly', formula_version='v2', initiated_by='cron')


# ---------------------------------------------------------------------------
# Successful runs
# ---------------------------------------------------------------------------

class TestRunBatch:

    def test_single_flashlight(self, session_factory, db_session, add_flashlight, sample_spec):
        fid = add_flashlight(price=89.99, **sample_spec)

        run_id = run_batch(RunOptions(run_label='t1', initiated_by='pytest'),
                           session_factory=session_factory)

        run = db_session.get(ScoringRun, run_id)
        assert run.status == 'completed'
        assert run.completed_at is not None
        assert run.formula_version == 'v1'

        rows = _scores(db_session, run_id)
        assert sorted(slug for _, slug in rows) == ['edc', 'flood', 'tactical', 'throw', 'value']
        for score, _ in rows:
            assert score.flashlight_id == fid
            assert score.rank_position == 1
            assert 0.0 <= score.score <= 100.0
            assert score.metric_breakdown['formula_version'] == 'v1'
            assert score.metric_breakdown['raw']['price_usd'] == 89.99

    def test_many_flashlights_ranked_densely(self, session_factory, db_session, add_flashlight):
        for lumens in (300, 1200, 1200, 4000):
            add_flashlight(max_lumens=lumens)

        run_id = run_batch(session_factory=session_factory)

        assert _score_count(db_session, run_id) == 4 * 5
        flood = sorted(
            (s.score, s.rank_position) for s, slug in _scores(db_session, run_id) if slug == 'flood'
        )
        ranks = [rank for _, rank in reversed(flood)]
        assert ranks == [1, 2, 2, 3]

    def test_empty_catalog_completes(self, session_factory, db_session):
        run_id = run_batch(session_factory=session_factory)
        assert db_session.get(ScoringRun, run_id).status == 'completed'
        assert _score_count(db_session, run_id) == 0

    def test_unknown_formula_version_is_recorded(self, session_factory, db_session, add_flashlight, sample_spec):
        add_flashlight(**sample_spec)
        run_id = run_batch(RunOptions(formula_version='v9-experimental'), session_factory=session_factory)

        assert db_session.get(ScoringRun, run_id).formula_version == 'v9-experimental'
        for score, _ in _scores(db_session, run_id):
            assert score.metric_breakdown['formula_version'] == 'v9-experimental'

    def test_consecutive_runs_are_independent(self, session_factory, db_session, add_flashlight, sample_spec):
        add_flashlight(**sample_spec)
        first = run_batch(session_factory=session_factory)
        second = run_batch(session_factory=session_factory)

        assert first != second
        assert _score_count(db_session, first) == 5
        assert _score_count(db_session, second) == 5
        a = {slug: s.score for s, slug in _scores(db_session, first)}
        b = {slug: s.score for s, slug in _scores(db_session, second)}
        assert a == b

    def test_sends_completion_notification(self, session_factory, add_flashlight):
        add_flashlight(max_lumens=500)
        with patch('ratings.scoring.runner.notify_run_complete') as notify:
            run_id = run_batch(RunOptions(run_label='n'), session_factory=session_factory)
        notify.assert_called_once()
        args = notify.call_args[0]
        assert args[0] == run_id
        assert args[1].run_label == 'n'
        assert args[2] == 1


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestRunBatchFailures:

    @patch('ratings.scoring.runner.notify_run_failed')
    @patch('ratings.scoring.runner.compute_scores', side_effect=RuntimeError('boom'))
    def test_failure_marks_run_and_writes_nothing(self, mock_compute, mock_notify,
                                                  session_factory, db_session, add_flashlight):
        add_flashlight(max_lumens=500)

        with pytest.raises(ScoringRunError) as exc_info:
            run_batch(session_factory=session_factory)

        run_id = exc_info.value.run_id
        assert run_id is not None
        assert isinstance(exc_info.value.__cause__, RuntimeError)

        run = db_session.get(ScoringRun, run_id)
        assert run.status == 'failed'
        assert run.notes == 'error: boom'
        assert run.completed_at is not None
        assert _score_count(db_session) == 0
        mock_notify.assert_called_once()
        assert mock_notify.call_args[0][0] == run_id

    def test_failure_midway_rolls_back_earlier_items(self, session_factory, db_session, add_flashlight, sample_spec):
        add_flashlight(**sample_spec)
        add_flashlight(**sample_spec)

        from ratings.scoring.engine import compute_scores as real_compute
        calls = {'n': 0}

        def flaky(row, version):
            calls['n'] += 1
            if calls['n'] == 2:
                raise ValueError('bad row')
            return real_compute(row, version)

        with patch('ratings.scoring.runner.compute_scores', side_effect=flaky):
            with pytest.raises(ScoringRunError):
                run_batch(session_factory=session_factory)

        assert _score_count(db_session) == 0

    def test_start_run_failure_has_no_run_id(self, session_factory):
        with patch('ratings.scoring.runner.start_run', side_effect=RuntimeError('db down')):
            with pytest.raises(ScoringRunError) as exc_info:
                run_batch(session_factory=session_factory)
        assert exc_info.value.run_id is None

    @patch('ratings.scoring.runner.notify_run_failed')
    def test_timeout_fails_run(self, mock_notify, session_factory, db_session, add_flashlight):
        add_flashlight(max_lumens=500)

        with patch('ratings.scoring.runner.time.monotonic', side_effect=itertools.count(0, 10)):
            with pytest.raises(ScoringRunError) as exc_info:
                run_batch(session_factory=session_factory, timeout=5)

        assert isinstance(exc_info.value.__cause__, BatchTimeout)
        run = db_session.get(ScoringRun, exc_info.value.run_id)
        assert run.status == 'failed'
        assert run.notes.startswith('error: deadline exceeded')
        assert _score_count(db_session) == 0

    @patch('ratings.scoring.runner.notify_run_failed')
    @patch('ratings.scoring.runner.fail_run', side_effect=RuntimeError('db gone'))
    @patch('ratings.scoring.runner.compute_scores', side_effect=RuntimeError('boom'))
    def test_original_error_survives_failed_bookkeeping(self, mock_compute, mock_fail, mock_notify,
                                                        session_factory, add_flashlight):
        add_flashlight(max_lumens=500)
        with pytest.raises(ScoringRunError) as exc_info:
            run_batch(session_factory=session_factory)
        assert str(exc_info.value.__cause__) == 'boom'


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestRunBatchCancellation:

    @patch('ratings.scoring.runner.notify_run_failed')
    @patch('ratings.scoring.runner.compute_scores', side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt_marks_run_failed(self, mock_compute, mock_notify,
                                                 session_factory, db_session, add_flashlight):
        add_flashlight(max_lumens=500)

        with pytest.raises(KeyboardInterrupt):
            run_batch(RunOptions(run_label='ctrl-c'), session_factory=session_factory)

        run = db_session.execute(select(ScoringRun).where(ScoringRun.run_label == 'ctrl-c')).scalar_one()
        assert run.status == 'failed'
        assert run.completed_at is not None
        assert run.notes == 'error: KeyboardInterrupt'
        assert _score_count(db_session) == 0
        assert mock_notify.call_args[0][2] == 'KeyboardInterrupt'

    @patch('ratings.scoring.runner.notify_run_failed')
    @patch('ratings.scoring.runner.rank_run', side_effect=SystemExit(2))
    def test_system_exit_propagates_unchanged(self, mock_rank, mock_notify,
                                              session_factory, db_session, add_flashlight):
        add_flashlight(max_lumens=500)

        with pytest.raises(SystemExit) as exc_info:
            run_batch(RunOptions(run_label='sigterm'), session_factory=session_factory)

        assert exc_info.value.code == 2
        run = db_session.execute(select(ScoringRun).where(ScoringRun.run_label == 'sigterm')).scalar_one()
        assert run.status == 'failed'
        assert _score_count(db_session) == 0


class TestRunBatchStatementTimeout:

    @patch('ratings.scoring.runner.set_statement_timeout')
    def test_timeout_applied_to_scoring_session(self, mock_set_timeout, session_factory):
        run_batch(session_factory=session_factory, timeout=45)
        assert mock_set_timeout.call_args[0][1] == 45

    @patch('ratings.scoring.runner.set_statement_timeout')
    def test_no_timeout_leaves_statements_uncapped(self, mock_set_timeout, session_factory):
        run_batch(session_factory=session_factory)
        mock_set_timeout.assert_not_called()


class TestRunBatchLogging:

    def test_batch_log_lines_carry_run_id(self, session_factory, add_flashlight, caplog):
        from ratings.logging_config import RunContextFilter

        add_flashlight(max_lumens=500)
        caplog.handler.addFilter(RunContextFilter())
        with caplog.at_level('INFO', logger='scoring.runner'):
            run_id = run_batch(session_factory=session_factory)

        runner_records = [r for r in caplog.records if r.name == 'scoring.runner']
        assert runner_records
        assert all(r.run_id == run_id for r in runner_records)
