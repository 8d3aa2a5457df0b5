"""Tests for scripts/scorejob.py and scripts/worker.py entry points."""
from unittest.mock import MagicMock, patch

from ratings.scoring.runner import ScoringRunError
from scripts import scorejob, worker


class TestScorejobMain:

    @patch('scripts.scorejob.configure_logging')
    @patch('scripts.scorejob.run_batch', return_value=3)
    def test_success_exit_zero(self, mock_run_batch, _mock_logging, capsys):
        assert scorejob.main(['--label', 'nightly', '--timeout', '30']) == 0
        opts = mock_run_batch.call_args[0][0]
        assert opts.run_label == 'nightly'
        assert mock_run_batch.call_args[1]['timeout'] == 30.0
        assert 'run_id=3' in capsys.readouterr().out

    @patch('scripts.scorejob.configure_logging')
    @patch('scripts.scorejob.run_batch', side_effect=ScoringRunError(4, 'run 4 failed: boom'))
    def test_failure_exit_one(self, _mock_run_batch, _mock_logging):
        assert scorejob.main([]) == 1

    @patch('scripts.scorejob.configure_logging')
    @patch('scripts.scorejob.run_batch')
    def test_enqueue_skips_inline_run(self, mock_run_batch, _mock_logging):
        with patch('ratings.scoring.jobs.enqueue_batch', return_value=MagicMock(id='job-9')) as mock_enqueue:
            assert scorejob.main(['--enqueue', '--initiated-by', 'ops']) == 0
        mock_enqueue.assert_called_once()
        assert mock_enqueue.call_args[0][0].initiated_by == 'ops'
        mock_run_batch.assert_not_called()


class TestWorkerCycle:

    @patch('scripts.worker.run_batch', return_value=11)
    def test_cycle_returns_run_id(self, mock_run_batch):
        assert worker.run_cycle() == 11
        opts = mock_run_batch.call_args[0][0]
        assert opts.run_label.startswith('worker-')

    @patch('scripts.worker.WORKER_INITIATED_BY', 'cron-box')
    @patch('scripts.worker.run_batch', return_value=12)
    def test_cycle_uses_worker_initiator_setting(self, mock_run_batch):
        worker.run_cycle()
        assert mock_run_batch.call_args[0][0].initiated_by == 'cron-box'

    @patch('scripts.worker.run_batch', side_effect=ScoringRunError(None, 'start run: db down'))
    def test_failed_cycle_returns_none(self, _mock_run_batch):
        assert worker.run_cycle() is None
