"""
Logging setup for the scoring entry points (scorejob, worker, RQ job).

LOG_LEVEL picks the level (default INFO), LOG_FORMAT picks "text" or "json".
Every record logged inside run_context(run_id) carries that run id, so all
lines of one batch can be grepped or filtered together.
"""
import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone

_current_run_id = contextvars.ContextVar('scoring_run_id', default=None)

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s%(run_tag)s: %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Chatty at INFO; scoring logs are what operators read
_QUIET_LOGGERS = ('urllib3', 'sqlalchemy.engine', 'rq.worker', 'redis')


@contextmanager
def run_context(run_id):
    """Tag every log record emitted inside the block with `run_id`."""
    token = _current_run_id.set(run_id)
    try:
        yield
    finally:
        _current_run_id.reset(token)


def current_run_id():
    return _current_run_id.get()


class RunContextFilter(logging.Filter):
    """Copies the active run id onto each record (run_id, run_tag)."""

    def filter(self, record):
        run_id = _current_run_id.get()
        record.run_id = run_id
        record.run_tag = f' run={run_id}' if run_id is not None else ''
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `run_id` is present only inside a run."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        run_id = getattr(record, 'run_id', None)
        if run_id is not None:
            entry['run_id'] = run_id
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _resolve_level(name):
    level = logging.getLevelName((name or 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging():
    """Install a single stderr handler on the root logger (safe to call again)."""
    level = _resolve_level(os.getenv('LOG_LEVEL'))

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RunContextFilter())
    if os.getenv('LOG_FORMAT', 'text').lower() == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
