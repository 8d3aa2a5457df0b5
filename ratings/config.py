"""
Centralized configuration — env vars, run defaults, profile set.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis (RQ job queue) ─────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Scoring run defaults ─────────────────────────────────────────────────────
SCORING_RUN_LABEL = os.getenv('SCORING_RUN_LABEL', '')
SCORING_FORMULA_VERSION = os.getenv('SCORING_FORMULA_VERSION', 'v1')
SCORING_INITIATED_BY = os.getenv('SCORING_INITIATED_BY', 'scorejob')
SCOREJOB_TIMEOUT_SEC = int(os.getenv('SCOREJOB_TIMEOUT_SEC', '120'))

DEFAULT_FORMULA_VERSION = 'v1'
DEFAULT_INITIATED_BY = 'scorejob'

# ── Worker scheduler ─────────────────────────────────────────────────────────
WORKER_INTERVAL_SEC = int(os.getenv('WORKER_INTERVAL_SEC', '1800'))
WORKER_RUN_ON_START = os.getenv('WORKER_RUN_ON_START', 'true').lower() == 'true'
WORKER_INITIATED_BY = os.getenv('WORKER_INITIATED_BY', 'worker')

# ── Profile set (closed) ─────────────────────────────────────────────────────
PROFILE_SLUGS = [
    'tactical',
    'edc',
    'value',
    'throw',
    'flood',
]

# ── Run status values ─────────────────────────────────────────────────────────
RUN_STATUSES = [
    'running',
    'completed',
    'failed',
]

# Failure text stored on scoring_runs.notes is cut to this length
RUN_NOTES_MAX_CHARS = 2000
