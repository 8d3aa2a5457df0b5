"""
Shared client instances — Redis (RQ job queue connection).

redis.from_url() does not open a socket until first use, so importing this
module is always safe (even when Redis is down during tests).
"""
import redis

from ratings.config import REDIS_URL


# ── Redis ─────────────────────────────────────────────────────────────────────
# RQ stores pickled payloads, so responses must stay as bytes
redis_client = redis.from_url(REDIS_URL)
