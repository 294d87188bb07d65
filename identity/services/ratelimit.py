"""
Fixed-window request counters in Redis.

Counters are a convenience, not a security boundary for the credential
lifecycle: when Redis is unreachable the limiter lets requests through.
"""

import time
from typing import Mapping, NamedTuple, Optional

import redis

from arxiv.base import logging

logger = logging.getLogger(__name__)


class Decision(NamedTuple):
    """Outcome of counting one request."""

    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0
    """Seconds until the current window closes, if not allowed."""


class RateLimiter(object):
    """
    Counts requests per key in fixed windows.

    The Redis client is thread safe and connections are attached at the time
    a command is executed, so one limiter can serve the whole application.
    """

    def __init__(self, r: redis.Redis, prefix: str = 'ratelimit') -> None:
        self.r = r
        self.prefix = prefix

    def hit(self, key: str, limit: int, window: int,
            now: Optional[float] = None) -> Decision:
        """Count a request against ``key`` and decide whether to allow it."""
        now = time.time() if now is None else now
        window_start = int(now // window) * window
        bucket = f'{self.prefix}:{key}:{window_start}'
        try:
            pipe = self.r.pipeline()
            pipe.incr(bucket)
            pipe.expire(bucket, window * 2)
            count, _ = pipe.execute()
        except redis.exceptions.RedisError as e:
            logger.error('Rate limit check failed, allowing request: %s', e)
            return Decision(allowed=True, limit=limit, remaining=limit)

        count = int(count)
        if count > limit:
            retry_after = max(1, int(window_start + window - now))
            return Decision(allowed=False, limit=limit, remaining=0,
                            retry_after=retry_after)
        return Decision(allowed=True, limit=limit, remaining=limit - count)


def get_redis(config: Mapping) -> redis.Redis:
    """Get a Redis client for the application configuration."""
    if config.get('REDIS_FAKE'):
        import fakeredis     # Only needed in development and testing.
        logger.debug('Using FakeRedis for rate limit counters')
        return fakeredis.FakeStrictRedis()
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    token = config.get('REDIS_TOKEN', None)
    logger.debug('New Redis connection at %s, port %s', host, port)
    return redis.StrictRedis(host=host, port=port, db=db, password=token,
                             socket_timeout=1, socket_connect_timeout=1)


def get_rate_limiter(config: Mapping) -> RateLimiter:
    return RateLimiter(get_redis(config))
