"""
Login throttle backed by Redis.

Numeric PINs are short, so credential attempts are counted per normalized
login id in a fixed window.
"""

import logging

import redis

from driver_portal.config import settings

logger = logging.getLogger(__name__)


def rate_limit(client: redis.Redis, key: str, max_requests: int, window_seconds: int) -> bool:
    """Fixed-window counter; True while the key is under max_requests."""
    current = client.incr(key)
    if current == 1:
        client.expire(key, window_seconds)
    return current <= max_requests


class LoginThrottle:
    """Counts credential attempts per login id."""

    def __init__(self, client: redis.Redis, max_attempts: int, window_seconds: int):
        self.client = client
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    def allow(self, login_key: str) -> bool:
        """
        Registers one attempt and tells whether it is within the limit.
        Redis being unreachable never blocks a login.
        """
        try:
            return rate_limit(
                self.client,
                f"driver-login:{login_key}",
                self.max_attempts,
                self.window_seconds,
            )
        except redis.RedisError as e:
            logger.warning("Login throttle unavailable, allowing attempt: %s", e)
            return True

    def reset(self, login_key: str) -> None:
        try:
            self.client.delete(f"driver-login:{login_key}")
        except redis.RedisError as e:
            logger.warning("Login throttle reset failed: %s", e)


def build_login_throttle():
    """Returns the configured throttle, or None when disabled."""
    if not settings.login_throttle_enabled:
        return None

    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5
    )
    return LoginThrottle(client, settings.login_max_attempts, settings.login_window_seconds)
