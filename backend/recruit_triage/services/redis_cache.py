"""
Redis dedupe cache for processed messages and threads.

Marks each id once with a TTL (processed_email:<id>, processed_thread:<id>).
Fails open: when Redis is unavailable or errors, the id is treated as new so
messages are over-processed rather than silently lost.
"""
import logging
from typing import Optional

import redis

from ..config import Settings

logger = logging.getLogger(__name__)

KEY_PREFIXES = {
    "email": "processed_email",
    "thread": "processed_thread",
}


def create_redis_client(settings: Settings) -> Optional["redis.Redis"]:
    """
    Create a Redis client and check the connection.
    Returns None if Redis is unavailable (connection failed).
    """
    try:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        logger.debug("Redis dedupe cache connected successfully")
        return client
    except Exception as e:
        logger.warning(f"Redis unavailable: {e}. Dedupe disabled for this run.")
        return None


def dedupe_key(item_id: str, kind: str = "email") -> str:
    try:
        prefix = KEY_PREFIXES[kind]
    except KeyError:
        raise ValueError(f"Unknown dedupe kind: {kind!r}") from None
    return f"{prefix}:{item_id}"


class DedupeCache:
    """TTL-backed 'seen' markers. The first sight of an id fixes its expiry; it is never refreshed."""

    def __init__(self, client: Optional["redis.Redis"], ttl_s: int = 3600):
        self.client = client
        self.ttl_s = ttl_s

    @classmethod
    def from_settings(cls, settings: Settings) -> "DedupeCache":
        return cls(create_redis_client(settings), ttl_s=settings.dedupe_ttl_s)

    def should_process(self, item_id: str, kind: str = "email") -> bool:
        """
        True if the id is new (and mark it seen), False if it was already processed
        within the TTL window. Cache errors return True.
        """
        key = dedupe_key(item_id, kind)
        if self.client is None:
            return True

        try:
            # SET NX: only the first caller within the window gets True.
            created = self.client.set(key, "1", ex=self.ttl_s, nx=True)
        except Exception as e:
            logger.warning(f"Redis dedupe error for {key}: {e}. Processing anyway.")
            return True

        if not created:
            logger.info(f"{key} already processed, skipping")
            return False
        return True

    def is_processed(self, item_id: str, kind: str = "email") -> bool:
        """Read-only check for dry runs: never writes a marker. Cache errors return False."""
        key = dedupe_key(item_id, kind)
        if self.client is None:
            return False
        try:
            return bool(self.client.exists(key))
        except Exception as e:
            logger.warning(f"Redis dedupe error for {key}: {e}. Processing anyway.")
            return False

