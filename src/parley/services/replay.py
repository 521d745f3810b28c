"""Single-use tracking for signed auth challenges."""

from __future__ import annotations

import logging

import redis

from parley.core.settings import settings

logger = logging.getLogger(__name__)


class ReplayProtectionService:
    """Remember which challenge nonces have been spent.

    Entries expire with the challenge itself, so the store never holds more
    than one TTL window of nonces.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None) -> None:
        self._redis = client
        self._ttl_seconds = ttl_seconds or settings.auth_challenge_ttl_seconds

    @staticmethod
    def _key(pubkey_hex: str, nonce_hex: str) -> str:
        return f"replay:{pubkey_hex}:{nonce_hex}"

    def is_replay(self, pubkey_hex: str, nonce_hex: str) -> bool:
        """Return True if the nonce has already been used by this key."""
        return bool(self._redis.exists(self._key(pubkey_hex, nonce_hex)))

    def register_replay(self, pubkey_hex: str, nonce_hex: str) -> bool:
        """Mark the nonce as used.

        Returns False when another request spent it first.
        """
        stored = self._redis.set(
            self._key(pubkey_hex, nonce_hex), "1", nx=True, ex=self._ttl_seconds
        )
        if not stored:
            logger.warning("Rejected reused challenge for key %s", pubkey_hex[:16])
        return bool(stored)


_client: redis.Redis | None = None


def get_replay_service() -> ReplayProtectionService:
    """Return a replay protection service on the shared redis connection pool."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(settings.redis_url)
    return ReplayProtectionService(_client)
