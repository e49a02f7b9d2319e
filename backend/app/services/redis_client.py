"""Redis pub/sub sink for committed ledger events."""

from __future__ import annotations

import json
import logging
from typing import Any, Final

import redis

logger = logging.getLogger(__name__)

EVENTS_CHANNEL: Final[str] = "vault:events"


class RedisEventPublisher:
    """Publishes each committed LedgerEvent as JSON.

    Runs after commit: a Redis failure is logged and never undoes the operation.
    """

    def __init__(self, client: redis.Redis, *, channel: str = EVENTS_CHANNEL) -> None:
        self._client = client
        self._channel = channel

    @classmethod
    def from_url(cls, url: str, *, channel: str = EVENTS_CHANNEL) -> "RedisEventPublisher":
        return cls(redis.from_url(url), channel=channel)

    def publish(self, message: dict[str, Any]) -> None:
        try:
            self._client.publish(self._channel, json.dumps(message))
        except redis.RedisError as e:
            logger.warning("event publish failed (seq=%s): %s", message.get("seq"), e)
