"""
Valkey (Redis-compatible) access: session records and the change feed.

Thin layer over redis-py. Connection errors propagate as
redis.ConnectionError; nothing here retries or substitutes values.
"""

import json
import logging
import threading
from typing import Callable

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        record = client.get_json("session:abc")  # None when the key is absent
        release = client.subscribe("invoicer:changes:invoices", print)
        client.publish("invoicer:changes:invoices", "{}")
        release()
    """

    def __init__(self, url: str):
        self._client = redis.from_url(url, decode_responses=True)
        # Unreachable server fails at startup, not on the first request
        self._client.ping()
        logger.info("Connected to Valkey")

    def get_json(self, key: str) -> dict | list | None:
        """
        Read and decode a JSON value.

        Raises:
            ValueError: Stored value is not JSON
        """
        raw = self._client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}") from e

    def publish(self, channel: str, message: str) -> int:
        """Returns how many subscribers received the message."""
        return self._client.publish(channel, message)

    def subscribe(self, channel: str, handler: Callable[[str], None]) -> Callable[[], None]:
        """
        Deliver every message on channel to handler(data) from a worker thread.

        Returns a release function that stops the worker and closes the
        pub/sub connection. Calling it again does nothing.
        """
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{channel: lambda message: handler(message["data"])})
        worker = pubsub.run_in_thread(sleep_time=0.1, daemon=True)
        released = threading.Event()

        def release() -> None:
            if released.is_set():
                return
            released.set()
            worker.stop()
            pubsub.close()
            logger.debug(f"Released subscription to {channel}")

        logger.debug(f"Subscribed to {channel}")
        return release

    def close(self) -> None:
        self._client.close()
        logger.info("Valkey connection closed")
