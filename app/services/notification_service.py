"""Lifecycle event delivery to the notification queue."""

import json
from typing import Protocol

import redis.asyncio as aioredis
import structlog

from app.scheduling.models import LifecycleEvent

logger = structlog.get_logger(__name__)


class NotificationDispatcher(Protocol):
    """Anything that can hand a lifecycle event to the notification pipeline."""

    async def dispatch(self, event: LifecycleEvent) -> None: ...


class RedisNotificationDispatcher:
    """Pushes lifecycle events onto a Redis list consumed by the notifier."""

    def __init__(self, client: aioredis.Redis, queue_key: str):
        """Initialize dispatcher with Redis client and queue key."""
        self.client = client
        self.queue_key = queue_key

    async def dispatch(self, event: LifecycleEvent) -> None:
        """
        Enqueue an event for delivery.

        Args:
            event: Event produced by a lifecycle action

        Raises:
            redis.RedisError: If the event could not be enqueued
        """
        payload = json.dumps(event.to_dict(), default=str)
        length = await self.client.lpush(self.queue_key, payload)

        logger.info(
            "lifecycle_event_enqueued",
            appointment_id=event.appointment_id,
            action=event.action,
            queue=self.queue_key,
            queue_length=length,
        )
