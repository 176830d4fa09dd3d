# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process event bus for challenge lifecycle events.

The ChallengeService publishes through DomainEventDispatcher once a write
has been persisted; other contexts subscribe here to react to challenge
lifecycle changes.

A subscription topic is either an exact event type
("challenge.evaluated") or a glob over event types ("challenge.*",
"*"). Handlers are coroutines receiving an EventData; a failing handler
is logged and counted, and never reaches the publisher.

Example:
    bus = get_event_bus()
    bus.subscribe(EventPatterns.ALL_CHALLENGE, on_challenge_event)
    await bus.publish(EventTypes.Challenge.EVALUATED, {"challenge_id": cid, "score": 85})
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None]]

_GLOB_CHARS = frozenset("*?[")


@dataclass
class EventData:
    """An event as delivered to handlers."""

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Subscription:
    """A handler bound to an event type or glob topic."""

    topic: str
    handler: EventHandler

    @property
    def is_pattern(self) -> bool:
        return not _GLOB_CHARS.isdisjoint(self.topic)

    def matches(self, event_type: str) -> bool:
        if self.is_pattern:
            return fnmatch.fnmatchcase(event_type, self.topic)
        return event_type == self.topic


class EventBus:
    """Async publish/subscribe over event type strings.

    Handlers for one event run concurrently; the publisher waits for
    all of them.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._published = 0
        self._handler_failures = 0

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        """Register handler for an event type or glob topic."""
        self._subscriptions.append(Subscription(topic, handler))
        logger.debug("Handler %s subscribed to %s", getattr(handler, "__name__", handler), topic)

    def unsubscribe(self, topic: str, handler: EventHandler) -> bool:
        """Remove one registration of handler for topic.

        Returns:
            False if handler was not subscribed to topic.
        """
        target = Subscription(topic, handler)
        try:
            self._subscriptions.remove(target)
        except ValueError:
            return False
        return True

    def handlers_for(self, event_type: str) -> list[EventHandler]:
        """Handlers that would receive an event of this type."""
        return [s.handler for s in self._subscriptions if s.matches(event_type)]

    async def _deliver(self, handler: EventHandler, event: EventData) -> None:
        try:
            await handler(event)
        except Exception:
            self._handler_failures += 1
            logger.exception(
                "Handler %s failed on %s (%s)",
                getattr(handler, "__name__", handler),
                event.event_type,
                event.event_id,
            )

    async def publish(self, event_type: str, payload: dict[str, Any]) -> EventData:
        """Deliver an event to every matching handler.

        Returns:
            The EventData that was delivered.
        """
        event = EventData(event_type=event_type, payload=payload)
        self._published += 1

        handlers = self.handlers_for(event_type)
        if handlers:
            logger.debug("Delivering %s to %d handler(s)", event_type, len(handlers))
            await asyncio.gather(*(self._deliver(h, event) for h in handlers))
        else:
            logger.debug("%s has no subscribers", event_type)
        return event

    def clear(self) -> None:
        self._subscriptions.clear()

    def get_stats(self) -> dict[str, Any]:
        """Subscription, delivery and failure counters."""
        exact = {s.topic for s in self._subscriptions if not s.is_pattern}
        patterns = {s.topic for s in self._subscriptions if s.is_pattern}
        return {
            "exact_subscriptions": len(exact),
            "pattern_subscriptions": len(patterns),
            "total_handlers": len(self._subscriptions),
            "events_published": self._published,
            "handler_failures": self._handler_failures,
        }


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus, created on first use."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Drop the process-wide bus and its subscriptions."""
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
