# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain event dispatcher.

Aggregates record DomainEvent objects while their state changes. Once the
owning service has durably written the aggregate, it hands the aggregate
to the dispatcher, which drains the pending events and publishes them to
the event bus in the order they were recorded. Aggregates whose write
fails are never dispatched, so subscribers only observe committed state.

Example:
    dispatcher = DomainEventDispatcher(get_event_bus())

    saved = await repository.save(challenge)
    await dispatcher.dispatch(challenge)
"""

import logging
from datetime import datetime
from typing import Any, Protocol

from src.infrastructure.events.bus import EventBus, get_event_bus

logger = logging.getLogger(__name__)


class PendingDomainEvent(Protocol):
    """Shape of a recorded domain event."""

    event_type: str
    payload: dict[str, Any]
    aggregate_id: str
    event_id: str
    occurred_at: datetime


class EventSource(Protocol):
    """An aggregate that records domain events."""

    def pull_domain_events(self) -> list[PendingDomainEvent]: ...


class DomainEventDispatcher:
    """Publishes drained domain events to an event bus.

    Attributes:
        _event_bus: Bus (or any object with an async ``publish``) to send to.
        _dispatched: Running count of events published.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            event_bus: Target bus. Defaults to the process-wide singleton.
        """
        self._event_bus = event_bus or get_event_bus()
        self._dispatched = 0

    @property
    def dispatched_count(self) -> int:
        return self._dispatched

    @staticmethod
    def build_payload(event: PendingDomainEvent) -> dict[str, Any]:
        """Flatten a domain event into the bus payload."""
        return {
            **event.payload,
            "aggregate_id": event.aggregate_id,
            "domain_event_id": event.event_id,
            "occurred_at": event.occurred_at.isoformat(),
        }

    async def dispatch(self, aggregate: EventSource) -> int:
        """Drain and publish all pending events of an aggregate.

        A failure to publish one event is logged and does not stop the
        remaining events; the aggregate write has already succeeded.

        Args:
            aggregate: The aggregate whose events should be published.

        Returns:
            Number of events published successfully.
        """
        events = aggregate.pull_domain_events()
        if not events:
            return 0

        published = 0
        for event in events:
            try:
                await self._event_bus.publish(event.event_type, self.build_payload(event))
                published += 1
            except Exception as e:
                logger.error(
                    "Failed to dispatch domain event %s for %s: %s",
                    event.event_type,
                    event.aggregate_id,
                    str(e),
                    exc_info=True,
                )

        self._dispatched += published
        logger.debug(
            "Dispatched %d/%d domain events",
            published,
            len(events),
        )
        return published
