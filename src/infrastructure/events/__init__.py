# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module for AI Fight Club.

This module provides an in-memory event bus for decoupled communication
between bounded contexts, and the dispatcher that publishes an
aggregate's domain events once its state has been persisted.

Components:
- EventBus: In-memory pub/sub with pattern matching
- EventTypes: Centralized event type constants
- DomainEventDispatcher: Drains aggregate events into the bus

Architecture:
    Entity records events → Service saves → Dispatcher → EventBus → Handlers

Quick Start:
    from src.infrastructure.events import get_event_bus, EventTypes

    event_bus = get_event_bus()
    event_bus.subscribe(EventTypes.Challenge.EVALUATED, my_handler)
"""

from src.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
    get_event_bus,
    reset_event_bus,
)
from src.infrastructure.events.dispatcher import DomainEventDispatcher
from src.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    # Event Bus
    "EventBus",
    "EventData",
    "EventHandler",
    "get_event_bus",
    "reset_event_bus",
    # Event Types
    "EventTypes",
    "EventPatterns",
    # Dispatch
    "DomainEventDispatcher",
]
