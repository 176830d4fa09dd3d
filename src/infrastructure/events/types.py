# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions.

Using constants instead of string literals keeps a single source of
truth for event names and lets pattern subscribers ("challenge.*")
pick up new events automatically.

Adding a new event: add the constant to the appropriate class here;
publishers and pattern subscribers need no other change.
"""


class EventTypes:
    """All event types organized by domain."""

    class Challenge:
        """Challenge lifecycle events recorded by the Challenge entity."""

        CREATED = "challenge.created"
        RESPONSE_SUBMITTED = "challenge.response.submitted"
        EVALUATED = "challenge.evaluated"
        STATUS_CHANGED = "challenge.status.changed"
        DELETED = "challenge.deleted"


class EventPatterns:
    """Wildcard patterns for subscribing to multiple events."""

    ALL_CHALLENGE = "challenge.*"
    ALL = "*"

