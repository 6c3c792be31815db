"""
Error types raised by the decision engine.

All errors are synchronous and surfaced directly to the caller. Nothing in
the engine retries; the caller decides how to present the failure.
"""

from enum import Enum


class SleepTrainError(Exception):
    """Base class for all engine errors."""


class InvalidStateTransition(SleepTrainError):
    """Requested event is not legal from the session's current state."""

    def __init__(self, current: Enum, requested: Enum):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from {current.value} to {requested.value}")


class NotFound(SleepTrainError):
    """A referenced session, cycle, schedule or transition does not exist."""

    def __init__(self, kind: str, reference: str | None = None):
        self.kind = kind
        self.reference = reference
        if reference:
            super().__init__(f"{kind} not found: {reference}")
        else:
            super().__init__(f"{kind} not found")


class ValidationError(SleepTrainError, ValueError):
    """Malformed or out-of-range input, rejected before any computation."""
