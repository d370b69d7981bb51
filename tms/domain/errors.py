"""
Error taxonomy for the brokerage core.

Every failure the core reports is a `BrokerError` carrying an explicit
`ErrorKind` plus the ids and limits involved, so callers can branch on the
kind instead of parsing messages. Only conflicts are worth retrying.
"""

from enum import Enum
from typing import Any
from uuid import UUID


class ErrorKind(str, Enum):
    """Kinds of failure surfaced to callers."""

    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    CONFLICT = "conflict"


class BrokerError(Exception):
    """Base class for failures raised by the core services."""

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": {k: str(v) if isinstance(v, UUID) else v for k, v in self.context.items()},
        }


class NotFoundError(BrokerError):
    """A referenced load, bid, booking or transporter does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: UUID):
        super().__init__(
            f"{entity} not found with id: {entity_id}",
            entity=entity,
            entity_id=entity_id,
        )


class InvalidTransitionError(BrokerError):
    """A status-machine rule would be violated."""

    kind = ErrorKind.INVALID_TRANSITION


class InsufficientCapacityError(BrokerError):
    """Requested trucks exceed what the load or the inventory can supply."""

    kind = ErrorKind.INSUFFICIENT_CAPACITY

    def __init__(self, message: str, requested: int, available: int, **context: Any):
        super().__init__(
            f"{message}. Requested: {requested}, Available: {available}",
            requested=requested,
            available=available,
            **context,
        )


class ConflictError(BrokerError):
    """The load changed underneath the operation; retrying may succeed."""

    kind = ErrorKind.CONFLICT
    retryable = True

    def __init__(self, load_id: UUID):
        super().__init__(
            f"Load {load_id} was modified by another transaction. Please retry.",
            load_id=load_id,
        )


class StaleVersionError(Exception):
    """
    Raised by storage when a load write carries an outdated version.

    Services translate it into `ConflictError`.
    """

    def __init__(self, load_id: UUID, expected_version: int):
        super().__init__(f"Stale version {expected_version} for load {load_id}")
        self.load_id = load_id
        self.expected_version = expected_version
