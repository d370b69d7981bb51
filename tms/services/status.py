"""
Load status guard.

Pure checks run before a service commits a status change. They never mutate
anything; a violation raises `InvalidTransitionError`.
"""

from enum import Enum

from tms.domain import InvalidTransitionError, LoadStatus


class LoadAction(str, Enum):
    """Actions that depend on the current load status."""

    BID = "BID"
    CANCEL = "CANCEL"
    BOOK = "BOOK"


# Statuses in which each action is refused
_BLOCKED: dict[LoadAction, frozenset[LoadStatus]] = {
    LoadAction.BID: frozenset({LoadStatus.BOOKED, LoadStatus.CANCELLED}),
    LoadAction.CANCEL: frozenset({LoadStatus.BOOKED}),
    LoadAction.BOOK: frozenset({LoadStatus.CANCELLED}),
}

_VERBS = {
    LoadAction.BID: "bid on",
    LoadAction.CANCEL: "cancel",
    LoadAction.BOOK: "book",
}


def validate_transition(current_status: LoadStatus, action: LoadAction) -> None:
    """Raise if `action` is not allowed on a load in `current_status`."""
    if current_status in _BLOCKED[action]:
        raise InvalidTransitionError(
            f"Cannot {_VERBS[action]} load with status {current_status.value}",
            status=current_status.value,
            action=action.value,
        )


def validate_booked_status(remaining_trucks: int | None) -> None:
    """A load may only become BOOKED once no trucks remain."""
    if remaining_trucks is None or remaining_trucks != 0:
        raise InvalidTransitionError(
            "Load can only be marked as BOOKED when remaining_trucks is 0",
            remaining_trucks=remaining_trucks,
        )
