"""
Listing lifecycle table.

Pure: given the current status and an event, say where the listing goes and
what must happen on the way. The workflow service in ``listings.py`` owns the
guards that need data (ownership, image count, notes) and the persistence.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from marketplace.services.errors import ErrorKind, ServiceError


class ListingStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    SOLD = "SOLD"


class ListingEvent(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    REPLACE_IMAGES = "replace_images"
    SUBMIT = "submit"
    PUBLISH = "publish"
    REJECT = "reject"
    MARK_SOLD = "mark_sold"
    DELETE = "delete"


@dataclass(frozen=True)
class Rule:
    # None means the listing is removed
    target: ListingStatus | None
    # run the content check and reset the moderation snapshot before moving
    recheck: bool = False


_S, _E = ListingStatus, ListingEvent

TRANSITIONS: dict[tuple[ListingStatus | None, ListingEvent], Rule] = {
    (None, _E.CREATE): Rule(_S.DRAFT),

    (_S.DRAFT, _E.EDIT): Rule(_S.DRAFT),
    (_S.DRAFT, _E.REPLACE_IMAGES): Rule(_S.DRAFT),
    (_S.DRAFT, _E.SUBMIT): Rule(_S.PENDING_REVIEW, recheck=True),
    (_S.DRAFT, _E.DELETE): Rule(None),

    (_S.PENDING_REVIEW, _E.PUBLISH): Rule(_S.PUBLISHED),
    (_S.PENDING_REVIEW, _E.REJECT): Rule(_S.REJECTED),

    # any change to live content goes back through review
    (_S.PUBLISHED, _E.EDIT): Rule(_S.PENDING_REVIEW, recheck=True),
    (_S.PUBLISHED, _E.REPLACE_IMAGES): Rule(_S.PENDING_REVIEW, recheck=True),
    (_S.PUBLISHED, _E.MARK_SOLD): Rule(_S.SOLD),
    (_S.PUBLISHED, _E.DELETE): Rule(None),

    # editing a rejected listing reopens it as a draft
    (_S.REJECTED, _E.EDIT): Rule(_S.DRAFT),
    (_S.REJECTED, _E.DELETE): Rule(None),

    (_S.SOLD, _E.DELETE): Rule(None),
}


@dataclass(frozen=True)
class Transition:
    current: ListingStatus | None
    event: ListingEvent
    target: ListingStatus | None = None
    removes: bool = False
    recheck: bool = False
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _parse_status(status: str | ListingStatus) -> ListingStatus | None:
    try:
        return ListingStatus(status)
    except ValueError:
        return None


def plan_transition(status: str | ListingStatus | None, event: ListingEvent) -> Transition:
    """``status=None`` plans from a listing that does not exist yet."""
    current = _parse_status(status) if status is not None else None
    known = status is None or current is not None
    rule = TRANSITIONS.get((current, event)) if known else None
    if rule is None:
        label = current.value if current is not None else str(status)
        return Transition(
            current=current,
            event=event,
            error=ServiceError(
                ErrorKind.CONFLICT,
                f"Cannot {event.value.replace('_', ' ')} a listing in status {label}",
            ),
        )
    return Transition(
        current=current,
        event=event,
        target=rule.target,
        removes=rule.target is None,
        recheck=rule.recheck,
    )


def allowed_events(status: str | ListingStatus | None) -> list[ListingEvent]:
    current = _parse_status(status) if status is not None else None
    if status is not None and current is None:
        return []
    return [event for (state, event) in TRANSITIONS if state == current]
