import pytest
from hypothesis import given, strategies as st

from marketplace.services.errors import ErrorKind
from marketplace.services.listing_state import ListingEvent, ListingStatus, allowed_events, plan_transition

S, E = ListingStatus, ListingEvent

# (status, event) -> (target, recheck); target None means removed
EXPECTED = {
    (S.DRAFT, E.EDIT): (S.DRAFT, False),
    (S.DRAFT, E.REPLACE_IMAGES): (S.DRAFT, False),
    (S.DRAFT, E.SUBMIT): (S.PENDING_REVIEW, True),
    (S.DRAFT, E.DELETE): (None, False),
    (S.PENDING_REVIEW, E.PUBLISH): (S.PUBLISHED, False),
    (S.PENDING_REVIEW, E.REJECT): (S.REJECTED, False),
    (S.PUBLISHED, E.EDIT): (S.PENDING_REVIEW, True),
    (S.PUBLISHED, E.REPLACE_IMAGES): (S.PENDING_REVIEW, True),
    (S.PUBLISHED, E.MARK_SOLD): (S.SOLD, False),
    (S.PUBLISHED, E.DELETE): (None, False),
    (S.REJECTED, E.EDIT): (S.DRAFT, False),
    (S.REJECTED, E.DELETE): (None, False),
    (S.SOLD, E.DELETE): (None, False),
}


@given(status=st.sampled_from(list(ListingStatus)), event=st.sampled_from(list(ListingEvent)))
def test_transition_table(status, event):
    t = plan_transition(status, event)
    expected = EXPECTED.get((status, event))

    if expected is None:
        assert not t.ok
        assert t.error.kind is ErrorKind.CONFLICT
        assert t.error.http_status == 409
        assert status.value in t.error.message
        return

    target, recheck = expected
    assert t.ok
    assert t.target == target
    assert t.removes is (target is None)
    assert t.recheck is recheck


def test_plain_string_status_is_accepted():
    t = plan_transition("PUBLISHED", E.MARK_SOLD)
    assert t.ok and t.target is S.SOLD


def test_unknown_status_is_a_conflict():
    t = plan_transition("ARCHIVED", E.DELETE)
    assert not t.ok
    assert "ARCHIVED" in t.error.message


def test_pending_listing_cannot_be_deleted():
    t = plan_transition(S.PENDING_REVIEW, E.DELETE)
    assert t.error.message == "Cannot delete a listing in status PENDING_REVIEW"


@pytest.mark.parametrize(
    "status, events",
    [
        (S.SOLD, [E.DELETE]),
        (S.PENDING_REVIEW, [E.PUBLISH, E.REJECT]),
        (S.REJECTED, [E.EDIT, E.DELETE]),
    ],
)
def test_allowed_events(status, events):
    assert allowed_events(status) == events


def test_create_starts_as_draft():
    t = plan_transition(None, E.CREATE)
    assert t.ok
    assert t.target is S.DRAFT
    assert not t.recheck


def test_unknown_status_allows_nothing():
    assert allowed_events("ARCHIVED") == []
