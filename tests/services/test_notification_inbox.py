"""
Tests for the notification inbox (NotificationSelector + NotificationService).

Covers:
- newest-first listing, limit, unread filter
- unread counter
- toggle_read: recipient only, flips both ways
- mark_all_read: returns the number changed
- drafts persisted verbatim through the dispatcher
"""

from uuid import uuid4

import pytest

from clearance_kernel.domain.dtos import NotificationDraft
from clearance_kernel.domain.values import NotificationCategory, NotificationStatus
from clearance_kernel.exceptions import NotificationNotFoundError, UnauthorizedError


def send(engine, recipient, title, clock=None):
    if clock is not None:
        clock.advance(1)
    return engine.notifications.dispatch(
        NotificationDraft(
            recipient_id=recipient.principal_id,
            title=title,
            description=f"{title} body",
            status=NotificationStatus.WARNING,
            category=NotificationCategory.ANNOUNCEMENT,
        )
    )


class TestListing:

    def test_newest_first(self, engine, cast, clock):
        for title in ("first", "second", "third"):
            send(engine, cast.student, title, clock)

        assert [n.title for n in engine.notifications_for(cast.student)] == [
            "third", "second", "first",
        ]

    def test_limit(self, engine, cast, clock):
        for title in ("first", "second", "third"):
            send(engine, cast.student, title, clock)

        assert [n.title for n in engine.notifications_for(cast.student, limit=2)] == [
            "third", "second",
        ]

    def test_stored_verbatim(self, engine, cast):
        assert send(engine, cast.student, "Orientation week") is True

        notice = engine.notifications_for(cast.student)[0]
        assert notice.description == "Orientation week body"
        assert notice.status == NotificationStatus.WARNING
        assert notice.category == NotificationCategory.ANNOUNCEMENT
        assert notice.is_read is False

    def test_only_own_notifications(self, engine, cast):
        send(engine, cast.other_student, "not yours")

        assert engine.notifications_for(cast.student) == []


class TestReadState:

    def test_toggle_read_flips(self, engine, cast):
        send(engine, cast.student, "hello")
        notice = engine.notifications_for(cast.student)[0]

        read = engine.toggle_read(notice.notification_id, cast.student)
        assert read.is_read
        assert engine.unread_count(cast.student) == 0

        unread = engine.toggle_read(notice.notification_id, cast.student)
        assert not unread.is_read
        assert engine.unread_count(cast.student) == 1

    def test_toggle_by_someone_else(self, engine, cast):
        send(engine, cast.student, "hello")
        notice = engine.notifications_for(cast.student)[0]

        with pytest.raises(UnauthorizedError):
            engine.toggle_read(notice.notification_id, cast.other_student)

    def test_toggle_missing(self, engine, cast):
        with pytest.raises(NotificationNotFoundError):
            engine.toggle_read(uuid4(), cast.student)

    def test_unread_filter(self, engine, cast, clock):
        send(engine, cast.student, "old", clock)
        send(engine, cast.student, "new", clock)
        old = engine.notifications_for(cast.student)[1]
        engine.toggle_read(old.notification_id, cast.student)

        assert [n.title for n in engine.notifications_for(cast.student, unread_only=True)] == ["new"]

    def test_mark_all_read(self, engine, cast, clock):
        for title in ("a", "b", "c"):
            send(engine, cast.student, title, clock)
        engine.toggle_read(engine.notifications_for(cast.student)[0].notification_id, cast.student)

        assert engine.mark_all_read(cast.student) == 2
        assert engine.unread_count(cast.student) == 0
        assert engine.mark_all_read(cast.student) == 0
