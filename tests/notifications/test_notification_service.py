"""Tests for NotificationService: best-effort writes that never break the caller."""
from groupshare.models import Notification, UserProfile
from groupshare.services.notifications.service import NotificationService


class TestNotify:
    def test_stores_unread_notification(self, db, make_user):
        user = make_user("Buyer")
        notification = NotificationService(db).notify(user.id, "purchase_completed", "Done", "Enjoy", "purchase", "p1")
        db.commit()

        assert notification is not None
        stored = db.query(Notification).one()
        assert stored.read is False
        assert stored.related_entity_id == "p1"

    def test_failure_is_swallowed_and_keeps_outer_work(self, db):
        db.add(UserProfile(external_auth_id="kept", display_name="Kept"))
        db.flush()

        result = NotificationService(db).notify("u1", "sale_completed", None, "content")
        db.commit()

        assert result is None
        assert db.query(Notification).count() == 0
        assert db.query(UserProfile).filter(UserProfile.external_auth_id == "kept").count() == 1


class TestInbox:
    def test_list_and_mark_read(self, db, make_user):
        user = make_user("Buyer")
        other = make_user("Other")
        svc = NotificationService(db)
        mine = svc.notify(user.id, "purchase_completed", "Done", "Enjoy")
        svc.notify(other.id, "sale_completed", "Sold", "Nice")
        db.commit()

        assert [n.id for n in svc.list_for_user(user.id)] == [mine.id]
        assert svc.mark_read(other.id, mine.id) is False
        assert svc.mark_read(user.id, mine.id) is True
        db.refresh(mine)
        assert mine.read is True
