# Overview: Pytest coverage for notification dispatch and the inbox.

"""
Notification Dispatcher Tests

Verifies:
1. dispatch() skips missing recipients and drops malformed events
2. A failing write is logged and swallowed; the business write survives
3. A full async queue falls back to an inline write
4. Inbox operations only touch the caller's own notifications
"""

import pytest

from fieldsales.errors import NotFoundError
from fieldsales.extensions import db
from fieldsales.models import Notification, Sale, User
from fieldsales.services import notification_service, sales_service
from fieldsales.services.notification_service import NotificationDispatcher

from conftest import PASSWORD, auth_headers, get_auth_token, principal


def _event(recipient_id, **overrides):
    params = dict(
        recipient_id=recipient_id,
        recipient_role="admin",
        type="alert",
        title="Heads up",
        message="Something happened",
    )
    params.update(overrides)
    return notification_service.event(**params)


class TestDispatch:

    def test_writes_valid_events(self, db_session, admin_a):
        written = notification_service.dispatch([_event(admin_a.id), _event(admin_a.id, priority="high")])
        assert written == 2
        assert db_session.query(Notification).filter_by(recipient_id=admin_a.id).count() == 2

    def test_none_recipient_is_skipped(self, db_session, admin_a):
        assert notification_service.dispatch([_event(None)]) == 0
        assert db_session.query(Notification).count() == 0

    def test_malformed_event_is_dropped(self, db_session, admin_a):
        written = notification_service.dispatch([
            _event(admin_a.id, type="not-a-type"),
            _event(admin_a.id, recipient_role="superuser"),
            _event(admin_a.id, reference=("Invoice", 1)),
            _event(admin_a.id),
        ])
        assert written == 1

    def test_write_failure_is_swallowed(self, db_session, admin_a, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(db.session, "add_all", boom)
        assert notification_service.dispatch([_event(admin_a.id)]) == 0

    def test_sale_survives_notification_failure(self, db_session, agent_a, product_a, monkeypatch):
        agent = principal(db_session.query(User).filter_by(email=agent_a.email).one())

        def boom(events):
            raise RuntimeError("notification store down")

        monkeypatch.setattr(notification_service, "_write", boom)
        result = sales_service.create_sale(agent, {"product_id": product_a.id, "quantity": 1})

        assert db_session.get(Sale, result.sale.id) is not None
        assert db_session.query(Notification).count() == 0


class TestAsyncFallback:

    def test_full_queue_writes_inline(self, app, db_session, admin_a, monkeypatch):
        dispatcher = app.extensions["notification_dispatcher"]
        monkeypatch.setitem(app.config, "NOTIFICATIONS_ASYNC", True)
        monkeypatch.setattr(dispatcher, "submit", lambda events: False)

        assert notification_service.dispatch([_event(admin_a.id)]) == 1
        assert db_session.query(Notification).count() == 1

    def test_submit_respects_bound(self, app, monkeypatch):
        # init_app re-registers the dispatcher; restore the app's own afterwards
        monkeypatch.setitem(app.extensions, "notification_dispatcher", app.extensions["notification_dispatcher"])
        dispatcher = NotificationDispatcher()
        dispatcher.init_app(app)
        # Drain every slot so the next submit must refuse
        while dispatcher._slots.acquire(blocking=False):
            pass
        assert dispatcher.submit([_event(1)]) is False


class TestInbox:

    @pytest.fixture
    def inbox(self, db_session, admin_a, admin_b):
        notification_service.dispatch([_event(admin_a.id), _event(admin_a.id), _event(admin_b.id)])
        return db_session.query(Notification).filter_by(recipient_id=admin_a.id).all()

    def test_list_and_count(self, db_session, admin_a, inbox):
        assert len(notification_service.list_notifications(admin_a.id)) == 2
        assert notification_service.unread_count(admin_a.id) == 2

    def test_mark_as_read(self, db_session, admin_a, inbox):
        notification_service.mark_as_read(admin_a.id, inbox[0].id)
        assert notification_service.unread_count(admin_a.id) == 1
        assert len(notification_service.list_notifications(admin_a.id, unread_only=True)) == 1

    def test_mark_all_as_read(self, db_session, admin_a, admin_b, inbox):
        assert notification_service.mark_all_as_read(admin_a.id) == 2
        assert notification_service.unread_count(admin_a.id) == 0
        assert notification_service.unread_count(admin_b.id) == 1

    def test_cannot_touch_foreign_notification(self, db_session, admin_b, inbox):
        with pytest.raises(NotFoundError):
            notification_service.mark_as_read(admin_b.id, inbox[0].id)
        with pytest.raises(NotFoundError):
            notification_service.delete_notification(admin_b.id, inbox[0].id)

    def test_delete(self, db_session, admin_a, inbox):
        notification_service.delete_notification(admin_a.id, inbox[0].id)
        assert notification_service.unread_count(admin_a.id) == 1

    def test_http_inbox(self, client, db_session, admin_a, inbox):
        headers = auth_headers(get_auth_token(client, admin_a.email, PASSWORD))

        resp = client.get("/api/notifications", headers=headers)
        assert resp.status_code == 200
        assert resp.json["unread_count"] == 2
        assert len(resp.json["notifications"]) == 2

        resp = client.put("/api/notifications/read-all", headers=headers)
        assert resp.json["updated"] == 2

        resp = client.get("/api/notifications/unread-count", headers=headers)
        assert resp.json["count"] == 0
