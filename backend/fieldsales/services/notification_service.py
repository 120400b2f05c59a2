# Overview: Service-layer notification dispatch and inbox operations.

"""
Notification Dispatcher

WHY: Business events (picks, sales, returns, payments, new staff) leave an
inbox entry for the people above the actor in the hierarchy. Those entries
are a side channel: they must never slow down, fail, or roll back the
operation that triggered them.

CONTRACT:
- Callers resolve recipient user ids themselves (hierarchy_service helpers);
  the dispatcher does no hierarchy traversal.
- Callers dispatch AFTER their business commit. Events for a None recipient
  are skipped.
- dispatch() never raises. Write failures are logged and dropped.
- With NOTIFICATIONS_ASYNC on, writes run on a small ThreadPoolExecutor
  inside a fresh app context (own SQLAlchemy session). The number of
  pending batches is bounded; when the bound is hit the batch is written
  inline instead of queued.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError
from ..models import Notification
from ..models.communications import (
    NOTIFICATION_TYPES,
    PRIORITIES,
    RECIPIENT_ROLES,
    REFERENCE_MODELS,
)


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: int | None
    recipient_role: str
    type: str
    title: str
    message: str
    reference_model: str | None = None
    reference_id: int | None = None
    sender_id: int | None = None
    priority: str = "normal"

    def is_valid(self) -> bool:
        return (
            self.recipient_id is not None
            and self.recipient_role in RECIPIENT_ROLES
            and self.type in NOTIFICATION_TYPES
            and self.priority in PRIORITIES
            and (self.reference_model is None or self.reference_model in REFERENCE_MODELS)
        )


def event(
    recipient_id: int | None,
    recipient_role: str,
    type: str,
    title: str,
    message: str,
    reference: tuple[str, int] | None = None,
    *,
    sender_id: int | None = None,
    priority: str = "normal",
) -> NotificationEvent:
    ref_model, ref_id = reference if reference else (None, None)
    return NotificationEvent(
        recipient_id=recipient_id,
        recipient_role=recipient_role,
        type=type,
        title=title,
        message=message,
        reference_model=ref_model,
        reference_id=ref_id,
        sender_id=sender_id,
        priority=priority,
    )


def _write(events: list[NotificationEvent]) -> int:
    """Persist a batch of events. Returns number written; never raises."""
    rows = [
        Notification(
            recipient_id=e.recipient_id,
            recipient_role=e.recipient_role,
            sender_id=e.sender_id,
            type=e.type,
            title=e.title,
            message=e.message,
            reference_model=e.reference_model,
            reference_id=e.reference_id,
            priority=e.priority,
            is_read=False,
        )
        for e in events
    ]
    try:
        db.session.add_all(rows)
        db.session.commit()
        return len(rows)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to write %d notification(s) (types: %s)",
            len(rows),
            ", ".join(sorted({e.type for e in events})),
        )
        return 0


class NotificationDispatcher:
    """Bounded background writer for notification batches."""

    def __init__(self, app=None):
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self._slots: threading.BoundedSemaphore | None = None
        self.app = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        workers = max(1, int(app.config.get("NOTIFICATION_WORKERS", 2)))
        self._slots = threading.BoundedSemaphore(workers * 16)
        app.extensions["notification_dispatcher"] = self

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                workers = max(1, int(self.app.config.get("NOTIFICATION_WORKERS", 2)))
                self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify")
            return self._executor

    def _run(self, events: list[NotificationEvent]) -> None:
        try:
            with self.app.app_context():
                _write(events)
        except Exception:
            self.app.logger.exception("Notification worker crashed")
        finally:
            self._slots.release()

    def submit(self, events: list[NotificationEvent]) -> bool:
        """Queue a batch. Returns False when the queue is full."""
        if not self._slots.acquire(blocking=False):
            return False
        try:
            self._get_executor().submit(self._run, list(events))
        except RuntimeError:
            # Executor already shut down (interpreter exit)
            self._slots.release()
            return False
        return True

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


def dispatch(events) -> int:
    """
    Hand a batch of events to the dispatcher. Never raises.

    Returns the number of events accepted (queued or written inline).
    """
    try:
        batch = []
        for e in events:
            if e.recipient_id is None:
                continue
            if not e.is_valid():
                current_app.logger.warning("Dropping malformed notification event: %r", e)
                continue
            batch.append(e)
        if not batch:
            return 0

        dispatcher = current_app.extensions.get("notification_dispatcher")
        if current_app.config.get("NOTIFICATIONS_ASYNC") and dispatcher is not None:
            if dispatcher.submit(batch):
                return len(batch)
            current_app.logger.warning(
                "Notification queue full; writing %d notification(s) inline", len(batch)
            )
        return _write(batch)
    except Exception:
        current_app.logger.exception("Notification dispatch failed")
        return 0


def notify(
    recipient_id: int | None,
    recipient_role: str,
    type: str,
    title: str,
    message: str,
    reference: tuple[str, int] | None = None,
    *,
    sender_id: int | None = None,
    priority: str = "normal",
) -> None:
    """Single-event form of dispatch()."""
    dispatch([
        event(
            recipient_id, recipient_role, type, title, message, reference,
            sender_id=sender_id, priority=priority,
        )
    ])


# Inbox operations (always scoped to the recipient)

def list_notifications(user_id: int, *, limit: int = 50, unread_only: bool = False) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.recipient_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(max(1, min(int(limit), 200)))
        .all()
    )


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def _get_own(user_id: int, notification_id: int) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")
    return notification


def mark_as_read(user_id: int, notification_id: int) -> Notification:
    notification = _get_own(user_id, notification_id)
    if not notification.is_read:
        notification.is_read = True
        db.session.commit()
    return notification


def mark_all_as_read(user_id: int) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(user_id: int, notification_id: int) -> None:
    notification = _get_own(user_id, notification_id)
    db.session.delete(notification)
    db.session.commit()
