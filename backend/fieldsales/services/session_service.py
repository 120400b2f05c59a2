# Overview: Service-layer bearer sessions; issue, validate and revoke opaque login tokens.

"""
Session Tokens

A login returns an opaque random token. Only its SHA-256 digest is stored
(tokens are high-entropy, so a slow hash buys nothing). A session dies when:
- SESSION_ABSOLUTE_TIMEOUT_HOURS have passed since login
- it was idle for more than SESSION_IDLE_TIMEOUT_HOURS
- it is revoked (logout, password change or reset, deactivation, removal)

Sessions carry identity only. The owning admin and the query scope are
derived again on every request by hierarchy_service, because a manager
reassignment can change them between two requests of the same session.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, AccessDeniedError
from ..models import SessionToken, User
from .hierarchy_service import Principal
from fieldsales.time_utils import utcnow


TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """What require_auth puts on flask.g for the rest of the request."""
    user: User
    session: SessionToken
    principal: Principal


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    if not token:
        return None
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _mark_revoked(session: SessionToken, reason: str, when=None) -> None:
    session.is_revoked = True
    session.revoked_at = when or utcnow()
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Open a session for an active login.

    Returns (session_row, plaintext_token); the plaintext is never stored.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AccessDeniedError("User account is deactivated")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
    )
    db.session.add(session)
    db.session.commit()

    current_app.logger.debug("Session %s opened for user %s", session.id, user.id)
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None when it no longer authenticates.

    An idle session or one whose login was deactivated is revoked on the
    spot. A successful check slides last_used_at forward.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    reason = None
    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        reason = "Idle timeout"
    elif session.user is None or not session.user.is_active:
        reason = "User account deactivated"

    if reason:
        _mark_revoked(session, reason, now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    user = session.user
    return SessionContext(user=user, session=session, principal=Principal.from_user(user))


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke one session by its token. False if it was not live."""
    session = _live_session(token)
    if session is None:
        return False
    _mark_revoked(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    *,
    keep_session_id: int | None = None,
    commit: bool = True,
) -> int:
    """
    Revoke every live session of a login, optionally sparing one.

    Used on password change (sparing the caller's own session), password
    reset, deactivation and removal. Returns the number revoked.
    """
    query = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    )
    if keep_session_id is not None:
        query = query.filter(SessionToken.id != keep_session_id)

    revoked = query.update(
        {
            SessionToken.is_revoked: True,
            SessionToken.revoked_at: utcnow(),
            SessionToken.revoked_reason: reason,
        },
        synchronize_session="fetch",
    )
    if revoked:
        current_app.logger.info("Revoked %d session(s) of user %s: %s", revoked, user_id, reason)
    if commit:
        db.session.commit()
    return revoked


def cleanup_expired_sessions() -> int:
    """
    Purge dead sessions (expired or revoked) opened more than
    SESSION_RETENTION_DAYS ago. Returns the number deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=current_app.config.get("SESSION_RETENTION_DAYS", 30))

    deleted = db.session.query(SessionToken).filter(
        db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
