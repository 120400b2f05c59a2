# Overview: Service-layer credential provisioning; temporary passwords and e-mail/SMS delivery.

"""
Credential Provisioning

When an admin or manager creates a login for someone else, the new account
gets a generated temporary password which is sent over two channels:
- e-mail through the Resend HTTP API
- SMS through the Twilio Messages API

Delivery is reported, never retried and never raised. Each channel answers
{"sent": bool, "channel": "email"|"sms", "reason"?: str} and the caller
returns both results to the client unchanged.
"""

from __future__ import annotations

import secrets

import httpx
from flask import current_app


# Unambiguous characters only (no 0/O, 1/l/I)
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%&*"
_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
_LOWER = "abcdefghijkmnopqrstuvwxyz"
_DIGITS = "23456789"
_SPECIAL = "!@#$%&*"

RESEND_URL = "https://api.resend.com/emails"
TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def generate_temporary_password(length: int = 12) -> str:
    """
    Random password that always passes validate_password_strength.

    One character from each class is forced, the rest are drawn from the full
    alphabet, then the whole thing is shuffled.
    """
    if length < 8:
        raise ValueError("Temporary passwords must be at least 8 characters")

    rng = secrets.SystemRandom()
    chars = [
        secrets.choice(_UPPER),
        secrets.choice(_LOWER),
        secrets.choice(_DIGITS),
        secrets.choice(_SPECIAL),
    ]
    chars.extend(secrets.choice(PASSWORD_ALPHABET) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)


def build_credential_message(name: str | None, email: str, password: str) -> str:
    return (
        f"Hello {name or 'User'}, your account has been created.\n"
        f"Email: {email}\n"
        f"Temporary password: {password}\n"
        "Please login and change this password immediately to a strong password you can remember."
    )


def _timeout() -> float:
    return float(current_app.config.get("CREDENTIAL_DELIVERY_TIMEOUT", 10))


def send_credentials_email(to_email: str | None, name: str | None, password: str) -> dict:
    config = current_app.config
    api_key = config.get("RESEND_API_KEY")
    from_email = config.get("RESEND_FROM_EMAIL")

    if not api_key or not from_email:
        return {"sent": False, "channel": "email", "reason": "Email provider not configured"}
    if not to_email:
        return {"sent": False, "channel": "email", "reason": "Recipient email missing"}

    try:
        response = httpx.post(
            RESEND_URL,
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "from": from_email,
                "to": [to_email],
                "subject": "Your account credentials",
                "text": build_credential_message(name, to_email, password),
            },
            timeout=_timeout(),
        )
    except httpx.HTTPError as exc:
        current_app.logger.warning("Credential e-mail to %s failed: %s", to_email, exc)
        return {"sent": False, "channel": "email", "reason": str(exc) or exc.__class__.__name__}

    if response.is_error:
        current_app.logger.warning(
            "Credential e-mail to %s rejected (%s)", to_email, response.status_code
        )
        return {"sent": False, "channel": "email", "reason": f"Email failed: {response.text}"}

    return {"sent": True, "channel": "email"}


def send_credentials_sms(to_phone: str | None, name: str | None, email: str, password: str) -> dict:
    config = current_app.config
    account_sid = config.get("TWILIO_ACCOUNT_SID")
    auth_token = config.get("TWILIO_AUTH_TOKEN")
    from_number = config.get("TWILIO_FROM_NUMBER")

    if not account_sid or not auth_token or not from_number:
        return {"sent": False, "channel": "sms", "reason": "SMS provider not configured"}
    if not to_phone:
        return {"sent": False, "channel": "sms", "reason": "Recipient phone missing"}

    try:
        response = httpx.post(
            TWILIO_URL.format(sid=account_sid),
            auth=(account_sid, auth_token),
            data={
                "To": to_phone,
                "From": from_number,
                "Body": build_credential_message(name, email, password),
            },
            timeout=_timeout(),
        )
    except httpx.HTTPError as exc:
        current_app.logger.warning("Credential SMS to %s failed: %s", to_phone, exc)
        return {"sent": False, "channel": "sms", "reason": str(exc) or exc.__class__.__name__}

    if response.is_error:
        current_app.logger.warning(
            "Credential SMS to %s rejected (%s)", to_phone, response.status_code
        )
        return {"sent": False, "channel": "sms", "reason": f"SMS failed: {response.text}"}

    return {"sent": True, "channel": "sms"}


def deliver_credentials(to_email: str | None, to_phone: str | None, name: str | None, password: str) -> dict:
    """
    Send a temporary password over e-mail and SMS. Never raises.

    Returns {"email": {...}, "sms": {...}}.
    """
    results = {}
    for channel, send in (
        ("email", lambda: send_credentials_email(to_email, name, password)),
        ("sms", lambda: send_credentials_sms(to_phone, name, to_email or "", password)),
    ):
        try:
            results[channel] = send()
        except Exception as exc:
            current_app.logger.exception("Credential delivery over %s crashed", channel)
            results[channel] = {"sent": False, "channel": channel, "reason": str(exc)}
    return results
