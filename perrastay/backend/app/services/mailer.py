# backend/app/services/mailer.py
"""
Outbound email.

The token flows only need "send this message to this address". Delivery is
best effort: a failure is logged and reported as False, never raised, so a
token that was already stored stays valid and can be resent.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import quote

import resend
from fastapi import Request

from ..config import Settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


class Mailer(Protocol):
    def send(self, message: EmailMessage) -> bool: ...


def verification_email(*, to: str, token: str, app_url: str, brand: str = "PerraStay") -> EmailMessage:
    link = f"{app_url.rstrip('/')}/verify-email?token={quote(token)}&email={quote(to)}"
    return EmailMessage(
        to=to,
        subject=f"Verify your {brand} account",
        html=(
            f"<h1>Welcome to {brand}!</h1>"
            "<p>Please verify your email address by clicking the link below:</p>"
            f'<a href="{link}">Verify Email</a>'
            "<p>This link will expire in 24 hours.</p>"
        ),
    )


def password_reset_email(*, to: str, token: str, app_url: str, brand: str = "PerraStay") -> EmailMessage:
    link = f"{app_url.rstrip('/')}/reset-password?token={quote(token)}"
    return EmailMessage(
        to=to,
        subject=f"Reset your {brand} password",
        html=(
            "<h1>Password Reset Request</h1>"
            "<p>You requested to reset your password. Click the link below to set a new password:</p>"
            f'<a href="{link}">Reset Password</a>'
            "<p>This link will expire in 1 hour. If you didn't request this, please ignore this email.</p>"
        ),
    )


class LogMailer:
    """Local dev: writes the message to the log instead of sending it."""

    def send(self, message: EmailMessage) -> bool:
        log.info("email (not sent): to=%s subject=%s", message.to, message.subject)
        log.debug("email body: %s", message.html)
        return True


class ResendMailer:
    def __init__(self, *, api_key: str, from_email: str) -> None:
        if not api_key:
            raise ValueError("RESEND_API_KEY is required for email_backend=resend")
        self.api_key = api_key
        self.from_email = from_email

    def send(self, message: EmailMessage) -> bool:
        resend.api_key = self.api_key
        try:
            resend.Emails.send(
                {
                    "from": self.from_email,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                }
            )
            return True
        except Exception:
            log.exception("email delivery failed", extra={"event": "email_failed"})
            return False


class CeleryMailer:
    """Queues delivery on the `emails` queue; the worker sends through Resend."""

    def send(self, message: EmailMessage) -> bool:
        from ..workers.email_tasks import send_email

        try:
            send_email.delay(message.to, message.subject, message.html)
            return True
        except Exception:
            log.exception("email enqueue failed", extra={"event": "email_failed"})
            return False


@dataclass
class RecordingMailer:
    """Keeps every message in memory. Used by tests and the demo CLI."""

    sent: list[EmailMessage] = field(default_factory=list)
    fail: bool = False

    def send(self, message: EmailMessage) -> bool:
        if self.fail:
            return False
        self.sent.append(message)
        return True


def build_mailer(settings: Settings) -> Mailer:
    backend = (settings.email_backend or "log").strip().lower()
    if backend == "resend":
        return ResendMailer(api_key=settings.resend_api_key or "", from_email=settings.email_from)
    if backend == "celery":
        return CeleryMailer()
    return LogMailer()


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
