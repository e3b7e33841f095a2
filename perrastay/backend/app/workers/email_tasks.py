# backend/app/workers/email_tasks.py
from __future__ import annotations

import logging
import random

from ..config import settings
from ..services.mailer import EmailMessage, ResendMailer
from .celery_app import celery_app

log = logging.getLogger(__name__)


def _backoff_seconds(retries: int, *, base: int = 5, cap: int = 120) -> int:
    """Exponential backoff with +/- 20% jitter. retries is 0 for the first retry."""
    delay = min(cap, base * (2 ** max(0, int(retries))))
    jitter = int(delay * 0.2)
    if jitter > 0:
        delay = max(1, delay + random.randint(-jitter, jitter))
    return delay


@celery_app.task(bind=True, max_retries=3, name="app.workers.email_tasks.send_email")
def send_email(self, to: str, subject: str, html: str) -> dict:
    """
    Deliver one queued message through Resend.

    Retried with backoff; after the last retry the failure is logged and
    the task ends. The token it carries stays valid and can be resent.
    """
    mailer = ResendMailer(api_key=settings.resend_api_key or "", from_email=settings.email_from)
    ok = mailer.send(EmailMessage(to=to, subject=subject, html=html))
    if ok:
        return {"ok": True}

    if self.request.retries < self.max_retries:
        raise self.retry(countdown=_backoff_seconds(self.request.retries))

    log.error("queued email not delivered", extra={"event": "email_failed"})
    return {"ok": False}
