"""Best-effort notification delivery for draft submissions and review decisions."""

import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

EMAIL_OUTBOX: list[tuple[str, str, str]] = []

PREF_TYPE = "drafts"

_TITLES = {
    "draft.submitted": "Draft submitted for review",
    "draft.approved": "Your changes were approved",
    "draft.changes_requested": "Changes requested on your draft",
    "draft.rejected": "Your draft was rejected",
}

_PRIORITIES = {
    "draft.submitted": "medium",
    "draft.approved": "low",
    "draft.changes_requested": "high",
    "draft.rejected": "high",
}


def send_email(to_email: str, subject: str, message: str):
    if os.getenv("TESTING") == "1":
        EMAIL_OUTBOX.append((to_email, subject, message))
        return
    server = os.getenv("SMTP_SERVER")
    if not server:
        return
    from_addr = os.getenv("EMAIL_FROM", "noreply@example.com")
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_email
    msg.set_content(message)
    with smtplib.SMTP(server) as s:
        s.send_message(msg)


def _channel_enabled(db: Session, user_id: UUID, channel: str) -> bool:
    pref = (
        db.query(models.NotificationPreference)
        .filter_by(user_id=user_id, pref_type=PREF_TYPE, channel=channel)
        .first()
    )
    return pref is None or bool(pref.enabled)


def describe(event_type: str, payload: dict[str, Any]) -> str:
    kind = payload.get("entity_kind", "listing")
    version = payload.get("version_number")
    label = f"{kind} draft v{version}" if version else f"{kind} draft"
    if event_type == "draft.submitted":
        summary = payload.get("change_summary") or "no summary provided"
        return f"A {label} is waiting for review: {summary}"
    if event_type == "draft.approved":
        return f"Your {label} was approved and is now live."
    if event_type == "draft.changes_requested":
        return f"Changes were requested on your {label}: {payload.get('reason')}"
    if event_type == "draft.rejected":
        return f"Your {label} was rejected: {payload.get('reason')}"
    return f"Update on your {label}"


def _deliver(db: Session, event_type: str, recipient_id: UUID, payload: dict[str, Any]) -> None:
    recipient = db.get(models.User, recipient_id)
    if recipient is None:
        logger.warning("notification %s dropped: recipient %s not found", event_type, recipient_id)
        return
    message = describe(event_type, payload)
    title = _TITLES.get(event_type, "Listing update")
    if _channel_enabled(db, recipient.id, "in_app"):
        db.add(
            models.Notification(
                user_id=recipient.id,
                event_type=event_type,
                title=title,
                message=message,
                priority=_PRIORITIES.get(event_type, "medium"),
                meta={key: str(value) for key, value in payload.items() if value is not None},
            )
        )
        db.commit()
    if recipient.email and _channel_enabled(db, recipient.id, "email"):
        send_email(recipient.email, title, message)


def emit(db: Session, event_type: str, recipient_id: UUID, payload: dict[str, Any]) -> bool:
    """Fire-and-forget delivery; failures are logged and never raised.

    Must only be called after the review transaction committed.
    """

    try:
        _deliver(db, event_type, recipient_id, payload)
    except Exception:
        db.rollback()
        logger.exception("notification %s to %s failed", event_type, recipient_id)
        return False
    logger.info("notification %s delivered to %s", event_type, recipient_id)
    return True


def emit_to_admins(db: Session, event_type: str, payload: dict[str, Any]) -> int:
    admin_ids = [row.id for row in db.query(models.User.id).filter(models.User.is_admin.is_(True)).all()]
    return sum(1 for admin_id in admin_ids if emit(db, event_type, admin_id, payload))
