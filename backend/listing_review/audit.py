from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import errors, models
from .services import entities

# purpose: append-only moderation ledger writes and reads
# inputs: session, draft being transitioned, action metadata, acting user
# outputs: ModerationAction rows with per-lineage sequential ordering
# status: active

DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 500


def record_moderation_action(
    db: Session,
    draft: models.EntityDraft,
    action_type: str,
    *,
    actor_id: UUID | None,
    notes: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> models.ModerationAction:
    """Stage one ledger row for a transition of ``draft``.

    Never commits: the row must land in the same transaction as the
    transition it describes.
    """

    latest = (
        db.query(func.max(models.ModerationAction.sequence))
        .filter(
            models.ModerationAction.entity_kind == draft.entity_kind,
            models.ModerationAction.entity_lineage_id == draft.entity_lineage_id,
        )
        .scalar()
    )
    action = models.ModerationAction(
        draft_id=draft.id,
        draft_version_number=draft.version_number,
        entity_kind=draft.entity_kind,
        entity_lineage_id=draft.entity_lineage_id,
        sequence=(latest or 0) + 1,
        action_type=action_type,
        actor_id=actor_id,
        notes=notes,
        meta=metadata if isinstance(metadata, dict) else {},
        created_at=datetime.now(timezone.utc),
    )
    db.add(action)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise errors.ConflictError(
            "Another moderation decision was recorded for this entity concurrently; reload and try again"
        ) from exc
    return action


def list_actions(
    db: Session,
    entity_kind: str,
    lineage_id: UUID,
    limit: int = DEFAULT_LOG_LIMIT,
) -> list[models.ModerationAction]:
    """Return the newest ``limit`` actions for a lineage, newest first."""

    limit = max(1, min(int(limit), MAX_LOG_LIMIT))
    rows = (
        db.query(models.ModerationAction)
        .filter(
            models.ModerationAction.entity_kind == entity_kind,
            models.ModerationAction.entity_lineage_id == lineage_id,
        )
        .order_by(models.ModerationAction.sequence.desc())
        .limit(limit)
        .all()
    )
    if not rows and not _lineage_exists(db, entity_kind, lineage_id):
        raise errors.NotFoundError("Entity lineage not found")
    return rows


def _lineage_exists(db: Session, entity_kind: str, lineage_id: UUID) -> bool:
    if entities.load_live_entity(db, entity_kind, lineage_id) is not None:
        return True
    return (
        db.query(models.EntityDraft.id)
        .filter(
            models.EntityDraft.entity_kind == entity_kind,
            models.EntityDraft.entity_lineage_id == lineage_id,
        )
        .first()
        is not None
    )


def list_actions_for_draft(db: Session, draft_id: UUID) -> list[models.ModerationAction]:
    return (
        db.query(models.ModerationAction)
        .filter(models.ModerationAction.draft_id == draft_id)
        .order_by(models.ModerationAction.sequence.asc())
        .all()
    )


def generate_report(
    db: Session,
    start: datetime,
    end: datetime,
    actor_id: UUID | None = None,
):
    query = db.query(models.ModerationAction).filter(
        models.ModerationAction.created_at >= start,
        models.ModerationAction.created_at <= end,
    )
    if actor_id:
        query = query.filter(models.ModerationAction.actor_id == actor_id)
    rows = (
        query.with_entities(models.ModerationAction.action_type, func.count(models.ModerationAction.id))
        .group_by(models.ModerationAction.action_type)
        .all()
    )
    return [{"action_type": r[0], "count": r[1]} for r in rows]
