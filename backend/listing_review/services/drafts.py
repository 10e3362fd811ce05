"""Draft store: versioned proposals per entity lineage."""

# purpose: create, save, submit and query vendor-authored drafts with strict version lineage
# status: active
# depends_on: backend.listing_review.services.workflow, backend.listing_review.audit

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from .. import audit, errors, models
from . import changesets, entities
from .workflow import DraftState, ModerationActionType, transition

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DraftVersion:
    """History row for a lineage with its latest flag."""

    draft: models.EntityDraft
    is_latest: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_draft(db: Session, draft_id: UUID) -> models.EntityDraft:
    draft = db.get(models.EntityDraft, draft_id)
    if draft is None:
        raise errors.NotFoundError("Draft not found")
    return draft


def _lineage_query(db: Session, entity_kind: str, lineage_id: UUID):
    return db.query(models.EntityDraft).filter(
        models.EntityDraft.entity_kind == entity_kind,
        models.EntityDraft.entity_lineage_id == lineage_id,
    )


def latest_draft(db: Session, entity_kind: str, lineage_id: UUID) -> models.EntityDraft | None:
    return (
        _lineage_query(db, entity_kind, lineage_id)
        .order_by(models.EntityDraft.version_number.desc())
        .first()
    )


def next_version_number(db: Session, entity_kind: str, lineage_id: UUID) -> int:
    current = (
        db.query(func.max(models.EntityDraft.version_number))
        .filter(
            models.EntityDraft.entity_kind == entity_kind,
            models.EntityDraft.entity_lineage_id == lineage_id,
        )
        .scalar()
    )
    return (current or 0) + 1


def _resolve_lineage(
    db: Session,
    entity_kind: str,
    lineage_id: UUID | None,
    vendor_id: UUID | None,
) -> tuple[UUID, UUID | None]:
    """Return (lineage id, owning vendor id), allocating a lineage for new entities."""

    if lineage_id is None:
        if entity_kind == entities.SERVICE:
            if vendor_id is None:
                raise errors.ValidationError("A new service draft must name its vendor_id")
            if db.get(models.Vendor, vendor_id) is None:
                raise errors.NotFoundError("Vendor not found")
            return uuid.uuid4(), vendor_id
        return uuid.uuid4(), None

    live = entities.load_live_entity(db, entity_kind, lineage_id)
    if live is not None:
        owning_vendor = live.id if entity_kind == entities.VENDOR else live.vendor_id
        return lineage_id, owning_vendor
    latest = latest_draft(db, entity_kind, lineage_id)
    if latest is None:
        raise errors.NotFoundError("Entity lineage not found")
    return lineage_id, latest.vendor_id


def _insert_draft(db: Session, draft: models.EntityDraft) -> models.EntityDraft:
    db.add(draft)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            "draft insert for %s %s v%s collided",
            draft.entity_kind,
            draft.entity_lineage_id,
            draft.version_number,
        )
        raise errors.ConflictError(
            "Another draft for this entity was created or submitted concurrently; reload and try again"
        ) from exc
    return draft


def _ensure_no_pending_review(db: Session, entity_kind: str, lineage_id: UUID) -> None:
    pending = (
        _lineage_query(db, entity_kind, lineage_id)
        .filter(models.EntityDraft.state == DraftState.SUBMITTED.value)
        .first()
    )
    if pending is not None:
        raise errors.ConflictError(
            f"Draft v{pending.version_number} is already awaiting review for this entity"
        )


def submit_draft(
    db: Session,
    *,
    entity_kind: str,
    lineage_id: UUID | None,
    payload: Any,
    change_summary: str | None,
    author: models.User,
    vendor_id: UUID | None = None,
) -> models.EntityDraft:
    """Put a proposal in front of reviewers.

    Reuses the lineage's open DRAFT row when there is one; otherwise a new
    row is created directly in SUBMITTED with the next version number.
    Stages the SUBMIT action; the caller commits.
    """

    entities.ensure_kind(entity_kind)
    payload = entities.check_payload_shape(entity_kind, payload)
    lineage_id, owning_vendor = _resolve_lineage(db, entity_kind, lineage_id, vendor_id)
    _ensure_no_pending_review(db, entity_kind, lineage_id)

    now = _utcnow()
    latest = latest_draft(db, entity_kind, lineage_id)
    if latest is not None and latest.state == DraftState.DRAFT.value:
        if change_summary is None:
            change_summary = latest.change_summary
        _overwrite_payload(db, latest, payload, change_summary, expected_row_version=latest.row_version)
        draft = transition(
            db,
            latest,
            expected=DraftState.DRAFT,
            path=(DraftState.SUBMITTED,),
            values={"submitted_at": now},
        )
    else:
        draft = _insert_draft(
            db,
            models.EntityDraft(
                entity_kind=entity_kind,
                entity_lineage_id=lineage_id,
                vendor_id=owning_vendor,
                author_id=author.id,
                payload=payload,
                version_number=next_version_number(db, entity_kind, lineage_id),
                row_version=1,
                state=DraftState.SUBMITTED.value,
                change_summary=change_summary,
                created_at=now,
                submitted_at=now,
            ),
        )
    audit.record_moderation_action(
        db,
        draft,
        ModerationActionType.SUBMIT.value,
        actor_id=author.id,
        notes=change_summary,
        metadata={"resubmission": latest is not None and latest.state == DraftState.CHANGES_REQUESTED.value},
    )
    logger.info(
        "submitted %s draft %s v%s for lineage %s",
        entity_kind,
        draft.id,
        draft.version_number,
        lineage_id,
    )
    return draft


def _overwrite_payload(
    db: Session,
    draft: models.EntityDraft,
    payload: dict[str, Any],
    change_summary: str | None,
    *,
    expected_row_version: int,
) -> models.EntityDraft:
    now = _utcnow()
    next_row_version = expected_row_version + 1
    result = db.execute(
        update(models.EntityDraft)
        .where(
            models.EntityDraft.id == draft.id,
            models.EntityDraft.state == DraftState.DRAFT.value,
            models.EntityDraft.row_version == expected_row_version,
        )
        .values(
            payload=payload,
            change_summary=change_summary,
            row_version=next_row_version,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise errors.ConflictError(
            "Draft was modified in another session; reload it before saving again"
        )
    set_committed_value(draft, "payload", payload)
    set_committed_value(draft, "change_summary", change_summary)
    set_committed_value(draft, "row_version", next_row_version)
    set_committed_value(draft, "updated_at", now)
    return draft


def save_draft(
    db: Session,
    *,
    entity_kind: str,
    lineage_id: UUID | None,
    payload: Any,
    change_summary: str | None,
    author: models.User,
    expected_row_version: int = 0,
    vendor_id: UUID | None = None,
) -> models.EntityDraft:
    """Persist work in progress without submitting it; no audit row is written."""

    entities.ensure_kind(entity_kind)
    payload = entities.check_payload_shape(entity_kind, payload)
    lineage_id, owning_vendor = _resolve_lineage(db, entity_kind, lineage_id, vendor_id)
    _ensure_no_pending_review(db, entity_kind, lineage_id)

    latest = latest_draft(db, entity_kind, lineage_id)
    if latest is not None and latest.state == DraftState.DRAFT.value:
        return _overwrite_payload(
            db,
            latest,
            payload,
            change_summary,
            expected_row_version=expected_row_version,
        )
    if expected_row_version:
        # caller edited a row that has since left DRAFT
        raise errors.ConflictError(
            "Draft was modified in another session; reload it before saving again"
        )
    now = _utcnow()
    return _insert_draft(
        db,
        models.EntityDraft(
            entity_kind=entity_kind,
            entity_lineage_id=lineage_id,
            vendor_id=owning_vendor,
            author_id=author.id,
            payload=payload,
            version_number=next_version_number(db, entity_kind, lineage_id),
            row_version=1,
            state=DraftState.DRAFT.value,
            change_summary=change_summary,
            created_at=now,
        ),
    )


def submit_saved_draft(
    db: Session,
    draft: models.EntityDraft,
    *,
    actor: models.User,
) -> models.EntityDraft:
    """Submit an existing DRAFT row as-is."""

    if draft.state != DraftState.DRAFT.value:
        raise errors.ConflictError(f"Draft is {draft.state}; only DRAFT rows can be submitted")
    _ensure_no_pending_review(db, draft.entity_kind, draft.entity_lineage_id)
    transition(
        db,
        draft,
        expected=DraftState.DRAFT,
        path=(DraftState.SUBMITTED,),
        values={"submitted_at": _utcnow()},
    )
    audit.record_moderation_action(
        db,
        draft,
        ModerationActionType.SUBMIT.value,
        actor_id=actor.id,
        notes=draft.change_summary,
    )
    return draft


def list_pending(db: Session, entity_kind: str | None = None) -> list[models.EntityDraft]:
    query = db.query(models.EntityDraft).filter(models.EntityDraft.state == DraftState.SUBMITTED.value)
    if entity_kind is not None:
        query = query.filter(models.EntityDraft.entity_kind == entities.ensure_kind(entity_kind))
    return query.order_by(models.EntityDraft.submitted_at.asc()).all()


def list_versions(db: Session, entity_kind: str, lineage_id: UUID) -> list[DraftVersion]:
    """Every version of a lineage, highest version first, with the maximum flagged latest."""

    entities.ensure_kind(entity_kind)
    rows = (
        _lineage_query(db, entity_kind, lineage_id)
        .order_by(models.EntityDraft.version_number.desc())
        .all()
    )
    if not rows and entities.load_live_entity(db, entity_kind, lineage_id) is None:
        raise errors.NotFoundError("Entity lineage not found")
    return [DraftVersion(draft=row, is_latest=index == 0) for index, row in enumerate(rows)]


def compute_draft_changeset(db: Session, draft: models.EntityDraft) -> list[changesets.ChangeEntry]:
    """Cumulative drift of ``draft`` against the current live entity."""

    live = entities.snapshot(db, draft.entity_kind, draft.entity_lineage_id)
    return changesets.compute_changeset(live, draft.payload or {})


def compare_versions(
    db: Session,
    entity_kind: str,
    lineage_id: UUID,
    from_version: int,
    to_version: int,
) -> list[changesets.ChangeEntry]:
    """Incremental drift between two review cycles of the same lineage."""

    entities.ensure_kind(entity_kind)
    rows = {
        row.version_number: row
        for row in _lineage_query(db, entity_kind, lineage_id)
        .filter(models.EntityDraft.version_number.in_([from_version, to_version]))
        .all()
    }
    missing = [number for number in (from_version, to_version) if number not in rows]
    if missing:
        raise errors.NotFoundError(
            f"Draft version(s) {', '.join(str(n) for n in missing)} not found for this entity"
        )
    return changesets.compute_changeset(rows[from_version].payload or {}, rows[to_version].payload or {})
