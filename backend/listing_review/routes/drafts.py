"""Vendor-facing APIs for proposing listing changes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, notify, rbac, schemas
from ..auth import get_current_user
from ..database import get_db
from ..services import drafts

router = APIRouter(prefix="/api/drafts", tags=["drafts"])

# purpose: expose draft save / submit / history endpoints to vendor owners
# status: active
# depends_on: services.drafts, rbac, notify


def _authorize_proposal(db: Session, user: models.User, data: schemas.DraftSubmitRequest) -> None:
    if data.entity_lineage_id is not None:
        rbac.ensure_entity_owner(db, user, data.entity_kind, data.entity_lineage_id)
    elif data.entity_kind == "service" and data.vendor_id is not None:
        rbac.ensure_vendor_owner(db, user, data.vendor_id)


def _submission_payload(draft: models.EntityDraft) -> dict:
    return {
        "entity_kind": draft.entity_kind,
        "entity_lineage_id": draft.entity_lineage_id,
        "draft_id": draft.id,
        "vendor_id": draft.vendor_id,
        "version_number": draft.version_number,
        "change_summary": draft.change_summary,
    }


@router.post("", response_model=schemas.DraftOut, status_code=status.HTTP_201_CREATED)
def submit_draft(
    data: schemas.DraftSubmitRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Submit a proposal for review, creating the next version when needed."""

    _authorize_proposal(db, user, data)
    draft = drafts.submit_draft(
        db,
        entity_kind=data.entity_kind,
        lineage_id=data.entity_lineage_id,
        payload=data.payload,
        change_summary=data.change_summary,
        author=user,
        vendor_id=data.vendor_id,
    )
    db.commit()
    db.refresh(draft)
    notify.emit_to_admins(db, "draft.submitted", _submission_payload(draft))
    return draft


@router.put("", response_model=schemas.DraftOut)
def save_draft(
    data: schemas.DraftSaveRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Save work in progress; stale ``expected_row_version`` values are refused."""

    _authorize_proposal(db, user, data)
    draft = drafts.save_draft(
        db,
        entity_kind=data.entity_kind,
        lineage_id=data.entity_lineage_id,
        payload=data.payload,
        change_summary=data.change_summary,
        author=user,
        expected_row_version=data.expected_row_version,
        vendor_id=data.vendor_id,
    )
    db.commit()
    db.refresh(draft)
    return draft


@router.get("/history", response_model=list[schemas.DraftVersionOut])
def list_versions(
    entity_kind: schemas.EntityKind,
    entity_lineage_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.ensure_entity_owner(db, user, entity_kind, entity_lineage_id)
    return [
        schemas.DraftVersionOut.model_validate(version.draft).model_copy(update={"is_latest": version.is_latest})
        for version in drafts.list_versions(db, entity_kind, entity_lineage_id)
    ]


@router.get("/compare", response_model=schemas.VersionComparisonOut)
def compare_versions(
    entity_kind: schemas.EntityKind,
    entity_lineage_id: UUID,
    from_version: int = Query(..., ge=1),
    to_version: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.ensure_entity_owner(db, user, entity_kind, entity_lineage_id)
    changes = drafts.compare_versions(db, entity_kind, entity_lineage_id, from_version, to_version)
    return schemas.VersionComparisonOut(
        entity_kind=entity_kind,
        entity_lineage_id=entity_lineage_id,
        from_version=from_version,
        to_version=to_version,
        changes=[schemas.ChangeEntryOut.from_entry(entry) for entry in changes],
    )


@router.get("/{draft_id}", response_model=schemas.DraftOut)
def get_draft(
    draft_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    draft = drafts.get_draft(db, draft_id)
    rbac.ensure_entity_owner(db, user, draft.entity_kind, draft.entity_lineage_id)
    return draft


@router.post("/{draft_id}/submit", response_model=schemas.DraftOut)
def submit_saved_draft(
    draft_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    draft = drafts.get_draft(db, draft_id)
    rbac.ensure_entity_owner(db, user, draft.entity_kind, draft.entity_lineage_id)
    drafts.submit_saved_draft(db, draft, actor=user)
    db.commit()
    db.refresh(draft)
    notify.emit_to_admins(db, "draft.submitted", _submission_payload(draft))
    return draft


@router.get("/{draft_id}/changeset", response_model=schemas.DraftChangesetOut)
def get_changeset(
    draft_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Fields of the draft that differ from the live entity right now."""

    draft = drafts.get_draft(db, draft_id)
    rbac.ensure_entity_owner(db, user, draft.entity_kind, draft.entity_lineage_id)
    changes = drafts.compute_draft_changeset(db, draft)
    return schemas.DraftChangesetOut(
        draft_id=draft.id,
        entity_kind=draft.entity_kind,
        entity_lineage_id=draft.entity_lineage_id,
        version_number=draft.version_number,
        changes=[schemas.ChangeEntryOut.from_entry(entry) for entry in changes],
    )
