from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import audit, models, rbac, schemas
from ..services import drafts, review

# purpose: administrator review queue, decisions and moderation ledger views
# status: active
# depends_on: services.review, audit, rbac

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/drafts/pending", response_model=list[schemas.DraftOut])
def list_pending(
    entity_kind: schemas.EntityKind | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Oldest submissions first."""
    rbac.require_admin(user)
    return drafts.list_pending(db, entity_kind)


@router.post("/drafts/{draft_id}/review", response_model=schemas.DraftOut)
def review_draft(
    draft_id: UUID,
    data: schemas.DraftReviewRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return review.review_draft(
        db,
        draft_id=draft_id,
        reviewer=user,
        action=data.action,
        reason=data.reason,
    )


@router.get("/drafts/{draft_id}/actions", response_model=list[schemas.ModerationActionOut])
def list_draft_actions(
    draft_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user)
    return audit.list_actions_for_draft(db, draft_id)


@router.get("/audit", response_model=list[schemas.ModerationActionOut])
def list_moderation_log(
    entity_kind: schemas.EntityKind,
    entity_lineage_id: UUID,
    limit: int = Query(audit.DEFAULT_LOG_LIMIT, ge=1),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user)
    return audit.list_actions(db, entity_kind, entity_lineage_id, limit)


@router.get("/audit/report", response_model=list[schemas.ModerationReportItem])
def moderation_report(
    start: datetime,
    end: datetime,
    reviewer_id: UUID | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    rbac.require_admin(user)
    return audit.generate_report(db, start, end, reviewer_id)
