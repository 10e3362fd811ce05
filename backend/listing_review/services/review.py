"""Review coordinator executing administrator decisions on submitted drafts."""

# purpose: run approve / reject / request-changes as one atomic unit, then notify
# status: active
# depends_on: services.workflow, services.entities, audit, notify

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from sqlalchemy.orm import Session

from .. import audit, errors, models, notify, rbac
from . import changesets, entities
from .drafts import get_draft
from .workflow import DraftState, ModerationActionType, transition

logger = logging.getLogger(__name__)

ReviewAction = Literal["approve", "reject", "request_changes"]

_REASON_REQUIRED = frozenset({"reject", "request_changes"})


@dataclass(frozen=True, slots=True)
class _Decision:
    path: tuple[DraftState, ...]
    action_type: ModerationActionType
    event_type: str


_DECISIONS: dict[str, _Decision] = {
    "approve": _Decision(
        path=(DraftState.APPROVED, DraftState.PUBLISHED),
        action_type=ModerationActionType.APPROVE,
        event_type="draft.approved",
    ),
    "reject": _Decision(
        path=(DraftState.REJECTED,),
        action_type=ModerationActionType.REJECT,
        event_type="draft.rejected",
    ),
    "request_changes": _Decision(
        path=(DraftState.CHANGES_REQUESTED,),
        action_type=ModerationActionType.REQUEST_CHANGES,
        event_type="draft.changes_requested",
    ),
}


def _check_request(action: str, reason: str | None) -> str | None:
    if action not in _DECISIONS:
        raise errors.ValidationError(f"Unknown review action '{action}'")
    cleaned = reason.strip() if reason else None
    if action in _REASON_REQUIRED and not cleaned:
        raise errors.ValidationError("A reason is required to reject or request changes")
    return cleaned


def review_draft(
    db: Session,
    *,
    draft_id: UUID,
    reviewer: models.User,
    action: ReviewAction,
    reason: str | None = None,
) -> models.EntityDraft:
    """Apply an administrator decision to a SUBMITTED draft.

    Validation and authorization happen before any write. The draft
    transition, the live-entity update (approvals only) and the audit row
    commit together or not at all; notification follows the commit and can
    never undo it.
    """

    reason = _check_request(action, reason)
    rbac.require_admin(reviewer)
    draft = get_draft(db, draft_id)
    if draft.state != DraftState.SUBMITTED.value:
        raise errors.ConflictError(
            f"Draft is {draft.state}, not SUBMITTED; reload to see the latest decision"
        )
    decision = _DECISIONS[action]

    values_to_apply = None
    changes: list[changesets.ChangeEntry] = []
    if action == "approve":
        creating = entities.load_live_entity(db, draft.entity_kind, draft.entity_lineage_id) is None
        # raises ApplyError before anything is written
        values_to_apply = entities.validate_payload(draft.entity_kind, draft.payload or {}, creating=creating)
        # same diff the reviewer was shown
        changes = changesets.compute_changeset(
            entities.snapshot(db, draft.entity_kind, draft.entity_lineage_id),
            draft.payload or {},
        )

    now = datetime.now(timezone.utc)
    transition_values: dict[str, object] = {
        "reviewed_by_id": reviewer.id,
        "reviewed_at": now,
        "updated_at": now,
    }
    if action == "approve":
        transition_values["approved_at"] = now
        # the published version stores exactly what reached the live row
        transition_values["payload"] = values_to_apply
    else:
        transition_values["rejection_reason"] = reason

    try:
        transition(
            db,
            draft,
            expected=DraftState.SUBMITTED,
            path=decision.path,
            values=transition_values,
        )
        if values_to_apply is not None:
            entities.apply_fields(db, draft, values_to_apply)
        audit.record_moderation_action(
            db,
            draft,
            decision.action_type.value,
            actor_id=reviewer.id,
            notes=reason,
            metadata={"changed_fields": [entry.field for entry in changes]} if action == "approve" else {},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("review %s of draft %s aborted", action, draft_id, exc_info=True)
        raise

    db.refresh(draft)
    logger.info(
        "draft %s v%s %s by %s",
        draft.id,
        draft.version_number,
        draft.state,
        reviewer.id,
    )
    notify.emit(
        db,
        decision.event_type,
        draft.author_id,
        {
            "entity_kind": draft.entity_kind,
            "entity_lineage_id": draft.entity_lineage_id,
            "draft_id": draft.id,
            "vendor_id": draft.vendor_id,
            "version_number": draft.version_number,
            "reason": reason,
        },
    )
    return draft
