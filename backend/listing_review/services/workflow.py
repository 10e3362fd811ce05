"""Draft state machine and guarded state transitions."""

# purpose: own the legal draft transitions and the compare-and-swap write that enforces them
# status: active
# depends_on: backend.listing_review.models

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from .. import errors, models

logger = logging.getLogger(__name__)


class DraftState(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class ModerationActionType(str, Enum):
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REQUEST_CHANGES = "REQUEST_CHANGES"


_TRANSITIONS: dict[DraftState, frozenset[DraftState]] = {
    DraftState.DRAFT: frozenset({DraftState.SUBMITTED}),
    DraftState.SUBMITTED: frozenset(
        {DraftState.APPROVED, DraftState.CHANGES_REQUESTED, DraftState.REJECTED}
    ),
    DraftState.APPROVED: frozenset({DraftState.PUBLISHED}),
    DraftState.CHANGES_REQUESTED: frozenset(),
    DraftState.PUBLISHED: frozenset(),
    DraftState.REJECTED: frozenset(),
}

TERMINAL_STATES = frozenset({DraftState.PUBLISHED, DraftState.REJECTED})


def can_transition(source: DraftState | str, target: DraftState | str) -> bool:
    return DraftState(target) in _TRANSITIONS[DraftState(source)]


def ensure_path(*states: DraftState) -> None:
    """Check every hop of a transition path, e.g. SUBMITTED -> APPROVED -> PUBLISHED."""

    for source, target in zip(states, states[1:]):
        if not can_transition(source, target):
            raise errors.ConflictError(
                f"Illegal draft transition {source.value} -> {target.value}"
            )


def transition(
    db: Session,
    draft: models.EntityDraft,
    *,
    expected: DraftState,
    path: tuple[DraftState, ...],
    values: dict[str, Any] | None = None,
) -> models.EntityDraft:
    """Move ``draft`` along ``path`` only if its persisted state is still ``expected``.

    Issues one conditional UPDATE; when no row matches another request won
    the race and ConflictError is raised. The caller owns the transaction.
    """

    full_path = (expected, *path)
    ensure_path(*full_path)
    target = full_path[-1]
    changes = dict(values or {})
    try:
        result = db.execute(
            update(models.EntityDraft)
            .where(
                models.EntityDraft.id == draft.id,
                models.EntityDraft.state == expected.value,
            )
            .values(state=target.value, **changes)
            .execution_options(synchronize_session=False)
        )
    except IntegrityError as exc:
        # single-pending index: another draft of the lineage is already SUBMITTED
        db.rollback()
        raise errors.ConflictError(
            "Another draft for this entity is already awaiting review"
        ) from exc
    if result.rowcount != 1:
        logger.warning(
            "draft %s transition %s -> %s lost the race",
            draft.id,
            expected.value,
            target.value,
        )
        raise errors.ConflictError(
            "Draft is no longer in state "
            f"{expected.value}; another reviewer may have acted. Reload and try again."
        )
    # align the in-session object with the row without scheduling a second UPDATE
    set_committed_value(draft, "state", target.value)
    for name, value in changes.items():
        set_committed_value(draft, name, value)
    return draft
