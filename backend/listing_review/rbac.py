from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from . import errors, models
from .services import entities

# purpose: centralize admin and ownership checks for the draft review workflow
# status: active


def require_admin(user: models.User) -> None:
    """Admit only callers holding the ADMIN claim."""

    if not user.is_admin:
        raise errors.AuthorizationError("Admin privileges required")


def ensure_vendor_owner(db: Session, user: models.User, vendor_id: UUID) -> models.Vendor:
    vendor = db.get(models.Vendor, vendor_id)
    if vendor is None:
        raise errors.NotFoundError("Vendor not found")
    if user.is_admin or vendor.owner_id == user.id:
        return vendor
    raise errors.AuthorizationError("Not authorized for this vendor")


def ensure_entity_owner(
    db: Session,
    user: models.User,
    entity_kind: str,
    lineage_id: UUID,
) -> None:
    """Check the caller may propose changes to the given lineage.

    Lineages without a live row yet (pending creations) belong to the
    author of their first draft.
    """

    if user.is_admin:
        return
    live = entities.load_live_entity(db, entity_kind, lineage_id)
    if live is not None:
        owner_id = live.owner_id if entity_kind == entities.VENDOR else live.vendor.owner_id
        if owner_id != user.id:
            raise errors.AuthorizationError("Not authorized for this entity")
        return
    first_draft = (
        db.query(models.EntityDraft)
        .filter(
            models.EntityDraft.entity_kind == entity_kind,
            models.EntityDraft.entity_lineage_id == lineage_id,
        )
        .order_by(models.EntityDraft.version_number.asc())
        .first()
    )
    if first_draft is None:
        raise errors.NotFoundError("Entity lineage not found")
    if first_draft.author_id != user.id:
        raise errors.AuthorizationError("Not authorized for this entity")
