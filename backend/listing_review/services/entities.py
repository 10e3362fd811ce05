"""Live entity storage helpers for vendors and services."""

# purpose: snapshot, validate and mutate the live rows a draft lineage points at
# status: active
# depends_on: backend.listing_review.models

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError as PydanticValidationError, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import errors, models

SERVICE = "service"
VENDOR = "vendor"
ENTITY_KINDS = (SERVICE, VENDOR)


def _check_url(value: str | None) -> str | None:
    if value is None:
        return value
    if not value.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return value


class VendorFields(BaseModel):
    """Field constraints of a live vendor profile."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    website_url: str | None = Field(default=None, max_length=500)
    contact_email: EmailStr | None = None
    phone_number: str | None = Field(default=None, max_length=40)
    logo_url: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=255)

    @field_validator("website_url", "logo_url")
    @classmethod
    def check_urls(cls, value: str | None) -> str | None:
        return _check_url(value)


class ServiceFields(BaseModel):
    """Field constraints of a live service listing."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, max_length=120)
    description: str | None = Field(default=None, max_length=10000)
    price: float | None = Field(default=None, ge=0)
    duration_minutes: int | None = Field(default=None, ge=0)
    website_url: str | None = Field(default=None, max_length=500)
    image_url: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("website_url", "image_url")
    @classmethod
    def check_urls(cls, value: str | None) -> str | None:
        return _check_url(value)


_FIELD_MODELS: dict[str, type[BaseModel]] = {
    VENDOR: VendorFields,
    SERVICE: ServiceFields,
}

_ENTITY_MODELS = {
    VENDOR: models.Vendor,
    SERVICE: models.Service,
}

# fields a brand-new entity cannot be created without
_REQUIRED_ON_CREATE = {
    VENDOR: ("name",),
    SERVICE: ("title",),
}

# NOT NULL columns; a payload may omit them but never clear them
_NON_NULLABLE = {
    VENDOR: ("name",),
    SERVICE: ("title", "is_active"),
}


def ensure_kind(entity_kind: str) -> str:
    if entity_kind not in ENTITY_KINDS:
        raise errors.ValidationError(f"Unknown entity kind '{entity_kind}'")
    return entity_kind


def editable_fields(entity_kind: str) -> tuple[str, ...]:
    return tuple(_FIELD_MODELS[ensure_kind(entity_kind)].model_fields)


def check_payload_shape(entity_kind: str, payload: Any) -> dict[str, Any]:
    """Reject payloads that are not a non-empty object of editable fields."""

    if not isinstance(payload, Mapping) or not payload:
        raise errors.ValidationError("Draft payload must be a non-empty object")
    allowed = set(editable_fields(entity_kind))
    unknown = [key for key in payload if key not in allowed]
    if unknown:
        raise errors.ValidationError(
            f"Unknown {entity_kind} fields in payload: {', '.join(sorted(unknown))}"
        )
    return dict(payload)


def load_live_entity(db: Session, entity_kind: str, lineage_id: UUID) -> models.Vendor | models.Service | None:
    return db.get(_ENTITY_MODELS[ensure_kind(entity_kind)], lineage_id)


def snapshot(db: Session, entity_kind: str, lineage_id: UUID) -> dict[str, Any]:
    """Return the editable fields of the live row, or {} when none exists yet."""

    entity = load_live_entity(db, entity_kind, lineage_id)
    if entity is None:
        return {}
    return {name: getattr(entity, name) for name in editable_fields(entity_kind)}


def validate_payload(
    entity_kind: str,
    payload: Mapping[str, Any],
    *,
    creating: bool,
) -> dict[str, Any]:
    """Validate payload values against live constraints; raise ApplyError on failure."""

    model = _FIELD_MODELS[ensure_kind(entity_kind)]
    try:
        parsed = model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise errors.ApplyError(f"Payload violates {entity_kind} constraints: {problems}") from exc
    dumped = parsed.model_dump(include=set(payload))
    # keep payload order so reviewers and the ledger see fields the same way
    values = {name: dumped[name] for name in payload}
    cleared = [name for name in _NON_NULLABLE[entity_kind] if name in values and values[name] is None]
    if cleared:
        raise errors.ApplyError(
            f"{entity_kind.capitalize()} fields cannot be cleared: {', '.join(cleared)}"
        )
    if creating:
        missing = [name for name in _REQUIRED_ON_CREATE[entity_kind] if not values.get(name)]
        if missing:
            raise errors.ApplyError(
                f"New {entity_kind} requires: {', '.join(missing)}"
            )
    return values


def apply_fields(
    db: Session,
    draft: models.EntityDraft,
    values: Mapping[str, Any],
) -> models.Vendor | models.Service:
    """Write validated values onto the live entity, creating it for new lineages.

    Runs inside the caller's transaction; nothing is committed here.
    """

    entity = load_live_entity(db, draft.entity_kind, draft.entity_lineage_id)
    now = datetime.now(timezone.utc)
    if entity is None:
        if draft.entity_kind == VENDOR:
            entity = models.Vendor(id=draft.entity_lineage_id, owner_id=draft.author_id, created_at=now)
        else:
            if draft.vendor_id is None or db.get(models.Vendor, draft.vendor_id) is None:
                raise errors.ApplyError("New service must reference an existing vendor")
            entity = models.Service(id=draft.entity_lineage_id, vendor_id=draft.vendor_id, created_at=now)
        db.add(entity)
    for name, value in values.items():
        setattr(entity, name, value)
    entity.updated_at = now
    try:
        db.flush()
    except IntegrityError as exc:
        raise errors.ApplyError(
            f"Live {draft.entity_kind} rejected the update: {exc.orig}"
        ) from exc
    return entity
