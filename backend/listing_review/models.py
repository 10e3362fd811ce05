import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Float,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String)
    phone_number = Column(String)
    is_admin = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)

    vendors = relationship("Vendor", back_populates="owner")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class Vendor(Base):
    __tablename__ = "vendors"

    # purpose: live vendor profile; only ever mutated by an approved draft
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    website_url = Column(String(500))
    contact_email = Column(String(320))
    phone_number = Column(String(40))
    logo_url = Column(String(500))
    location = Column(String(255))
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    owner = relationship("User", back_populates="vendors")
    services = relationship("Service", back_populates="vendor", order_by="Service.created_at")


class Service(Base):
    __tablename__ = "services"

    # purpose: live marketplace service listing; only ever mutated by an approved draft
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(120))
    description = Column(Text)
    price = Column(Float)
    duration_minutes = Column(Integer)
    website_url = Column(String(500))
    image_url = Column(String(500))
    tags = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    vendor = relationship("Vendor", back_populates="services")


class EntityDraft(Base):
    __tablename__ = "entity_drafts"

    # purpose: one proposed change to a vendor or service, versioned per lineage
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entity_kind = Column(String(16), nullable=False)
    entity_lineage_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    vendor_id = Column(UUID(as_uuid=True), nullable=True)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    version_number = Column(Integer, nullable=False)
    row_version = Column(Integer, nullable=False, default=1)
    state = Column(String(32), nullable=False, default="DRAFT")
    change_summary = Column(Text)
    rejection_reason = Column(Text)
    reviewed_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    author = relationship("User", foreign_keys=[author_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])

    __table_args__ = (
        sa.UniqueConstraint(
            "entity_kind",
            "entity_lineage_id",
            "version_number",
            name="uq_entity_drafts_lineage_version",
        ),
        sa.Index(
            "uq_entity_drafts_single_submitted",
            "entity_kind",
            "entity_lineage_id",
            unique=True,
            sqlite_where=sa.text("state = 'SUBMITTED'"),
            postgresql_where=sa.text("state = 'SUBMITTED'"),
        ),
        sa.Index("ix_entity_drafts_kind_state", "entity_kind", "state"),
    )


class ModerationAction(Base):
    __tablename__ = "moderation_actions"

    # purpose: append-only ledger row, one per draft state transition
    # draft_id is deliberately not a foreign key so purged drafts keep their history
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draft_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    draft_version_number = Column(Integer, nullable=False)
    entity_kind = Column(String(16), nullable=False)
    entity_lineage_id = Column(UUID(as_uuid=True), nullable=False)
    sequence = Column(Integer, nullable=False)
    action_type = Column(String(32), nullable=False)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    notes = Column(Text)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    actor = relationship("User")

    __table_args__ = (
        sa.UniqueConstraint(
            "entity_kind",
            "entity_lineage_id",
            "sequence",
            name="uq_moderation_actions_lineage_sequence",
        ),
        sa.Index("ix_moderation_actions_lineage", "entity_kind", "entity_lineage_id"),
    )


@event.listens_for(ModerationAction, "before_update")
def _refuse_moderation_action_update(_mapper, _connection, target):
    raise RuntimeError(f"Moderation action {target.id} is append-only")


@event.listens_for(ModerationAction, "before_delete")
def _refuse_moderation_action_delete(_mapper, _connection, target):
    raise RuntimeError(f"Moderation action {target.id} is append-only")


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    event_type = Column(String(64), nullable=False)
    message = Column(String, nullable=False)
    title = Column(String, nullable=True)
    priority = Column(String, default="medium")  # low, medium, high
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime, nullable=True)
    meta = Column(JSON, default=dict)  # entity_kind, entity_lineage_id, draft_id, vendor_id
    created_at = Column(DateTime, default=_utcnow)
    user = relationship("User", back_populates="notifications")

    @property
    def action_url(self) -> str | None:
        meta = self.meta or {}
        return meta.get("action_url")


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "pref_type", "channel"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    pref_type = Column(String, nullable=False)
    channel = Column(String, nullable=False, default="in_app")
    enabled = Column(Boolean, default=True)
