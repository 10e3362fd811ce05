"""Draft review workflow schemas."""

# purpose: request and response contracts for draft submission, review and history
# status: active

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..services.changesets import ChangeEntry, format_value

EntityKind = Literal["service", "vendor"]
DraftStateLiteral = Literal[
    "DRAFT",
    "SUBMITTED",
    "CHANGES_REQUESTED",
    "APPROVED",
    "PUBLISHED",
    "REJECTED",
]


class DraftSubmitRequest(BaseModel):
    """Vendor proposal; a null lineage proposes a brand-new entity."""

    entity_kind: EntityKind
    entity_lineage_id: UUID | None = None
    vendor_id: UUID | None = None
    payload: dict[str, Any]
    change_summary: str | None = Field(default=None, max_length=2000)


class DraftSaveRequest(DraftSubmitRequest):
    expected_row_version: int = Field(default=0, ge=0)


class DraftReviewRequest(BaseModel):
    action: Literal["approve", "reject", "request_changes"]
    reason: str | None = Field(default=None, max_length=2000)


class DraftOut(BaseModel):
    id: UUID
    entity_kind: EntityKind
    entity_lineage_id: UUID
    vendor_id: UUID | None = None
    author_id: UUID
    payload: dict[str, Any] = Field(default_factory=dict)
    version_number: int
    row_version: int
    state: DraftStateLiteral
    change_summary: str | None = None
    rejection_reason: str | None = None
    reviewed_by_id: UUID | None = None
    created_at: datetime
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    reviewed_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class DraftVersionOut(DraftOut):
    is_latest: bool = False


class ChangeEntryOut(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None

    @computed_field
    @property
    def old_display(self) -> str:
        return format_value(self.old_value)

    @computed_field
    @property
    def new_display(self) -> str:
        return format_value(self.new_value)

    @classmethod
    def from_entry(cls, entry: ChangeEntry) -> "ChangeEntryOut":
        return cls(field=entry.field, old_value=entry.old_value, new_value=entry.new_value)


class DraftChangesetOut(BaseModel):
    draft_id: UUID
    entity_kind: EntityKind
    entity_lineage_id: UUID
    version_number: int
    changes: list[ChangeEntryOut] = Field(default_factory=list)


class VersionComparisonOut(BaseModel):
    entity_kind: EntityKind
    entity_lineage_id: UUID
    from_version: int
    to_version: int
    changes: list[ChangeEntryOut] = Field(default_factory=list)


class ModerationActionOut(BaseModel):
    id: UUID
    draft_id: UUID
    draft_version_number: int
    entity_kind: EntityKind
    entity_lineage_id: UUID
    sequence: int
    action_type: Literal["SUBMIT", "APPROVE", "REJECT", "REQUEST_CHANGES"]
    actor_id: UUID | None = None
    notes: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ModerationReportItem(BaseModel):
    action_type: str
    count: int
