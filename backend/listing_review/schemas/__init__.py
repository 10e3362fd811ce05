"""Pydantic schemas consolidating backend API contracts."""

# purpose: aggregate request and response schemas for FastAPI surfaces and services
# status: active

from datetime import datetime
from typing import Optional, Any, Dict, List
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from uuid import UUID

from .drafts import (
    ChangeEntryOut,
    DraftChangesetOut,
    DraftOut,
    DraftReviewRequest,
    DraftSaveRequest,
    DraftSubmitRequest,
    DraftVersionOut,
    EntityKind,
    ModerationActionOut,
    ModerationReportItem,
    VersionComparisonOut,
)


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    full_name: Optional[str]
    phone_number: Optional[str] = None
    is_admin: bool = False
    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class VendorOut(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    description: Optional[str] = None
    website_url: Optional[str] = None
    contact_email: Optional[str] = None
    phone_number: Optional[str] = None
    logo_url: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ServiceOut(BaseModel):
    id: UUID
    vendor_id: UUID
    title: str
    category: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    duration_minutes: Optional[int] = None
    website_url: Optional[str] = None
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: UUID
    user_id: UUID
    event_type: str
    message: str
    title: Optional[str] = None
    priority: str = "medium"
    is_read: bool
    read_at: Optional[datetime] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    action_url: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationPreferenceOut(BaseModel):
    id: UUID
    user_id: UUID
    pref_type: str
    channel: str
    enabled: bool
    model_config = ConfigDict(from_attributes=True)


class NotificationPreferenceUpdate(BaseModel):
    enabled: bool


__all__ = [
    "ChangeEntryOut",
    "DraftChangesetOut",
    "DraftOut",
    "DraftReviewRequest",
    "DraftSaveRequest",
    "DraftSubmitRequest",
    "DraftVersionOut",
    "EntityKind",
    "LoginRequest",
    "ModerationActionOut",
    "ModerationReportItem",
    "NotificationOut",
    "NotificationPreferenceOut",
    "NotificationPreferenceUpdate",
    "ServiceOut",
    "Token",
    "UserCreate",
    "UserOut",
    "UserUpdate",
    "VendorOut",
    "VersionComparisonOut",
]
