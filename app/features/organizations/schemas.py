"""
Pydantic schemas for organization-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.features.organizations.allocator import MAX_SLUG_LENGTH, MIN_SLUG_LENGTH
from app.features.permissions.schemas import RoleSummary


DEFAULT_EMOJI = "🤝"
DEFAULT_COLOR = "#f2b5b5"


class OrganizationBase(BaseModel):
    """Base organization schema."""
    name: str = Field(..., min_length=1, max_length=255)
    emoji: str | None = Field(DEFAULT_EMOJI, max_length=16)
    color: str | None = Field(DEFAULT_COLOR, max_length=16, pattern="^#[0-9a-fA-F]{6}$")


class OrganizationCreate(OrganizationBase):
    """Schema for creating an organization with its founding admin."""
    slug: str = Field(..., max_length=MAX_SLUG_LENGTH, description="URL path segment, e.g. 'lsm-bahari'")


class OrganizationUpdate(BaseModel):
    """Schema for updating organization information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=MAX_SLUG_LENGTH)
    emoji: str | None = Field(None, max_length=16)
    color: str | None = Field(None, max_length=16, pattern="^#[0-9a-fA-F]{6}$")


class OrganizationDelete(BaseModel):
    confirmation_name: str = Field(..., description="Must equal the organization name")


class OrganizationPublic(BaseModel):
    """Organization fields safe to show to any member."""
    id: str
    slug: str
    name: str
    emoji: str | None = None
    color: str | None = None
    
    model_config = {"from_attributes": True}


class OrganizationResponse(OrganizationPublic):
    """Schema for organization responses."""
    join_code: str
    created_at: datetime
    updated_at: datetime


class OrganizationMembership(BaseModel):
    """An organization the current user belongs to, with their standing in it."""
    organization: OrganizationResponse
    member_id: str
    is_admin: bool
    role: RoleSummary | None = None


class SlugAvailability(BaseModel):
    slug: str
    available: bool
    reason: str | None = None
    min_length: int = MIN_SLUG_LENGTH
    max_length: int = MAX_SLUG_LENGTH
