"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.features.organizations.schemas import OrganizationPublic


class UserResponse(BaseModel):
    """Schema for user responses."""
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    
    model_config = {"from_attributes": True}


class UserIdentity(BaseModel):
    """Minimal identity shown next to members and join requests."""
    id: str
    email: str | None = None
    display_name: str
    avatar_url: str | None = None


class ActiveOrganizationUpdate(BaseModel):
    organization_id: str = Field(..., description="Organization to make active")


class ActiveOrganizationResponse(BaseModel):
    """The user's last active organization, if any."""
    organization: OrganizationPublic | None = None
    last_visited_slug: str | None = None
    updated_at: datetime | None = None
