"""
Pydantic schemas for organization members.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.features.permissions.schemas import RoleSummary
from app.features.users.schemas import UserIdentity


class MemberCreate(BaseModel):
    """Schema for adding a user to an organization directly."""
    user_id: str
    role_id: str | None = None
    is_admin: bool = False


class MemberRoleUpdate(BaseModel):
    role_id: str | None = Field(None, description="Role to assign; null removes the member's role")


class MemberAdminUpdate(BaseModel):
    is_admin: bool


class MemberResponse(BaseModel):
    """Member with role summary and display identity."""
    id: str
    organization_id: str
    user_id: str
    is_admin: bool
    role_id: str | None = None
    role: RoleSummary | None = None
    user: UserIdentity | None = None
    created_at: datetime
