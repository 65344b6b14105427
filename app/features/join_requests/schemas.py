"""
Pydantic schemas for join requests.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.features.join_requests.models import JoinRequestStatus
from app.features.organizations.schemas import OrganizationPublic
from app.features.users.schemas import UserIdentity


class JoinRequestCreate(BaseModel):
    join_code: str = Field(..., min_length=1, max_length=16, description="Code shared by the organization")


class JoinRequestApprove(BaseModel):
    role_id: str | None = Field(None, description="Role for the new member; null for none")


class JoinRequestReject(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class JoinRequestResponse(BaseModel):
    """Schema for join request responses."""
    id: str
    organization_id: str
    user_id: str
    status: JoinRequestStatus
    requested_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by_id: str | None = None
    notes: str | None = None
    user: UserIdentity | None = None
    organization: OrganizationPublic | None = None
    
    model_config = {"from_attributes": True}


class JoinRequestCreated(BaseModel):
    id: str
    organization_id: str
    status: JoinRequestStatus = JoinRequestStatus.PENDING


class JoinRequestApproved(BaseModel):
    id: str
    member_id: str
    status: JoinRequestStatus = JoinRequestStatus.APPROVED
