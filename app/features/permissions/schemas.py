"""
Pydantic schemas for the permission catalog and organization roles.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionResponse(BaseModel):
    """Catalog entry."""
    id: str
    name: str
    description: str
    category: str
    
    model_config = ConfigDict(from_attributes=True)


class PermissionCheckRequest(BaseModel):
    """Schema for checking a permission in an organization."""
    organization_id: str = Field(..., description="Organization to check in")
    permission_name: str = Field(..., min_length=1, max_length=100, description="Permission name, e.g. 'tasks.create'")


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    organization_id: str
    permission_name: str
    allowed: bool


class AdminCheckResponse(BaseModel):
    organization_id: str
    is_admin: bool


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=50, description="Role name, unique within the organization")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")
    
    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError('Role name must not be blank')
        return v


class RoleCreate(RoleBase):
    """Schema for creating a role."""
    permission_ids: List[str] = Field(default_factory=list, description="Permissions granted by the role")
    is_default: bool = Field(False, description="Suggest this role when approving join requests")


class RoleUpdate(RoleCreate):
    """
    Schema for updating a role.

    Updates replace every field, including the full permission set.
    """


class RoleSummary(BaseModel):
    id: str
    name: str
    
    model_config = ConfigDict(from_attributes=True)


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: str
    organization_id: str
    is_default: bool
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    """Schema for role with permissions."""
    permissions: List[PermissionResponse] = []
    
    model_config = ConfigDict(from_attributes=True)
    
    @property
    def permission_names(self) -> set[str]:
        return {permission.name for permission in self.permissions}
