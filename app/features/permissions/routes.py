"""
Permission catalog, permission checks and organization role routes.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, status

from app.core.errors import NotFoundError
from app.features.permissions.dependencies import Evaluator, OrgAdmin, OrgMember, get_role_store
from app.features.permissions.roles import RoleStore
from app.features.permissions.schemas import (
    AdminCheckResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionResponse,
    RoleCreate,
    RoleUpdate,
    RoleWithPermissions,
)
from app.features.users.dependencies import CurrentUser
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()
roles_router = APIRouter()

Roles = Annotated[RoleStore, Depends(get_role_store)]


# ============================================================================
# Permission Routes
# ============================================================================

@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    current_user: CurrentUser,
    roles: Roles,
):
    """List the permission catalog ordered by category then name."""
    return await roles.list_permissions()


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check: PermissionCheckRequest,
    current_user: CurrentUser,
    evaluator: Evaluator,
):
    """Check whether the current user holds a permission in an organization."""
    allowed = await evaluator.has_permission(current_user.id, check.organization_id, check.permission_name)
    return PermissionCheckResponse(
        organization_id=check.organization_id,
        permission_name=check.permission_name,
        allowed=allowed,
    )


@router.get("/organizations/{organization_id}/admin", response_model=AdminCheckResponse)
async def check_org_admin(
    organization_id: str,
    current_user: CurrentUser,
    evaluator: Evaluator,
):
    """Check whether the current user is an admin of an organization."""
    return AdminCheckResponse(
        organization_id=organization_id,
        is_admin=await evaluator.is_org_admin(current_user.id, organization_id),
    )


# ============================================================================
# Role Routes (mounted under /organizations)
# ============================================================================

async def _role_in_org(roles: RoleStore, organization_id: str, role_id: str) -> RoleWithPermissions:
    role = await roles.get_role_with_permissions(role_id)
    if role.organization_id != organization_id:
        raise NotFoundError("Role not found")
    return role


@roles_router.get("/{organization_id}/roles", response_model=List[RoleWithPermissions])
async def list_roles(
    organization_id: str,
    member: OrgMember,
    roles: Roles,
):
    """List the organization's roles with their permissions."""
    return await roles.list_roles(organization_id)


@roles_router.post(
    "/{organization_id}/roles",
    response_model=RoleWithPermissions,
    status_code=status.HTTP_201_CREATED,
)
async def create_role(
    organization_id: str,
    role: RoleCreate,
    admin: OrgAdmin,
    roles: Roles,
):
    """Create a role (organization admin only)."""
    role_id = await roles.create_role(
        organization_id,
        name=role.name,
        description=role.description,
        permission_ids=role.permission_ids,
        is_default=role.is_default,
    )
    return await roles.get_role_with_permissions(role_id)


@roles_router.get("/{organization_id}/roles/{role_id}", response_model=RoleWithPermissions)
async def get_role(
    organization_id: str,
    role_id: str,
    member: OrgMember,
    roles: Roles,
):
    """Get a role with its permissions."""
    return await _role_in_org(roles, organization_id, role_id)


@roles_router.put("/{organization_id}/roles/{role_id}", response_model=RoleWithPermissions)
async def update_role(
    organization_id: str,
    role_id: str,
    role: RoleUpdate,
    admin: OrgAdmin,
    roles: Roles,
):
    """Replace a role's fields and permissions (organization admin only)."""
    await _role_in_org(roles, organization_id, role_id)
    await roles.update_role(
        role_id,
        name=role.name,
        description=role.description,
        permission_ids=role.permission_ids,
        is_default=role.is_default,
    )
    return await roles.get_role_with_permissions(role_id)


@roles_router.delete("/{organization_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    organization_id: str,
    role_id: str,
    admin: OrgAdmin,
    roles: Roles,
):
    """Delete a role no member holds (organization admin only)."""
    await _role_in_org(roles, organization_id, role_id)
    await roles.delete_role(role_id)
