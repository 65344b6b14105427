"""
Organization member routes (mounted under /organizations).
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status

from app.features.members.dependencies import get_membership_manager
from app.features.members.schemas import MemberAdminUpdate, MemberCreate, MemberResponse, MemberRoleUpdate
from app.features.members.service import MembershipManager
from app.features.permissions.catalog import PermissionName
from app.features.permissions.dependencies import OrgAdmin, require_permission
from app.features.users.models import User


router = APIRouter(tags=["members"])

Members = Annotated[MembershipManager, Depends(get_membership_manager)]


@router.get("/{organization_id}/members", response_model=list[MemberResponse])
async def list_members(
    organization_id: str,
    user: Annotated[User, Depends(require_permission(PermissionName.MEMBERS_VIEW))],
    members: Members,
):
    """List members with role and identity, newest first."""
    return await members.list_members(organization_id)


@router.post(
    "/{organization_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    organization_id: str,
    member: MemberCreate,
    admin: OrgAdmin,
    members: Members,
):
    """Add a user to the organization directly (admin only)."""
    member_id = await members.add_member(
        organization_id,
        member.user_id,
        role_id=member.role_id,
        is_admin=member.is_admin,
    )
    return await members.get_member(member_id)


@router.put("/{organization_id}/members/{member_id}/role", response_model=MemberResponse)
async def change_member_role(
    organization_id: str,
    member_id: str,
    role_update: MemberRoleUpdate,
    user: Annotated[User, Depends(require_permission(PermissionName.MEMBERS_CHANGE_ROLE))],
    members: Members,
):
    """Assign a role to a member, or clear it with null."""
    await members.assign_role(member_id, role_update.role_id, organization_id=organization_id)
    return await members.get_member(member_id)


@router.put("/{organization_id}/members/{member_id}/admin", response_model=MemberResponse)
async def set_member_admin(
    organization_id: str,
    member_id: str,
    admin_update: MemberAdminUpdate,
    admin: OrgAdmin,
    members: Members,
):
    """Promote or demote a member (admin only)."""
    await members.set_admin(member_id, admin_update.is_admin, organization_id=organization_id)
    return await members.get_member(member_id)


@router.delete("/{organization_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    organization_id: str,
    member_id: str,
    user: Annotated[User, Depends(require_permission(PermissionName.MEMBERS_REMOVE))],
    members: Members,
):
    """Remove a member from the organization."""
    await members.remove_member(member_id, organization_id=organization_id)
