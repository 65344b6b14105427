"""
Organization feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status, Query

from app.core.errors import NotFoundError
from app.features.organizations.dependencies import get_organization_service
from app.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationDelete,
    OrganizationMembership,
    OrganizationResponse,
    OrganizationUpdate,
    SlugAvailability,
)
from app.features.organizations.service import OrganizationService
from app.features.permissions.catalog import PermissionName
from app.features.permissions.dependencies import Evaluator, OrgAdmin, OrgMember, require_permission
from app.features.users.dependencies import CurrentUser
from app.features.users.models import User


router = APIRouter(tags=["organizations"])

Organizations = Annotated[OrganizationService, Depends(get_organization_service)]


@router.get("/slug-availability", response_model=SlugAvailability)
async def check_slug_availability(
    current_user: CurrentUser,
    organizations: Organizations,
    slug: str = Query(..., max_length=100),
):
    """Check whether a slug is well-formed and unused."""
    return await organizations.slug_availability(slug)


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    current_user: CurrentUser,
    organizations: Organizations,
):
    """Create an organization with the current user as its founding admin."""
    organization_id = await organizations.create_organization_with_member(
        current_user.id,
        name=org_data.name,
        slug=org_data.slug,
        emoji=org_data.emoji,
        color=org_data.color,
    )
    return await organizations.get_organization(organization_id)


@router.get("/my", response_model=list[OrganizationMembership])
async def list_my_organizations(
    current_user: CurrentUser,
    organizations: Organizations,
):
    """List organizations the current user belongs to."""
    return await organizations.list_user_organizations(current_user.id)


@router.get("/by-slug/{slug}", response_model=OrganizationResponse)
async def get_organization_by_slug(
    slug: str,
    current_user: CurrentUser,
    organizations: Organizations,
    evaluator: Evaluator,
):
    """Get an organization the current user belongs to by slug."""
    organization = await organizations.get_by_slug(slug)
    if not await evaluator.is_member(current_user.id, organization.id):
        raise NotFoundError("Organization not found")
    return organization


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: str,
    member: OrgMember,
    organizations: Organizations,
):
    """Get organization details (members only)."""
    return await organizations.get_organization(organization_id)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: str,
    org_update: OrganizationUpdate,
    user: Annotated[User, Depends(require_permission(PermissionName.ORG_EDIT_SETTINGS))],
    organizations: Organizations,
):
    """Update organization settings."""
    return await organizations.update_organization(
        organization_id,
        **org_update.model_dump(exclude_unset=True),
    )


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    organization_id: str,
    confirmation: OrganizationDelete,
    admin: OrgAdmin,
    organizations: Organizations,
):
    """Permanently delete an organization (admin only, typed-name confirmation)."""
    await organizations.delete_organization(organization_id, confirmation.confirmation_name)
