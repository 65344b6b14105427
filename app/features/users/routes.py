"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.features.users.dependencies import CurrentUser, get_preference_store
from app.features.users.preferences import PreferenceStore
from app.features.users.schemas import ActiveOrganizationResponse, ActiveOrganizationUpdate, UserResponse


router = APIRouter(tags=["users"])

Preferences = Annotated[PreferenceStore, Depends(get_preference_store)]


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(user: CurrentUser):
    """Get current authenticated user's profile."""
    return user


@router.get("/me/active-organization", response_model=ActiveOrganizationResponse)
async def get_active_organization(user: CurrentUser, preferences: Preferences):
    """Get the organization whose screens load by default."""
    return await preferences.get_active_organization(user.id)


@router.put("/me/active-organization", response_model=ActiveOrganizationResponse)
async def switch_active_organization(
    switch: ActiveOrganizationUpdate,
    user: CurrentUser,
    preferences: Preferences,
):
    """Switch the active organization (members only)."""
    return await preferences.switch_active_organization(user.id, switch.organization_id)
