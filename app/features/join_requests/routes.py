"""
Join request routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status

from app.features.join_requests.dependencies import Workflow, get_reviewable_request
from app.features.join_requests.schemas import (
    JoinRequestApprove,
    JoinRequestApproved,
    JoinRequestCreate,
    JoinRequestCreated,
    JoinRequestReject,
    JoinRequestResponse,
)
from app.features.permissions.dependencies import OrgAdmin
from app.features.users.dependencies import CurrentUser


router = APIRouter(tags=["join-requests"])

Reviewable = Annotated[JoinRequestResponse, Depends(get_reviewable_request)]


@router.post("", response_model=JoinRequestCreated, status_code=status.HTTP_201_CREATED)
async def create_join_request(
    join: JoinRequestCreate,
    current_user: CurrentUser,
    workflow: Workflow,
):
    """Ask to join the organization owning a join code."""
    request_id = await workflow.create_join_request(current_user.id, join.join_code)
    request = await workflow.get_request(request_id)
    return JoinRequestCreated(id=request.id, organization_id=request.organization_id)


@router.get("/my", response_model=list[JoinRequestResponse])
async def list_my_join_requests(
    current_user: CurrentUser,
    workflow: Workflow,
):
    """List the current user's join requests."""
    return await workflow.list_requests_for_user(current_user.id)


@router.get("/organizations/{organization_id}", response_model=list[JoinRequestResponse])
async def list_organization_join_requests(
    organization_id: str,
    admin: OrgAdmin,
    workflow: Workflow,
    include_processed: bool = False,
):
    """List an organization's join requests, pending only by default (admin only)."""
    return await workflow.list_pending_requests(organization_id, include_processed=include_processed)


@router.post("/{request_id}/approve", response_model=JoinRequestApproved)
async def approve_join_request(
    request_id: str,
    approval: JoinRequestApprove,
    request: Reviewable,
    current_user: CurrentUser,
    workflow: Workflow,
):
    """Approve a pending request and create the membership."""
    member_id = await workflow.approve_join_request(
        request_id,
        role_id=approval.role_id,
        reviewer_id=current_user.id,
        organization_id=request.organization_id,
    )
    return JoinRequestApproved(id=request_id, member_id=member_id)


@router.post("/{request_id}/reject", response_model=JoinRequestResponse)
async def reject_join_request(
    request_id: str,
    rejection: JoinRequestReject,
    request: Reviewable,
    current_user: CurrentUser,
    workflow: Workflow,
):
    """Reject a pending request."""
    await workflow.reject_join_request(
        request_id,
        notes=rejection.notes,
        reviewer_id=current_user.id,
        organization_id=request.organization_id,
    )
    return await workflow.get_request(request_id)
