"""
Join-request dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends

from app.core.errors import NotFoundError, PermissionDeniedError
from app.features.join_requests.schemas import JoinRequestResponse
from app.features.join_requests.service import JoinRequestWorkflow
from app.features.permissions.dependencies import Evaluator
from app.features.users.dependencies import CurrentUser, SessionFactory, get_user_directory
from app.features.users.identity import UserDirectory


def get_join_request_workflow(
    session_factory: SessionFactory,
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> JoinRequestWorkflow:
    return JoinRequestWorkflow(session_factory, directory=directory)


Workflow = Annotated[JoinRequestWorkflow, Depends(get_join_request_workflow)]


async def get_reviewable_request(
    request_id: str,
    current_user: CurrentUser,
    workflow: Workflow,
    evaluator: Evaluator,
) -> JoinRequestResponse:
    """Load a join request; reviewers must be admins of its organization."""
    request = await workflow.get_request(request_id)
    if not await evaluator.is_member(current_user.id, request.organization_id):
        # Outsiders cannot tell an existing request from a missing one
        raise NotFoundError("Join request not found")
    if not await evaluator.is_org_admin(current_user.id, request.organization_id):
        raise PermissionDeniedError("Organization admin privileges required")
    return request
