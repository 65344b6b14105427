"""
Authorization dependencies for route protection.

Every route-level check goes through the AuthorizationEvaluator. Callers who
are not members of the organization in the path get 404 so organization
existence does not leak; members lacking the capability get 403.
"""
from typing import Annotated
from fastapi import Depends

from app.core.errors import NotFoundError, PermissionDeniedError
from app.features.permissions.catalog import PermissionName
from app.features.permissions.evaluator import AuthorizationEvaluator
from app.features.permissions.roles import RoleStore
from app.features.users.dependencies import CurrentUser, SessionFactory
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


def get_evaluator(session_factory: SessionFactory) -> AuthorizationEvaluator:
    """Request-scoped evaluator; its memo never outlives the request."""
    return AuthorizationEvaluator(session_factory, cache=True)


def get_role_store(session_factory: SessionFactory) -> RoleStore:
    return RoleStore(session_factory)


Evaluator = Annotated[AuthorizationEvaluator, Depends(get_evaluator)]


async def require_member(
    organization_id: str,
    current_user: CurrentUser,
    evaluator: Evaluator,
) -> User:
    """Require membership in the organization named by the ``organization_id`` path parameter."""
    if not await evaluator.is_member(current_user.id, organization_id):
        raise NotFoundError("Organization not found")
    return current_user


def require_permission(permission: PermissionName):
    """
    FastAPI dependency to require a specific permission in the path's organization.
    
    Usage:
        @router.delete("/{organization_id}/members/{member_id}")
        async def remove_member(
            user: Annotated[User, Depends(require_permission(PermissionName.MEMBERS_REMOVE))]
        ):
            ...
    """
    async def permission_dependency(
        organization_id: str,
        current_user: Annotated[User, Depends(require_member)],
        evaluator: Evaluator,
    ) -> User:
        if not await evaluator.has_permission(current_user.id, organization_id, permission):
            raise PermissionDeniedError(f"Permission denied: {permission.value}")
        return current_user
    
    return permission_dependency


async def require_org_admin(
    organization_id: str,
    current_user: Annotated[User, Depends(require_member)],
    evaluator: Evaluator,
) -> User:
    """Require the admin flag in the path's organization."""
    if not await evaluator.is_org_admin(current_user.id, organization_id):
        raise PermissionDeniedError("Organization admin privileges required")
    return current_user


OrgMember = Annotated[User, Depends(require_member)]
OrgAdmin = Annotated[User, Depends(require_org_admin)]
