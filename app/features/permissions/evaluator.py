"""
Authorization evaluator.

Answers "can this user do X in organization Y?" from membership, the admin flag
and the member's role grants. Every decision is a single SELECT so a role's
permission set is never observed mid-update. Unknown organizations, users and
permission names all answer False.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.features.members.models import Member
from app.features.permissions.catalog import PermissionName
from app.features.permissions.models import Permission, role_permissions
from app.utils import get_logger


log = get_logger(__name__)


def _permission_key(permission_name: PermissionName | str) -> str:
    if isinstance(permission_name, PermissionName):
        return permission_name.value
    return permission_name


class AuthorizationEvaluator:
    """
    Read-only permission checks.

    Pass ``cache=True`` for a request-scoped instance: decisions are memoized
    for the lifetime of the object only, so never share one across requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], cache: bool = False):
        self.session_factory = session_factory
        self._cache: dict[tuple, bool] | None = {} if cache else None

    async def has_permission(self, user_id: str, organization_id: str, permission_name: PermissionName | str) -> bool:
        name = _permission_key(permission_name)
        key = ("perm", user_id, organization_id, name)
        if self._cache is not None and key in self._cache:
            return self._cache[key]

        granted = (
            select(role_permissions.c.permission_id)
            .join(Permission, Permission.id == role_permissions.c.permission_id)
            .where(
                role_permissions.c.role_id == Member.role_id,
                Permission.name == name,
            )
            .exists()
        )
        stmt = select(Member.is_admin, granted).where(
            Member.user_id == user_id,
            Member.organization_id == organization_id,
        )

        async with self.session_factory() as session:
            row = (await session.execute(stmt)).first()

        if row is None:
            decision = False
        else:
            is_admin, has_grant = row
            # Admin bypass holds for every name, catalogued or not
            decision = bool(is_admin or has_grant)

        if not decision:
            log.debug(f"Denied {name} for user {user_id} in org {organization_id}")
        if self._cache is not None:
            self._cache[key] = decision
        return decision

    async def is_org_admin(self, user_id: str, organization_id: str) -> bool:
        key = ("admin", user_id, organization_id)
        if self._cache is not None and key in self._cache:
            return self._cache[key]

        stmt = select(Member.is_admin).where(
            Member.user_id == user_id,
            Member.organization_id == organization_id,
        )
        async with self.session_factory() as session:
            is_admin = (await session.execute(stmt)).scalar_one_or_none()

        decision = bool(is_admin)
        if self._cache is not None:
            self._cache[key] = decision
        return decision

    async def is_member(self, user_id: str, organization_id: str) -> bool:
        stmt = select(Member.id).where(
            Member.user_id == user_id,
            Member.organization_id == organization_id,
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).first() is not None
