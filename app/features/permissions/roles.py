"""
Role store.

Per-organization roles and their permission grants. Writes run in a single
transaction each (see ``run_in_transaction``) and keep at most one default role
per organization: other defaults are cleared before the new default is written.
"""
from collections.abc import Iterable

from sqlalchemy import select, update, delete, insert, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import lazyload

from app.core.database.engine import run_in_transaction
from app.core.errors import DuplicateNameError, NotFoundError, RoleInUseError, RoleOrgMismatchError
from app.features.members.models import Member
from app.features.organizations.models import Organization
from app.features.permissions.models import Permission, Role, role_permissions
from app.features.permissions.schemas import PermissionResponse, RoleResponse, RoleWithPermissions
from app.utils import get_logger


log = get_logger(__name__)


async def ensure_role_in_organization(session: AsyncSession, role_id: str, organization_id: str) -> None:
    """Raise unless ``role_id`` names a role of ``organization_id``."""
    result = await session.execute(select(Role.organization_id).where(Role.id == role_id))
    role_org_id = result.scalar_one_or_none()
    if role_org_id is None:
        raise NotFoundError("Role not found")
    if role_org_id != organization_id:
        raise RoleOrgMismatchError()


def _dedupe(permission_ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(permission_ids))


class RoleStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], retries: int | None = None):
        self.session_factory = session_factory
        self.retries = retries

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_role(
        self,
        organization_id: str,
        name: str,
        description: str | None = None,
        permission_ids: Iterable[str] = (),
        is_default: bool = False,
    ) -> str:
        """
        Create a role with the given permissions and return its id.

        Raises:
            NotFoundError: organization or a permission id does not exist
            DuplicateNameError: the organization already has a role with this name
        """
        permission_ids = _dedupe(permission_ids)

        async def work(session: AsyncSession) -> str:
            org = await session.execute(select(Organization.id).where(Organization.id == organization_id))
            if org.scalar_one_or_none() is None:
                raise NotFoundError("Organization not found")
            await self._check_name_free(session, organization_id, name)
            await self._check_permissions_exist(session, permission_ids)

            if is_default:
                await self._clear_defaults(session, organization_id)

            role = Role(
                organization_id=organization_id,
                name=name,
                description=description,
                is_default=is_default,
            )
            session.add(role)
            await session.flush()
            await self._grant(session, role.id, permission_ids)
            return role.id

        role_id = await run_in_transaction(self.session_factory, work, retries=self.retries, name="create_role")
        log.info(f"Created role {name!r} ({role_id}) in org {organization_id}, default={is_default}")
        return role_id

    async def update_role(
        self,
        role_id: str,
        name: str,
        description: str | None,
        permission_ids: Iterable[str],
        is_default: bool,
    ) -> None:
        """
        Replace a role's fields and its whole permission set.

        Raises:
            NotFoundError: role or a permission id does not exist
            DuplicateNameError: another role of the organization has this name
        """
        permission_ids = _dedupe(permission_ids)

        async def work(session: AsyncSession) -> None:
            result = await session.execute(
                select(Role).options(lazyload(Role.permissions)).where(Role.id == role_id)
            )
            role = result.scalar_one_or_none()
            if role is None:
                raise NotFoundError("Role not found")
            if name != role.name:
                await self._check_name_free(session, role.organization_id, name, exclude_role_id=role.id)
            await self._check_permissions_exist(session, permission_ids)

            if is_default:
                await self._clear_defaults(session, role.organization_id, exclude_role_id=role.id)

            role.name = name
            role.description = description
            role.is_default = is_default
            await session.flush()

            # Delete-all then reinsert; permission sets are small
            await session.execute(delete(role_permissions).where(role_permissions.c.role_id == role.id))
            await self._grant(session, role.id, permission_ids)

        await run_in_transaction(self.session_factory, work, retries=self.retries, name="update_role")
        log.info(f"Updated role {role_id}: name={name!r}, default={is_default}, {len(permission_ids)} permission(s)")

    async def delete_role(self, role_id: str) -> None:
        """
        Delete a role no member references.

        Raises:
            NotFoundError: role does not exist
            RoleInUseError: at least one member still has this role
        """
        async def work(session: AsyncSession) -> None:
            result = await session.execute(select(Role.id).where(Role.id == role_id))
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Role not found")

            in_use = await session.execute(
                select(func.count()).select_from(Member).where(Member.role_id == role_id)
            )
            count = in_use.scalar_one()
            if count:
                raise RoleInUseError(f"Role is assigned to {count} member(s)")

            await session.execute(delete(role_permissions).where(role_permissions.c.role_id == role_id))
            await session.execute(delete(Role).where(Role.id == role_id))

        await run_in_transaction(self.session_factory, work, retries=self.retries, name="delete_role")
        log.info(f"Deleted role {role_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_role_with_permissions(self, role_id: str) -> RoleWithPermissions:
        async with self.session_factory() as session:
            result = await session.execute(select(Role).where(Role.id == role_id))
            role = result.scalar_one_or_none()
            if role is None:
                raise NotFoundError("Role not found")
            return RoleWithPermissions.model_validate(role)

    async def list_roles(self, organization_id: str) -> list[RoleWithPermissions]:
        """Roles of an organization ordered by name."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Role).where(Role.organization_id == organization_id).order_by(Role.name)
            )
            return [RoleWithPermissions.model_validate(role) for role in result.scalars().all()]

    async def get_default_role(self, organization_id: str) -> RoleResponse | None:
        """The organization's default role, for callers pre-selecting it on approval."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Role)
                .options(lazyload(Role.permissions))
                .where(Role.organization_id == organization_id, Role.is_default.is_(True))
            )
            role = result.scalar_one_or_none()
            return RoleResponse.model_validate(role) if role is not None else None

    async def list_permissions(self) -> list[PermissionResponse]:
        """Catalog ordered by category then name."""
        async with self.session_factory() as session:
            result = await session.execute(select(Permission).order_by(Permission.category, Permission.name))
            return [PermissionResponse.model_validate(p) for p in result.scalars().all()]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _check_name_free(
        session: AsyncSession, organization_id: str, name: str, exclude_role_id: str | None = None
    ) -> None:
        stmt = select(Role.id).where(Role.organization_id == organization_id, Role.name == name)
        if exclude_role_id is not None:
            stmt = stmt.where(Role.id != exclude_role_id)
        if (await session.execute(stmt)).first() is not None:
            raise DuplicateNameError(f"A role named {name!r} already exists in this organization")

    @staticmethod
    async def _check_permissions_exist(session: AsyncSession, permission_ids: list[str]) -> None:
        if not permission_ids:
            return
        result = await session.execute(select(Permission.id).where(Permission.id.in_(permission_ids)))
        missing = set(permission_ids) - set(result.scalars().all())
        if missing:
            raise NotFoundError(f"Unknown permission id(s): {', '.join(sorted(missing))}")

    @staticmethod
    async def _clear_defaults(session: AsyncSession, organization_id: str, exclude_role_id: str | None = None) -> None:
        stmt = (
            update(Role)
            .where(Role.organization_id == organization_id, Role.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session=False)
        )
        if exclude_role_id is not None:
            stmt = stmt.where(Role.id != exclude_role_id)
        await session.execute(stmt)

    @staticmethod
    async def _grant(session: AsyncSession, role_id: str, permission_ids: list[str]) -> None:
        if permission_ids:
            await session.execute(
                insert(role_permissions),
                [{"role_id": role_id, "permission_id": pid} for pid in permission_ids],
            )
