"""
Membership manager.

Lists, adds, re-roles and removes organization members. Identity resolution
for listings happens after the database session is closed.
"""
from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import run_in_transaction
from app.core.errors import AlreadyMemberError, NotFoundError
from app.features.members.models import Member
from app.features.members.schemas import MemberResponse
from app.features.organizations.models import Organization
from app.features.permissions.models import Role
from app.features.permissions.roles import ensure_role_in_organization
from app.features.permissions.schemas import RoleSummary
from app.features.users.identity import UserDirectory, ensure_user_exists
from app.features.users.models import UserPreference
from app.utils import get_logger


log = get_logger(__name__)


def _member_query():
    return select(Member, Role.name).outerjoin(Role, Role.id == Member.role_id)


def _to_response(member: Member, role_name: str | None) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        organization_id=member.organization_id,
        user_id=member.user_id,
        is_admin=member.is_admin,
        role_id=member.role_id,
        role=RoleSummary(id=member.role_id, name=role_name) if member.role_id else None,
        created_at=member.created_at,
    )


async def _load_member(session: AsyncSession, member_id: str, organization_id: str | None) -> Member:
    member = await session.get(Member, member_id)
    if member is None or (organization_id is not None and member.organization_id != organization_id):
        raise NotFoundError("Member not found")
    return member


async def _admin_count(session: AsyncSession, organization_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Member)
        .where(Member.organization_id == organization_id, Member.is_admin.is_(True))
    )
    return result.scalar_one()


class MembershipManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        directory: UserDirectory | None = None,
        retries: int | None = None,
    ):
        self.session_factory = session_factory
        self.directory = directory or UserDirectory(session_factory)
        self.retries = retries

    async def _with_identities(self, members: list[MemberResponse]) -> list[MemberResponse]:
        identities = await self.directory.lookup(m.user_id for m in members)
        for member in members:
            member.user = identities.get(member.user_id)
        return members

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_members(self, organization_id: str) -> list[MemberResponse]:
        """Members of an organization, newest first, with role and identity."""
        async with self.session_factory() as session:
            result = await session.execute(
                _member_query()
                .where(Member.organization_id == organization_id)
                .order_by(Member.created_at.desc(), Member.id.desc())
            )
            members = [_to_response(member, role_name) for member, role_name in result.all()]
        return await self._with_identities(members)

    async def get_member(self, member_id: str, organization_id: str | None = None) -> MemberResponse:
        async with self.session_factory() as session:
            result = await session.execute(_member_query().where(Member.id == member_id))
            row = result.first()
        if row is None or (organization_id is not None and row[0].organization_id != organization_id):
            raise NotFoundError("Member not found")
        return (await self._with_identities([_to_response(*row)]))[0]

    async def get_member_for_user(self, user_id: str, organization_id: str) -> MemberResponse | None:
        async with self.session_factory() as session:
            result = await session.execute(
                _member_query().where(Member.user_id == user_id, Member.organization_id == organization_id)
            )
            row = result.first()
        return _to_response(*row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_member(
        self,
        organization_id: str,
        user_id: str,
        role_id: str | None = None,
        is_admin: bool = False,
    ) -> str:
        """
        Add a user to an organization directly and return the member id.

        Raises:
            NotFoundError: organization, user or role does not exist
            RoleOrgMismatchError: role belongs to another organization
            AlreadyMemberError: the user is already a member
        """
        async def work(session: AsyncSession) -> str:
            if await session.get(Organization, organization_id) is None:
                raise NotFoundError("Organization not found")
            await ensure_user_exists(session, user_id)
            if role_id is not None:
                await ensure_role_in_organization(session, role_id, organization_id)
            existing = await session.execute(
                select(Member.id).where(Member.organization_id == organization_id, Member.user_id == user_id)
            )
            if existing.first() is not None:
                raise AlreadyMemberError()
            member = Member(organization_id=organization_id, user_id=user_id, role_id=role_id, is_admin=is_admin)
            session.add(member)
            await session.flush()
            return member.id

        member_id = await run_in_transaction(self.session_factory, work, retries=self.retries, name="add_member")
        log.info(f"Added user {user_id} to org {organization_id} as member {member_id} (admin={is_admin})")
        return member_id

    async def assign_role(self, member_id: str, role_id: str | None, organization_id: str | None = None) -> None:
        """
        Overwrite a member's role; ``None`` leaves the member without a role.

        Raises:
            NotFoundError: member or role does not exist
            RoleOrgMismatchError: role belongs to another organization
        """
        async def work(session: AsyncSession) -> None:
            member = await _load_member(session, member_id, organization_id)
            if role_id is not None:
                await ensure_role_in_organization(session, role_id, member.organization_id)
            member.role_id = role_id
            await session.flush()

        await run_in_transaction(self.session_factory, work, retries=self.retries, name="assign_role")
        log.info(f"Assigned role {role_id} to member {member_id}")

    async def set_admin(self, member_id: str, is_admin: bool, organization_id: str | None = None) -> None:
        """Promote or demote a member explicitly."""
        async def work(session: AsyncSession) -> int:
            member = await _load_member(session, member_id, organization_id)
            member.is_admin = is_admin
            await session.flush()
            return await _admin_count(session, member.organization_id)

        admins = await run_in_transaction(self.session_factory, work, retries=self.retries, name="set_admin")
        log.info(f"Set admin={is_admin} on member {member_id}")
        if admins == 0:
            log.warning(f"Organization of member {member_id} has no admins left after demotion")

    async def remove_member(self, member_id: str, organization_id: str | None = None) -> None:
        """
        Delete a member.

        Admins are removable like any member; a removal that leaves the
        organization without admins is logged at WARNING.
        """
        async def work(session: AsyncSession) -> tuple[str, int]:
            member = await _load_member(session, member_id, organization_id)
            org_id, user_id = member.organization_id, member.user_id
            await session.execute(delete(Member).where(Member.id == member.id))
            await session.execute(
                update(UserPreference)
                .where(UserPreference.user_id == user_id, UserPreference.active_organization_id == org_id)
                .values(active_organization_id=None)
                .execution_options(synchronize_session=False)
            )
            return org_id, await _admin_count(session, org_id)

        org_id, admins = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="remove_member"
        )
        log.info(f"Removed member {member_id} from org {org_id}")
        if admins == 0:
            log.warning(f"Organization {org_id} has no admins left after removing member {member_id}")
