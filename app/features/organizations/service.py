"""
Organization lifecycle: slug checks, creation with a founding admin, updates
and ordered deletion of everything an organization owns.
"""
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core import config
from app.core.database.engine import run_in_transaction
from app.core.errors import ConfirmationMismatchError, ConflictError, InvalidSlugError, NotFoundError
from app.features.join_requests.models import JoinRequest
from app.features.members.models import Member
from app.features.organizations.allocator import generate_join_code, slug_format_error
from app.features.organizations.models import Organization
from app.features.organizations.schemas import (
    DEFAULT_COLOR,
    DEFAULT_EMOJI,
    OrganizationMembership,
    OrganizationResponse,
    SlugAvailability,
)
from app.features.permissions.models import Role, role_permissions
from app.features.permissions.schemas import RoleSummary
from app.features.users.identity import ensure_user_exists
from app.features.users.models import UserPreference
from app.utils import get_logger


log = get_logger(__name__)


async def _slug_taken(session: AsyncSession, slug: str, exclude_org_id: str | None = None) -> bool:
    stmt = select(Organization.id).where(Organization.slug == slug)
    if exclude_org_id is not None:
        stmt = stmt.where(Organization.id != exclude_org_id)
    return (await session.execute(stmt)).first() is not None


async def _allocate_join_code(session: AsyncSession) -> str:
    """Generate a join code no organization uses yet."""
    for attempt in range(config.JOIN_CODE_MAX_ATTEMPTS):
        code = generate_join_code()
        existing = await session.execute(select(Organization.id).where(Organization.join_code == code))
        if existing.first() is None:
            return code
        log.debug(f"Join code collision on attempt {attempt + 1}")
    raise ConflictError("Could not allocate a unique join code")


async def _validate_slug(session: AsyncSession, slug: str, exclude_org_id: str | None = None) -> None:
    reason = slug_format_error(slug)
    if reason:
        raise InvalidSlugError(reason)
    if await _slug_taken(session, slug, exclude_org_id):
        raise InvalidSlugError("This slug is already taken")


class OrganizationService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], retries: int | None = None):
        self.session_factory = session_factory
        self.retries = retries

    async def slug_availability(self, slug: str) -> SlugAvailability:
        reason = slug_format_error(slug)
        if reason is None:
            async with self.session_factory() as session:
                if await _slug_taken(session, slug):
                    reason = "This slug is already taken"
        return SlugAvailability(slug=slug, available=reason is None, reason=reason)

    async def check_slug_available(self, slug: str) -> bool:
        """True when ``slug`` is well-formed, not reserved and unused."""
        return (await self.slug_availability(slug)).available

    async def create_organization_with_member(
        self,
        creator_user_id: str,
        name: str,
        slug: str,
        emoji: str | None = DEFAULT_EMOJI,
        color: str | None = DEFAULT_COLOR,
    ) -> str:
        """
        Create an organization and its founding admin member atomically.

        Also points the founder's active-organization preference at the new
        organization. Returns the organization id.

        Raises:
            NotFoundError: the founding user does not exist
            InvalidSlugError: slug malformed, reserved or taken
            ConflictError: no free join code within the configured attempts
        """
        async def work(session: AsyncSession) -> str:
            await ensure_user_exists(session, creator_user_id)
            await _validate_slug(session, slug)
            org = Organization(
                name=name,
                slug=slug,
                join_code=await _allocate_join_code(session),
                emoji=emoji,
                color=color,
            )
            session.add(org)
            await session.flush()

            session.add(Member(organization_id=org.id, user_id=creator_user_id, is_admin=True, role_id=None))

            preference = await session.get(UserPreference, creator_user_id)
            if preference is None:
                session.add(UserPreference(
                    user_id=creator_user_id,
                    active_organization_id=org.id,
                    last_visited_slug=org.slug,
                ))
            else:
                preference.active_organization_id = org.id
                preference.last_visited_slug = org.slug
            await session.flush()
            return org.id

        org_id = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="create_organization_with_member"
        )
        log.info(f"Created organization {slug!r} ({org_id}) with founder {creator_user_id}")
        return org_id

    async def get_organization(self, organization_id: str) -> OrganizationResponse:
        async with self.session_factory() as session:
            org = await session.get(Organization, organization_id)
            if org is None:
                raise NotFoundError("Organization not found")
            return OrganizationResponse.model_validate(org)

    async def get_by_slug(self, slug: str) -> OrganizationResponse:
        async with self.session_factory() as session:
            result = await session.execute(select(Organization).where(Organization.slug == slug))
            org = result.scalar_one_or_none()
            if org is None:
                raise NotFoundError("Organization not found")
            return OrganizationResponse.model_validate(org)

    async def list_user_organizations(self, user_id: str) -> list[OrganizationMembership]:
        """Organizations ``user_id`` belongs to, ordered by name."""
        stmt = (
            select(Organization, Member.id, Member.is_admin, Role.id, Role.name)
            .join(Member, Member.organization_id == Organization.id)
            .outerjoin(Role, Role.id == Member.role_id)
            .where(Member.user_id == user_id)
            .order_by(Organization.name)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
            return [
                OrganizationMembership(
                    organization=OrganizationResponse.model_validate(org),
                    member_id=member_id,
                    is_admin=is_admin,
                    role=RoleSummary(id=role_id, name=role_name) if role_id else None,
                )
                for org, member_id, is_admin, role_id, role_name in rows
            ]

    async def update_organization(
        self,
        organization_id: str,
        *,
        name: str | None = None,
        slug: str | None = None,
        emoji: str | None = None,
        color: str | None = None,
    ) -> OrganizationResponse:
        """Update the given fields; a new slug is validated like at creation."""
        async def work(session: AsyncSession) -> OrganizationResponse:
            org = await session.get(Organization, organization_id)
            if org is None:
                raise NotFoundError("Organization not found")
            if slug is not None and slug != org.slug:
                await _validate_slug(session, slug, exclude_org_id=org.id)
                org.slug = slug
                await session.execute(
                    update(UserPreference)
                    .where(UserPreference.active_organization_id == org.id)
                    .values(last_visited_slug=slug)
                )
            if name is not None:
                org.name = name
            if emoji is not None:
                org.emoji = emoji
            if color is not None:
                org.color = color
            await session.flush()
            return OrganizationResponse.model_validate(org)

        updated = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="update_organization"
        )
        log.info(f"Updated organization {organization_id}")
        return updated

    async def delete_organization(self, organization_id: str, confirmation_name: str | None = None) -> None:
        """
        Delete an organization and everything it owns.

        When ``confirmation_name`` is given it must equal the organization's name.
        """
        async def work(session: AsyncSession) -> None:
            org = await session.get(Organization, organization_id)
            if org is None:
                raise NotFoundError("Organization not found")
            if confirmation_name is not None and confirmation_name != org.name:
                raise ConfirmationMismatchError()

            role_ids = select(Role.id).where(Role.organization_id == organization_id)

            await session.execute(delete(JoinRequest).where(JoinRequest.organization_id == organization_id))
            await session.execute(delete(Member).where(Member.organization_id == organization_id))
            await session.execute(delete(role_permissions).where(role_permissions.c.role_id.in_(role_ids)))
            await session.execute(delete(Role).where(Role.organization_id == organization_id))
            await session.execute(
                update(UserPreference)
                .where(UserPreference.active_organization_id == organization_id)
                .values(active_organization_id=None)
                .execution_options(synchronize_session=False)
            )
            await session.execute(delete(Organization).where(Organization.id == organization_id))

        await run_in_transaction(self.session_factory, work, retries=self.retries, name="delete_organization")
        log.info(f"Deleted organization {organization_id}")
