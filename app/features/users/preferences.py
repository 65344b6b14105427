"""
Per-user active organization preference.

Replaces an ambient "current organization" on the session: the pointer is an
explicit row, written transactionally on switch and read explicitly by callers.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import run_in_transaction
from app.core.errors import NotFoundError
from app.features.members.models import Member
from app.features.organizations.models import Organization
from app.features.organizations.schemas import OrganizationPublic
from app.features.users.models import UserPreference
from app.features.users.schemas import ActiveOrganizationResponse
from app.utils import get_logger


log = get_logger(__name__)


class PreferenceStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], retries: int | None = None):
        self.session_factory = session_factory
        self.retries = retries

    async def switch_active_organization(self, user_id: str, organization_id: str) -> ActiveOrganizationResponse:
        """
        Make ``organization_id`` the user's active organization.

        Only members may switch to an organization; anything else reads as
        NotFound so organization existence does not leak.
        """
        async def work(session: AsyncSession) -> ActiveOrganizationResponse:
            result = await session.execute(
                select(Organization)
                .join(Member, Member.organization_id == Organization.id)
                .where(Organization.id == organization_id, Member.user_id == user_id)
            )
            org = result.scalar_one_or_none()
            if org is None:
                raise NotFoundError("Organization not found")

            preference = await session.get(UserPreference, user_id)
            if preference is None:
                preference = UserPreference(user_id=user_id)
                session.add(preference)
            preference.active_organization_id = org.id
            preference.last_visited_slug = org.slug
            await session.flush()
            return ActiveOrganizationResponse(
                organization=OrganizationPublic.model_validate(org),
                last_visited_slug=preference.last_visited_slug,
                updated_at=preference.updated_at,
            )

        response = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="switch_active_organization"
        )
        log.debug(f"User {user_id} switched active organization to {organization_id}")
        return response

    async def get_active_organization(self, user_id: str) -> ActiveOrganizationResponse:
        """
        The user's active organization.

        A pointer to an organization the user no longer belongs to reads as
        no active organization.
        """
        async with self.session_factory() as session:
            preference = await session.get(UserPreference, user_id)
            if preference is None:
                return ActiveOrganizationResponse()
            org = None
            if preference.active_organization_id is not None:
                result = await session.execute(
                    select(Organization)
                    .join(Member, Member.organization_id == Organization.id)
                    .where(
                        Organization.id == preference.active_organization_id,
                        Member.user_id == user_id,
                    )
                )
                org = result.scalar_one_or_none()
            return ActiveOrganizationResponse(
                organization=OrganizationPublic.model_validate(org) if org is not None else None,
                last_visited_slug=preference.last_visited_slug,
                updated_at=preference.updated_at,
            )
