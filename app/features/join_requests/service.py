"""
Join-request workflow.

``pending -> approved`` or ``pending -> rejected``; terminal once reached.
Transitions are a compare-and-swap ``UPDATE ... WHERE status = 'pending'``
so two reviewers racing on one request cannot both win.
"""
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.base import utcnow
from app.core.database.engine import run_in_transaction
from app.core.errors import (
    AlreadyMemberError,
    AlreadyProcessedError,
    DuplicateRequestError,
    InvalidCodeError,
    NotFoundError,
)
from app.features.join_requests.models import JoinRequest, JoinRequestStatus
from app.features.join_requests.schemas import JoinRequestResponse
from app.features.members.models import Member
from app.features.organizations.allocator import normalize_join_code
from app.features.organizations.models import Organization
from app.features.organizations.schemas import OrganizationPublic
from app.features.permissions.roles import ensure_role_in_organization
from app.features.users.identity import UserDirectory, ensure_user_exists
from app.utils import get_logger


log = get_logger(__name__)


async def _transition(
    session: AsyncSession,
    request_id: str,
    organization_id: str | None,
    **values,
) -> JoinRequest:
    """Move a pending request to a terminal state or raise."""
    stmt = (
        update(JoinRequest)
        .where(JoinRequest.id == request_id, JoinRequest.status == JoinRequestStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if organization_id is not None:
        stmt = stmt.where(JoinRequest.organization_id == organization_id)
    result = await session.execute(stmt)

    request = await session.get(JoinRequest, request_id)
    if request is None or (organization_id is not None and request.organization_id != organization_id):
        raise NotFoundError("Join request not found")
    if result.rowcount == 0:
        raise AlreadyProcessedError(f"Join request was already {request.status.value}")
    return request


class JoinRequestWorkflow:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        directory: UserDirectory | None = None,
        retries: int | None = None,
    ):
        self.session_factory = session_factory
        self.directory = directory or UserDirectory(session_factory)
        self.retries = retries

    async def create_join_request(self, user_id: str, join_code: str) -> str:
        """
        Ask to join the organization owning ``join_code``; returns the request id.

        Raises:
            InvalidCodeError: no organization has this code
            NotFoundError: the user does not exist
            AlreadyMemberError: the user already belongs to the organization
            DuplicateRequestError: the user already has a pending request there
        """
        code = normalize_join_code(join_code)

        async def work(session: AsyncSession) -> tuple[str, str]:
            result = await session.execute(select(Organization.id).where(Organization.join_code == code))
            organization_id = result.scalar_one_or_none()
            if organization_id is None:
                raise InvalidCodeError()
            await ensure_user_exists(session, user_id)

            member = await session.execute(
                select(Member.id).where(Member.organization_id == organization_id, Member.user_id == user_id)
            )
            if member.first() is not None:
                raise AlreadyMemberError("You are already a member of this organization")

            pending = await session.execute(
                select(JoinRequest.id).where(
                    JoinRequest.organization_id == organization_id,
                    JoinRequest.user_id == user_id,
                    JoinRequest.status == JoinRequestStatus.PENDING,
                )
            )
            if pending.first() is not None:
                raise DuplicateRequestError()

            request = JoinRequest(organization_id=organization_id, user_id=user_id)
            session.add(request)
            await session.flush()
            return request.id, organization_id

        request_id, organization_id = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="create_join_request"
        )
        log.info(f"User {user_id} requested to join org {organization_id} (request {request_id})")
        return request_id

    async def approve_join_request(
        self,
        request_id: str,
        role_id: str | None = None,
        reviewer_id: str | None = None,
        organization_id: str | None = None,
    ) -> str:
        """
        Approve a pending request and create the membership; returns the member id.

        The role is taken as given; pre-selecting the organization's default
        role is up to the caller.

        Raises:
            NotFoundError: request, reviewer or role does not exist
            AlreadyProcessedError: the request is no longer pending
            RoleOrgMismatchError: role belongs to another organization
            AlreadyMemberError: the user joined by another path meanwhile
        """
        async def work(session: AsyncSession) -> str:
            if reviewer_id is not None:
                await ensure_user_exists(session, reviewer_id)
            request = await _transition(
                session,
                request_id,
                organization_id,
                status=JoinRequestStatus.APPROVED,
                reviewed_at=utcnow(),
                reviewed_by_id=reviewer_id,
            )
            if role_id is not None:
                await ensure_role_in_organization(session, role_id, request.organization_id)

            existing = await session.execute(
                select(Member.id).where(
                    Member.organization_id == request.organization_id,
                    Member.user_id == request.user_id,
                )
            )
            if existing.first() is not None:
                raise AlreadyMemberError()

            member = Member(organization_id=request.organization_id, user_id=request.user_id, role_id=role_id)
            session.add(member)
            await session.flush()
            return member.id

        member_id = await run_in_transaction(
            self.session_factory, work, retries=self.retries, name="approve_join_request"
        )
        log.info(f"Approved join request {request_id} by {reviewer_id}: member {member_id}, role {role_id}")
        return member_id

    async def reject_join_request(
        self,
        request_id: str,
        notes: str | None = None,
        reviewer_id: str | None = None,
        organization_id: str | None = None,
    ) -> None:
        """
        Reject a pending request; no membership is created.

        Raises:
            NotFoundError: request or reviewer does not exist
            AlreadyProcessedError: the request is no longer pending
        """
        async def work(session: AsyncSession) -> None:
            if reviewer_id is not None:
                await ensure_user_exists(session, reviewer_id)
            await _transition(
                session,
                request_id,
                organization_id,
                status=JoinRequestStatus.REJECTED,
                reviewed_at=utcnow(),
                reviewed_by_id=reviewer_id,
                notes=notes,
            )

        await run_in_transaction(self.session_factory, work, retries=self.retries, name="reject_join_request")
        log.info(f"Rejected join request {request_id} by {reviewer_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_request(self, request_id: str) -> JoinRequestResponse:
        async with self.session_factory() as session:
            request = await session.get(JoinRequest, request_id)
            if request is None:
                raise NotFoundError("Join request not found")
            response = JoinRequestResponse.model_validate(request)
        response.user = await self.directory.get(response.user_id)
        return response

    async def list_pending_requests(
        self, organization_id: str, include_processed: bool = False
    ) -> list[JoinRequestResponse]:
        """Requests for an organization, newest first, with requester identity."""
        stmt = select(JoinRequest).where(JoinRequest.organization_id == organization_id)
        if not include_processed:
            stmt = stmt.where(JoinRequest.status == JoinRequestStatus.PENDING)
        stmt = stmt.order_by(JoinRequest.requested_at.desc(), JoinRequest.id.desc())

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            requests = [JoinRequestResponse.model_validate(r) for r in result.scalars().all()]

        identities = await self.directory.lookup(r.user_id for r in requests)
        for request in requests:
            request.user = identities.get(request.user_id)
        return requests

    async def list_requests_for_user(self, user_id: str) -> list[JoinRequestResponse]:
        """A user's own requests with the organization they target."""
        stmt = (
            select(JoinRequest, Organization)
            .join(Organization, Organization.id == JoinRequest.organization_id)
            .where(JoinRequest.user_id == user_id)
            .order_by(JoinRequest.requested_at.desc(), JoinRequest.id.desc())
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
            responses = []
            for request, org in rows:
                response = JoinRequestResponse.model_validate(request)
                response.organization = OrganizationPublic.model_validate(org)
                responses.append(response)
        return responses
