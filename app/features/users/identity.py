"""
Identity lookup for display purposes.

Resolves user ids to email, display name and avatar from the local user mirror.
Always called after the membership transaction that produced the ids has
closed, in its own short-lived session.
"""
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import NotFoundError
from app.features.users.models import User
from app.features.users.schemas import UserIdentity


UNKNOWN_USER = "Unknown user"


def display_name_for(name: str | None, email: str | None) -> str:
    if name and name.strip():
        return name.strip()
    if email:
        return email.split("@", 1)[0]
    return UNKNOWN_USER


class UserDirectory:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def lookup(self, user_ids: Iterable[str]) -> dict[str, UserIdentity]:
        """Identities for ``user_ids``; ids without a user get a placeholder."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        async with self.session_factory() as session:
            result = await session.execute(select(User).where(User.id.in_(ids)))
            users = {user.id: user for user in result.scalars().all()}

        identities = {}
        for user_id in ids:
            user = users.get(user_id)
            if user is None:
                identities[user_id] = UserIdentity(id=user_id, display_name=UNKNOWN_USER)
            else:
                identities[user_id] = UserIdentity(
                    id=user.id,
                    email=user.email,
                    display_name=display_name_for(user.name, user.email),
                    avatar_url=user.avatar_url,
                )
        return identities

    async def get(self, user_id: str) -> UserIdentity:
        return (await self.lookup([user_id]))[user_id]


async def ensure_user_exists(session: AsyncSession, user_id: str) -> None:
    """Raise NotFoundError unless ``user_id`` names a known user."""
    if await session.get(User, user_id) is None:
        raise NotFoundError("User not found")
