"""
Member-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends

from app.features.members.service import MembershipManager
from app.features.users.dependencies import SessionFactory, get_user_directory
from app.features.users.identity import UserDirectory


def get_membership_manager(
    session_factory: SessionFactory,
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> MembershipManager:
    return MembershipManager(session_factory, directory=directory)
