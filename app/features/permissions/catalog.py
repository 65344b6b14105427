"""
Global permission catalog.

Permission names are a closed enumeration shared by the evaluator and every
caller. The stored ``permissions`` table is synced from ``PERMISSION_CATALOG``
at startup and verified to contain every enum member.
"""
import enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.features.permissions.models import Permission
from app.utils import get_logger


log = get_logger(__name__)


class PermissionName(str, enum.Enum):
    """Capabilities checked by the application screens."""
    ORG_EDIT_SETTINGS = "org.edit_settings"

    MEMBERS_VIEW = "members.view"
    MEMBERS_CHANGE_ROLE = "members.change_role"
    MEMBERS_REMOVE = "members.remove"

    EVENTS_CREATE = "events.create"
    EVENTS_EDIT = "events.edit"
    EVENTS_DELETE = "events.delete"

    TASKS_CREATE = "tasks.create"
    TASKS_EDIT = "tasks.edit"
    TASKS_DELETE = "tasks.delete"

    RESOURCES_CREATE = "resources.create"
    RESOURCES_EDIT = "resources.edit"
    RESOURCES_DELETE = "resources.delete"

    SKILLS_ASSIGN_SELF = "skills.assign_self"
    SKILLS_ASSIGN_OTHERS = "skills.assign_others"
    SKILLS_REMOVE_SELF = "skills.remove_self"
    SKILLS_REMOVE_OTHERS = "skills.remove_others"

    @property
    def category(self) -> str:
        return self.value.split(".", 1)[0]


# (name, description)
PERMISSION_CATALOG: list[tuple[PermissionName, str]] = [
    (PermissionName.ORG_EDIT_SETTINGS, "Edit organization name, emoji, color and slug"),

    (PermissionName.MEMBERS_VIEW, "View the member list"),
    (PermissionName.MEMBERS_CHANGE_ROLE, "Change the role assigned to a member"),
    (PermissionName.MEMBERS_REMOVE, "Remove members from the organization"),

    (PermissionName.EVENTS_CREATE, "Create events"),
    (PermissionName.EVENTS_EDIT, "Edit events"),
    (PermissionName.EVENTS_DELETE, "Delete events"),

    (PermissionName.TASKS_CREATE, "Create tasks"),
    (PermissionName.TASKS_EDIT, "Edit tasks"),
    (PermissionName.TASKS_DELETE, "Delete tasks"),

    (PermissionName.RESOURCES_CREATE, "Create resources"),
    (PermissionName.RESOURCES_EDIT, "Edit resources"),
    (PermissionName.RESOURCES_DELETE, "Delete resources"),

    (PermissionName.SKILLS_ASSIGN_SELF, "Assign skills to yourself"),
    (PermissionName.SKILLS_ASSIGN_OTHERS, "Assign skills to other members"),
    (PermissionName.SKILLS_REMOVE_SELF, "Remove skills from yourself"),
    (PermissionName.SKILLS_REMOVE_OTHERS, "Remove skills from other members"),
]


class CatalogMismatchError(RuntimeError):
    """Raised at startup when the stored catalog lacks referenced permission names."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Permission catalog is missing: {', '.join(missing)}")


def catalog_names() -> set[str]:
    return {name.value for name, _ in PERMISSION_CATALOG}


def missing_from_catalog() -> list[str]:
    """Enum members without a PERMISSION_CATALOG entry."""
    described = catalog_names()
    return [name.value for name in PermissionName if name.value not in described]


async def sync_permission_catalog(session: AsyncSession) -> int:
    """
    Insert catalog permissions that are not stored yet.

    Existing rows keep their ids so role grants survive; descriptions and
    categories are refreshed in place. Returns the number of inserted rows.
    Runs inside the caller's transaction.
    """
    result = await session.execute(select(Permission))
    existing = {permission.name: permission for permission in result.scalars().all()}

    created = 0
    for name, description in PERMISSION_CATALOG:
        permission = existing.get(name.value)
        if permission is None:
            session.add(Permission(name=name.value, category=name.category, description=description))
            created += 1
            log.info(f"Created permission: {name.value}")
        elif permission.description != description or permission.category != name.category:
            permission.description = description
            permission.category = name.category
            log.debug(f"Refreshed permission: {name.value}")

    await session.flush()
    return created


async def verify_permission_catalog(session: AsyncSession) -> None:
    """Fail when any PermissionName is absent from the stored catalog."""
    missing = missing_from_catalog()
    result = await session.execute(select(Permission.name))
    stored = set(result.scalars().all())
    missing.extend(name.value for name in PermissionName if name.value not in stored and name.value not in missing)
    if missing:
        raise CatalogMismatchError(sorted(missing))


async def ensure_permission_catalog(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Sync then verify the catalog, each in its own transaction."""
    async with session_factory() as session:
        async with session.begin():
            created = await sync_permission_catalog(session)
    async with session_factory() as session:
        await verify_permission_catalog(session)
    log.info(f"Permission catalog ready ({created} new permission(s))")
