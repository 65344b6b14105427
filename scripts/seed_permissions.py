"""
Seed script to populate the permission catalog and starter roles.

Run this script after database initialization to:
- Insert missing catalog permissions (existing rows keep their ids)
- Optionally create starter roles for an organization

Usage:
    uv run python -m scripts.seed_permissions
    uv run python -m scripts.seed_permissions --org-slug lsm-bahari
"""
import argparse
import asyncio
from sqlalchemy import select

from app.core.database.engine import AsyncSessionLocal, init_db
from app.core.errors import DuplicateNameError
from app.features.organizations.models import Organization
from app.features.permissions.catalog import PermissionName, ensure_permission_catalog
from app.features.permissions.models import Permission
from app.features.permissions.roles import RoleStore
from app.utils import get_logger


log = get_logger(__name__)


STARTER_ROLES = {
    "Coordinator": {
        "description": "Plans events and tasks and manages members",
        "is_default": False,
        "permissions": [
            PermissionName.MEMBERS_VIEW,
            PermissionName.MEMBERS_CHANGE_ROLE,
            PermissionName.EVENTS_CREATE,
            PermissionName.EVENTS_EDIT,
            PermissionName.EVENTS_DELETE,
            PermissionName.TASKS_CREATE,
            PermissionName.TASKS_EDIT,
            PermissionName.TASKS_DELETE,
            PermissionName.RESOURCES_CREATE,
            PermissionName.RESOURCES_EDIT,
            PermissionName.SKILLS_ASSIGN_SELF,
            PermissionName.SKILLS_ASSIGN_OTHERS,
            PermissionName.SKILLS_REMOVE_SELF,
            PermissionName.SKILLS_REMOVE_OTHERS,
        ],
    },
    "Volunteer": {
        "description": "Takes part in events and manages their own skills",
        "is_default": True,
        "permissions": [
            PermissionName.MEMBERS_VIEW,
            PermissionName.SKILLS_ASSIGN_SELF,
            PermissionName.SKILLS_REMOVE_SELF,
        ],
    },
}


async def seed_starter_roles(org_slug: str):
    """Create STARTER_ROLES in the organization with ``org_slug``, skipping existing names."""
    async with AsyncSessionLocal() as session:
        org_id = (
            await session.execute(select(Organization.id).where(Organization.slug == org_slug))
        ).scalar_one_or_none()
        rows = (await session.execute(select(Permission.name, Permission.id))).all()
    if org_id is None:
        raise SystemExit(f"No organization with slug {org_slug!r}")
    permission_ids = dict(rows)

    store = RoleStore(AsyncSessionLocal)
    for role_name, role_config in STARTER_ROLES.items():
        try:
            await store.create_role(
                org_id,
                name=role_name,
                description=role_config["description"],
                permission_ids=[permission_ids[p.value] for p in role_config["permissions"]],
                is_default=role_config["is_default"],
            )
        except DuplicateNameError:
            log.debug(f"Role '{role_name}' already exists, skipping")


async def main(org_slug: str | None = None):
    """Main function to seed permissions and roles."""
    log.info("Starting permission seeding...")
    
    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()
    
    try:
        await ensure_permission_catalog(AsyncSessionLocal)
        if org_slug:
            await seed_starter_roles(org_slug)
    except Exception as e:
        log.error(f"Error seeding permissions: {e}", exc_info=True)
        raise
    
    log.info("Permission seeding completed successfully!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the permission catalog")
    parser.add_argument("--org-slug", help="Also create starter roles in this organization")
    args = parser.parse_args()
    asyncio.run(main(args.org_slug))
