"""
Tests for the authorization evaluator.
"""

from __future__ import annotations

import pytest

from app.features.permissions.catalog import PermissionName
from app.features.permissions.evaluator import AuthorizationEvaluator

UNKNOWN_ORG = "01HZZZZZZZZZZZZZZZZZZZZZZZ"


class TestAdminBypass:

    @pytest.mark.parametrize("name", [p.value for p in PermissionName] + ["reports.export", "not-a-permission", ""])
    async def test_admin_has_every_permission(self, evaluator, bahari, name):
        org, founder_id = bahari
        assert await evaluator.has_permission(founder_id, org.id, name)

    async def test_is_org_admin(self, evaluator, bahari):
        org, founder_id = bahari
        assert await evaluator.is_org_admin(founder_id, org.id)


class TestMemberWithoutRole:

    async def test_has_nothing(self, evaluator, members, make_user, bahari):
        org, _ = bahari
        user_id = await make_user()
        await members.add_member(org.id, user_id)
        for name in PermissionName:
            assert not await evaluator.has_permission(user_id, org.id, name)
        assert not await evaluator.is_org_admin(user_id, org.id)
        assert await evaluator.is_member(user_id, org.id)


class TestMemberWithRole:

    async def test_grants_follow_role(self, evaluator, roles, members, make_user, permission_ids, bahari):
        org, _ = bahari
        role_id = await roles.create_role(
            org.id, "Coordinator", permission_ids=[permission_ids["tasks.create"], permission_ids["tasks.edit"]]
        )
        user_id = await make_user()
        await members.add_member(org.id, user_id, role_id=role_id)

        assert await evaluator.has_permission(user_id, org.id, PermissionName.TASKS_CREATE)
        assert await evaluator.has_permission(user_id, org.id, "tasks.edit")
        assert not await evaluator.has_permission(user_id, org.id, "members.remove")
        assert not await evaluator.has_permission(user_id, org.id, "tasks.unknown")

    async def test_role_edits_apply_on_next_check(self, evaluator, roles, members, make_user, permission_ids, bahari):
        org, _ = bahari
        role_id = await roles.create_role(org.id, "Coordinator", permission_ids=[permission_ids["tasks.create"]])
        user_id = await make_user()
        await members.add_member(org.id, user_id, role_id=role_id)
        assert await evaluator.has_permission(user_id, org.id, "tasks.create")

        await roles.update_role(role_id, "Coordinator", None, [permission_ids["events.create"]], is_default=False)

        assert not await evaluator.has_permission(user_id, org.id, "tasks.create")
        assert await evaluator.has_permission(user_id, org.id, "events.create")

    async def test_grants_do_not_cross_organizations(
        self, evaluator, roles, members, organizations, make_user, permission_ids, bahari
    ):
        org, _ = bahari
        role_id = await roles.create_role(org.id, "Coordinator", permission_ids=[permission_ids["tasks.create"]])
        user_id = await make_user()
        await members.add_member(org.id, user_id, role_id=role_id)
        other_org = await organizations.create_organization_with_member(await make_user(), "Other", "other-org")

        assert not await evaluator.has_permission(user_id, other_org, "tasks.create")


class TestNonMembers:

    async def test_non_member(self, evaluator, make_user, bahari):
        org, _ = bahari
        outsider = await make_user()
        assert not await evaluator.has_permission(outsider, org.id, "members.view")
        assert not await evaluator.is_org_admin(outsider, org.id)
        assert not await evaluator.is_member(outsider, org.id)

    async def test_unknown_organization_is_false(self, evaluator, bahari):
        _, founder_id = bahari
        assert not await evaluator.has_permission(founder_id, UNKNOWN_ORG, "tasks.create")
        assert not await evaluator.is_org_admin(founder_id, UNKNOWN_ORG)


class TestRequestCache:

    async def test_cache_lives_only_as_long_as_the_evaluator(self, session_factory, members, make_user, bahari):
        org, _ = bahari
        user_id = await make_user()
        member_id = await members.add_member(org.id, user_id)

        request_scoped = AuthorizationEvaluator(session_factory, cache=True)
        assert not await request_scoped.has_permission(user_id, org.id, "tasks.create")

        await members.set_admin(member_id, True)

        # Same request keeps its answer; the next request sees the change
        assert not await request_scoped.has_permission(user_id, org.id, "tasks.create")
        assert await AuthorizationEvaluator(session_factory, cache=True).has_permission(user_id, org.id, "tasks.create")
