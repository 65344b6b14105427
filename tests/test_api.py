"""
HTTP tests: authentication, error rendering and route-level authorization.
"""

from __future__ import annotations

from tests.helpers import auth_headers


class TestHealth:

    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    async def test_root(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "online"


class TestAuthentication:

    async def test_missing_credentials(self, client):
        resp = await client.get("/users/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "NOT_AUTHENTICATED"

    async def test_unknown_user(self, client):
        resp = await client.get("/users/me", headers=auth_headers("01HZZZZZZZZZZZZZZZZZZZZZZZ"))
        assert resp.status_code == 401

    async def test_me(self, client, make_user):
        user_id = await make_user(name="Dewi")
        resp = await client.get("/users/me", headers=auth_headers(user_id))
        assert resp.status_code == 200
        assert resp.json()["id"] == user_id
        assert resp.json()["name"] == "Dewi"


class TestOrganizationRoutes:

    async def test_create_and_read(self, client, make_user):
        user_id = await make_user()
        headers = auth_headers(user_id)

        resp = await client.get("/organizations/slug-availability", params={"slug": "lsm-bahari"}, headers=headers)
        assert resp.json()["available"] is True

        resp = await client.post("/organizations", json={"name": "Bahari", "slug": "lsm-bahari"}, headers=headers)
        assert resp.status_code == 201
        org = resp.json()
        assert org["slug"] == "lsm-bahari"
        assert len(org["join_code"]) == 8

        resp = await client.get("/organizations/slug-availability", params={"slug": "lsm-bahari"}, headers=headers)
        assert resp.json()["available"] is False

        resp = await client.get("/organizations/my", headers=headers)
        assert [m["organization"]["id"] for m in resp.json()] == [org["id"]]
        assert resp.json()[0]["is_admin"] is True

        resp = await client.get("/users/me/active-organization", headers=headers)
        assert resp.json()["organization"]["id"] == org["id"]

    async def test_invalid_slug(self, client, make_user):
        resp = await client.post(
            "/organizations",
            json={"name": "Bahari", "slug": "lsm-bahari!"},
            headers=auth_headers(await make_user()),
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_SLUG"

    async def test_validation_error_shape(self, client, make_user):
        resp = await client.post(
            "/organizations",
            json={"slug": "lsm-bahari"},
            headers=auth_headers(await make_user()),
        )
        assert resp.status_code == 400
        assert "name" in resp.json()

    async def test_non_member_sees_not_found(self, client, make_user, bahari):
        org, _ = bahari
        outsider = auth_headers(await make_user())
        assert (await client.get(f"/organizations/{org.id}", headers=outsider)).status_code == 404
        assert (await client.get("/organizations/by-slug/lsm-bahari", headers=outsider)).status_code == 404
        resp = await client.get(f"/organizations/{org.id}/members", headers=outsider)
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    async def test_edit_settings_requires_permission(self, client, members, make_user, bahari):
        org, founder_id = bahari
        user_id = await make_user()
        await members.add_member(org.id, user_id)

        resp = await client.patch(f"/organizations/{org.id}", json={"name": "Mine"}, headers=auth_headers(user_id))
        assert resp.status_code == 403
        assert resp.json()["error"] == "PERMISSION_DENIED"

        resp = await client.patch(f"/organizations/{org.id}", json={"name": "Bahari Foundation"}, headers=auth_headers(founder_id))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Bahari Foundation"

    async def test_delete_requires_typed_name(self, client, bahari):
        org, founder_id = bahari
        headers = auth_headers(founder_id)
        resp = await client.request("DELETE", f"/organizations/{org.id}", json={"confirmation_name": "bahari"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "CONFIRMATION_MISMATCH"

        resp = await client.request("DELETE", f"/organizations/{org.id}", json={"confirmation_name": "Bahari"}, headers=headers)
        assert resp.status_code == 204
        assert (await client.get("/organizations/my", headers=headers)).json() == []


class TestRoleRoutes:

    async def test_admin_manages_roles(self, client, permission_ids, bahari):
        org, founder_id = bahari
        headers = auth_headers(founder_id)
        body = {
            "name": "Coordinator",
            "permission_ids": [permission_ids["tasks.create"], permission_ids["tasks.edit"]],
            "is_default": True,
        }

        resp = await client.post(f"/organizations/{org.id}/roles", json=body, headers=headers)
        assert resp.status_code == 201
        role = resp.json()
        assert {p["name"] for p in role["permissions"]} == {"tasks.create", "tasks.edit"}
        assert role["is_default"] is True

        resp = await client.post(f"/organizations/{org.id}/roles", json=body, headers=headers)
        assert resp.status_code == 409
        assert resp.json()["error"] == "DUPLICATE_NAME"

        body = {"name": "Coordinator", "permission_ids": [permission_ids["events.edit"]], "is_default": False}
        resp = await client.put(f"/organizations/{org.id}/roles/{role['id']}", json=body, headers=headers)
        assert [p["name"] for p in resp.json()["permissions"]] == ["events.edit"]

        resp = await client.delete(f"/organizations/{org.id}/roles/{role['id']}", headers=headers)
        assert resp.status_code == 204
        assert (await client.get(f"/organizations/{org.id}/roles", headers=headers)).json() == []

    async def test_member_cannot_create_roles(self, client, members, make_user, bahari):
        org, _ = bahari
        user_id = await make_user()
        await members.add_member(org.id, user_id)
        headers = auth_headers(user_id)

        resp = await client.post(f"/organizations/{org.id}/roles", json={"name": "Boss"}, headers=headers)
        assert resp.status_code == 403
        assert (await client.get(f"/organizations/{org.id}/roles", headers=headers)).status_code == 200

    async def test_delete_role_in_use(self, client, roles, members, make_user, bahari):
        org, founder_id = bahari
        role_id = await roles.create_role(org.id, "Volunteer")
        await members.add_member(org.id, await make_user(), role_id=role_id)

        resp = await client.delete(f"/organizations/{org.id}/roles/{role_id}", headers=auth_headers(founder_id))

        assert resp.status_code == 409
        assert resp.json()["error"] == "ROLE_IN_USE"

    async def test_role_of_other_organization_is_not_found(self, client, roles, organizations, make_user, bahari):
        org, founder_id = bahari
        other_org = await organizations.create_organization_with_member(await make_user(), "Other", "other-org")
        foreign_role = await roles.create_role(other_org, "Volunteer")
        resp = await client.get(f"/organizations/{org.id}/roles/{foreign_role}", headers=auth_headers(founder_id))
        assert resp.status_code == 404


class TestPermissionRoutes:

    async def test_catalog(self, client, make_user):
        resp = await client.get("/permissions", headers=auth_headers(await make_user()))
        assert resp.status_code == 200
        assert "members.remove" in {p["name"] for p in resp.json()}

    async def test_check(self, client, bahari):
        org, founder_id = bahari
        resp = await client.post(
            "/permissions/check",
            json={"organization_id": org.id, "permission_name": "anything.at_all"},
            headers=auth_headers(founder_id),
        )
        assert resp.json()["allowed"] is True

    async def test_check_for_outsider_is_false(self, client, make_user, bahari):
        org, _ = bahari
        resp = await client.post(
            "/permissions/check",
            json={"organization_id": org.id, "permission_name": "tasks.create"},
            headers=auth_headers(await make_user()),
        )
        assert resp.status_code == 200
        assert resp.json()["allowed"] is False

    async def test_admin_check(self, client, bahari):
        org, founder_id = bahari
        resp = await client.get(f"/permissions/organizations/{org.id}/admin", headers=auth_headers(founder_id))
        assert resp.json() == {"organization_id": org.id, "is_admin": True}


class TestMemberRoutes:

    async def test_change_role_and_remove(self, client, roles, members, make_user, permission_ids, bahari):
        org, founder_id = bahari
        manager_role = await roles.create_role(
            org.id,
            "Manager",
            permission_ids=[
                permission_ids["members.view"],
                permission_ids["members.change_role"],
                permission_ids["members.remove"],
            ],
        )
        manager = await make_user()
        await members.add_member(org.id, manager, role_id=manager_role)
        volunteer_role = await roles.create_role(org.id, "Volunteer")
        target_user = await make_user()
        target = await members.add_member(org.id, target_user)
        headers = auth_headers(manager)

        resp = await client.get(f"/organizations/{org.id}/members", headers=headers)
        assert resp.status_code == 200
        assert len(resp.json()) == 3

        resp = await client.put(
            f"/organizations/{org.id}/members/{target}/role", json={"role_id": volunteer_role}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["role"]["name"] == "Volunteer"

        # Promotion needs the admin flag, not a role permission
        resp = await client.put(
            f"/organizations/{org.id}/members/{target}/admin", json={"is_admin": True}, headers=headers
        )
        assert resp.status_code == 403

        resp = await client.delete(f"/organizations/{org.id}/members/{target}", headers=headers)
        assert resp.status_code == 204
        assert await members.get_member_for_user(target_user, org.id) is None

    async def test_member_without_view_permission(self, client, members, make_user, bahari):
        org, _ = bahari
        user_id = await make_user()
        await members.add_member(org.id, user_id)
        resp = await client.get(f"/organizations/{org.id}/members", headers=auth_headers(user_id))
        assert resp.status_code == 403

    async def test_admin_adds_member(self, client, make_user, bahari):
        org, founder_id = bahari
        user_id = await make_user()
        resp = await client.post(
            f"/organizations/{org.id}/members", json={"user_id": user_id}, headers=auth_headers(founder_id)
        )
        assert resp.status_code == 201
        assert resp.json()["user_id"] == user_id

        resp = await client.post(
            f"/organizations/{org.id}/members", json={"user_id": user_id}, headers=auth_headers(founder_id)
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "ALREADY_MEMBER"

    async def test_add_unknown_user(self, client, bahari):
        org, founder_id = bahari
        resp = await client.post(
            f"/organizations/{org.id}/members", json={"user_id": "nope"}, headers=auth_headers(founder_id)
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"


class TestJoinRequestRoutes:

    async def test_bahari_flow(self, client, make_user, permission_ids, bahari):
        org, u1 = bahari
        admin = auth_headers(u1)
        resp = await client.post(
            f"/organizations/{org.id}/roles",
            json={
                "name": "Coordinator",
                "permission_ids": [permission_ids["tasks.create"], permission_ids["tasks.edit"]],
                "is_default": True,
            },
            headers=admin,
        )
        coordinator = resp.json()["id"]
        u2 = await make_user(name="Eka")
        joiner = auth_headers(u2)

        resp = await client.post("/join-requests", json={"join_code": org.join_code.lower()}, headers=joiner)
        assert resp.status_code == 201
        request_id = resp.json()["id"]

        resp = await client.post("/join-requests", json={"join_code": org.join_code}, headers=joiner)
        assert resp.status_code == 409
        assert resp.json()["error"] == "DUPLICATE_REQUEST"

        resp = await client.get(f"/join-requests/organizations/{org.id}", headers=admin)
        assert [r["user"]["display_name"] for r in resp.json()] == ["Eka"]

        # The requester is not a member yet, so the request is invisible to them
        resp = await client.post(f"/join-requests/{request_id}/approve", json={"role_id": coordinator}, headers=joiner)
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

        resp = await client.post(f"/join-requests/{request_id}/approve", json={"role_id": coordinator}, headers=admin)
        assert resp.status_code == 200

        resp = await client.post(f"/join-requests/{request_id}/reject", json={}, headers=admin)
        assert resp.status_code == 409
        assert resp.json()["error"] == "ALREADY_PROCESSED"

        check = {"organization_id": org.id, "permission_name": "tasks.create"}
        assert (await client.post("/permissions/check", json=check, headers=joiner)).json()["allowed"] is True
        check["permission_name"] = "members.remove"
        assert (await client.post("/permissions/check", json=check, headers=joiner)).json()["allowed"] is False

        resp = await client.get("/join-requests/my", headers=joiner)
        assert resp.json()[0]["status"] == "approved"
        assert resp.json()[0]["organization"]["slug"] == "lsm-bahari"

    async def test_invalid_code(self, client, make_user):
        resp = await client.post("/join-requests", json={"join_code": "ZZZZ9999"}, headers=auth_headers(await make_user()))
        assert resp.status_code == 404
        assert resp.json()["error"] == "INVALID_CODE"

    async def test_reject_with_notes(self, client, make_user, bahari):
        org, u1 = bahari
        joiner = auth_headers(await make_user())
        request_id = (await client.post("/join-requests", json={"join_code": org.join_code}, headers=joiner)).json()["id"]

        resp = await client.post(
            f"/join-requests/{request_id}/reject", json={"notes": "Members only"}, headers=auth_headers(u1)
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["notes"] == "Members only"

    async def test_review_by_outsider_and_plain_member(self, client, members, make_user, bahari):
        org, _ = bahari
        joiner = auth_headers(await make_user())
        request_id = (await client.post("/join-requests", json={"join_code": org.join_code}, headers=joiner)).json()["id"]

        outsider = auth_headers(await make_user())
        for action in ("approve", "reject"):
            resp = await client.post(f"/join-requests/{request_id}/{action}", json={}, headers=outsider)
            assert resp.status_code == 404
            assert resp.json()["error"] == "NOT_FOUND"
        missing = await client.post("/join-requests/01HZZZZZZZZZZZZZZZZZZZZZZZ/approve", json={}, headers=outsider)
        assert missing.status_code == 404

        plain_member = await make_user()
        await members.add_member(org.id, plain_member)
        resp = await client.post(f"/join-requests/{request_id}/approve", json={}, headers=auth_headers(plain_member))
        assert resp.status_code == 403
        assert resp.json()["error"] == "PERMISSION_DENIED"


class TestActiveOrganization:

    async def test_switch_requires_membership(self, client, organizations, members, make_user, bahari):
        org, _ = bahari
        user_id = await make_user()
        headers = auth_headers(user_id)

        resp = await client.put("/users/me/active-organization", json={"organization_id": org.id}, headers=headers)
        assert resp.status_code == 404

        await members.add_member(org.id, user_id)
        resp = await client.put("/users/me/active-organization", json={"organization_id": org.id}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["last_visited_slug"] == "lsm-bahari"

        resp = await client.get("/users/me/active-organization", headers=headers)
        assert resp.json()["organization"]["id"] == org.id
