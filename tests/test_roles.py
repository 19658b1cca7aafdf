import unittest

from tests.base import API, ApiTestCase


class RoleApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tree = self.create_tree()
        self.add_tree_member(self.tree["id"], "bob", role="admin")
        self.branch = self.create_branch(self.tree["id"])
        self.add_branch_member(self.branch["id"], "carol", role="viewer")

    def test_roles_listed_by_priority(self):
        roles = self.client.get(f"{API}/roles").json()
        self.assertEqual([r["name"] for r in roles], ["owner", "admin", "moderator", "member", "viewer"])
        viewer = roles[-1]
        self.assertEqual(viewer["permissions"], ["branch.read", "comment.read", "leaf.read", "member.read"])
        admin = roles[1]
        self.assertNotIn("branch.delete", admin["permissions"])

    def test_my_role_in_branch(self):
        self.act_as("carol")
        response = self.client.get(
            f"{API}/roles/me", params={"context_type": "branch", "context_id": self.branch["id"]}
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["role"], "viewer")
        self.assertTrue(body["permissions"]["leaf.read"])
        self.assertNotIn("leaf.create", body["permissions"])

    def test_my_role_needs_context_id(self):
        response = self.client.get(f"{API}/roles/me", params={"context_type": "tree"})
        self.assertEqual(response.status_code, 400)
        response = self.client.get(f"{API}/roles/me", params={"context_type": "global"})
        self.assertEqual(response.json()["role"], "none")

    def test_check_permission(self):
        self.act_as("carol")
        check = {"context_type": "branch", "context_id": self.branch["id"]}
        allowed = self.client.post(f"{API}/roles/check", json={"permission": "leaf.read", **check}).json()
        denied = self.client.post(f"{API}/roles/check", json={"permission": "leaf.create", **check}).json()
        self.assertEqual(allowed, {"permission": "leaf.read", "allowed": True})
        self.assertEqual(denied, {"permission": "leaf.create", "allowed": False})

    def test_assign_and_remove_branch_role(self):
        assignment = {"user_id": "dave", "role": "moderator", "context_type": "branch", "context_id": self.branch["id"]}
        response = self.client.post(f"{API}/roles/assignments", json=assignment)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["granted_by"], "alice")

        self.act_as("dave")
        self.assertTrue(self.client.get(f"{API}/branches/{self.branch['id']}/permissions").json()["can_moderate"])

        self.act_as("alice")
        response = self.client.delete(
            f"{API}/roles/assignments",
            params={"user_id": "dave", "context_type": "branch", "context_id": self.branch["id"]}
        )
        self.assertEqual(response.status_code, 204)
        self.act_as("dave")
        self.assertEqual(self.client.get(f"{API}/branches/{self.branch['id']}/permissions").json()["user_role"], "none")

    def test_viewer_cannot_assign(self):
        self.act_as("carol")
        response = self.client.post(f"{API}/roles/assignments", json={
            "user_id": "dave", "role": "member", "context_type": "branch", "context_id": self.branch["id"]
        })
        self.assertEqual(response.status_code, 403)

    def test_admin_cannot_grant_tree_owner(self):
        self.add_tree_member(self.tree["id"], "dave")
        self.act_as("bob")
        assignment = {"user_id": "dave", "role": "owner", "context_type": "tree", "context_id": self.tree["id"]}
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=assignment).status_code, 403)
        assignment["role"] = "member"
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=assignment).status_code, 201)

    def test_tree_role_assignment_updates_membership(self):
        self.add_tree_member(self.tree["id"], "erin")
        assignment = {"user_id": "erin", "role": "admin", "context_type": "tree", "context_id": self.tree["id"]}
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=assignment).status_code, 201)
        member = [m for m in self.db.rows("tree_members") if m["user_id"] == "erin"][0]
        self.assertEqual(member["role"], "admin")

        self.act_as("erin")
        response = self.client.put(f"{API}/trees/{self.tree['id']}", json={"name": "Renamed"})
        self.assertEqual(response.status_code, 200, response.text)

    def test_tree_role_needs_membership(self):
        assignment = {"user_id": "dave", "role": "member", "context_type": "tree", "context_id": self.tree["id"]}
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=assignment).status_code, 404)
        response = self.client.delete(
            f"{API}/roles/assignments",
            params={"user_id": "bob", "context_type": "tree", "context_id": self.tree["id"]}
        )
        self.assertEqual(response.status_code, 400)

    def test_branch_role_assignment_updates_membership(self):
        assignment = {"user_id": "carol", "role": "moderator", "context_type": "branch", "context_id": self.branch["id"]}
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=assignment).status_code, 201)
        member = [m for m in self.db.rows("branch_members") if m["user_id"] == "carol"][0]
        self.assertEqual(member["role"], "moderator")
        self.act_as("carol")
        self.assertEqual(self.client.get(f"{API}/branches/{self.branch['id']}/permissions").json()["user_role"], "moderator")

    def test_only_owners_change_an_owner(self):
        self.add_tree_member(self.tree["id"], "erin", role="owner")
        self.act_as("bob")
        demote = {"user_id": "erin", "role": "member", "context_type": "tree", "context_id": self.tree["id"]}
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=demote).status_code, 403)
        response = self.client.put(f"{API}/trees/{self.tree['id']}/members/erin", json={"role": "member"})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.client.delete(f"{API}/trees/{self.tree['id']}/members/erin").status_code, 403)

        self.act_as("alice")
        self.assertEqual(self.client.post(f"{API}/roles/assignments", json=demote).status_code, 201)

    def test_only_owners_remove_a_branch_owner(self):
        self.add_branch_member(self.branch["id"], "erin", role="owner")
        self.add_branch_member(self.branch["id"], "frank", role="admin")
        self.act_as("frank")
        response = self.client.delete(f"{API}/branches/{self.branch['id']}/members/erin")
        self.assertEqual(response.status_code, 403)
        self.act_as("erin")
        self.assertEqual(self.client.delete(f"{API}/branches/{self.branch['id']}/members/frank").status_code, 204)

    def test_global_roles_are_not_assignable(self):
        response = self.client.post(
            f"{API}/roles/assignments", json={"user_id": "dave", "role": "admin", "context_type": "global"}
        )
        self.assertEqual(response.status_code, 403)

    def test_unknown_role_rejected(self):
        response = self.client.post(f"{API}/roles/assignments", json={
            "user_id": "dave", "role": "superuser", "context_type": "tree", "context_id": self.tree["id"]
        })
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
