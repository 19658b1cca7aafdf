import unittest

from tests.base import API, ApiTestCase


class TreeApiTests(ApiTestCase):
    def test_create_tree_makes_the_creator_owner(self):
        tree = self.create_tree()
        self.assertEqual(tree["created_by"], "alice")
        self.assertTrue(tree["is_active"])

        members = self.client.get(f"{API}/trees/{tree['id']}/members").json()
        self.assertEqual([(m["user_id"], m["role"]) for m in members], [("alice", "owner")])

        role = self.client.get(f"{API}/roles/me", params={"context_type": "tree", "context_id": tree["id"]})
        self.assertEqual(role.json()["role"], "owner")

    def test_list_my_trees_in_join_order(self):
        first = self.create_tree(name="First")
        second = self.create_tree(owner="bob", name="Second")
        self.add_tree_member(second["id"], "alice", role="member", as_user="bob")

        self.act_as("alice")
        trees = self.client.get(f"{API}/trees").json()
        self.assertEqual([t["tree"]["id"] for t in trees], [first["id"], second["id"]])
        self.assertEqual([t["role"] for t in trees], ["owner", "member"])

    def test_primary_tree_prefers_owned_tree(self):
        other = self.create_tree(owner="bob", name="Bob's")
        self.add_tree_member(other["id"], "alice", role="admin", as_user="bob")
        owned = self.create_tree(name="Alice's")

        self.act_as("alice")
        response = self.client.get(f"{API}/trees/primary")
        self.assertEqual(response.json()["tree_id"], owned["id"])

    def test_primary_tree_is_empty_without_trees(self):
        self.act_as("nobody")
        self.assertIsNone(self.client.get(f"{API}/trees/primary").json()["tree_id"])

    def test_non_member_cannot_read_tree(self):
        tree = self.create_tree()
        self.act_as("mallory")
        response = self.client.get(f"{API}/trees/{tree['id']}")
        self.assertEqual(response.status_code, 403)

    def test_update_requires_admin(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob", role="member")
        self.add_tree_member(tree["id"], "carol", role="admin")

        self.act_as("bob")
        response = self.client.put(f"{API}/trees/{tree['id']}", json={"name": "Renamed"})
        self.assertEqual(response.status_code, 403)

        self.act_as("carol")
        response = self.client.put(f"{API}/trees/{tree['id']}", json={"name": "Renamed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Renamed")

    def test_unknown_tree_is_404_for_admin_actions(self):
        response = self.client.put(f"{API}/trees/missing", json={"name": "x"})
        self.assertEqual(response.status_code, 404)

    def test_only_owners_add_owners(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "carol", role="admin")

        self.act_as("carol")
        response = self.client.post(f"{API}/trees/{tree['id']}/members", json={"user_id": "dan", "role": "owner"})
        self.assertEqual(response.status_code, 403)

        response = self.client.post(f"{API}/trees/{tree['id']}/members", json={"user_id": "dan", "role": "member"})
        self.assertEqual(response.status_code, 201)

    def test_duplicate_member_is_rejected(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob")
        response = self.client.post(f"{API}/trees/{tree['id']}/members", json={"user_id": "bob"})
        self.assertEqual(response.status_code, 400)

    def test_member_role_change_replaces_rbac_role(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob", role="member")

        response = self.client.put(f"{API}/trees/{tree['id']}/members/bob", json={"role": "admin"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "admin")

        self.act_as("bob")
        role = self.client.get(f"{API}/roles/me", params={"context_type": "tree", "context_id": tree["id"]})
        self.assertEqual(role.json()["role"], "admin")

    def test_creator_cannot_be_removed_or_demoted(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "carol", role="owner")

        self.act_as("carol")
        self.assertEqual(self.client.delete(f"{API}/trees/{tree['id']}/members/alice").status_code, 400)
        response = self.client.put(f"{API}/trees/{tree['id']}/members/alice", json={"role": "member"})
        self.assertEqual(response.status_code, 400)

    def test_member_can_leave(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob")

        self.act_as("bob")
        self.assertEqual(self.client.delete(f"{API}/trees/{tree['id']}/members/bob").status_code, 204)
        self.assertEqual(self.client.get(f"{API}/trees/{tree['id']}").status_code, 403)

    def test_archive_hides_tree_until_restored(self):
        tree = self.create_tree()
        response = self.client.post(f"{API}/trees/{tree['id']}/archive")
        self.assertFalse(response.json()["is_active"])

        self.assertEqual(self.client.get(f"{API}/trees").json(), [])
        archived = self.client.get(f"{API}/trees", params={"include_archived": True}).json()
        self.assertEqual(len(archived), 1)

        self.client.post(f"{API}/trees/{tree['id']}/restore")
        self.assertEqual(len(self.client.get(f"{API}/trees").json()), 1)

    def test_delete_requires_owner(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "carol", role="admin")

        self.act_as("carol")
        self.assertEqual(self.client.delete(f"{API}/trees/{tree['id']}").status_code, 403)

        self.act_as("alice")
        self.assertEqual(self.client.delete(f"{API}/trees/{tree['id']}").status_code, 204)
        self.assertEqual(self.db.rows("trees"), [])
        self.assertEqual(self.db.rows("tree_members"), [])

    def test_delete_removes_branches(self):
        tree = self.create_tree()
        branch = self.create_branch(tree["id"])
        self.add_branch_member(branch["id"], "bob", role="moderator")
        self.db.add("cross_tree_access", branch_id="elsewhere", tree_id=tree["id"], status="active")

        self.act_as("alice")
        self.assertEqual(self.client.delete(f"{API}/trees/{tree['id']}").status_code, 204)
        self.assertEqual(self.db.rows("branches"), [])
        self.assertEqual(self.db.rows("branch_members"), [])
        self.assertEqual(self.db.rows("cross_tree_access"), [])
        self.assertEqual(
            [r for r in self.db.rows("user_roles") if r.get("context_id") in (tree["id"], branch["id"])], []
        )

        self.act_as("bob")
        permissions = self.client.get(f"{API}/branches/{branch['id']}/permissions").json()
        self.assertFalse(permissions["can_moderate"])

    def test_stats(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob")
        branch = self.create_branch(tree["id"])
        self.db.add("posts", branch_id=branch["id"], author_id="alice", leaf_type="photo",
                    season="summer", message_type="post")
        self.db.add("posts", branch_id=branch["id"], author_id="alice", leaf_type="milestone",
                    milestone_type="first_steps", message_type="post")
        self.db.add("posts", branch_id="elsewhere", author_id="alice", leaf_type="text", message_type="post")
        for text in ("hi", "lunch?"):
            response = self.client.post(f"{API}/branches/{branch['id']}/messages", json={"content": text})
            self.assertEqual(response.status_code, 201, response.text)

        stats = self.client.get(f"{API}/trees/{tree['id']}/stats").json()
        self.assertEqual(stats["member_count"], 2)
        self.assertEqual(stats["branch_count"], 1)
        self.assertEqual(stats["leaves"]["total_leaves"], 2)
        self.assertEqual(stats["leaves"]["milestone_count"], 1)
        self.assertEqual(stats["leaves"]["recent_leaves"], 2)
        self.assertEqual(stats["leaves"]["leaf_type_breakdown"], {"photo": 1, "milestone": 1})
        self.assertEqual(stats["leaves"]["season_breakdown"], {"summer": 1})


if __name__ == "__main__":
    unittest.main()
