import unittest

from tests.base import API, ApiTestCase


class ProfileTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.db.add("profiles", id="alice", email="alice@example.com", first_name="Alice")
        self.db.add("profiles", id="bob", email="bob@example.com", first_name="Bob")
        self.db.add("profiles", id="carol", email="carol@example.com")

    def test_my_profile(self):
        response = self.client.get(f"{API}/profiles/me")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["first_name"], "Alice")

    def test_missing_profile(self):
        self.act_as("nobody")
        self.assertEqual(self.client.get(f"{API}/profiles/me").status_code, 404)

    def test_update_only_sent_fields(self):
        response = self.client.put(f"{API}/profiles/me", json={"bio": "Mum of two", "family_role": "parent"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["bio"], "Mum of two")
        self.assertEqual(body["first_name"], "Alice")
        self.assertIsNotNone(body["updated_at"])

    def test_invalid_family_role(self):
        response = self.client.put(f"{API}/profiles/me", json={"family_role": "neighbour"})
        self.assertEqual(response.status_code, 422)

    def test_other_profiles_visible_through_shared_tree(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob")

        self.act_as("alice")
        self.assertEqual(self.client.get(f"{API}/profiles/bob").json()["first_name"], "Bob")
        self.assertEqual(self.client.get(f"{API}/profiles/carol").status_code, 403)

    def test_settings_defaults_and_update(self):
        settings = self.client.get(f"{API}/profiles/me/settings").json()
        self.assertEqual(settings["profile_visibility"], "branches")
        self.assertFalse(settings["show_email"])
        self.assertTrue(settings["email_comments"])

        updated = self.client.put(
            f"{API}/profiles/me/settings", json={"show_email": True, "profile_visibility": "private"}
        ).json()
        self.assertTrue(updated["show_email"])
        self.assertEqual(updated["profile_visibility"], "private")
        self.assertEqual(len(self.db.rows("user_settings")), 1)

    def test_delete_account(self):
        tree = self.create_tree()
        self.add_tree_member(tree["id"], "bob")

        self.act_as("bob")
        self.assertEqual(self.client.delete(f"{API}/profiles/me").status_code, 204)
        self.assertEqual(self.db.auth.deleted_users, ["bob"])
        self.assertFalse([m for m in self.db.rows("tree_members") if m["user_id"] == "bob"])
        self.assertFalse([r for r in self.db.rows("user_roles") if r["user_id"] == "bob"])
        self.assertEqual(self.client.get(f"{API}/profiles/me").status_code, 404)


if __name__ == "__main__":
    unittest.main()
