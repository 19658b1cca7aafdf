import unittest

from tribe.modules.invitations.service import normalize_email
from tests.base import API, ApiTestCase


class NormalizeEmailTests(unittest.TestCase):
    def test_strips_and_lowercases(self):
        self.assertEqual(normalize_email("  Bob@Example.COM "), "bob@example.com")


class InvitationTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tree = self.create_tree()
        self.add_tree_member(self.tree["id"], "carol", role="member")

    def invite(self, **fields):
        self.act_as("alice")
        body = {"email": "Bob@Example.com", "tree_id": self.tree["id"], "role": "member"}
        body.update(fields)
        response = self.client.post(f"{API}/invitations", json=body)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_create_tree_invitation(self):
        invitation = self.invite(message="Join us!")
        self.assertEqual(invitation["type"], "tree")
        self.assertEqual(invitation["email"], "bob@example.com")
        self.assertEqual(invitation["status"], "pending")
        self.assertEqual(invitation["invited_by"], "alice")
        self.assertGreaterEqual(len(invitation["token"]), 32)

    def test_duplicate_pending_invitation(self):
        self.invite()
        response = self.client.post(
            f"{API}/invitations", json={"email": "bob@example.com", "tree_id": self.tree["id"]}
        )
        self.assertEqual(response.status_code, 400)

    def test_requires_exactly_one_target(self):
        branch = self.create_branch(self.tree["id"])
        response = self.client.post(
            f"{API}/invitations",
            json={"email": "bob@example.com", "tree_id": self.tree["id"], "branch_id": branch["id"]}
        )
        self.assertEqual(response.status_code, 422)
        response = self.client.post(f"{API}/invitations", json={"email": "bob@example.com"})
        self.assertEqual(response.status_code, 422)

    def test_plain_member_cannot_invite(self):
        self.act_as("carol")
        response = self.client.post(f"{API}/invitations", json={"email": "bob@example.com", "tree_id": self.tree["id"]})
        self.assertEqual(response.status_code, 403)

    def test_only_owners_invite_owners(self):
        self.add_tree_member(self.tree["id"], "bob", role="admin")
        self.act_as("bob")
        response = self.client.post(
            f"{API}/invitations", json={"email": "bob2@example.com", "tree_id": self.tree["id"], "role": "owner"}
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.rows("invitations"), [])

        response = self.client.post(
            f"{API}/invitations", json={"email": "bob2@example.com", "tree_id": self.tree["id"], "role": "admin"}
        )
        self.assertEqual(response.status_code, 201)

        invitation = self.invite(email="erin@example.com", role="owner")
        self.assertEqual(invitation["role"], "owner")

    def test_accept_joins_the_tree(self):
        invitation = self.invite(role="admin")
        self.act_as("bob")
        response = self.client.post(f"{API}/invitations/token/{invitation['token']}/accept")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["status"], "accepted")
        self.assertIsNotNone(response.json()["accepted_at"])

        trees = self.client.get(f"{API}/trees").json()
        self.assertEqual([(t["tree"]["id"], t["role"]) for t in trees], [(self.tree["id"], "admin")])

        response = self.client.post(f"{API}/invitations/token/{invitation['token']}/accept")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invitation already accepted")

    def test_accept_requires_matching_email(self):
        invitation = self.invite()
        self.act_as("mallory", email="mallory@example.com")
        response = self.client.post(f"{API}/invitations/token/{invitation['token']}/accept")
        self.assertEqual(response.status_code, 403)

    def test_expired_invitation(self):
        invitation = self.invite()
        for row in self.db.rows("invitations"):
            row["expires_at"] = "2000-01-01T00:00:00+00:00"
        self.act_as("bob")
        response = self.client.post(f"{API}/invitations/token/{invitation['token']}/accept")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invitation has expired")

    def test_decline(self):
        invitation = self.invite()
        self.act_as("bob")
        response = self.client.post(f"{API}/invitations/token/{invitation['token']}/decline")
        self.assertEqual(response.json()["status"], "declined")
        self.assertEqual(self.client.get(f"{API}/trees").json(), [])

    def test_unknown_token(self):
        self.assertEqual(self.client.get(f"{API}/invitations/token/nope").status_code, 404)

    def test_lookup_by_token(self):
        invitation = self.invite()
        self.act_as("bob")
        found = self.client.get(f"{API}/invitations/token/{invitation['token']}").json()
        self.assertEqual(found["id"], invitation["id"])

    def test_branch_invitation(self):
        branch = self.create_branch(self.tree["id"])
        self.act_as("alice")
        response = self.client.post(
            f"{API}/invitations", json={"email": "dana@example.com", "branch_id": branch["id"], "role": "viewer"}
        )
        self.assertEqual(response.status_code, 201)
        invitation = response.json()
        self.assertEqual(invitation["type"], "branch")

        self.act_as("dana")
        self.client.post(f"{API}/invitations/token/{invitation['token']}/accept")
        members = [m for m in self.db.rows("branch_members") if m["user_id"] == "dana"]
        self.assertEqual(len(members), 1)
        self.assertEqual(members[0]["role"], "viewer")
        self.assertEqual(members[0]["join_method"], "invited")
        permissions = self.client.get(f"{API}/branches/{branch['id']}/permissions").json()
        self.assertEqual(permissions["user_role"], "viewer")

    def test_list_pending(self):
        first = self.invite(email="one@example.com")
        self.invite(email="two@example.com")
        self.act_as("one")
        self.client.post(f"{API}/invitations/token/{first['token']}/decline")

        self.act_as("alice")
        pending = self.client.get(f"{API}/invitations", params={"tree_id": self.tree["id"]}).json()
        self.assertEqual([i["email"] for i in pending], ["two@example.com"])
        self.assertEqual(self.client.get(f"{API}/invitations").status_code, 400)

        self.act_as("carol")
        self.assertEqual(
            self.client.get(f"{API}/invitations", params={"tree_id": self.tree["id"]}).status_code, 403
        )


if __name__ == "__main__":
    unittest.main()
