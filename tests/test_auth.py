import unittest

from tribe.main import app
from tribe.core.dependencies import get_current_user_id
from tests.base import API, ApiTestCase


class AuthTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        # Resolve callers from bearer tokens instead of the switchable test user
        app.dependency_overrides.pop(get_current_user_id)

    def register(self, email="alice@example.com", password="s3cret!"):
        response = self.client.post(
            f"{API}/auth/register", json={"email": email, "password": password, "first_name": "Alice"}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def login(self, email="alice@example.com", password="s3cret!"):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    def test_register_then_login(self):
        registered = self.register()
        response = self.login()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["user_id"], registered["user_id"])
        self.assertEqual(body["token_type"], "bearer")

    def test_register_creates_profile(self):
        user_id = self.register()["user_id"]
        profiles = self.db.rows("profiles")
        self.assertEqual([(p["id"], p["email"], p["first_name"]) for p in profiles], [(user_id, "alice@example.com", "Alice")])

    def test_duplicate_registration(self):
        self.register()
        response = self.client.post(f"{API}/auth/register", json={"email": "alice@example.com", "password": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "User already exists")

    def test_wrong_password(self):
        self.register()
        self.assertEqual(self.login(password="nope").status_code, 401)

    def test_me_includes_profile_and_primary_tree(self):
        user_id = self.register()["user_id"]
        token = self.login().json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        tree = self.client.post(f"{API}/trees", json={"name": "Smith Family"}, headers=headers).json()
        me = self.client.get(f"{API}/auth/me", headers=headers).json()
        self.assertEqual(me["id"], user_id)
        self.assertEqual(me["user_metadata"], {"first_name": "Alice"})
        self.assertEqual(me["profile"]["first_name"], "Alice")
        self.assertEqual(me["primary_tree_id"], tree["id"])

    def test_invalid_token(self):
        response = self.client.get(f"{API}/auth/me", headers={"Authorization": "Bearer forged"})
        self.assertEqual(response.status_code, 401)

    def test_missing_token(self):
        self.assertIn(self.client.get(f"{API}/auth/me").status_code, (401, 403))

    def test_logout(self):
        self.register()
        token = self.login().json()["access_token"]
        response = self.client.post(f"{API}/auth/logout", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.auth.signed_out, 1)


if __name__ == "__main__":
    unittest.main()
