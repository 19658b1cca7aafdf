import unittest

from fastapi.testclient import TestClient

from tribe.main import app
from tribe.core.dependencies import get_current_user_id
from tribe.core.rbac import clear_rbac_cache
from tribe.modules.auth.service import _AUTH_USER_CACHE
from tribe.database.supabase_client import get_supabase, get_service_supabase
from tests.fakes import seeded_supabase

API = "/api/v1"


class ApiTestCase(unittest.TestCase):
    """TestClient against the real app with an in-memory Supabase and a switchable caller"""

    def setUp(self):
        clear_rbac_cache()
        _AUTH_USER_CACHE.clear()
        self.db = seeded_supabase()
        self.current_user = {"id": "alice", "email": "alice@example.com"}
        app.dependency_overrides[get_supabase] = lambda: self.db
        app.dependency_overrides[get_service_supabase] = lambda: self.db
        app.dependency_overrides[get_current_user_id] = lambda: self.current_user
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        clear_rbac_cache()

    def act_as(self, user_id, email=None):
        self.current_user = {"id": user_id, "email": email or f"{user_id}@example.com"}

    def create_tree(self, owner="alice", name="Smith Family"):
        self.act_as(owner)
        response = self.client.post(f"{API}/trees", json={"name": name})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def add_tree_member(self, tree_id, user_id, role="member", as_user="alice"):
        self.act_as(as_user)
        response = self.client.post(f"{API}/trees/{tree_id}/members", json={"user_id": user_id, "role": role})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def create_branch(self, tree_id, owner="alice", name="Kids", privacy="private"):
        self.act_as(owner)
        response = self.client.post(
            f"{API}/branches", json={"tree_id": tree_id, "name": name, "privacy": privacy}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def add_branch_member(self, branch_id, user_id, role="member", as_user="alice"):
        self.act_as(as_user)
        response = self.client.post(
            f"{API}/branches/{branch_id}/members", json={"user_id": user_id, "role": role}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()
