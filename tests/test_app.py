import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from tribe.config import settings
from tribe.main import app


class AppTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def test_root_and_health(self):
        self.assertEqual(self.client.get("/").json()["status"], "healthy")
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})

    def test_security_headers(self):
        response = self.client.get("/health")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")

    def test_ready_requires_supabase_config(self):
        with patch.object(settings, "supabase_url", "https://supabase.test"), \
                patch.object(settings, "supabase_key", "anon"):
            self.assertEqual(self.client.get("/ready").status_code, 200)
        with patch.object(settings, "supabase_key", ""):
            response = self.client.get("/ready")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["status"], "not ready")


if __name__ == "__main__":
    unittest.main()
