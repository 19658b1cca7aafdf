import unittest

from tribe.config.permissions_config import PERMISSION_MATRIX
from tribe.scripts.seed_permissions_roles import seed_permissions, seed_roles, sync_role_permissions
from tests.fakes import seeded_supabase


class SeedTests(unittest.TestCase):
    def setUp(self):
        self.db = seeded_supabase()

    def role_id(self, name):
        return next(r["id"] for r in self.db.rows("roles") if r["name"] == name)

    def grants(self, role_name):
        role_id = self.role_id(role_name)
        ids = {rp["permission_id"] for rp in self.db.rows("role_permissions") if rp["role_id"] == role_id}
        return sorted(p["name"] for p in self.db.rows("permissions") if p["id"] in ids)

    def test_catalogue_loaded(self):
        self.assertEqual(len(self.db.rows("permissions")), len(PERMISSION_MATRIX["permissions"]))
        self.assertEqual([r["name"] for r in self.db.rows("roles")], ["owner", "admin", "moderator", "member", "viewer"])
        self.assertTrue(all(r["is_system_role"] for r in self.db.rows("roles")))
        self.assertEqual(self.grants("viewer"), ["branch.read", "comment.read", "leaf.read", "member.read"])

    def test_rerun_is_idempotent(self):
        before = len(self.db.rows("role_permissions"))
        seed_permissions(self.db)
        seed_roles(self.db)
        self.assertEqual(len(self.db.rows("permissions")), len(PERMISSION_MATRIX["permissions"]))
        self.assertEqual(len(self.db.rows("roles")), 5)
        self.assertEqual(len(self.db.rows("role_permissions")), before)

    def test_sync_adds_and_revokes(self):
        viewer_id = self.role_id("viewer")
        changes = sync_role_permissions(self.db, viewer_id, "viewer", ["leaf.read", "leaf.create"])
        self.assertEqual(changes, {"added": 1, "removed": 3})
        self.assertEqual(self.grants("viewer"), ["leaf.create", "leaf.read"])

        seed_roles(self.db)
        self.assertEqual(self.grants("viewer"), ["branch.read", "comment.read", "leaf.read", "member.read"])


if __name__ == "__main__":
    unittest.main()
