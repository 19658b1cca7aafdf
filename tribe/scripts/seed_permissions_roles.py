"""
Seed Permissions and Roles Script
Populates the permissions, roles and role_permissions tables from
tribe/config/permissions_config.py. Safe to re-run: existing rows are updated
and role grants are brought in line with the config.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from tribe.config.permissions_config import PERMISSION_MATRIX
from tribe.database.supabase_client import get_service_supabase
from supabase import Client
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


def seed_permissions(supabase: Client) -> int:
    """Upsert every permission in the catalogue by name"""
    logger.info("Seeding permissions...")
    created_count = 0
    updated_count = 0

    for perm in PERMISSION_MATRIX["permissions"]:
        row = {
            "resource_type": perm["resource"],
            "action": perm["action"],
            "description": perm["description"]
        }
        try:
            existing = supabase.table("permissions")\
                .select("id")\
                .eq("name", perm["name"])\
                .execute()

            if existing.data:
                supabase.table("permissions").update(row).eq("name", perm["name"]).execute()
                updated_count += 1
            else:
                supabase.table("permissions").insert({"name": perm["name"], **row}).execute()
                created_count += 1
        except Exception as e:
            logger.error(f"Error processing permission {perm['name']}: {e}")

    logger.info(f"Permissions seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def seed_roles(supabase: Client) -> int:
    """Upsert the system roles and sync their permission grants"""
    logger.info("Seeding roles...")
    created_count = 0
    updated_count = 0

    for role in PERMISSION_MATRIX["roles"]:
        try:
            existing = supabase.table("roles")\
                .select("id")\
                .eq("name", role["name"])\
                .execute()

            if existing.data:
                supabase.table("roles")\
                    .update({"description": role["description"], "is_system_role": True})\
                    .eq("name", role["name"])\
                    .execute()
                role_id = existing.data[0]["id"]
                updated_count += 1
            else:
                result = supabase.table("roles").insert({
                    "name": role["name"],
                    "description": role["description"],
                    "is_system_role": True
                }).execute()
                role_id = result.data[0]["id"]
                created_count += 1

            sync_role_permissions(supabase, role_id, role["name"], role["permissions"])
        except Exception as e:
            logger.error(f"Error processing role {role['name']}: {e}")

    logger.info(f"Roles seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def sync_role_permissions(supabase: Client, role_id: str, role_name: str, permission_names: List[str]) -> Dict[str, int]:
    """Grant missing permissions and revoke those no longer in the config"""
    permission_ids = set()
    if permission_names:
        permission_result = supabase.table("permissions")\
            .select("id")\
            .in_("name", permission_names)\
            .execute()
        permission_ids = {p["id"] for p in permission_result.data or []}
        if not permission_ids:
            logger.warning(f"No permissions found for role {role_name}")

    existing_result = supabase.table("role_permissions")\
        .select("permission_id")\
        .eq("role_id", role_id)\
        .execute()
    existing_ids = {p["permission_id"] for p in existing_result.data or []}

    to_add = sorted(permission_ids - existing_ids)
    if to_add:
        supabase.table("role_permissions")\
            .insert([{"role_id": role_id, "permission_id": pid} for pid in to_add])\
            .execute()

    to_remove = sorted(existing_ids - permission_ids)
    if to_remove:
        supabase.table("role_permissions")\
            .delete()\
            .eq("role_id", role_id)\
            .in_("permission_id", to_remove)\
            .execute()

    logger.debug(f"Role {role_name}: {len(to_add)} granted, {len(to_remove)} revoked")
    return {"added": len(to_add), "removed": len(to_remove)}


def main():
    logging.basicConfig(level=logging.INFO)
    try:
        supabase = get_service_supabase()

        logger.info("Starting permissions and roles seeding...")
        # Roles reference permissions, so permissions go first
        perm_count = seed_permissions(supabase)
        role_count = seed_roles(supabase)

        logger.info(f"Seeding completed: {perm_count} permissions, {role_count} roles processed")
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
