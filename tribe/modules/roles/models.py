# Supabase tables: roles, permissions, role_permissions, user_roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in tribe/core/rbac.py

"""
Expected Supabase table structure:

roles:
- id: uuid (primary key)
- name: text (not null, unique) - owner, admin, moderator, member, viewer
- description: text (nullable)
- is_system_role: boolean (default: true)
- created_at: timestamp (default: now())

permissions:
- id: uuid (primary key)
- name: text (not null, unique) - e.g. "branch.update", "leaf.create"
- resource_type: text (not null) - branch, leaf, comment, member
- action: text (not null) - create, read, update, delete, moderate, invite, admin
- description: text (nullable)
- created_at: timestamp (default: now())

role_permissions:
- id: uuid (primary key)
- role_id: uuid (foreign key to roles.id, not null)
- permission_id: uuid (foreign key to permissions.id, not null)
- unique constraint on (role_id, permission_id)

user_roles:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- role_id: uuid (foreign key to roles.id, not null)
- context_type: text (not null) - global, tree, branch
- context_id: uuid (nullable; null for global)
- granted_by: uuid (nullable)
- granted_at: timestamp (default: now())
- expires_at: timestamp (nullable)
- unique constraint on (user_id, role_id, context_type, context_id)

RPC user_has_permission(check_user_id, context_type, context_id, permission_name) -> boolean
joins the four tables above and also treats a branch creator as holding every permission.
"""
