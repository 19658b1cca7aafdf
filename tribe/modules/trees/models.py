# Supabase tables: trees, tree_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

trees:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- created_by: uuid (foreign key to profiles.id, not null) - automatic owner
- is_active: boolean (default: true) - false once archived
- settings: jsonb (default: {}) - privacy_level, allow_public_discovery, require_approval,
  auto_accept_family, email_notifications, member_limit, custom_fields
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

tree_members:
- id: uuid (primary key)
- tree_id: uuid (foreign key to trees.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- role: text (not null, default: 'member') - owner, admin, moderator, member, viewer
- joined_at: timestamp (default: now())
- unique constraint on (tree_id, user_id)

The role column mirrors the RBAC assignment in user_roles (context_type = 'tree');
user_roles is the source of truth for permission checks.
"""
