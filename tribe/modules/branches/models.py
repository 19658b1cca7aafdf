# Supabase tables: branches, branch_members, cross_tree_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

branches:
- id: uuid (primary key)
- tree_id: uuid (foreign key to trees.id, not null) - a branch belongs to exactly one tree
- name: text (not null)
- description: text (nullable)
- color: text (not null, default: 'blue')
- created_by: uuid (foreign key to profiles.id, not null) - automatic owner
- type: text (default: 'family')
- privacy: text (default: 'private') - private, invite_only, public
- category: text (nullable)
- location: text (nullable)
- member_count: integer (default: 1)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

branch_members:
- id: uuid (primary key)
- branch_id: uuid (foreign key to branches.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- role: text (not null, default: 'member') - mirrors user_roles (context_type = 'branch')
- join_method: text - invited, requested, auto_approved, admin_added
- joined_via: uuid (nullable) - who invited/approved
- status: text (default: 'active')
- added_at: timestamp (default: now())
- approved_at: timestamp (nullable)
- unique constraint on (branch_id, user_id)

cross_tree_access:
- id: uuid (primary key)
- branch_id: uuid (foreign key to branches.id, not null)
- tree_id: uuid (foreign key to trees.id, not null) - tree whose members gain access
- invited_by: uuid (not null)
- permissions: jsonb - {"can_read": true, "can_comment": true, "can_like": true}
- status: text (default: 'active') - active, revoked, pending
- invited_at: timestamp (default: now())
- created_at: timestamp (default: now())
"""
