# Supabase tables: invitations, branch_invitations
# This file documents the expected database schema

"""
Expected Supabase table structure:

invitations (tree invitations):
- id: uuid (primary key)
- tree_id: uuid (foreign key to trees.id, not null)
- email: text (not null, stored lower-cased)
- role: text (default: 'member')
- token: text (not null, unique)
- invited_by: uuid (not null)
- message: text (nullable)
- status: text (default: 'pending') - pending, accepted, declined
- expires_at: timestamp (not null)
- accepted_at: timestamp (nullable)
- created_at: timestamp (default: now())

branch_invitations: same columns with branch_id (foreign key to branches.id)
in place of tree_id.
"""
