# Supabase table: inapp_notifications
# This file documents the expected database schema

"""
Expected Supabase table structure:

inapp_notifications:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- title: varchar(255) (not null)
- message: text (not null)
- icon: varchar(50) (nullable)
- context_type: varchar(50) (nullable) - leaf, branch, tree, invitation
- context_id: uuid (nullable)
- action_url: varchar(500) (nullable)
- is_read: boolean (default: false)
- read_at: timestamp (nullable)
- priority: integer (default: 1, 1..5)
- group_key: varchar(100) (nullable)
- created_at: timestamp (default: now())
"""
