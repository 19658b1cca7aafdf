# Supabase tables: profiles, user_settings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- first_name: text (nullable)
- last_name: text (nullable)
- avatar_url: text (nullable)
- bio: text (nullable)
- family_role: text (nullable) - parent, child, grandparent, grandchild, sibling, spouse, partner, other
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_settings:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, unique)
- profile_visibility: text (default: 'branches') - branches, private
- show_email: boolean (default: false)
- show_join_date: boolean (default: true)
- email_new_posts: boolean (default: true)
- email_comments: boolean (default: true)
- email_mentions: boolean (default: true)
- email_invitations: boolean (default: true)
- push_notifications: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
