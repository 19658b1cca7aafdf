# Supabase tables: auth.users
# Authentication is handled by Supabase Auth; this module stores nothing itself.

"""
auth.users (managed by Supabase Auth):
- id: uuid (primary key)
- email: text
- raw_user_meta_data: jsonb - first_name, last_name supplied at sign-up

A database trigger creates the matching row in public.profiles on sign-up.
"""
