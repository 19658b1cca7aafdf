# Supabase tables: assistant_threads, assistant_messages, children
# This file documents the expected database schema

"""
Expected Supabase table structure:

assistant_threads:
- id: uuid (primary key)
- tree_id: uuid (foreign key to trees.id, not null)
- created_by: uuid (foreign key to profiles.id, not null)
- title: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

assistant_messages:
- id: uuid (primary key)
- thread_id: uuid (foreign key to assistant_threads.id, on delete cascade)
- author: text (not null) - parent, assistant
- content: text (not null)
- created_at: timestamp (default: now())

children:
- id: uuid (primary key)
- tree_id: uuid (foreign key to trees.id, not null)
- name: text (not null)
- dob: date (nullable)
"""
