# Supabase tables: posts (leaves), leaf_reactions, leaf_shares, comments, milestones
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

posts (a leaf; chat messages live here too, see message_type):
- id: uuid (primary key)
- branch_id: uuid (foreign key to branches.id, nullable while unassigned)
- author_id: uuid (foreign key to profiles.id, not null)
- content: text (nullable)
- media_urls: text[] (default: {})
- leaf_type: text (not null) - photo, video, audio, text, milestone
- milestone_type: text (nullable)
- milestone_date: date (nullable)
- tags: text[] (default: {})
- season: text (nullable)
- ai_caption: text (nullable)
- ai_tags: text[] (default: {})
- reply_to_id: uuid (nullable, foreign key to posts.id)
- message_type: text (default: 'post') - post, message, reply, system
- is_pinned: boolean (default: false)
- edited_at: timestamp (nullable)
- assignment_status: text (default: 'assigned') - assigned, unassigned, multi-assigned
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

leaf_reactions:
- id: uuid (primary key)
- leaf_id: uuid (foreign key to posts.id, not null)
- user_id: uuid (not null)
- reaction_type: text (not null) - heart, smile, laugh, wow, care, love
- created_at: timestamp (default: now())
- unique constraint on (leaf_id, user_id)

leaf_shares:
- id: uuid (primary key)
- leaf_id: uuid (foreign key to posts.id, not null)
- branch_id: uuid (foreign key to branches.id, not null)
- shared_by: uuid (not null)
- created_at: timestamp (default: now())

comments:
- id: uuid (primary key)
- post_id: uuid (foreign key to posts.id, not null)
- author_id: uuid (not null)
- content: text (not null)
- created_at: timestamp (default: now())

milestones (read-only catalogue):
- id: uuid (primary key)
- name: text (unique)
- display_name: text
- description: text (nullable)
- category: text - physical, cognitive, social, emotional, language, other
- typical_age_months: integer (nullable)
- icon: text (nullable)
- color: text

Media files are stored in the storage bucket named by settings.media_bucket
at {author_id}/{leaf_id}/{leaf_id}_{index}.{ext}.
"""
