# Supabase tables: story, story_media, story_view
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

story:
- id: uuid (primary key)
- user_id: uuid (references user_profile.id)
- expires_at: timestamp (created_at + 24h)
- views_count: integer (default: 0)
- created_at: timestamp (default: now())

story_media:
- id: uuid (primary key)
- story_id: uuid (references story.id, on delete cascade)
- url: text
- type: text (image | video)
- caption: text (nullable, max 500)
- order_index: integer

story_view:
- story_id: uuid (references story.id, on delete cascade)
- viewer_id: uuid (references user_profile.id)
- viewed_at: timestamp
- primary key(story_id, viewer_id)
"""
