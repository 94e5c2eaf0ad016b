# Supabase tables: post, post_like, post_comment, comment_like
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

post:
- id: uuid (primary key)
- user_id: uuid (references user_profile.id, author)
- org_id: uuid (nullable, references organization.id)
- content: text (1 - 5000 chars)
- media_urls: text[] (max 10)
- visibility: text (public | friends | private | org)
- shared_post_id: uuid (nullable, references post.id, set on shares)
- likes_count / comments_count / shares_count: integer (default: 0, recounted from post_like, post_comment and shared posts)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

post_like:
- id: uuid (primary key)
- post_id: uuid (references post.id)
- user_id: uuid (references user_profile.id)
- unique(post_id, user_id)

post_comment:
- id: uuid (primary key)
- post_id: uuid (references post.id)
- user_id: uuid (references user_profile.id)
- parent_id: uuid (nullable, references post_comment.id, same post)
- content: text (1 - 2000 chars)
- likes_count: integer (default: 0)
- created_at: timestamp (default: now())

comment_like:
- id: uuid (primary key)
- comment_id: uuid (references post_comment.id)
- user_id: uuid (references user_profile.id)
- unique(comment_id, user_id)
"""
