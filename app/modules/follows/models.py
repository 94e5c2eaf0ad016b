# Supabase tables: follow
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

follow:
- follower_id: uuid (references user_profile.id)
- following_id: uuid (references user_profile.id)
- created_at: timestamp (default: now())
- primary key(follower_id, following_id), check(follower_id <> following_id)

Triggers keep user_profile.followers_count / following_count in sync.
"""
