# Supabase tables: user_profile, follow, post
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Profile columns are documented in profiles/models.py

"""
Expected Supabase objects used for public user lookups:

user_profile:
- id, email, name, username, avatar_url, level, city, bio (see profiles/models.py)

follow:
- follower_id: uuid (references user_profile.id)
- following_id: uuid (references user_profile.id)
- created_at: timestamp

post:
- see feed/models.py

RPC padelgraph_profile_counts(p_user uuid) -> table(followers int, following int, posts int)
Optional; counts fall back to the follow and post tables when it is missing.
"""
