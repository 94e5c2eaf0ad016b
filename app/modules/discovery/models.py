# Supabase tables: recommendation
# Nearby/trending lookups go through RPCs and views defined in SQL migrations:
# get_nearby_users, get_nearby_clubs, padelgraph_people_you_may_play,
# get_trending_posts, mv_trending_hashtags

"""
Expected Supabase table structure:

recommendation:
- id: uuid (primary key)
- user_id: uuid (references user_profile.id)
- recommended_type: text (player | club | tournament)
- recommended_id: uuid
- score: numeric (0-1)
- reason: text
- metadata: jsonb
- shown, clicked, dismissed: boolean (default: false)
- created_at: timestamp (default: now())
"""
