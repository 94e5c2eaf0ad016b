# Supabase tables: leaderboard, player_stats
# leaderboard rows are snapshots written by the cron job; reads fall back to player_stats

"""
Expected Supabase table structure:

leaderboard:
- id: uuid (primary key)
- type: text (global | club | city | tournament_winners | win_streak | social_butterfly | traveler | fair_play)
- scope_id: text (nullable, org id for club, city name for city)
- metric: text (elo_rating | win_rate | tournaments_won | win_streak | ...)
- period_type: text (week | month | all_time)
- period_start / period_end: date (nullable)
- rankings: jsonb (list of {user_id, username, avatar_url, rank, value})
- calculated_at: timestamp
- unique (type, scope_id, metric, period_type, period_start)

player_stats: see app/modules/analytics/models.py
"""
