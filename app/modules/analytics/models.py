# Supabase tables: player_stats, analytics_event

"""
Expected Supabase table structure:

player_stats:
- id: uuid (primary key)
- user_id: uuid (references user_profile.id)
- period_type: text (day | week | month | all_time)
- period_start / period_end: date
- total_matches, matches_won, matches_lost: integer
- win_rate: numeric (percentage, 0-100)
- total_games_won, total_games_lost, games_diff: integer
- avg_score_per_match: numeric
- current_win_streak, best_win_streak: integer
- tournaments_played, tournaments_won: integer
- elo_rating, elo_change: integer
- fair_play_score, connections_count, cities_visited: integer
- skill_level: text
- calculated_at: timestamp
- unique (user_id, period_type, period_start)

analytics_event:
- id: uuid (primary key)
- event_name: text
- user_id: uuid (nullable, anonymous sessions allowed)
- session_id: text
- properties, device_info: jsonb
- page_url, referrer: text
- created_at: timestamp
"""
