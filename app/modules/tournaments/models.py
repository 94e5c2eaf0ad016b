# Supabase Tournament Tables
# Tournaments belong to an organization; org owners/admins run them

"""
Expected Supabase schema:

tournament:
- id (uuid, primary key)
- org_id (uuid, foreign key to organization.id)
- created_by (uuid, foreign key to user_profile.id)
- name (text), description (text, nullable)
- type (text: americano | mexicano | round_robin | knockout_single | knockout_double | swiss | monrad | compass)
- status (text: draft | published | in_progress | completed | cancelled)
- starts_at, ends_at, check_in_opens_at, check_in_closes_at (timestamptz)
- max_participants (int)
- location_lat, location_lng (float8), geofence_radius_meters (int)
- match_duration_minutes, points_per_win, points_per_draw, points_per_loss (int)
- settings (jsonb), format_settings (jsonb: seeding, bronze_match, monrad config...)
- created_at, updated_at (timestamptz)

tournament_participant:
- id (uuid), tournament_id, user_id
- status (text: registered | checked_in | no_show | withdrawn)
- registered_at, checked_in_at (timestamptz), checked_in_lat, checked_in_lng (float8)
- unique (tournament_id, user_id)

tournament_round:
- id (uuid), tournament_id, round_number (int, play order)
- name (text)
- bracket_type (text, nullable: main | third_place | winners | losers | grand_final | east | west | ...)
- bracket_round (int, nullable: round inside its bracket)
- status (text: pending | in_progress | completed)
- starts_at, ends_at (timestamptz)

tournament_match:
- id (uuid), round_id, tournament_id, court_id (nullable)
- team1_player1_id, team1_player2_id, team2_player1_id, team2_player2_id (uuid, nullable while undecided)
- team1_bye, team2_bye (bool): the slot holds a bye
- bracket_position (int, nullable)
- team1_score, team2_score (int), winner_team (int 1|2), is_draw (bool)
- status (text: pending | in_progress | completed | forfeited)
- completed_at (timestamptz)

tournament_bracket:
- id (uuid), tournament_id, bracket_type, round_number (round inside the bracket), position, match_id

tournament_standing:
- tournament_id, user_id (unique together)
- matches_played, matches_won, matches_drawn, matches_lost (int)
- games_won, games_lost, games_diff, points, rank (int)
- fair_play_points, yellow_cards, red_cards, conduct_bonus (int)
- updated_at

tournament_fair_play:
- id (uuid), tournament_id, user_id, match_id (nullable)
- incident_type, severity (1-5), description
- penalty_points, bonus_points (int)
- issued_by (uuid), issued_at (timestamptz)
"""
