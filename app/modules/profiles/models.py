# Supabase tables: user_profile, privacy_settings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

user_profile:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- name: text (nullable)
- username: text (unique, nullable)
- avatar_url: text (nullable)
- phone: text (nullable, E.164)
- bio: text (nullable)
- level: numeric (1.0 - 7.0)
- city: text (nullable)
- country: text (nullable, ISO 3166-1 alpha-2)
- lat / lng: float (nullable)
- preferences: jsonb (lang, notifications{email,whatsapp,sms,push}, privacy{show_location,show_level,discoverable})
- current_plan: text (free | pro | dual | premium | club)
- followers_count / following_count: integer
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

privacy_settings:
- user_id: uuid (primary key, references user_profile.id)
- location_visibility: text (public | friends | clubs_only | private)
- profile_visibility: text (public | friends | clubs_only | private)
- graph_visibility: text (public | friends | clubs_only | private)
- auto_match_enabled: boolean
- show_in_discovery: boolean
- updated_at: timestamp
"""
