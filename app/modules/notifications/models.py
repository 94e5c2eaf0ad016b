# Supabase tables: notification
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Email and WhatsApp delivery go to Resend and Twilio; nothing is stored for them

"""
Expected Supabase table structure:

notification:
- id: uuid (primary key)
- user_id: uuid (references user_profile.id, recipient)
- type: text (follow | comment | reply | like | comment_like | share | tournament)
- title: text (not null)
- message: text (not null)
- data: jsonb (nullable) - ids the client needs to deep link (post_id, comment_id, ...)
- read: boolean (default: false)
- created_at: timestamp (default: now())
"""
