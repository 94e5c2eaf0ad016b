# Supabase tables: subscription, usage_log, payment_history, subscription_plan
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py and usage.py

"""
Expected Supabase table structure:

subscription:
- id: uuid (primary key)
- user_id: uuid (unique, references user_profile.id)
- paypal_subscription_id: text (nullable)
- paypal_plan_id: text (nullable)
- plan: text (free | pro | dual | premium | club)
- pending_plan: text (nullable) - downgrade applied at period end
- status: text (active | cancelled | suspended | past_due | trialing | expired)
- current_period_start, current_period_end: timestamp (nullable)
- cancel_at_period_end: boolean (default: false)
- canceled_at: timestamp (nullable)
- amount: integer (cents, nullable)
- currency: text (default: EUR)
- interval: text (nullable)
- created_at, updated_at: timestamp

usage_log:
- id: uuid (primary key)
- user_id: uuid
- feature: text (tournament_created | team_created | booking_created | recommendation_created)
- action: text
- metadata: jsonb
- timestamp: timestamp

payment_history:
- id: uuid (primary key)
- user_id: uuid (nullable when the subscription is unknown)
- paypal_payment_id: text
- paypal_subscription_id: text (nullable)
- amount: numeric
- currency: text
- status: text
- created_at: timestamp

subscription_plan (seeded from app/config/plans_config.py):
- name: text (primary key)
- description: text
- paid: boolean
- limits: jsonb
- features: jsonb
"""
