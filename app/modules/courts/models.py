# Supabase tables: court
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

court:
- id: uuid (primary key)
- org_id: uuid (references organization.id)
- name: text (1 - 100 chars)
- type: text (indoor | outdoor | covered)
- surface: text (carpet | concrete | grass | crystal | synthetic)
- description: text (nullable, max 500)
- active: boolean (default: true) - deleting a court only clears this flag
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

organization / org_member:
- org_member(org_id, user_id, role owner | admin | member) grants court management
"""
