# Supabase Auth
# Players sign up and log in through Supabase's built-in authentication
# The player profile lives in the user_profile table (see profiles/models.py)

"""
Supabase Auth provides:
- auth.sign_up() - Register new players (name stored in user_metadata)
- auth.sign_in_with_password() - Authenticate players
- auth.get_user() - Resolve the bearer token on every authenticated request
- auth.sign_out() - Logout
- auth.admin.update_user_by_id() - Set app_metadata.type = "super_user" (service role only)

A database trigger creates the matching user_profile row on sign up.
"""
