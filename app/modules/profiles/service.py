from supabase import Client
from app.modules.profiles.schemas import ProfileUpdate, PreferencesUpdate, PrivacySettingsUpdate
from typing import Any, Dict
from fastapi import HTTPException
from datetime import datetime
import copy
import logging

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "lang": "en",
    "notifications": {
        "email": True,
        "whatsapp": True,
        "sms": False,
        "push": True,
    },
    "privacy": {
        "show_location": True,
        "show_level": True,
        "discoverable": True,
    },
}

DEFAULT_PRIVACY_SETTINGS: Dict[str, Any] = {
    "location_visibility": "clubs_only",
    "profile_visibility": "public",
    "graph_visibility": "friends",
    "auto_match_enabled": True,
    "show_in_discovery": True,
}


def merge_preferences(current: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Merge an update over stored preferences; notifications and privacy merge key by key"""
    merged = copy.deepcopy(DEFAULT_PREFERENCES)
    for source in (current or {}, update or {}):
        for key, value in source.items():
            if value is None:
                continue
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update({k: v for k, v in value.items() if v is not None})
            else:
                merged[key] = value
    return merged


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> dict:
        try:
            result = self.supabase.table("user_profile")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch profile")

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> dict:
        try:
            update_data = profile_data.model_dump(mode="json", exclude_unset=True)
            update_data["updated_at"] = datetime.utcnow().isoformat()
            result = self.supabase.table("user_profile")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile")

    def get_preferences(self, user_id: str) -> dict:
        profile = self.get_profile(user_id)
        return merge_preferences(profile.get("preferences") or {}, {})

    def update_preferences(self, user_id: str, preferences: PreferencesUpdate) -> dict:
        current = self.get_preferences(user_id)
        merged = merge_preferences(current, preferences.model_dump(exclude_unset=True))
        try:
            self.supabase.table("user_profile")\
                .update({"preferences": merged, "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", user_id)\
                .execute()
            return merged
        except Exception as e:
            logger.error(f"Error updating preferences for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update preferences")

    def get_privacy_settings(self, user_id: str) -> dict:
        try:
            result = self.supabase.table("privacy_settings")\
                .select("*")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if result.data:
                return result.data[0]
            return {
                "user_id": user_id,
                **DEFAULT_PRIVACY_SETTINGS,
                "updated_at": datetime.utcnow().isoformat(),
            }
        except Exception as e:
            logger.error(f"Error fetching privacy settings for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch privacy settings")

    def update_privacy_settings(self, user_id: str, settings_data: PrivacySettingsUpdate) -> dict:
        try:
            payload = {
                "user_id": user_id,
                **settings_data.model_dump(exclude_unset=True),
                "updated_at": datetime.utcnow().isoformat(),
            }
            result = self.supabase.table("privacy_settings")\
                .upsert(payload, on_conflict="user_id")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to update privacy settings")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating privacy settings for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update privacy settings")
