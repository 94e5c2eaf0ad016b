from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.profiles.schemas import ProfileUpdate, PreferencesUpdate, PrivacySettingsUpdate
from app.modules.profiles.service import ProfileService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict

router = APIRouter(tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/profile")
async def get_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get the caller's profile"""
    return success_response(service.get_profile(current_user["id"]))


@router.put("/profile")
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return success_response(service.update_profile(current_user["id"], profile_data), "Profile updated successfully")


@router.get("/preferences")
async def get_preferences(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return success_response(service.get_preferences(current_user["id"]))


@router.put("/preferences")
async def update_preferences(
    preferences: PreferencesUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Partial update; notifications and privacy are merged into the stored values"""
    return success_response(service.update_preferences(current_user["id"], preferences), "Preferences updated successfully")


@router.get("/privacy-settings")
async def get_privacy_settings(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return success_response(service.get_privacy_settings(current_user["id"]))


@router.put("/privacy-settings")
async def update_privacy_settings(
    settings_data: PrivacySettingsUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return success_response(
        service.update_privacy_settings(current_user["id"], settings_data),
        "Privacy settings updated successfully",
    )
