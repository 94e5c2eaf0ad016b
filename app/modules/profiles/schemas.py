from pydantic import BaseModel, Field, HttpUrl
from typing import Optional, Literal


Visibility = Literal["public", "friends", "clubs_only", "private"]


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{1,14}$")
    level: Optional[float] = Field(default=None, ge=1.0, le=7.0)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[HttpUrl] = None


class NotificationPreferences(BaseModel):
    email: Optional[bool] = None
    whatsapp: Optional[bool] = None
    sms: Optional[bool] = None
    push: Optional[bool] = None


class PrivacyPreferences(BaseModel):
    show_location: Optional[bool] = None
    show_level: Optional[bool] = None
    discoverable: Optional[bool] = None


class PreferencesUpdate(BaseModel):
    lang: Optional[Literal["en", "es"]] = None
    notifications: Optional[NotificationPreferences] = None
    privacy: Optional[PrivacyPreferences] = None


class PrivacySettingsUpdate(BaseModel):
    location_visibility: Optional[Visibility] = None
    profile_visibility: Optional[Visibility] = None
    graph_visibility: Optional[Visibility] = None
    auto_match_enabled: Optional[bool] = None
    show_in_discovery: Optional[bool] = None
