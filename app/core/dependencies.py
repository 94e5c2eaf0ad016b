"""
Core dependencies for route protection and organization permission checking
"""

from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.settings import settings
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

# auto_error disabled so a missing header yields 401 from get_current_user_id, not the scheme's default
security = HTTPBearer(auto_error=False)

ORG_ADMIN_ROLES = ["owner", "admin"]


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (org roles keyed by org_id)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[dict]:
    """Like get_current_user_id but anonymous callers get None instead of 401"""
    if credentials is None:
        return None
    try:
        return auth_service.get_current_user(credentials.credentials)
    except HTTPException:
        return None


def is_super_user(user_data: dict) -> bool:
    """Check if user is a super user from app_metadata"""
    # app_metadata is set server-side and cannot be modified by users
    app_metadata = user_data.get("app_metadata") or {}
    return app_metadata.get("type") == "super_user"


def get_org_role(org_id: str, user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Return the caller's role in an organization (owner/admin/member) or None. Uses request-scoped cache when provided."""
    cache_key = f"org_role:{org_id}"
    if cache is not None and cache_key in cache:
        return cache[cache_key]
    try:
        result = supabase.table("org_member")\
            .select("role")\
            .eq("org_id", org_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        role = result.data[0]["role"] if result.data else None
    except Exception as e:
        logger.error(f"Error getting org role: {e}")
        role = None
    if cache is not None:
        cache[cache_key] = role
    return role


def is_org_admin(org_id: str, user_data: dict, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> bool:
    if is_super_user(user_data):
        return True
    return get_org_role(org_id, user_data["id"], supabase, cache) in ORG_ADMIN_ROLES


def is_org_member(org_id: str, user_data: dict, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> bool:
    if is_super_user(user_data):
        return True
    return get_org_role(org_id, user_data["id"], supabase, cache) is not None


def check_org_admin(org_id: str, user_data: dict, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> dict:
    """Raise 403 unless the user is owner/admin of the organization or a super user"""
    if not org_id or not is_org_admin(org_id, user_data, supabase, cache):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be an organization owner or admin to perform this action"
        )
    return user_data


def check_org_member(org_id: str, user_data: dict, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> dict:
    """Raise 403 unless the user belongs to the organization"""
    if not is_org_member(org_id, user_data, supabase, cache):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of this organization"
        )
    return user_data


def get_user_organizations(user_id: str, supabase: Client) -> List[dict]:
    """All organizations the user belongs to, with membership role"""
    try:
        result = supabase.table("org_member")\
            .select("org_id, role, organization(*)")\
            .eq("user_id", user_id)\
            .execute()
        organizations = []
        for item in result.data or []:
            org = dict(item.get("organization") or {"id": item["org_id"]})
            org["membership_role"] = item.get("role", "member")
            organizations.append(org)
        return organizations
    except Exception as e:
        logger.error(f"Error getting user organizations: {e}")
        return []


def get_admin_organizations(user_id: str, supabase: Client) -> List[str]:
    """IDs of organizations where the user is owner or admin"""
    try:
        result = supabase.table("org_member")\
            .select("org_id")\
            .eq("user_id", user_id)\
            .in_("role", ORG_ADMIN_ROLES)\
            .execute()
        return [m["org_id"] for m in result.data or []]
    except Exception as e:
        logger.error(f"Error getting admin organizations: {e}")
        return []


def check_court_access(court_id: str, user_data: dict, supabase: Client) -> dict:
    """Return the court if the user administers its organization; 404/403 otherwise"""
    court_result = supabase.table("court")\
        .select("*")\
        .eq("id", court_id)\
        .limit(1)\
        .execute()
    if not court_result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Court not found"
        )
    court = court_result.data[0]
    check_org_admin(court["org_id"], user_data, supabase)
    return court


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache."""
    return _get_request_cache(request)


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> bool:
    """Cron endpoints require 'Bearer <CRON_SECRET>'. Without a configured secret only non-production allows calls."""
    cron_secret = settings.cron_secret
    if not cron_secret:
        if settings.is_production:
            logger.warning("Cron call rejected: CRON_SECRET not configured in production")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return True
    if authorization != f"Bearer {cron_secret}":
        logger.warning("Unauthorized cron job attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return True
