from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.modules.auth.schemas import LoginRequest, RegisterRequest, SetSuperUserRequest
from app.modules.auth.service import AuthService
from app.modules.notifications.email import EmailService, get_email_service
from app.core.dependencies import get_auth_service, get_current_user_id, is_super_user, get_user_organizations
from app.core.responses import success_response
from app.database.supabase_client import get_supabase
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", status_code=201)
async def register(
    register_data: RegisterRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
    email_service: EmailService = Depends(get_email_service)
):
    """Register a new player and send the welcome email in the background"""
    result = service.register(register_data)
    background_tasks.add_task(
        email_service.send_template,
        "welcome",
        result.email,
        {"name": register_data.name},
    )
    return success_response(result, "User registered successfully")


@router.post("/login")
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return success_response(service.login(login_data))


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return success_response(None, "Logged out successfully")


@router.get("/me")
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Current authenticated user plus the organizations they belong to (for frontend UI)."""
    return success_response({
        **current_user,
        "is_super_user": is_super_user(current_user),
        "organizations": get_user_organizations(current_user["id"], supabase),
    })


@router.post("/set-super-user", status_code=200)
async def set_super_user(
    request: SetSuperUserRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service)
):
    """Set super_user status for a user (requires current user to be super_user)"""
    # Only super users can set other users as super users
    if not is_super_user(current_user):
        raise HTTPException(status_code=403, detail="Only super users can set super_user status")

    service.set_super_user(request.user_id, request.is_super_user)
    return success_response(
        {"user_id": request.user_id, "is_super_user": request.is_super_user},
        f"User {request.user_id} super_user status set to {request.is_super_user}",
    )
