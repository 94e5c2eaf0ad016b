from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.notifications.schemas import MarkReadRequest, SendEmailRequest, SendWhatsAppRequest
from app.modules.notifications.service import NotificationService
from app.modules.notifications.email import EmailService, get_email_service
from app.modules.notifications.whatsapp import WhatsAppService, get_whatsapp_service
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict

router = APIRouter(tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("/notifications")
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = False,
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    """List the caller's in-app notifications, newest first"""
    return success_response(service.list_notifications(current_user["id"], limit, offset, unread_only))


@router.post("/notifications/read")
async def mark_notifications_read(
    request: MarkReadRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    result = service.mark_read(current_user["id"], request.notification_ids)
    return success_response(result, "Notifications marked as read")


@router.post("/email/send")
async def send_email(
    request: SendEmailRequest,
    current_user: Dict = Depends(get_current_user_id),
    email_service: EmailService = Depends(get_email_service)
):
    """Send a raw email ({subject, html}) or a template ({template_id, variables})"""
    if request.template_id:
        result = email_service.send_template(request.template_id, request.to, request.variables, request.subject)
    elif request.subject and request.html:
        result = email_service.send(request.to, request.subject, request.html, request.text)
    else:
        raise HTTPException(status_code=400, detail="Either template_id or subject and html are required")

    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to send email")
    return success_response({"message_id": result.message_id}, "Email sent successfully")


@router.post("/whatsapp/send")
async def send_whatsapp(
    request: SendWhatsAppRequest,
    current_user: Dict = Depends(get_current_user_id),
    whatsapp_service: WhatsAppService = Depends(get_whatsapp_service)
):
    result = whatsapp_service.send(request.to, request.body)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to send WhatsApp message")
    return success_response({"message_id": result.message_id}, "WhatsApp message sent successfully")
