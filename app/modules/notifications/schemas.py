from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    total: int


class MarkReadRequest(BaseModel):
    notification_ids: List[str] = Field(min_length=1, max_length=100)


class DeliveryResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SendEmailRequest(BaseModel):
    to: Union[EmailStr, List[EmailStr]]
    subject: Optional[str] = Field(default=None, min_length=1, max_length=200)
    html: Optional[str] = Field(default=None, min_length=1)
    text: Optional[str] = None
    template_id: Optional[str] = Field(default=None, min_length=1)
    variables: Dict[str, Any] = Field(default_factory=dict)


class SendWhatsAppRequest(BaseModel):
    to: str = Field(pattern=r"^\+?[1-9]\d{1,14}$")
    body: str = Field(min_length=1, max_length=1600)
