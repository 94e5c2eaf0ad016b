from pydantic import BaseModel
from typing import Literal, Optional

PlanName = Literal["free", "pro", "dual", "premium", "club"]
SubscriptionStatus = Literal["active", "cancelled", "suspended", "past_due", "trialing", "expired"]


class CreateSubscriptionRequest(BaseModel):
    # Validated in the service so an unknown plan answers "Invalid plan"
    plan_id: str


class ChangePlanRequest(BaseModel):
    plan_id: str


class Subscription(BaseModel):
    id: Optional[str] = None
    user_id: str
    paypal_subscription_id: Optional[str] = None
    paypal_plan_id: Optional[str] = None
    plan: PlanName = "free"
    status: SubscriptionStatus = "active"
    current_period_start: Optional[str] = None
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[str] = None
    amount: Optional[int] = None
    currency: str = "EUR"
    interval: Optional[str] = None
