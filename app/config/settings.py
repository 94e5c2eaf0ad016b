from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations and background jobs

    # Email (Resend)
    resend_api_key: Optional[str] = None
    email_from: str = "noreply@padelgraph.com"

    # Twilio (WhatsApp / SMS)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_from: str = "whatsapp:+14155238886"  # Twilio sandbox number
    twilio_phone_from: Optional[str] = None

    # PayPal
    paypal_mode: str = "sandbox"  # sandbox | production
    paypal_client_id: Optional[str] = None
    paypal_secret: Optional[str] = None
    paypal_webhook_id: Optional[str] = None
    paypal_pro_plan_id: Optional[str] = None
    paypal_dual_plan_id: Optional[str] = None
    paypal_premium_plan_id: Optional[str] = None
    paypal_club_plan_id: Optional[str] = None

    # AWS S3 media storage (will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "eu-west-1"
    s3_media_bucket: Optional[str] = None
    media_public_base_url: Optional[str] = None  # CDN in front of the bucket, if any

    # Cron / scheduler
    cron_secret: Optional[str] = None
    scheduler_enabled: bool = False
    scheduler_interval_seconds: int = 3600

    # App
    app_name: str = "padelgraph-backend"
    app_version: str = "0.1.0"
    app_url: str = "http://localhost:3000"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def paypal_base_url(self) -> str:
        if self.paypal_mode == "production":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_paypal_plan_id(self, plan: str) -> Optional[str]:
        return {
            "pro": self.paypal_pro_plan_id,
            "dual": self.paypal_dual_plan_id,
            "premium": self.paypal_premium_plan_id,
            "club": self.paypal_club_plan_id,
        }.get(plan)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
