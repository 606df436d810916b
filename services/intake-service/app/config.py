import os
from dataclasses import dataclass, field

SERVICE_NAME = "intake-service"
MAILCHANNELS_URL = "https://api.mailchannels.net/tx/v1/send"
TELEGRAM_API_URL = "https://api.telegram.org"


def cors_origins_from_env() -> list[str]:
    origins = os.getenv("CORS_ALLOW_ORIGINS") or "*"
    return [o.strip() for o in origins.split(",") if o.strip()]


def _required(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise RuntimeError(f"{name} environment variable is not set")
    return value


@dataclass(frozen=True)
class Settings:
    booking_webhook_url: str
    hmac_secret: str
    redis_url: str | None = None
    kv_backend: str = "redis"
    notification_webhook_url: str | None = None
    email_api_url: str = MAILCHANNELS_URL
    email_from: str | None = None
    email_from_name: str = "Bookings"
    telegram_bot_token: str | None = None
    telegram_api_url: str = TELEGRAM_API_URL
    sink_timeout_seconds: float = 10.0
    channel_timeout_seconds: float = 5.0
    default_rate_limit_per_hour: int = 10
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        kv_backend = (os.getenv("KV_BACKEND") or "redis").strip().lower()
        redis_url = os.getenv("REDIS_URL")
        if kv_backend == "redis" and not redis_url:
            raise RuntimeError("REDIS_URL environment variable is not set")
        return cls(
            booking_webhook_url=_required("BOOKING_WEBHOOK_URL"),
            hmac_secret=_required("BOOKING_HMAC_SECRET"),
            redis_url=redis_url,
            kv_backend=kv_backend,
            notification_webhook_url=os.getenv("NOTIFICATION_WEBHOOK_URL") or None,
            email_api_url=os.getenv("EMAIL_API_URL") or MAILCHANNELS_URL,
            email_from=os.getenv("EMAIL_FROM") or os.getenv("MAILCHANNELS_FROM") or None,
            email_from_name=os.getenv("EMAIL_FROM_NAME") or "Bookings",
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            sink_timeout_seconds=float(os.getenv("SINK_TIMEOUT_SECONDS") or "10"),
            channel_timeout_seconds=float(os.getenv("CHANNEL_TIMEOUT_SECONDS") or "5"),
            default_rate_limit_per_hour=int(os.getenv("DEFAULT_RATE_LIMIT_PER_HOUR") or "10"),
            cors_allow_origins=cors_origins_from_env(),
        )
