from datetime import datetime, time, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings

FALLBACK_MESSAGE = "Désolé, je n'ai pas bien compris votre demande. Pouvez-vous préciser ?"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./sellify.db"
    debug: bool = False
    log_level: str = "INFO"

    # Anti-ban quota ceilings, per tenant
    messages_per_day: int = 200
    messages_per_week: int = 1000
    images_per_day: int = 50
    videos_per_week: int = 20
    default_tenant_id: str = "default"

    # "HH:MM" in active_hours_timezone; start > end wraps midnight
    active_hours_start: str = "09:00"
    active_hours_end: str = "18:00"
    active_hours_timezone: str = "UTC"

    forbidden_words: List[str] = [
        "AI",
        "intelligence artificielle",
        "robot",
        "humain",
        "transférer",
        "escalade",
    ]
    max_generated_length: int = 500
    fallback_message: str = FALLBACK_MESSAGE

    legal_keywords: List[str] = ["avocat", "tribunal", "police", "procès"]
    threat_keywords: List[str] = ["tuer", "frapper", "détruire"]
    anger_keywords: List[str] = ["arnaque", "escroc", "honteux", "inadmissible"]
    sensitive_words: List[str] = []
    max_misunderstandings: int = 3

    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    openai_api_key: Optional[str] = None
    generation_model: str = "gpt-5-mini"
    generation_timeout_seconds: float = 15.0

    quota_reset_scheduler_enabled: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


def _parse_clock(value: str) -> time:
    hours, minutes = value.strip().split(":", 1)
    return time(hour=int(hours), minute=int(minutes))


def is_active_hours(config: Settings, now: Optional[datetime] = None) -> bool:
    """True when ``now`` falls inside the configured active-hours window."""
    now = now or datetime.now(timezone.utc)
    local_now = now.astimezone(ZoneInfo(config.active_hours_timezone)).time()
    start = _parse_clock(config.active_hours_start)
    end = _parse_clock(config.active_hours_end)

    if start == end:
        return True
    if start < end:
        return start <= local_now < end
    return local_now >= start or local_now < end


settings = Settings()
