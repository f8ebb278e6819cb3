from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, HttpUrl, ValidationError


class Settings(BaseModel):
    supabase_url: HttpUrl
    supabase_service_key: str
    supabase_anon_key: str | None = None
    environment: Literal["local", "staging", "production"] = "local"

    # Admin notifications over Telegram; both unset means log-only
    bot_token: str | None = None
    admin_chat_id: int | None = None

    sweep_interval_minutes: int = 60
    reminder_hour: int = 10  # Hour of day (0-23) to send expiry reminders
    reminder_days_before: int = 7

    # Welcome, renewal and expiry emails through the Edge Functions
    member_emails_enabled: bool = True

    @property
    def is_debug(self) -> bool:
        return self.environment == "local"

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.bot_token) and self.admin_chat_id is not None


def _build_settings() -> Settings:
    # Load .env file once on first settings build (for local development)
    load_dotenv()

    try:
        return Settings(
            supabase_url=os.environ["SUPABASE_URL"],
            supabase_service_key=os.environ["SUPABASE_SERVICE_KEY"],
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            environment=os.getenv("ENVIRONMENT", "local"),
            bot_token=os.getenv("BOT_TOKEN") or None,
            admin_chat_id=os.getenv("ADMIN_CHAT_ID") or None,
            sweep_interval_minutes=os.getenv("SWEEP_INTERVAL_MINUTES", "60"),
            reminder_hour=os.getenv("REMINDER_HOUR", "10"),
            reminder_days_before=os.getenv("REMINDER_DAYS_BEFORE", "7"),
            member_emails_enabled=os.getenv("MEMBER_EMAILS_ENABLED", "true"),
        )
    except KeyError as exc:  # pragma: no cover
        required_keys = ("SUPABASE_URL", "SUPABASE_SERVICE_KEY")
        missing = [key for key in required_keys if key not in os.environ]
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}"
        ) from exc
    except ValidationError as exc:  # pragma: no cover
        raise RuntimeError(f"Invalid settings: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Reads environment variables once and validates them with Pydantic.
    """

    return _build_settings()
