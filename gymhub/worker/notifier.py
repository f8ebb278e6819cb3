from __future__ import annotations

import html
import logging
from datetime import datetime

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from gymhub.db.models import Member
from gymhub.domain.lifecycle import days_remaining

logger = logging.getLogger(__name__)


def format_expired_message(members: list[Member]) -> str:
    lines = [f"⌛ <b>{len(members)} membership(s) expired</b>", ""]
    for member in members:
        end = member.subscription_end_date.strftime("%d.%m.%Y") if member.subscription_end_date else "N/A"
        lines.append(f"  • {html.escape(member.name)} ({member.package}), ended {end}")
    return "\n".join(lines)


def format_reminder_message(members: list[Member], now: datetime) -> str:
    lines = ["⏰ <b>Memberships expiring soon</b>", ""]
    for member in members:
        days = days_remaining(member.subscription_end_date, now)
        unit = "day" if days == 1 else "days"
        lines.append(
            f"  • {html.escape(member.name)} ({member.package}): {days} {unit} left"
        )
    lines.append("")
    lines.append("💳 Renew from the member page before the expiry date.")
    return "\n".join(lines)


class TelegramNotifier:
    """
    Sends admin notifications to a single Telegram chat.
    """

    def __init__(self, bot_token: str, chat_id: int) -> None:
        self.chat_id = chat_id
        self.bot = Bot(
            token=bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )

    async def send(self, text: str) -> None:
        await self.bot.send_message(chat_id=self.chat_id, text=text)
        logger.debug("Notification sent to chat %s", self.chat_id)

    async def close(self) -> None:
        await self.bot.session.close()
