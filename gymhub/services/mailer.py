"""
Member-facing emails: welcome, renewal confirmation, expiry reminder.

Rendering and delivery happen in the Supabase Edge Functions; this module
only builds their request bodies.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from gymhub.db.models import Member
from gymhub.db.stores import FunctionInvoker

logger = logging.getLogger(__name__)

WELCOME_FUNCTION = "send-welcome-email"
RENEWAL_FUNCTION = "send-renewal-email"
REMINDER_FUNCTION = "send-reminder-email"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class MemberMailer:
    def __init__(self, functions: FunctionInvoker) -> None:
        self._functions = functions

    async def send_welcome(self, member: Member, *, amount: Decimal) -> None:
        await self._functions.invoke_function(
            WELCOME_FUNCTION,
            {
                "email": member.email,
                "name": member.name,
                "package": member.package,
                "amount": float(amount),
                "endDate": _iso(member.subscription_end_date),
            },
        )
        logger.debug("Welcome email requested for member %s", member.id)

    async def send_renewal(self, member: Member, *, amount: Decimal, discount: Decimal) -> None:
        await self._functions.invoke_function(
            RENEWAL_FUNCTION,
            {
                "email": member.email,
                "name": member.name,
                "package": member.package,
                "amount": float(amount),
                "discount": float(discount),
                "startDate": _iso(member.subscription_start_date),
                "endDate": _iso(member.subscription_end_date),
            },
        )
        logger.debug("Renewal email requested for member %s", member.id)

    async def send_reminder(self, member: Member, days_left: int) -> None:
        """
        Expiry reminder. `days_left == 0` sends the "membership has expired"
        variant instead.
        """

        await self._functions.invoke_function(
            REMINDER_FUNCTION,
            {
                "email": member.email,
                "name": member.name,
                "package": member.package,
                "endDate": _iso(member.subscription_end_date),
                "daysLeft": days_left,
            },
        )
        logger.debug("Reminder email (%s days left) requested for member %s", days_left, member.id)
