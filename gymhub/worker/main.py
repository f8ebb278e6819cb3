from __future__ import annotations

import asyncio

from gymhub.core import get_settings
from gymhub.core.logging import configure_logging
from gymhub.db import get_supabase_client
from gymhub.services import get_membership_service
from gymhub.worker.notifier import TelegramNotifier
from gymhub.worker.scheduler import ExpirySweepScheduler


async def _run_worker() -> None:
    settings = get_settings()
    logger = configure_logging()

    notifier = None
    if settings.notifications_enabled:
        notifier = TelegramNotifier(settings.bot_token, settings.admin_chat_id)
    else:
        logger.warning("BOT_TOKEN/ADMIN_CHAT_ID not set; admin notifications are log-only")

    scheduler = ExpirySweepScheduler(get_membership_service(), notifier, settings)

    logger.info("Starting worker in %s environment", settings.environment)
    await scheduler.start()

    try:
        # The scheduler runs on this loop; park until cancelled
        await asyncio.Event().wait()
    finally:
        # Graceful shutdown
        await scheduler.stop()
        if notifier is not None:
            await notifier.close()
        await get_supabase_client().close()


def main() -> None:
    try:
        asyncio.run(_run_worker())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
