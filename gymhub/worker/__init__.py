"""
Background worker: periodic expiry sweep and admin reminders.
"""

from .notifier import TelegramNotifier
from .scheduler import ExpirySweepScheduler

__all__ = ["ExpirySweepScheduler", "TelegramNotifier"]
