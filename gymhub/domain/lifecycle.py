"""
Subscription lifecycle rules.

Every function here is pure: the caller supplies "now" and whatever
member/payment data is needed, and gets back a plan or a verdict. Writing
the result to Supabase is the job of `gymhub.services`.

Month arithmetic uses `relativedelta`, which clamps the day to the end of
the target month (Jan 31 + 1 month -> Feb 28, or Feb 29 in a leap year).
"""

from __future__ import annotations

import math
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict

from gymhub.db.models import Member, MemberStatus, Payment, TransactionKind
from gymhub.domain.errors import UnknownPackageError
from gymhub.domain.packages import Package, find_package, package_names

_SECONDS_PER_DAY = 24 * 60 * 60


class PaymentCategory(str, Enum):
    NEW_MEMBER = "New Members"
    RENEWAL = "Renewals"


class SubscriptionPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: Package
    start: datetime
    end: datetime
    status: MemberStatus = MemberStatus.ACTIVE


def get_package(package_name: str) -> Package:
    package = find_package(package_name)
    if package is None:
        raise UnknownPackageError(package_name, package_names())
    return package


def add_months(moment: datetime, months: int) -> datetime:
    return moment + relativedelta(months=months)


def create_subscription(package_name: str, now: datetime) -> SubscriptionPlan:
    """
    Plan a brand-new subscription starting right now.
    """

    package = get_package(package_name)
    return SubscriptionPlan(
        package=package,
        start=now,
        end=add_months(now, package.months),
    )


def renew_subscription(
    package_name: str,
    now: datetime,
    current_end_date: datetime | None,
) -> SubscriptionPlan:
    """
    Plan a renewal.

    The new window starts at the later of `now` and the current end date,
    so renewing early keeps the unused days. Renewal always reactivates.
    """

    package = get_package(package_name)
    if current_end_date is not None and current_end_date > now:
        base = current_end_date
    else:
        base = now

    return SubscriptionPlan(
        package=package,
        start=base,
        end=add_months(base, package.months),
    )


def sweep_expirations(members: Iterable[Member], now: datetime) -> list[str]:
    """
    Return ids of Active members whose end date has passed.

    Members already Expired (or Inactive) are never selected, so sweeping
    the same set twice yields nothing the second time.
    """

    return [
        member.id
        for member in members
        if member.status == MemberStatus.ACTIVE
        and member.subscription_end_date is not None
        and member.subscription_end_date < now
    ]


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def days_remaining(end_date: date | datetime | None, now: date | datetime) -> int:
    if end_date is None:
        return 0
    delta = _as_datetime(end_date) - _as_datetime(now)
    seconds = delta.total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / _SECONDS_PER_DAY)


def classify_payment(
    payment: Payment,
    member_join_date: datetime | None,
) -> PaymentCategory:
    """
    Decide whether a payment counts as new-member or renewal revenue.

    A stamped `transaction_kind` is authoritative. Rows without it fall back
    to comparing calendar days: paid on the join day means new member.
    """

    if payment.transaction_kind is TransactionKind.NEW_MEMBER:
        return PaymentCategory.NEW_MEMBER
    if payment.transaction_kind is TransactionKind.RENEWAL:
        return PaymentCategory.RENEWAL

    if payment.payment_date is None or member_join_date is None:
        return PaymentCategory.RENEWAL
    if payment.payment_date.date() == member_join_date.date():
        return PaymentCategory.NEW_MEMBER
    return PaymentCategory.RENEWAL
