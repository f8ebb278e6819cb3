"""
Dashboard and report figures computed from member, payment and activity rows.
"""

from __future__ import annotations

import calendar
import csv
import io
from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field

from gymhub.db.models import ActivityLog, Member, MemberStatus, Payment
from gymhub.domain.lifecycle import PaymentCategory, classify_payment


class ReportPeriod(str, Enum):
    THIS_MONTH = "thismonth"
    LAST_6_MONTHS = "last6months"
    THIS_YEAR = "thisyear"
    LAST_YEAR = "lastyear"


class LogTimeFilter(str, Enum):
    ALL = "all"
    LAST_6_MONTHS = "last6months"
    THIS_YEAR = "thisyear"
    LAST_YEAR = "lastyear"


class CategoryTotal(BaseModel):
    amount: Decimal = Decimal(0)
    count: int = 0


class RevenueBreakdown(BaseModel):
    total: Decimal = Decimal(0)
    new_members: CategoryTotal = Field(default_factory=CategoryTotal)
    renewals: CategoryTotal = Field(default_factory=CategoryTotal)


class RevenuePoint(BaseModel):
    name: str
    revenue: Decimal


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _start_of_year(now: datetime, year: int) -> datetime:
    return now.replace(year=year, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def revenue_breakdown(
    payments: Iterable[Payment],
    join_dates: Mapping[str, datetime],
    now: datetime,
) -> RevenueBreakdown:
    """
    Revenue collected this month so far, split into new members and renewals.
    """

    month_start = _start_of_month(now)
    result = RevenueBreakdown()

    for payment in payments:
        if payment.payment_date is None:
            continue
        if not month_start <= payment.payment_date <= now:
            continue

        join_date = join_dates.get(payment.member_id) if payment.member_id else None
        category = classify_payment(payment, join_date)
        bucket = result.new_members if category is PaymentCategory.NEW_MEMBER else result.renewals
        bucket.amount += payment.amount
        bucket.count += 1
        result.total += payment.amount

    return result


def members_by_package(members: Iterable[Member]) -> dict[str, int]:
    return dict(Counter(member.package for member in members))


def members_by_status(members: Iterable[Member]) -> dict[str, int]:
    return dict(Counter(member.status.value for member in members))


def _sum_payments(payments: list[Payment], predicate) -> Decimal:
    return sum(
        (p.amount for p in payments if p.payment_date is not None and predicate(p.payment_date)),
        Decimal(0),
    )


def revenue_by_period(
    payments: Iterable[Payment],
    period: ReportPeriod,
    now: datetime,
) -> list[RevenuePoint]:
    """
    Revenue series for the reports page.

    `thismonth` buckets every fifth day (1, 6, 11, ... and the last day);
    each bucket covers the five days ending on it. The other periods are
    one point per calendar month.
    """

    rows = list(payments)
    points: list[RevenuePoint] = []

    if period is ReportPeriod.THIS_MONTH:
        year, month = now.year, now.month
        days_in_month = calendar.monthrange(year, month)[1]
        for day in range(1, days_in_month + 1):
            if day % 5 != 1 and day != days_in_month:
                continue
            low = max(day - 5, 0)
            revenue = _sum_payments(
                rows,
                lambda d, day=day, low=low: d.year == year
                and d.month == month
                and low < d.day <= day,
            )
            points.append(RevenuePoint(name=f"Day {day}", revenue=revenue))
        return points

    if period is ReportPeriod.LAST_6_MONTHS:
        months = [now - relativedelta(months=offset) for offset in range(5, -1, -1)]
        with_year = True
    elif period is ReportPeriod.THIS_YEAR:
        months = [now.replace(month=m, day=1) for m in range(1, 13)]
        with_year = False
    else:
        months = [now.replace(year=now.year - 1, month=m, day=1) for m in range(1, 13)]
        with_year = True

    for moment in months:
        label = calendar.month_abbr[moment.month]
        if with_year:
            label = f"{label} '{moment.year % 100:02d}"
        revenue = _sum_payments(
            rows,
            lambda d, y=moment.year, m=moment.month: d.year == y and d.month == m,
        )
        points.append(RevenuePoint(name=label, revenue=revenue))
    return points


def filter_activity_logs(
    logs: Iterable[ActivityLog],
    time_filter: LogTimeFilter,
    action_type: str,
    now: datetime,
) -> list[ActivityLog]:
    result = list(logs)

    if time_filter is LogTimeFilter.LAST_6_MONTHS:
        cutoff = now - relativedelta(months=6)
        result = [log for log in result if log.created_at >= cutoff]
    elif time_filter is LogTimeFilter.THIS_YEAR:
        cutoff = _start_of_year(now, now.year)
        result = [log for log in result if log.created_at >= cutoff]
    elif time_filter is LogTimeFilter.LAST_YEAR:
        start = _start_of_year(now, now.year - 1)
        end = _start_of_year(now, now.year)
        result = [log for log in result if start <= log.created_at < end]

    if action_type != "all":
        result = [log for log in result if log.action_type == action_type]

    return result


def expiring_within(
    members: Iterable[Member],
    now: datetime,
    days: int = 7,
    limit: int | None = 5,
) -> list[Member]:
    """
    Active members whose subscription ends in [now, now + days), soonest first.
    """

    cutoff = now + timedelta(days=days)
    expiring = sorted(
        (
            m
            for m in members
            if m.status == MemberStatus.ACTIVE
            and m.subscription_end_date is not None
            and now <= m.subscription_end_date < cutoff
        ),
        key=lambda m: m.subscription_end_date,
    )
    if limit is not None:
        expiring = expiring[:limit]
    return expiring


def _to_csv(header: list[str], rows: Iterable[list[object]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def activity_logs_to_csv(logs: Iterable[ActivityLog]) -> bytes:
    return _to_csv(
        ["Date", "Action", "Description", "Performed By"],
        (
            [
                log.created_at.isoformat(),
                log.action_type,
                log.description,
                log.performed_by or "System",
            ]
            for log in logs
        ),
    )


def members_to_csv(members: Iterable[Member]) -> bytes:
    return _to_csv(
        ["Name", "Email", "Phone", "Package", "Status", "Join Date", "Expiry Date"],
        (
            [
                m.name,
                m.email,
                m.phone or "",
                m.package,
                m.status.value,
                m.join_date.date().isoformat(),
                m.subscription_end_date.date().isoformat() if m.subscription_end_date else "",
            ]
            for m in members
        ),
    )
