from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from gymhub.db.models import ActivityLog, Member, MemberStatus
from gymhub.db.stores import AuditLog, MemberStore, PaymentLedger
from gymhub.domain.reports import (
    LogTimeFilter,
    ReportPeriod,
    RevenueBreakdown,
    RevenuePoint,
    activity_logs_to_csv,
    expiring_within,
    filter_activity_logs,
    members_by_package,
    members_by_status,
    members_to_csv,
    revenue_breakdown,
    revenue_by_period,
)
from gymhub.services.auth import AdminSession


class DashboardSummary(BaseModel):
    total_members: int
    active_members: int
    expired_members: int
    revenue: RevenueBreakdown
    expiring: list[Member]


class MembershipReport(BaseModel):
    period: ReportPeriod
    by_package: dict[str, int]
    by_status: dict[str, int]
    revenue: list[RevenuePoint]


class ReportService:
    def __init__(self, members: MemberStore, payments: PaymentLedger, audit: AuditLog) -> None:
        self._members = members
        self._payments = payments
        self._audit = audit

    async def dashboard(self, session: AdminSession, now: datetime) -> DashboardSummary:
        session.ensure_active(now)

        members = await self._members.list_members()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        payments = await self._payments.list_payments_between(month_start, now)
        join_dates = {member.id: member.join_date for member in members}

        return DashboardSummary(
            total_members=len(members),
            active_members=sum(1 for m in members if m.status == MemberStatus.ACTIVE),
            expired_members=sum(1 for m in members if m.status == MemberStatus.EXPIRED),
            revenue=revenue_breakdown(payments, join_dates, now),
            expiring=expiring_within(members, now),
        )

    async def membership_report(
        self,
        session: AdminSession,
        period: ReportPeriod,
        now: datetime,
    ) -> MembershipReport:
        session.ensure_active(now)

        members = await self._members.list_members()
        payments = await self._payments.list_payments()
        return MembershipReport(
            period=period,
            by_package=members_by_package(members),
            by_status=members_by_status(members),
            revenue=revenue_by_period(payments, period, now),
        )

    async def activity_logs(
        self,
        session: AdminSession,
        now: datetime,
        time_filter: LogTimeFilter = LogTimeFilter.ALL,
        action_type: str = "all",
    ) -> list[ActivityLog]:
        session.ensure_active(now)
        logs = await self._audit.list_activity_logs()
        return filter_activity_logs(logs, time_filter, action_type, now)

    async def export_activity_logs(
        self,
        session: AdminSession,
        now: datetime,
        time_filter: LogTimeFilter = LogTimeFilter.ALL,
        action_type: str = "all",
    ) -> bytes:
        logs = await self.activity_logs(session, now, time_filter, action_type)
        return activity_logs_to_csv(logs)

    async def export_members(self, session: AdminSession, now: datetime) -> bytes:
        session.ensure_active(now)
        return members_to_csv(await self._members.list_members())
