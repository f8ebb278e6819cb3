"""
Storage contracts the services depend on.

`SupabaseClient` implements all of them; tests use in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from gymhub.db.models import (
    ActivityLog,
    AdminUser,
    ContactSubmission,
    Member,
    MemberStatus,
    Payment,
    TransactionKind,
)


class MemberStore(Protocol):
    async def get_member(self, member_id: str) -> Member | None: ...

    async def list_members(self) -> list[Member]: ...

    async def insert_member(
        self,
        *,
        name: str,
        email: str,
        phone: str | None,
        package: str,
        payment_method: str,
        amount: Decimal,
        discount: Decimal,
        notes: str | None,
        status: MemberStatus,
        join_date: datetime,
        subscription_start_date: datetime,
        subscription_end_date: datetime,
        added_by: str | None,
    ) -> Member: ...

    async def update_member_subscription(
        self,
        member_id: str,
        *,
        package: str,
        status: MemberStatus,
        start: datetime,
        end: datetime,
        expected_end_date: datetime | None,
    ) -> Member: ...

    async def list_active_members_ending_before(self, moment: datetime) -> list[Member]: ...

    async def mark_members_expired(self, member_ids: list[str]) -> list[Member]: ...

    async def update_member(self, member_id: str, changes: dict[str, Any]) -> Member: ...

    async def delete_member(self, member_id: str) -> None: ...


class PaymentLedger(Protocol):
    async def insert_payment(
        self,
        *,
        member_id: str,
        package: str,
        amount: Decimal,
        discount: Decimal,
        payment_method: str,
        notes: str | None,
        added_by: str | None,
        payment_date: datetime,
        transaction_kind: TransactionKind,
    ) -> Payment: ...

    async def list_payments(self, member_id: str | None = None) -> list[Payment]: ...

    async def list_payments_between(self, start: datetime, end: datetime) -> list[Payment]: ...

    async def delete_payments_for_member(self, member_id: str) -> None: ...


class AuditLog(Protocol):
    async def insert_activity_log(
        self,
        *,
        action_type: str,
        description: str,
        performed_by: str | None,
        member_id: str | None,
    ) -> ActivityLog: ...

    async def list_activity_logs(self, member_id: str | None = None) -> list[ActivityLog]: ...

    async def reassign_activity_logs(self, old_email: str, new_email: str) -> None: ...


class ContactStore(Protocol):
    async def insert_contact(
        self,
        *,
        name: str,
        email: str,
        phone: str | None,
        message: str,
    ) -> ContactSubmission: ...

    async def get_contact(self, contact_id: str) -> ContactSubmission | None: ...

    async def list_contacts(self) -> list[ContactSubmission]: ...

    async def set_contact_contacted(self, contact_id: str, contacted: bool) -> ContactSubmission: ...

    async def delete_contact(self, contact_id: str) -> None: ...


class AdminStore(Protocol):
    async def get_admin_by_email(self, email: str) -> AdminUser | None: ...

    async def update_admin(self, admin_id: str, changes: dict[str, Any]) -> AdminUser: ...


class FunctionInvoker(Protocol):
    async def invoke_function(self, name: str, payload: dict[str, Any]) -> dict[str, Any]: ...
