from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

from gymhub.core import Settings, get_settings
from gymhub.db.models import (
    ActivityLog,
    AdminUser,
    ContactSubmission,
    Member,
    MemberStatus,
    Payment,
    TransactionKind,
)


class SupabaseError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NotFoundError(SupabaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class ConcurrentUpdateError(SupabaseError):
    """Row changed between read and compare-and-set write."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)  # Decimal to string for JSON
    if isinstance(value, (MemberStatus, TransactionKind)):
        return value.value
    return value


class SupabaseClient:
    """
    Async Supabase client for the gym back office.

    Expected tables: `members`, `payment_history`, `activity_logs`,
    `contacts`, `admin_users`. Member emails go through the Edge Functions
    `send-welcome-email`, `send-renewal-email` and `send-reminder-email`.
    Service role key is used, so RLS is bypassed; access is restricted in
    the services.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        base_url = str(self._settings.supabase_url).rstrip("/")
        headers = {
            "apikey": self._settings.supabase_service_key,
            "Authorization": f"Bearer {self._settings.supabase_service_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._rest = httpx.AsyncClient(
            base_url=f"{base_url}/rest/v1",
            headers=headers,
            timeout=10.0,
            transport=transport,
        )
        # Edge Functions can be slow to cold-start
        self._functions = httpx.AsyncClient(
            base_url=f"{base_url}/functions/v1",
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._rest.aclose()
        await self._functions.aclose()

    # ------------------------------------------------------------------
    # REST helpers
    # ------------------------------------------------------------------

    async def _select(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        response = await self._rest.get(f"/{table}", params={"select": "*", **params})
        if response.status_code >= 400:
            raise SupabaseError(
                f"Supabase REST GET failed for '{table}'",
                status_code=response.status_code,
                detail=response.text,
            )
        return response.json()

    async def _get_single_row(
        self,
        table: str,
        params: dict[str, Any],
    ) -> dict[str, Any] | None:
        items = await self._select(table, {**params, "limit": 1})
        if not items:
            return None
        return items[0]

    async def _insert_row(
        self,
        table: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        response = await self._rest.post(
            f"/{table}",
            json={key: _jsonable(value) for key, value in payload.items()},
            headers={"Prefer": "return=representation"},
        )
        if response.status_code >= 400:
            raise SupabaseError(
                f"Supabase REST INSERT failed for '{table}'",
                status_code=response.status_code,
                detail=response.text,
            )
        items: list[dict[str, Any]] = response.json()
        if not items:
            raise SupabaseError(f"Empty insert response for table '{table}'")
        return items[0]

    async def _update_rows(
        self,
        table: str,
        params: dict[str, Any],
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        response = await self._rest.patch(
            f"/{table}",
            params=params,
            json={key: _jsonable(value) for key, value in payload.items()},
            headers={"Prefer": "return=representation"},
        )
        if response.status_code >= 400:
            raise SupabaseError(
                f"Supabase REST UPDATE failed for '{table}'",
                status_code=response.status_code,
                detail=response.text,
            )
        return response.json()

    async def _delete_rows(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        response = await self._rest.delete(
            f"/{table}",
            params=params,
            headers={"Prefer": "return=representation"},
        )
        if response.status_code >= 400:
            raise SupabaseError(
                f"Supabase REST DELETE failed for '{table}'",
                status_code=response.status_code,
                detail=response.text,
            )
        return response.json()

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def get_member(self, member_id: str) -> Member | None:
        row = await self._get_single_row("members", {"id": f"eq.{member_id}"})
        if row is None:
            return None
        return Member.model_validate(row)

    async def list_members(self) -> list[Member]:
        """
        Return all members, newest first.
        """

        items = await self._select("members", {"order": "join_date.desc"})
        return [Member.model_validate(item) for item in items]

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
    ) -> Member:
        row = await self._insert_row(
            "members",
            {
                "name": name,
                "email": email,
                "phone": phone,
                "package": package,
                "payment_method": payment_method,
                "amount": amount,
                "discount": discount,
                "notes": notes,
                "status": status,
                "join_date": join_date,
                "subscription_start_date": subscription_start_date,
                "subscription_end_date": subscription_end_date,
                "added_by": added_by,
            },
        )
        return Member.model_validate(row)

    async def update_member_subscription(
        self,
        member_id: str,
        *,
        package: str,
        status: MemberStatus,
        start: datetime,
        end: datetime,
        expected_end_date: datetime | None,
    ) -> Member:
        """
        Compare-and-set update of a member's subscription window.

        The PATCH only matches while `subscription_end_date` still equals
        `expected_end_date`, so a renewal racing another renewal of the same
        member fails with ConcurrentUpdateError instead of overwriting it.
        """

        params: dict[str, Any] = {"id": f"eq.{member_id}"}
        if expected_end_date is None:
            params["subscription_end_date"] = "is.null"
        else:
            params["subscription_end_date"] = f"eq.{expected_end_date.isoformat()}"

        items = await self._update_rows(
            "members",
            params,
            {
                "package": package,
                "status": status,
                "subscription_start_date": start,
                "subscription_end_date": end,
            },
        )
        if items:
            return Member.model_validate(items[0])

        if await self.get_member(member_id) is None:
            raise NotFoundError(f"Member {member_id} not found")
        raise ConcurrentUpdateError(f"Member {member_id} subscription changed concurrently")

    async def list_active_members_ending_before(self, moment: datetime) -> list[Member]:
        items = await self._select(
            "members",
            {
                "status": f"eq.{MemberStatus.ACTIVE.value}",
                "subscription_end_date": f"lt.{moment.isoformat()}",
            },
        )
        return [Member.model_validate(item) for item in items]

    async def mark_members_expired(self, member_ids: list[str]) -> list[Member]:
        """
        Flip the given members to Expired.

        Guarded by `status=eq.Active`: only rows that were still Active are
        changed and returned.
        """

        if not member_ids:
            return []
        items = await self._update_rows(
            "members",
            {
                "id": f"in.({','.join(member_ids)})",
                "status": f"eq.{MemberStatus.ACTIVE.value}",
            },
            {"status": MemberStatus.EXPIRED},
        )
        return [Member.model_validate(item) for item in items]

    async def update_member(self, member_id: str, changes: dict[str, Any]) -> Member:
        items = await self._update_rows("members", {"id": f"eq.{member_id}"}, changes)
        if not items:
            raise NotFoundError(f"Member {member_id} not found")
        return Member.model_validate(items[0])

    async def delete_member(self, member_id: str) -> None:
        items = await self._delete_rows("members", {"id": f"eq.{member_id}"})
        if not items:
            raise NotFoundError(f"Member {member_id} not found")

    # ------------------------------------------------------------------
    # Payment history
    # ------------------------------------------------------------------

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
    ) -> Payment:
        row = await self._insert_row(
            "payment_history",
            {
                "member_id": member_id,
                "package": package,
                "amount": amount,
                "discount": discount,
                "payment_method": payment_method,
                "notes": notes,
                "added_by": added_by,
                "payment_date": payment_date,
                "transaction_kind": transaction_kind,
            },
        )
        return Payment.model_validate(row)

    async def list_payments(self, member_id: str | None = None) -> list[Payment]:
        params: dict[str, Any] = {"order": "payment_date.desc"}
        if member_id is not None:
            params["member_id"] = f"eq.{member_id}"
        items = await self._select("payment_history", params)
        return [Payment.model_validate(item) for item in items]

    async def list_payments_between(self, start: datetime, end: datetime) -> list[Payment]:
        # Two filters on one column; httpx sends both when given a list of tuples
        response = await self._rest.get(
            "/payment_history",
            params=[
                ("select", "*"),
                ("payment_date", f"gte.{start.isoformat()}"),
                ("payment_date", f"lte.{end.isoformat()}"),
            ],
        )
        if response.status_code >= 400:
            raise SupabaseError(
                "Supabase REST GET failed for 'payment_history'",
                status_code=response.status_code,
                detail=response.text,
            )
        return [Payment.model_validate(item) for item in response.json()]

    async def delete_payments_for_member(self, member_id: str) -> None:
        await self._delete_rows("payment_history", {"member_id": f"eq.{member_id}"})

    # ------------------------------------------------------------------
    # Activity logs
    # ------------------------------------------------------------------

    async def insert_activity_log(
        self,
        *,
        action_type: str,
        description: str,
        performed_by: str | None,
        member_id: str | None,
    ) -> ActivityLog:
        row = await self._insert_row(
            "activity_logs",
            {
                "action_type": action_type,
                "description": description,
                "performed_by": performed_by,
                "member_id": member_id,
            },
        )
        return ActivityLog.model_validate(row)

    async def list_activity_logs(self, member_id: str | None = None) -> list[ActivityLog]:
        params: dict[str, Any] = {"order": "created_at.desc"}
        if member_id is not None:
            params["member_id"] = f"eq.{member_id}"
        items = await self._select("activity_logs", params)
        return [ActivityLog.model_validate(item) for item in items]

    async def reassign_activity_logs(self, old_email: str, new_email: str) -> None:
        await self._update_rows(
            "activity_logs",
            {"performed_by": f"eq.{old_email}"},
            {"performed_by": new_email},
        )

    # ------------------------------------------------------------------
    # Contact submissions
    # ------------------------------------------------------------------

    async def insert_contact(
        self,
        *,
        name: str,
        email: str,
        phone: str | None,
        message: str,
    ) -> ContactSubmission:
        row = await self._insert_row(
            "contacts",
            {"name": name, "email": email, "phone": phone, "message": message},
        )
        return ContactSubmission.model_validate(row)

    async def get_contact(self, contact_id: str) -> ContactSubmission | None:
        row = await self._get_single_row("contacts", {"id": f"eq.{contact_id}"})
        if row is None:
            return None
        return ContactSubmission.model_validate(row)

    async def list_contacts(self) -> list[ContactSubmission]:
        items = await self._select("contacts", {"order": "created_at.desc"})
        return [ContactSubmission.model_validate(item) for item in items]

    async def set_contact_contacted(self, contact_id: str, contacted: bool) -> ContactSubmission:
        items = await self._update_rows(
            "contacts",
            {"id": f"eq.{contact_id}"},
            {"contacted": contacted},
        )
        if not items:
            raise NotFoundError(f"Contact submission {contact_id} not found")
        return ContactSubmission.model_validate(items[0])

    async def delete_contact(self, contact_id: str) -> None:
        items = await self._delete_rows("contacts", {"id": f"eq.{contact_id}"})
        if not items:
            raise NotFoundError(f"Contact submission {contact_id} not found")

    # ------------------------------------------------------------------
    # Edge Functions
    # ------------------------------------------------------------------

    async def invoke_function(self, name: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._functions.post(
            f"/{name}",
            json={key: _jsonable(value) for key, value in payload.items()},
        )
        if response.status_code >= 400:
            raise SupabaseError(
                f"Supabase Edge Function '{name}' failed",
                status_code=response.status_code,
                detail=response.text,
            )
        if not response.content:
            return {}
        return response.json()

    # ------------------------------------------------------------------
    # Admin users
    # ------------------------------------------------------------------

    async def get_admin_by_email(self, email: str) -> AdminUser | None:
        row = await self._get_single_row("admin_users", {"email": f"eq.{email}"})
        if row is None:
            return None
        return AdminUser.model_validate(row)

    async def update_admin(self, admin_id: str, changes: dict[str, Any]) -> AdminUser:
        items = await self._update_rows("admin_users", {"id": f"eq.{admin_id}"}, changes)
        if not items:
            raise NotFoundError(f"Admin {admin_id} not found")
        return AdminUser.model_validate(items[0])


_supabase_client: SupabaseClient | None = None


def get_supabase_client() -> SupabaseClient:
    """
    Lazy singleton for SupabaseClient.

    The worker closes it on shutdown via `close()`.
    """

    global _supabase_client
    if _supabase_client is None:
        _supabase_client = SupabaseClient()
    return _supabase_client
