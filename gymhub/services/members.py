"""
Member creation, renewal, administrative edits and the expiry sweep.

Each flow asks the lifecycle engine for a plan and then commits it. The
member row is authoritative: if that write fails the error propagates and
nothing else is written. The payment and activity-log rows that follow are
best-effort; failures there are logged and do not undo the member change.
Member emails (welcome, renewal, expiry) follow the same rule when a
mailer is configured.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Optional

from pydantic import BaseModel

from gymhub.core.validation import normalize_email, normalize_phone
from gymhub.db.models import (
    ActionType,
    ActivityLog,
    Member,
    MemberStatus,
    Payment,
    PaymentMethod,
    TransactionKind,
)
from gymhub.db.stores import AuditLog, MemberStore, PaymentLedger
from gymhub.db.supabase import NotFoundError
from gymhub.domain.errors import InvalidFormError
from gymhub.domain.lifecycle import (
    SubscriptionPlan,
    create_subscription,
    days_remaining,
    renew_subscription,
    sweep_expirations,
)
from gymhub.domain.reports import expiring_within
from gymhub.services.auth import AdminSession
from gymhub.services.mailer import MemberMailer

logger = logging.getLogger(__name__)


class MemberForm(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    package: str = "Silver"
    payment_method: str = PaymentMethod.CASH.value
    # Defaults to the package price
    amount: Optional[Decimal] = None
    discount: Decimal = Decimal(0)
    notes: Optional[str] = None


class RenewalForm(BaseModel):
    package: str
    payment_method: str = PaymentMethod.CASH.value
    amount: Optional[Decimal] = None
    discount: Decimal = Decimal(0)
    notes: Optional[str] = None


class MemberUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[MemberStatus] = None
    subscription_end_date: Optional[datetime] = None
    body_weight: Optional[float] = None
    height: Optional[float] = None
    notes: Optional[str] = None


def _check_payment(payment_method: str, amount: Decimal | None, discount: Decimal, errors: list[str]) -> None:
    if payment_method not in {method.value for method in PaymentMethod}:
        errors.append(f"Unknown payment method: {payment_method}")
    if amount is not None and amount < 0:
        errors.append("Amount must not be negative.")
    if discount < 0:
        errors.append("Discount must not be negative.")


class MemberDetail(BaseModel):
    member: Member
    days_remaining: int
    payments: list[Payment]
    activity: list[ActivityLog]


class MembershipService:
    def __init__(
        self,
        members: MemberStore,
        payments: PaymentLedger,
        audit: AuditLog,
        mailer: MemberMailer | None = None,
    ) -> None:
        self._members = members
        self._payments = payments
        self._audit = audit
        self._mailer = mailer

    async def _best_effort(self, what: str, write: Awaitable[Any]) -> None:
        try:
            await write
        except Exception:  # noqa: BLE001
            logger.exception("Failed to %s", what)

    async def _get_member(self, member_id: str) -> Member:
        member = await self._members.get_member(member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        return member

    async def _record_payment(
        self,
        session: AdminSession,
        member: Member,
        plan: SubscriptionPlan,
        form: MemberForm | RenewalForm,
        kind: TransactionKind,
        now: datetime,
    ) -> None:
        await self._best_effort(
            f"record payment for member {member.id}",
            self._payments.insert_payment(
                member_id=member.id,
                package=plan.package.name,
                amount=form.amount if form.amount is not None else plan.package.price,
                discount=form.discount,
                payment_method=form.payment_method,
                notes=form.notes or None,
                added_by=session.email,
                payment_date=now,
                transaction_kind=kind,
            ),
        )

    async def add_member(self, session: AdminSession, form: MemberForm, now: datetime) -> Member:
        session.ensure_active(now)

        errors: list[str] = []
        name = form.name.strip()
        if not name:
            errors.append("Name is required.")
        email = normalize_email(form.email)
        if email is None:
            errors.append("A valid email is required.")
        phone = None
        if form.phone and form.phone.strip():
            phone = normalize_phone(form.phone)
            if phone is None:
                errors.append("Phone number looks invalid.")
        _check_payment(form.payment_method, form.amount, form.discount, errors)
        if errors:
            raise InvalidFormError(errors)

        plan = create_subscription(form.package, now)

        member = await self._members.insert_member(
            name=name,
            email=email,
            phone=phone,
            package=plan.package.name,
            payment_method=form.payment_method,
            amount=form.amount if form.amount is not None else plan.package.price,
            discount=form.discount,
            notes=form.notes or None,
            status=plan.status,
            join_date=now,
            subscription_start_date=plan.start,
            subscription_end_date=plan.end,
            added_by=session.email,
        )
        logger.info("Member %s added with %s package until %s", member.id, plan.package.name, plan.end)

        await self._record_payment(session, member, plan, form, TransactionKind.NEW_MEMBER, now)
        await self._best_effort(
            f"log addition of member {member.id}",
            self._audit.insert_activity_log(
                action_type=ActionType.ADD.value,
                description=f"{session.name} added new member {member.name} with {plan.package.name} package",
                performed_by=session.email,
                member_id=member.id,
            ),
        )
        if self._mailer is not None:
            await self._best_effort(
                f"send welcome email to member {member.id}",
                self._mailer.send_welcome(member, amount=member.amount),
            )
        return member

    async def renew_member(
        self,
        session: AdminSession,
        member_id: str,
        form: RenewalForm,
        now: datetime,
    ) -> Member:
        session.ensure_active(now)

        errors: list[str] = []
        _check_payment(form.payment_method, form.amount, form.discount, errors)
        if errors:
            raise InvalidFormError(errors)

        member = await self._get_member(member_id)
        plan = renew_subscription(form.package, now, member.subscription_end_date)

        updated = await self._members.update_member_subscription(
            member.id,
            package=plan.package.name,
            status=plan.status,
            start=plan.start,
            end=plan.end,
            expected_end_date=member.subscription_end_date,
        )
        logger.info(
            "Member %s renewed with %s package: %s -> %s",
            member.id,
            plan.package.name,
            plan.start,
            plan.end,
        )

        await self._record_payment(session, updated, plan, form, TransactionKind.RENEWAL, now)
        await self._best_effort(
            f"log renewal of member {member.id}",
            self._audit.insert_activity_log(
                action_type=ActionType.RENEWAL.value,
                description=f"{session.name} renewed {member.name}'s membership with {plan.package.name} package",
                performed_by=session.email,
                member_id=member.id,
            ),
        )
        if self._mailer is not None:
            await self._best_effort(
                f"send renewal email to member {member.id}",
                self._mailer.send_renewal(
                    updated,
                    amount=form.amount if form.amount is not None else plan.package.price,
                    discount=form.discount,
                ),
            )
        return updated

    async def update_member(
        self,
        session: AdminSession,
        member_id: str,
        changes: MemberUpdate,
        now: datetime,
    ) -> Member:
        """
        Administrative override of member details, status or end date.
        """

        session.ensure_active(now)

        payload = changes.model_dump(exclude_unset=True)
        if not payload:
            raise InvalidFormError(["Nothing to update."])

        member = await self._get_member(member_id)

        errors: list[str] = []
        if "name" in payload:
            payload["name"] = (payload["name"] or "").strip()
            if not payload["name"]:
                errors.append("Name is required.")
        if "email" in payload:
            payload["email"] = normalize_email(payload["email"] or "")
            if payload["email"] is None:
                errors.append("A valid email is required.")
        if payload.get("phone"):
            payload["phone"] = normalize_phone(payload["phone"])
            if payload["phone"] is None:
                errors.append("Phone number looks invalid.")
        end = payload.get("subscription_end_date")
        start = member.subscription_start_date
        if end is not None and start is not None and end < start:
            errors.append("End date must not be before the start date.")
        if errors:
            raise InvalidFormError(errors)

        updated = await self._members.update_member(member.id, payload)
        await self._best_effort(
            f"log edit of member {member.id}",
            self._audit.insert_activity_log(
                action_type=ActionType.EDIT.value,
                description=f"{session.name} updated {member.name}'s details",
                performed_by=session.email,
                member_id=member.id,
            ),
        )
        return updated

    async def delete_member(self, session: AdminSession, member_id: str, now: datetime) -> None:
        """
        Delete a member together with their payment history.
        """

        session.ensure_active(now)
        member = await self._get_member(member_id)

        # Payment rows reference the member, so they go first
        await self._payments.delete_payments_for_member(member.id)
        await self._members.delete_member(member.id)
        logger.info("Member %s deleted by %s", member.id, session.email)

        await self._best_effort(
            f"log deletion of member {member.id}",
            self._audit.insert_activity_log(
                action_type=ActionType.DELETE.value,
                description=f"{session.name} deleted member {member.name}",
                performed_by=session.email,
                member_id=None,
            ),
        )

    async def expire_overdue(self, now: datetime) -> list[Member]:
        """
        Flip Active members whose subscription ended before `now` to Expired.

        Returns the members actually flipped; one status_change entry is
        written per member. Runs without a session: it is a system action.
        """

        candidates = await self._members.list_active_members_ending_before(now)
        overdue = sweep_expirations(candidates, now)
        if not overdue:
            logger.debug("Expiry sweep at %s: nothing to expire", now)
            return []

        expired = await self._members.mark_members_expired(overdue)
        for member in expired:
            await self._best_effort(
                f"log expiry of member {member.id}",
                self._audit.insert_activity_log(
                    action_type=ActionType.STATUS_CHANGE.value,
                    description="Membership expired automatically",
                    performed_by=None,
                    member_id=member.id,
                ),
            )
            if self._mailer is not None:
                await self._best_effort(
                    f"send expiry email to member {member.id}",
                    self._mailer.send_reminder(member, 0),
                )

        logger.info("Updated %d members to Expired status", len(expired))
        return expired

    async def expiring_soon(self, now: datetime, days: int = 7, limit: int | None = 5) -> list[Member]:
        members = await self._members.list_members()
        return expiring_within(members, now, days=days, limit=limit)

    async def remind_expiring(self, now: datetime, days: int = 7) -> list[Member]:
        """
        Email every Active member whose subscription ends within `days`.

        Returns the members reminded. Without a mailer nothing is sent but
        the list is still returned for the admin digest.
        """

        expiring = await self.expiring_soon(now, days=days, limit=None)
        if self._mailer is None:
            return expiring

        for member in expiring:
            await self._best_effort(
                f"send reminder email to member {member.id}",
                self._mailer.send_reminder(member, days_remaining(member.subscription_end_date, now)),
            )
        return expiring

    async def member_detail(self, session: AdminSession, member_id: str, now: datetime) -> MemberDetail:
        """
        One member with days left, payment history and activity, newest first.
        """

        session.ensure_active(now)
        member = await self._get_member(member_id)
        payments = await self._payments.list_payments(member_id=member.id)
        activity = await self._audit.list_activity_logs(member_id=member.id)
        return MemberDetail(
            member=member,
            days_remaining=days_remaining(member.subscription_end_date, now),
            payments=payments,
            activity=activity,
        )
