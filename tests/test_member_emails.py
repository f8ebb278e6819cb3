"""
tests/test_member_emails.py
===========================

Welcome, renewal and expiry emails sent through the Edge Functions.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fakes import FakeStore
from gymhub.db.models import MemberStatus
from gymhub.services.mailer import (
    REMINDER_FUNCTION,
    RENEWAL_FUNCTION,
    WELCOME_FUNCTION,
    MemberMailer,
)
from gymhub.services.members import MemberForm, MembershipService, RenewalForm

UTC = timezone.utc


def at(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=UTC)


@pytest.fixture
def service(store: FakeStore) -> MembershipService:
    return MembershipService(store, store, store, MemberMailer(store))


@pytest.mark.asyncio
async def test_new_member_gets_welcome_email(service, store, fresh_session):
    now = at(2025, 1, 15, 10)
    await service.add_member(
        fresh_session(now),
        MemberForm(name="Sam Rai", email="sam@example.com", package="Gold"),
        now,
    )

    ((name, payload),) = store.function_calls
    assert name == WELCOME_FUNCTION
    assert payload == {
        "email": "sam@example.com",
        "name": "Sam Rai",
        "package": "Gold",
        "amount": 5000.0,
        "endDate": "2025-04-15T10:00:00+00:00",
    }


@pytest.mark.asyncio
async def test_renewal_email_carries_new_window(service, store, fresh_session):
    member = store.add_member(name="Rita", email="rita@example.com", subscription_end_date=at(2025, 1, 10))
    now = at(2025, 1, 5)

    await service.renew_member(
        fresh_session(now),
        member.id,
        RenewalForm(package="Gold", amount=Decimal("4500"), discount=Decimal("500")),
        now,
    )

    ((name, payload),) = store.function_calls
    assert name == RENEWAL_FUNCTION
    assert payload["amount"] == 4500.0
    assert payload["discount"] == 500.0
    assert payload["startDate"] == "2025-01-10T00:00:00+00:00"
    assert payload["endDate"] == "2025-04-10T00:00:00+00:00"


@pytest.mark.asyncio
async def test_sweep_sends_expired_variant(service, store):
    member = store.add_member(subscription_end_date=at(2025, 2, 15))

    await service.expire_overdue(at(2025, 2, 16))

    ((name, payload),) = store.function_calls
    assert name == REMINDER_FUNCTION
    assert payload["daysLeft"] == 0
    assert payload["email"] == member.email

    await service.expire_overdue(at(2025, 2, 16))
    assert len(store.function_calls) == 1


@pytest.mark.asyncio
async def test_reminders_go_to_members_expiring_in_window(service, store):
    now = at(2025, 2, 10)
    soon = store.add_member(name="Soon", subscription_end_date=now + timedelta(days=3))
    store.add_member(name="Later", subscription_end_date=now + timedelta(days=30))
    store.add_member(name="Gone", status=MemberStatus.EXPIRED, subscription_end_date=now + timedelta(days=2))

    reminded = await service.remind_expiring(now, days=7)

    assert reminded == [soon]
    ((name, payload),) = store.function_calls
    assert name == REMINDER_FUNCTION
    assert payload["name"] == "Soon"
    assert payload["daysLeft"] == 3


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_member(service, store, fresh_session):
    store.fail_functions = True
    now = at(2025, 1, 15)

    member = await service.add_member(
        fresh_session(now),
        MemberForm(name="Kim", email="kim@example.com"),
        now,
    )

    assert member.id in store.members
    assert len(store.payments) == 1
    assert len(store.logs) == 1
    assert store.function_calls == []


@pytest.mark.asyncio
async def test_without_mailer_nothing_is_sent(store, fresh_session):
    service = MembershipService(store, store, store)
    now = at(2025, 1, 15)

    await service.add_member(fresh_session(now), MemberForm(name="Kim", email="kim@example.com"), now)
    store.add_member(subscription_end_date=now + timedelta(days=2))
    reminded = await service.remind_expiring(now)

    assert len(reminded) == 1
    assert store.function_calls == []
