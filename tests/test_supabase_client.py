"""
tests/test_supabase_client.py
=============================

The REST client against a mocked PostgREST endpoint.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from gymhub.db.models import MemberStatus, TransactionKind
from gymhub.db.supabase import ConcurrentUpdateError, NotFoundError, SupabaseClient, SupabaseError

UTC = timezone.utc


def member_row(**fields):
    row = {
        "id": "m1",
        "name": "Rita",
        "email": "rita@example.com",
        "phone": None,
        "package": "Silver",
        "status": "Active",
        "join_date": "2025-01-01T00:00:00+00:00",
        "subscription_start_date": "2025-01-01T00:00:00+00:00",
        "subscription_end_date": "2025-02-01T00:00:00+00:00",
        "payment_method": "Cash",
        "amount": "2000",
    }
    row.update(fields)
    return row


class Recorder:
    """Mock PostgREST handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


@pytest.fixture
def make_client(settings):
    def _make(*responses: httpx.Response):
        recorder = Recorder(*responses)
        client = SupabaseClient(settings, transport=httpx.MockTransport(recorder))
        return client, recorder

    return _make


@pytest.mark.asyncio
async def test_requests_carry_service_key(make_client):
    client, recorder = make_client(httpx.Response(200, json=[]))

    assert await client.get_member("m1") is None

    (request,) = recorder.requests
    assert request.url.path == "/rest/v1/members"
    assert request.url.params["id"] == "eq.m1"
    assert request.url.params["limit"] == "1"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    await client.close()


@pytest.mark.asyncio
async def test_insert_payment_serializes_values(make_client):
    paid_at = datetime(2025, 1, 15, 10, tzinfo=UTC)
    client, recorder = make_client(
        httpx.Response(
            201,
            json=[
                {
                    "id": "p1",
                    "member_id": "m1",
                    "package": "Gold",
                    "amount": "5000",
                    "discount": "0",
                    "payment_method": "Cash",
                    "payment_date": paid_at.isoformat(),
                    "transaction_kind": "renewal",
                }
            ],
        )
    )

    payment = await client.insert_payment(
        member_id="m1",
        package="Gold",
        amount=Decimal("5000"),
        discount=Decimal("0"),
        payment_method="Cash",
        notes=None,
        added_by="admin@gymhub.test",
        payment_date=paid_at,
        transaction_kind=TransactionKind.RENEWAL,
    )

    (request,) = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/payment_history"
    assert request.headers["Prefer"] == "return=representation"
    body = json.loads(request.content)
    assert body["amount"] == "5000"
    assert body["payment_date"] == "2025-01-15T10:00:00+00:00"
    assert body["transaction_kind"] == "renewal"
    assert payment.transaction_kind is TransactionKind.RENEWAL
    await client.close()


@pytest.mark.asyncio
async def test_renewal_write_is_conditional_on_previous_end(make_client):
    client, recorder = make_client(
        httpx.Response(200, json=[member_row(package="Gold", subscription_end_date="2025-04-10T00:00:00+00:00")])
    )

    member = await client.update_member_subscription(
        "m1",
        package="Gold",
        status=MemberStatus.ACTIVE,
        start=datetime(2025, 1, 10, tzinfo=UTC),
        end=datetime(2025, 4, 10, tzinfo=UTC),
        expected_end_date=datetime(2025, 1, 10, tzinfo=UTC),
    )

    (request,) = recorder.requests
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.m1"
    assert request.url.params["subscription_end_date"].startswith("eq.2025-01-10T00:00:00")
    assert json.loads(request.content)["status"] == "Active"
    assert member.subscription_end_date == datetime(2025, 4, 10, tzinfo=UTC)
    await client.close()


@pytest.mark.asyncio
async def test_renewal_of_member_without_end_date_matches_null(make_client):
    client, recorder = make_client(httpx.Response(200, json=[member_row()]))

    await client.update_member_subscription(
        "m1",
        package="Silver",
        status=MemberStatus.ACTIVE,
        start=datetime(2025, 1, 1, tzinfo=UTC),
        end=datetime(2025, 2, 1, tzinfo=UTC),
        expected_end_date=None,
    )

    assert recorder.requests[0].url.params["subscription_end_date"] == "is.null"
    await client.close()


@pytest.mark.asyncio
async def test_lost_race_raises_concurrent_update(make_client):
    client, _ = make_client(
        httpx.Response(200, json=[]),
        httpx.Response(200, json=[member_row()]),
    )

    with pytest.raises(ConcurrentUpdateError):
        await client.update_member_subscription(
            "m1",
            package="Silver",
            status=MemberStatus.ACTIVE,
            start=datetime(2025, 1, 1, tzinfo=UTC),
            end=datetime(2025, 2, 1, tzinfo=UTC),
            expected_end_date=datetime(2024, 12, 1, tzinfo=UTC),
        )
    await client.close()


@pytest.mark.asyncio
async def test_renewing_missing_member_raises_not_found(make_client):
    client, _ = make_client(httpx.Response(200, json=[]), httpx.Response(200, json=[]))

    with pytest.raises(NotFoundError):
        await client.update_member_subscription(
            "gone",
            package="Silver",
            status=MemberStatus.ACTIVE,
            start=datetime(2025, 1, 1, tzinfo=UTC),
            end=datetime(2025, 2, 1, tzinfo=UTC),
            expected_end_date=None,
        )
    await client.close()


@pytest.mark.asyncio
async def test_mark_expired_is_guarded_by_status(make_client):
    client, recorder = make_client(httpx.Response(200, json=[member_row(id="m2", status="Expired")]))

    expired = await client.mark_members_expired(["m1", "m2"])

    (request,) = recorder.requests
    assert request.url.params["id"] == "in.(m1,m2)"
    assert request.url.params["status"] == "eq.Active"
    assert json.loads(request.content) == {"status": "Expired"}
    assert [m.id for m in expired] == ["m2"]
    await client.close()


@pytest.mark.asyncio
async def test_mark_expired_with_no_ids_makes_no_request(make_client):
    client, recorder = make_client()

    assert await client.mark_members_expired([]) == []
    assert recorder.requests == []
    await client.close()


@pytest.mark.asyncio
async def test_payments_between_sends_both_bounds(make_client):
    client, recorder = make_client(httpx.Response(200, json=[]))

    await client.list_payments_between(
        datetime(2025, 2, 1, tzinfo=UTC),
        datetime(2025, 2, 20, tzinfo=UTC),
    )

    bounds = recorder.requests[0].url.params.get_list("payment_date")
    assert len(bounds) == 2
    assert bounds[0].startswith("gte.2025-02-01")
    assert bounds[1].startswith("lte.2025-02-20")
    await client.close()


@pytest.mark.asyncio
async def test_http_error_becomes_supabase_error(make_client):
    client, _ = make_client(httpx.Response(500, text="boom"))

    with pytest.raises(SupabaseError) as excinfo:
        await client.list_members()

    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "boom"
    await client.close()


@pytest.mark.asyncio
async def test_activity_logs_can_be_filtered_by_member(make_client):
    client, recorder = make_client(httpx.Response(200, json=[]))

    await client.list_activity_logs(member_id="m1")

    params = recorder.requests[0].url.params
    assert params["member_id"] == "eq.m1"
    assert params["order"] == "created_at.desc"
    await client.close()


@pytest.mark.asyncio
async def test_edge_function_is_posted_to_functions_endpoint(make_client):
    client, recorder = make_client(httpx.Response(200, json={"success": True}))

    result = await client.invoke_function("send-reminder-email", {"email": "rita@example.com", "daysLeft": 3})

    (request,) = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/functions/v1/send-reminder-email"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert json.loads(request.content) == {"email": "rita@example.com", "daysLeft": 3}
    assert result == {"success": True}
    await client.close()


@pytest.mark.asyncio
async def test_edge_function_failure_raises(make_client):
    client, _ = make_client(httpx.Response(500, json={"error": "mail provider down"}))

    with pytest.raises(SupabaseError) as excinfo:
        await client.invoke_function("send-welcome-email", {"email": "kim@example.com"})

    assert excinfo.value.status_code == 500
    assert "mail provider down" in excinfo.value.detail
    await client.close()
