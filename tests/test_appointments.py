"""Tests for appointment endpoints."""

from collections.abc import Awaitable, Callable
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.schemas.users import ActingUser

HeadersFactory = Callable[[ActingUser], dict]


def booking_payload(listing: dict, slot_time: str = "10:00", **extra) -> dict:
    return {
        "property_id": str(listing["id"]),
        "appointment_date": "2024-01-15",
        "appointment_time": slot_time,
        **extra,
    }


async def post_booking(client: AsyncClient, headers: dict, listing: dict, **kwargs):
    return await client.post("/api/v1/appointments/", json=booking_payload(listing, **kwargs), headers=headers)


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient, listing: dict, customer_a: ActingUser, auth_headers: HeadersFactory
) -> None:
    """Test booking a free slot."""
    response = await post_booking(client, auth_headers(customer_a), listing, notes="Ground floor please")

    assert response.status_code == 201
    data = response.json()
    assert data["is_queued"] is False
    assert data["queue_position"] is None
    assert data["appointment"]["status"] == "pending"
    assert data["appointment"]["notes"] == "Ground floor please"
    assert data["appointment"]["customer_id"] == str(customer_a.id)
    assert data["appointment"]["appointment_time"] == "10:00:00"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_create_appointment_queues_when_taken(
    client: AsyncClient,
    listing: dict,
    customer_a: ActingUser,
    customer_b: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that a second booking for the same slot is queued."""
    await post_booking(client, auth_headers(customer_a), listing)
    response = await post_booking(client, auth_headers(customer_b), listing)

    assert response.status_code == 201
    data = response.json()
    assert data["is_queued"] is True
    assert data["queue_position"] == 1
    assert data["appointment"]["status"] == "queued"


@pytest.mark.asyncio
async def test_create_appointment_requires_auth(client: AsyncClient, listing: dict) -> None:
    """Test that booking without a token is refused."""
    response = await client.post("/api/v1/appointments/", json=booking_payload(listing))
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_create_appointment_rejects_malformed_time(
    client: AsyncClient, listing: dict, customer_a: ActingUser, auth_headers: HeadersFactory
) -> None:
    """Test that a time with seconds is rejected as an invalid slot."""
    response = await post_booking(client, auth_headers(customer_a), listing, slot_time="10:30:15")

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidSlotKind"


@pytest.mark.asyncio
async def test_create_appointment_duplicate_is_conflict(
    client: AsyncClient, listing: dict, customer_a: ActingUser, auth_headers: HeadersFactory
) -> None:
    headers = auth_headers(customer_a)
    await post_booking(client, headers, listing)
    response = await post_booking(client, headers, listing, slot_time="11:00")

    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateActiveBooking"


@pytest.mark.asyncio
async def test_create_appointment_on_sold_property(
    client: AsyncClient,
    agent: ActingUser,
    customer_a: ActingUser,
    make_property: Callable[..., Awaitable[dict]],
    auth_headers: HeadersFactory,
) -> None:
    """Test booking a property that is no longer on the market."""
    sold = await make_property(agent_id=agent.id, status="sold")
    response = await post_booking(client, auth_headers(customer_a), sold)

    assert response.status_code == 409
    assert response.json()["error"] == "PropertyUnavailable"


@pytest.mark.asyncio
async def test_agent_cannot_book(
    client: AsyncClient, listing: dict, agent: ActingUser, auth_headers: HeadersFactory
) -> None:
    response = await post_booking(client, auth_headers(agent), listing)

    assert response.status_code == 403
    assert response.json()["error"] == "RoleNotPermitted"


@pytest.mark.asyncio
async def test_list_appointments_is_scoped_by_role(
    client: AsyncClient,
    listing: dict,
    admin: ActingUser,
    agent: ActingUser,
    other_agent: ActingUser,
    customer_a: ActingUser,
    customer_b: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that customers see their own, agents their assigned, admins all."""
    await post_booking(client, auth_headers(customer_a), listing)
    await post_booking(client, auth_headers(customer_b), listing)

    mine = (await client.get("/api/v1/appointments/", headers=auth_headers(customer_a))).json()
    assert mine["total"] == 1
    assert mine["items"][0]["customer_id"] == str(customer_a.id)

    assigned = (await client.get("/api/v1/appointments/", headers=auth_headers(agent))).json()
    assert assigned["total"] == 2

    unrelated = (await client.get("/api/v1/appointments/", headers=auth_headers(other_agent))).json()
    assert unrelated["total"] == 0

    everything = (await client.get("/api/v1/appointments/", headers=auth_headers(admin))).json()
    assert everything["total"] == 2

    queued = (
        await client.get(
            "/api/v1/appointments/",
            params={"status": "queued"},
            headers=auth_headers(admin),
        )
    ).json()
    assert queued["total"] == 1
    assert queued["items"][0]["customer_id"] == str(customer_b.id)


@pytest.mark.asyncio
async def test_get_appointment(
    client: AsyncClient,
    listing: dict,
    customer_a: ActingUser,
    customer_b: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test getting a specific appointment."""
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()
    appointment_id = created["appointment"]["id"]

    response = await client.get(f"/api/v1/appointments/{appointment_id}", headers=auth_headers(customer_a))
    assert response.status_code == 200
    assert response.json()["id"] == appointment_id

    response = await client.get(f"/api/v1/appointments/{appointment_id}", headers=auth_headers(customer_b))
    assert response.status_code == 403
    assert response.json()["error"] == "NotOwner"


@pytest.mark.asyncio
async def test_get_nonexistent_appointment(
    client: AsyncClient, admin: ActingUser, auth_headers: HeadersFactory
) -> None:
    """Test getting a non-existent appointment."""
    response = await client.get(f"/api/v1/appointments/{uuid4()}", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_promotes_next_in_queue(
    client: AsyncClient,
    listing: dict,
    agent: ActingUser,
    customer_a: ActingUser,
    customer_b: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that cancelling the holder confirms the head of the queue."""
    first = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]
    second = (await post_booking(client, auth_headers(customer_b), listing)).json()["appointment"]

    response = await client.patch(
        f"/api/v1/appointments/{first['id']}",
        json={"status": "cancelled"},
        headers=auth_headers(customer_a),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["appointment"]["status"] == "cancelled"
    assert data["promoted_appointment_id"] == second["id"]
    assert data["promoted_customer_id"] == str(customer_b.id)

    promoted = (await client.get(f"/api/v1/appointments/{second['id']}", headers=auth_headers(agent))).json()
    assert promoted["status"] == "confirmed"
    assert promoted["queue_position"] is None


@pytest.mark.asyncio
async def test_agent_confirms_assigned_appointment(
    client: AsyncClient,
    listing: dict,
    agent: ActingUser,
    other_agent: ActingUser,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that only the assigned agent can confirm."""
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "confirmed"},
        headers=auth_headers(other_agent),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "RoleNotPermitted"

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "confirmed"},
        headers=auth_headers(agent),
    )
    assert response.status_code == 200
    assert response.json()["appointment"]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_invalid_transition_is_conflict(
    client: AsyncClient,
    listing: dict,
    admin: ActingUser,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]
    await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "cancelled"},
        headers=auth_headers(admin),
    )

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "confirmed"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_closed_appointment_notes_are_read_only_for_customer(
    client: AsyncClient,
    listing: dict,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that a customer cannot edit notes after cancelling."""
    headers = auth_headers(customer_a)
    created = (await post_booking(client, headers, listing)).json()["appointment"]
    await client.patch(f"/api/v1/appointments/{created['id']}", json={"status": "cancelled"}, headers=headers)

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}", json={"notes": "Actually, still interested"}, headers=headers
    )

    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_stranger_requesting_pending_gets_not_owner(
    client: AsyncClient,
    listing: dict,
    customer_a: ActingUser,
    customer_b: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that another customer's appointment is refused before its status is judged."""
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "pending"},
        headers=auth_headers(customer_b),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "NotOwner"


@pytest.mark.asyncio
async def test_update_rejects_status_with_reschedule(
    client: AsyncClient,
    listing: dict,
    admin: ActingUser,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that a patch must ask for exactly one kind of change."""
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"status": "confirmed", "appointment_time": "12:00"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reschedule_via_api(
    client: AsyncClient,
    listing: dict,
    agent: ActingUser,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]

    response = await client.patch(
        f"/api/v1/appointments/{created['id']}",
        json={"appointment_date": "2024-01-16", "appointment_time": "14:00"},
        headers=auth_headers(agent),
    )

    assert response.status_code == 200
    moved = response.json()["appointment"]
    assert moved["appointment_date"] == "2024-01-16"
    assert moved["appointment_time"] == "14:00:00"
    assert moved["status"] == "pending"


@pytest.mark.asyncio
async def test_delete_appointment_admin_only(
    client: AsyncClient,
    listing: dict,
    admin: ActingUser,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test deleting an appointment."""
    created = (await post_booking(client, auth_headers(customer_a), listing)).json()["appointment"]

    response = await client.delete(f"/api/v1/appointments/{created['id']}", headers=auth_headers(customer_a))
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/appointments/{created['id']}", headers=auth_headers(admin))
    assert response.status_code == 204

    response = await client.get(f"/api/v1/appointments/{created['id']}", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_available_slots(
    client: AsyncClient, listing: dict, customer_a: ActingUser, auth_headers: HeadersFactory
) -> None:
    """Test the public grid after one booking."""
    await post_booking(client, auth_headers(customer_a), listing, slot_time="10:00")

    response = await client.get(
        f"/api/v1/appointments/available-slots/{listing['id']}",
        params={"date": "2024-01-15"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["occupied"] == ["10:00:00"]
    assert data["blocked"] == []
    assert "09:00:00" in data["open"]
    assert "10:00:00" not in data["open"]
    assert len(data["open"]) == 8


@pytest.mark.asyncio
async def test_available_slots_bad_date(client: AsyncClient, listing: dict) -> None:
    response = await client.get(
        f"/api/v1/appointments/available-slots/{listing['id']}",
        params={"date": "15/01/2024"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_slot_queue_view(
    client: AsyncClient,
    listing: dict,
    agent: ActingUser,
    customer_a: ActingUser,
    customer_b: ActingUser,
    customer_c: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test the staff view of a slot's holder and queue."""
    await post_booking(client, auth_headers(customer_a), listing)
    await post_booking(client, auth_headers(customer_b), listing)
    await post_booking(client, auth_headers(customer_c), listing)

    params = {"date": "2024-01-15", "time": "10:00"}
    response = await client.get(
        f"/api/v1/appointments/queue/{listing['id']}", params=params, headers=auth_headers(agent)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["holder"]["customer_id"] == str(customer_a.id)
    assert [entry["customer_id"] for entry in data["queue"]] == [str(customer_b.id), str(customer_c.id)]
    assert [entry["queue_position"] for entry in data["queue"]] == [1, 2]

    response = await client.get(
        f"/api/v1/appointments/queue/{listing['id']}", params=params, headers=auth_headers(customer_a)
    )
    assert response.status_code == 403
