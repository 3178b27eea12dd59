"""Tests for event endpoints."""

import re

import pytest
from httpx import AsyncClient

from eventpix.core import cache_keys

EVENTS = "/api/v1/events"


async def create_event(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"name": "Summer Wedding", "date": "2026-07-04T15:00:00"}
    payload.update(overrides)
    response = await client.post(f"{EVENTS}/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_event_issues_codes(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)

    assert re.fullmatch(r"[A-Z0-9]{6}", event["access_code"])
    assert re.fullmatch(r"[A-Z0-9]{8}", event["event_code"])


@pytest.mark.asyncio
async def test_create_event_requires_login(client: AsyncClient):
    response = await client.post(f"{EVENTS}/", json={"name": "x", "date": "2026-07-04T15:00:00"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_creator_becomes_host_member(client: AsyncClient, host, host_headers):
    event = await create_event(client, host_headers)

    response = await client.get(f"{EVENTS}/{event['id']}/members", headers=host_headers)

    assert response.status_code == 200
    members = response.json()
    assert [(m["user_id"], m["role"]) for m in members] == [(str(host.id), "host")]


@pytest.mark.asyncio
async def test_event_list_is_invalidated_on_create(client: AsyncClient, host, host_headers, store):
    assert (await client.get(f"{EVENTS}/", headers=host_headers)).json() == []
    assert await store.get(cache_keys.user_events_key(host.id)) is not None

    await create_event(client, host_headers, name="First")
    await create_event(client, host_headers, name="Second")

    listed = (await client.get(f"{EVENTS}/", headers=host_headers)).json()
    assert sorted(e["name"] for e in listed) == ["First", "Second"]
    assert all("access_code" not in e for e in listed)


@pytest.mark.asyncio
async def test_private_event_needs_code(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)
    url = f"{EVENTS}/{event['id']}"

    assert (await client.get(url)).status_code == 403
    assert (await client.get(url, headers={"X-Access-Code": "WRONG1"})).status_code == 403

    response = await client.get(url, headers={"X-Access-Code": event["access_code"].lower()})
    assert response.status_code == 200
    data = response.json()
    assert data["current_user_role"] == "guest_with_code"
    assert data["can_manage"] is False
    assert data["access_code"] is None

    response = await client.get(url, params={"code": f" {event['access_code']} "})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_owner_reads_event_with_code(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)

    response = await client.get(f"{EVENTS}/{event['id']}", headers=host_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["current_user_role"] == "owner"
    assert data["can_manage"] is True
    assert data["access_code"] == event["access_code"]


@pytest.mark.asyncio
async def test_public_event_open_to_anonymous(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers, is_public=True)

    response = await client.get(f"{EVENTS}/{event['id']}")

    assert response.status_code == 200
    assert response.json()["current_user_role"] == "anonymous"


@pytest.mark.asyncio
async def test_unknown_event_is_404(client: AsyncClient, host_headers):
    response = await client.get(f"{EVENTS}/00000000-0000-0000-0000-000000000000", headers=host_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_resolve_by_code(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)

    response = await client.get(f"{EVENTS}/by-code/{event['access_code'].lower()}")
    assert response.status_code == 200
    assert response.json()["id"] == event["id"]
    assert "access_code" not in response.json()

    assert (await client.get(f"{EVENTS}/by-code/NOPE00")).status_code == 404


@pytest.mark.asyncio
async def test_verify_code(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers, name="Gala")

    response = await client.post(f"{EVENTS}/verify-code", json={"code": f" {event['access_code'].lower()}"})
    assert response.status_code == 200
    assert response.json() == {
        "event_id": event["id"],
        "event_code": event["event_code"],
        "name": "Gala",
    }

    response = await client.post(f"{EVENTS}/verify-code", json={"code": "   "})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_invalidates_cached_event(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers, name="Before")
    url = f"{EVENTS}/{event['id']}"
    assert (await client.get(url, headers=host_headers)).json()["event"]["name"] == "Before"

    response = await client.patch(url, json={"name": "After", "require_approval": True}, headers=host_headers)
    assert response.status_code == 200

    data = (await client.get(url, headers=host_headers)).json()
    assert data["event"]["name"] == "After"
    assert data["event"]["require_approval"] is True
    listed = (await client.get(f"{EVENTS}/", headers=host_headers)).json()
    assert listed[0]["name"] == "After"


@pytest.mark.asyncio
async def test_update_is_owner_only(client: AsyncClient, host_headers, make_user, headers_for):
    event = await create_event(client, host_headers)
    other = await make_user("other@example.com")

    response = await client.patch(f"{EVENTS}/{event['id']}", json={"name": "Hijack"}, headers=headers_for(other))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_regenerate_code_retires_old_code(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)
    old_code = event["access_code"]
    assert (await client.get(f"{EVENTS}/by-code/{old_code}")).status_code == 200

    response = await client.post(f"{EVENTS}/{event['id']}/regenerate-code", headers=host_headers)
    assert response.status_code == 200
    new_code = response.json()["access_code"]
    assert new_code != old_code

    assert (await client.get(f"{EVENTS}/by-code/{old_code}")).status_code == 404
    assert (await client.get(f"{EVENTS}/by-code/{new_code}")).status_code == 200
    assert (await client.get(f"{EVENTS}/{event['id']}", headers={"X-Access-Code": old_code})).status_code == 403


@pytest.mark.asyncio
async def test_delete_event_purges_objects(client: AsyncClient, host_headers, storage):
    event = await create_event(client, host_headers)
    prefix = f"events/{event['id']}/photos/"
    storage.objects.update({f"{prefix}a.jpg", f"{prefix}thumbs/sm-a.jpg", "events/other/photos/b.jpg"})

    response = await client.delete(f"{EVENTS}/{event['id']}", headers=host_headers)

    assert response.status_code == 204
    assert storage.objects == {"events/other/photos/b.jpg"}
    assert (await client.get(f"{EVENTS}/{event['id']}", headers=host_headers)).status_code == 404
    assert (await client.get(f"{EVENTS}/", headers=host_headers)).json() == []


@pytest.mark.asyncio
async def test_stats_start_empty(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)

    response = await client.get(f"{EVENTS}/{event['id']}/stats", headers=host_headers)

    assert response.status_code == 200
    assert response.json() == {
        "total_photos": 0,
        "approved_photos": 0,
        "pending_approvals": 0,
        "last_upload_at": None,
    }


@pytest.mark.asyncio
async def test_member_management(client: AsyncClient, host, host_headers, make_user, headers_for):
    event = await create_event(client, host_headers)
    organizer = await make_user("organizer@example.com")
    members_url = f"{EVENTS}/{event['id']}/members"

    assert (await client.get(members_url, headers=headers_for(organizer))).status_code == 403

    response = await client.post(
        members_url, json={"email": "ORGANIZER@example.com", "role": "organizer"}, headers=host_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "organizer"

    # Organizers manage members too, and now see the event in their list
    assert (await client.get(members_url, headers=headers_for(organizer))).status_code == 200
    listed = (await client.get(f"{EVENTS}/", headers=headers_for(organizer))).json()
    assert [e["id"] for e in listed] == [event["id"]]

    response = await client.delete(f"{members_url}/{organizer.id}", headers=host_headers)
    assert response.status_code == 204
    assert (await client.get(members_url, headers=headers_for(organizer))).status_code == 403


@pytest.mark.asyncio
async def test_creator_cannot_be_demoted_or_removed(client: AsyncClient, host, host_headers):
    event = await create_event(client, host_headers)
    members_url = f"{EVENTS}/{event['id']}/members"

    response = await client.post(members_url, json={"email": host.email, "role": "customer"}, headers=host_headers)
    assert response.status_code == 400

    response = await client.delete(f"{members_url}/{host.id}", headers=host_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_add_unknown_member(client: AsyncClient, host_headers):
    event = await create_event(client, host_headers)

    response = await client.post(
        f"{EVENTS}/{event['id']}/members",
        json={"email": "nobody@example.com", "role": "customer"},
        headers=host_headers,
    )

    assert response.status_code == 404


async def upload_as_guest(client: AsyncClient, event: dict, access_code: str, *names: str) -> None:
    response = await client.post(
        "/api/v1/photos/guest/finalize",
        json={
            "event_id": event["id"],
            "guest_name": "Guest",
            "items": [
                {
                    "key": f"events/{event['id']}/photos/{name}",
                    "original_filename": name,
                    "mime_type": "image/jpeg",
                    "file_size": 100,
                }
                for name in names
            ],
        },
        headers={"X-Access-Code": access_code},
    )
    assert response.status_code == 200, response.text


@pytest.mark.asyncio
async def test_dashboard_stats_cover_all_my_events(client: AsyncClient, host_headers):
    open_event = await create_event(client, host_headers, name="Open")
    moderated = await create_event(client, host_headers, name="Moderated", require_approval=True)
    await upload_as_guest(client, open_event, open_event["access_code"], "a.jpg", "b.jpg")
    await upload_as_guest(client, moderated, moderated["access_code"], "c.jpg")

    response = await client.post(f"{EVENTS}/stats", json={}, headers=host_headers)

    assert response.status_code == 200
    data = response.json()
    assert set(data["stats_by_id"]) == {open_event["id"], moderated["id"]}
    assert data["stats_by_id"][moderated["id"]]["pending_approvals"] == 1
    aggregate = data["aggregate"]
    assert (aggregate["total_photos"], aggregate["approved_photos"], aggregate["pending_approvals"]) == (3, 2, 1)
    assert aggregate["last_upload_at"].endswith("Z")


@pytest.mark.asyncio
async def test_dashboard_stats_skip_events_of_others(
    client: AsyncClient, host_headers, make_user, headers_for
):
    mine = await create_event(client, host_headers, name="Mine")
    stranger = await make_user("stranger@example.com")
    theirs = await create_event(client, headers_for(stranger), name="Theirs")
    await upload_as_guest(client, theirs, theirs["access_code"], "a.jpg")

    response = await client.post(
        f"{EVENTS}/stats",
        json={"event_ids": [theirs["id"], mine["id"], mine["id"]]},
        headers=host_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert list(data["stats_by_id"]) == [mine["id"]]
    assert data["aggregate"]["total_photos"] == 0
    assert data["aggregate"]["last_upload_at"] is None


@pytest.mark.asyncio
async def test_dashboard_stats_require_login(client: AsyncClient):
    assert (await client.post(f"{EVENTS}/stats", json={})).status_code == 401
