"""Tests for timeline endpoints and calendar export."""

import pytest
from httpx import AsyncClient

TIMELINE = "/api/v1/timeline"


async def add_entry(client: AsyncClient, event, headers, title: str, time: str, **extra) -> dict:
    payload = {"event_id": str(event.id), "title": title, "time": time, **extra}
    response = await client.post(f"{TIMELINE}/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_timeline_is_ordered_and_refreshed(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    url = f"{TIMELINE}/events/{event.id}"
    assert (await client.get(url, headers=host_headers)).json() == []

    await add_entry(client, event, host_headers, "Dinner", "2026-06-01T19:00:00")
    await add_entry(client, event, host_headers, "Ceremony", "2026-06-01T15:00:00")

    entries = (await client.get(url, headers=host_headers)).json()
    assert [e["title"] for e in entries] == ["Ceremony", "Dinner"]


@pytest.mark.asyncio
async def test_only_managers_edit_timeline(
    client: AsyncClient, host, host_headers, make_event, make_user, add_member, headers_for
):
    event = await make_event(host)
    customer = await make_user("customer@example.com")
    organizer = await make_user("organizer@example.com")
    await add_member(event, customer, "customer")
    await add_member(event, organizer, "organizer")
    payload = {"event_id": str(event.id), "title": "Speech", "time": "2026-06-01T20:00:00"}

    assert (await client.post(f"{TIMELINE}/", json=payload)).status_code == 403
    response = await client.post(f"{TIMELINE}/", json=payload, headers=headers_for(customer))
    assert response.status_code == 403
    response = await client.post(
        f"{TIMELINE}/", json=payload, headers={"X-Access-Code": event.access_code}
    )
    assert response.status_code == 403

    response = await client.post(f"{TIMELINE}/", json=payload, headers=headers_for(organizer))
    assert response.status_code == 201

    # Customers still read it
    entries = (await client.get(f"{TIMELINE}/events/{event.id}", headers=headers_for(customer))).json()
    assert [e["title"] for e in entries] == ["Speech"]


@pytest.mark.asyncio
async def test_private_timeline_needs_access(client: AsyncClient, host, make_event):
    event = await make_event(host)
    url = f"{TIMELINE}/events/{event.id}"

    assert (await client.get(url)).status_code == 403
    assert (await client.get(url, params={"code": event.access_code})).status_code == 200


@pytest.mark.asyncio
async def test_update_and_delete_entry(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    entry = await add_entry(client, event, host_headers, "Toast", "2026-06-01T21:00:00")

    response = await client.put(
        f"{TIMELINE}/{entry['id']}", json={"location": "Terrace"}, headers=host_headers
    )
    assert response.status_code == 200
    assert response.json()["location"] == "Terrace"
    assert response.json()["title"] == "Toast"

    response = await client.delete(f"{TIMELINE}/{entry['id']}", headers=host_headers)
    assert response.status_code == 204
    assert (await client.get(f"{TIMELINE}/events/{event.id}", headers=host_headers)).json() == []
    assert (await client.delete(f"{TIMELINE}/{entry['id']}", headers=host_headers)).status_code == 404


@pytest.mark.asyncio
async def test_adjust_entry_by_one_step(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    entry = await add_entry(client, event, host_headers, "Cake", "2026-06-01T22:00:00")
    url = f"{TIMELINE}/{entry['id']}/adjust"

    response = await client.post(url, json={"delta_minutes": 15}, headers=host_headers)
    assert response.status_code == 200
    assert response.json()["time"].startswith("2026-06-01T22:15:00")

    response = await client.post(url, json={"delta_minutes": -15}, headers=host_headers)
    assert response.json()["time"].startswith("2026-06-01T22:00:00")

    response = await client.post(url, json={"delta_minutes": 10}, headers=host_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_adjust_all_shifts_every_entry(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    await add_entry(client, event, host_headers, "Ceremony", "2026-06-01T15:00:00")
    await add_entry(client, event, host_headers, "Dinner", "2026-06-01T19:00:00")
    assert len((await client.get(f"{TIMELINE}/events/{event.id}", headers=host_headers)).json()) == 2

    response = await client.post(
        f"{TIMELINE}/events/{event.id}/adjust-all",
        json={"delta_minutes": -15},
        headers=host_headers,
    )

    assert response.status_code == 200
    times = [e["time"][:16] for e in response.json()]
    assert times == ["2026-06-01T14:45", "2026-06-01T18:45"]
    listed = (await client.get(f"{TIMELINE}/events/{event.id}", headers=host_headers)).json()
    assert [e["time"][:16] for e in listed] == times


@pytest.mark.asyncio
async def test_entry_calendar_export(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host, name="Anna & Ben")
    entry = await add_entry(
        client,
        event,
        host_headers,
        "First dance",
        "2026-06-01T21:30:00",
        location="Hall A, Floor 2",
    )

    response = await client.get(f"{TIMELINE}/{entry['id']}/ics", headers=host_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert 'filename="First_dance.ics"' in response.headers["content-disposition"]
    body = response.text
    assert body.startswith("BEGIN:VCALENDAR\r\n")
    assert f"UID:eventpix-{event.id}-{entry['id']}@eventpix" in body
    assert "DTSTART:20260601T213000Z" in body
    assert "DTEND:20260601T223000Z" in body
    assert "LOCATION:Hall A\\, Floor 2" in body


@pytest.mark.asyncio
async def test_event_calendar_export(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    await add_entry(client, event, host_headers, "Ceremony", "2026-06-01T15:00:00")
    await add_entry(client, event, host_headers, "Dinner", "2026-06-01T19:00:00")

    response = await client.get(f"{TIMELINE}/events/{event.id}/ics", params={"code": event.access_code})

    assert response.status_code == 200
    assert response.text.count("BEGIN:VEVENT") == 2
    assert response.text.index("SUMMARY:Ceremony") < response.text.index("SUMMARY:Dinner")
    assert (await client.get(f"{TIMELINE}/events/{event.id}/ics")).status_code == 403


@pytest.mark.asyncio
async def test_entry_times_are_normalized_to_utc(client: AsyncClient, host, host_headers, make_event):
    event = await make_event(host)
    entry = await add_entry(client, event, host_headers, "Toast", "2026-06-01T21:30:00+02:00")

    assert entry["time"] == "2026-06-01T19:30:00Z"
    listed = (await client.get(f"{TIMELINE}/events/{event.id}", headers=host_headers)).json()
    assert listed[0]["time"] == "2026-06-01T19:30:00Z"

    response = await client.get(f"{TIMELINE}/{entry['id']}/ics", headers=host_headers)
    assert "DTSTART:20260601T193000Z" in response.text
