import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from project_tracker_api.app.services.event_service import EventService
from tests.factories import (
    add_event_instance,
    auth_headers,
    make_project,
    make_user,
    parse_timestamp,
)


def event_payload(**overrides):
    """A weekly event that started a week ago, so it always has an upcoming occurrence."""
    start_date = (datetime.now(timezone.utc) - timedelta(days=7)).strftime("%Y-%m-%d")
    payload = {
        "name": "Scrum",
        "category": "Scrum",
        "for": "All",
        "description": "Daily stand-up",
        "duration": 30,
        "repeats": "weekly",
        "repeats_every_n_weeks": 1,
        "repeat_ends_string": "never",
        "time_zone": "UTC",
        "start_date": start_date,
        "start_time": "23:30",
        "next_date": start_date,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def creator_id():
    return make_user(email="creator@example.com", first_name="Cara", last_name="Creator")


@pytest.fixture
def editor_id():
    return make_user(email="editor@example.com", first_name="Ed", last_name="Editor")


def create_event(client, **overrides):
    response = client.post(
        "/events/",
        json=event_payload(**overrides),
        headers=auth_headers("creator@example.com", accept_json=True),
    )
    assert response.status_code == 201, response.text
    return response.json()["event"]


def test_create_event_records_creator(client, creator_id):
    event = create_event(client)

    assert event["creator_id"] == creator_id
    assert event["modifier_id"] is None
    assert event["name"] == "Scrum"
    assert event["for"] == "All"
    assert event["slug"] == "scrum"
    assert event["repeat_ends"] is False
    assert event["repeat_ends_string"] == "never"


def test_create_event_with_same_name_gets_unique_slug(client, creator_id):
    create_event(client)

    assert create_event(client)["slug"] == "scrum-2"


def test_create_biweekly_event_repeats_every_two_weeks(client, creator_id):
    event = create_event(client, repeats="biweekly", repeats_every_n_weeks=7)

    assert event["repeats_every_n_weeks"] == 2


def test_create_event_with_end_date(client, creator_id):
    event = create_event(client, repeat_ends_string="on", repeat_ends_on="2030-06-30")

    assert event["repeat_ends"] is True
    assert event["repeat_ends_on"] == "2030-06-30 UTC"


def test_create_event_stores_start_with_next_occurrence_offset(client, creator_id):
    event = create_event(
        client,
        start_date="2026-01-05",
        start_time="10:00",
        next_date="2026-07-06",
        time_zone="America/New_York",
    )

    assert parse_timestamp(event["start_datetime"]) == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)


def test_create_event_resolves_project_slug(client, creator_id):
    project_id = make_project("WebSiteOne", slug="websiteone")

    event = create_event(client, project_id="websiteone")

    assert event["project_id"] == project_id


def test_create_event_redirects_html_requests(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(),
        headers=auth_headers("creator@example.com"),
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/events/scrum"


def test_create_invalid_event_returns_joined_errors(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(name="", category=None),
        headers=auth_headers("creator@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json() == {"error": "Name can't be blank and Category can't be blank"}


def test_create_invalid_event_renders_form_for_html_requests(client, creator_id):
    make_project("WebSiteOne")

    response = client.post(
        "/events/",
        json=event_payload(name=""),
        headers=auth_headers("creator@example.com"),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["flash"] == {"alert": "Name can't be blank"}
    assert body["event"]["category"] == "Scrum"
    assert [project["title"] for project in body["projects"]] == ["WebSiteOne"]


def test_create_event_with_unknown_project_fails(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(project_id="no-such-project"),
        headers=auth_headers("creator@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Project must exist"


def test_create_event_with_unknown_time_zone_fails(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(time_zone="Nowhere/Special"),
        headers=auth_headers("creator@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Time zone is invalid"


def test_create_event_with_non_numeric_duration_fails(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(duration="thirty"),
        headers=auth_headers("creator@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json() == {"error": "Duration is not a number"}


def test_create_event_with_zero_interval_renders_form(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(repeats_every_n_weeks=0),
        headers=auth_headers("creator@example.com"),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["flash"] == {"alert": "Repeats every n weeks must be greater than 0"}
    assert body["event"]["name"] == "Scrum"


def test_create_event_accepts_numbers_sent_as_strings(client, creator_id):
    event = create_event(client, duration="45", repeats_every_n_weeks="3")

    assert event["duration"] == 45
    assert event["repeats_every_n_weeks"] == 3


def test_create_event_with_malformed_field_returns_joined_errors(client, creator_id):
    response = client.post(
        "/events/",
        json=event_payload(name=["Scrum"], category={"kind": "Scrum"}),
        headers=auth_headers("creator@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json() == {"error": "Name is invalid and Category is invalid"}


def test_failed_create_form_keeps_project_start_and_end_date(client, creator_id):
    website = make_project("WebSiteOne", slug="websiteone")
    payload = event_payload(
        name="",
        project_id="websiteone",
        repeat_ends_string="on",
        repeat_ends_on="2030-06-30",
    )

    response = client.post("/events/", json=payload, headers=auth_headers("creator@example.com"))

    assert response.status_code == 422
    event = response.json()["event"]
    assert event["project_id"] == website
    assert event["repeat_ends"] is True
    assert event["repeat_ends_on"] == "2030-06-30 UTC"
    assert parse_timestamp(event["start_datetime"]) == datetime.strptime(
        f"{payload['start_date']} 23:30", "%Y-%m-%d %H:%M"
    ).replace(tzinfo=timezone.utc)


def test_create_event_requires_authentication(client):
    response = client.post("/events/", json=event_payload())

    assert response.status_code == 401


def test_update_records_modifier_and_keeps_creator(client, creator_id, editor_id):
    event = create_event(client)

    response = client.put(
        f"/events/{event['slug']}",
        json=event_payload(name="Scrum", description="Moved"),
        headers=auth_headers("editor@example.com", accept_json=True),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["notice"] == "Event Updated"
    assert body["event"]["creator_id"] == creator_id
    assert body["event"]["modifier_id"] == editor_id
    assert body["event"]["description"] == "Moved"


def test_update_redirects_html_requests(client, creator_id, editor_id):
    event = create_event(client)

    response = client.patch(
        f"/events/{event['id']}",
        json=event_payload(repeats="biweekly"),
        headers=auth_headers("editor@example.com"),
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == f"/events/{event['slug']}"
    assert client.get(f"/events/{event['slug']}").json()["event"]["repeats_every_n_weeks"] == 2


def test_update_with_invalid_attributes_renders_edit_form(client, creator_id, editor_id):
    event = create_event(client)

    response = client.put(
        f"/events/{event['slug']}",
        json=event_payload(name=""),
        headers=auth_headers("editor@example.com"),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["flash"] == {"alert": "Failed to update event: Name can't be blank"}
    assert body["event"]["name"] == "Scrum"


def test_update_reports_unexpected_errors_generically(client, creator_id, editor_id, monkeypatch):
    event = create_event(client)

    async def failing_update(cls, stored_event, attrs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(EventService, "update", classmethod(failing_update))

    response = client.put(
        f"/events/{event['slug']}",
        json=event_payload(),
        headers=auth_headers("editor@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json() == {"error": "Failed to update event: attributes invalid"}


def test_update_with_negative_duration_reports_failure(client, creator_id, editor_id):
    event = create_event(client)

    response = client.put(
        f"/events/{event['slug']}",
        json=event_payload(duration="-5"),
        headers=auth_headers("editor@example.com", accept_json=True),
    )

    assert response.status_code == 422
    assert response.json() == {
        "error": "Failed to update event: Duration must be greater than or equal to 0"
    }


def test_update_with_malformed_field_renders_edit_form(client, creator_id, editor_id):
    event = create_event(client)

    response = client.patch(
        f"/events/{event['slug']}",
        json=event_payload(name=["Renamed"]),
        headers=auth_headers("editor@example.com"),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["flash"] == {"alert": "Failed to update event: Name is invalid"}
    assert body["event"]["name"] == "Scrum"
    assert body["event"]["id"] == event["id"]


def test_malformed_update_of_unknown_event_is_not_found(client, creator_id):
    response = client.put(
        "/events/missing",
        json=event_payload(name=["Renamed"]),
        headers=auth_headers("creator@example.com"),
    )

    assert response.status_code == 404


def test_update_unknown_event_is_not_found(client, creator_id):
    response = client.put(
        "/events/missing",
        json=event_payload(),
        headers=auth_headers("creator@example.com"),
    )

    assert response.status_code == 404


def test_destroy_redirects_to_index_and_second_destroy_is_not_found(client, creator_id):
    event = create_event(client)
    headers = auth_headers("creator@example.com")

    first = client.delete(f"/events/{event['slug']}", headers=headers, follow_redirects=False)
    second = client.delete(f"/events/{event['slug']}", headers=headers, follow_redirects=False)

    assert first.status_code == 303
    assert first.headers["location"] == "/events/"
    assert second.status_code == 404
    assert client.get(f"/events/{event['slug']}").status_code == 404


def test_destroy_requires_authentication(client, creator_id):
    event = create_event(client)

    assert client.delete(f"/events/{event['slug']}").status_code == 401


def test_show_lists_schedule_recent_hangout_and_recorded_instances(client, creator_id):
    event = create_event(client)
    now = datetime.now(timezone.utc)
    recorded = [
        add_event_instance(event["id"], now - timedelta(hours=hours), yt_video_id=f"video{hours}")
        for hours in range(1, 8)
    ]
    latest = add_event_instance(event["id"], now - timedelta(minutes=30))
    add_event_instance(event["id"], now + timedelta(days=1))

    response = client.get(f"/events/{event['slug']}")

    assert response.status_code == 200
    body = response.json()
    assert body["event"]["id"] == event["id"]
    assert body["schedule"]
    assert body["recent_hangout"]["id"] == latest
    assert [instance["id"] for instance in body["event_instances"]] == recorded[:5]


def test_show_xhr_returns_hangouts_management_only(client, creator_id):
    event = create_event(client)

    response = client.get(f"/events/{event['id']}", headers={"X-Requested-With": "XMLHttpRequest"})

    assert response.status_code == 200
    body = response.json()
    assert body["event"]["slug"] == event["slug"]
    assert "schedule" not in body
    assert body["recent_hangout"] is None
    assert body["event_instances"] == []


def test_show_unknown_event_is_not_found(client):
    assert client.get("/events/nothing-here").status_code == 404


def test_index_lists_upcoming_events(client, creator_id):
    website = make_project("WebSiteOne", slug="websiteone")
    make_project("Archived", slug="archived", status="closed")
    create_event(client, project_id="websiteone")

    response = client.get("/events/")

    assert response.status_code == 200
    body = response.json()
    assert [project["title"] for project in body["projects"]] == ["WebSiteOne"]
    assert body["project"] is None
    assert body["events"]
    assert all(occurrence["event"]["project_id"] == website for occurrence in body["events"])
    times = [parse_timestamp(occurrence["time"]) for occurrence in body["events"]]
    assert times == sorted(times)


def test_index_filters_by_project(client, creator_id):
    website = make_project("WebSiteOne", slug="websiteone")
    make_project("Slack Bot", slug="slack-bot")
    create_event(client, name="Website Scrum", project_id="websiteone")
    create_event(client, name="Bot Pairing", project_id="slack-bot")

    body = client.get("/events/", params={"project_id": "websiteone"}).json()

    assert body["project"]["id"] == website
    assert {occurrence["event"]["name"] for occurrence in body["events"]} == {"Website Scrum"}


def test_index_with_unknown_project_is_not_found(client):
    assert client.get("/events/", params={"project_id": "nope"}).status_code == 404


def test_new_event_defaults_to_fallback_project(client, creator_id):
    fallback = make_project("CS169", slug="cs169")

    response = client.get("/events/new", headers=auth_headers("creator@example.com"))

    assert response.status_code == 200
    event = response.json()["event"]
    assert event["project_id"] == fallback
    assert event["duration"] == 30
    assert event["repeat_ends"] is True
    assert event["repeat_ends_string"] == "on"
    assert event["start_datetime"] is not None


def test_new_event_uses_project_slug(client, creator_id):
    make_project("CS169", slug="cs169")
    website = make_project("WebSiteOne", slug="websiteone")

    response = client.get(
        "/events/new",
        params={"project": "websiteone", "name": "Pairing", "for": "Developers"},
        headers=auth_headers("creator@example.com"),
    )

    event = response.json()["event"]
    assert event["project_id"] == website
    assert event["name"] == "Pairing"
    assert event["for"] == "Developers"


def test_new_event_without_fallback_project_has_no_project(client, creator_id):
    response = client.get("/events/new", headers=auth_headers("creator@example.com"))

    assert response.json()["event"]["project_id"] is None


def test_new_event_requires_authentication(client):
    assert client.get("/events/new").status_code == 401


def test_edit_returns_event_with_repeat_ends_string(client, creator_id):
    event = create_event(client, repeat_ends_string="on", repeat_ends_on="2030-01-01")

    response = client.get(f"/events/{event['slug']}/edit", headers=auth_headers("creator@example.com"))

    assert response.status_code == 200
    assert response.json()["event"]["repeat_ends_string"] == "on"
