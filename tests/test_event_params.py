from datetime import datetime, timedelta, timezone

import pytest

from project_tracker_api.app.schemas.event import EventBase, EventSubmission
from project_tracker_api.app.services.event_params import (
    InvalidStartTime,
    as_integer,
    resolve_start_datetime,
    transform_params,
)


def submit(**fields):
    return EventSubmission.model_validate(fields)


@pytest.mark.parametrize("submitted_interval", [None, 1, 5])
def test_biweekly_always_repeats_every_two_weeks(submitted_interval):
    fields = {"repeats": "biweekly"}
    if submitted_interval is not None:
        fields["repeats_every_n_weeks"] = submitted_interval

    params = transform_params(submit(**fields), acting_user_id=1)

    assert params["repeats_every_n_weeks"] == 2


def test_weekly_keeps_submitted_interval():
    params = transform_params(submit(repeats="weekly", repeats_every_n_weeks=3), acting_user_id=1)

    assert params["repeats_every_n_weeks"] == 3


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"repeat_ends_string": "on"}, True),
        ({"repeat_ends_string": "never"}, False),
        ({"repeat_ends_string": "ON"}, False),
        ({}, False),
    ],
)
def test_repeat_ends_is_true_only_for_on(fields, expected):
    assert transform_params(submit(**fields), acting_user_id=1)["repeat_ends"] is expected


def test_repeat_ends_on_is_labelled_utc():
    params = transform_params(submit(repeat_ends_on="2026-12-31"), acting_user_id=1)

    assert params["repeat_ends_on"] == "2026-12-31 UTC"


def test_missing_repeat_ends_on_is_blank():
    assert transform_params(submit(), acting_user_id=1)["repeat_ends_on"] == ""


def test_new_event_records_acting_user_as_creator():
    params = transform_params(submit(name="Scrum"), acting_user_id=7)

    assert params["creator_id"] == 7
    assert "modifier_id" not in params


def test_existing_event_records_acting_user_as_modifier():
    event = EventBase(name="Scrum", creator_id=7)

    params = transform_params(submit(name="Scrum"), acting_user_id=9, event=event)

    assert params["modifier_id"] == 9
    assert "creator_id" not in params


def test_unknown_fields_are_dropped():
    submission = EventSubmission.model_validate(
        {"name": "Scrum", "for": "Developers", "slug": "hijack", "creator_id": 99}
    )

    params = transform_params(submission, acting_user_id=1)

    assert params["name"] == "Scrum"
    assert params["for_"] == "Developers"
    assert "slug" not in params
    assert params["creator_id"] == 1


def test_days_of_the_week_are_normalised():
    submission = submit(repeats_weekly_each_days_of_the_week=["Monday", "wednesday", "monday"])

    params = transform_params(submission, acting_user_id=1)

    assert params["repeats_weekly_each_days_of_the_week"] == ["monday", "wednesday"]


def test_none_is_a_synonym_for_never():
    assert submit(repeats="none").repeats == "never"


def test_start_datetime_is_only_set_when_date_and_time_are_given():
    params = transform_params(submit(start_date="2026-01-05", time_zone="UTC"), acting_user_id=1)

    assert "start_datetime" not in params


def test_start_uses_offset_of_next_occurrence_across_dst():
    # 2026-01-05 is EST (UTC-5); 2026-07-06 is EDT (UTC-4).
    resolved = resolve_start_datetime("2026-01-05", "10:00", "America/New_York", next_date="2026-07-06")

    exact = datetime(2026, 1, 5, 15, 0, tzinfo=timezone.utc)
    assert resolved == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)
    assert exact - resolved == timedelta(hours=1)


def test_start_is_exact_when_both_dates_share_the_offset():
    resolved = resolve_start_datetime("2026-07-01", "10:00", "America/New_York", next_date="2026-07-08")

    assert resolved == datetime(2026, 7, 1, 14, 0, tzinfo=timezone.utc)


def test_start_without_next_date_uses_its_own_offset():
    resolved = resolve_start_datetime("2026-01-05", "10:00", "America/New_York")

    assert resolved == datetime(2026, 1, 5, 15, 0, tzinfo=timezone.utc)


def test_start_without_time_zone_is_utc():
    resolved = resolve_start_datetime("2026-01-05", "10:00", None)

    assert resolved == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_transform_sets_start_datetime():
    submission = submit(
        start_date="2026-01-05",
        start_time="10:00 AM",
        next_date="2026-07-06",
        time_zone="America/New_York",
    )

    params = transform_params(submission, acting_user_id=1)

    assert params["start_datetime"] == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)


def test_unknown_time_zone_is_a_validation_failure():
    with pytest.raises(InvalidStartTime) as excinfo:
        resolve_start_datetime("2026-01-05", "10:00", "Mars/Olympus_Mons")

    assert excinfo.value.messages == ["Time zone is invalid"]


def test_unparseable_start_is_a_validation_failure():
    with pytest.raises(InvalidStartTime) as excinfo:
        resolve_start_datetime("not a date", "10:00", "UTC")

    assert excinfo.value.messages == ["Start datetime is invalid"]


@pytest.mark.parametrize(
    "value, expected",
    [(30, 30), ("30", 30), (" 7 ", 7), ("-5", -5), ("thirty", None), ("2.5", None), (None, None), (True, None)],
)
def test_as_integer(value, expected):
    assert as_integer(value) == expected
