from datetime import date

import pytest

from tawba.tracker.accounting import summary_for
from tawba.tracker.errors import DuplicateLogError, ValidationError
from tawba.tracker.types import LogType, MissedEstimate, PrayerName

TODAY = date(2024, 1, 11)


def test_onboarding_sets_start_date_and_estimates(onboarded):
    assert onboarded.get_settings().start_date == date(2024, 1, 1)
    assert onboarded.get_estimates() == [MissedEstimate(PrayerName.FAJR, 5)]


def test_summary_reflects_each_mutation(onboarded):
    assert summary_for(onboarded.summaries(TODAY), PrayerName.FAJR).remaining == 15

    log_id = onboarded.add_log({"date": "2024-01-05", "prayer": "fajr", "type": "qada", "count": 4})
    assert summary_for(onboarded.summaries(TODAY), PrayerName.FAJR).remaining == 11

    onboarded.edit_log(log_id, {"count": 6})
    assert summary_for(onboarded.summaries(TODAY), PrayerName.FAJR).remaining == 9

    onboarded.remove_log(log_id)
    assert summary_for(onboarded.summaries(TODAY), PrayerName.FAJR).remaining == 15


def test_projection_and_what_if(onboarded):
    onboarded.add_log({"date": "2024-01-02", "prayer": "fajr", "type": "qada", "count": 11})

    projection = onboarded.projection(TODAY)
    assert projection.daily_average == 1.0
    assert projection.projected_completion_date is not None

    result = onboarded.what_if(2, prayer="fajr", today=TODAY)
    assert result.days_to_clear == 2
    assert result.projected_date == date(2024, 1, 13)


def test_duplicate_on_time_log_through_service(onboarded):
    onboarded.add_log({"date": "2024-01-03", "prayer": "isha", "type": "current"})
    with pytest.raises(DuplicateLogError):
        onboarded.add_log({"date": "2024-01-03", "prayer": "isha", "type": "current"})
    assert len(onboarded.get_logs("2024-01-03")) == 1
    assert onboarded.get_logs()[0].type == LogType.CURRENT


def test_increment_missed_clamps_at_zero(onboarded):
    assert onboarded.increment_missed("fajr") == 6
    assert onboarded.increment_missed(PrayerName.FAJR, -20) == 0


def test_set_estimates_validates_counts(service):
    with pytest.raises(ValidationError) as excinfo:
        service.set_estimates([{"prayer": "asr", "initial_count": -1}])
    assert excinfo.value.field == "initial_count"
    with pytest.raises(ValidationError):
        service.set_estimates([{"prayer": "duha", "initial_count": 1}])


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"language": "fr"}, "language"),
        ({"font_size": "huge"}, "font_size"),
        ({"start_date": "soon"}, "start_date"),
        ({"location": {"latitude": "north"}}, "location"),
    ],
)
def test_update_settings_validation(service, changes, field):
    with pytest.raises(ValidationError) as excinfo:
        service.update_settings(**changes)
    assert excinfo.value.field == field


def test_update_settings_normalizes_values(service):
    settings = service.update_settings(language="ar", location={"latitude": "24.7", "longitude": 46.7})
    assert settings.language == "ar"
    assert settings.location == {"latitude": 24.7, "longitude": 46.7}


def test_reset_returns_to_defaults(onboarded):
    onboarded.add_log({"date": "2024-01-02", "prayer": "fajr", "type": "qada", "count": 1})
    onboarded.reset()
    assert onboarded.get_settings().start_date is None
    assert onboarded.get_logs() == []


def test_onboarding_with_repeated_prayer_writes_nothing(service):
    with pytest.raises(ValidationError) as excinfo:
        service.complete_onboarding(
            date(2024, 1, 1),
            [{"prayer": "fajr", "initial_count": 1}, {"prayer": "fajr", "initial_count": 2}],
        )

    assert excinfo.value.field == "prayer"
    assert service.get_settings().start_date is None
    assert all(e.initial_count == 0 for e in service.get_estimates())


@pytest.mark.parametrize("start_date", [None, "2024-01-01garbage"])
def test_onboarding_needs_a_valid_start_date(service, start_date):
    with pytest.raises(ValidationError) as excinfo:
        service.complete_onboarding(start_date, [{"prayer": "fajr", "initial_count": 1}])
    assert excinfo.value.field == "start_date"
    assert service.get_settings().start_date is None


def test_set_estimates_rejects_repeated_prayer(onboarded):
    with pytest.raises(ValidationError):
        onboarded.set_estimates([MissedEstimate(PrayerName.ASR, 1), {"prayer": "ASR", "initial_count": 2}])
    assert onboarded.get_estimates() == [MissedEstimate(PrayerName.FAJR, 5)]


def test_projection_reuses_given_summaries(onboarded):
    onboarded.add_log({"date": "2024-01-02", "prayer": "fajr", "type": "qada", "count": 11})
    snapshot = onboarded.snapshot()
    summaries = onboarded.summaries(TODAY, snapshot)
    assert onboarded.projection(TODAY, snapshot, summaries) == onboarded.projection(TODAY)


def test_logs_by_date(onboarded):
    onboarded.add_log({"date": "2024-01-02", "prayer": "fajr", "type": "qada", "count": 1, "logged_at": "08:00"})
    onboarded.add_log({"date": "2024-01-03", "prayer": "asr", "type": "current", "logged_at": "15:00"})
    onboarded.add_log({"date": "2024-01-03", "prayer": "isha", "type": "current", "logged_at": "20:00"})

    grouped = onboarded.logs_by_date()

    assert list(grouped) == ["2024-01-03", "2024-01-02"]
    assert [log.prayer for log in grouped["2024-01-03"]] == [PrayerName.ISHA, PrayerName.ASR]
