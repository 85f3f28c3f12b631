from datetime import date

import pytest

from tawba.tracker.errors import DuplicateLogError, LogNotFoundError, ValidationError
from tawba.tracker.logbook import LogBook, build_log
from tawba.tracker.types import LogType, PrayerName


@pytest.fixture
def logbook(store):
    return LogBook(store)


def test_second_on_time_log_for_same_day_is_rejected(logbook, store):
    candidate = {"date": "2024-03-01", "prayer": "asr", "type": "current", "logged_at": "15:40"}
    first_id = logbook.add_log(candidate)
    assert first_id is not None

    with pytest.raises(DuplicateLogError) as excinfo:
        logbook.add_log(candidate)

    assert excinfo.value.code == "log-exists"
    assert excinfo.value.prayer == "asr"
    logs = store.get_logs_for_date(date(2024, 3, 1))
    assert [log.id for log in logs] == [first_id]


def test_on_time_logs_for_other_days_or_prayers_are_allowed(logbook, store):
    logbook.add_log({"date": "2024-03-01", "prayer": "asr", "type": "current"})
    logbook.add_log({"date": "2024-03-02", "prayer": "asr", "type": "current"})
    logbook.add_log({"date": "2024-03-01", "prayer": "maghrib", "type": "current"})
    assert len(store.get_logs()) == 3


def test_multiple_qada_logs_on_one_day_are_allowed(logbook, store):
    logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 2})
    logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 3})
    assert sum(log.count for log in store.get_logs()) == 5


def test_add_log_fills_defaults(logbook, store):
    log_id = logbook.add_log({"prayer": PrayerName.ISHA, "type": LogType.CURRENT}, today=date(2024, 5, 5))
    log = store.get_log(log_id)
    assert log.date == date(2024, 5, 5)
    assert log.count == 1
    assert len(log.logged_at) == 5


@pytest.mark.parametrize("count", [0, -2, 1.5, "3", True, None])
def test_invalid_qada_count_is_rejected(logbook, store, count):
    with pytest.raises(ValidationError) as excinfo:
        logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": count})
    assert excinfo.value.field == "count"
    assert store.get_logs() == []


def test_on_time_log_with_count_other_than_one_is_rejected(logbook):
    with pytest.raises(ValidationError):
        logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "current", "count": 2})


@pytest.mark.parametrize(
    "candidate",
    [
        {"date": "2024-03-01", "prayer": "witr", "type": "qada", "count": 1},
        {"date": "2024-03-01", "prayer": "fajr", "type": "nafl", "count": 1},
        {"date": "03/01/2024", "prayer": "fajr", "type": "qada", "count": 1},
        {"date": "2024-03-01garbage", "prayer": "fajr", "type": "qada", "count": 1},
        {"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 1, "logged_at": "25:00"},
        {"date": "2024-03-01", "type": "qada", "count": 1},
    ],
)
def test_structurally_invalid_logs_are_rejected(logbook, store, candidate):
    with pytest.raises(ValidationError):
        logbook.add_log(candidate)
    assert store.get_logs() == []


def test_build_log_normalizes_case_and_time():
    log = build_log({"date": "2024-03-01", "prayer": "Fajr", "type": "QADA", "count": 2, "logged_at": "7:5"})
    assert log.prayer == PrayerName.FAJR
    assert log.type == LogType.QADA
    assert log.logged_at == "07:05"


def test_edit_log_merges_fields(logbook, store):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 2, "logged_at": "21:00"})
    edited = logbook.edit_log(log_id, {"count": 5})
    assert edited.count == 5
    stored = store.get_log(log_id)
    assert stored.count == 5
    assert stored.logged_at == "21:00"
    assert stored.prayer == PrayerName.FAJR


def test_edit_log_switching_to_current_resets_count(logbook, store):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 4})
    logbook.edit_log(log_id, {"type": "current"})
    stored = store.get_log(log_id)
    assert stored.type == LogType.CURRENT
    assert stored.count == 1


def test_edit_log_cannot_create_duplicate_on_time_log(logbook, store):
    logbook.add_log({"date": "2024-03-01", "prayer": "asr", "type": "current"})
    other_id = logbook.add_log({"date": "2024-03-02", "prayer": "asr", "type": "current"})

    with pytest.raises(DuplicateLogError):
        logbook.edit_log(other_id, {"date": "2024-03-01"})
    assert store.get_log(other_id).date == date(2024, 3, 2)


def test_edit_log_keeping_its_own_day_is_not_a_duplicate(logbook):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "asr", "type": "current", "logged_at": "15:00"})
    assert logbook.edit_log(log_id, {"logged_at": "15:30"}).logged_at == "15:30"


def test_edit_unknown_log(logbook):
    with pytest.raises(LogNotFoundError):
        logbook.edit_log(999, {"count": 2})


def test_edit_rejects_unknown_fields(logbook):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 1})
    with pytest.raises(ValidationError):
        logbook.edit_log(log_id, {"id": 42})


def test_edit_with_invalid_count_leaves_record_untouched(logbook, store):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 3})
    with pytest.raises(ValidationError):
        logbook.edit_log(log_id, {"count": 0})
    assert store.get_log(log_id).count == 3


def test_remove_log(logbook, store):
    log_id = logbook.add_log({"date": "2024-03-01", "prayer": "fajr", "type": "qada", "count": 3})
    logbook.remove_log(log_id)
    assert store.get_log(log_id) is None


def test_remove_unknown_log_is_a_no_op(logbook, store):
    logbook.remove_log(12345)
    assert store.get_logs() == []
