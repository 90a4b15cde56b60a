from datetime import date, datetime, timezone as dt_timezone

import pytest
from django.test import override_settings

from queueing.exceptions import InvalidSchedule, NotFound, QueueError
from queueing.models import AuditEvent, AvailabilityStatus, EntryStatus, QueueEntry, User
from queueing.services import availability, ledger

pytestmark = pytest.mark.django_db

MONDAY = date(2025, 3, 10)


def test_default_row(db):
    user = User.objects.create_user(username="dr_new", password="x", role=User.ROLE_DOCTOR)
    with override_settings(QUEUE_MAX_EMERGENCY_SLOTS=2):
        row = availability.get_availability(user)
    assert row.status == AvailabilityStatus.OFFLINE
    assert row.queue_active is False
    assert row.current_number is None
    assert row.max_emergency_slots == 2


def test_non_doctor_has_no_availability(patient):
    with pytest.raises(NotFound):
        availability.get_availability(patient)
    with pytest.raises(NotFound):
        availability.get_availability("abc")


def test_set_status(doctor):
    row = availability.set_status(doctor, AvailabilityStatus.BUSY, operator=doctor)
    assert row.status == AvailabilityStatus.BUSY
    assert AuditEvent.objects.filter(action="availability_status", object_id=str(doctor.pk)).exists()
    with pytest.raises(QueueError):
        availability.set_status(doctor, "on_vacation")


def test_working_hours_are_normalized(doctor):
    row = availability.set_working_hours(doctor, {
        "Monday": {"start": "09:00", "end": "17:00", "enabled": True},
        "sunday": {"start": "", "end": "", "enabled": False},
    })
    assert row.working_hours == {
        "monday": {"start": "09:00", "end": "17:00", "enabled": True},
        "sunday": {"start": "", "end": "", "enabled": False},
    }


@pytest.mark.parametrize("hours", [
    {"monday": {"start": "17:00", "end": "09:00"}},
    {"monday": {"start": "09:00", "end": "09:00"}},
    {"monday": {"start": "9am", "end": "17:00"}},
    {"monday": {"start": "09:00"}},
    {"funday": {"start": "09:00", "end": "17:00"}},
    {"monday": "09:00-17:00"},
    ["monday"],
])
def test_invalid_working_hours(doctor, hours):
    availability.set_working_hours(doctor, {"tuesday": {"start": "08:00", "end": "12:00"}})
    with pytest.raises(InvalidSchedule):
        availability.set_working_hours(doctor, hours)
    # rejected input leaves the stored hours alone
    assert availability.get_availability(doctor).working_hours == {
        "tuesday": {"start": "08:00", "end": "12:00", "enabled": True},
    }


@override_settings(TIME_ZONE="UTC")
def test_is_within_working_hours(doctor):
    availability.set_working_hours(doctor, {"monday": {"start": "09:00", "end": "17:00"}})
    assert availability.is_within_working_hours(doctor, datetime(2025, 3, 10, 10, 30, tzinfo=dt_timezone.utc))
    assert not availability.is_within_working_hours(doctor, datetime(2025, 3, 10, 17, 0, tzinfo=dt_timezone.utc))
    assert not availability.is_within_working_hours(doctor, datetime(2025, 3, 11, 10, 30, tzinfo=dt_timezone.utc))


def test_toggle_does_not_touch_entries(doctor, patient):
    entry = ledger.create_entry(doctor, patient, "apt-1", MONDAY)
    availability.set_queue_active(doctor, True)
    availability.set_queue_active(doctor, False)
    assert QueueEntry.objects.get(pk=entry.pk).status == EntryStatus.SCHEDULED
    assert availability.get_availability(doctor).queue_active is False


def test_queue_status_summary(active_doctor, make_patient):
    availability.set_working_hours(active_doctor, {"monday": {"start": "08:30", "end": "12:00"}})
    ledger.create_entry(active_doctor, make_patient(), "apt-1", MONDAY)
    emergency = ledger.create_entry(active_doctor, make_patient(), "apt-2", MONDAY, is_emergency=True)
    dropped = ledger.create_entry(active_doctor, make_patient(), "apt-3", MONDAY, is_emergency=True)
    ledger.set_status(dropped.pk, EntryStatus.CANCELLED)
    ledger.set_status(emergency.pk, EntryStatus.CALLED)

    summary = availability.queue_status(active_doctor, MONDAY)
    assert summary["queue_date"] == "2025-03-10"
    assert summary["current_number"] == 2
    assert summary["current_emergency_number"] == 2
    assert summary["emergency_used"] == 1
    assert summary["regular_count"] == 1
    assert summary["waiting_count"] == 1
    assert summary["available_from"] == "08:30"
    assert summary["available_to"] == "12:00"
    assert summary["is_active"] is True


def test_queue_status_on_a_day_off(doctor):
    summary = availability.queue_status(doctor, MONDAY)
    assert summary["available_from"] is None
    assert summary["current_emergency_number"] is None
    assert summary["waiting_count"] == 0
