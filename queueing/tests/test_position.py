from datetime import date

import pytest
from django.test import override_settings

from queueing.models import DoctorAvailability, EntryStatus
from queueing.services import ledger
from queueing.services.availability import set_queue_active
from queueing.services.position import position, ranked_entries

pytestmark = pytest.mark.django_db

DAY = date(2025, 3, 10)


@pytest.fixture
def three_entries(active_doctor, make_patient):
    e1 = ledger.create_entry(active_doctor, make_patient(), "apt-1", DAY)
    e2 = ledger.create_entry(active_doctor, make_patient(), "apt-2", DAY, is_emergency=True)
    e3 = ledger.create_entry(active_doctor, make_patient(), "apt-3", DAY)
    return e1, e2, e3


def test_emergency_goes_first(three_entries):
    e1, e2, e3 = three_entries
    assert position(e2.pk).rank == 1
    assert position(e3.pk).rank == 3

    pos = position(e1.pk)
    assert pos.rank == 2
    assert pos.ahead == 1
    assert pos.estimated_wait_minutes == 15
    assert pos.queue_active is True


def test_average_minutes_can_be_overridden(three_entries):
    e1, e2, e3 = three_entries
    assert position(e3.pk, average_minutes=10).estimated_wait_minutes == 20
    with override_settings(QUEUE_AVG_CONSULTATION_MINUTES=7):
        assert position(e3.pk).estimated_wait_minutes == 14


def test_paused_queue_has_unknown_wait(active_doctor, three_entries):
    e1, _, _ = three_entries
    set_queue_active(active_doctor, False)
    pos = position(e1.pk)
    assert pos.rank == 2
    assert pos.estimated_wait_minutes is None
    assert pos.queue_active is False


def test_terminal_entries_have_no_rank(three_entries):
    e1, e2, e3 = three_entries
    ledger.set_status(e2.pk, EntryStatus.CANCELLED)
    pos = position(e2.pk)
    assert pos.rank is None
    assert pos.estimated_wait_minutes is None
    # the cancelled emergency no longer counts for anyone
    assert position(e1.pk).rank == 1
    assert position(e3.pk).rank == 2


def test_called_patient_still_counts_ahead(three_entries):
    e1, e2, e3 = three_entries
    ledger.set_status(e2.pk, EntryStatus.CALLED)
    assert position(e2.pk).rank == 1
    assert position(e3.pk).rank == 3
    ledger.set_status(e2.pk, EntryStatus.IN_PROGRESS)
    ledger.set_status(e2.pk, EntryStatus.COMPLETED)
    assert position(e3.pk).rank == 2


def test_other_days_and_doctors_do_not_count(active_doctor, other_doctor, make_patient):
    ledger.create_entry(other_doctor, make_patient(), "apt-1", DAY, is_emergency=True)
    ledger.create_entry(active_doctor, make_patient(), "apt-2", date(2025, 3, 9), is_emergency=True)
    mine = ledger.create_entry(active_doctor, make_patient(), "apt-3", DAY)
    assert position(mine.pk).rank == 1


def test_ranked_entries_matches_position(active_doctor, three_entries):
    e1, e2, e3 = three_entries
    ledger.set_status(e3.pk, EntryStatus.CANCELLED)
    rows = ranked_entries(active_doctor, DAY)

    assert [r["entry_id"] for r in rows] == [str(e2.pk), str(e1.pk), str(e3.pk)]
    assert [r["rank"] for r in rows] == [1, 2, None]
    assert [r["estimated_wait_minutes"] for r in rows] == [0, 15, None]
    assert rows[0]["display_number"] == "E2"
    for row in rows:
        assert row["rank"] == position(row["entry_id"]).rank


def test_reading_positions_never_creates_availability(doctor, patient):
    entry = ledger.create_entry(doctor, patient, "apt-1", DAY)
    DoctorAvailability.objects.filter(doctor=doctor).delete()

    pos = position(entry.pk)
    assert pos.rank == 1
    assert pos.queue_active is False
    assert pos.estimated_wait_minutes is None
    assert ranked_entries(doctor, DAY)[0]["rank"] == 1
    assert not DoctorAvailability.objects.filter(doctor=doctor).exists()
