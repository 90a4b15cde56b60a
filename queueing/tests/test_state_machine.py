import threading
from datetime import date

import pytest
from django.db import connection

from queueing.exceptions import Conflict, InvalidTransition, NotFound
from queueing.models import DoctorAvailability, EntryStatus, QueueEntry, QueueEntryTransition
from queueing.services import ledger
from queueing.services.availability import set_queue_active
from queueing.services.state_machine import can_transition, ensure_transition

pytestmark = pytest.mark.django_db

DAY = date(2025, 3, 10)
S = EntryStatus


@pytest.mark.parametrize("current,new,allowed", [
    (S.SCHEDULED, S.CALLED, True),
    (S.SCHEDULED, S.CANCELLED, True),
    (S.SCHEDULED, S.NO_SHOW, True),
    (S.SCHEDULED, S.IN_PROGRESS, False),
    (S.SCHEDULED, S.COMPLETED, False),
    (S.CALLED, S.IN_PROGRESS, True),
    (S.CALLED, S.CANCELLED, True),
    (S.CALLED, S.NO_SHOW, False),
    (S.IN_PROGRESS, S.COMPLETED, True),
    (S.IN_PROGRESS, S.CANCELLED, True),
    (S.IN_PROGRESS, S.CALLED, False),
    (S.COMPLETED, S.SCHEDULED, False),
    (S.CANCELLED, S.SCHEDULED, False),
    (S.NO_SHOW, S.CALLED, False),
])
def test_transition_table(current, new, allowed):
    assert can_transition(current.value, new.value) is allowed


def test_ensure_transition_rejects_unknown_status():
    with pytest.raises(InvalidTransition):
        ensure_transition("scheduled", "teleported")
    with pytest.raises(InvalidTransition):
        ensure_transition("completed", "scheduled")


def _availability(doctor):
    return DoctorAvailability.objects.get(doctor=doctor)


def test_call_requires_active_queue(doctor, patient):
    entry = ledger.create_entry(doctor, patient, "apt-1", DAY)
    with pytest.raises(InvalidTransition):
        ledger.set_status(entry.pk, S.CALLED)
    assert QueueEntry.objects.get(pk=entry.pk).status == S.SCHEDULED


def test_full_visit_updates_current_number(active_doctor, make_patient):
    first = ledger.create_entry(active_doctor, make_patient(), "apt-1", DAY)
    second = ledger.create_entry(active_doctor, make_patient(), "apt-2", DAY)

    ledger.set_status(first.pk, S.CALLED)
    assert _availability(active_doctor).current_number == 1

    with pytest.raises(Conflict):
        ledger.set_status(second.pk, S.CALLED)

    ledger.set_status(first.pk, S.IN_PROGRESS)
    assert _availability(active_doctor).current_number == 1

    ledger.set_status(first.pk, S.COMPLETED)
    assert _availability(active_doctor).current_number is None

    ledger.set_status(second.pk, S.CALLED)
    assert _availability(active_doctor).current_number == 2


def test_completed_entry_cannot_be_reopened(active_doctor, patient):
    entry = ledger.create_entry(active_doctor, patient, "apt-1", DAY)
    for status in (S.CALLED, S.IN_PROGRESS, S.COMPLETED):
        ledger.set_status(entry.pk, status)
    with pytest.raises(InvalidTransition):
        ledger.set_status(entry.pk, S.SCHEDULED)
    assert QueueEntry.objects.get(pk=entry.pk).status == S.COMPLETED


def test_cancelling_called_entry_clears_current_number(active_doctor, patient):
    entry = ledger.create_entry(active_doctor, patient, "apt-1", DAY)
    ledger.set_status(entry.pk, S.CALLED)
    ledger.set_status(entry.pk, S.CANCELLED, reason="left the clinic")
    assert _availability(active_doctor).current_number is None
    last = QueueEntryTransition.objects.filter(entry=entry).order_by("-id").first()
    assert (last.from_status, last.to_status, last.reason) == ("called", "cancelled", "left the clinic")


def test_pausing_queue_keeps_called_patient(active_doctor, make_patient):
    first = ledger.create_entry(active_doctor, make_patient(), "apt-1", DAY)
    second = ledger.create_entry(active_doctor, make_patient(), "apt-2", DAY)
    ledger.set_status(first.pk, S.CALLED)
    set_queue_active(active_doctor, False)

    ledger.set_status(first.pk, S.IN_PROGRESS)
    ledger.set_status(first.pk, S.COMPLETED)
    with pytest.raises(InvalidTransition):
        ledger.set_status(second.pk, S.CALLED)


def test_call_next_prefers_emergencies(active_doctor, make_patient):
    ledger.create_entry(active_doctor, make_patient(), "apt-1", DAY)
    emergency = ledger.create_entry(active_doctor, make_patient(), "apt-2", DAY, is_emergency=True)
    called = ledger.call_next(active_doctor, DAY)
    assert called.pk == emergency.pk
    assert called.status == S.CALLED


def test_call_next_with_empty_queue(active_doctor):
    with pytest.raises(NotFound):
        ledger.call_next(active_doctor, DAY)


def test_transitions_are_recorded(active_doctor, patient):
    entry = ledger.create_entry(active_doctor, patient, "apt-1", DAY)
    ledger.set_status(entry.pk, S.CALLED)
    ledger.set_status(entry.pk, S.IN_PROGRESS)
    history = list(
        QueueEntryTransition.objects.filter(entry=entry).order_by("timestamp", "id").values_list("from_status", "to_status")
    )
    assert history == [(None, "scheduled"), ("scheduled", "called"), ("called", "in_progress")]


@pytest.mark.django_db(transaction=True)
def test_concurrent_calls_have_one_winner(active_doctor, make_patient):
    entries = [ledger.create_entry(active_doctor, make_patient(), f"apt-{i}", DAY) for i in range(4)]
    outcomes = []
    barrier = threading.Barrier(len(entries))

    def worker(entry_id):
        try:
            barrier.wait()
            ledger.set_status(entry_id, S.CALLED)
            outcomes.append("called")
        except Conflict:
            outcomes.append("conflict")
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(e.pk,)) for e in entries]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["called", "conflict", "conflict", "conflict"]
    assert QueueEntry.objects.filter(doctor=active_doctor, status=S.CALLED).count() == 1
