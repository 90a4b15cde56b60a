from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from queueing.models import DoctorAvailability, EntryStatus, QueueEntry, User
from queueing.services import ledger

pytestmark = pytest.mark.django_db


def test_sweep_defaults_to_yesterday(doctor, make_patient):
    yesterday = timezone.localdate() - timedelta(days=1)
    stale = ledger.create_entry(doctor, make_patient(), "apt-1", yesterday)
    today = ledger.create_entry(doctor, make_patient(), "apt-2")

    out = StringIO()
    call_command("sweep_no_shows", stdout=out)

    assert "Marked 1 entries" in out.getvalue()
    assert QueueEntry.objects.get(pk=stale.pk).status == EntryStatus.NO_SHOW
    assert QueueEntry.objects.get(pk=today.pk).status == EntryStatus.SCHEDULED


def test_sweep_explicit_date(doctor, patient):
    day = timezone.localdate() - timedelta(days=7)
    entry = ledger.create_entry(doctor, patient, "apt-1", day)
    call_command("sweep_no_shows", "--date", day.isoformat(), stdout=StringIO())
    assert QueueEntry.objects.get(pk=entry.pk).status == EntryStatus.NO_SHOW


@pytest.mark.parametrize("value", ["yesterday", "2025-13-01"])
def test_sweep_rejects_bad_dates(db, value):
    with pytest.raises(CommandError):
        call_command("sweep_no_shows", "--date", value, stdout=StringIO())


def test_sweep_refuses_today(db):
    with pytest.raises(CommandError):
        call_command("sweep_no_shows", "--date", timezone.localdate().isoformat(), stdout=StringIO())


def test_ensure_test_users_is_idempotent(db):
    call_command("ensure_test_users", stdout=StringIO())
    call_command("ensure_test_users", "--password", "s3cret-pass", stdout=StringIO())

    assert User.objects.filter(username__in=["admin1", "nurse1", "billing1", "doctor1", "patient1"]).count() == 5
    doctor = User.objects.get(username="doctor1")
    assert doctor.role == User.ROLE_DOCTOR
    assert doctor.check_password("s3cret-pass")
    assert DoctorAvailability.objects.filter(doctor=doctor).exists()
