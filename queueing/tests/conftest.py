import itertools

import pytest

from queueing.models import User
from queueing.services.availability import get_availability, set_queue_active


@pytest.fixture
def doctor(db):
    user = User.objects.create_user(username="dr_grey", password="doctorpass", role=User.ROLE_DOCTOR)
    get_availability(user)
    return user


@pytest.fixture
def other_doctor(db):
    user = User.objects.create_user(username="dr_shepherd", password="doctorpass", role=User.ROLE_DOCTOR)
    get_availability(user)
    return user


@pytest.fixture
def nurse(db):
    return User.objects.create_user(username="nurse1", password="nursepass", role=User.ROLE_NURSE)


@pytest.fixture
def make_patient(db):
    counter = itertools.count(1)

    def _make():
        n = next(counter)
        return User.objects.create_user(username=f"patient{n}", password="patientpass", role=User.ROLE_PATIENT)

    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def active_doctor(doctor):
    set_queue_active(doctor, True)
    return doctor
