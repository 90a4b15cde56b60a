import gc
import threading
from datetime import date

from queueing import locks


def test_same_key_is_exclusive():
    key = locks.day_key(1, date(2025, 3, 10))
    entered = threading.Event()

    def contender():
        with locks.critical_section(key):
            entered.set()

    with locks.critical_section(key):
        t = threading.Thread(target=contender)
        t.start()
        assert not entered.wait(0.2)
    t.join(5)
    assert entered.is_set()


def test_different_keys_do_not_block():
    with locks.critical_section(locks.doctor_key(1)):
        with locks.critical_section(locks.doctor_key(2)):
            pass


def test_unused_locks_are_released():
    keys = [locks.day_key(7, date(2025, 1, day)) for day in range(1, 29)]
    for key in keys:
        with locks.critical_section(key):
            assert key in locks._locks
    gc.collect()
    assert not any(key in locks._locks for key in keys)
