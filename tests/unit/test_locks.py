import threading
import time

from tourbooking.payments.locks import active_keys, booking_lock


def test_lock_is_released_and_forgotten():
    with booking_lock("B1"):
        assert "B1" in active_keys()
    assert "B1" not in active_keys()


def test_lock_released_on_error():
    try:
        with booking_lock("B2"):
            raise ValueError("boom")
    except ValueError:
        pass
    assert "B2" not in active_keys()
    with booking_lock("B2"):
        pass


def test_same_booking_is_serialized():
    inside = []
    overlaps = []

    def worker():
        with booking_lock("B3"):
            if inside:
                overlaps.append(True)
            inside.append(1)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []
    assert "B3" not in active_keys()


def test_distinct_bookings_do_not_block():
    entered = threading.Event()

    def other():
        with booking_lock("B5"):
            entered.set()

    with booking_lock("B4"):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=2)
        t.join()
