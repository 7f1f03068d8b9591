import threading

import pytest

from calc_agent.services.limiter_service import LimiterService


def test_second_acquire_blocks_until_release():
    limiter = LimiterService(1)
    limiter.acquire()
    acquired = threading.Event()

    def waiter():
        limiter.acquire()
        acquired.set()

    t = threading.Thread(target=waiter, daemon=True)
    t.start()

    assert not acquired.wait(0.3)
    assert limiter.in_use == 1

    limiter.release()
    assert acquired.wait(5)
    t.join(5)
    assert limiter.in_use == 1
    limiter.release()
    assert limiter.in_use == 0


def test_slot_releases_on_error():
    limiter = LimiterService(1)

    with pytest.raises(RuntimeError):
        with limiter.slot():
            assert limiter.in_use == 1
            raise RuntimeError("boom")

    assert limiter.in_use == 0
    with limiter.slot():
        pass


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        LimiterService(0)
