import pytest

from fakes import FakeBackend
from imagejobs.cancellation import Cancellation
from imagejobs.errors import JobTimeoutError, StatusError, TransportError
from imagejobs.models import JobState
from imagejobs.poller import PollState, StatusPoller

PROCESSING = {"status": "processing"}


def make_poller(backend, **kwargs):
    kwargs.setdefault("interval_ms", 0)
    return StatusPoller(backend.fetch_status, fallback=backend.fetch_status_fallback, **kwargs)


def test_yields_until_terminal():
    backend = FakeBackend(statuses=[PROCESSING, PROCESSING, {"status": "completed"}])
    ticks = list(make_poller(backend).poll("t1"))
    assert [t.snapshot.state for t in ticks] == [
        JobState.PROCESSING, JobState.PROCESSING, JobState.COMPLETED,
    ]
    assert [t.attempt for t in ticks] == [1, 2, 3]
    assert backend.count("fetch_status") == 3


def test_elapsed_is_attempts_times_interval():
    backend = FakeBackend(statuses=[PROCESSING, PROCESSING, {"status": "failed"}])
    poller = make_poller(backend, interval_ms=1)
    assert [t.elapsed_ms for t in poller.poll("t1")] == [1, 2, 3]


def test_timeout_after_max_attempts():
    backend = FakeBackend(statuses=[PROCESSING])
    poller = make_poller(backend, max_attempts=4)
    ticks = []
    with pytest.raises(JobTimeoutError):
        for tick in poller.poll("t1"):
            ticks.append(tick)
    assert len(ticks) == 4
    assert backend.count("fetch_status") == 4
    assert poller.state is PollState.DONE


def test_transport_error_ends_polling():
    backend = FakeBackend(statuses=[PROCESSING, TransportError(500, "boom"), PROCESSING])
    poller = make_poller(backend)
    with pytest.raises(StatusError, match="500"):
        list(poller.poll("t1"))
    assert backend.count("fetch_status") == 2


def test_unparseable_status_is_status_error():
    backend = FakeBackend(statuses=[{"status": "on fire"}])
    with pytest.raises(StatusError, match="Unreadable"):
        list(make_poller(backend).poll("t1"))


def test_fallback_route_on_404():
    backend = FakeBackend(
        statuses=[TransportError(404, "Not Found")],
        status_fallback=[{"status": "completed"}],
    )
    ticks = list(make_poller(backend).poll("t1"))
    assert ticks[-1].snapshot.state is JobState.COMPLETED
    assert backend.count("fetch_status_fallback") == 1


def test_404_without_fallback_fails():
    backend = FakeBackend(statuses=[TransportError(404, "Not Found")])
    with pytest.raises(StatusError, match="404"):
        list(make_poller(backend).poll("t1"))


def test_cancel_during_check_stops_silently():
    cancellation = Cancellation()

    def on_status(n):
        if n == 2:
            cancellation.cancel()

    backend = FakeBackend(statuses=[PROCESSING], on_status=on_status)
    ticks = list(make_poller(backend).poll("t1", cancellation))
    assert len(ticks) == 1
    assert backend.count("fetch_status") == 2


def test_cancelled_before_start_checks_nothing():
    cancellation = Cancellation()
    cancellation.cancel()
    backend = FakeBackend()
    assert list(make_poller(backend).poll("t1", cancellation)) == []
    assert backend.count("fetch_status") == 0


def test_state_machine():
    backend = FakeBackend(statuses=[PROCESSING, {"status": "completed"}])
    poller = make_poller(backend)
    assert poller.state is PollState.NOT_STARTED
    gen = poller.poll("t1")
    next(gen)
    assert poller.state is PollState.POLLING
    with pytest.raises(RuntimeError):
        next(poller.poll("t2"))
    list(gen)
    assert poller.state is PollState.DONE


@pytest.mark.parametrize("kwargs", [{"interval_ms": -1}, {"max_attempts": 0}])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        StatusPoller(lambda t: PROCESSING, **kwargs)
