import threading


class Cancellation:
    """Cancellation flag shared between a running job and whoever may stop it.

    Waiting goes through :meth:`wait` so a cancel request wakes the poller
    right away instead of after the full interval.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if seconds > 0:
            self._event.wait(seconds)
        return self.cancelled
