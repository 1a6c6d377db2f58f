"""Fixed-interval status polling."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError

from imagejobs.backend import with_fallback
from imagejobs.cancellation import Cancellation
from imagejobs.errors import JobTimeoutError, StatusError, TransportError
from imagejobs.models import StatusSnapshot

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 3000
DEFAULT_MAX_ATTEMPTS = 60


class PollState(Enum):
    NOT_STARTED = "not_started"
    POLLING = "polling"
    DONE = "done"


@dataclass(frozen=True)
class PollTick:
    attempt: int
    elapsed_ms: int
    snapshot: StatusSnapshot


class StatusPoller:
    """Query a task's status every ``interval_ms`` until it is terminal.

    :meth:`poll` yields one :class:`PollTick` per observation, the terminal
    one last. It raises ``StatusError`` when a check fails and
    ``JobTimeoutError`` when ``max_attempts`` checks pass without a terminal
    state. A cancelled poll just stops.
    """

    def __init__(
        self,
        fetch_status: Callable[[str], Any],
        fallback: Optional[Callable[[str], Any]] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must not be negative")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._fetch = with_fallback(fetch_status, fallback)
        self.interval_ms = interval_ms
        self.max_attempts = max_attempts
        self.state = PollState.NOT_STARTED

    def check(self, handle: str) -> StatusSnapshot:
        try:
            body = self._fetch(handle)
        except TransportError as exc:
            raise StatusError(str(exc)) from exc
        try:
            return StatusSnapshot.model_validate(body)
        except ValidationError as exc:
            raise StatusError(f"Unreadable status response for task {handle}") from exc

    def poll(self, handle: str, cancellation: Optional[Cancellation] = None) -> Iterator[PollTick]:
        if self.state is PollState.POLLING:
            raise RuntimeError("poller is already running")
        cancellation = cancellation or Cancellation()
        self.state = PollState.POLLING
        try:
            for attempt in range(1, self.max_attempts + 1):
                if cancellation.wait(self.interval_ms / 1000):
                    logger.info("Polling of %s cancelled", handle)
                    return
                snapshot = self.check(handle)
                if cancellation.cancelled:
                    logger.info("Polling of %s cancelled", handle)
                    return
                logger.debug("Task %s attempt %d: %s", handle, attempt, snapshot.state.value)
                yield PollTick(attempt, attempt * self.interval_ms, snapshot)
                if snapshot.terminal:
                    return
            raise JobTimeoutError(f"No terminal state after {self.max_attempts} attempts")
        finally:
            self.state = PollState.DONE
