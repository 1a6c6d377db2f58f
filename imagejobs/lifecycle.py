"""Job lifecycle controller: submit, poll, resolve, reported as events."""

import logging
from typing import Iterator, Optional

from imagejobs.backend import JobBackend
from imagejobs.cancellation import Cancellation
from imagejobs.errors import JobFailedError, JobTimeoutError, ResolutionError, StatusError, SubmissionError
from imagejobs.events import Error, Loading, ProgressEvent, Success
from imagejobs.jobs import JobKind
from imagejobs.models import JobState, StatusSnapshot
from imagejobs.poller import DEFAULT_INTERVAL_MS, DEFAULT_MAX_ATTEMPTS, StatusPoller
from imagejobs.resolver import ArtifactResolver
from imagejobs.submission import submit

logger = logging.getLogger(__name__)


class JobLifecycle:
    """Drive one job kind from submission to a terminal event.

    :meth:`run` returns a lazy generator of progress events. It always ends
    with exactly one ``Success`` or ``Error`` unless it is cancelled, either
    through the ``cancellation`` flag or by closing the generator, in which
    case it ends without emitting anything further.
    """

    def __init__(
        self,
        backend: JobBackend,
        kind: JobKind,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.backend = backend
        self.kind = kind
        self.interval_ms = interval_ms
        self.max_attempts = max_attempts

    def _poller(self) -> StatusPoller:
        return StatusPoller(
            self.backend.fetch_status,
            fallback=self.backend.fetch_status_fallback,
            interval_ms=self.interval_ms,
            max_attempts=self.max_attempts,
        )

    def _resolver(self) -> ArtifactResolver:
        return ArtifactResolver(
            self.backend.fetch_result,
            self.backend.fetch_bytes,
            fallback=self.backend.fetch_result_fallback,
            url_fields=self.kind.result_url_fields,
        )

    def run(self, payload, cancellation: Optional[Cancellation] = None) -> Iterator[ProgressEvent]:
        cancellation = cancellation or Cancellation()

        yield Loading(f"Starting {self.kind.title}...")
        if cancellation.cancelled:
            return

        try:
            handle = submit(self.backend, payload)
        except SubmissionError as exc:
            if cancellation.cancelled:
                return
            logger.warning("Could not start %s job: %s", self.kind.name, exc.reason)
            yield Error(exc.reason, exc)
            return
        if cancellation.cancelled:
            return
        yield Loading(f"Processing... Task ID: {handle}")

        terminal: Optional[StatusSnapshot] = None
        try:
            for tick in self._poller().poll(handle, cancellation):
                if tick.snapshot.terminal:
                    terminal = tick.snapshot
                else:
                    yield Loading(f"Processing... ({tick.elapsed_ms // 1000}s)", tick.elapsed_ms)
        except StatusError as exc:
            if cancellation.cancelled:
                return
            logger.warning("Status check for %s failed: %s", handle, exc.reason)
            yield Error(exc.reason, exc)
            return
        except JobTimeoutError as exc:
            if cancellation.cancelled:
                return
            logger.warning("Task %s timed out: %s", handle, exc.reason)
            yield Error(self.kind.timeout_text, exc)
            return

        if terminal is None:
            return

        if terminal.state is JobState.FAILED:
            failure = JobFailedError(terminal.error_detail or terminal.message or self.kind.failed_text)
            logger.info("Task %s failed remotely: %s", handle, failure.reason)
            yield Error(failure.reason, failure)
            return

        yield Loading("Downloading result...")
        try:
            artifact = self._resolver().resolve(terminal, handle)
        except ResolutionError as exc:
            if cancellation.cancelled:
                return
            logger.warning("Result of %s could not be resolved: %s", handle, exc.reason)
            yield Error(exc.reason, exc)
            return
        if cancellation.cancelled:
            return
        logger.info("Task %s completed: %s %sx%s", handle, artifact.format, *artifact.size)
        yield Success(artifact, handle)
