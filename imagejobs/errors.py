"""Error taxonomy for the job lifecycle.

Every failure that ends a job is a ``JobError`` subclass carrying a
human-readable ``reason``. ``TransportError`` is raised one level lower, by
the HTTP transport, and gets translated into a ``JobError`` by whichever
component made the call.
"""

from typing import Optional

ROUTE_MISSING_CODES = (404, 405)


class TransportError(Exception):
    """A single HTTP exchange failed (non-2xx, bad body or network fault)."""

    def __init__(self, status_code: Optional[int], message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(str(self))

    @property
    def route_missing(self) -> bool:
        return self.status_code in ROUTE_MISSING_CODES

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"API error: {self.status_code} {self.message}".rstrip()


class JobError(Exception):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class SubmissionError(JobError):
    """The job could not be started."""


class StatusError(JobError):
    """A status check failed after the fallback route, if any."""


class JobTimeoutError(JobError):
    """Polling attempts ran out before the job reached a terminal state."""


class JobFailedError(JobError):
    """The remote service reported the job as failed."""


class ResolutionError(JobError):
    """The job completed but no artifact could be obtained."""


class ArtifactDecodeError(ResolutionError):
    """Artifact bytes were present but are not a valid image."""
