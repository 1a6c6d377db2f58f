"""Progress events emitted by the lifecycle controller.

A job's event sequence is zero or more ``Loading`` events followed by
exactly one terminal ``Success`` or ``Error``.
"""

from dataclasses import dataclass
from typing import Optional, Union

from imagejobs.errors import JobError
from imagejobs.models import Artifact


@dataclass(frozen=True)
class Loading:
    message: str
    elapsed_ms: Optional[int] = None
    terminal = False


@dataclass(frozen=True)
class Success:
    artifact: Artifact
    handle: str
    terminal = True

    @property
    def message(self) -> str:
        return f"Completed task {self.handle}"


@dataclass(frozen=True)
class Error:
    message: str
    error: Optional[JobError] = None
    terminal = True


ProgressEvent = Union[Loading, Success, Error]


def event_to_dict(event: ProgressEvent) -> dict:
    """JSON-friendly view of an event (artifact bytes are left out)."""
    out = {"type": type(event).__name__.lower(), "message": event.message}
    if isinstance(event, Loading) and event.elapsed_ms is not None:
        out["elapsed_ms"] = event.elapsed_ms
    if isinstance(event, Success):
        out["task_id"] = event.handle
        out["format"] = event.artifact.format
        out["size"] = list(event.artifact.size)
    if isinstance(event, Error) and event.error is not None:
        out["kind"] = type(event.error).__name__
    return out
