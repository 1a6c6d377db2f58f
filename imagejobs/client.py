"""High level entry point: one client, one method per job kind."""

from typing import Iterable, Iterator, Optional

import requests

from imagejobs.backend import HttpJobBackend
from imagejobs.cancellation import Cancellation
from imagejobs.events import ProgressEvent
from imagejobs.jobs import FIGURINE, HAIRSTYLE, TRY_ON, FigurinePayload, HairstylePayload, JobKind, TryOnPayload
from imagejobs.lifecycle import JobLifecycle
from imagejobs.media import read_image_bytes
from imagejobs.poller import DEFAULT_INTERVAL_MS, DEFAULT_MAX_ATTEMPTS
from imagejobs.transport import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ApiTransport


class JobClient:
    """Client for the image jobs API.

    Job methods accept images as bytes, paths or binary file objects and
    return the lazy event stream of :class:`JobLifecycle.run`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.transport = ApiTransport(base_url, api_key=api_key, timeout=timeout, session=session)
        self.interval_ms = interval_ms
        self.max_attempts = max_attempts

    def lifecycle(self, kind: JobKind) -> JobLifecycle:
        return JobLifecycle(
            HttpJobBackend(self.transport, kind),
            kind,
            interval_ms=self.interval_ms,
            max_attempts=self.max_attempts,
        )

    def run(self, payload, cancellation: Optional[Cancellation] = None) -> Iterator[ProgressEvent]:
        return self.lifecycle(payload.kind).run(payload, cancellation)

    def try_on(self, person_image, clothing_image, cancellation=None) -> Iterator[ProgressEvent]:
        payload = TryOnPayload(read_image_bytes(person_image), read_image_bytes(clothing_image))
        return self.lifecycle(TRY_ON).run(payload, cancellation)

    def change_hairstyle(self, person_image, hair_description, cancellation=None) -> Iterator[ProgressEvent]:
        payload = HairstylePayload(read_image_bytes(person_image), hair_description)
        return self.lifecycle(HAIRSTYLE).run(payload, cancellation)

    def generate_figurine(self, character_image, style, cancellation=None) -> Iterator[ProgressEvent]:
        payload = FigurinePayload(read_image_bytes(character_image), style)
        return self.lifecycle(FIGURINE).run(payload, cancellation)

    def figurine_styles(self) -> list:
        return self.transport.figurine_styles()

    def check_health(self) -> bool:
        return self.transport.check_health()


def last_event(events: Iterable[ProgressEvent]) -> Optional[ProgressEvent]:
    """Drain an event stream and return the final event (None if empty)."""
    last = None
    for event in events:
        last = event
    return last
