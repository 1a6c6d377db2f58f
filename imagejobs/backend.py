"""Capabilities the lifecycle controller consumes, and their HTTP binding."""

import logging
from typing import Any, Callable, Optional, TypeVar

from imagejobs.errors import TransportError
from imagejobs.jobs import JobKind
from imagejobs.models import FetchedContent
from imagejobs.transport import ApiTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_fallback(
    primary: Callable[[str], T], fallback: Optional[Callable[[str], T]]
) -> Callable[[str], T]:
    """Wrap ``primary`` so a 404/405 answer is retried once via ``fallback``.

    Any other error, and any error raised by the fallback itself, propagates
    unchanged. With no fallback the primary function is returned as is.
    """
    if fallback is None:
        return primary

    def fetch(task_id: str) -> T:
        try:
            return primary(task_id)
        except TransportError as exc:
            if not exc.route_missing:
                raise
            logger.info("Primary route for %s answered %s, trying fallback", task_id, exc.status_code)
            return fallback(task_id)

    return fetch


class JobBackend:
    """Remote capabilities for one job kind.

    ``fetch_status_fallback`` and ``fetch_result_fallback`` stay ``None``
    when the kind has no alternate route.
    """

    fetch_status_fallback: Optional[Callable[[str], Any]] = None
    fetch_result_fallback: Optional[Callable[[str], FetchedContent]] = None

    def submit_job(self, payload) -> Any:
        raise NotImplementedError

    def fetch_status(self, task_id: str) -> Any:
        raise NotImplementedError

    def fetch_result(self, task_id: str) -> FetchedContent:
        raise NotImplementedError

    def fetch_bytes(self, url: str) -> FetchedContent:
        raise NotImplementedError


class HttpJobBackend(JobBackend):
    def __init__(self, transport: ApiTransport, kind: JobKind) -> None:
        self.transport = transport
        self.kind = kind
        if kind.status_fallback_route:
            self.fetch_status_fallback = self._fetch_status_fallback
        if kind.result_fallback_route:
            self.fetch_result_fallback = self._fetch_result_fallback

    def submit_job(self, payload) -> Any:
        files, data = payload.to_multipart()
        return self.transport.post_multipart(self.kind.submit_route, files, data)

    def fetch_status(self, task_id: str) -> Any:
        return self.transport.get_json(self.kind.status_route.format(task_id=task_id))

    def _fetch_status_fallback(self, task_id: str) -> Any:
        return self.transport.get_json(self.kind.status_fallback_route.format(task_id=task_id))

    def fetch_result(self, task_id: str) -> FetchedContent:
        return self.transport.get_content(self.kind.result_route.format(task_id=task_id))

    def _fetch_result_fallback(self, task_id: str) -> FetchedContent:
        return self.transport.get_content(self.kind.result_fallback_route.format(task_id=task_id))

    def fetch_bytes(self, url: str) -> FetchedContent:
        return self.transport.get_content(url)
