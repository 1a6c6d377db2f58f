"""requests-based HTTP transport for the image jobs API."""

import logging
from typing import Any, Optional
from urllib.parse import urljoin

import requests

from imagejobs.errors import TransportError
from imagejobs.models import FetchedContent

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://35.226.2.144/"
DEFAULT_TIMEOUT = 30


def is_absolute_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


class ApiTransport:
    """Thin wrapper over a ``requests.Session`` bound to one base URL.

    Every failure (network error, non-2xx answer, missing or unparseable
    body) comes out as ``TransportError`` so callers only handle one type.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def url_for(self, route: str) -> str:
        if is_absolute_url(route):
            return route
        return urljoin(self.base_url, route.lstrip("/"))

    def _request(self, method: str, route: str, **kwargs) -> requests.Response:
        url = self.url_for(route)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransportError(None, f"{type(e).__name__}: {e}") from e
        if not resp.ok:
            logger.warning("%s %s returned %s", method, url, resp.status_code)
            raise TransportError(resp.status_code, resp.reason or "")
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        if not resp.content:
            raise TransportError(None, "Empty response body")
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(None, "Invalid JSON body") from e

    def post_multipart(self, route: str, files: dict, data: Optional[dict] = None) -> Any:
        return self._json(self._request("POST", route, files=files, data=data or {}))

    def get_json(self, route: str) -> Any:
        return self._json(self._request("GET", route))

    def get_content(self, route: str) -> FetchedContent:
        resp = self._request("GET", route)
        content_type = resp.headers.get("Content-Type", "").lower()
        return FetchedContent(data=resp.content or b"", content_type=content_type)

    def figurine_styles(self) -> list:
        body = self.get_json("figurine/styles")
        if isinstance(body, dict):
            body = body.get("styles", [])
        if not isinstance(body, list):
            raise TransportError(None, "Unexpected styles payload")
        return [str(s) for s in body]

    def check_health(self) -> bool:
        try:
            self._request("GET", "")
        except TransportError:
            return False
        return True
