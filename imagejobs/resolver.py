"""Turn a completed status snapshot into a decoded artifact."""

import base64
import binascii
import json
import logging
from typing import Callable, Optional, Sequence

from imagejobs.backend import with_fallback
from imagejobs.errors import ArtifactDecodeError, ResolutionError, TransportError
from imagejobs.jobs import RESULT_URL_FIELDS
from imagejobs.models import NO_ARTIFACT, Artifact, FetchedContent, JobState, StatusSnapshot
from imagejobs.transport import is_absolute_url

logger = logging.getLogger(__name__)


def is_data_uri(value: str) -> bool:
    return value.startswith("data:image/") and ";base64," in value


def decode_data_uri(value: str, handle: str) -> Artifact:
    header, _, encoded = value.partition(",")
    content_type = header[len("data:"):].split(";", 1)[0]
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ArtifactDecodeError("Failed to decode inline image") from exc
    return Artifact.from_bytes(data, handle, content_type)


class ArtifactResolver:
    """Find and decode the result image of a completed job.

    The first applicable source wins:

    1. an inline ``data:`` reference or direct URL in the snapshot,
    2. the result route for the task id (with its fallback route on 404/405),
    3. for a JSON result body, the first usable URL among ``url_fields``.
    """

    def __init__(
        self,
        fetch_result: Callable[[str], FetchedContent],
        fetch_bytes: Callable[[str], FetchedContent],
        fallback: Optional[Callable[[str], FetchedContent]] = None,
        url_fields: Sequence[str] = RESULT_URL_FIELDS,
    ) -> None:
        self._fetch_result = with_fallback(fetch_result, fallback)
        self._fetch_bytes = fetch_bytes
        self.url_fields = tuple(url_fields)

    def resolve(self, snapshot: StatusSnapshot, handle: str) -> Artifact:
        if snapshot.state is not JobState.COMPLETED:
            raise ValueError(f"cannot resolve an artifact for a {snapshot.state.value} job")

        ref = snapshot.result_ref
        if ref and is_data_uri(ref):
            return decode_data_uri(ref, handle)
        if ref and is_absolute_url(ref):
            logger.info("Task %s: fetching result from %s", handle, ref)
            return self._from_url(ref, handle)

        try:
            content = self._fetch_result(handle)
        except TransportError as exc:
            raise ResolutionError(str(exc)) from exc
        return self._from_content(content, handle)

    def _from_content(self, content: FetchedContent, handle: str) -> Artifact:
        if content.is_image:
            return Artifact.from_bytes(content.data, handle, content.content_type)
        url = self.extract_url(content)
        if url is None:
            raise ResolutionError(NO_ARTIFACT)
        if is_data_uri(url):
            return decode_data_uri(url, handle)
        logger.info("Task %s: result body points to %s", handle, url)
        return self._from_url(url, handle)

    def _from_url(self, url: str, handle: str) -> Artifact:
        try:
            content = self._fetch_bytes(url)
        except TransportError as exc:
            raise ResolutionError(f"Failed to fetch image from result URL: {exc}") from exc
        return Artifact.from_bytes(content.data, handle, content.content_type)

    def extract_url(self, content: FetchedContent) -> Optional[str]:
        try:
            body = json.loads(content.data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None
        if not isinstance(body, dict):
            return None
        for name in self.url_fields:
            value = body.get(name)
            if isinstance(value, str) and (is_absolute_url(value) or is_data_uri(value)):
                return value
        return None
