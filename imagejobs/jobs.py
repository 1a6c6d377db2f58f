"""Job kinds supported by the remote service and their submission payloads.

The controller is generic; a ``JobKind`` only says which routes to call,
how to phrase progress messages and which result fields to look at. The
payload classes know how to turn themselves into multipart form parts.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from imagejobs.errors import SubmissionError

RESULT_URL_FIELDS = ("result_url", "result", "image_url", "url", "output_url")

STATUS_ROUTE = "status/{task_id}"
RESULT_ROUTE = "result/{task_id}"


@dataclass(frozen=True)
class JobKind:
    name: str
    title: str
    submit_route: str
    status_route: str = STATUS_ROUTE
    result_route: str = RESULT_ROUTE
    status_fallback_route: Optional[str] = None
    result_fallback_route: Optional[str] = None
    result_url_fields: Tuple[str, ...] = RESULT_URL_FIELDS

    @property
    def failed_text(self) -> str:
        return f"{self.title.capitalize()} job failed"

    @property
    def timeout_text(self) -> str:
        return f"{self.title.capitalize()} job timed out. Please try again."


TRY_ON = JobKind(name="tryon", title="virtual try-on", submit_route="try-on/")
HAIRSTYLE = JobKind(name="hairstyle", title="hairstyle change", submit_route="hair-style/")
FIGURINE = JobKind(
    name="figurine",
    title="3D figurine generation",
    submit_route="figurine/",
    status_fallback_route="figurine/status/{task_id}",
    result_fallback_route="figurine/result/{task_id}",
)

JOB_KINDS: Dict[str, JobKind] = {kind.name: kind for kind in (TRY_ON, HAIRSTYLE, FIGURINE)}


def get_kind(name: str) -> JobKind:
    try:
        return JOB_KINDS[name]
    except KeyError:
        raise ValueError(f"Unknown job kind {name!r}") from None


def _image_part(field: str, data: bytes):
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise SubmissionError(f"{field} is empty or unreadable")
    return (f"{field}.jpg", bytes(data), "image/jpeg")


def _text_field(field: str, value: str) -> str:
    if not value or not str(value).strip():
        raise SubmissionError(f"{field} is required")
    return str(value).strip()


@dataclass(frozen=True)
class TryOnPayload:
    person_image: bytes
    clothing_image: bytes
    kind = TRY_ON

    def to_multipart(self):
        files = {
            "person_image": _image_part("person_image", self.person_image),
            "clothing_image": _image_part("clothing_image", self.clothing_image),
        }
        return files, {}


@dataclass(frozen=True)
class HairstylePayload:
    person_image: bytes
    hair_description: str
    kind = HAIRSTYLE

    def to_multipart(self):
        files = {"person_image": _image_part("person_image", self.person_image)}
        return files, {"hair_description": _text_field("hair_description", self.hair_description)}


@dataclass(frozen=True)
class FigurinePayload:
    character_image: bytes
    style: str
    kind = FIGURINE

    def to_multipart(self):
        files = {"character_image": _image_part("character_image", self.character_image)}
        return files, {"style": _text_field("style", self.style)}


PAYLOAD_TYPES = {
    TRY_ON.name: TryOnPayload,
    HAIRSTYLE.name: HairstylePayload,
    FIGURINE.name: FigurinePayload,
}
