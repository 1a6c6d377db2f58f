"""Value types shared by the job lifecycle components."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from imagejobs.errors import ArtifactDecodeError, ResolutionError

logger = logging.getLogger(__name__)

NO_ARTIFACT = "no artifact found"


class JobState(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


_STATE_ALIASES = {
    "pending": JobState.PROCESSING,
    "queued": JobState.PROCESSING,
    "processing": JobState.PROCESSING,
    "running": JobState.PROCESSING,
    "in_progress": JobState.PROCESSING,
    "started": JobState.PROCESSING,
    "completed": JobState.COMPLETED,
    "complete": JobState.COMPLETED,
    "done": JobState.COMPLETED,
    "succeeded": JobState.COMPLETED,
    "success": JobState.COMPLETED,
    "failed": JobState.FAILED,
    "failure": JobState.FAILED,
    "error": JobState.FAILED,
}


class StatusSnapshot(BaseModel):
    """One observation of a remote job's status."""

    model_config = ConfigDict(frozen=True)

    state: JobState = Field(validation_alias=AliasChoices("state", "status"))
    message: Optional[str] = None
    result_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("result_ref", "result_url", "resultUrl", "image_url", "imageUrl"),
    )
    error_detail: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("error_detail", "error", "error_message", "detail"),
    )

    @field_validator("state", mode="before")
    @classmethod
    def _parse_state(cls, value):
        if isinstance(value, JobState):
            return value
        state = _STATE_ALIASES.get(str(value).strip().lower())
        if state is None:
            raise ValueError(f"Unknown job status {value!r}")
        return state

    # Fields validate in declaration order, so ``state`` is already in info.data.
    @field_validator("result_ref")
    @classmethod
    def _ref_only_when_completed(cls, value, info: ValidationInfo):
        if info.data.get("state") is not JobState.COMPLETED:
            return None
        return value or None

    @field_validator("error_detail")
    @classmethod
    def _error_only_when_failed(cls, value, info: ValidationInfo):
        if info.data.get("state") is not JobState.FAILED:
            return None
        return value or None

    @property
    def terminal(self) -> bool:
        return self.state is not JobState.PROCESSING


@dataclass(frozen=True)
class FetchedContent:
    data: bytes
    content_type: str = ""

    @property
    def is_image(self) -> bool:
        return "image" in self.content_type

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type


@dataclass(frozen=True)
class Artifact:
    """A decoded result image and the task it belongs to."""

    data: bytes = field(repr=False)
    handle: str
    content_type: str
    format: str
    size: Tuple[int, int]

    @classmethod
    def from_bytes(cls, data: bytes, handle: str, content_type: str = "") -> "Artifact":
        if not data:
            raise ResolutionError(NO_ARTIFACT)
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
                fmt, size = img.format, img.size
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            logger.warning("Artifact for %s is not a valid image: %s", handle, exc)
            raise ArtifactDecodeError("Failed to decode image") from exc
        if not content_type or "image" not in content_type:
            content_type = Image.MIME.get(fmt, "application/octet-stream")
        return cls(data=data, handle=handle, content_type=content_type, format=fmt, size=size)

    def to_image(self) -> Image.Image:
        img = Image.open(io.BytesIO(self.data))
        img.load()
        return img

    def save(self, path) -> None:
        with open(path, "wb") as f:
            f.write(self.data)
