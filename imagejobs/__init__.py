from imagejobs.cancellation import Cancellation
from imagejobs.client import JobClient, last_event
from imagejobs.errors import (
    ArtifactDecodeError,
    JobError,
    JobFailedError,
    JobTimeoutError,
    ResolutionError,
    StatusError,
    SubmissionError,
    TransportError,
)
from imagejobs.events import Error, Loading, ProgressEvent, Success
from imagejobs.jobs import JOB_KINDS, FigurinePayload, HairstylePayload, TryOnPayload
from imagejobs.lifecycle import JobLifecycle
from imagejobs.models import Artifact, JobState, StatusSnapshot

__version__ = "0.1.0"
