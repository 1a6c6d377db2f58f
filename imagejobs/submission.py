"""Job submission: send the payload and pull a task id out of the answer."""

import logging

from imagejobs.backend import JobBackend
from imagejobs.errors import SubmissionError, TransportError

logger = logging.getLogger(__name__)

TASK_ID_FIELDS = ("task_id", "taskId", "job_id", "jobId", "id")


def extract_task_id(body) -> str:
    if not isinstance(body, dict) or not body:
        raise SubmissionError("Empty response body")
    for name in TASK_ID_FIELDS:
        value = body.get(name)
        if value not in (None, ""):
            return str(value)
    raise SubmissionError("No task id in response")


def submit(backend: JobBackend, payload) -> str:
    """Start a job and return its task id.

    No retries happen here; every failure is a ``SubmissionError``.
    """
    try:
        body = backend.submit_job(payload)
    except TransportError as exc:
        raise SubmissionError(str(exc)) from exc
    task_id = extract_task_id(body)
    logger.info("Submitted %s job, task id %s", type(payload).__name__, task_id)
    return task_id
