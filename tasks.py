import logging
import os
import re
import time
import uuid

from redis import Redis
from rq import get_current_job

import config
from imagejobs import Cancellation, Error, JobFailedError, JobTimeoutError, Success
from imagejobs.events import event_to_dict
from imagejobs.jobs import PAYLOAD_TYPES, get_kind
from imagejobs.media import read_image_bytes

logger = logging.getLogger(__name__)

CANCEL_KEY = "imagejobs:cancel:{job_id}"
CANCEL_TTL = 3600
SAFE_NAME = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9._-]{0,127}")

# process_job runs inside an RQ worker process. It returns a serializable
# result (dict) and saves the final image to RESULT_FOLDER. Progress events
# are recorded in job.meta so /status can report them while the job runs.


class RedisCancellation(Cancellation):
    """Cancellation flag that is also raised by a key in Redis."""

    def __init__(self, redis_conn, job_id, check_every=0.5):
        super().__init__()
        self._redis = redis_conn
        self._key = CANCEL_KEY.format(job_id=job_id)
        self.check_every = check_every

    @property
    def cancelled(self):
        if self._event.is_set():
            return True
        if self._redis.exists(self._key):
            self._event.set()
            return True
        return False

    def wait(self, seconds):
        deadline = time.monotonic() + seconds
        while not self.cancelled:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self._event.wait(min(remaining, self.check_every))
        return self.cancelled


def request_cancel(redis_conn, job_id):
    redis_conn.set(CANCEL_KEY.format(job_id=job_id), 1, ex=CANCEL_TTL)


def build_payload(kind_name, fields):
    payload_cls = PAYLOAD_TYPES[get_kind(kind_name).name]
    values = {}
    for name in payload_cls.__dataclass_fields__:
        value = fields.get(name)
        if name.endswith("_image") and value:
            value = read_image_bytes(value)
        values[name] = value
    return payload_cls(**values)


def _record(job, event):
    if job is None:
        return
    job.meta.setdefault("events", []).append(event_to_dict(event))
    job.meta["progress"] = event.message
    job.save_meta()


def _save_artifact(artifact):
    ext = "jpg" if artifact.format == "JPEG" else artifact.format.lower()
    # Task ids come from the remote service; only plain names are used on disk.
    stem = artifact.handle if SAFE_NAME.fullmatch(artifact.handle) else uuid.uuid4().hex
    filename = f"{stem}.{ext}"
    os.makedirs(config.RESULT_FOLDER, exist_ok=True)
    artifact.save(os.path.join(config.RESULT_FOLDER, filename))
    return filename


def _error_status(event):
    if isinstance(event.error, JobTimeoutError):
        return "timeout"
    if isinstance(event.error, JobFailedError):
        return "failed"
    return "error"


def process_job(kind_name, fields, cancellation=None):
    job = get_current_job()
    try:
        payload = build_payload(kind_name, fields)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not build {kind_name} payload: {e}")
        return {"status": "error", "details": str(e)}

    if cancellation is None:
        if job is not None:
            cancellation = RedisCancellation(Redis.from_url(config.REDIS_URL), job.id)
        else:
            cancellation = Cancellation()

    client = config.make_client()
    for event in client.run(payload, cancellation):
        _record(job, event)
        if isinstance(event, Success):
            filename = _save_artifact(event.artifact)
            logger.info(f"Saved result of task {event.handle} as {filename}")
            return {
                "status": "completed",
                "task_id": event.handle,
                "local_result": f"/results/{filename}",
            }
        if isinstance(event, Error):
            return {"status": _error_status(event), "details": event.message}

    return {"status": "cancelled"}
