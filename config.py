import os

from dotenv import load_dotenv

from imagejobs import JobClient
from imagejobs.poller import DEFAULT_INTERVAL_MS, DEFAULT_MAX_ATTEMPTS
from imagejobs.transport import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

# Configuration module that centralizes how credentials and tunables are loaded.
# Prefer environment variables (e.g. from .env or your deployment platform).
# For local convenience you may create a `local_secrets.py` file (gitignored) with
# JOBS_API_KEY and JOBS_API_URL values. That file will override env vars.

load_dotenv()

JOBS_API_KEY = os.getenv("JOBS_API_KEY")
JOBS_API_URL = os.getenv("JOBS_API_URL", DEFAULT_BASE_URL)

try:
    # Optional local secrets file (should not be committed)
    import local_secrets as _secrets
    JOBS_API_KEY = getattr(_secrets, "JOBS_API_KEY", JOBS_API_KEY)
    JOBS_API_URL = getattr(_secrets, "JOBS_API_URL", JOBS_API_URL)
except ImportError:
    # No local secrets file present, which is expected in CI / deployed envs.
    pass

POLL_INTERVAL_MS = int(os.getenv("POLL_INTERVAL_MS", DEFAULT_INTERVAL_MS))
MAX_POLL_ATTEMPTS = int(os.getenv("MAX_POLL_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", DEFAULT_TIMEOUT))

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
QUEUE_NAME = "imagejobs"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
RESULT_FOLDER = os.getenv("RESULT_FOLDER", "static/results")


def ensure_config():
    """Return a list of missing required values (empty if ok)."""
    missing = []
    if not JOBS_API_URL:
        missing.append("JOBS_API_URL")
    return missing


def make_client(session=None):
    return JobClient(
        JOBS_API_URL,
        api_key=JOBS_API_KEY,
        interval_ms=POLL_INTERVAL_MS,
        max_attempts=MAX_POLL_ATTEMPTS,
        timeout=REQUEST_TIMEOUT,
        session=session,
    )
