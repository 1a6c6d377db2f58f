from flask import Flask, request, jsonify, send_from_directory
import logging
import os
import uuid
from rq import Queue
from rq.job import Job
from rq.exceptions import NoSuchJobError
from redis import Redis
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_cors import CORS
from PIL import UnidentifiedImageError

import config
from imagejobs import TransportError
from imagejobs.jobs import FIGURINE, HAIRSTYLE, TRY_ON
from imagejobs.media import allowed_file, save_as_jpg
from tasks import process_job, request_cancel

# API-only mode: don't serve a frontend. Results are saved under RESULT_FOLDER.
app = Flask(__name__)
# Enable CORS so a frontend (hosted on a different origin) can call the API
CORS(app)
# Basic logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Rate limiting (basic, in-memory/redis-backed depending on config)
limiter = Limiter(key_func=get_remote_address, default_limits=["60 per hour"])
limiter.init_app(app)
UPLOAD_FOLDER = config.UPLOAD_FOLDER
RESULT_FOLDER = config.RESULT_FOLDER
os.makedirs(UPLOAD_FOLDER, exist_ok=True)
os.makedirs(RESULT_FOLDER, exist_ok=True)

# Hardening: limit upload size to 16 MB
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16 MB

# Redis + RQ queue used for background processing
redis_conn = Redis.from_url(config.REDIS_URL)
task_queue = Queue(config.QUEUE_NAME, connection=redis_conn)

client = config.make_client()

missing = config.ensure_config()
if missing:
    logger.warning(f"Missing configuration: {', '.join(missing)}")


def _save_upload(upload, prefix):
    return save_as_jpg(upload.stream, UPLOAD_FOLDER, f"{prefix}_{uuid.uuid4().hex[:12]}")


def _enqueue(kind, fields):
    job = task_queue.enqueue(process_job, kind.name, fields)
    logger.info(f"Enqueued {kind.name} job {job.id} with {fields}")
    return jsonify({"status": "accepted", "job_id": job.id}), 202


def _check_uploads(*uploads):
    """Return an error response for missing or unsupported files, else None."""
    if not all(uploads):
        return jsonify({"error": "Missing images"}), 400
    if not all(allowed_file(u.filename) for u in uploads):
        return jsonify({"error": "Invalid file type"}), 400
    return None


@app.route("/")
def home():
    return jsonify({
        "message": "Image jobs API is running. Submit a job, then poll /status/<job_id>.",
        "routes": {
            "/tryon": "POST - form-data: person_image (file), clothing_image (file)",
            "/hairstyle": "POST - form-data: person_image (file), hair_description (text)",
            "/figurine": "POST - form-data: character_image (file), style (text)",
            "/figurine/styles": "GET - available figurine styles",
            "/status/<job_id>": "GET - job status and progress events",
            "/cancel/<job_id>": "POST - cancel a queued or running job",
            "/results/<filename>": "GET - retrieve generated result image",
        }
    })


@app.route("/health")
def health():
    return jsonify({"status": "ok", "upstream": client.check_health()})


@app.route("/download/results/<filename>")
def download_local_result(filename):
    """Return a locally saved result image as a downloadable attachment."""
    local_path = os.path.join(RESULT_FOLDER, filename)
    if not os.path.exists(local_path):
        return jsonify({"error": "File not found"}), 404
    return send_from_directory(os.path.abspath(RESULT_FOLDER), filename, as_attachment=True)


@app.route("/tryon", methods=["POST"])
@limiter.limit("20/hour")
def tryon():
    """Enqueue a try-on job and return job id immediately (202)."""
    person = request.files.get("person_image")
    clothing = request.files.get("clothing_image")
    error = _check_uploads(person, clothing)
    if error:
        return error
    try:
        fields = {
            "person_image": _save_upload(person, "person"),
            "clothing_image": _save_upload(clothing, "clothing"),
        }
    except UnidentifiedImageError:
        return jsonify({"error": "Unreadable image"}), 400
    return _enqueue(TRY_ON, fields)


@app.route("/hairstyle", methods=["POST"])
@limiter.limit("20/hour")
def hairstyle():
    person = request.files.get("person_image")
    description = (request.form.get("hair_description") or "").strip()
    error = _check_uploads(person)
    if error:
        return error
    if not description:
        return jsonify({"error": "Missing hair_description"}), 400
    try:
        fields = {"person_image": _save_upload(person, "person"), "hair_description": description}
    except UnidentifiedImageError:
        return jsonify({"error": "Unreadable image"}), 400
    return _enqueue(HAIRSTYLE, fields)


@app.route("/figurine", methods=["POST"])
@limiter.limit("20/hour")
def figurine():
    character = request.files.get("character_image")
    style = (request.form.get("style") or "").strip()
    error = _check_uploads(character)
    if error:
        return error
    if not style:
        return jsonify({"error": "Missing style"}), 400

    try:
        styles = client.figurine_styles()
    except TransportError as e:
        # Let the remote service reject unknown styles itself.
        logger.warning(f"Could not fetch figurine styles: {e}")
        styles = None
    if styles and style not in styles:
        return jsonify({"error": "Unknown style", "styles": styles}), 400

    try:
        fields = {"character_image": _save_upload(character, "character"), "style": style}
    except UnidentifiedImageError:
        return jsonify({"error": "Unreadable image"}), 400
    return _enqueue(FIGURINE, fields)


@app.route("/figurine/styles")
def figurine_styles():
    try:
        return jsonify({"styles": client.figurine_styles()})
    except TransportError as e:
        return jsonify({"error": "Failed to fetch styles", "details": str(e)}), 502


@app.route("/results/<filename>")
def serve_result(filename):
    return send_from_directory(os.path.abspath(RESULT_FOLDER), filename)


@app.route("/status/<job_id>")
def job_status(job_id):
    """Return RQ job status, recorded progress events and result (if available)."""
    try:
        job = Job.fetch(job_id, connection=redis_conn)
    except NoSuchJobError:
        return jsonify({"error": "Job not found"}), 404

    status = job.get_status()
    resp = {
        "id": job.get_id(),
        "status": getattr(status, "value", status),
        "progress": job.meta.get("progress"),
        "events": job.meta.get("events", []),
    }
    if job.is_finished:
        resp["result"] = job.return_value()
    if job.is_failed:
        result = job.latest_result()
        resp["error"] = result.exc_string if result else "Job failed"
    return jsonify(resp)


@app.route("/cancel/<job_id>", methods=["POST"])
def cancel_job(job_id):
    try:
        job = Job.fetch(job_id, connection=redis_conn)
    except NoSuchJobError:
        return jsonify({"error": "Job not found"}), 404

    if job.is_queued:
        job.cancel()
    request_cancel(redis_conn, job_id)
    logger.info(f"Cancellation requested for job {job_id}")
    return jsonify({"status": "cancelling", "job_id": job_id}), 202


if __name__ == "__main__":
    port = int(os.getenv('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
