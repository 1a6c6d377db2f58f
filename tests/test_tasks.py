import os

import pytest

import config
import tasks
from fakes import FakeResponse, FakeSession
from imagejobs import Artifact, Cancellation, JobClient
from imagejobs.jobs import FigurinePayload, HairstylePayload, TryOnPayload

BASE = "http://api.test/"


class FakeRedis:
    def __init__(self):
        self.store = {}

    def exists(self, key):
        return int(key in self.store)

    def set(self, key, value, ex=None):
        self.store[key] = value


@pytest.fixture
def images(tmp_path, png_bytes):
    path = tmp_path / "in.jpg"
    path.write_bytes(png_bytes)
    return str(path)


@pytest.fixture
def use_routes(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "RESULT_FOLDER", str(tmp_path / "results"))

    def install(routes):
        client = JobClient(BASE, interval_ms=0, max_attempts=3, session=FakeSession(routes))
        monkeypatch.setattr(config, "make_client", lambda session=None: client)
        return client

    return install


def test_build_payload_reads_images(images, png_bytes):
    payload = tasks.build_payload("tryon", {"person_image": images, "clothing_image": images})
    assert payload == TryOnPayload(png_bytes, png_bytes)
    payload = tasks.build_payload("hairstyle", {"person_image": images, "hair_description": "bob"})
    assert isinstance(payload, HairstylePayload)
    payload = tasks.build_payload("figurine", {"character_image": images, "style": "anime"})
    assert isinstance(payload, FigurinePayload)


def test_process_job_saves_result(use_routes, images, png_bytes, tmp_path):
    use_routes({
        ("POST", BASE + "try-on/"): FakeResponse(json_body={"task_id": "abc"}),
        ("GET", BASE + "status/abc"): FakeResponse(json_body={"status": "completed"}),
        ("GET", BASE + "result/abc"): FakeResponse(content=png_bytes, content_type="image/png"),
    })
    result = tasks.process_job("tryon", {"person_image": images, "clothing_image": images})
    assert result == {"status": "completed", "task_id": "abc", "local_result": "/results/abc.png"}
    assert (tmp_path / "results" / "abc.png").read_bytes() == png_bytes


def test_process_job_timeout(use_routes, images):
    use_routes({
        ("POST", BASE + "try-on/"): FakeResponse(json_body={"task_id": "abc"}),
        ("GET", BASE + "status/abc"): FakeResponse(json_body={"status": "processing"}),
    })
    result = tasks.process_job("tryon", {"person_image": images, "clothing_image": images})
    assert result["status"] == "timeout"


def test_process_job_remote_failure(use_routes, images):
    use_routes({
        ("POST", BASE + "hair-style/"): FakeResponse(json_body={"task_id": "h"}),
        ("GET", BASE + "status/h"): FakeResponse(json_body={"status": "failed", "error": "model overloaded"}),
    })
    result = tasks.process_job("hairstyle", {"person_image": images, "hair_description": "bob"})
    assert result == {"status": "failed", "details": "model overloaded"}


def test_process_job_submission_error(use_routes, images):
    use_routes({})
    result = tasks.process_job("figurine", {"character_image": images, "style": "anime"})
    assert result["status"] == "error"
    assert "404" in result["details"]


def test_process_job_missing_file(use_routes, tmp_path):
    use_routes({})
    result = tasks.process_job("tryon", {"person_image": str(tmp_path / "nope.jpg"), "clothing_image": "x"})
    assert result["status"] == "error"


def test_process_job_unknown_kind(use_routes):
    assert tasks.process_job("teleport", {})["status"] == "error"


def test_process_job_cancelled(use_routes, images):
    client = use_routes({
        ("POST", BASE + "try-on/"): FakeResponse(json_body={"task_id": "abc"}),
    })
    cancellation = Cancellation()
    cancellation.cancel()
    result = tasks.process_job("tryon", {"person_image": images, "clothing_image": images}, cancellation)
    assert result == {"status": "cancelled"}
    assert client.transport.session.requests == []


def test_redis_cancellation():
    redis_conn = FakeRedis()
    cancellation = tasks.RedisCancellation(redis_conn, "job-1", check_every=0.01)
    assert not cancellation.wait(0.02)
    tasks.request_cancel(redis_conn, "job-1")
    assert cancellation.cancelled
    assert cancellation.wait(10)


@pytest.mark.parametrize("handle", ["../escaped", "a/b", ".hidden", "..", "/abs"])
def test_saved_result_stays_in_results_folder(monkeypatch, tmp_path, png_bytes, handle):
    results = tmp_path / "results"
    monkeypatch.setattr(config, "RESULT_FOLDER", str(results))
    filename = tasks._save_artifact(Artifact.from_bytes(png_bytes, handle))
    assert os.path.basename(filename) == filename
    assert filename.endswith(".png")
    assert (results / filename).read_bytes() == png_bytes
    assert sorted(p.name for p in tmp_path.iterdir()) == ["results"]


def test_plain_task_id_names_the_file(monkeypatch, tmp_path, png_bytes):
    monkeypatch.setattr(config, "RESULT_FOLDER", str(tmp_path))
    assert tasks._save_artifact(Artifact.from_bytes(png_bytes, "task_1.v2-abc")) == "task_1.v2-abc.png"
