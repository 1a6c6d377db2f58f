import os
import tempfile

import pytest

# The service modules read their folders at import time.
_workdir = tempfile.mkdtemp(prefix="imagejobs-tests-")
os.environ.setdefault("UPLOAD_FOLDER", os.path.join(_workdir, "uploads"))
os.environ.setdefault("RESULT_FOLDER", os.path.join(_workdir, "results"))

from fakes import make_image_bytes  # noqa: E402


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG", size=(8, 6))
