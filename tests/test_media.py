import io

import pytest
from PIL import Image, UnidentifiedImageError

from fakes import make_image_bytes
from imagejobs.media import allowed_file, prepare_image, read_image_bytes, save_as_jpg


def size_of(data):
    with Image.open(io.BytesIO(data)) as img:
        return img.format, img.size


def test_small_image_is_scaled_up_to_min_dim():
    assert size_of(prepare_image(make_image_bytes(size=(128, 64)))) == ("JPEG", (1024, 512))


def test_large_image_is_scaled_down_to_max_dim():
    assert size_of(prepare_image(make_image_bytes(size=(2400, 1800)))) == ("JPEG", (1200, 900))


def test_min_dim_wins_over_max_dim():
    # A very wide image cannot satisfy both bounds.
    assert size_of(prepare_image(make_image_bytes(size=(2048, 128)))) == ("JPEG", (8192, 512))


def test_in_range_image_keeps_size():
    assert size_of(prepare_image(make_image_bytes(size=(800, 600)))) == ("JPEG", (800, 600))


def test_save_as_jpg(tmp_path):
    path = save_as_jpg(io.BytesIO(make_image_bytes(size=(600, 600))), str(tmp_path), "person_1")
    assert path.endswith("person_1.jpg")
    with Image.open(path) as img:
        assert img.format == "JPEG"


def test_allowed_file():
    assert allowed_file("a.PNG")
    assert allowed_file("x.y.webp")
    assert not allowed_file("noext")
    assert not allowed_file(None)
    assert not allowed_file("a.bmp")


def test_read_image_bytes(tmp_path):
    path = tmp_path / "x.bin"
    path.write_bytes(b"abc")
    assert read_image_bytes(str(path)) == b"abc"
    assert read_image_bytes(io.BytesIO(b"def")) == b"def"
    assert read_image_bytes(bytearray(b"g")) == b"g"


def test_unreadable_image_leaves_no_file(tmp_path):
    with pytest.raises(UnidentifiedImageError):
        save_as_jpg(io.BytesIO(b"not an image"), str(tmp_path), "person_2")
    assert list(tmp_path.iterdir()) == []
