import io
import os

from PIL import Image

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_file(filename) -> bool:
    fn = filename or ""
    return "." in fn and fn.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def prepare_image(source, max_dim=1200, min_dim=512) -> bytes:
    """Load an image (path, file object or bytes) and re-encode it as JPEG.

    The image is scaled so the short side reaches ``min_dim`` and the long
    side stays within ``max_dim``; when both can't hold, the minimum wins.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    elif isinstance(source, (str, os.PathLike)):
        source = os.fspath(source)
    img = Image.open(source).convert("RGB")

    # Calculate ratios for both min and max constraints
    max_ratio = min(max_dim / max(img.size[0], img.size[1]), 1.0)
    min_ratio = max(min_dim / min(img.size[0], img.size[1]), 1.0)

    ratio = min_ratio if min_ratio > 1.0 else max_ratio
    new_size = tuple(int(dim * ratio) for dim in img.size)
    if new_size != img.size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return buf.getvalue()


def save_as_jpg(source, folder, name_prefix, max_dim=1200, min_dim=512) -> str:
    """Prepare an image and store it as ``<folder>/<name_prefix>.jpg``."""
    data = prepare_image(source, max_dim=max_dim, min_dim=min_dim)
    jpg_path = os.path.join(folder, f"{name_prefix}.jpg")
    with open(jpg_path, "wb") as f:
        f.write(data)
    return jpg_path


def read_image_bytes(source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if hasattr(source, "read"):
        return source.read()
    with open(source, "rb") as f:
        return f.read()
