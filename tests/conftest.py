import io
import pytest
import sys
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import photosheet
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())


def encode_image(img: Image.Image, fmt: str, **params) -> bytes:
    """Encode a PIL image to bytes in the given format."""
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


# Common test fixtures
@pytest.fixture
def sample_image():
    """A 200x100 landscape image: red left half, blue right half."""
    img = Image.new("RGB", (200, 100), color="red")
    img.paste((0, 0, 255), (100, 0, 200, 100))
    return img


@pytest.fixture
def jpeg_bytes(sample_image):
    return encode_image(sample_image, "JPEG", quality=90)


@pytest.fixture
def png_bytes(sample_image):
    return encode_image(sample_image, "PNG")


@pytest.fixture
def sample_image_path(tmp_path: Path, jpeg_bytes):
    """Sample JPEG written to disk."""
    img_path = tmp_path / "sample.jpg"
    img_path.write_bytes(jpeg_bytes)
    return img_path


@pytest.fixture
def store():
    """Fresh DocumentStore with its own handle registry."""
    from photosheet.editor import DocumentStore
    return DocumentStore()


@pytest.fixture
def custom_store(store):
    """Store on the custom-portrait template."""
    store.set_template("custom-portrait")
    return store
