import numpy as np
import pytest

from ecosort.exceptions import InvalidInputError
from ecosort.image_input import is_image_filename, load_upload


def test_load_from_path(tmp_path, png_bytes):
    path = tmp_path / "plastic-bottle.png"
    path.write_bytes(png_bytes)

    upload = load_upload(str(path))
    assert upload.image.shape == (240, 320, 3)
    assert upload.metadata.filename == "plastic-bottle.png"
    assert upload.metadata.file_size == len(png_bytes)
    assert upload.metadata.dimensions == (320, 240)
    assert upload.metadata.content_type == "image/png"


def test_load_from_bytes_keeps_original_name(png_bytes):
    upload = load_upload(png_bytes, filename="banana-peel.png", content_type="image/png")
    assert upload.metadata.filename == "banana-peel.png"


def test_grayscale_array_is_converted():
    upload = load_upload(np.zeros((50, 60), dtype=np.uint8), filename="gray.png")
    assert upload.image.shape == (50, 60, 3)
    assert upload.metadata.dimensions == (60, 50)


def test_missing_file(tmp_path):
    with pytest.raises(InvalidInputError) as exc_info:
        load_upload(str(tmp_path / "nope.jpg"))
    assert exc_info.value.remediation


def test_non_image_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(InvalidInputError) as exc_info:
        load_upload(str(path))
    assert "plastic-bottle.jpg" in exc_info.value.remediation


def test_non_image_content_type(png_bytes):
    with pytest.raises(InvalidInputError):
        load_upload(png_bytes, filename="upload", content_type="application/pdf")


def test_undecodable_bytes():
    with pytest.raises(InvalidInputError):
        load_upload(b"\x00\x01\x02 definitely not a jpeg", filename="photo.jpg")


def test_empty_array():
    with pytest.raises(InvalidInputError):
        load_upload(np.zeros((0, 0, 3), dtype=np.uint8))


def test_unsupported_source_type():
    with pytest.raises(InvalidInputError):
        load_upload(12345)


@pytest.mark.parametrize("name,expected", [
    ("a.JPG", True), ("b.webp", True), ("c.png", True), ("d.txt", False), ("", False),
])
def test_is_image_filename(name, expected):
    assert is_image_filename(name) is expected
