"""
Image upload handling
Validates and decodes uploaded images from file paths, raw bytes or arrays
before any classifier sees them
"""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from .exceptions import InvalidInputError
from .models.fallback import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, np.ndarray]


@dataclass
class FileMetadata:
    """What is known about the uploaded file besides its pixels"""
    filename: str
    file_size: int = 0
    dimensions: Optional[Tuple[int, int]] = None  # (width, height)
    content_type: Optional[str] = None


@dataclass
class ImageUpload:
    image: np.ndarray
    metadata: FileMetadata


def is_image_filename(filename: str) -> bool:
    """True when the extension or guessed MIME type names an image"""
    if not filename:
        return False
    if Path(filename).suffix.lower() in IMAGE_EXTENSIONS:
        return True
    content_type, _ = mimetypes.guess_type(filename)
    return bool(content_type and content_type.startswith("image/"))


def decode_image(data: Union[bytes, bytearray]) -> Optional[np.ndarray]:
    """Decode encoded image bytes to a BGR array, None if undecodable"""
    if not data:
        return None
    buffer = np.frombuffer(bytes(data), dtype=np.uint8)
    try:
        return cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    except cv2.error as e:
        logger.warning(f"OpenCV could not decode image: {e}")
        return None


def _check_array(image: np.ndarray, filename: str) -> np.ndarray:
    if image.size == 0 or image.ndim not in (2, 3):
        raise InvalidInputError(f"'{filename}' does not contain image data")
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image


def load_upload(source: ImageSource, filename: Optional[str] = None,
                content_type: Optional[str] = None) -> ImageUpload:
    """
    Validate and decode an uploaded image

    Args:
        source: File path, encoded image bytes, or an already decoded array
        filename: Original upload name, defaults to the path name
        content_type: MIME type reported by the uploader, if any

    Returns:
        ImageUpload with the decoded BGR image and file metadata

    Raises:
        InvalidInputError: if the file is not an image or cannot be decoded
    """
    if isinstance(source, np.ndarray):
        name = filename or "upload.png"
        image = _check_array(source, name)
        height, width = image.shape[:2]
        return ImageUpload(image, FileMetadata(name, int(image.nbytes), (width, height), content_type))

    if isinstance(source, (str, Path)):
        path = Path(source)
        name = filename or path.name
        if not path.is_file():
            raise InvalidInputError(f"File not found: {path}",
                                    "Check the path and select an existing image file.")
        data = path.read_bytes()
    elif isinstance(source, (bytes, bytearray)):
        name = filename or "upload"
        data = bytes(source)
    else:
        raise InvalidInputError(f"Unsupported image source: {type(source).__name__}")

    if content_type and not content_type.startswith("image/"):
        raise InvalidInputError(f"'{name}' is {content_type}, not an image")
    if filename or isinstance(source, (str, Path)):
        if Path(name).suffix and not is_image_filename(name):
            raise InvalidInputError(f"'{name}' is not an image file")

    image = decode_image(data)
    if image is None:
        raise InvalidInputError(
            f"Could not decode '{name}' as an image",
            "The file may be corrupted. Try re-saving it as JPG or PNG.",
        )

    height, width = image.shape[:2]
    guessed_type = content_type or mimetypes.guess_type(name)[0]
    return ImageUpload(image, FileMetadata(name, len(data), (width, height), guessed_type))
