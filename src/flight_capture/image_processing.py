"""Image loading and ROI cropping."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from flight_capture.exceptions import ImageConversionFailed, InvalidROI
from flight_capture.models.flight_data import NormalizedRect


def load_image(path: Path) -> np.ndarray:
    """Load an image file as a BGR array.

    Raises:
        FileNotFoundError: If the file does not exist.
        ImageConversionFailed: If OpenCV cannot decode the file.
    """
    if not path.exists():
        raise FileNotFoundError(f"Input image '{path}' does not exist")

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageConversionFailed(
            "unable to decode file, ensure it is a valid image", source=str(path)
        )
    return image


def ensure_image(image: object) -> np.ndarray:
    """Check that ``image`` is a non-empty 2D or 3D pixel array."""
    if image is None:
        raise ImageConversionFailed("image is None")
    if not isinstance(image, np.ndarray):
        raise ImageConversionFailed(f"expected numpy array, got {type(image).__name__}")
    if image.ndim not in (2, 3):
        raise ImageConversionFailed(f"expected 2D or 3D array, got {image.ndim}D")
    if image.size == 0 or image.shape[0] == 0 or image.shape[1] == 0:
        raise ImageConversionFailed("image is empty")
    return image


def to_pixel_rect(rect: NormalizedRect, image_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Rescale a normalized rect to ``(x, y, width, height)`` in pixels."""
    width, height = image_size
    # Round the corners, not the extent, so the far edge never overshoots
    x1 = int(round(rect.x * width))
    y1 = int(round(rect.y * height))
    x2 = int(round((rect.x + rect.width) * width))
    y2 = int(round((rect.y + rect.height) * height))
    return x1, y1, x2 - x1, y2 - y1


def crop(image: np.ndarray, rect: NormalizedRect, name: Optional[str] = None) -> np.ndarray:
    """Cut the region described by ``rect`` out of ``image``.

    Args:
        image: Source image (BGR or grayscale).
        rect: Normalized rectangle to rescale onto the image.
        name: Optional ROI name used in error messages.

    Returns:
        A copy of the cropped pixels. The source image is not modified.

    Raises:
        ImageConversionFailed: If ``image`` is not a usable array.
        InvalidROI: If the rescaled rectangle is empty or leaves the image.
    """
    image = ensure_image(image)
    img_height, img_width = image.shape[:2]
    x, y, w, h = to_pixel_rect(rect, (img_width, img_height))

    if w <= 0 or h <= 0:
        raise InvalidROI(name, (x, y, w, h), (img_width, img_height))
    if x < 0 or y < 0 or x + w > img_width or y + h > img_height:
        raise InvalidROI(name, (x, y, w, h), (img_width, img_height))

    return image[y:y + h, x:x + w].copy()
