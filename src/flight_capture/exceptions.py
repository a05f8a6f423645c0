"""Exception classes raised inside the flight capture pipeline.

None of these abort a capture session. Per-region failures are caught by the
recognition coordinator and turned into empty, low-confidence results; a
failed date inference is caught by the session and replaced with fallback
timestamps at export time.
"""

from __future__ import annotations

from typing import Optional, Tuple


class FlightCaptureError(Exception):
    """Base class for all pipeline errors."""


class InvalidROI(FlightCaptureError):
    """Raised when a region rectangle does not map onto the image.

    Args:
        name: ROI name, if known.
        pixel_rect: The rescaled ``(x, y, width, height)`` pixel rectangle.
        image_size: The ``(width, height)`` of the image being cropped.
    """

    def __init__(
        self,
        name: Optional[str],
        pixel_rect: Tuple[int, int, int, int],
        image_size: Tuple[int, int],
    ) -> None:
        self.name = name
        self.pixel_rect = pixel_rect
        self.image_size = image_size
        label = f"'{name}'" if name else "region"
        super().__init__(
            f"Invalid ROI {label}: pixel rect {pixel_rect} "
            f"does not fit inside image {image_size[0]}x{image_size[1]}"
        )


class ImageConversionFailed(FlightCaptureError):
    """Raised when a source image cannot be read or is unusable."""

    def __init__(self, reason: str, source: Optional[str] = None) -> None:
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Image conversion failed{where}: {reason}")


class RecognitionError(FlightCaptureError):
    """Base class for text recognition failures."""


class NoTextFound(RecognitionError):
    """Raised when recognition completes without any usable text."""

    def __init__(self, source: Optional[str] = None) -> None:
        self.source = source
        where = f" in '{source}'" if source else ""
        super().__init__(f"No text found{where}")


class ProcessingFailed(RecognitionError):
    """Raised when the recognition engine itself fails.

    Args:
        reason: Human-readable explanation from the engine or pool.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Text recognition failed: {reason}")


class DateInferenceFailed(FlightCaptureError):
    """Raised when no calendar date matches a weekday and day of month.

    Args:
        weekday: The weekday token as recognized (e.g. "Mon").
        day: The day of month, or None if it could not be parsed.
        reason: Why the search failed.
    """

    def __init__(self, weekday: Optional[str], day: Optional[int], reason: str) -> None:
        self.weekday = weekday
        self.day = day
        self.reason = reason
        super().__init__(
            f"Cannot infer date for weekday '{weekday}' and day '{day}': {reason}"
        )
