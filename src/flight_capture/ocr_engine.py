from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Tuple

import cv2
import numpy as np

from flight_capture.config.settings import Settings
from flight_capture.exceptions import NoTextFound, ProcessingFailed
from flight_capture.image_processing import ensure_image
from flight_capture.ocr_engine_factory import OCREngineFactory

TEXT_SEPARATOR = ", "


class TextRecognizer(Protocol):
    """Anything that turns an image into text.

    Implementations raise ``ImageConversionFailed``, ``NoTextFound`` or
    ``ProcessingFailed`` instead of returning empty text.
    """

    def recognize(self, image: np.ndarray) -> str:
        ...


class PaddleTextRecognizer:
    """PaddleOCR-based text recognizer for screen regions.

    Lines found in the image are joined with ", " in detection order, which
    is the token stream the field parsers expect.

    Can be used as a context manager for automatic resource cleanup:
        with PaddleTextRecognizer(settings, logger) as recognizer:
            text = recognizer.recognize(image)
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        engine: Optional[Any] = None,
    ) -> None:
        """Initialize recognizer.

        Args:
            settings: Application settings
            logger: Logger instance
            engine: Pre-built PaddleOCR engine; created from settings if omitted
        """
        self._settings = settings
        self._logger = logger
        self._ocr_engine = engine if engine is not None else OCREngineFactory.create_full_engine(settings, logger)

    def __enter__(self) -> "PaddleTextRecognizer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Clean up OCR engine resources."""
        if self._ocr_engine is not None:
            self._logger.debug("Releasing OCR engine resources")
            self._ocr_engine = None

    def recognize(self, image: np.ndarray) -> str:
        """Recognize all text lines in ``image``.

        Raises:
            ImageConversionFailed: If ``image`` is not a usable array.
            NoTextFound: If no line passes the confidence threshold.
            ProcessingFailed: If PaddleOCR raises or the engine is closed.
        """
        image = ensure_image(image)
        if self._ocr_engine is None:
            raise ProcessingFailed("OCR engine is closed")

        prepared = self._prepare_image(image)
        try:
            ocr_results = self._run_paddle_ocr(prepared)
        except Exception as exc:
            raise ProcessingFailed(f"{type(exc).__name__}: {str(exc)[:200]}") from exc

        lines = self._extract_lines(ocr_results)
        if not lines:
            raise NoTextFound()
        return TEXT_SEPARATOR.join(text for text, _ in lines)

    def _prepare_image(self, image: np.ndarray) -> np.ndarray:
        """Convert to 3-channel BGR and downscale past the safety limit."""
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

        height, width = image.shape[:2]
        max_dimension = self._settings.ocr_max_image_dimension
        if max(width, height) <= max_dimension:
            return image

        scale = max_dimension / float(max(width, height))
        new_width = max(1, int(width * scale))
        new_height = max(1, int(height * scale))
        self._logger.debug(
            "Image too large for OCR (%dx%d). Downscaling to %dx%d (scale=%.3f)",
            width,
            height,
            new_width,
            new_height,
            scale,
        )
        return cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)

    def _run_paddle_ocr(self, image: np.ndarray) -> List[Any]:
        """Execute PaddleOCR on the provided image array."""
        try:
            return self._ocr_engine.ocr(image, cls=True)
        except TypeError as err:
            if "cls" in str(err):
                self._logger.debug("OCR cls parameter not supported, trying without it")
                return self._ocr_engine.ocr(image)
            raise

    def _extract_lines(self, ocr_results: Optional[List[Any]]) -> List[Tuple[str, float]]:
        """Convert PaddleOCR output of either major version to (text, score) pairs."""
        if not ocr_results:
            return []

        page = ocr_results[0]
        if not page:
            return []

        threshold = self._settings.ocr_confidence_threshold
        lines: List[Tuple[str, float]] = []

        # PaddleX OCRResult object (dict-like), PaddleOCR 3.x
        if hasattr(page, "keys"):
            texts = page.get("rec_texts", []) or []
            scores = page.get("rec_scores", []) or []
            for text, score in zip(texts, scores):
                self._append_line(lines, text, score, threshold)
            return lines

        # Standard [bbox, (text, score)] list, PaddleOCR 2.x
        for idx, line_result in enumerate(page):
            try:
                text, score = line_result[1][0], line_result[1][1]
            except (IndexError, TypeError) as exc:
                self._logger.warning("Skipping malformed OCR line %d: %s", idx, exc)
                continue
            self._append_line(lines, text, score, threshold)
        return lines

    def _append_line(
        self,
        lines: List[Tuple[str, float]],
        text: Any,
        score: Any,
        threshold: float,
    ) -> None:
        text = str(text or "").strip()
        confidence = float(score) if score is not None else 0.0
        if not text:
            return
        if confidence < threshold:
            self._logger.debug("Skipping text with low confidence: '%s' (%.3f)", text, confidence)
            return
        lines.append((text, confidence))
