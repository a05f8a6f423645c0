"""Sorting imported screenshots into dashboard and crew list images."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from flight_capture.exceptions import RecognitionError
from flight_capture.ocr_engine import TextRecognizer

CREW_LIST_MARKERS = ("cockpit crew", "cabin crew")
DASHBOARD_MARKERS = ("fmc & ats", "dashboard")
OUT_MARKER_RE = re.compile(r"\bout\b")


class ImageKind(str, Enum):
    DASHBOARD = "dashboard"
    CREW_LIST = "crewList"
    UNKNOWN = "unknown"


def classify_text(text: str) -> ImageKind:
    """Classify a screenshot from the text recognized on the whole image."""
    lower = text.lower()
    if any(marker in lower for marker in CREW_LIST_MARKERS):
        return ImageKind.CREW_LIST
    if any(marker in lower for marker in DASHBOARD_MARKERS) or OUT_MARKER_RE.search(lower):
        return ImageKind.DASHBOARD
    return ImageKind.UNKNOWN


@dataclass(frozen=True)
class ImageAssignment:
    """The images chosen for the flight and crew pipelines."""

    dashboard: np.ndarray
    crew_list: Optional[np.ndarray]
    kinds: List[ImageKind]


class ImageClassifier:
    """Recognizes whole images to decide which screen each one shows."""

    def __init__(self, recognizer: TextRecognizer, logger: logging.Logger) -> None:
        self._recognizer = recognizer
        self._logger = logger

    def classify(self, image: np.ndarray) -> ImageKind:
        try:
            text = self._recognizer.recognize(image)
        except RecognitionError as exc:
            self._logger.warning("Could not classify image: %s", exc)
            return ImageKind.UNKNOWN
        return classify_text(text)

    def assign(self, images: Sequence[np.ndarray]) -> ImageAssignment:
        """Pick the dashboard and crew list images.

        A single image is always treated as the dashboard; its compact crew
        block supplies the crew. With several images the first of each kind
        wins, and the first unclaimed image stands in for a missing
        dashboard.

        Raises:
            ValueError: If ``images`` is empty.
        """
        if not images:
            raise ValueError("At least one image is required")
        if len(images) == 1:
            return ImageAssignment(dashboard=images[0], crew_list=None, kinds=[ImageKind.DASHBOARD])

        kinds = [self.classify(image) for image in images]
        for index, kind in enumerate(kinds, start=1):
            self._logger.info("Image #%d classified as: %s", index, kind.value)

        crew_index = next((i for i, kind in enumerate(kinds) if kind is ImageKind.CREW_LIST), None)
        dashboard_index = next((i for i, kind in enumerate(kinds) if kind is ImageKind.DASHBOARD), None)
        if dashboard_index is None:
            dashboard_index = next(i for i in range(len(images)) if i != crew_index)
            self._logger.warning(
                "No dashboard image recognized; using image #%d", dashboard_index + 1
            )

        return ImageAssignment(
            dashboard=images[dashboard_index],
            crew_list=images[crew_index] if crew_index is not None else None,
            kinds=kinds,
        )
