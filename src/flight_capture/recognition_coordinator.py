"""Fan-out/fan-in recognition of many screen regions of one image."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from flight_capture.config.settings import Settings
from flight_capture.exceptions import FlightCaptureError
from flight_capture.image_processing import crop
from flight_capture.models.flight_data import ROIDefinition
from flight_capture.ocr_engine import TextRecognizer

TIMEOUT_ERROR = "Timeout"


@dataclass(frozen=True)
class RoiOutcome:
    """Recognized text for one region, or the reason it is empty."""

    roi: ROIDefinition
    text: str
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class BatchResult:
    """All region outcomes of one run, in catalog order."""

    outcomes: Tuple[RoiOutcome, ...]
    completed: int
    duration_seconds: float

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.failed)

    def texts(self) -> Dict[str, str]:
        return {outcome.roi.name: outcome.text for outcome in self.outcomes}


ResultCallback = Callable[[RoiOutcome], None]
CompleteCallback = Callable[[BatchResult], None]


class RecognitionCoordinator:
    """Runs one recognition request per region concurrently and joins them.

    Every region is submitted before any result is read. Results are consumed
    on the calling thread as they finish, so that thread is the only writer of
    the completion counter. A failing region counts as finished with empty
    text; it never aborts the batch and is never retried.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        recognizer: TextRecognizer,
        name: str = "recognition",
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._recognizer = recognizer
        self._name = name

    def run(
        self,
        image: np.ndarray,
        rois: Sequence[ROIDefinition],
        on_result: Optional[ResultCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
    ) -> BatchResult:
        """Recognize every region of ``image``.

        Args:
            image: Source image.
            rois: Regions to crop and recognize.
            on_result: Called once per region as it finishes, in completion order.
            on_complete: Called exactly once when all regions have finished.

        Returns:
            BatchResult with one outcome per region in ``rois`` order.
        """
        start_time = time.perf_counter()
        total = len(rois)
        outcomes: Dict[int, RoiOutcome] = {}
        completed = 0

        def record(index: int, outcome: RoiOutcome) -> None:
            nonlocal completed
            outcomes[index] = outcome
            completed += 1
            if on_result is not None:
                on_result(outcome)

        if total:
            self._logger.info("[%s] Recognizing %d regions...", self._name, total)
            workers = min(self._settings.recognition_workers, total)
            executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=workers,
                thread_name_prefix=f"{self._name}-roi",
            )
            try:
                futures = {
                    executor.submit(self._recognize_roi, image, roi): index
                    for index, roi in enumerate(rois)
                }
                timeout = self._settings.recognition_timeout_seconds or None
                try:
                    for future in concurrent.futures.as_completed(futures, timeout=timeout):
                        record(futures[future], future.result())
                except concurrent.futures.TimeoutError:
                    pending = [index for index in futures.values() if index not in outcomes]
                    self._logger.warning(
                        "[%s] %d of %d regions did not finish within %.1f seconds",
                        self._name,
                        len(pending),
                        total,
                        timeout,
                    )
                    for future, index in futures.items():
                        if index in outcomes:
                            continue
                        future.cancel()
                        record(index, RoiOutcome(roi=rois[index], text="", error=TIMEOUT_ERROR))
            finally:
                # Late finishers after a timeout are discarded
                executor.shutdown(wait=False, cancel_futures=True)

        batch = BatchResult(
            outcomes=tuple(outcomes[index] for index in range(total)),
            completed=completed,
            duration_seconds=time.perf_counter() - start_time,
        )
        self._logger.info(
            "[%s] Recognition completed in %.3f seconds: %d/%d regions, %d failed",
            self._name,
            batch.duration_seconds,
            batch.completed,
            total,
            batch.failed,
        )
        if on_complete is not None:
            on_complete(batch)
        return batch

    def _recognize_roi(self, image: np.ndarray, roi: ROIDefinition) -> RoiOutcome:
        start_time = time.perf_counter()
        try:
            sub_image = crop(image, roi.rect, roi.name)
            text = self._recognizer.recognize(sub_image).strip()
        except FlightCaptureError as exc:
            self._logger.warning("[%s] Region '%s' failed: %s", self._name, roi.name, exc)
            return RoiOutcome(
                roi=roi,
                text="",
                error=type(exc).__name__,
                duration_seconds=time.perf_counter() - start_time,
            )
        except Exception as exc:
            self._logger.warning(
                "[%s] Region '%s' failed with unexpected %s: %s",
                self._name,
                roi.name,
                type(exc).__name__,
                exc,
            )
            return RoiOutcome(
                roi=roi,
                text="",
                error=type(exc).__name__,
                duration_seconds=time.perf_counter() - start_time,
            )

        self._logger.debug("[%s] Region '%s' recognized: %r", self._name, roi.name, text)
        return RoiOutcome(
            roi=roi,
            text=text,
            error=None if text else "NoTextFound",
            duration_seconds=time.perf_counter() - start_time,
        )


def texts_in_order(batch: BatchResult) -> List[Tuple[ROIDefinition, str]]:
    """Return ``(roi, text)`` pairs in catalog order."""
    return [(outcome.roi, outcome.text) for outcome in batch.outcomes]
