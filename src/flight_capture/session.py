"""Capture session: runs the flight and crew pipelines side by side.

The flight pipeline recognizes the dashboard regions, the crew pipeline the
roster regions (or the compact crew block of the dashboard). Both run at the
same time on their own recognition coordinator. All shared state lives in
one lock-guarded ``SessionState``, and a two-flag barrier raises the single
"processing complete" signal once both pipelines have finished.
"""

from __future__ import annotations

import concurrent.futures
import copy
import logging
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from flight_capture.config.roi_catalog import get_layout, load_roi_catalog
from flight_capture.config.settings import Settings
from flight_capture.confidence_scorer import ConfidenceScorer, combine_levels
from flight_capture.crew_parser import CrewParser, CrewRoster
from flight_capture.date_inference import DateInferenceEngine
from flight_capture.export_assembler import ExportAssembler
from flight_capture.field_parsers import parse_day_date, parse_field
from flight_capture.image_processing import ensure_image
from flight_capture.models.flight_data import (
    ConfidenceLevel,
    CrewMember,
    CrewReviewItem,
    FieldKind,
    FieldResult,
    FlightRecord,
    ManualOverrides,
    ROIDefinition,
)
from flight_capture.ocr_engine import TextRecognizer
from flight_capture.recognition_coordinator import (
    BatchResult,
    RecognitionCoordinator,
    RoiOutcome,
    texts_in_order,
)


class CompletionBarrier:
    """Two set-once flags and a callback fired when both are set.

    Whichever of :meth:`mark_flight_done` / :meth:`mark_crew_done` is called
    second fires the callback, exactly once. Repeated marks are no-ops.
    """

    def __init__(self, on_complete: Callable[[], None]) -> None:
        self._on_complete = on_complete
        self._lock = threading.Lock()
        self._flight_done = False
        self._crew_done = False
        self._fired = False

    def mark_flight_done(self) -> bool:
        """Set the flight flag. Returns True if this call fired the callback."""
        return self._mark(flight=True)

    def mark_crew_done(self) -> bool:
        """Set the crew flag. Returns True if this call fired the callback."""
        return self._mark(flight=False)

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return self._fired

    def _mark(self, flight: bool) -> bool:
        with self._lock:
            if flight:
                self._flight_done = True
            else:
                self._crew_done = True
            fire = self._flight_done and self._crew_done and not self._fired
            if fire:
                self._fired = True
        # Callback runs outside the lock
        if fire:
            self._on_complete()
        return fire


class SessionState:
    """Everything one capture session accumulates."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.record = FlightRecord()
        self.field_results: Dict[FieldKind, FieldResult] = {}
        self.crew = CrewRoster()

    def reset(self) -> None:
        with self.lock:
            self.record = FlightRecord()
            self.field_results = {}
        self.crew.reset()


@dataclass
class SessionResult:
    """Snapshot of a finished session."""

    record: FlightRecord
    field_results: Dict[FieldKind, FieldResult]
    cockpit: List[CrewMember]
    cabin: List[CrewMember]
    review_items: List[CrewReviewItem]
    flight_batch: Optional[BatchResult] = None
    crew_batch: Optional[BatchResult] = None
    complete: bool = False
    duration_seconds: float = 0.0

    @property
    def overall_confidence(self) -> ConfidenceLevel:
        levels = [result.confidence.level for result in self.field_results.values()]
        return combine_levels(*levels)


class CaptureSession:
    """One capture-to-export cycle over a dashboard and optional roster image."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        recognizer: TextRecognizer,
        catalog: Optional[Dict[str, List[ROIDefinition]]] = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._recognizer = recognizer
        self._catalog = catalog or load_roi_catalog(settings.roi_catalog_file, logger)
        self._scorer = ConfidenceScorer(settings, logger)
        self._date_engine = DateInferenceEngine(settings, logger)
        self._crew_parser = CrewParser(logger)
        self._assembler = ExportAssembler(settings, logger)
        self._state = SessionState()
        self._flight_batch: Optional[BatchResult] = None
        self._crew_batch: Optional[BatchResult] = None
        self._barrier: Optional[CompletionBarrier] = None

    @property
    def crew(self) -> CrewRoster:
        return self._state.crew

    def reset(self) -> None:
        """Drop every value from the previous run."""
        self._state.reset()
        self._flight_batch = None
        self._crew_batch = None
        self._barrier = None

    def process(
        self,
        dashboard: np.ndarray,
        crew_image: Optional[np.ndarray] = None,
        today: Optional[date] = None,
    ) -> SessionResult:
        """Run both pipelines and wait for them.

        Args:
            dashboard: Dashboard screenshot.
            crew_image: Crew list screenshot. Without it the compact crew
                block of the dashboard is read instead.
            today: Reference day for date inference (defaults to today).

        Returns:
            SessionResult snapshot taken after both pipelines finished.
        """
        start_time = time.perf_counter()
        ensure_image(dashboard)
        if crew_image is not None:
            ensure_image(crew_image)

        self.reset()
        today = today or date.today()
        barrier = CompletionBarrier(self._on_processing_complete)
        self._barrier = barrier

        with concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="pipeline") as executor:
            flight_future = executor.submit(self._run_flight_pipeline, dashboard, today, barrier)
            crew_future = executor.submit(self._run_crew_pipeline, dashboard, crew_image, barrier)
            flight_future.result()
            crew_future.result()

        result = self.snapshot()
        result.duration_seconds = time.perf_counter() - start_time
        self._logger.info("Capture session processed in %.3f seconds", result.duration_seconds)
        return result

    def snapshot(self) -> SessionResult:
        with self._state.lock:
            record = copy.copy(self._state.record)
            field_results = dict(self._state.field_results)
        crew = self._state.crew.snapshot()
        return SessionResult(
            record=record,
            field_results=field_results,
            cockpit=crew.cockpit,
            cabin=crew.cabin,
            review_items=crew.review_items,
            flight_batch=self._flight_batch,
            crew_batch=self._crew_batch,
            complete=self._barrier.is_complete if self._barrier else False,
        )

    def build_payload(
        self,
        overrides: Optional[ManualOverrides] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Assemble the export payload from the current session state."""
        with self._state.lock:
            record = copy.copy(self._state.record)
        crew = self._state.crew.snapshot()
        return self._assembler.build_payload(record, overrides, crew.cockpit, crew.cabin, now=now)

    # Flight pipeline

    def _run_flight_pipeline(self, dashboard: np.ndarray, today: date, barrier: CompletionBarrier) -> None:
        rois = get_layout(self._catalog, self._settings.flight_layout)
        coordinator = RecognitionCoordinator(self._settings, self._logger, self._recognizer, name="flight")
        self._flight_batch = coordinator.run(
            dashboard,
            rois,
            on_result=self._on_flight_result,
            on_complete=lambda batch: self._on_flight_complete(batch, today),
        )
        barrier.mark_flight_done()

    def _on_flight_result(self, outcome: RoiOutcome) -> None:
        kind = outcome.roi.field_kind
        if kind is None:
            return
        with self._state.lock:
            record = self._state.record
            if kind is FieldKind.DAY_DATE:
                parsed = parse_day_date(outcome.text)
                if parsed:
                    record.day_of_week, record.day_of_month = parsed
            else:
                record.set_field(kind, parse_field(kind, outcome.text))

    def _on_flight_complete(self, batch: BatchResult, today: date) -> None:
        results = {}
        for outcome in batch.outcomes:
            if outcome.roi.field_kind is not None:
                results[outcome.roi.field_kind] = self._scorer.score_field(outcome.roi.field_kind, outcome.text)

        with self._state.lock:
            weekday = self._state.record.day_of_week
            day_of_month = self._state.record.day_of_month

        inference = self._date_engine.infer(weekday, day_of_month, today)

        with self._state.lock:
            self._state.field_results = results
            self._state.record.inferred_date = inference.inferred_date
            self._state.record.date_confidence = inference.confidence

        low = [kind.value for kind, result in results.items() if result.confidence.level is ConfidenceLevel.LOW]
        if low:
            self._logger.warning("Low confidence fields: %s", ", ".join(low))

    # Crew pipeline

    def _run_crew_pipeline(
        self,
        dashboard: np.ndarray,
        crew_image: Optional[np.ndarray],
        barrier: CompletionBarrier,
    ) -> None:
        coordinator = RecognitionCoordinator(self._settings, self._logger, self._recognizer, name="crew")
        if crew_image is not None:
            rois = get_layout(self._catalog, self._settings.crew_layout)
            self._crew_batch = coordinator.run(
                crew_image,
                rois,
                on_complete=lambda batch: self._state.crew.publish(
                    self._crew_parser.parse_roster(texts_in_order(batch))
                ),
            )
        else:
            rois = get_layout(self._catalog, self._settings.compact_crew_layout)
            self._crew_batch = coordinator.run(
                dashboard,
                rois,
                on_complete=lambda batch: self._state.crew.publish(
                    self._crew_parser.parse_compact(
                        "\n".join(outcome.text for outcome in batch.outcomes if outcome.text)
                    )
                ),
            )
        barrier.mark_crew_done()

    def _on_processing_complete(self) -> None:
        self._logger.info("Flight and crew pipelines finished")
