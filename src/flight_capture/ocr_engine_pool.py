"""OCR engine pool shared by concurrent region recognition.

PaddleOCR engines are not safe to call from several threads at once, so the
recognition coordinator borrows one engine per in-flight region and gives it
back when the call returns.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from flight_capture.config.settings import Settings
from flight_capture.exceptions import ProcessingFailed
from flight_capture.ocr_engine import PaddleTextRecognizer, TextRecognizer


@dataclass
class PoolStatistics:
    """Statistics for the engine pool."""

    total_engines: int
    available_engines: int
    in_use_engines: int
    total_requests: int


class PoolEngineContext:
    """Context manager for pool engine acquisition."""

    def __init__(self, pool: "OCREnginePool", engine: TextRecognizer) -> None:
        self._pool = pool
        self._engine = engine

    def __enter__(self) -> TextRecognizer:
        return self._engine

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._pool.release(self._engine)


class OCREnginePool:
    """Pool of text recognizers that is itself a :class:`TextRecognizer`.

    Thread-safe for concurrent access.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        pool_size: Optional[int] = None,
        engine_factory: Optional[Callable[[], TextRecognizer]] = None,
    ) -> None:
        """Initialize OCR engine pool.

        Args:
            settings: Application settings
            logger: Logger instance
            pool_size: Number of engines in pool (defaults to settings.ocr_pool_size)
            engine_factory: Builds one recognizer; PaddleOCR-backed by default
        """
        self._settings = settings
        self._logger = logger
        self._pool_size = pool_size or settings.ocr_pool_size

        if self._pool_size > 4:
            self._logger.warning(
                "Pool size %d is large, may consume significant memory. "
                "Consider using 1-4 engines.",
                self._pool_size,
            )

        factory = engine_factory or (lambda: PaddleTextRecognizer(settings, logger))

        self._available_engines: List[TextRecognizer] = []
        self._all_engines: List[TextRecognizer] = []
        self._lock = threading.Lock()
        self._total_requests = 0

        self._logger.info("Initializing OCR engine pool with %d engines...", self._pool_size)
        for _ in range(self._pool_size):
            engine = factory()
            self._available_engines.append(engine)
            self._all_engines.append(engine)
        self._logger.info("OCR engine pool initialized with %d engines", len(self._all_engines))

    def acquire(self, timeout: Optional[float] = None) -> PoolEngineContext:
        """Acquire an available engine from the pool.

        Args:
            timeout: Maximum seconds to wait for available engine
                    (defaults to settings.ocr_pool_timeout)

        Returns:
            PoolEngineContext that can be used as context manager

        Raises:
            TimeoutError: If no engine becomes available within timeout
        """
        timeout = self._settings.ocr_pool_timeout if timeout is None else timeout
        start_time = time.perf_counter()

        while True:
            with self._lock:
                if self._available_engines:
                    engine = self._available_engines.pop(0)
                    self._total_requests += 1
                    self._logger.debug(
                        "Engine acquired from pool. Available: %d, In use: %d",
                        len(self._available_engines),
                        len(self._all_engines) - len(self._available_engines),
                    )
                    return PoolEngineContext(self, engine)

            elapsed = time.perf_counter() - start_time
            if elapsed >= timeout:
                raise TimeoutError(
                    f"No engine available in pool after {timeout:.1f} seconds. "
                    f"Pool size: {len(self._all_engines)}"
                )
            time.sleep(0.01)

    def release(self, engine: TextRecognizer) -> None:
        """Release an engine back to the pool."""
        with self._lock:
            if engine not in self._all_engines:
                self._logger.warning("Attempted to release engine not in pool. Ignoring.")
                return
            if engine in self._available_engines:
                self._logger.warning("Engine already in available pool. Ignoring duplicate release.")
                return
            self._available_engines.append(engine)

    def recognize(self, image: np.ndarray) -> str:
        """Recognize ``image`` on whichever engine is free first.

        Raises:
            ProcessingFailed: If no engine frees up within the pool timeout.
        """
        try:
            context = self.acquire()
        except TimeoutError as exc:
            raise ProcessingFailed(str(exc)) from exc
        with context as engine:
            return engine.recognize(image)

    def get_statistics(self) -> PoolStatistics:
        with self._lock:
            available = len(self._available_engines)
            return PoolStatistics(
                total_engines=len(self._all_engines),
                available_engines=available,
                in_use_engines=len(self._all_engines) - available,
                total_requests=self._total_requests,
            )

    def close(self) -> None:
        """Close all engines in the pool and release resources."""
        with self._lock:
            engines_to_close = list(self._all_engines)
            self._available_engines.clear()
            self._all_engines.clear()

        # Engines are closed outside the lock
        for index, engine in enumerate(engines_to_close, start=1):
            close = getattr(engine, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as exc:
                self._logger.warning("Error closing engine %d: %s", index, str(exc)[:200])
        self._logger.info("OCR engine pool closed (%d engines)", len(engines_to_close))

    def __enter__(self) -> "OCREnginePool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
