"""Unit tests for OCREnginePool module."""
import threading
import time

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from flight_capture.exceptions import ProcessingFailed
from flight_capture.ocr_engine_pool import OCREnginePool, PoolEngineContext, PoolStatistics


def make_engine(text="CPA648"):
    engine = MagicMock()
    engine.recognize.return_value = text
    return engine


@pytest.fixture
def image():
    return np.zeros((10, 10, 3), dtype=np.uint8)


@pytest.mark.unit
class TestOCREnginePoolInitialization:
    """Test OCREnginePool initialization."""

    def test_initialization_creates_engines(self, test_settings, logger):
        """Test pool initializes with correct number of engines."""
        # Arrange
        factory = MagicMock(side_effect=lambda: make_engine())

        # Act
        pool = OCREnginePool(test_settings, logger, pool_size=3, engine_factory=factory)

        # Assert
        assert factory.call_count == 3
        assert pool.get_statistics() == PoolStatistics(
            total_engines=3, available_engines=3, in_use_engines=0, total_requests=0
        )

    def test_pool_size_from_settings(self, test_settings, logger):
        # Arrange
        test_settings.ocr_pool_size = 2

        # Act
        pool = OCREnginePool(test_settings, logger, engine_factory=make_engine)

        # Assert
        assert pool.get_statistics().total_engines == 2

    @patch("flight_capture.ocr_engine_pool.PaddleTextRecognizer")
    def test_default_factory_builds_paddle_recognizers(self, mock_recognizer_class, test_settings, logger):
        # Act
        OCREnginePool(test_settings, logger, pool_size=2)

        # Assert
        assert mock_recognizer_class.call_count == 2
        mock_recognizer_class.assert_called_with(test_settings, logger)


@pytest.mark.unit
class TestOCREnginePoolAcquireRelease:
    """Test engine borrowing."""

    def test_acquire_and_release(self, test_settings, logger):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)

        # Act
        context = pool.acquire()
        with context as engine:
            during = pool.get_statistics()
        after = pool.get_statistics()

        # Assert
        assert isinstance(context, PoolEngineContext)
        assert engine is not None
        assert during.in_use_engines == 1
        assert after.available_engines == 1
        assert after.total_requests == 1

    def test_acquire_timeout(self, test_settings, logger):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)
        pool.acquire()

        # Act & Assert
        with pytest.raises(TimeoutError, match="No engine available"):
            pool.acquire(timeout=0.05)

    def test_waiting_acquire_gets_released_engine(self, test_settings, logger):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)
        context = pool.acquire()
        engine = context.__enter__()
        timer = threading.Timer(0.05, lambda: context.__exit__(None, None, None))

        # Act
        timer.start()
        with pool.acquire(timeout=2.0) as second:
            pass
        timer.join()

        # Assert
        assert second is engine

    def test_release_unknown_engine_ignored(self, test_settings, logger):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)

        # Act
        pool.release(MagicMock())

        # Assert
        assert pool.get_statistics().available_engines == 1

    def test_duplicate_release_ignored(self, test_settings, logger):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)
        with pool.acquire() as engine:
            pass

        # Act
        pool.release(engine)

        # Assert
        assert pool.get_statistics().available_engines == 1


@pytest.mark.unit
class TestOCREnginePoolRecognize:
    """Test the pool as a recognizer."""

    def test_recognize_delegates(self, test_settings, logger, image):
        # Arrange
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=lambda: make_engine("VHHH"))

        # Act
        text = pool.recognize(image)

        # Assert
        assert text == "VHHH"
        assert pool.get_statistics().available_engines == 1

    def test_engine_error_releases_engine(self, test_settings, logger, image):
        # Arrange
        engine = make_engine()
        engine.recognize.side_effect = ProcessingFailed("boom")
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=lambda: engine)

        # Act & Assert
        with pytest.raises(ProcessingFailed):
            pool.recognize(image)
        assert pool.get_statistics().available_engines == 1

    def test_exhausted_pool_raises_processing_failed(self, test_settings, logger, image):
        # Arrange
        test_settings.ocr_pool_timeout = 0.05
        pool = OCREnginePool(test_settings, logger, pool_size=1, engine_factory=make_engine)
        pool.acquire()

        # Act & Assert
        with pytest.raises(ProcessingFailed, match="No engine available"):
            pool.recognize(image)

    def test_concurrent_recognition_never_shares_engine(self, test_settings, logger, image):
        """Test that each engine serves one call at a time."""
        # Arrange
        active = {}
        overlaps = []
        lock = threading.Lock()

        def build():
            engine = MagicMock()

            def recognize(_image):
                with lock:
                    if active.get(id(engine)):
                        overlaps.append(engine)
                    active[id(engine)] = True
                time.sleep(0.01)
                with lock:
                    active[id(engine)] = False
                return "ok"

            engine.recognize.side_effect = recognize
            return engine

        pool = OCREnginePool(test_settings, logger, pool_size=2, engine_factory=build)
        threads = [threading.Thread(target=pool.recognize, args=(image,)) for _ in range(8)]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert overlaps == []
        assert pool.get_statistics().total_requests == 8


@pytest.mark.unit
class TestOCREnginePoolClose:
    """Test pool shutdown."""

    def test_close_closes_all_engines(self, test_settings, logger):
        # Arrange
        engines = [make_engine(), make_engine()]
        pool = OCREnginePool(test_settings, logger, pool_size=2, engine_factory=iter(engines).__next__)

        # Act
        with pool:
            pass

        # Assert
        for engine in engines:
            engine.close.assert_called_once()
        assert pool.get_statistics().total_engines == 0

    def test_close_error_does_not_stop_others(self, test_settings, logger):
        # Arrange
        failing, healthy = make_engine(), make_engine()
        failing.close.side_effect = RuntimeError("stuck")
        pool = OCREnginePool(
            test_settings, logger, pool_size=2, engine_factory=iter([failing, healthy]).__next__
        )

        # Act
        pool.close()

        # Assert
        healthy.close.assert_called_once()
