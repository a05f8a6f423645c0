"""Global fixtures for all tests."""
import sys
from pathlib import Path

# Add src directory to Python path so tests import the flight_capture package
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

import logging

import pytest
from unittest.mock import MagicMock

from flight_capture.config.settings import Settings


@pytest.fixture
def test_settings(tmp_path):
    """Settings optimized for fast testing."""
    return Settings(
        log_dir=tmp_path / "logs",
        log_level="WARNING",  # Reduce log noise
        ocr_use_gpu=False,
        ocr_pool_size=1,
        ocr_pool_timeout=1.0,
        recognition_workers=4,
        recognition_timeout_seconds=5.0,
        roi_catalog_file=None,
    )


@pytest.fixture
def logger():
    """Create logger for testing."""
    return logging.getLogger("test")


@pytest.fixture
def mock_ocr_response():
    """Mock PaddleOCR 2.x response structure."""
    return [
        [
            ([[0, 0], [100, 0], [100, 30], [0, 30]], ("CPA648", 0.97)),
            ([[0, 40], [100, 40], [100, 70], [0, 70]], ("A350", 0.93)),
            ([[0, 80], [100, 80], [100, 110], [0, 110]], ("B-LRU", 0.42)),
        ]
    ]


@pytest.fixture
def mock_ocr_engine(mock_ocr_response):
    """Mock OCR engine for unit tests."""
    mock_engine = MagicMock()
    mock_engine.ocr.return_value = mock_ocr_response
    return mock_engine
