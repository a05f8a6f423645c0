"""Flight capture field extraction and normalization pipeline."""

__version__ = "1.0.0"
