"""Factory for creating PaddleOCR engines across PaddleOCR 2.x and 3.x."""

from __future__ import annotations

import inspect
import logging
import os
from typing import Any, Dict

from flight_capture.config.settings import Settings


class OCREngineFactory:
    """Factory for creating PaddleOCR engines.

    PaddleOCR renamed most constructor arguments between 2.x and 3.x, so
    both spellings are offered and the ones the installed version does not
    accept are filtered out by signature inspection.
    """

    @staticmethod
    def create_full_engine(settings: Settings, logger: logging.Logger) -> Any:
        """Create OCR engine with detection, recognition and orientation.

        Args:
            settings: Application settings
            logger: Logger instance

        Returns:
            Initialized PaddleOCR engine
        """
        # Imported here so the parsing pipeline loads without paddle
        from paddleocr import PaddleOCR

        logger.info("Initializing PaddleOCR engine (lang=%s)...", settings.ocr_language)

        # Suppress PaddlePaddle warnings about ccache
        os.environ.setdefault("PADDLE_SILENT", "1")

        ocr_params: Dict[str, Any] = {
            "lang": settings.ocr_language,
            # 2.x names
            "use_angle_cls": True,
            "det_limit_side_len": settings.ocr_det_limit_side_len,
            # 3.x names
            "use_textline_orientation": True,
            "text_det_limit_side_len": settings.ocr_det_limit_side_len,
        }
        if settings.ocr_use_gpu:
            ocr_params["use_gpu"] = True
            ocr_params["device"] = "gpu"

        ocr_params = OCREngineFactory._filter_supported(PaddleOCR, ocr_params, logger)

        try:
            engine = PaddleOCR(**ocr_params)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Failed to initialize PaddleOCR with %s: %s. Falling back to minimal parameters.",
                ", ".join(sorted(ocr_params)),
                str(exc)[:200],
            )
            engine = PaddleOCR(lang=settings.ocr_language)

        logger.info("PaddleOCR engine initialized successfully")
        return engine

    @staticmethod
    def _filter_supported(
        engine_class: Any,
        params: Dict[str, Any],
        logger: logging.Logger,
    ) -> Dict[str, Any]:
        try:
            sig = inspect.signature(engine_class.__init__)
        except (TypeError, ValueError) as exc:
            logger.debug("Could not inspect PaddleOCR signature: %s. Using language only.", exc)
            return {"lang": params["lang"]}

        supported = {
            name
            for name, param in sig.parameters.items()
            if param.kind not in (inspect.Parameter.VAR_KEYWORD, inspect.Parameter.VAR_POSITIONAL)
        }
        filtered = {key: value for key, value in params.items() if key in supported}
        skipped = sorted(set(params) - set(filtered))
        if skipped:
            logger.debug("Skipping unsupported PaddleOCR parameters: %s", ", ".join(skipped))
        if "lang" not in filtered:
            filtered["lang"] = params["lang"]
        return filtered
