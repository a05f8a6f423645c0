"""Calendar date inference from a weekday label and a day of month.

The dashboard shows only something like ``Mon 30``. Many dates match that
pair, so the search walks backwards from today and takes the most recent
date that is not in the future.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from flight_capture.config.settings import Settings
from flight_capture.exceptions import DateInferenceFailed
from flight_capture.models.flight_data import ConfidenceLevel

# Index matches date.weekday(); fixed English names regardless of locale
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DATE_TEXT_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d.%m.%Y")


def weekday_matches(candidate: date, token: str) -> bool:
    """Return True if ``token`` is a case-insensitive prefix of the weekday name.

    Both the short name (``Mon``) and the full name (``Monday``) are checked,
    so ``mo``, ``MON`` and ``Monday`` all match a Monday.
    """
    needle = token.strip().rstrip(".").lower()
    if not needle:
        return False
    full_name = WEEKDAY_NAMES[candidate.weekday()].lower()
    return full_name[:3].startswith(needle) or full_name.startswith(needle)


def infer_date(
    weekday: Optional[str],
    day_of_month: Optional[int],
    today: date,
    max_years_back: int = 2,
) -> date:
    """Find the most recent date on or before ``today`` matching both inputs.

    Years are scanned from ``today.year`` down to ``today.year -
    max_years_back`` and months from December to January, so the first hit
    is also the latest one. Days that do not exist in a month (31 April,
    29 February outside leap years) are skipped.

    Raises:
        DateInferenceFailed: If the inputs are unusable or nothing matches.
    """
    if not weekday or not weekday.strip():
        raise DateInferenceFailed(weekday, day_of_month, "weekday is empty")
    if day_of_month is None or not 1 <= day_of_month <= 31:
        raise DateInferenceFailed(weekday, day_of_month, "day of month out of range")

    for year in range(today.year, today.year - max_years_back - 1, -1):
        for month in range(12, 0, -1):
            try:
                candidate = date(year, month, day_of_month)
            except ValueError:
                continue
            if candidate > today:
                continue
            if weekday_matches(candidate, weekday):
                return candidate

    raise DateInferenceFailed(
        weekday,
        day_of_month,
        f"no match within {max_years_back} years before {today.isoformat()}",
    )


def parse_date_text(text: str) -> Optional[date]:
    """Parse a reviewer supplied date (``2025-07-07`` or ``07/07/2025``)."""
    value = text.strip()
    for fmt in DATE_TEXT_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


@dataclass(frozen=True)
class DateInference:
    """Outcome of one inference attempt."""

    inferred_date: Optional[date]
    confidence: ConfidenceLevel
    reason: str


class DateInferenceEngine:
    """Wraps :func:`infer_date` with configured search depth and logging."""

    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self._settings = settings
        self._logger = logger

    def infer(
        self,
        weekday: Optional[str],
        day_of_month: Optional[int],
        today: Optional[date] = None,
    ) -> DateInference:
        today = today or date.today()
        try:
            found = infer_date(
                weekday,
                day_of_month,
                today,
                max_years_back=self._settings.date_inference_max_years_back,
            )
        except DateInferenceFailed as exc:
            self._logger.warning("Date inference failed: %s", exc)
            return DateInference(None, ConfidenceLevel.LOW, exc.reason)

        self._logger.debug(
            "Inferred date %s from weekday '%s' and day %s",
            found.isoformat(),
            weekday,
            day_of_month,
        )
        return DateInference(found, ConfidenceLevel.HIGH, "weekday and day of month matched")
