"""Regex-driven extraction of flight fields from recognized text.

Recognized text arrives as comma separated fragments (the recognizer joins
the lines it finds with ", "). Every function here is pure: the same input
text always gives the same result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from flight_capture.config.crew_tokens import is_non_name_token
from flight_capture.models.flight_data import FieldKind, ZuluTime

FLIGHT_NUMBER_RE = re.compile(r"\b[A-Z]{2,3}\d{2,4}\b")

REG_LABEL_RE = re.compile(r"(?:Reg(?:istration)?[,:\s]+)([A-Z0-9-]{4,6})", re.IGNORECASE)
REG_TOKEN_RE = re.compile(r"(?=.*[A-Z])[A-Z0-9]{4,5}")
REG_HYPHENATED_RE = re.compile(r"[A-Z]{1,2}-[A-Z0-9]{3,4}")

AIRCRAFT_TYPE_LABEL_RE = re.compile(r"Aircraft Type[:,\s]*([A-Z0-9]{3,5})", re.IGNORECASE)
AIRCRAFT_TYPE_RE = re.compile(r"\b[AB][0-9]{3}[A-Z]?\b")

ICAO_RE = re.compile(r"[A-Z]{4}")

ZULU_RE = re.compile(r"(?<![0-9])([0-9]{2})([0-9]{2})Z(\+1)?")
CLOCK_RE = re.compile(r"(?<![0-9])([01][0-9]|2[0-3]):?([0-5][0-9])\s*[zZ]?(\+1)?(?![0-9])")

DAY_DATE_RE = (
    re.compile(r"([A-Za-z]{2,})\.?[,\s]+([0-9]{1,2})(?![0-9])"),
    re.compile(r"(?<![0-9])([0-9]{1,2})[,\s]+([A-Za-z]{2,})"),
)

CREW_NAME_RE = re.compile(r"[A-Z\s\-\.]+")
TOKEN_SPLIT_RE = re.compile(r"[,\s]+")
CREW_SPLIT_RE = re.compile(r"[,\n]")


@dataclass(frozen=True)
class CrewNameToken:
    """A cleaned crew name and whether cleanup removed characters."""

    name: str
    original: str
    truncated: bool = False


def _tokens(text: str) -> List[str]:
    return [token for token in TOKEN_SPLIT_RE.split(text) if token]


def _comma_parts(text: str) -> List[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


def extract_flight_number(text: str) -> Optional[str]:
    """Return the first airline-designator-plus-number token, e.g. ``CPA648``."""
    match = FLIGHT_NUMBER_RE.search(text)
    return match.group(0) if match else None


def normalize_registration(token: str) -> str:
    """Insert the hyphen after a leading ``B`` when the result has 5 chars.

    ``BLRU`` becomes ``B-LRU``; ``B-LRU`` and ``N123AB`` are returned as is.
    """
    value = token.strip().upper()
    if value.startswith("B") and not value.startswith("B-") and len(value) == 4:
        return f"B-{value[1:]}"
    return value


def extract_registration(text: str) -> Optional[str]:
    """Find the tail registration in ``text`` and normalize it.

    A token right after a ``Reg``/``Registration`` label wins. Otherwise the
    last 4-5 character uppercase alphanumeric token (or an already
    hyphenated registration) is used.
    """
    match = REG_LABEL_RE.search(text)
    if match:
        return normalize_registration(match.group(1))

    candidates = [
        token for token in _tokens(text)
        if REG_TOKEN_RE.fullmatch(token) or REG_HYPHENATED_RE.fullmatch(token)
    ]
    if not candidates:
        return None
    return normalize_registration(candidates[-1])


def extract_aircraft_type(text: str) -> Optional[str]:
    """Return the aircraft type designator, e.g. ``A359``."""
    match = AIRCRAFT_TYPE_LABEL_RE.search(text)
    if match:
        return match.group(1).upper()
    match = AIRCRAFT_TYPE_RE.search(text)
    return match.group(0) if match else None


def extract_airport_code(text: str, kind: FieldKind = FieldKind.DEPARTURE) -> Optional[str]:
    """Return a four-letter ICAO code from ``text``.

    When several codes are present the departure field takes the first and
    the arrival field the second; a single code serves either field.
    """
    candidates = [token for token in _tokens(text) if ICAO_RE.fullmatch(token)]
    if not candidates:
        return None
    if kind is FieldKind.ARRIVAL and len(candidates) > 1:
        return candidates[1]
    return candidates[0]


def parse_zulu_time(text: str, lenient: bool = True) -> Optional[ZuluTime]:
    """Parse a UTC time such as ``1835Z`` or ``2359Z+1``.

    The ``+1`` suffix is not part of the clock value; it is reported as
    ``next_day``. With ``lenient`` set, ``1835``, ``18:35`` and ``1835z``
    are accepted when no canonical token is present.
    """
    for match in ZULU_RE.finditer(text):
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour < 24 and minute < 60:
            return ZuluTime(hour=hour, minute=minute, next_day=match.group(3) is not None)

    if not lenient:
        return None

    match = CLOCK_RE.search(text)
    if match:
        return ZuluTime(
            hour=int(match.group(1)),
            minute=int(match.group(2)),
            next_day=match.group(3) is not None,
        )
    return None


def format_clock(value: ZuluTime) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_day_date(text: str) -> Optional[Tuple[str, int]]:
    """Split a day/date label into ``(weekday_token, day_of_month)``.

    Accepts ``Mon 30``, ``Mon, 30``, ``30 Mon`` and ``30, Mon``.
    """
    weekday_first, day_first = DAY_DATE_RE
    match = weekday_first.search(text)
    if match:
        weekday, day = match.group(1), int(match.group(2))
    else:
        match = day_first.search(text)
        if not match:
            return None
        day, weekday = int(match.group(1)), match.group(2)

    if not 1 <= day <= 31:
        return None
    return weekday, day


def split_crew_text(text: str) -> List[str]:
    """Split a roster text block on newlines and commas."""
    return [part.strip() for part in CREW_SPLIT_RE.split(text) if part.strip()]


def _is_name_part(part: str) -> bool:
    upper = part.upper()
    if is_non_name_token(upper):
        return False
    return CREW_NAME_RE.fullmatch(upper) is not None and len(upper) > 1


def _finish_name(joined: str) -> Optional[CrewNameToken]:
    original = " ".join(joined.split())
    name = re.sub(r"\.+$", "", original).strip()
    if not name:
        return None
    return CrewNameToken(name=name.title(), original=original, truncated=name != original)


def clean_crew_name(part: str) -> Optional[CrewNameToken]:
    """Clean one roster fragment into a title-cased name.

    Returns None for base codes, rank abbreviations and fragments with
    characters other than letters, spaces, hyphens and dots.
    """
    part = part.strip()
    if not _is_name_part(part):
        return None
    return _finish_name(part)


def extract_crew_name(text: str) -> Optional[CrewNameToken]:
    """Join the name fragments of a single roster cell into one name."""
    name_parts = [part for part in split_crew_text(text) if _is_name_part(part)]
    if not name_parts:
        return None
    return _finish_name(" ".join(name_parts))


def parse_field(kind: FieldKind, raw_text: str) -> Optional[str]:
    """Parse ``raw_text`` for ``kind`` into its normalized string form."""
    if not raw_text or not raw_text.strip():
        return None

    if kind is FieldKind.FLIGHT_NUMBER:
        return extract_flight_number(raw_text)
    if kind is FieldKind.AIRCRAFT_REG:
        return extract_registration(raw_text)
    if kind is FieldKind.AIRCRAFT_TYPE:
        return extract_aircraft_type(raw_text)
    if kind in (FieldKind.DEPARTURE, FieldKind.ARRIVAL):
        return extract_airport_code(raw_text, kind)
    if kind in (FieldKind.SCHED_DEP, FieldKind.SCHED_ARR):
        zulu = parse_zulu_time(raw_text)
        return zulu.text if zulu else None
    if kind is FieldKind.DAY_DATE:
        parsed = parse_day_date(raw_text)
        return f"{parsed[0]} {parsed[1]}" if parsed else None

    clock = parse_zulu_time(raw_text)
    return format_clock(clock) if clock else None
