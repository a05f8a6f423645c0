"""Pattern rules used to score recognized flight fields.

Each field kind has a canonical pattern describing a clean value. Text that
matches it exactly earns full pattern strength; text that merely contains it
earns a little less, and text with the right character classes but the wrong
shape earns a partial score.
"""

import re
from typing import Any, Dict, Optional

from flight_capture.models.flight_data import FieldKind

_WEEKDAY = r"(?:MON|TUE|WED|THU|FRI|SAT|SUN)[A-Z]*"

SCORING_RULES: Dict[FieldKind, Dict[str, Any]] = {
    # Airline designator plus number, e.g. CPA648
    FieldKind.FLIGHT_NUMBER: {
        "pattern": r"[A-Z]{2,3}\d{2,4}",
        "partial_pattern": r"(?=.*[A-Za-z])(?=.*\d).+",
        "partial_score": 0.6,
        "example": "CPA648",
    },
    # Nationality prefix and mark, e.g. B-LRU or N123AB
    FieldKind.AIRCRAFT_REG: {
        "pattern": r"[A-Z]{1,2}-[A-Z0-9]{3,5}|N\d{1,5}[A-Z]{0,2}",
        "partial_pattern": r"[A-Za-z0-9\-]{4,7}",
        "partial_score": 0.6,
        "example": "B-LRU",
    },
    FieldKind.AIRCRAFT_TYPE: {
        "pattern": r"[AB]\d{3}[A-Z]?",
        "partial_pattern": r"[A-Za-z0-9\-]{3,8}",
        "partial_score": 0.6,
        "example": "A350",
    },
    # ICAO airport code
    FieldKind.DEPARTURE: {
        "pattern": r"[A-Z]{4}",
        "partial_pattern": r"[A-Za-z]{3,4}",
        "partial_score": 0.6,
        "example": "VHHH",
    },
    FieldKind.ARRIVAL: {
        "pattern": r"[A-Z]{4}",
        "partial_pattern": r"[A-Za-z]{3,4}",
        "partial_score": 0.6,
        "example": "OERK",
    },
    # Scheduled times carry a Z suffix and optional day rollover
    FieldKind.SCHED_DEP: {
        "pattern": r"(?:[01]\d|2[0-3])[0-5]\dZ(?:\+1)?",
        "partial_pattern": r"[\d:zZ+]{4,8}",
        "partial_score": 0.6,
        "example": "1835Z",
    },
    FieldKind.SCHED_ARR: {
        "pattern": r"(?:[01]\d|2[0-3])[0-5]\dZ(?:\+1)?",
        "partial_pattern": r"[\d:zZ+]{4,8}",
        "partial_score": 0.6,
        "example": "0215Z+1",
    },
    FieldKind.DAY_DATE: {
        "pattern": rf"{_WEEKDAY},?\s*\d{{1,2}}|\d{{1,2}},?\s*{_WEEKDAY}",
        "partial_pattern": rf"(?:{_WEEKDAY}|\d{{1,2}})\W*",
        "partial_score": 0.5,
        "weak_score": 0.2,
        "ignore_case": True,
        "example": "Mon 30",
    },
    # Block times, with or without colon
    FieldKind.OUT_TIME: {
        "pattern": r"(?:[01]\d|2[0-3]):?[0-5]\d[zZ]?",
        "partial_pattern": r"[\d:zZ]{3,6}",
        "partial_score": 0.6,
        "example": "1842",
    },
    FieldKind.OFF_TIME: {
        "pattern": r"(?:[01]\d|2[0-3]):?[0-5]\d[zZ]?",
        "partial_pattern": r"[\d:zZ]{3,6}",
        "partial_score": 0.6,
        "example": "1901",
    },
    FieldKind.ON_TIME: {
        "pattern": r"(?:[01]\d|2[0-3]):?[0-5]\d[zZ]?",
        "partial_pattern": r"[\d:zZ]{3,6}",
        "partial_score": 0.6,
        "example": "0105",
    },
    FieldKind.IN_TIME: {
        "pattern": r"(?:[01]\d|2[0-3]):?[0-5]\d[zZ]?",
        "partial_pattern": r"[\d:zZ]{3,6}",
        "partial_score": 0.6,
        "example": "0114",
    },
}

# Crew names are scored with the same weights but their own rule
CREW_NAME_RULE: Dict[str, Any] = {
    "pattern": r"[A-Z][a-z]+(?:[ \-][A-Z][a-z]+)+",
    "partial_pattern": r"[A-Za-z][A-Za-z \-\.]+",
    "partial_score": 0.6,
    "example": "Kevin Smith",
}

# Default level boundaries, overridable through Settings
CONFIDENCE_THRESHOLDS = {
    "high": 0.8,
    "medium": 0.5,
}

# Contribution of each component to the composite score
LENGTH_WEIGHT = 0.2
ALNUM_WEIGHT = 0.3
PATTERN_WEIGHT = 0.5
LENGTH_SATURATION = 10

CONTAINED_SCORE = 0.8
DEFAULT_WEAK_SCORE = 0.3


class ScoringRule:
    """Pattern strength evaluator for one field kind."""

    def __init__(self, rule_name: str, rule_config: Dict[str, Any]):
        self.name = rule_name
        self.pattern = rule_config["pattern"]
        self.partial_score = rule_config.get("partial_score", 0.6)
        self.weak_score = rule_config.get("weak_score", DEFAULT_WEAK_SCORE)
        self.example = rule_config.get("example", "")

        flags = re.IGNORECASE if rule_config.get("ignore_case") else 0
        self._regex = re.compile(self.pattern, flags)
        self._contained_regex = re.compile(rf"(?<![A-Za-z0-9])(?:{self.pattern})(?![A-Za-z0-9])", flags)
        partial = rule_config.get("partial_pattern")
        self._partial_regex = re.compile(partial, flags) if partial else None

    def canonical_token(self, text: str) -> Optional[str]:
        """Return the first whole-token canonical value inside ``text``."""
        match = self._contained_regex.search(text)
        return match.group(0) if match else None

    def strength(self, text: str) -> float:
        """Return pattern strength in [0, 1] for already trimmed text."""
        if self._regex.fullmatch(text):
            return 1.0
        if self.canonical_token(text) is not None:
            return CONTAINED_SCORE
        if self._partial_regex and self._partial_regex.fullmatch(text):
            return self.partial_score
        return self.weak_score


def get_rule(field_kind: FieldKind) -> Optional[ScoringRule]:
    """Get a scoring rule by field kind.

    Args:
        field_kind: Field whose rule to retrieve

    Returns:
        ScoringRule instance or None if not found
    """
    rule_config = SCORING_RULES.get(field_kind)
    if rule_config:
        return ScoringRule(field_kind.value, rule_config)
    return None


def get_crew_name_rule() -> ScoringRule:
    return ScoringRule("crewName", CREW_NAME_RULE)
