"""Heuristic confidence scoring for recognized field values."""

from __future__ import annotations

import logging
from typing import Optional

from flight_capture.config.settings import Settings
from flight_capture.config.validation_rules import (
    ALNUM_WEIGHT,
    CONFIDENCE_THRESHOLDS,
    LENGTH_SATURATION,
    LENGTH_WEIGHT,
    PATTERN_WEIGHT,
    ScoringRule,
    get_crew_name_rule,
    get_rule,
)
from flight_capture.field_parsers import parse_field
from flight_capture.models.flight_data import (
    ConfidenceLevel,
    ConfidenceResult,
    FieldKind,
    FieldResult,
)


class ConfidenceScorer:
    """Scores text as ``0.2*length + 0.3*alnum_ratio + 0.5*pattern_strength``.

    Scoring never raises; empty text short-circuits to ``0.0`` / low.
    """

    def __init__(self, settings: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        if settings is not None:
            self._high = settings.confidence_high_threshold
            self._medium = settings.confidence_medium_threshold
        else:
            self._high = CONFIDENCE_THRESHOLDS["high"]
            self._medium = CONFIDENCE_THRESHOLDS["medium"]
        self._rules = {kind: get_rule(kind) for kind in FieldKind}
        self._crew_rule = get_crew_name_rule()

    def level_for(self, score: float) -> ConfidenceLevel:
        if score >= self._high:
            return ConfidenceLevel.HIGH
        if score >= self._medium:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def score_text(self, text: str, kind: FieldKind) -> ConfidenceResult:
        """Score ``text`` as a value for ``kind``."""
        return self._score(text, self._rules.get(kind))

    def score_crew_name(self, name: str) -> ConfidenceResult:
        return self._score(name, self._crew_rule)

    def score_field(self, kind: FieldKind, raw_text: str) -> FieldResult:
        """Parse ``raw_text`` and score the parsed value.

        The parsed candidate is scored when the parser finds one; otherwise
        the raw text itself is scored so garbage still gets a low level.
        """
        value = parse_field(kind, raw_text)
        confidence = self.score_text(value if value is not None else raw_text, kind)
        return FieldResult(field_kind=kind, raw_text=raw_text, confidence=confidence, value=value)

    def _score(self, text: Optional[str], rule: Optional[ScoringRule]) -> ConfidenceResult:
        normalized = (text or "").strip()
        if not normalized:
            return ConfidenceResult(level=ConfidenceLevel.LOW, score=0.0, reason="Empty text")

        length_score = min(len(normalized) / LENGTH_SATURATION, 1.0)
        alnum_ratio = sum(1 for ch in normalized if ch.isalnum()) / len(normalized)
        pattern_score = rule.strength(normalized) if rule else 0.0

        score = (
            length_score * LENGTH_WEIGHT
            + alnum_ratio * ALNUM_WEIGHT
            + pattern_score * PATTERN_WEIGHT
        )
        score = round(min(max(score, 0.0), 1.0), 4)
        if 0.0 < pattern_score < 1.0:
            # Extra text around a canonical value never scores below the value alone
            token = rule.canonical_token(normalized)
            if token is not None:
                score = max(score, self._score(token, rule).score)
        reason = (
            f"Length: {len(normalized)} chars, "
            f"Alphanumeric ratio: {alnum_ratio * 100:.1f}%, "
            f"Field validation: {pattern_score * 100:.1f}%"
        )
        return ConfidenceResult(level=self.level_for(score), score=score, reason=reason)


def combine_levels(*levels: ConfidenceLevel) -> ConfidenceLevel:
    """Return the weakest of ``levels`` (low if none are given)."""
    if not levels:
        return ConfidenceLevel.LOW
    if ConfidenceLevel.LOW in levels:
        return ConfidenceLevel.LOW
    if ConfidenceLevel.MEDIUM in levels:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH
