"""Data models for flight capture."""

from flight_capture.models.flight_data import (
    RECORD_ATTRIBUTES,
    SENIORITY_RANK,
    UNRANKED,
    ConfidenceLevel,
    ConfidenceResult,
    CrewMember,
    CrewParseResult,
    CrewReviewItem,
    CrewRole,
    CrewSection,
    FieldKind,
    FieldResult,
    FlightRecord,
    ManualOverrides,
    NormalizedRect,
    ROIDefinition,
    ZuluTime,
    seniority_rank,
)

__all__ = [
    "RECORD_ATTRIBUTES",
    "SENIORITY_RANK",
    "UNRANKED",
    "ConfidenceLevel",
    "ConfidenceResult",
    "CrewMember",
    "CrewParseResult",
    "CrewReviewItem",
    "CrewRole",
    "CrewSection",
    "FieldKind",
    "FieldResult",
    "FlightRecord",
    "ManualOverrides",
    "NormalizedRect",
    "ROIDefinition",
    "ZuluTime",
    "seniority_rank",
]
