"""Data structures for flight capture using dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional


class FieldKind(str, Enum):
    """Closed set of flight fields read from the dashboard screen."""

    FLIGHT_NUMBER = "flightNumber"
    AIRCRAFT_TYPE = "aircraftType"
    AIRCRAFT_REG = "aircraftReg"
    DEPARTURE = "departure"
    ARRIVAL = "arrival"
    SCHED_DEP = "schedDep"
    SCHED_ARR = "schedArr"
    DAY_DATE = "dayDate"
    OUT_TIME = "outTime"
    OFF_TIME = "offTime"
    ON_TIME = "onTime"
    IN_TIME = "inTime"


class CrewSection(str, Enum):
    """Which crew list a roster region belongs to."""

    COCKPIT = "cockpit"
    CABIN = "cabin"


class ConfidenceLevel(str, Enum):
    """Coarse quality bucket attached to every recognized value."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def description(self) -> str:
        return _CONFIDENCE_DESCRIPTIONS[self]


_CONFIDENCE_DESCRIPTIONS = {
    ConfidenceLevel.HIGH: "High confidence - likely accurate",
    ConfidenceLevel.MEDIUM: "Medium confidence - review recommended",
    ConfidenceLevel.LOW: "Low confidence - manual review needed",
}


class CrewRole(str, Enum):
    """Crew positions in seniority order."""

    PIC = "PIC"
    SIC = "SIC"
    RELIEF = "Relief"
    RELIEF2 = "Relief2"
    ISM = "ISM"
    SP = "SP"
    FP = "FP"
    FA = "FA"
    FA2 = "FA2"
    FA3 = "FA3"
    FA4 = "FA4"


# Roles outside this table sort after every known role.
SENIORITY_RANK: Dict[str, int] = {role.value: rank for rank, role in enumerate(CrewRole, start=1)}
UNRANKED = 999


def seniority_rank(role: str) -> int:
    """Return the seniority rank for a role label (lower is more senior)."""
    return SENIORITY_RANK.get(role, UNRANKED)


@dataclass(frozen=True)
class NormalizedRect:
    """Rectangle expressed as fractions of image width and height."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rect must have positive extent, got {self}")
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Rect origin must be non-negative, got {self}")
        # Small tolerance for float rounding at the right/bottom edge
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise ValueError(f"Rect must lie within the unit square, got {self}")


@dataclass(frozen=True)
class ROIDefinition:
    """Named screen region expected to hold one field's text."""

    name: str
    rect: NormalizedRect
    field_kind: Optional[FieldKind] = None
    section: Optional[CrewSection] = None


@dataclass(frozen=True)
class ConfidenceResult:
    """Score, level and human-readable reason for one value."""

    level: ConfidenceLevel
    score: float
    reason: str


@dataclass(frozen=True)
class FieldResult:
    """Recognition outcome for one dashboard region."""

    field_kind: FieldKind
    raw_text: str
    confidence: ConfidenceResult
    value: Optional[str] = None


@dataclass(frozen=True)
class ZuluTime:
    """UTC clock time read from the screen, with day rollover flag."""

    hour: int
    minute: int
    next_day: bool = False

    @property
    def text(self) -> str:
        suffix = "+1" if self.next_day else ""
        return f"{self.hour:02d}{self.minute:02d}Z{suffix}"


@dataclass
class FlightRecord:
    """Normalized flight values for one capture session."""

    flight_number: Optional[str] = None
    aircraft_type: Optional[str] = None
    aircraft_reg: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    sched_dep: Optional[str] = None
    sched_arr: Optional[str] = None
    out_time: Optional[str] = None
    off_time: Optional[str] = None
    on_time: Optional[str] = None
    in_time: Optional[str] = None
    day_of_week: Optional[str] = None
    day_of_month: Optional[int] = None
    inferred_date: Optional[date] = None
    date_confidence: ConfidenceLevel = ConfidenceLevel.LOW

    def set_field(self, kind: FieldKind, value: Optional[str]) -> None:
        """Store a parsed value under the attribute mapped to ``kind``."""
        attribute = RECORD_ATTRIBUTES.get(kind)
        if attribute is None:
            raise KeyError(f"Field kind {kind.value} has no record attribute")
        setattr(self, attribute, value)

    def get_field(self, kind: FieldKind) -> Optional[str]:
        attribute = RECORD_ATTRIBUTES.get(kind)
        return getattr(self, attribute) if attribute else None


# Day/date is split into day_of_week and day_of_month, so it has no entry.
RECORD_ATTRIBUTES: Dict[FieldKind, str] = {
    FieldKind.FLIGHT_NUMBER: "flight_number",
    FieldKind.AIRCRAFT_TYPE: "aircraft_type",
    FieldKind.AIRCRAFT_REG: "aircraft_reg",
    FieldKind.DEPARTURE: "departure",
    FieldKind.ARRIVAL: "arrival",
    FieldKind.SCHED_DEP: "sched_dep",
    FieldKind.SCHED_ARR: "sched_arr",
    FieldKind.OUT_TIME: "out_time",
    FieldKind.OFF_TIME: "off_time",
    FieldKind.ON_TIME: "on_time",
    FieldKind.IN_TIME: "in_time",
}


@dataclass
class ManualOverrides:
    """Values corrected by a reviewer. Blank strings count as absent."""

    flight_number: Optional[str] = None
    aircraft_type: Optional[str] = None
    aircraft_reg: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    sched_dep: Optional[str] = None
    sched_arr: Optional[str] = None
    out_time: Optional[str] = None
    off_time: Optional[str] = None
    on_time: Optional[str] = None
    in_time: Optional[str] = None
    date: Optional[str] = None

    def value(self, name: str) -> Optional[str]:
        """Return the trimmed override for ``name`` or None if blank."""
        raw = getattr(self, name)
        if raw is None:
            return None
        trimmed = raw.strip()
        return trimmed or None

    @classmethod
    def from_pairs(cls, pairs: Iterable[str]) -> "ManualOverrides":
        """Build overrides from ``name=value`` strings.

        Raises:
            ValueError: If a pair is malformed or names an unknown field.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, str] = {}
        for pair in pairs:
            name, sep, raw = pair.partition("=")
            name = name.strip()
            if not sep:
                raise ValueError(f"Override '{pair}' must look like name=value")
            if name not in known:
                raise ValueError(
                    f"Unknown override field '{name}'. Expected one of: {', '.join(sorted(known))}"
                )
            values[name] = raw
        return cls(**values)


@dataclass(frozen=True)
class CrewMember:
    """One named crew member with an assigned position."""

    role: str
    name: str

    @property
    def seniority(self) -> int:
        return seniority_rank(self.role)


@dataclass(frozen=True)
class CrewReviewItem:
    """A crew name that was altered during cleanup and needs a second look."""

    role: str
    original_text: str
    corrected_text: str


@dataclass
class CrewParseResult:
    """Crew lists and review items produced for one roster."""

    cockpit: List[CrewMember] = field(default_factory=list)
    cabin: List[CrewMember] = field(default_factory=list)
    review_items: List[CrewReviewItem] = field(default_factory=list)
