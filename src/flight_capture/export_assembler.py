"""Assembly of the logbook export payload.

Each exported value is resolved from an ordered list of named sources:
a reviewer override first, then the recognized value, then a literal
fallback. Absent values are dropped from the entity instead of being
written as null.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Sequence, Tuple

from flight_capture.config.settings import Settings
from flight_capture.date_inference import parse_date_text
from flight_capture.field_parsers import parse_zulu_time
from flight_capture.models.flight_data import CrewMember, FlightRecord, ManualOverrides

DATE_TIME_FORMAT = "%d/%m/%Y %H:%M"

SOURCE_OVERRIDE = "override"
SOURCE_OCR = "ocr"
SOURCE_FALLBACK = "fallback"

# Role label to export field, in export order
CREW_EXPORT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("PIC", "flight_selectedCrewPIC"),
    ("Commander", "flight_selectedCrewCommander"),
    ("SIC", "flight_selectedCrewSIC"),
    ("Relief", "flight_selectedCrewRelief"),
    ("Relief2", "flight_selectedCrewRelief2"),
    ("ISM", "flight_selectedCrewCustom1"),
    ("SP", "flight_selectedCrewCustom4"),
    ("FP", "flight_selectedCrewCustom5"),
    ("FA", "flight_selectedCrewFlightAttendant"),
    ("FA2", "flight_selectedCrewFlightAttendant2"),
    ("FA3", "flight_selectedCrewFlightAttendant3"),
    ("FA4", "flight_selectedCrewFlightAttendant4"),
)


@dataclass(frozen=True)
class ResolvedValue:
    """The winning value and the name of the source it came from."""

    source: Optional[str]
    value: Optional[str]


def resolve_value(sources: Sequence[Tuple[str, Optional[str]]]) -> ResolvedValue:
    """Return the first source whose value is non-empty after trimming."""
    for name, raw in sources:
        if raw is None:
            continue
        value = str(raw).strip()
        if value:
            return ResolvedValue(source=name, value=value)
    return ResolvedValue(source=None, value=None)


def generate_flight_key(
    flight_date: str,
    flight_number: str,
    origin: str,
    destination: str,
    length: int = 16,
) -> str:
    """Derive a stable record key from the four defining flight fields.

    The fields are concatenated without a separator and hashed with SHA-256;
    the key is the first ``length`` hex characters. Logbooks deduplicate on
    this value, so the format must not change.
    """
    joined = f"{flight_date}{flight_number}{origin}{destination}"
    digest = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    return digest[:length]


def format_scheduled_time(
    zulu_text: Optional[str],
    flight_date: Optional[date],
    fallback: str,
) -> str:
    """Combine the flight date with a Zulu clock value.

    A ``+1`` suffix moves the result to the next calendar day. Without a
    date or a readable time, ``fallback`` is returned unchanged.
    """
    if flight_date is None or not zulu_text:
        return fallback
    zulu = parse_zulu_time(zulu_text)
    if zulu is None:
        return fallback

    moment = datetime.combine(flight_date, time(zulu.hour, zulu.minute))
    if zulu.next_day:
        moment += timedelta(days=1)
    return moment.strftime(DATE_TIME_FORMAT)


def format_actual_time(clock_text: Optional[str], scheduled: str) -> Optional[str]:
    """Put an out/off/on/in clock value on the date of ``scheduled``.

    Returns None when the clock value is missing or unreadable so the field
    is left out of the payload.
    """
    if not clock_text or not clock_text.strip():
        return None
    clock = parse_zulu_time(clock_text)
    if clock is None:
        return None
    try:
        scheduled_moment = datetime.strptime(scheduled, DATE_TIME_FORMAT)
    except ValueError:
        return None

    moment = datetime.combine(scheduled_moment.date(), time(clock.hour, clock.minute))
    if clock.next_day:
        moment += timedelta(days=1)
    return moment.strftime(DATE_TIME_FORMAT)


def crew_export_fields(
    cockpit: Sequence[CrewMember],
    cabin: Sequence[CrewMember],
) -> Dict[str, str]:
    """Map crew members to export fields by role; roles left empty are omitted."""
    by_role: Dict[str, str] = {}
    for member in list(cockpit) + list(cabin):
        if member.name and member.name.strip():
            by_role[member.role] = member.name.strip()
    return {
        field_name: by_role[role]
        for role, field_name in CREW_EXPORT_FIELDS
        if role in by_role
    }


def drop_empty(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value
        for key, value in values.items()
        if value is not None and not (isinstance(value, str) and not value.strip())
    }


class ExportAssembler:
    """Builds the single-entity export payload for one capture session."""

    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self._settings = settings
        self._logger = logger

    def build_payload(
        self,
        record: FlightRecord,
        overrides: Optional[ManualOverrides] = None,
        cockpit: Sequence[CrewMember] = (),
        cabin: Sequence[CrewMember] = (),
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Merge overrides, recognized values and crew into the payload.

        Args:
            record: Values recognized in this session.
            overrides: Reviewer corrections; blank entries are ignored.
            cockpit: Flight deck crew, any order.
            cabin: Cabin crew, any order.
            now: Capture time used when no flight date is known.

        Returns:
            Dictionary with ``metadata`` and a one-element ``entities`` list.
        """
        overrides = overrides or ManualOverrides()
        now = now or datetime.now()
        settings = self._settings

        flight_number = self._resolve("flight_number", overrides, record.flight_number,
                                      settings.fallback_flight_number)
        origin = self._resolve("departure", overrides, record.departure, settings.fallback_departure)
        destination = self._resolve("arrival", overrides, record.arrival, settings.fallback_arrival)
        aircraft_id = self._resolve("aircraft_reg", overrides, record.aircraft_reg,
                                    settings.fallback_aircraft_id)
        aircraft_type = self._resolve("aircraft_type", overrides, record.aircraft_type)

        flight_date = self._flight_date(record, overrides)
        fallback_time = now.strftime(DATE_TIME_FORMAT)
        scheduled_departure = format_scheduled_time(
            self._resolve("sched_dep", overrides, record.sched_dep), flight_date, fallback_time
        )
        scheduled_arrival = format_scheduled_time(
            self._resolve("sched_arr", overrides, record.sched_arr), flight_date, fallback_time
        )

        flight_key = generate_flight_key(
            scheduled_departure.split(" ")[0],
            flight_number,
            origin,
            destination,
            length=settings.flight_key_length,
        )
        self._logger.debug("Generated flight_key %s", flight_key)

        entity: Dict[str, Any] = {
            "entity_name": "Flight",
            "flight_key": flight_key,
            "flight_flightNumber": flight_number,
            "flight_from": origin,
            "flight_to": destination,
            "flight_scheduledDepartureTime": scheduled_departure,
            "flight_scheduledArrivalTime": scheduled_arrival,
            "flight_selectedAircraftID": aircraft_id,
            "flight_selectedAircraftType": aircraft_type,
            "flight_type": 0,
            "flight_customNote1": f"{origin} - {destination} {flight_number}",
            "flight_actualDepartureTime": format_actual_time(
                self._resolve("out_time", overrides, record.out_time), scheduled_departure
            ),
            "flight_takeoffTime": format_actual_time(
                self._resolve("off_time", overrides, record.off_time), scheduled_departure
            ),
            "flight_landingTime": format_actual_time(
                self._resolve("on_time", overrides, record.on_time), scheduled_arrival
            ),
            "flight_actualArrivalTime": format_actual_time(
                self._resolve("in_time", overrides, record.in_time), scheduled_arrival
            ),
        }
        entity.update(crew_export_fields(cockpit, cabin))

        return {
            "metadata": self._metadata(),
            "entities": [drop_empty(entity)],
        }

    def _resolve(
        self,
        name: str,
        overrides: ManualOverrides,
        recognized: Optional[str],
        fallback: Optional[str] = None,
    ) -> Optional[str]:
        resolved = resolve_value([
            (SOURCE_OVERRIDE, overrides.value(name)),
            (SOURCE_OCR, recognized),
            (SOURCE_FALLBACK, fallback),
        ])
        if resolved.source == SOURCE_FALLBACK:
            self._logger.debug("Using fallback value '%s' for %s", resolved.value, name)
        return resolved.value

    def _flight_date(self, record: FlightRecord, overrides: ManualOverrides) -> Optional[date]:
        edited = overrides.value("date")
        if edited:
            parsed = parse_date_text(edited)
            if parsed is not None:
                return parsed
            self._logger.warning("Ignoring unreadable date override '%s'", edited)
        return record.inferred_date

    def _metadata(self) -> Dict[str, Any]:
        return {
            "application": self._settings.export_application,
            "version": self._settings.export_version,
            "dateFormat": "dd/MM/yyyy",
            "dateAndTimeFormat": "dd/MM/yyyy HH:mm",
            "serviceID": self._settings.export_service_id,
            "numberOfEntities": 1,
            "timesAreZulu": True,
            "shouldApplyAutoFillTimes": True,
        }


def to_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)
