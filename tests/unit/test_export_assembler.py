"""Unit tests for ExportAssembler module."""
import hashlib
import json
from datetime import date, datetime

import pytest

from flight_capture.export_assembler import (
    SOURCE_FALLBACK,
    SOURCE_OCR,
    SOURCE_OVERRIDE,
    ExportAssembler,
    crew_export_fields,
    drop_empty,
    format_actual_time,
    format_scheduled_time,
    generate_flight_key,
    resolve_value,
    to_json,
)
from flight_capture.models.flight_data import CrewMember, FlightRecord, ManualOverrides

NOW = datetime(2025, 7, 1, 9, 30)


@pytest.fixture
def record():
    """Record as recognized from the sample dashboard."""
    return FlightRecord(
        flight_number="CPA648",
        aircraft_type="A350",
        aircraft_reg="B-LRU",
        departure="VHHH",
        arrival="OERK",
        sched_dep="1835Z",
        sched_arr="0215Z+1",
        out_time="18:42",
        off_time="19:01",
        on_time="01:05",
        in_time="01:14",
        day_of_week="Mon",
        day_of_month=30,
        inferred_date=date(2025, 6, 30),
    )


@pytest.fixture
def assembler(test_settings, logger):
    return ExportAssembler(test_settings, logger)


def entity_of(payload):
    return payload["entities"][0]


@pytest.mark.unit
class TestResolveValue:
    """Test source precedence."""

    def test_first_non_empty_wins(self):
        # Act
        resolved = resolve_value([(SOURCE_OVERRIDE, "  "), (SOURCE_OCR, " CPA648 "), (SOURCE_FALLBACK, "TEST123")])

        # Assert
        assert resolved.source == SOURCE_OCR
        assert resolved.value == "CPA648"

    def test_nothing_found(self):
        # Act
        resolved = resolve_value([(SOURCE_OVERRIDE, None), (SOURCE_OCR, "")])

        # Assert
        assert resolved.source is None
        assert resolved.value is None


@pytest.mark.unit
class TestFlightKey:
    """Test record key derivation."""

    def test_format(self):
        # Act
        key = generate_flight_key("30/06/2025", "CPA648", "VHHH", "OERK")

        # Assert
        digest = hashlib.sha256("30/06/2025CPA648VHHHOERK".encode("utf-8")).hexdigest()
        assert key == digest[:16]
        assert len(key) == 16

    def test_stable(self):
        # Act & Assert
        assert generate_flight_key("d", "f", "o", "a") == generate_flight_key("d", "f", "o", "a")

    @pytest.mark.parametrize("changed", [
        ("01/07/2025", "CPA648", "VHHH", "OERK"),
        ("30/06/2025", "CPA649", "VHHH", "OERK"),
        ("30/06/2025", "CPA648", "VHHX", "OERK"),
        ("30/06/2025", "CPA648", "VHHH", "OERX"),
    ])
    def test_any_component_changes_key(self, changed):
        # Act & Assert
        assert generate_flight_key(*changed) != generate_flight_key("30/06/2025", "CPA648", "VHHH", "OERK")

    def test_plain_concatenation(self):
        """Test that only the concatenated text feeds the hash."""
        # Act & Assert
        assert generate_flight_key("a", "bc", "d", "e") == generate_flight_key("ab", "c", "d", "e")

    def test_known_key(self):
        # Act
        key = generate_flight_key("", "", "", "")

        # Assert
        assert key == "e3b0c44298fc1c14"

    def test_custom_length(self):
        # Act & Assert
        assert len(generate_flight_key("d", "f", "o", "a", length=8)) == 8


@pytest.mark.unit
class TestTimeFormatting:
    """Test date and time composition."""

    def test_scheduled(self):
        # Act & Assert
        assert format_scheduled_time("1835Z", date(2025, 6, 30), "fb") == "30/06/2025 18:35"

    def test_scheduled_next_day_crosses_year(self):
        # Act & Assert
        assert format_scheduled_time("2359Z+1", date(2025, 12, 31), "fb") == "01/01/2026 23:59"

    @pytest.mark.parametrize("text,flight_date", [
        (None, date(2025, 6, 30)),
        ("1835Z", None),
        ("--", date(2025, 6, 30)),
    ])
    def test_scheduled_fallback(self, text, flight_date):
        # Act & Assert
        assert format_scheduled_time(text, flight_date, "01/07/2025 09:30") == "01/07/2025 09:30"

    def test_actual_on_scheduled_date(self):
        # Act & Assert
        assert format_actual_time("23:55", "30/06/2025 18:35") == "30/06/2025 23:55"

    def test_actual_next_day(self):
        # Act & Assert
        assert format_actual_time("0010+1", "30/06/2025 18:35") == "01/07/2025 00:10"

    @pytest.mark.parametrize("clock", [None, "", "  ", "n/a"])
    def test_actual_unreadable_omitted(self, clock):
        # Act & Assert
        assert format_actual_time(clock, "30/06/2025 18:35") is None


@pytest.mark.unit
class TestCrewExportFields:
    """Test crew role to field mapping."""

    def test_known_roles_mapped(self):
        # Arrange
        cockpit = [CrewMember("PIC", "Kevin Smith"), CrewMember("SIC", "Peter Chan")]
        cabin = [CrewMember("ISM", "Mary Lau"), CrewMember("FA4", "Tom Ho")]

        # Act
        fields = crew_export_fields(cockpit, cabin)

        # Assert
        assert fields == {
            "flight_selectedCrewPIC": "Kevin Smith",
            "flight_selectedCrewSIC": "Peter Chan",
            "flight_selectedCrewCustom1": "Mary Lau",
            "flight_selectedCrewFlightAttendant4": "Tom Ho",
        }

    def test_unknown_and_blank_omitted(self):
        # Arrange
        cockpit = [CrewMember("PIC", "  "), CrewMember("Observer", "X Y")]

        # Act & Assert
        assert crew_export_fields(cockpit, []) == {}


@pytest.mark.unit
class TestDropEmpty:
    """Test absent value removal."""

    def test_drop_empty(self):
        # Act & Assert
        assert drop_empty({"a": None, "b": " ", "c": 0, "d": "x"}) == {"c": 0, "d": "x"}


@pytest.mark.unit
class TestBuildPayload:
    """Test the full payload."""

    def test_recognized_values(self, assembler, record):
        # Act
        entity = entity_of(assembler.build_payload(record, now=NOW))

        # Assert
        assert entity["entity_name"] == "Flight"
        assert entity["flight_flightNumber"] == "CPA648"
        assert entity["flight_from"] == "VHHH"
        assert entity["flight_to"] == "OERK"
        assert entity["flight_selectedAircraftID"] == "B-LRU"
        assert entity["flight_selectedAircraftType"] == "A350"
        assert entity["flight_type"] == 0
        assert entity["flight_customNote1"] == "VHHH - OERK CPA648"
        assert entity["flight_scheduledDepartureTime"] == "30/06/2025 18:35"
        assert entity["flight_scheduledArrivalTime"] == "01/07/2025 02:15"
        assert entity["flight_actualDepartureTime"] == "30/06/2025 18:42"
        assert entity["flight_takeoffTime"] == "30/06/2025 19:01"
        assert entity["flight_landingTime"] == "01/07/2025 01:05"
        assert entity["flight_actualArrivalTime"] == "01/07/2025 01:14"
        assert entity["flight_key"] == generate_flight_key("30/06/2025", "CPA648", "VHHH", "OERK")

    def test_metadata(self, assembler, record):
        # Act
        metadata = assembler.build_payload(record, now=NOW)["metadata"]

        # Assert
        assert metadata["application"] == "FlightCapture"
        assert metadata["numberOfEntities"] == 1
        assert metadata["dateAndTimeFormat"] == "dd/MM/yyyy HH:mm"
        assert metadata["timesAreZulu"] is True

    def test_overrides_win(self, assembler, record):
        # Arrange
        overrides = ManualOverrides(flight_number=" CPA649 ", arrival="  ", date="2025-06-29")

        # Act
        entity = entity_of(assembler.build_payload(record, overrides, now=NOW))

        # Assert
        assert entity["flight_flightNumber"] == "CPA649"
        assert entity["flight_to"] == "OERK"
        assert entity["flight_scheduledDepartureTime"] == "29/06/2025 18:35"
        assert entity["flight_key"] == generate_flight_key("29/06/2025", "CPA649", "VHHH", "OERK")

    def test_unreadable_date_override_ignored(self, assembler, record):
        # Act
        entity = entity_of(assembler.build_payload(record, ManualOverrides(date="tomorrow"), now=NOW))

        # Assert
        assert entity["flight_scheduledDepartureTime"] == "30/06/2025 18:35"

    def test_fallbacks_for_empty_record(self, assembler):
        # Act
        entity = entity_of(assembler.build_payload(FlightRecord(), now=NOW))

        # Assert
        assert entity["flight_flightNumber"] == "TEST123"
        assert entity["flight_from"] == "VHHH"
        assert entity["flight_to"] == "OERK"
        assert entity["flight_selectedAircraftID"] == "B-TEST"
        assert entity["flight_scheduledDepartureTime"] == "01/07/2025 09:30"
        assert entity["flight_scheduledArrivalTime"] == "01/07/2025 09:30"
        assert entity["flight_key"] == generate_flight_key("01/07/2025", "TEST123", "VHHH", "OERK")
        assert "flight_selectedAircraftType" not in entity
        assert "flight_actualDepartureTime" not in entity
        assert "flight_landingTime" not in entity

    def test_unparseable_actual_time_omitted(self, assembler, record):
        # Arrange
        record.off_time = "garbage"

        # Act
        entity = entity_of(assembler.build_payload(record, now=NOW))

        # Assert
        assert "flight_takeoffTime" not in entity
        assert entity["flight_actualDepartureTime"] == "30/06/2025 18:42"

    def test_no_null_values(self, assembler):
        # Act
        entity = entity_of(assembler.build_payload(FlightRecord(), now=NOW))

        # Assert
        assert all(value is not None for value in entity.values())

    def test_crew_included(self, assembler, record):
        # Act
        entity = entity_of(assembler.build_payload(
            record,
            cockpit=[CrewMember("PIC", "Kevin Smith")],
            cabin=[CrewMember("SP", "Tom Ho")],
            now=NOW,
        ))

        # Assert
        assert entity["flight_selectedCrewPIC"] == "Kevin Smith"
        assert entity["flight_selectedCrewCustom4"] == "Tom Ho"

    def test_key_stable_across_builds(self, assembler, record):
        # Act
        first = entity_of(assembler.build_payload(record, now=NOW))
        second = entity_of(assembler.build_payload(record, now=datetime(2026, 1, 1)))

        # Assert
        assert first["flight_key"] == second["flight_key"]


@pytest.mark.unit
class TestToJson:
    """Test serialization."""

    def test_non_ascii_kept(self):
        # Act
        text = to_json({"name": "Zoë"})

        # Assert
        assert "Zoë" in text
        assert json.loads(text) == {"name": "Zoë"}
