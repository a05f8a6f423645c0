"""Unit tests for flight field parsers."""
import pytest

from flight_capture.field_parsers import (
    clean_crew_name,
    extract_aircraft_type,
    extract_airport_code,
    extract_crew_name,
    extract_flight_number,
    extract_registration,
    normalize_registration,
    parse_day_date,
    parse_field,
    parse_zulu_time,
    split_crew_text,
)
from flight_capture.models.flight_data import FieldKind, ZuluTime


@pytest.mark.unit
class TestFlightNumber:
    """Test flight number extraction."""

    def test_single(self):
        # Act & Assert
        assert extract_flight_number("CPA648") == "CPA648"

    def test_first_of_several(self):
        """Test that the first designator wins."""
        # Act & Assert
        assert extract_flight_number("Flight, CPA648, CX876") == "CPA648"

    def test_none(self):
        # Act & Assert
        assert extract_flight_number("no flight here") is None


@pytest.mark.unit
class TestRegistration:
    """Test registration extraction and normalization."""

    @pytest.mark.parametrize("token,expected", [
        ("BLRU", "B-LRU"),
        ("blru", "B-LRU"),
        ("B-LRU", "B-LRU"),
        ("N123AB", "N123AB"),
        ("BLRUX", "BLRUX"),
    ])
    def test_normalize(self, token, expected):
        # Act & Assert
        assert normalize_registration(token) == expected

    def test_label_wins(self):
        """Test that the token after a Reg label is used."""
        # Act & Assert
        assert extract_registration("Reg, BLRU, A350") == "B-LRU"

    def test_last_candidate_without_label(self):
        # Act & Assert
        assert extract_registration("A350, BLRU") == "B-LRU"

    def test_hyphenated_candidate(self):
        # Act & Assert
        assert extract_registration("Aircraft B-HNR") == "B-HNR"

    def test_digits_only_rejected(self):
        """Test that numeric tokens such as times are not registrations."""
        # Act & Assert
        assert extract_registration("1835, 0215") is None


@pytest.mark.unit
class TestAircraftType:
    """Test aircraft type extraction."""

    def test_label(self):
        # Act & Assert
        assert extract_aircraft_type("Aircraft Type: a35k") == "A35K"

    def test_designator(self):
        # Act & Assert
        assert extract_aircraft_type("B-LRU, A359") == "A359"

    def test_none(self):
        # Act & Assert
        assert extract_aircraft_type("unknown") is None


@pytest.mark.unit
class TestAirportCode:
    """Test ICAO code selection."""

    def test_single_code_serves_both(self):
        # Act & Assert
        assert extract_airport_code("VHHH", FieldKind.DEPARTURE) == "VHHH"
        assert extract_airport_code("VHHH", FieldKind.ARRIVAL) == "VHHH"

    def test_two_codes(self):
        """Test that departure takes the first code and arrival the second."""
        # Act & Assert
        assert extract_airport_code("VHHH, OERK", FieldKind.DEPARTURE) == "VHHH"
        assert extract_airport_code("VHHH, OERK", FieldKind.ARRIVAL) == "OERK"

    def test_lowercase_rejected(self):
        # Act & Assert
        assert extract_airport_code("vhhh") is None


@pytest.mark.unit
class TestZuluTime:
    """Test UTC time parsing."""

    def test_canonical(self):
        # Act & Assert
        assert parse_zulu_time("1835Z") == ZuluTime(18, 35)

    def test_next_day(self):
        """Test that +1 becomes the next-day flag, not part of the clock."""
        # Act & Assert
        assert parse_zulu_time("STA 2359Z+1") == ZuluTime(23, 59, next_day=True)

    def test_invalid_canonical_skipped(self):
        """Test that 2575Z is skipped in favor of a later valid time."""
        # Act & Assert
        assert parse_zulu_time("2575Z, 0130Z", lenient=False) == ZuluTime(1, 30)

    @pytest.mark.parametrize("text,expected", [
        ("1842", ZuluTime(18, 42)),
        ("18:42", ZuluTime(18, 42)),
        ("0105z", ZuluTime(1, 5)),
        ("0105 +1", ZuluTime(1, 5, next_day=True)),
    ])
    def test_lenient(self, text, expected):
        # Act & Assert
        assert parse_zulu_time(text) == expected

    def test_strict_rejects_bare_clock(self):
        # Act & Assert
        assert parse_zulu_time("1842", lenient=False) is None

    def test_unreadable(self):
        # Act & Assert
        assert parse_zulu_time("--:--") is None


@pytest.mark.unit
class TestDayDate:
    """Test day/date label splitting."""

    @pytest.mark.parametrize("text", ["Mon 30", "Mon, 30", "30 Mon", "30, Mon", "Mon. 30"])
    def test_accepted_forms(self, text):
        # Act
        weekday, day = parse_day_date(text)

        # Assert
        assert weekday == "Mon"
        assert day == 30

    def test_day_out_of_range(self):
        # Act & Assert
        assert parse_day_date("Mon 32") is None

    def test_no_day(self):
        # Act & Assert
        assert parse_day_date("Monday") is None


@pytest.mark.unit
class TestCrewNames:
    """Test crew text cleanup."""

    def test_split(self):
        # Act & Assert
        assert split_crew_text("Kevin Smith, HKG\nJohn Lee,  ") == ["Kevin Smith", "HKG", "John Lee"]

    def test_clean_title_cases(self):
        # Act
        token = clean_crew_name("KEVIN SMITH")

        # Assert
        assert token.name == "Kevin Smith"
        assert token.truncated is False

    def test_clean_strips_trailing_dots(self):
        """Test that a truncated name is marked for review."""
        # Act
        token = clean_crew_name("Lily Chu...")

        # Assert
        assert token.name == "Lily Chu"
        assert token.original == "Lily Chu..."
        assert token.truncated is True

    @pytest.mark.parametrize("part", ["HKG", "E-CN", "FO", "A", "Smith3", "Lee/Wong"])
    def test_clean_rejects_non_names(self, part):
        # Act & Assert
        assert clean_crew_name(part) is None

    def test_extract_joins_cell_parts(self):
        """Test that name fragments of one cell are joined and tokens dropped."""
        # Act
        token = extract_crew_name("Kevin, Smith, HKG, E-CN")

        # Assert
        assert token.name == "Kevin Smith"

    def test_extract_empty(self):
        # Act & Assert
        assert extract_crew_name("HKG, 5-FO") is None


@pytest.mark.unit
class TestParseField:
    """Test per-kind normalized values."""

    @pytest.mark.parametrize("kind,raw,expected", [
        (FieldKind.FLIGHT_NUMBER, "CPA648", "CPA648"),
        (FieldKind.AIRCRAFT_REG, "Reg, BLRU", "B-LRU"),
        (FieldKind.AIRCRAFT_TYPE, "A350", "A350"),
        (FieldKind.DEPARTURE, "VHHH", "VHHH"),
        (FieldKind.SCHED_ARR, "0215Z+1", "0215Z+1"),
        (FieldKind.SCHED_DEP, "1835", "1835Z"),
        (FieldKind.DAY_DATE, "30, Mon", "Mon 30"),
        (FieldKind.OUT_TIME, "1842", "18:42"),
        (FieldKind.IN_TIME, "01:14Z", "01:14"),
    ])
    def test_values(self, kind, raw, expected):
        # Act & Assert
        assert parse_field(kind, raw) == expected

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_blank(self, raw):
        # Act & Assert
        assert parse_field(FieldKind.FLIGHT_NUMBER, raw) is None
