"""Static token tables for crew roster text.

Crew list cells show a base code and a rank abbreviation next to each name.
Those tokens pass the name character filter, so they are rejected by exact
match against the tables below before positional role assignment.
"""

from typing import FrozenSet, Tuple

from flight_capture.models.flight_data import CrewRole

# Three-letter crew base codes that show up beside names
KNOWN_BASES: FrozenSet[str] = frozenset({
    "HKG", "SIN", "BKK", "ICN", "KIX", "LAX", "JFK", "LHR", "CDG",
    "SYD", "MEL", "DXB", "FRA", "SFO", "ORD", "NRT", "CAN", "SZX",
    "PVG", "PEK", "DEL", "BOM", "AMS", "ZRH", "YYZ", "YVR", "YUL",
})

# Rank abbreviations printed on the roster
KNOWN_ROLE_ABBREVIATIONS: FrozenSet[str] = frozenset({
    "E-CN", "E-FO", "5-FO", "5-SO", "CN", "FO", "SO",
})

# Positional labels, in the order names appear on screen
COCKPIT_ROLES: Tuple[str, ...] = (
    CrewRole.PIC.value,
    CrewRole.RELIEF.value,
    CrewRole.SIC.value,
    CrewRole.RELIEF2.value,
)

CABIN_ROLES: Tuple[str, ...] = (
    CrewRole.ISM.value,
    CrewRole.SP.value,
    CrewRole.FP.value,
    CrewRole.FA.value,
    CrewRole.FA2.value,
    CrewRole.FA3.value,
    CrewRole.FA4.value,
)


def is_non_name_token(token: str) -> bool:
    """Return True if ``token`` is a base code or rank abbreviation."""
    upper = token.strip().upper()
    return upper in KNOWN_BASES or upper in KNOWN_ROLE_ABBREVIATIONS
