"""ROI catalog configuration and loader utilities.

Every rectangle is measured in pixels on the reference screenshot
(2360x1640) as a top-left / bottom-right corner pair, and stored normalized
so it can be rescaled onto any capture with the same aspect convention.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flight_capture.models.flight_data import (
    CrewSection,
    FieldKind,
    NormalizedRect,
    ROIDefinition,
)

REFERENCE_SIZE: Tuple[int, int] = (2360, 1640)

Point = Tuple[float, float]


def normalize_rect(
    top_left: Point,
    bottom_right: Point,
    reference_size: Tuple[int, int] = REFERENCE_SIZE,
) -> NormalizedRect:
    """Convert a reference-pixel corner pair into a normalized rectangle.

    Args:
        top_left: ``(x, y)`` of the top-left corner in reference pixels.
        bottom_right: ``(x, y)`` of the bottom-right corner in reference pixels.
        reference_size: ``(width, height)`` of the reference image.

    Returns:
        NormalizedRect with fractions of the reference width and height.

    Raises:
        ValueError: If the reference size is not positive or the corners do
            not describe a rectangle inside the reference image.
    """
    ref_width, ref_height = reference_size
    if ref_width <= 0 or ref_height <= 0:
        raise ValueError(f"Reference size must be positive, got {reference_size}")

    x1, y1 = top_left
    x2, y2 = bottom_right
    return NormalizedRect(
        x=x1 / ref_width,
        y=y1 / ref_height,
        width=(x2 - x1) / ref_width,
        height=(y2 - y1) / ref_height,
    )


def _flight_roi(name: str, kind: FieldKind, top_left: Point, bottom_right: Point) -> ROIDefinition:
    return ROIDefinition(name=name, rect=normalize_rect(top_left, bottom_right), field_kind=kind)


def _crew_roi(name: str, section: CrewSection, top_left: Point, bottom_right: Point) -> ROIDefinition:
    return ROIDefinition(name=name, rect=normalize_rect(top_left, bottom_right), section=section)


# Crew list columns, left to right, shared by the cockpit and cabin rows
_CREW_COLUMNS: Tuple[Tuple[int, int], ...] = ((180, 645), (685, 1155), (1205, 1675), (1720, 2185))


def _crew_row(
    prefix: str,
    section: CrewSection,
    y_range: Tuple[int, int],
    count: int,
    start: int = 1,
) -> List[ROIDefinition]:
    y1, y2 = y_range
    return [
        _crew_roi(f"{prefix}{start + index}", section, (x1, y1), (x2, y2))
        for index, (x1, x2) in enumerate(_CREW_COLUMNS[:count])
    ]


DEFAULT_ROI_CATALOG: Dict[str, List[ROIDefinition]] = {
    "dashboard": [
        _flight_roi("flightNumber", FieldKind.FLIGHT_NUMBER, (8, 41.8), (235, 147)),
        _flight_roi("aircraftType", FieldKind.AIRCRAFT_TYPE, (28, 223), (171, 297)),
        _flight_roi("aircraftReg", FieldKind.AIRCRAFT_REG, (241, 223), (352, 297)),
        _flight_roi("departure", FieldKind.DEPARTURE, (560, 60), (641, 96)),
        _flight_roi("arrival", FieldKind.ARRIVAL, (807, 60), (894, 96)),
        _flight_roi("schedDep", FieldKind.SCHED_DEP, (647, 60), (750, 96)),
        _flight_roi("schedArr", FieldKind.SCHED_ARR, (900, 60), (1026, 96)),
        _flight_roi("dayDate", FieldKind.DAY_DATE, (480, 56), (543, 130)),
        _flight_roi("out", FieldKind.OUT_TIME, (1970, 1128), (2055, 1166)),
        _flight_roi("off", FieldKind.OFF_TIME, (1970, 1170), (2055, 1208)),
        _flight_roi("on", FieldKind.ON_TIME, (1970, 1230), (2055, 1270)),
        _flight_roi("in", FieldKind.IN_TIME, (1970, 1270), (2055, 1305)),
    ],
    # Reading order: cockpit row, then cabin rows top to bottom
    "crew_list": (
        _crew_row("cockpit", CrewSection.COCKPIT, (380, 420), 4)
        + _crew_row("cabin", CrewSection.CABIN, (750, 796), 4)
        + _crew_row("cabin", CrewSection.CABIN, (950, 995), 3, start=5)
    ),
    "dashboard_crew": [
        _crew_roi("crew", CrewSection.COCKPIT, (26, 1205), (460, 1395)),
    ],
}


def _parse_point(raw: Any) -> Optional[Point]:
    if (
        isinstance(raw, Sequence)
        and not isinstance(raw, str)
        and len(raw) == 2
        and all(isinstance(v, (int, float)) for v in raw)
    ):
        return float(raw[0]), float(raw[1])
    return None


def _parse_roi(raw: Any, reference_size: Tuple[int, int]) -> Optional[ROIDefinition]:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    top_left = _parse_point(raw.get("top_left"))
    bottom_right = _parse_point(raw.get("bottom_right"))
    if not isinstance(name, str) or top_left is None or bottom_right is None:
        return None

    field_kind: Optional[FieldKind] = None
    section: Optional[CrewSection] = None
    try:
        if raw.get("field_kind") is not None:
            field_kind = FieldKind(raw["field_kind"])
        if raw.get("section") is not None:
            section = CrewSection(raw["section"])
        rect = normalize_rect(top_left, bottom_right, reference_size)
    except ValueError:
        return None

    # Exactly one of the two tags must be present
    if (field_kind is None) == (section is None):
        return None
    return ROIDefinition(name=name, rect=rect, field_kind=field_kind, section=section)


def load_roi_catalog(
    catalog_file: Optional[Path],
    logger: Optional[logging.Logger] = None,
) -> Dict[str, List[ROIDefinition]]:
    """Load ROI layouts from a JSON file, merged over the built-in catalog.

    The file holds an object with an optional ``reference_size`` pair and a
    ``layouts`` object mapping layout names to lists of regions. Each region
    has ``name``, ``top_left``, ``bottom_right`` and either ``field_kind`` or
    ``section``.

    Args:
        catalog_file: Path to JSON file containing layout definitions.
        logger: Optional logger for diagnostic messages.

    Returns:
        Dictionary mapping layout names to lists of ROI definitions.
    """
    if not catalog_file:
        return DEFAULT_ROI_CATALOG

    if not catalog_file.exists():
        if logger:
            logger.debug(
                "ROI catalog file '%s' not found. Using built-in defaults.",
                catalog_file,
            )
        return DEFAULT_ROI_CATALOG

    try:
        with catalog_file.open("r", encoding="utf-8") as fp:
            raw_data = json.load(fp)
    except (OSError, json.JSONDecodeError) as exc:
        if logger:
            logger.warning(
                "Failed to load ROI catalog from '%s': %s. Using defaults.",
                catalog_file,
                exc,
            )
        return DEFAULT_ROI_CATALOG

    if not isinstance(raw_data, dict) or not isinstance(raw_data.get("layouts"), dict):
        if logger:
            logger.warning(
                "ROI catalog file '%s' must contain a 'layouts' object. Using defaults.",
                catalog_file,
            )
        return DEFAULT_ROI_CATALOG

    reference_size = REFERENCE_SIZE
    raw_size = _parse_point(raw_data.get("reference_size"))
    if raw_size is not None:
        reference_size = (int(raw_size[0]), int(raw_size[1]))

    validated_layouts: Dict[str, List[ROIDefinition]] = {}
    for layout_name, regions in raw_data["layouts"].items():
        if not isinstance(regions, list):
            if logger:
                logger.debug(
                    "Skipping layout '%s' because regions are not a list",
                    layout_name,
                )
            continue

        validated = []
        for region in regions:
            roi = _parse_roi(region, reference_size)
            if roi is None:
                if logger:
                    logger.debug("Skipping invalid region in layout '%s': %r", layout_name, region)
                continue
            validated.append(roi)

        if validated:
            validated_layouts[layout_name] = validated

    if not validated_layouts:
        if logger:
            logger.warning(
                "ROI catalog file '%s' did not contain any valid layouts. "
                "Using built-in defaults.",
                catalog_file,
            )
        return DEFAULT_ROI_CATALOG

    if logger:
        logger.debug(
            "Loaded %d ROI layouts from '%s'",
            len(validated_layouts),
            catalog_file,
        )
    merged = dict(DEFAULT_ROI_CATALOG)
    merged.update(validated_layouts)
    return merged


def get_layout(
    catalog: Dict[str, List[ROIDefinition]],
    layout_name: str,
) -> List[ROIDefinition]:
    """Return the regions for ``layout_name``.

    Raises:
        KeyError: If the catalog has no such layout.
    """
    try:
        return catalog[layout_name]
    except KeyError:
        raise KeyError(
            f"Unknown ROI layout '{layout_name}'. Available: {', '.join(sorted(catalog))}"
        ) from None
