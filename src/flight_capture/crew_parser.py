"""Crew roster parsing, positional role assignment and seniority ordering."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from flight_capture.config.crew_tokens import CABIN_ROLES, COCKPIT_ROLES
from flight_capture.field_parsers import (
    CrewNameToken,
    clean_crew_name,
    extract_crew_name,
    split_crew_text,
)
from flight_capture.models.flight_data import (
    CrewMember,
    CrewParseResult,
    CrewReviewItem,
    CrewSection,
    ROIDefinition,
)


def sort_by_seniority(members: Iterable[CrewMember]) -> List[CrewMember]:
    """Order crew by seniority rank.

    ``sorted`` is stable, so members with unranked roles keep their input
    order at the end of the list and sorting twice changes nothing.
    """
    return sorted(members, key=lambda member: member.seniority)


def assign_roles(
    tokens: Sequence[CrewNameToken],
    roles: Sequence[str],
    review_items: List[CrewReviewItem],
    logger: Optional[logging.Logger] = None,
) -> List[CrewMember]:
    """Give the Nth name the Nth role label.

    Names beyond the available labels are dropped. Names shortened during
    cleanup are appended to ``review_items`` once per role.
    """
    if len(tokens) > len(roles) and logger:
        logger.warning(
            "Found %d crew names but only %d positions; ignoring: %s",
            len(tokens),
            len(roles),
            ", ".join(token.name for token in tokens[len(roles):]),
        )

    members = []
    for token, role in zip(tokens, roles):
        members.append(CrewMember(role=role, name=token.name))
        if token.truncated:
            add_review_item(
                review_items,
                CrewReviewItem(role=role, original_text=token.original, corrected_text=token.name),
            )
    return members


def add_review_item(review_items: List[CrewReviewItem], item: CrewReviewItem) -> bool:
    """Append ``item`` unless an item for the same role is already queued."""
    if any(existing.role == item.role for existing in review_items):
        return False
    review_items.append(item)
    return True


class CrewParser:
    """Turns recognized roster text into ordered cockpit and cabin lists."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def parse_roster(self, cells: Sequence[Tuple[ROIDefinition, str]]) -> CrewParseResult:
        """Parse one text block per roster cell, in reading order.

        Args:
            cells: ``(roi, text)`` pairs. Empty text means the cell failed.

        Returns:
            CrewParseResult with both lists sorted by seniority.
        """
        tokens: Dict[CrewSection, List[CrewNameToken]] = {
            CrewSection.COCKPIT: [],
            CrewSection.CABIN: [],
        }
        for roi, text in cells:
            section = roi.section or CrewSection.COCKPIT
            token = extract_crew_name(text) if text else None
            if token is None:
                self._logger.debug("No crew name in cell '%s': %r", roi.name, text)
                continue
            tokens[section].append(token)

        review_items: List[CrewReviewItem] = []
        cockpit = assign_roles(tokens[CrewSection.COCKPIT], COCKPIT_ROLES, review_items, self._logger)
        cabin = assign_roles(tokens[CrewSection.CABIN], CABIN_ROLES, review_items, self._logger)
        return self._finish(cockpit, cabin, review_items)

    def parse_compact(self, text: str) -> CrewParseResult:
        """Parse the single crew block of the dashboard screen.

        That block lists flight deck crew only, in cockpit label order.
        """
        tokens = [
            token
            for token in (clean_crew_name(part) for part in split_crew_text(text))
            if token is not None
        ]
        review_items: List[CrewReviewItem] = []
        cockpit = assign_roles(tokens, COCKPIT_ROLES, review_items, self._logger)
        return self._finish(cockpit, [], review_items)

    def _finish(
        self,
        cockpit: List[CrewMember],
        cabin: List[CrewMember],
        review_items: List[CrewReviewItem],
    ) -> CrewParseResult:
        result = CrewParseResult(
            cockpit=sort_by_seniority(cockpit),
            cabin=sort_by_seniority(cabin),
            review_items=review_items,
        )
        self._logger.info(
            "Parsed crew: %d cockpit, %d cabin, %d for review",
            len(result.cockpit),
            len(result.cabin),
            len(result.review_items),
        )
        return result


class CrewRoster:
    """Session-owned crew lists and review queue, guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cockpit: List[CrewMember] = []
        self._cabin: List[CrewMember] = []
        self._review_items: List[CrewReviewItem] = []

    def reset(self) -> None:
        with self._lock:
            self._cockpit = []
            self._cabin = []
            self._review_items = []

    def publish(self, result: CrewParseResult) -> None:
        """Replace both lists with a freshly parsed roster."""
        with self._lock:
            self._cockpit = sort_by_seniority(result.cockpit)
            self._cabin = sort_by_seniority(result.cabin)
            for item in result.review_items:
                add_review_item(self._review_items, item)

    def add_review_item(self, item: CrewReviewItem) -> bool:
        with self._lock:
            return add_review_item(self._review_items, item)

    def reassign_role(self, section: CrewSection, index: int, role: str) -> CrewMember:
        """Change the role of one member and re-sort that list.

        Raises:
            IndexError: If ``index`` is outside the list.
        """
        with self._lock:
            members = self._cockpit if section is CrewSection.COCKPIT else self._cabin
            current = members[index]
            updated = CrewMember(role=role, name=current.name)
            members[index] = updated
            resorted = sort_by_seniority(members)
            if section is CrewSection.COCKPIT:
                self._cockpit = resorted
            else:
                self._cabin = resorted
            return updated

    def update_from_review(
        self,
        cockpit: Sequence[CrewMember],
        cabin: Sequence[CrewMember],
    ) -> None:
        """Accept lists edited by a reviewer and clear the review queue."""
        with self._lock:
            self._cockpit = sort_by_seniority(cockpit)
            self._cabin = sort_by_seniority(cabin)
            self._review_items = []

    def needs_review(self) -> bool:
        with self._lock:
            return bool(self._review_items)

    def snapshot(self) -> CrewParseResult:
        with self._lock:
            return CrewParseResult(
                cockpit=list(self._cockpit),
                cabin=list(self._cabin),
                review_items=list(self._review_items),
            )
