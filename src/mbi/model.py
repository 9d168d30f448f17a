"""
Core Survey Model Objects

Defines the fundamental data structures of the pairwise media-bias survey.

These are pure data classes representing:
    - Outlets (catalog entries)
    - Sections (static survey structure)
    - Pairs (one comparison shown to the respondent)
    - Responses (one recorded choice)
    - Positions and the persisted SurveyState aggregate

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about HTTP, storage or rendering
        - Are immutable (frozen)
        - Are fully serializable (see mbi.serialization)
        - Represent data, not behavior
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .responses import ResponseStore


DONT_KNOW = "dk"


class SectionType(Enum):
    """Section kinds. All but MIXED filter the catalog by outlet type."""
    TG = "tg"
    TALK = "talk"
    PRESS = "press"
    RADIO = "radio"
    MIXED = "mixed"


class SurveyPhase(Enum):
    """Top-level states of the survey state machine."""
    AWAITING_CONSENT = "awaiting_consent"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Outlet:
    """
    A media outlet loaded from the catalog.

    Properties:
        codename: Unique identity (e.g., "tg1", "corriere")
        name: Display name
        type: Raw catalog type ("tg", "talk", "press", "radio")
        pic: Optional image URL
        is_mainstream: Whether the codename is in the configured mainstream set
    """

    codename: str
    name: str
    type: str
    pic: Optional[str] = None
    is_mainstream: bool = False


@dataclass(frozen=True)
class Section:
    """
    Static section descriptor, fixed at configuration time.

    Properties:
        id: 1-based section identifier, used in comparison ids
        type: SectionType selecting the outlet pool
        name: Human-readable title
    """

    id: int
    type: SectionType
    name: str


@dataclass(frozen=True)
class Pair:
    """
    One comparison between two outlets.

    Created once by the pair generator and never mutated afterwards.

    INVARIANTS:
        - left.codename != right.codename
        - comparison_id == f"{section_id}-{comparison_index + 1}"
        - comparison_id is unique across the whole generated sequence
    """

    left: Outlet
    right: Outlet
    section_id: int
    section_type: SectionType
    section_name: str
    comparison_index: int

    @property
    def comparison_id(self) -> str:
        return make_comparison_id(self.section_id, self.comparison_index)

    def codenames(self) -> Tuple[str, str]:
        return (self.left.codename, self.right.codename)


@dataclass(frozen=True)
class Response:
    """
    A recorded choice for one comparison.

    Identity is comparison_id: a ResponseStore holds at most one Response
    per comparison_id.

    Properties:
        comparison_id: Identity of the answered Pair
        outlet_left_codename: Left outlet shown
        outlet_right_codename: Right outlet shown
        chosen: Codename of the chosen outlet, or "dk"
        section_type: Raw section type value (e.g., "radio", "mixed")
        timestamp: ISO-8601 UTC time of the choice
    """

    comparison_id: str
    outlet_left_codename: str
    outlet_right_codename: str
    chosen: str
    section_type: str
    timestamp: str


@dataclass(frozen=True)
class SurveyPosition:
    """Pointer into the pair sequence: section index and comparison index (both 0-based)."""

    section: int
    comparison: int

    def linear_index(self, comparisons_per_section: int) -> int:
        return self.section * comparisons_per_section + self.comparison


@dataclass(frozen=True)
class SurveyState:
    """
    The persisted aggregate for one respondent session.

    This is THE value passed into and returned from every state machine
    operation. Nothing else writes it.

    Properties:
        section_ids:
            Configured section order; section index i refers to section_ids[i]
        comparisons_per_section:
            N, the contracted number of comparisons per section
        phase:
            AWAITING_CONSENT, IN_PROGRESS or COMPLETED
        respondent_id / interview_id:
            Assigned on start, None before consent
        pairs:
            Generated sequence, in section order
        responses:
            ResponseStore with upsert-by-comparison_id semantics
        position:
            Current pointer, None before consent
        consent_given:
            Whether the respondent accepted the consent form

    INVARIANTS:
        - position is the only authoritative pointer into pairs
        - while IN_PROGRESS, position resolves to a Pair
    """

    section_ids: Tuple[int, ...]
    comparisons_per_section: int
    responses: "ResponseStore"
    phase: SurveyPhase = SurveyPhase.AWAITING_CONSENT
    respondent_id: Optional[str] = None
    interview_id: Optional[str] = None
    pairs: Tuple[Pair, ...] = ()
    position: Optional[SurveyPosition] = None
    consent_given: bool = False

    @property
    def section_count(self) -> int:
        return len(self.section_ids)


def make_comparison_id(section_id: int, comparison_index: int) -> str:
    """Build the survey-wide comparison identity, e.g. section 3, index 0 -> "3-1"."""
    return f"{section_id}-{comparison_index + 1}"
