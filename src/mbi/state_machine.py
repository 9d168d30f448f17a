"""
Survey state machine: pure operations on SurveyState.

States:
    AWAITING_CONSENT → IN_PROGRESS → COMPLETED

While IN_PROGRESS the position (section, comparison) walks the generated
pair sequence. Every operation takes a SurveyState and returns a new one;
nothing here performs I/O. Persisting and submitting are done by
mbi.session, after each operation.

ARCHITECTURAL RULES:
    - advance() is the only way to reach COMPLETED
    - navigation never requires an answer for the current comparison;
      gating "next" on has_answer() is a presentation decision
    - resume() never regenerates pairs
    - positions without a pair (a section whose pool was too small) are
      skipped by navigation, so the position always resolves to a Pair
"""

import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, Optional, Sequence

from mbi.model import DONT_KNOW, Pair, Response, SurveyPhase, SurveyPosition, SurveyState, make_comparison_id
from mbi.pairing import InsufficientOutletsError
from mbi.randomness import RandomSource, to_base36
from mbi.responses import ResponseStore
from mbi.serialization import MalformedPersistedStateError


class InvalidCommandError(ValueError):
    """Raised when an operation violates the state machine contract."""
    pass


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_respondent_id() -> str:
    return str(uuid.uuid4())


def new_interview_id(rng: Optional[RandomSource] = None, now_ms: Optional[int] = None) -> str:
    """Millisecond clock in base 36 followed by five random base-36 characters."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return to_base36(now_ms) + (rng or RandomSource()).base36(5)


def new_state(section_ids: Iterable[int], comparisons_per_section: int) -> SurveyState:
    """Fresh state awaiting consent."""
    return SurveyState(
        section_ids=tuple(section_ids),
        comparisons_per_section=comparisons_per_section,
        responses=ResponseStore(),
    )


# =========================================================================
# Position helpers
# =========================================================================

def _in_bounds(state: SurveyState, position: SurveyPosition) -> bool:
    return (0 <= position.section < state.section_count
            and 0 <= position.comparison < state.comparisons_per_section)


def _pairs_by_id(pairs: Sequence[Pair]) -> Dict[str, Pair]:
    return {pair.comparison_id: pair for pair in pairs}


def pair_at(state: SurveyState, position: SurveyPosition) -> Optional[Pair]:
    """Resolve a position to its Pair, or None if out of bounds or empty."""
    if not _in_bounds(state, position):
        return None
    expected_id = make_comparison_id(state.section_ids[position.section], position.comparison)
    index = position.linear_index(state.comparisons_per_section)
    if index < len(state.pairs) and state.pairs[index].comparison_id == expected_id:
        return state.pairs[index]
    # Short sequence (degenerate section): fall back to lookup by identity
    return _pairs_by_id(state.pairs).get(expected_id)


def _next_position(state: SurveyState, position: SurveyPosition) -> Optional[SurveyPosition]:
    if position.comparison < state.comparisons_per_section - 1:
        return SurveyPosition(position.section, position.comparison + 1)
    if position.section < state.section_count - 1:
        return SurveyPosition(position.section + 1, 0)
    return None


def _previous_position(state: SurveyState, position: SurveyPosition) -> Optional[SurveyPosition]:
    if position.comparison > 0:
        return SurveyPosition(position.section, position.comparison - 1)
    if position.section > 0:
        return SurveyPosition(position.section - 1, state.comparisons_per_section - 1)
    return None


def _positions_after(state: SurveyState, position: SurveyPosition) -> Iterator[SurveyPosition]:
    nxt = _next_position(state, position)
    while nxt is not None:
        yield nxt
        nxt = _next_position(state, nxt)


def _positions_before(state: SurveyState, position: SurveyPosition) -> Iterator[SurveyPosition]:
    prev = _previous_position(state, position)
    while prev is not None:
        yield prev
        prev = _previous_position(state, prev)


def _first_occupied(state: SurveyState) -> Optional[SurveyPosition]:
    origin = SurveyPosition(0, 0)
    if pair_at(state, origin) is not None:
        return origin
    return next((p for p in _positions_after(state, origin) if pair_at(state, p) is not None), None)


def _require_phase(state: SurveyState, phase: SurveyPhase, operation: str) -> None:
    if state.phase is not phase:
        raise InvalidCommandError(f"{operation}() requires phase {phase.value}, current phase is {state.phase.value}")


def _check_pairs(pairs: Sequence[Pair]) -> Optional[str]:
    """Return a description of the first pair invariant violated, or None."""
    seen = set()
    for pair in pairs:
        if pair.left.codename == pair.right.codename:
            return f"pair {pair.comparison_id} compares {pair.left.codename} with itself"
        if pair.comparison_id in seen:
            return f"comparison_id {pair.comparison_id} repeats"
        seen.add(pair.comparison_id)
    return None


# =========================================================================
# Operations
# =========================================================================

def start(
    state: SurveyState,
    pairs: Sequence[Pair],
    consent_given: bool = True,
    respondent_id: Optional[str] = None,
    interview_id: Optional[str] = None,
) -> SurveyState:
    """
    Leave AWAITING_CONSENT: assign identities, take the generated pairs and
    move to the first comparison.

    Raises:
        InvalidCommandError: Without consent, outside AWAITING_CONSENT, or
            with pairs that break the pair invariants
        InsufficientOutletsError: If no comparison at all was generated
    """
    _require_phase(state, SurveyPhase.AWAITING_CONSENT, "start")
    if not consent_given:
        raise InvalidCommandError("Cannot start the survey without consent")
    problem = _check_pairs(pairs)
    if problem:
        raise InvalidCommandError(f"Invalid pair sequence: {problem}")

    started = replace(
        state,
        respondent_id=respondent_id or new_respondent_id(),
        interview_id=interview_id or new_interview_id(),
        pairs=tuple(pairs),
        consent_given=True,
    )
    first = _first_occupied(started)
    if first is None:
        raise InsufficientOutletsError("No comparison could be generated for any section")
    return replace(started, phase=SurveyPhase.IN_PROGRESS, position=first)


def record_selection(
    state: SurveyState,
    comparison_id: str,
    chosen: str,
    timestamp: Optional[str] = None,
) -> SurveyState:
    """
    Insert or overwrite the Response for comparison_id.

    Raises:
        InvalidCommandError: Outside IN_PROGRESS, for an unknown
            comparison_id, or when chosen is neither "dk" nor one of the
            pair's codenames
    """
    _require_phase(state, SurveyPhase.IN_PROGRESS, "record_selection")
    pair = _pairs_by_id(state.pairs).get(comparison_id)
    if pair is None:
        raise InvalidCommandError(f"Unknown comparison_id: {comparison_id!r}")
    if chosen != DONT_KNOW and chosen not in pair.codenames():
        raise InvalidCommandError(
            f"Choice {chosen!r} is not part of comparison {comparison_id} {pair.codenames()}"
        )

    response = Response(
        comparison_id=comparison_id,
        outlet_left_codename=pair.left.codename,
        outlet_right_codename=pair.right.codename,
        chosen=chosen,
        section_type=pair.section_type.value,
        timestamp=timestamp or utc_timestamp(),
    )
    return replace(state, responses=state.responses.upsert(response))


def advance(state: SurveyState) -> SurveyState:
    """
    Move to the next comparison, the next section, or COMPLETED.

    Raises:
        InvalidCommandError: Outside IN_PROGRESS (no overshoot past COMPLETED)
    """
    _require_phase(state, SurveyPhase.IN_PROGRESS, "advance")
    target = next((p for p in _positions_after(state, state.position) if pair_at(state, p) is not None), None)
    if target is None:
        return replace(state, phase=SurveyPhase.COMPLETED)
    return replace(state, position=target)


def retreat(state: SurveyState) -> SurveyState:
    """Move to the previous comparison; a no-op at the first one."""
    _require_phase(state, SurveyPhase.IN_PROGRESS, "retreat")
    target = next((p for p in _positions_before(state, state.position) if pair_at(state, p) is not None), None)
    if target is None:
        return state
    return replace(state, position=target)


def resume(saved: SurveyState) -> SurveyState:
    """
    Accept a restored snapshot as-is, after checking it is consistent.

    Pairs, responses and position are returned verbatim; nothing is
    regenerated.

    Raises:
        MalformedPersistedStateError: If the snapshot breaks an invariant
    """
    def fail(reason: str) -> None:
        raise MalformedPersistedStateError(f"Cannot resume: {reason}")

    if saved.phase is SurveyPhase.AWAITING_CONSENT or not saved.consent_given:
        fail("no consented session")
    if not saved.section_ids or saved.comparisons_per_section < 1:
        fail("empty survey layout")
    if not saved.respondent_id or not saved.interview_id:
        fail("missing respondent or interview id")
    if not saved.pairs:
        fail("no pairs")
    problem = _check_pairs(saved.pairs)
    if problem:
        fail(problem)
    known = {pair.comparison_id for pair in saved.pairs}
    unknown = [r.comparison_id for r in saved.responses if r.comparison_id not in known]
    if unknown:
        fail(f"responses for unknown comparisons {unknown}")
    if saved.position is None or pair_at(saved, saved.position) is None:
        fail(f"position {saved.position} does not resolve to a pair")
    return saved


# =========================================================================
# Queries
# =========================================================================

def current_pair(state: SurveyState) -> Optional[Pair]:
    if state.position is None:
        return None
    return pair_at(state, state.position)


def current_response(state: SurveyState) -> Optional[Response]:
    pair = current_pair(state)
    if pair is None:
        return None
    return state.responses.get(pair.comparison_id)


def has_answer(state: SurveyState) -> bool:
    """Whether the current comparison already has a recorded choice."""
    return current_response(state) is not None


def is_first_position(state: SurveyState) -> bool:
    if state.position is None:
        return True
    return not any(pair_at(state, p) is not None for p in _positions_before(state, state.position))


def is_last_position(state: SurveyState) -> bool:
    """True when the next advance() completes the survey."""
    if state.position is None:
        return False
    return not any(pair_at(state, p) is not None for p in _positions_after(state, state.position))


def total_comparisons(state: SurveyState) -> int:
    return state.section_count * state.comparisons_per_section


def progress(state: SurveyState) -> float:
    """Fraction of the survey behind the current position, in [0, 1]."""
    if state.phase is SurveyPhase.COMPLETED:
        return 1.0
    if state.position is None:
        return 0.0
    return state.position.linear_index(state.comparisons_per_section) / total_comparisons(state)


__all__ = [
    "InvalidCommandError",
    "utc_timestamp",
    "new_respondent_id",
    "new_interview_id",
    "new_state",
    "pair_at",
    "start",
    "record_selection",
    "advance",
    "retreat",
    "resume",
    "current_pair",
    "current_response",
    "has_answer",
    "is_first_position",
    "is_last_position",
    "total_comparisons",
    "progress",
]
