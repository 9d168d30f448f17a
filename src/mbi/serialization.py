"""
Serialization helpers for survey objects (Outlet, Pair, Response, SurveyState).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
This module intentionally keeps serialization structure stable and explicit:
the JSON form is what the session store persists.
"""
from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from mbi.model import (
    Outlet,
    Pair,
    Response,
    SectionType,
    SurveyPhase,
    SurveyPosition,
    SurveyState,
)
from mbi.responses import ResponseStore


class MalformedPersistedStateError(Exception):
    """Raised when a persisted snapshot is corrupt or inconsistent."""
    pass


def outlet_to_dict(o: Outlet) -> Dict[str, Any]:
    return {
        "codename": o.codename,
        "name": o.name,
        "type": o.type,
        "pic": o.pic,
        "is_mainstream": o.is_mainstream,
    }


def outlet_from_dict(d: Dict[str, Any]) -> Outlet:
    return Outlet(
        codename=d["codename"],
        name=d.get("name", ""),
        type=d["type"],
        pic=d.get("pic"),
        is_mainstream=bool(d.get("is_mainstream", False)),
    )


def pair_to_dict(p: Pair) -> Dict[str, Any]:
    return {
        "left": outlet_to_dict(p.left),
        "right": outlet_to_dict(p.right),
        "section_id": p.section_id,
        "section_type": p.section_type.value,
        "section_name": p.section_name,
        "comparison_index": p.comparison_index,
        "comparison_id": p.comparison_id,
    }


def pair_from_dict(d: Dict[str, Any]) -> Pair:
    pair = Pair(
        left=outlet_from_dict(d["left"]),
        right=outlet_from_dict(d["right"]),
        section_id=int(d["section_id"]),
        section_type=SectionType(d["section_type"]),
        section_name=d.get("section_name", ""),
        comparison_index=int(d["comparison_index"]),
    )
    # comparison_id is derived; a stored value that disagrees means tampering
    stored_id = d.get("comparison_id")
    if stored_id is not None and stored_id != pair.comparison_id:
        raise MalformedPersistedStateError(
            f"Pair comparison_id {stored_id!r} does not match {pair.comparison_id!r}"
        )
    return pair


def response_to_dict(r: Response) -> Dict[str, Any]:
    return {
        "comparison_id": r.comparison_id,
        "outlet_left_codename": r.outlet_left_codename,
        "outlet_right_codename": r.outlet_right_codename,
        "chosen": r.chosen,
        "section_type": r.section_type,
        "timestamp": r.timestamp,
    }


def response_from_dict(d: Dict[str, Any]) -> Response:
    return Response(
        comparison_id=d["comparison_id"],
        outlet_left_codename=d["outlet_left_codename"],
        outlet_right_codename=d["outlet_right_codename"],
        chosen=d["chosen"],
        section_type=d["section_type"],
        timestamp=d["timestamp"],
    )


def position_to_dict(p: SurveyPosition | None) -> Dict[str, Any] | None:
    if p is None:
        return None
    return {"section": p.section, "comparison": p.comparison}


def position_from_dict(d: Dict[str, Any] | None) -> SurveyPosition | None:
    if d is None:
        return None
    return SurveyPosition(section=int(d["section"]), comparison=int(d["comparison"]))


def state_to_dict(s: SurveyState) -> Dict[str, Any]:
    return {
        "section_ids": list(s.section_ids),
        "comparisons_per_section": s.comparisons_per_section,
        "phase": s.phase.value,
        "respondent_id": s.respondent_id,
        "interview_id": s.interview_id,
        "pairs": [pair_to_dict(p) for p in s.pairs],
        "responses": [response_to_dict(r) for r in s.responses],
        "position": position_to_dict(s.position),
        "consent_given": s.consent_given,
    }


def state_from_dict(d: Any) -> SurveyState:
    """
    Rebuild a SurveyState from its dict form.

    Structural problems (missing keys, wrong types, unknown enum values) are
    reported as MalformedPersistedStateError. Semantic consistency is
    checked by mbi.state_machine.resume.
    """
    if not isinstance(d, dict):
        raise MalformedPersistedStateError(f"Expected a mapping, got {type(d).__name__}")
    try:
        return SurveyState(
            section_ids=tuple(int(i) for i in d["section_ids"]),
            comparisons_per_section=int(d["comparisons_per_section"]),
            phase=SurveyPhase(d.get("phase", SurveyPhase.AWAITING_CONSENT.value)),
            respondent_id=d.get("respondent_id"),
            interview_id=d.get("interview_id"),
            pairs=tuple(pair_from_dict(p) for p in d.get("pairs", [])),
            responses=responses_from_list(d.get("responses", [])),
            position=position_from_dict(d.get("position")),
            consent_given=bool(d.get("consent_given", False)),
        )
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
        raise MalformedPersistedStateError(f"Invalid survey state: {e!r}")


def responses_to_list(store: ResponseStore) -> list:
    return [response_to_dict(r) for r in store]


def responses_from_list(items: Any) -> ResponseStore:
    if not isinstance(items, list):
        raise MalformedPersistedStateError("Responses must be a list")
    return ResponseStore(response_from_dict(r) for r in items)


def state_to_json(s: SurveyState) -> str:
    return json.dumps(state_to_dict(s), sort_keys=True)


def state_from_json(s: str) -> SurveyState:
    try:
        d = json.loads(s)
    except (TypeError, ValueError, RecursionError) as e:
        raise MalformedPersistedStateError(f"Invalid JSON snapshot: {e}")
    return state_from_dict(d)


def state_to_yaml(s: SurveyState) -> str:
    return yaml.safe_dump(state_to_dict(s))


def state_from_yaml(s: str) -> SurveyState:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise MalformedPersistedStateError(f"Invalid YAML snapshot: {e}")
    return state_from_dict(d)
