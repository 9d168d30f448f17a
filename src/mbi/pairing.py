"""
Pair generation: outlet catalog → fixed-length comparison sequence.

Two-phase policy for single-type sections:
    1. No-repeat phase: walk a random permutation two outlets at a time,
       so no outlet appears twice.
    2. Repeat phase: if the pool ran out before N pairs, draw fresh
       permutations and accept any pair of distinct outlets that was not
       produced yet (order-insensitive). Rejections are bounded; past the
       bound a duplicate is accepted so generation always terminates.

The mixed section anchors every pair on a mainstream outlet (cycling through
a shuffled mainstream list) and pairs it with a non-mainstream outlet,
preferably of a different type. Left/right is a fair coin per pair.

A pool of fewer than two outlets yields an empty segment for that section
(logged); the rest of the survey is unaffected.
"""

import logging
from typing import AbstractSet, FrozenSet, List, Sequence, Set, Tuple

from mbi.model import Outlet, Pair, Section, SectionType
from mbi.randomness import RandomSource

logger = logging.getLogger(__name__)

MAX_REPEAT_ATTEMPTS = 100

RawPair = Tuple[Outlet, Outlet]


class InsufficientOutletsError(Exception):
    """Raised when the catalog cannot supply a single comparison for the whole survey."""
    pass


def _pair_key(left: Outlet, right: Outlet) -> FrozenSet[str]:
    return frozenset((left.codename, right.codename))


def generate_section_pairs(
    outlets: Sequence[Outlet],
    count: int,
    rng: RandomSource,
    max_attempts: int = MAX_REPEAT_ATTEMPTS,
) -> List[RawPair]:
    """
    Build up to `count` (left, right) tuples from a single-type outlet pool.

    Returns exactly `count` tuples when the pool has at least two outlets,
    otherwise an empty list.
    """
    if len(outlets) < 2 or count <= 0:
        return []

    shuffled = rng.shuffled(outlets)
    pairs: List[RawPair] = []
    for i in range(0, len(shuffled) - 1, 2):
        if len(pairs) >= count:
            break
        pairs.append((shuffled[i], shuffled[i + 1]))

    seen: Set[FrozenSet[str]] = {_pair_key(left, right) for left, right in pairs}
    attempts = 0
    while len(pairs) < count:
        available = rng.shuffled(outlets)
        left = available[0]
        right = next((o for o in available[1:] if o.codename != left.codename), None)
        if right is None:
            break
        key = _pair_key(left, right)
        if key in seen and attempts < max_attempts:
            attempts += 1
            continue
        if key in seen:
            logger.debug("Accepting repeated pair %s/%s after %d attempts", left.codename, right.codename, attempts)
        seen.add(key)
        pairs.append((left, right))
        attempts = 0

    return pairs[:count]


def generate_mixed_pairs(
    outlets: Sequence[Outlet],
    count: int,
    mainstream: AbstractSet[str],
    rng: RandomSource,
) -> List[RawPair]:
    """
    Build `count` tuples each holding one mainstream outlet.

    The partner is drawn from the non-mainstream outlets, preferring one of a
    different type than the mainstream pick. If the catalog has no
    non-mainstream outlet, another mainstream outlet stands in.
    """
    anchors = [o for o in outlets if o.codename in mainstream]
    others = [o for o in outlets if o.codename not in mainstream]
    if not anchors or len(outlets) < 2 or count <= 0:
        return []
    if not others:
        logger.warning("No non-mainstream outlets: mixed pairs will compare mainstream outlets")

    shuffled_anchors = rng.shuffled(anchors)
    pairs: List[RawPair] = []
    for i in range(count):
        anchor = shuffled_anchors[i % len(shuffled_anchors)]
        pool = rng.shuffled(others) if others else [o for o in rng.shuffled(anchors) if o.codename != anchor.codename]
        if not pool:
            break
        partner = next((o for o in pool if o.type != anchor.type), pool[0])
        if rng.coin():
            pairs.append((anchor, partner))
        else:
            pairs.append((partner, anchor))

    return pairs[:count]


def _stamp(raw: List[RawPair], section: Section) -> List[Pair]:
    return [
        Pair(
            left=left,
            right=right,
            section_id=section.id,
            section_type=section.type,
            section_name=section.name,
            comparison_index=index,
        )
        for index, (left, right) in enumerate(raw)
    ]


def generate_pairs(
    catalog: Sequence[Outlet],
    sections: Sequence[Section],
    comparisons_per_section: int,
    mainstream: AbstractSet[str],
    rng: RandomSource,
) -> List[Pair]:
    """
    Generate the full survey sequence, segment by segment in section order.

    Args:
        catalog: All loaded outlets
        sections: Section descriptors, in survey order
        comparisons_per_section: N
        mainstream: Codenames anchoring the mixed section
        rng: Random stream (seed it for reproducible output)

    Returns:
        Pairs stamped with section metadata and comparison index. Sections
        with fewer than two eligible outlets contribute no pairs.
    """
    all_pairs: List[Pair] = []
    for section in sections:
        if section.type is SectionType.MIXED:
            raw = generate_mixed_pairs(catalog, comparisons_per_section, mainstream, rng)
        else:
            pool = [o for o in catalog if o.type == section.type.value]
            raw = generate_section_pairs(pool, comparisons_per_section, rng)

        if not raw:
            logger.warning("Section %d (%s): not enough outlets, no comparisons generated", section.id, section.type.value)
        elif len(raw) < comparisons_per_section:
            logger.warning("Section %d (%s): only %d of %d comparisons generated",
                           section.id, section.type.value, len(raw), comparisons_per_section)
        all_pairs.extend(_stamp(raw, section))

    return all_pairs


__all__ = [
    "MAX_REPEAT_ATTEMPTS",
    "InsufficientOutletsError",
    "generate_section_pairs",
    "generate_mixed_pairs",
    "generate_pairs",
]
