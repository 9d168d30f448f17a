"""
Tests for pair generation.

Properties checked:
    - Single-type sections with >= 2 outlets yield exactly N pairs
    - No pair compares an outlet with itself
    - The no-repeat phase never reuses an outlet
    - Repeats appear only once the pool is exhausted, and generation terminates
    - Mixed pairs hold exactly one mainstream outlet
    - Generation is reproducible for a seeded source
"""

from collections import Counter

import pytest

from mbi.model import Outlet, Section, SectionType
from mbi.pairing import generate_mixed_pairs, generate_pairs, generate_section_pairs
from mbi.randomness import RandomSource


def _outlets(count, type="tg", prefix="o"):
    return [Outlet(codename=f"{prefix}{i}", name=f"{prefix.upper()}{i}", type=type) for i in range(count)]


class TestSectionPairs:
    """Single-type sections."""

    @pytest.mark.parametrize("pool_size", [2, 3, 4, 5, 12, 13])
    def test_exact_count_and_distinct_sides(self, pool_size, rng):
        pairs = generate_section_pairs(_outlets(pool_size), 6, rng)
        assert len(pairs) == 6
        for left, right in pairs:
            assert left.codename != right.codename

    @pytest.mark.parametrize("pool_size", [0, 1])
    def test_degenerate_pool_is_empty(self, pool_size, rng):
        assert generate_section_pairs(_outlets(pool_size), 6, rng) == []

    def test_no_repeat_phase_uses_each_outlet_once(self, rng):
        pairs = generate_section_pairs(_outlets(12), 6, rng)
        used = [o.codename for pair in pairs for o in pair]
        assert len(used) == len(set(used)) == 12

    def test_first_pass_is_disjoint_when_pool_is_small(self, rng):
        # 5 outlets: the first two pairs come from the permutation, the rest are repeats
        pairs = generate_section_pairs(_outlets(5), 6, rng)
        first_pass = [o.codename for pair in pairs[:2] for o in pair]
        assert len(set(first_pass)) == 4

    def test_repeat_phase_avoids_duplicate_pairs_when_possible(self, rng):
        # 4 outlets allow 6 distinct unordered pairs
        pairs = generate_section_pairs(_outlets(4), 6, rng)
        keys = {frozenset((l.codename, r.codename)) for l, r in pairs}
        assert len(keys) == 6

    def test_two_outlets_repeat_the_only_pair(self, rng):
        a, b = _outlets(2, type="radio")
        pairs = generate_section_pairs([a, b], 6, rng, max_attempts=5)
        assert len(pairs) == 6
        for left, right in pairs:
            assert {left.codename, right.codename} == {"o0", "o1"}

    def test_large_pool_is_truncated(self, rng):
        assert len(generate_section_pairs(_outlets(40), 6, rng)) == 6

    def test_seeded_generation_is_reproducible(self):
        pool = _outlets(7)
        first = generate_section_pairs(pool, 6, RandomSource(seed=1))
        second = generate_section_pairs(pool, 6, RandomSource(seed=1))
        assert first == second


class TestMixedPairs:
    """Mixed section: one mainstream outlet per pair."""

    def test_each_pair_has_exactly_one_mainstream(self, catalog, mainstream, rng):
        pairs = generate_mixed_pairs(catalog, 6, mainstream, rng)
        assert len(pairs) == 6
        for left, right in pairs:
            assert (left.codename in mainstream) + (right.codename in mainstream) == 1
            assert left.codename != right.codename

    def test_partner_prefers_other_type(self, catalog, mainstream, rng):
        for left, right in generate_mixed_pairs(catalog, 6, mainstream, rng):
            assert left.type != right.type

    def test_falls_back_to_same_type_partner(self, rng):
        catalog = [Outlet("tg1", "TG1", "tg"), Outlet("tg2", "TG2", "tg")]
        pairs = generate_mixed_pairs(catalog, 3, {"tg1"}, rng)
        assert len(pairs) == 3
        assert all({l.codename, r.codename} == {"tg1", "tg2"} for l, r in pairs)

    def test_cycles_mainstream_outlets(self, catalog, rng):
        pairs = generate_mixed_pairs(catalog, 6, {"tg1", "corriere"}, rng)
        anchors = Counter(o.codename for pair in pairs for o in pair if o.codename in {"tg1", "corriere"})
        assert anchors == Counter({"tg1": 3, "corriere": 3})

    def test_both_sides_used(self, catalog, mainstream):
        pairs = generate_mixed_pairs(catalog, 60, mainstream, RandomSource(seed=3))
        left_anchored = sum(1 for left, _ in pairs if left.codename in mainstream)
        assert 0 < left_anchored < 60

    def test_no_mainstream_in_catalog(self, catalog, rng):
        assert generate_mixed_pairs(catalog, 6, {"unknown"}, rng) == []

    def test_only_mainstream_outlets(self, rng):
        catalog = [Outlet("tg1", "TG1", "tg"), Outlet("corriere", "Corriere", "press")]
        pairs = generate_mixed_pairs(catalog, 2, {"tg1", "corriere"}, rng)
        assert len(pairs) == 2
        assert all(l.codename != r.codename for l, r in pairs)


class TestGeneratePairs:
    """Full survey sequence."""

    def test_default_layout_yields_thirty_pairs(self, catalog, config, rng):
        pairs = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, rng)
        assert len(pairs) == 30
        assert [p.comparison_id for p in pairs[:7]] == ["1-1", "1-2", "1-3", "1-4", "1-5", "1-6", "2-1"]
        assert pairs[-1].comparison_id == "5-6"

    def test_comparison_ids_unique(self, catalog, config, rng):
        pairs = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, rng)
        ids = [p.comparison_id for p in pairs]
        assert len(ids) == len(set(ids))

    def test_pairs_stamped_with_section(self, catalog, config, rng):
        pairs = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, rng)
        radio = [p for p in pairs if p.section_id == 4]
        assert len(radio) == 6
        assert all(p.section_type is SectionType.RADIO for p in radio)
        assert all(p.section_name == "Programmi radiofonici" for p in radio)
        assert [p.comparison_index for p in radio] == list(range(6))
        assert all({p.left.type, p.right.type} == {"radio"} for p in radio)

    def test_two_radio_outlets_fill_six_pairs(self, rng):
        radio = [Outlet("a", "A", "radio"), Outlet("b", "B", "radio")]
        sections = [Section(id=4, type=SectionType.RADIO, name="Radio")]
        pairs = generate_pairs(radio, sections, 6, frozenset(), rng)
        assert len(pairs) == 6
        assert all({p.left.codename, p.right.codename} == {"a", "b"} for p in pairs)

    def test_empty_section_is_skipped(self, catalog, rng, caplog):
        sections = [
            Section(id=1, type=SectionType.TG, name="TG"),
            Section(id=2, type=SectionType.RADIO, name="Radio"),
        ]
        no_radio = [o for o in catalog if o.type != "radio"] + [Outlet("solo", "Solo", "radio")]
        pairs = generate_pairs(no_radio, sections, 6, frozenset(), rng)
        assert [p.section_id for p in pairs] == [1] * 6
        assert "not enough outlets" in caplog.text

    def test_seeded_generation_is_reproducible(self, catalog, config):
        first = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, RandomSource(seed=9))
        second = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, RandomSource(seed=9))
        assert first == second
