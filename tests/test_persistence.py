"""
Tests for the resumable session store.
"""

import pytest

from mbi import state_machine as sm
from mbi.pairing import generate_pairs
from mbi.persistence import (
    COMPLETED_KEY,
    STATE_KEY,
    FileStore,
    MemoryStore,
    clear_session,
    load_completion,
    load_state,
    save_completion,
    save_state,
)
from mbi.randomness import RandomSource


@pytest.fixture
def started_state(catalog, config):
    pairs = generate_pairs(catalog, config.sections, 6, config.mainstream_outlets, RandomSource(seed=11))
    return sm.start(sm.new_state(config.section_ids, 6), pairs, respondent_id="r-1", interview_id="i-1")


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return FileStore(tmp_path / "session")


class TestStores:

    def test_get_set_remove(self, any_store):
        assert any_store.get("k") is None
        any_store.set("k", "v")
        assert any_store.get("k") == "v"
        any_store.remove("k")
        assert any_store.get("k") is None
        any_store.remove("k")

    def test_file_store_survives_new_instance(self, tmp_path):
        FileStore(tmp_path).set("k", "v")
        assert FileStore(tmp_path).get("k") == "v"


class TestStateSnapshot:

    def test_save_and_load(self, any_store, started_state):
        state = sm.advance(sm.record_selection(started_state, "1-1", "dk"))
        save_state(any_store, state)
        assert load_state(any_store) == state

    def test_missing_snapshot(self, any_store):
        assert load_state(any_store) is None

    def test_corrupt_snapshot_is_no_session(self, any_store, caplog):
        any_store.set(STATE_KEY, "{broken")
        assert load_state(any_store) is None
        assert "Ignoring saved session" in caplog.text

    @pytest.mark.parametrize("raw", [
        '{"section_ids": [1], "comparisons_per_section": 1e999}',
        "[" * 100000 + "]" * 100000,
    ])
    def test_unreadable_snapshot_is_no_session(self, any_store, raw):
        any_store.set(STATE_KEY, raw)
        assert load_state(any_store) is None

    def test_unconsented_snapshot_is_no_session(self, any_store, config):
        save_state(any_store, sm.new_state(config.section_ids, 6))
        assert load_state(any_store) is None


class TestCompletionSnapshot:

    def test_roundtrip(self, any_store, started_state):
        state = sm.record_selection(started_state, "1-1", "dk")
        state = sm.record_selection(state, "1-2", "dk")
        save_completion(any_store, state)
        snapshot = load_completion(any_store)
        assert snapshot.respondent_id == "r-1"
        assert snapshot.interview_id == "i-1"
        assert snapshot.responses == state.responses.all()

    def test_absent_without_flag(self, any_store):
        assert load_completion(any_store) is None

    def test_corrupt_responses(self, any_store, started_state):
        save_completion(any_store, started_state)
        any_store.set("mbi_responses", "[{}]")
        assert load_completion(any_store) is None

    def test_deeply_nested_responses(self, any_store, started_state):
        save_completion(any_store, started_state)
        any_store.set("mbi_responses", "[" * 100000 + "]" * 100000)
        assert load_completion(any_store) is None

    def test_clear_session(self, any_store, started_state):
        save_state(any_store, started_state)
        save_completion(any_store, started_state)
        clear_session(any_store)
        assert any_store.get(STATE_KEY) is None
        assert any_store.get(COMPLETED_KEY) is None
        assert load_completion(any_store) is None
