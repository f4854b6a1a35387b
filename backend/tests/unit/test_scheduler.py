"""
Unit tests for the spaced-repetition scheduler.

Covers the interval/repetition transitions, the constant ease factor decrement
and its floor, graduation, the load boundary and the scheduler stores.
"""

import json

import pytest

from flashdeck.models.study import MIN_EASE_FACTOR, SpacedRepetitionState
from flashdeck.services.scheduler import (
    STORAGE_KEY,
    InMemorySchedulerStore,
    SqliteSchedulerStore,
    answer_card,
    coerce_state,
    decode_state_map,
    encode_state_map,
    forget_card,
    forget_cards,
    prune_states,
    record_answer,
    should_graduate,
)

EASE_DELTA = -0.54


class TestRecordAnswerCorrect:
    """Tests for correct answers."""

    def test_first_correct_answer_sets_interval_to_one(self):
        state = record_answer(SpacedRepetitionState(), True)

        assert state.interval == 1
        assert state.repetition == 1

    def test_interval_one_jumps_to_three(self):
        state = record_answer(
            SpacedRepetitionState(interval=1, ease_factor=2.5, repetition=1), True
        )

        assert state.interval == 3
        assert state.repetition == 2

    def test_longer_intervals_scale_by_ease_factor(self):
        state = record_answer(
            SpacedRepetitionState(interval=4, ease_factor=2.5, repetition=2), True
        )

        assert state.interval == 10
        assert state.repetition == 3

    def test_half_intervals_round_up(self):
        # 3 * 2.5 == 7.5
        state = record_answer(
            SpacedRepetitionState(interval=3, ease_factor=2.5, repetition=2), True
        )

        assert state.interval == 8

    def test_does_not_mutate_input(self):
        original = SpacedRepetitionState(interval=3, ease_factor=2.0, repetition=2)
        record_answer(original, True)

        assert original == SpacedRepetitionState(interval=3, ease_factor=2.0, repetition=2)


class TestRecordAnswerIncorrect:
    """Tests for missed answers."""

    def test_miss_resets_interval_and_repetition(self):
        state = record_answer(
            SpacedRepetitionState(interval=5, ease_factor=2.0, repetition=4), False
        )

        assert state.interval == 0
        assert state.repetition == 0

    def test_miss_still_lowers_ease_factor(self):
        state = record_answer(
            SpacedRepetitionState(interval=5, ease_factor=2.0, repetition=4), False
        )

        assert state.ease_factor == pytest.approx(2.0 + EASE_DELTA)


class TestEaseFactor:
    """The ease factor drops by the same constant on every answer."""

    @pytest.mark.parametrize("is_correct", [True, False])
    def test_constant_decrement_regardless_of_correctness(self, is_correct):
        state = record_answer(SpacedRepetitionState(ease_factor=2.5), is_correct)

        assert state.ease_factor == pytest.approx(1.96)

    def test_floor_at_minimum(self):
        state = record_answer(SpacedRepetitionState(ease_factor=1.5), True)

        assert state.ease_factor == MIN_EASE_FACTOR

    def test_never_drops_below_floor(self):
        state = SpacedRepetitionState()
        for i in range(25):
            state = record_answer(state, i % 3 != 0)
            assert state.ease_factor >= MIN_EASE_FACTOR

        assert state.ease_factor == MIN_EASE_FACTOR


class TestGraduation:
    """Tests for should_graduate and the correct-answer streak leading to it."""

    @pytest.mark.parametrize(
        "repetition,interval,expected",
        [
            (3, 7, True),
            (5, 30, True),
            (2, 10, False),
            (3, 6, False),
            (0, 0, False),
        ],
    )
    def test_thresholds(self, repetition, interval, expected):
        state = SpacedRepetitionState(interval=interval, repetition=repetition)

        assert should_graduate(state) is expected

    def test_streak_from_new_card(self):
        state = SpacedRepetitionState()
        intervals = []
        graduated_at = None
        for answer_number in range(1, 10):
            state = record_answer(state, True)
            intervals.append(state.interval)
            if should_graduate(state):
                graduated_at = answer_number
                break

        assert intervals[:3] == [1, 3, 4]
        assert graduated_at is not None
        assert graduated_at > 3
        assert state.repetition >= 3
        assert state.interval >= 7

    def test_two_correct_answers_never_graduate(self):
        state = SpacedRepetitionState()
        for _ in range(2):
            state = record_answer(state, True)

        assert state.repetition == 2
        assert not should_graduate(state)


class TestLoadBoundary:
    """Malformed persisted entries are replaced with defaults."""

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "not a mapping",
            {"interval": "3", "ease_factor": 2.5, "repetition": 1},
            {"interval": 3, "repetition": 1},
            {"interval": True, "ease_factor": 2.5, "repetition": 1},
            {"interval": 3, "ease_factor": float("nan"), "repetition": 1},
        ],
    )
    def test_malformed_entries_become_defaults(self, raw):
        assert coerce_state(raw) == SpacedRepetitionState()

    def test_accepts_camel_case_keys(self):
        state = coerce_state({"interval": 3, "easeFactor": 1.8, "repetition": 2})

        assert state == SpacedRepetitionState(interval=3, ease_factor=1.8, repetition=2)

    def test_clamps_out_of_range_values(self):
        state = coerce_state({"interval": -4, "ease_factor": 0.5, "repetition": -1})

        assert state.interval == 0
        assert state.ease_factor == MIN_EASE_FACTOR
        assert state.repetition == 0

    def test_unreadable_json_yields_empty_map(self):
        assert decode_state_map("{not json") == {}
        assert decode_state_map("[1, 2]") == {}
        assert decode_state_map(None) == {}

    def test_encode_decode(self):
        states = {"card-1": SpacedRepetitionState(interval=3, ease_factor=1.42, repetition=2)}

        assert decode_state_map(encode_state_map(states)) == states


class TestAnswerCard:
    """Tests for the store-backed answer flow."""

    @pytest.mark.asyncio
    async def test_creates_state_lazily(self):
        store = InMemorySchedulerStore()

        outcome = await answer_card(store, "card-1", True)

        assert outcome.card_id == "card-1"
        assert outcome.state.interval == 1
        assert outcome.graduated is False
        assert (await store.load())["card-1"] == outcome.state

    @pytest.mark.asyncio
    async def test_reports_graduation_on_correct_answer(self):
        store = InMemorySchedulerStore(
            {"card-1": SpacedRepetitionState(interval=4, ease_factor=2.5, repetition=2)}
        )

        outcome = await answer_card(store, "card-1", True)

        assert outcome.state.repetition == 3
        assert outcome.state.interval == 10
        assert outcome.graduated is True

    @pytest.mark.asyncio
    async def test_miss_never_graduates(self):
        store = InMemorySchedulerStore(
            {"card-1": SpacedRepetitionState(interval=30, ease_factor=2.5, repetition=9)}
        )

        outcome = await answer_card(store, "card-1", False)

        assert outcome.graduated is False
        assert outcome.state.repetition == 0

    @pytest.mark.asyncio
    async def test_other_cards_untouched(self):
        other = SpacedRepetitionState(interval=3, ease_factor=2.0, repetition=2)
        store = InMemorySchedulerStore({"card-2": other})

        await answer_card(store, "card-1", True)

        assert (await store.load())["card-2"] == other

    @pytest.mark.asyncio
    async def test_prune_and_forget(self):
        store = InMemorySchedulerStore(
            {
                "card-1": SpacedRepetitionState(),
                "card-2": SpacedRepetitionState(),
                "card-3": SpacedRepetitionState(),
            }
        )

        assert await prune_states(store, ["card-1", "card-2"]) == 1
        assert await forget_card(store, "card-2") is True
        assert await forget_card(store, "missing") is False
        assert set(await store.load()) == {"card-1"}

    @pytest.mark.asyncio
    async def test_forget_cards_drops_only_known_ids(self):
        store = InMemorySchedulerStore(
            {
                "card-1": SpacedRepetitionState(),
                "card-2": SpacedRepetitionState(),
                "card-3": SpacedRepetitionState(),
            }
        )

        assert await forget_cards(store, ["card-1", "card-3", "missing"]) == 2
        assert await forget_cards(store, []) == 0
        assert set(await store.load()) == {"card-2"}


class TestSqliteSchedulerStore:
    """Tests for the key-value backed store."""

    @pytest.mark.asyncio
    async def test_round_trip(self, db):
        store = SqliteSchedulerStore(db)
        states = {"card-1": SpacedRepetitionState(interval=3, ease_factor=1.42, repetition=2)}

        await store.save(states)

        assert await SqliteSchedulerStore(db).load() == states

    @pytest.mark.asyncio
    async def test_empty_when_nothing_saved(self, db):
        assert await SqliteSchedulerStore(db).load() == {}

    @pytest.mark.asyncio
    async def test_malformed_entries_load_as_defaults(self, db):
        await db.execute(
            "INSERT INTO settings(key, value) VALUES (?, ?)",
            (STORAGE_KEY, json.dumps({"card-1": {"interval": "soon"}})),
        )
        await db.commit()

        states = await SqliteSchedulerStore(db).load()

        assert states == {"card-1": SpacedRepetitionState()}
