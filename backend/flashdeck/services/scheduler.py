"""
Spaced-repetition scheduler.

Per-card scheduling state (interval, ease factor, repetition count) lives in a
side map keyed by card id, separate from the flashcards themselves:

  record_answer(): pure state transition for one study answer
  should_graduate(): decides when a card becomes "learned"
  answer_card(): load map → transition → save map, via a SchedulerStore

The ease factor update is the SM-2 formula with the recall quality pinned at 1,
so every answer (right or wrong) lowers the ease factor by the same amount:
0.1 - 4 * (0.08 + 4 * 0.02) == -0.54, floored at 1.3.
"""
from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import aiosqlite

from flashdeck.db.sqlite import get_setting, set_setting
from flashdeck.models.study import (
    MIN_EASE_FACTOR,
    SpacedRepetitionState,
    StudyOutcome,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "spacedRepetitionData"

_FIXED_QUALITY = 1
_EASE_DELTA = 0.1 - (5 - _FIXED_QUALITY) * (0.08 + (5 - _FIXED_QUALITY) * 0.02)

GRADUATION_MIN_REPETITION = 3
GRADUATION_MIN_INTERVAL = 7


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def record_answer(
    state: SpacedRepetitionState, is_correct: bool
) -> SpacedRepetitionState:
    """Return the state that follows one study answer. Never mutates ``state``."""
    if is_correct:
        if state.interval == 0:
            new_interval = 1
        elif state.interval == 1:
            new_interval = 3
        else:
            new_interval = _round_half_up(state.interval * state.ease_factor)
        new_repetition = state.repetition + 1
    else:
        # Miss: full reset of the streak; ease factor is not reset
        new_interval = 0
        new_repetition = 0

    new_ease = max(MIN_EASE_FACTOR, state.ease_factor + _EASE_DELTA)

    return SpacedRepetitionState(
        interval=new_interval,
        ease_factor=new_ease,
        repetition=new_repetition,
    )


def should_graduate(state: SpacedRepetitionState) -> bool:
    return (
        state.repetition >= GRADUATION_MIN_REPETITION
        and state.interval >= GRADUATION_MIN_INTERVAL
    )


# --- Load boundary ---


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def coerce_state(raw: Any) -> SpacedRepetitionState:
    """Turn a persisted entry into a valid state; malformed entries become defaults."""
    if not isinstance(raw, Mapping):
        return SpacedRepetitionState()

    interval = raw.get("interval")
    ease_factor = raw.get("ease_factor", raw.get("easeFactor"))
    repetition = raw.get("repetition")
    if not (_is_number(interval) and _is_number(ease_factor) and _is_number(repetition)):
        return SpacedRepetitionState()

    return SpacedRepetitionState(
        interval=max(0, int(interval)),
        ease_factor=max(MIN_EASE_FACTOR, float(ease_factor)),
        repetition=max(0, int(repetition)),
    )


def decode_state_map(raw: str | None) -> dict[str, SpacedRepetitionState]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable scheduling data")
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Discarding scheduling data of type %s", type(parsed).__name__)
        return {}
    return {str(card_id): coerce_state(entry) for card_id, entry in parsed.items()}


def encode_state_map(states: Mapping[str, SpacedRepetitionState]) -> str:
    return json.dumps({card_id: s.model_dump() for card_id, s in states.items()})


# --- Stores ---


class SchedulerStore(Protocol):
    async def load(self) -> dict[str, SpacedRepetitionState]: ...

    async def save(self, states: dict[str, SpacedRepetitionState]) -> None: ...


class InMemorySchedulerStore:
    def __init__(self, states: Mapping[str, SpacedRepetitionState] | None = None):
        self._states: dict[str, SpacedRepetitionState] = dict(states or {})

    async def load(self) -> dict[str, SpacedRepetitionState]:
        return dict(self._states)

    async def save(self, states: dict[str, SpacedRepetitionState]) -> None:
        self._states = dict(states)


class SqliteSchedulerStore:
    """Keeps the whole map as one JSON value in the settings key-value table."""

    def __init__(self, db: aiosqlite.Connection, key: str = STORAGE_KEY):
        self.db = db
        self.key = key

    async def load(self) -> dict[str, SpacedRepetitionState]:
        return decode_state_map(await get_setting(self.db, self.key))

    async def save(self, states: dict[str, SpacedRepetitionState]) -> None:
        await set_setting(self.db, self.key, encode_state_map(states))


# --- Caller-side helpers ---


async def answer_card(
    store: SchedulerStore, card_id: str, is_correct: bool
) -> StudyOutcome:
    """Apply one answer to a card's persisted state and report graduation.

    Marking the card learned is left to the caller.
    """
    states = await store.load()
    current = states.get(card_id) or SpacedRepetitionState()
    new_state = record_answer(current, is_correct)
    states[card_id] = new_state
    await store.save(states)

    graduated = is_correct and should_graduate(new_state)
    if graduated:
        logger.info(
            "Card %s graduated (repetition=%d, interval=%d)",
            card_id,
            new_state.repetition,
            new_state.interval,
        )
    return StudyOutcome(card_id=card_id, state=new_state, graduated=graduated)


async def prune_states(store: SchedulerStore, card_ids: Iterable[str]) -> int:
    """Drop entries for cards that no longer exist. Returns how many were removed."""
    keep = set(card_ids)
    states = await store.load()
    stale = [card_id for card_id in states if card_id not in keep]
    if not stale:
        return 0
    for card_id in stale:
        del states[card_id]
    await store.save(states)
    return len(stale)


async def forget_cards(store: SchedulerStore, card_ids: Iterable[str]) -> int:
    """Drop the entries of the given cards. Returns how many were removed."""
    states = await store.load()
    removed = [card_id for card_id in set(card_ids) if states.pop(card_id, None) is not None]
    if removed:
        await store.save(states)
    return len(removed)


async def forget_card(store: SchedulerStore, card_id: str) -> bool:
    return await forget_cards(store, [card_id]) > 0
