"""
Category tree helpers: display paths, consistency repair and nested imports.

Nothing here touches the database; callers load the collection, transform it
and write it back through the collection store.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from flashdeck.config import settings
from flashdeck.db.sqlite import format_timestamp
from flashdeck.models.flashcard import (
    Category,
    CategoryMeta,
    Flashcard,
    ImportedCollection,
)

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " › "


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def new_category(
    name: str, locked: bool = False, parent_id: str | None = None
) -> Category:
    return Category(
        id=str(uuid.uuid4()),
        name=name,
        locked=locked,
        created_at=_now(),
        parent_id=parent_id,
    )


def build_category_meta_map(
    categories: Sequence[Category],
) -> dict[str, CategoryMeta]:
    by_id = {c.id: c for c in categories}
    path_cache: dict[str, str] = {}

    def compute_path(category: Category, seen: frozenset[str] = frozenset()) -> str:
        if category.id in path_cache:
            return path_cache[category.id]
        parent = by_id.get(category.parent_id) if category.parent_id else None
        # A parent cycle is cut at the first repeat and treated as a root
        if parent is not None and parent.id not in seen:
            path = compute_path(parent, seen | {category.id}) + PATH_SEPARATOR + category.name
        else:
            path = category.name
        path_cache[category.id] = path
        return path

    return {
        c.id: CategoryMeta(
            name=c.name,
            locked=c.locked,
            parent_id=c.parent_id,
            path=compute_path(c),
        )
        for c in categories
    }


def ensure_category_consistency(
    categories: Sequence[Category], flashcards: Sequence[Flashcard]
) -> tuple[list[Category], list[Flashcard]]:
    """Drop dangling parents, guarantee an unlocked category and re-home orphaned cards."""
    known = {c.id for c in categories}
    fixed_categories = [
        c if c.parent_id is None or c.parent_id in known
        else c.model_copy(update={"parent_id": None})
        for c in categories
    ]

    default = next((c for c in fixed_categories if not c.locked), None)
    if default is None:
        default = new_category(settings.default_category_name)
        fixed_categories.append(default)
        known.add(default.id)
        logger.info("Created default category %s", default.id)

    fixed_cards = [
        card if card.category_id in known
        else card.model_copy(update={"category_id": default.id})
        for card in flashcards
    ]
    return fixed_categories, fixed_cards


def import_collections(
    payload: ImportedCollection | Sequence[ImportedCollection],
    categories: Sequence[Category],
    flashcards: Sequence[Flashcard],
) -> tuple[list[Category], list[Flashcard], list[str]]:
    """Append imported collections (and their subcollections) as new categories.

    Returns the new category list, the new card list and the ids of the
    imported root categories.
    """
    inputs = [payload] if isinstance(payload, ImportedCollection) else list(payload)
    out_categories = list(categories)
    out_cards = list(flashcards)
    root_ids: list[str] = []

    def append(collection: ImportedCollection, parent_id: str | None) -> None:
        if not collection.name:
            return
        category = new_category(
            collection.name, locked=collection.locked, parent_id=parent_id
        )
        out_categories.append(category)
        if parent_id is None:
            root_ids.append(category.id)

        for card in collection.cards:
            if not card.front or not card.back:
                continue
            out_cards.append(
                Flashcard(
                    id=str(uuid.uuid4()),
                    front=card.front,
                    back=card.back,
                    learned=card.learned,
                    category_id=category.id,
                )
            )

        for sub in collection.subcollections:
            append(sub, category.id)

    for collection in inputs:
        append(collection, None)

    return out_categories, out_cards, root_ids
