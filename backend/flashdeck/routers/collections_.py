"""
Collection router: categories and flashcards.

Endpoints:
  GET    /collections                          : full {categories, flashcards} mirror
  PUT    /collections                          : replace everything (repairs dangling references first)
  POST   /collections/import                   : append nested collections
  GET    /collections/categories/meta          : category names, lock flags and display paths
  POST   /collections/categories               : create category
  PATCH  /collections/categories/{id}          : rename / lock / unlock
  DELETE /collections/categories/{id}          : delete, moving cards to a fallback category and resetting their scheduling state
  POST   /collections/flashcards               : create card
  PATCH  /collections/flashcards/{id}          : edit card
  DELETE /collections/flashcards/{id}          : delete card and its scheduling state
  POST   /collections/flashcards/{id}/learned  : mark learned
  POST   /collections/flashcards/{id}/unlearned: mark unlearned

Writes into a locked category answer 409.
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashdeck.db.sqlite import (
    LockedCategoryError,
    create_category,
    create_flashcard,
    delete_category,
    delete_flashcard,
    get_collections,
    get_db,
    list_categories,
    list_flashcards,
    replace_collections,
    set_flashcard_learned,
    update_category,
    update_flashcard,
)
from flashdeck.models.flashcard import (
    Category,
    CategoryCreate,
    CategoryMeta,
    CategoryUpdate,
    CollectionState,
    Flashcard,
    FlashcardCreate,
    FlashcardUpdate,
    ImportedCollection,
    ImportResult,
)
from flashdeck.services.categories import (
    build_category_meta_map,
    ensure_category_consistency,
    import_collections,
)
from flashdeck.services.scheduler import (
    SqliteSchedulerStore,
    forget_card,
    forget_cards,
    prune_states,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=CollectionState)
async def read_collections(db: aiosqlite.Connection = Depends(get_db)) -> CollectionState:
    return await get_collections(db)


@router.put("")
async def write_collections(
    body: CollectionState, db: aiosqlite.Connection = Depends(get_db)
) -> dict:
    categories, flashcards = body.categories, body.flashcards
    if categories or flashcards:
        categories, flashcards = ensure_category_consistency(categories, flashcards)
    try:
        await replace_collections(db, categories, flashcards)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    removed = await prune_states(SqliteSchedulerStore(db), [f.id for f in flashcards])
    if removed:
        logger.info("Dropped scheduling state for %d removed cards", removed)
    return {"status": "ok"}


@router.post("/import", response_model=ImportResult, status_code=201)
async def import_collection(
    body: ImportedCollection | list[ImportedCollection],
    db: aiosqlite.Connection = Depends(get_db),
) -> ImportResult:
    state = await get_collections(db)
    categories, flashcards, root_ids = import_collections(
        body, state.categories, state.flashcards
    )
    try:
        await replace_collections(db, categories, flashcards)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ImportResult(created_root_ids=root_ids)


# --- Categories ---


@router.get("/categories/meta", response_model=dict[str, CategoryMeta])
async def category_meta(
    db: aiosqlite.Connection = Depends(get_db),
) -> dict[str, CategoryMeta]:
    return build_category_meta_map(await list_categories(db))


@router.post("/categories", response_model=Category, status_code=201)
async def add_category(
    body: CategoryCreate, db: aiosqlite.Connection = Depends(get_db)
) -> Category:
    try:
        return await create_category(db, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.patch("/categories/{category_id}", response_model=Category)
async def edit_category(
    category_id: str,
    body: CategoryUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Category:
    updated = await update_category(db, category_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Category not found")
    return updated


@router.delete("/categories/{category_id}", status_code=204)
async def remove_category(
    category_id: str, db: aiosqlite.Connection = Depends(get_db)
) -> None:
    # Moved cards start over with default scheduling state
    card_ids = [c.id for c in await list_flashcards(db, category_id=category_id)]
    try:
        deleted = await delete_category(db, category_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")
    await forget_cards(SqliteSchedulerStore(db), card_ids)


# --- Flashcards ---


@router.post("/flashcards", response_model=Flashcard, status_code=201)
async def add_flashcard(
    body: FlashcardCreate, db: aiosqlite.Connection = Depends(get_db)
) -> Flashcard:
    try:
        card = await create_flashcard(db, body)
    except LockedCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if not card:
        raise HTTPException(status_code=404, detail="Category not found")
    return card


@router.patch("/flashcards/{card_id}", response_model=Flashcard)
async def edit_flashcard(
    card_id: str,
    body: FlashcardUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    try:
        card = await update_flashcard(db, card_id, body)
    except LockedCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.delete("/flashcards/{card_id}", status_code=204)
async def remove_flashcard(
    card_id: str, db: aiosqlite.Connection = Depends(get_db)
) -> None:
    try:
        deleted = await delete_flashcard(db, card_id)
    except LockedCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    await forget_card(SqliteSchedulerStore(db), card_id)


async def _set_learned(db: aiosqlite.Connection, card_id: str, learned: bool) -> Flashcard:
    try:
        card = await set_flashcard_learned(db, card_id, learned)
    except LockedCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.post("/flashcards/{card_id}/learned", response_model=Flashcard)
async def mark_learned(
    card_id: str, db: aiosqlite.Connection = Depends(get_db)
) -> Flashcard:
    return await _set_learned(db, card_id, True)


@router.post("/flashcards/{card_id}/unlearned", response_model=Flashcard)
async def mark_unlearned(
    card_id: str, db: aiosqlite.Connection = Depends(get_db)
) -> Flashcard:
    return await _set_learned(db, card_id, False)
