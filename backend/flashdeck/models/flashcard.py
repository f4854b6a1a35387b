from __future__ import annotations

from pydantic import BaseModel


class Flashcard(BaseModel):
    id: str
    front: str
    back: str
    learned: bool = False
    category_id: str
    img: str | None = None


class FlashcardCreate(BaseModel):
    front: str
    back: str
    category_id: str
    img: str | None = None


class FlashcardUpdate(BaseModel):
    front: str | None = None
    back: str | None = None
    category_id: str | None = None
    img: str | None = None


class Category(BaseModel):
    id: str
    name: str
    locked: bool = False
    created_at: str
    parent_id: str | None = None


class CategoryCreate(BaseModel):
    name: str
    locked: bool = False
    parent_id: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = None
    locked: bool | None = None


class CategoryMeta(BaseModel):
    name: str
    locked: bool
    parent_id: str | None
    path: str  # ancestor names joined with " › ", root first


class CollectionState(BaseModel):
    categories: list[Category]
    flashcards: list[Flashcard]


class ImportedCard(BaseModel):
    front: str = ""
    back: str = ""
    learned: bool = False


class ImportedCollection(BaseModel):
    name: str = ""
    locked: bool = False
    cards: list[ImportedCard] = []
    subcollections: list[ImportedCollection] = []


class ImportResult(BaseModel):
    created_root_ids: list[str]
