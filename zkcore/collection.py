"""Note collections, such as tags, with their sorting and formatting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Callable, Iterable

from zkcore.template import Template


class CollectionKind(StrEnum):
    """Kind of note collection."""

    TAG = "tag"


@dataclass
class Collection:
    """A collection of notes, such as a tag."""

    id: int
    kind: CollectionKind
    name: str
    note_count: int = 0


class CollectionSortField(IntEnum):
    """Collection field used to sort a list of collections."""

    NAME = 1
    NOTE_COUNT = 2


@dataclass(frozen=True)
class CollectionSorter:
    """Order term used to sort a list of collections."""

    field: CollectionSortField
    ascending: bool


def collection_sorters_from_strings(strs: Iterable[str]) -> list[CollectionSorter]:
    """Parse sort terms, last one first so later terms override earlier ones."""
    return [collection_sorter_from_string(s) for s in reversed(list(strs))]


def collection_sorter_from_string(text: str) -> CollectionSorter:
    """Parse a sort term; a `+` or `-` suffix forces the order."""
    order_symbol = text[-1:]
    term = text.rstrip("+-")

    if term in ("name", "n"):
        field, ascending = CollectionSortField.NAME, True
    elif term in ("note-count", "nc"):
        field, ascending = CollectionSortField.NOTE_COUNT, False
    else:
        raise ValueError(f"{term}: unknown sorting term\ntry name or note-count")

    if order_symbol == "+":
        ascending = True
    elif order_symbol == "-":
        ascending = False
    return CollectionSorter(field=field, ascending=ascending)


@dataclass
class CollectionFormatRenderContext:
    """Variables available to collection formatting templates."""

    id: int
    kind: CollectionKind
    name: str
    note_count: int


CollectionFormatter = Callable[[Collection], str]


def new_collection_formatter(template: Template) -> CollectionFormatter:
    """Build a formatter rendering collections with the given template."""

    def format_collection(collection: Collection) -> str:
        return template.render(
            CollectionFormatRenderContext(
                id=collection.id,
                kind=collection.kind,
                name=collection.name,
                note_count=collection.note_count,
            )
        )

    return format_collection