"""Index of notes, and statistics of the indexing process."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable

from zkcore.collection import Collection, CollectionKind, CollectionSorter
from zkcore.note import (
    ContextualNote,
    LinkType,
    MinimalNote,
    Note,
    NoteFindOpts,
    ResolvedLink,
)


class NoteIndex(ABC):
    """Persists and grants access to indexed information about the notes."""

    @abstractmethod
    def find(self, opts: NoteFindOpts) -> list[ContextualNote]:
        """Notes matching the given filtering and sorting criteria."""

    @abstractmethod
    def find_minimal(self, opts: NoteFindOpts) -> list[MinimalNote]:
        """Lightweight metadata of the notes matching the given criteria."""

    @abstractmethod
    def find_link_match(self, base_dir: str, href: str, link_type: LinkType) -> int:
        """ID of the best note match for a link href, relative to base_dir."""

    @abstractmethod
    def find_links_between_notes(self, ids: Iterable[int]) -> list[ResolvedLink]:
        """Links between the given notes."""

    @abstractmethod
    def find_collections(
        self, kind: CollectionKind, sorters: list[CollectionSorter]
    ) -> list[Collection]:
        """All the collections of the given kind."""

    @abstractmethod
    def indexed_paths(self) -> Iterable[Any]:
        """Metadata of the indexed note files."""

    @abstractmethod
    def add(self, note: Note) -> int:
        """Index a new note and return its ID."""

    @abstractmethod
    def update(self, note: Note) -> None:
        """Reset the metadata of an already indexed note."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete a note from the index."""

    @abstractmethod
    def commit(self, transaction: Callable[[NoteIndex], None]) -> None:
        """Perform a set of operations atomically."""

    @abstractmethod
    def needs_reindexing(self) -> bool:
        """Whether all notes should be reindexed."""

    @abstractmethod
    def set_needs_reindexing(self, needs_reindexing: bool) -> None:
        """Record whether all notes should be reindexed."""


def pluralize(word: str, count: int) -> str:
    """The word, in plural form unless count is one."""
    return word if count == 1 else word + "s"


_HALF_SECOND_US = 500_000


def _format_duration(duration: timedelta) -> str:
    """Duration rounded to half a second, written like `1m2.5s`."""
    micros = duration // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    q, r = divmod(abs(micros), _HALF_SECOND_US)
    if r * 2 >= _HALF_SECOND_US:
        q += 1
    ms = q * 500
    if ms == 0:
        return "0s"
    if ms < 1000:
        return f"{sign}{ms}ms"
    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += f"{seconds}.5s" if millis else f"{seconds}s"
    return out


@dataclass
class NoteIndexingStats:
    """Statistics about a notebook indexing process."""

    source_count: int = 0
    added_count: int = 0
    modified_count: int = 0
    removed_count: int = 0
    duration: timedelta = timedelta(0)

    def __str__(self) -> str:
        return (
            f"Indexed {self.source_count} {pluralize('note', self.source_count)}"
            f" in {_format_duration(self.duration)}\n"
            f"  + {self.added_count} added\n"
            f"  ~ {self.modified_count} modified\n"
            f"  - {self.removed_count} removed"
        )


@dataclass
class NoteIndexOpts:
    """Options of the indexing process."""

    force: bool = False
    verbose: bool = False