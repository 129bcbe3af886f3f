"""Notes, links, ID options and note search options."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Any, Callable, ClassVar, Iterable


class LinkType(StrEnum):
    """Kind of link found in a note."""

    IMPLICIT = "implicit"
    MARKDOWN = "markdown"
    WIKI_LINK = "wiki-link"


class LinkRelation(str):
    """Relationship between a link's source and target."""

    DOWN: ClassVar[LinkRelation]
    UP: ClassVar[LinkRelation]


LinkRelation.DOWN = LinkRelation("down")
LinkRelation.UP = LinkRelation("up")


def link_rels(*args: str) -> list[LinkRelation]:
    """Build a list of link relations from strings."""
    return [LinkRelation(r) for r in args]


@dataclass
class Link:
    """A link in a note to another note or an external resource."""

    title: str = ""
    href: str = ""
    type: LinkType = LinkType.MARKDOWN
    is_external: bool = False
    rels: list[LinkRelation] = field(default_factory=list)
    snippet: str = ""
    snippet_start: int = 0
    snippet_end: int = 0


@dataclass
class ResolvedLink(Link):
    """A link between two indexed notes."""

    id: int = 0
    source_id: int = 0
    source_path: str = ""
    target_id: int = 0
    target_path: str = ""


CHARSET_ALPHANUM = "0123456789abcdefghijklmnopqrstuvwxyz"
CHARSET_HEX = "0123456789abcdef"
CHARSET_LETTERS = "abcdefghijklmnopqrstuvwxyz"
CHARSET_NUMBERS = "0123456789"


class Case(IntEnum):
    """Letter case used when generating an ID."""

    LOWER = 1
    UPPER = 2
    MIXED = 3


@dataclass
class IDOptions:
    """Options used to generate a random ID."""

    length: int = 0
    charset: str = ""
    case: Case = Case.LOWER


IDGenerator = Callable[[], str]
IDGeneratorFactory = Callable[[IDOptions], IDGenerator]


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _ext(path: str) -> str:
    dot = path.rfind(".")
    if dot > path.rfind("/"):
        return path[dot:]
    return ""


def drop_ext(path: str) -> str:
    """Remove the file extension from path."""
    ext = _ext(path)
    return path[: -len(ext)] if ext else path


def filename_stem(path: str) -> str:
    """Filename of path without its extension."""
    base = _base(path)
    dot = base.rfind(".")
    if dot > 0 and base.strip("."):
        return base[:dot]
    return base


@dataclass
class MinimalNote:
    """A note's title and path, for display purposes."""

    id: int = 0
    path: str = ""
    title: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Note:
    """Metadata and content of a single note."""

    id: int = 0
    path: str = ""
    title: str = ""
    lead: str = ""
    body: str = ""
    raw_content: str = ""
    word_count: int = 0
    links: list[Link] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created: datetime | None = None
    modified: datetime | None = None
    checksum: str = ""

    def as_minimal_note(self) -> MinimalNote:
        return MinimalNote(id=self.id, path=self.path, title=self.title, metadata=self.metadata)

    def filename(self) -> str:
        """Filename portion of the note path."""
        return _base(self.path)

    def filename_stem(self) -> str:
        """Filename portion of the note path, without extension."""
        return filename_stem(self.path)


@dataclass
class ContextualNote(Note):
    """A note with context-sensitive snippets, such as highlighted search terms."""

    snippets: list[str] = field(default_factory=list)


@dataclass
class LinkFilter:
    """Filter selecting notes linking to other ones."""

    hrefs: list[str] = field(default_factory=list)
    negate: bool = False
    recursive: bool = False
    max_distance: int = 0


class NoteSortField(IntEnum):
    """Note field used to sort a list of notes."""

    CREATED = 1
    MODIFIED = 2
    PATH = 3
    RANDOM = 4
    TITLE = 5
    WORD_COUNT = 6


@dataclass(frozen=True)
class NoteSorter:
    """Order term used to sort a list of notes."""

    field: NoteSortField
    ascending: bool


class MatchStrategy(IntEnum):
    """Text matching strategy used when filtering notes."""

    FTS = 1
    EXACT = 2
    RE = 3


@dataclass
class NoteFindOpts:
    """Filtering and sorting options used to find notes."""

    match: list[str] = field(default_factory=list)
    match_strategy: MatchStrategy | None = None
    include_hrefs: list[str] = field(default_factory=list)
    exclude_hrefs: list[str] = field(default_factory=list)
    allow_partial_hrefs: bool = False
    include_ids: list[int] | None = None
    exclude_ids: list[int] | None = None
    tags: list[str] = field(default_factory=list)
    mention: list[str] = field(default_factory=list)
    mentioned_by: list[str] = field(default_factory=list)
    linked_by: LinkFilter | None = None
    link_to: LinkFilter | None = None
    related: list[str] = field(default_factory=list)
    orphan: bool = False
    tagless: bool = False
    created_start: datetime | None = None
    created_end: datetime | None = None
    modified_start: datetime | None = None
    modified_end: datetime | None = None
    limit: int = 0
    sorters: list[NoteSorter] = field(default_factory=list)

    def including_ids(self, ids: Iterable[int]) -> NoteFindOpts:
        """Copy of these options with the given IDs added to the included ones."""
        return dataclasses.replace(self, include_ids=[*(self.include_ids or []), *ids])

    def excluding_ids(self, ids: Iterable[int]) -> NoteFindOpts:
        """Copy of these options with the given IDs added to the excluded ones."""
        return dataclasses.replace(self, exclude_ids=[*(self.exclude_ids or []), *ids])


_NOTE_SORT_TERMS: dict[str, tuple[NoteSortField, bool]] = {
    "created": (NoteSortField.CREATED, False),
    "c": (NoteSortField.CREATED, False),
    "modified": (NoteSortField.MODIFIED, False),
    "m": (NoteSortField.MODIFIED, False),
    "path": (NoteSortField.PATH, True),
    "p": (NoteSortField.PATH, True),
    "title": (NoteSortField.TITLE, True),
    "t": (NoteSortField.TITLE, True),
    "random": (NoteSortField.RANDOM, True),
    "r": (NoteSortField.RANDOM, True),
    "word-count": (NoteSortField.WORD_COUNT, True),
    "wc": (NoteSortField.WORD_COUNT, True),
}


def note_sorters_from_strings(strs: Iterable[str]) -> list[NoteSorter]:
    """Parse sort terms, last one first so later terms override earlier ones."""
    return [note_sorter_from_string(s) for s in reversed(list(strs))]


def note_sorter_from_string(text: str) -> NoteSorter:
    """Parse a sort term; a `+` or `-` suffix forces the order."""
    order_symbol = text[-1:]
    term = text.rstrip("+-")
    try:
        sort_field, ascending = _NOTE_SORT_TERMS[term]
    except KeyError:
        raise ValueError(
            f"{term}: unknown sorting term\n"
            "try created, modified, path, title, random or word-count"
        ) from None

    if order_symbol == "+":
        ascending = True
    elif order_symbol == "-":
        ascending = False
    return NoteSorter(field=sort_field, ascending=ascending)


def match_strategy_from_string(text: str) -> MatchStrategy:
    """Parse a match strategy name."""
    if text in ("fts", "f", ""):
        return MatchStrategy.FTS
    if text in ("re", "grep", "r"):
        return MatchStrategy.RE
    if text in ("exact", "e"):
        return MatchStrategy.EXACT
    raise ValueError(
        f"{text}: unknown match strategy\n"
        "try fts (full-text search), re (regular expression) or exact"
    )