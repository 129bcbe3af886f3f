"""Parsing of note files into Note models."""

from __future__ import annotations

import hashlib
import logging
import os
import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from zkcore.note import Link, LinkType, Note

_log = logging.getLogger(__name__)

_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:\S+$")


@dataclass
class NoteContent:
    """Data parsed from the raw content of a note."""

    title: str | None = None
    lead: str | None = None
    body: str | None = None
    tags: list[str] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


class NoteParser(ABC):
    """Parses a note on the file system into a Note."""

    @abstractmethod
    def parse_note_at(self, abs_path: str) -> Note | None:
        """Parse the note file at the given absolute path."""


class NoteContentParser(ABC):
    """Parses the raw content of a note into its components."""

    @abstractmethod
    def parse_note_content(self, content: str) -> NoteContent:
        """Split the raw content into title, lead, body, tags, links and metadata."""


def is_url(text: str) -> bool:
    """Whether text is an absolute URL with a scheme."""
    return _URL_RE.match(text) is not None


def build_note(abs_path: str, rel_path: str, content: bytes | str, parts: NoteContent) -> Note:
    """Assemble a Note from its file location, raw content and parsed parts."""
    raw = content.encode("utf-8") if isinstance(content, str) else content
    text = raw.decode("utf-8", errors="replace")

    note = Note(
        path=rel_path,
        title=parts.title or "",
        lead=parts.lead or "",
        body=parts.body or "",
        raw_content=text,
        word_count=len(text.split()),
        links=[],
        tags=parts.tags,
        metadata=parts.metadata,
        checksum=hashlib.sha256(raw).hexdigest(),
    )

    note_dir = posixpath.dirname(rel_path)
    for link in parts.links:
        if not is_url(link.href) and link.type == LinkType.MARKDOWN:
            # Make the href relative to the notebook root.
            href = posixpath.normpath(posixpath.join(note_dir, link.href))
            if href.startswith(".."):
                _log.error("%s: path is outside the notebook", link.href)
                continue
            link.href = "" if href == "." else href
        note.links.append(link)

    try:
        stat_result = os.stat(abs_path)
    except OSError:
        return note
    note.modified = datetime.fromtimestamp(stat_result.st_mtime, timezone.utc)
    note.created = creation_date_from(note.metadata, stat_result)
    return note


def _parse_date(text: str) -> datetime | None:
    try:
        date = datetime.fromisoformat(text)
    except ValueError:
        return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


def creation_date_from(metadata: dict[str, Any], stat_result: Any) -> datetime:
    """Creation date from the frontmatter `date`, the file birth time, or now."""
    value = metadata.get("date") if metadata else None
    if isinstance(value, str):
        date = _parse_date(value)
        if date is not None:
            return date

    birth_time = getattr(stat_result, "st_birthtime", None)
    if birth_time is not None:
        return datetime.fromtimestamp(birth_time, timezone.utc)

    return datetime.now(timezone.utc)