"""Formatting of notes to be printed on the screen."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from zkcore.config import FileStorage
from zkcore.link_format import LinkFormatter, NotebookPath, new_link_formatter_context
from zkcore.note import ContextualNote
from zkcore.style import Style
from zkcore.template import LazyString, Template

NoteFormatter = Callable[[ContextualNote], str]

_TERM_RE = re.compile(r"<zk:match>(.*?)</zk:match>")


@dataclass
class NoteFormatRenderContext:
    """Variables available to the note formatting templates."""

    filename: str = ""
    filename_stem: str = ""
    path: str = ""
    abs_path: str = ""
    title: str = ""
    link: LazyString | str = ""
    lead: str = ""
    body: str = ""
    snippets: list[str] = field(default_factory=list)
    raw_content: str = ""
    word_count: int = 0
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created: datetime | None = None
    modified: datetime | None = None
    checksum: str = ""
    env: dict[str, str] = field(default_factory=dict, compare=False)


def new_note_formatter(
    base_path: str,
    template: Template,
    link_formatter: LinkFormatter,
    env: dict[str, str],
    fs: FileStorage,
) -> NoteFormatter:
    """Build a formatter rendering notes with the given template."""
    term_replacement = template.styler().style("$1", Style.TERM)

    def highlight(match: re.Match[str]) -> str:
        return term_replacement.replace("$1", match.group(1))

    def format_note(note: ContextualNote) -> str:
        path = NotebookPath(path=note.path, base_path=base_path, working_dir=fs.working_dir())
        rel_path = path.path_rel_to_working_dir()

        def render_link() -> str:
            try:
                context = new_link_formatter_context(path, note.title, note.metadata)
                return link_formatter(context)
            except Exception:
                return ""

        return template.render(
            NoteFormatRenderContext(
                filename=note.filename(),
                filename_stem=note.filename_stem(),
                path=rel_path,
                abs_path=path.abs_path(),
                title=note.title,
                link=LazyString(render_link),
                lead=note.lead,
                body=note.body,
                snippets=[_TERM_RE.sub(highlight, s) for s in note.snippets],
                raw_content=note.raw_content,
                word_count=note.word_count,
                tags=note.tags,
                metadata=note.metadata,
                created=note.created,
                modified=note.modified,
                checksum=note.checksum,
                env=env,
            )
        )

    return format_note