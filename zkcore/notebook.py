"""Queries and commands performed on an opened notebook."""

from __future__ import annotations

import dataclasses
import os
import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from zkcore.collection import (
    Collection,
    CollectionFormatter,
    CollectionKind,
    CollectionSorter,
    new_collection_formatter,
)
from zkcore.config import Config, FileStorage
from zkcore.link_format import LinkFormatter, new_link_formatter
from zkcore.note import (
    ContextualNote,
    IDGenerator,
    IDGeneratorFactory,
    MinimalNote,
    Note,
    NoteFindOpts,
    ResolvedLink,
)
from zkcore.note_format import NoteFormatter, new_note_formatter
from zkcore.note_index import NoteIndex
from zkcore.note_new import Dir, NewNoteTask
from zkcore.note_parse import NoteContentParser, NoteParser, build_note
from zkcore.template import TemplateLoaderFactory


def _os_environ() -> dict[str, str]:
    return dict(os.environ)


def _rel(base: str, target: str) -> str:
    if posixpath.isabs(base) != posixpath.isabs(target):
        raise ValueError(f"can't make {target} relative to {base}")
    return posixpath.relpath(target, base)


@dataclass
class NotebookPorts:
    """Implementations of the services a notebook relies on."""

    note_index: NoteIndex | None = None
    note_content_parser: NoteContentParser | None = None
    template_loader_factory: TemplateLoaderFactory | None = None
    id_generator_factory: IDGeneratorFactory | None = None
    fs: FileStorage | None = None
    os_env: Callable[[], dict[str, str]] = _os_environ


@dataclass
class NewNoteOpts:
    """Options used to create a new note in a notebook."""

    title: str | None = None
    content: str = ""
    directory: str | None = None
    group: str | None = None
    template: str | None = None
    extra: dict[str, str] = field(default_factory=dict)
    date: datetime | None = None
    dry_run: bool = False
    id: str = ""


class Notebook(NoteParser):
    """An opened notebook, rooted at path."""

    def __init__(self, path: str, config: Config, ports: NotebookPorts) -> None:
        self.path = path
        self.config = config
        self.parser = ports.note_content_parser
        self._index = ports.note_index
        self._template_loader_factory = ports.template_loader_factory
        self._id_generator_factory = ports.id_generator_factory
        self._fs = ports.fs
        self._os_env = ports.os_env

    def new_note(self, opts: NewNoteOpts) -> Note:
        """Generate a new note, index it and return it.

        Raises NoteExistsError if no free filename can be generated.
        """
        directory = self.require_dir_at(
            opts.directory if opts.directory is not None else self.path
        )
        config = self.config.group_config_named(
            opts.group if opts.group is not None else directory.group
        )
        extra = {**config.extra, **opts.extra}
        templates = self._template_loader_factory(config.note.lang)

        id_generator: IDGenerator
        if opts.id:
            fixed_id = opts.id
            id_generator = lambda: fixed_id  # noqa: E731
        else:
            id_generator = self._id_generator_factory(config.note.id_options)

        task = NewNoteTask(
            dir=directory,
            title=opts.title if opts.title is not None else config.note.default_title,
            content=opts.content,
            date=opts.date,
            extra=extra,
            env=self._os_env(),
            fs=self._fs,
            filename_template=f"{config.note.filename_template}.{config.note.extension}",
            body_template_path=(
                opts.template if opts.template is not None else config.note.body_template_path
            ),
            templates=templates,
            gen_id=id_generator,
            dry_run=opts.dry_run,
        )
        path, content = task.execute()

        note = self.parse_note_with_content(path, content.encode("utf-8"))
        if not opts.dry_run:
            note.id = self._index.add(note)
        return note

    def find_notes(self, opts: NoteFindOpts) -> list[ContextualNote]:
        """Notes matching the given filtering options."""
        return self._index.find(opts)

    def find_note(self, opts: NoteFindOpts) -> Note | None:
        """First note matching the given filtering options, if any."""
        notes = self.find_notes(dataclasses.replace(opts, limit=1))
        return notes[0] if notes else None

    def find_minimal_notes(self, opts: NoteFindOpts) -> list[MinimalNote]:
        """Lightweight metadata of the notes matching the given options."""
        return self._index.find_minimal(opts)

    def find_minimal_note(self, opts: NoteFindOpts) -> MinimalNote | None:
        """Lightweight metadata of the first note matching the given options."""
        notes = self.find_minimal_notes(dataclasses.replace(opts, limit=1))
        return notes[0] if notes else None

    def find_by_href(self, href: str, allow_partial_href: bool) -> MinimalNote | None:
        """First note matching the link href; partial hrefs may match any unique sub path."""
        return self.find_minimal_note(
            NoteFindOpts(include_hrefs=[href], allow_partial_hrefs=allow_partial_href)
        )

    def find_links_between_notes(self, ids: Iterable[int]) -> list[ResolvedLink]:
        """Links between the given notes."""
        return self._index.find_links_between_notes(ids)

    def find_collections(
        self, kind: CollectionKind, sorters: list[CollectionSorter]
    ) -> list[Collection]:
        """All the collections of the given kind."""
        return self._index.find_collections(kind, sorters)

    def rel_path(self, original_path: str) -> str:
        """Path relative to the notebook root; raise ValueError if outside of it."""
        try:
            path = _rel(self.path, self._fs.abs(original_path))
        except ValueError as err:
            err.add_note(f"{original_path}: not a valid notebook path")
            raise
        if path.startswith(".."):
            raise ValueError(
                f"{original_path}: path is outside the notebook at {self.path}"
            )
        return "" if path == "." else path

    def root_dir(self) -> Dir:
        """Root directory of the notebook."""
        return Dir(name="", path=self.path, group="")

    def dir_at(self, path: str) -> Dir:
        """Notebook directory at the given path."""
        abs_path = self._fs.abs(path)
        name = self.rel_path(abs_path)
        group = self.config.group_name_for_path(name)
        return Dir(name=name, path=abs_path, group=group)

    def require_dir_at(self, path: str) -> Dir:
        """Like dir_at, but raise FileNotFoundError if the directory does not exist."""
        directory = self.dir_at(path)
        if not self._fs.dir_exists(directory.path):
            raise FileNotFoundError(f"{path}: directory not found")
        return directory

    def new_note_formatter(self, template_string: str) -> NoteFormatter:
        """Formatter rendering notes with the given template."""
        templates = self._template_loader_factory(self.config.note.lang)
        template = templates.load_template(template_string)
        link_formatter = new_link_formatter(self.config.format.markdown, templates)
        return new_note_formatter(self.path, template, link_formatter, self._os_env(), self._fs)

    def new_collection_formatter(self, template_string: str) -> CollectionFormatter:
        """Formatter rendering collections with the given template."""
        templates = self._template_loader_factory(self.config.note.lang)
        return new_collection_formatter(templates.load_template(template_string))

    def new_link_formatter(self) -> LinkFormatter:
        """Formatter generating internal links between notes."""
        templates = self._template_loader_factory(self.config.note.lang)
        return new_link_formatter(self.config.format.markdown, templates)

    def parse_note_at(self, abs_path: str) -> Note:
        """Parse the note file at the given absolute path."""
        try:
            content = self._fs.read(abs_path)
        except OSError as err:
            err.add_note(abs_path)
            raise
        return self.parse_note_with_content(abs_path, content)

    def parse_note_with_content(self, abs_path: str, content: bytes | str) -> Note:
        """Build the note located at abs_path from its raw content."""
        raw = content.encode("utf-8") if isinstance(content, str) else content
        try:
            rel_path = self.rel_path(abs_path)
            parts = self.parser.parse_note_content(raw.decode("utf-8", errors="replace"))
        except Exception as err:
            err.add_note(abs_path)
            raise
        return build_note(abs_path, rel_path, raw, parts)