"""Creation of new notes from templates."""

from __future__ import annotations

import dataclasses
import posixpath
from dataclasses import dataclass, field
from datetime import datetime

from zkcore.config import FileStorage
from zkcore.note import IDGenerator, filename_stem
from zkcore.template import NullTemplate, Template, TemplateLoader

_MAX_ATTEMPTS = 50


def _join(*elements: str) -> str:
    parts = [e for e in elements if e]
    if not parts:
        return ""
    cleaned = posixpath.normpath("/".join(parts))
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


@dataclass
class Dir:
    """A directory inside a notebook."""

    name: str
    path: str
    group: str = ""


class NoteExistsError(Exception):
    """Raised when no free filename can be generated for a new note."""

    def __init__(self, name: str, path: str) -> None:
        super().__init__(f"{path}: note already exists")
        self.name = name
        self.path = path


@dataclass
class NewNoteTemplateContext:
    """Values expanded in the templates of a new note."""

    id: str = ""
    title: str = ""
    content: str = ""
    dir: str = ""
    filename: str = ""
    filename_stem: str = ""
    extra: dict[str, str] = field(default_factory=dict)
    now: datetime | None = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class NewNoteTask:
    """Generates the path and content of a new note, and writes it."""

    dir: Dir
    title: str
    content: str
    date: datetime | None
    extra: dict[str, str]
    env: dict[str, str]
    fs: FileStorage
    filename_template: str
    body_template_path: str | None
    templates: TemplateLoader
    gen_id: IDGenerator
    dry_run: bool = False

    def execute(self) -> tuple[str, str]:
        """Create the note; return its path and content."""
        filename_template = self.templates.load_template(self.filename_template)

        content_template: Template = NullTemplate()
        if self.body_template_path:
            content_template = self.templates.load_template_at(self.body_template_path)

        context = NewNoteTemplateContext(
            title=self.title,
            content=self.content,
            dir=self.dir.name,
            extra=self.extra,
            now=self.date,
            env=self.env,
        )
        path, context = self.generate_path(context, filename_template)
        content = content_template.render(context)

        if not self.dry_run:
            self.fs.write(path, content.encode("utf-8"))
        return path, content

    def generate_path(
        self, context: NewNoteTemplateContext, filename_template: Template
    ) -> tuple[str, NewNoteTemplateContext]:
        """Find a free path for the note, generating new IDs as needed."""
        filename = ""
        path = ""
        for _ in range(_MAX_ATTEMPTS):
            context = dataclasses.replace(context, id=self.gen_id())
            filename = filename_template.render(context)
            path = _join(self.dir.path, filename)
            if not self.fs.file_exists(path):
                context = dataclasses.replace(
                    context, filename=_base(path), filename_stem=filename_stem(path)
                )
                return path, context
        raise NoteExistsError(name=_join(self.dir.name, filename), path=path)