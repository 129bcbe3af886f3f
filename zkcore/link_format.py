"""Generation of internal links between notes, following the user configuration."""

from __future__ import annotations

import dataclasses
import posixpath
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import quote

from zkcore.config import MarkdownConfig
from zkcore.note import drop_ext
from zkcore.template import TemplateLoader


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*elements: str) -> str:
    parts = [e for e in elements if e]
    return _clean("/".join(parts)) if parts else ""


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _rel(base: str, target: str) -> str:
    base_clean, target_clean = _clean(base), _clean(target)
    if base_clean.startswith("/") != target_clean.startswith("/"):
        raise ValueError(f"Rel: can't make {target} relative to {base}")
    return posixpath.relpath(target_clean, base_clean)


@dataclass
class NotebookPath:
    """Path of a file inside a notebook."""

    path: str
    base_path: str = ""
    working_dir: str = ""

    def filename(self) -> str:
        """Filename of the notebook file."""
        return _base(self.path)

    def abs_path(self) -> str:
        """Absolute path to the notebook file."""
        return _join(self.base_path, self.path)

    def path_rel_to_working_dir(self) -> str:
        """Path relative to the working dir, or to the notebook dir if it is unset."""
        if not self.working_dir:
            return self.path
        return _rel(self.working_dir, self.abs_path())


@dataclass
class LinkFormatterContext:
    """Metadata used to generate a link to a note."""

    filename: str = ""
    path: str = ""
    abs_path: str = ""
    rel_path: str = ""
    title: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


LinkFormatter = Callable[[LinkFormatterContext], str]


def new_link_formatter_context(
    path: NotebookPath, title: str, metadata: dict[str, Any]
) -> LinkFormatterContext:
    """Build the link context of the note at the given notebook path."""
    return LinkFormatterContext(
        filename=path.filename(),
        path=path.path,
        abs_path=path.abs_path(),
        rel_path=path.path_rel_to_working_dir(),
        title=title,
        metadata=metadata,
    )


def new_link_formatter(config: MarkdownConfig, template_loader: TemplateLoader) -> LinkFormatter:
    """Link formatter matching the configured link format."""
    if config.link_format in ("markdown", ""):
        return new_markdown_link_formatter(config, False)
    if config.link_format == "wiki":
        return new_wiki_link_formatter(config)
    return new_custom_link_formatter(config, template_loader)


def new_markdown_link_formatter(config: MarkdownConfig, only_href: bool) -> LinkFormatter:
    """Formatter producing Markdown links, or only their `(href)` part."""

    def format_link(context: LinkFormatterContext) -> str:
        path = _format_path(context.rel_path, config)
        if not config.link_encode_path:
            path = path.replace("\\", "\\\\").replace(")", "\\)")
        if only_href:
            return f"({path})"
        title = context.title.replace("\\", "\\\\").replace("]", "\\]")
        return f"[{title}]({path})"

    return format_link


def new_wiki_link_formatter(config: MarkdownConfig) -> LinkFormatter:
    """Formatter producing [[wiki links]]."""

    def format_link(context: LinkFormatterContext) -> str:
        path = _format_path(context.path, config)
        if not config.link_encode_path:
            path = path.replace("\\", "\\\\").replace("]]", "\\]]")
        return "[[" + path + "]]"

    return format_link


def new_custom_link_formatter(
    config: MarkdownConfig, template_loader: TemplateLoader
) -> LinkFormatter:
    """Formatter rendering links with the template given as link format."""
    try:
        template = template_loader.load_template(config.link_format)
    except Exception as err:
        err.add_note(f"failed to render custom link with format: {config.link_format}")
        raise

    def format_link(context: LinkFormatterContext) -> str:
        formatted = dataclasses.replace(
            context,
            filename=_format_path(context.filename, config),
            path=_format_path(context.path, config),
            rel_path=_format_path(context.rel_path, config),
            abs_path=_format_path(context.abs_path, config),
        )
        return template.render(formatted)

    return format_link


def _format_path(path: str, config: MarkdownConfig) -> str:
    if config.link_drop_extension:
        path = drop_ext(path)
    if config.link_encode_path:
        path = quote(path, safe="$&+,:;=@/")
    return path