"""User configuration of a notebook, read from TOML files."""

from __future__ import annotations

import copy
import os
import posixpath
import re
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from functools import lru_cache
from typing import Any

from zkcore.note import (
    CHARSET_ALPHANUM,
    CHARSET_HEX,
    CHARSET_LETTERS,
    CHARSET_NUMBERS,
    Case,
    IDOptions,
)


class ConfigError(ValueError):
    """Raised when a configuration cannot be read or queried."""


class FileStorage(ABC):
    """Read and write access to a file storage."""

    @abstractmethod
    def working_dir(self) -> str:
        """Current working directory."""

    @abstractmethod
    def abs(self, path: str) -> str:
        """Make path absolute using the working directory, if needed."""

    @abstractmethod
    def rel(self, path: str) -> str:
        """Make an absolute path relative to the working directory."""

    @abstractmethod
    def canonical(self, path: str) -> str:
        """Canonical version of path, with symbolic links resolved."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Whether a file exists at path."""

    @abstractmethod
    def dir_exists(self, path: str) -> bool:
        """Whether a directory exists at path."""

    @abstractmethod
    def is_descendant_of(self, dir: str, path: str) -> bool:
        """Whether path is dir or one of its descendants."""

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Content of the file at path."""

    @abstractmethod
    def write(self, path: str, content: bytes) -> None:
        """Create or overwrite the file at path, creating parent directories."""


@dataclass
class NotebookConfig:
    """Configuration about the default notebook."""

    dir: str | None = None


@dataclass
class NoteConfig:
    """Settings used when generating new notes."""

    filename_template: str = ""
    extension: str = ""
    body_template_path: str | None = None
    lang: str = ""
    default_title: str = ""
    id_options: IDOptions = field(default_factory=IDOptions)
    exclude: list[str] = field(default_factory=list)


def _join(*elements: str) -> str:
    parts = [e for e in elements if e]
    if not parts:
        return ""
    return posixpath.normpath("/".join(parts))


@dataclass
class GroupConfig:
    """Settings for a given group of notes."""

    paths: list[str] = field(default_factory=list)
    note: NoteConfig = field(default_factory=NoteConfig)
    extra: dict[str, str] = field(default_factory=dict)

    def exclude_globs(self) -> list[str]:
        """Exclude globs of the group, relative to the notebook root."""
        if not self.paths:
            return list(self.note.exclude)
        return [_join(p, g) for p in self.paths for g in self.note.exclude]

    def clone(self) -> GroupConfig:
        """Independent copy of this group config."""
        return GroupConfig(
            paths=list(self.paths),
            note=copy.deepcopy(self.note),
            extra=dict(self.extra),
        )

    def _merge(self, table: dict[str, Any], name: str) -> GroupConfig:
        res = self.clone()
        paths = _opt_str_list(table, "paths")
        if paths is not None:
            res.paths.extend(paths)
        else:
            # Without `paths`, the group name is used as its path.
            res.paths.append(name)
        _apply_note_table(res.note, _table(table, "note"), expand_template=False)
        res.extra.update(_str_map(table, "extra"))
        return res


@dataclass
class MarkdownConfig:
    """Settings for Markdown documents."""

    hashtags: bool = False
    colon_tags: bool = False
    multiword_tags: bool = False
    link_format: str = ""
    link_encode_path: bool = False
    link_drop_extension: bool = False


@dataclass
class FormatConfig:
    """Settings for document formats."""

    markdown: MarkdownConfig = field(default_factory=MarkdownConfig)


@dataclass
class ToolConfig:
    """External tooling settings."""

    editor: str | None = None
    shell: str | None = None
    pager: str | None = None
    fzf_preview: str | None = None
    fzf_line: str | None = None
    fzf_options: str | None = None
    fzf_bind_new: str | None = None


@dataclass
class LSPCompletionTemplates:
    """Completion templates for one kind of completion item."""

    label: str | None = None
    filter_text: str | None = None
    detail: str | None = None


@dataclass
class LSPCompletionConfig:
    """LSP auto-completion settings."""

    note: LSPCompletionTemplates = field(default_factory=LSPCompletionTemplates)
    use_additional_text_edits: bool | None = None


class LSPDiagnosticSeverity(IntEnum):
    """Severity of an LSP diagnostic."""

    NONE = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    HINT = 4


@dataclass
class LSPDiagnosticConfig:
    """LSP diagnostics settings."""

    wiki_title: LSPDiagnosticSeverity = LSPDiagnosticSeverity.NONE
    dead_link: LSPDiagnosticSeverity = LSPDiagnosticSeverity.NONE


@dataclass
class LSPConfig:
    """Language Server Protocol settings."""

    completion: LSPCompletionConfig = field(default_factory=LSPCompletionConfig)
    diagnostics: LSPDiagnosticConfig = field(default_factory=LSPDiagnosticConfig)


@dataclass
class Config:
    """The user configuration."""

    notebook: NotebookConfig = field(default_factory=NotebookConfig)
    note: NoteConfig = field(default_factory=NoteConfig)
    groups: dict[str, GroupConfig] = field(default_factory=dict)
    format: FormatConfig = field(default_factory=FormatConfig)
    tool: ToolConfig = field(default_factory=ToolConfig)
    lsp: LSPConfig = field(default_factory=LSPConfig)
    filters: dict[str, str] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    extra: dict[str, str] = field(default_factory=dict)

    def root_group_config(self) -> GroupConfig:
        """Group config of the notebook root and its descendants."""
        return GroupConfig(paths=[], note=copy.deepcopy(self.note), extra=dict(self.extra))

    def group_config_for_path(self, path: str) -> GroupConfig:
        """Group config matching path, falling back on the root group config."""
        return self.group_config_named(self.group_name_for_path(path))

    def group_config_named(self, name: str) -> GroupConfig:
        """Group config with the given name; an empty name is the root group."""
        if not name:
            return self.root_group_config()
        try:
            return self.groups[name]
        except KeyError:
            raise ConfigError(f"no group named `{name}` found in the config") from None

    def group_name_for_path(self, path: str) -> str:
        """Name of the group matching path, or an empty string."""
        longest_match = ""
        matched_name = ""
        for name, group in self.groups.items():
            for group_path in group.paths:
                try:
                    matches = glob_match(group_path, path)
                except ValueError as err:
                    raise ConfigError(
                        f"failed to match group {name} to {path}: {err}"
                    ) from err
                if matches:
                    return name
                if path.startswith(group_path + "/") and len(group_path) > len(longest_match):
                    longest_match = group_path
                    matched_name = name
        return matched_name


def new_default_config() -> Config:
    """Config with the default settings."""
    return Config(
        notebook=NotebookConfig(dir=None),
        note=NoteConfig(
            filename_template="{{id}}",
            extension="md",
            body_template_path=None,
            lang="en",
            default_title="Untitled",
            id_options=IDOptions(length=4, charset=CHARSET_ALPHANUM, case=Case.LOWER),
            exclude=[],
        ),
        groups={},
        format=FormatConfig(
            markdown=MarkdownConfig(
                hashtags=True,
                colon_tags=False,
                multiword_tags=False,
                link_format="markdown",
                link_encode_path=True,
                link_drop_extension=True,
            )
        ),
        lsp=LSPConfig(
            completion=LSPCompletionConfig(note=LSPCompletionTemplates()),
            diagnostics=LSPDiagnosticConfig(
                wiki_title=LSPDiagnosticSeverity.NONE,
                dead_link=LSPDiagnosticSeverity.ERROR,
            ),
        ),
        filters={},
        aliases={},
        extra={},
    )


# Glob matching, with `**` spanning directories.


def glob_match(pattern: str, path: str) -> bool:
    """Whether path matches the glob pattern; raise ValueError on a bad pattern."""
    return re.fullmatch(_glob_to_regex(pattern), path, re.DOTALL) is not None


def _bad_pattern(pattern: str) -> ValueError:
    return ValueError(f"syntax error in pattern: {pattern}")


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> str:
    out: list[str] = []
    n = len(pattern)
    i = 0
    while i < n:
        c = pattern[i]
        at_component_start = i == 0 or pattern[i - 1] == "/"
        if c == "/" and pattern[i + 1 :] == "**":
            out.append("(?:/.*)?")
            break
        if at_component_start and pattern.startswith("**", i):
            end = i + 2
            if end == n:
                out.append(".*")
                break
            if pattern[end] == "/":
                out.append("(?:.*/)?")
                i = end + 1
                continue
        if c == "*":
            while i < n and pattern[i] == "*":
                i += 1
            out.append("[^/]*")
            continue
        if c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            regex, i = _parse_class(pattern, i)
            out.append(regex)
        elif c == "{":
            regex, i = _parse_alternatives(pattern, i)
            out.append(regex)
        elif c == "\\":
            if i + 1 >= n:
                raise _bad_pattern(pattern)
            out.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            out.append(re.escape(c))
            i += 1
    return "".join(out)


def _parse_class(pattern: str, i: int) -> tuple[str, int]:
    n = len(pattern)
    j = i + 1
    negate = False
    if j < n and pattern[j] in "!^":
        negate = True
        j += 1
    items: list[str] = []
    while True:
        if j >= n:
            raise _bad_pattern(pattern)
        ch = pattern[j]
        if ch == "]":
            break
        if ch == "\\":
            j += 1
            if j >= n:
                raise _bad_pattern(pattern)
            items.append(re.escape(pattern[j]))
        elif ch == "-" and items and j + 1 < n and pattern[j + 1] != "]":
            items.append("-")
        else:
            items.append(re.escape(ch))
        j += 1
    if not items:
        raise _bad_pattern(pattern)
    body = "".join(items)
    regex = f"[^/{body}]" if negate else f"(?!/)[{body}]"
    return regex, j + 1


def _parse_alternatives(pattern: str, i: int) -> tuple[str, int]:
    n = len(pattern)
    depth = 0
    j = i + 1
    start = j
    alternatives: list[str] = []
    while j < n:
        ch = pattern[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                alternatives.append(pattern[start:j])
                break
            depth -= 1
        elif ch == "," and depth == 0:
            alternatives.append(pattern[start:j])
            start = j + 1
        j += 1
    else:
        raise _bad_pattern(pattern)
    regex = "(?:" + "|".join(_glob_to_regex(alt) for alt in alternatives) + ")"
    return regex, j + 1


# Reading TOML configuration.


def open_config(path: str, parent_config: Config, fs: FileStorage, is_global: bool) -> Config:
    """Read the config file at path, inheriting from parent_config; a missing file is fine."""
    try:
        exists = fs.file_exists(path)
    except OSError:
        exists = True
    if not exists:
        return parent_config

    try:
        content = fs.read(path)
    except OSError as err:
        raise ConfigError(f"failed to open config file at {path}: {err}") from err
    return parse_config(content, path, parent_config, is_global)


def parse_config(
    content: bytes | str, path: str, parent_config: Config, is_global: bool
) -> Config:
    """Build a Config from its TOML representation, inheriting from parent_config."""
    try:
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        data = tomllib.loads(text)
        return _apply_toml(data, copy.deepcopy(parent_config), is_global)
    except ValueError as err:
        raise ConfigError(f"failed to read config: {err}") from err


def _apply_toml(data: dict[str, Any], config: Config, is_global: bool) -> Config:
    notebook_dir = _opt_str(_table(data, "notebook"), "dir")
    if notebook_dir:
        if not is_global:
            raise ValueError("notebook.dir should not be set on local configuration")
        config.notebook.dir = notebook_dir

    _apply_note_table(config.note, _table(data, "note"), expand_template=True)
    config.extra.update(_str_map(data, "extra"))

    for name, group_table in _table(data, "group").items():
        if not isinstance(group_table, dict):
            raise ValueError(f"group.{name}: expected a table")
        parent = config.groups[name] if name in config.groups else config.root_group_config()
        config.groups[name] = parent._merge(group_table, name)

    markdown = config.format.markdown
    md_table = _table(_table(data, "format"), "markdown")
    for key, attr in (
        ("hashtags", "hashtags"),
        ("colon-tags", "colon_tags"),
        ("multiword-tags", "multiword_tags"),
        ("link-drop-extension", "link_drop_extension"),
    ):
        value = _opt_bool(md_table, key)
        if value is not None:
            setattr(markdown, attr, value)
    link_format = _opt_str(md_table, "link-format")
    if link_format == "":
        link_format = "markdown"
    if link_format is not None:
        markdown.link_format = link_format
    encode_path = _opt_bool(md_table, "link-encode-path")
    if encode_path is not None:
        markdown.link_encode_path = encode_path
    elif link_format is not None:
        markdown.link_encode_path = link_format == "markdown"

    tool = config.tool
    tool_table = _table(data, "tool")
    for key, attr in (
        ("editor", "editor"),
        ("shell", "shell"),
        ("fzf-line", "fzf_line"),
        ("fzf-options", "fzf_options"),
    ):
        value = _opt_str(tool_table, key)
        if value is not None:
            setattr(tool, attr, value or None)
    # These may be set to an empty string on purpose, e.g. to disable the pager.
    for key, attr in (
        ("pager", "pager"),
        ("fzf-preview", "fzf_preview"),
        ("fzf-bind-new", "fzf_bind_new"),
    ):
        value = _opt_str(tool_table, key)
        if value is not None:
            setattr(tool, attr, value)

    lsp_table = _table(data, "lsp")
    completion = _table(lsp_table, "completion")
    templates = config.lsp.completion.note
    for key, attr in (
        ("note-label", "label"),
        ("note-filter-text", "filter_text"),
        ("note-detail", "detail"),
    ):
        value = _opt_str(completion, key)
        if value is not None:
            setattr(templates, attr, value or None)
    config.lsp.completion.use_additional_text_edits = _opt_bool(
        completion, "use-additional-text-edits"
    )

    diagnostics = _table(lsp_table, "diagnostics")
    wiki_title = _opt_str(diagnostics, "wiki-title")
    if wiki_title is not None:
        config.lsp.diagnostics.wiki_title = _severity_from_string(wiki_title)
    dead_link = _opt_str(diagnostics, "dead-link")
    if dead_link is not None:
        config.lsp.diagnostics.dead_link = _severity_from_string(dead_link)

    config.filters.update(_str_map(data, "filter"))
    config.aliases.update(_str_map(data, "alias"))
    return config


def _apply_note_table(note: NoteConfig, table: dict[str, Any], expand_template: bool) -> None:
    if filename := _opt_str(table, "filename"):
        note.filename_template = filename
    if extension := _opt_str(table, "extension"):
        note.extension = extension
    if template := _opt_str(table, "template"):
        note.body_template_path = os.path.expanduser(template) if expand_template else template
    if id_length := _opt_int(table, "id-length"):
        note.id_options.length = id_length
    if id_charset := _opt_str(table, "id-charset"):
        note.id_options.charset = _charset_from_string(id_charset)
    if id_case := _opt_str(table, "id-case"):
        note.id_options.case = _case_from_string(id_case)
    if lang := _opt_str(table, "language"):
        note.lang = lang
    if default_title := _opt_str(table, "default-title"):
        note.default_title = default_title
    note.exclude.extend(_opt_str_list(table, "exclude") or [])
    # `ignore` is a legacy alias of `exclude`.
    note.exclude.extend(_opt_str_list(table, "ignore") or [])


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"{key}: expected a table")
    return value


def _opt_str(table: dict[str, Any], key: str) -> str | None:
    value = table.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key}: expected a string")
    return value


def _opt_bool(table: dict[str, Any], key: str) -> bool | None:
    value = table.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean")
    return value


def _opt_int(table: dict[str, Any], key: str) -> int | None:
    value = table.get(key)
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"{key}: expected an integer")
    return value


def _opt_str_list(table: dict[str, Any], key: str) -> list[str] | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key}: expected an array of strings")
    return list(value)


def _str_map(table: dict[str, Any], key: str) -> dict[str, str]:
    value = _table(table, key)
    for k, v in value.items():
        if not isinstance(v, str):
            raise ValueError(f"{key}.{k}: expected a string")
    return dict(value)


_CHARSETS = {
    "alphanum": CHARSET_ALPHANUM,
    "hex": CHARSET_HEX,
    "letters": CHARSET_LETTERS,
    "numbers": CHARSET_NUMBERS,
}


def _charset_from_string(charset: str) -> str:
    return _CHARSETS.get(charset, charset)


_CASES = {"lower": Case.LOWER, "upper": Case.UPPER, "mixed": Case.MIXED}


def _case_from_string(text: str) -> Case:
    return _CASES.get(text, Case.LOWER)


_SEVERITIES = {
    "": LSPDiagnosticSeverity.NONE,
    "none": LSPDiagnosticSeverity.NONE,
    "error": LSPDiagnosticSeverity.ERROR,
    "warning": LSPDiagnosticSeverity.WARNING,
    "info": LSPDiagnosticSeverity.INFO,
    "hint": LSPDiagnosticSeverity.HINT,
}


def _severity_from_string(text: str) -> LSPDiagnosticSeverity:
    try:
        return _SEVERITIES[text]
    except KeyError:
        raise ValueError(
            f"{text}: unknown LSP diagnostic severity - may be none, hint, info, warning or error"
        ) from None