"""Retrieval and creation of notebooks."""

from __future__ import annotations

import copy
import posixpath
from dataclasses import dataclass
from typing import Callable

from zkcore.config import Config, FileStorage, open_config
from zkcore.notebook import Notebook
from zkcore.template import TemplateLoader

NotebookFactory = Callable[[str, Config], Notebook]

_CONFIG_PATH = ".zk/config.toml"
_DEFAULT_TEMPLATE_PATH = ".zk/templates/default.md"


class NotebookNotFoundError(Exception):
    """Raised when no notebook is found at a path or in its parents."""

    def __init__(self, path: str) -> None:
        super().__init__(f"no notebook found in {path} or a parent directory")
        self.path = path


@dataclass
class InitOpts:
    """User preferences when creating a new notebook."""

    wiki_links: bool = False
    hashtags: bool = False
    colon_tags: bool = False
    multiword_tags: bool = False


def new_default_init_opts() -> InitOpts:
    """InitOpts with the default values."""
    return InitOpts(wiki_links=True, hashtags=True, colon_tags=False, multiword_tags=False)


@dataclass
class NotebookStorePorts:
    """Implementations of the services a notebook store relies on."""

    notebook_factory: NotebookFactory
    template_loader: TemplateLoader
    fs: FileStorage


class NotebookStore:
    """Opens existing notebooks and creates new ones."""

    def __init__(self, config: Config, ports: NotebookStorePorts) -> None:
        self._config = config
        self._notebook_factory = ports.notebook_factory
        self._template_loader = ports.template_loader
        self._fs = ports.fs
        self._notebooks: dict[str, Notebook] = {}

    def open(self, path: str) -> Notebook:
        """Notebook containing the given path; opened notebooks are cached."""
        path = self._fs.canonical(path)
        cached = self._cached_notebook_at(path)
        if cached is not None:
            return cached

        try:
            root = self._locate_notebook(self._fs.abs(path))
            config = open_config(
                posixpath.join(root, _CONFIG_PATH),
                copy.deepcopy(self._config),
                self._fs,
                False,
            )
            notebook = self._notebook_factory(root, config)
        except Exception as err:
            err.add_note("failed to open notebook")
            raise
        self._notebooks[root] = notebook
        return notebook

    def _cached_notebook_at(self, path: str) -> Notebook | None:
        try:
            path = self._fs.abs(path)
        except (ValueError, OSError):
            return None
        for root, notebook in self._notebooks.items():
            try:
                if self._fs.is_descendant_of(root, path):
                    return notebook
            except (ValueError, OSError):
                continue
        return None

    def init(self, path: str, options: InitOpts) -> Notebook:
        """Create a new notebook at path and open it."""
        path = self._fs.abs(path)
        try:
            existing = self._locate_notebook(path)
        except (NotebookNotFoundError, OSError):
            existing = None
        if existing is not None:
            raise ValueError(f"a notebook already exists in {existing}")

        config = self._template_loader.load_template(_DEFAULT_CONFIG).render(options)
        self._fs.write(posixpath.join(path, _CONFIG_PATH), config.encode("utf-8"))
        self._fs.write(
            posixpath.join(path, _DEFAULT_TEMPLATE_PATH), _DEFAULT_TEMPLATE.encode("utf-8")
        )
        return self.open(path)

    def _locate_notebook(self, path: str) -> str:
        if not posixpath.isabs(path):
            raise ValueError("absolute path expected")
        current = path
        while current not in ("/", "."):
            if self._fs.dir_exists(posixpath.join(current, ".zk")):
                return current
            current = posixpath.dirname(current)
        raise NotebookNotFoundError(path)


_DEFAULT_TEMPLATE = "# {{title}}\n\n{{content}}\n"

_DEFAULT_CONFIG = r"""# Notebook settings.
# Commented entries show the built-in values; remove the leading # to change one.

[note]
# Language of the notes, used for slugs and dates.
#language = "en"
# Title given to a new note when none is passed on the command line.
#default-title = "Untitled"
# Filename template for new notes, extension excluded.
#filename = "\{{id}}"
# Extension of the note files.
#extension = "md"
# Body template of new notes, looked up in .zk/templates/ unless absolute.
template = "default.md"
# Globs of paths skipped by the indexer.
#exclude = ["drafts/*"]
# Random identifiers: charset (letters, numbers, alphanum, hex or any string),
# length and case (lower, upper or mixed).
#id-charset = "alphanum"
#id-length = 4
#id-case = "lower"

[extra]
# Free-form values reachable from templates as \{{extra.<key>}}.
#key = "value"

# Settings of [note] and [extra] can be overridden per group of directories.
# Without `paths`, the group name is taken as its single directory.
#[group."<NAME>"]
#paths = ["<DIR>"]
#[group."<NAME>".note]
#filename = "\{{format-date now}}"

[format.markdown]
# Link style: "wiki", "markdown" or a custom template.
{{#if WikiLinks}}
link-format = "wiki"
{{else}}
#link-format = "wiki"
{{/if}}
# Percent-encode link paths (on by default for markdown links only).
#link-encode-path = true
# Drop the file extension from link paths.
#link-drop-extension = true
{{#if Hashtags}}
hashtags = true
{{else}}
hashtags = false
{{/if}}
{{#if ColonTags}}
colon-tags = true
{{else}}
colon-tags = false
{{/if}}
# Multi-word tags need hashtags to be enabled.
{{#if MultiwordTags}}
multiword-tags = true
{{else}}
multiword-tags = false
{{/if}}

[tool]
# Editor for notes; falls back on the EDITOR or VISUAL variables.
#editor = "vim"
# Pager for long output; an empty string turns paging off.
#pager = "less -FIRX"
# Preview command in interactive mode; an empty string turns it off.
#fzf-preview = "cat {-1}"

[lsp]

[lsp.diagnostics]
# Severity of each diagnostic: none, hint, info, warning or error.
#wiki-title = "hint"
dead-link = "error"

[lsp.completion]
#note-label = "\{{title-or-path}}"
#note-filter-text = "\{{title}} \{{path}}"
#note-detail = "\{{filename-stem}}"

[filter]
# Named sets of filtering options, e.g.:
#recents = "--sort created- --created-after 'last two weeks'"

[alias]
# Custom commands run through the shell; $@ stands for the given arguments.
#ls = "zk list $@"
#editlast = "zk edit --limit 1 --sort modified- $@"
"""