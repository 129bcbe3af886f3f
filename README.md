# zkcore

The core model of a plain-text Markdown notebook: reading its TOML
configuration, creating new notes from templates, formatting links between
notes and formatting notes and tags for display.

The package holds no storage, template engine or index of its own. A
notebook is wired to them through small interfaces you implement:

- `FileStorage` (in `zkcore.config`) for file system access,
- `TemplateLoader` and `Template` (in `zkcore.template`) for rendering,
- `NoteIndex` (in `zkcore.note_index`) for persisting and querying notes,
- `NoteContentParser` (in `zkcore.note_parse`) for splitting note content
  into title, lead, body, tags, links and metadata.

## Installation

```
pip install .
```

Python 3.11 or later is required. The package has no third-party
dependencies.

## Configuration

A notebook is configured with a TOML file at `.zk/config.toml`. Parse it on
top of the defaults from `new_default_config()`:

```python
from zkcore.config import new_default_config, parse_config

config = parse_config(
    b'[note]\nlanguage = "fr"\n[format.markdown]\nlink-format = "wiki"\n',
    ".zk/config.toml",
    new_default_config(),
    False,
)
config.note.lang                          # "fr"
config.format.markdown.link_encode_path   # False: only markdown links are encoded by default
```

`open_config(path, parent_config, fs, is_global)` does the same from a file
read through a `FileStorage`, and returns `parent_config` unchanged when the
file does not exist. Setting `notebook.dir` is only accepted when
`is_global` is true.

Groups let directories override the `[note]` and `[extra]` settings:

```python
config.group_name_for_path("journal/daily/2024-01-01.md")
config.group_config_named("journal")
```

Group paths are globs (`*`, `?`, `[...]`, `{a,b}`, and `**` spanning
directories); `glob_match(pattern, path)` exposes the matcher. An invalid
file, an unknown diagnostic severity or an unknown group name raises
`ConfigError`.

## Sorting and matching

```python
from zkcore.note import note_sorters_from_strings, match_strategy_from_string
from zkcore.collection import collection_sorters_from_strings

note_sorters_from_strings(["created+", "title"])   # last term first
match_strategy_from_string("re")                   # MatchStrategy.RE
collection_sorters_from_strings(["nc"])
```

A `+` or `-` suffix forces ascending or descending order. Unknown terms
raise `ValueError`.

## Links

```python
from zkcore.config import MarkdownConfig
from zkcore.link_format import LinkFormatterContext, new_link_formatter
from zkcore.template import NullTemplateLoader

formatter = new_link_formatter(
    MarkdownConfig(link_format="markdown", link_encode_path=True, link_drop_extension=True),
    NullTemplateLoader(),
)
formatter(LinkFormatterContext(rel_path="path/to note.md", title="A subject"))
# "[A subject](path/to%20note)"
```

A `link_format` of `"wiki"` gives `[[path]]` links; any other value is
loaded as a template and rendered with the `LinkFormatterContext`.

## Styling and templates

`zkcore.style` defines the `Style` rules and the `NullStyler`, `TagStyler`
and `ProxyStyler` stylers. `zkcore.template` has `TemplateFunc` to use a
plain function as a template, `NullTemplate` and `NullTemplateLoader` which
render empty strings, and `LazyString`, a string computed on first use.

## Notebooks

`Notebook` (in `zkcore.notebook`) ties a configuration and a
`NotebookPorts` together to:

- create notes with `new_note(NewNoteOpts(...))`, trying up to 50 generated
  IDs before raising `NoteExistsError`,
- find notes through the index (`find_notes`, `find_note`, `find_by_href`,
  `find_links_between_notes`, `find_collections`),
- resolve directories (`dir_at`, `require_dir_at`, `rel_path`),
- build formatters (`new_note_formatter`, `new_collection_formatter`,
  `new_link_formatter`),
- parse note files (`parse_note_at`, `parse_note_with_content`).

`NotebookStore` (in `zkcore.notebook_store`) finds the notebook containing a
path by looking for a `.zk` directory upwards (`open`), caching opened
notebooks, and raises `NotebookNotFoundError` when there is none. `init`
writes `.zk/config.toml`, rendered from a built-in template with the
`InitOpts`, and `.zk/templates/default.md`, then opens the new notebook; it
raises `ValueError` if a notebook already exists there.

## What the package does not do

- It has no command-line interface.
- It has no template engine: every template, including the default
  configuration written by `NotebookStore.init`, is rendered by the
  `TemplateLoader` you provide.
- It has no random ID generator; `NotebookPorts.id_generator_factory` must
  supply one.
- It has no Markdown content parser and no index storage. `NoteIndex`,
  `NoteIndexOpts` and `NoteIndexingStats` describe what an index offers,
  but there is no routine here that walks a notebook and indexes its files.

## Tests

```
pip install .[test]
pytest
```