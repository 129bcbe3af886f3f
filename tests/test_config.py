import re

import pytest

from zkcore.config import (
    Config,
    ConfigError,
    FileStorage,
    FormatConfig,
    GroupConfig,
    LSPCompletionConfig,
    LSPCompletionTemplates,
    LSPConfig,
    LSPDiagnosticConfig,
    LSPDiagnosticSeverity,
    MarkdownConfig,
    NotebookConfig,
    NoteConfig,
    ToolConfig,
    glob_match,
    new_default_config,
    open_config,
    parse_config,
)
from zkcore.note import (
    CHARSET_ALPHANUM,
    CHARSET_HEX,
    CHARSET_LETTERS,
    CHARSET_NUMBERS,
    Case,
    IDOptions,
)


class MemoryStorage(FileStorage):
    def __init__(self, files=None):
        self.files = dict(files or {})

    def working_dir(self):
        return "/"

    def abs(self, path):
        return path

    def rel(self, path):
        return path

    def canonical(self, path):
        return path

    def file_exists(self, path):
        return path in self.files

    def dir_exists(self, path):
        return False

    def is_descendant_of(self, dir, path):
        return path.startswith(dir)

    def read(self, path):
        return self.files[path].encode()

    def write(self, path, content):
        self.files[path] = content.decode()


def parse(text, is_global=False):
    return parse_config(text.encode(), ".zk/config.toml", new_default_config(), is_global)


def test_parse_default_config():
    conf = parse_config(b"", ".zk/config.toml", new_default_config(), True)
    assert conf == Config(
        notebook=NotebookConfig(dir=None),
        note=NoteConfig(
            filename_template="{{id}}",
            extension="md",
            body_template_path=None,
            id_options=IDOptions(length=4, charset=CHARSET_ALPHANUM, case=Case.LOWER),
            default_title="Untitled",
            lang="en",
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
        tool=ToolConfig(),
        lsp=LSPConfig(
            diagnostics=LSPDiagnosticConfig(
                wiki_title=LSPDiagnosticSeverity.NONE,
                dead_link=LSPDiagnosticSeverity.ERROR,
            )
        ),
        filters={},
        aliases={},
        extra={},
    )


def test_parse_invalid_config():
    with pytest.raises(ConfigError, match="failed to read config"):
        parse(";")


COMPLETE = """
    # Comment

    [notebook]
    dir = "~/notebook"

    [note]
    filename = "{{id}}.note"
    extension = "txt"
    template = "default.note"
    language = "fr"
    default-title = "Sans titre"
    id-charset = "alphanum"
    id-length = 4
    id-case = "lower"
    exclude = ["ignored", ".git"]

    [format.markdown]
    hashtags = false
    colon-tags = true
    multiword-tags = true
    link-format = "custom"
    link-encode-path = true
    link-drop-extension = false

    [tool]
    editor = "vim"
    shell = "/bin/bash"
    pager = "less"
    fzf-preview = "bat {1}"
    fzf-line = "{{title}}"
    fzf-options = "--border --height 40%"
    fzf-bind-new = "Ctrl-C"

    [extra]
    hello = "world"
    salut = "le monde"

    [filter]
    recents = "--created-after '2 weeks ago'"
    journal = "journal --sort created"

    [alias]
    ls = "zk list $@"
    ed = "zk edit $@"

    [group.log]
    paths = ["journal/daily", "journal/weekly"]

    [group.log.note]
    filename = "{{date}}.md"
    extension = "note"
    template = "log.md"
    language = "de"
    default-title = "Ohne Titel"
    id-charset = "letters"
    id-length = 8
    id-case = "mixed"
    exclude = ["new-ignored"]

    [group.log.extra]
    log-ext = "value"

    [group.ref.note]
    filename = "{{slug title}}.md"

    [group."without path"]
    paths = []

    [lsp.completion]
    use-additional-text-edits = true
    note-label = "notelabel"
    note-filter-text = "notefiltertext"
    note-detail = "notedetail"

    [lsp.diagnostics]
    wiki-title = "hint"
    dead-link = "none"
"""


def _root_note(filename="{{id}}.note"):
    return NoteConfig(
        filename_template=filename,
        extension="txt",
        body_template_path="default.note",
        id_options=IDOptions(length=4, charset=CHARSET_ALPHANUM, case=Case.LOWER),
        lang="fr",
        default_title="Sans titre",
        exclude=["ignored", ".git"],
    )


def test_parse_complete():
    conf = parse(COMPLETE, is_global=True)
    assert conf == Config(
        notebook=NotebookConfig(dir="~/notebook"),
        note=_root_note(),
        groups={
            "log": GroupConfig(
                paths=["journal/daily", "journal/weekly"],
                note=NoteConfig(
                    filename_template="{{date}}.md",
                    extension="note",
                    body_template_path="log.md",
                    id_options=IDOptions(length=8, charset=CHARSET_LETTERS, case=Case.MIXED),
                    lang="de",
                    default_title="Ohne Titel",
                    exclude=["ignored", ".git", "new-ignored"],
                ),
                extra={"hello": "world", "salut": "le monde", "log-ext": "value"},
            ),
            "ref": GroupConfig(
                paths=["ref"],
                note=_root_note("{{slug title}}.md"),
                extra={"hello": "world", "salut": "le monde"},
            ),
            "without path": GroupConfig(
                paths=[],
                note=_root_note(),
                extra={"hello": "world", "salut": "le monde"},
            ),
        },
        format=FormatConfig(
            markdown=MarkdownConfig(
                hashtags=False,
                colon_tags=True,
                multiword_tags=True,
                link_format="custom",
                link_encode_path=True,
                link_drop_extension=False,
            )
        ),
        tool=ToolConfig(
            editor="vim",
            shell="/bin/bash",
            pager="less",
            fzf_preview="bat {1}",
            fzf_line="{{title}}",
            fzf_options="--border --height 40%",
            fzf_bind_new="Ctrl-C",
        ),
        lsp=LSPConfig(
            completion=LSPCompletionConfig(
                note=LSPCompletionTemplates(
                    label="notelabel",
                    filter_text="notefiltertext",
                    detail="notedetail",
                ),
                use_additional_text_edits=True,
            ),
            diagnostics=LSPDiagnosticConfig(
                wiki_title=LSPDiagnosticSeverity.HINT,
                dead_link=LSPDiagnosticSeverity.NONE,
            ),
        ),
        filters={
            "recents": "--created-after '2 weeks ago'",
            "journal": "journal --sort created",
        },
        aliases={"ls": "zk list $@", "ed": "zk edit $@"},
        extra={"hello": "world", "salut": "le monde"},
    )


@pytest.fixture
def grouped_config():
    return Config(
        groups={
            "parent": GroupConfig(paths=["dir1"]),
            "child": GroupConfig(paths=["dir1/dir2"]),
            "other": GroupConfig(paths=["other"]),
            "star": GroupConfig(paths=["star/star*.md"]),
            "false positive for doublestar": GroupConfig(paths=["*/doublestar.md"]),
            "doublestar": GroupConfig(paths=["**/doublestar.md"]),
        }
    )


@pytest.mark.parametrize(
    "path, expected",
    [
        ("dir1/dir2/note.md", "child"),
        ("dir1/note.md", "parent"),
        ("other/note.md", "other"),
        ("star/start.md", "star"),
        ("star/star.md", "star"),
        ("double/star/doublestar.md", "doublestar"),
        ("unknown/note.md", ""),
    ],
)
def test_group_name_for_path_applies_deepest_match(grouped_config, path, expected):
    assert grouped_config.group_name_for_path(path) == expected


def test_group_config_for_path_falls_back_on_root():
    conf = parse('[note]\nextension = "txt"\n[group.log]\n')
    assert conf.group_config_for_path("log/a.md").paths == ["log"]
    root = conf.group_config_for_path("a.md")
    assert root.paths == []
    assert root.note.extension == "txt"


def test_group_config_named_unknown():
    with pytest.raises(ConfigError, match="no group named `group-a` found in the config"):
        new_default_config().group_config_named("group-a")


def test_group_name_for_path_bad_pattern():
    conf = Config(groups={"bad": GroupConfig(paths=["[abc"])})
    with pytest.raises(ConfigError, match="failed to match group bad to x"):
        conf.group_name_for_path("x")


def test_parse_merges_group_config():
    conf = parse(
        """
        [note]
        filename = "root-filename"
        extension = "txt"
        template = "root-template"
        language = "fr"
        default-title = "Sans titre"
        id-charset = "letters"
        id-length = 42
        id-case = "upper"
        exclude = ["ignored", ".git"]

        [extra]
        hello = "world"
        salut = "le monde"

        [group.log.note]
        filename = "log-filename"
        template = "log-template"
        id-charset = "numbers"
        id-length = 8
        id-case = "mixed"

        [group.log.extra]
        hello = "override"
        log-ext = "value"

        [group.inherited]
        """
    )
    root_note = NoteConfig(
        filename_template="root-filename",
        extension="txt",
        body_template_path="root-template",
        id_options=IDOptions(length=42, charset=CHARSET_LETTERS, case=Case.UPPER),
        lang="fr",
        default_title="Sans titre",
        exclude=["ignored", ".git"],
    )
    assert conf == Config(
        note=root_note,
        groups={
            "log": GroupConfig(
                paths=["log"],
                note=NoteConfig(
                    filename_template="log-filename",
                    extension="txt",
                    body_template_path="log-template",
                    id_options=IDOptions(length=8, charset=CHARSET_NUMBERS, case=Case.MIXED),
                    lang="fr",
                    default_title="Sans titre",
                    exclude=["ignored", ".git"],
                ),
                extra={"hello": "override", "salut": "le monde", "log-ext": "value"},
            ),
            "inherited": GroupConfig(
                paths=["inherited"],
                note=root_note,
                extra={"hello": "world", "salut": "le monde"},
            ),
        },
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
        extra={"hello": "world", "salut": "le monde"},
    )


def test_parse_preserves_properties_allowing_empty_values():
    conf = parse('[tool]\npager = ""\nfzf-preview = ""\n')
    assert conf.tool.pager == ""
    assert conf.tool.fzf_preview == ""


def test_parse_drops_empty_values_for_other_properties():
    conf = parse('[tool]\neditor = ""\n[lsp.completion]\nnote-label = ""\n')
    assert conf.tool.editor is None
    assert conf.lsp.completion.note.label is None


def test_parse_notebook():
    text = '[notebook]\ndir = "/home/user/folder"\n'
    assert parse(text, is_global=True).notebook.dir == "/home/user/folder"
    with pytest.raises(
        ConfigError,
        match=re.escape("notebook.dir should not be set on local configuration"),
    ):
        parse(text, is_global=False)


@pytest.mark.parametrize(
    "charset, expected",
    [
        ("alphanum", CHARSET_ALPHANUM),
        ("hex", CHARSET_HEX),
        ("letters", CHARSET_LETTERS),
        ("numbers", CHARSET_NUMBERS),
        ("HEX", "HEX"),
        ("custom", "custom"),
    ],
)
def test_parse_id_charset(charset, expected):
    conf = parse(f'[note]\nid-charset = "{charset}"\n')
    assert conf.note.id_options.charset == expected


@pytest.mark.parametrize(
    "letter_case, expected",
    [
        ("lower", Case.LOWER),
        ("upper", Case.UPPER),
        ("mixed", Case.MIXED),
        ("unknown", Case.LOWER),
    ],
)
def test_parse_id_case(letter_case, expected):
    conf = parse(f'[note]\nid-case = "{letter_case}"\n')
    assert conf.note.id_options.case == expected


@pytest.mark.parametrize(
    "link_format, expected",
    [("", True), ("markdown", True), ("wiki", False), ("custom", False)],
)
def test_parse_markdown_link_encode_path(link_format, expected):
    conf = parse(f'[format.markdown]\nlink-format = "{link_format}"\n')
    assert conf.format.markdown.link_encode_path is expected


def test_parse_empty_link_format_defaults_to_markdown():
    conf = parse('[format.markdown]\nlink-format = ""\n')
    assert conf.format.markdown.link_format == "markdown"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", LSPDiagnosticSeverity.NONE),
        ("none", LSPDiagnosticSeverity.NONE),
        ("error", LSPDiagnosticSeverity.ERROR),
        ("warning", LSPDiagnosticSeverity.WARNING),
        ("info", LSPDiagnosticSeverity.INFO),
        ("hint", LSPDiagnosticSeverity.HINT),
    ],
)
def test_parse_lsp_diagnostics_severity(value, expected):
    conf = parse(f'[lsp.diagnostics]\nwiki-title = "{value}"\ndead-link = "{value}"\n')
    assert conf.lsp.diagnostics.wiki_title == expected
    assert conf.lsp.diagnostics.dead_link == expected


def test_parse_lsp_diagnostics_unknown_severity():
    message = "foobar: unknown LSP diagnostic severity - may be none, hint, info, warning or error"
    with pytest.raises(ConfigError, match=re.escape(message)):
        parse('[lsp.diagnostics]\nwiki-title = "foobar"\n')


def test_parse_rejects_wrong_types():
    with pytest.raises(ConfigError, match="expected a string"):
        parse("[note]\nextension = 3\n")


def test_parse_does_not_modify_parent():
    parent = new_default_config()
    parse_config(b'[extra]\nkey = "value"\n[note]\nexclude = ["x"]\n', "", parent, False)
    assert parent.extra == {}
    assert parent.note.exclude == []


def test_parse_ignore_is_alias_of_exclude():
    conf = parse('[note]\nexclude = ["a"]\nignore = ["b"]\n')
    assert conf.note.exclude == ["a", "b"]


def test_group_config_exclude_globs():
    config = GroupConfig(paths=["path"], note=NoteConfig(exclude=[]))
    assert config.exclude_globs() == []

    config = GroupConfig(paths=[], note=NoteConfig(exclude=["ignored", ".git"]))
    assert config.exclude_globs() == ["ignored", ".git"]

    config = GroupConfig(paths=["log", "drafts"], note=NoteConfig(exclude=["ignored", "*.git"]))
    assert config.exclude_globs() == ["log/ignored", "log/*.git", "drafts/ignored", "drafts/*.git"]


def _clone_original():
    return GroupConfig(
        paths=["original"],
        note=NoteConfig(
            filename_template="{{id}}.note",
            extension="md",
            body_template_path="default.note",
            id_options=IDOptions(length=4, charset=CHARSET_ALPHANUM, case=Case.LOWER),
            lang="fr",
            default_title="Sans titre",
            exclude=["ignored", ".git"],
        ),
        extra={"hello": "world"},
    )


def test_group_config_clone():
    original = _clone_original()
    clone = original.clone()
    assert clone == original

    clone.paths.append("cloned")
    clone.note.filename_template = "modified"
    clone.note.extension = "txt"
    clone.note.body_template_path = "modified"
    clone.note.id_options.length = 41
    clone.note.id_options.charset = CHARSET_NUMBERS
    clone.note.id_options.case = Case.UPPER
    clone.note.lang = "de"
    clone.note.default_title = "Ohne Titel"
    clone.note.exclude.append("other-ignored")
    clone.extra["test"] = "modified"

    assert original == _clone_original()


@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("dir1", "dir1", True),
        ("dir1", "dir1/note.md", False),
        ("star/star*.md", "star/start.md", True),
        ("*/doublestar.md", "double/star/doublestar.md", False),
        ("**/doublestar.md", "double/star/doublestar.md", True),
        ("**/doublestar.md", "doublestar.md", True),
        ("a/**/b", "a/b", True),
        ("a/**/b", "a/x/y/b", True),
        ("a/**", "a/x/y", True),
        ("a/*", "a/x/y", False),
        ("note?.md", "note1.md", True),
        ("note?.md", "note/.md", False),
        ("[a-c].md", "b.md", True),
        ("[!a-c].md", "d.md", True),
        ("[!a-c].md", "a.md", False),
        ("{log,journal}/*.md", "journal/day.md", True),
        ("{log,journal}/*.md", "other/day.md", False),
        ("\\*.md", "*.md", True),
        ("\\*.md", "a.md", False),
    ],
)
def test_glob_match(pattern, path, expected):
    assert glob_match(pattern, path) is expected


@pytest.mark.parametrize("pattern", ["[abc", "{a,b", "abc\\", "[]"])
def test_glob_match_bad_pattern(pattern):
    with pytest.raises(ValueError, match="syntax error in pattern"):
        glob_match(pattern, "abc")


def test_open_config_missing_file_returns_parent():
    parent = new_default_config()
    assert open_config("/nb/.zk/config.toml", parent, MemoryStorage(), False) is parent


def test_open_config_reads_file():
    fs = MemoryStorage({"/nb/.zk/config.toml": '[note]\nlanguage = "de"\n'})
    conf = open_config("/nb/.zk/config.toml", new_default_config(), fs, False)
    assert conf.note.lang == "de"
    assert conf.note.extension == "md"


def test_open_config_invalid_content():
    fs = MemoryStorage({"/nb/.zk/config.toml": ";"})
    with pytest.raises(ConfigError, match="failed to read config"):
        open_config("/nb/.zk/config.toml", new_default_config(), fs, False)