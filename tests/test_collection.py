import pytest

from zkcore.collection import (
    Collection,
    CollectionFormatRenderContext,
    CollectionKind,
    CollectionSortField,
    CollectionSorter,
    collection_sorter_from_string,
    collection_sorters_from_strings,
    new_collection_formatter,
)
from zkcore.style import NullStyler
from zkcore.template import Template


class TemplateSpy(Template):
    def __init__(self, result):
        self.result = result
        self.contexts = []

    def styler(self):
        return NullStyler()

    def render(self, context):
        self.contexts.append(context)
        return self.result


@pytest.mark.parametrize(
    "text, field, ascending",
    [
        ("name", CollectionSortField.NAME, True),
        ("n", CollectionSortField.NAME, True),
        ("name-", CollectionSortField.NAME, False),
        ("note-count", CollectionSortField.NOTE_COUNT, False),
        ("nc", CollectionSortField.NOTE_COUNT, False),
        ("nc+", CollectionSortField.NOTE_COUNT, True),
    ],
)
def test_collection_sorter_from_string(text, field, ascending):
    assert collection_sorter_from_string(text) == CollectionSorter(field=field, ascending=ascending)


def test_collection_sorter_unknown_term():
    with pytest.raises(ValueError, match="foobar: unknown sorting term"):
        collection_sorter_from_string("foobar+")


def test_collection_sorters_are_parsed_in_reverse_order():
    assert collection_sorters_from_strings(["name", "nc+"]) == [
        CollectionSorter(CollectionSortField.NOTE_COUNT, True),
        CollectionSorter(CollectionSortField.NAME, True),
    ]


def test_collection_sorters_empty():
    assert collection_sorters_from_strings([]) == []


def test_collection_sorters_propagate_error():
    with pytest.raises(ValueError):
        collection_sorters_from_strings(["name", "unknown"])


def test_collection_formatter_renders_context():
    spy = TemplateSpy("rendered")
    formatter = new_collection_formatter(spy)
    result = formatter(Collection(id=3, kind=CollectionKind.TAG, name="work", note_count=5))
    assert result == "rendered"
    assert spy.contexts == [
        CollectionFormatRenderContext(id=3, kind=CollectionKind.TAG, name="work", note_count=5)
    ]