"""Unit tests for DeclarationWriter."""

import pytest

from shards.domain.enums import RelationType
from shards.store.inmemory import InMemoryDocumentStore
from shards.sync.writer import DeclarationWriter
from tests.factories import doc, note, shards_block

PARENT = doc("Parent.md")
CHILD = doc("Child.md")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        {"Parent.md": "", "Child.md": "", "a/Twin.md": "", "b/Twin.md": ""}
    )


@pytest.fixture
def writer(store: InMemoryDocumentStore) -> DeclarationWriter:
    return DeclarationWriter(store.resolve)


class TestFormatLine:
    def test_plain_and_labelled(self, writer: DeclarationWriter) -> None:
        assert writer.format_line(RelationType.PARENT, PARENT, CHILD) == "< Parent.md"
        assert writer.format_line(RelationType.CHILD, CHILD, PARENT, "Priority") == '> "Priority" Child.md'

    def test_ambiguous_name_uses_full_path(self, writer: DeclarationWriter) -> None:
        assert writer.format_line(RelationType.RELATED, doc("b/Twin.md"), PARENT) == "= b/Twin.md"
        assert writer.format_line(RelationType.RELATED, doc("a/Twin.md"), PARENT) == "= Twin.md"


class TestUpsert:
    """Tests for inserting and updating declarations."""

    def test_creates_block_at_end(self, writer: DeclarationWriter) -> None:
        text = writer.upsert("# Child\n", CHILD, RelationType.PARENT, PARENT)
        assert text == "# Child\n\n```shards\n< Parent.md\n```\n"

    def test_creates_block_in_empty_document(self, writer: DeclarationWriter) -> None:
        assert writer.upsert("", CHILD, RelationType.PARENT, PARENT) == "```shards\n< Parent.md\n```\n"

    def test_inserts_before_closing_fence_of_first_block(self, writer: DeclarationWriter) -> None:
        original = note("Child", "= Other") + "\n" + shards_block("# second")

        text = writer.upsert(original, CHILD, RelationType.PARENT, PARENT)

        assert text == "# Child\n\n```shards\n= Other\n< Parent.md\n```\n\n```shards\n# second\n```\n"

    def test_equivalent_line_is_left_alone(self, writer: DeclarationWriter) -> None:
        original = note("Child", "<   [[Parent]]")
        assert writer.upsert(original, CHILD, RelationType.PARENT, PARENT) == original

    def test_different_label_rewritten_in_place(self, writer: DeclarationWriter) -> None:
        original = note("Child", "= Other", '< "old" Parent.md')

        text = writer.upsert(original, CHILD, RelationType.PARENT, PARENT, "new")

        assert text == note("Child", "= Other", '< "new" Parent.md')

    def test_other_type_is_not_a_match(self, writer: DeclarationWriter) -> None:
        original = note("Child", "= Parent.md")

        text = writer.upsert(original, CHILD, RelationType.PARENT, PARENT)

        assert text == note("Child", "= Parent.md", "< Parent.md")

    def test_unterminated_block_gets_line_appended(self, writer: DeclarationWriter) -> None:
        text = writer.upsert("```shards\n= Other", CHILD, RelationType.PARENT, PARENT)
        assert text == "```shards\n= Other\n< Parent.md"


class TestRemove:
    """Tests for removing declarations."""

    def test_removes_structural_matches(self, writer: DeclarationWriter) -> None:
        original = note("Parent", "> [[Child]]", '> "x" Child.md', "= Child.md")

        text = writer.remove(original, PARENT, RelationType.CHILD, CHILD)

        assert text == note("Parent", "= Child.md")

    def test_no_match_returns_text_unchanged(self, writer: DeclarationWriter) -> None:
        original = note("Parent", "= Child.md")
        assert writer.remove(original, PARENT, RelationType.CHILD, CHILD) is original

    def test_unresolvable_target_matched_by_name(self, writer: DeclarationWriter) -> None:
        original = note("Parent", "> Gone")
        text = writer.remove(original, PARENT, RelationType.CHILD, doc("Gone.md"))
        assert text == "# Parent\n\n```shards\n```\n"


class TestRetarget:
    def test_rewrites_old_name_keeping_label(
        self, writer: DeclarationWriter, store: InMemoryDocumentStore
    ) -> None:
        original = note("Parent", '> "kid" Kid.md', "= Child.md")
        store._documents["Renamed.md"] = ""

        text = writer.retarget(original, PARENT, doc("Kid.md"), doc("Renamed.md"))

        assert text == note("Parent", '> "kid" Renamed.md', "= Child.md")

    def test_find_returns_first_match(self, writer: DeclarationWriter) -> None:
        declaration = writer.find(note("Child", '< "mom" Parent'), CHILD, RelationType.PARENT, PARENT)
        assert declaration is not None
        assert declaration.label == "mom"
        assert writer.find("", CHILD, RelationType.PARENT, PARENT) is None
