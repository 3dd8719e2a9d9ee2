"""End-to-end tests for bidirectional relation sync.

Every test edits documents through the store, the way an editor would, and
lets the reconciler pick the changes up.
"""

import pytest

from shards.bootstrap import ShardsContext
from shards.domain.enums import RelationType
from shards.domain.events import FileDeleted, RelationEvent
from shards.domain.relation import RelationIdentity
from tests.factories import doc, note

PARENT = doc("Parent.md")
CHILD = doc("Child.md")
EMPTY_BLOCK = "```shards\n```\n"


def assert_mirrored(ctx: ShardsContext) -> None:
    assert ctx.graph.find_missing_inverses() == []
    assert ctx.graph.find_conflicts() == []


async def edit(ctx: ShardsContext, path: str, text: str) -> int:
    await ctx.store.write(doc(path), text)
    return await ctx.reconciler.drain()


@pytest.fixture
def ctx(make_engine) -> ShardsContext:
    return make_engine({"Parent.md": note("Parent"), "Child.md": note("Child")})


class TestScenarios:
    """Declaration edits and the mirrors they produce."""

    async def test_adding_a_child_mirrors_the_parent(self, ctx: ShardsContext) -> None:
        handled = await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        assert ctx.store.text("Child.md") == note("Child", "< Parent.md")
        assert ctx.store.text("Parent.md") == note("Parent", "> Child.md")
        assert handled == 2
        assert ctx.reconciler.pending == 0
        assert ctx.store.write_counts["Parent.md"] == 1
        assert ctx.store.write_counts["Child.md"] == 1
        assert_mirrored(ctx)

    async def test_label_flows_to_an_unlabelled_mirror(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        await edit(ctx, "Parent.md", note("Parent", '> "Priority" Child.md'))

        assert ctx.store.text("Child.md") == note("Child", '< "Priority" Parent.md')
        inverse = ctx.graph.get(RelationIdentity(source=CHILD, target=PARENT, relation_type=RelationType.PARENT))
        assert inverse is not None
        assert inverse.source_label is not None
        assert inverse.source_label.value == "Priority"
        assert_mirrored(ctx)

    async def test_existing_label_is_kept(self, make_engine) -> None:
        ctx = make_engine(
            {"Parent.md": note("Parent"), "Child.md": note("Child", '< "Mom" Parent.md')}
        )

        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))
        await edit(ctx, "Parent.md", note("Parent", '> "Priority" Child.md'))

        assert ctx.store.text("Child.md") == note("Child", '< "Mom" Parent.md')
        assert ctx.store.text("Parent.md") == note("Parent", '> "Priority" Child.md')
        assert "Child.md" not in ctx.store.write_counts
        assert_mirrored(ctx)

    async def test_newest_label_overwrites_mirror(self, make_engine) -> None:
        ctx = make_engine(
            {"Parent.md": note("Parent"), "Child.md": note("Child", '< "Zed" Parent.md')},
            conflict_strategy="newest",
        )

        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))
        await edit(ctx, "Parent.md", note("Parent", '> "Priority" Child.md'))

        assert ctx.store.text("Child.md") == note("Child", '< "Priority" Parent.md')
        assert_mirrored(ctx)

    async def test_removal_mirrors(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        await edit(ctx, "Child.md", "# Child\n\n" + EMPTY_BLOCK)

        assert ctx.store.text("Parent.md") == "# Parent\n\n" + EMPTY_BLOCK
        assert len(ctx.graph) == 0

    async def test_frontmatter_mirror_is_left_alone(self, make_engine) -> None:
        child_text = "---\nparent: Parent\n---\n# Child\n"
        ctx = make_engine({"Parent.md": note("Parent"), "Child.md": child_text})

        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        assert ctx.store.text("Child.md") == child_text
        assert "Child.md" not in ctx.store.write_counts
        assert_mirrored(ctx)

    async def test_self_reference_is_ignored(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", "> Parent.md"))

        assert len(ctx.graph) == 0
        assert dict(ctx.store.write_counts) == {"Parent.md": 1}

    async def test_related_is_symmetric(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", '= "see also" Child.md'))

        assert ctx.store.text("Child.md") == note("Child", '= "see also" Parent.md')
        assert_mirrored(ctx)


class TestLabels:
    async def test_each_side_keeps_its_own_label(self, make_engine) -> None:
        ctx = make_engine(
            {"Parent.md": note("Parent"), "Child.md": note("Child", '< "Mom" Parent.md')}
        )

        await edit(ctx, "Parent.md", note("Parent", '> "Kid" Child.md'))
        await edit(ctx, "Child.md", note("Child", '< "Mother" Parent.md'))

        assert ctx.store.text("Parent.md") == note("Parent", '> "Kid" Child.md')
        assert ctx.store.text("Child.md") == note("Child", '< "Mother" Parent.md')
        assert_mirrored(ctx)


class TestPropagation:
    """Chains of documents settle instead of bouncing."""

    async def test_chain_settles(self, make_engine) -> None:
        ctx = make_engine({"A.md": note("A"), "B.md": note("B"), "C.md": note("C")})

        await edit(ctx, "A.md", note("A", "> B.md", "= C.md"))
        await edit(ctx, "B.md", note("B", "< A.md", "> C.md"))
        counts = dict(ctx.store.write_counts)

        assert await ctx.reconciler.drain() == 0
        assert dict(ctx.store.write_counts) == counts
        assert ctx.store.text("C.md") == note("C", "= A.md", "< B.md")
        assert len(ctx.graph) == 6
        assert_mirrored(ctx)

    async def test_repeated_edits_are_idempotent(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))
        child_writes = ctx.store.write_counts["Child.md"]

        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))
        await edit(ctx, "Parent.md", note("Parent", "> [[Child]]"))

        assert ctx.store.write_counts["Child.md"] == child_writes


class TestDocumentLifecycle:
    async def test_rename_retargets_counterparts(self, ctx: ShardsContext) -> None:
        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        await ctx.store.rename(CHILD, "Kid.md")
        await ctx.reconciler.drain()

        assert ctx.store.text("Parent.md") == note("Parent", "> Kid.md")
        assert ctx.store.text("Kid.md") == note("Child", "< Parent.md")
        assert ctx.graph.all_relations_for(CHILD) == []
        assert len(ctx.graph.all_relations_for(doc("Kid.md"))) == 2
        assert_mirrored(ctx)

    async def test_delete_forgets_relations(self, ctx: ShardsContext) -> None:
        received: list[RelationEvent] = []

        async def collect(event: RelationEvent) -> None:
            received.append(event)

        await ctx.event_bus.subscribe("document.*", collect)
        await edit(ctx, "Parent.md", note("Parent", "> Child.md"))

        await ctx.store.delete(CHILD)
        await ctx.reconciler.drain()

        assert len(ctx.graph) == 0
        assert ctx.store.text("Parent.md") == note("Parent", "> Child.md")
        deleted = [event for event in received if isinstance(event, FileDeleted)]
        assert len(deleted) == 1
        assert len(deleted[0].affected_relations) == 2

    async def test_created_document_is_reconciled(self, ctx: ShardsContext) -> None:
        await ctx.store.create("Sibling.md", note("Sibling", "= Parent.md"))
        await ctx.reconciler.drain()

        assert ctx.store.text("Parent.md") == note("Parent", "= Sibling.md")
        assert_mirrored(ctx)


class TestRebuild:
    async def test_rebuild_repairs_missing_mirrors(self, make_engine) -> None:
        ctx = make_engine({"Parent.md": note("Parent", "> Child.md"), "Child.md": note("Child")})

        report = await ctx.reconciler.rebuild()
        await ctx.reconciler.drain()

        assert report.mirrors_repaired == 1
        assert ctx.store.text("Child.md") == note("Child", "< Parent.md")
        assert_mirrored(ctx)

    async def test_rebuild_settles_label_conflicts(self, make_engine) -> None:
        ctx = make_engine(
            {
                "Parent.md": note("Parent", "> Child.md"),
                "Child.md": note("Child", '< "Mom" Parent.md'),
            }
        )

        report = await ctx.reconciler.rebuild()
        await ctx.reconciler.drain()

        assert report.conflicts_resolved == 1
        assert ctx.store.text("Parent.md") == note("Parent", '> "Mom" Child.md')
        assert_mirrored(ctx)
