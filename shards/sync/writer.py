"""Textual write-back of relation declarations.

All edits are structural: existing lines are matched by type and resolved
target, so spacing, brackets or aliases in what a user typed never cause a
duplicate line or block a removal.
"""

from collections.abc import Callable, Iterator

from shards.domain.document import DocumentRef
from shards.domain.enums import RelationType
from shards.parser.grammar import (
    CLOSING_FENCE,
    RelationDeclaration,
    iter_blocks,
    opening_fence,
    parse_relation_line,
)

Resolver = Callable[[str, DocumentRef], DocumentRef | None]


class DeclarationWriter:
    """Inserts, updates and removes declaration lines in document text."""

    def __init__(self, resolver: Resolver, fence_language: str = "shards") -> None:
        self._resolver = resolver
        self._fence_language = fence_language

    def display_name(self, target: DocumentRef, document: DocumentRef) -> str:
        """Shortest name that resolves to `target` from `document`."""
        if self._resolver(target.name, document) == target:
            return target.name
        return target.path

    def format_line(
        self,
        relation_type: RelationType,
        target: DocumentRef,
        document: DocumentRef,
        label: str | None = None,
    ) -> str:
        name = self.display_name(target, document)
        if label:
            quoted = label.replace('"', "'")
            return f'{relation_type.symbol} "{quoted}" {name}'
        return f"{relation_type.symbol} {name}"

    def find(
        self,
        text: str,
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
    ) -> RelationDeclaration | None:
        """First declaration in `text` matching type and target."""
        for _, declaration in self._matching(text.splitlines(), document, relation_type, target):
            return declaration
        return None

    def upsert(
        self,
        text: str,
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
        label: str | None = None,
    ) -> str:
        """Make `text` declare the relation with exactly this label.

        Returns the text unchanged when an equivalent line exists. A line with
        the same type and target but another label is rewritten in place.
        Otherwise the line goes before the closing fence of the first block,
        or into a new block at the end.
        """
        label = label.strip().replace('"', "'") if label and label.strip() else None
        lines = text.splitlines()
        new_line = self.format_line(relation_type, target, document, label)
        matches = list(self._matching(lines, document, relation_type, target))

        if any(declaration.label == label for _, declaration in matches):
            return text
        if matches:
            index = matches[0][0]
            indent = lines[index][: len(lines[index]) - len(lines[index].lstrip())]
            lines[index] = indent + new_line
            return _join(lines, text)

        blocks = iter_blocks(lines, self._fence_language)
        if blocks and blocks[0].closing is not None:
            lines.insert(blocks[0].closing, new_line)
        elif blocks:
            lines.append(new_line)
        else:
            if lines and lines[-1].strip():
                lines.append("")
            lines.extend([opening_fence(self._fence_language), new_line, CLOSING_FENCE])
        return _join(lines, text, trailing_newline=True if not text else None)

    def remove(
        self,
        text: str,
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
    ) -> str:
        """Drop every line declaring the relation, whatever its label."""
        lines = text.splitlines()
        doomed = {index for index, _ in self._matching(lines, document, relation_type, target)}
        if not doomed:
            return text
        kept = [line for index, line in enumerate(lines) if index not in doomed]
        return _join(kept, text)

    def retarget(
        self,
        text: str,
        document: DocumentRef,
        old: DocumentRef,
        new: DocumentRef,
    ) -> str:
        """Rewrite lines naming `old` so they name `new`, keeping type and label."""
        lines = text.splitlines()
        names = _names(old)
        changed = False
        for block in iter_blocks(lines, self._fence_language):
            for index, line in block.lines:
                declaration = parse_relation_line(line)
                if declaration is None or declaration.target not in names:
                    continue
                indent = line[: len(line) - len(line.lstrip())]
                lines[index] = indent + self.format_line(
                    declaration.relation_type, new, document, declaration.label
                )
                changed = True
        return _join(lines, text) if changed else text

    def _matching(
        self,
        lines: list[str],
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
    ) -> Iterator[tuple[int, RelationDeclaration]]:
        for block in iter_blocks(lines, self._fence_language):
            for index, line in block.lines:
                declaration = parse_relation_line(line)
                if declaration is None or declaration.relation_type is not relation_type:
                    continue
                if self._refers_to(declaration.target, document, target):
                    yield index, declaration

    def _refers_to(self, name: str, document: DocumentRef, target: DocumentRef) -> bool:
        resolved = self._resolver(name, document)
        if resolved is not None:
            return resolved == target
        return name in _names(target)


def _names(document: DocumentRef) -> set[str]:
    path = document.path
    without_extension = path.rsplit(".", 1)[0] if "." in document.name else path
    return {path, document.name, document.stem, without_extension}


def _join(lines: list[str], original: str, trailing_newline: bool | None = None) -> str:
    if trailing_newline is None:
        trailing_newline = original.endswith("\n")
    joined = "\n".join(lines)
    return joined + "\n" if trailing_newline and lines else joined
