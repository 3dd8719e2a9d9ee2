"""Relation declaration grammar.

A relation line is a symbol, an optional double-quoted label and a target:

    > "Priority" Child.md
    < [[Parent]]
    = Sibling note

A hierarchy line is a `/`-delimited path where any segment may hold brace
alternatives: `projects/{alpha,beta}/notes`. Lines starting with `#` are
comments. Declarations live in fenced blocks, all blocks of a document are
read.
"""

import re
from dataclasses import dataclass, field

from shards.domain.enums import RelationType

RELATION_LINE = re.compile(r'^([<>=])[ \t]*(?:"([^"]*)"[ \t]+)?(.*?)\s*$')
HIERARCHY_LINE = re.compile(r"^[A-Za-z0-9_\-/\s{},.]+$")
WIKILINK = re.compile(r"^\[\[([^\]]+)\]\]$")
CLOSING_FENCE = "```"


@dataclass(frozen=True)
class RelationDeclaration:
    """A relation line before its target is resolved."""

    relation_type: RelationType
    target: str
    label: str | None = None
    line: int | None = None


@dataclass
class Block:
    """A fenced declaration block.

    `opening` and `closing` are line indices of the fences; `closing` is None
    when the block runs to the end of the text.
    """

    opening: int
    closing: int | None = None
    lines: list[tuple[int, str]] = field(default_factory=list)


def opening_fence(language: str) -> str:
    return f"```{language}"


def iter_blocks(lines: list[str], language: str) -> list[Block]:
    """Find every fenced block for the given info string."""
    blocks: list[Block] = []
    current: Block | None = None
    fence = opening_fence(language)

    for index, line in enumerate(lines):
        stripped = line.strip()
        if current is None:
            if stripped == fence:
                current = Block(opening=index)
            continue
        if stripped == CLOSING_FENCE:
            current.closing = index
            blocks.append(current)
            current = None
            continue
        current.lines.append((index, line))

    if current is not None:
        blocks.append(current)
    return blocks


def normalize_target(raw: str) -> str | None:
    """Strip wikilink brackets, aliases and heading anchors from a target."""
    target = raw.strip()
    match = WIKILINK.match(target)
    if match:
        target = match.group(1).split("|", 1)[0].split("#", 1)[0].strip()
    elif target.startswith("[[") or target.startswith('"'):
        return None
    return target or None


def parse_relation_line(line: str, line_number: int | None = None) -> RelationDeclaration | None:
    """Parse one relation line, or return None when it is not one."""
    match = RELATION_LINE.match(line.strip())
    if not match:
        return None
    symbol, label, raw_target = match.groups()
    target = normalize_target(raw_target)
    if target is None:
        return None
    label = label.strip() if label and label.strip() else None
    return RelationDeclaration(
        relation_type=RelationType.from_symbol(symbol),
        target=target,
        label=label,
        line=line_number,
    )


def is_relation_line(line: str) -> bool:
    return line.strip()[:1] in ("<", ">", "=")


def is_comment(line: str) -> bool:
    return line.strip().startswith("#")


def is_hierarchy_line(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and bool(HIERARCHY_LINE.match(stripped)) and _balanced(stripped)


def _balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _split_alternatives(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(body[start:index])
            start = index + 1
    parts.append(body[start:])
    return parts


def _matching_brace(text: str, opening: int) -> int:
    depth = 0
    for index in range(opening, len(text)):
        if text[index] == "{":
            depth += 1
        elif text[index] == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def expand_braces(path: str, empty_marker: str | None = None) -> list[str]:
    """Expand brace alternatives into every combination, in order.

    `expand_braces("a/{x,y}/{1,2}")` gives `a/x/1, a/x/2, a/y/1, a/y/2`.
    Braces nest. An alternative equal to `empty_marker` expands to nothing.
    Unbalanced braces are returned literally.
    """
    opening = path.find("{")
    if opening < 0:
        return [path]
    closing = _matching_brace(path, opening)
    if closing < 0:
        return [path]

    prefix = path[:opening]
    suffixes = expand_braces(path[closing + 1 :], empty_marker)
    expanded: list[str] = []
    for alternative in _split_alternatives(path[opening + 1 : closing]):
        alternative = alternative.strip()
        if empty_marker is not None and alternative == empty_marker:
            alternative = ""
        for middle in expand_braces(alternative, empty_marker):
            for suffix in suffixes:
                expanded.append(prefix + middle + suffix)
    return list(dict.fromkeys(expanded))
