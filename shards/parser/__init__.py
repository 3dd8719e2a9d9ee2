"""Declaration parsing: grammar, frontmatter and the document parser."""

from shards.parser.grammar import RelationDeclaration, expand_braces, parse_relation_line
from shards.parser.models import ParsedDocument, ParseIssue, ParseIssueKind
from shards.parser.parser import Resolver, ShardParser

__all__ = [
    "ParseIssue",
    "ParseIssueKind",
    "ParsedDocument",
    "RelationDeclaration",
    "Resolver",
    "ShardParser",
    "expand_braces",
    "parse_relation_line",
]
