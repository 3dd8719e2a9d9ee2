"""Document parser.

Turns document text into resolved relation declarations and expanded
hierarchy paths. Problems are collected as issues and logged; parsing never
raises.
"""

from collections.abc import Callable

from shards.config.models.parser import ParserConfig
from shards.domain.commands import ParsedRelation
from shards.domain.document import DocumentRef
from shards.domain.enums import RelationType
from shards.domain.hierarchy import split_path
from shards.observability.logging import get_logger
from shards.observability.metrics import record_parse_issue
from shards.parser.frontmatter import FrontmatterError, as_string_list, load_frontmatter
from shards.parser.grammar import (
    expand_braces,
    is_comment,
    is_hierarchy_line,
    is_relation_line,
    iter_blocks,
    normalize_target,
    parse_relation_line,
)
from shards.parser.models import ParsedDocument, ParseIssue, ParseIssueKind

logger = get_logger(__name__)

Resolver = Callable[[str, DocumentRef], DocumentRef | None]

FRONTMATTER_EMPTY_ALTERNATIVE = "_"


class ShardParser:
    """Reads relation and hierarchy declarations from documents."""

    def __init__(self, resolver: Resolver, config: ParserConfig | None = None) -> None:
        """Create a parser.

        Args:
            resolver: Maps a target reference to a document, relative to the
                declaring document
            config: Fence language and frontmatter settings
        """
        self._resolver = resolver
        self._config = config or ParserConfig()

    @property
    def config(self) -> ParserConfig:
        return self._config

    def parse(self, document: DocumentRef, text: str) -> ParsedDocument:
        relations: list[ParsedRelation] = []
        hierarchies: list[str] = []
        issues: list[ParseIssue] = []

        if self._config.parse_frontmatter:
            self._parse_frontmatter(document, text, relations, hierarchies, issues)

        lines = text.splitlines()
        for block in iter_blocks(lines, self._config.fence_language):
            for index, line in block.lines:
                if not line.strip() or is_comment(line):
                    continue

                if is_relation_line(line):
                    declaration = parse_relation_line(line, index)
                    if declaration is None:
                        issues.append(_issue(ParseIssueKind.MALFORMED, line, index))
                        continue
                    target = self._resolver(declaration.target, document)
                    if target is None:
                        issues.append(
                            _issue(ParseIssueKind.UNRESOLVED, declaration.target, index)
                        )
                        continue
                    relations.append(
                        ParsedRelation(
                            target=target,
                            relation_type=declaration.relation_type,
                            label=declaration.label,
                        )
                    )
                elif is_hierarchy_line(line):
                    hierarchies.extend(expand_braces(line.strip()))
                else:
                    issues.append(_issue(ParseIssueKind.MALFORMED, line, index))

        for issue in issues:
            self._report(document, issue)
        return ParsedDocument(
            document=document,
            relations=relations,
            hierarchies=_normalize_paths(hierarchies),
            issues=issues,
        )

    def frontmatter_relations(self, document: DocumentRef, text: str) -> list[ParsedRelation]:
        """Relations a document declares in its frontmatter, resolved.

        Problems are ignored here; `parse` reports them.
        """
        relations: list[ParsedRelation] = []
        if self._config.parse_frontmatter:
            self._parse_frontmatter(document, text, relations, [], [])
        return relations

    def _parse_frontmatter(
        self,
        document: DocumentRef,
        text: str,
        relations: list[ParsedRelation],
        hierarchies: list[str],
        issues: list[ParseIssue],
    ) -> None:
        try:
            data = load_frontmatter(text)
        except FrontmatterError as e:
            issues.append(
                _issue(ParseIssueKind.INVALID_FRONTMATTER, "---", 0, str(e))
            )
            return

        for key, type_name in self._config.frontmatter_keys.items():
            for raw in as_string_list(data.get(key)):
                name = normalize_target(raw)
                if name is None:
                    issues.append(_issue(ParseIssueKind.MALFORMED, raw, None))
                    continue
                target = self._resolver(name, document)
                if target is None:
                    issues.append(_issue(ParseIssueKind.UNRESOLVED, name, None))
                    continue
                relations.append(ParsedRelation(target=target, relation_type=RelationType(type_name)))

        for path in as_string_list(data.get(self._config.hierarchy_key)):
            hierarchies.extend(expand_braces(path.strip(), FRONTMATTER_EMPTY_ALTERNATIVE))

    def _report(self, document: DocumentRef, issue: ParseIssue) -> None:
        record_parse_issue(issue.kind.value)
        logger.warning(
            f"declaration_{issue.kind.value}",
            document=document,
            line=issue.line,
            text=issue.text,
            message=issue.message or None,
        )


def _normalize_paths(paths: list[str]) -> list[str]:
    normalized = ("/".join(split_path(path)) for path in paths)
    return list(dict.fromkeys(path for path in normalized if path))


def _issue(kind: ParseIssueKind, text: str, line: int | None, message: str = "") -> ParseIssue:
    return ParseIssue(kind=kind, text=text.strip(), line=line, message=message)
