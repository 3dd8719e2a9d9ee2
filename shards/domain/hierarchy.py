"""Hierarchy paths declared by documents.

Documents can place themselves in a virtual tree with `/`-delimited paths.
The index maps documents to their expanded paths and renders the nested
tree for browsers.
"""

from dataclasses import dataclass, field

from shards.domain.document import DocumentRef


def split_path(path: str) -> list[str]:
    """Split a hierarchy path into non-empty, trimmed components."""
    return [part.strip() for part in path.split("/") if part.strip()]


@dataclass
class HierarchyNode:
    """One component of the hierarchy tree."""

    name: str
    children: dict[str, "HierarchyNode"] = field(default_factory=dict)
    documents: list[DocumentRef] = field(default_factory=list)

    def child(self, name: str) -> "HierarchyNode":
        if name not in self.children:
            self.children[name] = HierarchyNode(name=name)
        return self.children[name]

    def find(self, path: str) -> "HierarchyNode | None":
        node: HierarchyNode | None = self
        for part in split_path(path):
            if node is None:
                return None
            node = node.children.get(part)
        return node


class HierarchyIndex:
    """Per-document hierarchy paths."""

    def __init__(self) -> None:
        self._paths: dict[str, tuple[DocumentRef, list[str]]] = {}

    def __len__(self) -> int:
        return len(self._paths)

    def set_paths(self, document: DocumentRef, paths: list[str]) -> None:
        """Replace the paths declared by a document."""
        normalized = ["/".join(split_path(path)) for path in paths]
        normalized = list(dict.fromkeys(path for path in normalized if path))
        if normalized:
            self._paths[document.key] = (document, normalized)
        else:
            self._paths.pop(document.key, None)

    def paths_for(self, document: DocumentRef) -> list[str]:
        entry = self._paths.get(document.key)
        return list(entry[1]) if entry else []

    def remove(self, document: DocumentRef) -> None:
        self._paths.pop(document.key, None)

    def rename(self, old: DocumentRef, new: DocumentRef) -> None:
        entry = self._paths.pop(old.key, None)
        if entry is not None:
            self._paths[new.key] = (new, entry[1])

    def documents_at(self, path: str) -> list[DocumentRef]:
        """Documents declaring exactly this path."""
        wanted = "/".join(split_path(path))
        return [
            document
            for key, (document, paths) in sorted(self._paths.items())
            if wanted in paths
        ]

    def tree(self) -> HierarchyNode:
        """Build the nested tree; documents hang off the leaf of each path."""
        root = HierarchyNode(name="")
        for _, (document, paths) in sorted(self._paths.items()):
            for path in paths:
                node = root
                for part in split_path(path):
                    node = node.child(part)
                if document not in node.documents:
                    node.documents.append(document)
        return root

    def clear(self) -> None:
        self._paths.clear()
