"""In-memory implementation of DocumentStore."""

from collections import Counter
from collections.abc import Callable
from pathlib import PurePosixPath

from shards.domain.document import DocumentRef
from shards.exceptions import DocumentNotFoundError
from shards.store.base import ChangeListener, DocumentStore
from shards.store.models import ChangeKind, DocumentChange

DEFAULT_EXTENSION = ".md"


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store for testing and development.

    Listeners are called synchronously from the mutating call, in
    subscription order.
    """

    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self._documents: dict[str, str] = dict(documents or {})
        self._listeners: list[ChangeListener] = []
        self.write_counts: Counter[str] = Counter()

    def __contains__(self, document: object) -> bool:
        return isinstance(document, DocumentRef) and document.path in self._documents

    async def list_documents(self) -> list[DocumentRef]:
        return [DocumentRef(path=path) for path in sorted(self._documents)]

    async def read(self, document: DocumentRef) -> str:
        try:
            return self._documents[document.path]
        except KeyError:
            raise DocumentNotFoundError(document.path) from None

    async def write(self, document: DocumentRef, text: str) -> None:
        if document.path not in self._documents:
            raise DocumentNotFoundError(document.path)
        self._documents[document.path] = text
        self.write_counts[document.path] += 1
        self._notify(DocumentChange(kind=ChangeKind.MODIFIED, document=document))

    async def create(self, path: str, text: str = "") -> DocumentRef:
        """Add a document and report it as created."""
        document = DocumentRef(path=path)
        self._documents[path] = text
        self._notify(DocumentChange(kind=ChangeKind.CREATED, document=document))
        return document

    async def delete(self, document: DocumentRef) -> None:
        if self._documents.pop(document.path, None) is None:
            raise DocumentNotFoundError(document.path)
        self.write_counts.pop(document.path, None)
        self._notify(DocumentChange(kind=ChangeKind.DELETED, document=document))

    async def rename(self, document: DocumentRef, new_path: str) -> DocumentRef:
        if document.path not in self._documents:
            raise DocumentNotFoundError(document.path)
        renamed = DocumentRef(path=new_path)
        self._documents[new_path] = self._documents.pop(document.path)
        self._notify(
            DocumentChange(kind=ChangeKind.RENAMED, document=renamed, old_document=document)
        )
        return renamed

    def resolve(self, name: str, source: DocumentRef) -> DocumentRef | None:
        """Resolve by exact path, then by file name or stem.

        Among several candidates the one in the source's folder wins, then
        the shortest path.
        """
        name = name.strip()
        if not name:
            return None
        for candidate in (name, name + DEFAULT_EXTENSION):
            if candidate in self._documents:
                return DocumentRef(path=candidate)

        matches = [
            path
            for path in self._documents
            if path.endswith("/" + name)
            or path.endswith("/" + name + DEFAULT_EXTENSION)
            or PurePosixPath(path).name == name
            or PurePosixPath(path).stem == name
        ]
        if not matches:
            return None
        folder = str(PurePosixPath(source.path).parent)
        matches.sort(key=lambda path: (str(PurePosixPath(path).parent) != folder, len(path), path))
        return DocumentRef(path=matches[0])

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def text(self, path: str) -> str:
        """Synchronous read for tests."""
        return self._documents[path]

    def _notify(self, change: DocumentChange) -> None:
        for listener in list(self._listeners):
            listener(change)
