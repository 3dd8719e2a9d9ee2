"""DocumentStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from shards.domain.document import DocumentRef
from shards.store.models import DocumentChange

ChangeListener = Callable[[DocumentChange], None]


class DocumentStore(ABC):
    """Abstract interface for the host document store.

    Documents are opaque text keyed by path. The store reports changes to
    subscribed listeners and resolves references written in declarations.
    """

    @abstractmethod
    async def list_documents(self) -> list[DocumentRef]:
        """List every document."""
        pass

    @abstractmethod
    async def read(self, document: DocumentRef) -> str:
        """Read a document's text.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    async def write(self, document: DocumentRef, text: str) -> None:
        """Replace a document's text.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    def resolve(self, name: str, source: DocumentRef) -> DocumentRef | None:
        """Resolve a reference written in `source` to a document."""
        pass

    @abstractmethod
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        pass
