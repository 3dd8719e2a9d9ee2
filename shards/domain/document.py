"""Document references."""

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


class DocumentRef(BaseModel):
    """Stable reference to a document in the store.

    Identity is the store path. Two references with the same path are the
    same document regardless of where they were created.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Store path, e.g. 'notes/Child.md'")

    @property
    def key(self) -> str:
        """Key used in graph indices."""
        return self.path

    @property
    def name(self) -> str:
        """File name including extension, used as the display name in declarations."""
        return PurePosixPath(self.path).name

    @property
    def stem(self) -> str:
        """File name without extension."""
        return PurePosixPath(self.path).stem

    def __str__(self) -> str:
        return self.path
