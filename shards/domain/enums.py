"""Enums for the relation domain."""

from enum import Enum


class RelationType(str, Enum):
    """Kind of relation between two documents.

    Read from the source document's point of view:
    - PARENT: the target is a parent of the source
    - CHILD: the target is a child of the source
    - RELATED: symmetric, no direction
    """

    RELATED = "related"
    PARENT = "parent"
    CHILD = "child"

    def inverse(self) -> "RelationType":
        """The same relation seen from the target document."""
        if self is RelationType.PARENT:
            return RelationType.CHILD
        if self is RelationType.CHILD:
            return RelationType.PARENT
        return RelationType.RELATED

    @property
    def symbol(self) -> str:
        """Declaration symbol used when writing this type."""
        return TYPE_TO_SYMBOL[self]

    @classmethod
    def from_symbol(cls, symbol: str) -> "RelationType":
        """Map a declaration symbol to its type.

        Raises:
            ValueError: If the symbol is not one of '<', '>', '='
        """
        try:
            return SYMBOL_TO_TYPE[symbol]
        except KeyError:
            raise ValueError(f"Invalid relation symbol: {symbol!r}") from None


SYMBOL_TO_TYPE: dict[str, RelationType] = {
    ">": RelationType.CHILD,
    "<": RelationType.PARENT,
    "=": RelationType.RELATED,
}

TYPE_TO_SYMBOL: dict[RelationType, str] = {
    relation_type: symbol for symbol, relation_type in SYMBOL_TO_TYPE.items()
}


class ConflictStrategy(str, Enum):
    """How two disagreeing labels are merged.

    - NEWEST: the most recently modified label wins
    - PREFER_NON_EMPTY: a non-empty label beats an empty one, then newest wins
    """

    NEWEST = "newest"
    PREFER_NON_EMPTY = "prefer-non-empty"


class MirrorOperation(str, Enum):
    """Write-back performed on the target document of a relation."""

    ADD = "add"
    REMOVE = "remove"
