"""Exception hierarchy for Shards.

Parser problems are never raised: they are reported as ParseIssue records
on the parse result. Only command validation failures and store lookups
surface as exceptions.
"""


class ShardsError(Exception):
    """Base exception for all Shards errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class CommandValidationError(ShardsError):
    """Raised when a relation command fails self-validation.

    Raised before any graph mutation or document write.
    """

    def __init__(self, command: str, errors: list[str]) -> None:
        super().__init__(f"Invalid {command} command: {', '.join(errors)}")
        self.command = command
        self.errors = errors


class DocumentNotFoundError(ShardsError):
    """Raised when a document store is asked for an unknown document."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}")
        self.path = path
