"""Shards: bidirectional relation graph for plain-text documents.

Parses relation declarations embedded in documents, keeps an in-memory
graph of typed relations, and mirrors every relation into the document on
the other side.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
