"""
Error taxonomy for fraggraph.

- ConfigurationError: malformed or missing registry/library input
- NotConfiguredError: a building-block pool was queried before it was built
- StructuralInconsistency: an operation would break a graph invariant
- ArchiveIOError: ring-closure archive read/write failure
- DuplicateRecordError: a chain identifier was stored twice

Out-of-range pool, port or vertex indices raise the builtin IndexError.
"No candidate" outcomes are never exceptions.
"""

from __future__ import annotations
from typing import Optional


class FragGraphError(Exception):
    """Base class of all fraggraph errors."""


class ConfigurationError(FragGraphError):
    """Raised when registry or library input is malformed."""


class NotConfiguredError(ConfigurationError):
    """Raised when a building-block pool is used before being defined."""


class StructuralInconsistency(FragGraphError):
    """Raised when an operation would violate a graph invariant."""


class ArchiveIOError(FragGraphError):
    """Raised when the ring-closure archive cannot be read or written."""


class DuplicateRecordError(ArchiveIOError):
    """Raised when a chain identifier is already present in the archive."""
    def __init__(self, chain_id: str, record_id: Optional[int] = None, message: str = ""):
        self.chain_id = chain_id
        self.record_id = record_id
        super().__init__(
            message or f"Chain '{chain_id}' already archived (record {record_id})"
        )
