"""Domain-level errors shared by both tree engines and the storage layer."""

from __future__ import annotations

from typing import Any, Optional


class TreeError(Exception):
    """Base class for every error raised by the tree engines."""

    code = "tree_error"

    def __init__(self, message: str, *, node_id: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.node_id = node_id


class NodeNotFoundError(TreeError, LookupError):
    """Raised when a referenced node id is absent from the tree."""

    code = "element_not_found"


class ContainerNotFoundError(NodeNotFoundError):
    """Raised when an insert targets a container that does not exist."""

    code = "container_not_found"


class TargetNotFoundError(NodeNotFoundError):
    """Raised when a move targets a container that does not exist."""

    code = "target_not_found"


class ParentNotFoundError(NodeNotFoundError):
    """Raised when a flat item would point at a parent that does not exist."""

    code = "parent_not_found"


class DocumentNotFoundError(TreeError, LookupError):
    """Raised by stores when a document or collection cannot be located."""

    code = "document_not_found"


class CycleError(TreeError):
    """Raised when a change would make a node its own ancestor."""

    code = "circular_reference"


class SelfReferenceError(TreeError):
    """Raised when a node is asked to become its own parent."""

    code = "self_parent"


class TreeValidationError(TreeError, ValueError):
    """Raised for malformed input such as a non-mapping settings patch."""

    code = "invalid_input"


class StorageError(TreeError):
    """Opaque failure reported by a backing store."""

    code = "storage_error"


class StorageConflictError(StorageError):
    """Raised when a compare-and-swap write lost against a concurrent writer."""

    code = "write_conflict"


class IdGenerationError(TreeError):
    """Raised when no fresh identifier could be produced."""

    code = "id_generation_failed"
