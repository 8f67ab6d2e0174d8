"""Primitives shared by the element tree and taxonomy tree engines."""

from .errors import (
    ContainerNotFoundError,
    CycleError,
    DocumentNotFoundError,
    IdGenerationError,
    NodeNotFoundError,
    ParentNotFoundError,
    SelfReferenceError,
    StorageConflictError,
    StorageError,
    TargetNotFoundError,
    TreeError,
    TreeValidationError,
)
from .ids import IdAllocator, new_element_id
from .paths import NodePath, format_path, is_within

__all__ = [
    "TreeError",
    "NodeNotFoundError",
    "ContainerNotFoundError",
    "TargetNotFoundError",
    "ParentNotFoundError",
    "DocumentNotFoundError",
    "CycleError",
    "SelfReferenceError",
    "TreeValidationError",
    "StorageError",
    "StorageConflictError",
    "IdGenerationError",
    "IdAllocator",
    "new_element_id",
    "NodePath",
    "format_path",
    "is_within",
]
