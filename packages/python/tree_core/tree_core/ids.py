"""Element identifier generation."""

from __future__ import annotations

from typing import Callable, Iterable, Optional
from uuid import uuid4

from .errors import IdGenerationError

IdFactory = Callable[[], str]

ELEMENT_ID_LENGTH = 8


def new_element_id() -> str:
    """Return a short random hex id in the style page builders use."""

    return uuid4().hex[:ELEMENT_ID_LENGTH]


class IdAllocator:
    """
    Hand out ids that never collide with ids already used in a document.

    The allocator remembers every id it returns, so several nodes created in
    one operation (a duplicated subtree, a section with widgets) stay unique
    among themselves as well.
    """

    def __init__(
        self,
        taken: Iterable[str] = (),
        factory: Optional[IdFactory] = None,
        max_attempts: int = 64,
    ) -> None:
        self._taken = set(taken)
        self._factory = factory or new_element_id
        self._max_attempts = max_attempts

    def __contains__(self, value: str) -> bool:
        return value in self._taken

    def allocate(self) -> str:
        for _ in range(self._max_attempts):
            candidate = self._factory()
            if candidate and candidate not in self._taken:
                self._taken.add(candidate)
                return candidate
        raise IdGenerationError(
            f"Could not generate a unique id after {self._max_attempts} attempts"
        )
