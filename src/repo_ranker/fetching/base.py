"""Repository fetcher interface."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class RepositoryFetcher(Protocol):
    """Validates repository locations and clones them into a directory.

    ``clone`` raises ``FetchError`` with kind ``INVALID_OR_PRIVATE``,
    ``NETWORK`` or ``TIMEOUT``.
    """

    def validate(self, location: str) -> bool: ...

    def clone(self, location: str, dest_dir: Path, timeout: Optional[float] = None) -> None: ...
