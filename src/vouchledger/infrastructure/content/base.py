"""Base abstraction for the durable page/content store."""

from abc import ABC, abstractmethod


class ContentStore(ABC):
    """Abstract base class for content stores.

    Paths are unique. ``create`` never overwrites an existing page.
    """

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a page exists at the path."""
        ...

    @abstractmethod
    async def create(
        self,
        path: str,
        content: str,
        author_id: int,
        protection_rules: dict[str, str] | None = None,
    ) -> bool:
        """Create a page. Returns False if the path is already taken."""
        ...

    @abstractmethod
    async def get_content(self, path: str) -> str | None:
        """Get page content, or None if there is no page."""
        ...

    @abstractmethod
    async def update(self, path: str, content: str, editor_id: int) -> bool:
        """Replace page content. Returns False if there is no page."""
        ...

    @abstractmethod
    async def protect(self, path: str, rules: dict[str, str]) -> bool:
        """Set protection rules on a page. Returns False if there is no page."""
        ...

    @abstractmethod
    async def get_protection(self, path: str) -> dict[str, str]:
        """Get protection rules on a page (empty if unprotected or missing)."""
        ...
