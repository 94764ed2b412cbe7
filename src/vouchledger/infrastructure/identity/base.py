"""Base abstraction for the identity provider.

The engine never owns user identities. It reads them through this interface
so it can sit on top of whatever account system the host community runs.
"""

from abc import ABC, abstractmethod

from vouchledger.domain.entities import Identity


class IdentityProvider(ABC):
    """Abstract base class for identity providers."""

    @abstractmethod
    def canonicalize(self, name: str) -> str | None:
        """Return the canonical form of a name, or None if it is invalid."""
        ...

    @abstractmethod
    async def resolve_user_id(self, name: str) -> int | None:
        """Resolve a name to an identity ID, or None if not registered."""
        ...

    @abstractmethod
    async def get_identity(self, user_id: int) -> Identity | None:
        """Get an identity by ID."""
        ...

    @abstractmethod
    async def is_elevated_role(self, user_id: int) -> bool:
        """Check whether the identity holds an elevated role."""
        ...

    @abstractmethod
    def current_actor_id(self) -> int:
        """Return the identity acting in the current context.

        Raises:
            AuthorizationError: If no actor is bound to the context.
        """
        ...
