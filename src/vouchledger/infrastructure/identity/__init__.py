"""Identity provider adapters."""

from vouchledger.infrastructure.identity.base import IdentityProvider
from vouchledger.infrastructure.identity.sql_identity_provider import SqlIdentityProvider

__all__ = ["IdentityProvider", "SqlIdentityProvider"]
