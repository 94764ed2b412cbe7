"""Persistence repositories for database operations."""

from vouchledger.infrastructure.persistence.repositories.attestation_repository import (
    AttestationRepository,
)
from vouchledger.infrastructure.persistence.repositories.identity_repository import (
    IdentityRepository,
)
from vouchledger.infrastructure.persistence.repositories.invite_repository import (
    InviteRepository,
)

__all__ = [
    "AttestationRepository",
    "IdentityRepository",
    "InviteRepository",
]
