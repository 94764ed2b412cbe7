"""SQLAlchemy models for VouchLedger tables.

All models inherit from the Base class defined in database.py and are
created on startup in development mode.
"""

from vouchledger.infrastructure.persistence.models.attestation import AttestationModel
from vouchledger.infrastructure.persistence.models.identity import IdentityModel
from vouchledger.infrastructure.persistence.models.invite import InviteModel
from vouchledger.infrastructure.persistence.models.page import PageModel

__all__ = [
    "AttestationModel",
    "IdentityModel",
    "InviteModel",
    "PageModel",
]
