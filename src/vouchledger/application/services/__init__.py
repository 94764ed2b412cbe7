"""Application services."""

from vouchledger.application.services.integrity_engine import IntegrityEngine

__all__ = ["IntegrityEngine"]
