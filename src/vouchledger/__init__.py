"""VouchLedger - invitation and attestation integrity engine.

Single-use invite codes, tamper-protected attestation records and
invited-by ancestry for closed communities.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
