"""Domain services for VouchLedger.

Services hold the invite, ancestry and attestation rules. Import them from
their modules; this package does not re-export them.
"""
