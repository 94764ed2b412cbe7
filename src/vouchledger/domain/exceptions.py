"""Error taxonomy for the invitation and attestation engine.

Validation and authorization failures are always raised to the caller.
Lost concurrency races surface as ``ConflictError`` subclasses and are never
retried here. ``IntegrityError`` describes corrupted derived state; the
ancestry resolver attaches it to its result instead of raising it.
"""


class VouchLedgerError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(VouchLedgerError):
    """Raised when input is malformed or outside an allowed set."""


class NotFoundError(VouchLedgerError):
    """Raised when a referenced invite, identity or record does not exist."""


class ConflictError(VouchLedgerError):
    """Raised when a concurrency race was lost or a duplicate already exists."""


class AuthorizationError(VouchLedgerError):
    """Raised when the acting identity may not perform the operation."""


class ExpiredError(VouchLedgerError):
    """Raised when an invite code is past its expiry."""


class AlreadyUsedError(VouchLedgerError):
    """Raised when an invite code has already been consumed."""


class IntegrityError(VouchLedgerError):
    """Stored data is inconsistent, e.g. the invited-by graph contains a cycle."""

    def __init__(self, message: str, user_ids: list[int] | None = None) -> None:
        self.user_ids = user_ids or []
        super().__init__(message)


class SelfAttestationError(ValidationError):
    """Raised when an identity attempts to attest itself."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Identity {user_id} cannot attest itself")


class InvalidSubjectError(NotFoundError):
    """Raised when the attestation subject is not a registered identity."""

    def __init__(self, subject: int | str) -> None:
        self.subject = subject
        super().__init__(f"Attestation subject '{subject}' is not a registered identity")


class AttestationExistsError(ConflictError):
    """Raised when the (subject, attester) pair already has a record."""

    def __init__(self, subject_id: int, attester_id: int) -> None:
        self.subject_id = subject_id
        self.attester_id = attester_id
        super().__init__(
            f"Identity {attester_id} has already attested identity {subject_id}"
        )


class InvalidAttestationTypeError(ValidationError):
    """Raised when the attestation type is not allowed for the subject's entity kind."""

    def __init__(self, attestation_type: str, entity_type: str) -> None:
        self.attestation_type = attestation_type
        self.entity_type = entity_type
        super().__init__(
            f"Attestation type '{attestation_type}' is not valid for {entity_type} subjects"
        )
