"""Attestation registry: who vouched for whom.

Enforces the attestation invariants: no self-attestation, at most one record
per ordered (subject, attester) pair, authorship-or-elevated edits, and
tamper protection applied in the same step that creates the record.

Pair uniqueness is decided by the storage-level unique constraint, not by the
pre-check, so two concurrent creates for the same pair cannot both succeed.
The registry flushes but never commits, except that it rolls the session
back when the store rejects a duplicate.
"""

from datetime import datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.logging import get_logger
from vouchledger.domain.entities import (
    AttestationKind,
    AttestationRecord,
    AttestationType,
    EntityType,
    Identity,
    InviteToken,
    allowed_attestation_types,
    default_attestation_type,
    parse_attestation_type,
)
from vouchledger.domain.exceptions import (
    AttestationExistsError,
    AuthorizationError,
    InvalidAttestationTypeError,
    InvalidSubjectError,
    NotFoundError,
    SelfAttestationError,
)
from vouchledger.domain.services.invite_ledger import InviteLedger, utc_now
from vouchledger.domain.services.mutation_policy import (
    Actor,
    MutationAction,
    PolicyDecision,
    evaluate_mutation,
)
from vouchledger.domain.services.system_identity_guard import SystemIdentityGuard
from vouchledger.infrastructure.content import (
    ContentStore,
    PageRenderer,
    genesis_page_path,
    get_page_renderer,
    origin_page_path,
    parse_peer_page_path,
    peer_page_path,
)
from vouchledger.infrastructure.identity import IdentityProvider
from vouchledger.infrastructure.persistence.repositories import AttestationRepository

logger = get_logger(__name__)

BOT_ROLE = "bot"


class AttestationRegistry:
    """Create, edit and protect attestation records."""

    def __init__(
        self,
        session: AsyncSession,
        identity_provider: IdentityProvider,
        content_store: ContentStore,
        ledger: InviteLedger,
        guard: SystemIdentityGuard,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        renderer: PageRenderer | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            session: SQLAlchemy async session.
            identity_provider: Source of identities, names and roles.
            content_store: Where attestation pages are published.
            ledger: Invite ledger, used to find a subject's entity kind.
            guard: System identity guard, used to find the system author.
            settings: Application settings (defaults to the cached settings).
            clock: Returns the current UTC time.
            renderer: Page body renderer.
        """
        self.session = session
        self.identities = identity_provider
        self.content = content_store
        self.ledger = ledger
        self.guard = guard
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.renderer = renderer or get_page_renderer()
        self.attestation_repo = AttestationRepository(session)

    async def entity_type_of(self, identity: Identity) -> EntityType:
        """Entity kind of an identity: taken from its invite, else from its role."""
        invite = await self.ledger.get_consuming_invite(identity.id)
        if invite is not None:
            return invite.entity_type
        return EntityType.BOT if identity.role == BOT_ROLE else EntityType.HUMAN

    async def _resolve_subject(self, attester_id: int, subject: int | str) -> Identity:
        """Look up the subject, checking self-attestation first."""
        if isinstance(subject, str):
            attester = await self.identities.get_identity(attester_id)
            canonical = self.identities.canonicalize(subject)
            if attester is not None and canonical == attester.name:
                raise SelfAttestationError(attester_id)
            subject_id = await self.identities.resolve_user_id(subject)
            identity = (
                await self.identities.get_identity(subject_id)
                if subject_id is not None
                else None
            )
        else:
            if subject == attester_id:
                raise SelfAttestationError(attester_id)
            identity = await self.identities.get_identity(subject)

        if identity is None:
            raise InvalidSubjectError(subject)
        return identity

    def _check_type(
        self, attestation_type: AttestationType | str, entity_type: EntityType
    ) -> AttestationType:
        parsed = parse_attestation_type(attestation_type)
        if parsed in allowed_attestation_types(entity_type):
            return parsed

        raw = getattr(attestation_type, "value", attestation_type)
        if self.settings.invalid_attestation_type_policy == "default":
            fallback = default_attestation_type(entity_type)
            logger.warning(
                "Invalid attestation type replaced with default",
                attestation_type=raw,
                entity_type=entity_type.value,
                substituted=fallback.value,
            )
            return fallback
        raise InvalidAttestationTypeError(raw, entity_type.value)

    async def _store(self, record: AttestationRecord, content: str) -> AttestationRecord:
        """Insert the record and publish its page as one step.

        Raises:
            AttestationExistsError: If the pair or the page path is taken.
        """
        try:
            stored = await self.attestation_repo.create(record)
            created = await self.content.create(
                record.page_path,
                content,
                author_id=record.attester_id,
                protection_rules=record.protection_rules,
            )
        except SQLAlchemyIntegrityError:
            await self.session.rollback()
            logger.info(
                "Attestation create lost a race",
                subject_id=record.subject_id,
                attester_id=record.attester_id,
            )
            raise AttestationExistsError(record.subject_id, record.attester_id)

        if not created:
            await self.session.rollback()
            raise AttestationExistsError(record.subject_id, record.attester_id)
        return stored

    async def create_attestation(
        self,
        attester_id: int,
        subject: int | str,
        attestation_type: AttestationType | str,
        text: str,
    ) -> AttestationRecord:
        """Create a protected peer attestation.

        Checks run in a fixed order: self-attestation, unknown subject,
        existing record, then attestation type.

        Args:
            attester_id: Identity doing the vouching.
            subject: Subject identity ID or account name.
            attestation_type: How the attester knows the subject.
            text: Freeform attestation text.

        Returns:
            The stored, tamper-protected record.

        Raises:
            SelfAttestationError: The attester is the subject.
            InvalidSubjectError: The subject is not a registered identity.
            AttestationExistsError: The pair already has a record.
            InvalidAttestationTypeError: The type is not allowed for the
                subject's entity kind (under the reject policy).
        """
        subject_identity = await self._resolve_subject(attester_id, subject)
        subject_id = subject_identity.id

        if await self.attestation_repo.get_by_pair(subject_id, attester_id) is not None:
            raise AttestationExistsError(subject_id, attester_id)

        attester = await self.identities.get_identity(attester_id)
        if attester is None:
            raise AuthorizationError(f"Attester {attester_id} is not a registered identity")

        entity_type = await self.entity_type_of(subject_identity)
        checked_type = self._check_type(attestation_type, entity_type)

        now = self.clock()
        text = (text or "").strip()
        record = AttestationRecord(
            subject_id=subject_id,
            attester_id=attester_id,
            attestation_type=checked_type,
            freeform_text=text,
            page_path=peer_page_path(subject_identity.name, attester.name),
            kind=AttestationKind.PEER,
            created_at=now,
        ).protect()
        content = self.renderer.render_peer(
            subject_name=subject_identity.name,
            attester_name=attester.name,
            attestation_type=checked_type.value,
            text=text,
            created=now,
        )
        record = await self._store(record, content)

        logger.info(
            "Attestation created",
            attestation_id=record.id,
            subject_id=subject_id,
            attester_id=attester_id,
            attestation_type=checked_type.value,
        )
        return record

    async def _system_record_preconditions(
        self, user_id: int, page_path: str
    ) -> Identity | None:
        """Return the system identity if a system-authored record may be written."""
        system = await self.guard.get_system_identity()
        if system is None:
            logger.warning(
                "System identity unavailable; skipping protected record",
                user_id=user_id,
                page_path=page_path,
            )
            return None
        if await self.content.exists(page_path):
            logger.info("Protected record page already exists", page_path=page_path)
            return None
        if await self.attestation_repo.get_by_pair(user_id, system.id) is not None:
            logger.info("Protected record already exists", user_id=user_id)
            return None
        return system

    async def create_origin_attestation(
        self, user_id: int, invite: InviteToken
    ) -> AttestationRecord | None:
        """Write the invite-record for an identity created with an invite.

        Authored by the system identity and tamper-protected. Returns None
        (after logging) if the system identity is missing or the record
        already exists.

        Raises:
            NotFoundError: If the identity does not exist.
        """
        identity = await self.identities.get_identity(user_id)
        if identity is None:
            raise NotFoundError(f"Identity {user_id} does not exist")

        page_path = origin_page_path(identity.name)
        system = await self._system_record_preconditions(user_id, page_path)
        if system is None:
            return None

        inviter = await self.identities.get_identity(invite.inviter_id)
        inviter_name = inviter.name if inviter else "Unknown"
        now = self.clock()
        record = AttestationRecord(
            subject_id=user_id,
            attester_id=system.id,
            attestation_type=invite.relationship_type,
            freeform_text=invite.notes or "",
            page_path=page_path,
            kind=AttestationKind.ORIGIN,
            invite_id=invite.id,
            created_at=now,
        ).protect()
        content = self.renderer.render_origin(
            entity_type=invite.entity_type.value,
            relationship_type=invite.relationship_type.value,
            inviter_name=inviter_name,
            invited_at=invite.used_at or now,
            invite_id=invite.id,
            known_as=invite.invitee_name,
            notes=invite.notes,
        )
        record = await self._store(record, content)

        logger.info(
            "Origin attestation created",
            attestation_id=record.id,
            user_id=user_id,
            inviter_id=invite.inviter_id,
            invite_id=invite.id,
        )
        return record

    async def create_genesis_attestation(self, user_id: int) -> AttestationRecord | None:
        """Write the genesis record for an identity that predates invites.

        Returns None (after logging) if the system identity is missing or the
        record already exists.

        Raises:
            NotFoundError: If the identity does not exist.
        """
        identity = await self.identities.get_identity(user_id)
        if identity is None:
            raise NotFoundError(f"Identity {user_id} does not exist")

        page_path = genesis_page_path(identity.name)
        system = await self._system_record_preconditions(user_id, page_path)
        if system is None:
            return None

        entity_type = await self.entity_type_of(identity)
        record = AttestationRecord(
            subject_id=user_id,
            attester_id=system.id,
            attestation_type=default_attestation_type(entity_type),
            freeform_text="",
            page_path=page_path,
            kind=AttestationKind.GENESIS,
            created_at=self.clock(),
        ).protect()
        content = self.renderer.render_genesis(
            name=identity.name,
            entity_type=entity_type.value,
            registered=identity.created_at,
        )
        record = await self._store(record, content)

        logger.info("Genesis attestation created", attestation_id=record.id, user_id=user_id)
        return record

    async def _actor(self, actor_id: int) -> Actor:
        return Actor(id=actor_id, is_elevated=await self.identities.is_elevated_role(actor_id))

    async def edit_attestation(
        self,
        editor_id: int,
        subject_id: int,
        attester_id: int,
        attestation_type: AttestationType | str | None = None,
        freeform_text: str | None = None,
    ) -> AttestationRecord:
        """Edit an existing attestation.

        Only the attester or an elevated actor may edit. Subject and attester
        never change.

        Raises:
            NotFoundError: No record exists for the pair.
            AuthorizationError: The editor is neither the attester nor elevated.
            InvalidAttestationTypeError: The new type is not allowed.
        """
        record = await self.attestation_repo.get_by_pair(subject_id, attester_id)
        if record is None:
            raise NotFoundError(
                f"No attestation of identity {subject_id} by identity {attester_id}"
            )

        decision = evaluate_mutation(subject_id, await self._actor(editor_id), record)
        if decision == PolicyDecision.DENY:
            logger.info(
                "Attestation edit denied",
                editor_id=editor_id,
                subject_id=subject_id,
                attester_id=attester_id,
            )
            raise AuthorizationError(
                f"Identity {editor_id} may not edit this attestation"
            )

        checked_type = None
        if attestation_type is not None:
            subject = await self.identities.get_identity(subject_id)
            entity_type = (
                await self.entity_type_of(subject) if subject else EntityType.HUMAN
            )
            checked_type = self._check_type(attestation_type, entity_type)
        if freeform_text is not None:
            freeform_text = freeform_text.strip()

        now = self.clock()
        updated = await self.attestation_repo.update(
            record.id,
            updated_at=now,
            attestation_type=checked_type,
            freeform_text=freeform_text,
        )

        if updated.kind == AttestationKind.PEER:
            subject = await self.identities.get_identity(subject_id)
            attester = await self.identities.get_identity(attester_id)
            if subject is not None and attester is not None:
                content = self.renderer.render_peer(
                    subject_name=subject.name,
                    attester_name=attester.name,
                    attestation_type=updated.attestation_type.value,
                    text=updated.freeform_text,
                    created=updated.created_at,
                )
                await self.content.update(updated.page_path, content, editor_id)

        logger.info(
            "Attestation edited",
            attestation_id=updated.id,
            editor_id=editor_id,
            subject_id=subject_id,
            attester_id=attester_id,
        )
        return updated

    async def protect(self, record: AttestationRecord) -> AttestationRecord:
        """Tamper-protect a record and its page.

        Creation already protects every record; this re-applies the rules to
        records whose protection was lost.
        """
        record.protect()
        if record.id is not None:
            updated = await self.attestation_repo.update(
                record.id,
                updated_at=self.clock(),
                protection_rules=record.protection_rules,
            )
            if updated is not None:
                record = updated
        await self.content.protect(record.page_path, record.protection_rules)
        logger.info("Attestation protected", attestation_id=record.id, page_path=record.page_path)
        return record

    async def authorize_page_action(
        self,
        actor_id: int,
        page_path: str,
        action: MutationAction = MutationAction.EDIT,
    ) -> bool:
        """Decide whether an actor may change a page.

        Pages that are not attestation records are not restricted here.
        """
        actor = await self._actor(actor_id)
        record = await self.attestation_repo.get_by_page_path(page_path)
        if record is not None:
            decision = evaluate_mutation(record.subject_id, actor, record, action)
            return decision == PolicyDecision.ALLOW

        names = parse_peer_page_path(page_path)
        if names is None:
            return True
        subject_name, attester_name = names
        decision = evaluate_mutation(
            await self.identities.resolve_user_id(subject_name),
            actor,
            None,
            action,
            page_attester_id=await self.identities.resolve_user_id(attester_name),
        )
        return decision == PolicyDecision.ALLOW

    async def authorize_page_edit(self, actor_id: int, page_path: str) -> bool:
        """Page edit filter for the host's content store."""
        return await self.authorize_page_action(actor_id, page_path, MutationAction.EDIT)

    async def get_attestation(self, subject_id: int, attester_id: int) -> AttestationRecord | None:
        return await self.attestation_repo.get_by_pair(subject_id, attester_id)

    async def list_attestations_for(self, subject_id: int) -> list[AttestationRecord]:
        """All records about a subject, oldest first."""
        return await self.attestation_repo.list_for_subject(subject_id)

    async def list_attestations_by(self, attester_id: int) -> list[AttestationRecord]:
        """All records written by an attester, oldest first."""
        return await self.attestation_repo.list_by_attester(attester_id)
