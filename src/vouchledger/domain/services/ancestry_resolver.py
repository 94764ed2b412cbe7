"""Ancestry resolver: who invited whom.

The invited-by graph is derived from ledger state and never stored. Under
normal operation it is a forest, but corrupted rows can form a cycle, so
traversal keeps a visited set and always halts.
"""

from dataclasses import dataclass, field

from vouchledger.core.logging import get_logger
from vouchledger.domain.exceptions import IntegrityError
from vouchledger.domain.services.invite_ledger import InviteLedger

logger = get_logger(__name__)


@dataclass
class AncestryChain:
    """Ordered identity IDs from a user back towards the genesis ancestor.

    Attributes:
        user_ids: The chain, starting with the queried user.
        integrity_error: Set when traversal stopped at a cycle. The chain
            holds every identity visited before the repeat.
    """

    user_ids: list[int] = field(default_factory=list)
    integrity_error: IntegrityError | None = None

    def __iter__(self):
        return iter(self.user_ids)

    def __len__(self) -> int:
        return len(self.user_ids)

    def __getitem__(self, index):
        return self.user_ids[index]

    @property
    def cycle_detected(self) -> bool:
        return self.integrity_error is not None

    @property
    def root(self) -> int | None:
        """Last identity reached; the genesis ancestor when there is no cycle."""
        return self.user_ids[-1] if self.user_ids else None

    @property
    def is_genesis(self) -> bool:
        """Whether the queried user was not created through an invite."""
        return len(self.user_ids) == 1 and not self.cycle_detected


class AncestryResolver:
    """Walk consuming invites from a user up to their genesis ancestor."""

    def __init__(self, ledger: InviteLedger) -> None:
        self.ledger = ledger

    async def resolve_chain(self, user_id: int) -> AncestryChain:
        """Resolve the invited-by chain for a user.

        Follows the consuming invite's inviter until an identity has no
        consuming invite or an already-visited identity comes up again.
        A cycle is logged and attached to the result; it is never raised.

        Args:
            user_id: Identity to start from.

        Returns:
            The chain, starting at ``user_id``.
        """
        chain = AncestryChain(user_ids=[user_id])
        visited = {user_id}
        current = user_id

        while True:
            invite = await self.ledger.get_consuming_invite(current)
            if invite is None:
                return chain

            inviter_id = invite.inviter_id
            if inviter_id in visited:
                chain.integrity_error = IntegrityError(
                    f"Invitation cycle detected: {inviter_id} already appears in the chain",
                    user_ids=list(chain.user_ids),
                )
                logger.warning(
                    "Invitation cycle detected",
                    user_id=user_id,
                    repeated_id=inviter_id,
                    chain=chain.user_ids,
                )
                return chain

            chain.user_ids.append(inviter_id)
            visited.add(inviter_id)
            current = inviter_id
