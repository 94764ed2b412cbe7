"""Identity entity.

Identities are owned by the identity provider. The engine only reads them,
except for registration and the reserved system identity bootstrap.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Identity:
    """A registered community member, bot, or the reserved system identity.

    Attributes:
        id: Primary key (integer).
        name: Canonical account name, unique.
        role: Role name; roles listed in settings.elevated_roles are elevated.
        is_system: Whether this is the reserved system identity.
        created_at: When the identity was created.
    """

    id: int
    name: str
    role: str = "member"
    is_system: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Identity name is required")
