"""Jinja2 rendering of attestation page bodies and paths.

Bodies are plain wiki text, so autoescaping is off. The sandbox still keeps
attester-supplied text from reaching template internals.
"""

import re
from datetime import datetime

from jinja2 import TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from vouchledger.core.logging import get_logger

logger = get_logger(__name__)

PEER_PAGE_TEMPLATE = """{{ '{{' }}Attestation
|attester=User:{{ attester_name }}
|subject=User:{{ subject_name }}
|created={{ created.strftime('%Y-%m-%d') }}
|attestation_type={{ attestation_type }}
{{ '}}' }}

{{ text }}

[[Category:Attestations]]
[[Category:Attestations by {{ attester_name }}]]
[[Attested by::User:{{ attester_name }}]]
[[Subject of attestation::User:{{ subject_name }}]]
[[Attestation type::{{ attestation_type }}]]
"""

ORIGIN_PAGE_TEMPLATE = """{{ '{{' }}InviteRecord
|entity_type={{ entity_type }}
|relationship_type={{ relationship_type }}
|invited_by=User:{{ inviter_name }}
|invited_at={{ invited_at.strftime('%Y-%m-%d') }}
|invite_code_id={{ invite_id }}
{% if known_as %}
|known_as={{ known_as }}
{% endif %}
{{ '}}' }}

{{ notes }}

[[Category:{{ entity_type | capitalize }} Users]]
[[Category:Attestations]]
[[Invited by::User:{{ inviter_name }}]]
[[Entity type::{{ entity_type }}]]
[[Attestation type::{{ relationship_type }}]]
"""

GENESIS_PAGE_TEMPLATE = """{{ '{{' }}EntityAttestation
|entity_type={{ entity_type }}
|genesis=yes
|registered={{ registered.strftime('%Y-%m-%d') }}
{{ '}}' }}

{{ name }} predates the invitation system.

[[Category:{{ entity_type | capitalize }} Users]]
[[Category:Genesis Users]]
[[Entity type::{{ entity_type }}]]
"""

# User:{subject}/Attestations/by-{attester}
_PEER_PATH = re.compile(r"^User:(?P<subject>[^/]+)/Attestations/by-(?P<attester>.+)$")


def peer_page_path(subject_name: str, attester_name: str) -> str:
    """Path of the page a member writes about another member."""
    return f"User:{subject_name}/Attestations/by-{attester_name}"


def origin_page_path(name: str) -> str:
    """Path of the invite-record written when an identity is created."""
    return f"User:{name}/Attestations/invite-record"


def genesis_page_path(name: str) -> str:
    """Path of the genesis record for an identity that predates invites."""
    return f"User:{name}/EntityAttestation"


def parse_peer_page_path(path: str) -> tuple[str, str] | None:
    """Split a peer attestation path into (subject_name, attester_name)."""
    match = _PEER_PATH.match(path)
    if match is None:
        return None
    return match.group("subject"), match.group("attester")


class PageRenderer:
    """Render attestation page bodies in a sandboxed Jinja2 environment."""

    def __init__(self) -> None:
        self.env = SandboxedEnvironment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_string: str, variables: dict) -> str:
        """Render a template string with variables.

        Raises:
            TemplateSyntaxError: If template syntax is invalid.
            UndefinedError: If a required variable is missing.
        """
        try:
            return self.env.from_string(template_string).render(**variables)
        except TemplateSyntaxError as e:
            logger.error("Template syntax error", error=str(e), line=e.lineno)
            raise
        except UndefinedError as e:
            logger.error("Undefined variable in template", error=str(e))
            raise

    def render_peer(
        self,
        subject_name: str,
        attester_name: str,
        attestation_type: str,
        text: str,
        created: datetime,
    ) -> str:
        return self.render(
            PEER_PAGE_TEMPLATE,
            {
                "subject_name": subject_name,
                "attester_name": attester_name,
                "attestation_type": attestation_type,
                "text": text,
                "created": created,
            },
        )

    def render_origin(
        self,
        entity_type: str,
        relationship_type: str,
        inviter_name: str,
        invited_at: datetime,
        invite_id: int,
        known_as: str | None,
        notes: str | None,
    ) -> str:
        return self.render(
            ORIGIN_PAGE_TEMPLATE,
            {
                "entity_type": entity_type,
                "relationship_type": relationship_type,
                "inviter_name": inviter_name,
                "invited_at": invited_at,
                "invite_id": invite_id,
                "known_as": known_as,
                "notes": notes or "",
            },
        )

    def render_genesis(self, name: str, entity_type: str, registered: datetime) -> str:
        return self.render(
            GENESIS_PAGE_TEMPLATE,
            {"name": name, "entity_type": entity_type, "registered": registered},
        )


# Global page renderer instance
_page_renderer: PageRenderer | None = None


def get_page_renderer() -> PageRenderer:
    """Get the global page renderer instance."""
    global _page_renderer
    if _page_renderer is None:
        _page_renderer = PageRenderer()
    return _page_renderer
