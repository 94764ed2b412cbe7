"""Account name canonicalisation.

Names are compared in canonical form everywhere: the reserved system name,
registration, attestation subjects and invitee hints.
"""

import re

MAX_NAME_LENGTH = 255

# Characters that cannot appear in an account name or in a page path segment
_FORBIDDEN = re.compile(r"[#<>\[\]|{}/:@]")
_WHITESPACE = re.compile(r"\s+")


def canonicalize_name(name: str | None) -> str | None:
    """Return the canonical form of an account name, or None if it is invalid.

    Underscores become spaces, runs of whitespace collapse to one space,
    surrounding whitespace is dropped and the first character is uppercased.
    """
    if name is None:
        return None
    cleaned = _WHITESPACE.sub(" ", name.replace("_", " ")).strip()
    if not cleaned or len(cleaned) > MAX_NAME_LENGTH:
        return None
    if _FORBIDDEN.search(cleaned) or any(ord(ch) < 32 or ord(ch) == 127 for ch in cleaned):
        return None
    return cleaned[0].upper() + cleaned[1:]
