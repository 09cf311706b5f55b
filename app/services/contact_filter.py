"""Contact-info redaction for chat messages.

Strangers must not be able to swap phone numbers, emails, social handles or
move to another messenger before a mutual reveal, so every match of the
patterns below is replaced with REDACTION_MARKER before a message is stored.
The marker itself matches none of the patterns, which keeps ``redact``
idempotent.
"""

import re
from typing import NamedTuple

REDACTION_MARKER = "[연락처 정보 삭제됨]"

# Applied in order, each against the output of the previous one
CONTACT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Phone numbers: 010-1234-5678
    re.compile(r"[0-9]{3}[-.\s]?[0-9]{4}[-.\s]?[0-9]{4}"),
    # Phone variants: 02-123-4567, 031-1234-5678
    re.compile(r"[0-9]{2,3}[-.\s]?[0-9]{3,4}[-.\s]?[0-9]{4}"),
    # Email addresses
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    # @handles (instagram, twitter)
    re.compile(r"@[a-zA-Z0-9_.]{1,30}"),
    # Messaging apps and social networks by name
    re.compile(r"카[카톡]+|카카오톡?", re.IGNORECASE),
    re.compile(r"인스타그?램?|insta(?:gram)?", re.IGNORECASE),
    re.compile(r"라인|line", re.IGNORECASE),
    re.compile(r"텔레그램|telegram", re.IGNORECASE),
)


class RedactionResult(NamedTuple):
    filtered: str
    has_contact: bool


def redact(text: str) -> RedactionResult:
    """Replace every contact-info match in ``text`` with the redaction marker."""
    filtered = text
    has_contact = False

    for pattern in CONTACT_PATTERNS:
        filtered, count = pattern.subn(REDACTION_MARKER, filtered)
        if count:
            has_contact = True

    return RedactionResult(filtered=filtered, has_contact=has_contact)
