"""
Membership references embedded in ``Order.notes``.

Orders written by the storefront keep purchased membership ids in the notes
field instead of in ``order_items``:

    MEMBERSHIPS:[3,7]
    MEMBERSHIPS:[3,7]. Please leave the parcel at reception

Existing rows depend on this exact shape, so the writer and the parser below
must stay in step.
"""
import re
from typing import Iterable, List, Optional

MEMBERSHIPS_PREFIX = "MEMBERSHIPS:"
MEMBERSHIPS_PATTERN = re.compile(r"MEMBERSHIPS:\[([\d,\s]*)\]")

def format_order_notes(membership_ids: Iterable[int], notes: Optional[str] = None) -> Optional[str]:
    """Build the notes value stored on a new order."""
    ids = list(membership_ids)
    text = notes.strip() if notes else ""
    if not ids:
        return text or None

    encoded = f"{MEMBERSHIPS_PREFIX}[{','.join(str(i) for i in ids)}]"
    if text:
        return f"{encoded}. {text}"
    return encoded

def parse_membership_ids(notes: Optional[str]) -> List[int]:
    if not notes:
        return []
    match = MEMBERSHIPS_PATTERN.search(notes)
    if not match:
        return []
    return [int(part) for part in match.group(1).split(",") if part.strip()]

def strip_membership_prefix(notes: Optional[str]) -> Optional[str]:
    """Customer's own instructions, without the membership block."""
    if not notes:
        return None
    match = MEMBERSHIPS_PATTERN.match(notes)
    if not match:
        return notes
    rest = notes[match.end():]
    if rest.startswith(". "):
        rest = rest[2:]
    return rest or None
