"""Display and verify children's pickup security codes.

Codes are generated by the server when a child is checked in. They are treated
as opaque tokens here: only compared and displayed.
"""

import collections
from typing import Iterable, Optional

from churchcheckin import model


def format_code(code: str | None) -> str:
    """Normalize a code for display and comparison."""
    if not code:
        return ""
    return "".join(code.split()).upper()


def codes_match(expected: str | None, presented: str | None) -> bool:
    """True if a presented pickup code matches a child's code."""
    expected_code = format_code(expected)
    return bool(expected_code) and expected_code == format_code(presented)


def find_by_code(
    child_checkins: Iterable[model.ChildCheckIn], presented: str
) -> Optional[model.ChildCheckIn]:
    """The checked-in child whose security code matches, or None."""
    for child in child_checkins:
        if child.is_checked_in and codes_match(child.security_code, presented):
            return child
    return None


def duplicate_codes(child_checkins: Iterable[model.ChildCheckIn]) -> set[str]:
    """Codes shared by more than one checked-in child of the same service.

    The server must never issue these. A non-empty result means pickup
    verification for those codes is ambiguous.
    """
    counts: collections.Counter[tuple[str, str]] = collections.Counter(
        (child.service_id, format_code(child.security_code))
        for child in child_checkins
        if child.is_checked_in and child.security_code
    )
    return {code for (_, code), count in counts.items() if count > 1}
