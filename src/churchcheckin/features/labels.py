"""Assemble name tag and child safety label contents.

Printing is done by an external print trigger, a callable that receives a
`LabelPayload`.
"""

import dataclasses
import logging
from typing import Callable, Optional

from churchcheckin import model
from churchcheckin.features import security


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class LabelPayload:
    """Contents of one printed label."""

    name: str
    security_code: Optional[str] = None
    """Pickup code, only on children's labels."""
    allergies: Optional[str] = None
    special_notes: Optional[str] = None

    @property
    def is_child_label(self) -> bool:
        return self.security_code is not None

    def lines(self) -> list[str]:
        """Label text, one line per element."""
        lines = [self.name]
        if self.security_code is not None:
            lines.append(f"Security Code: {self.security_code}")
        if self.allergies:
            lines.append(f"Allergies: {self.allergies}")
        if self.special_notes:
            lines.append(f"Special Needs: {self.special_notes}")
        return lines

    def text(self) -> str:
        return "\n".join(self.lines())


PrintTrigger = Callable[[LabelPayload], None]


def child_label(child: model.ChildCheckIn) -> LabelPayload:
    """Safety label for a checked-in child."""
    return LabelPayload(
        name=child.child_name,
        security_code=security.format_code(child.security_code),
        allergies=child.allergies,
        special_notes=child.special_notes,
    )


def name_tag(checkin: model.CheckIn) -> LabelPayload:
    """Name tag for a checked-in adult or guest."""
    return LabelPayload(name=checkin.display_name)


def name_tags(checkins: list[model.CheckIn]) -> list[LabelPayload]:
    """Name tags for the people in an adult check-in batch.

    A guest check-in that stands in for a family has no person to tag.
    """
    return [name_tag(checkin) for checkin in checkins if not checkin.is_guest]


def print_labels(payloads: list[LabelPayload], trigger: PrintTrigger) -> int:
    """Send labels to the print trigger. Returns the number sent."""
    for payload in payloads:
        logger.info("Printing label for %s", payload.name)
        trigger(payload)
    return len(payloads)
