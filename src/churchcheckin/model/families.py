"""Group member search results into families for check-in."""

import dataclasses
import datetime
from typing import Optional

from churchcheckin.model import records


CHILD_AGE_CUTOFF = 13
"""Members younger than this are checked in as children."""


@dataclasses.dataclass
class FamilyMember:
    """A member who can be selected for check-in."""

    member_id: str
    name: str
    age: Optional[int]
    """Whole years since birth, None if birth date is unknown."""
    is_child: bool
    """Children get a child check-in with a security code."""
    date_of_birth: Optional[datetime.date] = None
    allergies: Optional[str] = None
    special_needs: Optional[str] = None


@dataclasses.dataclass
class Family:
    """Members grouped for check-in. Built from search results, never stored."""

    family_id: str
    """Family ID from the membership system, or a last name and phone key."""
    name: str
    phone: str
    """Contact phone number, empty if unknown."""
    members: list[FamilyMember] = dataclasses.field(default_factory=list)

    @property
    def children(self) -> list[FamilyMember]:
        return [member for member in self.members if member.is_child]

    @property
    def adults(self) -> list[FamilyMember]:
        return [member for member in self.members if not member.is_child]

    def get_member(self, member_id: str) -> Optional[FamilyMember]:
        for member in self.members:
            if member.member_id == member_id:
                return member
        return None


def calculate_age(
    date_of_birth: Optional[datetime.date], today: Optional[datetime.date] = None
) -> Optional[int]:
    """Age in whole years, not counting a birthday that hasn't happened yet."""
    if date_of_birth is None:
        return None
    today = datetime.date.today() if today is None else today
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def family_key(member: records.Member) -> str:
    """Key used to group a member with their family."""
    if member.family_id:
        return member.family_id
    return f"{member.last_name}-{member.phone or 'no-phone'}"


def to_family_member(
    member: records.Member, today: Optional[datetime.date] = None
) -> FamilyMember:
    """Convert a member record to a check-in candidate."""
    age = calculate_age(member.date_of_birth, today)
    return FamilyMember(
        member_id=member.member_id,
        name=member.full_name,
        age=age,
        is_child=age is not None and age < CHILD_AGE_CUTOFF,
        date_of_birth=member.date_of_birth,
    )


def resolve_families(
    members: list[records.Member], today: Optional[datetime.date] = None
) -> list[Family]:
    """Group members by family ID, or by last name and phone number.

    Families are returned in the order that their first member appears in
    `members`. Members without a family ID or phone number are grouped by last
    name only, so unrelated members who share a last name end up in the same
    family. Staff can deselect them in the family dialog.
    """
    families: dict[str, Family] = {}
    for member in members:
        key = family_key(member)
        if key not in families:
            families[key] = Family(
                family_id=key,
                name=f"{member.last_name} Family",
                phone=member.phone or "",
            )
        families[key].members.append(to_family_member(member, today))
    return list(families.values())
