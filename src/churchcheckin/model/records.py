"""Records exchanged with the check-in API.

The API uses camelCase JSON keys. Each record has a `from_api` constructor that
accepts a decoded JSON object and converts values to Python datatypes.
"""

import dataclasses
import datetime
from typing import Any, Callable, Generic, Optional, TypeVar

import dateutil.parser


T = TypeVar("T")


def parse_datetime(val: str | datetime.datetime | None) -> datetime.datetime | None:
    """Convert an ISO-8601 timestamp (may end in 'Z') to a datetime."""
    if val is None or isinstance(val, datetime.datetime):
        return val
    return dateutil.parser.isoparse(val)


def parse_date(val: str | datetime.date | None) -> datetime.date | None:
    """Convert an ISO-8601 date or timestamp to a date."""
    if val is None or val == "":
        return None
    if isinstance(val, datetime.datetime):
        return val.date()
    if isinstance(val, datetime.date):
        return val
    return dateutil.parser.isoparse(val).date()


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    """Optional fields are omitted from request bodies."""
    return {key: value for key, value in data.items() if value is not None}


@dataclasses.dataclass
class Member:
    """A congregant. Owned by the membership system, read-only here."""

    member_id: str
    first_name: str
    last_name: str
    date_of_birth: Optional[datetime.date] = None
    family_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Member":
        return cls(
            member_id=data["id"],
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            date_of_birth=parse_date(data.get("dateOfBirth")),
            family_id=data.get("familyId") or None,
            phone=data.get("phone") or None,
            email=data.get("email") or None,
        )


@dataclasses.dataclass
class Service:
    """A check-in window, such as a worship service or kids church."""

    service_id: str
    name: str
    start_time: str
    """Scheduled start time, as provided by the server."""
    is_check_in_open: bool = False
    """True while check-in is open for the service."""
    total_check_ins: int = 0
    """Server-reported number of adult and guest check-ins."""
    total_child_check_ins: int = 0
    """Server-reported number of child check-ins."""
    location: Optional[str] = None
    scheduled_date: Optional[datetime.date] = None
    status: str = "scheduled"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Service":
        return cls(
            service_id=data["id"],
            name=data.get("name", ""),
            start_time=data.get("startTime", ""),
            is_check_in_open=bool(data.get("isCheckInOpen", False)),
            total_check_ins=int(data.get("totalCheckIns") or 0),
            total_child_check_ins=int(data.get("totalChildCheckIns") or 0),
            location=data.get("location") or None,
            scheduled_date=parse_date(data.get("scheduledDate")),
            status=data.get("status", "scheduled"),
        )


@dataclasses.dataclass
class CheckIn:
    """An adult or guest check-in. Immutable once created."""

    checkin_id: str
    service_id: str
    check_in_time: datetime.datetime
    member_id: Optional[str] = None
    member: Optional[Member] = None
    """Member record embedded by the server, if any."""
    guest_name: Optional[str] = None
    is_guest: bool = False
    is_first_time: bool = False

    @property
    def display_name(self) -> str:
        """Name shown in the recent check-ins feed."""
        if self.member is not None:
            return self.member.full_name
        return self.guest_name or "Guest"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CheckIn":
        member = data.get("member")
        return cls(
            checkin_id=data["id"],
            service_id=data.get("serviceId", ""),
            check_in_time=parse_datetime(data["checkInTime"]),  # type: ignore[arg-type]
            member_id=data.get("memberId") or None,
            member=Member.from_api(member) if member else None,
            guest_name=data.get("guestName") or None,
            is_guest=bool(data.get("isGuest", False)),
            is_first_time=bool(data.get("isFirstTime", False)),
        )


@dataclasses.dataclass
class ChildCheckIn:
    """A child checked in under a parent (adult or guest) check-in."""

    checkin_id: str
    parent_checkin_id: str
    """The adult check-in that this child is released to."""
    service_id: str
    child_name: str
    parent_name: str
    parent_phone: str
    security_code: str
    """Opaque pickup code issued by the server."""
    check_in_time: datetime.datetime
    date_of_birth: Optional[datetime.date] = None
    allergies: Optional[str] = None
    special_notes: Optional[str] = None
    status: str = "checked_in"

    @property
    def is_checked_in(self) -> bool:
        """False once the child has been picked up."""
        return self.status != "checked_out"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ChildCheckIn":
        return cls(
            checkin_id=data["id"],
            parent_checkin_id=data.get("serviceCheckInId", ""),
            service_id=data.get("serviceId", ""),
            child_name=data.get("childName", ""),
            parent_name=data.get("parentName", ""),
            parent_phone=data.get("parentPhone", ""),
            security_code=data.get("securityCode", ""),
            check_in_time=parse_datetime(data["checkInTime"]),  # type: ignore[arg-type]
            date_of_birth=parse_date(data.get("dateOfBirth")),
            allergies=data.get("allergies") or None,
            special_notes=data.get("specialNotes") or None,
            status=data.get("status", "checked_in"),
        )


@dataclasses.dataclass
class CheckInStats:
    """Church-wide check-in statistics for today."""

    total_check_ins: int = 0
    total_guests: int = 0
    total_first_timers: int = 0
    total_children: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CheckInStats":
        return cls(
            total_check_ins=int(data.get("totalCheckIns") or 0),
            total_guests=int(data.get("totalGuests") or 0),
            total_first_timers=int(data.get("totalFirstTimers") or 0),
            total_children=int(data.get("totalChildren") or 0),
        )


@dataclasses.dataclass
class Page(Generic[T]):
    """One page of a paginated list response."""

    data: list[T]
    page: int = 1
    page_size: int = 20
    total_items: int = 0
    total_pages: int = 0
    has_next_page: bool = False

    @classmethod
    def from_api(
        cls, body: dict[str, Any], item_factory: Callable[[dict[str, Any]], T]
    ) -> "Page[T]":
        pagination = body.get("pagination", {})
        items = [item_factory(item) for item in body.get("data", [])]
        return cls(
            data=items,
            page=int(pagination.get("page", 1)),
            page_size=int(pagination.get("pageSize", len(items))),
            total_items=int(pagination.get("totalItems", len(items))),
            total_pages=int(pagination.get("totalPages", 1 if items else 0)),
            has_next_page=bool(pagination.get("hasNextPage", False)),
        )


@dataclasses.dataclass
class CheckInRequest:
    """Body of a create check-in request. Set member_id or guest_name."""

    member_id: Optional[str] = None
    guest_name: Optional[str] = None
    is_first_time: Optional[bool] = None

    def to_api(self) -> dict[str, Any]:
        return _drop_none(
            {
                "memberId": self.member_id,
                "guestName": self.guest_name,
                "isFirstTime": self.is_first_time,
            }
        )


@dataclasses.dataclass
class ChildCheckInRequest:
    """Body of a create child check-in request."""

    child_name: str
    parent_name: str
    parent_phone: str
    date_of_birth: Optional[datetime.date] = None
    allergies: Optional[str] = None
    special_notes: Optional[str] = None

    def to_api(self) -> dict[str, Any]:
        return _drop_none(
            {
                "childName": self.child_name,
                "dateOfBirth": (
                    None if self.date_of_birth is None
                    else self.date_of_birth.isoformat()
                ),
                "parentName": self.parent_name,
                "parentPhone": self.parent_phone,
                "allergies": self.allergies,
                "specialNotes": self.special_notes,
            }
        )
