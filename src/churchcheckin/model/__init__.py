"""The churchcheckin.model namespace."""

# ruff: noqa: F401
from churchcheckin.model.records import (
    CheckIn,
    CheckInRequest,
    CheckInStats,
    ChildCheckIn,
    ChildCheckInRequest,
    Member,
    Page,
    Service,
)
from churchcheckin.model.api import ApiError, CheckInApi
from churchcheckin.model.families import (
    CHILD_AGE_CUTOFF,
    Family,
    FamilyMember,
    calculate_age,
    resolve_families,
)
