"""Shared fixtures for check-in tests."""

import datetime
import itertools
from typing import Any, Optional

import pytest

from churchcheckin import model
from churchcheckin.features import notifications, orchestrator


TODAY = datetime.date(2026, 10, 19)
"""Fixed date so that member ages don't change over time."""


class FakeCheckInApi:
    """In-memory stand-in for `model.CheckInApi`.

    Keeps server-side totals so that tests can check what a polling station
    would see. Set `fail_next` entries to make calls raise `model.ApiError`.
    """

    def __init__(
        self,
        members: Optional[list[model.Member]] = None,
        services: Optional[list[model.Service]] = None,
    ) -> None:
        self.members = members or []
        self.services = services or []
        self.checkins: list[model.CheckIn] = []
        self.child_checkins: list[model.ChildCheckIn] = []
        self.calls: list[tuple[str, Any]] = []
        self.fail: dict[str, list[Optional[model.ApiError]]] = {}
        """Queued results per method name. None means succeed."""
        self._ids = itertools.count(1)
        self._codes = itertools.count(101)

    def fail_next(self, method: str, *outcomes: Optional[model.ApiError]) -> None:
        """Queue failures (ApiError) or successes (None) for a method."""
        self.fail.setdefault(method, []).extend(outcomes)

    def _check(self, method: str, arg: Any = None) -> None:
        self.calls.append((method, arg))
        queued = self.fail.get(method)
        if queued:
            err = queued.pop(0)
            if err is not None:
                raise err

    def _service(self, service_id: str) -> model.Service:
        for service in self.services:
            if service.service_id == service_id:
                return service
        raise model.ApiError("Service not found", status=404, code="NOT_FOUND")

    async def list_todays_services(self, church_id: str) -> list[model.Service]:
        self._check("list_todays_services")
        return [
            model.Service(
                s.service_id,
                s.name,
                s.start_time,
                s.is_check_in_open,
                s.total_check_ins,
                s.total_child_check_ins,
                s.location,
            )
            for s in self.services
        ]

    async def get_check_in_stats(self, church_id: str) -> model.CheckInStats:
        self._check("get_check_in_stats")
        return model.CheckInStats(
            total_check_ins=len(self.checkins),
            total_guests=sum(1 for c in self.checkins if c.is_guest),
            total_children=len(self.child_checkins),
        )

    async def list_check_ins(
        self, church_id: str, service_id: str, page_size: int = 20
    ) -> model.Page[model.CheckIn]:
        self._check("list_check_ins", service_id)
        data = [c for c in self.checkins if c.service_id == service_id]
        data = sorted(data, key=lambda c: c.check_in_time, reverse=True)[:page_size]
        return model.Page(data=data, page_size=page_size, total_items=len(data))

    async def list_child_check_ins(
        self, church_id: str, service_id: str
    ) -> list[model.ChildCheckIn]:
        self._check("list_child_check_ins", service_id)
        return [c for c in self.child_checkins if c.service_id == service_id]

    async def search_members(
        self, church_id: str, query: str, limit: int = 10
    ) -> list[model.Member]:
        self._check("search_members", query)
        query = query.lower()
        found = [
            m
            for m in self.members
            if query in m.full_name.lower() or query in (m.phone or "")
        ]
        return found[:limit]

    async def create_check_in(
        self, church_id: str, service_id: str, request: model.CheckInRequest
    ) -> model.CheckIn:
        self._check("create_check_in", request)
        service = self._service(service_id)
        member = None
        if request.member_id is not None:
            member = next(m for m in self.members if m.member_id == request.member_id)
        checkin = model.CheckIn(
            checkin_id=f"ci-{next(self._ids)}",
            service_id=service_id,
            check_in_time=datetime.datetime(2026, 10, 19, 9, 0)
            + datetime.timedelta(minutes=len(self.checkins)),
            member_id=request.member_id,
            member=member,
            guest_name=request.guest_name,
            is_guest=request.member_id is None,
        )
        self.checkins.append(checkin)
        service.total_check_ins += 1
        return checkin

    async def create_child_check_in(
        self,
        church_id: str,
        service_id: str,
        parent_checkin_id: str,
        request: model.ChildCheckInRequest,
    ) -> model.ChildCheckIn:
        self._check("create_child_check_in", (parent_checkin_id, request))
        service = self._service(service_id)
        child = model.ChildCheckIn(
            checkin_id=f"cc-{next(self._ids)}",
            parent_checkin_id=parent_checkin_id,
            service_id=service_id,
            child_name=request.child_name,
            parent_name=request.parent_name,
            parent_phone=request.parent_phone,
            security_code=f"K{next(self._codes)}",
            check_in_time=datetime.datetime(2026, 10, 19, 9, 30)
            + datetime.timedelta(minutes=len(self.child_checkins)),
            date_of_birth=request.date_of_birth,
            allergies=request.allergies,
            special_notes=request.special_notes,
        )
        self.child_checkins.append(child)
        service.total_child_check_ins += 1
        return child


def make_member(
    member_id: str,
    first_name: str,
    last_name: str,
    date_of_birth: Optional[datetime.date] = None,
    family_id: Optional[str] = None,
    phone: Optional[str] = None,
) -> model.Member:
    return model.Member(
        member_id, first_name, last_name, date_of_birth, family_id, phone
    )


def server_error(message: str = "Internal server error") -> model.ApiError:
    return model.ApiError(message, status=500, code="INTERNAL_ERROR")


@pytest.fixture
def smith_members() -> list[model.Member]:
    """Two adults and two children in the Smith family, plus a neighbor."""
    return [
        make_member("m-1", "John", "Smith", datetime.date(1985, 3, 2), "fam-smith", "555-0100"),
        make_member("m-2", "Jane", "Smith", datetime.date(1987, 7, 14), "fam-smith", "555-0100"),
        make_member("m-3", "Tim", "Smith", datetime.date(2019, 5, 1), "fam-smith", "555-0100"),
        make_member("m-4", "Amy", "Smith", datetime.date(2021, 11, 30), "fam-smith", "555-0100"),
        make_member("m-5", "Bob", "Smithers", datetime.date(1960, 1, 1), "fam-smithers", "555-0199"),
    ]


@pytest.fixture
def services() -> list[model.Service]:
    return [
        model.Service("svc-1", "Sunday Service", "9:00 AM", True, 0, 0, "Sanctuary"),
        model.Service("svc-2", "Kids Church", "11:00 AM", False, 0, 0),
    ]


@pytest.fixture
def fake_api(
    smith_members: list[model.Member], services: list[model.Service]
) -> FakeCheckInApi:
    return FakeCheckInApi(smith_members, services)


@pytest.fixture
def notifier() -> notifications.NotificationService:
    return notifications.NotificationService()


@pytest.fixture
def sent_notifications(
    notifier: notifications.NotificationService,
) -> list[notifications.Notification]:
    """Notifications published during a test."""
    received: list[notifications.Notification] = []
    notifier.subscribe(received.append)
    return received


@pytest.fixture
def mutations() -> list:
    """Mutations reported by the orchestrator."""
    return []


@pytest.fixture
def checkin(
    fake_api: FakeCheckInApi,
    notifier: notifications.NotificationService,
    mutations: list,
) -> orchestrator.CheckInOrchestrator:
    """Orchestrator with the first service selected."""
    orch = orchestrator.CheckInOrchestrator(
        fake_api,  # type: ignore[arg-type]
        "church-1",
        notifier,
        mutations.append,
        today=TODAY,
    )
    orch.select_service("svc-1")
    return orch
