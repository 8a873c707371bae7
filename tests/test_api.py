"""Test the check-in API client against a mock HTTP transport."""

import datetime
import json

import httpx
import pytest

from churchcheckin import model


BASE_URL = "https://api.example.org/api"

SERVICE_JSON = {
    "id": "svc-1",
    "name": "Sunday Service",
    "startTime": "9:00 AM",
    "isCheckInOpen": True,
    "totalCheckIns": 12,
    "totalChildCheckIns": 3,
    "location": "Sanctuary",
    "scheduledDate": "2026-10-19",
    "status": "in_progress",
}

CHILD_JSON = {
    "id": "cc-1",
    "serviceCheckInId": "ci-2",
    "serviceId": "svc-1",
    "childName": "Tim Smith",
    "parentName": "Smith Family",
    "parentPhone": "555-0100",
    "securityCode": "K7Q2",
    "checkInTime": "2026-10-19T16:05:00Z",
    "dateOfBirth": "2019-05-01",
    "allergies": "Peanuts",
}


def make_api(handler) -> model.CheckInApi:
    return model.CheckInApi(
        BASE_URL, token="secret", transport=httpx.MockTransport(handler)
    )


async def test_list_todays_services() -> None:
    # Arrange
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[SERVICE_JSON])

    # Act
    async with make_api(handler) as api:
        services = await api.list_todays_services("church-1")
    # Assert
    assert requests[0].url.path == "/api/church/church-1/check-in/services/today"
    assert requests[0].headers["Authorization"] == "Bearer secret"
    assert requests[0].headers["Accept"] == "application/json"
    service = services[0]
    assert service.service_id == "svc-1"
    assert service.is_check_in_open
    assert service.total_check_ins == 12
    assert service.total_child_check_ins == 3
    assert service.scheduled_date == datetime.date(2026, 10, 19)


async def test_search_members_params() -> None:
    # Arrange
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": "m-1",
                    "firstName": "John",
                    "lastName": "Smith",
                    "dateOfBirth": "1985-03-02",
                    "familyId": "fam-smith",
                    "phone": "555-0100",
                }
            ],
        )

    # Act
    async with make_api(handler) as api:
        members = await api.search_members("church-1", "Smith", limit=5)
    # Assert
    assert requests[0].url.path == "/api/church/church-1/members/search"
    assert requests[0].url.params["q"] == "Smith"
    assert requests[0].url.params["limit"] == "5"
    assert members[0].full_name == "John Smith"
    assert members[0].date_of_birth == datetime.date(1985, 3, 2)
    assert members[0].email is None


async def test_create_check_in_body() -> None:
    # Arrange
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(
            201,
            json={
                "id": "ci-9",
                "serviceId": "svc-1",
                "checkInTime": "2026-10-19T16:00:00Z",
                "guestName": "Smith Family",
                "isGuest": True,
            },
        )

    # Act
    async with make_api(handler) as api:
        checkin = await api.create_check_in(
            "church-1", "svc-1", model.CheckInRequest(guest_name="Smith Family")
        )
    # Assert
    assert bodies == [{"guestName": "Smith Family"}]
    assert checkin.checkin_id == "ci-9"
    assert checkin.display_name == "Smith Family"
    assert checkin.check_in_time.tzinfo is not None


async def test_create_child_check_in() -> None:
    # Arrange
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json=CHILD_JSON)

    request = model.ChildCheckInRequest(
        child_name="Tim Smith",
        parent_name="Smith Family",
        parent_phone="555-0100",
        date_of_birth=datetime.date(2019, 5, 1),
        allergies="Peanuts",
    )
    # Act
    async with make_api(handler) as api:
        child = await api.create_child_check_in("church-1", "svc-1", "ci-2", request)
    # Assert
    assert requests[0].method == "POST"
    assert (
        requests[0].url.path
        == "/api/church/church-1/check-in/services/svc-1/check-ins/ci-2/children"
    )
    assert json.loads(requests[0].content) == {
        "childName": "Tim Smith",
        "dateOfBirth": "2019-05-01",
        "parentName": "Smith Family",
        "parentPhone": "555-0100",
        "allergies": "Peanuts",
    }
    assert child.parent_checkin_id == "ci-2"
    assert child.security_code == "K7Q2"
    assert child.is_checked_in


async def test_list_check_ins_page() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["pageSize"] == "20"
        return httpx.Response(
            200,
            json={
                "data": [
                    {
                        "id": "ci-1",
                        "serviceId": "svc-1",
                        "checkInTime": "2026-10-19T16:00:00Z",
                        "memberId": "m-1",
                        "member": {"id": "m-1", "firstName": "John", "lastName": "Smith"},
                    }
                ],
                "pagination": {
                    "page": 1,
                    "pageSize": 20,
                    "totalItems": 41,
                    "totalPages": 3,
                    "hasNextPage": True,
                },
            },
        )

    # Act
    async with make_api(handler) as api:
        page = await api.list_check_ins("church-1", "svc-1")
    # Assert
    assert page.total_items == 41
    assert page.has_next_page
    assert page.data[0].display_name == "John Smith"


async def test_error_response() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "message": "Member already checked in",
                "code": "ALREADY_CHECKED_IN",
                "details": {"memberId": "m-1"},
            },
        )

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.create_check_in(
                "church-1", "svc-1", model.CheckInRequest(member_id="m-1")
            )
    # Assert
    err = exc_info.value
    assert err.status == 409
    assert err.code == "ALREADY_CHECKED_IN"
    assert err.message == "Member already checked in"
    assert err.details == {"memberId": "m-1"}
    assert "409" in str(err)


async def test_error_response_without_json() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.get_check_in_stats("church-1")
    # Assert
    assert exc_info.value.status == 502
    assert exc_info.value.message == "Bad Gateway"
    assert exc_info.value.code == "UNKNOWN_ERROR"


async def test_network_error() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.list_todays_services("church-1")
    # Assert
    assert exc_info.value.status == 0
    assert exc_info.value.code == "NETWORK_ERROR"


async def test_invalid_json() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.list_todays_services("church-1")
    # Assert
    assert exc_info.value.code == "INVALID_RESPONSE"


async def test_missing_id() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"name": "no id"}])

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.list_todays_services("church-1")
    # Assert
    assert exc_info.value.code == "INVALID_RESPONSE"


async def test_unreadable_date_of_birth() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json=[{"id": "m-3", "firstName": "Tim", "dateOfBirth": "03/15/2015"}]
        )

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.search_members("church-1", "Tim")
    # Assert
    assert exc_info.value.code == "INVALID_RESPONSE"


async def test_create_with_empty_body() -> None:
    """A created response with no check-in record can't be used as a parent."""
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201)

    # Act
    async with make_api(handler) as api:
        with pytest.raises(model.ApiError) as exc_info:
            await api.create_check_in(
                "church-1", "svc-1", model.CheckInRequest(guest_name="Smith Family")
            )
    # Assert
    assert exc_info.value.code == "INVALID_RESPONSE"


async def test_stats_and_children() -> None:
    # Arrange
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/stats"):
            return httpx.Response(
                200, json={"totalCheckIns": 40, "totalGuests": 4, "totalChildren": 9}
            )
        return httpx.Response(200, json=[CHILD_JSON])

    # Act
    async with make_api(handler) as api:
        stats = await api.get_check_in_stats("church-1")
        children = await api.list_child_check_ins("church-1", "svc-1")
    # Assert
    assert stats.total_check_ins == 40
    assert stats.total_first_timers == 0
    assert stats.total_children == 9
    assert children[0].child_name == "Tim Smith"
    assert children[0].date_of_birth == datetime.date(2019, 5, 1)
