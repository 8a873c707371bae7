"""Test label contents and printing."""

import datetime

from churchcheckin import model
from churchcheckin.features import labels


def test_child_label() -> None:
    # Arrange
    child = model.ChildCheckIn(
        checkin_id="cc-1",
        parent_checkin_id="ci-1",
        service_id="svc-1",
        child_name="Tim Smith",
        parent_name="Smith Family",
        parent_phone="555-0100",
        security_code="k7q2",
        check_in_time=datetime.datetime(2026, 10, 19, 9, 30),
        allergies="Peanuts",
        special_notes="Needs inhaler",
    )
    # Act
    label = labels.child_label(child)
    # Assert
    assert label.is_child_label
    assert label.lines() == [
        "Tim Smith",
        "Security Code: K7Q2",
        "Allergies: Peanuts",
        "Special Needs: Needs inhaler",
    ]


def test_name_tag() -> None:
    # Arrange
    checkin = model.CheckIn(
        checkin_id="ci-1",
        service_id="svc-1",
        check_in_time=datetime.datetime(2026, 10, 19, 9, 0),
        member=model.Member("m-1", "John", "Smith"),
    )
    # Act
    label = labels.name_tag(checkin)
    # Assert
    assert not label.is_child_label
    assert label.text() == "John Smith"


def test_print_labels() -> None:
    # Arrange
    printed: list[labels.LabelPayload] = []
    payloads = [labels.LabelPayload("Tim Smith", "K7Q2"), labels.LabelPayload("Amy")]
    # Act
    count = labels.print_labels(payloads, printed.append)
    # Assert
    assert count == 2
    assert printed == payloads


def test_name_tags_skip_family_guest() -> None:
    # Arrange
    checkins = [
        model.CheckIn(
            checkin_id="ci-1",
            service_id="svc-1",
            check_in_time=datetime.datetime(2026, 10, 19, 9, 0),
            member_id="m-2",
            member=model.Member("m-2", "Jane", "Smith"),
        ),
        model.CheckIn(
            checkin_id="ci-2",
            service_id="svc-1",
            check_in_time=datetime.datetime(2026, 10, 19, 9, 1),
            guest_name="Smith Family",
            is_guest=True,
        ),
    ]
    # Act
    tags = labels.name_tags(checkins)
    # Assert
    assert [tag.name for tag in tags] == ["Jane Smith"]
    assert not tags[0].is_child_label
