"""Family check-in workflow.

A check-in runs in two phases. First every selected adult is checked in, or a
guest check-in is created in the family's name if only children were
selected. Then each selected child is checked in under the most recent adult
check-in, and the server issues the child's security code.

Requests within a batch are sent one at a time so that records are created in
selection order and the parent check-in is known before any child is sent. A
failed request is reported and the batch moves on. Records that were already
created are kept.
"""

import dataclasses
import datetime
import enum
import logging
from typing import Callable, Optional

from churchcheckin import model
from churchcheckin.features import notifications, sync


logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class CheckInStateError(Exception):
    """Operation isn't allowed in the current check-in state."""


class CheckInState(enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FAMILY_RESULTS = "family_results"
    FAMILY_SELECTED = "family_selected"
    MEMBERS_SELECTED = "members_selected"
    ADULTS_CHECKING_IN = "adults_checking_in"
    PENDING_CHILD_DETAILS = "pending_child_details"
    CHILDREN_CHECKING_IN = "children_checking_in"
    COMPLETED = "completed"


class ItemKind(enum.Enum):
    ADULT = "adult"
    GUEST = "guest"
    CHILD = "child"


@dataclasses.dataclass
class FailedItem:
    """A create request that failed and can be retried."""

    kind: ItemKind
    label: str
    """Name of the person who wasn't checked in."""
    service_id: str
    request: model.CheckInRequest | model.ChildCheckInRequest
    error: model.ApiError
    parent_checkin_id: Optional[str] = None
    """Parent check-in for child requests."""


@dataclasses.dataclass
class BatchResult:
    """Records created, and requests that failed, in one phase of a batch."""

    checkins: list[model.CheckIn] = dataclasses.field(default_factory=list)
    child_checkins: list[model.ChildCheckIn] = dataclasses.field(default_factory=list)
    failures: list[FailedItem] = dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


Invalidator = Callable[[sync.Mutation], None]


class CheckInOrchestrator:
    """Drive search, family selection, and the two-phase check-in."""

    api: model.CheckInApi
    church_id: str
    notifier: notifications.NotificationService
    """Receives success and failure messages for the operator."""
    invalidate: Invalidator
    """Called after each record is created so that displays are refetched."""
    search_limit: int
    today: Optional[datetime.date]
    """Date used to calculate ages. None for the current date."""

    state: CheckInState
    query: str
    families: list[model.Family]
    """Families found by the latest search."""
    search_error: Optional[model.ApiError]
    service_id: Optional[str]
    """Service that people are checked into."""
    family: Optional[model.Family]
    selected_ids: list[str]
    """Selected member IDs, in the order they were toggled on."""
    pending_children: list[model.FamilyMember]
    """Children waiting to be checked in after the adult phase."""
    parent_checkin_id: Optional[str]
    """Adult check-in that pending children are checked in under."""
    busy: bool
    """True while a batch is sending requests."""
    last_result: Optional[BatchResult]
    """Result of the most recently finished phase."""
    _generation: int

    def __init__(
        self,
        api: model.CheckInApi,
        church_id: str,
        notifier: notifications.NotificationService,
        invalidate: Invalidator,
        search_limit: int = 10,
        today: Optional[datetime.date] = None,
    ) -> None:
        self.api = api
        self.church_id = church_id
        self.notifier = notifier
        self.invalidate = invalidate
        self.search_limit = search_limit
        self.today = today
        self.service_id = None
        self.busy = False
        self.last_result = None
        self._generation = 0
        self._reset()
        self.state = CheckInState.IDLE

    def _reset(self) -> None:
        """Clear search and selection state."""
        self.query = ""
        self.families = []
        self.search_error = None
        self.family = None
        self.selected_ids = []
        self.pending_children = []
        self.parent_checkin_id = None

    def _require(self, *states: CheckInState) -> None:
        if self.state not in states:
            raise CheckInStateError(
                f"Not allowed while {self.state.value}, "
                f"expected {', '.join(s.value for s in states)}."
            )

    # Search and selection ----------------------------------------------------

    def set_query(self, query: str) -> None:
        """Update the search text. Searches need at least two characters."""
        self._require(
            CheckInState.IDLE,
            CheckInState.SEARCHING,
            CheckInState.FAMILY_RESULTS,
            CheckInState.COMPLETED,
        )
        self.query = query.strip()
        self.families = []
        self.search_error = None
        if len(self.query) >= MIN_QUERY_LENGTH:
            self.state = CheckInState.SEARCHING
        else:
            self.state = CheckInState.IDLE

    async def search(self) -> list[model.Family]:
        """Search members for the current query and group them into families.

        Results for a query that changed while the request was in flight are
        discarded. On failure, `search_error` is set and the search can be
        retried by calling this method again.
        """
        self._require(CheckInState.SEARCHING, CheckInState.FAMILY_RESULTS)
        query = self.query
        self.state = CheckInState.SEARCHING
        try:
            members = await self.api.search_members(
                self.church_id, query, self.search_limit
            )
        except model.ApiError as err:
            if query == self.query and self.state == CheckInState.SEARCHING:
                logger.warning("Member search for %r failed: %s", query, err)
                self.search_error = err
            return []
        if query != self.query or self.state != CheckInState.SEARCHING:
            return []
        self.search_error = None
        self.families = model.resolve_families(members, self.today)
        self.state = CheckInState.FAMILY_RESULTS
        return self.families

    def select_service(self, service_id: Optional[str]) -> None:
        self.service_id = service_id

    def select_family(self, family: model.Family) -> None:
        """Choose a family from the search results. Clears member selection."""
        self._require(
            CheckInState.FAMILY_RESULTS,
            CheckInState.FAMILY_SELECTED,
            CheckInState.MEMBERS_SELECTED,
        )
        self.family = family
        self.selected_ids = []
        self.state = CheckInState.FAMILY_SELECTED

    def toggle_member(self, member_id: str) -> None:
        """Select or deselect a family member."""
        self._require(CheckInState.FAMILY_SELECTED, CheckInState.MEMBERS_SELECTED)
        assert self.family is not None
        if self.family.get_member(member_id) is None:
            raise CheckInStateError(f"Member {member_id} is not in {self.family.name}.")
        if member_id in self.selected_ids:
            self.selected_ids.remove(member_id)
        else:
            self.selected_ids.append(member_id)
        if self.selected_ids:
            self.state = CheckInState.MEMBERS_SELECTED
        else:
            self.state = CheckInState.FAMILY_SELECTED

    @property
    def selected_members(self) -> list[model.FamilyMember]:
        """Selected members, in family order."""
        if self.family is None:
            return []
        return [m for m in self.family.members if m.member_id in self.selected_ids]

    @property
    def can_submit(self) -> bool:
        """True if the Check In action should be enabled."""
        return (
            self.state == CheckInState.MEMBERS_SELECTED
            and self.service_id is not None
            and not self.busy
        )

    def cancel(self) -> None:
        """Discard the current check-in without sending anything.

        A batch that is already sending requests finishes, but no longer
        changes the check-in state.
        """
        self._generation += 1
        self._reset()
        self.state = CheckInState.IDLE

    def _complete(self) -> None:
        self._reset()
        self.state = CheckInState.COMPLETED

    # Adult phase -------------------------------------------------------------

    async def submit(self) -> BatchResult:
        """Check in selected adults, or a stand-in guest for the children."""
        if not self.can_submit:
            raise CheckInStateError("Check-in can't be submitted yet.")
        assert self.family is not None and self.service_id is not None
        family = self.family
        service_id = self.service_id
        generation = self._generation
        selected = self.selected_members
        adults = [member for member in selected if not member.is_child]
        children = [member for member in selected if member.is_child]

        self.state = CheckInState.ADULTS_CHECKING_IN
        self.pending_children = children
        self.parent_checkin_id = None
        self.busy = True
        result = BatchResult()
        try:
            if adults:
                for adult in adults:
                    await self._send_checkin(
                        ItemKind.ADULT,
                        adult.name,
                        service_id,
                        model.CheckInRequest(member_id=adult.member_id),
                        result,
                    )
            elif children:
                await self._send_checkin(
                    ItemKind.GUEST,
                    family.name,
                    service_id,
                    model.CheckInRequest(guest_name=family.name),
                    result,
                )
        finally:
            self.busy = False
        logger.info(
            "Checked in %d of %d adults for %s",
            len(result.checkins),
            max(len(adults), 1 if children else 0),
            family.name,
        )
        self.last_result = result
        if result.checkins and not children:
            self.notifier.success(
                f"{family.name} checked in",
                ", ".join(c.display_name for c in result.checkins),
            )
        if generation != self._generation:
            return result
        if result.checkins:
            self.parent_checkin_id = result.checkins[-1].checkin_id
        if not children:
            self._complete()
        elif self.parent_checkin_id is not None:
            self.state = CheckInState.PENDING_CHILD_DETAILS
        return result

    async def _send_checkin(
        self,
        kind: ItemKind,
        label: str,
        service_id: str,
        request: model.CheckInRequest,
        result: BatchResult,
    ) -> Optional[model.CheckIn]:
        try:
            checkin = await self.api.create_check_in(self.church_id, service_id, request)
        except model.ApiError as err:
            logger.warning("Check-in failed for %s: %s", label, err)
            result.failures.append(FailedItem(kind, label, service_id, request, err))
            self.notifier.error(f"Unable to check in {label}", str(err))
            return None
        result.checkins.append(checkin)
        self.invalidate(sync.Mutation.CHECK_IN)
        return checkin

    # Child phase -------------------------------------------------------------

    def set_child_details(
        self,
        member_id: str,
        allergies: Optional[str] = None,
        special_needs: Optional[str] = None,
    ) -> None:
        """Record allergies and special needs for a pending child."""
        self._require(CheckInState.PENDING_CHILD_DETAILS)
        for child in self.pending_children:
            if child.member_id == member_id:
                child.allergies = allergies or None
                child.special_needs = special_needs or None
                return
        raise CheckInStateError(f"{member_id} is not waiting to be checked in.")

    async def check_in_children(self) -> BatchResult:
        """Check in each pending child under the parent check-in."""
        self._require(CheckInState.PENDING_CHILD_DETAILS)
        if self.busy:
            raise CheckInStateError("Check-in is already in progress.")
        assert self.family is not None and self.service_id is not None
        assert self.parent_checkin_id is not None
        family = self.family
        service_id = self.service_id
        parent_checkin_id = self.parent_checkin_id
        generation = self._generation
        children = list(self.pending_children)

        self.state = CheckInState.CHILDREN_CHECKING_IN
        self.busy = True
        result = BatchResult()
        try:
            for child in children:
                request = model.ChildCheckInRequest(
                    child_name=child.name,
                    parent_name=family.name,
                    parent_phone=family.phone,
                    date_of_birth=child.date_of_birth,
                    allergies=child.allergies,
                    special_notes=child.special_needs,
                )
                await self._send_child_checkin(
                    child.name, service_id, parent_checkin_id, request, result
                )
        finally:
            self.busy = False
        logger.info(
            "Checked in %d of %d children for %s",
            len(result.child_checkins),
            len(children),
            family.name,
        )
        self.last_result = result
        if result.child_checkins:
            self.notifier.success(
                f"{family.name} checked in",
                ", ".join(
                    f"{c.child_name}: {c.security_code}" for c in result.child_checkins
                ),
            )
        if generation == self._generation:
            self._complete()
        return result

    async def _send_child_checkin(
        self,
        label: str,
        service_id: str,
        parent_checkin_id: str,
        request: model.ChildCheckInRequest,
        result: BatchResult,
    ) -> Optional[model.ChildCheckIn]:
        try:
            child = await self.api.create_child_check_in(
                self.church_id, service_id, parent_checkin_id, request
            )
        except model.ApiError as err:
            logger.warning("Child check-in failed for %s: %s", label, err)
            result.failures.append(
                FailedItem(
                    ItemKind.CHILD, label, service_id, request, err, parent_checkin_id
                )
            )
            self.notifier.error(f"Unable to check in {label}", str(err))
            return None
        result.child_checkins.append(child)
        self.invalidate(sync.Mutation.CHILD_CHECK_IN)
        return child

    # Retry -------------------------------------------------------------------

    async def retry(
        self, item: FailedItem
    ) -> Optional[model.CheckIn | model.ChildCheckIn]:
        """Resend one failed request. Returns the new record, or None on failure.

        If the adult phase produced no parent check-in, a successful adult or
        guest retry becomes the parent and the children can be checked in.
        """
        result = BatchResult()
        record: Optional[model.CheckIn | model.ChildCheckIn]
        if item.kind == ItemKind.CHILD:
            assert isinstance(item.request, model.ChildCheckInRequest)
            assert item.parent_checkin_id is not None
            record = await self._send_child_checkin(
                item.label, item.service_id, item.parent_checkin_id, item.request, result
            )
        else:
            assert isinstance(item.request, model.CheckInRequest)
            record = await self._send_checkin(
                item.kind, item.label, item.service_id, item.request, result
            )
            if (
                record is not None
                and self.state == CheckInState.ADULTS_CHECKING_IN
                and not self.busy
                and self.parent_checkin_id is None
                and item.service_id == self.service_id
            ):
                self.parent_checkin_id = record.checkin_id
                self.state = CheckInState.PENDING_CHILD_DETAILS
        if record is not None:
            self.notifier.success(f"{item.label} checked in")
        return record
