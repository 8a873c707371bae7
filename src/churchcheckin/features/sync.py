"""Keep check-in data current by polling the API.

There is no push channel. Each view is refetched on its own interval, so a
check-in recorded at another station shows up here within one interval plus
request latency. Polling never pauses, even when the station is idle.
"""

import asyncio
import dataclasses
import datetime
import enum
import logging
from typing import Awaitable, Callable, Optional

from churchcheckin import model
from churchcheckin.features import security


logger = logging.getLogger(__name__)


class View(enum.Enum):
    """Data sets derived from the API."""

    SERVICES = "services"
    STATS = "stats"
    RECENT_CHECKINS = "recent_checkins"
    CHILD_CHECKINS = "child_checkins"


class Mutation(enum.Enum):
    """Operations that change server data."""

    CHECK_IN = "check_in"
    CHILD_CHECK_IN = "child_check_in"


INVALIDATES: dict[Mutation, frozenset[View]] = {
    Mutation.CHECK_IN: frozenset(
        {View.SERVICES, View.STATS, View.RECENT_CHECKINS}
    ),
    Mutation.CHILD_CHECK_IN: frozenset(
        {View.SERVICES, View.STATS, View.CHILD_CHECKINS}
    ),
}
"""Views that must be refetched after each mutation succeeds."""

FEED_VIEWS = (View.RECENT_CHECKINS, View.CHILD_CHECKINS)


@dataclasses.dataclass
class SyncSnapshot:
    """Latest data fetched for each view."""

    services: list[model.Service] = dataclasses.field(default_factory=list)
    stats: Optional[model.CheckInStats] = None
    recent_checkins: list[model.CheckIn] = dataclasses.field(default_factory=list)
    child_checkins: list[model.ChildCheckIn] = dataclasses.field(default_factory=list)
    errors: dict[View, model.ApiError] = dataclasses.field(default_factory=dict)
    """Error from the most recent failed fetch of each view."""
    refreshed_at: dict[View, datetime.datetime] = dataclasses.field(
        default_factory=dict
    )
    """Time of the most recent successful fetch of each view."""

    def get_service(self, service_id: Optional[str]) -> Optional[model.Service]:
        for service in self.services:
            if service.service_id == service_id:
                return service
        return None


Listener = Callable[[View, SyncSnapshot], None]


class SyncPoller:
    """Periodically refresh services, stats, and the selected service's feeds."""

    api: model.CheckInApi
    church_id: str
    intervals: dict[View, float]
    """Seconds between refreshes of each view."""
    feed_page_size: int
    """Number of adult check-ins requested for the recent feed."""
    snapshot: SyncSnapshot
    service_id: Optional[str]
    """Service whose check-in feeds are polled."""
    _listeners: list[Listener]
    _loops: list[asyncio.Task]
    _pending: set[asyncio.Task]

    def __init__(
        self,
        api: model.CheckInApi,
        church_id: str,
        services_interval: float = 30,
        stats_interval: float = 30,
        feed_interval: float = 10,
        feed_page_size: int = 20,
    ) -> None:
        self.api = api
        self.church_id = church_id
        self.intervals = {
            View.SERVICES: services_interval,
            View.STATS: stats_interval,
            View.RECENT_CHECKINS: feed_interval,
            View.CHILD_CHECKINS: feed_interval,
        }
        self.feed_page_size = feed_page_size
        self.snapshot = SyncSnapshot()
        self.service_id = None
        self._listeners = []
        self._loops = []
        self._pending = set()

    @property
    def running(self) -> bool:
        return bool(self._loops)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after each refresh. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, view: View) -> None:
        for listener in list(self._listeners):
            listener(view, self.snapshot)

    def start(self) -> None:
        """Start polling. Must be called from a running event loop."""
        if self.running:
            return
        groups = [
            ([View.SERVICES], self.intervals[View.SERVICES]),
            ([View.STATS], self.intervals[View.STATS]),
            (list(FEED_VIEWS), self.intervals[View.RECENT_CHECKINS]),
        ]
        self._loops = [
            asyncio.create_task(self._poll(views, interval))
            for views, interval in groups
        ]
        logger.info("Polling started for church %s", self.church_id)

    async def stop(self) -> None:
        """Stop polling and wait for scheduled refreshes to be cancelled."""
        tasks = self._loops + list(self._pending)
        self._loops = []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        logger.info("Polling stopped for church %s", self.church_id)

    async def _poll(self, views: list[View], interval: float) -> None:
        while True:
            for view in views:
                await self.refresh(view)
            await asyncio.sleep(interval)

    def select_service(self, service_id: Optional[str]) -> None:
        """Poll feeds for a different service."""
        if service_id == self.service_id:
            return
        self.service_id = service_id
        self.snapshot.recent_checkins = []
        self.snapshot.child_checkins = []
        for view in FEED_VIEWS:
            self.snapshot.errors.pop(view, None)
        self.invalidate(*FEED_VIEWS)

    async def refresh(self, view: View) -> None:
        """Fetch one view. Failures are recorded, never raised."""
        fetchers: dict[View, Callable[[], Awaitable[None]]] = {
            View.SERVICES: self._fetch_services,
            View.STATS: self._fetch_stats,
            View.RECENT_CHECKINS: self._fetch_recent,
            View.CHILD_CHECKINS: self._fetch_children,
        }
        try:
            await fetchers[view]()
        except model.ApiError as err:
            logger.warning("Unable to refresh %s: %s", view.value, err)
            self.snapshot.errors[view] = err
        else:
            self.snapshot.errors.pop(view, None)
            self.snapshot.refreshed_at[view] = datetime.datetime.now()
        self._notify(view)

    async def refresh_all(self) -> None:
        """Fetch every view, e.g., when the operator presses Retry."""
        for view in View:
            await self.refresh(view)

    async def _fetch_services(self) -> None:
        self.snapshot.services = await self.api.list_todays_services(self.church_id)

    async def _fetch_stats(self) -> None:
        self.snapshot.stats = await self.api.get_check_in_stats(self.church_id)

    async def _fetch_recent(self) -> None:
        service_id = self.service_id
        if service_id is None:
            self.snapshot.recent_checkins = []
            return
        page = await self.api.list_check_ins(
            self.church_id, service_id, page_size=self.feed_page_size
        )
        if service_id == self.service_id:
            self.snapshot.recent_checkins = page.data

    async def _fetch_children(self) -> None:
        service_id = self.service_id
        if service_id is None:
            self.snapshot.child_checkins = []
            return
        children = await self.api.list_child_check_ins(self.church_id, service_id)
        if service_id != self.service_id:
            return
        self.snapshot.child_checkins = children
        duplicates = security.duplicate_codes(children)
        if duplicates:
            logger.warning(
                "Security codes issued to more than one child: %s",
                ", ".join(sorted(duplicates)),
            )

    def invalidate(self, *views: View) -> None:
        """Schedule an immediate refetch of views."""
        for view in views:
            task = asyncio.create_task(self.refresh(view))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    def invalidate_for(self, mutation: Mutation) -> None:
        """Refetch every view affected by a successful mutation."""
        self.invalidate(*sorted(INVALIDATES[mutation], key=lambda v: v.value))

    async def wait_idle(self) -> None:
        """Wait for scheduled refetches to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
