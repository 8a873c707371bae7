"""Search for families and check them in to today's services."""

from typing import Callable, Optional

from rich.markup import escape
from rich import progress_bar
import textual
from textual import app, binding, containers, screen, timer, widgets
from textual.widgets import option_list

from churchcheckin import config
from churchcheckin.features import attendance, labels, orchestrator, sync
import churchcheckin.view
from churchcheckin.view import (
    children_dialog,
    family_dialog,
    pickup_dialog,
    retry_dialog,
    validators,
)


SEARCH_DELAY = 0.3
"""Seconds to wait after the last keystroke before searching."""
PROGRESS_WIDTH = 12
"""Width of the bar showing progress toward expected attendance."""


class CheckInScreen(screen.Screen):
    """Live attendance, member search, and the recent check-ins feed."""

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "checkin_screen.tcss",
    ]
    BINDINGS = [
        binding.Binding("escape", "app.pop_screen", "Back to Main Screen", show=True),
        binding.Binding("p", "verify_pickup", "Verify Pickup Code", show=True),
        binding.Binding("ctrl+r", "refresh", "Refresh", show=True),
    ]

    checkin: orchestrator.CheckInOrchestrator
    """Check-in workflow for this station."""
    poller: sync.SyncPoller
    """Source of services, stats, and check-in feeds."""
    print_trigger: labels.PrintTrigger
    _search_timer: Optional[timer.Timer]
    _unsubscribe: Optional[Callable[[], None]]

    def __init__(
        self,
        checkin: orchestrator.CheckInOrchestrator,
        poller: sync.SyncPoller,
        print_trigger: labels.PrintTrigger,
    ) -> None:
        super().__init__()
        self.checkin = checkin
        self.poller = poller
        self.print_trigger = print_trigger
        self._search_timer = None
        self._unsubscribe = None

    def compose(self) -> app.ComposeResult:
        """Add search, services, and feed widgets to the screen."""
        yield widgets.Header()
        with containers.Horizontal(id="checkin-columns"):
            with containers.Vertical(id="checkin-left"):
                yield widgets.Static("Total Attendance Today: 0", id="checkin-counter")
                with containers.Vertical(id="checkin-error-panel"):
                    yield widgets.Static("", id="checkin-error-message")
                    yield widgets.Button("Retry", variant="error", id="checkin-retry")
                yield widgets.Label("Quick Check-in", classes="section-title")
                yield widgets.Input(
                    placeholder="Search by name or phone...",
                    id="checkin-search",
                    validators=[validators.SearchQuery()],
                    validate_on=["changed"],
                )
                yield widgets.Static("", id="checkin-search-status")
                yield widgets.OptionList(id="checkin-family-results")
                yield widgets.Label(
                    "Today's Services & Events", classes="section-title"
                )
                yield widgets.DataTable(
                    zebra_stripes=True, cursor_type="row", id="checkin-services-table"
                )
            with containers.Vertical(id="checkin-right"):
                yield widgets.Label("Recent Check-ins", classes="section-title")
                yield widgets.DataTable(
                    zebra_stripes=True, cursor_type="row", id="checkin-recent-table"
                )
                yield widgets.Static("", id="checkin-children-stats")
        yield widgets.Footer()

    def on_mount(self) -> None:
        """Set up tables and start listening for poller updates."""
        services_table = self.query_one("#checkin-services-table", widgets.DataTable)
        for label, key in [
            ("Service", "name"),
            ("Time", "time"),
            ("Location", "location"),
            ("Checked In", "checked_in"),
            ("Progress", "progress"),
            ("Status", "status"),
        ]:
            services_table.add_column(label, key=key)
        recent_table = self.query_one("#checkin-recent-table", widgets.DataTable)
        for label, key in [
            ("Name", "name"),
            ("Time", "time"),
            ("Service", "service"),
            ("Code", "code"),
        ]:
            recent_table.add_column(label, key=key)
        self._unsubscribe = self.poller.subscribe(self.on_poller_refresh)
        self.update_services()
        self.update_recent()
        self.update_stats()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()

    def on_poller_refresh(self, view: sync.View, snapshot: sync.SyncSnapshot) -> None:
        """Redraw whatever the poller just refreshed."""
        match view:
            case sync.View.SERVICES:
                self.update_services()
            case sync.View.STATS:
                self.update_stats()
            case sync.View.RECENT_CHECKINS | sync.View.CHILD_CHECKINS:
                self.update_recent()

    # Displays ----------------------------------------------------------------

    def update_services(self) -> None:
        """Redraw the services table, attendance counter, and error panel."""
        snapshot = self.poller.snapshot
        error = snapshot.errors.get(sync.View.SERVICES)
        panel = self.query_one("#checkin-error-panel")
        panel.set_class(error is not None, "visible")
        if error is not None:
            self.query_one("#checkin-error-message", widgets.Static).update(
                f"[red]Unable to load today's services: {escape(error.message)}[/]"
            )
        counter = self.query_one("#checkin-counter", widgets.Static)
        counter.update(
            "Total Attendance Today: "
            f"{attendance.total_attendance(snapshot.services)}  [dim]Live updating[/]"
        )

        if self.poller.service_id is None or snapshot.get_service(
            self.poller.service_id
        ) is None:
            service = attendance.default_service(snapshot.services)
            self.select_service(None if service is None else service.service_id)

        table = self.query_one("#checkin-services-table", widgets.DataTable)
        table.clear(columns=False)
        for service in attendance.display_services(
            snapshot.services, config.settings.expected_attendance
        ):
            name = escape(service.name)
            if service.service_id == self.poller.service_id:
                name = f"[bold]> {name}[/]"
            table.add_row(
                name,
                service.time,
                service.location,
                f"{service.checked_in} / {service.expected}",
                progress_bar.ProgressBar(
                    total=1.0, completed=service.fraction, width=PROGRESS_WIDTH
                ),
                "[green]Open[/]" if service.is_active else "[dim]Upcoming[/]",
                key=service.service_id,
            )

    def update_recent(self) -> None:
        """Redraw the recent check-ins feed."""
        snapshot = self.poller.snapshot
        service = snapshot.get_service(self.poller.service_id)
        entries = attendance.recent_check_ins(
            snapshot.recent_checkins,
            snapshot.child_checkins,
            "Service" if service is None else service.name,
            limit=config.settings.recent_limit,
        )
        table = self.query_one("#checkin-recent-table", widgets.DataTable)
        table.clear(columns=False)
        for entry in entries:
            name = escape(entry.name)
            if entry.is_child:
                name = f"[green]{name}[/] (Child)"
            table.add_row(
                name, entry.time, entry.service, entry.security_code or "",
                key=f"{'child' if entry.is_child else 'adult'}-{entry.checkin_id}",
            )

    def update_stats(self) -> None:
        stats = self.poller.snapshot.stats
        text = "" if stats is None else f"{stats.total_children} children checked in today"
        self.query_one("#checkin-children-stats", widgets.Static).update(text)

    def select_service(self, service_id: Optional[str]) -> None:
        """Check in to, and show the feed for, a service."""
        self.checkin.select_service(service_id)
        self.poller.select_service(service_id)

    @textual.on(widgets.DataTable.RowSelected, "#checkin-services-table")
    def on_service_selected(self, message: widgets.DataTable.RowSelected) -> None:
        self.select_service(message.row_key.value)
        self.update_services()
        self.update_recent()

    @textual.on(widgets.Button.Pressed, "#checkin-retry")
    async def action_refresh(self) -> None:
        """Reload everything from the server."""
        await self.poller.refresh_all()

    def action_verify_pickup(self) -> None:
        self.app.push_screen(pickup_dialog.PickupDialog(self.poller.snapshot.child_checkins))

    # Search ------------------------------------------------------------------

    @textual.on(widgets.Input.Changed, "#checkin-search")
    def on_search_changed(self, message: widgets.Input.Changed) -> None:
        """Search again shortly after the operator stops typing."""
        if self._search_timer is not None:
            self._search_timer.stop()
        if self.checkin.state not in (
            orchestrator.CheckInState.IDLE,
            orchestrator.CheckInState.SEARCHING,
            orchestrator.CheckInState.FAMILY_RESULTS,
            orchestrator.CheckInState.COMPLETED,
        ):
            return
        self.checkin.set_query(message.value)
        self.show_families()
        if self.checkin.state == orchestrator.CheckInState.SEARCHING:
            self.query_one("#checkin-search-status", widgets.Static).update("Searching...")
            self._search_timer = self.set_timer(SEARCH_DELAY, self.run_search)

    @textual.work(exclusive=True, group="search")
    async def run_search(self) -> None:
        if self.checkin.state != orchestrator.CheckInState.SEARCHING:
            return
        await self.checkin.search()
        self.show_families()

    def show_families(self) -> None:
        """Show search results, or why there aren't any."""
        results = self.query_one("#checkin-family-results", widgets.OptionList)
        status = self.query_one("#checkin-search-status", widgets.Static)
        results.clear_options()
        if self.checkin.search_error is not None:
            status.update(
                f"[red]Search failed: {escape(self.checkin.search_error.message)}[/] "
                "Press Enter to retry."
            )
            return
        if self.checkin.state != orchestrator.CheckInState.FAMILY_RESULTS:
            status.update("")
            return
        if not self.checkin.families:
            status.update(f'No families found matching "{self.checkin.query}"')
            return
        status.update("")
        results.add_options(
            [
                option_list.Option(
                    f"[bold]{escape(family.name)}[/]  {family.phone or 'No phone'}  "
                    f"{len(family.members)} members",
                    id=str(idx),
                )
                for idx, family in enumerate(self.checkin.families)
            ]
        )

    @textual.on(widgets.Input.Submitted, "#checkin-search")
    def on_search_submitted(self) -> None:
        """Retry a failed search."""
        if self.checkin.state == orchestrator.CheckInState.SEARCHING:
            self.run_search()

    # Check-in flow -----------------------------------------------------------

    @textual.on(widgets.OptionList.OptionSelected, "#checkin-family-results")
    def on_family_selected(self, message: widgets.OptionList.OptionSelected) -> None:
        """Open the family dialog."""
        if message.option.id is None:
            return
        family = self.checkin.families[int(message.option.id)]
        self.checkin.select_family(family)
        self.app.push_screen(
            family_dialog.FamilyDialog(self.checkin, self.poller.snapshot.services),
            callback=self.after_adults,
        )

    def after_adults(self, result: Optional[orchestrator.BatchResult]) -> None:
        """Print name tags, then continue with the children or retry failures."""
        self.poller.select_service(self.checkin.service_id)
        if result is None:
            self.finish_checkin()
            return
        labels.print_labels(labels.name_tags(result.checkins), self.print_trigger)
        if not result.ok:
            self.app.push_screen(
                retry_dialog.RetryDialog(self.checkin, result.failures),
                callback=self.after_retry,
            )
            return
        self.after_retry(True)

    def after_retry(self, can_continue: bool | None) -> None:
        if self.checkin.state == orchestrator.CheckInState.PENDING_CHILD_DETAILS:
            self.app.push_screen(
                children_dialog.ChildrenDialog(self.checkin),
                callback=self.after_children,
            )
        else:
            self.finish_checkin()

    def after_children(self, result: Optional[orchestrator.BatchResult]) -> None:
        """Print labels for the children who were checked in."""
        if result is None:
            self.finish_checkin()
            return

        def _show_labels(_: bool | None = None) -> None:
            if result.child_checkins:
                self.app.push_screen(
                    children_dialog.LabelDialog(
                        result.child_checkins, self.print_trigger
                    )
                )

        if not result.ok:
            self.app.push_screen(
                retry_dialog.RetryDialog(self.checkin, result.failures),
                callback=_show_labels,
            )
        else:
            _show_labels()
        self.finish_checkin()

    def finish_checkin(self) -> None:
        """Clear the search box for the next family."""
        search = self.query_one("#checkin-search", widgets.Input)
        search.value = ""
        self.show_families()
        search.focus()
