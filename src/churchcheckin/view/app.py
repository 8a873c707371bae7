"""Main entry point for the Church Check-In application."""

import logging
import pathlib

import textual
from rich.markup import escape
from textual import app, containers, widgets
from textual.logging import TextualHandler

from churchcheckin import config, model
from churchcheckin.features import (
    labels,
    notifications,
    orchestrator,
    summary,
    sync,
)
import churchcheckin.view
from churchcheckin.view import checkin_screen, pickup_dialog


logger = logging.getLogger(__name__)

SEVERITIES = {
    notifications.Severity.DEFAULT: "information",
    notifications.Severity.SUCCESS: "information",
    notifications.Severity.DESTRUCTIVE: "error",
}
"""Textual toast severity for each notification severity."""


class ChurchCheckIn(app.App):
    """Main application and introduction screen."""

    CSS_PATH = churchcheckin.view.CSS_FOLDER / "root.tcss"

    TITLE = "Church Check-In"
    BINDINGS = [
        ("c", "check_in", "Check In"),
        ("p", "verify_pickup", "Verify Pickup Code"),
        ("r", "refresh", "Refresh"),
    ]

    api: model.CheckInApi
    notifier: notifications.NotificationService
    poller: sync.SyncPoller
    """Keeps services, stats, and check-in feeds up to date."""
    checkin: orchestrator.CheckInOrchestrator
    print_trigger: labels.PrintTrigger
    """Sends child safety labels to a printer."""

    def __init__(self, print_trigger: labels.PrintTrigger | None = None) -> None:
        super().__init__()
        church_id = config.settings.church_id or ""
        self.api = model.CheckInApi(
            config.settings.api_base_url,
            config.settings.api_token,
            timeout=config.settings.request_timeout,
        )
        self.notifier = notifications.NotificationService()
        self.poller = sync.SyncPoller(
            self.api,
            church_id,
            services_interval=config.settings.services_poll_seconds,
            stats_interval=config.settings.stats_poll_seconds,
            feed_interval=config.settings.feed_poll_seconds,
            feed_page_size=config.settings.recent_limit,
        )
        self.checkin = orchestrator.CheckInOrchestrator(
            self.api,
            church_id,
            self.notifier,
            self.poller.invalidate_for,
            search_limit=config.settings.search_limit,
        )
        self.print_trigger = print_trigger or self.show_label

    def compose(self) -> app.ComposeResult:
        """Add widgets to screen."""
        yield widgets.Header()

        with containers.HorizontalGroup(classes="pane"):
            with containers.HorizontalGroup(id="main-top-menu", classes="toolbar"):
                yield widgets.Button(
                    "Check In",
                    id="main-check-in",
                    variant="primary",
                    tooltip="Search for families and check them in.",
                )
                yield widgets.Button(
                    "Verify Pickup Code",
                    id="main-verify-pickup",
                    tooltip="Confirm a guardian's code before releasing a child.",
                )
                yield widgets.Button("Refresh", id="main-refresh")
                yield widgets.Button(
                    "New Settings File",
                    id="main-new-settings",
                    tooltip=f"Create {config.CONFIG_FILE_NAME} in the current folder.",
                )

        with containers.VerticalGroup(classes="pane"):
            with containers.HorizontalGroup():
                yield widgets.Label("Configuration File: ", classes="emphasis")
                yield widgets.Label(
                    str(config.settings.config_path or "Defaults"),
                    id="main-settings-path",
                )
            with containers.HorizontalGroup():
                yield widgets.Label("Server: ", classes="emphasis")
                yield widgets.Label(config.settings.api_base_url, id="main-api-url")
            with containers.HorizontalGroup():
                yield widgets.Label("Church: ", classes="emphasis")
                yield widgets.Label(
                    config.settings.church_id or "Not configured", id="main-church-id"
                )
        yield widgets.Markdown(summary.get_summary(self.poller.snapshot), id="main-summary")
        yield widgets.Footer()

    def on_mount(self) -> None:
        """Start polling the server for today's services."""
        self.notifier.subscribe(self.show_notification)
        self.poller.subscribe(self.on_poller_refresh)
        if not config.settings.church_id:
            self.notify(
                f"Set church_id in {config.CONFIG_FILE_NAME} "
                f"or {config.ENV_CHURCH_ID} to check people in.",
                title="No church configured",
                severity="error",
                timeout=30,
            )
            return
        self.poller.start()

    async def on_unmount(self) -> None:
        await self.poller.stop()
        await self.api.aclose()

    def show_notification(self, notification: notifications.Notification) -> None:
        """Display a check-in notification as a toast."""
        self.notify(
            escape(notification.description or ""),
            title=escape(notification.title),
            severity=SEVERITIES[notification.severity],  # type: ignore[arg-type]
            timeout=notification.duration,
        )

    def show_label(self, payload: labels.LabelPayload) -> None:
        """Print trigger used when no label printer is attached."""
        kind = "Safety label" if payload.is_child_label else "Name tag"
        logger.info("%s for %s: %s", kind, payload.name, payload.text())
        self.notify(escape(payload.text()), title=f"{kind} sent to printer")

    def on_poller_refresh(self, view: sync.View, snapshot: sync.SyncSnapshot) -> None:
        """Update the summary when services or stats change."""
        if view in (sync.View.SERVICES, sync.View.STATS):
            self.query_one("#main-summary", widgets.Markdown).update(
                summary.get_summary(snapshot)
            )

    @textual.on(widgets.Button.Pressed, "#main-check-in")
    def action_check_in(self) -> None:
        """Go to the check-in screen."""
        if not config.settings.church_id:
            self.notify("No church configured.", severity="error")
            return
        self.push_screen(
            checkin_screen.CheckInScreen(self.checkin, self.poller, self.print_trigger)
        )

    @textual.on(widgets.Button.Pressed, "#main-verify-pickup")
    def action_verify_pickup(self) -> None:
        """Check a pickup code against the selected service's children."""
        self.push_screen(
            pickup_dialog.PickupDialog(self.poller.snapshot.child_checkins)
        )

    @textual.on(widgets.Button.Pressed, "#main-refresh")
    async def action_refresh(self) -> None:
        """Reload everything from the server."""
        if config.settings.church_id:
            await self.poller.refresh_all()

    @textual.on(widgets.Button.Pressed, "#main-new-settings")
    def action_new_settings(self) -> None:
        """Write a settings file with default values and select it."""
        path = pathlib.Path.cwd() / config.CONFIG_FILE_NAME
        try:
            config.Settings.create_new_config_file(path)
        except config.ConfigError as err:
            self.notify(
                escape(str(err)), title="Settings file not created", severity="error"
            )
            return
        config.settings.config_path = path
        self.query_one("#main-settings-path", widgets.Label).update(str(path))
        self.notify(
            escape(f"Set church_id in {path}, then restart to start checking in."),
            title="Settings file created",
        )

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Disable main screen actions when other screens are active."""
        if len(self.screen_stack) == 1:
            return True
        return action not in ("check_in", "verify_pickup", "refresh", "new_settings")


def main() -> None:
    """Run the check-in station."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[TextualHandler()],
    )
    ChurchCheckIn().run()


if __name__ == "__main__":
    main()
