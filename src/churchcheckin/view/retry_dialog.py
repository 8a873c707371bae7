"""Retry check-ins that failed."""

from rich.markup import escape
from textual import app, containers, screen, widgets

from churchcheckin.features import orchestrator
import churchcheckin.view


class RetryDialog(screen.ModalScreen[bool]):
    """List failed check-ins with a Retry button for each.

    Dismissed with True if the check-in can continue to the children.
    """

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "dialogs.tcss",
    ]

    checkin: orchestrator.CheckInOrchestrator
    failures: list[orchestrator.FailedItem]

    def __init__(
        self,
        checkin: orchestrator.CheckInOrchestrator,
        failures: list[orchestrator.FailedItem],
    ) -> None:
        super().__init__()
        self.checkin = checkin
        self.failures = list(failures)

    @property
    def blocked(self) -> bool:
        """True if children are waiting for a parent check-in."""
        return self.checkin.state == orchestrator.CheckInState.ADULTS_CHECKING_IN

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="retry-dialog", classes="modal-dialog"):
            yield widgets.Label("Some check-ins failed", classes="emphasis")
            if self.blocked:
                yield widgets.Label(
                    "Children can't be checked in until an adult is checked in."
                )
            for idx, item in enumerate(self.failures):
                with containers.Horizontal(classes="label-row", id=f"retry-row-{idx}"):
                    yield widgets.Static(
                        f"[bold]{escape(item.label)}[/] ({item.kind.value})\n"
                        f"[red]{escape(str(item.error))}[/]"
                    )
                    yield widgets.Button("Retry", id=f"retry-item-{idx}")
            with containers.Horizontal(classes="ok-cancel-row"):
                if self.blocked:
                    yield widgets.Button("Cancel Check-In", id="retry-cancel-button")
                else:
                    yield widgets.Button("Close", id="retry-close-button")

    async def on_button_pressed(self, event: widgets.Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id == "retry-close-button":
            self.dismiss(False)
        elif button_id == "retry-cancel-button":
            self.checkin.cancel()
            self.dismiss(False)
        elif button_id.startswith("retry-item-"):
            idx = int(button_id.removeprefix("retry-item-"))
            event.button.disabled = True
            record = await self.checkin.retry(self.failures[idx])
            if record is None:
                event.button.disabled = False
                return
            await self.query_one(f"#retry-row-{idx}").remove()
            if self.checkin.state == orchestrator.CheckInState.PENDING_CHILD_DETAILS:
                self.dismiss(True)
