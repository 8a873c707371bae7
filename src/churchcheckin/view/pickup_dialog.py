"""Verify a pickup code against the children checked in to a service."""

from rich.markup import escape
import textual
from textual import app, containers, screen, widgets

from churchcheckin import model
from churchcheckin.features import security
import churchcheckin.view
from churchcheckin.view import validators


class PickupDialog(screen.ModalScreen[None]):
    """Look up the child that a pickup code belongs to."""

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "dialogs.tcss",
    ]

    child_checkins: list[model.ChildCheckIn]
    """Children checked in to the selected service."""

    def __init__(self, child_checkins: list[model.ChildCheckIn]) -> None:
        super().__init__()
        self.child_checkins = child_checkins

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="pickup-dialog", classes="modal-dialog"):
            yield widgets.Label("Verify Pickup Code", classes="emphasis")
            yield widgets.Input(
                placeholder="Security code",
                id="pickup-code-input",
                validators=[validators.SecurityCode()],
            )
            yield widgets.Static("", id="pickup-result")
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button("Verify", variant="primary", id="pickup-verify")
                yield widgets.Button("Close", id="pickup-close")

    def on_mount(self) -> None:
        self.query_one("#pickup-code-input", widgets.Input).focus()

    @textual.on(widgets.Input.Submitted, "#pickup-code-input")
    @textual.on(widgets.Button.Pressed, "#pickup-verify")
    def verify_code(self) -> None:
        """Show the child and guardian for the entered code."""
        code_input = self.query_one("#pickup-code-input", widgets.Input)
        result = self.query_one("#pickup-result", widgets.Static)
        validation_result = code_input.validate(code_input.value)
        if validation_result is not None and not validation_result.is_valid:
            result.update(f"[yellow]{validation_result.failure_descriptions[0]}[/]")
            return
        child = security.find_by_code(self.child_checkins, code_input.value)
        if child is None:
            result.update(
                "[red]No checked-in child has this code.\n"
                "Do not release the child. Please speak to a ministry leader.[/]"
            )
            return
        details = [
            f"[green]Match: [bold]{escape(child.child_name)}[/bold][/]",
            f"Guardian: {escape(child.parent_name)}",
        ]
        if child.parent_phone:
            details.append(f"Phone: {child.parent_phone}")
        if child.allergies:
            details.append(f"[yellow]Allergies: {escape(child.allergies)}[/]")
        result.update("\n".join(details))

    @textual.on(widgets.Button.Pressed, "#pickup-close")
    def on_close_pressed(self) -> None:
        self.dismiss(None)
