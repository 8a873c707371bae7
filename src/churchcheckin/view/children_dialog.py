"""Collect children's safety details and print their labels."""

from typing import Optional

from rich.markup import escape
import textual
from textual import app, containers, screen, validation, widgets

from churchcheckin import model
from churchcheckin.features import labels, orchestrator
import churchcheckin.view
from churchcheckin.view import validators


NOTE_LENGTH = 60
"""Longest allergy or special needs note that fits on a label."""


class ChildrenDialog(screen.ModalScreen[Optional[orchestrator.BatchResult]]):
    """Enter allergies and special needs, then check in the children."""

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "dialogs.tcss",
    ]

    checkin: orchestrator.CheckInOrchestrator
    """Check-in workflow, waiting for child details."""
    children: list[model.FamilyMember]
    _validator_results: dict[str, validation.ValidationResult | None]
    """Validation results for dialog inputs, [id: ValidationResult]."""

    def __init__(self, checkin: orchestrator.CheckInOrchestrator) -> None:
        super().__init__()
        self.checkin = checkin
        self.children = list(checkin.pending_children)
        self._validator_results = {}

    def compose(self) -> app.ComposeResult:
        """Create and arrange dialog widgets."""
        with containers.Vertical(id="children-dialog", classes="modal-dialog"):
            yield widgets.Label("Children's Safety Labels", classes="emphasis")
            yield widgets.Label(
                "Security codes are generated when the children are checked in."
            )
            with containers.VerticalScroll():
                for idx, child in enumerate(self.children):
                    with containers.Vertical(classes="child-details"):
                        age = "" if child.age is None else f" (age {child.age})"
                        yield widgets.Label(f"{child.name}{age}", classes="emphasis")
                        yield widgets.Input(
                            value=child.allergies or "",
                            placeholder="Allergies",
                            id=f"child-allergies-{idx}",
                            classes="validated",
                            validators=[validators.MaxLength(NOTE_LENGTH)],
                        )
                        yield widgets.Input(
                            value=child.special_needs or "",
                            placeholder="Special needs",
                            id=f"child-notes-{idx}",
                            classes="validated",
                            validators=[validators.MaxLength(NOTE_LENGTH)],
                        )
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button(
                    "Complete Check-In", variant="primary", id="children-complete-button"
                )
                yield widgets.Button("Cancel", id="children-cancel-button")

    @textual.on(widgets.Input.Changed, ".validated")
    def on_input_changed(self, message: widgets.Input.Changed) -> None:
        """Track input validation status."""
        if message.input.id is not None:
            self._validator_results[message.input.id] = message.validation_result

    @textual.on(widgets.Button.Pressed, "#children-complete-button")
    def on_complete_pressed(self) -> None:
        """Save details and check in the children."""
        for widget_id, val_result in self._validator_results.items():
            if val_result is not None and not val_result.is_valid:
                self.notify(
                    f"Invalid input for {widget_id}: {val_result.failure_descriptions}"
                )
                return
        if self.checkin.busy:
            return
        for idx, child in enumerate(self.children):
            allergies = self.query_one(f"#child-allergies-{idx}", widgets.Input).value
            notes = self.query_one(f"#child-notes-{idx}", widgets.Input).value
            self.checkin.set_child_details(
                child.member_id, allergies.strip(), notes.strip()
            )
        button = self.query_one("#children-complete-button", widgets.Button)
        button.disabled = True
        button.label = "Checking In..."
        self.app.run_worker(self._check_in_children(), group="checkin")

    async def _check_in_children(self) -> None:
        result = await self.checkin.check_in_children()
        if self.app.screen is self:
            self.dismiss(result)

    @textual.on(widgets.Button.Pressed, "#children-cancel-button")
    def on_cancel_pressed(self) -> None:
        """Close the dialog. Adults that were checked in stay checked in."""
        self.checkin.cancel()
        self.dismiss(None)


class LabelDialog(screen.ModalScreen[None]):
    """Show children's security codes and send labels to the printer."""

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "dialogs.tcss",
    ]

    payloads: list[labels.LabelPayload]
    print_trigger: labels.PrintTrigger

    def __init__(
        self,
        child_checkins: list[model.ChildCheckIn],
        print_trigger: labels.PrintTrigger,
    ) -> None:
        super().__init__()
        self.payloads = [labels.child_label(child) for child in child_checkins]
        self.print_trigger = print_trigger

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="label-dialog", classes="modal-dialog"):
            yield widgets.Label("Print Safety Labels", classes="emphasis")
            for idx, payload in enumerate(self.payloads):
                with containers.Horizontal(classes="label-row"):
                    details = [
                        f"[bold]{escape(payload.name)}[/]",
                        f"[green]Code: {payload.security_code}[/]",
                    ]
                    if payload.allergies:
                        details.append(
                            f"[yellow]Allergies: {escape(payload.allergies)}[/]"
                        )
                    if payload.special_notes:
                        details.append(
                            f"Special Needs: {escape(payload.special_notes)}"
                        )
                    yield widgets.Static("\n".join(details))
                    yield widgets.Button("Print", id=f"label-print-{idx}")
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button(
                    "Print All", variant="primary", id="label-print-all-button"
                )
                yield widgets.Button("Close", id="label-close-button")

    @textual.on(widgets.Button.Pressed, "#label-print-all-button")
    def on_print_all_pressed(self) -> None:
        labels.print_labels(self.payloads, self.print_trigger)

    @textual.on(widgets.Button.Pressed, "#label-close-button")
    def on_close_pressed(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: widgets.Button.Pressed) -> None:
        """Print one child's label."""
        button_id = event.button.id or ""
        if button_id.startswith("label-print-") and button_id[12:].isdigit():
            labels.print_labels([self.payloads[int(button_id[12:])]], self.print_trigger)
