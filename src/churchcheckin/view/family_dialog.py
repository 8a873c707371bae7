"""Select family members and a service, then check them in."""

from typing import Optional

import textual
from textual import app, containers, screen, widgets
from textual.widgets import option_list

from churchcheckin import model
from churchcheckin.features import orchestrator
import churchcheckin.view


class FamilyDialog(screen.ModalScreen[Optional[orchestrator.BatchResult]]):
    """Choose which family members to check in.

    Dismissed with the adult phase result, or None if cancelled.
    """

    CSS_PATH = [
        churchcheckin.view.CSS_FOLDER / "root.tcss",
        churchcheckin.view.CSS_FOLDER / "dialogs.tcss",
    ]

    checkin: orchestrator.CheckInOrchestrator
    """Check-in workflow. Must have a family selected."""
    services: list[model.Service]
    """Services that are open for check-in."""

    def __init__(
        self, checkin: orchestrator.CheckInOrchestrator, services: list[model.Service]
    ) -> None:
        super().__init__()
        if checkin.family is None:
            raise orchestrator.CheckInStateError("No family selected.")
        self.checkin = checkin
        self.family = checkin.family
        self.services = [s for s in services if s.is_check_in_open]

    @staticmethod
    def member_prompt(member: model.FamilyMember) -> str:
        """Text shown next to a member's checkbox."""
        prompt = member.name
        if member.age is not None:
            prompt += f" (age {member.age})"
        if member.is_child:
            prompt += "  Child"
        return prompt

    def compose(self) -> app.ComposeResult:
        """Create and arrange dialog widgets."""
        with containers.Vertical(id="family-dialog", classes="modal-dialog"):
            yield widgets.Label(self.family.name, classes="emphasis")
            yield widgets.Label(f"Phone: {self.family.phone or 'No phone'}")
            yield widgets.Label("Select family members to check in")
            yield widgets.SelectionList[str](
                *[(self.member_prompt(m), m.member_id) for m in self.family.members],
                id="family-members",
            )
            yield widgets.Label("Service", classes="emphasis")
            if self.services:
                yield widgets.OptionList(
                    *[option_list.Option(s.name, id=s.service_id) for s in self.services],
                    id="family-services",
                )
            else:
                yield widgets.Static("No services are open for check-in.")
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button(
                    "Check In (0)",
                    variant="primary",
                    id="family-checkin-button",
                    disabled=True,
                )
                yield widgets.Button("Cancel", id="family-cancel-button")

    def on_mount(self) -> None:
        """Highlight the currently selected service."""
        if not self.services:
            return
        service_ids = [s.service_id for s in self.services]
        if self.checkin.service_id not in service_ids:
            self.checkin.select_service(service_ids[0])
        service_list = self.query_one("#family-services", widgets.OptionList)
        service_list.highlighted = service_ids.index(self.checkin.service_id)
        self.update_checkin_button()

    def update_checkin_button(self) -> None:
        """Enable Check In when members are selected and no batch is running."""
        button = self.query_one("#family-checkin-button", widgets.Button)
        button.label = f"Check In ({len(self.checkin.selected_ids)})"
        button.disabled = not self.checkin.can_submit

    @textual.on(widgets.SelectionList.SelectedChanged, "#family-members")
    def on_members_changed(self, message: widgets.SelectionList.SelectedChanged) -> None:
        """Toggle members whose checkbox changed."""
        selected = set(message.selection_list.selected)
        for member in self.family.members:
            if (member.member_id in selected) != (
                member.member_id in self.checkin.selected_ids
            ):
                self.checkin.toggle_member(member.member_id)
        self.update_checkin_button()

    @textual.on(widgets.OptionList.OptionHighlighted, "#family-services")
    def on_service_highlighted(
        self, message: widgets.OptionList.OptionHighlighted
    ) -> None:
        """Check in to the highlighted service."""
        if message.option.id is not None:
            self.checkin.select_service(message.option.id)
        self.update_checkin_button()

    @textual.on(widgets.Button.Pressed, "#family-checkin-button")
    def on_checkin_pressed(self) -> None:
        """Check in the adults, then close the dialog.

        The batch runs as an app worker so that closing the dialog doesn't
        interrupt requests that were already sent.
        """
        if not self.checkin.can_submit:
            return
        button = self.query_one("#family-checkin-button", widgets.Button)
        button.disabled = True
        button.label = "Checking In..."
        self.app.run_worker(self._submit(), group="checkin")

    async def _submit(self) -> None:
        result = await self.checkin.submit()
        if self.app.screen is self:
            self.dismiss(result)

    @textual.on(widgets.Button.Pressed, "#family-cancel-button")
    def on_cancel_pressed(self) -> None:
        """Discard the selection without checking anyone in."""
        self.checkin.cancel()
        self.dismiss(None)
