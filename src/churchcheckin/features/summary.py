"""A check-in summary report in markdown format."""

from churchcheckin import config
from churchcheckin.features import attendance, sync


def get_summary(snapshot: sync.SyncSnapshot) -> str:
    """Get today's attendance summary in markdown."""
    services = attendance.display_services(
        snapshot.services, config.settings.expected_attendance
    )
    summary = [
        "## Today's Attendance",
        f"**Total checked in:** {attendance.total_attendance(snapshot.services)}",
        "",
        "## Services",
    ]
    if sync.View.SERVICES in snapshot.errors:
        summary.append(
            f"Unable to load services: {snapshot.errors[sync.View.SERVICES].message}"
        )
    elif not services:
        summary.append("No services scheduled for today.")
    else:
        summary.extend(
            [
                "| Service | Time | Location | Checked In | Status |",
                "| ------- | ---- | -------- | ---------- | ------ |",
            ]
        )
        for service in services:
            status = "Open" if service.is_active else "Upcoming"
            summary.append(
                f"| {service.name} | {service.time} | {service.location} "
                f"| {service.checked_in} / {service.expected} | {status} |"
            )
    stats = snapshot.stats
    if stats is not None:
        summary.extend(
            [
                "## Check-In Stats",
                "| Check-Ins | Guests | First Time | Children |",
                "| --------- | ------ | ---------- | -------- |",
                (
                    f"| {stats.total_check_ins} | {stats.total_guests} "
                    f"| {stats.total_first_timers} | {stats.total_children} |"
                ),
            ]
        )
    return str("\n".join(summary))
