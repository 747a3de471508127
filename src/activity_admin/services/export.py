"""Tabular export of selected participants."""

import re
from collections.abc import Sequence
from datetime import date, datetime

from activity_admin.domain.bulk import ExportTable
from activity_admin.domain.participants import Participant

EXPORT_HEADERS = (
    "No.",
    "First name",
    "Last name",
    "Code",
    "Email",
    "Type",
    "Department",
    "Faculty",
    "Registered at",
    "Check-in",
    "Check-out",
    "Status",
)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|\s]+")


def build_export_table(participants: Sequence[Participant]) -> ExportTable:
    """Build export rows for the given participants, in order."""
    rows = tuple(
        (
            index,
            p.first_name,
            p.last_name,
            p.code,
            p.email,
            "Teacher" if p.is_teacher else "Student",
            p.department or "",
            p.faculty or "",
            _format_timestamp(p.registered_at, ""),
            _format_timestamp(p.checked_in_at, "Not checked in"),
            _format_timestamp(p.checked_out_at, "Not checked out"),
            p.registration_status or "",
        )
        for index, p in enumerate(participants, start=1)
    )
    return ExportTable(headers=EXPORT_HEADERS, rows=rows)


def export_filename(activity_title: str | None, today: date | None = None) -> str:
    """Return the xlsx filename for an activity export."""
    day = today or date.today()
    title = _UNSAFE_FILENAME_CHARS.sub("_", (activity_title or "activity").strip())
    return f"participants_{title.strip('_') or 'activity'}_{day.isoformat()}.xlsx"


def _format_timestamp(value: datetime | None, missing: str) -> str:
    if value is None:
        return missing
    return value.strftime(_TIMESTAMP_FORMAT)
