"""Activity listing for the participant console."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from activity_admin.adapters.gateway import ParticipationGateway
from activity_admin.domain.participants import Activity
from activity_admin.services.participants import parse_timestamp

_STATUS_CLASSES = {
    "เปิดรับสมัคร": "open",
    "กำลังดำเนินการ": "ongoing",
    "เสร็จสิ้น": "completed",
    "ยกเลิก": "cancelled",
    "open": "open",
    "ongoing": "ongoing",
    "completed": "completed",
    "cancelled": "cancelled",
}


class ActivitySort(str, Enum):
    """Sort orders offered by the activity picker."""

    DATE = "date"
    PARTICIPANTS = "participants"
    STATUS = "status"


@dataclass(frozen=True)
class ActivitySummary:
    """Activity counts by status class."""

    total: int
    open: int
    ongoing: int
    completed: int


@dataclass
class ActivityService:
    """Lists activities that have participants."""

    gateway: ParticipationGateway

    async def list_activities(self) -> list[Activity]:
        """Return activities, most recent start first."""
        rows = await self.gateway.list_activities_with_participants()
        activities = [parse_activity(row) for row in rows]
        return sort_activities(activities, ActivitySort.DATE)

    async def get_activity(self, activity_id: int) -> Activity | None:
        for activity in await self.list_activities():
            if activity.activity_id == activity_id:
                return activity
        return None

    def select(
        self,
        activities: Sequence[Activity],
        search: str = "",
        status: str = "all",
        sort_by: ActivitySort = ActivitySort.DATE,
    ) -> list[Activity]:
        """Search by title or location, filter by status class and sort."""
        term = search.strip().lower()
        selected = [
            activity
            for activity in activities
            if (not term or _matches_activity(activity, term))
            and (status == "all" or status_class(activity.status_name) == status)
        ]
        return sort_activities(selected, sort_by)

    def summary(self, activities: Sequence[Activity]) -> ActivitySummary:
        classes = [status_class(activity.status_name) for activity in activities]
        return ActivitySummary(
            total=len(activities),
            open=classes.count("open"),
            ongoing=classes.count("ongoing"),
            completed=classes.count("completed"),
        )


def status_class(status_name: str | None) -> str:
    """Map a backend status name to open/ongoing/completed/cancelled."""
    if not status_name:
        return "default"
    if status_name in _STATUS_CLASSES:
        return _STATUS_CLASSES[status_name]
    return _STATUS_CLASSES.get(status_name.lower(), "default")


def sort_activities(
    activities: Sequence[Activity], sort_by: ActivitySort
) -> list[Activity]:
    if sort_by == ActivitySort.PARTICIPANTS:
        return sorted(activities, key=lambda a: a.total_registered, reverse=True)
    if sort_by == ActivitySort.STATUS:
        return sorted(activities, key=lambda a: a.status_name or "")
    return sorted(
        activities,
        key=lambda a: a.start_time.timestamp() if a.start_time else float("-inf"),
        reverse=True,
    )


def parse_activity(row: dict[str, object]) -> Activity:
    """Build an activity from an API row."""
    return Activity(
        activity_id=int(str(row["Activity_ID"])),
        title=str(row.get("Activity_Title") or ""),
        start_time=parse_timestamp(row.get("Activity_StartTime")),
        end_time=parse_timestamp(row.get("Activity_EndTime")),
        location=_optional_text(row.get("Activity_LocationDetail")),
        status_name=_optional_text(row.get("ActivityStatus_Name")),
        expected_participants=_optional_int(row.get("expected_participants")),
        total_registered=_optional_int(row.get("total_registered")) or 0,
        allow_teachers=bool(row.get("Activity_AllowTeachers")),
    )


def _matches_activity(activity: Activity, term: str) -> bool:
    return term in activity.title.lower() or term in (activity.location or "").lower()


def _optional_text(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _optional_int(value: object) -> int | None:
    if value is None or value == "":
        return None
    return int(str(value))
