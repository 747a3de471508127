"""Filter specification for participant views."""

from dataclasses import dataclass
from enum import Enum


class StatusFilter(str, Enum):
    """Participation status predicate."""

    ALL = "all"
    PENDING = "pending"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"


class RoleFilter(str, Enum):
    """Participant role predicate."""

    ALL = "all"
    STUDENT = "student"
    TEACHER = "teacher"


class RegistrationWindow(str, Enum):
    """Registration date bucket relative to now."""

    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class PictureFilter(str, Enum):
    """Picture status bucket."""

    ALL = "all"
    HAS_PICTURE = "has_picture"
    NO_PICTURE = "no_picture"
    PENDING_APPROVAL = "pending_approval"


ALL_LABELS = "all"


@dataclass(frozen=True)
class FilterSpec:
    """Independent predicates combined with logical AND.

    Every field defaults to its neutral value, so ``FilterSpec()`` matches
    every participant.
    """

    status: StatusFilter = StatusFilter.ALL
    role: RoleFilter = RoleFilter.ALL
    department: str = ALL_LABELS
    faculty: str = ALL_LABELS
    registration_window: RegistrationWindow = RegistrationWindow.ALL
    picture_status: PictureFilter = PictureFilter.ALL

    @property
    def is_neutral(self) -> bool:
        return self == FilterSpec()


@dataclass(frozen=True)
class FilterOptions:
    """Distinct labels available for the department and faculty filters."""

    departments: tuple[str, ...]
    faculties: tuple[str, ...]
