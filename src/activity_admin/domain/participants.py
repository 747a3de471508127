"""Domain models for activities and their participants."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PictureStatus(str, Enum):
    """Moderation status of a participation picture."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ParticipationStatus(str, Enum):
    """Where a participant is in the check-in lifecycle."""

    PENDING = "pending"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Picture:
    """An uploaded participation-proof image."""

    picture_id: int
    user_id: int
    status: PictureStatus
    is_ai_success: bool | None = None
    reject_reason: str | None = None
    uploaded_at: datetime | None = None
    url: str | None = None


@dataclass(frozen=True)
class Participant:
    """A registered student or teacher tracked against an activity."""

    user_id: int
    first_name: str
    last_name: str
    code: str
    email: str
    is_student: bool
    is_teacher: bool
    department: str | None
    faculty: str | None
    registered_at: datetime | None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    registration_status: str | None = None
    pictures: tuple[Picture, ...] = ()

    def __post_init__(self) -> None:
        if self.checked_out_at is not None and self.checked_in_at is None:
            raise ValueError(
                f"participant {self.user_id} has a check-out without a check-in"
            )

    @property
    def participation_status(self) -> ParticipationStatus:
        """Return the check-in lifecycle state."""
        if self.checked_out_at is not None:
            return ParticipationStatus.COMPLETED
        if self.checked_in_at is not None:
            return ParticipationStatus.CHECKED_IN
        return ParticipationStatus.PENDING

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Activity:
    """An event participants register for."""

    activity_id: int
    title: str
    start_time: datetime | None
    end_time: datetime | None
    location: str | None
    status_name: str | None
    expected_participants: int | None
    total_registered: int
    allow_teachers: bool = False


@dataclass(frozen=True)
class Certificate:
    """A certificate issued to a participant for an activity."""

    certificate_id: int
    user_id: int
    issued_at: datetime | None
