"""Derived participant statistics."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from activity_admin.domain.participants import (
    Participant,
    ParticipationStatus,
    PictureStatus,
)

_EXCELLENT_RATE = 80
_GOOD_RATE = 60
_MODERATE_RATE = 40


class RateBand(str, Enum):
    """Qualitative band of a percentage rate."""

    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"


@dataclass(frozen=True)
class ParticipantStats:
    """Counts and rates for a participant view."""

    total: int
    filtered: int
    selected: int
    registered: int
    checked_in: int
    completed: int
    students: int
    teachers: int
    expected: int
    certificates: int
    registration_rate: float
    check_in_rate: float
    completion_rate: float


@dataclass(frozen=True)
class PictureSummary:
    """Picture counts by moderation status for one participant."""

    total: int
    pending: int
    approved: int
    rejected: int

    @property
    def is_mixed(self) -> bool:
        return sum(1 for n in (self.pending, self.approved, self.rejected) if n) > 1


def aggregate(
    participants: Sequence[Participant],
    filtered_count: int,
    selected_count: int,
    activity_target: int | None,
    certificate_count: int = 0,
) -> ParticipantStats:
    """Compute counts and percentage rates from scratch."""
    total = len(participants)
    registered = checked_in = completed = students = teachers = 0
    for participant in participants:
        status = participant.participation_status
        if status == ParticipationStatus.PENDING:
            registered += 1
        elif status == ParticipationStatus.CHECKED_IN:
            checked_in += 1
        else:
            completed += 1
        if participant.is_student:
            students += 1
        if participant.is_teacher:
            teachers += 1

    expected = activity_target or total
    return ParticipantStats(
        total=total,
        filtered=filtered_count,
        selected=selected_count,
        registered=registered,
        checked_in=checked_in,
        completed=completed,
        students=students,
        teachers=teachers,
        expected=expected,
        certificates=certificate_count,
        registration_rate=percentage(total, expected),
        check_in_rate=percentage(checked_in, total),
        completion_rate=percentage(completed, total),
    )


def percentage(numerator: int, denominator: int) -> float:
    """Return ``numerator / denominator`` as a percentage with one decimal."""
    return round(numerator / max(denominator, 1) * 100, 1)


def rate_band(rate: float) -> RateBand:
    if rate >= _EXCELLENT_RATE:
        return RateBand.EXCELLENT
    if rate >= _GOOD_RATE:
        return RateBand.GOOD
    if rate >= _MODERATE_RATE:
        return RateBand.MODERATE
    return RateBand.POOR


def picture_summary(participant: Participant) -> PictureSummary:
    """Count a participant's pictures per moderation status."""
    pictures = participant.pictures
    return PictureSummary(
        total=len(pictures),
        pending=sum(1 for pic in pictures if pic.status == PictureStatus.PENDING),
        approved=sum(1 for pic in pictures if pic.status == PictureStatus.APPROVED),
        rejected=sum(1 for pic in pictures if pic.status == PictureStatus.REJECTED),
    )
