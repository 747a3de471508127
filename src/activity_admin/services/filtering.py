"""Client-side filtering of participant collections."""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from activity_admin.domain.filters import (
    ALL_LABELS,
    FilterOptions,
    FilterSpec,
    PictureFilter,
    RegistrationWindow,
    RoleFilter,
    StatusFilter,
)
from activity_admin.domain.participants import (
    Participant,
    ParticipationStatus,
    PictureStatus,
)

Predicate = Callable[[Participant], bool]

_WINDOW_DAYS = {
    RegistrationWindow.WEEK: 7,
    RegistrationWindow.MONTH: 30,
}


def filter_participants(
    participants: Iterable[Participant],
    spec: FilterSpec,
    search_query: str = "",
    now: datetime | None = None,
) -> list[Participant]:
    """Return participants matching every active filter, in input order."""
    predicates = build_predicates(spec, search_query, now)
    return [p for p in participants if all(check(p) for check in predicates)]


def build_predicates(
    spec: FilterSpec, search_query: str = "", now: datetime | None = None
) -> list[Predicate]:
    """Build the active predicates; neutral fields contribute none."""
    predicates: list[Predicate] = []
    query = search_query.strip().lower()
    if query:
        predicates.append(lambda p: _matches_query(p, query))

    if spec.status != StatusFilter.ALL:
        wanted = ParticipationStatus(spec.status.value)
        predicates.append(lambda p: p.participation_status == wanted)

    if spec.role == RoleFilter.STUDENT:
        predicates.append(lambda p: p.is_student)
    elif spec.role == RoleFilter.TEACHER:
        predicates.append(lambda p: p.is_teacher)

    if spec.department != ALL_LABELS:
        department = spec.department
        predicates.append(lambda p: p.department == department)

    if spec.faculty != ALL_LABELS:
        faculty = spec.faculty
        predicates.append(lambda p: p.faculty == faculty)

    if spec.registration_window != RegistrationWindow.ALL:
        predicates.append(_registration_predicate(spec.registration_window, now))

    if spec.picture_status != PictureFilter.ALL:
        predicates.append(_picture_predicate(spec.picture_status))

    return predicates


def filter_options(participants: Iterable[Participant]) -> FilterOptions:
    """Collect sorted distinct department and faculty labels."""
    departments: set[str] = set()
    faculties: set[str] = set()
    for participant in participants:
        if participant.department:
            departments.add(participant.department)
        if participant.faculty:
            faculties.add(participant.faculty)
    return FilterOptions(
        departments=tuple(sorted(departments)),
        faculties=tuple(sorted(faculties)),
    )


def _matches_query(participant: Participant, query: str) -> bool:
    fields = (
        participant.first_name,
        participant.last_name,
        participant.code,
        participant.email,
        participant.department,
    )
    return any(value and query in value.lower() for value in fields)


def _registration_predicate(
    window: RegistrationWindow, now: datetime | None
) -> Predicate:
    current = now or datetime.now().astimezone()
    start_of_today = current.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == RegistrationWindow.TODAY:
        start = start_of_today
        end: datetime | None = start_of_today + timedelta(days=1)
    else:
        start = start_of_today - timedelta(days=_WINDOW_DAYS[window])
        end = None

    def check(participant: Participant) -> bool:
        registered_at = participant.registered_at
        if registered_at is None:
            return False
        registered_at = _align_timezone(registered_at, current)
        if registered_at < start:
            return False
        return end is None or registered_at < end

    return check


def _align_timezone(value: datetime, reference: datetime) -> datetime:
    """Express ``value`` in the timezone of ``reference`` so comparisons hold."""
    if reference.tzinfo is None:
        if value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value.astimezone(reference.tzinfo)


def _picture_predicate(picture_filter: PictureFilter) -> Predicate:
    if picture_filter == PictureFilter.HAS_PICTURE:
        return lambda p: len(p.pictures) > 0
    if picture_filter == PictureFilter.NO_PICTURE:
        return lambda p: len(p.pictures) == 0
    return lambda p: any(pic.status == PictureStatus.PENDING for pic in p.pictures)
