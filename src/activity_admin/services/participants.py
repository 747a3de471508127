"""Participant loading from the activity API."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from activity_admin.adapters.gateway import ParticipationGateway
from activity_admin.domain.participants import (
    Certificate,
    Participant,
    Picture,
    PictureStatus,
)
from activity_admin.errors import AuthError, GatewayError

T = TypeVar("T")

_logger = logging.getLogger(__name__)

_PICTURE_STATUS_IDS = {
    1: PictureStatus.PENDING,
    2: PictureStatus.APPROVED,
    3: PictureStatus.REJECTED,
}


@dataclass(frozen=True)
class ParticipantSnapshot:
    """Participants and certificates of an activity as fetched together."""

    activity_id: int
    participants: tuple[Participant, ...]
    certificates: tuple[Certificate, ...]

    @property
    def certificate_user_ids(self) -> frozenset[int]:
        return frozenset(cert.user_id for cert in self.certificates)


@dataclass
class ParticipantService:
    """Loads participant collections for a single activity."""

    gateway: ParticipationGateway

    async def load(self, activity_id: int) -> ParticipantSnapshot:
        """Fetch participants, attach their pictures and load certificates.

        Pictures and certificates are auxiliary: a gateway failure other than an
        authentication error leaves them empty. Rows that cannot be parsed are
        skipped with a warning.
        """
        rows = await self.gateway.list_participants(activity_id)
        pictures_by_user: dict[int, list[Picture]] = {}
        if rows:
            picture_rows = await _auxiliary(
                self.gateway.list_activity_pictures(activity_id),
                "pictures",
                activity_id,
            )
            for picture in _parse_rows(picture_rows, parse_picture, "picture"):
                pictures_by_user.setdefault(picture.user_id, []).append(picture)

        participants: list[Participant] = []
        for row in rows:
            try:
                pictures = pictures_by_user.get(_int(row.get("Users_ID")), [])
                participants.append(parse_participant(row, pictures))
            except (TypeError, ValueError) as exc:
                _logger.warning("Skipping malformed participant row: %s", exc)
        certificate_rows = await _auxiliary(
            self.gateway.list_certificates(activity_id), "certificates", activity_id
        )
        certificates = tuple(
            _parse_rows(certificate_rows, parse_certificate, "certificate")
        )
        _logger.info(
            "Loaded activity %s: participants=%s pictures=%s certificates=%s",
            activity_id,
            len(participants),
            sum(len(p.pictures) for p in participants),
            len(certificates),
        )
        return ParticipantSnapshot(
            activity_id=activity_id,
            participants=tuple(participants),
            certificates=certificates,
        )

    async def participant_pictures(
        self, activity_id: int, user_id: int
    ) -> list[Picture]:
        """Fetch the pictures of a single participant."""
        rows = await self.gateway.list_participant_pictures(activity_id, user_id)
        return [parse_picture(row) for row in rows]


def parse_participant(
    row: dict[str, object], pictures: list[Picture] | None = None
) -> Participant:
    """Build a participant from an API row."""
    return Participant(
        user_id=_int(row.get("Users_ID")),
        first_name=_str(row.get("FirstName")),
        last_name=_str(row.get("LastName")),
        code=_str(row.get("Code")),
        email=_str(row.get("Users_Email")),
        is_student=bool(row.get("isStudent")),
        is_teacher=bool(row.get("isTeacher")),
        department=_optional_str(row.get("Department_Name")),
        faculty=_optional_str(row.get("Faculty_Name")),
        registered_at=parse_timestamp(row.get("Registration_RegisTime")),
        checked_in_at=parse_timestamp(row.get("Registration_CheckInTime")),
        checked_out_at=parse_timestamp(row.get("Registration_CheckOutTime")),
        registration_status=_optional_str(row.get("RegistrationStatus_Name")),
        pictures=tuple(pictures or ()),
    )


def parse_picture(row: dict[str, object]) -> Picture:
    """Build a picture from an API row."""
    status_id = _int(row.get("RegistrationPictureStatus_ID"))
    if status_id not in _PICTURE_STATUS_IDS:
        raise ValueError(f"unknown picture status id: {status_id}")
    ai_flag = row.get("RegistrationPicture_IsAiSuccess")
    return Picture(
        picture_id=_int(row.get("RegistrationPicture_ID")),
        user_id=_int(row.get("Users_ID")),
        status=_PICTURE_STATUS_IDS[status_id],
        is_ai_success=None if ai_flag is None else bool(ai_flag),
        reject_reason=_optional_str(row.get("RegistrationPicture_RejectReason")),
        uploaded_at=parse_timestamp(row.get("RegistrationPicture_RegisTime")),
        url=_optional_str(row.get("RegistrationPicture_ImageFile")),
    )


def parse_certificate(row: dict[str, object]) -> Certificate:
    """Build a certificate from an API row."""
    return Certificate(
        certificate_id=_int(row.get("Certificate_ID")),
        user_id=_int(row.get("Users_ID")),
        issued_at=parse_timestamp(row.get("Certificate_CreatedAt")),
    )


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp; empty values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


async def _auxiliary(
    request: Awaitable[list[dict[str, object]]], what: str, activity_id: int
) -> list[dict[str, object]]:
    try:
        return await request
    except AuthError:
        raise
    except GatewayError as exc:
        _logger.warning(
            "Could not load %s for activity %s: %s", what, activity_id, exc.message
        )
        return []


def _parse_rows(
    rows: list[dict[str, object]],
    parse: Callable[[dict[str, object]], T],
    what: str,
) -> list[T]:
    parsed: list[T] = []
    for row in rows:
        try:
            parsed.append(parse(row))
        except (TypeError, ValueError) as exc:
            _logger.warning("Skipping malformed %s row: %s", what, exc)
    return parsed


def _int(value: object) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"expected an integer id, got {value!r}")
    return int(value)  # type: ignore[arg-type]


def _str(value: object) -> str:
    return "" if value is None else str(value)


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
