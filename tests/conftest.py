"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import pytest

from activity_admin.adapters.gateway import ParticipationGateway
from activity_admin.config import Settings
from activity_admin.containers import AppContainer
from activity_admin.domain.participants import (
    Participant,
    Picture,
    PictureStatus,
)
from activity_admin.services.activities import ActivityService
from activity_admin.services.participants import ParticipantService
from activity_admin.services.workspace import WorkspaceRegistry


def participant_row(  # noqa: PLR0913
    user_id: int,
    first_name: str = "Somchai",
    last_name: str = "Dee",
    *,
    is_teacher: bool = False,
    department: str | None = "Computer Science",
    faculty: str | None = "Science",
    registered_at: str | None = "2026-10-01T09:00:00",
    checked_in_at: str | None = None,
    checked_out_at: str | None = None,
) -> dict[str, object]:
    """Build a participant row as the activity API returns it."""
    return {
        "Users_ID": user_id,
        "FirstName": first_name,
        "LastName": last_name,
        "Code": f"6500{user_id:04d}",
        "Users_Email": f"user{user_id}@example.ac.th",
        "isStudent": not is_teacher,
        "isTeacher": is_teacher,
        "Department_Name": department,
        "Faculty_Name": faculty,
        "Registration_RegisTime": registered_at,
        "Registration_CheckInTime": checked_in_at,
        "Registration_CheckOutTime": checked_out_at,
        "RegistrationStatus_Name": "Registered",
    }


def picture_row(picture_id: int, user_id: int, status_id: int = 1) -> dict[str, object]:
    """Build a registration picture row."""
    return {
        "RegistrationPicture_ID": picture_id,
        "Users_ID": user_id,
        "RegistrationPictureStatus_ID": status_id,
        "RegistrationPicture_IsAiSuccess": 1,
        "RegistrationPicture_RejectReason": None,
        "RegistrationPicture_RegisTime": "2026-10-01T10:00:00Z",
        "RegistrationPicture_ImageFile": f"pictures/{picture_id}.jpg",
    }


def activity_row(
    activity_id: int,
    title: str = "Orientation Day",
    *,
    start_time: str = "2026-10-20T08:00:00",
    status_name: str = "เปิดรับสมัคร",
    expected_participants: int | None = 10,
    total_registered: int = 3,
) -> dict[str, object]:
    """Build an activity row of the activities-with-participants listing."""
    return {
        "Activity_ID": activity_id,
        "Activity_Title": title,
        "Activity_StartTime": start_time,
        "Activity_EndTime": None,
        "Activity_LocationDetail": "Main Hall",
        "ActivityStatus_Name": status_name,
        "expected_participants": expected_participants,
        "total_registered": total_registered,
        "Activity_AllowTeachers": 1,
    }


def make_participant(  # noqa: PLR0913
    user_id: int,
    *,
    first_name: str = "Somchai",
    is_teacher: bool = False,
    department: str | None = "Computer Science",
    faculty: str | None = "Science",
    registered_at: datetime | None = None,
    checked_in_at: datetime | None = None,
    checked_out_at: datetime | None = None,
    pictures: tuple[PictureStatus, ...] = (),
) -> Participant:
    """Build a participant domain object with sensible defaults."""
    return Participant(
        user_id=user_id,
        first_name=first_name,
        last_name="Dee",
        code=f"6500{user_id:04d}",
        email=f"user{user_id}@example.ac.th",
        is_student=not is_teacher,
        is_teacher=is_teacher,
        department=department,
        faculty=faculty,
        registered_at=registered_at,
        checked_in_at=checked_in_at,
        checked_out_at=checked_out_at,
        pictures=tuple(
            Picture(picture_id=user_id * 100 + index, user_id=user_id, status=status)
            for index, status in enumerate(pictures, start=1)
        ),
    )


@dataclass
class FakeParticipationGateway(ParticipationGateway):
    """In-memory activity API that records every call."""

    activities: list[dict[str, object]] = field(default_factory=list)
    participants: dict[int, list[dict[str, object]]] = field(default_factory=dict)
    pictures: dict[int, list[dict[str, object]]] = field(default_factory=dict)
    certificates: dict[int, list[dict[str, object]]] = field(default_factory=dict)
    approve_payload: dict[str, object] | None = None
    reject_payload: dict[str, object] | None = None
    batch_error: Exception | None = None
    load_error: Exception | None = None
    pictures_error: Exception | None = None
    certificates_error: Exception | None = None
    failing_ids: dict[int, Exception] = field(default_factory=dict)
    load_gates: dict[int, asyncio.Event] = field(default_factory=dict)
    check_in_gate: asyncio.Event | None = None
    calls: list[tuple[object, ...]] = field(default_factory=list)

    async def list_activities_with_participants(self) -> list[dict[str, object]]:
        self.calls.append(("list_activities",))
        return list(self.activities)

    async def list_participants(self, activity_id: int) -> list[dict[str, object]]:
        self.calls.append(("list_participants", activity_id))
        gate = self.load_gates.get(activity_id)
        if gate is not None:
            await gate.wait()
        if self.load_error is not None:
            raise self.load_error
        return list(self.participants.get(activity_id, []))

    async def list_activity_pictures(
        self, activity_id: int
    ) -> list[dict[str, object]]:
        self.calls.append(("list_activity_pictures", activity_id))
        if self.pictures_error is not None:
            raise self.pictures_error
        return list(self.pictures.get(activity_id, []))

    async def list_participant_pictures(
        self, activity_id: int, user_id: int
    ) -> list[dict[str, object]]:
        self.calls.append(("list_participant_pictures", activity_id, user_id))
        return [
            row
            for row in self.pictures.get(activity_id, [])
            if row["Users_ID"] == user_id
        ]

    async def list_certificates(self, activity_id: int) -> list[dict[str, object]]:
        self.calls.append(("list_certificates", activity_id))
        if self.certificates_error is not None:
            raise self.certificates_error
        return list(self.certificates.get(activity_id, []))

    async def bulk_approve_pictures(
        self, picture_ids: list[int], auto_generate_certificate: bool
    ) -> dict[str, object]:
        self.calls.append(("approve", list(picture_ids), auto_generate_certificate))
        if self.batch_error is not None:
            raise self.batch_error
        if self.approve_payload is not None:
            return self.approve_payload
        return {"approved_count": len(picture_ids), "skipped_count": 0}

    async def bulk_reject_pictures(
        self, picture_ids: list[int], reason: str
    ) -> dict[str, object]:
        self.calls.append(("reject", list(picture_ids), reason))
        if self.batch_error is not None:
            raise self.batch_error
        if self.reject_payload is not None:
            return self.reject_payload
        return {"rejected_count": len(picture_ids), "skipped_count": 0}

    async def check_in(self, activity_id: int, user_id: int) -> None:
        self.calls.append(("check_in", activity_id, user_id))
        if self.check_in_gate is not None:
            await self.check_in_gate.wait()
        if user_id in self.failing_ids:
            raise self.failing_ids[user_id]

    async def check_out(self, activity_id: int, user_id: int) -> None:
        self.calls.append(("check_out", activity_id, user_id))
        if user_id in self.failing_ids:
            raise self.failing_ids[user_id]

    def calls_named(self, name: str) -> list[tuple[object, ...]]:
        return [call for call in self.calls if call[0] == name]


def seeded_gateway() -> FakeParticipationGateway:
    """Gateway holding one activity with three participants in every state."""
    return FakeParticipationGateway(
        activities=[activity_row(7)],
        participants={
            7: [
                participant_row(1, "Anan"),
                participant_row(
                    2, "Busaba", checked_in_at="2026-10-01T09:30:00"
                ),
                participant_row(
                    3,
                    "Chai",
                    is_teacher=True,
                    department="Physics",
                    checked_in_at="2026-10-01T09:30:00",
                    checked_out_at="2026-10-01T12:00:00",
                ),
            ]
        },
        pictures={
            7: [
                picture_row(11, 1, status_id=1),
                picture_row(21, 2, status_id=2),
                picture_row(22, 2, status_id=1),
            ]
        },
        certificates={
            7: [
                {
                    "Certificate_ID": 900,
                    "Users_ID": 3,
                    "Certificate_CreatedAt": "2026-10-01T13:00:00Z",
                }
            ]
        },
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://activity.example.test",
        api_token="api-token",
        admin_token="admin-token",
    )


@pytest.fixture
def gateway() -> FakeParticipationGateway:
    return seeded_gateway()


@pytest.fixture
def container(settings: Settings, gateway: FakeParticipationGateway) -> AppContainer:
    participant_service = ParticipantService(gateway)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        gateway=gateway,
        activity_service=ActivityService(gateway),
        participant_service=participant_service,
        workspaces=WorkspaceRegistry(participant_service),
        close_resources=close_resources,
    )
