"""Pydantic models for console API requests and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from activity_admin.domain.filters import (
    PictureFilter,
    RegistrationWindow,
    RoleFilter,
    StatusFilter,
)


class OpenWorkspaceRequest(BaseModel):
    """Open a participant workspace on an activity."""

    activity_id: int


class FiltersRequest(BaseModel):
    """Filter panel state."""

    search_query: str = ""
    status: StatusFilter = StatusFilter.ALL
    role: RoleFilter = RoleFilter.ALL
    department: str = "all"
    faculty: str = "all"
    registration_window: RegistrationWindow = RegistrationWindow.ALL
    picture_status: PictureFilter = PictureFilter.ALL


class SelectionRequest(BaseModel):
    """Selection change issued from the participant table."""

    action: Literal["select_all", "deselect_all", "toggle"]
    user_id: int | None = None


class ApproveRequest(BaseModel):
    """Approve pending pictures of the selection, or the given pictures."""

    picture_ids: list[int] | None = None
    auto_generate_certificate: bool = True


class RejectRequest(BaseModel):
    """Reject pending pictures of the selection, or the given pictures."""

    picture_ids: list[int] | None = None
    reason: str = ""


class PictureView(BaseModel):
    """Picture as shown in the gallery."""

    picture_id: int
    user_id: int
    status: str
    is_ai_success: bool | None = None
    reject_reason: str | None = None
    uploaded_at: datetime | None = None
    url: str | None = None


class ParticipantView(BaseModel):
    """Participant row of the table."""

    user_id: int
    first_name: str
    last_name: str
    code: str
    email: str
    is_student: bool
    is_teacher: bool
    department: str | None = None
    faculty: str | None = None
    registered_at: datetime | None = None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    participation_status: str
    selected: bool
    has_certificate: bool
    pictures: dict[str, int] = Field(default_factory=dict)
