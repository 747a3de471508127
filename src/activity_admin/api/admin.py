"""Participant console endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import Response

from activity_admin.adapters.xlsx_writer import render_xlsx
from activity_admin.api.schemas import (
    ApproveRequest,
    FiltersRequest,
    OpenWorkspaceRequest,
    ParticipantView,
    PictureView,
    RejectRequest,
    SelectionRequest,
)
from activity_admin.config import parse_user_type
from activity_admin.domain.filters import FilterSpec
from activity_admin.domain.permissions import Capabilities
from activity_admin.errors import AuthError, GatewayError
from activity_admin.services.activities import ActivitySort
from activity_admin.services.export import export_filename
from activity_admin.services.statistics import picture_summary, rate_band
from activity_admin.services.workspace import ParticipantWorkspace  # noqa: TC001

if TYPE_CHECKING:
    from activity_admin.containers import AppContainer
    from activity_admin.domain.bulk import BatchResult, FanOutResult
    from activity_admin.domain.participants import Activity, Picture

_logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


async def get_capabilities(
    request: Request, x_user_type: str | None = Header(default=None)
) -> Capabilities:
    """Resolve caller capabilities from the identity header or the default."""
    container: AppContainer = request.app.state.container
    user_type = parse_user_type(x_user_type) or parse_user_type(
        container.settings.default_user_type
    )
    return Capabilities.for_user_type(user_type)


def _get_workspace(workspace_id: UUID, request: Request) -> ParticipantWorkspace:
    container: AppContainer = request.app.state.container
    workspace = container.workspaces.get(workspace_id)
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return workspace


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/activities", dependencies=[Depends(require_admin)])
async def list_activities(
    request: Request,
    search: str = "",
    status_class: str = Query(default="all", alias="status"),
    sort_by: ActivitySort = ActivitySort.DATE,
    capabilities: Capabilities = Depends(get_capabilities),
) -> dict[str, object]:
    """Return activities with participants for the activity picker."""
    _require_view(capabilities)
    container: AppContainer = request.app.state.container
    service = container.activity_service
    activities = await service.list_activities()
    selected = service.select(activities, search, status_class, sort_by)
    summary = service.summary(activities)
    return {
        "activities": [_serialize_activity(activity) for activity in selected],
        "summary": {
            "total": summary.total,
            "open": summary.open,
            "ongoing": summary.ongoing,
            "completed": summary.completed,
        },
    }


@router.post(
    "/workspaces",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_201_CREATED,
)
async def open_workspace(
    body: OpenWorkspaceRequest,
    request: Request,
    capabilities: Capabilities = Depends(get_capabilities),
) -> dict[str, object]:
    """Open a participant workspace on an activity."""
    _require_view(capabilities)
    container: AppContainer = request.app.state.container
    activity = await container.activity_service.get_activity(body.activity_id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    workspace = container.workspaces.create(capabilities)
    try:
        await workspace.open(activity)
    except AuthError:
        container.workspaces.close(workspace.workspace_id)
        raise
    except GatewayError as exc:
        _logger.warning(
            "Workspace %s opened without participants: %s",
            workspace.workspace_id,
            exc.message,
        )
    return _serialize_workspace(workspace)


@router.get("/workspaces/{workspace_id}", dependencies=[Depends(require_admin)])
async def get_workspace(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Return the current view: participants, stats, selection and flags."""
    return _serialize_workspace(workspace)


@router.delete(
    "/workspaces/{workspace_id}",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
)
async def close_workspace(workspace_id: UUID, request: Request) -> Response:
    """Tear a workspace down."""
    container: AppContainer = request.app.state.container
    if not container.workspaces.close(workspace_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/workspaces/{workspace_id}/filters", dependencies=[Depends(require_admin)])
async def update_filters(
    body: FiltersRequest,
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Replace the filter panel state."""
    workspace.set_filters(
        FilterSpec(
            status=body.status,
            role=body.role,
            department=body.department,
            faculty=body.faculty,
            registration_window=body.registration_window,
            picture_status=body.picture_status,
        ),
        body.search_query,
    )
    return _serialize_workspace(workspace)


@router.delete(
    "/workspaces/{workspace_id}/filters", dependencies=[Depends(require_admin)]
)
async def reset_filters(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Reset every filter to its neutral value."""
    workspace.reset_filters()
    return _serialize_workspace(workspace)


@router.post(
    "/workspaces/{workspace_id}/selection", dependencies=[Depends(require_admin)]
)
async def change_selection(
    body: SelectionRequest,
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Select all visible, deselect all, or toggle one participant."""
    if body.action == "select_all":
        workspace.select_all()
    elif body.action == "deselect_all":
        workspace.deselect_all()
    else:
        if body.user_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="user_id is required to toggle a selection",
            )
        workspace.toggle(body.user_id)
    return _serialize_workspace(workspace)


@router.post(
    "/workspaces/{workspace_id}/refresh", dependencies=[Depends(require_admin)]
)
async def refresh_workspace(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Reload participants from the activity API."""
    await workspace.refresh()
    return _serialize_workspace(workspace)


@router.post(
    "/workspaces/{workspace_id}/approve", dependencies=[Depends(require_admin)]
)
async def approve_pictures(
    body: ApproveRequest,
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Approve pending pictures of the selection in one batch."""
    if body.picture_ids is None:
        result = await workspace.approve(body.auto_generate_certificate)
    else:
        result = await workspace.approve_pictures(
            body.picture_ids, body.auto_generate_certificate
        )
    return {"result": _serialize_batch(result), **_serialize_workspace(workspace)}


@router.post("/workspaces/{workspace_id}/reject", dependencies=[Depends(require_admin)])
async def reject_pictures(
    body: RejectRequest,
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Reject pending pictures of the selection in one batch."""
    if body.picture_ids is None:
        result = await workspace.reject(body.reason)
    else:
        result = await workspace.reject_pictures(body.picture_ids, body.reason)
    return {"result": _serialize_batch(result), **_serialize_workspace(workspace)}


@router.post(
    "/workspaces/{workspace_id}/check-in", dependencies=[Depends(require_admin)]
)
async def check_in(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Check in every selected visible participant."""
    result = await workspace.check_in()
    return {"result": _serialize_fan_out(result), **_serialize_workspace(workspace)}


@router.post(
    "/workspaces/{workspace_id}/check-out", dependencies=[Depends(require_admin)]
)
async def check_out(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Check out every selected visible participant."""
    result = await workspace.check_out()
    return {"result": _serialize_fan_out(result), **_serialize_workspace(workspace)}


@router.get("/workspaces/{workspace_id}/export", dependencies=[Depends(require_admin)])
async def export_selected(
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> Response:
    """Download the selected participants as an xlsx workbook."""
    table = workspace.export()
    title = workspace.activity.title if workspace.activity else None
    filename = export_filename(title)
    return Response(
        content=render_xlsx(table),
        media_type=_XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"
        },
    )


@router.get(
    "/workspaces/{workspace_id}/participants/{user_id}/pictures",
    dependencies=[Depends(require_admin)],
)
async def participant_pictures(
    user_id: int,
    workspace: ParticipantWorkspace = Depends(_get_workspace),
) -> dict[str, object]:
    """Return the pictures a participant uploaded for the activity."""
    pictures = await workspace.participant_pictures(user_id)
    return {"pictures": [_serialize_picture(picture) for picture in pictures]}


def _require_view(capabilities: Capabilities) -> None:
    if not capabilities.can_view_activities:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)


def _serialize_activity(activity: Activity) -> dict[str, object]:
    return {
        "activity_id": activity.activity_id,
        "title": activity.title,
        "start_time": activity.start_time.isoformat() if activity.start_time else None,
        "end_time": activity.end_time.isoformat() if activity.end_time else None,
        "location": activity.location,
        "status_name": activity.status_name,
        "expected_participants": activity.expected_participants,
        "total_registered": activity.total_registered,
        "allow_teachers": activity.allow_teachers,
    }


def _serialize_picture(picture: Picture) -> dict[str, object]:
    return PictureView(
        picture_id=picture.picture_id,
        user_id=picture.user_id,
        status=picture.status.value,
        is_ai_success=picture.is_ai_success,
        reject_reason=picture.reject_reason,
        uploaded_at=picture.uploaded_at,
        url=picture.url,
    ).model_dump(mode="json")


def _serialize_workspace(workspace: ParticipantWorkspace) -> dict[str, object]:
    visible = workspace.visible()
    stats = workspace.stats()
    options = workspace.filter_options()
    participants = []
    for participant in visible:
        pictures = picture_summary(participant)
        participants.append(
            ParticipantView(
                user_id=participant.user_id,
                first_name=participant.first_name,
                last_name=participant.last_name,
                code=participant.code,
                email=participant.email,
                is_student=participant.is_student,
                is_teacher=participant.is_teacher,
                department=participant.department,
                faculty=participant.faculty,
                registered_at=participant.registered_at,
                checked_in_at=participant.checked_in_at,
                checked_out_at=participant.checked_out_at,
                participation_status=participant.participation_status.value,
                selected=workspace.selection.is_selected(participant.user_id),
                has_certificate=workspace.has_certificate(participant.user_id),
                pictures={
                    "total": pictures.total,
                    "pending": pictures.pending,
                    "approved": pictures.approved,
                    "rejected": pictures.rejected,
                },
            ).model_dump(mode="json")
        )
    return {
        "workspace_id": str(workspace.workspace_id),
        "activity": _serialize_activity(workspace.activity)
        if workspace.activity
        else None,
        "participants": participants,
        "selected_ids": workspace.actionable_ids(),
        "all_selected": workspace.is_all_selected(),
        "stats": {
            "total": stats.total,
            "filtered": stats.filtered,
            "selected": stats.selected,
            "registered": stats.registered,
            "checked_in": stats.checked_in,
            "completed": stats.completed,
            "students": stats.students,
            "teachers": stats.teachers,
            "expected": stats.expected,
            "certificates": stats.certificates,
            "registration_rate": stats.registration_rate,
            "check_in_rate": stats.check_in_rate,
            "completion_rate": stats.completion_rate,
            "check_in_band": rate_band(stats.check_in_rate).value,
        },
        "filter_options": {
            "departments": list(options.departments),
            "faculties": list(options.faculties),
        },
        "in_flight": workspace.dispatcher.in_flight,
        "load_error": workspace.load_error,
    }


def _serialize_batch(result: BatchResult) -> dict[str, object]:
    return {
        "kind": result.kind.value,
        "outcome": result.outcome.value,
        "requested_count": result.requested_count,
        "processed_count": result.processed_count,
        "skipped_count": result.skipped_count,
        "errors": list(result.errors),
        "certificates": list(result.certificates),
    }


def _serialize_fan_out(result: FanOutResult) -> dict[str, object]:
    return {
        "kind": result.kind.value,
        "outcome": result.outcome.value,
        "success_count": result.success_count,
        "fail_count": result.fail_count,
        "failed_ids": result.failed_ids,
        "details": [
            {
                "id": item.item_id,
                "succeeded": item.succeeded,
                "error": item.error,
                "error_type": item.error_type,
            }
            for item in result.details
        ],
    }
