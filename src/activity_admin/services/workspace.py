"""Participant workspace: the state behind one participant admin view."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from activity_admin.domain.bulk import BatchResult, ExportTable, FanOutResult
from activity_admin.domain.filters import FilterOptions, FilterSpec
from activity_admin.domain.participants import (
    Activity,
    Certificate,
    Participant,
    Picture,
    PictureStatus,
)
from activity_admin.domain.permissions import Capabilities
from activity_admin.errors import GatewayError, InputError
from activity_admin.services.bulk import BulkOperationDispatcher
from activity_admin.services.filtering import filter_options, filter_participants
from activity_admin.services.participants import ParticipantService
from activity_admin.services.selection import SelectionSet
from activity_admin.services.statistics import ParticipantStats, aggregate

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ParticipantWorkspace:
    """Owns the participant collection and selection of a single view.

    Collections are replaced wholesale on refresh, never edited in place.
    Each activity switch or teardown bumps a generation counter; a fetch that
    completes under an older generation is dropped.
    """

    def __init__(
        self,
        participant_service: ParticipantService,
        capabilities: Capabilities,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.workspace_id: UUID = uuid4()
        self.participant_service = participant_service
        self.capabilities = capabilities
        self.clock = clock
        self.activity: Activity | None = None
        self.participants: tuple[Participant, ...] = ()
        self.certificates: tuple[Certificate, ...] = ()
        self.filters = FilterSpec()
        self.search_query = ""
        self.selection = SelectionSet()
        self.load_error: str | None = None
        self.closed = False
        self._generation = 0
        self.dispatcher = BulkOperationDispatcher(
            gateway=participant_service.gateway,
            capabilities=capabilities,
            refresh=self._refresh_after_dispatch,
        )

    @property
    def activity_id(self) -> int | None:
        return self.activity.activity_id if self.activity else None

    async def open(self, activity: Activity) -> None:
        """Switch the view to an activity and load its participants."""
        self._ensure_open()
        self._generation += 1
        self.activity = activity
        self.participants = ()
        self.certificates = ()
        self.load_error = None
        self.selection.deselect_all()
        await self.refresh()

    async def refresh(self) -> bool:
        """Reload participants; return False when the result was discarded."""
        self._ensure_open()
        if self.activity is None:
            self.participants = ()
            self.certificates = ()
            return True
        generation = self._generation
        activity_id = self.activity.activity_id
        try:
            snapshot = await self.participant_service.load(activity_id)
        except GatewayError as exc:
            if self._is_current(generation):
                self.load_error = exc.message
                self.participants = ()
                self.certificates = ()
            raise
        if not self._is_current(generation):
            _logger.warning(
                "Discarding participants of activity %s: view changed during load",
                activity_id,
            )
            return False
        self.participants = snapshot.participants
        self.certificates = snapshot.certificates
        self.load_error = None
        return True

    def close(self) -> None:
        """Tear the view down; in-flight loads finishing later are ignored."""
        self.closed = True
        self._generation += 1

    def set_filters(self, spec: FilterSpec, search_query: str = "") -> None:
        self.filters = spec
        self.search_query = search_query

    def reset_filters(self) -> None:
        self.filters = FilterSpec()
        self.search_query = ""

    def visible(self) -> list[Participant]:
        """Return the participants passing the current filters."""
        return filter_participants(
            self.participants, self.filters, self.search_query, now=self.clock()
        )

    def visible_ids(self) -> list[int]:
        return [p.user_id for p in self.visible()]

    def filter_options(self) -> FilterOptions:
        return filter_options(self.participants)

    def select_all(self) -> None:
        self.selection.select_all(self.visible_ids())

    def deselect_all(self) -> None:
        self.selection.deselect_all()

    def toggle(self, user_id: int) -> None:
        """Toggle a participant that is part of the current view."""
        if user_id not in self.visible_ids():
            raise InputError(f"Participant {user_id} is not in the current view.")
        self.selection.toggle(user_id)

    def is_all_selected(self) -> bool:
        return self.selection.is_all_selected(self.visible_ids())

    def selected_data(self) -> list[Participant]:
        """Return selected participants that are still visible."""
        return self.selection.selected_data(self.visible())

    def actionable_ids(self) -> list[int]:
        return [p.user_id for p in self.selected_data()]

    def stats(self) -> ParticipantStats:
        visible = self.visible()
        return aggregate(
            self.participants,
            filtered_count=len(visible),
            selected_count=len(self.selection.selected_data(visible)),
            activity_target=(
                self.activity.expected_participants if self.activity else None
            ),
            certificate_count=len(self.certificates),
        )

    def has_certificate(self, user_id: int) -> bool:
        return any(cert.user_id == user_id for cert in self.certificates)

    def pending_picture_ids(self) -> list[int]:
        """Return pending pictures of the selected visible participants."""
        return [
            picture.picture_id
            for participant in self.selected_data()
            for picture in participant.pictures
            if picture.status == PictureStatus.PENDING
        ]

    async def participant_pictures(self, user_id: int) -> list[Picture]:
        activity_id = self._require_activity()
        return await self.participant_service.participant_pictures(
            activity_id, user_id
        )

    async def approve(self, auto_generate_certificate: bool = True) -> BatchResult:
        """Approve the pending pictures of the selected participants."""
        picture_ids = self._pending_selection_pictures()
        return await self.dispatcher.approve(picture_ids, auto_generate_certificate)

    async def reject(self, reason: str = "") -> BatchResult:
        """Reject the pending pictures of the selected participants."""
        picture_ids = self._pending_selection_pictures()
        return await self.dispatcher.reject(picture_ids, reason)

    async def approve_pictures(
        self, picture_ids: list[int], auto_generate_certificate: bool = True
    ) -> BatchResult:
        return await self.dispatcher.approve(picture_ids, auto_generate_certificate)

    async def reject_pictures(
        self, picture_ids: list[int], reason: str = ""
    ) -> BatchResult:
        return await self.dispatcher.reject(picture_ids, reason)

    async def check_in(self) -> FanOutResult:
        return await self.dispatcher.check_in(self.actionable_ids(), self.activity_id)

    async def check_out(self) -> FanOutResult:
        return await self.dispatcher.check_out(self.actionable_ids(), self.activity_id)

    def export(self) -> ExportTable:
        return self.dispatcher.export(self.selected_data())

    def _pending_selection_pictures(self) -> list[int]:
        if not self.actionable_ids():
            raise InputError("Select at least one participant first.")
        picture_ids = self.pending_picture_ids()
        if not picture_ids:
            raise InputError(
                "The selected participants have no pictures awaiting approval."
            )
        return picture_ids

    async def _refresh_after_dispatch(self) -> None:
        if self.closed:
            _logger.info("Skipping refresh of closed workspace %s", self.workspace_id)
            return
        try:
            await self.refresh()
        except GatewayError as exc:
            _logger.warning(
                "Refresh after bulk operation failed for activity %s: %s",
                self.activity_id,
                exc.message,
            )
        except Exception:
            _logger.exception(
                "Refresh after bulk operation failed for activity %s", self.activity_id
            )
            if not self.closed:
                self.load_error = "Participants could not be reloaded."

    def _require_activity(self) -> int:
        if self.activity is None:
            raise InputError("Select an activity first.")
        return self.activity.activity_id

    def _ensure_open(self) -> None:
        if self.closed:
            raise InputError("This workspace has been closed.")

    def _is_current(self, generation: int) -> bool:
        return not self.closed and generation == self._generation


@dataclass
class WorkspaceRegistry:
    """In-memory registry of open participant workspaces."""

    participant_service: ParticipantService
    workspaces: dict[UUID, ParticipantWorkspace] = field(default_factory=dict)

    def create(self, capabilities: Capabilities) -> ParticipantWorkspace:
        workspace = ParticipantWorkspace(self.participant_service, capabilities)
        self.workspaces[workspace.workspace_id] = workspace
        return workspace

    def get(self, workspace_id: UUID) -> ParticipantWorkspace | None:
        return self.workspaces.get(workspace_id)

    def close(self, workspace_id: UUID) -> bool:
        """Close and forget a workspace; return False if it was unknown."""
        workspace = self.workspaces.pop(workspace_id, None)
        if workspace is None:
            return False
        workspace.close()
        return True
