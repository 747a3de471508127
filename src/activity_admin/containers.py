"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from activity_admin.adapters.gateway import (
    HttpxParticipationGateway,
    ParticipationGateway,
)
from activity_admin.config import Settings
from activity_admin.services.activities import ActivityService
from activity_admin.services.participants import ParticipantService
from activity_admin.services.workspace import WorkspaceRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    gateway: ParticipationGateway
    activity_service: ActivityService
    participant_service: ParticipantService
    workspaces: WorkspaceRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    gateway = HttpxParticipationGateway.create(
        base_url=resolved_settings.api_base_url,
        api_token=resolved_settings.api_token,
        timeout_seconds=resolved_settings.api_timeout_seconds,
    )
    participant_service = ParticipantService(gateway)

    async def close_resources() -> None:
        await gateway.close()

    return AppContainer(
        settings=resolved_settings,
        gateway=gateway,
        activity_service=ActivityService(gateway),
        participant_service=participant_service,
        workspaces=WorkspaceRegistry(participant_service),
        close_resources=close_resources,
    )
