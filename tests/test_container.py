"""Tests for container wiring."""

import asyncio

from activity_admin.adapters.gateway import HttpxParticipationGateway
from activity_admin.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.gateway, HttpxParticipationGateway)
    assert container.gateway.base_url == "https://activity.example.test"
    assert container.participant_service.gateway is container.gateway
    assert container.workspaces.workspaces == {}
    asyncio.run(container.close_resources())
