"""Activity REST API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from activity_admin.errors import (
    AuthError,
    GatewayError,
    NotFoundError,
    RequestRejectedError,
    ServerError,
    TransportError,
)

_AUTH_STATUSES = {401, 403}
_REJECTED_STATUSES = {400, 409, 422}


class ParticipationGateway(Protocol):
    """Interface for the activity and registration backend."""

    async def list_activities_with_participants(self) -> list[dict[str, object]]:
        """Return activities with aggregate participant counts."""

    async def list_participants(self, activity_id: int) -> list[dict[str, object]]:
        """Return raw participant rows for an activity."""

    async def list_activity_pictures(
        self, activity_id: int
    ) -> list[dict[str, object]]:
        """Return every registration picture uploaded for an activity."""

    async def list_participant_pictures(
        self, activity_id: int, user_id: int
    ) -> list[dict[str, object]]:
        """Return the pictures one participant uploaded for an activity."""

    async def list_certificates(self, activity_id: int) -> list[dict[str, object]]:
        """Return certificates issued for an activity."""

    async def bulk_approve_pictures(
        self, picture_ids: list[int], auto_generate_certificate: bool
    ) -> dict[str, object]:
        """Approve pictures in one batch call."""

    async def bulk_reject_pictures(
        self, picture_ids: list[int], reason: str
    ) -> dict[str, object]:
        """Reject pictures in one batch call."""

    async def check_in(self, activity_id: int, user_id: int) -> None:
        """Check a participant in."""

    async def check_out(self, activity_id: int, user_id: int) -> None:
        """Check a participant out."""


@dataclass
class HttpxParticipationGateway(ParticipationGateway):
    """HTTPX-backed activity API client."""

    base_url: str
    api_token: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, api_token: str, timeout_seconds: float = 15.0
    ) -> "HttpxParticipationGateway":
        """Create a gateway with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_token=api_token,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def list_activities_with_participants(self) -> list[dict[str, object]]:
        """Fetch activities with participant counts."""
        data = await self._request("GET", "/api/admin/activities/with-participants")
        return _as_list(data)

    async def list_participants(self, activity_id: int) -> list[dict[str, object]]:
        """Fetch participants of an activity."""
        data = await self._request(
            "GET", f"/api/admin/activities/{activity_id}/participants"
        )
        return _as_list(data)

    async def list_activity_pictures(
        self, activity_id: int
    ) -> list[dict[str, object]]:
        """Fetch all pictures of an activity."""
        data = await self._request(
            "GET", f"/api/admin/activities/{activity_id}/pictures/all"
        )
        return _as_list(data)

    async def list_participant_pictures(
        self, activity_id: int, user_id: int
    ) -> list[dict[str, object]]:
        """Fetch the pictures of a single participant."""
        data = await self._request(
            "GET",
            f"/api/admin/activities/{activity_id}/participants/{user_id}/images",
        )
        return _as_list(data)

    async def list_certificates(self, activity_id: int) -> list[dict[str, object]]:
        """Fetch certificates issued for an activity."""
        data = await self._request(
            "GET", f"/api/admin/activities/{activity_id}/certificates"
        )
        return _as_list(data)

    async def bulk_approve_pictures(
        self, picture_ids: list[int], auto_generate_certificate: bool
    ) -> dict[str, object]:
        """Approve pictures with a single PATCH."""
        data = await self._request(
            "PATCH",
            "/api/registration-pictures/bulk-approve",
            json={
                "pictureIds": picture_ids,
                "autoGenerateCertificate": auto_generate_certificate,
            },
        )
        return data if isinstance(data, dict) else {}

    async def bulk_reject_pictures(
        self, picture_ids: list[int], reason: str
    ) -> dict[str, object]:
        """Reject pictures with a single PATCH."""
        data = await self._request(
            "PATCH",
            "/api/registration-pictures/bulk-reject",
            json={"pictureIds": picture_ids, "reason": reason},
        )
        return data if isinstance(data, dict) else {}

    async def check_in(self, activity_id: int, user_id: int) -> None:
        """Check a participant in."""
        await self._request(
            "PATCH",
            f"/api/admin/activities/{activity_id}/participants/{user_id}/checkin",
            json={},
        )

    async def check_out(self, activity_id: int, user_id: int) -> None:
        """Check a participant out."""
        await self._request(
            "PATCH",
            f"/api/admin/activities/{activity_id}/participants/{user_id}/checkout",
            json={},
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> object:
        """Send a request and unwrap the ``{status, data, message}`` envelope."""
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.request(
                method,
                url,
                json=json,
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=self.timeout_seconds,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:  # noqa: PLR2004
            raise _error_for_response(method, path, response)

        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            raise ServerError(
                f"{method} {path} returned a malformed response",
                status_code=response.status_code,
            ) from exc
        if isinstance(payload, dict):
            if payload.get("status") is False:
                raise RequestRejectedError(
                    str(payload.get("message") or f"{method} {path} was rejected"),
                    status_code=response.status_code,
                )
            return payload.get("data")
        return payload


def _error_for_response(
    method: str, path: str, response: httpx.Response
) -> GatewayError:
    """Map an HTTP error response to the console error taxonomy."""
    status_code = response.status_code
    message = (
        _response_message(response) or f"{method} {path} returned {status_code}"
    )
    if status_code in _AUTH_STATUSES:
        return AuthError(message, status_code=status_code)
    if status_code == 404:  # noqa: PLR2004
        return NotFoundError(message, status_code=status_code)
    if status_code in _REJECTED_STATUSES:
        return RequestRejectedError(message, status_code=status_code)
    if status_code >= 500:  # noqa: PLR2004
        return ServerError(message, status_code=status_code)
    return RequestRejectedError(message, status_code=status_code)


def _response_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return None


def _as_list(data: object) -> list[dict[str, object]]:
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []
