"""Bulk operations on selected participants and pictures.

Batch operations (approve, reject) send one request carrying every id and
report the backend aggregate as-is. Fan-out operations (check-in, check-out)
send one request per id concurrently and wait for all of them to settle before
reporting; one failing id never prevents the others from completing.

Every settled operation is followed by a refresh of the participant
collection. Local participant records are never edited.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from activity_admin.adapters.gateway import ParticipationGateway
from activity_admin.domain.bulk import (
    BatchResult,
    ExportTable,
    FanOutResult,
    ItemOutcome,
    OperationKind,
    OperationOutcome,
    OperationState,
)
from activity_admin.domain.participants import Participant
from activity_admin.domain.permissions import Capabilities
from activity_admin.errors import (
    AuthError,
    GatewayError,
    InputError,
    OperationInProgressError,
    PermissionDeniedError,
)
from activity_admin.services.export import build_export_table

DEFAULT_REJECT_REASON = "No reason given"

_logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[None]]

_IN_FLIGHT_FLAGS = {
    OperationKind.APPROVE: "approving",
    OperationKind.REJECT: "rejecting",
    OperationKind.CHECK_IN: "checking_in",
    OperationKind.CHECK_OUT: "checking_out",
}


async def _no_refresh() -> None:
    return None


@dataclass
class BulkOperationDispatcher:
    """Dispatches bulk operations and tracks per-kind in-flight state."""

    gateway: ParticipationGateway
    capabilities: Capabilities
    refresh: RefreshCallback = _no_refresh
    states: dict[OperationKind, OperationState] = field(
        default_factory=lambda: dict.fromkeys(_IN_FLIGHT_FLAGS, OperationState.IDLE)
    )
    last_outcomes: dict[OperationKind, OperationOutcome] = field(default_factory=dict)

    @property
    def in_flight(self) -> dict[str, bool]:
        """Return the in-flight flag of each network-bound operation kind."""
        return {
            flag: self.states[kind] == OperationState.DISPATCHING
            for kind, flag in _IN_FLIGHT_FLAGS.items()
        }

    async def approve(
        self, picture_ids: Sequence[int], auto_generate_certificate: bool = True
    ) -> BatchResult:
        """Approve pictures in a single batch request."""
        ids = _require_ids(picture_ids, "Select at least one picture to approve.")
        self._require_manage()

        async def call() -> dict[str, object]:
            return await self.gateway.bulk_approve_pictures(
                ids, auto_generate_certificate
            )

        return await self._run_batch(OperationKind.APPROVE, ids, call, "approved_count")

    async def reject(self, picture_ids: Sequence[int], reason: str = "") -> BatchResult:
        """Reject pictures in a single batch request."""
        ids = _require_ids(picture_ids, "Select at least one picture to reject.")
        self._require_manage()
        resolved_reason = reason.strip() or DEFAULT_REJECT_REASON

        async def call() -> dict[str, object]:
            return await self.gateway.bulk_reject_pictures(ids, resolved_reason)

        return await self._run_batch(OperationKind.REJECT, ids, call, "rejected_count")

    async def check_in(
        self, user_ids: Sequence[int], activity_id: int | None
    ) -> FanOutResult:
        """Check participants in with one concurrent request per id."""
        ids = _require_ids(user_ids, "Select at least one participant to check in.")
        resolved_activity = _require_activity(activity_id)
        self._require_manage()
        return await self._run_fan_out(
            OperationKind.CHECK_IN,
            ids,
            lambda user_id: self.gateway.check_in(resolved_activity, user_id),
        )

    async def check_out(
        self, user_ids: Sequence[int], activity_id: int | None
    ) -> FanOutResult:
        """Check participants out with one concurrent request per id."""
        ids = _require_ids(user_ids, "Select at least one participant to check out.")
        resolved_activity = _require_activity(activity_id)
        self._require_manage()
        return await self._run_fan_out(
            OperationKind.CHECK_OUT,
            ids,
            lambda user_id: self.gateway.check_out(resolved_activity, user_id),
        )

    def export(self, selected: Sequence[Participant]) -> ExportTable:
        """Turn the selected participants into export rows; no network call."""
        if not selected:
            raise InputError("There is no selected data to export.")
        if not self.capabilities.can_export_data:
            raise PermissionDeniedError("Exporting participant data is not allowed.")
        return build_export_table(selected)

    async def _run_batch(
        self,
        kind: OperationKind,
        ids: list[int],
        call: Callable[[], Awaitable[dict[str, object]]],
        processed_key: str,
    ) -> BatchResult:
        self._begin(kind)
        outcome = OperationOutcome.FATAL
        try:
            try:
                payload = await call()
            except GatewayError as exc:
                _logger.warning("Bulk %s failed: %s", kind.value, exc.message)
                raise
            result = _batch_result(kind, ids, payload, processed_key)
            outcome = result.outcome
            _logger.info(
                "Bulk %s settled: processed=%s skipped=%s",
                kind.value,
                result.processed_count,
                result.skipped_count,
            )
            await self.refresh()
        finally:
            self._finish(kind, outcome)
        return result

    async def _run_fan_out(
        self,
        kind: OperationKind,
        ids: list[int],
        send: Callable[[int], Awaitable[None]],
    ) -> FanOutResult:
        self._begin(kind)
        outcome = OperationOutcome.FATAL
        try:
            outcomes = await asyncio.gather(
                *(_settle(user_id, send) for user_id in ids)
            )
            result = FanOutResult(kind=kind, details=tuple(outcomes))
            if any(item.error_type == AuthError.__name__ for item in outcomes):
                raise AuthError(
                    f"Session rejected during {kind.value}; "
                    f"{result.success_count} of {len(ids)} requests succeeded."
                )
            outcome = result.outcome
            _logger.info(
                "Bulk %s settled: success=%s failed=%s",
                kind.value,
                result.success_count,
                result.fail_count,
            )
            await self.refresh()
        finally:
            self._finish(kind, outcome)
        return result

    def _require_manage(self) -> None:
        if not self.capabilities.can_manage_participants:
            raise PermissionDeniedError("Managing participants is not allowed.")

    def _begin(self, kind: OperationKind) -> None:
        if self.states[kind] == OperationState.DISPATCHING:
            raise OperationInProgressError(
                f"A {kind.value} operation is already in progress."
            )
        self.states[kind] = OperationState.DISPATCHING

    def _finish(self, kind: OperationKind, outcome: OperationOutcome) -> None:
        self.last_outcomes[kind] = outcome
        self.states[kind] = OperationState.IDLE


async def _settle(user_id: int, send: Callable[[int], Awaitable[None]]) -> ItemOutcome:
    """Run one request and capture its outcome instead of raising."""
    try:
        await send(user_id)
    except GatewayError as exc:
        _logger.warning("Request for user %s failed: %s", user_id, exc.message)
        return ItemOutcome(
            item_id=user_id,
            succeeded=False,
            error=exc.message,
            error_type=type(exc).__name__,
        )
    except Exception as exc:
        _logger.exception("Request for user %s failed unexpectedly", user_id)
        return ItemOutcome(
            item_id=user_id,
            succeeded=False,
            error=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
        )
    return ItemOutcome(item_id=user_id, succeeded=True)


def _require_ids(ids: Sequence[int], message: str) -> list[int]:
    unique = list(dict.fromkeys(ids))
    if not unique:
        raise InputError(message)
    return unique


def _require_activity(activity_id: int | None) -> int:
    if activity_id is None:
        raise InputError("Select an activity first.")
    return activity_id


def _batch_result(
    kind: OperationKind,
    ids: list[int],
    payload: dict[str, object],
    processed_key: str,
) -> BatchResult:
    errors = payload.get("errors") or []
    if not isinstance(errors, list):
        errors = [errors]
    certificates = payload.get("certificates") or []
    if not isinstance(certificates, list):
        certificates = []
    return BatchResult(
        kind=kind,
        requested_count=len(ids),
        processed_count=_int_field(payload, processed_key),
        skipped_count=_int_field(payload, "skipped_count"),
        errors=tuple(str(error) for error in errors),
        certificates=tuple(cert for cert in certificates if isinstance(cert, dict)),
    )


def _int_field(payload: dict[str, object], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return int(float(str(value)))
    except (ValueError, OverflowError):
        return 0
