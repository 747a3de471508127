"""Tests for the bulk operation dispatcher."""

import asyncio
import random

import httpx
import pytest

from activity_admin.adapters.gateway import HttpxParticipationGateway
from activity_admin.domain.bulk import (
    FanOutResult,
    OperationKind,
    OperationOutcome,
    OperationState,
)
from activity_admin.domain.permissions import Capabilities
from activity_admin.errors import (
    AuthError,
    InputError,
    OperationInProgressError,
    PermissionDeniedError,
    RequestRejectedError,
    ServerError,
    TransportError,
)
from activity_admin.services.bulk import DEFAULT_REJECT_REASON, BulkOperationDispatcher
from tests.conftest import FakeParticipationGateway, make_participant

STAFF = Capabilities.for_user_type("staff")
TEACHER = Capabilities.for_user_type("teacher")


class _RefreshCounter:
    def __init__(self) -> None:
        self.count = 0

    async def __call__(self) -> None:
        self.count += 1


def _dispatcher(
    gateway: FakeParticipationGateway, capabilities: Capabilities = STAFF
) -> tuple[BulkOperationDispatcher, _RefreshCounter]:
    refresh = _RefreshCounter()
    dispatcher = BulkOperationDispatcher(
        gateway=gateway, capabilities=capabilities, refresh=refresh
    )
    return dispatcher, refresh


def test_check_in_one_failure_does_not_block_others() -> None:
    gateway = FakeParticipationGateway(
        failing_ids={2: TransportError("connection reset")}
    )
    dispatcher, refresh = _dispatcher(gateway)

    result = asyncio.run(dispatcher.check_in([1, 2, 3], activity_id=7))

    assert result.success_count == 2
    assert result.fail_count == 1
    assert result.failed_ids == [2]
    assert result.outcome == OperationOutcome.PARTIAL_FAILURE
    assert sorted(call[2] for call in gateway.calls_named("check_in")) == [1, 2, 3]
    assert refresh.count == 1
    assert dispatcher.last_outcomes[OperationKind.CHECK_IN] == (
        OperationOutcome.PARTIAL_FAILURE
    )


def test_fan_out_reports_every_id_whatever_the_completion_order() -> None:
    ids = list(range(1, 21))
    failing = set(random.Random(7).sample(ids, 6))

    class _ShuffledGateway(FakeParticipationGateway):
        async def check_out(self, activity_id: int, user_id: int) -> None:
            await asyncio.sleep(random.random() / 100)
            await super().check_out(activity_id, user_id)

    gateway = _ShuffledGateway(
        failing_ids={user_id: ServerError("boom") for user_id in failing}
    )
    dispatcher, _ = _dispatcher(gateway)

    result = asyncio.run(dispatcher.check_out(ids, activity_id=7))

    assert result.success_count + result.fail_count == len(ids)
    assert sorted(item.item_id for item in result.details) == ids
    assert set(result.failed_ids) == failing


def test_fan_out_all_failures_is_reported_not_raised() -> None:
    gateway = FakeParticipationGateway(
        failing_ids={1: RequestRejectedError("not registered")}
    )
    dispatcher, refresh = _dispatcher(gateway)

    result = asyncio.run(dispatcher.check_in([1], activity_id=7))

    assert result.outcome == OperationOutcome.FAILED
    assert result.details[0].error == "not registered"
    assert result.details[0].error_type == "RequestRejectedError"
    assert refresh.count == 1


def test_fan_out_auth_failure_is_fatal_after_all_settle() -> None:
    gateway = FakeParticipationGateway(failing_ids={2: AuthError("expired")})
    dispatcher, refresh = _dispatcher(gateway)

    with pytest.raises(AuthError):
        asyncio.run(dispatcher.check_in([1, 2, 3], activity_id=7))

    assert len(gateway.calls_named("check_in")) == 3
    assert refresh.count == 0
    assert dispatcher.states[OperationKind.CHECK_IN] == OperationState.IDLE
    assert dispatcher.last_outcomes[OperationKind.CHECK_IN] == OperationOutcome.FATAL


def test_duplicate_ids_are_sent_once() -> None:
    gateway = FakeParticipationGateway()
    dispatcher, _ = _dispatcher(gateway)

    result = asyncio.run(dispatcher.check_in([4, 4, 5], activity_id=7))

    assert [item.item_id for item in result.details] == [4, 5]


def test_empty_selection_is_input_error_without_network() -> None:
    gateway = FakeParticipationGateway()
    dispatcher, refresh = _dispatcher(gateway)

    with pytest.raises(InputError):
        asyncio.run(dispatcher.check_in([], activity_id=7))
    with pytest.raises(InputError):
        asyncio.run(dispatcher.approve([]))
    with pytest.raises(InputError):
        asyncio.run(dispatcher.reject([], reason="blurry"))

    assert gateway.calls == []
    assert refresh.count == 0


def test_missing_activity_is_input_error() -> None:
    gateway = FakeParticipationGateway()
    dispatcher, _ = _dispatcher(gateway)

    with pytest.raises(InputError):
        asyncio.run(dispatcher.check_out([1], activity_id=None))

    assert gateway.calls == []


def test_missing_capability_is_permission_denied() -> None:
    gateway = FakeParticipationGateway()
    dispatcher, _ = _dispatcher(gateway, capabilities=TEACHER)

    with pytest.raises(PermissionDeniedError):
        asyncio.run(dispatcher.check_in([1], activity_id=7))
    with pytest.raises(PermissionDeniedError):
        asyncio.run(dispatcher.approve([11]))

    assert gateway.calls == []


def test_second_dispatch_of_same_kind_is_rejected_while_in_flight() -> None:
    async def scenario() -> None:
        gateway = FakeParticipationGateway(check_in_gate=asyncio.Event())
        dispatcher, _ = _dispatcher(gateway)

        first = asyncio.create_task(dispatcher.check_in([1, 2], activity_id=7))
        await asyncio.sleep(0)
        assert dispatcher.in_flight["checking_in"]

        with pytest.raises(OperationInProgressError):
            await dispatcher.check_in([3], activity_id=7)
        other_kind = await dispatcher.check_out([3], activity_id=7)
        assert other_kind.success_count == 1

        gateway.check_in_gate.set()
        result = await first
        assert result.success_count == 2
        assert not dispatcher.in_flight["checking_in"]

    asyncio.run(scenario())


def test_approve_reports_backend_aggregate_verbatim() -> None:
    gateway = FakeParticipationGateway(
        approve_payload={
            "approved_count": 2,
            "skipped_count": 1,
            "errors": ["Picture 13 is already approved"],
            "certificates": [{"Users_ID": 1, "Certificate_ID": 900}],
        }
    )
    dispatcher, refresh = _dispatcher(gateway)

    result = asyncio.run(
        dispatcher.approve([11, 12, 13], auto_generate_certificate=False)
    )

    assert result.requested_count == 3
    assert result.processed_count == 2
    assert result.skipped_count == 1
    assert result.errors == ("Picture 13 is already approved",)
    assert result.certificates == ({"Users_ID": 1, "Certificate_ID": 900},)
    assert result.outcome == OperationOutcome.PARTIAL_FAILURE
    assert gateway.calls_named("approve") == [("approve", [11, 12, 13], False)]
    assert refresh.count == 1


def test_reject_uses_default_reason_when_blank() -> None:
    gateway = FakeParticipationGateway()
    dispatcher, _ = _dispatcher(gateway)

    result = asyncio.run(dispatcher.reject([11], reason="  "))

    assert result.processed_count == 1
    assert result.outcome == OperationOutcome.SUCCESS
    assert gateway.calls_named("reject") == [("reject", [11], DEFAULT_REJECT_REASON)]


def test_batch_failure_propagates_and_resets_state() -> None:
    gateway = FakeParticipationGateway(batch_error=ServerError("down", 503))
    dispatcher, refresh = _dispatcher(gateway)

    with pytest.raises(ServerError):
        asyncio.run(dispatcher.approve([11]))

    assert refresh.count == 0
    assert dispatcher.states[OperationKind.APPROVE] == OperationState.IDLE
    assert dispatcher.last_outcomes[OperationKind.APPROVE] == OperationOutcome.FATAL


def test_export_builds_rows_for_selection() -> None:
    dispatcher, _ = _dispatcher(FakeParticipationGateway(), capabilities=TEACHER)

    table = dispatcher.export([make_participant(1), make_participant(2)])

    assert table.row_count == 2
    assert table.rows[0][0] == 1


def test_export_requires_selection_and_capability() -> None:
    dispatcher, _ = _dispatcher(
        FakeParticipationGateway(), capabilities=Capabilities.for_user_type(None)
    )

    with pytest.raises(InputError):
        dispatcher.export([])
    with pytest.raises(PermissionDeniedError):
        dispatcher.export([make_participant(1)])


def test_malformed_response_on_one_id_does_not_block_others() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/participants/2/checkin"):
            return httpx.Response(200, text="<html>proxy</html>")
        return httpx.Response(204)

    async def scenario() -> FanOutResult:
        gateway = HttpxParticipationGateway(
            base_url="https://activity.example.test",
            api_token="api-token",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        refresh = _RefreshCounter()
        dispatcher = BulkOperationDispatcher(
            gateway=gateway, capabilities=STAFF, refresh=refresh
        )
        try:
            return await dispatcher.check_in([1, 2, 3], activity_id=7)
        finally:
            await gateway.close()

    result = asyncio.run(scenario())

    assert result.success_count == 2
    assert result.failed_ids == [2]
    assert result.details[1].error_type == "ServerError"
    assert result.outcome == OperationOutcome.PARTIAL_FAILURE


def test_unexpected_item_error_is_settled_per_id() -> None:
    gateway = FakeParticipationGateway(failing_ids={3: RuntimeError("boom")})
    dispatcher, refresh = _dispatcher(gateway)

    result = asyncio.run(dispatcher.check_out([1, 3], activity_id=7))

    assert result.success_count == 1
    assert result.failed_ids == [3]
    assert result.details[1].error == "boom"
    assert result.details[1].error_type == "RuntimeError"
    assert refresh.count == 1


def test_batch_counts_are_parsed_leniently() -> None:
    gateway = FakeParticipationGateway(
        approve_payload={"approved_count": "3.0", "skipped_count": "n/a"}
    )
    dispatcher, _ = _dispatcher(gateway)

    result = asyncio.run(dispatcher.approve([11, 12, 13]))

    assert result.processed_count == 3
    assert result.skipped_count == 0
    assert result.outcome == OperationOutcome.SUCCESS
