"""Domain models for bulk participant operations."""

from dataclasses import dataclass, field
from enum import Enum


class OperationKind(str, Enum):
    """Bulk operation kinds issued from the participant view."""

    APPROVE = "approve"
    REJECT = "reject"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    EXPORT = "export"


class OperationState(str, Enum):
    """Dispatch state of one operation kind."""

    IDLE = "idle"
    DISPATCHING = "dispatching"


class OperationOutcome(str, Enum):
    """How the last dispatch of an operation kind ended."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"
    FATAL = "fatal"


@dataclass(frozen=True)
class BatchResult:
    """Aggregate returned by a batch picture moderation call."""

    kind: OperationKind
    requested_count: int
    processed_count: int
    skipped_count: int
    errors: tuple[str, ...] = ()
    certificates: tuple[dict[str, object], ...] = ()

    @property
    def outcome(self) -> OperationOutcome:
        if self.skipped_count or self.errors:
            return OperationOutcome.PARTIAL_FAILURE
        return OperationOutcome.SUCCESS


@dataclass(frozen=True)
class ItemOutcome:
    """Settled result of one request in a fan-out operation."""

    item_id: int
    succeeded: bool
    error: str | None = None
    error_type: str | None = None


@dataclass(frozen=True)
class FanOutResult:
    """Aggregate of a fan-out operation, one outcome per requested id."""

    kind: OperationKind
    details: tuple[ItemOutcome, ...] = field(default_factory=tuple)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.details if item.succeeded)

    @property
    def fail_count(self) -> int:
        return sum(1 for item in self.details if not item.succeeded)

    @property
    def failed_ids(self) -> list[int]:
        return [item.item_id for item in self.details if not item.succeeded]

    @property
    def outcome(self) -> OperationOutcome:
        if self.fail_count == 0:
            return OperationOutcome.SUCCESS
        if self.success_count == 0:
            return OperationOutcome.FAILED
        return OperationOutcome.PARTIAL_FAILURE


@dataclass(frozen=True)
class ExportTable:
    """Tabular export of selected participants."""

    headers: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)
