"""
Pure workflow rules: the case status state machine and the stage margin
aggregate. No I/O; the services apply these decisions inside transactions.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from mohs.core.errors import InvalidArgument
from mohs.schemas.enums import BlockMarginStatus, CaseStatus, StageMarginStatus, enum_values

STATUS_ORDER: tuple[CaseStatus, ...] = (
    CaseStatus.SCHEDULED,
    CaseStatus.PRE_OP,
    CaseStatus.IN_PROGRESS,
    CaseStatus.CLOSURE,
    CaseStatus.POST_OP,
    CaseStatus.COMPLETED,
)
TERMINAL_STATUSES = frozenset({CaseStatus.COMPLETED, CaseStatus.CANCELLED})
STAGE_START_STATUSES = frozenset({CaseStatus.SCHEDULED, CaseStatus.PRE_OP})
REPORTABLE_STATUSES = frozenset({CaseStatus.COMPLETED, CaseStatus.POST_OP})


def parse_status(value: str | CaseStatus) -> CaseStatus:
    try:
        return CaseStatus(value)
    except ValueError as exc:
        raise InvalidArgument(
            f"Invalid status: {value}", details={"allowed": enum_values(CaseStatus)}
        ) from exc


def is_legal_transition(current: CaseStatus, target: CaseStatus) -> bool:
    if current == target:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if target == CaseStatus.CANCELLED:
        return True
    return STATUS_ORDER.index(target) > STATUS_ORDER.index(current)


def check_transition(current: str | CaseStatus, target: str | CaseStatus) -> CaseStatus:
    current_status = parse_status(current)
    target_status = parse_status(target)
    if not is_legal_transition(current_status, target_status):
        raise InvalidArgument(
            f"Illegal status transition {current_status.value} -> {target_status.value}",
            details={"from": current_status.value, "to": target_status.value},
        )
    return target_status


class MarginReading(Protocol):
    margin_status: str
    deep_margin_status: str | None


def aggregate_margin_status(blocks: Iterable[MarginReading]) -> StageMarginStatus:
    """
    Stage aggregate over every block of the stage:
    any positive (peripheral or deep) -> positive, else any close -> partial,
    else all peripheral negative -> negative, else pending. No blocks -> pending.
    """
    readings = [(block.margin_status, block.deep_margin_status) for block in blocks]
    if not readings:
        return StageMarginStatus.PENDING

    positive = BlockMarginStatus.POSITIVE.value
    close = BlockMarginStatus.CLOSE.value
    negative = BlockMarginStatus.NEGATIVE.value

    if any(positive in (peripheral, deep) for peripheral, deep in readings):
        return StageMarginStatus.POSITIVE
    if any(close in (peripheral, deep) for peripheral, deep in readings):
        return StageMarginStatus.PARTIAL
    # deep readings only count toward positive or close
    if all(peripheral == negative for peripheral, _ in readings):
        return StageMarginStatus.NEGATIVE
    return StageMarginStatus.PENDING
