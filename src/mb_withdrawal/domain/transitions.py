"""Withdrawal request state machine.

    pending    -> processing   admin claims it
    processing -> completed    payout confirmed, proof-of-payment attached
    processing -> pending      reverted
    pending    -> cancelled    rejected, drawn credits refunded

completed and cancelled are terminal.
"""

from src.mb_common.enums import WithdrawalStatus
from src.mb_common.errors import InvalidStatusTransitionError

_ALLOWED: dict[WithdrawalStatus, frozenset[WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: frozenset({WithdrawalStatus.PROCESSING, WithdrawalStatus.CANCELLED}),
    WithdrawalStatus.PROCESSING: frozenset({WithdrawalStatus.COMPLETED, WithdrawalStatus.PENDING}),
    WithdrawalStatus.COMPLETED: frozenset(),
    WithdrawalStatus.CANCELLED: frozenset(),
}


def can_transition(current: WithdrawalStatus, target: WithdrawalStatus) -> bool:
    return target in _ALLOWED[current]


def check_transition(current: WithdrawalStatus, target: WithdrawalStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current.value, target.value)


def is_terminal(status: WithdrawalStatus) -> bool:
    return not _ALLOWED[status]
