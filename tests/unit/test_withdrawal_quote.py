"""Withdrawal quote arithmetic and the request state machine."""

import pytest

from src.mb_common.enums import WithdrawalStatus
from src.mb_common.errors import (
    BelowMinimumWithdrawalError,
    InvalidInputError,
    InvalidStatusTransitionError,
)
from src.mb_withdrawal.domain.models import FeeSchedule
from src.mb_withdrawal.domain.quote import compute_quote
from src.mb_withdrawal.domain.transitions import can_transition, check_transition, is_terminal

SCHEDULE = FeeSchedule(
    lovelace_per_credit=10_000,
    spread_bps=500,
    platform_fee_bps=250,
    network_fee_lovelace=170_000,
    min_net_lovelace=5_000_000,
)


class TestComputeQuote:
    def test_thousand_credits(self) -> None:
        quote = compute_quote(1000, SCHEDULE)
        assert quote.cashout_rate_lovelace == 9_500
        assert quote.gross_lovelace == 9_500_000
        assert quote.platform_fee_lovelace == 237_500
        assert quote.network_fee_lovelace == 170_000
        assert quote.net_lovelace == 9_092_500

    def test_to_dict(self) -> None:
        data = compute_quote(1000, SCHEDULE).to_dict()
        assert data["netAmount"] == 9_092_500
        assert data["netDisplay"] == "9.092500 ADA"

    def test_platform_fee_rounds_up(self) -> None:
        schedule = FeeSchedule(10_000, 500, 250, 0, 0)
        # gross 9_500 * 3 = 28_500; 2.5% = 712.5 -> 713
        assert compute_quote(3, schedule).platform_fee_lovelace == 713

    def test_below_minimum(self) -> None:
        with pytest.raises(BelowMinimumWithdrawalError):
            compute_quote(500, SCHEDULE)

    @pytest.mark.parametrize("credits", [0, -1, True])
    def test_bad_credits(self, credits) -> None:
        with pytest.raises(InvalidInputError):
            compute_quote(credits, SCHEDULE)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING),
            (WithdrawalStatus.PENDING, WithdrawalStatus.CANCELLED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.PENDING),
        ],
    )
    def test_allowed(self, current, target) -> None:
        assert can_transition(current, target)
        check_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (WithdrawalStatus.PENDING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.CANCELLED),
            (WithdrawalStatus.COMPLETED, WithdrawalStatus.PENDING),
            (WithdrawalStatus.CANCELLED, WithdrawalStatus.PROCESSING),
            (WithdrawalStatus.PENDING, WithdrawalStatus.PENDING),
        ],
    )
    def test_rejected(self, current, target) -> None:
        with pytest.raises(InvalidStatusTransitionError):
            check_transition(current, target)

    def test_terminal_states(self) -> None:
        assert is_terminal(WithdrawalStatus.COMPLETED)
        assert is_terminal(WithdrawalStatus.CANCELLED)
        assert not is_terminal(WithdrawalStatus.PENDING)
