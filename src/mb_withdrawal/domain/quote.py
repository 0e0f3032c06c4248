"""Withdrawal quote: credits -> lovelace at the published rate, minus fees.

    cashout_rate = lovelace_per_credit * (10000 - spread_bps) / 10000
    gross        = credits * cashout_rate
    platform_fee = ceil(gross * platform_fee_bps / 10000)
    net          = gross - platform_fee - network_fee

Integer lovelace throughout; the spread rounds down and fees round up, so
rounding never favours the payout.
"""

from src.mb_common.credits import apply_bps
from src.mb_common.errors import BelowMinimumWithdrawalError, InvalidInputError
from src.mb_withdrawal.domain.models import FeeSchedule, WithdrawalQuote

BPS_DENOMINATOR = 10_000


def compute_quote(credits: int, schedule: FeeSchedule) -> WithdrawalQuote:
    if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
        raise InvalidInputError("Invalid credits")
    gross = credits * schedule.lovelace_per_credit * (BPS_DENOMINATOR - schedule.spread_bps)
    gross //= BPS_DENOMINATOR
    platform_fee = apply_bps(gross, schedule.platform_fee_bps)
    net = gross - platform_fee - schedule.network_fee_lovelace
    if net < schedule.min_net_lovelace:
        raise BelowMinimumWithdrawalError(net, schedule.min_net_lovelace)
    return WithdrawalQuote(
        credits=credits,
        cashout_rate_lovelace=(
            schedule.lovelace_per_credit * (BPS_DENOMINATOR - schedule.spread_bps)
        ) // BPS_DENOMINATOR,
        gross_lovelace=gross,
        platform_fee_lovelace=platform_fee,
        network_fee_lovelace=schedule.network_fee_lovelace,
        net_lovelace=net,
    )
