"""Tests for splitledger.domain.fees pure functions."""

from decimal import Decimal

import pytest

from splitledger.domain.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule, apportion_fee, payer_share
from splitledger.domain.models import Money


class TestApportionFee:
    """Tests for apportion_fee."""

    def test_two_participants(self) -> None:
        """Should split every fee pool between both participants."""
        breakdown = apportion_fee(Money(10000), 2)  # $100

        assert breakdown.processor_fee == 320  # 2.9% + $0.30
        assert breakdown.processor_fee_share == 160
        assert breakdown.payout_fee_share == 75  # 1.5% / 2
        assert breakdown.platform_fee_share == 25  # $0.50 / 2
        assert breakdown.user_fee == 260
        assert breakdown.total == 10260

    def test_payer_absorbs_remainder_cents(self) -> None:
        """Should give the payer the larger share of an uneven pool."""
        breakdown = apportion_fee(Money(2500), 4)  # $25

        assert breakdown.processor_fee == 102  # 72.5 rounds to 72, plus 30
        assert breakdown.processor_fee_share == 26
        assert breakdown.payout_fee_share == 10  # 37.5 rounds to 38
        assert breakdown.platform_fee_share == 13
        assert breakdown.user_fee == 49

    def test_single_participant_pays_everything(self) -> None:
        """Should charge a lone payer the whole of each pool."""
        breakdown = apportion_fee(Money(10000), 1)

        assert breakdown.user_fee == 320 + 150 + 50

    def test_zero_amount_still_has_fixed_fees(self) -> None:
        """Should charge the fixed fees on a zero amount."""
        breakdown = apportion_fee(Money(0), 2)

        assert breakdown.processor_fee == 30
        assert breakdown.user_fee == 15 + 0 + 25

    def test_custom_schedule(self) -> None:
        """Should use the fee schedule it is given."""
        schedule = FeeSchedule(
            processor_percent=Decimal("1.75"),
            processor_fixed=Money(10),
            payout_percent=Decimal(0),
            platform_fixed=Money(0),
        )
        breakdown = apportion_fee(Money(10000), 2, schedule)

        assert breakdown.processor_fee == 185
        assert breakdown.user_fee == 93

    def test_rejects_no_participants(self) -> None:
        """Should need at least one participant."""
        with pytest.raises(ValueError):
            apportion_fee(Money(1000), 0)

    def test_rejects_negative_amount(self) -> None:
        """Should refuse negative amounts."""
        with pytest.raises(ValueError):
            apportion_fee(Money(-1000), 2)

    def test_default_schedule(self) -> None:
        """Should default to 2.9% + $0.30, 1.5% and $0.50."""
        assert DEFAULT_FEE_SCHEDULE.processor_percent == Decimal("2.9")
        assert DEFAULT_FEE_SCHEDULE.processor_fixed == 30
        assert DEFAULT_FEE_SCHEDULE.payout_percent == Decimal("1.5")
        assert DEFAULT_FEE_SCHEDULE.platform_fixed == 50


class TestPayerShare:
    """Tests for payer_share."""

    def test_takes_first_share(self) -> None:
        """Should round the payer's share up when the pool is uneven."""
        assert payer_share(Money(50), 3) == 17
        assert payer_share(Money(51), 3) == 17
