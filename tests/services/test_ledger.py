from decimal import Decimal

import pytest

from gameon.core.errors import MalformedPayoutSpecError, ValidationError
from gameon.services import ledger
from gameon.services.ledger import PayoutPosition


class TestPrizePool:

    def test_prize_pool_is_entry_fee_times_capacity(self):
        assert ledger.compute_prize_pool(Decimal("25"), 8) == Decimal("200.00")

    def test_prize_pool_accepts_floats_without_binary_noise(self):
        assert ledger.compute_prize_pool(0.1, 3) == Decimal("0.30")

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "not money"])
    def test_non_numeric_fee_raises(self, bad):
        with pytest.raises(ValueError):
            ledger.compute_prize_pool(bad, 2)


class TestDistribution:

    def test_default_split_of_200(self):
        distribution = ledger.compute_distribution(Decimal("200"))
        assert distribution.platform_fee == Decimal("20.00")
        assert distribution.game_master_fee == Decimal("10.00")
        assert distribution.promoters_fee == Decimal("20.00")
        assert distribution.winners_prize == Decimal("150.00")

    @pytest.mark.parametrize("pool", ["0", "0.01", "0.07", "33.33", "199.99", "1234.57", "640000"])
    def test_parts_always_sum_to_pool(self, pool):
        distribution = ledger.compute_distribution(Decimal(pool))
        assert sum(distribution) == Decimal(pool)
        assert all(part >= 0 for part in distribution)

    def test_winners_get_the_rounding_remainder(self):
        # 0.10 * 33.33 = 3.333 -> 3.33, 0.05 * 33.33 = 1.6665 -> 1.67
        distribution = ledger.compute_distribution(Decimal("33.33"))
        assert distribution.platform_fee == Decimal("3.33")
        assert distribution.game_master_fee == Decimal("1.67")
        assert distribution.promoters_fee == Decimal("3.33")
        assert distribution.winners_prize == Decimal("25.00")


class TestReferralShare:

    def test_ten_percent_of_entry_fee(self):
        assert ledger.compute_referral_share(Decimal("25")) == Decimal("2.50")

    def test_share_rounds_half_up_to_the_cent(self):
        assert ledger.compute_referral_share(Decimal("1.05")) == Decimal("0.11")


class TestGameEconomics:

    @pytest.mark.parametrize("fee", ["1", "1.00", "25.50", "10000"])
    def test_fee_within_bounds(self, fee):
        assert ledger.validate_game_economics(Decimal(fee), 8) == Decimal(fee).quantize(ledger.CENT)

    @pytest.mark.parametrize("fee", ["0.99", "0", "-5", "10000.01"])
    def test_fee_out_of_bounds(self, fee):
        with pytest.raises(ValidationError):
            ledger.validate_game_economics(Decimal(fee), 8)

    def test_fractional_cent_fee_rejected(self):
        # Cent precision is enforced on top of the 1-10000 range; ledger amounts are never sub-cent.
        with pytest.raises(ValidationError):
            ledger.validate_game_economics(Decimal("1.005"), 8)

    @pytest.mark.parametrize("max_players", [2, 64])
    def test_capacity_within_bounds(self, max_players):
        ledger.validate_game_economics(Decimal("10"), max_players)

    @pytest.mark.parametrize("max_players", [0, 1, 65, 4.0, True])
    def test_capacity_out_of_bounds_or_not_integer(self, max_players):
        with pytest.raises(ValidationError):
            ledger.validate_game_economics(Decimal("10"), max_players)


class TestPayoutStructure:

    def test_parse_keeps_order_and_strips_whitespace(self):
        assert ledger.parse_payout_structure(" 1st : 70 , 2nd:30") == [
            PayoutPosition("1st", 70),
            PayoutPosition("2nd", 30),
        ]

    def test_parse_does_not_check_the_total(self):
        assert ledger.parse_payout_structure("1st:50") == [PayoutPosition("1st", 50)]

    @pytest.mark.parametrize("spec", ["", "1st70", ":70", "1st:seventy", "1st:70,,2nd:30"])
    def test_malformed_entries(self, spec):
        with pytest.raises(MalformedPayoutSpecError):
            ledger.parse_payout_structure(spec)

    def test_malformed_spec_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            ledger.parse_payout_structure("winner")

    def test_validate_accepts_structure_summing_to_100(self):
        assert len(ledger.validate_payout_structure("1st:50,2nd:30,3rd:20")) == 3

    @pytest.mark.parametrize("spec", ["1st:70,2nd:20", "1st:70,2nd:40", "1st:100,2nd:0", "1st:50,1st:50"])
    def test_validate_rejects_bad_structures(self, spec):
        with pytest.raises(MalformedPayoutSpecError):
            ledger.validate_payout_structure(spec)


class TestWinnersSplit:

    def test_split_of_150(self):
        shares = ledger.split_winners_prize(Decimal("150"), ledger.parse_payout_structure("1st:70,2nd:30"))
        assert shares == [("1st", Decimal("105.00")), ("2nd", Decimal("45.00"))]

    def test_remainder_goes_to_first_position(self):
        positions = ledger.parse_payout_structure("1st:34,2nd:33,3rd:33")
        shares = ledger.split_winners_prize(Decimal("100.01"), positions)
        assert shares == [("1st", Decimal("34.01")), ("2nd", Decimal("33.00")), ("3rd", Decimal("33.00"))]
        assert sum(amount for _, amount in shares) == Decimal("100.01")

    def test_partial_structure_is_not_topped_up(self):
        shares = ledger.split_winners_prize(Decimal("10"), [PayoutPosition("1st", 50)])
        assert shares == [("1st", Decimal("5.00"))]
