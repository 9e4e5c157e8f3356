"""
Prize-pool arithmetic.

Pure functions, no I/O. Money is handled as ``Decimal`` quantized to cents
with ROUND_HALF_UP so splits never leak fractions of a cent.
"""
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import List, NamedTuple, Tuple, Union

from gameon.core.errors import MalformedPayoutSpecError, ValidationError

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")

MIN_ENTRY_FEE = Decimal("1")
MAX_ENTRY_FEE = Decimal("10000")
MIN_PLAYERS = 2
MAX_PLAYERS = 64

PLATFORM_RATE = Decimal("0.10")
GAME_MASTER_RATE = Decimal("0.05")
PROMOTERS_RATE = Decimal("0.10")
# Winners receive whatever is left (75%), never a separate multiplication.
REFERRAL_RATE = Decimal("0.10")


class Distribution(NamedTuple):
    platform_fee: Decimal
    game_master_fee: Decimal
    promoters_fee: Decimal
    winners_prize: Decimal


class PayoutPosition(NamedTuple):
    label: str
    percentage: int


def to_money(value: Number) -> Decimal:
    """Converts ``value`` to a cent-quantized Decimal.

    Floats go through ``str`` first so 0.1 becomes Decimal("0.1") and not its
    binary expansion. Raises ValueError on NaN or infinity.
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Monetary amount must be finite, got {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_prize_pool(entry_fee: Number, max_players: int) -> Decimal:
    # Bounds are checked by the caller (see validate_game_economics).
    return to_money(to_money(entry_fee) * max_players)


def compute_distribution(prize_pool: Number) -> Distribution:
    pool = to_money(prize_pool)
    platform_fee = (pool * PLATFORM_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    game_master_fee = (pool * GAME_MASTER_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    promoters_fee = (pool * PROMOTERS_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    winners_prize = pool - platform_fee - game_master_fee - promoters_fee
    return Distribution(platform_fee, game_master_fee, promoters_fee, winners_prize)


def compute_referral_share(entry_fee: Number) -> Decimal:
    return (to_money(entry_fee) * REFERRAL_RATE).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_game_economics(entry_fee: Number, max_players: int) -> Decimal:
    """Checks the entry fee and capacity bounds and returns the fee as money."""
    try:
        fee = Decimal(str(entry_fee)) if isinstance(entry_fee, float) else Decimal(entry_fee)
    except (InvalidOperation, TypeError):
        raise ValidationError(f"Entry fee is not a number: {entry_fee!r}")
    if not fee.is_finite() or fee < MIN_ENTRY_FEE or fee > MAX_ENTRY_FEE:
        raise ValidationError(f"Entry fee must be between ${MIN_ENTRY_FEE} and ${MAX_ENTRY_FEE:,}")
    if fee != fee.quantize(CENT, rounding=ROUND_HALF_UP):
        raise ValidationError("Entry fee cannot have fractions of a cent")
    if isinstance(max_players, bool) or not isinstance(max_players, int):
        raise ValidationError("Max players must be an integer")
    if max_players < MIN_PLAYERS or max_players > MAX_PLAYERS:
        raise ValidationError(f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
    return to_money(fee)


def parse_payout_structure(spec: str) -> List[PayoutPosition]:
    """
    Parses a payout structure such as ``"1st:70,2nd:30"`` into ordered
    (label, percentage) pairs.

    Percentages are not required to sum to 100 here; see
    validate_payout_structure for the stricter check applied to new games.
    """
    positions: List[PayoutPosition] = []
    for entry in spec.split(","):
        entry = entry.strip()
        label, sep, percentage = entry.partition(":")
        label = label.strip()
        if not sep or not label:
            raise MalformedPayoutSpecError(f"Payout entry '{entry}' must look like 'label:percentage'")
        try:
            positions.append(PayoutPosition(label, int(percentage.strip())))
        except ValueError:
            raise MalformedPayoutSpecError(f"Payout entry '{entry}' has a non-integer percentage")
    return positions


def validate_payout_structure(spec: str) -> List[PayoutPosition]:
    positions = parse_payout_structure(spec)
    labels = [position.label for position in positions]
    if len(set(labels)) != len(labels):
        raise MalformedPayoutSpecError("Payout positions must have distinct labels")
    if any(position.percentage <= 0 for position in positions):
        raise MalformedPayoutSpecError("Payout percentages must be positive")
    total = sum(position.percentage for position in positions)
    if total != 100:
        raise MalformedPayoutSpecError(f"Payout percentages must sum to 100, got {total}")
    return positions


def split_winners_prize(winners_prize: Number, positions: List[PayoutPosition]) -> List[Tuple[str, Decimal]]:
    """
    Splits ``winners_prize`` across payout positions.

    Each share is rounded down to the cent and the remainder is added to the
    first position, so the shares of a structure summing to 100 add up to the
    prize exactly.
    """
    prize = to_money(winners_prize)
    shares = [
        (position.label, (prize * position.percentage / 100).quantize(CENT, rounding=ROUND_DOWN))
        for position in positions
    ]
    if shares and sum(position.percentage for position in positions) == 100:
        remainder = prize - sum(amount for _, amount in shares)
        first_label, first_amount = shares[0]
        shares[0] = (first_label, first_amount + remainder)
    return shares
