"""Prize arithmetic in native token units.

Everything here is pure and deterministic. Human amounts are converted with
exact rational arithmetic and floored; all splits use integer division.

``calculate_distribution`` dispatches on the mode variant passed in, so the
four quiz modes share one entry point:

    pool = PrizePool(Decimal('1.0'), decimals=18, fee_percent=100000, fee_precision=1000000)
    calculate_distribution(StandardPrize(), pool, winners)
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from functools import singledispatch
from typing import List, Optional, Sequence, Union

PRIZE_PERCENTAGES = {
    1: (100,),
    2: (60, 40),
    3: (50, 30, 20),
    4: (40, 30, 20, 10),
    5: (35, 25, 20, 12, 8),
}

# Progressive split in parts per million, fixed regardless of the contract fee
PPM = 1_000_000
PROGRESSIVE_RANK_RATIOS = (400_000, 300_000, 200_000)
PROGRESSIVE_TREASURY_RATIO = 100_000

Amount = Union[Decimal, int, float, str]


def _exact(amount: Amount) -> Fraction:
    if amount is None:
        return Fraction(0)
    if isinstance(amount, float):
        amount = repr(amount)
    return Fraction(Decimal(amount))


def to_units(amount: Amount, decimals: int) -> int:
    """``floor(amount * 10**decimals)`` computed exactly."""
    return math.floor(_exact(amount) * (10 ** decimals))


@dataclass(frozen=True)
class PrizePool:
    prize_amount: Amount
    decimals: int
    fee_percent: int
    fee_precision: int

    @property
    def total_units(self) -> int:
        return to_units(self.prize_amount, self.decimals)

    def treasury_fee(self, total_units: int) -> int:
        return total_units * self.fee_percent // self.fee_precision


@dataclass(frozen=True)
class StandardPrize:
    pass


@dataclass(frozen=True)
class BonusPrize:
    extra_bounty_amount: Amount
    golden_questions_correct: bool


@dataclass(frozen=True)
class ProgressivePrize:
    total_questions: int


@dataclass(frozen=True)
class SurvivalPrize:
    pass


@dataclass
class PrizeDistribution:
    total_prize: int
    treasury_fee: int
    distributed_prize: int
    winners: List[str]
    amounts: List[int]
    prize_breakdown: List[int] = field(default_factory=list)
    extra_bounty_amount: int = 0
    extra_bounty_distributed: bool = False
    extra_treasury_amount: int = 0
    question_prize: Optional[int] = None


def prize_percentages(winner_count: int):
    return PRIZE_PERCENTAGES.get(winner_count)


def split_ranked(distributed: int, winner_count: int) -> List[int]:
    """Ranked split of ``distributed`` for 1-5 winners.

    Above five winners every winner gets ``distributed // n`` and the
    remainder is left undistributed.
    """
    if winner_count <= 0:
        return []
    percentages = prize_percentages(winner_count)
    if percentages is None:
        return [distributed // winner_count] * winner_count
    return [distributed * pct // 100 for pct in percentages]


@singledispatch
def calculate_distribution(variant, pool: PrizePool, winners: Sequence[str]) -> PrizeDistribution:
    raise TypeError(f'Unsupported prize variant: {type(variant).__name__}')


def _standard(pool: PrizePool, winners: Sequence[str]) -> PrizeDistribution:
    total = pool.total_units
    treasury_fee = pool.treasury_fee(total)
    distributed = total - treasury_fee
    amounts = split_ranked(distributed, len(winners))
    return PrizeDistribution(
        total_prize=total,
        treasury_fee=treasury_fee,
        distributed_prize=distributed,
        winners=list(winners),
        amounts=amounts,
        prize_breakdown=list(amounts),
    )


@calculate_distribution.register
def _(variant: StandardPrize, pool: PrizePool, winners: Sequence[str]) -> PrizeDistribution:
    return _standard(pool, winners)


@calculate_distribution.register
def _(variant: BonusPrize, pool: PrizePool, winners: Sequence[str]) -> PrizeDistribution:
    distribution = _standard(pool, winners)
    extra = to_units(variant.extra_bounty_amount, pool.decimals)
    distribution.extra_bounty_amount = extra
    if extra > 0:
        if variant.golden_questions_correct and winners:
            per_winner = extra // len(winners)
            distribution.amounts = [amount + per_winner for amount in distribution.amounts]
            distribution.extra_bounty_distributed = True
        else:
            distribution.extra_treasury_amount = extra
    return distribution


@calculate_distribution.register
def _(variant: ProgressivePrize, pool: PrizePool, winners: Sequence[str]) -> PrizeDistribution:
    if variant.total_questions <= 0:
        raise ValueError('Progressive quizzes need at least one question')
    question_prize = math.floor(_exact(pool.prize_amount) / variant.total_questions * (10 ** pool.decimals))
    ranked = list(winners)[:len(PROGRESSIVE_RANK_RATIOS)]
    amounts = [question_prize * ratio // PPM for ratio in PROGRESSIVE_RANK_RATIOS[:len(ranked)]]
    treasury = question_prize * PROGRESSIVE_TREASURY_RATIO // PPM
    return PrizeDistribution(
        total_prize=question_prize,
        treasury_fee=treasury,
        distributed_prize=sum(amounts),
        winners=ranked,
        amounts=amounts,
        prize_breakdown=list(amounts),
        question_prize=question_prize,
    )


@calculate_distribution.register
def _(variant: SurvivalPrize, pool: PrizePool, survivors: Sequence[str]) -> PrizeDistribution:
    total = pool.total_units
    treasury_fee = pool.treasury_fee(total)
    distributed = total - treasury_fee
    amounts = []
    if survivors:
        per_survivor = distributed // len(survivors)
        amounts = [per_survivor] * len(survivors)
        # The division remainder goes to the first survivor
        amounts[0] += distributed - per_survivor * len(survivors)
    return PrizeDistribution(
        total_prize=total,
        treasury_fee=treasury_fee,
        distributed_prize=distributed,
        winners=list(survivors),
        amounts=amounts,
        prize_breakdown=list(amounts),
    )
