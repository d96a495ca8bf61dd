from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from suitsim.engine.cards import Card
from suitsim.engine.evaluator import compare_flushes, dealer_qualifies, high_card
from suitsim.models import PayoutConfig

ANTE = 1.0
FLUSH_RUSH_BET = 1.0
SUPER_FLUSH_RUSH_BET = 1.0

MIN_PLAYABLE_FLUSH = 3
MIN_FLUSH_RUSH = 4
MIN_SUPER_FLUSH_RUSH = 3


class BetType(str, Enum):
    base_game = "Base Game"
    flush_rush = "Flush Rush Bonus"
    super_flush_rush = "Super Flush Rush Bonus"


BET_TYPES: Tuple[BetType, ...] = tuple(BetType)


class Result(str, Enum):
    win = "WIN"
    loss = "LOSS"
    push = "PUSH"


@dataclass(frozen=True)
class BetOutcome:
    result: Result
    wager: float
    returned: float  # stake back plus winnings; 0 on a loss


@dataclass
class BetTally:
    total_bet: float = 0.0
    total_won: float = 0.0
    hands_won: int = 0
    hands_lost: int = 0

    def record(self, outcome: BetOutcome) -> None:
        self.total_bet += outcome.wager
        self.total_won += outcome.returned
        if outcome.result is Result.win:
            self.hands_won += 1
        elif outcome.result is Result.loss:
            self.hands_lost += 1

    def as_row(self) -> Tuple[float, float, float, float]:
        return (self.total_bet, self.total_won, float(self.hands_won), float(self.hands_lost))


def player_should_fold(flush: Sequence[Card], min_three_card_rank: int) -> bool:
    """Fold anything under three cards, and 3-card flushes below the threshold.

    ``min_three_card_rank`` of 0 means every 3-card flush is played.
    """
    if len(flush) < MIN_PLAYABLE_FLUSH:
        return True
    return len(flush) == MIN_PLAYABLE_FLUSH and min_three_card_rank != 0 and high_card(flush) < min_three_card_rank


def max_play_wager(flush_cards: int, ante: float = ANTE) -> float:
    if flush_cards >= 6:
        return ante * 3
    if flush_cards == 5:
        return ante * 2
    return ante


def resolve_base_game(
    player_flush: Sequence[Card],
    dealer_flush: Sequence[Card],
    min_three_card_rank: int,
    ante: float = ANTE,
) -> BetOutcome:
    if player_should_fold(player_flush, min_three_card_rank):
        return BetOutcome(Result.loss, ante, 0.0)

    total_wager = ante + max_play_wager(len(player_flush), ante)
    if not dealer_qualifies(dealer_flush):
        # ante pays even money, play pushes
        return BetOutcome(Result.win, total_wager, total_wager + ante)

    comparison = compare_flushes(player_flush, dealer_flush)
    if comparison > 0:
        return BetOutcome(Result.win, total_wager, total_wager * 2)
    if comparison < 0:
        return BetOutcome(Result.loss, total_wager, 0.0)
    return BetOutcome(Result.push, total_wager, total_wager)


def flush_rush_multiplier(flush_cards: int, payouts: PayoutConfig) -> float:
    table = payouts.flush_rush
    if flush_cards >= 7:
        return table.seven_card
    if flush_cards == 6:
        return table.six_card
    if flush_cards == 5:
        return table.five_card
    if flush_cards == MIN_FLUSH_RUSH:
        return table.four_card
    return 0.0


def super_flush_rush_multiplier(straight_cards: int, payouts: PayoutConfig) -> float:
    table = payouts.super_flush_rush
    if straight_cards >= 7:
        return table.seven_card_straight
    if straight_cards == 6:
        return table.six_card_straight
    if straight_cards == 5:
        return table.five_card_straight
    if straight_cards == 4:
        return table.four_card_straight
    if straight_cards == MIN_SUPER_FLUSH_RUSH:
        return table.three_card_straight
    return 0.0


def _side_bet(multiplier: float, bet: float) -> BetOutcome:
    # a zero-odds tier is no payout at all
    if multiplier > 0:
        return BetOutcome(Result.win, bet, bet + bet * multiplier)
    return BetOutcome(Result.loss, bet, 0.0)


def resolve_flush_rush(flush_cards: int, payouts: PayoutConfig, bet: float = FLUSH_RUSH_BET) -> BetOutcome:
    return _side_bet(flush_rush_multiplier(flush_cards, payouts), bet)


def resolve_super_flush_rush(straight_cards: int, payouts: PayoutConfig, bet: float = SUPER_FLUSH_RUSH_BET) -> BetOutcome:
    return _side_bet(super_flush_rush_multiplier(straight_cards, payouts), bet)
