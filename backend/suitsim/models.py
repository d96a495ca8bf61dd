from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, computed_field, validator

ALLOWED_MIN_THREE_CARD_RANKS = {0, *range(5, 15)}


class FlushRushPayouts(BaseModel):
    """Odds-to-1 paid on the Flush Rush side bet by player flush length."""

    seven_card: float = Field(..., ge=0)
    six_card: float = Field(..., ge=0)
    five_card: float = Field(..., ge=0)
    four_card: float = Field(..., ge=0)


class SuperFlushRushPayouts(BaseModel):
    """Odds-to-1 paid on the Super Flush Rush side bet by straight flush length."""

    seven_card_straight: float = Field(..., ge=0)
    six_card_straight: float = Field(..., ge=0)
    five_card_straight: float = Field(..., ge=0)
    four_card_straight: float = Field(..., ge=0)
    three_card_straight: float = Field(..., ge=0)


class PayoutConfig(BaseModel):
    flush_rush: FlushRushPayouts
    super_flush_rush: SuperFlushRushPayouts


class SimulationRequest(BaseModel):
    hands: int = Field(1_000_000, ge=1)
    payouts: PayoutConfig
    min_three_card_flush_rank: int = 9  # 0 = always play a 3-card flush
    seed: Optional[Union[int, str]] = None
    workers: Optional[int] = Field(None, ge=1, le=64)
    use_multiprocessing: bool = True

    @validator("min_three_card_flush_rank")
    def validate_min_rank(cls, v: int) -> int:
        if v not in ALLOWED_MIN_THREE_CARD_RANKS:
            raise ValueError("min_three_card_flush_rank must be 0 or between 5 and 14")
        return v


class SimulationResult(BaseModel):
    bet_type: str
    total_bet: float
    total_won: float
    expected_return: float  # percent of money wagered
    hands_won: int
    hands_lost: int
    win_rate: float  # percent of decided hands, pushes excluded


class HandDistributionStats(BaseModel):
    total_hands: int
    above_minimum: int  # played
    below_minimum: int  # folded

    @computed_field
    @property
    def above_minimum_percentage(self) -> float:
        return self.above_minimum / self.total_hands * 100 if self.total_hands else 0.0

    @computed_field
    @property
    def below_minimum_percentage(self) -> float:
        return self.below_minimum / self.total_hands * 100 if self.total_hands else 0.0


class ThreeCardFlushStats(BaseModel):
    high_cards: str  # e.g. "A-K"
    total_hands: int
    wins: int
    losses: int
    win_rate: float


class SimulationSummary(BaseModel):
    results: List[SimulationResult]
    hand_distribution: HandDistributionStats
    three_card_flush_stats: List[ThreeCardFlushStats] = Field(default_factory=list)
    reproducible: bool = True
    meta: Dict[str, str] = Field(default_factory=dict)


class SimulationStatus(BaseModel):
    status: str  # queued | running | done | cancelled | failed
    progress: float
    hands_total: int
    error: Optional[str] = None
