from suitsim.models import FlushRushPayouts, PayoutConfig, SuperFlushRushPayouts

# Common casino paytable for the Flush Rush / Super Flush Rush bonuses.
DEFAULT_PAYOUTS = PayoutConfig(
    flush_rush=FlushRushPayouts(seven_card=100, six_card=20, five_card=10, four_card=2),
    super_flush_rush=SuperFlushRushPayouts(
        seven_card_straight=500,
        six_card_straight=200,
        five_card_straight=100,
        four_card_straight=50,
        three_card_straight=9,
    ),
)

# Play a 3-card flush only when it is nine-high or better (same bar the dealer must clear).
DEFAULT_MIN_THREE_CARD_FLUSH_RANK = 9

DEFAULT_HANDS = 1_000_000
