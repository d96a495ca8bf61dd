from typing import Dict, Sequence, Tuple

from suitsim.engine.cards import Card

Flush = Tuple[Card, ...]

DEALER_MIN_FLUSH = 3
DEALER_MIN_HIGH_CARD = 9


def divide_into_suits(cards: Sequence[Card]) -> Dict[str, Flush]:
    """Split a hand into suit groups.

    Expects the hand already sorted by suit then descending rank (see
    ``sort_hand``), so every group comes out highest rank first and the
    groups appear in suit order.
    """
    groups: Dict[str, list] = {}
    for card in cards:
        groups.setdefault(card.suit, []).append(card)
    return {suit: tuple(group) for suit, group in groups.items()}


def compare_flushes(first: Sequence[Card], second: Sequence[Card]) -> int:
    """Positive if ``first`` is better, negative if ``second`` is, 0 for a tie.

    More cards wins outright; equal lengths compare rank by rank from the top.
    """
    length_diff = len(first) - len(second)
    if length_diff:
        return length_diff
    for a, b in zip(first, second):
        if a.rank != b.rank:
            return a.rank - b.rank
    return 0


def find_best_flush(cards: Sequence[Card]) -> Flush:
    best: Flush = ()
    for flush in divide_into_suits(cards).values():
        if compare_flushes(flush, best) > 0:
            best = flush
    return best


def high_card(flush: Sequence[Card]) -> int:
    return flush[0].rank if flush else 0


def longest_straight(flush: Sequence[Card]) -> int:
    """Longest run of consecutive descending ranks, ace high."""
    if not flush:
        return 0
    longest = 0
    length = 1
    prev = flush[0].rank
    for card in flush[1:]:
        if card.rank == prev - 1:
            length += 1
        else:
            longest = max(longest, length)
            length = 1
        prev = card.rank
    return max(longest, length)


def low_ace_straight(flush: Sequence[Card]) -> int:
    """Longest run with the ace played low (A-2-3-...).

    Walks the descending flush from the bottom up starting from a virtual
    rank-1 ace, so only counts when the suit holds an ace.
    """
    if not flush or high_card(flush) != 14:
        return 0
    longest = 0
    length = 1
    prev = 1
    for card in reversed(flush):
        if card.rank == prev + 1:
            length += 1
        else:
            longest = max(longest, length)
            length = 1
        prev = card.rank
    return max(longest, length)


def longest_straight_flush(cards: Sequence[Card]) -> int:
    """Length of the longest same-suit run in the hand.

    Ace-high runs and wheel runs are measured separately per suit and only the
    larger one counts; runs never span suits.
    """
    longest = 0
    for flush in divide_into_suits(cards).values():
        longest = max(longest, longest_straight(flush), low_ace_straight(flush))
    return longest


def dealer_qualifies(flush: Sequence[Card]) -> bool:
    if len(flush) > DEALER_MIN_FLUSH:
        return True
    if len(flush) < DEALER_MIN_FLUSH:
        return False
    return high_card(flush) >= DEALER_MIN_HIGH_CARD
