import logging
import os
import random
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

SUITS = ("♠", "♥", "♦", "♣")
RANKS = tuple(range(2, 15))
SUIT_ORDER = {suit: i for i, suit in enumerate(SUITS)}
RANK_DISPLAY = {11: "J", 12: "Q", 13: "K", 14: "A"}

UINT32_MASK = 0xFFFFFFFF
FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

Seed = Union[int, str]


class Card(NamedTuple):
    rank: int  # 2..14, 14 = ace
    suit: str

    def __str__(self) -> str:
        return f"{rank_display(self.rank)}{self.suit}"


def rank_display(rank: int) -> str:
    return RANK_DISPLAY.get(rank, str(rank))


class Mulberry32:
    """Small 32-bit state generator. Same seed gives the same float stream everywhere.

    Instances are owned by exactly one driver; never share one across workers.
    """

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        self._state = seed & UINT32_MASK

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & UINT32_MASK
        t = self._state
        r = ((t ^ (t >> 15)) * (t | 1)) & UINT32_MASK
        r ^= (r + (((r ^ (r >> 7)) * (r | 61)) & UINT32_MASK)) & UINT32_MASK
        return ((r ^ (r >> 14)) & UINT32_MASK) / 4294967296


def seed_from_text(text: str) -> int:
    """FNV-1a hash of the UTF-8 bytes of ``text``."""
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & UINT32_MASK
    return h


def _entropy_rng():
    try:
        os.urandom(4)
    except NotImplementedError:
        logger.warning("OS entropy source unavailable, using numpy default_rng")
        return np.random.default_rng()
    return random.SystemRandom()


def make_rng(seed: Optional[Seed]) -> Tuple[object, bool]:
    """Build a float stream for ``seed``.

    Returns ``(rng, reproducible)``. Without a usable seed the stream comes
    from the OS entropy source and the run cannot be replayed.
    """
    # bool is an int subclass but never a meaningful seed
    if isinstance(seed, int) and not isinstance(seed, bool):
        return Mulberry32(seed), True
    if isinstance(seed, str):
        return Mulberry32(seed_from_text(seed)), True
    if seed is not None:
        logger.warning("Unsupported seed %r (%s); run will not be reproducible", seed, type(seed).__name__)
    return _entropy_rng(), False


def create_deck() -> Tuple[Card, ...]:
    return tuple(Card(rank, suit) for suit in SUITS for rank in RANKS)


def shuffle_deck(deck: Sequence[Card], rng) -> List[Card]:
    """Fisher-Yates over a copy of ``deck``; the input is left untouched."""
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sort_hand(cards: Sequence[Card]) -> List[Card]:
    """Group by suit (fixed order), highest rank first inside each suit."""
    return sorted(cards, key=lambda c: (SUIT_ORDER[c.suit], -c.rank))


def parse_card(code: str) -> Card:
    """``"Ah"``, ``"Ts"``, ``"10d"`` style shorthand, mostly for tests and debugging."""
    letters = {"s": "♠", "h": "♥", "d": "♦", "c": "♣"}
    rank_text, suit_text = code[:-1].upper(), code[-1]
    suit = letters.get(suit_text.lower(), suit_text)
    if suit not in SUIT_ORDER:
        raise ValueError(f"Unknown suit in card {code!r}")
    faces = {"T": 10, "J": 11, "Q": 12, "K": 13, "A": 14}
    rank = faces[rank_text] if rank_text in faces else int(rank_text)
    if rank not in RANKS:
        raise ValueError(f"Unknown rank in card {code!r}")
    return Card(rank, suit)
