import logging
import multiprocessing as mp
import queue
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Executor, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from suitsim.engine.cards import Seed, create_deck, make_rng, rank_display, seed_from_text, shuffle_deck, sort_hand
from suitsim.engine.errors import SimulationCancelled, WorkerFailedError
from suitsim.engine.evaluator import find_best_flush, longest_straight_flush
from suitsim.engine.payouts import (
    BET_TYPES,
    BetTally,
    Result,
    player_should_fold,
    resolve_base_game,
    resolve_flush_rush,
    resolve_super_flush_rush,
)
from suitsim.models import (
    HandDistributionStats,
    PayoutConfig,
    SimulationRequest,
    SimulationResult,
    SimulationSummary,
    ThreeCardFlushStats,
)

logger = logging.getLogger(__name__)

HAND_SIZE = 7
CANCEL_CHECK_INTERVAL = 1_000
POLL_INTERVAL = 0.05

# tallies columns
TOTAL_BET, TOTAL_WON, HANDS_WON, HANDS_LOST = range(4)
# three-card breakdown columns, indexed [high rank, second rank, column]
TC_TOTAL, TC_WINS, TC_LOSSES = range(3)

ProgressCallback = Callable[[float], None]
CancelCheck = Callable[[], bool]


def _empty_three_card() -> np.ndarray:
    return np.zeros((15, 15, 3), dtype=np.int64)


@dataclass
class SimulationChunk:
    """Raw totals from one driver run. Chunks merge by plain addition."""

    hands: int
    tallies: np.ndarray  # one row per BetType: total_bet, total_won, hands_won, hands_lost
    above_minimum: int = 0
    below_minimum: int = 0
    three_card: np.ndarray = field(default_factory=_empty_three_card)
    reproducible: bool = True

    def merge(self, other: "SimulationChunk") -> "SimulationChunk":
        return SimulationChunk(
            hands=self.hands + other.hands,
            tallies=self.tallies + other.tallies,
            above_minimum=self.above_minimum + other.above_minimum,
            below_minimum=self.below_minimum + other.below_minimum,
            three_card=self.three_card + other.three_card,
            reproducible=self.reproducible and other.reproducible,
        )


# Messages exchanged between the supervisor and its workers.


@dataclass
class WorkerTask:
    index: int
    hands: int
    payouts: Dict  # PayoutConfig.model_dump(), plain data for pickling
    min_three_card_flush_rank: int
    seed: Optional[int] = None
    cancel_every: int = 1  # a Manager event is an IPC round trip per poll


@dataclass
class ProgressMessage:
    worker: int
    percent: float
    kind: str = "progress"


@dataclass
class DoneMessage:
    worker: int
    chunk: SimulationChunk
    kind: str = "done"


@dataclass
class ErrorMessage:
    worker: int
    message: str
    kind: str = "error"


def _with_deadline(cancel_check: Optional[CancelCheck], timeout: Optional[float]) -> Optional[CancelCheck]:
    if timeout is None:
        return cancel_check
    deadline = time.monotonic() + timeout

    def _check() -> bool:
        return time.monotonic() >= deadline or bool(cancel_check and cancel_check())

    return _check


def simulate_hands(
    hands: int,
    payouts: PayoutConfig,
    min_three_card_flush_rank: int,
    rng,
    progress_cb: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
    cancel_every: int = 1,
) -> SimulationChunk:
    """Deal and settle ``hands`` hands from ``rng``.

    Every hand reshuffles the canonical deck, deals seven cards to the player
    and the next seven to the dealer, then settles the base game and both
    side bets. ``progress_cb`` gets a 0-100 percentage roughly every 1% of
    the run; after each report the thread yields so a polling caller stays
    responsive. ``cancel_check`` is polled every ``cancel_every`` hands (every
    hand by default) and raises ``SimulationCancelled`` when it returns True.
    """
    base, flush_rush, super_flush_rush = BetTally(), BetTally(), BetTally()
    three_card = _empty_three_card()
    above_minimum = 0
    below_minimum = 0

    deck = create_deck()
    progress_interval = max(1, hands // 100)

    for hand in range(hands):
        if cancel_check and hand % cancel_every == 0 and cancel_check():
            raise SimulationCancelled(f"stopped after {hand} of {hands} hands")

        shuffled = shuffle_deck(deck, rng)
        player = sort_hand(shuffled[:HAND_SIZE])
        dealer = sort_hand(shuffled[HAND_SIZE:2 * HAND_SIZE])
        player_flush = find_best_flush(player)
        dealer_flush = find_best_flush(dealer)

        folded = player_should_fold(player_flush, min_three_card_flush_rank)
        outcome = resolve_base_game(player_flush, dealer_flush, min_three_card_flush_rank)
        base.record(outcome)
        if folded:
            below_minimum += 1
        else:
            above_minimum += 1
            if len(player_flush) == 3:
                row = three_card[player_flush[0].rank, player_flush[1].rank]
                row[TC_TOTAL] += 1
                if outcome.result is Result.win:
                    row[TC_WINS] += 1
                elif outcome.result is Result.loss:
                    row[TC_LOSSES] += 1

        flush_rush.record(resolve_flush_rush(len(player_flush), payouts))
        super_flush_rush.record(resolve_super_flush_rush(longest_straight_flush(player), payouts))

        if progress_cb and hand % progress_interval == 0:
            progress_cb(hand / hands * 100)
            time.sleep(0)

    if progress_cb:
        progress_cb(100.0)

    return SimulationChunk(
        hands=hands,
        tallies=np.array([base.as_row(), flush_rush.as_row(), super_flush_rush.as_row()], dtype=np.float64),
        above_minimum=above_minimum,
        below_minimum=below_minimum,
        three_card=three_card,
    )


def _bet_result(bet_type, row: np.ndarray) -> SimulationResult:
    total_bet = float(row[TOTAL_BET])
    total_won = float(row[TOTAL_WON])
    hands_won = int(row[HANDS_WON])
    hands_lost = int(row[HANDS_LOST])
    decided = hands_won + hands_lost
    return SimulationResult(
        bet_type=bet_type.value,
        total_bet=total_bet,
        total_won=total_won,
        expected_return=(total_won - total_bet) / total_bet * 100 if total_bet else 0.0,
        hands_won=hands_won,
        hands_lost=hands_lost,
        win_rate=hands_won / decided * 100 if decided else 0.0,
    )


def _three_card_stats(three_card: np.ndarray) -> List[ThreeCardFlushStats]:
    stats: List[ThreeCardFlushStats] = []
    for high in range(14, 1, -1):
        for second in range(high - 1, 1, -1):
            total, wins, losses = (int(v) for v in three_card[high, second])
            if total == 0:
                continue
            decided = wins + losses
            stats.append(
                ThreeCardFlushStats(
                    high_cards=f"{rank_display(high)}-{rank_display(second)}",
                    total_hands=total,
                    wins=wins,
                    losses=losses,
                    win_rate=wins / decided * 100 if decided else 0.0,
                )
            )
    return stats


def aggregate_chunks(chunks: Sequence[SimulationChunk], meta: Optional[Dict[str, str]] = None) -> SimulationSummary:
    """Fold raw chunk totals together, then derive percentages once on the sums.

    Percentages from individual chunks are never averaged, so small
    partitions carry exactly their share of the hands.
    """
    tallies = np.sum([c.tallies for c in chunks], axis=0)
    three_card = np.sum([c.three_card for c in chunks], axis=0)
    total_hands = sum(c.hands for c in chunks)
    return SimulationSummary(
        results=[_bet_result(bet_type, row) for bet_type, row in zip(BET_TYPES, tallies)],
        hand_distribution=HandDistributionStats(
            total_hands=total_hands,
            above_minimum=sum(c.above_minimum for c in chunks),
            below_minimum=sum(c.below_minimum for c in chunks),
        ),
        three_card_flush_stats=_three_card_stats(three_card),
        reproducible=all(c.reproducible for c in chunks),
        meta=dict(meta or {}),
    )


def run_simulation(
    request: SimulationRequest,
    progress_cb: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
    timeout: Optional[float] = None,
) -> SimulationSummary:
    rng, reproducible = make_rng(request.seed)
    if not reproducible:
        logger.info("Running %d hands without a usable seed; results are not reproducible", request.hands)
    started = time.monotonic()
    chunk = simulate_hands(
        request.hands,
        request.payouts,
        request.min_three_card_flush_rank,
        rng,
        progress_cb,
        _with_deadline(cancel_check, timeout),
    )
    chunk.reproducible = reproducible
    logger.info("Simulated %d hands in %.2fs", request.hands, time.monotonic() - started)
    return aggregate_chunks([chunk], _meta(request, workers=1))


def simulate(
    num_hands: int,
    payouts: Union[PayoutConfig, Dict],
    min_three_card_flush_rank: int = 9,
    seed: Optional[Seed] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
    timeout: Optional[float] = None,
) -> SimulationSummary:
    """Single-driver entry point. Bad arguments raise ``pydantic.ValidationError`` before any hand is dealt."""
    request = SimulationRequest(
        hands=num_hands,
        payouts=payouts,
        min_three_card_flush_rank=min_three_card_flush_rank,
        seed=seed,
    )
    return run_simulation(request, on_progress, cancel_check, timeout)


def partition_hands(hands: int, workers: int) -> List[int]:
    base, extra = divmod(hands, workers)
    return [base + (1 if i < extra else 0) for i in range(workers)]


def worker_seed(seed: Optional[Seed], index: int) -> Optional[int]:
    if seed is None:
        return None
    return seed_from_text(f"{seed}:{index}")


def _meta(request: SimulationRequest, workers: int) -> Dict[str, str]:
    return {
        "hands": str(request.hands),
        "workers": str(workers),
        "seed": "" if request.seed is None else str(request.seed),
        "min_three_card_flush_rank": str(request.min_three_card_flush_rank),
    }


def _run_chunk_worker(task: WorkerTask, messages, stop) -> Union[DoneMessage, ErrorMessage]:
    """
    Worker body for parallel simulation. Module-level so process pools can
    pickle it; reports progress on ``messages`` and quits when ``stop`` is set.
    """
    try:
        payouts = PayoutConfig(**task.payouts)
        rng, reproducible = make_rng(task.seed)

        def _report(percent: float) -> None:
            messages.put(ProgressMessage(task.index, percent))

        chunk = simulate_hands(
            task.hands,
            payouts,
            task.min_three_card_flush_rank,
            rng,
            _report,
            stop.is_set,
            cancel_every=task.cancel_every,
        )
        chunk.reproducible = reproducible
        return DoneMessage(task.index, chunk)
    except SimulationCancelled as exc:
        return ErrorMessage(task.index, str(exc))
    except Exception as exc:
        logger.exception("Worker %d failed", task.index)
        return ErrorMessage(task.index, f"{type(exc).__name__}: {exc}")


def _drain_progress(messages, last: np.ndarray) -> None:
    while True:
        try:
            message = messages.get_nowait()
        except queue.Empty:
            return
        last[message.worker] = max(last[message.worker], message.percent)


def _supervise(
    tasks: List[WorkerTask],
    executor: Executor,
    messages,
    stop,
    progress_cb: Optional[ProgressCallback],
    cancel_check: Optional[CancelCheck],
) -> List[SimulationChunk]:
    weights = np.array([t.hands for t in tasks], dtype=np.float64)
    last = np.zeros(len(tasks), dtype=np.float64)
    reported = 0.0
    chunks: Dict[int, SimulationChunk] = {}

    with executor:
        futures = {executor.submit(_run_chunk_worker, task, messages, stop): task.index for task in tasks}
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    try:
                        message = future.result()
                    except Exception as exc:
                        raise WorkerFailedError(futures[future], str(exc)) from exc
                    if isinstance(message, ErrorMessage):
                        raise WorkerFailedError(message.worker, message.message)
                    chunks[message.worker] = message.chunk

                _drain_progress(messages, last)
                if progress_cb:
                    overall = float(np.average(last, weights=weights))
                    if overall > reported:
                        reported = overall
                        progress_cb(overall)

                if pending and cancel_check and cancel_check():
                    raise SimulationCancelled(f"stopped with {len(pending)} of {len(tasks)} workers running")
        except BaseException:
            # siblings stop at their next hand boundary; nothing partial escapes
            stop.set()
            for future in pending:
                future.cancel()
            raise

    if progress_cb and reported < 100.0:
        progress_cb(100.0)
    return [chunks[i] for i in sorted(chunks)]


def run_simulation_parallel(
    request: SimulationRequest,
    num_workers: Optional[int] = None,
    progress_cb: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
    timeout: Optional[float] = None,
) -> SimulationSummary:
    """
    Split the run across independent workers and merge their totals.

    Args:
        request: Simulation configuration
        num_workers: Number of workers (default: request.workers, then CPU count)
        progress_cb: Receives the hands-weighted mean of each worker's last percentage
        cancel_check: Polled by the supervisor; a True answer stops every worker
        timeout: Seconds before the run is abandoned as cancelled

    Worker ``i`` is seeded from ``"<seed>:<i>"``, so a result is only
    reproducible for the same seed and worker count.

    Raises:
        WorkerFailedError: a worker failed; its siblings were stopped
        SimulationCancelled: the caller cancelled or the timeout expired
    """
    if num_workers is None:
        num_workers = request.workers or mp.cpu_count()
    num_workers = max(1, min(num_workers, request.hands))

    in_processes = request.use_multiprocessing and num_workers > 1
    payouts = request.payouts.model_dump()
    tasks = [
        WorkerTask(
            index=i,
            hands=hands,
            payouts=payouts,
            min_three_card_flush_rank=request.min_three_card_flush_rank,
            seed=worker_seed(request.seed, i),
            cancel_every=min(max(1, hands // 100), CANCEL_CHECK_INTERVAL) if in_processes else 1,
        )
        for i, hands in enumerate(partition_hands(request.hands, num_workers))
    ]
    check = _with_deadline(cancel_check, timeout)
    logger.info("Simulating %d hands across %d workers", request.hands, num_workers)
    started = time.monotonic()

    if in_processes:
        with mp.Manager() as manager:
            chunks = _supervise(
                tasks,
                ProcessPoolExecutor(max_workers=num_workers),
                manager.Queue(),
                manager.Event(),
                progress_cb,
                check,
            )
    else:
        chunks = _supervise(
            tasks,
            ThreadPoolExecutor(max_workers=num_workers),
            queue.Queue(),
            threading.Event(),
            progress_cb,
            check,
        )

    logger.info("Parallel run of %d hands finished in %.2fs", request.hands, time.monotonic() - started)
    return aggregate_chunks(chunks, _meta(request, workers=num_workers))


def simulate_parallel(
    num_hands: int,
    payouts: Union[PayoutConfig, Dict],
    min_three_card_flush_rank: int = 9,
    workers: Optional[int] = None,
    seed: Optional[Seed] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
    timeout: Optional[float] = None,
    use_multiprocessing: bool = True,
) -> SimulationSummary:
    request = SimulationRequest(
        hands=num_hands,
        payouts=payouts,
        min_three_card_flush_rank=min_three_card_flush_rank,
        seed=seed,
        workers=workers,
        use_multiprocessing=use_multiprocessing,
    )
    return run_simulation_parallel(request, None, on_progress, cancel_check, timeout)
