import concurrent.futures
import logging
import multiprocessing as mp
import threading
from typing import Dict, Optional

from suitsim import config
from suitsim.engine.errors import SimulationCancelled
from suitsim.engine.simulation import run_simulation, run_simulation_parallel
from suitsim.models import SimulationRequest, SimulationStatus, SimulationSummary

logger = logging.getLogger(__name__)


class InMemorySimulationRunner:
    """Runs simulations in the background and tracks them by id."""

    def __init__(
        self,
        max_threads: int = config.RUNNER_THREADS,
        max_workers: int = config.MAX_WORKERS,
        parallel_min_hands: int = config.PARALLEL_MIN_HANDS,
    ) -> None:
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_threads)
        self._max_workers = max_workers
        self._parallel_min_hands = parallel_min_hands
        self._futures: Dict[str, concurrent.futures.Future] = {}
        self._progress: Dict[str, SimulationStatus] = {}
        self._cancel_flags: Dict[str, threading.Event] = {}

    def start(self, sim_id: str, request: SimulationRequest) -> None:
        cancel_flag = threading.Event()
        self._cancel_flags[sim_id] = cancel_flag
        self._progress[sim_id] = SimulationStatus(status="queued", progress=0.0, hands_total=request.hands)

        def _progress_cb(percent: float) -> None:
            self._progress[sim_id] = SimulationStatus(
                status="running",
                progress=percent / 100,
                hands_total=request.hands,
            )

        # Small runs are not worth the process start-up cost
        if request.use_multiprocessing and request.hands >= self._parallel_min_hands:
            num_workers = min(request.workers or mp.cpu_count(), self._max_workers)
            future = self._executor.submit(
                run_simulation_parallel,
                request,
                num_workers,
                _progress_cb,
                cancel_flag.is_set,
            )
        else:
            future = self._executor.submit(run_simulation, request, _progress_cb, cancel_flag.is_set)

        self._futures[sim_id] = future
        logger.info("Started simulation %s (%d hands)", sim_id, request.hands)

    def stop(self, sim_id: str) -> bool:
        """Ask a running simulation to stop. Cancelled runs produce no result."""
        cancel_flag = self._cancel_flags.get(sim_id)
        future = self._futures.get(sim_id)
        if not cancel_flag or not future or future.done():
            return False
        cancel_flag.set()
        return True

    def get(self, sim_id: str) -> Optional[SimulationSummary]:
        """Finished summary, or None while running. Re-raises the run's failure."""
        future = self._futures.get(sim_id)
        if not future or not future.done():
            return None
        return future.result()

    def status(self, sim_id: str) -> Optional[SimulationStatus]:
        future = self._futures.get(sim_id)
        if not future:
            return None
        prog = self._progress[sim_id]
        if not future.done():
            return prog
        exc = future.exception()
        if exc is None:
            return SimulationStatus(status="done", progress=1.0, hands_total=prog.hands_total)
        if isinstance(exc, SimulationCancelled):
            return SimulationStatus(status="cancelled", progress=prog.progress, hands_total=prog.hands_total)
        return SimulationStatus(
            status="failed",
            progress=prog.progress,
            hands_total=prog.hands_total,
            error=str(exc),
        )
