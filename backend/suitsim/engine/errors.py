class SimulationError(Exception):
    """Base class for failures raised by the simulation engine."""


class SimulationCancelled(SimulationError):
    """The caller asked the run to stop (or its timeout expired) before it finished."""


class WorkerFailedError(SimulationError):
    """A parallel partition failed; the whole aggregate run is void."""

    def __init__(self, worker: int, message: str) -> None:
        super().__init__(f"worker {worker} failed: {message}")
        self.worker = worker
        self.message = message
