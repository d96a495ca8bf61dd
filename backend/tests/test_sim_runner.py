from suitsim.data.presets import DEFAULT_PAYOUTS
from suitsim.models import SimulationRequest
from suitsim.services import sim_runner
from suitsim.services.sim_runner import InMemorySimulationRunner


def _capture_workers(monkeypatch):
    captured = {}

    def fake_parallel(request, num_workers, progress_cb, cancel_check):
        captured["workers"] = num_workers
        return "summary"

    monkeypatch.setattr(sim_runner, "run_simulation_parallel", fake_parallel)
    monkeypatch.setattr(sim_runner.mp, "cpu_count", lambda: 3)
    return captured


def test_runner_defaults_to_cpu_count(monkeypatch):
    captured = _capture_workers(monkeypatch)
    runner = InMemorySimulationRunner(max_workers=8, parallel_min_hands=1)
    runner.start("a", SimulationRequest(hands=100, payouts=DEFAULT_PAYOUTS))
    runner._futures["a"].result(timeout=10)
    assert captured["workers"] == 3


def test_runner_caps_requested_workers(monkeypatch):
    captured = _capture_workers(monkeypatch)
    runner = InMemorySimulationRunner(max_workers=8, parallel_min_hands=1)
    runner.start("b", SimulationRequest(hands=100, payouts=DEFAULT_PAYOUTS, workers=32))
    runner._futures["b"].result(timeout=10)
    assert captured["workers"] == 8
