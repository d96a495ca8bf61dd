import logging
import uuid
from typing import Dict

from fastapi import APIRouter, HTTPException

from suitsim.data.presets import DEFAULT_HANDS, DEFAULT_MIN_THREE_CARD_FLUSH_RANK, DEFAULT_PAYOUTS
from suitsim.engine.errors import SimulationCancelled, SimulationError
from suitsim.models import SimulationRequest, SimulationStatus, SimulationSummary
from suitsim.services.sim_runner import InMemorySimulationRunner

logger = logging.getLogger(__name__)

router = APIRouter(tags=["simulations"])

runner = InMemorySimulationRunner()


@router.post("/simulations")
async def create_simulation(request: SimulationRequest) -> Dict[str, str]:
    sim_id = str(uuid.uuid4())
    runner.start(sim_id, request)
    return {"id": sim_id}


@router.get("/simulations/{sim_id}", response_model=SimulationSummary)
async def get_simulation(sim_id: str) -> SimulationSummary:
    try:
        result = runner.get(sim_id)
    except SimulationCancelled:
        raise HTTPException(status_code=409, detail="Simulation was cancelled")
    except SimulationError as exc:
        logger.warning("Simulation %s failed: %s", sim_id, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    if result is None:
        raise HTTPException(status_code=404, detail="Simulation not found or not complete")
    return result


@router.get("/simulations/{sim_id}/status", response_model=SimulationStatus)
async def get_simulation_status(sim_id: str) -> SimulationStatus:
    status = runner.status(sim_id)
    if not status:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return status


@router.post("/simulations/{sim_id}/stop")
async def stop_simulation(sim_id: str) -> Dict[str, bool]:
    stopped = runner.stop(sim_id)
    if not stopped:
        raise HTTPException(status_code=404, detail="Simulation not found or already stopped")
    return {"stopped": True}


@router.get("/payouts/defaults")
async def get_defaults() -> Dict:
    return {
        "payouts": DEFAULT_PAYOUTS,
        "min_three_card_flush_rank": DEFAULT_MIN_THREE_CARD_FLUSH_RANK,
        "hands": DEFAULT_HANDS,
    }
