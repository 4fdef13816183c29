"""
Simulation API routes.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas import (
    SimulationRunRequest,
    SimulationRunResponse,
    SimulationResultsResponse,
    ScenarioResult,
    TeamOutcome
)
from ...db import (
    get_db,
    async_session_maker,
    load_season,
    SimulationRunRepository,
    SimulationOutcomeRepository,
    TeamRepository,
    PersistenceError
)
from ...core.config import get_current_season, get_simulation_workers
from ...simulator import GameResult, SeasonOutcome, SimulatorError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulations", tags=["simulations"])

# How often a running sweep writes its progress to the run record
PROGRESS_FLUSH_SECONDS = 1.0


async def run_simulation_task(run_id: int, season: int, n_simulations: int, include_decided: bool):
    """
    Background task to run a simulation sweep and store its results.

    The Monte Carlo work runs in a thread so the API stays responsive.

    Args:
        run_id: The simulation run ID
        season: Season year to simulate
        n_simulations: Trials per scenario
        include_decided: Also force games that already have a result
    """
    async with async_session_maker() as db:
        run_repo = SimulationRunRepository(db)
        outcome_repo = SimulationOutcomeRepository(db)

        run = await run_repo.get_by_id(run_id)
        if run is None:
            return

        try:
            await run_repo.update_progress(run, 5)
            await db.commit()

            season_sim = await load_season(db, season, workers=get_simulation_workers())
            await run_repo.update_progress(run, 15)
            await db.commit()

            scenario_count = 1 + 3 * sum(
                1 for game in season_sim.actual_games.values()
                if include_decided or not game.is_decided
            )
            batches_done = 0
            sweep_progress = 15

            # Map batch completion (0-100 per batch) to run progress (15-90).
            # Called from the worker thread; only the event loop touches the run.
            def progress_callback(pct: float):
                nonlocal batches_done, sweep_progress
                if pct >= 100:
                    batches_done += 1
                    sweep_progress = int(15 + batches_done / scenario_count * 75)

            season_sim.progress_callback = progress_callback

            sweep = asyncio.ensure_future(asyncio.to_thread(
                season_sim.run_all_game_simulations, n_simulations, include_decided
            ))
            while not sweep.done():
                await asyncio.wait({sweep}, timeout=PROGRESS_FLUSH_SECONDS)
                if sweep_progress != run.progress:
                    await run_repo.update_progress(run, sweep_progress)
                    await db.commit()
            results = sweep.result()

            await run_repo.update_progress(run, 90)
            await db.commit()

            inserted = await outcome_repo.insert_results(run_id, results.rows(run_id))
            logger.info("Stored %d result rows for simulation %d", inserted, run_id)

            await run_repo.complete(run)
            await db.commit()

        except Exception as e:
            if isinstance(e, (SimulatorError, PersistenceError)):
                logger.error("Simulation %d failed: %s", run_id, e)
            else:
                logger.exception("Simulation %d failed unexpectedly", run_id)
            # Rows from a failed insert must not be committed with the failure
            await db.rollback()
            run = await run_repo.get_by_id(run_id)
            await run_repo.fail(run, str(e))
            await db.commit()


@router.post("/run", response_model=SimulationRunResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_simulation(
    request: SimulationRunRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
) -> SimulationRunResponse:
    """
    Start a simulation sweep for a season.

    Returns a run ID that can be used to poll for status and results.
    The simulation runs in the background.
    """
    season = request.season or get_current_season()

    try:
        teams = await TeamRepository(db).load_teams(season)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    if not teams:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No teams found for season {season}"
        )

    # Determine simulation count
    n_simulations = request.n_simulations
    if request.quick_mode:
        n_simulations = 1000

    run_repo = SimulationRunRepository(db)
    run = await run_repo.create(season, n_simulations, request.include_decided)
    await db.commit()

    background_tasks.add_task(
        run_simulation_task, run.simulation_id, season, n_simulations, request.include_decided
    )

    return SimulationRunResponse(
        run_id=run.simulation_id,
        status="pending",
        progress=0
    )


@router.get("/{run_id}/status", response_model=SimulationRunResponse)
async def get_simulation_status(
    run_id: int,
    db: AsyncSession = Depends(get_db)
) -> SimulationRunResponse:
    """
    Get the status of a running simulation.
    """
    run_repo = SimulationRunRepository(db)
    run = await run_repo.get_by_id(run_id)

    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Simulation not found"
        )

    return SimulationRunResponse(
        run_id=run.simulation_id,
        status=run.status,
        progress=run.progress,
        error=run.error_message
    )


@router.get("/{run_id}/results", response_model=SimulationResultsResponse)
async def get_simulation_results(
    run_id: int,
    game_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
) -> SimulationResultsResponse:
    """
    Get the results of a completed simulation.

    Pass ``game_id`` to only return the scenarios forcing that game.
    """
    run_repo = SimulationRunRepository(db)
    run = await run_repo.get_by_id(run_id)

    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Simulation not found"
        )

    if run.status == "pending" or run.status == "running":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Simulation is still running"
        )

    if run.status == "failed":
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Simulation failed: {run.error_message}"
        )

    rows = await SimulationOutcomeRepository(db).get_results(run_id)

    # Group rows by scenario, then by team
    scenarios = defaultdict(lambda: defaultdict(lambda: {"division winner": 0, "wildcard team": 0}))
    for row in rows:
        if game_id is not None and row.game_id != game_id:
            continue
        key = (row.game_id, row.simulated_game_result)
        scenarios[key][row.team_id][row.season_outcome] = row.simulations_with_outcome

    scenario_results = []
    for (scenario_game_id, game_result), team_counts in scenarios.items():
        teams = []
        for team_id, counts in sorted(team_counts.items()):
            division_count = counts[SeasonOutcome.DIVISION_WINNER.value]
            wildcard_count = counts[SeasonOutcome.WILDCARD_TEAM.value]
            teams.append(TeamOutcome(
                team_id=team_id,
                division_winner=division_count,
                wildcard_team=wildcard_count,
                division_pct=division_count / run.simulations if run.simulations else 0.0,
                wildcard_pct=wildcard_count / run.simulations if run.simulations else 0.0
            ))
        scenario_results.append(ScenarioResult(
            game_id=scenario_game_id,
            game_result=GameResult(game_result).value if game_result else None,
            teams=teams
        ))

    return SimulationResultsResponse(
        run_id=run.simulation_id,
        season=run.season,
        n_simulations=run.simulations,
        include_decided=run.include_decided,
        created_at=run.simulation_timestamp,
        completed_at=run.completed_at,
        scenarios=scenario_results
    )


@router.get("/{run_id}/stream")
async def stream_simulation_progress(
    run_id: int,
    db: AsyncSession = Depends(get_db)
):
    """
    Stream simulation progress via Server-Sent Events (SSE).

    This allows real-time progress updates without polling.
    """
    run_repo = SimulationRunRepository(db)
    run = await run_repo.get_by_id(run_id)

    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Simulation not found"
        )

    async def event_generator():
        while True:
            async with async_session_maker() as session:
                repo = SimulationRunRepository(session)
                current_run = await repo.get_by_id(run_id)

                if current_run is None:
                    yield f"data: {json.dumps({'error': 'Simulation not found'})}\n\n"
                    break

                data = {
                    "run_id": current_run.simulation_id,
                    "status": current_run.status,
                    "progress": current_run.progress
                }

                if current_run.error_message:
                    data["error"] = current_run.error_message

                yield f"data: {json.dumps(data)}\n\n"

                if current_run.status in ("completed", "failed"):
                    break

            await asyncio.sleep(0.5)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
