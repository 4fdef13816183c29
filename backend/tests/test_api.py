"""
Tests for the HTTP API and the background simulation task.
"""

import time
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from nfl_simulator.main import app
from nfl_simulator.api import schemas
from nfl_simulator.api.routes.simulations_routes import run_simulation_task
from nfl_simulator.db import (
    PersistenceError,
    SimulationOutcomeRepository,
    SimulationRunRepository,
    get_db,
)
from nfl_simulator.simulator import Season


ROUTES = "nfl_simulator.api.routes.simulations_routes"


@pytest_asyncio.fixture
async def client(session_maker, seeded_session):
    """API client backed by the seeded in-memory database."""
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def create_run(session_maker, simulations=5, include_decided=False):
    async with session_maker() as session:
        run = await SimulationRunRepository(session).create(2023, simulations, include_decided)
        await session.commit()
        return run.simulation_id


async def run_task(session_maker, run_id):
    with patch(f"{ROUTES}.async_session_maker", session_maker):
        await run_simulation_task(run_id, 2023, 5, False)


class TestInfoEndpoints:
    """Tests for health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["docs"] == "/api/docs"


class TestSeasonEndpoints:
    """Tests for /api/seasons."""

    @pytest.mark.asyncio
    async def test_list_teams(self, client):
        response = await client.get("/api/seasons/2023/teams")

        assert response.status_code == 200
        teams = response.json()
        assert len(teams) == 16
        assert {"id", "abbreviation", "name", "conference", "division"} <= set(teams[0])

    @pytest.mark.asyncio
    async def test_list_teams_unknown_season(self, client):
        response = await client.get("/api/seasons/1999/teams")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_games(self, client):
        response = await client.get("/api/seasons/2023/games")

        assert response.status_code == 200
        games = response.json()
        assert len(games) == 36
        assert games[0]["game_result"] == "home win"

    @pytest.mark.asyncio
    async def test_list_undecided_games(self, client):
        response = await client.get("/api/seasons/2023/games", params={"undecided_only": True})

        games = response.json()
        assert [game["id"] for game in games] == [34, 35, 36]
        assert all(game["game_result"] is None for game in games)

    @pytest.mark.asyncio
    async def test_list_games_unknown_season(self, client):
        response = await client.get("/api/seasons/1999/games")
        assert response.status_code == 404


class TestSimulationEndpoints:
    """Tests for /api/simulations."""

    @pytest.mark.asyncio
    async def test_start_simulation(self, client):
        """Starting a run records it and schedules the background task."""
        with patch(f"{ROUTES}.run_simulation_task", new_callable=AsyncMock) as mock_task:
            response = await client.post(
                "/api/simulations/run",
                json={"season": 2023, "n_simulations": 250, "include_decided": True}
            )

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        mock_task.assert_awaited_once_with(body["run_id"], 2023, 250, True)

    @pytest.mark.asyncio
    async def test_quick_mode(self, client):
        with patch(f"{ROUTES}.run_simulation_task", new_callable=AsyncMock) as mock_task:
            response = await client.post(
                "/api/simulations/run", json={"season": 2023, "quick_mode": True}
            )

        mock_task.assert_awaited_once_with(response.json()["run_id"], 2023, 1000, False)

    @pytest.mark.asyncio
    async def test_start_unknown_season(self, client):
        response = await client.post("/api/simulations/run", json={"season": 1999})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_simulation_count(self, client):
        response = await client.post(
            "/api/simulations/run", json={"season": 2023, "n_simulations": 0}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status(self, client, session_maker):
        run_id = await create_run(session_maker)

        response = await client.get(f"/api/simulations/{run_id}/status")

        assert response.status_code == 200
        assert response.json() == {
            "run_id": run_id, "status": "pending", "progress": 0, "error": None
        }

    @pytest.mark.asyncio
    async def test_status_not_found(self, client):
        response = await client.get("/api/simulations/9999/status")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_results_while_pending(self, client, session_maker):
        run_id = await create_run(session_maker)
        response = await client.get(f"/api/simulations/{run_id}/results")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_results_not_found(self, client):
        response = await client.get("/api/simulations/9999/results")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_results(self, client, session_maker):
        """A finished run reports every scenario with per-team probabilities."""
        run_id = await create_run(session_maker)
        await run_task(session_maker, run_id)

        response = await client.get(f"/api/simulations/{run_id}/results")

        assert response.status_code == 200
        body = response.json()
        assert body["n_simulations"] == 5
        assert body["completed_at"] is not None
        assert len(body["scenarios"]) == 10

        current = next(s for s in body["scenarios"] if s["game_id"] is None)
        assert current["game_result"] is None
        assert len(current["teams"]) == 16
        team_1 = next(t for t in current["teams"] if t["team_id"] == 1)
        assert team_1["division_winner"] == 5
        assert team_1["division_pct"] == 1.0

    @pytest.mark.asyncio
    async def test_results_for_one_game(self, client, session_maker):
        run_id = await create_run(session_maker)
        await run_task(session_maker, run_id)

        response = await client.get(f"/api/simulations/{run_id}/results", params={"game_id": 34})

        scenarios = response.json()["scenarios"]
        assert {s["game_id"] for s in scenarios} == {34}
        assert {s["game_result"] for s in scenarios} == {"home win", "away win", "tie"}

    @pytest.mark.asyncio
    async def test_stream_finished_run(self, client, session_maker):
        run_id = await create_run(session_maker)
        await run_task(session_maker, run_id)

        with patch(f"{ROUTES}.async_session_maker", session_maker):
            response = await client.get(f"/api/simulations/{run_id}/stream")

        assert response.headers["content-type"].startswith("text/event-stream")
        assert '"status": "completed"' in response.text
        assert '"progress": 100' in response.text


class TestSimulationTask:
    """Tests for run_simulation_task."""

    @pytest.mark.asyncio
    async def test_completes_and_stores_rows(self, session_maker, seeded_session):
        run_id = await create_run(session_maker)

        await run_task(session_maker, run_id)

        async with session_maker() as session:
            run = await SimulationRunRepository(session).get_by_id(run_id)
            assert run.status == "completed"
            assert run.progress == 100
            assert run.error_message is None

            rows = await SimulationOutcomeRepository(session).get_results(run_id)
            # Current state plus three results for each of the three undecided games
            assert len(rows) == 10 * 16 * 2

    @pytest.mark.asyncio
    async def test_failure_marks_run_failed(self, session_maker):
        run_id = await create_run(session_maker)

        with patch(f"{ROUTES}.load_season", AsyncMock(side_effect=PersistenceError("db down"))):
            await run_task(session_maker, run_id)

        async with session_maker() as session:
            run = await SimulationRunRepository(session).get_by_id(run_id)
            assert run.status == "failed"
            assert run.error_message == "db down"

    @pytest.mark.asyncio
    async def test_missing_run_is_ignored(self, session_maker):
        with patch(f"{ROUTES}.load_season", new_callable=AsyncMock) as mock_load:
            await run_task(session_maker, 9999)
        mock_load.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_run_results(self, client, session_maker):
        run_id = await create_run(session_maker)
        with patch(f"{ROUTES}.load_season", AsyncMock(side_effect=PersistenceError("db down"))):
            await run_task(session_maker, run_id)

        response = await client.get(f"/api/simulations/{run_id}/results")

        assert response.status_code == 500
        assert "db down" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_progress_written_during_sweep(self, session_maker, seeded_session):
        """Progress between load (15) and storage (90) reaches the run record."""
        def slow_sweep(season_sim, sims, include_decided=False):
            for _ in range(3):
                season_sim.progress_callback(100.0)
                time.sleep(0.2)
            return season_sim.results

        update_progress = SimulationRunRepository.update_progress
        run_id = await create_run(session_maker)

        with patch.object(Season, "run_all_game_simulations", autospec=True, side_effect=slow_sweep), \
                patch(f"{ROUTES}.PROGRESS_FLUSH_SECONDS", 0.01), \
                patch.object(
                    SimulationRunRepository, "update_progress",
                    autospec=True, side_effect=update_progress
                ) as progress_spy:
            await run_task(session_maker, run_id)

        written = [call.args[2] for call in progress_spy.call_args_list]
        assert written == sorted(written)
        assert any(15 < progress < 90 for progress in written)

        async with session_maker() as session:
            run = await SimulationRunRepository(session).get_by_id(run_id)
            assert run.status == "completed"


class TestOpenAPI:
    """Tests for the published API schema."""

    @pytest.mark.asyncio
    async def test_every_schema_is_published(self, client):
        """Each pydantic model in the schemas module is used by a route."""
        response = await client.get("/api/openapi.json")
        published = set(response.json()["components"]["schemas"])

        models = {
            name for name, obj in vars(schemas).items()
            if isinstance(obj, type) and issubclass(obj, BaseModel) and obj is not BaseModel
        }
        assert models <= published
