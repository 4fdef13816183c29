"""
Season data API routes.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas import TeamResponse, GameResponse
from ...db import get_db, TeamRepository, GameRepository, PersistenceError


router = APIRouter(prefix="/seasons", tags=["seasons"])


@router.get("/{season}/teams", response_model=List[TeamResponse])
async def list_teams(
    season: int,
    db: AsyncSession = Depends(get_db)
) -> List[TeamResponse]:
    """
    List the teams playing in a season.
    """
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

    return [TeamResponse(**team.to_dict()) for team in teams.values()]


@router.get("/{season}/games", response_model=List[GameResponse])
async def list_games(
    season: int,
    undecided_only: bool = False,
    db: AsyncSession = Depends(get_db)
) -> List[GameResponse]:
    """
    List the regular-season games of a season.

    Set ``undecided_only`` to list only games that have not been played.
    """
    try:
        teams = await TeamRepository(db).load_teams(season)
        games = await GameRepository(db).load_games(season, teams)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    if not games:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No games found for season {season}"
        )

    return [
        GameResponse(**game.to_dict())
        for game in games.values()
        if not (undecided_only and game.is_decided)
    ]
