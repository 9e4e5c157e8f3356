from typing import List

from fastapi import APIRouter, Depends

from gameon.repositories.base import GameRepository
from gameon.schemas import reference_schemas
from gameon.services import reference_service
from gameon.api.dependencies import get_repository

router = APIRouter()

@router.get("/game-types", response_model=List[reference_schemas.GameTypeRead])
async def list_game_types_endpoint(repository: GameRepository = Depends(get_repository)):
    return reference_service.list_game_types(repository)

@router.get("/tournament-structures", response_model=List[reference_schemas.TournamentStructureRead])
async def list_tournament_structures_endpoint(repository: GameRepository = Depends(get_repository)):
    return reference_service.list_tournament_structures(repository)
