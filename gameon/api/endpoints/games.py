from typing import List, Optional

from fastapi import APIRouter, Depends, status

from gameon.core.security import get_current_user_id
from gameon.schemas import game_schemas
from gameon.services.game_service import GameService
from gameon.api.dependencies import get_game_service

router = APIRouter()

@router.get("", response_model=List[game_schemas.GameRead])
async def list_games_endpoint(
    status: Optional[str] = None,
    game_service: GameService = Depends(get_game_service),
):
    return game_service.list_games(status)

# Declared before /{game_id} so the literal paths win.
@router.get("/my-games", response_model=List[game_schemas.GameRead])
async def list_my_games_endpoint(
    current_user_id: int = Depends(get_current_user_id),
    game_service: GameService = Depends(get_game_service),
):
    return game_service.list_joined_games(current_user_id)

@router.get("/created", response_model=List[game_schemas.GameRead])
async def list_created_games_endpoint(
    current_user_id: int = Depends(get_current_user_id),
    game_service: GameService = Depends(get_game_service),
):
    return game_service.list_created_games(current_user_id)

@router.get("/{game_id}", response_model=game_schemas.GameRead)
async def get_game_endpoint(
    game_id: int,
    game_service: GameService = Depends(get_game_service),
):
    return game_service.get_game(game_id)

@router.post("", response_model=game_schemas.GameRead, status_code=status.HTTP_201_CREATED)
async def create_game_endpoint(
    game_in: game_schemas.GameCreate,
    current_user_id: int = Depends(get_current_user_id),
    game_service: GameService = Depends(get_game_service),
):
    return game_service.create_game(current_user_id, game_in)

@router.patch("/{game_id}/status", response_model=game_schemas.GameRead)
async def update_game_status_endpoint(
    game_id: int,
    status_in: game_schemas.GameStatusUpdate,
    current_user_id: int = Depends(get_current_user_id),
    game_service: GameService = Depends(get_game_service),
):
    return game_service.change_status(game_id, current_user_id, status_in.status, status_in.placements)

@router.get("/{game_id}/participants", response_model=List[game_schemas.ParticipantRead])
async def list_participants_endpoint(
    game_id: int,
    game_service: GameService = Depends(get_game_service),
):
    return game_service.list_participants(game_id)

@router.get("/{game_id}/distribution", response_model=game_schemas.DistributionRead)
async def get_distribution_endpoint(
    game_id: int,
    game_service: GameService = Depends(get_game_service),
):
    return game_service.get_distribution(game_id)

@router.post("/{game_id}/join", response_model=game_schemas.ParticipantRead, status_code=status.HTTP_201_CREATED)
async def join_game_endpoint(
    game_id: int,
    join_in: Optional[game_schemas.JoinGameRequest] = None,
    current_user_id: int = Depends(get_current_user_id),
    game_service: GameService = Depends(get_game_service),
):
    referred_by = join_in.referred_by if join_in else None
    return game_service.join_game(game_id, current_user_id, referred_by)
