import logging
from typing import List

from gameon.models import GameType, TournamentStructure
from gameon.repositories.base import GameRepository

logger = logging.getLogger(__name__)

DEFAULT_GAME_TYPES = [
    ("Basketball", "basketball"),
    ("Soccer", "soccer"),
    ("Tennis", "tennis"),
]

DEFAULT_STRUCTURES = [
    ("Single Match", "One-off game"),
    ("Knockout", "Elimination tournament"),
    ("Round Robin", "Everyone plays each other"),
    ("League", "Season-long competition"),
]

def list_game_types(repository: GameRepository) -> List[GameType]:
    return repository.list_game_types()

def list_tournament_structures(repository: GameRepository) -> List[TournamentStructure]:
    return repository.list_tournament_structures()

def seed_reference_data(repository: GameRepository) -> None:
    """Inserts the default lookup rows when the tables are empty."""
    with repository.atomic():
        if not repository.list_game_types():
            for name, icon_class in DEFAULT_GAME_TYPES:
                repository.create_game_type(name, icon_class)
            logger.info("Seeded %d game types", len(DEFAULT_GAME_TYPES))
        if not repository.list_tournament_structures():
            for name, description in DEFAULT_STRUCTURES:
                repository.create_tournament_structure(name, description)
            logger.info("Seeded %d tournament structures", len(DEFAULT_STRUCTURES))
