import logging
import os
import random
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core

logger = logging.getLogger(__name__)

DEFAULT_SIZE = int(os.getenv("POWERS_DEFAULT_SIZE", "4"))
WIN_TILE = int(os.getenv("POWERS_WIN_TILE", "2048"))
RATE_LIMIT = os.getenv("POWERS_RATE_LIMIT", "100/minute")
MAX_SIZE = int(os.getenv("POWERS_MAX_SIZE", "16"))
MAX_GAMES = int(os.getenv("POWERS_MAX_GAMES", "1000"))

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="Powers Game API",
    description="An API for playing a 2048-style game. "\
                "Each game lives in server memory and is addressed by its game_id.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# One Powers instance per game, at most MAX_GAMES of them. Endpoints run on the
# event loop, so a game is never mutated by two requests at once.
_games: Dict[str, core.Powers] = {}

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: int = Field(
        default=DEFAULT_SIZE,
        gt=1, # Board size must be at least 2x2
        le=MAX_SIZE,
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed for the game's random generator, for reproducible games."
    )

class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    game_id: str = Field(..., description="Identifier of this game.")
    board: List[List[int]] = Field(..., description="The N x N game board, represented as a list of lists.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    win_tile: int = Field(..., gt=0, description="The tile value required to win.")
    board_size: int = Field(..., gt=0, description="The dimension N of the N x N board.")

class MoveRequestData(BaseModel):
    """Data required to make a move."""
    direction: core.DIRECTION = Field(
        ...,
        description="Direction of the move (UP, DOWN, LEFT, RIGHT)."
    )

class MoveResponseData(GameStateData):
    """Response after a move: the new game state and what the move did."""
    result: core.MoveResult = Field(..., description="Shifts performed and the new tile placed.")

# --- Helpers ---

def _get_game(game_id: str) -> core.Powers:
    game = _games.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail=f"Unknown game: {game_id}")
    return game

def _state_of(game_id: str, game: core.Powers) -> dict:
    return dict(
        game_id=game_id,
        board=game.get_grid(),
        score=game.get_score(),
        progress=game.determine_game_status(WIN_TILE),
        win_tile=WIN_TILE,
        board_size=game.get_size(),
    )

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New Game")
@limiter.limit(RATE_LIMIT)
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Creates a new game with two random tiles and returns its state.

    - **size**: Dimension of the N x N board. Defaults to POWERS_DEFAULT_SIZE, at most POWERS_MAX_SIZE.
    - **seed**: Optional seed for reproducible tile placement.
    """
    if len(_games) >= MAX_GAMES:
        raise HTTPException(status_code=503, detail="Too many active games; end one and try again.")

    try:
        rng = random.Random(settings.seed) if settings.seed is not None else None
        game = core.Powers(settings.size, rng)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Unexpected error in /game/new: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")

    game_id = uuid.uuid4().hex
    _games[game_id] = game
    logger.info("Started game %s (size %d)", game_id, settings.size)
    return GameStateData(**_state_of(game_id, game))


@app.get("/game/{game_id}", response_model=GameStateData, summary="Get a Game's State")
@limiter.limit(RATE_LIMIT)
async def get_game(request: Request, game_id: str):
    """Returns the current board, score and progress of a game."""
    return GameStateData(**_state_of(game_id, _get_game(game_id)))


@app.post("/game/{game_id}/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(RATE_LIMIT)
async def make_move(request: Request, game_id: str, request_data: MoveRequestData):
    """
    Shifts the game's grid in the requested direction.

    Every row or column is collapsed, merges are scored and a new tile is
    placed. The response carries the updated state plus the ordered list of
    shifts and the new tile (null when the board was full).
    """
    game = _get_game(game_id)
    try:
        result = game.do_move(request_data.direction)
    except Exception as e:
        logger.error("Unexpected error in /game/%s/move: %s", game_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")

    return MoveResponseData(result=result, **_state_of(game_id, game))


@app.delete("/game/{game_id}", status_code=204, summary="End a Game")
@limiter.limit(RATE_LIMIT)
async def end_game(request: Request, game_id: str):
    """Discards a game."""
    _get_game(game_id)
    del _games[game_id]
    logger.info("Ended game %s", game_id)
    return Response(status_code=204)
