# core.py
# This file holds the game state and move orchestration for the Powers game.
# A single Powers instance owns its grid and score; it is meant for one caller
# at a time and does no locking.

from enum import Enum
from typing import Callable, Dict, List, Literal, Optional, Tuple
import logging
import random

from pydantic import BaseModel, ConfigDict, Field, computed_field

import shift_util
from shift_util import Shift

logger = logging.getLogger(__name__)


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3

class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4

# --- Value Records ---

class Descriptor(BaseModel):
    """A Shift annotated with the row or column and direction it came from."""
    model_config = ConfigDict(frozen=True)

    shift: Shift
    row_or_column: int = Field(..., ge=0, description="Index of the row or column that was collapsed.")
    direction: DIRECTION

    @computed_field  # type: ignore[misc]
    @property
    def is_merge(self) -> bool:
        return self.shift.is_merge

    @computed_field  # type: ignore[misc]
    @property
    def value(self) -> int:
        return self.shift.value

    @computed_field  # type: ignore[misc]
    @property
    def score(self) -> int:
        return self.shift.value * 2 if self.is_merge else 0

class TilePosition(BaseModel):
    """Row, column and value of a newly generated tile."""
    model_config = ConfigDict(frozen=True)

    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    value: Literal[2, 4]

class MoveResult(BaseModel):
    """Everything that happened during one call to Powers.do_move()."""
    model_config = ConfigDict(frozen=True)

    moves: List[Descriptor] = Field(
        default_factory=list,
        description="Descriptors in the order they were performed, line 0 first."
    )
    new_tile: Optional[TilePosition] = Field(
        default=None,
        description="The tile placed after the move, or None if the grid was full."
    )

    @computed_field  # type: ignore[misc]
    @property
    def score_gained(self) -> int:
        return sum(move.score for move in self.moves)

    @computed_field  # type: ignore[misc]
    @property
    def moved(self) -> bool:
        return bool(self.moves)

# --- Line Orientation ---

# Maps (line index, position in canonical line, size) to a (row, col) of the grid.
# Position 0 of a canonical line is the edge tiles slide toward.
_LINE_COORDS: Dict[DIRECTION, Callable[[int, int, int], Tuple[int, int]]] = {
    DIRECTION.LEFT: lambda line, pos, n: (line, pos),
    DIRECTION.RIGHT: lambda line, pos, n: (line, n - 1 - pos),
    DIRECTION.UP: lambda line, pos, n: (pos, line),
    DIRECTION.DOWN: lambda line, pos, n: (n - 1 - pos, line),
}

# --- Game ---

class Powers:
    """
    State and logic for a game similar to "2048". The grid is an n x n array of
    tile values where 0 is an empty cell and every other value is a power of two.
    Each move collapses every row or column toward one edge using
    shift_util.collapse(); merges add twice the merged tile value to the score.
    """

    def __init__(self, size: int, rng: Optional[random.Random] = None):
        """
        Creates a game with two random starting tiles.
        Args:
            size (int): The dimension of the N x N grid.
            rng (Optional[random.Random]): Source of randomness. A system seeded
                                           generator is used when omitted.
        Raises:
            ValueError: If size is not an integer of at least 2.
        """
        if not isinstance(size, int) or size < 2:
            raise ValueError("Board size must be an integer of at least 2.")

        self._size = size
        self._score = 0
        self._rng = rng if rng is not None else random.Random()
        self._grid: List[List[int]] = [[0] * size for _ in range(size)]

        for _ in range(2):
            tile = self.generate_tile()
            self._grid[tile.row][tile.col] = tile.value

    # --- Accessors ---

    def get_tile(self, row: int, col: int) -> int:
        return self._grid[row][col]

    def set_tile(self, row: int, col: int, value: int) -> None:
        """
        Sets the value of a cell directly, bypassing the game rules.
        NOTE: This should not normally be used outside of tests.
        """
        self._grid[row][col] = value

    def get_size(self) -> int:
        return self._size

    def get_score(self) -> int:
        return self._score

    def get_grid(self) -> List[List[int]]:
        """Returns a row-major copy of the grid."""
        return [list(row) for row in self._grid]

    def get_empty_cells(self) -> List[Tuple[int, int]]:
        """
        Get coordinates of empty (0-value) cells.
        Returns:
            List[Tuple[int, int]]: List of (row, col) tuples, row-major.
        """
        return [
            (row, col)
            for row in range(self._size)
            for col in range(self._size)
            if self._grid[row][col] == 0
        ]

    # --- Line Extraction ---

    def extract_line(self, index: int, direction: DIRECTION) -> List[int]:
        """
        Copies a row or column into a new list oriented for `direction`:
        LEFT reads row `index` left to right, RIGHT reads it right to left,
        UP reads column `index` top to bottom and DOWN reads it bottom to top.
        """
        coord = _LINE_COORDS[direction]
        line = []
        for pos in range(self._size):
            row, col = coord(index, pos, self._size)
            line.append(self._grid[row][col])
        return line

    def write_line(self, line: List[int], index: int, direction: DIRECTION) -> None:
        """Writes a line produced by extract_line() back into the same row or column."""
        coord = _LINE_COORDS[direction]
        for pos, value in enumerate(line):
            row, col = coord(index, pos, self._size)
            self._grid[row][col] = value

    # --- Moves ---

    def do_move(self, direction: DIRECTION) -> MoveResult:
        """
        Shifts the whole grid in the given direction.

        Each row or column is collapsed in turn and every shift is recorded as a
        Descriptor. Afterwards a new tile is generated and placed, whether or not
        anything moved.
        Args:
            direction (DIRECTION): The direction to shift.
        Returns:
            MoveResult: The descriptors for every shift and the new tile (None if
                        the grid was full).
        """
        moves: List[Descriptor] = []
        for index in range(self._size):
            line = self.extract_line(index, direction)
            shifts = shift_util.collapse(line)
            self.write_line(line, index, direction)
            for shift in shifts:
                descriptor = Descriptor(shift=shift, row_or_column=index, direction=direction)
                self._score += descriptor.score
                moves.append(descriptor)

        tile = self.generate_tile()
        if tile is not None:
            self._grid[tile.row][tile.col] = tile.value

        result = MoveResult(moves=moves, new_tile=tile)
        logger.debug(
            "Move %s: %d shifts, +%d points (score %d), new tile %s",
            direction.name, len(moves), result.score_gained, self._score, tile,
        )
        return result

    def generate_tile(self) -> Optional[TilePosition]:
        """
        Picks a new tile without placing it. Every empty cell is equally likely
        and the value is 2 with 90% probability, 4 with 10%.
        Returns:
            Optional[TilePosition]: The selected tile, or None if the grid has no
                                    empty cells.
        """
        if not any(0 in row for row in self._grid):
            return None

        row = self._rng.randrange(self._size)
        col = self._rng.randrange(self._size)
        while self._grid[row][col] != 0:
            row = self._rng.randrange(self._size)
            col = self._rng.randrange(self._size)

        value = 2 if self._rng.randrange(10) < 9 else 4
        return TilePosition(row=row, col=col, value=value)

    # --- Game State Checks ---

    def can_move(self, direction: DIRECTION) -> bool:
        """
        Check if do_move(direction) would shift or merge at least one tile.
        The grid is not modified.
        """
        for index in range(self._size):
            if shift_util.collapse(self.extract_line(index, direction)):
                return True
        return False

    def determine_game_status(self, win_tile: int = 2048) -> GameProgressState:
        """
        Determines the current progress state of the game.
        Args:
            win_tile (int): The tile value that signifies a win. Default is 2048.
        Returns:
            GameProgressState: GAME_WON once any tile reaches win_tile, GAME_OVER
                               when the grid is full and nothing can move,
                               IN_PROGRESS otherwise.
        """
        if any(value >= win_tile for row in self._grid for value in row):
            return GameProgressState.GAME_WON

        if not self.get_empty_cells() and not any(self.can_move(d) for d in DIRECTION):
            return GameProgressState.GAME_OVER

        return GameProgressState.IN_PROGRESS
