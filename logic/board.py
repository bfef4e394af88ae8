"""
Board model for tic-tac-toe.
A fixed 3x3 grid stored as a flat numpy vector of 9 cells.
"""

from enum import Enum
from typing import Iterable, List, Optional

import numpy as np


# Cell code for an empty square
EMPTY = 0

# Index of the center square
CENTER = 4

BOARD_CELLS = 9


class Player(Enum):
    """The two marks in the game."""
    X = 1
    O = 2

    def opposite(self) -> "Player":
        """Get the opposite player."""
        return Player.O if self == Player.X else Player.X

    @property
    def symbol(self) -> str:
        return self.name

    @classmethod
    def from_symbol(cls, symbol: str) -> "Player":
        """Parse "X" or "O" (case-insensitive)."""
        try:
            return cls[symbol.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown player symbol: {symbol!r}") from None


def _cell_code(value) -> int:
    """Convert one of the accepted cell spellings to its code."""
    if value is None:
        return EMPTY
    if isinstance(value, Player):
        return value.value
    if isinstance(value, str):
        if value.strip() in ("", "-", "."):
            return EMPTY
        return Player.from_symbol(value).value
    code = int(value)
    if code not in (EMPTY, Player.X.value, Player.O.value):
        raise ValueError(f"Invalid cell code: {value!r}")
    return code


class Board:
    """
    The 3x3 grid, indexed 0-8 row by row.

    Pure data: it knows which cells hold which mark and nothing about
    turns or results. Turn order is the coordinator's job.
    """

    __slots__ = ("cells",)

    def __init__(self, cells: Optional[np.ndarray] = None):
        if cells is None:
            cells = np.zeros(BOARD_CELLS, dtype=np.int8)
        self.cells = cells

    @classmethod
    def from_cells(cls, values: Iterable) -> "Board":
        """
        Build a board from any sequence of 9 cell values.

        Accepts "X"/"O", None/" "/"" for empty, Player members or the raw
        integer codes.
        """
        codes = [_cell_code(v) for v in values]
        if len(codes) != BOARD_CELLS:
            raise ValueError(f"A board has {BOARD_CELLS} cells, got {len(codes)}")
        return cls(np.array(codes, dtype=np.int8))

    def __getitem__(self, index: int) -> Optional[Player]:
        code = int(self.cells[index])
        return None if code == EMPTY else Player(code)

    def __len__(self) -> int:
        return BOARD_CELLS

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return bool(np.array_equal(self.cells, other.cells))

    def __repr__(self) -> str:
        return f"Board({self.to_list()!r})"

    def is_empty(self, index: int) -> bool:
        return 0 <= index < BOARD_CELLS and bool(self.cells[index] == EMPTY)

    def empty_cells(self) -> List[int]:
        """Indices of all empty cells, ascending."""
        return [int(i) for i in np.flatnonzero(self.cells == EMPTY)]

    def is_full(self) -> bool:
        return not bool((self.cells == EMPTY).any())

    def count(self, player: Player) -> int:
        return int(np.count_nonzero(self.cells == player.value))

    def filled(self) -> int:
        return int(np.count_nonzero(self.cells))

    def is_consistent(self) -> bool:
        """True if neither mark leads the other by more than one placement."""
        return abs(self.count(Player.X) - self.count(Player.O)) <= 1

    def place(self, index: int, player: Player) -> None:
        """
        Put a mark on the board in place.

        Raises:
            ValueError: If the index is outside 0-8 or the cell is taken.
        """
        if not 0 <= index < BOARD_CELLS:
            raise ValueError(f"Invalid cell index {index}. Must be 0-8.")
        if self.cells[index] != EMPTY:
            raise ValueError(f"Cell {index} is already occupied by {self[index].symbol}")
        self.cells[index] = player.value

    def with_move(self, index: int, player: Player) -> "Board":
        """Return a new board with the mark placed; this board is untouched."""
        cells = self.cells.copy()
        cells[index] = player.value
        return Board(cells)

    def copy(self) -> "Board":
        return Board(self.cells.copy())

    def key(self) -> bytes:
        """Hashable snapshot of the cells."""
        return self.cells.tobytes()

    def to_list(self) -> List[Optional[str]]:
        """Serialize as ["X", None, "O", ...]."""
        return [None if cell is None else cell.symbol for cell in (self[i] for i in range(BOARD_CELLS))]

    def render(self) -> str:
        """Text grid with 1-9 keypad numbers in empty cells."""
        rows = []
        for row in range(3):
            marks = []
            for col in range(3):
                index = row * 3 + col
                cell = self[index]
                marks.append(cell.symbol if cell else str(index + 1))
            rows.append(" " + " | ".join(marks))
        return "\n---+---+---\n".join(rows)
