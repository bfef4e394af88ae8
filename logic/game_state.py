"""
Round state for tic-tac-toe.
Tracks the board, whose turn it is, the move history and the result.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .board import Board, Player
from .win_checker import ONGOING, Outcome, evaluate

logger = logging.getLogger(__name__)


@dataclass
class Move:
    """
    A move in the round.
    """
    player: Player          # Who made the move
    index: int              # Cell index (0-8)
    move_number: int        # Position in the round (0-8)


@dataclass
class GameState:
    """
    The complete state of one round.

    Tracks:
    - The board
    - Current player and the player who opened the round
    - Move history
    - Outcome, recomputed from the board after every move
    """

    board: Board = field(default_factory=Board)

    # Current player's turn
    current_player: Player = Player.X

    # Who moved first this round
    starting_player: Optional[Player] = None

    moves: List[Move] = field(default_factory=list)

    outcome: Outcome = ONGOING

    def __post_init__(self):
        if self.starting_player is None:
            self.starting_player = self.current_player

    @property
    def is_game_over(self) -> bool:
        return self.outcome.is_terminal

    @property
    def winner(self) -> Optional[Player]:
        return self.outcome.winner

    @property
    def is_draw(self) -> bool:
        return self.outcome.is_draw

    def make_move(self, index: int) -> bool:
        """
        Place the current player's mark.

        Args:
            index: Cell index (0-8).

        Returns:
            True if move was made, False if it was rejected.
        """
        if self.is_game_over:
            logger.debug("Round is already over; ignoring move at %s", index)
            return False

        if not self.board.is_empty(index):
            logger.debug("Cell %s is not available", index)
            return False

        self.board.place(index, self.current_player)
        self.moves.append(Move(player=self.current_player, index=index, move_number=len(self.moves)))

        self.outcome = evaluate(self.board)
        if not self.outcome.is_terminal:
            self.current_player = self.current_player.opposite()

        return True

    def get_empty_cells(self) -> List[int]:
        return self.board.empty_cells()

    def copy(self) -> "GameState":
        """Create a deep copy of the round state."""
        return GameState(
            board=self.board.copy(),
            current_player=self.current_player,
            starting_player=self.starting_player,
            moves=list(self.moves),
            outcome=self.outcome,
        )
