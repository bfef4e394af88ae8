"""
Move validator for tic-tac-toe.
Validates that a requested move follows the rules.
"""

from dataclasses import dataclass
from numbers import Integral
from typing import List, Optional

from .board import BOARD_CELLS, Player
from .game_state import GameState


@dataclass
class ValidationResult:
    """Result of move validation."""
    is_valid: bool
    error_message: Optional[str] = None


class MoveValidator:
    """
    Validates tic-tac-toe moves.

    Rules:
    1. Round must not be over
    2. Index must be on the board (0-8)
    3. Can only place on empty cells
    4. Only the player whose turn it is may move
    """

    def validate_move(
        self,
        game_state: GameState,
        index: int,
        player: Optional[Player] = None
    ) -> ValidationResult:
        """
        Validate a move.

        Args:
            game_state: Current round state.
            index: Cell to place the mark on (0-8).
            player: Who is asking to move. None skips the turn check.

        Returns:
            ValidationResult with is_valid and error_message.
        """
        if game_state.is_game_over:
            return ValidationResult(
                is_valid=False,
                error_message="Round is already over!"
            )

        if isinstance(index, bool) or not isinstance(index, Integral) or not 0 <= index < BOARD_CELLS:
            return ValidationResult(
                is_valid=False,
                error_message=f"Invalid position {index!r}. Must be 0-8."
            )

        occupant = game_state.board[index]
        if occupant is not None:
            return ValidationResult(
                is_valid=False,
                error_message=f"Cell {index} is already occupied by {occupant.symbol}"
            )

        if player is not None and player != game_state.current_player:
            return ValidationResult(
                is_valid=False,
                error_message=f"It's {game_state.current_player.symbol}'s turn, not {player.symbol}'s"
            )

        return ValidationResult(is_valid=True)

    def get_valid_moves(self, game_state: GameState) -> List[int]:
        """All cells the current player may move to."""
        if game_state.is_game_over:
            return []
        return game_state.get_empty_cells()
