"""
AI player for tic-tac-toe.
Uses the Minimax algorithm to choose the best move, with a random
degradation policy for the easy tier.
"""

import logging
import random
from enum import Enum
from typing import Dict, Optional

from .board import Board, CENTER, Player
from .win_checker import WinChecker

logger = logging.getLogger(__name__)


# Chance that the easy tier plays a random empty cell instead of searching
RANDOM_MOVE_CHANCE = 0.7

WIN_SCORE = 10


class Difficulty(Enum):
    """AI difficulty levels."""
    EASY = 1          # Mostly random moves
    HARD = 2          # Full minimax
    IMPOSSIBLE = 3    # Full minimax, never overridden by the oracle

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_name(cls, name: str) -> "Difficulty":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown difficulty: {name!r}") from None


class InvalidStateError(RuntimeError):
    """The engine was asked for a move on a board with no empty cell."""


class AIPlayer:
    """
    An AI that plays tic-tac-toe using the Minimax algorithm.

    On the exact path it will win if possible, block the opponent if
    needed, and never lose (at worst, draw). The easy tier skips the
    search most of the time and plays a random cell instead.

    The engine keeps no game state between calls. The only randomness
    comes from ``rng``, so seed it for repeatable play.
    """

    def __init__(self, rng: Optional[random.Random] = None, random_move_chance: float = RANDOM_MOVE_CHANCE):
        """
        Initialize the AI player.

        Args:
            rng: Random source for the easy tier (default: a fresh Random()).
            random_move_chance: Probability of a random move on the easy tier.
        """
        if not 0.0 <= random_move_chance <= 1.0:
            raise ValueError(f"random_move_chance must be within [0, 1], got {random_move_chance}")
        self.rng = rng or random.Random()
        self.random_move_chance = random_move_chance
        self.win_checker = WinChecker()

        # How many positions the last search evaluated (for debugging)
        self.positions_evaluated = 0

    def choose_move(self, board: Board, acting_side: Player, difficulty: Difficulty) -> int:
        """
        Pick a move for ``acting_side``.

        Args:
            board: Current board. It is never modified.
            acting_side: The player to move.
            difficulty: Tier controlling search fidelity.

        Returns:
            Index (0-8) of the chosen cell.

        Raises:
            InvalidStateError: If the board has no empty cell.
        """
        empty = board.empty_cells()
        if not empty:
            raise InvalidStateError("No empty cell to move to")

        if difficulty == Difficulty.EASY and self.rng.random() < self.random_move_chance:
            move = self.rng.choice(empty)
            logger.debug("Easy tier played random cell %s for %s", move, acting_side.symbol)
            return move

        return self.best_move(board, acting_side)

    def best_move(self, board: Board, acting_side: Player) -> int:
        """
        Exact search for ``acting_side``.

        Opens in the center when it is free. Otherwise every empty cell
        is scored with minimax and the first best one (lowest index) wins.
        """
        empty = board.empty_cells()
        if not empty:
            raise InvalidStateError("No empty cell to move to")

        # Center is optimal or tied-optimal on an empty board and as the
        # reply to any single opening mark; later it may leave a line open
        if board.filled() <= 1 and board.is_empty(CENTER):
            return CENTER

        scores = self.score_moves(board, acting_side)
        best_score = None
        best = empty[0]
        for index, score in scores.items():
            if best_score is None or score > best_score:
                best_score = score
                best = index

        logger.debug(
            "AI evaluated %d positions for %s. Best move: %d (score: %d)",
            self.positions_evaluated, acting_side.symbol, best, best_score,
        )
        return best

    def score_moves(self, board: Board, acting_side: Player) -> Dict[int, int]:
        """
        Minimax value of every empty cell for ``acting_side``.

        A win scores ``10 - depth``, a loss ``depth - 10`` and a draw 0,
        where depth counts the plies after the candidate move.

        Returns:
            Mapping of cell index to score, in ascending index order.
        """
        self.positions_evaluated = 0
        memo: Dict[bytes, int] = {}
        return {
            index: self._minimax(
                board.with_move(index, acting_side),
                acting_side,
                depth=0,
                to_move=acting_side.opposite(),
                memo=memo,
            )
            for index in board.empty_cells()
        }

    def _minimax(
        self,
        board: Board,
        acting_side: Player,
        depth: int,
        to_move: Player,
        memo: Dict[bytes, int]
    ) -> int:
        """
        Minimax over copy-on-write boards.

        The memo only lives for one search. Within a search the depth and
        the side to move are fixed by how many cells are filled, so a
        board's score never depends on the path that reached it.

        Args:
            board: Position to evaluate.
            acting_side: The side the search is maximizing for.
            depth: Plies played since the candidate move.
            to_move: Who moves next in this position.
            memo: Scores of positions already seen in this search.

        Returns:
            The score of the position.
        """
        key = board.key()
        cached = memo.get(key)
        if cached is not None:
            return cached

        self.positions_evaluated += 1
        outcome = self.win_checker.evaluate(board)

        if outcome.winner == acting_side:
            score = WIN_SCORE - depth   # Win (prefer faster wins)
        elif outcome.winner is not None:
            score = depth - WIN_SCORE   # Loss (prefer slower losses)
        elif outcome.is_draw:
            score = 0
        else:
            child_scores = [
                self._minimax(board.with_move(index, to_move), acting_side, depth + 1, to_move.opposite(), memo)
                for index in board.empty_cells()
            ]
            score = max(child_scores) if to_move == acting_side else min(child_scores)

        memo[key] = score
        return score

    def get_move_suggestion(self, board: Board, acting_side: Player) -> str:
        """
        Get a human-readable move suggestion.

        Args:
            board: Current board.
            acting_side: Who the hint is for.

        Returns:
            A string describing the suggested move.
        """
        if board.is_full():
            return "No moves available!"

        move = self.best_move(board, acting_side)
        return f"Place {acting_side.symbol} on square {move + 1}"


# Quick test
if __name__ == "__main__":
    print("Testing AIPlayer...")

    ai = AIPlayer()

    # Test 1: AI should take a winning move
    board = Board.from_cells(["X", "X", None, "O", "O", None, None, None, None])
    move = ai.best_move(board, Player.X)
    print(f"X can win at 2, AI plays {move}")
    assert move == 2, f"Expected 2, got {move}"

    # Test 2: AI should block
    board = Board.from_cells(["X", "X", None, None, "O", None, None, None, None])
    move = ai.best_move(board, Player.O)
    print(f"O must block at 2, AI plays {move}")
    assert move == 2, f"Expected 2, got {move}"

    print("\nAIPlayer test done!")
