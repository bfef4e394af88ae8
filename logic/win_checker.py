"""
Win checker for tic-tac-toe.
Computes the terminal state (winner and winning line, or draw) of a board.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .board import Board, EMPTY, Player


# All possible winning lines as index triples.
# Scan order matters: rows, then columns, then diagonals.
WINNING_LINES = np.array([
    # Rows
    [0, 1, 2],
    [3, 4, 5],
    [6, 7, 8],
    # Columns
    [0, 3, 6],
    [1, 4, 7],
    [2, 5, 8],
    # Diagonals
    [0, 4, 8],
    [2, 4, 6],
], dtype=np.intp)


@dataclass(frozen=True)
class Outcome:
    """
    Result of evaluating a board.

    Always derived from a board snapshot, never stored on its own.
    """
    winner: Optional[Player] = None
    is_draw: bool = False
    winning_line: Optional[Tuple[int, int, int]] = None

    @property
    def is_terminal(self) -> bool:
        return self.winner is not None or self.is_draw


ONGOING = Outcome()


class WinChecker:
    """
    Checks for win conditions in tic-tac-toe.

    Win condition: 3 marks of the same player in a row
    (horizontally, vertically, or diagonally).
    """

    WINNING_LINES = WINNING_LINES

    def evaluate(self, board: Board) -> Outcome:
        """
        Evaluate a board.

        Safe to call on hypothetical boards: nothing is modified.

        Args:
            board: The board to check.

        Returns:
            The first completed line in scan order as a win, a draw if the
            board is full without one, otherwise an ongoing outcome.
        """
        lines = board.cells[self.WINNING_LINES]
        complete = (lines[:, 0] != EMPTY) & (lines[:, 0] == lines[:, 1]) & (lines[:, 1] == lines[:, 2])
        hits = np.flatnonzero(complete)

        if hits.size:
            first = int(hits[0])
            line = tuple(int(i) for i in self.WINNING_LINES[first])
            return Outcome(winner=Player(int(lines[first, 0])), winning_line=line)

        if board.is_full():
            return Outcome(is_draw=True)

        return ONGOING

    def check_winner(self, board: Board) -> Optional[Player]:
        """The winning player, or None if no winner yet."""
        return self.evaluate(board).winner

    def check_draw(self, board: Board) -> bool:
        """True if the board is full and nobody has a line."""
        return self.evaluate(board).is_draw

    def get_winning_line(self, board: Board) -> Optional[Tuple[int, int, int]]:
        return self.evaluate(board).winning_line


_checker = WinChecker()


def evaluate(board: Board) -> Outcome:
    """Module-level shortcut for WinChecker().evaluate(board)."""
    return _checker.evaluate(board)


# Quick test
if __name__ == "__main__":
    print("Testing WinChecker...")

    row_win = Board.from_cells(["X", "X", "X", "O", "O", None, None, None, None])
    print(f"Row: {evaluate(row_win)}")
    assert evaluate(row_win).winning_line == (0, 1, 2)

    diagonal = Board.from_cells(["O", "X", None, "X", "O", None, None, None, "O"])
    print(f"Diagonal: {evaluate(diagonal)}")
    assert evaluate(diagonal).winner == Player.O

    full = Board.from_cells(["X", "O", "X", "X", "O", "O", "O", "X", "X"])
    print(f"Full board: {evaluate(full)}")
    assert evaluate(full).is_draw

    print("\nWinChecker test done!")
