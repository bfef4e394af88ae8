"""
Oracle suggestions and how they merge with the local engine's move.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from logic.ai_player import Difficulty
from logic.board import BOARD_CELLS, Board


class SuggestionSource(Enum):
    LOCAL = "local"     # Nothing came back; use local fallbacks
    REMOTE = "remote"   # The oracle answered, possibly partially


@dataclass(frozen=True)
class Suggestion:
    """
    What the oracle had to say about a position.

    A LOCAL suggestion is empty by construction. A REMOTE one may still
    lack either field.
    """
    source: SuggestionSource = SuggestionSource.LOCAL
    move: Optional[int] = None
    commentary: Optional[str] = None

    @classmethod
    def local(cls) -> "Suggestion":
        return cls()

    @property
    def is_remote(self) -> bool:
        return self.source == SuggestionSource.REMOTE


def is_playable(board: Board, move) -> bool:
    """True if ``move`` is a plain int naming an empty cell."""
    return (
        isinstance(move, int)
        and not isinstance(move, bool)
        and 0 <= move < BOARD_CELLS
        and board.is_empty(move)
    )


def resolve_move(local_move: int, suggestion: Suggestion, board: Board, difficulty: Difficulty) -> Tuple[int, bool]:
    """
    Decide between the engine's move and the oracle's.

    The impossible tier always plays the engine's move. Easy and hard
    take the oracle's move when it lands on an empty cell.

    Returns:
        (move, used_remote)
    """
    if difficulty == Difficulty.IMPOSSIBLE or not suggestion.is_remote:
        return local_move, False
    if is_playable(board, suggestion.move):
        return suggestion.move, True
    return local_move, False


def pick_commentary(suggestion: Suggestion, fallback: Optional[str]) -> Optional[str]:
    """The oracle's commentary if it sent any, otherwise ``fallback``."""
    if suggestion.is_remote and suggestion.commentary:
        return suggestion.commentary
    return fallback
