"""
Score persistence for tic-tac-toe.
A flat win/draw record kept in a small JSON file.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from logic.board import Player

logger = logging.getLogger(__name__)


DEFAULT_KEY = "tictactoe_score"


@dataclass
class ScoreRecord:
    """Rounds won by each side, draws and rounds played."""
    x_wins: int = 0
    o_wins: int = 0
    draws: int = 0
    total: int = 0

    def record(self, winner: Optional[Player]) -> None:
        """Count one finished round. None means a draw."""
        if winner == Player.X:
            self.x_wins += 1
        elif winner == Player.O:
            self.o_wins += 1
        else:
            self.draws += 1
        self.total += 1

    def wins(self, player: Player) -> int:
        return self.x_wins if player == Player.X else self.o_wins

    def reset(self) -> None:
        self.x_wins = self.o_wins = self.draws = self.total = 0

    def copy(self) -> "ScoreRecord":
        return ScoreRecord(self.x_wins, self.o_wins, self.draws, self.total)

    def to_dict(self) -> Dict[str, int]:
        return {"X": self.x_wins, "O": self.o_wins, "Draws": self.draws, "Total": self.total}

    @classmethod
    def from_dict(cls, data: Any) -> "ScoreRecord":
        """
        Build a record from stored data.

        Anything that is not a non-negative integer is read as 0.
        """
        if not isinstance(data, dict):
            return cls()

        def _count(key: str) -> int:
            value = data.get(key, 0)
            if isinstance(value, bool):
                return 0
            try:
                value = int(value)
            except (TypeError, ValueError, OverflowError):
                return 0
            return max(value, 0)

        return cls(x_wins=_count("X"), o_wins=_count("O"), draws=_count("Draws"), total=_count("Total"))


class ScoreStore:
    """
    Loads and saves a ScoreRecord under a fixed key in a JSON file.

    Missing or corrupt files never stop the game: loading falls back to
    a zeroed record and saving only logs on failure.
    """

    def __init__(self, path: Union[str, Path], key: str = DEFAULT_KEY):
        self.path = Path(path)
        self.key = key

    def load(self) -> ScoreRecord:
        if not self.path.exists():
            return ScoreRecord()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read scores from %s (%s). Starting from zero.", self.path, e)
            return ScoreRecord()

        if not isinstance(raw, dict):
            logger.warning("Score file %s is not a JSON object. Starting from zero.", self.path)
            return ScoreRecord()
        return ScoreRecord.from_dict(raw.get(self.key))

    def save(self, record: ScoreRecord) -> bool:
        """
        Write the record, keeping any other keys in the file.

        Returns:
            True if the file was written.
        """
        data: Dict[str, Any] = {}
        try:
            existing = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(existing, dict):
                data = existing
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            pass
        data[self.key] = record.to_dict()

        dir_name = self.path.parent
        temp_path = None
        try:
            dir_name.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=dir_name, prefix=".scoreboard.", text=True)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, self.path)
            temp_path = None
            return True
        except OSError as e:
            logger.warning("Could not save scores to %s (%s). Latest results may not be persisted.", self.path, e)
            return False
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
