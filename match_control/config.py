"""
Match configuration for tic-tac-toe.
Game mode, difficulty, clocks and score persistence settings.
"""

from enum import Enum
from typing import FrozenSet

from logic.ai_player import Difficulty
from logic.board import Player


class GameMode(Enum):
    """Who sits on each side of the board."""
    PVP = "pvp"       # Two humans
    PVAI = "pvai"     # Human vs engine
    AIVAI = "aivai"   # Engine vs engine


class MatchConfig:
    """
    Configuration class for matches.
    Change these values on an instance before handing it to the coordinator.
    """

    # ==================== PLAYERS ====================
    GAME_MODE = GameMode.PVAI
    DIFFICULTY = Difficulty.HARD
    HUMAN_PLAYER = Player.X   # Ignored outside PVAI

    # ==================== CLOCKS ====================
    # Turn timer in seconds (None = off)
    TURN_TIME_CHOICES = (None, 3, 5, 10)
    TURN_TIME_LIMIT = None

    # Match duration in minutes (None = off)
    MATCH_DURATION_CHOICES = (None, 1, 3, 5)
    MATCH_DURATION_MINUTES = None

    # Real seconds per clock second
    TICK_INTERVAL = 1.0

    # Pause between a finished round and the next one
    ROUND_ADVANCE_DELAY = 2.5

    # Pause before the engine moves, so it looks like it is thinking
    AI_THINK_DELAY = 0.5

    # How long the oracle may take before canned commentary is used
    ORACLE_TIMEOUT = 1.5

    # ==================== PERSISTENCE ====================
    SCORE_FILE = "data/scoreboard.json"
    SCORE_KEY = "tictactoe_score"

    def validate(self) -> "MatchConfig":
        """
        Check the settings against the allowed values.

        Raises:
            ValueError: If a setting is out of range.
        """
        if not isinstance(self.GAME_MODE, GameMode):
            raise ValueError(f"GAME_MODE must be a GameMode, got {self.GAME_MODE!r}")
        if not isinstance(self.DIFFICULTY, Difficulty):
            raise ValueError(f"DIFFICULTY must be a Difficulty, got {self.DIFFICULTY!r}")
        if not isinstance(self.HUMAN_PLAYER, Player):
            raise ValueError(f"HUMAN_PLAYER must be a Player, got {self.HUMAN_PLAYER!r}")
        if self.TURN_TIME_LIMIT not in self.TURN_TIME_CHOICES:
            raise ValueError(f"TURN_TIME_LIMIT must be one of {self.TURN_TIME_CHOICES}, got {self.TURN_TIME_LIMIT!r}")
        if self.MATCH_DURATION_MINUTES not in self.MATCH_DURATION_CHOICES:
            raise ValueError(
                f"MATCH_DURATION_MINUTES must be one of {self.MATCH_DURATION_CHOICES}, "
                f"got {self.MATCH_DURATION_MINUTES!r}"
            )
        for name in ("TICK_INTERVAL", "ROUND_ADVANCE_DELAY", "AI_THINK_DELAY", "ORACLE_TIMEOUT"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.TICK_INTERVAL == 0:
            raise ValueError("TICK_INTERVAL must be positive")
        return self

    def ai_players(self) -> FrozenSet[Player]:
        """The sides the engine plays."""
        if self.GAME_MODE == GameMode.PVP:
            return frozenset()
        if self.GAME_MODE == GameMode.AIVAI:
            return frozenset((Player.X, Player.O))
        return frozenset((self.HUMAN_PLAYER.opposite(),))

    @property
    def match_seconds(self):
        if self.MATCH_DURATION_MINUTES is None:
            return None
        return self.MATCH_DURATION_MINUTES * 60
