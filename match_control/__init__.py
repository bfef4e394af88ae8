"""
Match control module for tic-tac-toe.
Handles configuration, the round/match state machine and score persistence.
"""

from .config import MatchConfig, GameMode
from .score_store import ScoreRecord, ScoreStore
from .coordinator import MatchCoordinator, MatchResult, Phase, RoundResult
