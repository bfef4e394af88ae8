"""
Oracle module for tic-tac-toe.
Optional remote commentary and move hints, always backed by local fallbacks.
"""

from .config import OracleConfig
from .suggestion import Suggestion, SuggestionSource, resolve_move, pick_commentary
from .client import AdvisoryOracle
