"""
Logic module for tic-tac-toe.
Handles the board, round state, rules, outcome evaluation and the AI opponent.
"""

from .board import Board, Player, EMPTY, CENTER
from .game_state import GameState, Move
from .move_validator import MoveValidator, ValidationResult
from .win_checker import WinChecker, Outcome, evaluate
from .ai_player import AIPlayer, Difficulty, InvalidStateError, RANDOM_MOVE_CHANCE
