"""
Advisory oracle configuration for tic-tac-toe.
Settings for the remote model that supplies commentary and move hints.

The oracle is optional: without an API key it stays switched off and
the game plays purely on the local engine.
"""

import os

from logic.ai_player import Difficulty


class OracleConfig:
    """
    Configuration class for the advisory oracle.
    Override attributes on an instance to change them.
    """

    # ==================== SERVICE SETTINGS ====================
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    MODEL = "gemini-2.5-flash"
    API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")

    # Hard deadline for one request, in seconds
    TIMEOUT = 1.5

    # ==================== GENERATION SETTINGS ====================
    TEMPERATURES = {
        Difficulty.EASY: 0.8,
        Difficulty.HARD: 0.2,
        Difficulty.IMPOSSIBLE: 0.5,
    }
    MAX_COMMENTARY_WORDS = 10

    # ==================== CANNED COMMENTARY ====================
    WIN_COMMENTARY = "Calculation complete. Victory achieved."
    DRAW_COMMENTARY = "A logical stalemate."
    FAILURE_COMMENTARY = "My circuits are fried, but I'll still play."
    OFFLINE_COMMENTARY = "I'm playing blind here!"

    @property
    def enabled(self) -> bool:
        return bool(self.API_KEY)

    def endpoint(self) -> str:
        return self.API_URL.format(model=self.MODEL)

    def temperature(self, difficulty: Difficulty) -> float:
        return self.TEMPERATURES.get(difficulty, 0.5)
