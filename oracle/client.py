"""
Advisory oracle client for tic-tac-toe.
Asks a remote language model for commentary and, on the easy and hard
tiers, for a move.

Nothing here is needed to play correctly. Every failure (timeout,
network error, malformed reply) is logged and turned into an empty
LOCAL suggestion so the caller falls back to the engine.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx

from logic.ai_player import Difficulty
from logic.board import BOARD_CELLS, Board, Player
from .config import OracleConfig
from .suggestion import Suggestion, SuggestionSource

logger = logging.getLogger(__name__)


MOVE_FIELD = {
    "type": "INTEGER",
    "description": "The 0-indexed position on the board (0-8) where you place your symbol.",
}
COMMENTARY_FIELD = {
    "type": "STRING",
    "description": "A short, witty, or competitive comment about the move (max 10 words).",
}


class AdvisoryOracle:
    """
    Best-effort client for the remote model.

    ``suggest`` never raises for service problems. Cancellation of the
    calling task still propagates.
    """

    def __init__(self, config: Optional[OracleConfig] = None):
        self.config = config or OracleConfig()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def suggest(
        self,
        board: Board,
        difficulty: Difficulty,
        acting_side: Player,
        deadline: Optional[float] = None
    ) -> Suggestion:
        """
        Ask for a move and/or commentary.

        Args:
            board: Position the acting side is about to move in.
            difficulty: Tier; the impossible tier only asks for commentary.
            acting_side: The side the oracle plays.
            deadline: Seconds to wait before giving up (default: config TIMEOUT).

        Returns:
            A REMOTE suggestion if the service answered in time, else LOCAL.
        """
        if not self.enabled:
            return Suggestion.local()

        timeout = self.config.TIMEOUT if deadline is None else deadline
        try:
            return await asyncio.wait_for(
                self._request(board, difficulty, acting_side, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Oracle did not answer within %.2fs", timeout)
        except httpx.HTTPError as e:
            logger.warning("Oracle request failed: %s", e)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Oracle sent a malformed response: %s", e)
        except Exception:
            logger.exception("Unexpected oracle failure")
        return Suggestion.local()

    async def _request(self, board: Board, difficulty: Difficulty, acting_side: Player, timeout: float) -> Suggestion:
        payload = self.build_payload(board, difficulty, acting_side)
        headers = {"x-goog-api-key": self.config.API_KEY}

        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(self.config.endpoint(), json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()

        suggestion = self.parse_response(data)
        logger.debug("Oracle suggested move=%s commentary=%r", suggestion.move, suggestion.commentary)
        return suggestion

    def build_prompt(self, board: Board, difficulty: Difficulty, acting_side: Player) -> str:
        opponent = acting_side.opposite().symbol
        me = acting_side.symbol
        cells = json.dumps(board.to_list())
        if difficulty == Difficulty.IMPOSSIBLE:
            return (
                f"You are playing Tic-Tac-Toe as '{me}' and never lose. Board (0-8): {cells}. "
                f"'{opponent}' is your opponent. 'null' is empty. "
                f"Return JSON with a short taunt as commentary (max {self.config.MAX_COMMENTARY_WORDS} words)."
            )
        return (
            f"Play Tic-Tac-Toe as '{me}'. Board (0-8): {cells}. "
            f"'{opponent}' is your opponent. 'null' is empty. "
            f"Win or block '{opponent}'. Else play strategic. "
            "Return JSON with move (0-8) and short commentary."
        )

    def build_payload(self, board: Board, difficulty: Difficulty, acting_side: Player) -> Dict[str, Any]:
        """Request body for the generateContent endpoint."""
        if difficulty == Difficulty.IMPOSSIBLE:
            properties = {"commentary": COMMENTARY_FIELD}
            required = ["commentary"]
        else:
            properties = {"move": MOVE_FIELD, "commentary": COMMENTARY_FIELD}
            required = ["move"]

        return {
            "contents": [{"parts": [{"text": self.build_prompt(board, difficulty, acting_side)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {"type": "OBJECT", "properties": properties, "required": required},
                "temperature": self.config.temperature(difficulty),
                # No thinking: answers must arrive inside the deadline
                "thinkingConfig": {"thinkingBudget": 0},
            },
        }

    def parse_response(self, data: Dict[str, Any]) -> Suggestion:
        """
        Pull move and commentary out of a generateContent response.

        Raises:
            ValueError, KeyError, IndexError, TypeError: On a malformed body.
        """
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        result = json.loads(text)
        if not isinstance(result, dict):
            raise ValueError(f"Expected a JSON object, got {type(result).__name__}")

        move = result.get("move")
        if isinstance(move, bool) or not isinstance(move, int) or not 0 <= move < BOARD_CELLS:
            move = None

        commentary = result.get("commentary", result.get("taunt"))
        if isinstance(commentary, str) and commentary.strip():
            words = commentary.split()
            commentary = " ".join(words[:self.config.MAX_COMMENTARY_WORDS])
        else:
            commentary = None

        return Suggestion(source=SuggestionSource.REMOTE, move=move, commentary=commentary)
