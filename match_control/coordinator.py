"""
Round and match coordinator for tic-tac-toe.

Owns whose turn it is, the turn/match/round-advance timers, scoring and
the move from one round to the next. Runs on the asyncio event loop:
timers are ``loop.call_later`` handles and engine turns are tasks.

Every timer callback and engine task remembers the epoch it was
scheduled under and does nothing once that epoch has moved on.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from logic.ai_player import AIPlayer
from logic.board import Board, Player
from logic.game_state import GameState
from logic.move_validator import MoveValidator
from oracle.client import AdvisoryOracle
from oracle.config import OracleConfig
from oracle.suggestion import pick_commentary, resolve_move
from .config import MatchConfig
from .score_store import ScoreRecord, ScoreStore

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    ROUND_OVER = "round_over"
    MATCH_OVER = "match_over"


@dataclass(frozen=True)
class RoundResult:
    """How a round ended."""
    winner: Optional[Player]
    is_draw: bool = False
    winning_line: Optional[Tuple[int, int, int]] = None
    forfeit: bool = False   # Loser ran out of time


@dataclass(frozen=True)
class MatchResult:
    """Who had more round wins when the match clock ran out."""
    winner: Optional[Player]
    is_draw: bool
    score: ScoreRecord


class MatchCoordinator:
    """
    State machine for rounds and matches.

    Phases: IDLE -> IN_PROGRESS -> ROUND_OVER -> IN_PROGRESS ... and
    MATCH_OVER when a configured match clock runs out. ``quit`` and
    ``reset`` return to IDLE from anywhere.

    Must be started from inside a running event loop.
    """

    def __init__(
        self,
        config: Optional[MatchConfig] = None,
        engine: Optional[AIPlayer] = None,
        oracle: Optional[AdvisoryOracle] = None,
        score_store: Optional[ScoreStore] = None,
        on_change: Optional[Callable[["MatchCoordinator"], None]] = None
    ):
        """
        Initialize the coordinator.

        Args:
            config: Match settings (validated here).
            engine: Move search engine for the AI sides.
            oracle: Optional advisory oracle for commentary and hints.
            score_store: Where the score record is loaded from and saved to.
            on_change: Called with the coordinator after every state change.
        """
        self.config = (config or MatchConfig()).validate()
        self.engine = engine or AIPlayer()
        self.oracle = oracle
        self.oracle_config = oracle.config if oracle is not None else OracleConfig()
        self.score_store = score_store
        self.on_change = on_change
        self.validator = MoveValidator()
        self.ai_players = self.config.ai_players()

        self.score = score_store.load() if score_store is not None else ScoreRecord()
        self.match_score = ScoreRecord()

        self._phase = Phase.IDLE
        self.game_state = GameState()
        self.starting_player = Player.X
        self.turn_remaining: Optional[int] = None
        self.match_remaining: Optional[int] = None
        self.is_computing = False
        self.commentary: Optional[str] = None
        self.last_result: Optional[RoundResult] = None
        self.match_result: Optional[MatchResult] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._match_epoch = 0
        self._round_epoch = 0
        self._turn_epoch = 0
        self._turn_timer: Optional[asyncio.TimerHandle] = None
        self._match_timer: Optional[asyncio.TimerHandle] = None
        self._advance_timer: Optional[asyncio.TimerHandle] = None
        self._ai_task: Optional[asyncio.Task] = None
        self._round_scored = False

    # ==================== READ-ONLY VIEW ====================

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def board(self) -> Board:
        return self.game_state.board

    @property
    def current_player(self) -> Player:
        return self.game_state.current_player

    def is_ai_turn(self) -> bool:
        return self._phase == Phase.IN_PROGRESS and self.current_player in self.ai_players

    # ==================== ACTIONS ====================

    def start_match(self) -> bool:
        """
        Begin a new match and its first round.

        Returns:
            False if a match is already running.
        """
        if self._phase in (Phase.IN_PROGRESS, Phase.ROUND_OVER):
            logger.debug("Match already running; ignoring start")
            return False

        self._loop = asyncio.get_running_loop()
        self._cancel_pending()
        self._match_epoch += 1
        self.match_score = ScoreRecord()
        self.match_result = None
        self.starting_player = Player.X

        self.match_remaining = self.config.match_seconds
        if self.match_remaining is not None:
            self._schedule_match_tick()

        logger.info(
            "Match started (%s, %s, turn timer=%s, match=%s min)",
            self.config.GAME_MODE.value, self.config.DIFFICULTY.label,
            self.config.TURN_TIME_LIMIT, self.config.MATCH_DURATION_MINUTES,
        )
        self._start_round()
        return True

    def submit_move(self, index: int, player: Optional[Player] = None) -> bool:
        """
        Play a human move.

        Anything illegal (finished round, engine busy, engine's turn,
        wrong player, taken or invalid cell) is ignored.

        Args:
            index: Cell index (0-8).
            player: Who is moving; None means whoever's turn it is.

        Returns:
            True if the move was applied.
        """
        if self._phase != Phase.IN_PROGRESS:
            logger.debug("Move %s rejected: phase is %s", index, self._phase.value)
            return False
        if self.is_computing or self.current_player in self.ai_players:
            logger.debug("Move %s rejected: it's the engine's turn", index)
            return False

        result = self.validator.validate_move(self.game_state, index, player)
        if not result.is_valid:
            logger.debug("Move %s rejected: %s", index, result.error_message)
            return False

        self._apply_move(int(index))
        return True

    def quit(self) -> None:
        """Stop everything and go back to IDLE. The score record is kept."""
        self._cancel_pending()
        self._match_epoch += 1
        self._round_epoch += 1
        self._turn_epoch += 1

        self._phase = Phase.IDLE
        self.game_state = GameState()
        self.starting_player = Player.X
        self.turn_remaining = None
        self.match_remaining = None
        self.commentary = None
        self.last_result = None
        self.match_result = None
        self.match_score = ScoreRecord()
        self._round_scored = False
        logger.info("Returned to idle")
        self._notify()

    def reset(self) -> None:
        """Quit and zero the score record."""
        self.quit()
        self.score.reset()
        self._save_scores()
        self._notify()

    # ==================== ROUND LIFECYCLE ====================

    def _start_round(self) -> None:
        self._cancel_timer("_advance_timer")
        self._round_epoch += 1
        self.game_state = GameState(current_player=self.starting_player)
        self.last_result = None
        self._round_scored = False
        self._phase = Phase.IN_PROGRESS
        logger.info("Round started, %s moves first", self.starting_player.symbol)
        self._begin_turn()
        self._notify()

    def _begin_turn(self) -> None:
        self._turn_epoch += 1
        self._cancel_timer("_turn_timer")
        self.turn_remaining = self.config.TURN_TIME_LIMIT
        if self.turn_remaining is not None:
            self._schedule_turn_tick()
        self._maybe_start_ai_turn()

    def _apply_move(self, index: int) -> None:
        mover = self.current_player
        self.game_state.make_move(index)
        logger.debug("%s played %d", mover.symbol, index)

        outcome = self.game_state.outcome
        if outcome.is_terminal:
            self._finish_round(RoundResult(
                winner=outcome.winner,
                is_draw=outcome.is_draw,
                winning_line=outcome.winning_line,
            ))
        else:
            self._begin_turn()
            self._notify()

    def _finish_round(self, result: RoundResult) -> None:
        self._turn_epoch += 1
        self._cancel_timer("_turn_timer")
        self._cancel_ai_task()

        self._phase = Phase.ROUND_OVER
        self.last_result = result

        if not self._round_scored:
            self._round_scored = True
            winner = None if result.is_draw else result.winner
            self.score.record(winner)
            self.match_score.record(winner)
            self._save_scores()

        if result.is_draw:
            logger.info("Round over: draw")
            if self.ai_players:
                self.commentary = self.oracle_config.DRAW_COMMENTARY
        else:
            how = " on time" if result.forfeit else ""
            logger.info("Round over: %s wins%s", result.winner.symbol, how)
            if result.winner in self.ai_players:
                self.commentary = self.oracle_config.WIN_COMMENTARY
            else:
                self.commentary = None

        self._advance_timer = self._loop.call_later(
            self.config.ROUND_ADVANCE_DELAY, self._on_advance, self._round_epoch
        )
        self._notify()

    def _on_advance(self, epoch: int) -> None:
        if epoch != self._round_epoch or self._phase != Phase.ROUND_OVER:
            return
        self._advance_timer = None
        self.starting_player = self.starting_player.opposite()
        self.commentary = None
        self._start_round()

    def _end_match(self) -> None:
        self._round_epoch += 1
        self._turn_epoch += 1
        self._cancel_timer("_turn_timer")
        self._cancel_timer("_advance_timer")
        self._cancel_ai_task()

        self._phase = Phase.MATCH_OVER
        x_wins, o_wins = self.match_score.x_wins, self.match_score.o_wins
        if x_wins > o_wins:
            winner = Player.X
        elif o_wins > x_wins:
            winner = Player.O
        else:
            winner = None
        self.match_result = MatchResult(winner=winner, is_draw=winner is None, score=self.match_score.copy())
        logger.info("Match over: %s (X %d - O %d)", winner.symbol if winner else "draw", x_wins, o_wins)
        self._notify()

    # ==================== CLOCKS ====================

    def _schedule_turn_tick(self) -> None:
        self._turn_timer = self._loop.call_later(self.config.TICK_INTERVAL, self._on_turn_tick, self._turn_epoch)

    def _on_turn_tick(self, epoch: int) -> None:
        if epoch != self._turn_epoch or self._phase != Phase.IN_PROGRESS:
            return
        self.turn_remaining -= 1
        if self.turn_remaining > 0:
            self._schedule_turn_tick()
            self._notify()
            return

        self.turn_remaining = 0
        self._turn_timer = None
        loser = self.current_player
        logger.info("%s ran out of time", loser.symbol)
        self._finish_round(RoundResult(winner=loser.opposite(), forfeit=True))

    def _schedule_match_tick(self) -> None:
        self._match_timer = self._loop.call_later(self.config.TICK_INTERVAL, self._on_match_tick, self._match_epoch)

    def _on_match_tick(self, epoch: int) -> None:
        if epoch != self._match_epoch or self._phase not in (Phase.IN_PROGRESS, Phase.ROUND_OVER):
            return
        self.match_remaining -= 1
        if self.match_remaining > 0:
            self._schedule_match_tick()
            self._notify()
            return

        self.match_remaining = 0
        self._match_timer = None
        self._end_match()

    def _cancel_timer(self, name: str) -> None:
        handle = getattr(self, name)
        if handle is not None:
            handle.cancel()
            setattr(self, name, None)

    def _cancel_pending(self) -> None:
        for name in ("_turn_timer", "_match_timer", "_advance_timer"):
            self._cancel_timer(name)
        self._cancel_ai_task()

    # ==================== ENGINE TURNS ====================

    def _maybe_start_ai_turn(self) -> None:
        side = self.current_player
        if side not in self.ai_players:
            return
        self.is_computing = True
        self._ai_task = self._loop.create_task(self._run_ai_turn(self._turn_epoch, side))

    async def _run_ai_turn(self, epoch: int, side: Player) -> None:
        """
        Think, pick a move, optionally ask the oracle, then play.

        The oracle is the only await that can take a while. If the turn
        ended meanwhile (timeout, quit, match over) its answer is dropped.
        """
        await asyncio.sleep(self.config.AI_THINK_DELAY)
        if epoch != self._turn_epoch:
            return

        difficulty = self.config.DIFFICULTY
        board = self.board.copy()
        move = self.engine.choose_move(board, side, difficulty)

        if self.oracle is not None:
            if self.oracle.enabled:
                suggestion = await self.oracle.suggest(board, difficulty, side, deadline=self.config.ORACLE_TIMEOUT)
                if epoch != self._turn_epoch:
                    logger.debug("Dropping late oracle answer for %s", side.symbol)
                    return
                move, used_remote = resolve_move(move, suggestion, board, difficulty)
                fallback = None if suggestion.is_remote else self.oracle_config.FAILURE_COMMENTARY
                self.commentary = pick_commentary(suggestion, fallback)
                if used_remote:
                    logger.debug("Playing oracle move %d for %s", move, side.symbol)
            else:
                self.commentary = self.oracle_config.OFFLINE_COMMENTARY

        self._ai_task = None
        self.is_computing = False
        self._apply_move(move)

    def _cancel_ai_task(self) -> None:
        task, self._ai_task = self._ai_task, None
        if task is not None and not task.done():
            task.cancel()
        self.is_computing = False

    # ==================== HELPERS ====================

    def _save_scores(self) -> None:
        if self.score_store is not None:
            self.score_store.save(self.score)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
