"""
Console front end for tic-tac-toe.

This script ties together:
- Logic (board, outcome evaluation, AI)
- Match control (turns, clocks, rounds, scores)
- Oracle (optional remote commentary)

Run this script to play tic-tac-toe in the terminal!
"""

import asyncio
import logging
import threading
from typing import Optional

from logic.ai_player import Difficulty
from logic.board import Player
from match_control.config import GameMode, MatchConfig
from match_control.coordinator import MatchCoordinator, Phase
from match_control.score_store import ScoreRecord, ScoreStore
from oracle.client import AdvisoryOracle
from oracle.config import OracleConfig


class TicTacToeConsole:
    """
    Terminal driver for the match coordinator.

    Game flow:
    1. A round starts; X or O moves first (alternating every round)
    2. Humans type a square number (1-9), the engine answers on its own
    3. The round ends on a line, a full board or a turn timeout
    4. The next round starts after a short pause until you quit,
       the round limit is reached or the match clock runs out
    """

    def __init__(
        self,
        config: MatchConfig,
        score_store: Optional[ScoreStore] = None,
        oracle: Optional[AdvisoryOracle] = None,
        max_rounds: Optional[int] = None
    ):
        self.config = config
        self.max_rounds = max_rounds
        self.coordinator = MatchCoordinator(
            config,
            oracle=oracle,
            score_store=score_store,
            on_change=self._on_change,
        )

        self._done: Optional[asyncio.Event] = None
        self._last_view = None
        self._last_clock = None

    async def run(self):
        """Play until quit, round limit or match end."""
        loop = asyncio.get_running_loop()
        self._done = asyncio.Event()

        print("\n" + "=" * 60)
        print("   Tic-Tac-Toe")
        print("=" * 60)
        print(f"   Mode: {self.config.GAME_MODE.value.upper()}   Difficulty: {self.config.DIFFICULTY.label}")
        if self.config.GAME_MODE != GameMode.AIVAI:
            print("   Type 1-9 to play a square, h for a hint, q to quit")
        print("=" * 60)

        input_task = None
        if self.config.GAME_MODE != GameMode.AIVAI:
            queue: asyncio.Queue = asyncio.Queue()
            threading.Thread(target=self._read_stdin, args=(loop, queue), daemon=True).start()
            input_task = asyncio.create_task(self._input_loop(queue))

        self.coordinator.start_match()
        try:
            await self._done.wait()
        finally:
            if input_task is not None:
                input_task.cancel()
            self._show_final_result()
            self.coordinator.quit()

    def _read_stdin(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        """Blocking stdin reader (runs in a daemon thread)."""
        while True:
            try:
                line = input()
            except EOFError:
                loop.call_soon_threadsafe(queue.put_nowait, "q")
                return
            loop.call_soon_threadsafe(queue.put_nowait, line.strip())

    async def _input_loop(self, queue: asyncio.Queue):
        while True:
            line = (await queue.get()).lower()
            if line in ("q", "quit", "exit"):
                self._done.set()
                return
            if line in ("h", "hint"):
                self._show_hint()
                continue
            try:
                square = int(line)
            except ValueError:
                print("Enter 1-9, h for a hint or q to quit.")
                continue
            if not self.coordinator.submit_move(square - 1):
                print("Can't play there right now.")

    def _show_hint(self):
        coordinator = self.coordinator
        if coordinator.phase != Phase.IN_PROGRESS or coordinator.is_ai_turn():
            print("No hint right now.")
            return
        print(coordinator.engine.get_move_suggestion(coordinator.board, coordinator.current_player))

    def _on_change(self, coordinator: MatchCoordinator):
        view = (coordinator.phase, coordinator.board.key(), coordinator.current_player)
        if view != self._last_view:
            self._last_view = view
            self._draw(coordinator)
        elif coordinator.phase == Phase.IN_PROGRESS and coordinator.turn_remaining is not None:
            clock = coordinator.turn_remaining
            if clock != self._last_clock and clock <= 3:
                print(f"  {clock}s left for {coordinator.current_player.symbol}")
            self._last_clock = clock

        if coordinator.phase == Phase.MATCH_OVER:
            self._done.set()
        elif (
            coordinator.phase == Phase.ROUND_OVER
            and self.max_rounds is not None
            and coordinator.match_score.total >= self.max_rounds
        ):
            self._done.set()

    def _draw(self, coordinator: MatchCoordinator):
        """Print the board and game info."""
        if coordinator.phase == Phase.IDLE:
            return

        print()
        print(coordinator.board.render())

        if coordinator.phase == Phase.IN_PROGRESS:
            turn_text = f"Turn: {coordinator.current_player.symbol}"
            turn_text += " (AI)" if coordinator.is_ai_turn() else " (Human)"
            if coordinator.turn_remaining is not None:
                turn_text += f"   Turn clock: {coordinator.turn_remaining}s"
            if coordinator.match_remaining is not None:
                minutes, seconds = divmod(coordinator.match_remaining, 60)
                turn_text += f"   Match clock: {minutes}:{seconds:02d}"
            print(turn_text)
        elif coordinator.phase == Phase.ROUND_OVER:
            result = coordinator.last_result
            if result.is_draw:
                print("DRAW!")
            else:
                suffix = " (time out)" if result.forfeit else ""
                print(f"{result.winner.symbol} WINS!{suffix}")
            print(self._score_line(coordinator))
        elif coordinator.phase == Phase.MATCH_OVER:
            print("Time is up!")

        if coordinator.commentary:
            print(f'  AI: "{coordinator.commentary}"')

    def _score_line(self, coordinator: MatchCoordinator) -> str:
        score = coordinator.score
        return f"Score  X: {score.x_wins}  O: {score.o_wins}  Draws: {score.draws}  Rounds: {score.total}"

    def _show_final_result(self):
        """Show the final match result."""
        coordinator = self.coordinator
        print("\n" + "=" * 60)
        print("   GAME OVER!")
        print("=" * 60)

        result = coordinator.match_result
        if result is not None:
            if result.is_draw:
                print("\nThe match is a draw! Good game!")
            else:
                print(f"\n{result.winner.symbol} wins the match!")
            print(f"Match score  X: {result.score.x_wins}  O: {result.score.o_wins}  Draws: {result.score.draws}")

        print(self._score_line(coordinator))
        print("=" * 60)


def build_config(args) -> MatchConfig:
    config = MatchConfig()
    if args.pvp:
        config.GAME_MODE = GameMode.PVP
    elif args.ai_vs_ai:
        config.GAME_MODE = GameMode.AIVAI
    config.DIFFICULTY = Difficulty.from_name(args.difficulty)
    config.HUMAN_PLAYER = Player.from_symbol(args.human)
    config.TURN_TIME_LIMIT = args.turn_timer
    config.MATCH_DURATION_MINUTES = args.match_minutes
    config.SCORE_FILE = args.score_file
    return config.validate()


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Tic-Tac-Toe against a minimax AI")
    parser.add_argument(
        "--difficulty",
        choices=["easy", "hard", "impossible"],
        default="hard",
        help="AI difficulty"
    )
    parser.add_argument(
        "--human",
        choices=["X", "O", "x", "o"],
        default="X",
        help="Which mark the human plays against the AI"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--pvp", action="store_true", help="Two humans on one terminal")
    mode.add_argument("--ai-vs-ai", action="store_true", help="Let the AI play itself")
    parser.add_argument("--turn-timer", type=int, choices=[3, 5, 10], help="Seconds per turn")
    parser.add_argument("--match-minutes", type=int, choices=[1, 3, 5], help="Match length in minutes")
    parser.add_argument("--rounds", type=int, help="Stop after this many rounds")
    parser.add_argument("--score-file", default=MatchConfig.SCORE_FILE, help="Where scores are saved")
    parser.add_argument("--no-oracle", action="store_true", help="Never contact the commentary service")
    parser.add_argument("--reset-scores", action="store_true", help="Zero the saved scores before playing")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = build_config(args)
    store = ScoreStore(config.SCORE_FILE, key=config.SCORE_KEY)
    if args.reset_scores:
        store.save(ScoreRecord())

    oracle = None if args.no_oracle else AdvisoryOracle(OracleConfig())
    console = TicTacToeConsole(config, score_store=store, oracle=oracle, max_rounds=args.rounds)

    try:
        asyncio.run(console.run())
    except KeyboardInterrupt:
        print("\n\nGame interrupted by user.")
    finally:
        print("Goodbye!")


if __name__ == "__main__":
    main()
