"""
Tests for the round/match coordinator.

Clocks run on the real event loop with millisecond ticks.
"""

import asyncio
import json

import pytest

from logic.ai_player import AIPlayer, Difficulty
from logic.board import Player
from match_control.config import GameMode, MatchConfig
from match_control.coordinator import MatchCoordinator, Phase
from match_control.score_store import ScoreStore
from oracle.config import OracleConfig
from oracle.suggestion import Suggestion, SuggestionSource


# --- Helpers ---

def make_config(**overrides) -> MatchConfig:
    config = MatchConfig()
    config.GAME_MODE = GameMode.PVP
    config.TICK_INTERVAL = 0.01
    config.ROUND_ADVANCE_DELAY = 0.05
    config.AI_THINK_DELAY = 0
    for name, value in overrides.items():
        setattr(config, name, value)
    return config


async def wait_until(predicate, timeout: float = 3.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def play(coordinator: MatchCoordinator, *indices):
    for index in indices:
        assert coordinator.submit_move(index), f"move {index} was rejected"


class FakeOracle:
    """Stands in for AdvisoryOracle; answers after ``delay`` seconds."""

    def __init__(self, suggestion, delay: float = 0.0, enabled: bool = True):
        self.config = OracleConfig()
        self.enabled = enabled
        # A single Suggestion, or a list answered in order
        self.suggestion = suggestion
        self.delay = delay
        self.calls = 0

    def _next(self) -> Suggestion:
        if isinstance(self.suggestion, list):
            return self.suggestion.pop(0)
        return self.suggestion

    async def suggest(self, board, difficulty, acting_side, deadline=None):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return self._next()


class StubbornOracle(FakeOracle):
    """Finishes its answer even when the engine task is cancelled."""

    def __init__(self, suggestion, delay: float = 0.0):
        super().__init__(suggestion, delay)
        self.answered_after_cancel = False

    async def suggest(self, board, difficulty, acting_side, deadline=None):
        self.calls += 1
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.answered_after_cancel = True
        return self._next()


# --- Lifecycle ---

@pytest.mark.asyncio
async def test_start_match_opens_first_round():
    coordinator = MatchCoordinator(make_config())
    assert coordinator.phase == Phase.IDLE

    assert coordinator.start_match()

    assert coordinator.phase == Phase.IN_PROGRESS
    assert coordinator.board.empty_cells() == list(range(9))
    assert coordinator.current_player == Player.X
    assert coordinator.starting_player == Player.X
    assert not coordinator.start_match()
    coordinator.quit()


@pytest.mark.asyncio
async def test_moves_alternate_and_illegal_moves_change_nothing():
    coordinator = MatchCoordinator(make_config())
    coordinator.start_match()

    play(coordinator, 4)
    assert coordinator.current_player == Player.O

    before = coordinator.board.to_list()
    assert not coordinator.submit_move(4)                 # occupied
    assert not coordinator.submit_move(9)                 # off the board
    assert not coordinator.submit_move(0, Player.X)       # out of turn
    assert coordinator.board.to_list() == before
    assert coordinator.current_player == Player.O
    coordinator.quit()


@pytest.mark.asyncio
async def test_win_scores_once_and_next_round_flips_starter():
    coordinator = MatchCoordinator(make_config())
    coordinator.start_match()

    play(coordinator, 0, 3, 1, 4, 2)

    assert coordinator.phase == Phase.ROUND_OVER
    assert coordinator.last_result.winner == Player.X
    assert coordinator.last_result.winning_line == (0, 1, 2)
    assert not coordinator.last_result.forfeit
    assert not coordinator.submit_move(5)
    assert (coordinator.score.x_wins, coordinator.score.total) == (1, 1)

    await wait_until(lambda: coordinator.phase == Phase.IN_PROGRESS)

    assert coordinator.board.empty_cells() == list(range(9))
    assert coordinator.starting_player == Player.O
    assert coordinator.current_player == Player.O
    assert (coordinator.score.x_wins, coordinator.score.total) == (1, 1)
    coordinator.quit()


@pytest.mark.asyncio
async def test_draw_is_counted():
    coordinator = MatchCoordinator(make_config(ROUND_ADVANCE_DELAY=10))
    coordinator.start_match()

    play(coordinator, 0, 1, 2, 4, 3, 5, 7, 6, 8)

    assert coordinator.phase == Phase.ROUND_OVER
    assert coordinator.last_result.is_draw
    assert coordinator.score.draws == 1
    assert coordinator.score.total == 1
    coordinator.quit()


@pytest.mark.asyncio
async def test_starting_side_alternates_every_round():
    coordinator = MatchCoordinator(make_config())
    coordinator.start_match()
    starters = []
    for _ in range(3):
        await wait_until(lambda: coordinator.phase == Phase.IN_PROGRESS)
        starters.append(coordinator.starting_player)
        first = coordinator.current_player
        # Opener takes the top row while the other side plays the middle row
        play(coordinator, 0, 3, 1, 4, 2)
        assert coordinator.last_result.winner == first

    assert starters == [Player.X, Player.O, Player.X]
    assert (coordinator.score.x_wins, coordinator.score.o_wins) == (2, 1)
    coordinator.quit()


# --- Clocks ---

@pytest.mark.asyncio
async def test_turn_timeout_forfeits_to_opponent():
    coordinator = MatchCoordinator(make_config(TURN_TIME_LIMIT=3, ROUND_ADVANCE_DELAY=10))
    coordinator.start_match()
    assert coordinator.turn_remaining == 3

    await wait_until(lambda: coordinator.phase == Phase.ROUND_OVER)

    assert coordinator.last_result.forfeit
    assert coordinator.last_result.winner == Player.O
    assert coordinator.turn_remaining == 0
    assert (coordinator.score.o_wins, coordinator.score.total) == (1, 1)
    coordinator.quit()


@pytest.mark.asyncio
async def test_turn_clock_resets_after_each_move():
    coordinator = MatchCoordinator(make_config(TURN_TIME_LIMIT=10, TICK_INTERVAL=0.02))
    coordinator.start_match()

    await wait_until(lambda: coordinator.turn_remaining <= 8)
    play(coordinator, 4)

    assert coordinator.turn_remaining == 10
    assert coordinator.phase == Phase.IN_PROGRESS
    coordinator.quit()


@pytest.mark.asyncio
async def test_match_clock_expiry_freezes_board_and_reports_winner():
    coordinator = MatchCoordinator(make_config(MATCH_DURATION_MINUTES=1, ROUND_ADVANCE_DELAY=10))
    coordinator.start_match()
    assert coordinator.match_remaining == 60

    play(coordinator, 0, 3, 1, 4, 2)          # X wins a round
    coordinator.match_remaining = 1           # skip ahead to the last second

    await wait_until(lambda: coordinator.phase == Phase.MATCH_OVER)

    before = coordinator.board.to_list()
    assert not coordinator.submit_move(5)
    assert coordinator.board.to_list() == before
    assert coordinator.match_result.winner == Player.X
    assert not coordinator.match_result.is_draw
    assert coordinator.match_result.score.x_wins == coordinator.score.x_wins == 1

    # The pending round advance must not reopen play
    await asyncio.sleep(0.1)
    assert coordinator.phase == Phase.MATCH_OVER
    coordinator.quit()


@pytest.mark.asyncio
async def test_match_expiry_mid_round_with_level_score_is_a_draw():
    coordinator = MatchCoordinator(make_config(MATCH_DURATION_MINUTES=1))
    coordinator.start_match()
    play(coordinator, 4)
    coordinator.match_remaining = 1

    await wait_until(lambda: coordinator.phase == Phase.MATCH_OVER)

    assert coordinator.match_result.is_draw
    assert coordinator.match_result.winner is None
    assert coordinator.score.total == 0
    assert not coordinator.submit_move(0)
    coordinator.quit()


# --- Quit / reset ---

@pytest.mark.asyncio
async def test_reset_twice_is_the_same_as_once(tmp_path):
    store = ScoreStore(tmp_path / "scores.json")
    coordinator = MatchCoordinator(make_config(TURN_TIME_LIMIT=5, MATCH_DURATION_MINUTES=1), score_store=store)
    coordinator.start_match()
    play(coordinator, 0, 3, 1, 4, 2)
    assert coordinator.score.total == 1

    def snapshot():
        return (
            coordinator.phase,
            coordinator.board.to_list(),
            coordinator.current_player,
            coordinator.starting_player,
            coordinator.turn_remaining,
            coordinator.match_remaining,
            coordinator.is_computing,
            coordinator.last_result,
            coordinator.match_result,
            coordinator.score.to_dict(),
        )

    coordinator.reset()
    once = snapshot()
    coordinator.reset()
    assert snapshot() == once

    assert coordinator.phase == Phase.IDLE
    assert coordinator.score.total == 0
    assert store.load().total == 0

    # No leftover timer may fire against the idle state
    await asyncio.sleep(0.1)
    assert snapshot() == once


@pytest.mark.asyncio
async def test_quit_keeps_score_and_allows_a_new_match():
    coordinator = MatchCoordinator(make_config())
    coordinator.start_match()
    play(coordinator, 0, 3, 1, 4, 2)

    coordinator.quit()
    coordinator.quit()
    assert coordinator.phase == Phase.IDLE
    assert coordinator.score.x_wins == 1
    assert not coordinator.submit_move(0)

    assert coordinator.start_match()
    assert coordinator.starting_player == Player.X
    assert coordinator.match_score.total == 0
    coordinator.quit()


# --- Engine turns ---

@pytest.mark.asyncio
async def test_engine_answers_human_and_blocks_input_while_thinking():
    config = make_config(GAME_MODE=GameMode.PVAI, DIFFICULTY=Difficulty.IMPOSSIBLE, AI_THINK_DELAY=0.05)
    coordinator = MatchCoordinator(config)
    coordinator.start_match()

    play(coordinator, 0)
    assert coordinator.is_computing
    assert not coordinator.submit_move(1)

    await wait_until(lambda: not coordinator.is_computing)

    assert coordinator.board[4] == Player.O
    assert coordinator.current_player == Player.X
    coordinator.quit()


@pytest.mark.asyncio
async def test_engine_opens_when_it_starts():
    config = make_config(GAME_MODE=GameMode.PVAI, HUMAN_PLAYER=Player.O, DIFFICULTY=Difficulty.HARD)
    coordinator = MatchCoordinator(config)
    coordinator.start_match()
    assert not coordinator.submit_move(0)

    await wait_until(lambda: coordinator.board.filled() == 1)

    assert coordinator.board[4] == Player.X
    assert coordinator.current_player == Player.O
    coordinator.quit()


@pytest.mark.asyncio
async def test_two_impossible_engines_draw(tmp_path):
    store = ScoreStore(tmp_path / "scores.json")
    config = make_config(GAME_MODE=GameMode.AIVAI, DIFFICULTY=Difficulty.IMPOSSIBLE, ROUND_ADVANCE_DELAY=0.01)
    coordinator = MatchCoordinator(config, score_store=store)
    coordinator.start_match()

    await wait_until(lambda: coordinator.score.total >= 2, timeout=10)
    coordinator.quit()

    assert coordinator.score.draws == coordinator.score.total
    saved = json.loads((tmp_path / "scores.json").read_text(encoding="utf-8"))
    assert saved["tictactoe_score"]["Draws"] == coordinator.score.draws


@pytest.mark.asyncio
async def test_scores_are_loaded_and_saved(tmp_path):
    path = tmp_path / "scores.json"
    path.write_text(json.dumps({"tictactoe_score": {"X": 4, "O": 2, "Draws": 1, "Total": 7}}), encoding="utf-8")
    store = ScoreStore(path)

    coordinator = MatchCoordinator(make_config(ROUND_ADVANCE_DELAY=10), score_store=store)
    assert coordinator.score.total == 7
    coordinator.start_match()
    play(coordinator, 0, 3, 1, 4, 2)
    coordinator.quit()

    assert store.load().to_dict() == {"X": 5, "O": 2, "Draws": 1, "Total": 8}
    assert coordinator.match_score.total == 0


# --- Oracle integration ---

def pvai_config(difficulty: Difficulty, **overrides) -> MatchConfig:
    return make_config(GAME_MODE=GameMode.PVAI, DIFFICULTY=difficulty, **overrides)


@pytest.mark.asyncio
async def test_hard_tier_plays_a_valid_oracle_move():
    oracle = FakeOracle(Suggestion(SuggestionSource.REMOTE, move=8, commentary="Corner time."))
    coordinator = MatchCoordinator(pvai_config(Difficulty.HARD), oracle=oracle)
    coordinator.start_match()
    play(coordinator, 0)

    await wait_until(lambda: coordinator.board.filled() == 2)

    assert coordinator.board[8] == Player.O
    assert coordinator.commentary == "Corner time."
    coordinator.quit()


@pytest.mark.asyncio
async def test_occupied_oracle_move_falls_back_to_engine():
    oracle = FakeOracle(Suggestion(SuggestionSource.REMOTE, move=0))
    coordinator = MatchCoordinator(pvai_config(Difficulty.EASY), engine=AIPlayer(random_move_chance=0.0), oracle=oracle)
    coordinator.start_match()
    play(coordinator, 0)

    await wait_until(lambda: coordinator.board.filled() == 2)

    assert coordinator.board[4] == Player.O
    coordinator.quit()


@pytest.mark.asyncio
async def test_impossible_tier_ignores_oracle_move_but_keeps_commentary():
    oracle = FakeOracle(Suggestion(SuggestionSource.REMOTE, move=8, commentary="Inevitable."))
    coordinator = MatchCoordinator(pvai_config(Difficulty.IMPOSSIBLE), oracle=oracle)
    coordinator.start_match()
    play(coordinator, 0)

    await wait_until(lambda: coordinator.board.filled() == 2)

    assert coordinator.board[4] == Player.O
    assert coordinator.commentary == "Inevitable."
    coordinator.quit()


@pytest.mark.asyncio
async def test_failed_oracle_uses_canned_commentary():
    oracle = FakeOracle(Suggestion.local())
    coordinator = MatchCoordinator(pvai_config(Difficulty.IMPOSSIBLE), oracle=oracle)
    coordinator.start_match()
    play(coordinator, 0)

    await wait_until(lambda: coordinator.board.filled() == 2)

    assert coordinator.board[4] == Player.O
    assert coordinator.commentary == OracleConfig.FAILURE_COMMENTARY
    coordinator.quit()


@pytest.mark.asyncio
async def test_disabled_oracle_is_never_called():
    oracle = FakeOracle(Suggestion.local(), enabled=False)
    coordinator = MatchCoordinator(pvai_config(Difficulty.HARD), oracle=oracle)
    coordinator.start_match()
    play(coordinator, 0)

    await wait_until(lambda: coordinator.board.filled() == 2)

    assert oracle.calls == 0
    assert coordinator.commentary == OracleConfig.OFFLINE_COMMENTARY
    coordinator.quit()


@pytest.mark.asyncio
async def test_late_oracle_answer_is_dropped_after_timeout_forfeit():
    oracle = FakeOracle(Suggestion(SuggestionSource.REMOTE, move=0, commentary="Too late."), delay=1.0)
    config = pvai_config(Difficulty.HARD, HUMAN_PLAYER=Player.O, TURN_TIME_LIMIT=3, ROUND_ADVANCE_DELAY=10)
    coordinator = MatchCoordinator(config, oracle=oracle)
    coordinator.start_match()

    await wait_until(lambda: coordinator.phase == Phase.ROUND_OVER)

    assert coordinator.last_result.forfeit
    assert coordinator.last_result.winner == Player.O
    assert not coordinator.is_computing

    await asyncio.sleep(0.05)
    assert coordinator.board.filled() == 0
    assert coordinator.commentary != "Too late."
    coordinator.quit()


@pytest.mark.asyncio
async def test_answer_arriving_after_turn_ended_is_not_played():
    oracle = StubbornOracle(Suggestion(SuggestionSource.REMOTE, move=0, commentary="Too late."), delay=1.0)
    config = pvai_config(Difficulty.HARD, HUMAN_PLAYER=Player.O, TURN_TIME_LIMIT=3, ROUND_ADVANCE_DELAY=10)
    coordinator = MatchCoordinator(config, oracle=oracle)
    coordinator.start_match()

    await wait_until(lambda: coordinator.phase == Phase.ROUND_OVER)
    await wait_until(lambda: oracle.answered_after_cancel)
    await asyncio.sleep(0.02)

    assert coordinator.last_result.winner == Player.O
    assert coordinator.board.filled() == 0
    assert coordinator.commentary is None
    assert not coordinator.is_computing
    assert coordinator.phase == Phase.ROUND_OVER
    coordinator.quit()


@pytest.mark.asyncio
async def test_human_win_clears_engine_commentary():
    oracle = FakeOracle([
        Suggestion(SuggestionSource.REMOTE, move=8, commentary="Corner."),
        Suggestion(SuggestionSource.REMOTE, move=5, commentary="Got you now."),
    ])
    coordinator = MatchCoordinator(pvai_config(Difficulty.HARD, ROUND_ADVANCE_DELAY=10), oracle=oracle)
    coordinator.start_match()

    play(coordinator, 0)
    await wait_until(lambda: coordinator.board.filled() == 2)
    play(coordinator, 1)
    await wait_until(lambda: coordinator.board.filled() == 4)
    assert coordinator.commentary == "Got you now."

    play(coordinator, 2)

    assert coordinator.last_result.winner == Player.X
    assert coordinator.commentary is None
    coordinator.quit()


@pytest.mark.asyncio
async def test_quit_while_engine_thinks_discards_its_move():
    config = make_config(GAME_MODE=GameMode.PVAI, AI_THINK_DELAY=0.05)
    coordinator = MatchCoordinator(config)
    coordinator.start_match()
    play(coordinator, 0)
    assert coordinator.is_computing

    coordinator.quit()
    await asyncio.sleep(0.1)

    assert coordinator.phase == Phase.IDLE
    assert coordinator.board.filled() == 0
    assert not coordinator.is_computing


# --- Config ---

def test_config_rejects_values_outside_allowed_sets():
    config = MatchConfig()
    config.TURN_TIME_LIMIT = 7
    with pytest.raises(ValueError):
        config.validate()

    config = MatchConfig()
    config.MATCH_DURATION_MINUTES = 2
    with pytest.raises(ValueError):
        MatchCoordinator(config)


def test_config_derives_engine_sides():
    config = MatchConfig()
    config.HUMAN_PLAYER = Player.O
    assert config.ai_players() == frozenset({Player.X})
    config.GAME_MODE = GameMode.PVP
    assert config.ai_players() == frozenset()
    config.GAME_MODE = GameMode.AIVAI
    assert config.ai_players() == frozenset({Player.X, Player.O})
