"""
Game session service: players, turns, win detection and stats

One instance owns one session. State and stats are snapshotted to the
key-value port after every mutation and reloaded on construction.
"""
import logging
import math
import random
import time
from typing import Callable, Optional

from pydantic import ValidationError

from trivia_engine.schemas.game import (
    GAME_CATEGORIES,
    AnswerResult,
    BankQuestion,
    GameState,
    GameStats,
    Player,
)
from trivia_engine.services.question_bank import QuestionBankService
from trivia_engine.utils.cache import KeyValueStore

logger = logging.getLogger(__name__)

STATE_KEY = "trivia.game::{namespace}::state"
STATS_KEY = "trivia.game::{namespace}::stats"
STARTED_KEY = "trivia.game::{namespace}::started"

CATEGORIES_TO_WIN = len(GAME_CATEGORIES)
CHOOSE_CATEGORY_STREAK = 3
DEFAULT_WRONG_QUIP = "Wrong! Try harder next time."


class GameSessionService:
    """Turn-based session over its own question bank"""

    def __init__(
        self,
        bank: QuestionBankService,
        store: KeyValueStore,
        namespace: str = "default",
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.bank = bank
        self.store = store
        self.namespace = namespace
        self._clock = clock
        self._rng = rng or random.Random()
        self._state: Optional[GameState] = None
        self._stats = GameStats()
        self._started_at: Optional[float] = None
        self._load()

    @property
    def has_game(self) -> bool:
        return self._state is not None

    # Persistence

    def _key(self, template: str) -> str:
        return template.format(namespace=self.namespace)

    def _save(self) -> None:
        if self._state is not None:
            self.store.set(self._key(STATE_KEY), self._state.model_dump_json())
        self.store.set(self._key(STATS_KEY), self._stats.model_dump_json())
        if self._started_at is not None:
            self.store.set(self._key(STARTED_KEY), str(self._started_at))

    def _load(self) -> None:
        raw_state = self.store.get(self._key(STATE_KEY))
        raw_stats = self.store.get(self._key(STATS_KEY))
        raw_started = self.store.get(self._key(STARTED_KEY))
        try:
            if raw_state:
                state = GameState.model_validate_json(raw_state)
                if not any(p.id == state.current_turn for p in state.players):
                    raise ValueError(f"current turn {state.current_turn!r} is not a player")
                self._state = state
            if raw_stats:
                self._stats = GameStats.model_validate_json(raw_stats)
            if raw_started:
                self._started_at = float(raw_started)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Failed to load game {self.namespace} from storage: {str(e)}")
            self._state = None
            self._stats = GameStats()
            self._started_at = None

    # Creation

    def _start_session(self, state: GameState) -> GameState:
        self._state = state
        self._stats = GameStats()
        self._started_at = self._clock()
        self._save()
        logger.info(f"Game {state.id} created ({state.game_mode}, {state.status})")
        return state.model_copy(deep=True)

    def create_single_player_game(self, player_name: str) -> GameState:
        player = Player(id="player1", name=player_name)
        return self._start_session(GameState(
            id=f"solo_{int(self._clock() * 1000)}",
            status="active",
            current_turn=player.id,
            players=[player],
            game_mode="single",
        ))

    def create_multiplayer_game(self, host_name: str, game_code: str) -> GameState:
        host = Player(id="host", name=host_name, is_host=True)
        return self._start_session(GameState(
            id=game_code,
            status="waiting",
            current_turn=host.id,
            players=[host],
            game_mode="multiplayer",
        ))

    def join_multiplayer_game(self, player_name: str, game_code: str) -> Optional[GameState]:
        """Join a waiting game with this code; None when there is none to join"""
        state = self._state
        if state is None or state.id != game_code or state.status != "waiting" or state.game_mode != "multiplayer":
            return None
        state.players.append(Player(id="player2", name=player_name))
        state.status = "active"
        self._save()
        logger.info(f"Player joined game {game_code}; game is active")
        return state.model_copy(deep=True)

    # Play

    def get_current_player(self) -> Optional[Player]:
        if self._state is None:
            return None
        for player in self._state.players:
            if player.id == self._state.current_turn:
                return player
        return None

    async def get_next_question(self, category: Optional[str] = None) -> Optional[BankQuestion]:
        """
        Draw the next question for the current player

        Without a category one of the player's incomplete categories is
        picked at random. Returns None when the game is not active or the
        player has nothing left to play.
        """
        if self._state is None or self._state.status != "active":
            return None
        player = self.get_current_player()
        if player is None:
            return None

        selected = category
        if not selected:
            incomplete = [c for c in GAME_CATEGORIES if c not in player.completed_categories]
            if not incomplete:
                return None
            selected = self._rng.choice(incomplete)

        self._state.current_category = selected
        question = await self.bank.get_next_question(selected)
        if question is not None:
            self._state.current_question = question.model_copy()
        self._save()
        return question

    def answer_question(self, answer_index: int) -> AnswerResult:
        state = self._state
        if state is None or state.current_question is None:
            return AnswerResult(correct=False, quip="No question to answer!")
        player = self.get_current_player()
        if player is None:
            return AnswerResult(correct=False, quip="No player found!")

        question = state.current_question
        state.current_question = None
        self._stats.total_questions += 1

        if answer_index == question.answer_index:
            player.score += 1
            player.streak += 1
            self._stats.correct_answers += 1

            category = state.current_category
            if category and category not in player.completed_categories:
                player.completed_categories.append(category)
                self._stats.categories_completed += 1

            if player.streak > self._stats.longest_streak:
                self._stats.longest_streak = player.streak

            if len(player.completed_categories) >= CATEGORIES_TO_WIN:
                state.status = "completed"
                state.winner = player.id
                logger.info(f"Game {state.id} won by {player.id}")

            self._save()
            return AnswerResult(correct=True, quip=question.correct_quip)

        player.streak = 0
        if state.game_mode == "multiplayer":
            self._switch_turns()
        self._save()
        quip = question.wrong_answer_quips.get(str(answer_index)) or DEFAULT_WRONG_QUIP
        return AnswerResult(correct=False, quip=quip)

    def _switch_turns(self) -> None:
        state = self._state
        if state is None or state.game_mode == "single":
            return
        ids = [p.id for p in state.players]
        current = ids.index(state.current_turn)
        state.current_turn = ids[(current + 1) % len(ids)]

    def can_choose_category(self) -> bool:
        player = self.get_current_player()
        return player is not None and player.streak >= CHOOSE_CATEGORY_STREAK

    # Read models

    def get_game_state(self) -> Optional[GameState]:
        return self._state.model_copy(deep=True) if self._state is not None else None

    def get_game_stats(self) -> GameStats:
        stats = self._stats.model_copy()
        stats.accuracy = (
            math.floor(stats.correct_answers * 100 / stats.total_questions + 0.5)
            if stats.total_questions > 0 else 0
        )
        if self._started_at is not None:
            stats.session_time = max(0, int(self._clock() - self._started_at))
        return stats

    def reset_game(self) -> None:
        """Drop session, stats and bank state"""
        self._state = None
        self._stats = GameStats()
        self._started_at = None
        self.bank.reset()
        for template in (STATE_KEY, STATS_KEY, STARTED_KEY):
            self.store.delete(self._key(template))
        logger.info(f"Game {self.namespace} reset")
