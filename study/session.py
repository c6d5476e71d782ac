"""
Study sessions over a deck: view mode (flip through cards) and test mode
(answer each card, scored at the end).

Sessions are kept in memory, one per session_id, and study a snapshot of the
deck taken when the session starts. Sessions idle for SESSION_IDLE_SECONDS are
dropped and the table is capped at MAX_STUDY_SESSIONS. Timers are computed from
a clock when the session is read rather than ticking in the background.

Timers:
- none: untimed
- per_question: time_limit seconds per card, restarted whenever the card changes
- total: time_limit minutes for the whole test

When a timer runs out the test moves to the next card, or ends on the last card.
A total timer runs out once; the rest of the test is untimed.
"""

import logging
import math
import random
import time
from typing import Callable, Dict, List, Literal, Optional

from pydantic import Field

from calories.utils.numbers import round_half_up

from .decks import DeckError, get_deck
from .models import Flashcard, StudyModel

logger = logging.getLogger(__name__)

Mode = Literal["view", "test"]
TimerType = Literal["none", "per_question", "total"]

DEFAULT_TIME_LIMIT = 30

# Sessions untouched this long are dropped; the table never holds more than MAX_STUDY_SESSIONS
SESSION_IDLE_SECONDS = 2 * 60 * 60
MAX_STUDY_SESSIONS = 1000


class SessionSnapshot(StudyModel):
    """What the study screen shows."""
    deck: str
    mode: str
    index: int
    total: int
    card: Optional[Flashcard] = Field(None, description="Current card (back hidden while testing)")
    flipped: bool = False
    score: int = 0
    finished: bool = False
    percent: Optional[int] = Field(None, description="Score percentage once a test has finished")
    timer_type: str = "none"
    time_limit: int = DEFAULT_TIME_LIMIT
    time_left: int = Field(0, description="Seconds left on the running timer")


class StudySession:
    """
    A view or test run over a snapshot of a deck.

    Args:
        deck_name: Name of the deck being studied
        cards: Cards to study, in deck order
        mode: "view" or "test"
        shuffle: Shuffle the cards (again on restart)
        timer_type: "none", "per_question" or "total"
        time_limit: Seconds per question, or minutes for a total timer
        clock: Returns the current time in seconds
        rng: Random source used for shuffling
    """

    def __init__(
        self,
        deck_name: str,
        cards: List[Flashcard],
        mode: Mode = "view",
        shuffle: bool = False,
        timer_type: TimerType = "none",
        time_limit: int = DEFAULT_TIME_LIMIT,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not cards:
            raise DeckError("Add some cards first!")
        self.deck_name = deck_name
        self.source_cards = list(cards)
        self.mode = mode
        self.shuffle = shuffle
        self.timer_type = timer_type
        self.time_limit = time_limit
        self.clock = clock
        self.rng = rng or random.Random()
        self.deadline: Optional[float] = None
        self.last_used = self.clock()
        self._start()

    def _start(self) -> None:
        self.cards = list(self.source_cards)
        if self.shuffle:
            self.rng.shuffle(self.cards)
        self.index = 0
        self.flipped = False
        self.score = 0
        self.finished = False
        self.reset_timer()

    # -- timer ---------------------------------------------------------------

    def _timer_seconds(self) -> float:
        if self.timer_type == "per_question":
            return self.time_limit
        if self.timer_type == "total":
            return self.time_limit * 60
        return 0

    def reset_timer(self) -> None:
        """Restart the timer from its full length (tests only)."""
        seconds = self._timer_seconds()
        if self.mode != "test" or self.finished or seconds <= 0:
            self.deadline = None
        else:
            self.deadline = self.clock() + seconds

    def set_timer(self, timer_type: TimerType, time_limit: Optional[int] = None) -> None:
        """Change the timer. A running test restarts its timer."""
        self.timer_type = timer_type
        if time_limit is not None:
            self.time_limit = time_limit
        self.reset_timer()

    def time_left(self) -> int:
        """Whole seconds left on the timer (0 when untimed)."""
        self.expire()
        if self.deadline is None:
            return 0
        return max(0, math.ceil(self.deadline - self.clock()))

    def expire(self) -> None:
        """Apply any timeouts that happened since the session was last read."""
        now = self.clock()
        while self.deadline is not None and not self.finished and now >= self.deadline:
            if self.timer_type == "total":
                self.deadline = None
                self._advance(reset_timer=False)
                continue
            elapsed_deadline = self.deadline
            self._advance(reset_timer=False)
            self.deadline = None if self.finished else elapsed_deadline + self.time_limit

    # -- navigation ----------------------------------------------------------

    @property
    def current_card(self) -> Flashcard:
        return self.cards[self.index]

    def _move(self, step: int, reset_timer: bool = True) -> None:
        self.index += step
        self.flipped = False
        if reset_timer and self.timer_type == "per_question":
            self.reset_timer()

    def _advance(self, reset_timer: bool = True) -> None:
        if self.index < len(self.cards) - 1:
            self._move(1, reset_timer)
        else:
            self.finish()

    def finish(self) -> None:
        self.finished = True
        self.deadline = None

    def flip(self) -> None:
        """Turn the card over (view mode only)."""
        self.expire()
        if self.mode == "view" and not self.finished:
            self.flipped = not self.flipped

    def next(self) -> None:
        """Go to the next card; past the last card the session ends."""
        self.expire()
        if not self.finished:
            self._advance()

    def previous(self) -> None:
        self.expire()
        if not self.finished and self.index > 0:
            self._move(-1)

    # -- testing -------------------------------------------------------------

    def is_correct(self, card: Flashcard, answer: str) -> bool:
        """Multiple choice compares the chosen index; written cards compare trimmed, case-insensitive text."""
        if card.type == "multiple":
            try:
                return int(str(answer).strip()) == card.correct_index
            except ValueError:
                return False
        return str(answer).strip().lower() == card.back.strip().lower()

    def submit_answer(self, answer: str) -> bool:
        """
        Score an answer to the current card and move on.

        Returns:
            True if the answer was correct

        Raises:
            DeckError: If this is not a running test
        """
        self.expire()
        if self.mode != "test" or self.finished:
            raise DeckError("No test in progress")
        correct = self.is_correct(self.current_card, answer)
        if correct:
            self.score += 1
        self._advance()
        return correct

    def idle_seconds(self) -> float:
        return self.clock() - self.last_used

    def touch(self) -> None:
        self.last_used = self.clock()

    def restart(self) -> None:
        """Start over: reshuffle (when shuffling), reset score and timer."""
        self._start()

    @property
    def percent(self) -> Optional[int]:
        if not self.finished or self.mode != "test":
            return None
        return round_half_up(self.score / len(self.cards) * 100)

    def snapshot(self) -> SessionSnapshot:
        self.expire()
        card = None
        if not self.finished:
            card = self.current_card
            if self.mode == "test":
                # The back stays hidden while testing; choices are enough to answer
                card = card.model_copy(update={"back": "?", "correct_index": None})
        return SessionSnapshot(
            deck=self.deck_name,
            mode=self.mode,
            index=self.index,
            total=len(self.cards),
            card=card,
            flipped=self.flipped,
            score=self.score,
            finished=self.finished,
            percent=self.percent,
            timer_type=self.timer_type,
            time_limit=self.time_limit,
            time_left=self.time_left(),
        )


# In-memory store: session_id -> StudySession
STUDY_SESSIONS: Dict[str, StudySession] = {}


def evict_sessions() -> None:
    """Drop idle sessions, then the least recently used ones beyond MAX_STUDY_SESSIONS."""
    for session_id, session in list(STUDY_SESSIONS.items()):
        if session.idle_seconds() > SESSION_IDLE_SECONDS:
            del STUDY_SESSIONS[session_id]
            logger.debug(f"Evicted idle study session {session_id}")
    overflow = len(STUDY_SESSIONS) - MAX_STUDY_SESSIONS
    if overflow > 0:
        oldest = sorted(STUDY_SESSIONS, key=lambda sid: STUDY_SESSIONS[sid].last_used)[:overflow]
        for session_id in oldest:
            del STUDY_SESSIONS[session_id]
        logger.info(f"Study session table full, evicted {overflow} least recently used")


def start_session(
    session_id: str,
    deck_name: str,
    mode: Mode = "view",
    shuffle: bool = False,
    timer_type: TimerType = "none",
    time_limit: int = DEFAULT_TIME_LIMIT,
) -> StudySession:
    """
    Start a view or test session over a stored deck, replacing any running session.

    Raises:
        DeckNotFoundError: If the deck does not exist
        DeckError: If the deck has no cards
    """
    cards = get_deck(session_id, deck_name)
    session = StudySession(deck_name, cards, mode=mode, shuffle=shuffle, timer_type=timer_type, time_limit=time_limit)
    STUDY_SESSIONS[session_id] = session
    evict_sessions()
    logger.debug(f"Started {mode} session on deck {deck_name!r} ({len(cards)} cards)")
    return session


def get_session(session_id: str) -> Optional[StudySession]:
    evict_sessions()
    session = STUDY_SESSIONS.get(session_id)
    if session is not None:
        session.touch()
    return session


def end_session(session_id: str) -> None:
    STUDY_SESSIONS.pop(session_id, None)
