"""
Tests for view and test study sessions, including timers.

Timers read a fake clock so timeouts can be triggered without sleeping.
"""

import random

import pytest

from study import decks
from study.decks import DeckError, DeckNotFoundError
from study.models import CardInput, Flashcard
from study import session as study_session
from study.session import STUDY_SESSIONS, StudySession, end_session, get_session, start_session


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def tick(self, seconds):
        self.now += seconds


def make_cards(count=3):
    return [Flashcard(id=str(i), front=f"Q{i}", back=f"A{i}") for i in range(count)]


@pytest.fixture
def clock():
    return FakeClock()


class TestViewMode:
    """Flipping through cards."""

    def test_flip_and_navigate(self, clock):
        """Test flipping and moving between cards."""
        session = StudySession("Deck", make_cards(), clock=clock)
        session.flip()
        assert session.flipped

        session.next()
        assert session.index == 1
        assert not session.flipped

        session.previous()
        session.previous()
        assert session.index == 0

    def test_next_past_last_card_finishes(self, clock):
        """Going past the last card ends the session."""
        session = StudySession("Deck", make_cards(2), clock=clock)
        session.next()
        session.next()
        assert session.finished
        assert session.snapshot().card is None

    def test_view_snapshot_shows_back(self, clock):
        """View mode shows the back of the card."""
        snapshot = StudySession("Deck", make_cards(), clock=clock).snapshot()
        assert snapshot.card.back == "A0"
        assert snapshot.time_left == 0

    def test_empty_deck_rejected(self, clock):
        """Test that an empty deck cannot be studied."""
        with pytest.raises(DeckError, match="Add some cards first"):
            StudySession("Deck", [], clock=clock)

    def test_shuffle_and_restart(self, clock):
        """Shuffled sessions reshuffle on restart."""
        cards = make_cards(10)
        session = StudySession("Deck", cards, shuffle=True, clock=clock, rng=random.Random(7))
        assert sorted(card.id for card in session.cards) == sorted(card.id for card in cards)

        session.next()
        session.restart()
        assert session.index == 0
        assert not session.finished


class TestTestMode:
    """Answering and scoring."""

    def test_scoring(self, clock):
        """Written answers are trimmed and compared without case."""
        session = StudySession("Deck", make_cards(), mode="test", clock=clock)
        assert session.submit_answer(" a0 ") is True
        assert session.submit_answer("wrong") is False
        assert session.percent is None
        session.submit_answer("A2")

        assert session.finished
        assert session.score == 2
        assert session.percent == 67

    def test_percent_rounds_half_up(self, clock):
        """One of eight is 12.5%, shown as 13."""
        session = StudySession("Deck", make_cards(8), mode="test", clock=clock)
        session.submit_answer("A0")
        for _ in range(7):
            session.submit_answer("wrong")
        assert session.percent == 13

    def test_multiple_choice_answer_is_index(self, clock):
        """Multiple choice answers are the chosen index."""
        card = Flashcard(front="2 + 2", back="4", choices=["3", "4"], correct_index=1)
        session = StudySession("Deck", [card, card], mode="test", clock=clock)
        assert session.submit_answer("1") is True
        assert session.submit_answer("4") is False

    def test_snapshot_hides_back(self, clock):
        """The back and correct index stay hidden while testing."""
        card = Flashcard(front="2 + 2", back="4", choices=["3", "4"], correct_index=1)
        snapshot = StudySession("Deck", [card], mode="test", clock=clock).snapshot()
        assert snapshot.card.back == "?"
        assert snapshot.card.correct_index is None
        assert snapshot.card.choices == ["3", "4"]

    def test_flip_ignored(self, clock):
        """Test that cards cannot be flipped in a test."""
        session = StudySession("Deck", make_cards(), mode="test", clock=clock)
        session.flip()
        assert not session.flipped

    def test_answer_after_finish(self, clock):
        """Test that answering a finished test is rejected."""
        session = StudySession("Deck", make_cards(1), mode="test", clock=clock)
        session.submit_answer("A0")
        with pytest.raises(DeckError, match="No test in progress"):
            session.submit_answer("A0")

    def test_answer_in_view_mode(self, clock):
        """Test that answering in view mode is rejected."""
        session = StudySession("Deck", make_cards(), clock=clock)
        with pytest.raises(DeckError):
            session.submit_answer("A0")


class TestTimers:
    """Per-question and whole-test timers."""

    def test_per_question_countdown(self, clock):
        """Test the per-question countdown."""
        session = StudySession(
            "Deck", make_cards(), mode="test", timer_type="per_question", time_limit=30, clock=clock
        )
        assert session.time_left() == 30
        clock.tick(10.5)
        assert session.time_left() == 20

    def test_per_question_timeout_moves_on(self, clock):
        """A per-question timeout moves to the next card unscored."""
        session = StudySession(
            "Deck", make_cards(), mode="test", timer_type="per_question", time_limit=30, clock=clock
        )
        clock.tick(31)
        snapshot = session.snapshot()
        assert snapshot.index == 1
        assert snapshot.score == 0
        assert snapshot.time_left == 29

    def test_per_question_timeouts_catch_up(self, clock):
        """Several missed timeouts are applied on the next read."""
        session = StudySession(
            "Deck", make_cards(), mode="test", timer_type="per_question", time_limit=30, clock=clock
        )
        clock.tick(95)
        assert session.snapshot().finished

    def test_answer_restarts_per_question_timer(self, clock):
        """Test that answering restarts the per-question timer."""
        session = StudySession(
            "Deck", make_cards(), mode="test", timer_type="per_question", time_limit=30, clock=clock
        )
        clock.tick(20)
        session.submit_answer("A0")
        assert session.time_left() == 30

    def test_total_timer_advances_once(self, clock):
        """The total timer moves on once, then the test is untimed."""
        session = StudySession("Deck", make_cards(), mode="test", timer_type="total", time_limit=1, clock=clock)
        assert session.time_left() == 60
        clock.tick(61)
        snapshot = session.snapshot()
        assert snapshot.index == 1
        assert not snapshot.finished
        assert snapshot.time_left == 0

    def test_timeout_on_last_card_finishes(self, clock):
        """A timeout on the last card ends the test."""
        session = StudySession(
            "Deck", make_cards(1), mode="test", timer_type="per_question", time_limit=5, clock=clock
        )
        clock.tick(5)
        snapshot = session.snapshot()
        assert snapshot.finished
        assert snapshot.percent == 0

    def test_view_mode_is_untimed(self, clock):
        """Test that view mode ignores timers."""
        session = StudySession("Deck", make_cards(), timer_type="per_question", time_limit=5, clock=clock)
        clock.tick(60)
        assert session.index == 0
        assert session.time_left() == 0

    def test_set_timer_restarts(self, clock):
        """Test that changing the timer restarts it."""
        session = StudySession("Deck", make_cards(), mode="test", clock=clock)
        assert session.time_left() == 0
        session.set_timer("per_question", 15)
        assert session.time_left() == 15


class TestStoredSessions:
    """Sessions started from stored decks."""

    def test_start_get_end(self, session_id):
        """Test starting, fetching and ending a stored session."""
        decks.add_card(session_id, "Default", CardInput(front="f", back="b"))
        session = start_session(session_id, "Default", mode="test")
        assert get_session(session_id) is session

        end_session(session_id)
        assert get_session(session_id) is None

    def test_missing_deck(self, session_id):
        """Test that starting on an unknown deck raises DeckNotFoundError."""
        with pytest.raises(DeckNotFoundError):
            start_session(session_id, "Nope")

    def test_studies_a_snapshot(self, session_id):
        """Changes to the deck do not reach a running session."""
        decks.add_card(session_id, "Default", CardInput(front="f", back="b"))
        session = start_session(session_id, "Default")
        decks.clear_deck(session_id, "Default")
        assert session.snapshot().card.front == "f"


class TestSessionEviction:
    """The in-memory session table stays bounded."""

    def test_idle_sessions_dropped(self, clock):
        """A session untouched past the idle limit is gone on the next lookup."""
        STUDY_SESSIONS["idle"] = StudySession("Deck", make_cards(), clock=clock)
        STUDY_SESSIONS["busy"] = StudySession("Deck", make_cards(), clock=clock)

        clock.tick(study_session.SESSION_IDLE_SECONDS - 10)
        assert get_session("busy") is not None
        clock.tick(20)

        assert get_session("idle") is None
        assert get_session("busy") is not None
        assert list(STUDY_SESSIONS) == ["busy"]

    def test_table_is_capped(self, clock, monkeypatch):
        """Past the cap the least recently used sessions go first."""
        monkeypatch.setattr(study_session, "MAX_STUDY_SESSIONS", 2)
        for name in ("a", "b", "c"):
            STUDY_SESSIONS[name] = StudySession("Deck", make_cards(), clock=clock)
            clock.tick(1)
        STUDY_SESSIONS["a"].touch()

        study_session.evict_sessions()
        assert sorted(STUDY_SESSIONS) == ["a", "c"]
