"""
Flashcard router.

This router provides endpoints for decks, cards and study sessions:
- /study/decks/...: Deck CRUD, cards, search, export/import
- /study/session/...: A view or test session over one deck

Decks are stored per X-Session-ID session. A session holds at most one
study run; starting a new one replaces it.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from api.dependencies import get_session
from api.schemas import (
    AnswerRequest,
    AnswerResponse,
    DeckCreateRequest,
    DeckDetail,
    DeckImportRequest,
    DeckRenameRequest,
    SessionStartRequest,
    TimerRequest,
)
from study import decks
from study import session as study_session
from study.models import CardInput, DeckSummary, Flashcard
from study.session import SessionSnapshot, StudySession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/study", tags=["study"])


def _deck_detail(session_id: str, name: str, search: Optional[str] = None) -> DeckDetail:
    cards = decks.get_deck(session_id, name)
    shown = decks.search_cards(cards, search) if search else cards
    return DeckDetail(name=name, count=len(cards), cards=shown)


def _require_study_session(session_id: str) -> StudySession:
    running = study_session.get_session(session_id)
    if running is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No study session in progress")
    return running


# ============================================================================
# Decks
# ============================================================================

@router.get("/decks", response_model=List[DeckSummary], summary="List decks with card counts")
def list_decks(session_id: str = Depends(get_session)) -> List[DeckSummary]:
    """
    List decks in creation order.

    A session with no stored decks has a single empty "Default" deck.
    """
    return decks.list_decks(session_id)


@router.post("/decks", response_model=DeckDetail, status_code=status.HTTP_201_CREATED, summary="Create a deck")
def create_deck(request: DeckCreateRequest, session_id: str = Depends(get_session)) -> DeckDetail:
    """
    Create an empty deck.

    Raises:
        HTTPException 400: If the name is blank or already taken
    """
    name = decks.create_deck(session_id, request.name)
    return _deck_detail(session_id, name)


@router.get("/decks/{name}", response_model=DeckDetail, summary="Get a deck's cards")
def get_deck(
    name: str,
    q: Optional[str] = Query(None, description="Only cards whose front or back contains this text"),
    session_id: str = Depends(get_session),
) -> DeckDetail:
    return _deck_detail(session_id, name, q)


@router.patch("/decks/{name}", response_model=DeckDetail, summary="Rename a deck")
def rename_deck(name: str, request: DeckRenameRequest, session_id: str = Depends(get_session)) -> DeckDetail:
    new_name = decks.rename_deck(session_id, name, request.new_name)
    return _deck_detail(session_id, new_name)


@router.delete(
    "/decks/{name}",
    summary="Delete a deck",
    description="Returns the deck to show next. Deleting the last deck leaves an empty 'Default' deck.",
)
def delete_deck(name: str, session_id: str = Depends(get_session)) -> Dict[str, str]:
    return {"selected": decks.delete_deck(session_id, name)}


@router.post("/decks/{name}/clear", response_model=DeckDetail, summary="Remove every card from a deck")
def clear_deck(name: str, session_id: str = Depends(get_session)) -> DeckDetail:
    decks.clear_deck(session_id, name)
    return _deck_detail(session_id, name)


@router.post(
    "/decks/{name}/cards",
    response_model=Flashcard,
    status_code=status.HTTP_201_CREATED,
    summary="Add a card",
    description="New cards go to the front of the deck. Multiple-choice cards need at least two "
                "choices, one of which must equal the back.",
)
def add_card(name: str, data: CardInput, session_id: str = Depends(get_session)) -> Flashcard:
    return decks.add_card(session_id, name, data)


@router.put("/decks/{name}/cards/{card_id}", response_model=Flashcard, summary="Edit a card")
def edit_card(name: str, card_id: str, data: CardInput, session_id: str = Depends(get_session)) -> Flashcard:
    return decks.edit_card(session_id, name, card_id, data)


@router.delete("/decks/{name}/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a card")
def delete_card(name: str, card_id: str, session_id: str = Depends(get_session)) -> None:
    decks.delete_card(session_id, name, card_id)


@router.get("/decks/{name}/export", summary="Export a deck as JSON")
def export_deck(name: str, session_id: str = Depends(get_session)) -> Response:
    return Response(content=decks.export_deck(session_id, name), media_type="application/json")


@router.post(
    "/decks/import",
    response_model=DeckDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Import a deck",
    description="Imports a JSON array of cards under the given name, replacing a deck with that name. "
                "Anything other than an array of cards gives 400 'Invalid deck JSON format'.",
)
def import_deck(request: DeckImportRequest, session_id: str = Depends(get_session)) -> DeckDetail:
    name = decks.import_deck(session_id, request.payload, request.name)
    return _deck_detail(session_id, name)


# ============================================================================
# Study sessions
# ============================================================================

@router.post("/session", response_model=SessionSnapshot, summary="Start studying a deck")
def start_session(request: SessionStartRequest, session_id: str = Depends(get_session)) -> SessionSnapshot:
    """
    Start a view or test session, replacing any running one.

    Raises:
        HTTPException 404: If the deck does not exist
        HTTPException 400: If the deck has no cards
    """
    running = study_session.start_session(
        session_id,
        request.deck,
        mode=request.mode,
        shuffle=request.shuffle,
        timer_type=request.timer_type,
        time_limit=request.time_limit,
    )
    return running.snapshot()


@router.get("/session", response_model=SessionSnapshot, summary="Current card, score and timer")
def get_session_state(session_id: str = Depends(get_session)) -> SessionSnapshot:
    """Read the running session. Timeouts since the last read are applied first."""
    return _require_study_session(session_id).snapshot()


@router.post("/session/flip", response_model=SessionSnapshot, summary="Flip the card (view mode)")
def flip_card(session_id: str = Depends(get_session)) -> SessionSnapshot:
    running = _require_study_session(session_id)
    running.flip()
    return running.snapshot()


@router.post("/session/next", response_model=SessionSnapshot, summary="Next card")
def next_card(session_id: str = Depends(get_session)) -> SessionSnapshot:
    running = _require_study_session(session_id)
    running.next()
    return running.snapshot()


@router.post("/session/previous", response_model=SessionSnapshot, summary="Previous card")
def previous_card(session_id: str = Depends(get_session)) -> SessionSnapshot:
    running = _require_study_session(session_id)
    running.previous()
    return running.snapshot()


@router.post("/session/answer", response_model=AnswerResponse, summary="Answer the current card (test mode)")
def submit_answer(request: AnswerRequest, session_id: str = Depends(get_session)) -> AnswerResponse:
    """
    Score an answer and move to the next card.

    Multiple-choice cards are answered with the chosen index; written cards
    with text, compared trimmed and case-insensitively.

    Raises:
        HTTPException 400: If no test is running (or it has finished)
    """
    running = _require_study_session(session_id)
    running.expire()
    if running.finished or running.mode != "test":
        raise decks.DeckError("No test in progress")
    card = running.current_card
    correct = running.submit_answer(request.answer)
    return AnswerResponse(correct=correct, expected=card.back, session=running.snapshot())


@router.post("/session/restart", response_model=SessionSnapshot, summary="Start over")
def restart_session(session_id: str = Depends(get_session)) -> SessionSnapshot:
    """Reset score and position (reshuffling when the session shuffles)."""
    running = _require_study_session(session_id)
    running.restart()
    return running.snapshot()


@router.put("/session/timer", response_model=SessionSnapshot, summary="Change the timer")
def set_timer(request: TimerRequest, session_id: str = Depends(get_session)) -> SessionSnapshot:
    running = _require_study_session(session_id)
    running.set_timer(request.timer_type, request.time_limit)
    return running.snapshot()


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT, summary="Stop studying")
def end_session(session_id: str = Depends(get_session)) -> None:
    study_session.end_session(session_id)
