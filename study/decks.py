"""
Flashcard deck management.

All decks of a session live in one blob under the "flashcardDecks" key:
{deck name: [card, ...]}. There is always at least one deck; removing the last
one leaves an empty "Default" deck.

Operations:
- Decks: list (with card counts), create, rename, delete, clear
- Cards: add (newest first), edit in place, delete, search
- Export a deck as a JSON array and import such an array as a named deck
"""

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from storage.store import get_store

from .models import DEFAULT_DECK, CardInput, DeckSummary, Flashcard

logger = logging.getLogger(__name__)

DECKS_KEY = "flashcardDecks"

Decks = Dict[str, List[Flashcard]]


class DeckError(ValueError):
    """Invalid deck or card input. The message is shown to the user."""


class DeckNotFoundError(DeckError):
    """The deck or card does not exist."""


# ============================================================================
# Persistence
# ============================================================================

def _parse_cards(raw: Any) -> List[Flashcard]:
    """Validate a list of cards. Raises DeckError if it is not a list of valid cards."""
    if not isinstance(raw, list):
        raise DeckError("Invalid deck JSON format")
    try:
        return [Flashcard.model_validate(card) for card in raw]
    except ValidationError as e:
        raise DeckError("Invalid deck JSON format") from e


def load_decks(session_id: str) -> Decks:
    """
    Load all decks for a session.

    Decks that do not validate are dropped; with nothing left, returns {"Default": []}.
    """
    raw = get_store().load_json(session_id, DECKS_KEY, {})
    decks: Decks = {}
    if isinstance(raw, dict):
        for name, cards in raw.items():
            try:
                decks[name] = _parse_cards(cards)
            except DeckError:
                logger.debug(f"Dropping malformed deck {name!r} for session {session_id}")
    return decks or {DEFAULT_DECK: []}


def save_decks(session_id: str, decks: Decks) -> None:
    payload = {name: [card.model_dump(by_alias=True, exclude_none=True) for card in cards] for name, cards in decks.items()}
    get_store().save_json(session_id, DECKS_KEY, payload)


def _require_deck(decks: Decks, name: str) -> List[Flashcard]:
    if name not in decks:
        raise DeckNotFoundError(f"Deck {name!r} not found")
    return decks[name]


def _check_name(name: str) -> str:
    """Deck names may not contain "/"; every deck route takes the name as one path segment."""
    if "/" in name:
        raise DeckError("Deck names cannot contain '/'")
    return name


def _card_index(cards: List[Flashcard], card_id: str) -> int:
    for index, card in enumerate(cards):
        if card.id == card_id:
            return index
    raise DeckNotFoundError(f"Card {card_id} not found")


# ============================================================================
# Decks
# ============================================================================

def list_decks(session_id: str) -> List[DeckSummary]:
    return [DeckSummary(name=name, count=len(cards)) for name, cards in load_decks(session_id).items()]


def get_deck(session_id: str, name: str) -> List[Flashcard]:
    return _require_deck(load_decks(session_id), name)


def create_deck(session_id: str, name: str) -> str:
    """
    Create an empty deck.

    Raises:
        DeckError: If the name is blank or already used
    """
    name = (name or "").strip()
    if not name:
        raise DeckError("Enter a deck name")
    _check_name(name)
    decks = load_decks(session_id)
    if name in decks:
        raise DeckError("A deck with that name already exists")
    decks[name] = []
    save_decks(session_id, decks)
    return name


def rename_deck(session_id: str, old_name: str, new_name: str) -> str:
    """
    Rename a deck, keeping its position in the deck list.

    A blank or unchanged name is a no-op.

    Returns:
        The deck's name afterwards
    """
    new_name = (new_name or "").strip()
    decks = load_decks(session_id)
    _require_deck(decks, old_name)
    if not new_name or new_name == old_name:
        return old_name
    _check_name(new_name)
    if new_name in decks:
        raise DeckError("A deck with that name already exists")
    renamed = {(new_name if name == old_name else name): cards for name, cards in decks.items()}
    save_decks(session_id, renamed)
    return new_name


def delete_deck(session_id: str, name: str) -> str:
    """
    Delete a deck.

    Returns:
        Name of the deck to show next (the first remaining deck, or "Default")
    """
    decks = load_decks(session_id)
    _require_deck(decks, name)
    del decks[name]
    if not decks:
        decks = {DEFAULT_DECK: []}
    save_decks(session_id, decks)
    return next(iter(decks))


def clear_deck(session_id: str, name: str) -> None:
    """Delete every card in a deck."""
    decks = load_decks(session_id)
    _require_deck(decks, name)
    decks[name] = []
    save_decks(session_id, decks)


# ============================================================================
# Cards
# ============================================================================

def build_card(data: CardInput, card_id: str = "") -> Flashcard:
    """
    Validate card input and build the card.

    Front and back are trimmed and required. A multiple-choice card needs at
    least two non-blank choices, and its back must be one of them.

    Raises:
        DeckError: If the input is not a valid card
    """
    front = data.front.strip()
    back = data.back.strip()
    if not front or not back:
        raise DeckError("Front and back are required!")

    fields: Dict[str, Any] = {"front": front, "back": back, "type": "written"}
    if card_id:
        fields["id"] = card_id
    if data.multiple_choice:
        choices = [choice.strip() for choice in data.choices if choice.strip()]
        if len(choices) < 2:
            raise DeckError("At least 2 choices required for multiple choice!")
        if back not in choices:
            raise DeckError("Answer must match one of the choices exactly!")
        fields.update(type="multiple", choices=choices, correct_index=choices.index(back))
    return Flashcard(**fields)


def add_card(session_id: str, deck_name: str, data: CardInput) -> Flashcard:
    """Add a card to the front of a deck."""
    card = build_card(data)
    decks = load_decks(session_id)
    cards = _require_deck(decks, deck_name)
    cards.insert(0, card)
    save_decks(session_id, decks)
    return card


def edit_card(session_id: str, deck_name: str, card_id: str, data: CardInput) -> Flashcard:
    """Replace a card's content, keeping its id and position."""
    decks = load_decks(session_id)
    cards = _require_deck(decks, deck_name)
    index = _card_index(cards, card_id)
    card = build_card(data, card_id=card_id)
    cards[index] = card
    save_decks(session_id, decks)
    return card


def delete_card(session_id: str, deck_name: str, card_id: str) -> None:
    decks = load_decks(session_id)
    cards = _require_deck(decks, deck_name)
    del cards[_card_index(cards, card_id)]
    save_decks(session_id, decks)


def search_cards(cards: List[Flashcard], term: str) -> List[Flashcard]:
    """
    Cards whose front or back contains the term (case-insensitive).

    A blank term matches every card.
    """
    needle = (term or "").lower()
    return [card for card in cards if needle in card.front.lower() or needle in card.back.lower()]


# ============================================================================
# Export / import
# ============================================================================

def export_deck(session_id: str, deck_name: str) -> str:
    """A deck's cards as a pretty-printed JSON array."""
    cards = get_deck(session_id, deck_name)
    return json.dumps(
        [card.model_dump(by_alias=True, exclude_none=True) for card in cards],
        indent=2,
        ensure_ascii=False,
    )


def import_deck(session_id: str, payload: Any, name: str = "Imported") -> str:
    """
    Import a JSON array of cards as a deck.

    An existing deck with the same name is replaced.

    Args:
        session_id: Session identifier
        payload: JSON text, or an already-parsed list
        name: Deck name

    Returns:
        The deck name

    Raises:
        DeckError: If the payload is not a JSON array of cards, or the name is blank
    """
    name = (name or "").strip()
    if not name:
        raise DeckError("Enter a deck name")
    _check_name(name)
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DeckError("Invalid deck JSON format") from e
    cards = _parse_cards(payload)

    decks = load_decks(session_id)
    decks[name] = cards
    save_decks(session_id, decks)
    logger.info(f"Imported {len(cards)} cards into deck {name!r}")
    return name
