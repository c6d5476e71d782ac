"""
Flashcard models.

Decks are stored as one JSON object mapping deck name to an ordered list of
cards. Cards use camelCase keys in storage and exports (correctIndex).
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from calories.utils.numbers import new_id

DEFAULT_DECK = "Default"


class StudyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Flashcard(StudyModel):
    """
    A flashcard.

    Written cards are answered by typing the back. Multiple-choice cards carry
    their choices and the index of the correct one (the back is that choice).
    """
    id: str = Field(default_factory=new_id)
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    type: Literal["written", "multiple"] = "written"
    choices: Optional[List[str]] = None
    correct_index: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        # Older decks used numeric ids
        if value is None or value == "":
            return new_id()
        return str(value)

    @model_validator(mode="before")
    @classmethod
    def _default_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("type"):
            data = dict(data)
            data["type"] = "multiple" if data.get("choices") else "written"
        return data


class CardInput(StudyModel):
    """Card form: front, back and optional multiple-choice options."""
    front: str = ""
    back: str = ""
    multiple_choice: bool = False
    choices: List[str] = Field(default_factory=list)


class DeckSummary(StudyModel):
    name: str
    count: int
