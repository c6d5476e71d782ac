"""
Export and import of the tracker's data.

Exports are version 2 bundles:

    {"version": 2, "exportedAt": "...", "days": [...], "goals": {...},
     "favorites": [...], "prefs": {...}, "recipes": [...], "plans": [...],
     "measurements": [...], "workouts": [...]}

Imports accept either such a bundle or a bare list of days (the version 1
format). Each section present in the bundle replaces the stored one; goals and
preferences are merged over the defaults. After an import the last imported day
is selected.
"""

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from .errors import ImportFailedError
from .models import (
    Day,
    ExportBundle,
    Favorite,
    Goals,
    Measurement,
    PlanItem,
    Preferences,
    Recipe,
    TrackerModel,
    Workout,
)
from .state import edit_state, load_state, parse_model, parse_records

logger = logging.getLogger(__name__)

EXPORT_VERSION = 2


class ImportSummary(TrackerModel):
    """What an import replaced."""
    days: int = 0
    current_day_index: int = 0
    sections: List[str] = Field(default_factory=list)


def export_bundle(session_id: str) -> ExportBundle:
    """Build the export bundle for a session."""
    state = load_state(session_id)
    return ExportBundle(
        version=EXPORT_VERSION,
        days=state.days,
        goals=state.goals,
        favorites=state.favorites,
        prefs=state.prefs,
        recipes=state.recipes,
        plans=state.plans,
        measurements=state.measurements,
        workouts=state.workouts,
    )


def export_filename(today: Optional[date] = None) -> str:
    """
    File name for an export.

    Examples:
        >>> export_filename(date(2024, 3, 9))
        'calorie-counter-2024-03-09.json'
    """
    return f"calorie-counter-{(today or date.today()).isoformat()}.json"


def export_json(session_id: str) -> str:
    """The export bundle as pretty-printed JSON text."""
    return json.dumps(export_bundle(session_id).to_storage(), indent=2, ensure_ascii=False)


def parse_import(payload: Any) -> Any:
    """
    Parse an import payload.

    Strings and bytes are decoded as JSON; anything else is taken as already parsed.

    Raises:
        ImportFailedError: If the text is not valid JSON, or is neither a list nor an object
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ImportFailedError() from e
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.debug(f"Import payload is not valid JSON: {e}")
            raise ImportFailedError() from e
    if not isinstance(payload, (list, dict)):
        raise ImportFailedError()
    return payload


def import_data(session_id: str, payload: Any) -> ImportSummary:
    """
    Replace stored tracker data with an import.

    Args:
        session_id: Session identifier
        payload: JSON text, bytes, or an already-parsed list/dict

    Returns:
        ImportSummary listing the replaced sections

    Raises:
        ImportFailedError: If the payload cannot be parsed
    """
    parsed = parse_import(payload)
    sections = []

    with edit_state(session_id) as state:
        if isinstance(parsed, list):
            state.days = parse_records(parsed, Day, "import")
            state.current_day_index = len(state.days) - 1
            sections.append("days")
        else:
            days = parse_records(parsed.get("days"), Day, "import")
            if days:
                state.days = days
                state.current_day_index = len(days) - 1
                sections.append("days")
            if parsed.get("goals"):
                state.goals = parse_model(parsed["goals"], Goals, "goals")
                sections.append("goals")
            if parsed.get("prefs"):
                state.prefs = parse_model(parsed["prefs"], Preferences, "prefs")
                sections.append("prefs")

            list_sections: Dict[str, Any] = {
                "favorites": Favorite,
                "recipes": Recipe,
                "plans": PlanItem,
                "measurements": Measurement,
                "workouts": Workout,
            }
            for name, model in list_sections.items():
                if isinstance(parsed.get(name), list):
                    setattr(state, name, parse_records(parsed[name], model, name))
                    sections.append(name)

        state.clamp_index()
        summary = ImportSummary(days=len(state.days), current_day_index=state.current_day_index, sections=sections)

    logger.info(f"Imported tracker data for session {session_id}: {', '.join(sections) or 'nothing'}")
    return summary
