"""
Progress tracking: body measurements and workouts.
"""

import logging
from typing import List

from .errors import TrackerError
from .models import (
    MEASUREMENT_FIELDS,
    Exercise,
    ExerciseInput,
    Measurement,
    MeasurementInput,
    Workout,
    WorkoutInput,
)
from .nutrition import MeasurementDeltas, measurement_deltas, sort_by_date_desc
from .state import edit_state, load_state
from .utils.numbers import number_or_zero

logger = logging.getLogger(__name__)


def list_measurements(session_id: str) -> List[Measurement]:
    """Measurements, newest date first."""
    return sort_by_date_desc(load_state(session_id).measurements)


def add_measurement(session_id: str, data: MeasurementInput) -> Measurement:
    """
    Record body measurements.

    Raises:
        TrackerError: If no metric was entered
    """
    if all(getattr(data, field) is None for field in MEASUREMENT_FIELDS):
        raise TrackerError("Enter at least one metric.")
    entry = Measurement(
        date_iso=data.date_iso,
        notes=data.notes.strip(),
        **{field: getattr(data, field) for field in MEASUREMENT_FIELDS},
    )
    with edit_state(session_id) as state:
        state.measurements = [entry] + state.measurements
    return entry


def remove_measurement(session_id: str, measurement_id: str) -> None:
    with edit_state(session_id) as state:
        state.measurements = [m for m in state.measurements if m.id != measurement_id]


def latest_deltas(session_id: str) -> MeasurementDeltas:
    """Change per metric between the two most recent measurements."""
    return measurement_deltas(load_state(session_id).measurements)


def list_workouts(session_id: str) -> List[Workout]:
    """Workouts, newest date first."""
    return sort_by_date_desc(load_state(session_id).workouts)


def build_exercises(drafts: List[ExerciseInput]) -> List[Exercise]:
    """Keep exercises that have a name; numbers default to 0."""
    exercises = []
    for draft in drafts:
        name = (draft.name or "").strip()
        if not name:
            continue
        exercises.append(
            Exercise(
                name=name,
                sets=number_or_zero(draft.sets),
                reps=number_or_zero(draft.reps),
                weight=number_or_zero(draft.weight),
            )
        )
    return exercises


def add_workout(session_id: str, data: WorkoutInput) -> Workout:
    """
    Log a workout. The title defaults to "Workout".

    Raises:
        TrackerError: If there is neither a title nor an exercise
    """
    title = data.title.strip()
    exercises = build_exercises(data.exercises)
    if not title and not exercises:
        raise TrackerError("Add a title or exercise. Log at least one detail.")
    workout = Workout(
        date_iso=data.date_iso,
        title=title or "Workout",
        duration=data.duration,
        calories=data.calories,
        notes=data.notes.strip(),
        exercises=exercises,
    )
    with edit_state(session_id) as state:
        state.workouts = [workout] + state.workouts
    logger.debug(f"Logged workout {workout.title!r} with {len(exercises)} exercises")
    return workout


def remove_workout(session_id: str, workout_id: str) -> None:
    with edit_state(session_id) as state:
        state.workouts = [w for w in state.workouts if w.id != workout_id]
