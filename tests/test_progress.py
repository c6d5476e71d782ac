"""
Tests for body measurements and workouts.
"""

import pytest

from calories import progress
from calories.errors import TrackerError
from calories.models import ExerciseInput, MeasurementInput, WorkoutInput


class TestMeasurements:
    """Tests for recording measurements and their deltas."""

    def test_listed_newest_first(self, session_id):
        """Test that measurements are listed by date, newest first."""
        progress.add_measurement(session_id, MeasurementInput(date_iso="2024-01-01", weight=80))
        progress.add_measurement(session_id, MeasurementInput(date_iso="2024-02-01", weight=78))
        progress.add_measurement(session_id, MeasurementInput(date_iso="2023-12-01", weight=81))
        dates = [m.date_iso for m in progress.list_measurements(session_id)]
        assert dates == ["2024-02-01", "2024-01-01", "2023-12-01"]

    def test_blank_metrics_stay_empty(self, session_id):
        """Blank metrics are stored as None, not 0."""
        entry = progress.add_measurement(session_id, MeasurementInput(date_iso="2024-01-01", waist="", weight="80"))
        assert entry.weight == 80
        assert entry.waist is None

    def test_needs_a_metric(self, session_id):
        """Notes alone are not a measurement."""
        with pytest.raises(TrackerError, match="at least one metric"):
            progress.add_measurement(session_id, MeasurementInput(date_iso="2024-01-01", notes="felt good"))

    def test_deltas(self, session_id):
        """Test changes between the two latest measurements."""
        progress.add_measurement(session_id, MeasurementInput(date_iso="2024-01-01", weight=80, bodyFat=20))
        progress.add_measurement(session_id, MeasurementInput(date_iso="2024-01-08", weight=79.2, bodyFat=19.5))
        deltas = progress.latest_deltas(session_id)
        assert deltas.weight == pytest.approx(-0.8)
        assert deltas.body_fat == pytest.approx(-0.5)
        assert deltas.chest is None

    def test_remove(self, session_id):
        """Test removing a measurement."""
        entry = progress.add_measurement(session_id, MeasurementInput(weight=80))
        progress.remove_measurement(session_id, entry.id)
        assert progress.list_measurements(session_id) == []


class TestWorkouts:
    """Tests for logging workouts."""

    def test_unnamed_exercises_dropped(self, session_id):
        """Exercises without a name are dropped."""
        workout = progress.add_workout(
            session_id,
            WorkoutInput(
                date_iso="2024-03-01",
                title="Push",
                duration=45,
                exercises=[
                    ExerciseInput(name="Bench", sets=3, reps=8, weight=60),
                    ExerciseInput(name="  ", sets=3),
                ],
            ),
        )
        assert [e.name for e in workout.exercises] == ["Bench"]
        assert workout.exercises[0].weight == 60

    def test_title_defaults(self, session_id):
        """A workout with exercises but no title is called "Workout"."""
        workout = progress.add_workout(session_id, WorkoutInput(exercises=[ExerciseInput(name="Squat")]))
        assert workout.title == "Workout"

    def test_needs_title_or_exercise(self, session_id):
        """Test that an empty workout is rejected."""
        with pytest.raises(TrackerError, match="Log at least one detail"):
            progress.add_workout(session_id, WorkoutInput(duration=30))

    def test_listed_newest_first_and_removed(self, session_id):
        """Test workout ordering and removal."""
        older = progress.add_workout(session_id, WorkoutInput(date_iso="2024-01-01", title="Run"))
        progress.add_workout(session_id, WorkoutInput(date_iso="2024-02-01", title="Swim"))
        assert [w.title for w in progress.list_workouts(session_id)] == ["Swim", "Run"]

        progress.remove_workout(session_id, older.id)
        assert [w.title for w in progress.list_workouts(session_id)] == ["Swim"]
