"""
Shared fixtures.

Every test gets its own JSON file store in a temporary directory and an empty
table of study sessions, so no test sees another test's data.
"""

import pytest

from storage.store import JsonFileStore, set_store
from study.session import STUDY_SESSIONS


@pytest.fixture(autouse=True)
def isolated_store(tmp_path):
    store = JsonFileStore(tmp_path / "data")
    set_store(store)
    STUDY_SESSIONS.clear()
    yield store
    set_store(None)
    STUDY_SESSIONS.clear()


@pytest.fixture
def session_id():
    return "test-session"
