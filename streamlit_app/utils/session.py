"""
Session management utilities for Streamlit pages.

Every tracker and flashcard record is stored in the backend under a session
ID. This module keeps that ID stable across pages for one browser session.
"""

import uuid

import streamlit as st

SESSION_ID_KEY = "session_id"


def get_or_create_session_id() -> str:
    """
    Get or create a persistent session ID stored in st.session_state.

    The same session ID is reused across all Streamlit pages within a single
    browser session, so the calorie tracker and the flashcards see the same
    stored data. A page refresh starts a new session; the tracker's export and
    import carry data between sessions.

    Returns:
        Session ID string (UUID format)

    Example:
        >>> session_id = get_or_create_session_id()
        >>> state = get_tracker_state(session_id)
    """
    if SESSION_ID_KEY not in st.session_state:
        st.session_state[SESSION_ID_KEY] = str(uuid.uuid4())
    return st.session_state[SESSION_ID_KEY]
