"""
Portfolio Tools - Streamlit Frontend Main Entry Point.

This is the home page: a title card and a tile per project. The Calorie
Counter and Study Flashcards tiles open the pages in `pages/`; Simple Auth
links out to its own repository.

Note: Multi-page routing is handled automatically by Streamlit via the `pages/` folder.
Files in `pages/` starting with numbered prefixes (e.g., `01_🔥_Calorie_Counter.py`) will appear
as pages in the sidebar navigation.
"""

import sys
from pathlib import Path

# Ensure the streamlit_app directory is in the Python path
# This allows imports to work regardless of how the app is run
streamlit_app_dir = Path(__file__).parent
if str(streamlit_app_dir) not in sys.path:
    sys.path.insert(0, str(streamlit_app_dir))

# Add project root to path so we can import api.config
project_root = streamlit_app_dir.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Import config early to load .env file before any other code accesses environment variables
import api.config  # noqa: F401

import streamlit as st

from ui.layout import page_header, tool_tile
from ui.styles import load_global_styles
from utils.api_client import get_health_status
from utils.session import get_or_create_session_id

SIMPLE_AUTH_URL = "https://github.com/kirtan00001/Simple-Auth"
CALORIE_PAGE = "pages/01_🔥_Calorie_Counter.py"
STUDY_PAGE = "pages/02_🧠_Study_Flashcards.py"

# Page configuration - must be called before any other Streamlit commands
st.set_page_config(
    page_title="Kirtan's Projects",
    page_icon="✨",
    layout="wide",
    initial_sidebar_state="collapsed",
)

get_or_create_session_id()
load_global_styles()

with st.sidebar:
    st.markdown("### ✨ **Kirtan's Projects**")
    st.divider()
    with st.expander("System status", expanded=False):
        backend_status = get_health_status()
        if backend_status:
            raw = backend_status.get("raw", {})
            st.markdown("**Backend:** 🟢 online")
            st.caption(f"Uptime: {raw.get('uptime_seconds', 0)}s · Database: {'on' if raw.get('db_enabled') else 'off'}")
        else:
            st.markdown("**Backend:** 🔴 offline")
            st.caption("Start it with `uvicorn api.main:app`.")

page_header("KIRTAN'S PROJECTS", subtitle="Small tools, built end to end.")

tile_calories, tile_auth, tile_study = st.columns(3, gap="medium")

with tile_calories:
    tool_tile(
        "Calorie Counter",
        "Log meals, track macros and water, plan recipes and follow your progress.",
        "🔥",
        key="calories",
        page=CALORIE_PAGE,
    )

with tile_auth:
    tool_tile(
        "Simple Auth",
        "A minimal sign-up and login flow.",
        "🔐",
        key="auth",
        url=SIMPLE_AUTH_URL,
    )

with tile_study:
    tool_tile(
        "Study Flashcards",
        "Build decks, flip through cards or test yourself against the clock.",
        "🧠",
        key="study",
        page=STUDY_PAGE,
    )
