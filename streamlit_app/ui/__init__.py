"""
UI Styling and Components Module.

This module provides global CSS styling, layout primitives, feedback
messages and charts for the Portfolio Tools Streamlit app.
"""

from ui.styles import THEME_PRESETS, load_global_styles

__all__ = [
    "THEME_PRESETS",
    "load_global_styles",
]
