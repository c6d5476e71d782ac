"""
Global CSS Styling for Portfolio Tools.

This module provides load_global_styles() to inject consistent styling
across all pages, and the colour themes the calorie tracker lets users pick
from (aurora, sunset, tide, mono).
"""

from typing import Dict, Optional

import streamlit as st

# CSS custom properties per theme
THEME_PRESETS: Dict[str, Dict[str, str]] = {
    "aurora": {
        "--bg": "#0b1117",
        "--bg-deep": "#070b0f",
        "--card": "rgba(18, 27, 38, 0.88)",
        "--accent-1": "#00d4ff",
        "--accent-2": "#ff9f1c",
        "--accent-3": "#2ec4b6",
        "--accent-4": "#ff6b6b",
        "--accent-5": "#6ee7b7",
    },
    "sunset": {
        "--bg": "#140d12",
        "--bg-deep": "#0b070a",
        "--card": "rgba(28, 18, 24, 0.9)",
        "--accent-1": "#ff7a18",
        "--accent-2": "#ffd166",
        "--accent-3": "#ff5c8a",
        "--accent-4": "#ff9a62",
        "--accent-5": "#ffe29a",
    },
    "tide": {
        "--bg": "#07151a",
        "--bg-deep": "#051014",
        "--card": "rgba(12, 26, 32, 0.9)",
        "--accent-1": "#38bdf8",
        "--accent-2": "#22d3ee",
        "--accent-3": "#34d399",
        "--accent-4": "#fb7185",
        "--accent-5": "#fbbf24",
    },
    "mono": {
        "--bg": "#101213",
        "--bg-deep": "#0a0c0d",
        "--card": "rgba(20, 22, 24, 0.9)",
        "--accent-1": "#e2e8f0",
        "--accent-2": "#94a3b8",
        "--accent-3": "#cbd5f5",
        "--accent-4": "#f8fafc",
        "--accent-5": "#a7f3d0",
    },
}

DEFAULT_THEME = "aurora"


def theme_variables(theme: Optional[str]) -> Dict[str, str]:
    """CSS variables for a theme (aurora for unknown names)."""
    return THEME_PRESETS.get(theme or DEFAULT_THEME, THEME_PRESETS[DEFAULT_THEME])


def theme_css(theme: Optional[str] = None, density: str = "comfy") -> str:
    """
    Build the global stylesheet for a theme and density.

    Args:
        theme: One of THEME_PRESETS
        density: "comfy" or "compact" (tighter card padding)

    Returns:
        A <style> block
    """
    variables = "\n".join(f"            {name}: {value};" for name, value in theme_variables(theme).items())
    card_padding = "0.6rem 0.8rem" if density == "compact" else "1rem 1.25rem"
    return f"""
    <style>
        @import url('https://fonts.googleapis.com/css2?family=Nunito:wght@400;600;700&display=swap');

        :root {{
{variables}
        }}

        html, body, [class*="css"] {{
            font-family: 'Nunito', 'sans serif' !important;
        }}

        h1, h2, h3, h4, h5, h6 {{
            font-weight: 600 !important;
            letter-spacing: 0.02em !important;
        }}

        hr {{
            margin-top: 1rem !important;
            margin-bottom: 1rem !important;
        }}

        .stButton > button {{
            border-radius: 50px !important;
            font-weight: 600 !important;
            transition: all 0.2s ease !important;
        }}

        .stButton > button:hover {{
            border-color: var(--accent-1) !important;
            color: var(--accent-1) !important;
        }}

        .pt-card {{
            background: var(--card);
            border: 1px solid rgba(255, 255, 255, 0.06);
            border-radius: 16px;
            padding: {card_padding};
            margin-bottom: 0.75rem;
            color: #e2e8f0;
        }}

        .pt-tile {{
            background: linear-gradient(135deg, var(--bg), var(--bg-deep));
            border: 1px solid var(--accent-1);
            border-radius: 18px;
            padding: 1.5rem;
            min-height: 150px;
            color: #f8fafc;
        }}

        .pt-tile h3 {{
            color: var(--accent-1);
            margin-top: 0 !important;
        }}

        .pt-pill {{
            display: inline-block;
            padding: 0.1rem 0.6rem;
            margin-right: 0.3rem;
            border-radius: 999px;
            font-size: 0.8rem;
            background: rgba(255, 255, 255, 0.08);
            color: var(--accent-3);
        }}

        .pt-page-header .subtitle {{
            opacity: 0.75;
            margin-bottom: 1rem;
        }}

        .flashcard {{
            background: var(--card);
            border: 2px solid var(--accent-1);
            border-radius: 20px;
            padding: 2.5rem 1.5rem;
            text-align: center;
            font-size: 1.5rem;
            color: #f8fafc;
            min-height: 180px;
        }}

        .flashcard.flipped {{
            border-color: var(--accent-2);
        }}
    </style>
    """


def load_global_styles(theme: Optional[str] = None, density: str = "comfy") -> None:
    """
    Inject global CSS styles.

    Args:
        theme: Colour theme (see THEME_PRESETS); aurora when not given
        density: "comfy" or "compact"
    """
    st.markdown(theme_css(theme, density), unsafe_allow_html=True)
