"""
Standardized feedback utilities for consistent error, empty, and loading states.

Provides reusable components for displaying errors, confirmations, empty states
and loading indicators across all pages in a consistent manner.
"""

from contextlib import contextmanager
from typing import Optional

import streamlit as st

FLASH_KEY = "flash_message"


def show_error(message: str, hint: Optional[str] = None) -> None:
    """
    Display a standardized error message with optional hint.

    Args:
        message: Main error message to display
        hint: Optional hint text to help users resolve the issue
    """
    st.error(f"⚠️ {message}")
    if hint:
        st.caption(f"💡 {hint}")


def flash(message: str, icon: str = "✅") -> None:
    """Queue a toast to show after the next rerun."""
    st.session_state[FLASH_KEY] = (message, icon)


def show_flash() -> None:
    """Show (and forget) a message queued with flash()."""
    queued = st.session_state.pop(FLASH_KEY, None)
    if queued:
        message, icon = queued
        st.toast(message, icon=icon)


def show_empty_state(title: str, subtitle: Optional[str] = None) -> None:
    """
    Display a standardized empty state.

    Args:
        title: Main empty state title
        subtitle: Optional subtitle/description text
    """
    st.info(f"📭 **{title}**")
    if subtitle:
        st.caption(subtitle)


@contextmanager
def working_spinner(label: str = "Working…"):
    """
    Context manager wrapper for standardized loading spinners.

    Usage:
        with working_spinner("Searching…"):
            # Do work here
            pass

    Args:
        label: Spinner label text (default: "Working…")
    """
    with st.spinner(label):
        yield
