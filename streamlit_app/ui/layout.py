"""
Layout primitives for consistent page structure.

Provides reusable components for page headers, sections, cards, KPI rows,
the home page tool tiles and the "back home" button every tool page shows.
"""

from contextlib import contextmanager
from typing import Callable, List, Optional

import streamlit as st

HOME_PAGE = "app.py"


def page_header(title: str, subtitle: Optional[str] = None, right: Optional[Callable[[], None]] = None) -> None:
    """
    Render a consistent page header with title and optional subtitle.

    Args:
        title: Main page title
        subtitle: Optional subtitle/description text
        right: Optional callable that renders right-side content (e.g., buttons, badges)
    """
    def _title() -> None:
        st.markdown('<div class="pt-page-header">', unsafe_allow_html=True)
        st.markdown(f"# {title}")
        if subtitle:
            st.markdown(f'<div class="subtitle">{subtitle}</div>', unsafe_allow_html=True)
        st.markdown("</div>", unsafe_allow_html=True)

    if right is None:
        _title()
        return

    col_title, col_right = st.columns([3, 1])
    with col_title:
        _title()
    with col_right:
        right()


def back_home_button(key: str) -> None:
    """Button that returns to the home page."""
    if st.button("← Back to Home", key=f"back_home_{key}", use_container_width=True):
        st.switch_page(HOME_PAGE)


def section(title: str, caption: Optional[str] = None) -> None:
    """
    Render a section header with optional caption.

    Args:
        title: Section title
        caption: Optional caption/help text below title
    """
    st.markdown(f"### {title}")
    if caption:
        st.caption(caption)


@contextmanager
def card(title: Optional[str] = None):
    """
    Context manager for a bordered card container.

    Usage:
        with card("Card Title"):
            st.write("Card content")

    Args:
        title: Optional card title
    """
    with st.container(border=True):
        if title:
            st.markdown(f"#### {title}")
        yield


def kpi_row(kpis: List[dict]) -> None:
    """
    Render a row of KPI metrics.

    Args:
        kpis: List of dicts with keys:
            - label: KPI label text
            - value: KPI value (number or string)
            - delta: Optional delta/change indicator
            - icon: Optional emoji or icon prefix
    """
    cols = st.columns(len(kpis))
    for col, kpi in zip(cols, kpis):
        with col:
            icon = kpi.get("icon", "")
            label = kpi.get("label", "")
            st.metric(
                label=f"{icon} {label}" if icon else label,
                value=kpi.get("value", ""),
                delta=kpi.get("delta"),
            )


def tool_tile(
    title: str,
    description: str,
    icon: str,
    key: str,
    page: Optional[str] = None,
    url: Optional[str] = None,
) -> None:
    """
    Render a home page tile that opens a tool.

    Args:
        title: Tool name
        description: One line about the tool
        icon: Emoji shown before the title
        key: Unique widget key
        page: Streamlit page to switch to
        url: External link (opened in a new tab) when the tool lives elsewhere
    """
    st.markdown(
        f'<div class="pt-tile"><h3>{icon} {title}</h3><p>{description}</p></div>',
        unsafe_allow_html=True,
    )
    if url:
        st.link_button(f"Open {title} ↗", url, use_container_width=True)
    elif page and st.button(f"Open {title}", key=f"tile_{key}", type="primary", use_container_width=True):
        st.switch_page(page)


def progress_bar(label: str, value: float, goal: float, unit: str = "") -> None:
    """A labelled progress bar for value against goal (clamped to 100%)."""
    percent = 0.0 if goal <= 0 else min(1.0, max(0.0, value / goal))
    st.caption(f"{label}: {value:,.0f} / {goal:,.0f}{unit}")
    st.progress(percent)
