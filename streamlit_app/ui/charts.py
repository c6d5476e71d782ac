"""
Chart builders for the calorie tracker.

Provides reusable Altair charts with a unified, minimal theme:
- Macro split donut (calories from protein, carbs and fat)
- Calories per day against the calorie goal
- Calories per meal
- Body measurement trends
"""

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

COLORS = {
    "protein": "#38bdf8",
    "carbs": "#fbbf24",
    "fat": "#fb7185",
    "primary": "#2ec4b6",
    "goal": "#ff9f1c",
    "text": "#e2e8f0",
    "grid": "#334155",
    "empty": "#1e293b",
}

MACRO_ORDER = ["protein", "carbs", "fat"]


def apply_modern_theme(chart: alt.Chart) -> alt.Chart:
    """
    Apply the shared theme to an Altair chart.

    Args:
        chart: Altair chart to theme

    Returns:
        Themed chart with consistent styling (transparent background for the dark themes)
    """
    return chart.configure_view(
        strokeWidth=0,
    ).configure_axis(
        grid=True,
        gridColor=COLORS["grid"],
        gridOpacity=0.4,
        domain=False,
        labelColor=COLORS["text"],
        labelFontSize=11,
        titleColor=COLORS["text"],
        titleFontSize=12,
        titleFontWeight="normal",
        ticks=False,
    ).configure_legend(
        labelColor=COLORS["text"],
        titleColor=COLORS["text"],
        labelFontSize=11,
    ).configure(
        background="transparent",
        padding={"left": 10, "top": 10, "right": 10, "bottom": 10},
    )


def build_macro_donut(split: Dict[str, int]) -> alt.Chart:
    """
    Donut of the percentage of calories from each macro.

    Args:
        split: {"protein": %, "carbs": %, "fat": %} as returned in a day summary

    Returns:
        Themed donut chart (a grey ring when nothing is logged)
    """
    rows = [{"macro": key.capitalize(), "percent": split.get(key, 0)} for key in MACRO_ORDER]
    df = pd.DataFrame([row for row in rows if row["percent"] > 0])

    if df.empty:
        empty = pd.DataFrame({"value": [1], "macro": ["No data"]})
        chart = alt.Chart(empty).mark_arc(innerRadius=55, outerRadius=85).encode(
            theta="value:Q",
            color=alt.Color("macro:N", scale=alt.Scale(range=[COLORS["empty"]]), legend=None),
        ).properties(height=220)
        return apply_modern_theme(chart)

    chart = alt.Chart(df).mark_arc(innerRadius=55, outerRadius=85, cornerRadius=4).encode(
        theta=alt.Theta("percent:Q", stack=True),
        color=alt.Color(
            "macro:N",
            scale=alt.Scale(
                domain=[key.capitalize() for key in MACRO_ORDER],
                range=[COLORS[key] for key in MACRO_ORDER],
            ),
            legend=alt.Legend(title=None, orient="bottom"),
        ),
        tooltip=[alt.Tooltip("macro:N", title="Macro"), alt.Tooltip("percent:Q", title="% of calories")],
    ).properties(height=220)
    return apply_modern_theme(chart)


def days_dataframe(days: List[Dict[str, Any]]) -> pd.DataFrame:
    """Day list entries (from the tracker state) as a DataFrame with a display label per day."""
    df = pd.DataFrame(days, columns=["index", "date", "dateISO", "dateLabel", "foodCount", "calories"])
    if df.empty:
        return df
    df["label"] = df.apply(lambda row: row["dateLabel"] or row["date"], axis=1)
    return df


def build_calorie_history(days: List[Dict[str, Any]], goal: Optional[float] = None) -> alt.Chart:
    """
    Bars of calories eaten per day, with the calorie goal as a rule.

    Args:
        days: Day list entries ({index, date, dateLabel, calories, ...})
        goal: Global calorie goal (no rule when missing or 0)
    """
    df = days_dataframe(days)
    bars = alt.Chart(df).mark_bar(cornerRadiusTopLeft=4, cornerRadiusTopRight=4, color=COLORS["primary"]).encode(
        x=alt.X("label:N", sort=alt.SortField("index"), title=None),
        y=alt.Y("calories:Q", title="Calories"),
        tooltip=[alt.Tooltip("label:N", title="Day"), alt.Tooltip("calories:Q", format=",.0f")],
    ).properties(height=240)

    if goal:
        rule = alt.Chart(pd.DataFrame({"goal": [goal]})).mark_rule(
            color=COLORS["goal"], strokeDash=[6, 4]
        ).encode(y="goal:Q")
        return apply_modern_theme(bars + rule)
    return apply_modern_theme(bars)


def build_meal_bars(meals: Dict[str, Dict[str, Any]]) -> alt.Chart:
    """Horizontal bars of calories per meal."""
    df = pd.DataFrame(
        [{"meal": meal, "calories": totals.get("calories", 0)} for meal, totals in meals.items()]
    )
    chart = alt.Chart(df).mark_bar(cornerRadiusEnd=4, color=COLORS["goal"]).encode(
        y=alt.Y("meal:N", sort=None, title=None),
        x=alt.X("calories:Q", title="Calories"),
        tooltip=["meal:N", alt.Tooltip("calories:Q", format=",.0f")],
    ).properties(height=160)
    return apply_modern_theme(chart)


def build_measurement_trend(measurements: List[Dict[str, Any]], metric: str) -> Optional[alt.Chart]:
    """
    Line of one body metric over time.

    Args:
        measurements: Measurement records (dateISO plus metric values)
        metric: Storage key of the metric (weight, bodyFat, waist, hips, chest)

    Returns:
        Themed line chart, or None when fewer than two entries have the metric
    """
    points = [
        {"date": entry.get("dateISO"), "value": entry.get(metric)}
        for entry in measurements
        if entry.get(metric) is not None and entry.get("dateISO")
    ]
    if len(points) < 2:
        return None
    df = pd.DataFrame(points)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df = df.dropna(subset=["date"]).sort_values("date")

    chart = alt.Chart(df).mark_line(point=True, color=COLORS["protein"]).encode(
        x=alt.X("date:T", title=None),
        y=alt.Y("value:Q", title=metric, scale=alt.Scale(zero=False)),
        tooltip=[alt.Tooltip("date:T"), alt.Tooltip("value:Q", format=",.1f")],
    ).properties(height=220)
    return apply_modern_theme(chart)
