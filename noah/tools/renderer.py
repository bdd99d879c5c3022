"""Rendering of the prebuilt boutique tool HTML templates."""

import json
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, List, Optional

from noah.core.exceptions import NotFoundError
from noah.tools.boutique_detector import (
    ASSUMPTION_BREAKER,
    DEFAULT_BREAK_MINUTES,
    DEFAULT_WORK_MINUTES,
    POMODORO_TIMER,
    SCIENTIFIC_CALCULATOR,
    TIME_TELESCOPE,
    UNIT_CONVERTER,
    WORD_COUNTER,
    BoutiqueToolIntent,
)

CONVERTER_CATEGORIES = ["length", "weight", "temperature", "volume", "speed"]

THEMES = {
    "dark": {
        "bg_color": "#1a1a2e",
        "panel_color": "#16213e",
        "accent_color": "#0f3460",
        "button_color": "#23395d",
        "text_color": "#ffffff",
    },
    "light": {
        "bg_color": "#f5f7fa",
        "panel_color": "#ffffff",
        "accent_color": "#c3cfe2",
        "button_color": "#e9eef5",
        "text_color": "#222222",
    },
}


@dataclass(frozen=True)
class BoutiqueTool:
    name: str
    title: str
    description: str


@dataclass
class BoutiqueToolResult:
    title: str
    content: str
    tool_name: str


BOUTIQUE_TOOLS: Dict[str, BoutiqueTool] = {
    tool.name: tool
    for tool in (
        BoutiqueTool(
            SCIENTIFIC_CALCULATOR,
            "Scientific Calculator",
            "Scientific calculator with trigonometric functions, logarithms, square roots and the constants pi and e.",
        ),
        BoutiqueTool(
            POMODORO_TIMER,
            "Pomodoro Timer",
            "Pomodoro productivity timer with adjustable work and break intervals, session tracking and audio alerts.",
        ),
        BoutiqueTool(
            UNIT_CONVERTER,
            "Unit Converter",
            "Unit converter for length, weight, temperature, volume and speed with live results and unit swapping.",
        ),
        BoutiqueTool(
            ASSUMPTION_BREAKER,
            "Assumption Breaker",
            "Thinking tool that turns a belief or plan into a set of lenses for questioning hidden assumptions.",
        ),
        BoutiqueTool(
            TIME_TELESCOPE,
            "Time Telescope",
            "Decision tool that frames a choice across 10 minutes, 10 months and 10 years.",
        ),
        BoutiqueTool(
            WORD_COUNTER,
            "Word Counter",
            "Word, character, sentence and paragraph counter with reading time estimate.",
        ),
    )
}


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """Read a template file shipped in ``noah/tools/templates``."""
    try:
        return resources.files("noah.tools").joinpath("templates", f"{name}.html").read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFoundError(f"Unknown boutique template: {name}") from exc


def fill(template: str, values: Dict[str, Any]) -> str:
    """Replace ``{{key}}`` placeholders. Unknown placeholders are left alone."""
    for key, value in values.items():
        template = template.replace("{{" + key + "}}", str(value))
    return template


def _slug(title: str) -> str:
    return title.lower().replace(" ", "-")


def render_tool(tool_name: str, parameters: Optional[Dict[str, Any]] = None) -> BoutiqueToolResult:
    """Render one boutique tool to a standalone HTML document."""
    if tool_name not in BOUTIQUE_TOOLS:
        raise NotFoundError(f"Unknown boutique tool: {tool_name}")
    tool = BOUTIQUE_TOOLS[tool_name]
    params = dict(parameters or {})

    values: Dict[str, Any] = {}
    if tool_name in (SCIENTIFIC_CALCULATOR, TIME_TELESCOPE):
        values.update(THEMES.get(params.get("theme", "dark"), THEMES["dark"]))
    elif tool_name == POMODORO_TIMER:
        values["work_minutes"] = int(params.get("work_minutes") or DEFAULT_WORK_MINUTES)
        values["break_minutes"] = int(params.get("break_minutes") or DEFAULT_BREAK_MINUTES)
    elif tool_name == UNIT_CONVERTER:
        categories: List[str] = [
            c for c in params.get("categories") or CONVERTER_CATEGORIES if c in CONVERTER_CATEGORIES
        ]
        values["categories"] = json.dumps(categories or CONVERTER_CATEGORIES)

    html = load_template(tool_name).replace("{{save_bridge}}", load_template("_save_bridge"))
    values["file_name"] = f"{_slug(tool.title)}.html"
    values["description"] = tool.description.replace("'", "\\'")
    return BoutiqueToolResult(title=tool.title, content=fill(html, values), tool_name=tool_name)


def render_boutique_tool(intent: BoutiqueToolIntent) -> BoutiqueToolResult:
    """Render the tool a detected intent points at."""
    if not intent.detected or not intent.tool_name:
        raise NotFoundError("No boutique tool detected")
    return render_tool(intent.tool_name, intent.parameters)


def catalogue() -> List[BoutiqueTool]:
    return list(BOUTIQUE_TOOLS.values())
