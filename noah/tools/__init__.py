"""Boutique tools: instant, prebuilt HTML tools served without an LLM call."""

from noah.tools.boutique_detector import (
    BOUTIQUE_CONFIDENCE_THRESHOLD,
    BoutiqueIntentDetector,
    BoutiqueToolIntent,
)
from noah.tools.renderer import (
    BOUTIQUE_TOOLS,
    BoutiqueToolResult,
    render_boutique_tool,
    render_tool,
)

__all__ = [
    "BOUTIQUE_CONFIDENCE_THRESHOLD",
    "BOUTIQUE_TOOLS",
    "BoutiqueIntentDetector",
    "BoutiqueToolIntent",
    "BoutiqueToolResult",
    "render_boutique_tool",
    "render_tool",
]
