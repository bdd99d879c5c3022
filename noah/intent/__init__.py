"""Intent analysis."""

from noah.intent.analyzer import (
    CLARIFICATION_PROMPT,
    RequestAnalysis,
    analyze_request,
    is_simple_question,
)

__all__ = ["CLARIFICATION_PROMPT", "RequestAnalysis", "analyze_request", "is_simple_question"]
