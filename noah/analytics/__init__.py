"""Conversation analytics: sessions, conversations, messages and tools."""

from noah.analytics.service import AnalyticsService, analytics_service
from noah.analytics.session import (
    extract_browser_info,
    generate_session_fingerprint,
    is_valid_session_fingerprint,
)

__all__ = [
    "AnalyticsService",
    "analytics_service",
    "extract_browser_info",
    "generate_session_fingerprint",
    "is_valid_session_fingerprint",
]
