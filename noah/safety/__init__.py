"""Content safety screening."""

from noah.safety.content_filter import NoahContentFilter, SafetyCheckResult, SafetyContext
from noah.safety.service import NoahSafetyService, SafetyVerdict

__all__ = [
    "NoahContentFilter",
    "NoahSafetyService",
    "SafetyCheckResult",
    "SafetyContext",
    "SafetyVerdict",
]
