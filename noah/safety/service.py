"""Per-session safety bookkeeping on top of the content filter."""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional

from noah.core.logging import get_logger
from noah.safety.content_filter import NoahContentFilter, SafetyCheckResult, SafetyContext

logger = get_logger(__name__)

MAX_TRACKED_SESSIONS = 10_000


@dataclass
class SafetyVerdict:
    """Filter result plus session-level state."""

    result: SafetyCheckResult
    violation_count: int = 0
    interface_locked: bool = False

    @property
    def is_allowed(self) -> bool:
        return self.result.is_allowed and not self.interface_locked

    @property
    def radio_silence(self) -> bool:
        return self.result.radio_silence


class NoahSafetyService:
    """Counts violations per session and locks a session past a threshold.

    Once locked, every further message from that session is refused, even
    benign ones, until the process restarts or :meth:`reset` is called.
    Counts are kept for at most ``max_sessions`` sessions; the least recently
    seen one is forgotten first.
    """

    def __init__(self, lock_threshold: int = 3, max_sessions: int = MAX_TRACKED_SESSIONS):
        self.lock_threshold = lock_threshold
        self.max_sessions = max_sessions
        self._violations: "OrderedDict[str, int]" = OrderedDict()
        self._lock = threading.Lock()

    def violation_count(self, session_id: Optional[str]) -> int:
        if not session_id:
            return 0
        with self._lock:
            if session_id not in self._violations:
                return 0
            self._violations.move_to_end(session_id)
            return self._violations[session_id]

    def is_locked(self, session_id: Optional[str]) -> bool:
        return self.violation_count(session_id) >= self.lock_threshold

    def check_user_message(
        self,
        message: str,
        session_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        history: Optional[List[str]] = None,
    ) -> SafetyVerdict:
        if self.is_locked(session_id):
            logger.warning(
                "Message from locked session refused",
                data={"session_id": session_id, "conversation_id": conversation_id},
            )
            return SafetyVerdict(
                result=SafetyCheckResult(
                    is_allowed=False,
                    confidence=1.0,
                    radio_silence=True,
                    violation_type="interface-locked",
                    reason="Session exceeded the safety violation limit",
                ),
                violation_count=self.violation_count(session_id),
                interface_locked=True,
            )

        result = NoahContentFilter.check_content(
            SafetyContext(
                user_message=message,
                conversation_history=history or [],
                session_id=session_id,
            )
        )
        if result.is_allowed:
            return SafetyVerdict(result=result, violation_count=self.violation_count(session_id))

        count = 0
        if session_id:
            with self._lock:
                count = self._violations.get(session_id, 0) + 1
                self._violations[session_id] = count
                self._violations.move_to_end(session_id)
                while len(self._violations) > self.max_sessions:
                    self._violations.popitem(last=False)

        locked = bool(session_id) and count >= self.lock_threshold
        logger.warning(
            NoahContentFilter.radio_silence_explanation(result),
            data={"session_id": session_id, "violation_count": count, "interface_locked": locked},
        )
        return SafetyVerdict(result=result, violation_count=count, interface_locked=locked)

    def reset(self, session_id: Optional[str] = None) -> None:
        with self._lock:
            if session_id is None:
                self._violations.clear()
            else:
                self._violations.pop(session_id, None)
