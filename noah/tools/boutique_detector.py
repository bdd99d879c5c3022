"""Regex detection of requests for one of the prebuilt boutique tools."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple

BOUTIQUE_CONFIDENCE_THRESHOLD = 0.9

SCIENTIFIC_CALCULATOR = "scientific_calculator"
POMODORO_TIMER = "pomodoro_timer"
UNIT_CONVERTER = "unit_converter"
ASSUMPTION_BREAKER = "assumption_breaker"
TIME_TELESCOPE = "time_telescope"
WORD_COUNTER = "word_counter"

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5


def _bank(*entries: Tuple[str, float]) -> List[Tuple[Pattern[str], float]]:
    return [(re.compile(pattern, re.IGNORECASE), confidence) for pattern, confidence in entries]


PATTERN_BANKS: Dict[str, List[Tuple[Pattern[str], float]]] = {
    SCIENTIFIC_CALCULATOR: _bank(
        (r"\b(scientific\s+)?calculator\b", 0.95),
        (r"\bmath\s+(tool|calculator)\b", 0.95),
        (r"\bcalc(ulate)?\b", 0.90),
        (r"\bopen\s+a\s+calc", 0.92),
        (r"\bscientific\s+calc", 0.95),
        (r"\btrig(onometric)?\s+(function|calculation)s?\b", 0.93),
        (r"\b(sin|cos|tan|log)\s+(calculator|function)\b", 0.92),
        (r"\bdo\s+\d+[\s*+\-/]\d+", 0.88),
    ),
    POMODORO_TIMER: _bank(
        (r"\bpomodoro\b", 0.95),
        (r"\btomato\s+timer\b", 0.93),
        (r"\b(work|study|focus)\s+timer\b", 0.92),
        (r"\bproductivity\s+timer\b", 0.93),
        (r"\btime(r)?\s+(for\s+)?(work|study|focus)", 0.90),
        (r"\bwork\s+session\s+timer\b", 0.92),
        (r"\bstart\s+(a\s+)?(\d+/\d+\s+)?pomodoro", 0.95),
        (r"\bstart\s+focus\s+\d+/\d+", 0.92),
        (r"\b(25|20|30|50)\s*[/-]\s*\d+\s*(min(ute)?s?)?\b", 0.91),
        (r"\b(25|20|30)\s*(min(ute)?s?|m)?\s+(work|study|focus|timer)", 0.90),
    ),
    UNIT_CONVERTER: _bank(
        (r"\bunit\s+convert(er)?\b", 0.95),
        (r"\bconvert\s+(units?|length|weight|temperature|volume|speed)\b", 0.95),
        (r"\b(length|weight|temperature|volume|speed)\s+convert(er)?\b", 0.94),
        (r"\bmeters?\s+to\s+feet\b", 0.93),
        (r"\bfeet\s+to\s+meters?\b", 0.93),
        (r"\bkg\s+to\s+(lbs?|pounds?)\b", 0.93),
        (r"\b(lbs?|pounds?)\s+to\s+kg\b", 0.93),
        (r"\b(celsius|°c)\s+to\s+(fahrenheit|°f)\b", 0.93),
        (r"\b(fahrenheit|°f)\s+to\s+(celsius|°c)\b", 0.93),
        (r"\bconvert\s+\d+\s*([a-z]{1,3})\s+to\s+([a-z]{1,3})", 0.88),
        (r"\b(m|ft|km|mi|lb|kg|mph|kph|°c|°f)\s+to\s+(m|ft|km|mi|lb|kg|mph|kph|°c|°f)\b", 0.90),
    ),
    ASSUMPTION_BREAKER: _bank(
        (r"\bassumption\s+breaker\b", 0.95),
        (r"\bchallenge\s+(my\s+)?assumptions?\b", 0.93),
        (r"\bbreak\s+(my\s+)?assumptions?\b", 0.93),
        (r"\bquestion\s+(my\s+)?assumptions?\b", 0.92),
        (r"\btest\s+(my\s+)?assumptions?\b", 0.91),
        (r"\bthink\s+differently\b", 0.88),
        (r"\breframe\s+(my\s+)?(problem|thinking|perspective)\b", 0.90),
        (r"\bwhat\s+am\s+i\s+assuming\b", 0.93),
        (r"\bidentify\s+(my\s+)?assumptions?\b", 0.91),
        (r"\bblind\s+spots?\b", 0.87),
        (r"\bhidden\s+assumptions?\b", 0.92),
        (r"\bunconsciou(s|sly)\s+assuming\b", 0.90),
    ),
    TIME_TELESCOPE: _bank(
        (r"\btime\s+telescope\b", 0.95),
        (r"\bview\s+(my\s+)?decision\s+(across|over|through)\s+time\b", 0.93),
        (r"\bperspective\s+(on|over)\s+time\b", 0.92),
        (r"\btime\s+(perspective|horizon)s?\b", 0.93),
        (r"\b(decision|choice)\s+perspective\s+tool\b", 0.91),
        (r"\bview\s+through\s+time\b", 0.92),
        (r"\blong[- ]term\s+(perspective|view)\b", 0.88),
        (r"\bhow\s+(will|would)\s+this\s+(look|matter|seem)\s+in\s+\d+\s+(year|month|day)s?\b", 0.90),
        (r"\bfuture\s+(perspective|view|outlook)\b", 0.87),
        (r"\bdecision\s+paralysis\b", 0.89),
        (
            r"\b(help|show|view)\s+(me\s+)?(see|understand)\s+(my\s+)?(decision|choice)\s+"
            r"(from\s+)?(different|multiple)\s+(time|perspective)s?\b",
            0.92,
        ),
        (r"\b(stuck|struggling)\s+(on|with)\s+a\s+(decision|choice)\b", 0.88),
    ),
    WORD_COUNTER: _bank(
        (r"\bword\s+counter\b", 0.95),
        (r"\bcount\s+(the\s+)?(words|characters)\b", 0.93),
        (r"\bcharacter\s+count(er)?\b", 0.92),
        (r"\bword\s+count\s+tool\b", 0.95),
        (r"\bhow\s+many\s+words\s+(are\s+)?in\b", 0.90),
    ),
}

_SLASH_PAIR = re.compile(r"(\d+)\s*[/-]\s*(\d+)")
_WORK_MINUTES = re.compile(r"(\d+)\s*(?:min(?:ute)?s?|m)?\s+(?:of\s+)?(?:work|focus|session|study)")
_BREAK_MINUTES = re.compile(r"(\d+)\s*(?:min(?:ute)?s?|m)?\s+(?:of\s+)?(?:break|rest)")


@dataclass
class BoutiqueToolIntent:
    detected: bool
    tool_name: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0


def _clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    if value is None:
        return default
    return max(low, min(high, value))


def extract_pomodoro_minutes(message: str) -> Tuple[int, int]:
    """Pull work/break minutes out of "25/5", "50-10" or "50 min work, 10 min break"."""
    lowered = message.lower()
    work: Optional[int] = None
    rest: Optional[int] = None

    slash = _SLASH_PAIR.search(lowered)
    if slash:
        work, rest = int(slash.group(1)), int(slash.group(2))
    else:
        work_match = _WORK_MINUTES.search(lowered)
        break_match = _BREAK_MINUTES.search(lowered)
        work = int(work_match.group(1)) if work_match else None
        rest = int(break_match.group(1)) if break_match else None

    return (
        _clamp(work, 1, 60, DEFAULT_WORK_MINUTES),
        _clamp(rest, 1, 30, DEFAULT_BREAK_MINUTES),
    )


class BoutiqueIntentDetector:
    """Highest-confidence pattern across all tool banks wins."""

    threshold = BOUTIQUE_CONFIDENCE_THRESHOLD

    @classmethod
    def detect_intent(cls, message: str) -> BoutiqueToolIntent:
        lowered = message.lower().strip()

        best_tool: Optional[str] = None
        best_confidence = 0.0
        for tool_name, bank in PATTERN_BANKS.items():
            for pattern, confidence in bank:
                if confidence > best_confidence and pattern.search(lowered):
                    best_tool, best_confidence = tool_name, confidence

        if best_tool is None or best_confidence < cls.threshold:
            return BoutiqueToolIntent(detected=False)

        return BoutiqueToolIntent(
            detected=True,
            tool_name=best_tool,
            parameters=cls._parameters(best_tool, lowered),
            confidence=best_confidence,
        )

    @staticmethod
    def _parameters(tool_name: str, lowered: str) -> Dict[str, Any]:
        if tool_name in (SCIENTIFIC_CALCULATOR, TIME_TELESCOPE):
            return {"theme": "light" if "light" in lowered else "dark"}
        if tool_name == POMODORO_TIMER:
            work, rest = extract_pomodoro_minutes(lowered)
            return {"work_minutes": work, "break_minutes": rest}
        return {}
