"""Request classification: should Noah answer, research, build, or ask?

A priority-ordered keyword/regex match over the latest user message. There is
no scoring model; the first decisive rule wins and misclassification simply
routes the message down the wrong branch.
"""

import re
from dataclasses import dataclass
from typing import Tuple

NOAH_CAN_HANDLE = (
    "list", "template", "guide", "email", "letter", "checklist", "outline",
    "summary", "plan", "advice", "tips", "steps", "instructions", "format",
    "structure", "framework", "process", "workflow", "schedule", "agenda",
)

SIMPLE_WEB_TOOLS = (
    "calculator", "converter", "timer", "counter", "form", "quiz",
    "calendar", "simple game", "color picker", "text formatter", "notepad",
    "todo", "stopwatch", "clock", "random generator", "password generator",
)

CREATIVE_THINKING = (
    "creative approach", "think differently", "alternative perspective", "brainstorm",
    "out of the box", "unconventional", "innovative angle", "fresh perspective",
    "paradigm shift", "reframe", "lateral thinking", "creative solution",
)

COMPLEX_INTERACTIVE = (
    "interactive dashboard", "data visualization", "advanced app", "full application",
    "database integration", "api integration", "multi-page", "complex interface",
    "sophisticated tool", "advanced calculator", "data analysis tool", "visualization",
)

RESEARCH_INDICATORS = (
    "research and compare", "market analysis", "competitive analysis",
    "comprehensive study", "detailed investigation", "industry trends",
    "state of the art analysis", "benchmark study", "feasibility study",
)

BASIC_ADVICE = ("how to", "explain", "help me understand")

BUILD_VERBS = r"(?:build|create|make|generate|code|develop|design|write)"

TOOL_NOUNS = (
    r"(?:calculator|converter|timer|stopwatch|clock|counter|tracker|dashboard|app|application|"
    r"tool|widget|form|quiz|game|visuali[sz]ation|chart|calendar|notepad|todo|to-do|"
    r"generator|planner|checker|picker|formatter|website|web ?page|page|component|script|program)s?"
)

# "build me a calculator", "create a simple habit tracker", "make an app for..."
_BUILD_REQUEST = re.compile(
    rf"\b{BUILD_VERBS}\s+(?:(?:me|us)\s+)?"
    r"(?:a|an|the|my|our|some|another|one|simple|small|quick|basic|little)\b"
    rf"(?:\s+\S+){{0,4}}?\s+{TOOL_NOUNS}\b"
)

# "what is a build tool?", "how do I write a script in bash?"
_INFORMATIONAL_QUESTION = re.compile(
    r"^\s*(?:(?:what|why|who|when|where|which)\b(?!\s+if\b)"
    r"|how\s+(?:to|do|does|did|should|would)\b)"
)

_NEGATION = re.compile(
    rf"\b(?:don'?t|do not|no need to|not asking (?:you )?to|without|never|stop)\s+"
    rf"(?:\w+\s+){{0,2}}?{BUILD_VERBS}"
)

# A build verb whose object is missing or a bare pronoun
_VAGUE_BUILD = re.compile(
    rf"\b{BUILD_VERBS}\s+(?:me\s+)?(?:it|this|that|something|anything|one|stuff|things?)\b"
    r"(?:\s+(?:for me|please|now|again))?\s*[?.!]*\s*$"
)
_BARE_BUILD = re.compile(rf"^\s*(?:can you|could you|please|pls)?\s*{BUILD_VERBS}\s*[?.!]*\s*$")

SIMPLE_QUESTION_PATTERNS = (
    "what is", "who is", "when is", "where is", "how many", "what are",
    "capital of", "population of", "currency of", "language of",
    "definition of", "meaning of", "explain", "define",
)

CLARIFICATION_PROMPT = (
    "\n\nThe user asked you to build something but did not say what. "
    "Ask one short, specific question about what they want built before creating anything."
)


@dataclass
class RequestAnalysis:
    needs_research: bool
    needs_building: bool
    is_ambiguous: bool
    confidence: float
    reasoning: str

    @property
    def delegates(self) -> bool:
        return self.needs_research or self.needs_building


def _contains_any(text: str, phrases: Tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)


def _result(research: bool, build: bool, reasoning: str, ambiguous: bool = False) -> RequestAnalysis:
    if ambiguous:
        confidence = 0.6
    elif research or build:
        confidence = 0.8
    else:
        confidence = 0.9
    return RequestAnalysis(
        needs_research=research,
        needs_building=build,
        is_ambiguous=ambiguous,
        confidence=confidence,
        reasoning=reasoning,
    )


def analyze_request(content: str) -> RequestAnalysis:
    """Classify the latest user message."""
    text = content.lower().strip()

    needs_complex = _contains_any(text, COMPLEX_INTERACTIVE)
    needs_research = _contains_any(text, RESEARCH_INDICATORS)
    needs_creative = _contains_any(text, CREATIVE_THINKING)

    if _NEGATION.search(text):
        if needs_research:
            return _result(True, False, "Building explicitly declined; research still requested - delegate to Wanderer")
        return _result(False, False, "User asked not to build anything - Noah handles directly")

    if needs_research and needs_complex:
        return _result(True, True, "Complex request requiring research then sophisticated implementation")

    if needs_complex or (_BUILD_REQUEST.search(text) and not _INFORMATIONAL_QUESTION.match(text)):
        return _result(False, True, "Tool build request - delegate to Tinkerer")

    if needs_creative:
        return _result(True, False, "Needs genuine creative/sideways thinking - delegate to Wanderer")

    if needs_research:
        return _result(True, False, "Comprehensive research needed - delegate to Wanderer")

    if _VAGUE_BUILD.search(text) or _BARE_BUILD.match(text):
        return _result(False, False, "Build request without a clear object - Noah asks for clarification", ambiguous=True)

    if (
        _contains_any(text, NOAH_CAN_HANDLE)
        or _contains_any(text, SIMPLE_WEB_TOOLS)
        or _contains_any(text, BASIC_ADVICE)
    ):
        return _result(False, False, "Simple tool/advice - Noah handles directly for natural flow")

    return _result(False, False, "Conversational request - Noah handles directly")


def is_simple_question(content: str) -> bool:
    """Short factual question that can skip the agent pipeline entirely."""
    text = content.lower()
    if len(content) >= 100:
        return False
    if any(word in text for word in ("create", "build", "make")):
        return False
    return any(pattern in text for pattern in SIMPLE_QUESTION_PATTERNS)
