"""Structured response parser.

Turns raw LLM output into a ``StructuredResponse``. Strategies are tried in
order and the first that succeeds wins:

1. the whole reply is a JSON object
2. a fenced ```json block, or a raw JSON object containing ``"content"``
3. the legacy ``TITLE:`` / ``TOOL:`` / ``REASONING:`` text format
4. plain conversation
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from noah.core.logging import get_logger

logger = get_logger(__name__)

RESPONSE_TYPES = ("conversation", "tool-generation", "research", "clarification")

_FENCED_JSON = re.compile(r"```json\s*(\{[\s\S]*?\})\s*```")
_RAW_JSON = re.compile(r"(\{[\s\S]*\"content\"[\s\S]*?\})")
_TITLE = re.compile(r"TITLE:\s*(.+)")
_TOOL = re.compile(r"TOOL:\s*([\s\S]+?)(?:\n\nREASONING:|$)")
_REASONING = re.compile(r"REASONING:\s*([\s\S]+?)$")

_ADVANCED = re.compile(r"class|interface|async|await|fetch|api", re.IGNORECASE)
_COMPLEX = re.compile(r"for\s*\(|while\s*\(|switch\s*\(|try\s*\{|catch\s*\(", re.IGNORECASE)


@dataclass
class StructuredArtifact:
    title: str
    content: str
    type: str = "other"
    category: str = "display"
    description: str = ""
    complexity: str = "simple"


@dataclass
class StructuredResponse:
    content: str
    response_type: str
    confidence: float
    agent_used: str = "noah"
    artifact: Optional[StructuredArtifact] = None
    reasoning: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParseResult:
    success: bool
    response: Optional[StructuredResponse] = None
    fallback_content: Optional[str] = None
    error: Optional[str] = None


def _is_valid_artifact(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("title"), str)
        and bool(value["title"].strip())
        and isinstance(value.get("content"), str)
        and bool(value["content"].strip())
    )


def _is_valid_response(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    confidence = value.get("confidence")
    return (
        isinstance(value.get("content"), str)
        and value.get("responseType") in RESPONSE_TYPES
        and isinstance(confidence, (int, float))
        and not isinstance(confidence, bool)
    )


def infer_tool_type(title: str, content: str) -> str:
    title_lower = title.lower()
    content_lower = content.lower()
    if "calculator" in title_lower or "calculate" in content_lower:
        return "calculator"
    if "dashboard" in title_lower or "dashboard" in content_lower:
        return "dashboard"
    if "component" in title_lower or "component" in content_lower:
        return "component"
    if "app" in title_lower or "application" in content_lower:
        return "app"
    if "utility" in title_lower or "utility" in content_lower:
        return "utility"
    if "tool" in title_lower:
        return "tool"
    return "other"


def infer_category(title: str, content: str) -> str:
    combined = f"{title} {content}".lower()
    if any(word in combined for word in ("interactive", "click", "button")):
        return "interactive"
    if any(word in combined for word in ("chart", "graph", "visualization")):
        return "visualization"
    if "game" in combined or "play" in combined:
        return "game"
    if "productivity" in combined or "organize" in combined:
        return "productivity"
    if "data" in combined or "process" in combined:
        return "data-processing"
    return "display"


def infer_complexity(content: str) -> str:
    length = len(content)
    if length > 3000 or _ADVANCED.search(content):
        return "advanced"
    if length > 1500 or _COMPLEX.search(content):
        return "complex"
    if length > 500:
        return "moderate"
    return "simple"


class StructuredResponseParser:
    """Parse LLM output into a structured response with an optional artifact."""

    @classmethod
    def parse(cls, content: str, agent_used: str = "noah") -> ParseResult:
        try:
            for strategy in (cls._parse_json, cls._extract_from_mixed, cls._parse_legacy):
                result = strategy(content, agent_used)
                if result.success:
                    logger.debug(
                        f"Parsed response with {strategy.__name__}",
                        data={
                            "agent_used": agent_used,
                            "has_artifact": result.response.artifact is not None,
                        },
                    )
                    return result

            return ParseResult(
                success=True,
                response=StructuredResponse(
                    content=content,
                    response_type="conversation",
                    confidence=0.8,
                    agent_used=agent_used,
                ),
            )
        except (TypeError, ValueError, AttributeError) as exc:
            logger.error(
                "Failed to parse response with all strategies",
                data={"error": str(exc), "content_length": len(content or ""), "agent_used": agent_used},
            )
            return ParseResult(success=False, fallback_content=content, error=str(exc))

    @staticmethod
    def _parse_json(content: str, agent_used: str) -> ParseResult:
        trimmed = content.strip()
        if not (trimmed.startswith("{") and trimmed.endswith("}")):
            return ParseResult(success=False)
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            return ParseResult(success=False)
        if not _is_valid_response(parsed):
            return ParseResult(success=False)

        artifact = None
        raw_artifact = parsed.get("artifact")
        if raw_artifact is not None:
            if _is_valid_artifact(raw_artifact):
                artifact = StructuredArtifact(
                    title=raw_artifact["title"].strip(),
                    content=raw_artifact["content"],
                    type=raw_artifact.get("type") or "other",
                    category=raw_artifact.get("category") or "display",
                    description=raw_artifact.get("description") or "",
                    complexity=raw_artifact.get("complexity") or infer_complexity(raw_artifact["content"]),
                )
            else:
                logger.warning("Invalid artifact in structured response, dropping it", data={"agent_used": agent_used})

        return ParseResult(
            success=True,
            response=StructuredResponse(
                content=parsed["content"],
                response_type=parsed["responseType"],
                confidence=float(parsed["confidence"]),
                agent_used=parsed.get("agentUsed") or agent_used,
                artifact=artifact,
                reasoning=parsed.get("reasoning"),
                metadata=parsed.get("metadata") or {},
            ),
        )

    @classmethod
    def _extract_from_mixed(cls, content: str, agent_used: str) -> ParseResult:
        fenced = _FENCED_JSON.search(content)
        if fenced:
            return cls._parse_json(fenced.group(1), agent_used)
        raw = _RAW_JSON.search(content)
        if raw:
            return cls._parse_json(raw.group(1), agent_used)
        return ParseResult(success=False)

    @staticmethod
    def _parse_legacy(content: str, agent_used: str) -> ParseResult:
        if "TITLE:" not in content or "TOOL:" not in content:
            return ParseResult(success=False)

        title_match = _TITLE.search(content)
        tool_match = _TOOL.search(content)
        if not title_match or not tool_match:
            return ParseResult(success=False)

        title = title_match.group(1).strip()
        tool_content = tool_match.group(1).strip()
        if not title or not tool_content:
            return ParseResult(success=False)

        reasoning_match = _REASONING.search(content)
        artifact = StructuredArtifact(
            title=title,
            content=tool_content,
            type=infer_tool_type(title, tool_content),
            category=infer_category(title, tool_content),
            description=f"Generated tool: {title}",
            complexity=infer_complexity(tool_content),
        )
        return ParseResult(
            success=True,
            response=StructuredResponse(
                content=content,
                response_type="tool-generation",
                confidence=0.7,
                agent_used=agent_used,
                artifact=artifact,
                reasoning=reasoning_match.group(1).strip() if reasoning_match else None,
            ),
        )
