"""Chat orchestration.

One pipeline serves both response modes:

    safety -> boutique fast path -> (streaming) simple-question fast path
    -> intent analysis -> Wanderer / Tinkerer / Noah direct -> artifacts
    -> analytics and memory bookkeeping

Agent failures fall back to a direct Noah answer. Anything else that goes
wrong is turned into a user-facing message; the HTTP layer never sees a 500
for a chat turn.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from noah.agents.base import AgentRequest, BaseAgent
from noah.agents.prompts import CHAT_SYSTEM_PROMPT, SIMPLE_QUESTION_PROMPT
from noah.agents.registry import AgentRegistry
from noah.agents.tinkerer import build_prompt
from noah.analytics.service import AnalyticsService, analytics_service
from noah.analytics.session import generate_session_fingerprint
from noah.artifacts.parser import StructuredArtifact, infer_category, infer_complexity, infer_tool_type
from noah.artifacts.service import (
    ArtifactResult,
    ArtifactService,
    ConversationState,
    artifact_service,
    summarize_for_chat,
)
from noah.config import Settings, TaskType, get_settings
from noah.core.exceptions import NoahException, OperationTimeoutError, ProviderError
from noah.core.logging import bind_session, get_logger
from noah.core.time import elapsed_ms
from noah.core.timeouts import with_timeout
from noah.intent.analyzer import CLARIFICATION_PROMPT, RequestAnalysis, analyze_request, is_simple_question
from noah.knowledge.service import KnowledgeService
from noah.memory.enricher import ContextEnricher
from noah.memory.extractor import ObservationExtractor
from noah.memory.service import MCPMemoryService, get_memory_service
from noah.providers.base import BaseProvider, ChatMessage, ChatRequest
from noah.providers.registry import ProviderRegistry
from noah.safety.service import NoahSafetyService
from noah.streaming.sse import replay_text
from noah.tools.boutique_detector import BoutiqueIntentDetector
from noah.tools.renderer import render_boutique_tool

logger = get_logger(__name__)

EMPTY_MESSAGES_REPLY = "I didn't receive any messages to respond to. Want to try sending me something?"
ERROR_REPLY = "I'm experiencing technical difficulties. The specific issue: {error}"
TIMEOUT_REPLY = (
    "I'm taking longer than usual to respond. This might be a good time to tell me to get "
    "my act together. The technical issue is: {error}"
)
BOUTIQUE_REPLY = (
    "Here's your {title}. It's ready to use right away and has been saved to your toolbox."
)

NOAH_TEMPERATURE = 0.7
NOAH_MAX_TOKENS = 4000
SIMPLE_TEMPERATURE = 0.3
SIMPLE_MAX_TOKENS = 150

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_RADIO_SILENCE = "radio_silence"
STATUS_INTERFACE_LOCKED = "interface_locked"


@dataclass
class ChatInput:
    messages: List[ChatMessage]
    skeptic_mode: bool = False
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None

    @property
    def last_message(self) -> str:
        return self.messages[-1].content if self.messages else ""

    @property
    def history(self) -> List[str]:
        return [message.content for message in self.messages[:-1]]


@dataclass
class ChatResult:
    content: str
    status: str = STATUS_SUCCESS
    agent: str = "noah"
    strategy: Optional[str] = None
    artifact: Optional[ArtifactResult] = None
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": self.content, "status": self.status, "agent": self.agent}
        if self.artifact is not None and self.artifact.has_artifact:
            payload["artifact"] = {"title": self.artifact.title, "content": self.artifact.content}
        return payload


@dataclass
class ChatStream:
    """Streaming reply. Status and agent are settled before the first chunk."""

    chunks: AsyncIterator[str]
    status: str = STATUS_SUCCESS
    agent: str = "noah"
    strategy: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class _Turn:
    """Per-request bookkeeping shared by both response modes."""

    chat_input: ChatInput
    state: ConversationState
    started: float = field(default_factory=time.perf_counter)


def error_reply(exc: BaseException) -> str:
    message = str(exc)
    if isinstance(exc, OperationTimeoutError) or "timeout" in message.lower() or "timed out" in message.lower():
        return TIMEOUT_REPLY.format(error=message)
    return ERROR_REPLY.format(error=message)


class ChatOrchestrator:
    def __init__(
        self,
        providers: ProviderRegistry,
        agents: AgentRegistry,
        settings: Optional[Settings] = None,
        safety: Optional[NoahSafetyService] = None,
        analytics: AnalyticsService = analytics_service,
        artifacts: ArtifactService = artifact_service,
        memory: Optional[MCPMemoryService] = None,
        knowledge: Optional[KnowledgeService] = None,
    ):
        self.settings = settings or get_settings()
        self.providers = providers
        self.agents = agents
        self.safety = safety or NoahSafetyService(lock_threshold=self.settings.safety_lock_threshold)
        self.analytics = analytics
        self.artifacts = artifacts
        self.memory = memory or get_memory_service()
        if knowledge is None:
            knowledge = KnowledgeService(
                context_limit=self.settings.rag_context_limit,
                relevance_threshold=self.settings.rag_relevance_threshold,
            )
        self.knowledge = knowledge
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_chat(self, chat_input: ChatInput) -> ChatResult:
        if not chat_input.messages:
            return ChatResult(content=EMPTY_MESSAGES_REPLY, status=STATUS_ERROR)

        turn: Optional[_Turn] = None
        try:
            turn = await self._begin(chat_input)
            blocked = self._screen(turn)
            if blocked is not None:
                return blocked

            boutique = self._boutique(turn)
            if boutique is not None:
                return boutique

            self._log_message(turn, "user", chat_input.last_message)
            analysis = self._analyze(chat_input.last_message)
            try:
                if analysis.delegates:
                    content, agent, strategy = await self._delegate(turn, analysis)
                else:
                    content = await self._noah_direct(turn, analysis)
                    agent, strategy = "noah", "noah_direct"
            except NoahException as exc:
                logger.error("Agent orchestration failed, Noah answering directly", data={"error": str(exc)})
                content = await self._noah_direct(turn, analysis)
                agent, strategy = "noah", "noah_direct_fallback"

            return self._complete(turn, content, agent, strategy)
        except Exception as exc:
            logger.error("Chat handler failed", data={"error": str(exc), "error_type": type(exc).__name__})
            if turn is not None:
                self.analytics.update_conversation_status(turn.state.conversation_id, "error")
            return ChatResult(
                content=error_reply(exc),
                status=STATUS_ERROR,
                session_id=turn.state.session_id if turn else None,
            )

    async def stream_chat(self, chat_input: ChatInput) -> ChatStream:
        if not chat_input.messages:
            return ChatStream(chunks=replay_text(EMPTY_MESSAGES_REPLY), status=STATUS_ERROR)

        turn: Optional[_Turn] = None
        try:
            turn = await self._begin(chat_input)
            session_id = turn.state.session_id

            blocked = self._screen(turn)
            if blocked is not None:
                return ChatStream(
                    chunks=replay_text(""),
                    status=blocked.status,
                    strategy=blocked.strategy,
                    session_id=session_id,
                )

            boutique = self._boutique(turn)
            if boutique is not None:
                return ChatStream(
                    chunks=replay_text(boutique.content),
                    strategy=boutique.strategy,
                    session_id=session_id,
                )

            last = chat_input.last_message
            if is_simple_question(last):
                logger.info("Simple question fast path")
                self._log_message(turn, "user", last)
                provider, request = self._direct_request(
                    chat_input.messages,
                    SIMPLE_QUESTION_PROMPT,
                    temperature=SIMPLE_TEMPERATURE,
                    max_tokens=SIMPLE_MAX_TOKENS,
                )
                return ChatStream(
                    chunks=self._live_stream(turn, provider, request, "noah_simple"),
                    strategy="noah_simple",
                    session_id=session_id,
                )

            self._log_message(turn, "user", last)
            analysis = self._analyze(last)
            strategy = "noah_direct"
            if analysis.delegates:
                try:
                    content, agent, strategy = await self._delegate(turn, analysis)
                except NoahException as exc:
                    logger.error(
                        "Agent orchestration failed, Noah streaming directly",
                        data={"error": str(exc)},
                    )
                    strategy = "noah_direct_fallback"
                else:
                    result = self._complete(turn, content, agent, strategy)
                    return ChatStream(
                        chunks=replay_text(result.content),
                        agent=result.agent,
                        strategy=strategy,
                        session_id=session_id,
                    )

            system = await self._system_prompt(turn, analysis)
            provider, request = self._direct_request(chat_input.messages, system)
            return ChatStream(
                chunks=self._live_stream(turn, provider, request, strategy),
                strategy=strategy,
                session_id=session_id,
            )
        except Exception as exc:
            logger.error("Streaming chat handler failed", data={"error": str(exc), "error_type": type(exc).__name__})
            if turn is not None:
                self.analytics.update_conversation_status(turn.state.conversation_id, "error")
            return ChatStream(
                chunks=replay_text(error_reply(exc)),
                status=STATUS_ERROR,
                session_id=turn.state.session_id if turn else None,
            )

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _begin(self, chat_input: ChatInput) -> _Turn:
        """Resolve analytics ids. The session key falls back to the fingerprint when the DB is down."""
        fingerprint = generate_session_fingerprint(
            chat_input.user_agent, chat_input.client_ip, self.settings.environment
        )
        session_id = await self.analytics.ensure_session(chat_input.user_agent, chat_input.client_ip)
        conversation_id = None
        if session_id:
            conversation_id = await self.analytics.start_conversation(session_id, chat_input.skeptic_mode)

        state = ConversationState(session_id=session_id or fingerprint, conversation_id=conversation_id)
        bind_session(state.session_id)
        logger.debug(
            "Conversation state initialized",
            data={"tracked": state.tracked, "conversation_id": conversation_id},
        )
        return _Turn(chat_input=chat_input, state=state)

    def _screen(self, turn: _Turn) -> Optional[ChatResult]:
        """Safety gate. Returns the silent reply for a blocked message, else None."""
        state = turn.state
        verdict = self.safety.check_user_message(
            turn.chat_input.last_message,
            session_id=state.session_id,
            conversation_id=state.conversation_id,
            history=turn.chat_input.history,
        )
        if verdict.is_allowed:
            return None

        violation = verdict.result.violation_type or "unknown"
        logger.warning(
            "Radio silence activated",
            data={"violation_type": violation, "interface_locked": verdict.interface_locked},
        )
        self._log_message(turn, "user", f"[SAFETY_VIOLATION] {violation}: Content filtered")
        self.analytics.update_conversation_status(
            state.conversation_id,
            "abandoned",
            agent_strategy="radio_silence",
            conversation_length=state.message_sequence,
        )
        return ChatResult(
            content="",
            status=STATUS_INTERFACE_LOCKED if verdict.interface_locked else STATUS_RADIO_SILENCE,
            strategy="radio_silence",
            session_id=state.session_id,
        )

    def _boutique(self, turn: _Turn) -> Optional[ChatResult]:
        """Serve a prebuilt tool without calling the LLM."""
        last = turn.chat_input.last_message
        intent = BoutiqueIntentDetector.detect_intent(last)
        if not intent.detected:
            return None

        logger.info(
            "Boutique tool matched",
            data={"tool": intent.tool_name, "confidence": intent.confidence},
        )
        tool = render_boutique_tool(intent)
        self._log_message(turn, "user", last)
        artifact = self.artifacts.record(
            StructuredArtifact(
                title=tool.title,
                content=tool.content,
                type=infer_tool_type(tool.title, tool.content),
                category=infer_category(tool.title, tool.content),
                complexity=infer_complexity(tool.content),
            ),
            last,
            turn.state,
            agent="noah",
            generation_time_ms=elapsed_ms(turn.started),
        )
        content = BOUTIQUE_REPLY.format(title=tool.title)
        self._log_message(
            turn,
            "assistant",
            content,
            response_time_ms=elapsed_ms(turn.started),
            agent_involved="noah",
            has_artifact=True,
        )
        self._finish_conversation(turn, "boutique")
        self._remember(turn, content, artifact)
        return ChatResult(
            content=content,
            strategy="boutique",
            artifact=artifact,
            session_id=turn.state.session_id,
        )

    def _analyze(self, content: str) -> RequestAnalysis:
        analysis = analyze_request(content)
        logger.info(
            "Request analyzed",
            data={
                "needs_research": analysis.needs_research,
                "needs_building": analysis.needs_building,
                "is_ambiguous": analysis.is_ambiguous,
                "confidence": analysis.confidence,
                "reasoning": analysis.reasoning,
            },
        )
        return analysis

    async def _ask(self, agent: BaseAgent, content: str, session_id: Optional[str], seconds: float) -> str:
        response = await with_timeout(
            agent.process_request(AgentRequest(content=content, session_id=session_id)),
            seconds,
            operation=agent.id,
        )
        if response.failed:
            raise ProviderError(f"{agent.id} failed: {response.reasoning}", provider=agent.id)
        return response.content

    async def _delegate(self, turn: _Turn, analysis: RequestAnalysis) -> Tuple[str, str, str]:
        """Run Wanderer and/or Tinkerer. Returns ``(content, agent, strategy)``."""
        last = turn.chat_input.last_message
        session_id = turn.state.session_id
        research: Optional[str] = None

        if analysis.needs_research:
            logger.info("Delegating to Wanderer for research")
            wanderer = await self.agents.wanderer()
            research = await self._ask(wanderer, last, session_id, self.settings.wanderer_timeout_seconds)
            if not analysis.needs_building:
                return research, "wanderer", "noah_wanderer"

        logger.info("Delegating to Tinkerer for building", data={"with_research": research is not None})
        tinkerer = await self.agents.tinkerer()
        tool = await self._ask(
            tinkerer,
            build_prompt(last, research),
            session_id,
            self.settings.tinkerer_timeout_seconds,
        )
        return tool, "tinkerer", "noah_wanderer_tinkerer" if research is not None else "noah_tinkerer"

    async def _system_prompt(self, turn: _Turn, analysis: Optional[RequestAnalysis]) -> str:
        prompt = CHAT_SYSTEM_PROMPT
        if self.settings.rag_enabled:
            prompt = self.knowledge.build_rag_system_prompt(turn.chat_input.last_message, prompt)
        memory_context = await self.memory.retrieve_session_context(turn.state.session_id)
        prompt = ContextEnricher.enrich_system_prompt(memory_context, prompt)
        if analysis is not None and analysis.is_ambiguous:
            prompt += CLARIFICATION_PROMPT
        return prompt

    def _direct_request(
        self,
        messages: List[ChatMessage],
        system: str,
        temperature: float = NOAH_TEMPERATURE,
        max_tokens: int = NOAH_MAX_TOKENS,
    ) -> Tuple[BaseProvider, ChatRequest]:
        provider, model = self.providers.for_task(TaskType.DEFAULT)
        return provider, ChatRequest(
            messages=list(messages),
            model=model,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def _noah_direct(self, turn: _Turn, analysis: Optional[RequestAnalysis]) -> str:
        logger.info("Noah handling directly")
        system = await self._system_prompt(turn, analysis)
        provider, request = self._direct_request(turn.chat_input.messages, system)
        response = await with_timeout(
            provider.chat_once(request),
            self.settings.noah_timeout_seconds,
            operation="noah",
        )
        return response.content

    async def _live_stream(
        self,
        turn: _Turn,
        provider: BaseProvider,
        request: ChatRequest,
        strategy: str,
    ) -> AsyncIterator[str]:
        """Forward provider tokens, then do the bookkeeping once the reply is complete."""
        parts: List[str] = []
        try:
            async for chunk in provider.chat_stream(request):
                if chunk.content:
                    parts.append(chunk.content)
                    yield chunk.content
        except Exception as exc:
            logger.error("Streaming response failed", data={"error": str(exc), "strategy": strategy})
            self.analytics.update_conversation_status(turn.state.conversation_id, "error")
            yield ("\n\n" if parts else "") + error_reply(exc)
            return

        self._complete(turn, "".join(parts), "noah", strategy)

    def _complete(self, turn: _Turn, content: str, agent: str, strategy: str) -> ChatResult:
        """Log the reply, pull out any artifact and close the conversation record."""
        state = turn.state
        response_time = elapsed_ms(turn.started)
        logger.info(
            "Chat response completed",
            data={
                "agent": agent,
                "strategy": strategy,
                "response_length": len(content),
                "response_time_ms": response_time,
            },
        )

        artifact = self.artifacts.handle_artifact_workflow(
            content,
            turn.chat_input.last_message,
            state.session_id,
            conversation_state=state,
            agent=agent,
            generation_time_ms=response_time,
        )
        self._log_message(
            turn,
            "assistant",
            content,
            response_time_ms=response_time,
            agent_involved=agent,
            has_artifact=artifact.has_artifact,
        )

        final_content = artifact.reply if artifact.reply is not None else content
        if artifact.has_artifact and artifact.title and artifact.content:
            final_content = summarize_for_chat(final_content, artifact.title)

        self._finish_conversation(turn, strategy)
        self._remember(turn, content, artifact)
        return ChatResult(
            content=final_content,
            agent=agent,
            strategy=strategy,
            artifact=artifact if artifact.has_artifact else None,
            session_id=state.session_id,
        )

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _log_message(self, turn: _Turn, role: str, content: str, **kwargs: Any) -> None:
        state = turn.state
        if not state.tracked:
            return
        self.analytics.log_message(
            state.conversation_id,
            state.session_id,
            state.next_sequence(),
            role,
            content,
            **kwargs,
        )

    def _finish_conversation(self, turn: _Turn, strategy: str) -> None:
        self.analytics.update_conversation_status(
            turn.state.conversation_id,
            "completed",
            agent_strategy=strategy,
            conversation_length=turn.state.message_sequence,
        )

    def _remember(self, turn: _Turn, reply: str, artifact: Optional[ArtifactResult]) -> None:
        if not self.memory.available:
            return
        messages = list(turn.chat_input.messages) + [ChatMessage(role="assistant", content=reply)]
        has_artifact = artifact is not None and artifact.has_artifact
        observations = ObservationExtractor.extract_all_observations(
            messages,
            artifact_generated=has_artifact,
            artifact_id=artifact.tool_id if has_artifact else None,
            artifact_title=artifact.title if has_artifact else None,
        )
        if observations:
            self._spawn(self._store_observations(turn.state.session_id, observations))

    async def _store_observations(self, session_id: str, observations: list) -> None:
        for observation in observations:
            await self.memory.store_observation(
                session_id,
                observation.entity_name,
                observation.entity_type,
                observation.observation,
            )

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for background memory writes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
