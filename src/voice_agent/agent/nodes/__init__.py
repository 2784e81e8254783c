from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

from voice_agent.config import AgentSettings
from voice_agent.rag.context_compiler import ContextCompiler
from voice_agent.tools.executor import ToolExecutor
from voice_agent.tools.registry import ToolRegistry

from .confirmation import (
    ConfirmationConfig,
    ConfirmationNode,
    confirmation_confidence,
    generate_confirmation_prompt,
    is_negative_response,
    is_positive_response,
    parse_confirmation_response,
)
from .rag_retrieve import RagRetrieveNode
from .response_generator import (
    ResponseGeneratorConfig,
    ResponseGeneratorNode,
    VoiceResponse,
    format_voice_response,
    get_response_template,
    optimize_for_voice,
    should_end_call,
)
from .router import IntentClassification, IntentRouterNode, RouterConfig, classify_keywords, detect_sub_intent, extract_entities
from .tool_executor import ToolExecutorNode

AsyncNode = Callable[[dict], Awaitable[dict]]


@dataclass
class AgentNodes:
    router: AsyncNode
    rag: AsyncNode
    tool_executor: AsyncNode
    confirmation: AsyncNode
    response_generator: AsyncNode

    def as_dict(self) -> Dict[str, AsyncNode]:
        return {
            "router": self.router,
            "rag": self.rag,
            "tool_executor": self.tool_executor,
            "confirmation": self.confirmation,
            "response_generator": self.response_generator,
        }

    @classmethod
    def build(
        cls,
        *,
        registry: ToolRegistry,
        settings: AgentSettings | None = None,
        llm: Any | None = None,
        retriever: Any | None = None,
        data: Any | None = None,
        audit: Any | None = None,
        rng: Any | None = None,
    ) -> "AgentNodes":
        settings = settings or AgentSettings()
        response_node = ResponseGeneratorNode(
            llm=llm,
            config=ResponseGeneratorConfig(
                max_history_turns=settings.max_history_turns,
                spell_numbers=settings.spell_numbers,
                llm_model=settings.llm_model,
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            ),
        )
        if rng is not None:
            response_node.rng = rng
        return cls(
            router=IntentRouterNode(
                llm=llm,
                registry=registry,
                config=RouterConfig(
                    intent_threshold=settings.intent_threshold,
                    llm_fallback=settings.llm_fallback,
                    llm_model=settings.llm_model,
                ),
            ),
            rag=RagRetrieveNode(
                retriever=retriever,
                compiler=ContextCompiler(max_chars=settings.rag_max_context_chars),
                top_k=settings.rag_top_k,
            ),
            tool_executor=ToolExecutorNode(
                registry=registry,
                executor=ToolExecutor(timeout_s=settings.tool_timeout_s, audit=audit),
                data=data,
            ),
            confirmation=ConfirmationNode(ConfirmationConfig(max_attempts=settings.confirm_max_attempts)),
            response_generator=response_node,
        )


__all__ = [
    "AgentNodes",
    "ConfirmationNode",
    "IntentClassification",
    "IntentRouterNode",
    "RagRetrieveNode",
    "ResponseGeneratorNode",
    "ToolExecutorNode",
    "VoiceResponse",
    "classify_keywords",
    "confirmation_confidence",
    "detect_sub_intent",
    "extract_entities",
    "format_voice_response",
    "generate_confirmation_prompt",
    "get_response_template",
    "is_negative_response",
    "is_positive_response",
    "optimize_for_voice",
    "parse_confirmation_response",
    "should_end_call",
]
