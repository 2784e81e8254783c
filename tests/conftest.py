import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, List

import pytest

from voice_agent.agent.graph import build_turn_graph
from voice_agent.agent.nodes import AgentNodes
from voice_agent.config import AgentSettings
from voice_agent.graphs.state import create_initial_state
from voice_agent.llm.base import LLMProvider
from voice_agent.llm.types import LLMMessage, LLMRequest, LLMResponse, LLMUsage
from voice_agent.orchestrator.service import TurnOrchestrator
from voice_agent.rag.search import KeywordKnowledgeRetriever
from voice_agent.tools.builtin import default_registry
from voice_agent.tools.memory_store import InMemoryBusinessStore

TENANT = "rest-1"


def make_state(current_input: str = "", **overrides):
    state = create_initial_state(
        call_id="call-1",
        tenant_id=TENANT,
        current_input=current_input,
        locale=overrides.pop("locale", "es"),
        trace_id="trace-1",
    )
    state.update(overrides)
    return state


@pytest.fixture
def base_request():
    return LLMRequest(
        messages=[
            LLMMessage(role="system", content="You are helpful."),
            LLMMessage(role="user", content="Hola"),
        ],
        model="gpt-test",
        temperature=0.2,
        max_output_tokens=32,
        metadata={"call_id": "call-1", "node": "router", "task": "unit_test"},
    )


@dataclass
class FakeLLMProvider(LLMProvider):
    name: str = "fake"
    script: List[Any] = field(default_factory=lambda: ["ok"])
    calls: List[LLMRequest] = field(default_factory=list)

    async def generate(self, req: LLMRequest) -> LLMResponse:
        await asyncio.sleep(0)
        self.calls.append(req)
        item = self.script.pop(0) if self.script else "ok"
        if isinstance(item, Exception):
            raise item
        return LLMResponse(
            content=str(item),
            model=req.model,
            provider=self.name,
            usage=LLMUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
            latency_ms=1,
            finish_reason="stop",
        )


@pytest.fixture
def fake_provider():
    return FakeLLMProvider()


@pytest.fixture
def store():
    return InMemoryBusinessStore(
        businesses={
            TENANT: {
                "name": "La Terraza",
                "settings": {"capacity": 2, "slots": ["13:00", "14:00", "20:00", "21:00"]},
            }
        },
        knowledge={
            TENANT: [
                {"id": "k-hours", "category": "hours", "title": "Horario", "content": "Abrimos de martes a domingo de 13:00 a 23:00."},
                {"id": "k-loc", "category": "location", "title": "Ubicación", "content": "Estamos en la calle Mayor 12, Madrid."},
                {"id": "k-menu", "category": "menu", "title": "Menú", "content": "Cocina mediterránea, arroces y pescados."},
                {"id": "k-prices", "category": "prices", "title": "Precios", "content": "El corte de cabello cuesta 250 pesos."},
                {"id": "k-parking", "category": "services", "title": "Estacionamiento", "content": "Tenemos estacionamiento gratuito para clientes."},
            ]
        },
    )


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def build_orchestrator(store, registry):
    def _build(*, llm=None, retriever=None, settings=None, audit=None, telemetry=None, graph_registry=None):
        nodes = AgentNodes.build(
            registry=graph_registry or registry,
            settings=settings or AgentSettings(),
            llm=llm,
            retriever=retriever if retriever is not None else KeywordKnowledgeRetriever(store),
            data=store,
            audit=audit,
            rng=random.Random(7),
        )
        return TurnOrchestrator(graph=build_turn_graph(nodes), telemetry=telemetry)

    return _build


@pytest.fixture
def tmp_secrets_dir(tmp_path, monkeypatch):
    secrets_dir = tmp_path / "secrets"
    secrets_dir.mkdir()
    monkeypatch.setenv("VOICE_AGENT_SECRETS_DIR", str(secrets_dir))
    return secrets_dir
