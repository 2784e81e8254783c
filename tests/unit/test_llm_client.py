import pytest
from pydantic import BaseModel

from conftest import FakeLLMProvider
from voice_agent.llm.client import LLMClient, LLMConfig
from voice_agent.llm.errors import LLMTimeout
from voice_agent.llm.types import LLMCallContext, StructuredResult


class Classification(BaseModel):
    intent: str
    confidence: float


def _client(primary, **kwargs):
    providers = {"openai": primary, **kwargs.pop("providers", {})}
    return LLMClient(providers=providers, default_model="gpt-test", **kwargs)


MESSAGES = [
    {"role": "system", "content": "Classify the caller request."},
    {"role": "user", "content": "¿a qué hora abren?"},
]


@pytest.mark.asyncio
async def test_invoke_text_builds_request():
    provider = FakeLLMProvider(script=["Abrimos a las 13:00."])
    client = _client(provider)

    out = await client.invoke_text(
        MESSAGES,
        config=LLMConfig(temperature=0.1, max_tokens=50, retries=1),
        context=LLMCallContext(call_id="call-1", tenant_id="rest-1", node="response_generator", task="rag_response"),
    )

    assert out == "Abrimos a las 13:00."
    req = provider.calls[0]
    assert req.model == "gpt-test"
    assert req.temperature == 0.1
    assert req.max_output_tokens == 50
    assert [m.role for m in req.messages] == ["system", "user"]
    assert req.metadata["node"] == "response_generator"
    assert req.metadata["task"] == "rag_response"


@pytest.mark.asyncio
async def test_invoke_text_model_override():
    provider = FakeLLMProvider(script=["ok"])
    await _client(provider).invoke_text(MESSAGES, config=LLMConfig(model="gpt-other", retries=1))
    assert provider.calls[0].model == "gpt-other"


@pytest.mark.asyncio
async def test_invoke_text_rejects_unknown_role():
    provider = FakeLLMProvider()
    with pytest.raises(ValueError, match="Unknown role"):
        await _client(provider).invoke_text([{"role": "tool", "content": "x"}], config=LLMConfig())
    assert provider.calls == []


@pytest.mark.asyncio
async def test_invoke_text_uses_fallback_provider():
    primary = FakeLLMProvider(script=[LLMTimeout("slow")])
    backup = FakeLLMProvider(name="backup", script=["from backup"])
    client = _client(
        primary,
        providers={"backup": backup},
        fallback_provider="backup",
        fallback_model="gpt-small",
    )

    out = await client.invoke_text(MESSAGES, config=LLMConfig(retries=1))

    assert out == "from backup"
    assert backup.calls[0].model == "gpt-small"


@pytest.mark.asyncio
async def test_invoke_structured_parses_schema():
    provider = FakeLLMProvider(script=['```json\n{"intent": "rag", "confidence": 0.9}\n```'])

    parsed = await _client(provider).invoke_structured(Classification, MESSAGES, LLMConfig(retries=1))

    assert parsed == Classification(intent="rag", confidence=0.9)
    system = provider.calls[0].messages[0]
    assert system.role == "system"
    assert system.content.startswith("Classify the caller request.\n\n")
    assert "confidence" in system.content


@pytest.mark.asyncio
async def test_invoke_structured_adds_system_message_when_missing():
    provider = FakeLLMProvider(script=['{"intent": "direct", "confidence": 0.5}'])

    await _client(provider).invoke_structured(Classification, [MESSAGES[1]], LLMConfig(retries=1))

    assert [m.role for m in provider.calls[0].messages] == ["system", "user"]


@pytest.mark.asyncio
async def test_invoke_structured_parse_error_raises():
    provider = FakeLLMProvider(script=['{"intent": "rag"}'])
    with pytest.raises(ValueError):
        await _client(provider).invoke_structured(Classification, MESSAGES, LLMConfig(retries=1))


@pytest.mark.asyncio
async def test_invoke_structured_include_raw():
    provider = FakeLLMProvider(script=["no json here"])

    result = await _client(provider).invoke_structured(
        Classification, MESSAGES, LLMConfig(retries=1), include_raw=True
    )

    assert isinstance(result, StructuredResult)
    assert result.parsed is None
    assert result.raw == "no json here"
    assert result.parsing_error
