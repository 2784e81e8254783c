import asyncio

import pytest

from conftest import TENANT
from voice_agent.config import AgentSettings
from voice_agent.fakes import FakeAuditSink, FakeLLM, FakeRetriever
from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.patterns.confirmation import CONFIRMATION_MESSAGES, DENIAL_MESSAGES
from voice_agent.patterns.responses import DIRECT_TEMPLATES, FIXED_PHRASES
from voice_agent.tools.builtin import default_tools
from voice_agent.tools.registry import ToolDefinition, ToolRegistry

BOOKING_UTTERANCE = "Quiero reservar una mesa para 4 personas mañana a las 8 de la noche, a nombre de Ana"
BOOKING_PROMPT = "¿Confirma la reservación para 4 personas mañana a las 20:00?"


def _request(text, **extra):
    return {"tenant_id": TENANT, "call_id": "call-42", "input": text, **extra}


def _next_turn(result, text):
    """Carry the persisted fields into the next request, as the transport does."""
    return _request(text, **result.persisted_fields())


@pytest.mark.asyncio
async def test_reservation_is_confirmed_then_executed(build_orchestrator, store):
    audit = FakeAuditSink()
    orchestrator = build_orchestrator(audit=audit)

    first = await orchestrator.run(_request(BOOKING_UTTERANCE))

    assert first.response.text == BOOKING_PROMPT
    assert first.state["intent"] == "tool"
    assert first.metrics["nodes_visited"] == ["router", "tool_executor", "response_generator"]
    persisted = first.persisted_fields()
    assert persisted["confirmation_status"] == "pending"
    assert persisted["pending_tool"]["name"] == "create_reservation"
    assert persisted["pending_tool"]["confirmation_message"] == BOOKING_PROMPT
    assert [m["role"] for m in persisted["messages"]] == ["user", "assistant"]
    assert store.reservations == []

    second = await orchestrator.run(_next_turn(first, "sí"))

    assert second.state["intent"] == "confirm"
    assert second.metrics["nodes_visited"] == ["router", "confirmation", "tool_executor", "response_generator"]
    assert len(store.reservations) == 1
    reservation = store.reservations[0]
    assert reservation["name"] == "Ana"
    assert reservation["guests"] == 4
    assert "cuatro personas" in second.response.text
    assert reservation["id"] in second.response.text
    assert second.response.forward_to_client["action"]["reservation_id"] == reservation["id"]
    assert second.response.end_call is False
    assert second.persisted_fields()["pending_tool"] is None
    assert second.persisted_fields()["confirmation_status"] == "none"
    assert len(second.persisted_fields()["messages"]) == 4
    assert audit.entries[0]["tool"] == "create_reservation"
    assert audit.entries[0]["parameters"]["name"] == "***"
    assert not second.degraded


@pytest.mark.asyncio
async def test_denial_cancels_pending_tool(build_orchestrator, store):
    orchestrator = build_orchestrator()
    first = await orchestrator.run(_request(BOOKING_UTTERANCE))

    second = await orchestrator.run(_next_turn(first, "No, gracias"))

    assert second.response.text == DENIAL_MESSAGES["create_reservation"]["es"]
    assert second.persisted_fields()["pending_tool"] is None
    assert second.persisted_fields()["confirmation_status"] == "denied"
    assert "tool_executor" not in second.metrics["nodes_visited"]
    assert store.reservations == []


@pytest.mark.asyncio
async def test_hesitation_repeats_the_question(build_orchestrator):
    orchestrator = build_orchestrator()
    first = await orchestrator.run(_request(BOOKING_UTTERANCE))

    second = await orchestrator.run(_next_turn(first, "no sé"))

    assert second.response.text == CONFIRMATION_MESSAGES["clarify_prefix"]["es"] + BOOKING_PROMPT
    persisted = second.persisted_fields()
    assert persisted["confirmation_status"] == "pending"
    assert persisted["confirmation_attempts"] == 1
    assert persisted["pending_tool"]["name"] == "create_reservation"


@pytest.mark.asyncio
async def test_too_many_unclear_answers_deny(build_orchestrator, store):
    orchestrator = build_orchestrator()
    first = await orchestrator.run(_request(BOOKING_UTTERANCE))
    request = _next_turn(first, "quizás")
    request["confirmation_attempts"] = 2

    result = await orchestrator.run(request)

    assert result.response.text == CONFIRMATION_MESSAGES["too_many_attempts"]["es"]
    assert result.persisted_fields()["pending_tool"] is None
    assert result.persisted_fields()["confirmation_attempts"] == 0
    assert store.reservations == []


@pytest.mark.asyncio
async def test_question_during_confirmation_keeps_tool_pending(build_orchestrator, store):
    llm = FakeLLM(texts=["El corte cuesta 250 pesos. ¿Confirma la reservación?"])
    orchestrator = build_orchestrator(llm=llm)
    first = await orchestrator.run(_request(BOOKING_UTTERANCE))

    second = await orchestrator.run(_next_turn(first, "¿Cuánto cuesta el corte de cabello?"))

    assert second.state["intent"] == "rag"
    assert second.persisted_fields()["pending_tool"]["name"] == "create_reservation"
    assert second.persisted_fields()["confirmation_status"] == "pending"
    assert store.reservations == []


@pytest.mark.asyncio
async def test_rag_answer_grounded_in_knowledge(build_orchestrator):
    llm = FakeLLM(texts=["El corte de cabello cuesta 250 pesos."])
    orchestrator = build_orchestrator(llm=llm)

    result = await orchestrator.run(_request("¿Cuánto cuesta el corte de cabello?"))

    assert result.response.text == "El corte de cabello cuesta 250 pesos."
    assert result.metrics["nodes_visited"] == ["router", "rag", "response_generator"]
    system_prompt = llm.calls[0]["messages"][0]["content"]
    assert "Precios: El corte de cabello cuesta 250 pesos." in system_prompt
    assert result.state["rag_result"].sources[0]["id"] == "k-prices"


@pytest.mark.asyncio
async def test_rag_without_llm_degrades_to_apology(build_orchestrator):
    result = await build_orchestrator().run(_request("¿Cuánto cuesta el corte de cabello?"))

    assert result.response.text == FIXED_PHRASES["apology"]["es"]
    assert result.degraded
    assert result.state["errors"][0].recoverable is False


@pytest.mark.asyncio
async def test_rag_retriever_failure(build_orchestrator):
    orchestrator = build_orchestrator(llm=FakeLLM(), retriever=FakeRetriever(raise_exc=TimeoutError("index")))

    result = await orchestrator.run(_request("¿Cuánto cuesta el corte de cabello?"))

    assert result.response.text == FIXED_PHRASES["rag_unavailable"]["es"]
    assert result.state["errors"][0].node == "rag"


@pytest.mark.asyncio
async def test_transfer_is_confirmed_and_forwarded(build_orchestrator, store):
    orchestrator = build_orchestrator()
    first = await orchestrator.run(_request("quiero hablar con un humano"))

    assert first.response.text == "¿Desea que lo transfiera con un agente humano?"

    second = await orchestrator.run(_next_turn(first, "sí, por favor"))

    assert second.response.text == "Lo estoy transfiriendo con un agente humano. Por favor espere."
    assert second.response.forward_to_client == {
        "action": {"action": "transfer", "destination": "human_agent", "reason": "user_requested"}
    }
    assert second.response.end_call is False
    assert store.events == [
        {"call_id": "call-42", "event_type": "transfer_requested", "data": {"reason": "user_requested"}}
    ]


@pytest.mark.asyncio
async def test_information_tool_runs_without_confirmation(build_orchestrator):
    result = await build_orchestrator().run(_request("¿A qué hora abren?"))

    assert result.response.text == "Abrimos de martes a domingo de 13:00 a 23:00."
    assert result.persisted_fields()["pending_tool"] is None


@pytest.mark.asyncio
async def test_hours_question_during_confirmation_is_answered(build_orchestrator, store):
    orchestrator = build_orchestrator()
    first = await orchestrator.run(_request(BOOKING_UTTERANCE))

    second = await orchestrator.run(_next_turn(first, "¿A qué hora abren?"))

    assert second.state["sub_intent"] == "info.hours"
    assert "13:00 a 23:00" in second.response.text
    assert second.persisted_fields()["pending_tool"] is None
    assert second.persisted_fields()["confirmation_status"] == "none"
    assert store.reservations == []


@pytest.mark.asyncio
async def test_cancellation_is_confirmed_then_executed(build_orchestrator, store):
    await store.insert_reservation(
        {"id": "RES-9", "tenant_id": TENANT, "date": "12/05", "phone": "600123456", "status": "confirmed"}
    )
    orchestrator = build_orchestrator()

    first = await orchestrator.run(_request("Quiero cancelar mi reservación, mi teléfono es 600 123 456"))

    assert first.state["intent"] == "tool"
    assert first.state["sub_intent"] == "reservation.cancel"
    assert first.response.text == "¿Está seguro que desea cancelar su reservación?"
    assert first.persisted_fields()["pending_tool"]["name"] == "cancel_reservation"
    assert first.persisted_fields()["pending_tool"]["parameters"] == {"phone": "600123456"}
    assert store.reservations[0]["status"] == "confirmed"

    second = await orchestrator.run(_next_turn(first, "sí"))

    assert second.metrics["nodes_visited"] == ["router", "confirmation", "tool_executor", "response_generator"]
    assert second.state["confirmation_status"] == "none"
    assert second.response.text == "Su reservación para el 12/05 ha sido cancelada."
    assert store.reservations[0]["status"] == "cancelled"
    assert second.persisted_fields()["pending_tool"] is None


@pytest.mark.asyncio
async def test_missing_tool_does_not_block_the_call(build_orchestrator, store):
    no_appointments = ToolRegistry({name: tool for name, tool in default_tools().items() if "appointment" not in name})
    orchestrator = build_orchestrator(graph_registry=no_appointments)

    first = await orchestrator.run(_request("quiero agendar una cita"))

    assert first.response.text == FIXED_PHRASES["tool_not_available"]["es"]
    assert first.persisted_fields()["pending_tool"] is None
    assert first.persisted_fields()["confirmation_status"] == "none"

    second = await orchestrator.run(_next_turn(first, BOOKING_UTTERANCE))

    assert second.response.text == BOOKING_PROMPT
    assert second.persisted_fields()["pending_tool"]["name"] == "create_reservation"


@pytest.mark.asyncio
async def test_greeting_and_farewell(build_orchestrator):
    orchestrator = build_orchestrator()

    hello = await orchestrator.run(_request("Hola, buenas tardes"))
    bye = await orchestrator.run(_request("adiós, muchas gracias", locale="en"))

    assert hello.response.text in DIRECT_TEMPLATES["greeting"]["es"]
    assert hello.response.end_call is False
    assert hello.metrics["nodes_visited"] == ["router", "response_generator"]
    assert bye.response.text in DIRECT_TEMPLATES["farewell"]["en"]
    assert bye.response.end_call is True
    assert bye.response.end_call_reason == "farewell"


@pytest.mark.asyncio
async def test_slow_tool_times_out(build_orchestrator):
    async def slow_lookup(params, ctx):
        await asyncio.sleep(5)
        return ToolExecutionResult(success=True, voice_message="never")

    registry = ToolRegistry({**default_tools(), "slow_lookup": ToolDefinition("slow_lookup", "Slow", slow_lookup)})
    orchestrator = build_orchestrator(graph_registry=registry, settings=AgentSettings(tool_timeout_s=0.01))

    result = await orchestrator.run_tool_call(
        {"tenant_id": TENANT, "call_id": "call-42", "tool_name": "slow_lookup", "parameters": {}}
    )

    assert result.response.text == FIXED_PHRASES["tool_timeout"]["es"]
    assert result.degraded
    assert result.state["errors"][0].node == "tool_executor"
    assert "timeout" in result.state["tool_result"].error
