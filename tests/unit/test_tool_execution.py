import asyncio

import pytest

from voice_agent.errors import ToolTimeoutError
from voice_agent.fakes import FakeAuditSink
from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.patterns.responses import FIXED_PHRASES
from voice_agent.telemetry.audit import DataStoreAuditSink, LoggingAuditSink
from voice_agent.tools.executor import ToolExecutor, run_with_timeout
from voice_agent.tools.memory_store import InMemoryBusinessStore
from voice_agent.tools.registry import ToolDefinition, ToolExecutionContext


def _ctx(locale="es"):
    return ToolExecutionContext(tenant_id="rest-1", call_id="call-1", locale=locale)


def _spy_timers(monkeypatch):
    loop = asyncio.get_running_loop()
    original = loop.call_later
    handles = []

    def spy(delay, callback, *args, **kwargs):
        handle = original(delay, callback, *args, **kwargs)
        handles.append(handle)
        return handle

    monkeypatch.setattr(loop, "call_later", spy)
    return handles


@pytest.mark.asyncio
async def test_run_with_timeout_cancels_timer_on_success(monkeypatch):
    handles = _spy_timers(monkeypatch)

    async def fast():
        return "done"

    assert await run_with_timeout(fast(), timeout_s=5, tool_name="fast") == "done"
    assert len(handles) == 1
    assert handles[0].cancelled()


@pytest.mark.asyncio
async def test_run_with_timeout_raises_tool_timeout(monkeypatch):
    handles = _spy_timers(monkeypatch)

    async def slow():
        await asyncio.sleep(5)

    with pytest.raises(ToolTimeoutError) as exc_info:
        await run_with_timeout(slow(), timeout_s=0.01, tool_name="slow")

    assert exc_info.value.tool_name == "slow"
    assert exc_info.value.recoverable is True
    assert handles[0].cancelled()


@pytest.mark.asyncio
async def test_run_with_timeout_propagates_errors_and_cancels_timer(monkeypatch):
    handles = _spy_timers(monkeypatch)

    async def broken():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        await run_with_timeout(broken(), timeout_s=5, tool_name="broken")
    assert handles[0].cancelled()


def _tool(handler, **kwargs):
    return ToolDefinition(name="book", description="book a table", execute=handler, **kwargs)


@pytest.mark.asyncio
async def test_executor_success_records_redacted_audit():
    async def handler(params, ctx):
        return ToolExecutionResult(success=True, data={"ok": True}, voice_message="Listo")

    audit = FakeAuditSink()
    result = await ToolExecutor(audit=audit).execute(_tool(handler), {"name": "Ana", "guests": 2}, _ctx())

    assert result.success is True
    assert len(audit.entries) == 1
    entry = audit.entries[0]
    assert entry["tool"] == "book"
    assert entry["parameters"] == {"name": "***", "guests": 2}
    assert entry["success"] is True


@pytest.mark.asyncio
async def test_executor_timeout_is_a_failed_result():
    async def handler(params, ctx):
        await asyncio.sleep(5)

    result = await ToolExecutor(timeout_s=0.01).execute(_tool(handler), {}, _ctx("en"))

    assert result.success is False
    assert "timeout" in result.error
    assert result.voice_message == FIXED_PHRASES["tool_timeout"]["en"]


@pytest.mark.asyncio
async def test_executor_exception_is_a_failed_result():
    async def handler(params, ctx):
        raise RuntimeError("db down")

    audit = FakeAuditSink()
    result = await ToolExecutor(audit=audit).execute(_tool(handler), {}, _ctx())

    assert result.success is False
    assert result.error == "db down"
    assert result.voice_message == FIXED_PHRASES["tool_error"]["es"]
    assert audit.entries[0]["success"] is False


@pytest.mark.asyncio
async def test_executor_rejects_invalid_params_without_running():
    calls = []

    async def handler(params, ctx):
        calls.append(params)
        return ToolExecutionResult(success=True)

    tool = _tool(handler, parameters={"type": "object", "properties": {"guests": {"type": "integer"}}})
    result = await ToolExecutor().execute(tool, {"guests": "muchos"}, _ctx())

    assert result.success is False
    assert result.error == "invalid_type:guests"
    assert result.voice_message == FIXED_PHRASES["invalid_params"]["es"]
    assert calls == []


@pytest.mark.asyncio
async def test_executor_swallows_audit_failures():
    async def handler(params, ctx):
        return ToolExecutionResult(success=True)

    audit = FakeAuditSink(raise_exc=RuntimeError("audit store down"))
    result = await ToolExecutor(audit=audit).execute(_tool(handler), {}, _ctx())
    assert result.success is True


@pytest.mark.asyncio
async def test_audit_sinks():
    store = InMemoryBusinessStore()
    entry = {"tool": "book", "call_id": "call-1", "success": True}

    await DataStoreAuditSink(store).record(entry)
    await LoggingAuditSink().record(entry)

    assert store.events == [{"call_id": "call-1", "event_type": "tool_executed", "data": entry}]
