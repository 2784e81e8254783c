import pytest
from fastapi.testclient import TestClient

from conftest import TENANT
from voice_agent.api.deps import get_llm_client, get_orchestrator
from voice_agent.main import create_app


@pytest.fixture
def client(build_orchestrator):
    app = create_app()
    orchestrator = build_orchestrator()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_llm_client] = lambda: None
    return TestClient(app)


def test_health(client):
    resp = client.get("/v1/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["llm_enabled"] is False
    assert "create_reservation" in body["tools"]


def test_turn_round_trip(client):
    first = client.post(
        "/v1/turn",
        json={"call_id": "call-1", "tenant_id": TENANT, "input": "quiero hablar con un humano"},
        headers={"X-Trace-Id": "trace-abc"},
    )

    assert first.status_code == 200
    assert first.headers["X-Trace-Id"] == "trace-abc"
    body = first.json()
    assert body["status"] == "ok"
    assert body["trace_id"] == "trace-abc"
    assert body["intent"] == "transfer"
    assert body["response"] == "¿Desea que lo transfiera con un agente humano?"
    assert body["persisted"]["confirmation_status"] == "pending"
    assert body["persisted"]["pending_tool"]["name"] == "transfer_to_human"

    second = client.post("/v1/turn", json={"call_id": "call-1", "tenant_id": TENANT, "input": "sí", **body["persisted"]})

    assert second.status_code == 200
    assert second.json()["forward_to_client"]["action"]["action"] == "transfer"
    assert second.json()["persisted"]["pending_tool"] is None


def test_tenant_from_header(client):
    resp = client.post("/v1/turn", json={"call_id": "call-1", "input": "hola"}, headers={"X-Tenant-Id": TENANT})
    assert resp.status_code == 200
    assert resp.json()["end_call"] is False


def test_tool_call(client):
    resp = client.post(
        "/v1/tool-call",
        json={
            "call_id": "call-1",
            "tenant_id": TENANT,
            "tool_name": "get_location",
            "parameters": {},
        },
    )

    assert resp.status_code == 200
    assert resp.json()["response"] == "Estamos en la calle Mayor 12, Madrid."
    assert resp.json()["metrics"]["nodes_visited"] == ["router", "tool_executor", "response_generator"]


def test_missing_tenant(client):
    resp = client.post("/v1/turn", json={"call_id": "call-1", "input": "hola"}, headers={"X-Trace-Id": "trace-1"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "missing_tenant_id", "message": "tenant_id is required", "trace_id": "trace-1"}
    assert resp.headers["X-Trace-Id"] == "trace-1"


def test_validation_error(client):
    resp = client.post("/v1/turn", json={"tenant_id": TENANT, "input": "hola"})

    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"
    assert resp.json()["details"][0]["loc"] == ["body", "call_id"]


def test_bad_history_role(client):
    resp = client.post(
        "/v1/turn",
        json={"call_id": "call-1", "tenant_id": TENANT, "messages": [{"role": "robot", "content": "x"}]},
    )
    assert resp.status_code == 422


def test_call_id_header_echoed(client):
    resp = client.get("/v1/health", headers={"X-Call-Id": "call-77"})

    assert resp.headers["X-Call-Id"] == "call-77"
    assert resp.headers["X-Trace-Id"]
