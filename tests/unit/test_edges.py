import pytest

from conftest import make_state
from voice_agent.agent.edges import (
    END_NODE,
    TRANSITIONS,
    route_after_confirmation,
    route_after_router,
    safe_edge,
    validate_transitions,
)
from voice_agent.graphs.state import PendingTool


def test_default_transitions_are_valid():
    validate_transitions()


@pytest.mark.parametrize(
    "table, message",
    [
        ({**TRANSITIONS, "nope": ("rag",)}, "Unknown transition source"),
        ({**TRANSITIONS, "rag": ("somewhere",)}, "Unknown transition target"),
        ({**TRANSITIONS, "rag": ()}, "no outgoing transitions"),
        ({k: v for k, v in TRANSITIONS.items() if k != "rag"}, "Nodes without transitions"),
    ],
)
def test_invalid_transitions_rejected(table, message):
    with pytest.raises(ValueError, match=message):
        validate_transitions(table)


@pytest.mark.parametrize(
    "intent, expected",
    [
        ("tool", "tool_executor"),
        ("transfer", "tool_executor"),
        ("rag", "rag"),
        ("direct", "response_generator"),
        ("unknown", "response_generator"),
        # nothing outstanding to confirm
        ("confirm", "response_generator"),
    ],
)
def test_route_after_router(intent, expected):
    assert route_after_router(make_state("x", intent=intent)) == expected


def test_confirm_with_outstanding_tool_goes_to_confirmation():
    state = make_state(
        "sí",
        intent="confirm",
        pending_tool=PendingTool(name="create_reservation", requires_confirmation=True),
        confirmation_status="pending",
    )
    assert route_after_router(state) == "confirmation"


def test_route_after_confirmation():
    pending = PendingTool(name="cancel_reservation")
    assert route_after_confirmation(make_state(confirmation_status="confirmed", pending_tool=pending)) == "tool_executor"
    assert route_after_confirmation(make_state(confirmation_status="confirmed")) == "response_generator"
    assert route_after_confirmation(make_state(confirmation_status="denied")) == "response_generator"
    assert route_after_confirmation(make_state(confirmation_status="pending", pending_tool=pending)) == "response_generator"


def test_safe_edge_falls_back_on_exception():
    def broken(state):
        raise KeyError("intent")

    assert safe_edge("router", broken)(make_state()) == "response_generator"
    assert safe_edge("response_generator", broken)(make_state()) == END_NODE


def test_safe_edge_rejects_illegal_target():
    edge = safe_edge("rag", lambda state: "tool_executor")
    assert edge(make_state()) == "response_generator"
    assert edge.__name__ == "edge_rag"


def test_safe_edge_passes_legal_target():
    assert safe_edge("router", lambda state: "rag")(make_state()) == "rag"
