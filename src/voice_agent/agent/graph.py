import json
import logging

from langgraph.graph import END, START, StateGraph

from voice_agent.graphs.state import TurnState

from .edges import EDGE_CONDITIONS, END_NODE, TRANSITIONS, safe_edge, validate_transitions
from .nodes import AgentNodes


def build_turn_graph(agent_nodes: AgentNodes):
    """
    Turn graph: router -> (rag | tool_executor | confirmation | response_generator)
    -> ... -> response_generator -> END. Hops come from TRANSITIONS only.
    """
    validate_transitions()
    logging.info(
        json.dumps(
            {"event": "graph_build", "graph": "turn_graph", "nodes": list(TRANSITIONS)},
            ensure_ascii=False,
        )
    )

    workflow = StateGraph(TurnState)
    for name, node in agent_nodes.as_dict().items():
        workflow.add_node(name, node)

    workflow.add_edge(START, "router")
    for source, condition in EDGE_CONDITIONS.items():
        path_map = {target: (END if target == END_NODE else target) for target in TRANSITIONS[source]}
        workflow.add_conditional_edges(source, safe_edge(source, condition), path_map)

    return workflow.compile()
