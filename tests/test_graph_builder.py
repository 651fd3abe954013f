"""
Workflow graph builder tests.
"""

import pytest

from agent_workflows.agents import create_agent
from agent_workflows.errors import InvalidTopology
from agent_workflows.orchestration import (
    Topology,
    build_chain,
    build_handoff_star,
    build_round_robin,
    terminate_after_turns,
)


@pytest.fixture
def agents(scripted):
    model = scripted()

    def make(*names: str):
        return [create_agent(model, f"You are {name}.", identity=name) for name in names]

    return make


# =============================================================================
# Chain
# =============================================================================

def test_chain_requires_agents():
    with pytest.raises(InvalidTopology):
        build_chain([])


def test_chain_rejects_duplicate_identities(agents):
    first, second = agents("Writer", "Writer")

    with pytest.raises(InvalidTopology):
        build_chain([first, second])


def test_chain_entry_and_order(agents):
    graph = build_chain(agents("Classifier", "Router", "Specialist"))

    assert graph.topology is Topology.CHAIN
    assert graph.entry == "Classifier"
    assert graph.identities == ["Classifier", "Router", "Specialist"]


def test_chain_edges_follow_list_order(agents):
    graph = build_chain(agents("A", "B", "C"))

    edges = {(edge.source, edge.target) for edge in graph.compiled.get_graph().edges}
    assert ("__start__", "A") in edges
    assert ("A", "B") in edges
    assert ("B", "C") in edges
    assert ("C", "__end__") in edges


def test_initial_state_appends_input_to_history(agents):
    graph = build_chain(agents("Solo"))

    state = graph.initial_state("hello")

    assert state["current_input"] == "hello"
    assert state["turn"] == 0
    assert state["messages"][-1].content == "hello"


# =============================================================================
# Handoff star
# =============================================================================

def test_handoff_star_requires_specialists(agents):
    (router,) = agents("Router")

    with pytest.raises(InvalidTopology):
        build_handoff_star(router, [])


def test_handoff_star_rejects_router_as_specialist(agents):
    router, billing = agents("Router", "Billing")

    with pytest.raises(InvalidTopology):
        build_handoff_star(router, [billing, router])


def test_handoff_star_entry_is_router(agents):
    router, billing, tech = agents("Router", "Billing", "Tech")

    graph = build_handoff_star(router, [billing, tech])

    assert graph.topology is Topology.HANDOFF_STAR
    assert graph.entry == "Router"
    assert set(graph.identities) == {"Router", "Billing", "Tech"}


# =============================================================================
# Round robin
# =============================================================================

def test_round_robin_rejects_empty_group():
    with pytest.raises(InvalidTopology):
        build_round_robin([], terminate_after_turns(4))


def test_round_robin_rejects_single_participant(agents):
    with pytest.raises(InvalidTopology):
        build_round_robin(agents("Alone"), terminate_after_turns(4))


def test_round_robin_has_no_entry(agents):
    graph = build_round_robin(agents("PM", "Dev"), terminate_after_turns(2))

    assert graph.topology is Topology.ROUND_ROBIN
    assert graph.entry is None


def test_terminate_after_turns():
    terminate = terminate_after_turns(4)

    assert [terminate(turn) for turn in range(6)] == [False, False, False, False, True, True]
