"""
Workflow Graph Builder

Assembles LangGraph StateGraphs over agent handles in one of three topologies:

- Chain: START -> a1 -> a2 -> ... -> aN -> END; each agent receives the
  previous agent's output as its input
- Handoff star: START -> router; the router may call a transfer tool for one
  specialist, which then answers and the run ends
- Round-robin: participants speak in a fixed cyclic order over the shared
  discussion until the termination predicate holds after a completed turn

Every agent node streams its fragments out through LangGraph's custom stream
channel, tagged with the agent identity.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Callable, Sequence

from langchain_core.messages import AIMessage, AnyMessage, BaseMessage, HumanMessage, ToolMessage
from langchain_core.tools import BaseTool, StructuredTool
from langgraph.graph import END, START, StateGraph
from langgraph.graph.message import add_messages
from langgraph.types import StreamWriter
from typing_extensions import TypedDict

from agent_workflows.agents.handle import AgentHandle
from agent_workflows.agents.runner import run_agent_turn
from agent_workflows.errors import InvalidTopology

logger = logging.getLogger(__name__)

TerminationPredicate = Callable[[int], bool]


# =============================================================================
# State Definition
# =============================================================================

class WorkflowState(TypedDict):
    """State that flows between agent nodes."""
    messages: Annotated[list[AnyMessage], add_messages]
    current_input: str  # what the next chain member receives
    turn: int  # completed turns (round-robin coordinator)
    next_agent: str | None  # handoff target chosen by the router


class Topology(str, Enum):
    CHAIN = "chain"
    HANDOFF_STAR = "handoff_star"
    ROUND_ROBIN = "round_robin"


@dataclass(frozen=True)
class WorkflowGraph:
    """A compiled topology over agent handles."""
    topology: Topology
    handles: tuple[AgentHandle, ...]
    entry: str | None  # None for round-robin groups
    compiled: Any

    @property
    def identities(self) -> list[str]:
        return [handle.identity for handle in self.handles]

    def initial_state(
        self,
        input: str,
        history: Sequence[BaseMessage] | None = None
    ) -> WorkflowState:
        return {
            "messages": [*(history or []), HumanMessage(content=input)],
            "current_input": input,
            "turn": 0,
            "next_agent": None,
        }


# =============================================================================
# Helpers
# =============================================================================

def _require_unique(handles: Sequence[AgentHandle], topology: Topology) -> None:
    counts = Counter(h.identity for h in handles)
    duplicates = sorted(identity for identity, n in counts.items() if n > 1)
    if duplicates:
        raise InvalidTopology(
            f"{topology.value} requires unique agent identities, duplicated: {duplicates}"
        )


def make_handoff_tool(target: AgentHandle) -> BaseTool:
    """Transfer tool the router calls to hand control to ``target``."""

    def transfer() -> str:
        return f"Transferred to {target.identity}"

    return StructuredTool.from_function(
        func=transfer,
        name=f"transfer_to_{target.identity}",
        description=target.description or f"Hand the conversation off to {target.identity}",
    )


def _without_tool_traffic(messages: Sequence[BaseMessage]) -> list[BaseMessage]:
    """Drop tool messages and tool-call requests from a history."""
    cleaned: list[BaseMessage] = []
    for message in messages:
        if isinstance(message, ToolMessage):
            continue
        if isinstance(message, AIMessage) and message.tool_calls:
            if not message.content:
                continue
            message = AIMessage(content=message.content, name=message.name)
        cleaned.append(message)
    return cleaned


# =============================================================================
# Node Factories
# =============================================================================

def _chain_node(handle: AgentHandle, is_entry: bool):
    async def node(state: WorkflowState, writer: StreamWriter) -> dict[str, Any]:
        logger.debug(f"Chain node {handle.identity} started")
        writer({"executor": handle.identity, "text": None})
        # The entry agent continues any prior history; later members only see
        # their predecessor's output
        history = state["messages"] if is_entry else [HumanMessage(content=state["current_input"])]
        turn = await run_agent_turn(handle, history, writer)
        return {"messages": turn.messages, "current_input": turn.output}

    return node


def _router_node(router: AgentHandle, handoff_tools: dict[str, BaseTool]):
    async def node(state: WorkflowState, writer: StreamWriter) -> dict[str, Any]:
        logger.debug(f"Router {router.identity} started")
        writer({"executor": router.identity, "text": None})
        turn = await run_agent_turn(router, state["messages"], writer, handoff_tools=handoff_tools)
        return {"messages": turn.messages, "next_agent": turn.handoff_to}

    return node


def _specialist_node(handle: AgentHandle):
    async def node(state: WorkflowState, writer: StreamWriter) -> dict[str, Any]:
        logger.debug(f"Specialist {handle.identity} took over")
        writer({"executor": handle.identity, "text": None})
        turn = await run_agent_turn(handle, _without_tool_traffic(state["messages"]), writer)
        return {"messages": turn.messages, "next_agent": None}

    return node


def _participant_node(handle: AgentHandle):
    async def node(state: WorkflowState, writer: StreamWriter) -> dict[str, Any]:
        writer({"executor": handle.identity, "text": None})
        turn = await run_agent_turn(handle, state["messages"], writer)
        logger.debug(f"Turn {state['turn'] + 1} completed by {handle.identity}")
        return {"messages": turn.messages, "turn": state["turn"] + 1}

    return node


# =============================================================================
# Builders
# =============================================================================

def build_chain(handles: Sequence[AgentHandle]) -> WorkflowGraph:
    """
    Build a linear chain over ``handles`` in list order.

    Raises:
        InvalidTopology: If handles is empty or identities repeat
    """
    handles = tuple(handles)
    if not handles:
        raise InvalidTopology("chain requires at least one agent")
    _require_unique(handles, Topology.CHAIN)

    workflow = StateGraph(WorkflowState)
    for position, handle in enumerate(handles):
        workflow.add_node(handle.identity, _chain_node(handle, is_entry=position == 0))

    workflow.add_edge(START, handles[0].identity)
    for current, following in zip(handles, handles[1:]):
        workflow.add_edge(current.identity, following.identity)
    workflow.add_edge(handles[-1].identity, END)

    logger.info(f"Built chain: {' -> '.join(h.identity for h in handles)}")
    return WorkflowGraph(
        topology=Topology.CHAIN,
        handles=handles,
        entry=handles[0].identity,
        compiled=workflow.compile(),
    )


def build_handoff_star(router: AgentHandle, specialists: Sequence[AgentHandle]) -> WorkflowGraph:
    """
    Build a star where ``router`` may transfer control to one specialist.

    The graph only declares the permitted transfers; which one happens (if
    any) is decided by the router at run time.

    Raises:
        InvalidTopology: If specialists is empty, contains the router, or
            identities repeat
    """
    specialists = tuple(specialists)
    if not specialists:
        raise InvalidTopology("handoff star requires at least one specialist")
    if any(s.identity == router.identity for s in specialists):
        raise InvalidTopology(f"router {router.identity!r} cannot also be a specialist")
    _require_unique(specialists, Topology.HANDOFF_STAR)

    handoff_tools = {s.identity: make_handoff_tool(s) for s in specialists}

    workflow = StateGraph(WorkflowState)
    workflow.add_node(router.identity, _router_node(router, handoff_tools))
    for specialist in specialists:
        workflow.add_node(specialist.identity, _specialist_node(specialist))
        workflow.add_edge(specialist.identity, END)

    def route_fn(state: WorkflowState) -> str:
        return state["next_agent"] or END

    destinations = {s.identity: s.identity for s in specialists}
    destinations[END] = END

    workflow.add_edge(START, router.identity)
    workflow.add_conditional_edges(router.identity, route_fn, destinations)

    logger.info(
        f"Built handoff star: {router.identity} -> {[s.identity for s in specialists]}"
    )
    return WorkflowGraph(
        topology=Topology.HANDOFF_STAR,
        handles=(router, *specialists),
        entry=router.identity,
        compiled=workflow.compile(),
    )


def build_round_robin(
    participants: Sequence[AgentHandle],
    terminate: TerminationPredicate,
) -> WorkflowGraph:
    """
    Build a round-robin group over ``participants``.

    ``terminate`` receives the number of completed turns after each turn; the
    group ends the first time it returns True.

    Raises:
        InvalidTopology: If fewer than two participants or identities repeat
    """
    participants = tuple(participants)
    if len(participants) < 2:
        raise InvalidTopology("round-robin group requires at least two participants")
    _require_unique(participants, Topology.ROUND_ROBIN)

    order = [p.identity for p in participants]

    workflow = StateGraph(WorkflowState)
    for participant in participants:
        workflow.add_node(participant.identity, _participant_node(participant))

    def coordinator(state: WorkflowState) -> str:
        if terminate(state["turn"]):
            logger.debug(f"Round-robin terminated after {state['turn']} turns")
            return END
        return order[state["turn"] % len(order)]

    destinations = {identity: identity for identity in order}
    destinations[END] = END

    workflow.add_edge(START, order[0])
    for identity in order:
        workflow.add_conditional_edges(identity, coordinator, destinations)

    logger.info(f"Built round-robin group: {order}")
    return WorkflowGraph(
        topology=Topology.ROUND_ROBIN,
        handles=participants,
        entry=None,
        compiled=workflow.compile(),
    )


def terminate_after_turns(max_turns: int) -> TerminationPredicate:
    """Predicate ending a group once ``max_turns`` turns have completed."""
    return lambda turn: turn >= max_turns
