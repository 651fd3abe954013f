"""
Workflow Orchestrator

Public entry surface: one coroutine per workflow pattern. Each call builds
fresh agent handles over the shared chat model, assembles the topology, drives
it through the execution stream adapter, segments the stream into step records
and aggregates them into a result.

Patterns:
- Sequential chain (and the customer-support triage chain built on it)
- Single tool-calling agent
- Memory-backed conversation with export/resume/clear
- Conditional routing and handoff (handoff star)
- Round-robin group chat with a moderator synthesis

Failures surface as WorkflowError subclasses; nothing is retried. A cancelled
call returns what had completed with ``cancelled=True``.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Callable, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from agent_workflows.agents import ACCOUNT_TOOLS, create_agent
from agent_workflows.orchestration import prompts
from agent_workflows.orchestration.graph_builder import (
    WorkflowGraph,
    build_chain,
    build_handoff_star,
    build_round_robin,
    terminate_after_turns,
)
from agent_workflows.orchestration.handoff import infer_handoffs
from agent_workflows.orchestration.models import (
    AgentConfig,
    AgentStepResult,
    ConditionalRoutingResult,
    ConversationResult,
    ExecutionEvent,
    GroupChatMessage,
    GroupChatResult,
    HandoffResult,
    RoutingDecision,
    ToolAgentResult,
    ToolCallInfo,
    WorkflowResult,
    estimate_tokens,
)
from agent_workflows.orchestration.segmenter import StepSegmenter
from agent_workflows.orchestration.settings import OrchestrationSettings
from agent_workflows.orchestration.stream import ExecutionStreamAdapter
from agent_workflows.storage import ConversationStore, ConversationThread, InMemoryConversationStore

logger = logging.getLogger(__name__)

CATEGORY_BY_AGENT = {
    "BillingSpecialist": "BILLING",
    "TechnicalSupport": "TECHNICAL",
    "SalesAdvisor": "SALES",
}
DEFAULT_CATEGORY = "GENERAL"
DEFAULT_ROUTED_AGENT = "GeneralSupport"

HANDOFF_FOLLOW_UP_INPUT = "Handoff from previous agent"


def specialist_name_from_classification(classifier_output: str) -> str:
    """Display name for the triage specialist, derived from the classifier's label."""
    lowered = classifier_output.lower()
    if "category: billing" in lowered or "category:billing" in lowered:
        return "BillingSpecialist"
    if "category: technical" in lowered or "category:technical" in lowered:
        return "TechnicalSpecialist"
    return "GeneralSpecialist"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class WorkflowOrchestrator:
    """
    Facade over the orchestration engine.

    The chat model is shared by every agent the orchestrator creates. The
    conversation store is the only mutable state and is injected, defaulting
    to a process-lifetime in-memory store.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        store: ConversationStore | None = None,
        settings: OrchestrationSettings | None = None,
    ):
        self._llm = llm
        self._store = store or InMemoryConversationStore()
        self._settings = settings or OrchestrationSettings()

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def settings(self) -> OrchestrationSettings:
        return self._settings

    # =========================================================================
    # Run Driver
    # =========================================================================

    async def _run(
        self,
        graph: WorkflowGraph,
        input: str,
        segmenter: StepSegmenter,
        cancel_event: asyncio.Event | None = None,
        history: Sequence[BaseMessage] | None = None,
        on_event: Callable[[ExecutionEvent], None] | None = None,
    ) -> tuple[list[AgentStepResult], bool]:
        """
        Drive one run to completion (or cancellation) and segment it.

        Returns:
            (step records, cancelled)
        """
        adapter = ExecutionStreamAdapter(
            graph,
            input,
            cancel_event=cancel_event,
            history=history,
            recursion_limit=self._settings.recursion_limit,
        )
        async with aclosing(adapter.events()) as events:
            async for event in events:
                segmenter.observe(event)
                if on_event is not None:
                    on_event(event)

        # A cancelled run keeps whatever the open agent had already streamed
        segmenter.finish()
        return segmenter.steps, adapter.cancelled

    # =========================================================================
    # Sequential Chain
    # =========================================================================

    async def execute_sequential(
        self,
        agents: Sequence[AgentConfig],
        input: str,
        cancel_event: asyncio.Event | None = None,
    ) -> WorkflowResult:
        """
        Run agents as a chain, each receiving the previous agent's output.

        Raises:
            InvalidTopology: If no agents are given
            CompletionFailure: If the provider fails mid-run
        """
        started = time.perf_counter()
        handles = [create_agent(self._llm, config.instructions) for config in agents]
        graph = build_chain(handles)

        logger.info(f"Sequential workflow: {[config.name for config in agents]}")
        steps, cancelled = await self._run(
            graph,
            input,
            StepSegmenter(input, agent_names=[config.name for config in agents]),
            cancel_event,
        )

        result = WorkflowResult.from_steps(steps, _elapsed_ms(started), cancelled)
        logger.info(
            f"Sequential workflow finished: {len(steps)} steps, {result.total_tokens} tokens, "
            f"{result.execution_time_ms}ms"
        )
        return result

    async def execute_support_triage(
        self,
        input: str,
        cancel_event: asyncio.Event | None = None,
    ) -> WorkflowResult:
        """Classifier -> Router -> Specialist chain for a customer ticket."""
        result = await self.execute_sequential(
            [
                AgentConfig(name="Classifier", instructions=prompts.CLASSIFIER_INSTRUCTIONS),
                AgentConfig(name="Router", instructions=prompts.ROUTER_INSTRUCTIONS),
                AgentConfig(name="Specialist", instructions=prompts.SPECIALIST_INSTRUCTIONS),
            ],
            input,
            cancel_event,
        )

        if len(result.agent_results) < 3:
            return result

        steps = list(result.agent_results)
        steps[2] = steps[2].model_copy(
            update={"agent_name": specialist_name_from_classification(steps[0].output)}
        )
        return result.model_copy(update={"agent_results": steps})

    # =========================================================================
    # Tool Calling
    # =========================================================================

    async def execute_with_tools(
        self,
        input: str,
        instructions: str = prompts.ACCOUNT_ASSISTANT_INSTRUCTIONS,
        cancel_event: asyncio.Event | None = None,
    ) -> ToolAgentResult:
        """Run a single agent bound to the account lookup tools."""
        started = time.perf_counter()
        handle = create_agent(
            self._llm,
            instructions,
            identity="AccountAssistant",
            tools=ACCOUNT_TOOLS,
        )
        tool_calls: list[ToolCallInfo] = []

        def collect(event: ExecutionEvent) -> None:
            if event.tool_call is not None:
                tool_calls.append(event.tool_call)

        steps, cancelled = await self._run(
            build_chain([handle]),
            input,
            StepSegmenter(input),
            cancel_event,
            on_event=collect,
        )

        response = steps[-1].output if steps else ""
        logger.info(f"Tool agent finished: {len(tool_calls)} tool calls")
        return ToolAgentResult(
            response=response,
            tool_calls=tool_calls,
            total_tokens=estimate_tokens(response),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    # =========================================================================
    # Conversation Memory
    # =========================================================================

    async def _conversation_turn(
        self,
        conversation_id: str,
        thread: ConversationThread,
        message: str,
        cancel_event: asyncio.Event | None,
    ) -> tuple[str, bool]:
        await self._store.append(conversation_id, "user", message)

        handle = create_agent(
            self._llm,
            prompts.MEMORY_ASSISTANT_INSTRUCTIONS,
            identity="MemoryAssistant",
        )
        steps, cancelled = await self._run(
            build_chain([handle]),
            message,
            StepSegmenter(message),
            cancel_event,
            history=thread.messages,
        )
        reply = steps[-1].output if steps else ""

        if cancelled:
            logger.info(f"Conversation {conversation_id}: turn cancelled, memory unchanged")
            return reply, cancelled

        await self._store.save_thread(
            conversation_id,
            ConversationThread(
                thread_id=thread.thread_id,
                messages=[*thread.messages, HumanMessage(content=message), AIMessage(content=reply)],
            ),
        )
        await self._store.append(conversation_id, "assistant", reply)
        return reply, cancelled

    async def send_conversation_message(
        self,
        conversation_id: str,
        message: str,
        cancel_event: asyncio.Event | None = None,
    ) -> ConversationResult:
        """Send one message in a conversation; the assistant sees all earlier turns."""
        started = time.perf_counter()
        thread, _ = await self._store.get_or_create(conversation_id)

        reply, cancelled = await self._conversation_turn(conversation_id, thread, message, cancel_event)
        _, transcript = await self._store.get_or_create(conversation_id)

        return ConversationResult(
            turns=transcript,
            total_tokens=estimate_tokens(reply),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    async def resume_conversation(
        self,
        conversation_id: str,
        serialized_thread: str,
        message: str,
        cancel_event: asyncio.Event | None = None,
    ) -> ConversationResult:
        """
        Restore an exported thread under ``conversation_id`` and continue it.

        Raises:
            DeserializationFailure: If ``serialized_thread`` is malformed
        """
        started = time.perf_counter()
        thread = await self._store.import_thread(conversation_id, serialized_thread)

        reply, cancelled = await self._conversation_turn(conversation_id, thread, message, cancel_event)
        _, transcript = await self._store.get_or_create(conversation_id)

        return ConversationResult(
            turns=transcript,
            serialized_thread=serialized_thread,
            total_tokens=estimate_tokens(reply),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    async def serialize_conversation(self, conversation_id: str) -> str:
        """
        Export the conversation's memory as an opaque string.

        Raises:
            ConversationNotFound: If the conversation does not exist
        """
        return await self._store.export_thread(conversation_id)

    async def clear_conversation(self, conversation_id: str) -> None:
        await self._store.clear(conversation_id)

    # =========================================================================
    # Handoff Star
    # =========================================================================

    async def execute_conditional_routing(
        self,
        input: str,
        cancel_event: asyncio.Event | None = None,
    ) -> ConditionalRoutingResult:
        """Classifier hands the request to one of four specialists."""
        started = time.perf_counter()
        classifier = create_agent(
            self._llm,
            prompts.ROUTING_CLASSIFIER_INSTRUCTIONS,
            identity="Classifier",
            description="Classifies and routes customer requests to appropriate specialists",
        )
        specialists = [
            create_agent(
                self._llm, prompts.BILLING_INSTRUCTIONS,
                identity="BillingSpecialist",
                description="Handles payment, invoice, subscription, and refund issues",
            ),
            create_agent(
                self._llm, prompts.TECHNICAL_SUPPORT_INSTRUCTIONS,
                identity="TechnicalSupport",
                description="Handles bugs, errors, technical problems, and how-to questions",
            ),
            create_agent(
                self._llm, prompts.SALES_INSTRUCTIONS,
                identity="SalesAdvisor",
                description="Handles pricing, upgrades, new features, and purchases",
            ),
            create_agent(
                self._llm, prompts.GENERAL_SUPPORT_INSTRUCTIONS,
                identity="GeneralSupport",
                description="Handles general inquiries and questions",
            ),
        ]

        steps, cancelled = await self._run(
            build_handoff_star(classifier, specialists),
            input,
            StepSegmenter(input, follow_up_input=input),
            cancel_event,
        )

        selected_agent = steps[-1].agent_name if steps else DEFAULT_ROUTED_AGENT
        routing = RoutingDecision(
            detected_category=CATEGORY_BY_AGENT.get(selected_agent, DEFAULT_CATEGORY),
            selected_agent=selected_agent,
        )
        logger.info(f"Routed to {routing.selected_agent} ({routing.detected_category})")

        return ConditionalRoutingResult(
            routing=routing,
            final_response=steps[-1].output if steps else "",
            agent_results=steps,
            total_tokens=sum(step.tokens_used for step in steps),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    async def execute_handoff(
        self,
        input: str,
        cancel_event: asyncio.Event | None = None,
    ) -> HandoffResult:
        """Triage agent answers directly or hands off to a specialist."""
        started = time.perf_counter()
        triage = create_agent(
            self._llm,
            prompts.TRIAGE_INSTRUCTIONS,
            identity="TriageAgent",
            description="Initial triage and routing of customer requests",
        )
        specialists = [
            create_agent(
                self._llm, prompts.BILLING_INSTRUCTIONS,
                identity="BillingSpecialist",
                description="Handles payment, invoice, subscription, and refund issues",
            ),
            create_agent(
                self._llm, prompts.TECHNICAL_SPECIALIST_INSTRUCTIONS,
                identity="TechnicalSpecialist",
                description="Handles bugs, errors, and technical problems",
            ),
            create_agent(
                self._llm, prompts.ACCOUNT_SPECIALIST_INSTRUCTIONS,
                identity="AccountSpecialist",
                description="Handles account settings, profile, and access issues",
            ),
        ]

        steps, cancelled = await self._run(
            build_handoff_star(triage, specialists),
            input,
            StepSegmenter(input, follow_up_input=HANDOFF_FOLLOW_UP_INPUT),
            cancel_event,
        )
        handoffs = infer_handoffs(steps)
        logger.info(f"Handoff workflow finished: {len(handoffs)} handoffs, {len(steps)} steps")

        return HandoffResult(
            handoffs=handoffs,
            final_response=steps[-1].output if steps else "",
            agent_results=steps,
            total_tokens=sum(step.tokens_used for step in steps),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    # =========================================================================
    # Group Chat
    # =========================================================================

    async def execute_group_chat(
        self,
        topic: str,
        max_turns: int = 4,
        cancel_event: asyncio.Event | None = None,
    ) -> GroupChatResult:
        """
        Round-robin discussion of ``topic`` followed by a moderator synthesis.

        The moderator runs once, outside the group, over the concatenated
        transcript. It is skipped when the discussion was cancelled.
        """
        started = time.perf_counter()
        participants = [
            create_agent(
                self._llm,
                instructions.format(topic=topic),
                identity=name,
                description=description,
            )
            for name, instructions, description in prompts.GROUP_CHAT_ROLES
        ]
        opening = f"Topic for discussion: {topic}"

        steps, cancelled = await self._run(
            build_round_robin(participants, terminate_after_turns(max_turns)),
            opening,
            StepSegmenter(opening),
            cancel_event,
        )
        messages = [
            GroupChatMessage(agent_name=step.agent_name, message=step.output, turn_number=index)
            for index, step in enumerate(steps, start=1)
        ]

        consensus = ""
        if not cancelled:
            consensus, cancelled = await self._moderate(messages, cancel_event)

        logger.info(f"Group chat finished: {len(messages)} turns, cancelled={cancelled}")
        return GroupChatResult(
            messages=messages,
            final_consensus=consensus,
            total_tokens=sum(step.tokens_used for step in steps),
            consensus_tokens=estimate_tokens(consensus),
            execution_time_ms=_elapsed_ms(started),
            cancelled=cancelled,
        )

    async def _moderate(
        self,
        messages: Sequence[GroupChatMessage],
        cancel_event: asyncio.Event | None,
    ) -> tuple[str, bool]:
        moderator = create_agent(self._llm, prompts.MODERATOR_INSTRUCTIONS, identity="Moderator")
        summary = "\n".join(f"{m.agent_name}: {m.message}" for m in messages)
        request = f"Discussion complete. Please synthesize:\n\n{summary}"

        fragments: list[str] = []

        def collect(event: ExecutionEvent) -> None:
            if event.partial_text:
                fragments.append(event.partial_text)

        # Only the text is kept; the moderator does not produce a step record
        _, cancelled = await self._run(
            build_chain([moderator]),
            request,
            StepSegmenter(request),
            cancel_event,
            on_event=collect,
        )
        return "".join(fragments), cancelled
