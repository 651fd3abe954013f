#!/usr/bin/env python3
"""
Workflow Pattern Demos

Runs every orchestration pattern against the configured chat model.

Patterns:
1. Support triage chain (Classifier -> Router -> Specialist), reported to MLflow
2. Tool-calling account assistant
3. Conversation memory with export and resume
4. Conditional routing
5. Handoff
6. Round-robin group chat with moderator

Requires provider credentials in the environment or a .env file, e.g.
AGENTFLOW_LLM_MODEL=azure/gpt-4o-mini plus AZURE_OPENAI_API_KEY and
AZURE_OPENAI_ENDPOINT.

Usage:
    python scripts/run_workflow_demos.py
    python scripts/run_workflow_demos.py "My invoice shows a charge I don't recognize"
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from agent_workflows.llm import create_llm_from_env
from agent_workflows.orchestration import WorkflowOrchestrator, settings_from_env
from agent_workflows.tracking import MlflowClient, WorkflowRunReporter, tracking_settings_from_env

load_dotenv()

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_TICKET = "I was charged twice for my subscription this month"


def banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


async def demo_triage(orchestrator: WorkflowOrchestrator, reporter: WorkflowRunReporter, ticket: str):
    banner("Example 1: Support Triage Chain")
    result = await orchestrator.execute_support_triage(ticket)
    for step in result.agent_results:
        logger.info(f"[{step.agent_name}] {step.tokens_used} tokens, {step.execution_time_ms}ms")
        print(f"--- {step.agent_name} ---\n{step.output}\n")
    logger.info(f"Total: {result.total_tokens} tokens in {result.execution_time_ms}ms")

    # Fire-and-forget; a missing MLflow server only produces a warning
    reporter.launch(ticket, result)


async def demo_tools(orchestrator: WorkflowOrchestrator):
    banner("Example 2: Tool-Calling Agent")
    result = await orchestrator.execute_with_tools(
        "What's the balance and recent activity on john@example.com?"
    )
    for call in result.tool_calls:
        logger.info(f"Tool {call.tool_name}({call.arguments}) -> {call.result!r}")
    print(f"{result.response}\n")


async def demo_conversation(orchestrator: WorkflowOrchestrator):
    banner("Example 3: Conversation Memory")
    await orchestrator.send_conversation_message("demo", "Hi, my name is Alex and I run a bakery.")
    await orchestrator.send_conversation_message("demo", "What kind of business do I run?")

    saved = await orchestrator.serialize_conversation("demo")
    await orchestrator.clear_conversation("demo")

    result = await orchestrator.resume_conversation("demo-restored", saved, "And what's my name?")
    for turn in result.turns:
        print(f"{turn.role}: {turn.message}")
    print()


async def demo_routing(orchestrator: WorkflowOrchestrator):
    banner("Example 4: Conditional Routing")
    result = await orchestrator.execute_conditional_routing("How much does the Premium plan cost?")
    logger.info(
        f"Routed to {result.routing.selected_agent} ({result.routing.detected_category})"
    )
    print(f"{result.final_response}\n")


async def demo_handoff(orchestrator: WorkflowOrchestrator):
    banner("Example 5: Handoff")
    result = await orchestrator.execute_handoff("I can't log in after resetting my password")
    for handoff in result.handoffs:
        logger.info(f"Handoff {handoff.from_agent} -> {handoff.to_agent}: {handoff.reason}")
    print(f"{result.final_response}\n")


async def demo_group_chat(orchestrator: WorkflowOrchestrator):
    banner("Example 6: Group Chat")
    result = await orchestrator.execute_group_chat("Adding offline mode to our mobile app", max_turns=4)
    for message in result.messages:
        print(f"[{message.turn_number}] {message.agent_name}: {message.message}")
    print(f"\nConsensus:\n{result.final_consensus}\n")


async def main():
    """Run all examples."""
    ticket = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_TICKET

    settings = settings_from_env()
    tracking = tracking_settings_from_env()
    orchestrator = WorkflowOrchestrator(create_llm_from_env(), settings=settings)

    async with MlflowClient(tracking.mlflow_url, timeout=tracking.timeout) as mlflow:
        reporter = WorkflowRunReporter(mlflow, experiment_name=settings.experiment_name)

        await demo_triage(orchestrator, reporter, ticket)
        await demo_tools(orchestrator)
        await demo_conversation(orchestrator)
        await demo_routing(orchestrator)
        await demo_handoff(orchestrator)
        await demo_group_chat(orchestrator)

        await reporter.drain()

    logger.info("Examples complete!")


if __name__ == "__main__":
    asyncio.run(main())
