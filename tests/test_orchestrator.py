"""
WorkflowOrchestrator tests over a scripted chat model.
"""

import asyncio
import json

import pytest

from agent_workflows.errors import (
    CompletionFailure,
    ConversationNotFound,
    DeserializationFailure,
    InvalidTopology,
)
from agent_workflows.orchestration import AgentConfig, estimate_tokens, specialist_name_from_classification
from agent_workflows.orchestration import prompts
from agent_workflows.storage import RESUMED_MARKER

from conftest import ScriptedReply


TRIAGE_AGENTS = [
    AgentConfig(name="Classifier", instructions="Classify the ticket."),
    AgentConfig(name="Router", instructions="Route the ticket."),
    AgentConfig(name="Specialist", instructions="Solve the ticket."),
]


# =============================================================================
# Sequential chain
# =============================================================================

async def test_triage_chain_scenario(scripted, orchestrator_for):
    model = scripted(
        "Category: billing\nCustomer Issue: I was charged twice",
        "Specialist: billing-specialist\nCustomer Issue: I was charged twice",
        "I'm sorry about the double charge. I've issued a refund.",
    )
    orchestrator = orchestrator_for(model)

    result = await orchestrator.execute_sequential(TRIAGE_AGENTS, "I was charged twice")

    assert len(result.agent_results) == 3
    assert [s.agent_name for s in result.agent_results] == ["Classifier", "Router", "Specialist"]
    assert result.final_response == "I'm sorry about the double charge. I've issued a refund."
    assert result.total_tokens == sum(s.tokens_used for s in result.agent_results)
    assert result.agent_results[0].input == "I was charged twice"
    for previous, current in zip(result.agent_results, result.agent_results[1:]):
        assert current.input == previous.output
    assert not result.cancelled


async def test_chain_step_count_matches_agents(scripted, orchestrator_for):
    agents = [AgentConfig(name=f"Step {i}", instructions=f"Do step {i}.") for i in range(5)]
    orchestrator = orchestrator_for(scripted(*[f"output {i}" for i in range(5)]))

    result = await orchestrator.execute_sequential(agents, "start")

    assert [s.agent_name for s in result.agent_results] == [a.name for a in agents]
    assert [s.output for s in result.agent_results] == [f"output {i}" for i in range(5)]


async def test_empty_chain_is_invalid(scripted, orchestrator_for):
    model = scripted()

    with pytest.raises(InvalidTopology):
        await orchestrator_for(model).execute_sequential([], "anything")

    assert model.calls == []


async def test_chain_failure_discards_partial_steps(scripted, orchestrator_for):
    model = scripted("Category: billing", RuntimeError("rate limited"))

    with pytest.raises(CompletionFailure):
        await orchestrator_for(model).execute_sequential(TRIAGE_AGENTS, "I was charged twice")


async def test_chain_cancellation_returns_completed_steps(scripted, orchestrator_for):
    streamed = asyncio.Event()
    model = scripted(
        "Category: billing",
        ScriptedReply(text="Specialist: ", hang=True, streamed=streamed),
    )
    cancel = asyncio.Event()

    async def cancel_when_streamed():
        await streamed.wait()
        await asyncio.sleep(0.05)
        cancel.set()

    canceller = asyncio.create_task(cancel_when_streamed())
    result = await asyncio.wait_for(
        orchestrator_for(model).execute_sequential(TRIAGE_AGENTS, "I was charged twice", cancel),
        timeout=5,
    )
    await canceller

    assert result.cancelled
    assert [s.agent_name for s in result.agent_results] == ["Classifier", "Router"]
    assert result.agent_results[0].output == "Category: billing"
    assert result.agent_results[1].output == "Specialist: "


async def test_support_triage_renames_specialist(scripted, orchestrator_for):
    model = scripted(
        "Category: technical\nCustomer Issue: app crashes",
        "Specialist: technical-support\nCustomer Issue: app crashes",
        "Try reinstalling the app.",
    )

    result = await orchestrator_for(model).execute_support_triage("app crashes")

    assert [s.agent_name for s in result.agent_results] == ["Classifier", "Router", "TechnicalSpecialist"]
    assert model.system_prompts() == [
        prompts.CLASSIFIER_INSTRUCTIONS,
        prompts.ROUTER_INSTRUCTIONS,
        prompts.SPECIALIST_INSTRUCTIONS,
    ]


@pytest.mark.parametrize("output,expected", [
    ("Category: billing\nCustomer Issue: x", "BillingSpecialist"),
    ("category:Technical", "TechnicalSpecialist"),
    ("Category: general", "GeneralSpecialist"),
    ("no label at all", "GeneralSpecialist"),
])
def test_specialist_name_from_classification(output, expected):
    assert specialist_name_from_classification(output) == expected


# =============================================================================
# Tools
# =============================================================================

async def test_tool_agent_collects_tool_calls(scripted, orchestrator_for):
    model = scripted(
        ScriptedReply(tool_calls=[
            {"name": "get_account_info", "args": {"email": "jane@example.com"}},
            {"name": "get_account_balance", "args": {"email": "jane@example.com"}},
        ]),
        "Jane, you are on the Basic plan with a €0.00 balance.",
    )

    result = await orchestrator_for(model).execute_with_tools("What's my balance? jane@example.com")

    assert result.response == "Jane, you are on the Basic plan with a €0.00 balance."
    assert [c.tool_name for c in result.tool_calls] == ["get_account_info", "get_account_balance"]
    assert json.loads(result.tool_calls[0].arguments) == {"email": "jane@example.com"}
    assert "Jane Smith" in result.tool_calls[0].result
    assert result.total_tokens == estimate_tokens(result.response)


# =============================================================================
# Conversation memory
# =============================================================================

async def test_conversation_remembers_previous_turns(scripted, orchestrator_for):
    model = scripted("Nice to meet you, Alex!", "Your name is Alex.")
    orchestrator = orchestrator_for(model)

    await orchestrator.send_conversation_message("c1", "My name is Alex")
    result = await orchestrator.send_conversation_message("c1", "What's my name?")

    assert [(t.role, t.message) for t in result.turns] == [
        ("user", "My name is Alex"),
        ("assistant", "Nice to meet you, Alex!"),
        ("user", "What's my name?"),
        ("assistant", "Your name is Alex."),
    ]
    second_call = [m.content for m in model.calls[1][1:]]
    assert second_call == ["My name is Alex", "Nice to meet you, Alex!", "What's my name?"]
    assert result.total_tokens == estimate_tokens("Your name is Alex.")
    assert result.serialized_thread is None


async def test_serialize_unknown_conversation(scripted, orchestrator_for):
    with pytest.raises(ConversationNotFound):
        await orchestrator_for(scripted()).serialize_conversation("nope")


async def test_resume_into_new_id_continues_memory(scripted, orchestrator_for):
    model = scripted("Noted, you like tea.", "You like tea.")
    orchestrator = orchestrator_for(model)
    await orchestrator.send_conversation_message("c1", "I like tea")
    saved = await orchestrator.serialize_conversation("c1")

    result = await orchestrator.resume_conversation("c2", saved, "What do I like?")

    assert result.serialized_thread == saved
    assert [(t.role, t.message) for t in result.turns] == [
        ("user", "What do I like?"),
        ("assistant", "You like tea."),
    ]
    assert [m.content for m in model.calls[1][1:]] == ["I like tea", "Noted, you like tea.", "What do I like?"]


async def test_resume_into_same_id_marks_transcript(scripted, orchestrator_for):
    model = scripted("Hello!", "Welcome back.")
    orchestrator = orchestrator_for(model)
    first = await orchestrator.send_conversation_message("c1", "Hi")
    saved = await orchestrator.serialize_conversation("c1")

    result = await orchestrator.resume_conversation("c1", saved, "I'm back")

    turns = [(t.role, t.message) for t in result.turns]
    assert turns[:len(first.turns)] == [(t.role, t.message) for t in first.turns]
    assert turns[len(first.turns):] == [
        ("system", RESUMED_MARKER),
        ("user", "I'm back"),
        ("assistant", "Welcome back."),
    ]


async def test_resume_with_malformed_thread(scripted, orchestrator_for):
    model = scripted()

    with pytest.raises(DeserializationFailure):
        await orchestrator_for(model).resume_conversation("c1", "garbage", "hi")

    assert model.calls == []


async def test_clear_conversation_starts_over(scripted, orchestrator_for):
    model = scripted("First reply", "Fresh reply")
    orchestrator = orchestrator_for(model)
    await orchestrator.send_conversation_message("c1", "remember this")

    await orchestrator.clear_conversation("c1")
    await orchestrator.clear_conversation("c1")
    result = await orchestrator.send_conversation_message("c1", "do you remember?")

    assert len(result.turns) == 2
    assert [m.content for m in model.calls[1][1:]] == ["do you remember?"]


# =============================================================================
# Handoff star
# =============================================================================

async def test_conditional_routing_to_billing(scripted, orchestrator_for):
    model = scripted(
        ScriptedReply(tool_calls=[{"name": "transfer_to_BillingSpecialist", "args": {}}]),
        "I can help with your refund.",
    )

    result = await orchestrator_for(model).execute_conditional_routing("I need a refund")

    assert result.routing.selected_agent == "BillingSpecialist"
    assert result.routing.detected_category == "BILLING"
    assert [s.agent_name for s in result.agent_results] == ["Classifier", "BillingSpecialist"]
    assert all(s.input == "I need a refund" for s in result.agent_results)
    assert result.final_response == "I can help with your refund."
    assert model.bound_tools[0] == [
        "transfer_to_BillingSpecialist",
        "transfer_to_TechnicalSupport",
        "transfer_to_SalesAdvisor",
        "transfer_to_GeneralSupport",
    ]


async def test_conditional_routing_specialist_sees_clean_history(scripted, orchestrator_for):
    model = scripted(
        ScriptedReply(tool_calls=[{"name": "transfer_to_SalesAdvisor", "args": {}}]),
        "Premium is €49.99 a month.",
    )

    result = await orchestrator_for(model).execute_conditional_routing("How much is Premium?")

    assert result.routing.detected_category == "SALES"
    specialist_call = model.calls[1]
    assert [type(m).__name__ for m in specialist_call] == ["SystemMessage", "HumanMessage"]


async def test_handoff_records_transfer(scripted, orchestrator_for):
    model = scripted(
        ScriptedReply(text="Let me connect you. ", tool_calls=[{"name": "transfer_to_AccountSpecialist", "args": {}}]),
        "Let's reset your access.",
    )

    result = await orchestrator_for(model).execute_handoff("I can't log in")

    assert len(result.handoffs) == 1
    assert (result.handoffs[0].from_agent, result.handoffs[0].to_agent) == ("TriageAgent", "AccountSpecialist")
    assert [s.input for s in result.agent_results] == ["I can't log in", "Handoff from previous agent"]
    assert result.total_tokens == sum(s.tokens_used for s in result.agent_results)


async def test_router_answering_directly_has_no_handoffs(scripted, orchestrator_for):
    model = scripted("Our office hours are 9 to 5.")

    result = await orchestrator_for(model).execute_handoff("When are you open?")

    assert result.handoffs == []
    assert len(result.agent_results) == 1
    assert result.agent_results[0].agent_name == "TriageAgent"
    assert result.final_response == "Our office hours are 9 to 5."


# =============================================================================
# Group chat
# =============================================================================

async def test_group_chat_four_turns_then_moderator(scripted, orchestrator_for):
    model = scripted(
        "Users want offline drafts.",
        "We can cache locally with SQLite.",
        "Show a clear offline badge.",
        "Test sync conflicts carefully.",
        "Decision: ship offline drafts with conflict tests.",
    )

    result = await orchestrator_for(model).execute_group_chat("Offline mode", max_turns=4)

    assert [(m.turn_number, m.agent_name) for m in result.messages] == [
        (1, "ProductManager"),
        (2, "TechLead"),
        (3, "Designer"),
        (4, "QAEngineer"),
    ]
    assert result.final_consensus == "Decision: ship offline drafts with conflict tests."
    assert len(model.calls) == 5, "Moderator runs exactly once after the discussion"
    assert model.system_prompts()[-1] == prompts.MODERATOR_INSTRUCTIONS
    assert "QAEngineer: Test sync conflicts carefully." in model.calls[-1][-1].content
    assert result.total_tokens == sum(estimate_tokens(m.message) for m in result.messages)
    assert result.consensus_tokens == estimate_tokens(result.final_consensus)


async def test_group_chat_wraps_around_participants(scripted, orchestrator_for):
    model = scripted(*[f"turn {i}" for i in range(1, 7)], "summary")

    result = await orchestrator_for(model).execute_group_chat("Pricing", max_turns=6)

    assert [m.agent_name for m in result.messages][4:] == ["ProductManager", "TechLead"]
    assert result.final_consensus == "summary"


async def test_group_chat_cancelled_skips_moderator(scripted, orchestrator_for):
    streamed = asyncio.Event()
    model = scripted("Opening thought.", ScriptedReply(text="Technically ", hang=True, streamed=streamed))
    cancel = asyncio.Event()

    async def cancel_when_streamed():
        await streamed.wait()
        await asyncio.sleep(0.05)
        cancel.set()

    canceller = asyncio.create_task(cancel_when_streamed())
    result = await asyncio.wait_for(
        orchestrator_for(model).execute_group_chat("Offline mode", cancel_event=cancel),
        timeout=5,
    )
    await canceller

    assert result.cancelled
    assert [m.agent_name for m in result.messages] == ["ProductManager", "TechLead"]
    assert result.final_consensus == ""
    assert len(model.calls) == 2
