"""
Step segmenter and handoff inference tests.
"""

import pytest

from agent_workflows.orchestration import (
    AgentStepResult,
    ExecutionEvent,
    StepSegmenter,
    estimate_tokens,
    infer_handoffs,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def event(executor: str, text: str | None) -> ExecutionEvent:
    return ExecutionEvent(executor_id=executor, partial_text=text)


def feed(segmenter: StepSegmenter, events) -> list[AgentStepResult]:
    for e in events:
        segmenter.observe(e)
    segmenter.finish()
    return segmenter.steps


@pytest.mark.parametrize("text,expected", [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2), ("x" * 17, 5)])
def test_estimate_tokens(text, expected):
    assert estimate_tokens(text) == expected


def test_no_events_no_steps():
    segmenter = StepSegmenter("input")

    assert feed(segmenter, []) == []
    assert segmenter.state == "idle"


def test_chained_inputs_and_names():
    segmenter = StepSegmenter("I was charged twice", agent_names=["Classifier", "Router", "Specialist"])

    steps = feed(segmenter, [
        event("a1", "Category: "),
        event("a1", "billing"),
        event("a2", "Specialist: billing"),
        event("a3", "Sorry about "),
        event("a3", "that."),
    ])

    assert [s.agent_name for s in steps] == ["Classifier", "Router", "Specialist"]
    assert [s.input for s in steps] == ["I was charged twice", "Category: billing", "Specialist: billing"]
    assert steps[-1].output == "Sorry about that."
    assert [s.tokens_used for s in steps] == [estimate_tokens(s.output) for s in steps]


def test_surplus_steps_keep_executor_identity():
    segmenter = StepSegmenter("in", agent_names=["First"])

    steps = feed(segmenter, [event("x1", "one"), event("x2", "two")])

    assert [s.agent_name for s in steps] == ["First", "x2"]


def test_transition_closes_empty_buffer():
    segmenter = StepSegmenter("in")

    steps = feed(segmenter, [event("Router", None), event("Billing", "Refund issued.")])

    assert [(s.agent_name, s.output) for s in steps] == [("Router", ""), ("Billing", "Refund issued.")]
    assert steps[0].tokens_used == 0


def test_stream_end_drops_empty_buffer():
    segmenter = StepSegmenter("in")

    steps = feed(segmenter, [event("Writer", "done"), event("Silent", None)])

    assert [s.agent_name for s in steps] == ["Writer"]


def test_observe_returns_closed_step():
    segmenter = StepSegmenter("in")

    assert segmenter.observe(event("a", "x")) is None
    assert segmenter.state == "accumulating"
    closed = segmenter.observe(event("b", "y"))

    assert closed is not None and closed.agent_name == "a"
    assert segmenter.current_identity == "b"


def test_follow_up_input_replaces_chaining():
    segmenter = StepSegmenter("route me", follow_up_input="route me")

    steps = feed(segmenter, [event("Classifier", "billing"), event("BillingSpecialist", "Sure.")])

    assert [s.input for s in steps] == ["route me", "route me"]


def test_elapsed_time_per_step():
    clock = FakeClock()
    segmenter = StepSegmenter("in", clock=clock)

    segmenter.observe(event("a", "x"))
    clock.now = 0.25
    segmenter.observe(event("b", "y"))
    clock.now = 1.0
    segmenter.finish()

    assert [s.execution_time_ms for s in segmenter.steps] == [250, 750]


# =============================================================================
# Handoff inference
# =============================================================================

def _step(name: str) -> AgentStepResult:
    return AgentStepResult(agent_name=name, input="", output="", tokens_used=0, execution_time_ms=0)


def test_no_handoff_for_single_step():
    assert infer_handoffs([_step("TriageAgent")]) == []


def test_handoff_between_differing_agents():
    handoffs = infer_handoffs([_step("TriageAgent"), _step("BillingSpecialist")])

    assert len(handoffs) == 1
    assert handoffs[0].from_agent == "TriageAgent"
    assert handoffs[0].to_agent == "BillingSpecialist"
    assert handoffs[0].reason


def test_no_handoff_between_same_agent():
    assert infer_handoffs([_step("A"), _step("A"), _step("B")])[0].from_agent == "A"
    assert len(infer_handoffs([_step("A"), _step("A")])) == 0
