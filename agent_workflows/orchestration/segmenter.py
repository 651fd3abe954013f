"""
Step Segmenter

Turns the flat, identity-tagged event sequence of a run into per-agent step
records by watching for executor identity transitions.

States:
    Idle
    Accumulating(identity, buffer, started_at)

Transitions:
- Same identity as the open accumulator: append the fragment
- Different identity (or first event): close the open accumulator, even when
  its buffer is empty, then open a new one
- finish(): close the open accumulator only if its buffer is non-empty

A closed step's input is the run's external input for the first record and
the previous record's output afterwards, unless a fixed follow-up input is
configured.
"""

import logging
import time
from typing import Callable, Sequence

from agent_workflows.orchestration.models import AgentStepResult, ExecutionEvent, estimate_tokens

logger = logging.getLogger(__name__)


class StepSegmenter:
    """
    Stateful accumulator over one run's events.

    Args:
        external_input: The text the run was started with
        agent_names: Display names assigned to steps by position; steps past
            the end of the list keep the raw executor identity
        follow_up_input: If set, used as the input of every step after the
            first instead of chaining the previous output
        clock: Monotonic seconds source
    """

    def __init__(
        self,
        external_input: str,
        agent_names: Sequence[str] | None = None,
        follow_up_input: str | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._external_input = external_input
        self._agent_names = list(agent_names or [])
        self._follow_up_input = follow_up_input
        self._clock = clock

        self._steps: list[AgentStepResult] = []
        self._identity: str | None = None
        self._buffer: list[str] = []
        self._started_at = 0.0

    @property
    def state(self) -> str:
        return "idle" if self._identity is None else "accumulating"

    @property
    def current_identity(self) -> str | None:
        return self._identity

    @property
    def steps(self) -> list[AgentStepResult]:
        return list(self._steps)

    def observe(self, event: ExecutionEvent) -> AgentStepResult | None:
        """
        Feed one event.

        Returns:
            The step record closed by this event, if it caused a transition
        """
        closed = None
        if event.executor_id != self._identity:
            if self._identity is not None:
                closed = self._close()
            self._identity = event.executor_id
            self._buffer = []
            self._started_at = self._clock()

        if event.partial_text:
            self._buffer.append(event.partial_text)
        return closed

    def finish(self) -> AgentStepResult | None:
        """Close the open accumulator at end of stream if it holds any text."""
        closed = None
        if self._identity is not None and "".join(self._buffer):
            closed = self._close()
        self._identity = None
        self._buffer = []
        return closed

    def _close(self) -> AgentStepResult:
        output = "".join(self._buffer)
        index = len(self._steps)

        if index == 0:
            step_input = self._external_input
        elif self._follow_up_input is not None:
            step_input = self._follow_up_input
        else:
            step_input = self._steps[-1].output

        step = AgentStepResult(
            agent_name=self._agent_names[index] if index < len(self._agent_names) else self._identity,
            input=step_input,
            output=output,
            tokens_used=estimate_tokens(output),
            execution_time_ms=int((self._clock() - self._started_at) * 1000),
        )
        self._steps.append(step)
        logger.debug(f"Step {index + 1} closed: {step.agent_name} ({step.tokens_used} tokens)")
        return step
