"""
Execution Stream Adapter

Runs a compiled workflow graph against one textual input and exposes the run
as a lazy, single-pass sequence of ExecutionEvents.

Design:
- A producer task drives ``astream(stream_mode="custom")`` and hands payloads
  over through a one-slot queue, so at most one event is ever in flight
- The consumer waits on the queue and on the cancellation event at the same
  time; cancellation stops delivery and tears the producer down
- Events already yielded are never retracted; ``cancelled`` tells the caller
  the sequence ended early
- A provider error inside the run surfaces as CompletionFailure
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Sequence

from langchain_core.messages import BaseMessage

from agent_workflows.errors import CompletionFailure, WorkflowError
from agent_workflows.orchestration.graph_builder import WorkflowGraph
from agent_workflows.orchestration.models import ExecutionEvent

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 100


class _Failure:
    """Carries an exception from the producer task to the consumer."""

    def __init__(self, error: BaseException):
        self.error = error


_END = object()


class ExecutionStreamAdapter:
    """
    Single-use stream over one workflow run.

    Usage:
        adapter = ExecutionStreamAdapter(graph, "I was charged twice", cancel_event)
        async with aclosing(adapter.events()) as events:
            async for event in events:
                ...
        if adapter.cancelled:
            ...
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        input: str,
        cancel_event: asyncio.Event | None = None,
        history: Sequence[BaseMessage] | None = None,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ):
        self._graph = graph
        self._input = input
        self._cancel_event = cancel_event
        self._history = history
        self._recursion_limit = recursion_limit
        self._started = False
        self.cancelled = False

    async def _pump(self, queue: asyncio.Queue) -> None:
        state = self._graph.initial_state(self._input, self._history)
        config = {"recursion_limit": self._recursion_limit}
        try:
            async for payload in self._graph.compiled.astream(state, config=config, stream_mode="custom"):
                await queue.put(payload)
        except Exception as e:
            await queue.put(_Failure(e))
        else:
            await queue.put(_END)

    def _raise_failure(self, failure: _Failure) -> None:
        error = failure.error
        if isinstance(error, WorkflowError):
            raise error
        raise CompletionFailure(f"Workflow run failed: {error}") from error

    async def events(self) -> AsyncIterator[ExecutionEvent]:
        """
        Yield events in arrival order until the run ends or is cancelled.

        Raises:
            CompletionFailure: If the provider or a tool failed mid-run
            RuntimeError: If called a second time
        """
        if self._started:
            raise RuntimeError("ExecutionStreamAdapter is single-use")
        self._started = True

        if self._cancel_event is not None and self._cancel_event.is_set():
            self.cancelled = True
            return

        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        producer = asyncio.create_task(self._pump(queue))
        cancel_wait = (
            asyncio.create_task(self._cancel_event.wait())
            if self._cancel_event is not None else None
        )
        getter: asyncio.Task | None = None
        delivered = 0

        logger.info(f"Run started: {self._graph.topology.value} over {self._graph.identities}")
        try:
            while True:
                getter = asyncio.create_task(queue.get())
                waiters = {getter} if cancel_wait is None else {getter, cancel_wait}
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if cancel_wait is not None and cancel_wait in done:
                    self.cancelled = True
                    logger.info(f"Run cancelled after {delivered} events")
                    return

                item = getter.result()
                if item is _END:
                    logger.info(f"Run completed: {delivered} events")
                    return
                if isinstance(item, _Failure):
                    logger.debug(f"Run failed after {delivered} events: {item.error!r}")
                    self._raise_failure(item)

                delivered += 1
                yield ExecutionEvent.from_payload(item)
        finally:
            pending = [task for task in (producer, cancel_wait, getter) if task is not None]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
