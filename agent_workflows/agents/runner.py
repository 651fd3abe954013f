"""
Agent Turn Runner

Runs one agent turn against the shared chat model and streams every text
fragment out through a writer callable as it arrives.

A turn is a small loop:
1. Stream the model over the instructions plus history
2. If the model requested tools, run them and feed the results back
3. Repeat until the model answers without tool calls

Handoff tools are never executed. When the model calls one, the turn ends and
reports the target so the graph can route to it.

Every payload written has the shape expected by the execution stream adapter:
    {"executor": <identity>, "text": <fragment>}
    {"executor": <identity>, "tool_call": {"tool_name", "arguments", "result"}}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.tools import BaseTool

from agent_workflows.agents.handle import AgentHandle
from agent_workflows.errors import CompletionFailure

logger = logging.getLogger(__name__)

Writer = Callable[[dict[str, Any]], None]

DEFAULT_MAX_TOOL_ROUNDS = 8


@dataclass
class AgentTurn:
    """Outcome of a single agent turn."""
    output: str
    messages: list[BaseMessage] = field(default_factory=list)
    handoff_to: str | None = None


def chunk_text(chunk: BaseMessage) -> str:
    """Extract plain text from a streamed chunk (string or content-block list)."""
    content = chunk.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict) and item.get("type") == "text":
            parts.append(item.get("text", ""))
    return "".join(parts)


async def run_agent_turn(
    handle: AgentHandle,
    history: Sequence[BaseMessage],
    write: Writer,
    handoff_tools: dict[str, BaseTool] | None = None,
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
) -> AgentTurn:
    """
    Run one turn of an agent and stream its output.

    Args:
        handle: The agent to run
        history: Conversation the agent continues (its instructions are prepended)
        write: Receives one payload per streamed fragment or tool call
        handoff_tools: Transfer tools keyed by target identity
        max_tool_rounds: Ceiling on model/tool round trips within the turn

    Returns:
        AgentTurn with the concatenated text, the messages produced and an
        optional handoff target

    Raises:
        CompletionFailure: If the model keeps requesting tools past the ceiling
    """
    handoff_tools = handoff_tools or {}
    targets_by_tool = {tool.name: target for target, tool in handoff_tools.items()}
    tools_by_name = {tool.name: tool for tool in handle.tools}

    bindable = [*handle.tools, *handoff_tools.values()]
    model = handle.model.bind_tools(bindable) if bindable else handle.model

    conversation: list[BaseMessage] = [SystemMessage(content=handle.instructions), *history]
    produced: list[BaseMessage] = []
    text_parts: list[str] = []

    for _ in range(max_tool_rounds + 1):
        merged: AIMessageChunk | None = None
        round_text: list[str] = []

        async for chunk in model.astream(conversation):
            merged = chunk if merged is None else merged + chunk
            text = chunk_text(chunk)
            if text:
                round_text.append(text)
                write({"executor": handle.identity, "text": text})

        tool_calls = merged.tool_calls if merged is not None else []
        reply = AIMessage(
            content="".join(round_text),
            tool_calls=tool_calls,
            name=handle.identity,
        )
        conversation.append(reply)
        produced.append(reply)
        text_parts.extend(round_text)

        if not tool_calls:
            return AgentTurn(output="".join(text_parts), messages=produced)

        for call in tool_calls:
            arguments = json.dumps(call["args"], ensure_ascii=False)

            target = targets_by_tool.get(call["name"])
            if target is not None:
                logger.info(f"{handle.identity} handed off to {target}")
                result = f"Transferred to {target}"
                write({
                    "executor": handle.identity,
                    "tool_call": {"tool_name": call["name"], "arguments": arguments, "result": result},
                })
                produced.append(ToolMessage(content=result, tool_call_id=call["id"], name=call["name"]))
                return AgentTurn(output="".join(text_parts), messages=produced, handoff_to=target)

            tool = tools_by_name.get(call["name"])
            if tool is None:
                result = f"Error: unknown tool '{call['name']}'"
                logger.debug(f"{handle.identity} requested unknown tool {call['name']}")
            else:
                result = str(await tool.ainvoke(call["args"]))
                logger.debug(f"{handle.identity} called {call['name']}({arguments})")

            write({
                "executor": handle.identity,
                "tool_call": {"tool_name": call["name"], "arguments": arguments, "result": result},
            })
            tool_message = ToolMessage(content=result, tool_call_id=call["id"], name=call["name"])
            conversation.append(tool_message)
            produced.append(tool_message)

    raise CompletionFailure(
        f"{handle.identity} exceeded {max_tool_rounds} tool rounds without answering"
    )
