"""
Workflow Errors

Typed failures raised by the orchestration core.

None of these are retried internally. Callers (an HTTP layer, a CLI, a test)
are expected to translate them into user-facing responses.
"""


class WorkflowError(Exception):
    """Base exception for orchestration failures."""
    pass


class InvalidTopology(WorkflowError):
    """Graph construction contract violated (detected before any provider call)."""
    pass


class CompletionFailure(WorkflowError):
    """The completion or tool-calling provider failed mid-run."""
    pass


class ConversationNotFound(WorkflowError):
    """No memory handle exists for the requested conversation id."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id!r} not found")
        self.conversation_id = conversation_id


class DeserializationFailure(WorkflowError):
    """An exported conversation thread could not be decoded."""
    pass
