"""Error taxonomy for the chat pipeline."""


class ChatPipelineError(Exception):
    """Base class for failures surfaced to chat callers."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        # State the orchestrator was leaving when the error was raised
        self.failed_state = None
        super().__init__(message)


class ValidationError(ChatPipelineError):
    """Request rejected before any write."""

    status_code = 400


class StorageUnavailable(ChatPipelineError):
    """Durable backend could not complete a read or write."""

    status_code = 500


class ConversationNotFound(ChatPipelineError):
    """Write targeted a conversation that does not exist."""

    status_code = 404

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")
