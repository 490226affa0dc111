"""
Custom error classes for the chat stream engine
"""


class ChatError(Exception):
    """Base exception for chat engine errors"""
    pass


class TransportError(ChatError):
    """A call to the external conversation service failed"""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class ConversationNotFoundError(ChatError):
    """Conversation id is unknown to the backend"""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class UnknownModelError(ChatError):
    """Model id is not one of the configured model options"""
    pass
