"""LLM Module - Chat completion clients and multi-model fan-out."""

from .openrouter import ChatClient, OpenRouterClient, GroqClient, build_messages
from .fanout import QueryFanout

__all__ = [
    "ChatClient",
    "OpenRouterClient",
    "GroqClient",
    "build_messages",
    "QueryFanout",
]
