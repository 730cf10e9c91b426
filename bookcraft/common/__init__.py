"""
Common utilities shared across BookCraft modules.
"""

from .errors import (
    CredentialError,
    ErrorKind,
    OutlineError,
    ProviderCallError,
    ProviderError,
)
from .llm import (
    ChatResult,
    CompletionCallable,
    StreamCallable,
    call_chat_completion,
    stream_chat_completion,
)

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "StreamCallable",
    "call_chat_completion",
    "stream_chat_completion",
    "CredentialError",
    "ErrorKind",
    "OutlineError",
    "ProviderCallError",
    "ProviderError",
]
