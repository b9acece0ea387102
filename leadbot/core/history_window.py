"""
History Window - bounds how many messages a session keeps and sends to the LLM.
"""

from typing import List, TypeVar

DEFAULT_HISTORY_LIMIT = 20

T = TypeVar("T")


def trim(messages: List[T], limit: int = DEFAULT_HISTORY_LIMIT) -> List[T]:
    """
    Keep the system message plus the newest ``limit - 1`` messages.

    The first element is always retained; excess entries are dropped from the
    oldest end of the remainder. Lists already within the limit are returned
    unchanged (same object).

    Args:
        messages: Conversation timeline, system message first
        limit: Maximum number of messages to keep, including the system message

    Returns:
        The bounded message list
    """
    if limit < 1:
        raise ValueError(f"History limit must be at least 1, got {limit}")
    if len(messages) <= limit:
        return messages
    if limit == 1:
        return messages[:1]
    return messages[:1] + messages[-(limit - 1):]
