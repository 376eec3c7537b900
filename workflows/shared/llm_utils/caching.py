"""Prompt caching helpers for repeated system instructions."""

from typing import Literal

CacheTTL = Literal["5m", "1h"]


def create_cached_messages(
    system_content: str | list[dict],
    user_content: str,
    cache_system: bool = True,
    cache_ttl: CacheTTL = "5m",
) -> list[dict]:
    """
    Create messages with cache_control on system content.

    A multi-chunk analysis sends the same system instruction once per
    chunk, so caching it makes every call after the first a cache read.

    Args:
        system_content: Static system prompt (string or list of content blocks)
        user_content: Dynamic user message content
        cache_system: Whether to apply cache_control to system content (default: True)
        cache_ttl: Cache lifetime - "5m" (default, free refresh) or "1h" (2x write cost)

    Returns:
        List of message dicts ready for llm.astream()

    Example:
        messages = create_cached_messages(
            system_content="You are a senior fiction editor...",
            user_content=build_user_message(instruction, chunk_text),
        )
        async for piece in llm.astream(messages):
            ...
    """
    cache_control = {"type": "ephemeral"}
    if cache_ttl == "1h":
        cache_control["ttl"] = "1h"

    if isinstance(system_content, str):
        system_blocks = [
            {
                "type": "text",
                "text": system_content,
                **({"cache_control": cache_control} if cache_system else {}),
            }
        ]
    else:
        # Already a list of content blocks - add cache_control to last block
        system_blocks = list(system_content)
        if cache_system and system_blocks:
            last_block = dict(system_blocks[-1])
            last_block["cache_control"] = cache_control
            system_blocks[-1] = last_block

    return [
        {"role": "system", "content": system_blocks},
        {"role": "user", "content": user_content},
    ]
