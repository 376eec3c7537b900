"""LLM response parsing utilities."""

from typing import Any


def extract_text_delta(chunk: Any) -> str:
    """Extract the visible text from one streamed message chunk.

    With extended thinking enabled, chunk content is a list of content
    blocks; thinking and signature blocks are dropped and only "text"
    blocks are returned. Plain string content is returned as-is.
    """
    content = getattr(chunk, "content", chunk)

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict):
                if block.get("type") == "text":
                    parts.append(block.get("text", ""))
            elif getattr(block, "type", None) == "text":
                parts.append(getattr(block, "text", ""))
        return "".join(parts)

    return ""
