"""
LLM response utilities for handling multi-format model outputs.

Supports both:
- Simple string chunks
- Structured content blocks (reasoning blocks are skipped)
"""

from typing import Any


def extract_text_from_response(response: Any) -> str:
    """
    Extract text content from an LLM response or stream chunk.

    Args:
        response: AIMessage/AIMessageChunk, str, or list of content blocks

    Returns:
        Extracted text content as string
    """
    content = response.content if hasattr(response, "content") else response

    if not content:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for block in content:
            if isinstance(block, dict):
                if block.get("type") == "reasoning":
                    continue
                if "text" in block:
                    text_parts.append(block["text"])
            elif isinstance(block, str):
                text_parts.append(block)
        return "".join(text_parts)

    return str(content)
