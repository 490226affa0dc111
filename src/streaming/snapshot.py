"""
Normalization of raw stream-buffer snapshots.

The stream subscription hands back either the accumulated text itself or an
object carrying it under one of a few field names. Everything past this
module only sees plain strings.
"""

from collections.abc import Mapping
from typing import Any

TEXT_FIELDS = ("text", "body")


def extract_snapshot_text(raw: Any) -> str:
    """
    Extract the accumulated text from a snapshot payload.

    Args:
        raw: A string, a mapping, or an object exposing `text`/`body`

    Returns:
        The text, or "" when the payload carries none
    """
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw

    if isinstance(raw, Mapping):
        values = (raw.get(field) for field in TEXT_FIELDS)
    else:
        values = (getattr(raw, field, None) for field in TEXT_FIELDS)

    for value in values:
        if isinstance(value, str) and value:
            return value
    return ""
