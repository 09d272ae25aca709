"""Parsing of AI tagging responses."""

from __future__ import annotations

import json
import re
from typing import Any

from ..core.types import AITags


_FENCE_OPEN_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    return _FENCE_OPEN_RE.sub("", content).strip()


def parse_tag_response(content: str) -> AITags:
    """Parse a {"companies": [...], "themes": [...]} payload.

    Empty content parses as no tags. Non-string and blank array members are
    dropped; a missing or non-list key yields an empty list.

    Raises:
        ValueError: If the payload is not valid JSON or not a JSON object
    """
    cleaned = strip_code_fences(content or "")
    if not cleaned:
        return AITags()
    parsed = json.loads(cleaned)
    if not isinstance(parsed, dict):
        raise ValueError("Tagging response is not a JSON object")
    return AITags(
        company=_string_list(parsed.get("companies")),
        theme=_string_list(parsed.get("themes")),
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for entry in value:
        if isinstance(entry, str) and entry.strip() and entry.strip() not in out:
            out.append(entry.strip())
    return out
