from __future__ import annotations

import json
from typing import Any

from experiment_tracker.core.logger import get_logger

logger = get_logger(__name__)


def encode_tags(tags: list[str] | None) -> str | None:
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        value = str(tag).strip()
        if value and value not in seen:
            seen.append(value)
    return json.dumps(seen)


def decode_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("serialization.tags.invalid", raw=raw[:200])
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed]


def encode_metadata(metadata: dict[str, Any] | None) -> str | None:
    if metadata is None:
        return None
    return json.dumps(metadata, default=str)


def decode_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("serialization.metadata.invalid", raw=raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


def tag_match_pattern(tag: str) -> str:
    """LIKE pattern matching one exact element of a JSON-encoded tag list."""
    encoded = json.dumps(str(tag).strip())
    escaped = encoded.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
