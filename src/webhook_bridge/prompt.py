"""Chat message assembly for the completion API."""
from __future__ import annotations

from typing import Any, Dict, List

from .config import DEFAULT_SYSTEM_PROMPT

SYSTEM_PROMPT = DEFAULT_SYSTEM_PROMPT


def build_messages(
    user_message: str,
    history: List[Any],
    *,
    system_prompt: str = SYSTEM_PROMPT,
) -> List[Dict[str, Any]]:
    """Return ``[system] + history + [user]``.

    History entries are forwarded exactly as received; nothing is trimmed,
    reordered or deduplicated.
    """
    msgs: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    msgs.extend(history)
    msgs.append({"role": "user", "content": user_message})
    return msgs
