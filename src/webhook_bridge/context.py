"""Conversation context carried by the calling platform between turns.

The platform round-trips a named context whose ``parameters.history`` holds
the recent turns. Nothing here is stored server-side: the window is read
from the inbound request, extended with the new turn pair and handed back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, TypedDict

CONTEXT_SUFFIX = "/contexts/deepseek_session"
MAX_TURNS = 12  # keeps the prompt from growing without bound


class Turn(TypedDict):
    """A single utterance attributed to the user or the assistant."""

    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class WebhookTurn:
    """Everything the pipeline needs from one inbound webhook request."""

    session: str = ""
    query_text: str = ""
    history: List[Any] = field(default_factory=list)


# -----------------------------
# Extraction
# -----------------------------
def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def find_session_context(payload: Any) -> Dict[str, Any] | None:
    """Return the first output context whose name ends with CONTEXT_SUFFIX."""
    query_result = _as_dict(_as_dict(payload).get("queryResult"))
    contexts = query_result.get("outputContexts")
    if not isinstance(contexts, list):
        return None
    for ctx in contexts:
        if isinstance(ctx, dict) and _as_str(ctx.get("name")).endswith(CONTEXT_SUFFIX):
            return ctx
    return None


def extract_history(payload: Any) -> List[Any]:
    """Prior turns from the session context, or [] when missing or malformed.

    Entries are returned as the caller sent them, in their original order.
    """
    ctx = find_session_context(payload)
    if ctx is None:
        return []
    history = _as_dict(ctx.get("parameters")).get("history")
    if not isinstance(history, list):
        return []
    return list(history)


def extract_turn(payload: Any) -> WebhookTurn:
    """Pull session id, utterance and prior history out of a webhook payload.

    Never raises: anything missing or of the wrong shape becomes "" or [].
    """
    body = _as_dict(payload)
    query_result = _as_dict(body.get("queryResult"))
    return WebhookTurn(
        session=_as_str(body.get("session")),
        query_text=_as_str(query_result.get("queryText")),
        history=extract_history(body),
    )


def context_name(session: str) -> str:
    return f"{session}{CONTEXT_SUFFIX}"


# -----------------------------
# Window management
# -----------------------------
def truncate_history(window: List[Any], max_turns: int = MAX_TURNS) -> List[Any]:
    """Keep only the newest ``max_turns`` entries, dropping from the front."""
    if max_turns <= 0:
        return []
    return list(window[-max_turns:])


def extend_history(
    prior: List[Any],
    user_text: str,
    reply: str,
    *,
    max_turns: int = MAX_TURNS,
) -> List[Any]:
    """Append the user/assistant pair to ``prior`` and bound the result."""
    user_turn: Turn = {"role": "user", "content": user_text}
    assistant_turn: Turn = {"role": "assistant", "content": reply}
    return truncate_history([*prior, user_turn, assistant_turn], max_turns)
