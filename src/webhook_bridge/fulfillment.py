"""Per-turn pipeline and the fulfillment payload sent back to the platform."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from .context import MAX_TURNS, context_name, extend_history, extract_turn
from .llm import CompletionFailure, CompletionReply, CompletionResult
from .prompt import SYSTEM_PROMPT, build_messages

logger = logging.getLogger(__name__)

LIFESPAN_COUNT = 20
APOLOGY_TEXT = "Tuvimos un problema técnico hablando con el modelo. Intenta de nuevo."


class Completer(Protocol):
    async def complete(self, messages: List[Dict[str, Any]]) -> CompletionResult: ...


# -----------------------------
# Pydantic response models
# -----------------------------
class ContextParameters(BaseModel):
    history: List[Any] = Field(default_factory=list)


class OutputContext(BaseModel):
    name: str
    lifespanCount: int = LIFESPAN_COUNT
    parameters: ContextParameters


class WebhookResponse(BaseModel):
    fulfillmentText: str
    outputContexts: Optional[List[OutputContext]] = None

    def to_payload(self) -> Dict[str, Any]:
        # Degraded replies never set outputContexts, so the key is left out.
        return self.model_dump(exclude_unset=True)


def build_success_response(reply: str, session: str, history: List[Any]) -> WebhookResponse:
    return WebhookResponse(
        fulfillmentText=reply,
        outputContexts=[
            OutputContext(
                name=context_name(session),
                lifespanCount=LIFESPAN_COUNT,
                parameters=ContextParameters(history=history),
            )
        ],
    )


def build_failure_response() -> WebhookResponse:
    return WebhookResponse(fulfillmentText=APOLOGY_TEXT)


def build_response(
    result: CompletionResult,
    *,
    session: str,
    prior: List[Any],
    user_text: str,
    max_turns: int = MAX_TURNS,
) -> WebhookResponse:
    """Turn a completion result into the outbound contract."""
    if isinstance(result, CompletionFailure):
        return build_failure_response()
    if isinstance(result, CompletionReply):
        history = extend_history(prior, user_text, result.text, max_turns=max_turns)
        return build_success_response(result.text, session, history)
    raise TypeError(f"unexpected completion result: {result!r}")


async def fulfill(
    payload: Any,
    client: Completer,
    *,
    system_prompt: str = SYSTEM_PROMPT,
) -> Dict[str, Any]:
    """Run one webhook turn end to end and return the JSON-ready response."""
    turn = extract_turn(payload)
    messages = build_messages(turn.query_text, turn.history, system_prompt=system_prompt)

    result = await client.complete(messages)

    response = build_response(
        result,
        session=turn.session,
        prior=turn.history,
        user_text=turn.query_text,
    )
    if isinstance(result, CompletionReply):
        logger.info(
            "Webhook turn answered: history_in=%d history_out=%d reply_chars=%d",
            len(turn.history),
            len(response.outputContexts[0].parameters.history),
            len(result.text),
        )
    else:
        logger.info("Webhook turn degraded to apology (history_in=%d)", len(turn.history))
    return response.to_payload()
