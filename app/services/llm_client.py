"""HTTP client for the chat-completions generation endpoint."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.domain.insights.prompts import build_chat_prompt

logger = logging.getLogger(__name__)

FALLBACK_COMPLETION = (
    "I'm having trouble processing your request right now. "
    "Please check your API key or try again later."
)
STUB_CREDENTIALS = {"stub", "debug"}
CHAT_STUB_ANSWER = (
    "[stub] A good first step for most financial questions is to track your monthly "
    "income and expenses, then build an emergency fund of three to six months of expenses."
)


class MissingCredential(ValueError):
    """Raised before any call when no generation credential is configured."""


class CompletionFailed(Exception):
    """The generation endpoint could not produce a completion."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportFailure(CompletionFailed):
    """Network error, timeout or non-success status without an error payload."""


class UpstreamError(CompletionFailed):
    """The service answered with an explicit error or an unusable body."""


@dataclass(frozen=True)
class CompletionOptions:
    model: str
    temperature: float

    @classmethod
    def from_settings(cls) -> "CompletionOptions":
        return cls(model=settings.OPENAI_MODEL, temperature=settings.OPENAI_TEMPERATURE)


def _is_stub(credential: str) -> bool:
    return credential.strip().lower() in STUB_CREDENTIALS


def _upstream_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return None


async def request_completion(
    prompt: str,
    credential: str,
    *,
    options: Optional[CompletionOptions] = None,
    stub_response: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Send one chat-completion request and return the raw text.

    Raises :class:`MissingCredential` when ``credential`` is empty and
    :class:`CompletionFailed` for every transport or upstream failure. A
    credential of ``stub``/``debug`` returns ``stub_response`` offline and is
    never sent to the endpoint.
    """
    if not credential or not credential.strip():
        raise MissingCredential("OPENAI_API_KEY is not configured for insight generation.")

    if _is_stub(credential):
        if stub_response is None:
            raise MissingCredential("The offline stub credential has no canned response for this request.")
        return stub_response

    options = options or CompletionOptions.from_settings()
    url = f"{settings.OPENAI_BASE_URL.rstrip('/')}/chat/completions"
    payload = {
        "model": options.model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": options.temperature,
    }
    headers = {
        "Authorization": f"Bearer {credential.strip()}",
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise TransportFailure(f"Could not reach the generation endpoint: {exc}") from exc

    if response.is_error:
        message = _upstream_message(response)
        if message:
            raise UpstreamError(message, status_code=response.status_code)
        raise TransportFailure(
            f"Generation endpoint returned status {response.status_code}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamError("Generation endpoint returned a non-JSON body.") from exc

    message = _upstream_message(response)
    if message:
        raise UpstreamError(message, status_code=response.status_code)

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError("Generation endpoint returned no completion.") from exc
    if not isinstance(content, str):
        raise UpstreamError("Generation endpoint returned no completion.")

    return content.strip()


async def complete(
    prompt: str,
    credential: str,
    *,
    options: Optional[CompletionOptions] = None,
    stub_response: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Like :func:`request_completion`, but never fails past this boundary.

    Completion failures are logged and replaced by :data:`FALLBACK_COMPLETION`,
    which is deliberately not JSON so result validation rejects it.
    :class:`MissingCredential` still propagates: it is a configuration error
    raised before any call is made.
    """
    try:
        return await request_completion(
            prompt,
            credential,
            options=options,
            stub_response=stub_response,
            transport=transport,
        )
    except CompletionFailed as exc:
        logger.warning(
            "Generation request failed (%s, status=%s): %s",
            type(exc).__name__,
            exc.status_code,
            exc,
        )
        return FALLBACK_COMPLETION


async def answer_financial_question(
    question: str,
    credential: str,
    *,
    options: Optional[CompletionOptions] = None,
) -> str:
    """Answer a free-form question for the financial literacy chat."""
    return await complete(
        build_chat_prompt(question),
        credential,
        options=options,
        stub_response=CHAT_STUB_ANSWER,
    )


async def check_llm_connectivity(credential: Optional[str] = None) -> dict[str, Any]:
    """Lightweight connectivity test against the configured endpoint."""
    credential = settings.OPENAI_API_KEY if credential is None else credential
    started = time.perf_counter()
    try:
        text = await request_completion(
            "Reply with the single word: ok",
            credential,
            stub_response="ok",
        )
    except (MissingCredential, CompletionFailed) as exc:
        return {
            "ok": False,
            "model": settings.OPENAI_MODEL,
            "detail": str(exc),
        }

    duration_ms = (time.perf_counter() - started) * 1000
    return {
        "ok": True,
        "model": settings.OPENAI_MODEL,
        "latency_ms": round(duration_ms, 1),
        "preview": (text or "").strip()[:200],
    }


__all__ = [
    "CompletionFailed",
    "CompletionOptions",
    "FALLBACK_COMPLETION",
    "MissingCredential",
    "TransportFailure",
    "UpstreamError",
    "answer_financial_question",
    "check_llm_connectivity",
    "complete",
    "request_completion",
]
