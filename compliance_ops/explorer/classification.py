"""
Table-driven classification of Etherscan replies.

The API reports most failures as ``status == "0"`` with ``message ==
"NOTOK"`` and the real reason in ``result``, and it also uses status 0 for
harmless empty lookups. The tables below decide which is which.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from .exceptions import RateLimitedError, RemoteError, TransportError
from .models import ClassifiedResponse, ExplorerEnvelope, OutcomeKind

EMPTY_RESULT_MESSAGES: tuple[str, ...] = (
    "No transactions found",
    "No internal transactions found",
    "Contract source code not verified",
    "No records found",
    "No token transfers found",
)

RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "max calls per sec",
)

DEFAULT_ERROR_MESSAGE = "API Error"


def _matches(text: str, patterns: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def classify_response(
    payload: Any,
    *,
    api: str = "etherscan",
    empty_result_messages: Iterable[str] = EMPTY_RESULT_MESSAGES,
    rate_limit_patterns: Iterable[str] = RATE_LIMIT_PATTERNS,
) -> ClassifiedResponse:
    """
    Classify a decoded JSON reply.

    Args:
        payload: Decoded JSON body
        api: Name of the remote API, used for error context
        empty_result_messages: Messages that mean "nothing found" rather than failure
        rate_limit_patterns: Case-insensitive fragments that identify quota rejections

    Returns:
        ClassifiedResponse tagged with an OutcomeKind

    Raises:
        TransportError: If the payload is not a JSON object of the expected shape
    """
    if not isinstance(payload, dict):
        raise TransportError(
            f"Malformed response: expected JSON object, got {type(payload).__name__}",
            api=api,
            response_data=payload,
        )

    try:
        envelope = ExplorerEnvelope.model_validate(payload)
    except ValidationError as e:
        raise TransportError(
            f"Malformed response: {e.error_count()} invalid field(s)",
            api=api,
            response_data=payload,
        ) from e

    rate_limit_patterns = tuple(rate_limit_patterns)

    # JSON-RPC replies from the proxy module
    if envelope.error is not None:
        error_message = str(envelope.error.get("message") or DEFAULT_ERROR_MESSAGE)
        kind = (
            OutcomeKind.RATE_LIMITED
            if _matches(error_message, rate_limit_patterns)
            else OutcomeKind.REMOTE_ERROR
        )
        return ClassifiedResponse(kind=kind, message=error_message, raw=payload)

    if envelope.status is None or str(envelope.status) != "0":
        return ClassifiedResponse(
            kind=OutcomeKind.SUCCESS,
            result=envelope.result,
            message=envelope.message or "",
            raw=payload,
        )

    message = envelope.message or ""
    result_text = envelope.result if isinstance(envelope.result, str) else ""

    if _matches(result_text, rate_limit_patterns) or _matches(message, rate_limit_patterns):
        return ClassifiedResponse(
            kind=OutcomeKind.RATE_LIMITED,
            message=result_text or message,
            raw=payload,
        )

    if any(benign in message for benign in empty_result_messages):
        return ClassifiedResponse(
            kind=OutcomeKind.EMPTY,
            result=envelope.result,
            message=message,
            raw=payload,
        )

    return ClassifiedResponse(
        kind=OutcomeKind.REMOTE_ERROR,
        message=result_text or message or DEFAULT_ERROR_MESSAGE,
        raw=payload,
    )


def unwrap(classified: ClassifiedResponse, *, api: str = "etherscan") -> Any:
    """Return the result of a successful reply or raise the matching error."""
    if classified.ok:
        return classified.result

    if classified.kind is OutcomeKind.RATE_LIMITED:
        raise RateLimitedError(
            classified.message,
            api=api,
            response_data=classified.raw,
        )

    raise RemoteError(classified.message, api=api, response_data=classified.raw)
