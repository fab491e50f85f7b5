"""
Outbound adapters injected into a RateGovernedDispatcher.

An adapter turns one parameter mapping into one HTTP request and returns
the decoded result, raising the explorer error taxonomy on failure. The
dispatcher never looks inside the parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from .classification import classify_response, unwrap
from .exceptions import RateLimitedError, TransportError
from .models import TronEventRecord

logger = structlog.get_logger(__name__)

_TRON_ROWS = TypeAdapter(list[TronEventRecord])

ETHERSCAN_BASE_URL = "https://api.etherscan.io/v2/api"
TRON_EVENTS_PATH = "/api/tron/events.php"


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


async def _get_json(
    http_client: httpx.AsyncClient,
    url: str,
    params: Mapping[str, str],
    api: str,
) -> Any:
    """GET ``url`` and decode the JSON body, mapping failures to explorer errors."""
    try:
        response = await http_client.get(url, params=params)
    except httpx.TimeoutException as e:
        raise TransportError(f"Request timed out: {e}", api=api) from e
    except httpx.HTTPError as e:
        raise TransportError(f"Request failed: {e}", api=api) from e

    if response.status_code == 429:
        raise RateLimitedError(
            "Rate limit reached (HTTP 429)",
            retry_after=_retry_after(response),
            api=api,
            status_code=429,
        )
    if response.is_error:
        raise TransportError(
            f"HTTP error! status: {response.status_code}",
            api=api,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise TransportError(
            "Malformed response: body is not valid JSON",
            api=api,
            status_code=response.status_code,
        ) from e


class EtherscanAdapter:
    """Etherscan v2 multichain adapter."""

    api = "etherscan"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        chain_id: str,
        base_url: str = ETHERSCAN_BASE_URL,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.chain_id = chain_id
        self.base_url = base_url

    def build_params(self, parameters: Mapping[str, str]) -> dict[str, str]:
        """Caller parameters plus the credentials every v2 call needs."""
        return {
            **parameters,
            "apikey": self.api_key,
            "chainid": self.chain_id,
        }

    async def __call__(self, parameters: Mapping[str, str]) -> Any:
        payload = await _get_json(
            self.http_client,
            self.base_url,
            self.build_params(parameters),
            self.api,
        )
        classified = classify_response(payload, api=self.api)
        if not classified.ok:
            logger.debug(
                "Etherscan reported failure",
                kind=classified.kind.value,
                module=parameters.get("module"),
                action=parameters.get("action"),
                chain_id=self.chain_id,
                message=classified.message,
            )
        return unwrap(classified, api=self.api)


class TronEventsAdapter:
    """Adapter for the portal's TRON events endpoint, which answers a bare JSON list."""

    api = "tron"

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = ""):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    @property
    def url(self) -> str:
        return f"{self.base_url}{TRON_EVENTS_PATH}"

    async def __call__(self, parameters: Mapping[str, str]) -> list[TronEventRecord]:
        payload = await _get_json(self.http_client, self.url, parameters, self.api)
        if not isinstance(payload, list):
            raise TransportError(
                f"Malformed response: expected JSON list, got {type(payload).__name__}",
                api=self.api,
                response_data=payload,
            )
        try:
            return _TRON_ROWS.validate_python(payload)
        except ValidationError as e:
            raise TransportError(
                f"Malformed response: {e.error_count()} invalid event field(s)",
                api=self.api,
                response_data=payload,
            ) from e
