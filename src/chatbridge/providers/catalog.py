"""
Model listing and health check for chat-completions style backends.

Both issue `GET {base_url}/models` with a bearer credential. The catalog keeps
only entries whose `active` flag is true; the health check ignores the body.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from chatbridge.core.context import Context
from chatbridge.core.errors import ProviderTransientError
from chatbridge.core.types import Model
from chatbridge.providers.errors import classify_exception

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _headers(api_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


def _effective_timeout(ctx: Context, timeout: float) -> float:
    remaining = ctx.remaining()
    return timeout if remaining is None else min(timeout, remaining)


def get_models_response(
    ctx: Context,
    base_url: str,
    api_key: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> httpx.Response:
    """
    Authenticated GET on the listing endpoint. Raises a neutral provider error
    on transport/HTTP failure, StreamCancelledError if ctx is done.
    """
    ctx.raise_if_done()
    url = base_url.rstrip("/") + "/models"
    try:
        if client is not None:
            resp = client.get(url, headers=_headers(api_key), timeout=_effective_timeout(ctx, timeout))
        else:
            resp = httpx.get(url, headers=_headers(api_key), timeout=_effective_timeout(ctx, timeout))
        resp.raise_for_status()
    except httpx.HTTPError as e:
        ctx.raise_if_done()
        raise classify_exception(e) from e
    ctx.raise_if_done()
    return resp


def parse_active_models(payload: Any, provider: str) -> List[Model]:
    # response example
    # {"object": "list",
    #  "data": [{"id": "gemma2-9b-it", "object": "model", "owned_by": "Google",
    #            "active": true, "context_window": 8192}]}
    if not isinstance(payload, dict):
        raise ProviderTransientError("Unexpected models response: expected a JSON object")
    data = payload.get("data") or []
    if not isinstance(data, list):
        raise ProviderTransientError("Unexpected models response: 'data' is not a list")

    models: List[Model] = []
    for item in data:
        if isinstance(item, dict) and item.get("active") is True:
            models.append(Model(name=str(item.get("id", "")), provider=provider))
    return models


def fetch_models(
    ctx: Context,
    base_url: str,
    api_key: str,
    provider: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> List[Model]:
    resp = get_models_response(ctx, base_url, api_key, timeout=timeout, client=client)
    try:
        payload = resp.json()
    except ValueError as e:
        raise ProviderTransientError(f"Invalid JSON from {base_url}/models: {e}") from e
    models = parse_active_models(payload, provider)
    logger.debug("%s: %d active models", provider, len(models))
    return models


def ping(
    ctx: Context,
    base_url: str,
    api_key: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> None:
    get_models_response(ctx, base_url, api_key, timeout=timeout, client=client)
