from __future__ import annotations
from typing import Optional

import httpx

from chatbridge.core.errors import ProviderClientError, ProviderError, ProviderTransientError


def _status_of(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None) or getattr(exc, "http_status", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return int(status) if status is not None else None


def classify_exception(exc: Exception) -> ProviderError:
    """
    Convert SDK/httpx exceptions into neutral provider errors.
    Avoid hard dependency on specific SDK exception classes by inspecting attributes/message.
    """
    if isinstance(exc, ProviderError):
        return exc

    msg = str(exc) or exc.__class__.__name__
    status = _status_of(exc)

    if status is not None:
        if status == 429 or 500 <= status <= 599:
            return ProviderTransientError(msg)
        if 400 <= status < 500:
            return ProviderClientError(msg)
        # Unknown status → be conservative
        return ProviderTransientError(msg) if status >= 500 else ProviderClientError(msg)

    if isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError)):
        return ProviderTransientError(msg)

    lower = msg.lower()
    if any(k in lower for k in ("rate limit", "temporarily unavailable", "timeout", "timed out")):
        return ProviderTransientError(msg)
    if any(k in lower for k in ("invalid_request_error", "unsupported", "parameter", "authentication")):
        return ProviderClientError(msg)
    return ProviderTransientError(msg)
