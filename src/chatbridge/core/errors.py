from __future__ import annotations


class ProviderError(Exception):
    """Base class for provider-level failures."""


class ProviderClientError(ProviderError):
    """
    Non-retryable: caller/config issue (malformed base URL, missing API key,
    4xx invalid request, auth, unknown model, etc.). The fix is change
    input/config, not retry.
    """


class ProviderTransientError(ProviderError):
    """
    Retryable: rate limits, timeouts, network hiccups, 5xx, etc.
    Retrying with backoff is appropriate, but that is the caller's decision.
    """


class StreamCancelledError(ProviderError):
    """
    The caller cancelled the operation (or its deadline passed).
    Not a failure worth retrying.
    """

    def __init__(self, reason: str = "operation cancelled"):
        super().__init__(reason)
        self.reason = reason
