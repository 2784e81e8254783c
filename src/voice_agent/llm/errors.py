from __future__ import annotations


class LLMError(Exception):
    """Base error of the LLM layer; `retryable` drives retry and the breaker."""
    code: str = "LLM_ERROR"
    retryable: bool = False

    def __init__(self, message: str, *, code: str | None = None, retryable: bool | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable


class LLMTimeout(LLMError):
    code = "LLM_TIMEOUT"
    retryable = True


class LLMRateLimited(LLMError):
    code = "LLM_RATE_LIMIT"
    retryable = True


class LLMUnavailable(LLMError):
    code = "LLM_UNAVAILABLE"
    retryable = True


class LLMAuthError(LLMError):
    code = "LLM_AUTH"
    retryable = False


class LLMInvalidRequest(LLMError):
    code = "LLM_INVALID_REQUEST"
    retryable = False


class LLMProviderError(LLMError):
    code = "LLM_PROVIDER_ERROR"
    retryable = True


# Failures caused by the provider side; these count towards opening the breaker.
UPSTREAM_FAILURES = (LLMTimeout, LLMRateLimited, LLMUnavailable, LLMProviderError)


def error_kind(err: Exception) -> str:
    if isinstance(err, LLMTimeout):
        return "timeout"
    if isinstance(err, LLMRateLimited):
        return "rate_limit"
    if isinstance(err, LLMInvalidRequest):
        return "invalid_request"
    if isinstance(err, LLMAuthError):
        return "auth_error"
    if isinstance(err, LLMUnavailable):
        return "unavailable"
    if isinstance(err, LLMProviderError):
        return "provider_error"
    if isinstance(err, ValueError):
        return "parse_error"
    return "unknown"
