"""Error taxonomy for the CCIP-Read gateway.

Every failure raised inside the request pipeline derives from
:class:`GatewayError`. The HTTP layer converts these into ``{"error": ...}``
bodies using :attr:`GatewayError.status_code`; nothing else about the
exception (causes, tracebacks) is sent to the caller.
"""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base class for failures surfaced to CCIP-Read clients."""

    status_code = 500
    default_code = "GATEWAY_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class DecodeError(GatewayError):
    """Raised when the lookup payload or its call data cannot be decoded."""

    status_code = 400
    default_code = "DECODE_FAILED"


class ValidationError(GatewayError):
    """Raised when a decoded request violates gateway policy."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class AuthorizationError(GatewayError):
    """Raised when the address being authorized is not permitted."""

    status_code = 403
    default_code = "NOT_AUTHORIZED"


class ServiceError(GatewayError):
    """Raised for signing failures and other internal faults."""

    status_code = 500
    default_code = "SERVICE_ERROR"


class UpstreamError(ServiceError):
    """Raised when a dependency such as the identity registry fails or times out."""

    status_code = 502
    default_code = "UPSTREAM_FAILED"


class ConfigurationError(ServiceError):
    """Raised when gateway configuration is missing or inconsistent."""

    default_code = "MISCONFIGURED"


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "DecodeError",
    "GatewayError",
    "ServiceError",
    "UpstreamError",
    "ValidationError",
]
