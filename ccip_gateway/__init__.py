"""CCIP-Read (EIP-3668) gateway authorizing subname registrations."""

from .config import GatewayConfig, load_config
from .errors import (
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    GatewayError,
    ServiceError,
    UpstreamError,
    ValidationError,
)
from .process import create_app
from .service import SubnameGateway, __version__

__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "DecodeError",
    "GatewayConfig",
    "GatewayError",
    "ServiceError",
    "SubnameGateway",
    "UpstreamError",
    "ValidationError",
    "__version__",
    "create_app",
    "load_config",
]
