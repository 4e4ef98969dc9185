"""Configuration model for the CCIP-Read gateway."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

import yaml
from eth_account import Account
from eth_utils import to_checksum_address

from .abi import UINT64_MAX, is_strict_address, namehash, to_hex
from .errors import ConfigurationError

ALLOWLIST_SUBJECTS = ("owner", "requester")

_DAY = 24 * 60 * 60
# expiry and expiresAt are uint64 timestamps; now + lease must never overflow them
_MAX_LEASE_SECONDS = UINT64_MAX // 2

REQUIRED_ENV = (
    "PRIVATE_KEY",
    "TRUSTED_SIGNER",
    "CONTRACT_ADDRESS",
    "CHAIN_ID",
    "PARENT_NODE",
    "IDENTITY_REGISTRY",
)


def _checksum(value: Any, name: str) -> str:
    if not is_strict_address(value):
        raise ConfigurationError(f"{name} must be a 0x-prefixed 20-byte address")
    return to_checksum_address(value)


def _node(value: Any, name: str) -> bytes:
    if isinstance(value, bytes):
        raw = value
    elif isinstance(value, str) and value.startswith("0x"):
        try:
            raw = bytes.fromhex(value[2:])
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be hex encoded") from exc
    else:
        raise ConfigurationError(f"{name} must be a 0x-prefixed 32-byte hash")
    if len(raw) != 32:
        raise ConfigurationError(f"{name} must be a 0x-prefixed 32-byte hash")
    return raw


def parse_allowlist(raw: Any) -> FrozenSet[str]:
    """Parse an allowlist given as a JSON array, comma list or sequence.

    An empty value or ``*`` means unrestricted and yields an empty set.
    """

    if raw is None:
        return frozenset()
    entries: Iterable[Any]
    if isinstance(raw, str):
        text = raw.strip()
        if not text or text == "*":
            return frozenset()
        if text.startswith("["):
            try:
                entries = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigurationError("ALLOWLIST is not a valid JSON array") from exc
            if not isinstance(entries, list):
                raise ConfigurationError("ALLOWLIST JSON must be an array of addresses")
        else:
            entries = [part.strip() for part in text.split(",")]
    else:
        entries = raw
    normalized = set()
    for entry in entries:
        if entry in (None, ""):
            continue
        normalized.add(_checksum(entry, "ALLOWLIST entry").lower())
    return frozenset(normalized)


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway configuration, loaded once per process."""

    private_key: str = field(repr=False)
    trusted_signer: str
    contract_address: str
    chain_id: int
    parent_node: bytes
    identity_registry: str
    parent_domain: Optional[str] = None
    rpc_url: Optional[str] = None
    allowlist: FrozenSet[str] = frozenset()
    allowlist_subject: str = "owner"
    label_min_length: int = 3
    label_max_length: int = 32
    min_lease_seconds: int = 60 * 60
    max_lease_seconds: int = 5 * 365 * _DAY
    default_lease_seconds: int = 365 * _DAY
    signature_ttl_seconds: int = 300
    registry_timeout_seconds: float = 5.0
    service_name: str = "ccip-subname-gateway"

    def __post_init__(self) -> None:
        if not isinstance(self.chain_id, int) or self.chain_id <= 0:
            raise ConfigurationError("chain_id must be a positive integer")
        for name in ("trusted_signer", "contract_address", "identity_registry"):
            value = getattr(self, name)
            if _checksum(value, name) != value:
                raise ConfigurationError(f"{name} must be checksummed")
        if not isinstance(self.parent_node, bytes) or len(self.parent_node) != 32:
            raise ConfigurationError("parent_node must be 32 bytes")
        if self.parent_domain and namehash(self.parent_domain.lower()) != self.parent_node:
            raise ConfigurationError("parent_node does not match namehash(parent_domain)")
        if self.allowlist_subject not in ALLOWLIST_SUBJECTS:
            raise ConfigurationError(f"allowlist_subject must be one of {', '.join(ALLOWLIST_SUBJECTS)}")
        if not (1 <= self.label_min_length <= self.label_max_length <= 255):
            raise ConfigurationError("label length bounds must satisfy 1 <= min <= max <= 255")
        if not (0 <= self.min_lease_seconds <= self.max_lease_seconds):
            raise ConfigurationError("lease bounds must satisfy 0 <= min <= max")
        if self.max_lease_seconds > _MAX_LEASE_SECONDS:
            raise ConfigurationError("max_lease_seconds exceeds the uint64 expiry range")
        if not (self.min_lease_seconds <= self.default_lease_seconds <= self.max_lease_seconds):
            raise ConfigurationError("default_lease_seconds must fall inside the lease bounds")
        if self.default_lease_seconds <= 0:
            raise ConfigurationError("default_lease_seconds must be positive")
        if not (1 <= self.signature_ttl_seconds <= 3600):
            raise ConfigurationError("signature_ttl_seconds must be between 1 and 3600 seconds")
        if self.registry_timeout_seconds <= 0:
            raise ConfigurationError("registry_timeout_seconds must be positive")
        try:
            derived = Account.from_key(self.private_key).address
        except Exception as exc:
            raise ConfigurationError("PRIVATE_KEY is not a valid secp256k1 key") from exc
        if derived.lower() != self.trusted_signer.lower():
            raise ConfigurationError("Trusted signer mismatch between PRIVATE_KEY and TRUSTED_SIGNER")

    @property
    def parent_node_hex(self) -> str:
        return to_hex(self.parent_node)

    @property
    def registry_check_enabled(self) -> bool:
        return bool(self.rpc_url)

    def is_allowed(self, address: str) -> bool:
        if not self.allowlist:
            return True
        return address.lower() in self.allowlist

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GatewayConfig":
        def _resolve(*keys: str, default: Any = None) -> Any:
            for key in keys:
                value = data.get(key)
                if value not in (None, ""):
                    return value
            return default

        missing = [
            env_key
            for env_key, aliases in (
                ("PRIVATE_KEY", ("private_key", "privateKey", "PRIVATE_KEY")),
                ("TRUSTED_SIGNER", ("trusted_signer", "trustedSigner", "TRUSTED_SIGNER")),
                ("CONTRACT_ADDRESS", ("contract_address", "contractAddress", "CONTRACT_ADDRESS")),
                ("CHAIN_ID", ("chain_id", "chainId", "CHAIN_ID")),
                ("PARENT_NODE", ("parent_node", "parentNode", "PARENT_NODE")),
                ("IDENTITY_REGISTRY", ("identity_registry", "identityRegistry", "IDENTITY_REGISTRY")),
            )
            if _resolve(*aliases) is None
        ]
        if missing:
            raise ConfigurationError(f"Gateway misconfigured: missing {', '.join(missing)}")

        def _int(*keys: str, default: int) -> int:
            value = _resolve(*keys, default=default)
            try:
                return int(value, 0) if isinstance(value, str) else int(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{keys[-1]} must be an integer") from exc

        private_key = str(_resolve("private_key", "privateKey", "PRIVATE_KEY")).strip()
        timeout_raw = _resolve("registry_timeout_seconds", "registryTimeoutSeconds", "REGISTRY_TIMEOUT_SECONDS", default=5.0)
        try:
            timeout = float(timeout_raw)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("REGISTRY_TIMEOUT_SECONDS must be a number") from exc

        return cls(
            private_key=private_key,
            trusted_signer=_checksum(_resolve("trusted_signer", "trustedSigner", "TRUSTED_SIGNER"), "TRUSTED_SIGNER"),
            contract_address=_checksum(
                _resolve("contract_address", "contractAddress", "CONTRACT_ADDRESS"), "CONTRACT_ADDRESS"
            ),
            chain_id=_int("chain_id", "chainId", "CHAIN_ID", default=0),
            parent_node=_node(_resolve("parent_node", "parentNode", "PARENT_NODE"), "PARENT_NODE"),
            identity_registry=_checksum(
                _resolve("identity_registry", "identityRegistry", "IDENTITY_REGISTRY"), "IDENTITY_REGISTRY"
            ),
            parent_domain=_resolve("parent_domain", "parentDomain", "PARENT_DOMAIN"),
            rpc_url=_resolve("rpc_url", "rpcUrl", "RPC_URL"),
            allowlist=parse_allowlist(_resolve("allowlist", "ALLOWLIST")),
            allowlist_subject=str(
                _resolve("allowlist_subject", "allowlistSubject", "ALLOWLIST_SUBJECT", default="owner")
            ).lower(),
            label_min_length=_int("label_min_length", "labelMinLength", "LABEL_MIN_LENGTH", default=3),
            label_max_length=_int("label_max_length", "labelMaxLength", "LABEL_MAX_LENGTH", default=32),
            min_lease_seconds=_int("min_lease_seconds", "minLeaseSeconds", "MIN_LEASE_SECONDS", default=60 * 60),
            max_lease_seconds=_int(
                "max_lease_seconds", "maxLeaseSeconds", "MAX_LEASE_SECONDS", default=5 * 365 * _DAY
            ),
            default_lease_seconds=_int(
                "default_lease_seconds", "defaultLeaseSeconds", "DEFAULT_LEASE_SECONDS", default=365 * _DAY
            ),
            signature_ttl_seconds=_int(
                "signature_ttl_seconds", "signatureTtlSeconds", "SIGNATURE_TTL_SECONDS", default=300
            ),
            registry_timeout_seconds=timeout,
            service_name=str(
                _resolve("service_name", "serviceName", "GATEWAY_SERVICE_NAME", default="ccip-subname-gateway")
            ),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """Build configuration from environment variables (see ``REQUIRED_ENV``)."""

        return cls.from_mapping(dict(os.environ if environ is None else environ))


def load_config(path: str | Path) -> GatewayConfig:
    """Load gateway configuration from a YAML or JSON file."""

    text = Path(path).read_text()
    data: Dict[str, Any] = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("gateway configuration must be a mapping")
    return GatewayConfig.from_mapping(data)


__all__ = ["ALLOWLIST_SUBJECTS", "GatewayConfig", "REQUIRED_ENV", "load_config", "parse_allowlist"]
