"""ABI layouts shared by the decoder, signer, encoder and verifier.

The type lists below must stay in lock-step with ``OffchainSubnameManager``:
the contract ``abi.encode``s :data:`REQUEST_TYPES` into the OffchainLookup
call data, hashes :data:`MESSAGE_TYPES` when verifying the signature and
decodes :data:`RESPONSE_TYPES` inside ``registerSubnameWithProof``.
"""

from __future__ import annotations

import re
from typing import Any, Final, Tuple

from eth_utils import function_signature_to_4byte_selector, is_checksum_address, keccak

REQUEST_TYPES: Final[Tuple[str, ...]] = (
    "bytes32",  # parentNode
    "string",  # label
    "bytes32",  # labelHash
    "address",  # subnameOwner
    "uint256",  # agentId
    "string",  # a2aUrl
    "uint64",  # desiredExpiry
    "address",  # requester
    "uint256",  # chainId
    "address",  # contractAddress
)

MESSAGE_TYPES: Final[Tuple[str, ...]] = (
    "bytes32",  # parentNode
    "bytes32",  # labelHash
    "address",  # subnameOwner
    "uint256",  # agentId
    "bytes32",  # keccak256(a2aUrl)
    "uint64",  # expiry
    "uint64",  # expiresAt
    "address",  # requester
    "uint256",  # chainId
    "address",  # contractAddress
)

RESPONSE_TYPES: Final[Tuple[str, ...]] = (
    "address",  # subnameOwner
    "uint256",  # agentId
    "string",  # a2aUrl
    "uint64",  # expiry
    "uint64",  # expiresAt
    "bytes",  # signature
)

CALLBACK_SIGNATURE: Final[str] = "registerSubnameWithProof(bytes,bytes)"
CALLBACK_SELECTOR: Final[bytes] = function_signature_to_4byte_selector(CALLBACK_SIGNATURE)
CALLBACK_TYPES: Final[Tuple[str, ...]] = ("bytes", "bytes")

REGISTER_SIGNATURE: Final[str] = "registerSubname(bytes32,string,address,uint256,string,uint64)"

EMPTY_NODE: Final[bytes] = b"\x00" * 32

UINT64_MAX: Final[int] = 2**64 - 1

_HEX_ADDRESS = re.compile(r"0x[0-9a-fA-F]{40}")


def label_hash(label: str) -> bytes:
    """Return ``keccak256(utf8(label))``."""

    return keccak(text=label)


def namehash(name: str) -> bytes:
    """Compute the ENS namehash of a dotted name."""

    node = EMPTY_NODE
    if not name:
        return node
    for label in reversed(name.split(".")):
        node = keccak(node + label_hash(label))
    return node


def subname_node(parent_node: bytes, label: str) -> bytes:
    """Node of ``label`` under ``parent_node`` (``keccak256(parent ++ labelhash)``)."""

    return keccak(parent_node + label_hash(label))


def is_strict_address(value: Any) -> bool:
    """Accept a 0x-prefixed 20-byte address; mixed case must be a valid EIP-55 checksum."""

    if not isinstance(value, str) or not _HEX_ADDRESS.fullmatch(value):
        return False
    digits = value[2:]
    if digits == digits.lower() or digits == digits.upper():
        return True
    return is_checksum_address(value)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    """Decode a 0x-prefixed hex string, raising :class:`ValueError` otherwise."""

    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError("expected a 0x-prefixed hex string")
    return bytes.fromhex(value[2:])


__all__ = [
    "CALLBACK_SELECTOR",
    "CALLBACK_SIGNATURE",
    "CALLBACK_TYPES",
    "EMPTY_NODE",
    "MESSAGE_TYPES",
    "REGISTER_SIGNATURE",
    "REQUEST_TYPES",
    "RESPONSE_TYPES",
    "UINT64_MAX",
    "from_hex",
    "is_strict_address",
    "label_hash",
    "namehash",
    "subname_node",
    "to_hex",
]
