"""Decoding of CCIP-Read lookup payloads into :class:`SubnameRequest` values."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from .abi import REQUEST_TYPES, from_hex, is_strict_address, label_hash
from .errors import DecodeError

logger = logging.getLogger(__name__)

_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
_HEX_PATTERN = r"^0x(?:[0-9a-fA-F]{2})*$"


class LookupPayload(BaseModel):
    """JSON body POSTed by CCIP-Read clients."""

    model_config = ConfigDict(extra="forbid", strict=True)

    sender: str = Field(..., pattern=_ADDRESS_PATTERN)
    data: str = Field(..., pattern=_HEX_PATTERN, min_length=4)
    extra_data: Optional[str] = Field(default=None, alias="extraData", pattern=_HEX_PATTERN)


@dataclass(frozen=True)
class SubnameRequest:
    """A fully decoded registration lookup. Built per call and never mutated."""

    parent_node: bytes
    label: str
    label_hash: bytes
    subname_owner: str
    agent_id: int
    a2a_url: str
    desired_expiry: int
    requester: str
    # caller-asserted; only ever compared against configuration
    chain_id: int
    contract_address: str
    sender: str
    call_data: bytes
    extra_data: bytes = b""
    extra_data_supplied: bool = False


def parse_lookup_payload(body: Any) -> LookupPayload:
    """Validate the raw JSON body, failing closed on any unexpected shape."""

    if not isinstance(body, dict):
        raise DecodeError("Lookup body must be a JSON object")
    try:
        payload = LookupPayload.model_validate(body)
    except SchemaError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise DecodeError(f"Malformed lookup payload: {location}: {first.get('msg', 'invalid')}") from exc
    if not is_strict_address(payload.sender):
        raise DecodeError("Invalid sender address")
    return payload


def decode_call_data(call_data: bytes) -> tuple:
    """ABI-decode the OffchainLookup call data, rejecting non-canonical encodings."""

    try:
        values = abi_decode(list(REQUEST_TYPES), call_data)
    except (DecodingError, UnicodeDecodeError, ValueError, OverflowError) as exc:
        raise DecodeError("Unable to decode OffchainLookup calldata") from exc
    try:
        canonical = abi_encode(list(REQUEST_TYPES), list(values))
    except Exception as exc:  # pragma: no cover - decode output always re-encodes
        raise DecodeError("Unable to decode OffchainLookup calldata") from exc
    if canonical != call_data:
        raise DecodeError("OffchainLookup calldata is not canonically encoded")
    return values


def decode_request(payload: LookupPayload) -> SubnameRequest:
    """Turn a validated payload into a :class:`SubnameRequest`."""

    call_data = from_hex(payload.data)
    extra_data = from_hex(payload.extra_data) if payload.extra_data is not None else b""
    (
        parent_node,
        label,
        claimed_label_hash,
        subname_owner,
        agent_id,
        a2a_url,
        desired_expiry,
        requester,
        chain_id,
        contract_address,
    ) = decode_call_data(call_data)

    if label_hash(label) != claimed_label_hash:
        logger.info("Rejected lookup with mismatched label hash", extra={"sender": payload.sender})
        raise DecodeError("labelHash does not match keccak256(label)")

    return SubnameRequest(
        parent_node=parent_node,
        label=label,
        label_hash=claimed_label_hash,
        subname_owner=to_checksum_address(subname_owner),
        agent_id=agent_id,
        a2a_url=a2a_url,
        desired_expiry=desired_expiry,
        requester=to_checksum_address(requester),
        chain_id=chain_id,
        contract_address=to_checksum_address(contract_address),
        sender=to_checksum_address(payload.sender),
        call_data=call_data,
        extra_data=extra_data,
        extra_data_supplied=payload.extra_data is not None,
    )


def decode_lookup(body: Any) -> SubnameRequest:
    """Convenience wrapper: schema check followed by ABI decode."""

    return decode_request(parse_lookup_payload(body))


__all__ = [
    "LookupPayload",
    "SubnameRequest",
    "decode_call_data",
    "decode_lookup",
    "decode_request",
    "parse_lookup_payload",
]
