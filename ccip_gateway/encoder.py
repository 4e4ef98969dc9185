"""Encoding of signed answers for ``registerSubnameWithProof``."""

from __future__ import annotations

from dataclasses import dataclass

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address

from .abi import CALLBACK_SELECTOR, CALLBACK_TYPES, RESPONSE_TYPES
from .decoder import SubnameRequest
from .signers import Proof


@dataclass(frozen=True)
class SignedResponse:
    """Bytes handed back to the CCIP-Read client."""

    result_bytes: bytes
    extra_data: bytes
    callback_data: bytes
    proof: Proof

    @property
    def expires_at(self) -> int:
        return self.proof.expires_at

    @property
    def signature(self) -> bytes:
        return self.proof.signature


@dataclass(frozen=True)
class DecodedResult:
    subname_owner: str
    agent_id: int
    a2a_url: str
    expiry: int
    expires_at: int
    signature: bytes


def encode_result(request: SubnameRequest, proof: Proof) -> bytes:
    return abi_encode(
        list(RESPONSE_TYPES),
        [
            request.subname_owner,
            request.agent_id,
            request.a2a_url,
            proof.expiry,
            proof.expires_at,
            proof.signature,
        ],
    )


def decode_result(result_bytes: bytes) -> DecodedResult:
    owner, agent_id, a2a_url, expiry, expires_at, signature = abi_decode(list(RESPONSE_TYPES), result_bytes)
    return DecodedResult(
        subname_owner=to_checksum_address(owner),
        agent_id=agent_id,
        a2a_url=a2a_url,
        expiry=expiry,
        expires_at=expires_at,
        signature=signature,
    )


def echo_extra_data(request: SubnameRequest) -> bytes:
    # the verifier re-derives its expectations from these bytes; never touch them
    return request.extra_data


def encode_callback(result_bytes: bytes, extra_data: bytes) -> bytes:
    """Calldata for ``registerSubnameWithProof(bytes response, bytes extraData)``."""

    return CALLBACK_SELECTOR + abi_encode(list(CALLBACK_TYPES), [result_bytes, extra_data])


def encode_response(request: SubnameRequest, proof: Proof) -> SignedResponse:
    result_bytes = encode_result(request, proof)
    extra_data = echo_extra_data(request)
    return SignedResponse(
        result_bytes=result_bytes,
        extra_data=extra_data,
        callback_data=encode_callback(result_bytes, extra_data),
        proof=proof,
    )


__all__ = [
    "DecodedResult",
    "SignedResponse",
    "decode_result",
    "echo_extra_data",
    "encode_callback",
    "encode_response",
    "encode_result",
]
