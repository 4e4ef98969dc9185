"""Python model of ``OffchainSubnameManager.registerSubnameWithProof``.

The contract re-derives the request from its own ``extraData`` (a copy of the
lookup call data), rebuilds the signed message with ``block.chainid`` and
``address(this)``, and accepts the response only if it recovers to the
trusted signer. Collaborators use this to pre-flight a gateway answer before
paying for the transaction; the test suite uses it as the on-chain side of
the round trip.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from eth_abi.exceptions import DecodingError

from .abi import label_hash, subname_node
from .decoder import SubnameRequest, decode_call_data
from .encoder import decode_result
from .signers import message_digest, recover_signer


class ProofVerificationError(ValueError):
    """Raised when a response would revert on-chain."""


@dataclass(frozen=True)
class VerifiedRegistration:
    label: str
    node: bytes
    subname_owner: str
    agent_id: int
    a2a_url: str
    expiry: int


class SubnameProofVerifier:
    def __init__(
        self,
        *,
        trusted_signer: str,
        contract_address: str,
        chain_id: int,
        parent_node: bytes,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._trusted_signer = trusted_signer
        self._contract_address = contract_address
        self._chain_id = chain_id
        self._parent_node = parent_node
        self._clock = clock

    def verify(self, response: bytes, extra_data: bytes) -> VerifiedRegistration:
        try:
            result = decode_result(response)
        except (DecodingError, UnicodeDecodeError, ValueError, OverflowError) as exc:
            raise ProofVerificationError("malformed response") from exc
        try:
            (
                parent_node,
                label,
                claimed_label_hash,
                subname_owner,
                agent_id,
                a2a_url,
                desired_expiry,
                requester,
                _chain_id,
                _contract_address,
            ) = decode_call_data(extra_data)
        except Exception as exc:
            raise ProofVerificationError("malformed extraData") from exc

        if parent_node != self._parent_node:
            raise ProofVerificationError("unsupported parent node")
        if label_hash(label) != claimed_label_hash:
            raise ProofVerificationError("label hash mismatch")
        if result.subname_owner.lower() != subname_owner.lower():
            raise ProofVerificationError("owner mismatch")
        if result.agent_id != agent_id:
            raise ProofVerificationError("agent id mismatch")
        if result.a2a_url != a2a_url:
            raise ProofVerificationError("a2a url mismatch")
        if desired_expiry != 0 and result.expiry != desired_expiry:
            raise ProofVerificationError("expiry mismatch")
        now = int(self._clock())
        if result.expires_at < now:
            raise ProofVerificationError("signature expired")
        if result.expiry <= now:
            raise ProofVerificationError("lease already expired")

        request = SubnameRequest(
            parent_node=parent_node,
            label=label,
            label_hash=claimed_label_hash,
            subname_owner=result.subname_owner,
            agent_id=agent_id,
            a2a_url=a2a_url,
            desired_expiry=desired_expiry,
            requester=requester,
            chain_id=self._chain_id,
            contract_address=self._contract_address,
            sender=self._contract_address,
            call_data=extra_data,
        )
        digest = message_digest(
            request,
            expiry=result.expiry,
            expires_at=result.expires_at,
            chain_id=self._chain_id,
            contract_address=self._contract_address,
        )
        try:
            recovered = recover_signer(digest, result.signature)
        except Exception as exc:
            raise ProofVerificationError("invalid signature") from exc
        if recovered.lower() != self._trusted_signer.lower():
            raise ProofVerificationError("invalid signer")

        return VerifiedRegistration(
            label=label,
            node=subname_node(parent_node, label),
            subname_owner=result.subname_owner,
            agent_id=agent_id,
            a2a_url=a2a_url,
            expiry=result.expiry,
        )


__all__ = ["ProofVerificationError", "SubnameProofVerifier", "VerifiedRegistration"]
