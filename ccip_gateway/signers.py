"""Signing of gateway answers in the format the subname manager verifies."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak

from .abi import MESSAGE_TYPES
from .decoder import SubnameRequest
from .errors import ServiceError

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65


class Signer(Protocol):
    """Protocol for objects capable of signing 32-byte message digests."""

    @property
    def address(self) -> str:  # pragma: no cover - protocol
        """Checksummed address the signatures recover to."""

    def sign_digest(self, digest: bytes) -> bytes:  # pragma: no cover - protocol
        """Return a 65-byte ``r || s || v`` EIP-191 signature over ``digest``."""


class LocalAccountSigner:
    """Signer holding the private key in process memory."""

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_digest(self, digest: bytes) -> bytes:
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return bytes(signed.signature)


@dataclass(frozen=True)
class Proof:
    """A signature together with the values it commits to."""

    digest: bytes
    signature: bytes
    expiry: int
    expires_at: int


def message_digest(
    request: SubnameRequest,
    *,
    expiry: int,
    expires_at: int,
    chain_id: int,
    contract_address: str,
) -> bytes:
    """keccak256 of the ABI-encoded message the verifier reconstructs.

    ``chain_id`` and ``contract_address`` must come from configuration.
    """

    encoded = abi_encode(
        list(MESSAGE_TYPES),
        [
            request.parent_node,
            request.label_hash,
            request.subname_owner,
            request.agent_id,
            keccak(text=request.a2a_url),
            expiry,
            expires_at,
            request.requester,
            chain_id,
            contract_address,
        ],
    )
    return keccak(encoded)


def recover_signer(digest: bytes, signature: bytes) -> str:
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


class ResponseSigner:
    """Produces proofs and refuses to release any it cannot verify itself."""

    def __init__(
        self,
        signer: Signer,
        *,
        trusted_signer: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer = signer
        self._trusted_signer = trusted_signer
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def trusted_signer(self) -> str:
        return self._trusted_signer

    def sign(
        self,
        request: SubnameRequest,
        *,
        expiry: int,
        chain_id: int,
        contract_address: str,
    ) -> Proof:
        expires_at = int(self._clock()) + self._ttl_seconds
        try:
            digest = message_digest(
                request,
                expiry=expiry,
                expires_at=expires_at,
                chain_id=chain_id,
                contract_address=contract_address,
            )
            signature = self._signer.sign_digest(digest)
        except Exception as exc:
            logger.error("Signing failed", extra={"label": request.label}, exc_info=True)
            raise ServiceError("Failed to sign gateway response", code="SIGNING_FAILED") from exc

        self._verify(digest, signature)
        return Proof(digest=digest, signature=signature, expiry=expiry, expires_at=expires_at)

    def _verify(self, digest: bytes, signature: bytes) -> None:
        if len(signature) != SIGNATURE_LENGTH or signature[-1] not in (27, 28):
            logger.error("Signer produced a malformed signature", extra={"length": len(signature)})
            raise ServiceError("Signer produced a malformed signature", code="SIGNATURE_MALFORMED")
        try:
            recovered = recover_signer(digest, signature)
        except Exception as exc:
            logger.error("Signature recovery failed", exc_info=True)
            raise ServiceError("Signature could not be verified", code="SIGNATURE_UNVERIFIABLE") from exc
        if recovered.lower() != self._trusted_signer.lower():
            logger.error(
                "Signature recovered to an unexpected address",
                extra={"recovered": recovered, "expected": self._trusted_signer},
            )
            raise ServiceError("Signature does not recover to the trusted signer", code="SIGNER_MISMATCH")


__all__ = [
    "LocalAccountSigner",
    "Proof",
    "ResponseSigner",
    "SIGNATURE_LENGTH",
    "Signer",
    "message_digest",
    "recover_signer",
]
