"""Core gateway logic: decode, validate, cross-check, sign and encode."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

from .abi import CALLBACK_SIGNATURE, REGISTER_SIGNATURE, subname_node, to_hex
from .config import GatewayConfig
from .decoder import SubnameRequest, decode_lookup
from .encoder import SignedResponse, encode_response
from .errors import AuthorizationError, GatewayError, ServiceError, UpstreamError
from .registry import AgentOwnerLookup
from .signers import LocalAccountSigner, ResponseSigner, Signer
from .validator import RequestValidator

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


class SubnameGateway:
    """Stateless CCIP-Read handler bound to a single :class:`GatewayConfig`."""

    def __init__(
        self,
        config: GatewayConfig,
        *,
        signer: Optional[Signer] = None,
        registry: Optional[AgentOwnerLookup] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._registry = registry
        self._validator = RequestValidator(config, clock=clock)
        self._signer = ResponseSigner(
            signer or LocalAccountSigner(config.private_key),
            trusted_signer=config.trusted_signer,
            ttl_seconds=config.signature_ttl_seconds,
            clock=clock,
        )
        self._metrics_registry = CollectorRegistry()
        self._lookups = Counter(
            "ccip_lookups_total",
            "Count of CCIP-Read lookups handled",
            labelnames=("outcome",),
            registry=self._metrics_registry,
        )
        self._rejections = Counter(
            "ccip_rejections_total",
            "Count of rejected CCIP-Read lookups",
            labelnames=("reason",),
            registry=self._metrics_registry,
        )

    @property
    def config(self) -> GatewayConfig:
        return self._config

    async def handle_lookup(self, body: Any) -> Dict[str, Any]:
        """Process a CCIP-Read POST body and return the JSON answer."""

        try:
            request = decode_lookup(body)
            expiry = self._validator.validate(request)
            await self._check_agent_owner(request)
            proof = self._signer.sign(
                request,
                expiry=expiry,
                chain_id=self._config.chain_id,
                contract_address=self._config.contract_address,
            )
            response = encode_response(request, proof)
        except GatewayError as exc:
            self._rejections.labels(exc.code).inc()
            self._lookups.labels("rejected" if exc.status_code < 500 else "failed").inc()
            logger.info("Lookup rejected", extra={"reason": exc.code, "status": exc.status_code})
            raise
        except Exception as exc:
            self._rejections.labels("INTERNAL").inc()
            self._lookups.labels("failed").inc()
            logger.exception("Unexpected failure while handling lookup")
            raise ServiceError("internal gateway error", code="INTERNAL") from exc

        self._lookups.labels("signed").inc()
        logger.info(
            "Signed subname authorization",
            extra={"label": request.label, "owner": request.subname_owner, "agent_id": request.agent_id},
        )
        return self._render(request, response)

    async def _check_agent_owner(self, request: SubnameRequest) -> None:
        if self._registry is None:
            return
        try:
            owner = await asyncio.wait_for(
                self._registry(request.agent_id),
                timeout=self._config.registry_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Identity registry lookup timed out", extra={"agent_id": request.agent_id})
            raise UpstreamError("Identity registry lookup timed out", code="REGISTRY_TIMEOUT") from exc
        except Exception as exc:
            logger.warning("Identity registry lookup failed", extra={"agent_id": request.agent_id}, exc_info=True)
            raise UpstreamError("Identity registry lookup failed", code="REGISTRY_UNAVAILABLE") from exc
        if not isinstance(owner, str) or owner.lower() != request.subname_owner.lower():
            raise AuthorizationError("Subname owner does not own the agent identity", code="AGENT_OWNER_MISMATCH")

    def _render(self, request: SubnameRequest, response: SignedResponse) -> Dict[str, Any]:
        meta: Dict[str, Any] = {
            "label": request.label,
            "subnameOwner": request.subname_owner,
            "agentId": str(request.agent_id),
            "node": to_hex(subname_node(request.parent_node, request.label)),
            "expiry": response.proof.expiry,
            "expiresAt": response.expires_at,
        }
        if self._config.parent_domain:
            meta["fullName"] = f"{request.label}.{self._config.parent_domain}"
        body: Dict[str, Any] = {"data": to_hex(response.result_bytes), "meta": meta}
        if request.extra_data_supplied:
            body["extraData"] = to_hex(response.extra_data)
            body["callData"] = to_hex(response.callback_data)
        return body

    def health(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "service": self._config.service_name,
            "chainId": self._config.chain_id,
            "contractAddress": self._config.contract_address,
        }

    def info(self) -> Dict[str, Any]:
        return {
            "name": "CCIP Subname Gateway",
            "description": "CCIP-Read gateway authorizing subname registration",
            "version": __version__,
            "endpoints": {
                "POST /": "CCIP-Read handler",
                "GET /health": "Health check",
                "GET /metrics": "Prometheus metrics",
            },
            "config": {
                "chainId": self._config.chain_id,
                "parentDomain": self._config.parent_domain,
                "parentNode": self._config.parent_node_hex,
                "identityRegistry": self._config.identity_registry,
                "trustedSigner": self._config.trusted_signer,
                "function": REGISTER_SIGNATURE,
                "callback": CALLBACK_SIGNATURE,
            },
        }

    def metrics(self) -> bytes:
        return generate_latest(self._metrics_registry)

    @property
    def metrics_content_type(self) -> str:
        return CONTENT_TYPE_LATEST


__all__ = ["SubnameGateway"]
