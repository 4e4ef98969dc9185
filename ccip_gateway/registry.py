"""ERC-8004 identity registry reads used for the optional agent ownership check."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Protocol

from web3 import Web3

logger = logging.getLogger(__name__)

IDENTITY_REGISTRY_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class AgentOwnerLookup(Protocol):
    """Async callable returning the registered owner of ``agent_id``."""

    async def __call__(self, agent_id: int) -> str:  # pragma: no cover - protocol
        ...


class Web3IdentityRegistry:
    """Reads ``ownerOf(agentId)`` from the identity registry over JSON-RPC."""

    def __init__(self, rpc_url: str, address: str, *, timeout: float = 5.0) -> None:
        self._web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=IDENTITY_REGISTRY_ABI,
        )
        logger.debug("Identity registry client initialised", extra={"registry": address})

    async def __call__(self, agent_id: int) -> str:
        call = self._contract.functions.ownerOf(agent_id).call
        owner = await asyncio.to_thread(call)
        return Web3.to_checksum_address(owner)


class StaticIdentityRegistry:
    """In-memory owner table used for demos and testing."""

    def __init__(self, owners: Dict[int, str] | None = None) -> None:
        self._owners = dict(owners or {})

    async def __call__(self, agent_id: int) -> str:
        try:
            return self._owners[agent_id]
        except KeyError:
            raise LookupError(f"agent {agent_id} is not registered") from None


__all__ = ["AgentOwnerLookup", "IDENTITY_REGISTRY_ABI", "StaticIdentityRegistry", "Web3IdentityRegistry"]
