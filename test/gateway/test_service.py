from __future__ import annotations

import asyncio

import pytest

from ccip_gateway.abi import namehash
from ccip_gateway.errors import AuthorizationError, UpstreamError, ValidationError
from ccip_gateway.registry import StaticIdentityRegistry, Web3IdentityRegistry
from ccip_gateway.service import SubnameGateway
from ccip_gateway.signers import LocalAccountSigner

from gateway_fixtures import (
    OTHER_OWNER,
    OWNER,
    SIGNER_KEY,
    FakeClock,
    build_call_data,
    lookup_body,
)


class RecordingSigner:
    def __init__(self) -> None:
        self._inner = LocalAccountSigner(SIGNER_KEY)
        self.calls = 0

    @property
    def address(self) -> str:
        return self._inner.address

    def sign_digest(self, digest: bytes) -> bytes:
        self.calls += 1
        return self._inner.sign_digest(digest)


class SlowRegistry:
    async def __call__(self, agent_id: int) -> str:
        await asyncio.sleep(1)
        return OWNER


def _gateway(make_config, *, signer=None, registry=None, **overrides) -> SubnameGateway:
    return SubnameGateway(make_config(**overrides), signer=signer, registry=registry, clock=FakeClock())


@pytest.mark.parametrize(
    "overrides",
    [
        {"chain_id": 1},
        {"contract_address": OTHER_OWNER},
        {"parent_node": namehash("other.eth")},
        {"label": "Bad_Label"},
        {"desired_expiry": 1},
    ],
)
def test_rejected_requests_are_never_signed(make_config, overrides) -> None:
    signer = RecordingSigner()
    gateway = _gateway(make_config, signer=signer)

    with pytest.raises(ValidationError):
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data(**overrides))))

    assert signer.calls == 0


def test_foreign_sender_is_never_signed(make_config) -> None:
    signer = RecordingSigner()
    gateway = _gateway(make_config, signer=signer)
    body = lookup_body(build_call_data())
    body["sender"] = OTHER_OWNER

    with pytest.raises(ValidationError):
        asyncio.run(gateway.handle_lookup(body))

    assert signer.calls == 0


def test_registry_owner_match_is_signed(make_config) -> None:
    gateway = _gateway(make_config, registry=StaticIdentityRegistry({1: OWNER.lower()}))
    result = asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))
    assert result["meta"]["subnameOwner"] == OWNER


def test_registry_owner_mismatch_is_an_authorization_error(make_config) -> None:
    signer = RecordingSigner()
    gateway = _gateway(make_config, signer=signer, registry=StaticIdentityRegistry({1: OTHER_OWNER}))

    with pytest.raises(AuthorizationError):
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))
    assert signer.calls == 0


def test_registry_failure_is_an_upstream_error(make_config) -> None:
    gateway = _gateway(make_config, registry=StaticIdentityRegistry({}))
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))
    assert exc.value.status_code == 502


def test_unreachable_rpc_is_an_upstream_error(make_config) -> None:
    config = make_config(rpc_url="http://127.0.0.1:9", registry_timeout_seconds=30.0)
    registry = Web3IdentityRegistry(config.rpc_url, config.identity_registry, timeout=1.0)
    gateway = SubnameGateway(config, registry=registry, clock=FakeClock())

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))

    assert exc.value.status_code == 502
    assert exc.value.code == "REGISTRY_UNAVAILABLE"


def test_registry_timeout_fails_closed(make_config) -> None:
    gateway = _gateway(make_config, registry=SlowRegistry(), registry_timeout_seconds=0.05)
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))
    assert exc.value.code == "REGISTRY_TIMEOUT"


def test_meta_describes_the_authorization(make_config) -> None:
    gateway = _gateway(make_config)
    result = asyncio.run(gateway.handle_lookup(lookup_body(build_call_data(agent_id=2**200))))

    meta = result["meta"]
    assert meta["label"] == "testagent1234"
    assert meta["fullName"] == "testagent1234.oikonomos.eth"
    assert meta["agentId"] == str(2**200)
    assert meta["node"].startswith("0x") and len(meta["node"]) == 66
    assert "extraData" not in result


def test_metrics_count_outcomes(make_config) -> None:
    gateway = _gateway(make_config)
    asyncio.run(gateway.handle_lookup(lookup_body(build_call_data())))
    with pytest.raises(ValidationError):
        asyncio.run(gateway.handle_lookup(lookup_body(build_call_data(chain_id=5))))

    text = gateway.metrics().decode()
    assert 'ccip_lookups_total{outcome="signed"} 1.0' in text
    assert 'ccip_lookups_total{outcome="rejected"} 1.0' in text
    assert 'ccip_rejections_total{reason="WRONG_CHAIN"} 1.0' in text


def test_gateways_with_different_configs_coexist(make_config) -> None:
    sepolia = _gateway(make_config)
    local = _gateway(make_config, chain_id=31337)

    asyncio.run(sepolia.handle_lookup(lookup_body(build_call_data())))
    asyncio.run(local.handle_lookup(lookup_body(build_call_data(chain_id=31337))))
    with pytest.raises(ValidationError):
        asyncio.run(local.handle_lookup(lookup_body(build_call_data())))
