from __future__ import annotations

from typing import Callable, Dict

import pytest

from ccip_gateway.config import GatewayConfig

from gateway_fixtures import (
    CHAIN_ID,
    CONTRACT,
    PARENT_NODE,
    REGISTRY,
    SIGNER_ADDRESS,
    SIGNER_KEY,
    FakeClock,
    build_call_data,
    make_gateway_config,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_config() -> Callable[..., GatewayConfig]:
    return make_gateway_config


@pytest.fixture
def call_data() -> Callable[..., bytes]:
    return build_call_data


@pytest.fixture
def gateway_env() -> Dict[str, str]:
    return {
        "PRIVATE_KEY": SIGNER_KEY,
        "TRUSTED_SIGNER": SIGNER_ADDRESS,
        "CONTRACT_ADDRESS": CONTRACT,
        "CHAIN_ID": str(CHAIN_ID),
        "PARENT_NODE": "0x" + PARENT_NODE.hex(),
        "IDENTITY_REGISTRY": REGISTRY,
    }
