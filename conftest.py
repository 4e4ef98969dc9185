"""Repository-wide pytest configuration.

Pins the repository root on ``sys.path`` so ``ccip_gateway`` imports without
an editable install, and strips gateway environment variables that would
otherwise leak from the caller's shell into configuration loaders under test.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_GATEWAY_ENV = (
    "PRIVATE_KEY",
    "TRUSTED_SIGNER",
    "CONTRACT_ADDRESS",
    "CHAIN_ID",
    "PARENT_NODE",
    "PARENT_DOMAIN",
    "IDENTITY_REGISTRY",
    "ALLOWLIST",
    "ALLOWLIST_SUBJECT",
    "RPC_URL",
)


@pytest.fixture(autouse=True)
def _isolate_gateway_env(monkeypatch: pytest.MonkeyPatch):
    for key in _GATEWAY_ENV:
        if key in os.environ:
            monkeypatch.delenv(key)
    yield
