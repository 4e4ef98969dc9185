from __future__ import annotations

import dataclasses

import pytest

from ccip_gateway.abi import namehash
from ccip_gateway.config import parse_allowlist
from ccip_gateway.decoder import SubnameRequest, decode_lookup
from ccip_gateway.errors import AuthorizationError, ValidationError
from ccip_gateway.validator import RequestValidator

from gateway_fixtures import (
    NOW,
    OTHER_OWNER,
    OWNER,
    REQUESTER,
    FakeClock,
    build_call_data,
    lookup_body,
)


def _request(**overrides) -> SubnameRequest:
    return decode_lookup(lookup_body(build_call_data(**overrides)))


def _validator(make_config, **overrides) -> RequestValidator:
    return RequestValidator(make_config(**overrides), clock=FakeClock())


def test_valid_request_resolves_default_expiry(make_config) -> None:
    config = make_config()
    expiry = RequestValidator(config, clock=FakeClock()).validate(_request())
    assert expiry == NOW + config.default_lease_seconds
    assert expiry > NOW


def test_sender_must_be_configured_contract(make_config) -> None:
    request = dataclasses.replace(_request(), sender=OTHER_OWNER)
    with pytest.raises(ValidationError, match="contract"):
        _validator(make_config).validate(request)


def test_call_data_contract_address_is_cross_checked(make_config) -> None:
    with pytest.raises(ValidationError, match="contract"):
        _validator(make_config).validate(_request(contract_address=OTHER_OWNER))


def test_chain_id_comes_from_configuration(make_config) -> None:
    with pytest.raises(ValidationError, match="chainId"):
        _validator(make_config).validate(_request(chain_id=1))


def test_parent_node_must_match(make_config) -> None:
    with pytest.raises(ValidationError, match="parent node"):
        _validator(make_config).validate(_request(parent_node=namehash("other.eth")))


@pytest.mark.parametrize(
    "label",
    ["", "ab", "x" * 33, "TestAgent", "test_agent", "-agent", "agent-", "ab--agent", "agent.one", "agént"],
)
def test_invalid_labels_are_rejected(make_config, label: str) -> None:
    with pytest.raises(ValidationError):
        _validator(make_config).validate(_request(label=label))


@pytest.mark.parametrize("label", ["abc", "agent-7", "a1b2c3", "x" * 32, "treasury"])
def test_valid_labels_are_accepted(make_config, label: str) -> None:
    _validator(make_config).validate(_request(label=label))


def test_label_bounds_are_configurable(make_config) -> None:
    validator = _validator(make_config, label_min_length=1, label_max_length=5)
    validator.validate(_request(label="a"))
    with pytest.raises(ValidationError):
        validator.validate(_request(label="abcdef"))


def test_allowlist_rejects_other_owner(make_config) -> None:
    validator = _validator(make_config, allowlist=parse_allowlist([OWNER]))
    with pytest.raises(AuthorizationError):
        validator.validate(_request(owner=OTHER_OWNER))


def test_allowlist_matches_case_insensitively(make_config) -> None:
    validator = _validator(make_config, allowlist=parse_allowlist(OWNER.lower()))
    validator.validate(_request(owner=OWNER))


def test_allowlist_can_target_requester(make_config) -> None:
    validator = _validator(make_config, allowlist=parse_allowlist([REQUESTER]), allowlist_subject="requester")
    validator.validate(_request(owner=OTHER_OWNER))
    with pytest.raises(AuthorizationError):
        validator.validate(_request(requester=OTHER_OWNER))


def test_empty_allowlist_is_unrestricted(make_config) -> None:
    _validator(make_config, allowlist=frozenset()).validate(_request(owner=OTHER_OWNER))


def test_past_expiry_is_rejected(make_config) -> None:
    with pytest.raises(ValidationError, match="past"):
        _validator(make_config).validate(_request(desired_expiry=NOW - 1))


def test_expiry_below_minimum_lease_is_rejected(make_config) -> None:
    validator = _validator(make_config, min_lease_seconds=3600)
    with pytest.raises(ValidationError, match="minimum"):
        validator.validate(_request(desired_expiry=NOW + 60))


def test_expiry_above_maximum_lease_is_rejected(make_config) -> None:
    config = make_config()
    validator = RequestValidator(config, clock=FakeClock())
    with pytest.raises(ValidationError, match="maximum"):
        validator.validate(_request(desired_expiry=NOW + config.max_lease_seconds + 1))


def test_in_policy_expiry_is_kept(make_config) -> None:
    desired = NOW + 30 * 24 * 3600
    assert _validator(make_config).validate(_request(desired_expiry=desired)) == desired


def test_first_failure_wins(make_config) -> None:
    # wrong chain and bad label: the chain check runs first
    with pytest.raises(ValidationError, match="chainId"):
        _validator(make_config).validate(_request(chain_id=1, label="BAD"))
