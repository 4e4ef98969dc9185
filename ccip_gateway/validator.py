"""Authorization and policy checks applied to decoded lookups."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from .abi import to_hex
from .config import GatewayConfig
from .decoder import SubnameRequest
from .errors import AuthorizationError, ValidationError

logger = logging.getLogger(__name__)

_LABEL_CHARSET = re.compile(r"^[a-z0-9-]+$")


class RequestValidator:
    """Runs the ordered policy checks; the first failure aborts the request.

    The registry ownership cross-check is performed by the service because
    it is the only step that performs I/O.
    """

    def __init__(self, config: GatewayConfig, *, clock: Callable[[], float] = time.time) -> None:
        self._config = config
        self._clock = clock

    def validate(self, request: SubnameRequest) -> int:
        """Validate ``request`` and return the resolved lease expiry."""

        self.check_contract(request)
        self.check_chain(request)
        self.check_parent_node(request)
        self.check_label(request.label)
        self.check_allowlist(request)
        return self.resolve_expiry(request.desired_expiry)

    def check_contract(self, request: SubnameRequest) -> None:
        expected = self._config.contract_address.lower()
        if request.sender.lower() != expected:
            raise ValidationError("Request not intended for this contract", code="WRONG_CONTRACT")
        if request.contract_address.lower() != expected:
            raise ValidationError("Calldata contract address does not match sender", code="WRONG_CONTRACT")

    def check_chain(self, request: SubnameRequest) -> None:
        if request.chain_id != self._config.chain_id:
            raise ValidationError(
                f"Invalid chainId. Expected {self._config.chain_id}, got {request.chain_id}",
                code="WRONG_CHAIN",
            )

    def check_parent_node(self, request: SubnameRequest) -> None:
        if request.parent_node != self._config.parent_node:
            raise ValidationError(f"Unsupported parent node {to_hex(request.parent_node)}", code="WRONG_PARENT")

    def check_label(self, label: str) -> None:
        config = self._config
        if not label:
            raise ValidationError("Label must not be empty", code="INVALID_LABEL")
        if not (config.label_min_length <= len(label) <= config.label_max_length):
            raise ValidationError(
                f"Label must be {config.label_min_length}-{config.label_max_length} characters",
                code="INVALID_LABEL",
            )
        if label != label.lower():
            raise ValidationError("Label must be normalized to lowercase", code="INVALID_LABEL")
        if not _LABEL_CHARSET.match(label):
            raise ValidationError(
                "Label must contain only lowercase letters, numbers, and hyphens", code="INVALID_LABEL"
            )
        if label.startswith("-") or label.endswith("-"):
            raise ValidationError("Label cannot start or end with a hyphen", code="INVALID_LABEL")
        # ENSIP-15 rejects "--" in the third and fourth positions
        if label[2:4] == "--":
            raise ValidationError("Label cannot contain hyphens in positions 3 and 4", code="INVALID_LABEL")

    def check_allowlist(self, request: SubnameRequest) -> None:
        config = self._config
        if not config.allowlist:
            return
        subject = request.subname_owner if config.allowlist_subject == "owner" else request.requester
        if not config.is_allowed(subject):
            logger.info(
                "Allowlist rejected lookup",
                extra={"subject": config.allowlist_subject, "address": subject, "label": request.label},
            )
            raise AuthorizationError(f"{config.allowlist_subject.capitalize()} not on allowlist")

    def resolve_expiry(self, desired_expiry: int) -> int:
        config = self._config
        now = int(self._clock())
        if desired_expiry == 0:
            return now + config.default_lease_seconds
        if desired_expiry <= now:
            raise ValidationError("Desired expiry is in the past", code="INVALID_EXPIRY")
        if desired_expiry < now + config.min_lease_seconds:
            raise ValidationError("Desired expiry is shorter than the minimum lease", code="INVALID_EXPIRY")
        if desired_expiry > now + config.max_lease_seconds:
            raise ValidationError("Desired expiry exceeds the maximum lease", code="INVALID_EXPIRY")
        return desired_expiry


__all__ = ["RequestValidator"]
