"""Global Accelerator resource identifiers.

Identifiers are hierarchical: a child ARN is its parent ARN followed by a
type-tagged separator and the child id.

    arn:aws:globalaccelerator::{account}:accelerator/{uuid}
        /listener/{listener_id}
            /endpoint-group/{endpoint_group_id}

Parsing a child therefore always yields its owning accelerator without an
extra remote lookup. Cross-account attachments live beside accelerators
and have no parent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

SERVICE_NAME = "globalaccelerator"
LISTENER_SEPARATOR = "/listener/"
ENDPOINT_GROUP_SEPARATOR = "/endpoint-group/"

ACCELERATOR_ARN_PATTERN = re.compile(
    r"^arn:(aws[a-z-]*):(\w+)::(\d{12}):(\w+)/([0-9a-f-]+)$"
)
ATTACHMENT_ARN_PATTERN = re.compile(
    r"^arn:(aws[a-z-]*):(\w+)::(\d{12}):attachment/([0-9a-f-]+)$"
)
CHILD_ID_PATTERN = re.compile(r"^\w+$")


class InvalidArnError(ValueError):
    """Raised when an identifier cannot be parsed."""

    pass


@dataclass(frozen=True)
class AcceleratorArn:
    """Parsed accelerator ARN."""

    partition: str
    account_id: str
    uuid: str

    @property
    def arn(self) -> str:
        return f"arn:{self.partition}:{SERVICE_NAME}::{self.account_id}:accelerator/{self.uuid}"

    def __str__(self) -> str:
        return self.arn

    @classmethod
    def parse(cls, arn: str | None) -> AcceleratorArn:
        """Parse and validate an accelerator ARN.

        Raises:
            InvalidArnError: If the ARN is empty or malformed.
        """
        if not arn:
            raise InvalidArnError(f"Accelerator ARN cannot be null or empty: {arn!r}")
        match = ACCELERATOR_ARN_PATTERN.match(arn)
        if match is None or match.group(2) != SERVICE_NAME or match.group(4) != "accelerator":
            raise InvalidArnError(f"Invalid accelerator ARN {arn}")
        return cls(partition=match.group(1), account_id=match.group(3), uuid=match.group(5))


@dataclass(frozen=True)
class ListenerArn:
    """Parsed listener ARN."""

    accelerator: AcceleratorArn
    listener_id: str

    @property
    def arn(self) -> str:
        return f"{self.accelerator.arn}{LISTENER_SEPARATOR}{self.listener_id}"

    @property
    def accelerator_arn(self) -> str:
        return self.accelerator.arn

    def __str__(self) -> str:
        return self.arn

    @classmethod
    def parse(cls, arn: str | None) -> ListenerArn:
        """Parse and validate a listener ARN.

        Raises:
            InvalidArnError: If the ARN is empty or malformed.
        """
        if not arn:
            raise InvalidArnError(f"Listener ARN cannot be null or empty: {arn!r}")
        parts = arn.split(LISTENER_SEPARATOR)
        if len(parts) != 2 or not CHILD_ID_PATTERN.match(parts[1]):
            raise InvalidArnError(f"Invalid listener ARN {arn}")
        return cls(accelerator=AcceleratorArn.parse(parts[0]), listener_id=parts[1])


@dataclass(frozen=True)
class EndpointGroupArn:
    """Parsed endpoint group ARN."""

    listener: ListenerArn
    endpoint_group_id: str

    @property
    def arn(self) -> str:
        return f"{self.listener.arn}{ENDPOINT_GROUP_SEPARATOR}{self.endpoint_group_id}"

    @property
    def listener_arn(self) -> str:
        return self.listener.arn

    @property
    def accelerator_arn(self) -> str:
        return self.listener.accelerator_arn

    def __str__(self) -> str:
        return self.arn

    @classmethod
    def parse(cls, arn: str | None) -> EndpointGroupArn:
        """Parse and validate an endpoint group ARN.

        Raises:
            InvalidArnError: If the ARN is empty or malformed.
        """
        if not arn:
            raise InvalidArnError(f"Endpoint group ARN cannot be null or empty: {arn!r}")
        parts = arn.split(ENDPOINT_GROUP_SEPARATOR)
        if len(parts) != 2 or not CHILD_ID_PATTERN.match(parts[1]):
            raise InvalidArnError(f"Invalid endpoint group ARN {arn}")
        return cls(listener=ListenerArn.parse(parts[0]), endpoint_group_id=parts[1])


def validate_attachment_arn(arn: str | None) -> str:
    """Validate a cross-account attachment ARN and return it unchanged."""
    if not arn:
        raise InvalidArnError(f"Attachment ARN cannot be null or empty: {arn!r}")
    match = ATTACHMENT_ARN_PATTERN.match(arn)
    if match is None or match.group(2) != SERVICE_NAME:
        raise InvalidArnError(f"Invalid attachment ARN {arn}")
    return arn


def parent_of(arn: str) -> str:
    """Return the ARN of the resource that owns ``arn``.

    Endpoint group -> listener, listener -> accelerator.

    Raises:
        InvalidArnError: If ``arn`` is not a child identifier.
    """
    if ENDPOINT_GROUP_SEPARATOR in arn:
        return EndpointGroupArn.parse(arn).listener_arn
    if LISTENER_SEPARATOR in arn:
        return ListenerArn.parse(arn).accelerator_arn
    raise InvalidArnError(f"ARN has no parent resource: {arn}")


def accelerator_of(arn: str) -> str:
    """Return the owning accelerator ARN for any accelerator-rooted ARN."""
    if ENDPOINT_GROUP_SEPARATOR in arn:
        return EndpointGroupArn.parse(arn).accelerator_arn
    if LISTENER_SEPARATOR in arn:
        return ListenerArn.parse(arn).accelerator_arn
    return AcceleratorArn.parse(arn).arn
