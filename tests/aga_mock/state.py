"""In-memory Global Accelerator state.

Holds accelerators, listeners, endpoint groups, cross-account attachments
and tags, and simulates asynchronous propagation: every change to an
accelerator (or to anything under it) puts the accelerator IN_PROGRESS for
a configurable number of DescribeAccelerator calls before it reports
DEPLOYED.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any

ACCOUNT_ID = "123456789012"
ARN_PREFIX = f"arn:aws:globalaccelerator::{ACCOUNT_ID}"


@dataclass
class MockAccelerator:
    """Accelerator record plus its propagation countdown."""

    data: dict[str, Any]
    pending_describes: int = 0

    @property
    def arn(self) -> str:
        return str(self.data["AcceleratorArn"])


@dataclass
class MockCall:
    """One recorded client call."""

    operation: str
    params: dict[str, Any] = field(default_factory=dict)


class MockGlobalAcceleratorState:
    """In-memory Global Accelerator state manager.

    All operations are synchronous since this is test code.
    """

    def __init__(self, deploy_after: int = 0) -> None:
        """Initialize empty state.

        Args:
            deploy_after: DescribeAccelerator calls that report IN_PROGRESS
                after each change before the accelerator is DEPLOYED.
        """
        self.deploy_after = deploy_after
        self.accelerators: dict[str, MockAccelerator] = {}
        self.listeners: dict[str, dict[str, Any]] = {}
        self.endpoint_groups: dict[str, dict[str, Any]] = {}
        self.attachments: dict[str, dict[str, Any]] = {}
        self.tags: dict[str, dict[str, str]] = {}
        self.idempotency_tokens: dict[tuple[str, str], str] = {}
        self.calls: list[MockCall] = []

    # -------------------------------------------------------------------------
    # Identifiers
    # -------------------------------------------------------------------------

    @staticmethod
    def new_accelerator_arn() -> str:
        return f"{ARN_PREFIX}:accelerator/{uuid.uuid4()}"

    @staticmethod
    def new_attachment_arn() -> str:
        return f"{ARN_PREFIX}:attachment/{uuid.uuid4()}"

    @staticmethod
    def new_child_id() -> str:
        return uuid.uuid4().hex[:8]

    # -------------------------------------------------------------------------
    # Seeding helpers for tests
    # -------------------------------------------------------------------------

    def add_accelerator(
        self,
        name: str = "example",
        *,
        enabled: bool = True,
        status: str = "DEPLOYED",
        tags: dict[str, str] | None = None,
    ) -> str:
        """Seed an accelerator and return its ARN."""
        arn = self.new_accelerator_arn()
        self.accelerators[arn] = MockAccelerator(
            data={
                "AcceleratorArn": arn,
                "Name": name,
                "IpAddressType": "IPV4",
                "Enabled": enabled,
                "IpSets": [
                    {
                        "IpFamily": "IPv4",
                        "IpAddressFamily": "IPv4",
                        "IpAddresses": ["192.0.2.10", "192.0.2.11"],
                    }
                ],
                "DnsName": f"{arn[-12:]}.awsglobalaccelerator.com",
                "Status": status,
            },
            pending_describes=0 if status == "DEPLOYED" else self.deploy_after,
        )
        self.tags[arn] = dict(tags or {})
        return arn

    def add_listener(self, accelerator_arn: str, ports: tuple[int, int] = (80, 80)) -> str:
        """Seed a listener and return its ARN."""
        arn = f"{accelerator_arn}/listener/{self.new_child_id()}"
        self.listeners[arn] = {
            "ListenerArn": arn,
            "PortRanges": [{"FromPort": ports[0], "ToPort": ports[1]}],
            "Protocol": "TCP",
            "ClientAffinity": "NONE",
        }
        return arn

    def add_endpoint_group(self, listener_arn: str, region: str = "us-east-1") -> str:
        """Seed an endpoint group and return its ARN."""
        arn = f"{listener_arn}/endpoint-group/{self.new_child_id()}"
        self.endpoint_groups[arn] = {
            "EndpointGroupArn": arn,
            "EndpointGroupRegion": region,
            "EndpointDescriptions": [],
            "TrafficDialPercentage": 100.0,
            "HealthCheckProtocol": "TCP",
            "HealthCheckPort": 80,
            "HealthCheckIntervalSeconds": 30,
            "ThresholdCount": 3,
            "PortOverrides": [],
        }
        return arn

    def add_attachment(
        self,
        name: str = "example",
        *,
        principals: list[str] | None = None,
        resources: list[dict[str, str]] | None = None,
        tags: dict[str, str] | None = None,
    ) -> str:
        """Seed a cross-account attachment and return its ARN."""
        arn = self.new_attachment_arn()
        self.attachments[arn] = {
            "AttachmentArn": arn,
            "Name": name,
            "Principals": list(principals or []),
            "Resources": copy.deepcopy(resources or []),
        }
        self.tags[arn] = dict(tags or {})
        return arn

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def mark_changed(self, accelerator_arn: str) -> None:
        """Start propagating a change on an accelerator."""
        accelerator = self.accelerators.get(accelerator_arn)
        if accelerator is None:
            return
        accelerator.data["Status"] = "IN_PROGRESS"
        accelerator.pending_describes = self.deploy_after

    def observe(self, accelerator_arn: str) -> dict[str, Any]:
        """Return the accelerator as seen by one describe call."""
        accelerator = self.accelerators[accelerator_arn]
        if accelerator.data["Status"] == "IN_PROGRESS":
            if accelerator.pending_describes > 0:
                accelerator.pending_describes -= 1
            else:
                accelerator.data["Status"] = "DEPLOYED"
        return copy.deepcopy(accelerator.data)

    def set_deployed(self, accelerator_arn: str) -> None:
        accelerator = self.accelerators[accelerator_arn]
        accelerator.data["Status"] = "DEPLOYED"
        accelerator.pending_describes = 0

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def calls_to(self, operation: str) -> list[MockCall]:
        """Recorded calls of one operation, in order."""
        return [call for call in self.calls if call.operation == operation]

    def mutation_count(self) -> int:
        """Number of recorded calls that change state."""
        read_prefixes = ("describe_", "list_")
        return sum(1 for call in self.calls if not call.operation.startswith(read_prefixes))
