"""Pydantic models for Global Accelerator resource state.

These models provide:
1. Type-safe parsing of desired and previous state from the orchestrator
2. Validation at the boundary (fail fast, fail loudly)
3. Clean transformation from Global Accelerator API responses

Field aliases follow the resource schema property names (PascalCase), so a
model round-trips through the orchestrator unchanged.
"""

from __future__ import annotations

import unicodedata
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Characters allowed in tag keys and values besides letters, separators
# and numbers.
TAG_EXTRA_CHARACTERS = frozenset("_.:/=+-@")
RESERVED_TAG_PREFIX = "aws:"

Port = Annotated[int, Field(ge=1, le=65535)]


# =============================================================================
# Child descriptors (immutable, hashable, usable in sets)
# =============================================================================


class Tag(BaseModel):
    """Resource tag."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: Annotated[str, Field(min_length=1, max_length=128, alias="Key")]
    value: Annotated[str, Field(max_length=256, alias="Value")] = ""

    def to_api(self) -> dict[str, str]:
        return {"Key": self.key, "Value": self.value}


class PortRange(BaseModel):
    """Listener port range."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_port: Port = Field(alias="FromPort")
    to_port: Port = Field(alias="ToPort")

    def to_api(self) -> dict[str, int]:
        return {"FromPort": self.from_port, "ToPort": self.to_port}


class PortOverride(BaseModel):
    """Endpoint group port override."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    listener_port: Port = Field(alias="ListenerPort")
    endpoint_port: Port = Field(alias="EndpointPort")

    def to_api(self) -> dict[str, int]:
        return {"ListenerPort": self.listener_port, "EndpointPort": self.endpoint_port}


class EndpointConfiguration(BaseModel):
    """Endpoint inside an endpoint group."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    endpoint_id: Annotated[str, Field(min_length=1, alias="EndpointId")]
    weight: Annotated[int, Field(ge=0, le=255)] | None = Field(None, alias="Weight")
    client_ip_preservation_enabled: bool | None = Field(
        None, alias="ClientIPPreservationEnabled"
    )
    attachment_arn: str | None = Field(None, alias="AttachmentArn")

    def to_api(self) -> dict[str, Any]:
        data: dict[str, Any] = {"EndpointId": self.endpoint_id}
        if self.weight is not None:
            data["Weight"] = self.weight
        if self.client_ip_preservation_enabled is not None:
            data["ClientIPPreservationEnabled"] = self.client_ip_preservation_enabled
        if self.attachment_arn is not None:
            data["AttachmentArn"] = self.attachment_arn
        return data


class AttachmentResource(BaseModel):
    """Resource (endpoint or BYOIP CIDR) shared by a cross-account attachment."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    endpoint_id: str | None = Field(None, alias="EndpointId")
    cidr: str | None = Field(None, alias="Cidr")
    region: str | None = Field(None, alias="Region")

    def to_api(self) -> dict[str, str]:
        data: dict[str, str] = {}
        if self.endpoint_id is not None:
            data["EndpointId"] = self.endpoint_id
        if self.cidr is not None:
            data["Cidr"] = self.cidr
        if self.region is not None:
            data["Region"] = self.region
        return data


# =============================================================================
# Tag validation
# =============================================================================


def _is_valid_tag_text(text: str) -> bool:
    for char in text:
        if char in TAG_EXTRA_CHARACTERS:
            continue
        if unicodedata.category(char)[0] not in ("L", "Z", "N"):
            return False
    return True


def invalid_tags(tags: list[Tag] | None) -> list[Tag]:
    """Return tags whose key or value is malformed or uses the reserved prefix."""
    return [
        tag
        for tag in tags or []
        if not _is_valid_tag_text(tag.key)
        or not _is_valid_tag_text(tag.value)
        or tag.key.startswith(RESERVED_TAG_PREFIX)
    ]


def tags_from_api(tags: list[dict[str, Any]] | None) -> list[Tag]:
    return [Tag(key=t["Key"], value=t.get("Value", "")) for t in tags or []]


# =============================================================================
# Resource models
# =============================================================================


class ResourceModel(BaseModel):
    """Base for resource state models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AcceleratorModel(ResourceModel):
    """Accelerator resource state."""

    accelerator_arn: str | None = Field(None, alias="AcceleratorArn")
    name: Annotated[str, Field(min_length=1, max_length=64, alias="Name")]
    enabled: bool = Field(True, alias="Enabled")
    ip_address_type: str = Field("IPV4", alias="IpAddressType")
    ip_addresses: list[str] | None = Field(None, alias="IpAddresses")
    dns_name: str | None = Field(None, alias="DnsName")
    dual_stack_dns_name: str | None = Field(None, alias="DualStackDnsName")
    ipv4_addresses: list[str] | None = Field(None, alias="Ipv4Addresses")
    ipv6_addresses: list[str] | None = Field(None, alias="Ipv6Addresses")
    tags: list[Tag] | None = Field(None, alias="Tags")

    @field_validator("ip_address_type")
    @classmethod
    def validate_ip_address_type(cls, v: str) -> str:
        valid = {"IPV4", "DUAL_STACK"}
        if v not in valid:
            raise ValueError(f"IpAddressType must be one of {valid}")
        return v

    @classmethod
    def from_api(
        cls, accelerator: dict[str, Any], tags: list[Tag] | None = None
    ) -> AcceleratorModel:
        """Build a model from a DescribeAccelerator/CreateAccelerator response."""
        ip_sets = accelerator.get("IpSets") or []

        def addresses(family: str | None = None) -> list[str]:
            return [
                address
                for ip_set in ip_sets
                if family is None or str(ip_set.get("IpAddressFamily", "")).upper() == family
                for address in ip_set.get("IpAddresses", [])
            ]

        return cls(
            accelerator_arn=accelerator["AcceleratorArn"],
            name=accelerator["Name"],
            enabled=accelerator.get("Enabled", True),
            ip_address_type=accelerator.get("IpAddressType", "IPV4"),
            ip_addresses=addresses() if ip_sets else None,
            dns_name=accelerator.get("DnsName"),
            dual_stack_dns_name=accelerator.get("DualStackDnsName"),
            ipv4_addresses=addresses("IPV4") if ip_sets else None,
            ipv6_addresses=addresses("IPV6") if ip_sets else None,
            tags=tags,
        )


class ListenerModel(ResourceModel):
    """Listener resource state."""

    listener_arn: str | None = Field(None, alias="ListenerArn")
    accelerator_arn: str = Field(alias="AcceleratorArn")
    port_ranges: Annotated[list[PortRange], Field(min_length=1, alias="PortRanges")]
    protocol: str = Field("TCP", alias="Protocol")
    client_affinity: str = Field("NONE", alias="ClientAffinity")

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        valid = {"TCP", "UDP"}
        if v not in valid:
            raise ValueError(f"Protocol must be one of {valid}")
        return v

    @field_validator("client_affinity")
    @classmethod
    def validate_client_affinity(cls, v: str) -> str:
        valid = {"NONE", "SOURCE_IP"}
        if v not in valid:
            raise ValueError(f"ClientAffinity must be one of {valid}")
        return v

    @classmethod
    def from_api(cls, listener: dict[str, Any], accelerator_arn: str) -> ListenerModel:
        return cls(
            listener_arn=listener["ListenerArn"],
            accelerator_arn=accelerator_arn,
            port_ranges=[
                PortRange(from_port=p["FromPort"], to_port=p["ToPort"])
                for p in listener.get("PortRanges", [])
            ],
            protocol=listener.get("Protocol", "TCP"),
            client_affinity=listener.get("ClientAffinity", "NONE"),
        )


class EndpointGroupModel(ResourceModel):
    """Endpoint group resource state."""

    endpoint_group_arn: str | None = Field(None, alias="EndpointGroupArn")
    listener_arn: str = Field(alias="ListenerArn")
    endpoint_group_region: str = Field(alias="EndpointGroupRegion")
    endpoint_configurations: list[EndpointConfiguration] | None = Field(
        None, alias="EndpointConfigurations"
    )
    traffic_dial_percentage: Annotated[float, Field(ge=0, le=100)] | None = Field(
        None, alias="TrafficDialPercentage"
    )
    # A negative port means "use the service default" (the listener port).
    health_check_port: int = Field(-1, alias="HealthCheckPort")
    health_check_protocol: str = Field("TCP", alias="HealthCheckProtocol")
    health_check_path: str | None = Field(None, alias="HealthCheckPath")
    health_check_interval_seconds: Annotated[
        int, Field(ge=10, le=30, alias="HealthCheckIntervalSeconds")
    ] = 30
    threshold_count: Annotated[int, Field(ge=1, le=10, alias="ThresholdCount")] = 3
    port_overrides: list[PortOverride] | None = Field(None, alias="PortOverrides")

    @field_validator("health_check_protocol")
    @classmethod
    def validate_health_check_protocol(cls, v: str) -> str:
        valid = {"TCP", "HTTP", "HTTPS"}
        if v not in valid:
            raise ValueError(f"HealthCheckProtocol must be one of {valid}")
        return v

    @classmethod
    def from_api(cls, endpoint_group: dict[str, Any], listener_arn: str) -> EndpointGroupModel:
        return cls(
            endpoint_group_arn=endpoint_group["EndpointGroupArn"],
            listener_arn=listener_arn,
            endpoint_group_region=endpoint_group["EndpointGroupRegion"],
            endpoint_configurations=[
                EndpointConfiguration(
                    endpoint_id=d["EndpointId"],
                    weight=d.get("Weight"),
                    client_ip_preservation_enabled=d.get("ClientIPPreservationEnabled"),
                )
                for d in endpoint_group.get("EndpointDescriptions", [])
            ],
            traffic_dial_percentage=endpoint_group.get("TrafficDialPercentage"),
            health_check_port=endpoint_group.get("HealthCheckPort", -1),
            health_check_protocol=endpoint_group.get("HealthCheckProtocol", "TCP"),
            health_check_path=endpoint_group.get("HealthCheckPath"),
            health_check_interval_seconds=endpoint_group.get("HealthCheckIntervalSeconds", 30),
            threshold_count=endpoint_group.get("ThresholdCount", 3),
            port_overrides=[
                PortOverride(listener_port=o["ListenerPort"], endpoint_port=o["EndpointPort"])
                for o in endpoint_group.get("PortOverrides", [])
            ],
        )


class CrossAccountAttachmentModel(ResourceModel):
    """Cross-account attachment resource state."""

    attachment_arn: str | None = Field(None, alias="AttachmentArn")
    name: Annotated[str, Field(min_length=1, max_length=64, alias="Name")]
    principals: list[str] | None = Field(None, alias="Principals")
    resources: list[AttachmentResource] | None = Field(None, alias="Resources")
    tags: list[Tag] | None = Field(None, alias="Tags")

    @classmethod
    def from_api(
        cls, attachment: dict[str, Any], tags: list[Tag] | None = None
    ) -> CrossAccountAttachmentModel:
        return cls(
            attachment_arn=attachment["AttachmentArn"],
            name=attachment["Name"],
            principals=list(attachment.get("Principals", [])),
            resources=[
                AttachmentResource(
                    endpoint_id=r.get("EndpointId"), cidr=r.get("Cidr"), region=r.get("Region")
                )
                for r in attachment.get("Resources", [])
            ],
            tags=tags,
        )
