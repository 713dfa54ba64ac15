"""Remote state probing.

The prober fetches fresh state from the control plane. A resource-specific
not-found fault becomes ``None`` / ``ObservedStatus.ABSENT``; it is the one
expected fault class. Every other fault propagates unmodified, and nothing
is retried here. Retrying is the orchestrator's job, via the next
invocation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError

from .client import (
    ACCELERATOR_NOT_FOUND,
    ATTACHMENT_NOT_FOUND,
    ENDPOINT_GROUP_NOT_FOUND,
    LISTENER_NOT_FOUND,
    is_not_found,
)
from .models import Tag, tags_from_api

logger = logging.getLogger(__name__)

ACCELERATOR_STATUS_DEPLOYED = "DEPLOYED"


class ObservedStatus(str, Enum):
    """Convergence state of a remote resource."""

    CONVERGING = "Converging"
    CONVERGED = "Converged"
    ABSENT = "Absent"


class StateProber:
    """Reads remote Global Accelerator state."""

    def __init__(self, client: Any) -> None:
        """Initialize prober.

        Args:
            client: Global Accelerator client (see client.create_client).
        """
        self._client = client

    @property
    def client(self) -> Any:
        return self._client

    def _describe(self, operation: str, not_found_code: str, key: str, **params: str) -> Any:
        try:
            response = getattr(self._client, operation)(**params)
        except ClientError as e:
            if is_not_found(e, not_found_code):
                logger.debug(
                    "Resource not found",
                    extra={"operation": operation, "arn": next(iter(params.values()))},
                )
                return None
            raise
        return response[key]

    def get_accelerator(self, arn: str) -> dict[str, Any] | None:
        """Describe an accelerator; None if it does not exist."""
        return self._describe(
            "describe_accelerator", ACCELERATOR_NOT_FOUND, "Accelerator", AcceleratorArn=arn
        )

    def get_listener(self, arn: str) -> dict[str, Any] | None:
        """Describe a listener; None if it does not exist."""
        return self._describe(
            "describe_listener", LISTENER_NOT_FOUND, "Listener", ListenerArn=arn
        )

    def get_endpoint_group(self, arn: str) -> dict[str, Any] | None:
        """Describe an endpoint group; None if it does not exist."""
        return self._describe(
            "describe_endpoint_group",
            ENDPOINT_GROUP_NOT_FOUND,
            "EndpointGroup",
            EndpointGroupArn=arn,
        )

    def get_attachment(self, arn: str) -> dict[str, Any] | None:
        """Describe a cross-account attachment; None if it does not exist."""
        return self._describe(
            "describe_cross_account_attachment",
            ATTACHMENT_NOT_FOUND,
            "CrossAccountAttachment",
            AttachmentArn=arn,
        )

    def get_tags(self, arn: str, *, strict: bool = False) -> list[Tag]:
        """List the tags of a resource.

        Args:
            arn: Resource ARN.
            strict: Propagate failures instead of degrading to no tags.
                Reads degrade; updates must see the real tag set.
        """
        try:
            response = self._client.list_tags_for_resource(ResourceArn=arn)
        except ClientError as e:
            if strict:
                raise
            logger.error("Failed to list tags", extra={"arn": arn, "error": str(e)})
            return []
        return tags_from_api(response.get("Tags"))

    def accelerator_status(self, arn: str) -> ObservedStatus:
        """Probe whether an accelerator has finished propagating changes."""
        accelerator = self.get_accelerator(arn)
        if accelerator is None:
            return ObservedStatus.ABSENT
        if accelerator.get("Status") == ACCELERATOR_STATUS_DEPLOYED:
            return ObservedStatus.CONVERGED
        return ObservedStatus.CONVERGING

    def attachment_status(self, arn: str) -> ObservedStatus:
        """Attachments have no status; existing means converged."""
        if self.get_attachment(arn) is None:
            return ObservedStatus.ABSENT
        return ObservedStatus.CONVERGED
