"""Outer dispatch: route (resource type, action) to a handler.

The orchestrator speaks in request payloads:

    {
        "desiredResourceState": {...},
        "previousResourceState": {...},
        "callbackContext": {"stabilizationRetriesRemaining": 14399, ...},
        "clientRequestToken": "...",
        "logicalResourceIdentifier": "...",
        "nextToken": "..."
    }

``reconcile`` parses the payload into typed models, runs one handler step
and returns the ProgressEvent. Malformed input becomes a structured
InvalidRequest failure. StabilizationTimeoutError and remote faults
propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from .arns import InvalidArnError
from .config import ProviderConfig
from .driver import HandlerRequest
from .handlers.accelerator import AcceleratorHandler
from .handlers.base import ResourceHandler
from .handlers.cross_account_attachment import CrossAccountAttachmentHandler
from .handlers.endpoint_group import EndpointGroupHandler
from .handlers.listener import ListenerHandler
from .idempotency import MissingIdempotencyTokenError
from .models import (
    AcceleratorModel,
    CrossAccountAttachmentModel,
    EndpointGroupModel,
    ListenerModel,
    ResourceModel,
)
from .progress import CallbackContext, HandlerErrorCode, ProgressEvent

logger = logging.getLogger(__name__)


class ResourceType(str, Enum):
    """Resource types served by this provider."""

    ACCELERATOR = "accelerator"
    LISTENER = "listener"
    ENDPOINT_GROUP = "endpoint-group"
    CROSS_ACCOUNT_ATTACHMENT = "cross-account-attachment"


class Action(str, Enum):
    """Handler actions."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"


@dataclass(frozen=True)
class Registration:
    handler: type[ResourceHandler]
    model: type[ResourceModel]


REGISTRY: dict[ResourceType, Registration] = {
    ResourceType.ACCELERATOR: Registration(AcceleratorHandler, AcceleratorModel),
    ResourceType.LISTENER: Registration(ListenerHandler, ListenerModel),
    ResourceType.ENDPOINT_GROUP: Registration(EndpointGroupHandler, EndpointGroupModel),
    ResourceType.CROSS_ACCOUNT_ATTACHMENT: Registration(
        CrossAccountAttachmentHandler, CrossAccountAttachmentModel
    ),
}


def _list_filter(model: type[ResourceModel], state: dict[str, Any]) -> ResourceModel:
    """Build a partial model for list requests.

    List requests carry at most the parent identifier, so required fields
    are not enforced; missing ones are None.
    """
    values: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        if field.alias is not None and field.alias in state:
            values[name] = state[field.alias]
        elif name in state:
            values[name] = state[name]
        elif not field.is_required():
            values[name] = field.get_default(call_default_factory=True)
        else:
            values[name] = None
    return model.model_construct(**values)


def build_request(
    model: type[ResourceModel], payload: dict[str, Any], action: Action = Action.READ
) -> HandlerRequest:
    """Parse an orchestrator payload into a HandlerRequest.

    Raises:
        pydantic.ValidationError: If a state or the context is malformed.
    """
    desired = payload.get("desiredResourceState") or {}
    previous = payload.get("previousResourceState")
    return HandlerRequest(
        desired_state=(
            _list_filter(model, desired)
            if action == Action.LIST
            else model.model_validate(desired)
        ),
        previous_state=model.model_validate(previous) if previous is not None else None,
        callback_context=CallbackContext.from_payload(payload.get("callbackContext")),
        client_request_token=payload.get("clientRequestToken"),
        logical_resource_id=payload.get("logicalResourceIdentifier"),
        next_token=payload.get("nextToken"),
    )


def reconcile(
    resource_type: ResourceType | str,
    action: Action | str,
    payload: dict[str, Any],
    client: Any,
    config: ProviderConfig,
) -> ProgressEvent:
    """Run one handler step.

    Args:
        resource_type: Resource type to operate on.
        action: Handler action.
        payload: Orchestrator request payload.
        client: Global Accelerator client.
        config: Provider configuration.

    Returns:
        The ProgressEvent of this step.

    Raises:
        ValueError: If the resource type or action is unknown.
        StabilizationTimeoutError: If the retry budget is exhausted.
        botocore.exceptions.ClientError: On unexpected remote faults.
    """
    resource_type = ResourceType(resource_type)
    action = Action(action)
    registration = REGISTRY[resource_type]

    log_context = {"resource_type": resource_type.value, "action": action.value}

    try:
        request = build_request(registration.model, payload, action)
    except ValidationError as e:
        logger.warning(
            "Rejected malformed request", extra={**log_context, "errors": e.error_count()}
        )
        return ProgressEvent.failed(HandlerErrorCode.INVALID_REQUEST, str(e))

    logger.debug(
        "Dispatching request",
        extra={
            **log_context,
            "first_invocation": request.callback_context is None,
        },
    )

    handler = registration.handler(client, config)
    try:
        return getattr(handler, action.value)(request)
    except (InvalidArnError, MissingIdempotencyTokenError) as e:
        logger.warning("Rejected invalid request", extra={**log_context, "reason": str(e)})
        return ProgressEvent.failed(HandlerErrorCode.INVALID_REQUEST, str(e), request.desired_state)
