"""Global Accelerator API client construction.

The client is built once by the caller and passed explicitly into the
prober and handlers. Nothing in this package holds a module-level client,
so tests and alternative regions or endpoints need no patching.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import ClientError

from .config import ProviderConfig

logger = logging.getLogger(__name__)

SERVICE_NAME = "globalaccelerator"
USER_AGENT_EXTRA = "accelerator-provider/0.1.0"

# Not-found error codes by resource kind. These are the only remote faults
# the provider treats as an expected outcome.
ACCELERATOR_NOT_FOUND = "AcceleratorNotFoundException"
LISTENER_NOT_FOUND = "ListenerNotFoundException"
ENDPOINT_GROUP_NOT_FOUND = "EndpointGroupNotFoundException"
ATTACHMENT_NOT_FOUND = "AttachmentNotFoundException"


def create_client(config: ProviderConfig, session: boto3.session.Session | None = None) -> Any:
    """Create a Global Accelerator client from provider configuration.

    Args:
        config: Validated provider configuration.
        session: Optional boto3 session carrying injected credentials.
            The default session is used when omitted.

    Returns:
        A botocore client for the ``globalaccelerator`` service.
    """
    session = session or boto3.session.Session()
    botocore_config = BotocoreConfig(
        region_name=config.region,
        user_agent_extra=USER_AGENT_EXTRA,
    )
    logger.debug(
        "Creating Global Accelerator client",
        extra={"region": config.region, "endpoint_url": config.endpoint_url},
    )
    return session.client(
        SERVICE_NAME,
        config=botocore_config,
        endpoint_url=config.endpoint_url,
    )


def error_code(error: ClientError) -> str:
    """Extract the service error code from a ClientError."""
    return str(error.response.get("Error", {}).get("Code", ""))


def is_not_found(error: ClientError, code: str) -> bool:
    return error_code(error) == code
