"""Global Accelerator API mock for testing.

In-memory implementation of the Global Accelerator control plane that
enables handler and CLI testing without AWS connectivity.

Key Features:
- In-memory state for accelerators, listeners, endpoint groups,
  cross-account attachments and tags
- IN_PROGRESS -> DEPLOYED propagation after a configurable number of
  describes
- Real botocore ClientError faults, including injected ones
- Idempotency token deduplication on create calls
- Call recording for asserting how many mutations were issued

Usage:
    from aga_mock import MockGlobalAcceleratorClient, MockGlobalAcceleratorState

    client = MockGlobalAcceleratorClient(MockGlobalAcceleratorState(deploy_after=2))
    handler = AcceleratorHandler(client, ProviderConfig())
"""

from .client import MockGlobalAcceleratorClient, client_error
from .context import MockAcceleratorContext, mock_accelerator_context
from .state import ACCOUNT_ID, MockCall, MockGlobalAcceleratorState

__all__ = [
    "ACCOUNT_ID",
    "MockAcceleratorContext",
    "MockCall",
    "MockGlobalAcceleratorClient",
    "MockGlobalAcceleratorState",
    "client_error",
    "mock_accelerator_context",
]
