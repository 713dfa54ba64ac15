"""Pytest configuration and fixtures."""

import dataclasses
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for aga_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from accelerator_provider.config import ProviderConfig  # noqa: E402
from accelerator_provider.driver import HandlerRequest  # noqa: E402
from accelerator_provider.progress import ProgressEvent  # noqa: E402
from aga_mock import MockGlobalAcceleratorClient, MockGlobalAcceleratorState  # noqa: E402

MAX_STEPS = 100

Step = Callable[[HandlerRequest[Any]], ProgressEvent]


@pytest.fixture
def config() -> ProviderConfig:
    """Default provider configuration (1s poll, 4h budget)."""
    return ProviderConfig()


@pytest.fixture
def small_budget_config() -> ProviderConfig:
    """Configuration with a 3-poll stabilization budget."""
    return ProviderConfig(callback_delay_seconds=1, max_wait_seconds=3)


@pytest.fixture
def state() -> MockGlobalAcceleratorState:
    """Fresh in-memory state that deploys on the first describe."""
    return MockGlobalAcceleratorState(deploy_after=0)


@pytest.fixture
def client(state: MockGlobalAcceleratorState) -> MockGlobalAcceleratorClient:
    """Mock Global Accelerator client bound to ``state``."""
    return MockGlobalAcceleratorClient(state)


@pytest.fixture
def drive() -> Callable[[Step, HandlerRequest[Any]], ProgressEvent]:
    """Run handler steps the way the orchestrator does until terminal.

    Each step receives the continuation token and resource model returned
    by the previous one. No time passes between steps.
    """

    def _drive(step: Step, request: HandlerRequest[Any]) -> ProgressEvent:
        event = step(request)
        for _ in range(MAX_STEPS):
            if event.terminal:
                return event
            request = dataclasses.replace(
                request,
                desired_state=event.resource_model or request.desired_state,
                callback_context=event.callback_context,
            )
            event = step(request)
        raise AssertionError(f"Operation not terminal after {MAX_STEPS} steps")

    return _drive
