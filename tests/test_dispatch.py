"""Tests for request dispatch."""

import pytest

from accelerator_provider.config import ProviderConfig
from accelerator_provider.dispatch import (
    REGISTRY,
    Action,
    ResourceType,
    build_request,
    reconcile,
)
from accelerator_provider.models import ListenerModel
from accelerator_provider.progress import HandlerErrorCode, OperationStatus
from aga_mock import MockGlobalAcceleratorClient, MockGlobalAcceleratorState


class TestBuildRequest:
    """Tests for payload parsing."""

    def test_full_payload(self) -> None:
        """Test that every payload field reaches the request."""
        payload = {
            "desiredResourceState": {
                "AcceleratorArn": "arn:aws:globalaccelerator::123456789012:accelerator/ab",
                "PortRanges": [{"FromPort": 80, "ToPort": 81}],
            },
            "previousResourceState": {
                "AcceleratorArn": "arn:aws:globalaccelerator::123456789012:accelerator/ab",
                "PortRanges": [{"FromPort": 80, "ToPort": 80}],
            },
            "callbackContext": {"stabilizationRetriesRemaining": 3, "pendingStabilization": True},
            "clientRequestToken": "req-1",
            "logicalResourceIdentifier": "MyListener",
            "nextToken": "5",
        }

        request = build_request(ListenerModel, payload, Action.UPDATE)

        assert request.desired_state.port_ranges[0].to_port == 81
        assert request.previous_state.port_ranges[0].to_port == 80
        assert request.callback_context.stabilization_retries_remaining == 3
        assert request.client_request_token == "req-1"
        assert request.logical_resource_id == "MyListener"
        assert request.next_token == "5"

    def test_list_request_is_partial(self) -> None:
        """Test that list requests only need the parent identifier."""
        arn = "arn:aws:globalaccelerator::123456789012:accelerator/ab"

        request = build_request(
            ListenerModel, {"desiredResourceState": {"AcceleratorArn": arn}}, Action.LIST
        )

        assert request.desired_state.accelerator_arn == arn
        assert request.desired_state.port_ranges is None
        assert request.desired_state.protocol == "TCP"

    def test_registry_covers_every_type(self) -> None:
        """Test that every resource type has a handler."""
        assert set(REGISTRY) == set(ResourceType)


class TestReconcile:
    """Tests for one dispatched step."""

    def test_create_accelerator(
        self,
        client: MockGlobalAcceleratorClient,
        state: MockGlobalAcceleratorState,
        config: ProviderConfig,
    ) -> None:
        """Test dispatching a create by string names."""
        event = reconcile(
            "accelerator",
            "create",
            {"desiredResourceState": {"Name": "web"}, "clientRequestToken": "req-1"},
            client,
            config,
        )

        assert event.status == OperationStatus.IN_PROGRESS
        assert len(state.accelerators) == 1

    def test_continue_with_token(
        self,
        client: MockGlobalAcceleratorClient,
        state: MockGlobalAcceleratorState,
        config: ProviderConfig,
    ) -> None:
        """Test that the persisted token resumes the operation."""
        first = reconcile(
            ResourceType.ACCELERATOR,
            Action.CREATE,
            {"desiredResourceState": {"Name": "web"}, "clientRequestToken": "req-1"},
            client,
            config,
        )

        second = reconcile(
            ResourceType.ACCELERATOR,
            Action.CREATE,
            {
                "desiredResourceState": first.to_dict()["resourceModel"],
                "callbackContext": first.to_dict()["callbackContext"],
                "clientRequestToken": "req-1",
            },
            client,
            config,
        )

        assert second.status == OperationStatus.SUCCESS
        assert state.mutation_count() == 1

    def test_malformed_state(
        self, client: MockGlobalAcceleratorClient, config: ProviderConfig
    ) -> None:
        """Test that schema violations are invalid requests."""
        event = reconcile(
            "listener",
            "create",
            {"desiredResourceState": {"PortRanges": []}},
            client,
            config,
        )

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.INVALID_REQUEST

    def test_malformed_context(
        self, client: MockGlobalAcceleratorClient, config: ProviderConfig
    ) -> None:
        """Test that a corrupt continuation token is an invalid request."""
        event = reconcile(
            "accelerator",
            "update",
            {
                "desiredResourceState": {"Name": "web"},
                "callbackContext": {"stabilizationRetriesRemaining": "many"},
            },
            client,
            config,
        )

        assert event.error_code == HandlerErrorCode.INVALID_REQUEST

    def test_invalid_list_parent(
        self, client: MockGlobalAcceleratorClient, config: ProviderConfig
    ) -> None:
        """Test that listing without a valid parent is an invalid request."""
        event = reconcile("listener", "list", {"desiredResourceState": {}}, client, config)

        assert event.error_code == HandlerErrorCode.INVALID_REQUEST

    @pytest.mark.parametrize(
        "resource_type,action",
        [("load-balancer", "create"), ("accelerator", "replace")],
    )
    def test_unknown_names(
        self,
        client: MockGlobalAcceleratorClient,
        config: ProviderConfig,
        resource_type: str,
        action: str,
    ) -> None:
        """Test that unknown resource types and actions raise ValueError."""
        with pytest.raises(ValueError):
            reconcile(resource_type, action, {}, client, config)
