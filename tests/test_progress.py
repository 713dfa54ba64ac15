"""Tests for progress events and continuation tokens."""

import pytest
from pydantic import ValidationError

from accelerator_provider.models import AcceleratorModel
from accelerator_provider.progress import (
    CallbackContext,
    HandlerErrorCode,
    OperationStatus,
    ProgressEvent,
)


class TestCallbackContext:
    """Tests for the continuation token."""

    def test_wire_format(self) -> None:
        """Test that the token serializes with camelCase keys."""
        context = CallbackContext(stabilization_retries_remaining=5, pending_stabilization=True)

        assert context.to_payload() == {
            "stabilizationRetriesRemaining": 5,
            "pendingStabilization": True,
        }

    def test_round_trip(self) -> None:
        """Test that a persisted token parses back unchanged."""
        context = CallbackContext(stabilization_retries_remaining=7)

        assert CallbackContext.from_payload(context.to_payload()) == context

    def test_absent_token(self) -> None:
        """Test that a missing token stays missing."""
        assert CallbackContext.from_payload(None) is None

    def test_decremented(self) -> None:
        """Test that decrementing consumes one retry and keeps the flag."""
        context = CallbackContext(stabilization_retries_remaining=1, pending_stabilization=True)

        next_context = context.decremented()

        assert next_context.stabilization_retries_remaining == 0
        assert next_context.pending_stabilization is True
        assert context.stabilization_retries_remaining == 1

    def test_lower_bound(self) -> None:
        """Test that a token below -1 is rejected."""
        with pytest.raises(ValidationError):
            CallbackContext.from_payload({"stabilizationRetriesRemaining": -2})

    def test_immutable(self) -> None:
        """Test that tokens cannot be mutated in place."""
        context = CallbackContext(stabilization_retries_remaining=3)

        with pytest.raises(ValidationError):
            context.stabilization_retries_remaining = 2  # type: ignore[misc]


class TestProgressEvent:
    """Tests for ProgressEvent."""

    def test_success(self) -> None:
        """Test that success is terminal and carries the model."""
        model = AcceleratorModel(name="web")
        event = ProgressEvent.success(model)

        assert event.terminal
        assert event.to_dict() == {
            "status": "SUCCESS",
            "resourceModel": {"Name": "web", "Enabled": True, "IpAddressType": "IPV4"},
        }

    def test_in_progress(self) -> None:
        """Test that in-progress events carry token and delay."""
        context = CallbackContext(stabilization_retries_remaining=2, pending_stabilization=True)
        event = ProgressEvent.in_progress(context, 1, None)

        assert not event.terminal
        assert event.to_dict() == {
            "status": "IN_PROGRESS",
            "callbackContext": {"stabilizationRetriesRemaining": 2, "pendingStabilization": True},
            "callbackDelaySeconds": 1,
        }

    def test_failed(self) -> None:
        """Test that failures carry an error code and message."""
        event = ProgressEvent.failed(HandlerErrorCode.NOT_FOUND, "gone")

        assert event.status == OperationStatus.FAILED
        assert event.terminal
        assert event.to_dict() == {"status": "FAILED", "errorCode": "NotFound", "message": "gone"}

    def test_error_codes(self) -> None:
        """Test that failures are either NotFound or InvalidRequest."""
        assert {code.value for code in HandlerErrorCode} == {"NotFound", "InvalidRequest"}

    def test_listed(self) -> None:
        """Test that list results carry models and the next token."""
        event = ProgressEvent.listed([AcceleratorModel(name="a")], "2")

        data = event.to_dict()

        assert data["resourceModels"] == [{"Name": "a", "Enabled": True, "IpAddressType": "IPV4"}]
        assert data["nextToken"] == "2"
