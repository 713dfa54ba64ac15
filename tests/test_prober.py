"""Tests for remote state probing."""

import pytest
from botocore.exceptions import ClientError

from accelerator_provider.models import Tag
from accelerator_provider.prober import ObservedStatus, StateProber
from aga_mock import MockGlobalAcceleratorClient, MockGlobalAcceleratorState


@pytest.fixture
def prober(client: MockGlobalAcceleratorClient) -> StateProber:
    return StateProber(client)


class TestDescribe:
    """Tests for describe helpers."""

    def test_accelerator(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test describing an existing accelerator."""
        arn = state.add_accelerator("web")

        assert prober.get_accelerator(arn)["Name"] == "web"

    def test_missing_resources(
        self, state: MockGlobalAcceleratorState, prober: StateProber
    ) -> None:
        """Test that not-found faults become None."""
        arn = state.add_accelerator()

        assert prober.get_accelerator(state.new_accelerator_arn()) is None
        assert prober.get_listener(f"{arn}/listener/missing") is None
        assert prober.get_endpoint_group(f"{arn}/listener/a/endpoint-group/b") is None
        assert prober.get_attachment(state.new_attachment_arn()) is None

    def test_other_faults_propagate(
        self, state: MockGlobalAcceleratorState, client: MockGlobalAcceleratorClient
    ) -> None:
        """Test that faults other than not-found are not swallowed."""
        arn = state.add_accelerator()
        client.fail_operation("describe_accelerator", "ThrottlingException")

        with pytest.raises(ClientError):
            StateProber(client).get_accelerator(arn)

    def test_wrong_not_found_code_propagates(
        self, state: MockGlobalAcceleratorState, client: MockGlobalAcceleratorClient
    ) -> None:
        """Test that another resource's not-found fault propagates."""
        arn = state.add_accelerator()
        listener = state.add_listener(arn)
        client.fail_operation("describe_listener", "AcceleratorNotFoundException")

        with pytest.raises(ClientError):
            StateProber(client).get_listener(listener)


class TestStatus:
    """Tests for convergence probing."""

    def test_deployed(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test that a deployed accelerator is converged."""
        arn = state.add_accelerator()

        assert prober.accelerator_status(arn) == ObservedStatus.CONVERGED

    def test_in_progress(self, prober: StateProber) -> None:
        """Test that propagation reports converging until deployed."""
        state = prober.client.state
        state.deploy_after = 1
        arn = state.add_accelerator(status="IN_PROGRESS")

        assert prober.accelerator_status(arn) == ObservedStatus.CONVERGING
        assert prober.accelerator_status(arn) == ObservedStatus.CONVERGED

    def test_absent(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test that a missing accelerator is absent."""
        assert prober.accelerator_status(state.new_accelerator_arn()) == ObservedStatus.ABSENT

    def test_attachment(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test that an existing attachment is converged."""
        arn = state.add_attachment()

        assert prober.attachment_status(arn) == ObservedStatus.CONVERGED
        assert prober.attachment_status(state.new_attachment_arn()) == ObservedStatus.ABSENT


class TestTags:
    """Tests for tag listing."""

    def test_get_tags(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test listing tags."""
        arn = state.add_accelerator(tags={"env": "prod"})

        assert prober.get_tags(arn) == [Tag(key="env", value="prod")]

    def test_lenient_failure(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test that reads degrade to no tags on failure."""
        assert prober.get_tags(state.new_accelerator_arn()) == []

    def test_strict_failure(self, state: MockGlobalAcceleratorState, prober: StateProber) -> None:
        """Test that strict listing propagates failures."""
        with pytest.raises(ClientError):
            prober.get_tags(state.new_accelerator_arn(), strict=True)
