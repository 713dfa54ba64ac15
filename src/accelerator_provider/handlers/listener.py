"""Listener handler.

A listener has no status of its own. Changes to it are propagated by the
owning accelerator, so every operation stabilizes on the accelerator
reaching ``DEPLOYED``.

If the accelerator disappears while an operation is polling, delete
succeeds. Create and update keep reporting IN_PROGRESS until the retry
budget runs out and StabilizationTimeoutError is raised.
"""

from __future__ import annotations

import logging
from typing import Any

from ..arns import AcceleratorArn, ListenerArn, accelerator_of, parent_of
from ..config import ProviderConfig
from ..driver import HandlerRequest, not_found, read_model
from ..idempotency import IdempotencyTokenSupplier, TokenSource
from ..models import ListenerModel
from ..progress import ProgressEvent
from ..prober import ObservedStatus
from .base import ResourceHandler

logger = logging.getLogger(__name__)


class ListenerHandler(ResourceHandler):
    """Create, read, update, delete and list listeners."""

    resource_type = "listener"

    def __init__(self, client: Any, config: ProviderConfig) -> None:
        super().__init__(client, config)
        self._tokens = IdempotencyTokenSupplier(TokenSource.CLIENT_REQUEST_TOKEN)

    def create(self, request: HandlerRequest[ListenerModel]) -> ProgressEvent:
        return self.driver.create(request, mutate=self._create, probe=self._accelerator_status)

    def read(self, request: HandlerRequest[ListenerModel]) -> ProgressEvent:
        arn = request.desired_state.listener_arn
        return read_model(
            lambda: self._describe(ListenerArn.parse(arn).arn),
            f"Listener with arn [{arn}] not found",
        )

    def update(self, request: HandlerRequest[ListenerModel]) -> ProgressEvent:
        return self.driver.update(request, mutate=self._update, probe=self._accelerator_status)

    def delete(self, request: HandlerRequest[ListenerModel]) -> ProgressEvent:
        return self.driver.delete(
            request,
            lookup=self._lookup,
            mutate=self._delete,
            probe=self._accelerator_status,
        )

    def list(self, request: HandlerRequest[ListenerModel]) -> ProgressEvent:
        accelerator_arn = AcceleratorArn.parse(request.desired_state.accelerator_arn).arn
        listeners, next_token = self._page(
            "list_listeners", "Listeners", request.next_token, AcceleratorArn=accelerator_arn
        )
        return ProgressEvent.listed(
            [ListenerModel.from_api(listener, accelerator_arn) for listener in listeners],
            next_token,
        )

    def _describe(self, arn: str) -> ListenerModel | None:
        listener = self.prober.get_listener(arn)
        if listener is None:
            return None
        return ListenerModel.from_api(listener, parent_of(arn))

    def _lookup(self, model: ListenerModel) -> dict[str, Any] | None:
        return self.prober.get_listener(ListenerArn.parse(model.listener_arn).arn)

    def _accelerator_status(self, model: ListenerModel) -> ObservedStatus:
        """Status of the owning accelerator; ABSENT once it is gone."""
        return self.prober.accelerator_status(accelerator_of(model.listener_arn))

    def _create(self, request: HandlerRequest[ListenerModel]) -> ListenerModel:
        model = request.desired_state
        accelerator_arn = AcceleratorArn.parse(model.accelerator_arn).arn
        if self.prober.get_accelerator(accelerator_arn) is None:
            raise not_found(f"Failed to find accelerator with arn: [{accelerator_arn}]")

        logger.info("Creating listener", extra={"accelerator_arn": accelerator_arn})
        listener = self.client.create_listener(
            AcceleratorArn=accelerator_arn,
            PortRanges=[port_range.to_api() for port_range in model.port_ranges],
            Protocol=model.protocol,
            ClientAffinity=model.client_affinity,
            IdempotencyToken=self._tokens.token_for(request),
        )["Listener"]
        return ListenerModel.from_api(listener, accelerator_arn)

    def _update(self, request: HandlerRequest[ListenerModel]) -> ListenerModel:
        model = request.desired_state
        arn = ListenerArn.parse(model.listener_arn).arn
        if self.prober.get_listener(arn) is None:
            raise not_found(f"Failed to find listener with arn: [{arn}]")

        logger.info("Updating listener", extra={"arn": arn})
        listener = self.client.update_listener(
            ListenerArn=arn,
            PortRanges=[port_range.to_api() for port_range in model.port_ranges],
            Protocol=model.protocol,
            ClientAffinity=model.client_affinity,
        )["Listener"]
        return ListenerModel.from_api(listener, parent_of(arn))

    def _delete(
        self, request: HandlerRequest[ListenerModel], listener: dict[str, Any]
    ) -> ListenerModel:
        arn = listener["ListenerArn"]
        logger.info("Deleting listener", extra={"arn": arn})
        self.client.delete_listener(ListenerArn=arn)
        return request.desired_state
