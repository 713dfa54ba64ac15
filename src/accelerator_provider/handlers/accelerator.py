"""Accelerator handler.

An accelerator is its own stabilization target: every mutation is complete
once DescribeAccelerator reports ``DEPLOYED``.

Deletion is two-phase. The service refuses to delete an enabled
accelerator, so an enabled one is disabled first; once the disable has
deployed, a later poll issues the delete.
"""

from __future__ import annotations

import logging
from typing import Any

from ..arns import AcceleratorArn
from ..config import ProviderConfig
from ..driver import HandlerRequest, invalid_request, not_found, read_model
from ..idempotency import IdempotencyTokenSupplier, TokenSource
from ..models import AcceleratorModel
from ..progress import ProgressEvent
from ..prober import ACCELERATOR_STATUS_DEPLOYED, ObservedStatus
from .base import ResourceHandler

logger = logging.getLogger(__name__)


class AcceleratorHandler(ResourceHandler):
    """Create, read, update, delete and list accelerators."""

    resource_type = "accelerator"

    def __init__(self, client: Any, config: ProviderConfig) -> None:
        super().__init__(client, config)
        self._tokens = IdempotencyTokenSupplier(TokenSource.CLIENT_REQUEST_TOKEN)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, request: HandlerRequest[AcceleratorModel]) -> ProgressEvent:
        return self.driver.create(request, mutate=self._create, probe=self._status)

    def read(self, request: HandlerRequest[AcceleratorModel]) -> ProgressEvent:
        arn = request.desired_state.accelerator_arn
        return read_model(
            lambda: self._describe(AcceleratorArn.parse(arn).arn),
            f"Accelerator with arn [{arn}] not found",
        )

    def update(self, request: HandlerRequest[AcceleratorModel]) -> ProgressEvent:
        return self.driver.update(request, mutate=self._update, probe=self._status)

    def delete(self, request: HandlerRequest[AcceleratorModel]) -> ProgressEvent:
        return self.driver.delete(
            request,
            lookup=self._lookup,
            mutate=self._delete,
            probe=self._deletion_status,
        )

    def list(self, request: HandlerRequest[AcceleratorModel]) -> ProgressEvent:
        accelerators, next_token = self._page(
            "list_accelerators", "Accelerators", request.next_token
        )
        return ProgressEvent.listed(
            [AcceleratorModel.from_api(accelerator) for accelerator in accelerators], next_token
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _describe(self, arn: str) -> AcceleratorModel | None:
        accelerator = self.prober.get_accelerator(arn)
        if accelerator is None:
            return None
        return AcceleratorModel.from_api(accelerator, self.prober.get_tags(arn))

    def _lookup(self, model: AcceleratorModel) -> dict[str, Any] | None:
        return self.prober.get_accelerator(AcceleratorArn.parse(model.accelerator_arn).arn)

    def _status(self, model: AcceleratorModel) -> ObservedStatus:
        return self.prober.accelerator_status(AcceleratorArn.parse(model.accelerator_arn).arn)

    def _create(self, request: HandlerRequest[AcceleratorModel]) -> AcceleratorModel:
        model = request.desired_state
        self._check_tags(model.tags)

        params: dict[str, Any] = {
            "Name": model.name,
            "IpAddressType": model.ip_address_type,
            "Enabled": model.enabled,
            "IdempotencyToken": self._tokens.token_for(request),
        }
        if model.ip_addresses:
            params["IpAddresses"] = model.ip_addresses
        if model.tags:
            params["Tags"] = self._tags_param(model.tags)

        logger.info("Creating accelerator", extra={"name": model.name})
        accelerator = self.client.create_accelerator(**params)["Accelerator"]
        return AcceleratorModel.from_api(accelerator, model.tags)

    def _update(self, request: HandlerRequest[AcceleratorModel]) -> AcceleratorModel:
        model = request.desired_state
        arn = AcceleratorArn.parse(model.accelerator_arn).arn

        if self.prober.get_accelerator(arn) is None:
            raise not_found(f"Failed to find accelerator with arn:[{arn}]")

        previous = request.previous_state
        if previous is not None and (model.ip_addresses or []) != (previous.ip_addresses or []):
            raise invalid_request(
                "Updates for BYOIP IP addresses is not a supported operation. Delete existing "
                "accelerator and create new accelerator with updated IPs."
            )

        self._check_tags(model.tags)

        logger.info("Updating accelerator", extra={"arn": arn})
        accelerator = self.client.update_accelerator(
            AcceleratorArn=arn,
            Name=model.name,
            Enabled=model.enabled,
            IpAddressType=model.ip_address_type,
        )["Accelerator"]
        self._reconcile_tags(arn, model.tags)
        return AcceleratorModel.from_api(accelerator, model.tags)

    def _delete(
        self, request: HandlerRequest[AcceleratorModel], accelerator: dict[str, Any]
    ) -> AcceleratorModel:
        self._advance_deletion(accelerator)
        return request.desired_state

    def _deletion_status(self, model: AcceleratorModel) -> ObservedStatus:
        accelerator = self._lookup(model)
        if accelerator is None:
            return ObservedStatus.ABSENT
        return self._advance_deletion(accelerator)

    def _advance_deletion(self, accelerator: dict[str, Any]) -> ObservedStatus:
        """Take the next deletion step for an observed accelerator."""
        arn = accelerator["AcceleratorArn"]

        if accelerator.get("Enabled", True):
            logger.info("Disabling accelerator", extra={"arn": arn})
            self.client.update_accelerator(AcceleratorArn=arn, Enabled=False)
        elif accelerator.get("Status") == ACCELERATOR_STATUS_DEPLOYED:
            logger.info("Deleting accelerator", extra={"arn": arn})
            self.client.delete_accelerator(AcceleratorArn=arn)
        return ObservedStatus.CONVERGING
