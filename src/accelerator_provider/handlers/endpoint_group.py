"""Endpoint group handler.

Endpoint groups stabilize on the accelerator that owns their listener. The
accelerator ARN is recovered by parsing the listener ARN, so no extra
lookup is needed. A missing accelerator ends a delete successfully, but
leaves create and update polling until the retry budget raises
StabilizationTimeoutError.

Port overrides are handled conservatively on update: they are sent when
the desired state has them, cleared when a previous state had them and the
desired state dropped them, and left alone when neither state mentions
them. Overrides configured outside this provider survive that last case.
"""

from __future__ import annotations

import logging
from typing import Any

from ..arns import EndpointGroupArn, ListenerArn, accelerator_of, parent_of
from ..config import ProviderConfig
from ..driver import HandlerRequest, not_found, read_model
from ..idempotency import IdempotencyTokenSupplier, TokenSource
from ..models import EndpointGroupModel
from ..progress import ProgressEvent
from ..prober import ObservedStatus
from .base import ResourceHandler

logger = logging.getLogger(__name__)

DEFAULT_TRAFFIC_DIAL_PERCENTAGE = 100.0


def _health_check_params(model: EndpointGroupModel) -> dict[str, Any]:
    params: dict[str, Any] = {
        "HealthCheckProtocol": model.health_check_protocol,
        "HealthCheckIntervalSeconds": model.health_check_interval_seconds,
        "ThresholdCount": model.threshold_count,
    }
    # Negative port: let the service default to the listener port.
    if model.health_check_port >= 0:
        params["HealthCheckPort"] = model.health_check_port
    if model.health_check_path is not None:
        params["HealthCheckPath"] = model.health_check_path
    return params


class EndpointGroupHandler(ResourceHandler):
    """Create, read, update, delete and list endpoint groups."""

    resource_type = "endpoint group"

    def __init__(self, client: Any, config: ProviderConfig) -> None:
        super().__init__(client, config)
        self._tokens = IdempotencyTokenSupplier(TokenSource.LOGICAL_RESOURCE_ID)

    def create(self, request: HandlerRequest[EndpointGroupModel]) -> ProgressEvent:
        return self.driver.create(request, mutate=self._create, probe=self._accelerator_status)

    def read(self, request: HandlerRequest[EndpointGroupModel]) -> ProgressEvent:
        arn = request.desired_state.endpoint_group_arn
        return read_model(
            lambda: self._describe(EndpointGroupArn.parse(arn).arn),
            f"Endpoint group with arn [{arn}] not found",
        )

    def update(self, request: HandlerRequest[EndpointGroupModel]) -> ProgressEvent:
        return self.driver.update(request, mutate=self._update, probe=self._accelerator_status)

    def delete(self, request: HandlerRequest[EndpointGroupModel]) -> ProgressEvent:
        return self.driver.delete(
            request,
            lookup=self._lookup,
            mutate=self._delete,
            probe=self._accelerator_status,
        )

    def list(self, request: HandlerRequest[EndpointGroupModel]) -> ProgressEvent:
        listener_arn = ListenerArn.parse(request.desired_state.listener_arn).arn
        endpoint_groups, next_token = self._page(
            "list_endpoint_groups", "EndpointGroups", request.next_token, ListenerArn=listener_arn
        )
        return ProgressEvent.listed(
            [EndpointGroupModel.from_api(group, listener_arn) for group in endpoint_groups],
            next_token,
        )

    def _describe(self, arn: str) -> EndpointGroupModel | None:
        endpoint_group = self.prober.get_endpoint_group(arn)
        if endpoint_group is None:
            return None
        return EndpointGroupModel.from_api(endpoint_group, parent_of(arn))

    def _lookup(self, model: EndpointGroupModel) -> dict[str, Any] | None:
        arn = EndpointGroupArn.parse(model.endpoint_group_arn).arn
        return self.prober.get_endpoint_group(arn)

    def _accelerator_status(self, model: EndpointGroupModel) -> ObservedStatus:
        """Status of the accelerator that owns the listener.

        A missing accelerator reads as ABSENT: delete succeeds, while create
        and update keep polling until StabilizationTimeoutError.
        """
        return self.prober.accelerator_status(accelerator_of(model.listener_arn))

    def _create(self, request: HandlerRequest[EndpointGroupModel]) -> EndpointGroupModel:
        model = request.desired_state
        listener_arn = ListenerArn.parse(model.listener_arn)

        if self.prober.get_listener(listener_arn.arn) is None:
            raise not_found(f"Failed to find listener with arn: [{listener_arn}]")
        if self.prober.get_accelerator(listener_arn.accelerator_arn) is None:
            raise not_found(
                f"Failed to find accelerator with arn: [{listener_arn.accelerator_arn}]"
            )

        params = _health_check_params(model)
        params.update(
            ListenerArn=listener_arn.arn,
            EndpointGroupRegion=model.endpoint_group_region,
            IdempotencyToken=self._tokens.token_for(request),
        )
        if model.endpoint_configurations is not None:
            params["EndpointConfigurations"] = [c.to_api() for c in model.endpoint_configurations]
        if model.traffic_dial_percentage is not None:
            params["TrafficDialPercentage"] = model.traffic_dial_percentage
        if model.port_overrides:
            params["PortOverrides"] = [o.to_api() for o in model.port_overrides]

        logger.info(
            "Creating endpoint group",
            extra={"listener_arn": listener_arn.arn, "region": model.endpoint_group_region},
        )
        endpoint_group = self.client.create_endpoint_group(**params)["EndpointGroup"]
        return EndpointGroupModel.from_api(endpoint_group, listener_arn.arn)

    def _update(self, request: HandlerRequest[EndpointGroupModel]) -> EndpointGroupModel:
        model = request.desired_state
        arn = EndpointGroupArn.parse(model.endpoint_group_arn).arn
        if self.prober.get_endpoint_group(arn) is None:
            raise not_found("Endpoint Group Not Found")

        params = _health_check_params(model)
        params.update(
            EndpointGroupArn=arn,
            EndpointConfigurations=[c.to_api() for c in model.endpoint_configurations or []],
            TrafficDialPercentage=(
                model.traffic_dial_percentage
                if model.traffic_dial_percentage is not None
                else DEFAULT_TRAFFIC_DIAL_PERCENTAGE
            ),
        )

        previous = request.previous_state
        if model.port_overrides is not None:
            params["PortOverrides"] = [o.to_api() for o in model.port_overrides]
        elif previous is not None and previous.port_overrides is not None:
            params["PortOverrides"] = []

        logger.info("Updating endpoint group", extra={"arn": arn})
        endpoint_group = self.client.update_endpoint_group(**params)["EndpointGroup"]
        return EndpointGroupModel.from_api(endpoint_group, parent_of(arn))

    def _delete(
        self, request: HandlerRequest[EndpointGroupModel], endpoint_group: dict[str, Any]
    ) -> EndpointGroupModel:
        arn = endpoint_group["EndpointGroupArn"]
        logger.info("Deleting endpoint group", extra={"arn": arn})
        self.client.delete_endpoint_group(EndpointGroupArn=arn)
        return request.desired_state
