"""Cross-account attachment handler.

Attachments have no deployment status. They are converged as soon as they
exist, and deleted once DescribeCrossAccountAttachment stops finding them.

Updates reconcile the principal and resource collections against the
observed attachment and send both deltas in one UpdateCrossAccountAttachment
call, followed by the tag delta.
"""

from __future__ import annotations

import logging
from typing import Any

from ..arns import validate_attachment_arn
from ..config import ProviderConfig
from ..diff import diff_principals, diff_resources, resource_key
from ..driver import HandlerRequest, not_found, read_model
from ..idempotency import IdempotencyTokenSupplier, TokenSource
from ..models import CrossAccountAttachmentModel
from ..progress import ProgressEvent
from ..prober import ObservedStatus
from .base import ResourceHandler

logger = logging.getLogger(__name__)


class CrossAccountAttachmentHandler(ResourceHandler):
    """Create, read, update, delete and list cross-account attachments."""

    resource_type = "cross-account attachment"

    def __init__(self, client: Any, config: ProviderConfig) -> None:
        super().__init__(client, config)
        self._tokens = IdempotencyTokenSupplier(TokenSource.CLIENT_REQUEST_TOKEN)

    def create(self, request: HandlerRequest[CrossAccountAttachmentModel]) -> ProgressEvent:
        return self.driver.create(request, mutate=self._create, probe=self._status)

    def read(self, request: HandlerRequest[CrossAccountAttachmentModel]) -> ProgressEvent:
        arn = request.desired_state.attachment_arn
        return read_model(
            lambda: self._describe(validate_attachment_arn(arn)),
            f"Attachment with arn [{arn}] not found",
        )

    def update(self, request: HandlerRequest[CrossAccountAttachmentModel]) -> ProgressEvent:
        return self.driver.update(request, mutate=self._update, probe=self._status)

    def delete(self, request: HandlerRequest[CrossAccountAttachmentModel]) -> ProgressEvent:
        return self.driver.delete(
            request,
            lookup=self._lookup,
            mutate=self._delete,
            probe=self._status,
        )

    def list(self, request: HandlerRequest[CrossAccountAttachmentModel]) -> ProgressEvent:
        attachments, next_token = self._page(
            "list_cross_account_attachments", "CrossAccountAttachments", request.next_token
        )
        return ProgressEvent.listed(
            [CrossAccountAttachmentModel.from_api(attachment) for attachment in attachments],
            next_token,
        )

    def _describe(self, arn: str) -> CrossAccountAttachmentModel | None:
        attachment = self.prober.get_attachment(arn)
        if attachment is None:
            return None
        return CrossAccountAttachmentModel.from_api(attachment, self.prober.get_tags(arn))

    def _lookup(self, model: CrossAccountAttachmentModel) -> dict[str, Any] | None:
        return self.prober.get_attachment(validate_attachment_arn(model.attachment_arn))

    def _status(self, model: CrossAccountAttachmentModel) -> ObservedStatus:
        return self.prober.attachment_status(validate_attachment_arn(model.attachment_arn))

    def _create(
        self, request: HandlerRequest[CrossAccountAttachmentModel]
    ) -> CrossAccountAttachmentModel:
        model = request.desired_state
        self._check_tags(model.tags)

        params: dict[str, Any] = {
            "Name": model.name,
            "IdempotencyToken": self._tokens.token_for(request),
        }
        if model.principals:
            params["Principals"] = list(model.principals)
        if model.resources:
            params["Resources"] = [resource.to_api() for resource in model.resources]
        if model.tags:
            params["Tags"] = self._tags_param(model.tags)

        logger.info("Creating cross-account attachment", extra={"name": model.name})
        attachment = self.client.create_cross_account_attachment(**params)[
            "CrossAccountAttachment"
        ]
        return CrossAccountAttachmentModel.from_api(attachment, model.tags)

    def _update(
        self, request: HandlerRequest[CrossAccountAttachmentModel]
    ) -> CrossAccountAttachmentModel:
        model = request.desired_state
        arn = validate_attachment_arn(model.attachment_arn)

        existing = self.prober.get_attachment(arn)
        if existing is None:
            raise not_found("Attachment not found.")

        self._check_tags(model.tags)

        observed = CrossAccountAttachmentModel.from_api(existing)
        principals = diff_principals(observed.principals, model.principals)
        resources = diff_resources(observed.resources, model.resources)

        logger.info(
            "Updating cross-account attachment",
            extra={
                "arn": arn,
                "principals_added": len(principals.to_add),
                "principals_removed": len(principals.to_remove),
                "resources_added": len(resources.to_add),
                "resources_removed": len(resources.to_remove),
            },
        )
        attachment = self.client.update_cross_account_attachment(
            AttachmentArn=arn,
            Name=model.name,
            AddPrincipals=sorted(principals.to_add),
            RemovePrincipals=sorted(principals.to_remove),
            AddResources=[r.to_api() for r in sorted(resources.to_add, key=resource_key)],
            RemoveResources=[r.to_api() for r in sorted(resources.to_remove, key=resource_key)],
        )["CrossAccountAttachment"]

        self._reconcile_tags(arn, model.tags)
        return CrossAccountAttachmentModel.from_api(attachment, model.tags)

    def _delete(
        self, request: HandlerRequest[CrossAccountAttachmentModel], attachment: dict[str, Any]
    ) -> CrossAccountAttachmentModel:
        arn = attachment["AttachmentArn"]
        logger.info("Deleting cross-account attachment", extra={"arn": arn})
        self.client.delete_cross_account_attachment(AttachmentArn=arn)
        return request.desired_state
