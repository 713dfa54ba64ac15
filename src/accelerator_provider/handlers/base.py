"""Shared plumbing for resource handlers."""

from __future__ import annotations

import logging
from typing import Any

from ..config import ProviderConfig
from ..diff import diff_tags, untag_keys
from ..driver import ReconciliationDriver, invalid_request
from ..models import Tag, invalid_tags
from ..prober import StateProber

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100


class ResourceHandler:
    """Base class for per-resource create/read/update/delete/list handlers.

    Subclasses set ``resource_type`` and implement the five operations
    against the client passed in at construction.
    """

    resource_type = "resource"

    def __init__(self, client: Any, config: ProviderConfig) -> None:
        """Initialize handler.

        Args:
            client: Global Accelerator client.
            config: Provider configuration.
        """
        self._client = client
        self._config = config
        self._prober = StateProber(client)
        self._driver = ReconciliationDriver(config, self.resource_type)

    @property
    def client(self) -> Any:
        return self._client

    @property
    def prober(self) -> StateProber:
        return self._prober

    @property
    def driver(self) -> ReconciliationDriver:
        return self._driver

    def _check_tags(self, tags: list[Tag] | None) -> None:
        bad = invalid_tags(tags)
        if bad:
            raise invalid_request(f"Invalid tag format in [{', '.join(t.key for t in bad)}]")

    def _tags_param(self, tags: list[Tag] | None) -> list[dict[str, str]]:
        return [tag.to_api() for tag in tags or []]

    def _reconcile_tags(self, arn: str, desired: list[Tag] | None) -> None:
        """Move the remote tag set of ``arn`` to ``desired``."""
        observed = self._prober.get_tags(arn, strict=True)
        delta = diff_tags(observed, desired)
        if delta.is_empty:
            return

        keys = untag_keys(delta, desired)
        if keys:
            logger.info("Removing tags", extra={"arn": arn, "tag_keys": keys})
            self._client.untag_resource(ResourceArn=arn, TagKeys=keys)
        if delta.to_add:
            added = sorted(delta.to_add, key=lambda t: t.key)
            logger.info("Applying tags", extra={"arn": arn, "tag_keys": [t.key for t in added]})
            self._client.tag_resource(ResourceArn=arn, Tags=[t.to_api() for t in added])

    def _page(
        self, operation: str, key: str, next_token: str | None, **params: Any
    ) -> tuple[list[dict[str, Any]], str | None]:
        """Fetch one page of a List* call."""
        if next_token:
            params["NextToken"] = next_token
        response = getattr(self._client, operation)(MaxResults=LIST_PAGE_SIZE, **params)
        return response.get(key, []), response.get("NextToken")
