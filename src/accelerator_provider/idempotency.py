"""Idempotency tokens for create calls.

The service deduplicates create requests that carry the same idempotency
token. Sourcing the token from request metadata that the orchestrator
keeps stable for one logical operation means a redelivered first
invocation (crash and retry) cannot create a second resource.
"""

from __future__ import annotations

import hashlib
import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .driver import HandlerRequest

logger = logging.getLogger(__name__)

MAX_IDEMPOTENCY_TOKEN_LENGTH = 255


class MissingIdempotencyTokenError(ValueError):
    """Raised when the request carries no metadata to derive a token from."""

    pass


class TokenSource(str, Enum):
    """Request metadata field a token is derived from."""

    CLIENT_REQUEST_TOKEN = "client_request_token"
    LOGICAL_RESOURCE_ID = "logical_resource_id"


class IdempotencyTokenSupplier:
    """Derives a stable idempotency token from request metadata."""

    def __init__(self, source: TokenSource = TokenSource.CLIENT_REQUEST_TOKEN) -> None:
        self._source = source

    @property
    def source(self) -> TokenSource:
        return self._source

    def token_for(self, request: HandlerRequest) -> str:
        """Return the idempotency token for ``request``.

        Raises:
            MissingIdempotencyTokenError: If the source field is empty.
        """
        value = getattr(request, self._source.value)
        if not value:
            raise MissingIdempotencyTokenError(
                f"Request has no {self._source.value} to derive an idempotency token from"
            )
        # Service limit; hashing keeps the token stable for the operation.
        if len(value) > MAX_IDEMPOTENCY_TOKEN_LENGTH:
            value = hashlib.sha256(value.encode()).hexdigest()
        return str(value)
