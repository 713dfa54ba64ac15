"""Reconciliation driver: start an operation, then poll until terminal.

The orchestrator invokes a handler repeatedly for one logical operation,
possibly from different processes, and persists only the CallbackContext
the previous invocation returned. The driver is therefore a pure
transition function:

    (operation, desired state, context?) -> ProgressEvent

STATE MACHINE:
1. No context (or no pending stabilization for update/delete): run the
   precondition checks and issue the mutation. Return IN_PROGRESS with a
   full retry budget, ``pending_stabilization`` set, and a zero delay so the
   next invocation polls immediately.
2. Pending stabilization: consume one retry. If the budget is exhausted,
   raise StabilizationTimeoutError without probing. Otherwise probe once:
   converged means SUCCESS, anything else means IN_PROGRESS with the
   decremented context and the configured poll delay.

Each invocation performs at most one mutation or one probe (plus a
precondition describe) and never waits internally.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from .arns import InvalidArnError
from .config import ProviderConfig
from .idempotency import MissingIdempotencyTokenError
from .progress import (
    CallbackContext,
    HandlerErrorCode,
    ProgressEvent,
    StabilizationTimeoutError,
)
from .prober import ObservedStatus

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class HandlerFailure(Exception):
    """Raised inside a mutation step to end the operation with a structured failure."""

    def __init__(self, error_code: HandlerErrorCode, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.message = message


def not_found(message: str) -> HandlerFailure:
    return HandlerFailure(HandlerErrorCode.NOT_FOUND, message)


def invalid_request(message: str) -> HandlerFailure:
    return HandlerFailure(HandlerErrorCode.INVALID_REQUEST, message)


@dataclass
class HandlerRequest(Generic[M]):
    """One invocation of a handler.

    Attributes:
        desired_state: Model the caller wants; after creation it carries
            the identifier returned by the previous invocation.
        previous_state: Last applied model, supplied on updates.
        callback_context: Continuation token from the previous invocation;
            None on the first invocation.
        client_request_token: Caller-assigned id, stable across retries of
            the same operation.
        logical_resource_id: Caller's logical name of the resource.
        next_token: Pagination token for list operations.
    """

    desired_state: M
    previous_state: M | None = None
    callback_context: CallbackContext | None = None
    client_request_token: str | None = None
    logical_resource_id: str | None = None
    next_token: str | None = None


Mutation = Callable[[HandlerRequest[M]], M]
Probe = Callable[[M], ObservedStatus]
Deletion = Callable[[HandlerRequest[M], Any], M]


class ReconciliationDriver:
    """Sequences mutation and stabilization for one resource type."""

    def __init__(self, config: ProviderConfig, resource_type: str) -> None:
        """Initialize driver.

        Args:
            config: Provider configuration supplying delay and retry budget.
            resource_type: Human-readable resource name for logs and errors.
        """
        self._config = config
        self._resource_type = resource_type

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def timed_out_message(self) -> str:
        return f"Timed out waiting for {self._resource_type} to be deployed."

    def create(
        self, request: HandlerRequest[M], *, mutate: Mutation[M], probe: Probe[M]
    ) -> ProgressEvent:
        """Create on the first invocation, poll on every later one."""
        if request.callback_context is None:
            return self._mutate("create", request, mutate)
        return self.stabilize(request.callback_context, request.desired_state, probe)

    def update(
        self, request: HandlerRequest[M], *, mutate: Mutation[M], probe: Probe[M]
    ) -> ProgressEvent:
        """Update once, then poll until converged."""
        context = request.callback_context
        if context is None or not context.pending_stabilization:
            return self._mutate("update", request, mutate)
        return self.stabilize(context, request.desired_state, probe)

    def delete(
        self,
        request: HandlerRequest[M],
        *,
        lookup: Callable[[M], Any],
        mutate: Deletion[M],
        probe: Probe[M],
    ) -> ProgressEvent:
        """Delete once, then poll until gone or the owner has converged.

        Args:
            request: Handler request.
            lookup: Describes the resource; None when it is already gone.
            mutate: Issues the delete call, given the request and what
                ``lookup`` observed.
            probe: Status of the stabilization target. ABSENT counts as
                success here: the resource, or the parent that owned it,
                is gone.
        """
        context = request.callback_context
        if context is None or not context.pending_stabilization:
            observed = lookup(request.desired_state)
            if observed is None:
                logger.info(
                    "Resource already deleted",
                    extra={"resource_type": self._resource_type},
                )
                return ProgressEvent.success(request.desired_state)
            return self._mutate("delete", request, lambda r: mutate(r, observed))
        return self.stabilize(context, request.desired_state, probe, absent_is_success=True)

    def stabilize(
        self,
        context: CallbackContext,
        model: M,
        probe: Probe[M],
        *,
        absent_is_success: bool = False,
    ) -> ProgressEvent:
        """Run one stabilization poll.

        Raises:
            StabilizationTimeoutError: If no retries remain.
        """
        remaining = context.decremented()
        logger.debug(
            "Waiting for resource to stabilize",
            extra={
                "resource_type": self._resource_type,
                "retries_remaining": remaining.stabilization_retries_remaining,
            },
        )

        if remaining.stabilization_retries_remaining < 0:
            logger.error(
                "Stabilization retry budget exhausted",
                extra={"resource_type": self._resource_type},
            )
            raise StabilizationTimeoutError(self.timed_out_message)

        status = probe(model)
        if status == ObservedStatus.CONVERGED or (
            status == ObservedStatus.ABSENT and absent_is_success
        ):
            logger.info(
                "Resource stabilized",
                extra={"resource_type": self._resource_type, "status": status.value},
            )
            return ProgressEvent.success(model)

        return ProgressEvent.in_progress(remaining, self._config.callback_delay_seconds, model)

    def _mutate(
        self, operation: str, request: HandlerRequest[M], mutate: Mutation[M]
    ) -> ProgressEvent:
        try:
            model = mutate(request)
        except HandlerFailure as e:
            logger.warning(
                "Operation failed",
                extra={
                    "resource_type": self._resource_type,
                    "operation": operation,
                    "error_code": e.error_code.value,
                    "reason": e.message,
                },
            )
            return ProgressEvent.failed(e.error_code, e.message, request.desired_state)
        except (InvalidArnError, MissingIdempotencyTokenError) as e:
            logger.warning(
                "Invalid request",
                extra={
                    "resource_type": self._resource_type,
                    "operation": operation,
                    "reason": str(e),
                },
            )
            return ProgressEvent.failed(
                HandlerErrorCode.INVALID_REQUEST, str(e), request.desired_state
            )

        logger.info(
            "Mutation issued",
            extra={"resource_type": self._resource_type, "operation": operation},
        )
        return ProgressEvent.in_progress(
            self._config.initial_context(pending_stabilization=True), 0, model
        )


def read_model(fetch: Callable[[], M | None], message: str) -> ProgressEvent:
    """Build a read result; a missing resource is a NotFound failure."""
    try:
        model = fetch()
    except InvalidArnError as e:
        return ProgressEvent.failed(HandlerErrorCode.INVALID_REQUEST, str(e))
    if model is None:
        logger.error(message)
        return ProgressEvent.failed(HandlerErrorCode.NOT_FOUND, message)
    return ProgressEvent.success(model)
