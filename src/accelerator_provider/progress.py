"""Progress events and continuation tokens exchanged with the orchestrator.

Every handler invocation is stateless. What survives between invocations is
the CallbackContext returned inside an IN_PROGRESS event, which the caller
persists verbatim and hands back on the next invocation. A missing context
means "first invocation of this operation".

There are two error tiers:
- Recoverable conditions (NotFound, InvalidRequest) are returned as FAILED
  events with a HandlerErrorCode.
- An exhausted stabilization budget raises StabilizationTimeoutError, so a
  stuck operation can never be mistaken for a retryable failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OperationStatus(str, Enum):
    """Outcome of a single handler invocation."""

    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class HandlerErrorCode(str, Enum):
    """Structured failure kinds surfaced to the orchestrator."""

    NOT_FOUND = "NotFound"
    INVALID_REQUEST = "InvalidRequest"


class StabilizationTimeoutError(RuntimeError):
    """Raised when the stabilization retry budget is exhausted.

    Not a structured failure: the operation is stuck and a further
    invocation with the same token cannot make progress.
    """

    pass


class CallbackContext(BaseModel):
    """Continuation token persisted by the caller between invocations.

    Attributes:
        stabilization_retries_remaining: Polls left before timing out.
            Reaches -1 only on the invocation that raises the timeout.
        pending_stabilization: A mutation has been issued and the driver
            is waiting for convergence; never re-issue it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    stabilization_retries_remaining: int = Field(
        0, ge=-1, alias="stabilizationRetriesRemaining"
    )
    pending_stabilization: bool = Field(False, alias="pendingStabilization")

    def decremented(self) -> CallbackContext:
        """Return a copy with one poll consumed."""
        return self.model_copy(
            update={"stabilization_retries_remaining": self.stabilization_retries_remaining - 1}
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the wire form the caller persists."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> CallbackContext | None:
        """Parse a persisted token; None stays None (first invocation)."""
        if payload is None:
            return None
        return cls.model_validate(payload)


@dataclass
class ProgressEvent:
    """Result of one handler invocation."""

    status: OperationStatus
    resource_model: BaseModel | None = None
    resource_models: list[BaseModel] = field(default_factory=list)
    callback_context: CallbackContext | None = None
    callback_delay_seconds: int = 0
    error_code: HandlerErrorCode | None = None
    message: str | None = None
    next_token: str | None = None

    @property
    def terminal(self) -> bool:
        """True once the operation has succeeded or failed."""
        return self.status != OperationStatus.IN_PROGRESS

    @classmethod
    def success(cls, model: BaseModel | None) -> ProgressEvent:
        return cls(status=OperationStatus.SUCCESS, resource_model=model)

    @classmethod
    def in_progress(
        cls, context: CallbackContext, delay_seconds: int, model: BaseModel | None
    ) -> ProgressEvent:
        return cls(
            status=OperationStatus.IN_PROGRESS,
            resource_model=model,
            callback_context=context,
            callback_delay_seconds=delay_seconds,
        )

    @classmethod
    def failed(
        cls, error_code: HandlerErrorCode, message: str, model: BaseModel | None = None
    ) -> ProgressEvent:
        return cls(
            status=OperationStatus.FAILED,
            resource_model=model,
            error_code=error_code,
            message=message,
        )

    @classmethod
    def listed(cls, models: list[BaseModel], next_token: str | None) -> ProgressEvent:
        return cls(status=OperationStatus.SUCCESS, resource_models=models, next_token=next_token)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output, omitting empty fields."""
        data: dict[str, Any] = {"status": self.status.value}
        if self.resource_model is not None:
            data["resourceModel"] = self.resource_model.model_dump(by_alias=True, exclude_none=True)
        if self.resource_models:
            data["resourceModels"] = [
                m.model_dump(by_alias=True, exclude_none=True) for m in self.resource_models
            ]
        if self.callback_context is not None:
            data["callbackContext"] = self.callback_context.to_payload()
            data["callbackDelaySeconds"] = self.callback_delay_seconds
        if self.error_code is not None:
            data["errorCode"] = self.error_code.value
        if self.message:
            data["message"] = self.message
        if self.next_token:
            data["nextToken"] = self.next_token
        return data
