"""Global Accelerator provider CLI (agactl).

Runs handler steps from the command line, playing the orchestrator role.

Usage:
    agactl step accelerator create --desired acc.yaml --client-request-token t-1
    agactl apply listener update --desired new.yaml --previous old.yaml
    agactl diff --collection principals --observed a.yaml --desired b.yaml
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any

import click
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from .client import create_client
from .config import VALID_LOG_LEVELS, ConfigurationError, ProviderConfig
from .diff import Delta, diff_principals, diff_resources, diff_tags, resource_key
from .dispatch import Action, ResourceType, reconcile
from .logging_config import setup_logging
from .models import AttachmentResource, Tag
from .progress import OperationStatus, ProgressEvent, StabilizationTimeoutError
from .state_loader import StateLoadError, load_collection, load_state

logger = logging.getLogger(__name__)

COLLECTIONS = ("principals", "resources", "tags")


def _load_config() -> ProviderConfig:
    try:
        return ProviderConfig.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def _build_payload(
    desired: Path,
    previous: Path | None,
    token: str | None,
    client_request_token: str | None,
    logical_id: str | None,
    next_token: str | None,
) -> dict[str, Any]:
    try:
        payload: dict[str, Any] = {"desiredResourceState": load_state(desired)}
        if previous is not None:
            payload["previousResourceState"] = load_state(previous)
    except StateLoadError as e:
        raise click.ClickException(str(e)) from e

    if token:
        try:
            payload["callbackContext"] = json.loads(token)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"--token must be a JSON object: {e}") from e
    if client_request_token:
        payload["clientRequestToken"] = client_request_token
    if logical_id:
        payload["logicalResourceIdentifier"] = logical_id
    if next_token:
        payload["nextToken"] = next_token
    return payload


def _run_step(
    resource: str, action: str, payload: dict[str, Any], client: Any, config: ProviderConfig
) -> ProgressEvent:
    try:
        return reconcile(resource, action, payload, client, config)
    except StabilizationTimeoutError as e:
        raise click.ClickException(str(e)) from e
    except (ClientError, BotoCoreError) as e:
        raise click.ClickException(f"Global Accelerator API error: {e}") from e


def _emit(event: ProgressEvent) -> None:
    click.echo(json.dumps(event.to_dict(), indent=2, sort_keys=True))
    if event.status == OperationStatus.FAILED:
        sys.exit(1)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="agactl")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: AGA_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Global Accelerator provider CLI (agactl).

    Drives create/read/update/delete/list handlers for accelerators,
    listeners, endpoint groups and cross-account attachments.
    """
    ctx.ensure_object(dict)
    # Logs go to stderr; stdout carries the JSON result.
    level = (log_level or os.environ.get("AGA_LOG_LEVEL", "WARNING")).upper()
    if level not in VALID_LOG_LEVELS:
        level = "WARNING"
    setup_logging(level, stream=sys.stderr)


resource_argument = click.argument(
    "resource", type=click.Choice([r.value for r in ResourceType])
)
action_argument = click.argument("action", type=click.Choice([a.value for a in Action]))


def request_options(func: Any) -> Any:
    """Options shared by commands that run handler steps."""
    options = [
        click.option(
            "--desired",
            "desired",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            required=True,
            help="YAML file with the desired resource state.",
        ),
        click.option(
            "--previous",
            "previous",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="YAML file with the previous resource state (updates).",
        ),
        click.option("--client-request-token", help="Caller request id (idempotency)."),
        click.option("--logical-id", help="Logical resource id (idempotency)."),
        click.option("--next-token", help="Pagination token for list."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@resource_argument
@action_argument
@request_options
@click.option("--token", help="Continuation token (JSON) from the previous step.")
def step(
    resource: str,
    action: str,
    desired: Path,
    previous: Path | None,
    client_request_token: str | None,
    logical_id: str | None,
    next_token: str | None,
    token: str | None,
) -> None:
    """Run a single handler step and print the progress event."""
    config = _load_config()
    payload = _build_payload(desired, previous, token, client_request_token, logical_id, next_token)
    event = _run_step(resource, action, payload, create_client(config), config)
    _emit(event)


@cli.command()
@resource_argument
@action_argument
@request_options
def apply(
    resource: str,
    action: str,
    desired: Path,
    previous: Path | None,
    client_request_token: str | None,
    logical_id: str | None,
    next_token: str | None,
) -> None:
    """Run handler steps until the operation is terminal.

    Sleeps the returned callback delay between steps and feeds the returned
    continuation token and resource model into the next step.
    """
    config = _load_config()
    client = create_client(config)
    payload = _build_payload(desired, previous, None, client_request_token, logical_id, next_token)

    steps = 0
    while True:
        event = _run_step(resource, action, payload, client, config)
        steps += 1
        if event.terminal:
            break

        logger.info(
            "Operation in progress",
            extra={"step": steps, "delay_seconds": event.callback_delay_seconds},
        )
        if event.callback_delay_seconds:
            time.sleep(event.callback_delay_seconds)

        payload["callbackContext"] = event.callback_context.to_payload()
        if event.resource_model is not None:
            payload["desiredResourceState"] = event.resource_model.model_dump(
                by_alias=True, exclude_none=True
            )

    logger.info("Operation finished", extra={"steps": steps, "status": event.status.value})
    _emit(event)


@cli.command()
@click.option(
    "--collection",
    type=click.Choice(COLLECTIONS),
    required=True,
    help="Which child collection the files describe.",
)
@click.option(
    "--observed",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML list of observed members.",
)
@click.option(
    "--desired",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML list of desired members.",
)
def diff(collection: str, observed: Path, desired: Path) -> None:
    """Print the add/remove delta between two collections."""
    try:
        observed_members = load_collection(observed)
        desired_members = load_collection(desired)
    except StateLoadError as e:
        raise click.ClickException(str(e)) from e

    try:
        if collection == "principals":
            delta: Delta[Any] = diff_principals(
                [str(p) for p in observed_members], [str(p) for p in desired_members]
            )
            result = {"toAdd": sorted(delta.to_add), "toRemove": sorted(delta.to_remove)}
        elif collection == "resources":
            delta = diff_resources(
                [AttachmentResource.model_validate(r) for r in observed_members],
                [AttachmentResource.model_validate(r) for r in desired_members],
            )
            result = {
                "toAdd": [r.to_api() for r in sorted(delta.to_add, key=resource_key)],
                "toRemove": [r.to_api() for r in sorted(delta.to_remove, key=resource_key)],
            }
        else:
            delta = diff_tags(
                [Tag.model_validate(t) for t in observed_members],
                [Tag.model_validate(t) for t in desired_members],
            )
            result = {
                "toAdd": [t.to_api() for t in sorted(delta.to_add, key=lambda t: t.key)],
                "toRemove": [t.to_api() for t in sorted(delta.to_remove, key=lambda t: t.key)],
            }
    except ValidationError as e:
        raise click.ClickException(f"Invalid collection member: {e}") from e

    click.echo(json.dumps(result, indent=2))


def main() -> None:
    """Entry point for agactl."""
    cli(obj={})


if __name__ == "__main__":
    main()
