"""Set reconciliation for child collections.

An update carries the desired members of several child collections
(principals, shared resources, tags). Before the update call is issued each
collection is reconciled against the currently observed one, producing the
minimal add/remove delta.

DESIGN:
- Collections are unordered; membership is decided by a per-collection key
  function, never by list position.
- Missing and empty collections are equivalent inputs. A desired collection
  of None removes everything observed.
- A member whose key appears on both sides is left untouched even when
  fields outside the key differ. Such edits are not propagated.
- Each collection is diffed independently with its own key function.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .models import AttachmentResource, Tag

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class Delta(Generic[T]):
    """Members to add and members to remove for one collection."""

    to_add: frozenset[T] = field(default_factory=frozenset)
    to_remove: frozenset[T] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def compute_delta(
    observed: Iterable[T] | None,
    desired: Iterable[T] | None,
    key: Callable[[T], K],
) -> Delta[T]:
    """Compute the delta that moves ``observed`` to ``desired``.

    Args:
        observed: Members currently present remotely. None is treated as empty.
        desired: Members that should be present. None is treated as empty.
        key: Equality key for members of this collection.

    Returns:
        Delta whose ``to_add`` holds desired members with keys absent from
        observed, and whose ``to_remove`` holds observed members with keys
        absent from desired.
    """
    observed_set = frozenset(observed or ())
    desired_set = frozenset(desired or ())

    observed_keys = {key(member) for member in observed_set}
    desired_keys = {key(member) for member in desired_set}

    return Delta(
        to_add=frozenset(m for m in desired_set if key(m) not in observed_keys),
        to_remove=frozenset(m for m in observed_set if key(m) not in desired_keys),
    )


# =============================================================================
# Key functions, one per named collection
# =============================================================================


def principal_key(principal: str) -> str:
    """Principals (account ids or accelerator ARNs) compare as plain strings."""
    return principal


def resource_key(resource: AttachmentResource) -> str:
    """Shared resources are identified by endpoint id, or by CIDR for BYOIP."""
    return resource.endpoint_id or resource.cidr or ""


def tag_key(tag: Tag) -> tuple[str, str]:
    """Tags compare on key and value so a changed value is re-applied."""
    return tag.key, tag.value


def diff_principals(observed: Iterable[str] | None, desired: Iterable[str] | None) -> Delta[str]:
    delta = compute_delta(observed, desired, principal_key)
    logger.debug(
        "Principal delta computed",
        extra={"to_add": sorted(delta.to_add), "to_remove": sorted(delta.to_remove)},
    )
    return delta


def diff_resources(
    observed: Iterable[AttachmentResource] | None,
    desired: Iterable[AttachmentResource] | None,
) -> Delta[AttachmentResource]:
    delta = compute_delta(observed, desired, resource_key)
    logger.debug(
        "Resource delta computed",
        extra={
            "to_add": sorted(resource_key(r) for r in delta.to_add),
            "to_remove": sorted(resource_key(r) for r in delta.to_remove),
        },
    )
    return delta


def diff_tags(observed: Iterable[Tag] | None, desired: Iterable[Tag] | None) -> Delta[Tag]:
    delta = compute_delta(observed, desired, tag_key)
    logger.debug(
        "Tag delta computed",
        extra={
            "to_add": sorted(t.key for t in delta.to_add),
            "to_remove": sorted(t.key for t in delta.to_remove),
        },
    )
    return delta


def untag_keys(delta: Delta[Tag], desired: Iterable[Tag] | None) -> list[str]:
    """Tag keys to untag: removed keys that are not being re-tagged."""
    retained = {tag.key for tag in desired or ()}
    return sorted({tag.key for tag in delta.to_remove} - retained)
