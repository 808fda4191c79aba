"""Generic reconciliation engine for one entity.

An adapter holds both identities of an entity, ``local_id`` (the local
directory's id) and ``external_id`` (the remote SCIM resource ``id``), and
knows how to convert, match, create, and patch-diff that entity. The
concrete variants are ``UserAdapter`` and ``GroupAdapter``; the variant set
is closed and tagged by ``resource_type``.

Identity field swap, in both directions:

  - outbound: resource ``id`` = ``external_id``, resource ``externalId`` =
    ``local_id``
  - inbound: resource ``id`` -> ``external_id``. ``local_id`` is only ever
    established through the mapping store or by creating the local entity;
    the remote ``externalId`` attribute is never trusted for it.

One adapter instance serves exactly one reconciliation step and is never
shared.
"""

from __future__ import annotations

import abc
from collections.abc import Iterator
from typing import Any
from typing import ClassVar
from typing import Generic
from typing import TypeVar
from urllib.parse import quote

from pydantic import BaseModel

from scim_sync.configs.app_configs import SCIM_SKIP_ATTRIBUTE
from scim_sync.db.enums import MappingLookup
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.models import ScimMapping
from scim_sync.directory.interface import LocalDirectory
from scim_sync.scim.models import ScimMeta
from scim_sync.scim.patch import ScimPatchPlan
from scim_sync.sync.context import SyncContext
from scim_sync.utils.logger import setup_logger
from scim_sync.utils.logger import SyncLoggingAdapter

LocalT = TypeVar("LocalT")
RemoteT = TypeVar("RemoteT", bound=BaseModel)


class RequiredFieldError(ValueError):
    """Raised when an entity cannot be created because a required field is
    missing. Fatal for that entity, never retried."""


class StaleMappingError(RuntimeError):
    """Raised when a mapping points at a local entity that no longer exists."""


def resource_location(endpoint: str, external_id: str | None) -> str:
    """Relative SCIM location of a resource, e.g. ``Users/2819c223``."""
    if not external_id:
        raise ValueError(f"Cannot build {endpoint} location without an externalId")
    return f"{endpoint}/{quote(external_id, safe='')}"


def is_marked(entity: Any, attribute: str) -> bool:
    """True if the entity's first value for *attribute* is ``"true"``."""
    return entity.get_first_attribute(attribute) == "true"


class EntityAdapter(abc.ABC, Generic[LocalT, RemoteT]):
    resource_type: ClassVar[ScimResourceType]
    endpoint: ClassVar[str]

    def __init__(self, ctx: SyncContext) -> None:
        self.ctx = ctx
        self.local_id: str | None = None
        self.external_id: str | None = None
        self.skip = False
        self.logger: SyncLoggingAdapter = setup_logger(
            name=type(self).__module__,
            extra={"realm_id": ctx.realm_id, "component_id": ctx.component_id},
        )

    @property
    def directory(self) -> LocalDirectory:
        return self.ctx.directory

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(local_id={self.local_id}, "
            f"external_id={self.external_id}, skip={self.skip})"
        )

    # ------------------------------------------------------------------
    # Lifecycle contract
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def apply_from_local(self, local: LocalT) -> None:
        """Populate state from the local directory's entity."""

    @abc.abstractmethod
    def apply_from_remote(self, remote: RemoteT) -> None:
        """Populate state from an inbound SCIM resource."""

    @abc.abstractmethod
    def to_remote_representation(self, include_meta: bool = False) -> RemoteT:
        """Build the outbound SCIM resource."""

    @abc.abstractmethod
    def entity_exists(self) -> bool:
        """True iff ``local_id`` is set and resolvable in the local directory."""

    @abc.abstractmethod
    def try_to_map(self) -> bool:
        """Best-effort match against existing local entities.

        Sets ``local_id`` and returns True on an unambiguous match.
        """

    @abc.abstractmethod
    def create_entity(self) -> None:
        """Create the local entity and set ``local_id``.

        Raises:
            RequiredFieldError: If required fields are missing.
        """

    @abc.abstractmethod
    def get_resource_stream(self) -> Iterator[LocalT]:
        """Lazily enumerate local entities eligible for sync."""

    @abc.abstractmethod
    def skip_refresh(self) -> bool:
        """True if an outbound refresh must never overwrite this entity."""

    @abc.abstractmethod
    def to_patch_plan(self, url: str) -> ScimPatchPlan:
        """Remote-side mutations representing the current state."""

    # ------------------------------------------------------------------
    # Mapping store
    # ------------------------------------------------------------------

    def lookup_mapping(
        self,
        lookup: MappingLookup,
        key: str,
        resource_type: ScimResourceType | None = None,
    ) -> ScimMapping | None:
        return self.ctx.mappings.find(lookup, key, resource_type or self.resource_type)

    def save_mapping(self) -> ScimMapping:
        """Persist ``(local_id, external_id)`` and adopt the stored externalId.

        If this entity was already mapped, the earlier record wins and its
        externalId replaces ours. ``local_id`` never changes.

        Raises:
            MappingConflictError: If ``external_id`` already belongs to
                another local entity.
        """
        if not self.local_id or not self.external_id:
            raise RequiredFieldError(
                f"can't save {self.resource_type} mapping without both ids "
                f"(local_id={self.local_id}, external_id={self.external_id})"
            )
        mapping = self.ctx.mappings.create_mapping_if_absent(
            self.local_id, self.external_id, self.resource_type
        )
        self.external_id = mapping.external_id
        return mapping

    # ------------------------------------------------------------------
    # Shared helpers for the variants
    # ------------------------------------------------------------------

    def _resolve_local_id(self) -> None:
        if self.local_id is not None or not self.external_id:
            return
        mapping = self.lookup_mapping(MappingLookup.BY_EXTERNAL_ID, self.external_id)
        if mapping is not None:
            self.local_id = mapping.local_id

    def _evaluate_skip(self, local: Any) -> None:
        self.skip = is_marked(local, SCIM_SKIP_ATTRIBUTE)

    def _build_meta(self) -> ScimMeta | None:
        try:
            location = resource_location(self.endpoint, self.external_id)
        except ValueError:
            self.logger.exception(
                "Failed to build meta location for %s %s", self.resource_type, self
            )
            return None
        return ScimMeta(resourceType=str(self.resource_type), location=location)
