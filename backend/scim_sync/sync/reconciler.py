"""Drives reconciliation passes over one resource type.

Outbound (local -> remote), per local entity::

    apply_from_local -> skip? -> mapping by local id
        found:     skip_refresh? -> PATCH to_patch_plan
        not found: POST to_remote_representation -> save mapping

Inbound (remote -> local), per remote resource::

    apply_from_remote (resolves local id through the mapping store)
        mapped:      entity_exists? (a mapping to a vanished entity fails)
        not mapped:  try_to_map -> save mapping
                     otherwise create_entity -> save mapping

Every entity is its own unit of work: success commits, any exception is
logged, rolled back and recorded in the report, and the pass moves on.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel
from pydantic import Field

from scim_sync.db.enums import MappingLookup
from scim_sync.db.enums import ScimResourceType
from scim_sync.scim.models import ScimResource
from scim_sync.sync.adapter import EntityAdapter
from scim_sync.sync.adapter import resource_location
from scim_sync.sync.adapter import StaleMappingError
from scim_sync.sync.context import SyncContext
from scim_sync.sync.group_adapter import GroupAdapter
from scim_sync.sync.remote import RemoteDirectoryClient
from scim_sync.sync.user_adapter import UserAdapter
from scim_sync.utils.logger import setup_logger

logger = setup_logger()

ADAPTERS: dict[ScimResourceType, type[EntityAdapter]] = {
    ScimResourceType.USER: UserAdapter,
    ScimResourceType.GROUP: GroupAdapter,
}


class SyncAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    MAPPED = "mapped"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    action: SyncAction
    local_id: str | None = None
    external_id: str | None = None
    error: str | None = None


class SyncReport(BaseModel):
    """Result of one pass. The pass always completes; failures are listed."""

    resource_type: ScimResourceType
    outcomes: list[SyncOutcome] = Field(default_factory=list)

    def record(
        self, adapter: EntityAdapter, action: SyncAction, error: str | None = None
    ) -> None:
        self.outcomes.append(
            SyncOutcome(
                action=action,
                local_id=adapter.local_id,
                external_id=adapter.external_id,
                error=error,
            )
        )

    def count(self, action: SyncAction) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action == action)

    @property
    def failed(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.action == SyncAction.FAILED]


class Reconciler:
    def __init__(self, ctx: SyncContext, client: RemoteDirectoryClient) -> None:
        self._ctx = ctx
        self._client = client

    def new_adapter(self, resource_type: ScimResourceType) -> EntityAdapter:
        return ADAPTERS[resource_type](self._ctx)

    def sync_outbound(self, resource_type: ScimResourceType) -> SyncReport:
        report = SyncReport(resource_type=resource_type)
        for local in self.new_adapter(resource_type).get_resource_stream():
            adapter = self.new_adapter(resource_type)
            try:
                action = self._push(adapter, local)
                self._ctx.commit()
                report.record(adapter, action)
            except Exception as e:
                logger.exception("Failed to sync %s outbound: %s", resource_type, adapter)
                self._ctx.rollback()
                report.record(adapter, SyncAction.FAILED, error=str(e))

        logger.info(
            "Outbound %s pass: %d created, %d updated, %d skipped, %d failed",
            resource_type,
            report.count(SyncAction.CREATED),
            report.count(SyncAction.UPDATED),
            report.count(SyncAction.SKIPPED),
            report.count(SyncAction.FAILED),
        )
        return report

    def import_remote(
        self, resource_type: ScimResourceType, resources: Iterable[ScimResource]
    ) -> SyncReport:
        report = SyncReport(resource_type=resource_type)
        for resource in resources:
            adapter = self.new_adapter(resource_type)
            try:
                action = self._pull(adapter, resource)
                self._ctx.commit()
                report.record(adapter, action)
            except Exception as e:
                logger.exception("Failed to import %s %s", resource_type, resource.id)
                self._ctx.rollback()
                report.record(adapter, SyncAction.FAILED, error=str(e))

        logger.info(
            "Inbound %s pass: %d created, %d mapped, %d unchanged, %d failed",
            resource_type,
            report.count(SyncAction.CREATED),
            report.count(SyncAction.MAPPED),
            report.count(SyncAction.UNCHANGED),
            report.count(SyncAction.FAILED),
        )
        return report

    def _push(self, adapter: EntityAdapter, local: object) -> SyncAction:
        adapter.apply_from_local(local)
        if adapter.skip or adapter.local_id is None:
            return SyncAction.SKIPPED

        mapping = adapter.lookup_mapping(MappingLookup.BY_LOCAL_ID, adapter.local_id)
        if mapping is not None:
            adapter.external_id = mapping.external_id
            if adapter.skip_refresh():
                return SyncAction.SKIPPED
            url = resource_location(adapter.endpoint, adapter.external_id)
            self._client.patch(adapter.to_patch_plan(url))
            return SyncAction.UPDATED

        created = self._client.create(
            adapter.resource_type, adapter.to_remote_representation(include_meta=False)
        )
        if not created.id:
            raise ValueError(f"Remote directory returned no id for {adapter}")
        adapter.external_id = created.id
        adapter.save_mapping()
        return SyncAction.CREATED

    def _pull(self, adapter: EntityAdapter, resource: ScimResource) -> SyncAction:
        adapter.apply_from_remote(resource)

        if adapter.local_id is not None:
            if adapter.entity_exists():
                return SyncAction.UNCHANGED
            raise StaleMappingError(
                f"{adapter.resource_type} mapping for externalId={adapter.external_id} "
                f"points at missing local entity {adapter.local_id}"
            )

        if adapter.try_to_map():
            adapter.save_mapping()
            return SyncAction.MAPPED

        adapter.create_entity()
        adapter.save_mapping()
        return SyncAction.CREATED
