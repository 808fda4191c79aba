"""Reconciliation of collections of principals (SCIM ``Group``).

``members`` always holds *local* user ids. Member ids are translated to
remote ids only while building an outbound representation or patch plan,
through the mapping store, so the store stays the single source of truth
for id translation.

Members that cannot be translated are logged and dropped; one bad member
never fails the whole group.
"""

from __future__ import annotations

from collections.abc import Iterator
from uuid import uuid4

from scim_sync.configs.app_configs import SCIM_GROUPS_ENDPOINT
from scim_sync.configs.app_configs import SCIM_USERS_ENDPOINT
from scim_sync.db.enums import MappingLookup
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.models import DirectoryGroup
from scim_sync.scim.models import ScimGroupMember
from scim_sync.scim.models import ScimGroupResource
from scim_sync.scim.patch import ScimPatchPlan
from scim_sync.sync.adapter import EntityAdapter
from scim_sync.sync.adapter import RequiredFieldError
from scim_sync.sync.adapter import resource_location
from scim_sync.sync.context import SyncContext
from scim_sync.sync.user_adapter import UserAdapter


class GroupAdapter(EntityAdapter[DirectoryGroup, ScimGroupResource]):
    resource_type = ScimResourceType.GROUP
    endpoint = SCIM_GROUPS_ENDPOINT

    def __init__(self, ctx: SyncContext) -> None:
        super().__init__(ctx)
        self._display_name: str | None = None
        self.members: frozenset[str] = frozenset()

    @property
    def display_name(self) -> str | None:
        return self._display_name

    @display_name.setter
    def display_name(self, value: str | None) -> None:
        if self._display_name is None:
            self._display_name = value

    # ------------------------------------------------------------------

    def apply_from_local(self, local: DirectoryGroup) -> None:
        self.local_id = local.id
        self.display_name = local.name
        self.members = frozenset(
            user.id for user in self.directory.get_group_members(local)
        )
        self.logger.info(
            "Collected %d members for group %s (id=%s)",
            len(self.members),
            local.name,
            local.id,
        )
        self._evaluate_skip(local)

    def apply_from_remote(self, remote: ScimGroupResource) -> None:
        self.external_id = remote.id
        self.display_name = remote.displayName
        self._resolve_local_id()

        resolved: set[str] = set()
        for member in remote.members:
            try:
                mapping = self.lookup_mapping(
                    MappingLookup.BY_EXTERNAL_ID, member.value, ScimResourceType.USER
                )
                if mapping is None:
                    self.logger.error(
                        "No user mapping found for externalId: %s", member.value
                    )
                    continue
                resolved.add(mapping.local_id)
            except Exception:
                self.logger.exception(
                    "Failed to process incoming group member: %s", member.value
                )
        self.members = frozenset(resolved)
        self.logger.info(
            "Processed incoming group %s with %d of %d members mapped",
            self.display_name,
            len(self.members),
            len(remote.members),
        )

    def to_remote_representation(
        self, include_meta: bool = False
    ) -> ScimGroupResource:
        resource = ScimGroupResource(
            id=self.external_id,
            externalId=self.local_id,
            displayName=self.display_name or "",
            members=self._export_members(),
        )
        if include_meta:
            resource.meta = self._build_meta()
        return resource

    def entity_exists(self) -> bool:
        if self.local_id is None:
            return False
        return self.directory.get_group_by_id(self.local_id) is not None

    def try_to_map(self) -> bool:
        # First match wins. Unlike users there is no ambiguity check.
        for group in self.directory.list_groups():
            if group.name == self.display_name:
                self.local_id = group.id
                return True
        return False

    def create_entity(self) -> None:
        if not self.display_name:
            raise RequiredFieldError("can't create group with empty displayName")
        group = self.directory.create_group(self.display_name)
        self.local_id = group.id
        self.logger.info("Created new group: %s (id=%s)", self.display_name, group.id)

        for member_id in sorted(self.members):
            try:
                user = self.directory.get_user_by_id(member_id)
                if user is None:
                    self.logger.warning(
                        "User with id=%s not found in local directory", member_id
                    )
                    continue
                self.directory.join_group(user, group)
            except Exception:
                self.logger.warning(
                    "Failed to add user with id=%s to group %s",
                    member_id,
                    self.display_name,
                    exc_info=True,
                )

    def get_resource_stream(self) -> Iterator[DirectoryGroup]:
        return self.directory.list_groups()

    def skip_refresh(self) -> bool:
        return False

    def to_patch_plan(self, url: str) -> ScimPatchPlan:
        try:
            plan = ScimPatchPlan(url)
            # An empty REPLACE and a REMOVE are different operations on most
            # SCIM servers; "no members" must go out as REMOVE.
            if self.members:
                plan.replace("members", self._export_members())
            else:
                plan.remove("members")
            return plan.replace("displayName", self.display_name).replace(
                "externalId", self.local_id
            )
        except Exception:
            self.logger.exception("Failed to create patch request to %s", url)
            raise

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def ensure_user_mapping(self, user_id: str) -> str | None:
        """Return the remote id for a local user, creating the mapping if
        the user was never synced. Idempotent.

        Returns ``None`` if the user no longer exists locally.
        """
        existing = self.lookup_mapping(
            MappingLookup.BY_LOCAL_ID, user_id, ScimResourceType.USER
        )
        if existing is not None:
            return existing.external_id

        if self.directory.get_user_by_id(user_id) is None:
            self.logger.error(
                "Cannot create mapping: user %s not found in local directory", user_id
            )
            return None

        user_adapter = UserAdapter(self.ctx)
        user_adapter.local_id = user_id
        user_adapter.external_id = str(uuid4())
        return user_adapter.save_mapping().external_id

    def diff_members(self, previous: GroupAdapter) -> tuple[set[str], set[str]]:
        """Compare member snapshots. Returns ``(added, removed)`` local ids."""
        return set(self.members - previous.members), set(
            previous.members - self.members
        )

    def _export_members(self) -> list[ScimGroupMember]:
        exported: list[ScimGroupMember] = []
        for member_id in sorted(self.members):
            try:
                external_id = self.ensure_user_mapping(member_id)
                if external_id is None:
                    self.logger.error(
                        "Could not get or create mapping for user %s, skipping",
                        member_id,
                    )
                    continue
                exported.append(
                    ScimGroupMember(
                        value=external_id,
                        type="User",
                        ref=resource_location(SCIM_USERS_ENDPOINT, external_id),
                    )
                )
            except Exception:
                self.logger.exception("Failed to process group member: %s", member_id)
        return exported
