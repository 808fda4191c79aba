"""Reconciliation of identity principals (SCIM ``User``)."""

from __future__ import annotations

from collections.abc import Iterator

from scim_sync.configs.app_configs import SCIM_EXPORT_ROLE_ATTRIBUTE
from scim_sync.configs.app_configs import SCIM_RESERVED_USERNAMES
from scim_sync.configs.app_configs import SCIM_USERS_ENDPOINT
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.models import DirectoryRole
from scim_sync.db.models import DirectoryUser
from scim_sync.scim.models import ScimEmail
from scim_sync.scim.models import ScimName
from scim_sync.scim.models import ScimRole
from scim_sync.scim.models import ScimUserResource
from scim_sync.scim.patch import ScimPatchPlan
from scim_sync.sync.adapter import EntityAdapter
from scim_sync.sync.adapter import is_marked
from scim_sync.sync.adapter import RequiredFieldError
from scim_sync.sync.context import SyncContext


def build_display_name(
    first_name: str | None, last_name: str | None, username: str | None
) -> str | None:
    display_name = f"{first_name or ''} {last_name or ''}".strip()
    return display_name or username


def collect_exported_roles(user: DirectoryUser) -> frozenset[str]:
    """Roles granted through the user's groups or directly, limited to
    roles flagged for export."""
    granted: list[DirectoryRole] = [
        role for group in user.groups for role in group.roles
    ]
    granted.extend(user.roles)
    return frozenset(
        role.name for role in granted if is_marked(role, SCIM_EXPORT_ROLE_ATTRIBUTE)
    )


class UserAdapter(EntityAdapter[DirectoryUser, ScimUserResource]):
    resource_type = ScimResourceType.USER
    endpoint = SCIM_USERS_ENDPOINT

    def __init__(self, ctx: SyncContext) -> None:
        super().__init__(ctx)
        self._username: str | None = None
        self._display_name: str | None = None
        self._email: str | None = None
        self._active: bool | None = None
        self.given_name: str | None = None
        self.family_name: str | None = None
        self.roles: frozenset[str] = frozenset()

    # Set-once fields: the first apply in a pass is the most authoritative
    # one, later applies must not overwrite it.

    @property
    def username(self) -> str | None:
        return self._username

    @username.setter
    def username(self, value: str | None) -> None:
        if self._username is None:
            self._username = value

    @property
    def display_name(self) -> str | None:
        return self._display_name

    @display_name.setter
    def display_name(self, value: str | None) -> None:
        if self._display_name is None:
            self._display_name = value

    @property
    def email(self) -> str | None:
        return self._email

    @email.setter
    def email(self, value: str | None) -> None:
        if self._email is None:
            self._email = value

    @property
    def active(self) -> bool | None:
        return self._active

    @active.setter
    def active(self, value: bool | None) -> None:
        if self._active is None:
            self._active = value

    # ------------------------------------------------------------------

    def apply_from_local(self, local: DirectoryUser) -> None:
        self.local_id = local.id
        self.username = local.username
        self.given_name = local.first_name
        self.family_name = local.last_name
        self.display_name = build_display_name(
            local.first_name, local.last_name, local.username
        )
        self.email = local.email
        self.active = local.enabled
        self.roles = collect_exported_roles(local)
        self._evaluate_skip(local)

    def apply_from_remote(self, remote: ScimUserResource) -> None:
        self.external_id = remote.id
        self.username = remote.userName
        self.display_name = remote.displayName
        self.active = remote.active
        if remote.emails:
            self.email = remote.emails[0].value
        if remote.name is not None:
            self.given_name = remote.name.givenName
            self.family_name = remote.name.familyName
        self._resolve_local_id()

    def to_remote_representation(self, include_meta: bool = False) -> ScimUserResource:
        resource = ScimUserResource(
            id=self.external_id,
            externalId=self.local_id,
            userName=self.username or "",
            displayName=self.display_name,
            name=ScimName(givenName=self.given_name, familyName=self.family_name),
            emails=[ScimEmail(value=self.email)] if self.email is not None else [],
            active=bool(self.active),
            roles=[ScimRole(value=role) for role in sorted(self.roles)],
        )
        if include_meta:
            resource.meta = self._build_meta()
        return resource

    def entity_exists(self) -> bool:
        if self.local_id is None:
            return False
        return self.directory.get_user_by_id(self.local_id) is not None

    def try_to_map(self) -> bool:
        username, email = self.username, self.email
        same_username_user = (
            self.directory.get_user_by_username(username)
            if username is not None
            else None
        )
        same_email_user = (
            self.directory.get_user_by_email(email) if email is not None else None
        )

        if (
            same_username_user is not None
            and same_email_user is not None
            and same_username_user.id != same_email_user.id
        ):
            self.logger.warning(
                "Found 2 possible users for remote user %s %s", username, email
            )
            return False

        match = same_username_user or same_email_user
        if match is None:
            return False
        self.local_id = match.id
        return True

    def create_entity(self) -> None:
        if not self.username:
            raise RequiredFieldError("can't create user with empty username")
        user = self.directory.add_user(self.username)
        user.email = self.email
        user.enabled = bool(self.active)
        user.first_name = self.given_name
        user.last_name = self.family_name
        self.local_id = user.id
        self.logger.info("Created new user: %s (id=%s)", self.username, self.local_id)

    def get_resource_stream(self) -> Iterator[DirectoryUser]:
        return self.directory.search_users(enabled=True)

    def skip_refresh(self) -> bool:
        return self.username in SCIM_RESERVED_USERNAMES

    def to_patch_plan(self, url: str) -> ScimPatchPlan:
        # Full replace of these fields on every sync, no diff against the
        # remote's previous state.
        return (
            ScimPatchPlan(url)
            .replace("active", bool(self.active))
            .replace("userName", self.username)
            .replace("displayName", self.display_name)
        )
