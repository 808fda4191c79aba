"""Pydantic models for SCIM 2.0 resources and messages (RFC 7643/7644).

Only the attributes the reconciliation engine reads or writes are modeled.
Unknown attributes sent by a remote directory are ignored on parse.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
SCIM_GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"
SCIM_PATCH_OP_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"


class ScimMeta(BaseModel):
    resourceType: str | None = None
    location: str | None = None


class ScimName(BaseModel):
    givenName: str | None = None
    familyName: str | None = None
    formatted: str | None = None


class ScimEmail(BaseModel):
    value: str
    type: str | None = None
    primary: bool | None = None


class ScimRole(BaseModel):
    value: str
    display: str | None = None
    primary: bool | None = None


class ScimGroupMember(BaseModel):
    """A member reference inside a Group resource or a members PATCH value."""

    model_config = ConfigDict(populate_by_name=True)

    value: str
    type: str | None = None
    ref: str | None = Field(default=None, alias="$ref")
    display: str | None = None


class ScimUserResource(BaseModel):
    schemas: list[str] = Field(default_factory=lambda: [SCIM_USER_SCHEMA])
    id: str | None = None
    externalId: str | None = None
    userName: str
    name: ScimName | None = None
    displayName: str | None = None
    emails: list[ScimEmail] = Field(default_factory=list)
    active: bool = True
    roles: list[ScimRole] = Field(default_factory=list)
    meta: ScimMeta | None = None


class ScimGroupResource(BaseModel):
    schemas: list[str] = Field(default_factory=lambda: [SCIM_GROUP_SCHEMA])
    id: str | None = None
    externalId: str | None = None
    displayName: str
    members: list[ScimGroupMember] = Field(default_factory=list)
    meta: ScimMeta | None = None


ScimResource = ScimUserResource | ScimGroupResource


class ScimPatchOperationType(str, Enum):
    # Never emitted by outbound plans; accepted when parsing PatchOp bodies.
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


ScimPatchValue = str | bool | list[ScimGroupMember] | None


class ScimPatchOperation(BaseModel):
    op: ScimPatchOperationType
    path: str | None = None
    value: ScimPatchValue = None

    @field_validator("op", mode="before")
    @classmethod
    def normalize_op(cls, v: object) -> object:
        """Some servers and IdPs send capitalized ops (``"Replace"``)."""
        if isinstance(v, str):
            return v.lower()
        return v


class ScimPatchRequest(BaseModel):
    schemas: list[str] = Field(default_factory=lambda: [SCIM_PATCH_OP_SCHEMA])
    Operations: list[ScimPatchOperation]
