import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean
from sqlalchemy import Column
from sqlalchemy import DateTime
from sqlalchemy import Enum
from sqlalchemy import ForeignKey
from sqlalchemy import func
from sqlalchemy import Integer
from sqlalchemy import JSON
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column
from sqlalchemy.orm import relationship

from scim_sync.db.enums import ScimResourceType


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass


"""
Mapping table between local entities and remote SCIM resources
"""


class ScimMapping(Base):
    """Correspondence between a local entity id and its SCIM resource id.

    A bijection within each (realm, component, resource type): both sides
    carry their own unique constraint, so a concurrent writer racing to map
    the same entity fails on insert instead of silently adding a second row.
    """

    __tablename__ = "scim_mapping"
    __table_args__ = (
        UniqueConstraint(
            "realm_id",
            "component_id",
            "resource_type",
            "local_id",
            name="uq_scim_mapping_local_id",
        ),
        UniqueConstraint(
            "realm_id",
            "component_id",
            "resource_type",
            "external_id",
            name="uq_scim_mapping_external_id",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    realm_id: Mapped[str] = mapped_column(String, nullable=False)
    component_id: Mapped[str] = mapped_column(String, nullable=False)
    resource_type: Mapped[ScimResourceType] = mapped_column(
        Enum(ScimResourceType, native_enum=False), nullable=False
    )
    local_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    external_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"ScimMapping(resource_type={self.resource_type}, "
            f"local_id={self.local_id}, external_id={self.external_id})"
        )


"""
Reference local directory
"""

user__group = Table(
    "directory_user__group",
    Base.metadata,
    Column("user_id", ForeignKey("directory_user.id"), primary_key=True),
    Column("group_id", ForeignKey("directory_group.id"), primary_key=True),
)

user__role = Table(
    "directory_user__role",
    Base.metadata,
    Column("user_id", ForeignKey("directory_user.id"), primary_key=True),
    Column("role_id", ForeignKey("directory_role.id"), primary_key=True),
)

group__role = Table(
    "directory_group__role",
    Base.metadata,
    Column("group_id", ForeignKey("directory_group.id"), primary_key=True),
    Column("role_id", ForeignKey("directory_role.id"), primary_key=True),
)


class AttributeMixin:
    # Multi-valued: attribute name -> list of values
    attributes: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    def get_first_attribute(self, name: str) -> str | None:
        values = (self.attributes or {}).get(name)
        if values is None:
            return None
        if isinstance(values, str):
            return values
        return values[0] if values else None


class DirectoryRole(AttributeMixin, Base):
    __tablename__ = "directory_role"
    __table_args__ = (UniqueConstraint("realm_id", "name"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    realm_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class DirectoryGroup(AttributeMixin, Base):
    __tablename__ = "directory_group"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    realm_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    members: Mapped[list["DirectoryUser"]] = relationship(
        "DirectoryUser", secondary=user__group, back_populates="groups"
    )
    roles: Mapped[list[DirectoryRole]] = relationship(
        DirectoryRole, secondary=group__role
    )


class DirectoryUser(AttributeMixin, Base):
    __tablename__ = "directory_user"
    __table_args__ = (UniqueConstraint("realm_id", "username"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    realm_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    groups: Mapped[list[DirectoryGroup]] = relationship(
        DirectoryGroup, secondary=user__group, back_populates="members"
    )
    roles: Mapped[list[DirectoryRole]] = relationship(
        DirectoryRole, secondary=user__role
    )
