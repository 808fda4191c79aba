from __future__ import annotations

from collections.abc import Callable
from collections.abc import Generator
from collections.abc import Iterable
from typing import Any

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from scim_sync.db.engine import build_engine
from scim_sync.db.models import Base
from scim_sync.db.models import DirectoryGroup
from scim_sync.db.models import DirectoryRole
from scim_sync.db.models import DirectoryUser
from scim_sync.db.scim import ScimMappingDAL
from scim_sync.directory.sql import SqlLocalDirectory
from scim_sync.sync.context import SyncContext

REALM_ID = "acme"
COMPONENT_ID = "remote-1"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def directory(db_session: Session) -> SqlLocalDirectory:
    return SqlLocalDirectory(db_session, realm_id=REALM_ID)


@pytest.fixture
def mapping_dal(db_session: Session) -> ScimMappingDAL:
    return ScimMappingDAL(db_session, realm_id=REALM_ID, component_id=COMPONENT_ID)


@pytest.fixture
def ctx(directory: SqlLocalDirectory, mapping_dal: ScimMappingDAL) -> SyncContext:
    return SyncContext(
        directory=directory,
        mappings=mapping_dal,
        realm_id=REALM_ID,
        component_id=COMPONENT_ID,
    )


@pytest.fixture
def make_role(db_session: Session) -> Callable[..., DirectoryRole]:
    def _make(name: str, exported: bool = True) -> DirectoryRole:
        role = DirectoryRole(
            realm_id=REALM_ID,
            name=name,
            attributes={"scim": ["true"]} if exported else {},
        )
        db_session.add(role)
        db_session.flush()
        return role

    return _make


@pytest.fixture
def make_group(db_session: Session) -> Callable[..., DirectoryGroup]:
    def _make(
        name: str,
        roles: Iterable[DirectoryRole] = (),
        attributes: dict[str, Any] | None = None,
    ) -> DirectoryGroup:
        group = DirectoryGroup(
            realm_id=REALM_ID, name=name, attributes=attributes or {}
        )
        group.roles.extend(roles)
        db_session.add(group)
        db_session.flush()
        return group

    return _make


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., DirectoryUser]:
    def _make(
        username: str,
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        enabled: bool = True,
        groups: Iterable[DirectoryGroup] = (),
        roles: Iterable[DirectoryRole] = (),
        attributes: dict[str, Any] | None = None,
    ) -> DirectoryUser:
        user = DirectoryUser(
            realm_id=REALM_ID,
            username=username,
            email=email,
            first_name=first_name,
            last_name=last_name,
            enabled=enabled,
            attributes=attributes or {},
        )
        user.groups.extend(groups)
        user.roles.extend(roles)
        db_session.add(user)
        db_session.flush()
        return user

    return _make
