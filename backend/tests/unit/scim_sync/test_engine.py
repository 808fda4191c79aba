from collections.abc import Generator

import pytest
from sqlalchemy import select

from scim_sync.db.engine import SqlEngine
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.models import ScimMapping
from scim_sync.db.scim import ScimMappingDAL


@pytest.fixture
def sql_engine() -> Generator[type[SqlEngine], None, None]:
    SqlEngine.reset_engine()
    SqlEngine.init_engine("sqlite://")
    SqlEngine.create_tables()
    yield SqlEngine
    SqlEngine.reset_engine()


class TestSqlEngine:
    def test_requires_init(self) -> None:
        SqlEngine.reset_engine()

        with pytest.raises(RuntimeError, match="not initialized"):
            SqlEngine.get_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            with SqlEngine.get_session():
                pass

    def test_init_is_idempotent(self, sql_engine: type[SqlEngine]) -> None:
        first = sql_engine.get_engine()

        assert sql_engine.init_engine("sqlite://") is first

    def test_sessions_share_in_memory_database(
        self, sql_engine: type[SqlEngine]
    ) -> None:
        with sql_engine.get_session() as session:
            dal = ScimMappingDAL(session, realm_id="acme", component_id="remote-1")
            dal.create_mapping("local-1", "ext-1", ScimResourceType.USER)
            dal.commit()

        with sql_engine.get_session() as session:
            mapping = session.scalar(select(ScimMapping))
            assert mapping is not None
            assert mapping.external_id == "ext-1"

    def test_savepoint_rollback_keeps_outer_transaction(
        self, sql_engine: type[SqlEngine]
    ) -> None:
        with sql_engine.get_session() as session:
            dal = ScimMappingDAL(session, realm_id="acme", component_id="remote-1")
            dal.create_mapping("local-1", "ext-1", ScimResourceType.USER)

            nested = session.begin_nested()
            dal.create_mapping("local-2", "ext-2", ScimResourceType.USER)
            nested.rollback()
            dal.commit()

            kept = [m.local_id for m in session.scalars(select(ScimMapping))]
            assert kept == ["local-1"]
