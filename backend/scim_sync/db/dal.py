"""Base Data Access Layer.

Wraps a SQLAlchemy ``Session``. Subclass methods mutate and flush but never
commit; callers decide when a unit of work is done::

    with SqlEngine.get_session() as session:
        dal = ScimMappingDAL(session, realm_id="acme", component_id="okta")
        dal.create_mapping("local-1", "ext-1", ScimResourceType.USER)
        dal.commit()
"""

from sqlalchemy.orm import Session


class DAL:
    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def flush(self) -> None:
        self._session.flush()
